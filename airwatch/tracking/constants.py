"""
AIRWATCH Tracking Constants
Constants used by the track store and the feed collector.
"""

# Significance filter: a new sample must be at least this far from the last one
MIN_SAMPLE_INTERVAL_SECONDS = 1.0
MIN_SAMPLE_DISPLACEMENT_DEG = 0.001  # ~100 m

# History points handed to persistence with each snapshot
PERSISTED_TRACK_POINTS = 100

# OpenSky feed
OPENSKY_API_URL = "https://opensky-network.org/api/states/all"
DEFAULT_API_TIMEOUT = 10  # seconds
MIN_POLL_INTERVAL = 10  # OpenSky rate limit

