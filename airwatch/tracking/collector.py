"""
AIRWATCH Feed Collector
Polls the OpenSky Network and feeds normalized position updates to the track store.
"""

import logging
from typing import Any, Dict, List, Optional

import requests

from ..config import Config, Constants
from ..utils import get_bounding_box
from .constants import DEFAULT_API_TIMEOUT, MIN_POLL_INTERVAL, OPENSKY_API_URL
from .models import TrackSnapshot
from .store import TrackStore

logger = logging.getLogger("airwatch.tracking.collector")


def parse_state_vector(state: list) -> dict:
    """
    Parse OpenSky Network state vector into dictionary.

    Args:
        state: State vector from OpenSky API

    Returns:
        Dictionary with parsed flight data

    OpenSky state vector format:
        [0] icao24 - unique ICAO 24-bit address
        [1] callsign - callsign
        [2] origin_country - country name
        [3] time_position - Unix timestamp
        [4] last_contact - Unix timestamp
        [5] longitude
        [6] latitude
        [7] baro_altitude - barometric altitude in meters
        [8] on_ground - boolean
        [9] velocity - m/s
        [10] true_track - degrees
        [11] vertical_rate - m/s
        [12] sensors - sensor IDs
        [13] geo_altitude - geometric altitude in meters
        [14] squawk - transponder code
    """
    return {
        "icao24": state[0],
        "callsign": state[1].strip() if state[1] else None,
        "origin_country": state[2],
        "time_position": state[3],
        "last_contact": state[4],
        "longitude": state[5],
        "latitude": state[6],
        "baro_altitude": state[7],
        "on_ground": state[8],
        "velocity": state[9],
        "true_track": state[10],
        "vertical_rate": state[11],
        "geo_altitude": state[13],
        "squawk": state[14] if len(state) > 14 else None,
    }


def _scaled(value: Optional[float], factor: float) -> Optional[float]:
    return value * factor if value is not None else None


def state_to_update(state_data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Convert a parsed OpenSky state into a position update payload.

    Metres become feet, m/s become knots and ft/min. Aircraft reported on
    the ground get altitude 0 when no barometric altitude is given.
    """
    altitude_m = state_data.get("baro_altitude")
    if altitude_m is None:
        altitude_m = state_data.get("geo_altitude")
    altitude_ft = _scaled(altitude_m, Constants.METERS_TO_FEET)
    if altitude_ft is None and state_data.get("on_ground"):
        altitude_ft = 0.0

    return {
        "hex": state_data.get("icao24"),
        "flight": state_data.get("callsign"),
        "lat": state_data.get("latitude"),
        "lon": state_data.get("longitude"),
        "altitude": altitude_ft,
        "heading": state_data.get("true_track"),
        "ground_speed": _scaled(state_data.get("velocity"), Constants.MS_TO_KNOTS),
        "vertical_rate": _scaled(state_data.get("vertical_rate"), Constants.MS_TO_FPM),
        "squawk": state_data.get("squawk"),
        "timestamp": state_data.get("time_position") or state_data.get("last_contact"),
    }


class FeedCollector:
    """Collects aircraft states from OpenSky Network into a TrackStore."""

    def __init__(self, config: Config, store: TrackStore):
        """
        Initialize feed collector.

        Args:
            config: AIRWATCH configuration object
            store: Track store receiving the updates
        """
        self.config = config
        self.store = store
        self.home_lat = config.home_latitude
        self.home_lon = config.home_longitude
        self.radius_km = config.feed_radius_km
        self.api_url = config.api_url or OPENSKY_API_URL
        self.api_timeout = config.api_timeout or DEFAULT_API_TIMEOUT
        self.poll_interval = max(config.poll_interval, MIN_POLL_INTERVAL)

        self.iteration_count = 0
        self.consecutive_empty_scans = 0
        self.rate_limit_count = 0

    def fetch_states(self) -> List[list]:
        """
        Fetch state vectors around the home base from OpenSky Network.

        Returns:
            List of state vectors from API, or empty list if no data
        """
        lamin, lomin, lamax, lomax = get_bounding_box(
            self.home_lat, self.home_lon, self.radius_km
        )
        params = {'lamin': lamin, 'lomin': lomin, 'lamax': lamax, 'lomax': lomax}

        try:
            response = requests.get(self.api_url, params=params, timeout=self.api_timeout)

            if response.status_code == 429:
                self.rate_limit_count += 1
                logger.warning(
                    "Rate limited by OpenSky Network (429), hit #%d; retry after %s",
                    self.rate_limit_count, response.headers.get('Retry-After', 'unknown'),
                )
                return []

            response.raise_for_status()
            self.rate_limit_count = 0

            data = response.json()
            if not data or 'states' not in data:
                return []

            states = data['states']
            if not isinstance(states, list):
                return []

            return states

        except requests.exceptions.HTTPError as e:
            logger.error("HTTP Error %s: %s", e.response.status_code if e.response is not None else '?', e)
            return []

        except requests.exceptions.Timeout:
            logger.warning("API request timeout after %ss", self.api_timeout)
            return []

        except requests.exceptions.RequestException as e:
            logger.error("Error fetching data: %s", e)
            return []

        except ValueError as e:
            logger.error("Error parsing API response: %s", e)
            return []

    def process_state(self, state: list) -> Optional[TrackSnapshot]:
        """Parse one state vector and apply it to the store."""
        if not state or not isinstance(state, list) or len(state) < 14:
            return None

        state_data = parse_state_vector(state)
        if not state_data.get('icao24'):
            return None

        # Skip if no position data
        if state_data['latitude'] is None or state_data['longitude'] is None:
            return None

        return self.store.ingest(state_to_update(state_data))

    def run_single_iteration(self) -> int:
        """
        Run a single collection iteration.

        Returns:
            Number of states accepted by the store
        """
        self.iteration_count += 1
        states = self.fetch_states()

        accepted = 0
        for state in states:
            if self.process_state(state) is not None:
                accepted += 1

        if accepted == 0:
            self.consecutive_empty_scans += 1
            logger.debug(
                "Scan #%d: no aircraft (%d consecutive)",
                self.iteration_count, self.consecutive_empty_scans,
            )
        else:
            self.consecutive_empty_scans = 0
            logger.debug("Scan #%d: %d aircraft", self.iteration_count, accepted)

        return accepted
