"""
AIRWATCH - Airspace Situational Awareness Core

Live aircraft tracking, short-horizon trajectory prediction and pairwise
separation monitoring around a home base, fed from ADS-B position reports.

Components:
    - tracking: Track store, ingestion, events, timers and persistence
    - analysis: Trajectory prediction, conflict detection and path smoothing
    - monitor: Wiring of the above into one running service

Example:
    >>> from airwatch import Config
    >>> from airwatch.monitor import AirspaceMonitor
    >>> monitor = AirspaceMonitor(Config())
    >>> monitor.start()
"""

# Component imports for easy access
from . import config
from . import utils
from . import tracking
from . import analysis
from . import monitor
from .config import Config

AIRWATCH_VERSION = "v0.1.0"

__version__ = AIRWATCH_VERSION
__author__ = "AIRWATCH Project"
__license__ = "MIT"

__all__ = [
    "Config",
    "tracking",
    "analysis",
    "monitor",
    "utils",
    "config",
]
