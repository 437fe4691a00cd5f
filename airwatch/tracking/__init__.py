"""
AIRWATCH Tracking Component

Authoritative live aircraft state: ingestion, history, events and persistence.

Main Classes:
    - TrackStore: In-memory aircraft tracks keyed by identity
    - PositionUpdate: Normalized position report accepted by the store
    - EventBus: Bounded publish/subscribe notifications
    - PeriodicTask: Stoppable background timer
    - TrackDatabase: SQLite persistence of tracks and conflicts
    - BackgroundWriter: Non-blocking persistence queue
    - FeedCollector: OpenSky Network ingestion adapter

Example:
    >>> from airwatch.tracking import TrackStore, PositionUpdate
    >>> store = TrackStore()
    >>> store.update(PositionUpdate(hex='4ca123', lat=55.5, lon=-4.6))
"""

# Core tracking components
from .models import (
    AircraftTrack,
    InvalidInputError,
    PositionSample,
    PositionUpdate,
    PredictedPoint,
    TrackSnapshot,
)
from .events import EventBus
from .scheduler import PeriodicTask
from .policies import HomeBaseParkingPolicy
from .store import TrackStore
from .database import TrackDatabase
from .writer import BackgroundWriter
from .collector import FeedCollector

# Utilities
from . import constants
from . import events

__all__ = [
    # Main classes
    "TrackStore",
    "PositionUpdate",
    "PositionSample",
    "PredictedPoint",
    "AircraftTrack",
    "TrackSnapshot",
    "InvalidInputError",
    "EventBus",
    "PeriodicTask",
    "HomeBaseParkingPolicy",
    "TrackDatabase",
    "BackgroundWriter",
    "FeedCollector",
    # Modules
    "constants",
    "events",
]
