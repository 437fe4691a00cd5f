"""
AIRWATCH Analysis Component

Trajectory prediction and separation monitoring over the live track store.

Main Classes:
    - TrajectoryPredictor: Constant-velocity great-circle extrapolation
    - ConflictDetector: Pairwise separation checks and conflict lifecycle
    - PathSmoother: Catmull-Rom interpolation for display

Example:
    >>> from airwatch.analysis import ConflictDetector
    >>> detector = ConflictDetector(store)
    >>> conflicts = detector.tick()
"""

# Main analysis components
from .predictor import Prediction, TrajectoryPredictor, Velocity
from .conflict_detector import Conflict, ConflictDetector, pair_key
from .path_smoother import PathPoint, PathSmoother

# Utilities
from . import constants

__all__ = [
    # Main classes
    'TrajectoryPredictor',
    'Prediction',
    'Velocity',
    'ConflictDetector',
    'Conflict',
    'pair_key',
    'PathSmoother',
    'PathPoint',

    # Modules
    'constants',
]
