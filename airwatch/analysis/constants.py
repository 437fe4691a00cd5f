"""
Analysis Constants
"""

# Trajectory prediction
DEFAULT_HORIZON_MINUTES: int = 10
DATA_FRESHNESS_SECONDS: float = 60.0  # Older positions start losing confidence
STALE_DATA_FACTOR: int = 10  # Beyond 10x freshness the prediction is flat-rated
STALE_CONFIDENCE: float = 0.1
FRESHNESS_DECAY_SPAN: int = 5  # Confidence hits its floor at 5x freshness
FRESHNESS_FLOOR: float = 0.3
STATIONARY_SPEED_KT: float = 50.0  # Below this we don't extrapolate
STATIONARY_CONFIDENCE: float = 0.05
MIN_CONFIDENCE: float = 0.05
MAX_CONFIDENCE: float = 1.0
HORIZON_CONFIDENCE_DECAY: float = 0.3  # Last predicted point keeps 70%
SPARSE_HISTORY_PENALTY: float = 0.5  # < 3 points
SHORT_HISTORY_PENALTY: float = 0.7  # < 5 points
SPEED_VARIATION_RATIO: float = 0.3  # stddev / mean of last 3 speeds
SPEED_VARIATION_PENALTY: float = 0.7

# Conflict detection
MIN_HORIZONTAL_SEPARATION_NM: float = 5.0
MIN_VERTICAL_SEPARATION_FT: float = 1000.0
CLOSE_ENCOUNTER_FACTOR: float = 1.5
FLYING_MIN_ALTITUDE_FT: float = 500.0
FLYING_MIN_GROUND_SPEED_KT: float = 50.0
CRITICAL_CPA_SECONDS: int = 120
HIGH_CPA_SECONDS: int = 300
PREDICTION_STEP_SECONDS: int = 60

# Severity & status labels
SEVERITY_CRITICAL = "critical"
SEVERITY_HIGH = "high"
SEVERITY_MEDIUM = "medium"
STATUS_ACTIVE = "active"
STATUS_RESOLVED = "resolved"
KIND_IMMEDIATE = "immediate"
KIND_PREDICTED = "predicted"
KIND_PROXIMITY = "proximity"

# Path smoothing
DEFAULT_SMOOTHING_DENSITY: int = 10
