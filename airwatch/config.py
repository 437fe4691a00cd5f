"""
AIRWATCH Configuration Management

This module provides configuration management for the AIRWATCH situational
awareness core. It includes physical constants, tracking and conflict
settings, and runtime configuration loaded from YAML files.
"""

import logging
import os
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger("airwatch.config")

# =============================================================================
# Physical Constants
# =============================================================================


class Constants:
    """Physical constants representing real-world measurements."""

    EARTH_RADIUS_KM: float = 6371.0088  # Mean Earth radius for great-circle math
    KM_PER_NM: float = 1.852  # Nautical mile in kilometers
    METERS_TO_FEET: float = 3.28084  # Altitude conversion factor
    MS_TO_KNOTS: float = 1.94384  # Velocity conversion: m/s to knots
    MS_TO_FPM: float = 196.850394  # Vertical rate conversion: m/s to ft/min
    KM_PER_DEGREE_LAT: float = 111.32  # Distance per degree latitude at equator


# =============================================================================
# Tracking & Conflict Settings
# =============================================================================


class Settings:
    """Default settings for tracking, prediction and conflict detection."""

    # --- Track Store ---
    MAX_TRACK_POINTS: int = 1000  # Samples kept per track (oldest dropped)
    PERSIST_INTERVAL_SECONDS: float = 5.0  # Per-track persistence cadence
    INACTIVITY_TIMEOUT_SECONDS: float = 1200.0  # 20 min until eviction
    PARKING_IDLE_SECONDS: float = 900.0  # 15 min idle before parking tag
    CLEANUP_INTERVAL_SECONDS: float = 60.0

    # --- Parking heuristic ---
    HOME_BASE_RADIUS_KM: float = 5.0
    PARKING_MAX_ALTITUDE_FT: float = 500.0
    PARKING_MAX_GROUND_SPEED_KT: float = 30.0

    # --- Trajectory Prediction ---
    PREDICTION_HORIZON_MINUTES: int = 10
    DATA_FRESHNESS_SECONDS: float = 60.0

    # --- Conflict Detection ---
    MIN_HORIZONTAL_SEPARATION_NM: float = 5.0
    MIN_VERTICAL_SEPARATION_FT: float = 1000.0
    FLYING_MIN_ALTITUDE_FT: float = 500.0
    FLYING_MIN_GROUND_SPEED_KT: float = 50.0
    CONFLICT_TICK_INTERVAL_SECONDS: float = 30.0


# =============================================================================
# Runtime Configuration
# =============================================================================


class Config:
    """
    Runtime configuration manager for AIRWATCH.

    Loads settings from YAML files or uses sensible defaults.
    Provides property-based access to every tunable knob.

    Example:
        >>> config = Config('airwatch.yaml')
        >>> print(f"Home base: {config.home_base_name}")
        >>> print(f"Minima: {config.min_horizontal_separation_nm} NM")
    """

    def __init__(self, config_path: Optional[str] = None) -> None:
        """
        Initialize configuration.

        Args:
            config_path: Path to YAML configuration file. If None or missing,
                        uses default configuration.
        """
        self.config_path = config_path
        self._config: Dict[str, Any] = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """
        Load configuration from YAML file or return defaults.

        Sections missing from the file are filled in from the defaults.

        Returns:
            Configuration dictionary
        """
        if self.config_path is None or not os.path.exists(self.config_path):
            return self._get_default_config()

        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                loaded = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.warning("Could not load config file %s: %s", self.config_path, e)
            return self._get_default_config()

        if not isinstance(loaded, dict):
            logger.warning("Invalid config structure in %s, using defaults", self.config_path)
            return self._get_default_config()

        config = self._merge_defaults(loaded)
        if self._validate_config(config):
            return config

        logger.warning("Invalid config values in %s, using defaults", self.config_path)
        return self._get_default_config()

    def _merge_defaults(self, loaded: Dict[str, Any]) -> Dict[str, Any]:
        """Overlay a loaded configuration onto the defaults, section by section."""
        config = self._get_default_config()
        for section, values in loaded.items():
            if isinstance(values, dict) and isinstance(config.get(section), dict):
                config[section].update(values)
            else:
                config[section] = values
        return config

    def _validate_config(self, config: Dict[str, Any]) -> bool:
        """
        Validate configuration structure and required fields.

        Args:
            config: Configuration dictionary to validate

        Returns:
            True if valid, False otherwise
        """
        try:
            home = config["home_base"]
            assert isinstance(home["latitude"], (float, int))
            assert isinstance(home["longitude"], (float, int))
            assert -90 <= home["latitude"] <= 90
            assert -180 <= home["longitude"] <= 180
            assert home["radius_km"] > 0

            separation = config["separation"]
            assert separation["horizontal_nm"] > 0
            assert separation["vertical_ft"] > 0

            flying = config["flying"]
            assert flying["min_altitude_ft"] >= 0
            assert flying["min_ground_speed_kt"] >= 0

            tracking = config["tracking"]
            assert int(tracking["max_track_points"]) > 0
            assert tracking["persist_interval_seconds"] >= 0
            assert tracking["cleanup_interval_seconds"] > 0
            # The parking tag must fire before the hard eviction
            assert (
                0
                < tracking["parking_idle_seconds"]
                < tracking["inactivity_timeout_seconds"]
            )

            prediction = config["prediction"]
            assert int(prediction["horizon_minutes"]) > 0
            assert prediction["freshness_seconds"] > 0

            assert config["conflicts"]["tick_interval_seconds"] > 0

            assert isinstance(config["database"]["path"], str)

            return True
        except (AssertionError, KeyError, TypeError, ValueError):
            return False

    def _get_default_config(self) -> Dict[str, Any]:
        """
        Get default configuration.

        Returns:
            Default configuration dictionary
        """
        return {
            "home_base": {
                "latitude": 55.5094,
                "longitude": -4.5944,
                "name": "Glasgow Prestwick (EGPK)",
                "radius_km": Settings.HOME_BASE_RADIUS_KM,
            },
            "separation": {
                "horizontal_nm": Settings.MIN_HORIZONTAL_SEPARATION_NM,
                "vertical_ft": Settings.MIN_VERTICAL_SEPARATION_FT,
            },
            "flying": {
                "min_altitude_ft": Settings.FLYING_MIN_ALTITUDE_FT,
                "min_ground_speed_kt": Settings.FLYING_MIN_GROUND_SPEED_KT,
            },
            "tracking": {
                "max_track_points": Settings.MAX_TRACK_POINTS,
                "persist_interval_seconds": Settings.PERSIST_INTERVAL_SECONDS,
                "inactivity_timeout_seconds": Settings.INACTIVITY_TIMEOUT_SECONDS,
                "parking_idle_seconds": Settings.PARKING_IDLE_SECONDS,
                "cleanup_interval_seconds": Settings.CLEANUP_INTERVAL_SECONDS,
            },
            "prediction": {
                "horizon_minutes": Settings.PREDICTION_HORIZON_MINUTES,
                "freshness_seconds": Settings.DATA_FRESHNESS_SECONDS,
            },
            "conflicts": {
                "tick_interval_seconds": Settings.CONFLICT_TICK_INTERVAL_SECONDS,
            },
            "feed": {
                "enabled": False,
                "url": "https://opensky-network.org/api/states/all",
                "radius_km": 50,
                "timeout_seconds": 10,
                "poll_interval_seconds": 15,
            },
            "database": {"path": "data/airwatch.db"},
            "logging": {
                "level": "INFO",
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            },
        }

    def save_config(self) -> None:
        """
        Save current configuration to YAML file.

        Raises:
            ValueError: If config_path is not set
        """
        if self.config_path is None:
            raise ValueError("Cannot save config: no config_path specified")

        with open(self.config_path, "w", encoding="utf-8") as f:
            yaml.dump(self._config, f, default_flow_style=False)

    # --- Home Base ---

    @property
    def home_latitude(self) -> float:
        """Get home base latitude in degrees."""
        return float(self._config["home_base"]["latitude"])

    @property
    def home_longitude(self) -> float:
        """Get home base longitude in degrees."""
        return float(self._config["home_base"]["longitude"])

    @property
    def home_base_name(self) -> str:
        """Get descriptive home base name."""
        return self._config["home_base"].get("name", "Unknown Location")

    @property
    def home_base_radius_km(self) -> float:
        """Get radius around the home base used by the parking heuristic."""
        return float(self._config["home_base"]["radius_km"])

    # --- Separation & Flying Filter ---

    @property
    def min_horizontal_separation_nm(self) -> float:
        return float(self._config["separation"]["horizontal_nm"])

    @property
    def min_vertical_separation_ft(self) -> float:
        return float(self._config["separation"]["vertical_ft"])

    @property
    def flying_min_altitude_ft(self) -> float:
        return float(self._config["flying"]["min_altitude_ft"])

    @property
    def flying_min_ground_speed_kt(self) -> float:
        return float(self._config["flying"]["min_ground_speed_kt"])

    # --- Tracking ---

    @property
    def max_track_points(self) -> int:
        return int(self._config["tracking"]["max_track_points"])

    @property
    def persist_interval(self) -> float:
        """Get per-track persistence interval in seconds."""
        return float(self._config["tracking"]["persist_interval_seconds"])

    @property
    def inactivity_timeout(self) -> float:
        """Get seconds of silence after which a track is evicted."""
        return float(self._config["tracking"]["inactivity_timeout_seconds"])

    @property
    def parking_idle_seconds(self) -> float:
        return float(self._config["tracking"]["parking_idle_seconds"])

    @property
    def cleanup_interval(self) -> float:
        return float(self._config["tracking"]["cleanup_interval_seconds"])

    # --- Prediction & Conflicts ---

    @property
    def prediction_horizon_minutes(self) -> int:
        return int(self._config["prediction"]["horizon_minutes"])

    @property
    def data_freshness_seconds(self) -> float:
        return float(self._config["prediction"]["freshness_seconds"])

    @property
    def conflict_tick_interval(self) -> float:
        """Get conflict detector tick interval in seconds."""
        return float(self._config["conflicts"]["tick_interval_seconds"])

    # --- Feed ---

    @property
    def feed_enabled(self) -> bool:
        return bool(self._config["feed"].get("enabled", False))

    @property
    def api_url(self) -> str:
        """Get the OpenSky states endpoint."""
        return self._config["feed"]["url"]

    @property
    def api_timeout(self) -> int:
        return int(self._config["feed"]["timeout_seconds"])

    @property
    def feed_radius_km(self) -> float:
        return float(self._config["feed"]["radius_km"])

    @property
    def poll_interval(self) -> float:
        return float(self._config["feed"]["poll_interval_seconds"])

    # --- Storage & Logging ---

    @property
    def db_path(self) -> str:
        """Get database file path."""
        return self._config["database"]["path"]

    @property
    def log_level(self) -> str:
        return str(self._config["logging"].get("level", "INFO")).upper()

    @property
    def log_format(self) -> str:
        return self._config["logging"].get(
            "format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

    # --- Generic Accessors ---

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation.

        Args:
            key: Dot-separated key path (e.g., 'separation.horizontal_nm')
            default: Default value if key not found

        Returns:
            Configuration value or default

        Example:
            >>> config.get('separation.horizontal_nm', 5)
            5.0
        """
        keys = key.split(".")
        value = self._config

        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
                if value is None:
                    return default
            else:
                return default

        return value

    def set(self, key: str, value: Any) -> None:
        """
        Set configuration value using dot notation.

        Args:
            key: Dot-separated key path (e.g., 'tracking.inactivity_timeout_seconds')
            value: Value to set

        Example:
            >>> config.set('conflicts.tick_interval_seconds', 10)
        """
        keys = key.split(".")
        config = self._config

        # Navigate to parent of target key
        for k in keys[:-1]:
            if k not in config:
                config[k] = {}
            config = config[k]

        config[keys[-1]] = value
