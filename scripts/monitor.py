#!/usr/bin/env python3
"""
AIRWATCH Airspace Monitor Script

Usage:
    python scripts/monitor.py [--config CONFIG_FILE] [--no-db]
"""

import sys
import time
import logging
import argparse
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from airwatch.config import Config
from airwatch.monitor import AirspaceMonitor
from airwatch.tracking import TrackDatabase
from airwatch.tracking.events import (
    CONFLICT_DETECTED,
    CONFLICT_RESOLVED,
)
from airwatch.utils import format_altitude, format_duration


def print_header(config: Config, db_path):
    """Print monitor header."""
    print("=" * 70)
    print("✈️  AIRWATCH - Airspace Situational Awareness")
    print("=" * 70)
    print(f"📍 Home base: {config.home_base_name}")
    print(f"   Coordinates: {config.home_latitude:.4f}°N, {config.home_longitude:.4f}°E")
    print(
        f"🛡️  Separation minima: {config.min_horizontal_separation_nm} NM / "
        f"{config.min_vertical_separation_ft:.0f} ft"
    )
    print(f"🔮 Prediction horizon: {config.prediction_horizon_minutes} min")
    print(f"📡 OpenSky feed: {'enabled' if config.feed_enabled else 'disabled'}")
    print(f"💾 Database: {db_path or 'memory only'}")
    print("=" * 70)
    print("\nPress Ctrl+C to stop\n")


def on_conflict_detected(conflict):
    print(
        f"⚠️  [{conflict.severity.upper()}] {conflict.aircraft_1_callsign} / "
        f"{conflict.aircraft_2_callsign}: {conflict.min_horizontal_distance:.2f} NM, "
        f"{format_altitude(conflict.min_vertical_distance)} ({conflict.kind})"
    )
    if conflict.time_to_cpa:
        print(f"   Closest approach in {format_duration(conflict.time_to_cpa)}")


def on_conflict_resolved(conflict):
    print(
        f"✅ Resolved {conflict.aircraft_1_callsign} / {conflict.aircraft_2_callsign}"
    )


def main():
    """Main entry point for the airspace monitor."""
    parser = argparse.ArgumentParser(
        description="AIRWATCH Airspace Monitor - Track aircraft and detect conflicts"
    )
    parser.add_argument(
        "--config",
        type=str,
        default="airwatch.yaml",
        help="Path to configuration file (default: airwatch.yaml)",
    )
    parser.add_argument(
        "--no-db",
        action="store_true",
        help="Run without persisting tracks and conflicts",
    )

    args = parser.parse_args()

    # Load configuration
    try:
        config = Config(args.config)
    except Exception as e:
        print(f"❌ Error loading configuration: {e}")
        sys.exit(1)

    logging.basicConfig(
        level=getattr(logging, str(config.log_level).upper(), logging.INFO),
        format=config.log_format,
    )

    db_path = None if args.no_db else config.db_path
    database = TrackDatabase(db_path) if db_path else None

    print_header(config, db_path)

    monitor = AirspaceMonitor(config, database=database)
    monitor.subscribe(CONFLICT_DETECTED, on_conflict_detected)
    monitor.subscribe(CONFLICT_RESOLVED, on_conflict_resolved)

    try:
        monitor.start()
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        print("\n👋 Monitor stopped by user")
    except Exception as e:
        print(f"❌ Fatal error: {e}")
        import traceback

        traceback.print_exc()
        sys.exit(1)
    finally:
        monitor.stop()


if __name__ == "__main__":
    main()
