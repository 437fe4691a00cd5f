"""
AIRWATCH Database Management
SQLite persistence for evicted/periodic track snapshots and conflict history.
"""

import json
import sqlite3
from pathlib import Path
from typing import Any, Dict, List, Optional

from .models import TrackSnapshot


class TrackDatabase:
    """Manages SQLite database for track and conflict storage."""

    def __init__(self, db_path: str):
        """
        Initialize database connection.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path
        self._ensure_data_directory()
        self.init_database()

    def _ensure_data_directory(self):
        """Ensure the data directory exists."""
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_database(self):
        """Initialize database with required tables and indexes."""
        conn = sqlite3.connect(self.db_path)
        cursor = conn.cursor()

        # One row per aircraft, overwritten on every save
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS aircraft_tracks (
                aircraft_id TEXT PRIMARY KEY,
                hex TEXT,
                flight TEXT,
                tail TEXT,
                aircraft_type TEXT,
                first_seen TIMESTAMP,
                last_seen TIMESTAMP,
                position_count INTEGER DEFAULT 0,
                current_position TEXT,
                track_points TEXT,
                predicted_path TEXT,
                prediction_confidence REAL,
                prediction_generated_at TIMESTAMP,
                status TEXT,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        ''')

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS conflicts (
                id TEXT PRIMARY KEY,
                aircraft_1_id TEXT NOT NULL,
                aircraft_2_id TEXT NOT NULL,
                aircraft_1_callsign TEXT,
                aircraft_2_callsign TEXT,
                detected_at TIMESTAMP NOT NULL,
                resolved_at TIMESTAMP,
                min_horizontal_distance REAL,
                min_vertical_distance REAL,
                time_to_cpa INTEGER,
                severity TEXT,
                kind TEXT,
                status TEXT
            )
        ''')

        cursor.execute('CREATE INDEX IF NOT EXISTS idx_tracks_last_seen ON aircraft_tracks(last_seen)')
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_conflicts_status ON conflicts(status)')
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_conflicts_detected_at ON conflicts(detected_at)')
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_conflicts_aircraft_1 ON conflicts(aircraft_1_id)')
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_conflicts_aircraft_2 ON conflicts(aircraft_2_id)')

        conn.commit()
        conn.close()

    def save_track(self, snapshot: TrackSnapshot):
        """
        Insert or replace the stored state of one aircraft.

        Args:
            snapshot: Track snapshot (its ``positions`` are stored as track points)
        """
        data = snapshot.to_dict()
        conn = sqlite3.connect(self.db_path)
        cursor = conn.cursor()

        cursor.execute('''
            INSERT OR REPLACE INTO aircraft_tracks (
                aircraft_id, hex, flight, tail, aircraft_type, first_seen, last_seen,
                position_count, current_position, track_points, predicted_path,
                prediction_confidence, prediction_generated_at, status, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, CURRENT_TIMESTAMP)
        ''', (
            data['aircraft_id'], data['hex'], data['flight'], data['tail'],
            data['aircraft_type'], data['first_seen'], data['last_seen'],
            data['position_count'],
            json.dumps(data['current_position']) if data['current_position'] else None,
            json.dumps(data['track_points']),
            json.dumps(data['predicted_path']) if data['predicted_path'] else None,
            data['prediction_confidence'],
            data['prediction_generated_at'],
            data['status'],
        ))

        conn.commit()
        conn.close()

    def save_conflict(self, conflict: Any):
        """
        Insert or replace a conflict record.

        Args:
            conflict: Object with a ``to_dict()`` returning the conflict fields
        """
        data = conflict.to_dict()
        conn = sqlite3.connect(self.db_path)
        cursor = conn.cursor()

        cursor.execute('''
            INSERT OR REPLACE INTO conflicts (
                id, aircraft_1_id, aircraft_2_id, aircraft_1_callsign, aircraft_2_callsign,
                detected_at, resolved_at, min_horizontal_distance, min_vertical_distance,
                time_to_cpa, severity, kind, status
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        ''', (
            data['id'], data['aircraft_1_id'], data['aircraft_2_id'],
            data['aircraft_1_callsign'], data['aircraft_2_callsign'],
            data['detected_at'], data['resolved_at'],
            data['min_horizontal_distance'], data['min_vertical_distance'],
            data['time_to_cpa'], data['severity'], data['kind'], data['status'],
        ))

        conn.commit()
        conn.close()

    def get_track(self, aircraft_id: str) -> Optional[Dict[str, Any]]:
        """
        Get the stored state of one aircraft.

        Args:
            aircraft_id: Track identity key

        Returns:
            Track dictionary with JSON columns decoded, or None
        """
        conn = self._connect()
        cursor = conn.cursor()

        cursor.execute('SELECT * FROM aircraft_tracks WHERE aircraft_id = ?', (aircraft_id,))
        row = cursor.fetchone()
        conn.close()

        if not row:
            return None

        track = dict(row)
        for column in ('current_position', 'track_points', 'predicted_path'):
            track[column] = json.loads(track[column]) if track[column] else None
        return track

    def get_conflict(self, conflict_id: str) -> Optional[Dict[str, Any]]:
        """Get one conflict record by ID."""
        conn = self._connect()
        cursor = conn.cursor()

        cursor.execute('SELECT * FROM conflicts WHERE id = ?', (conflict_id,))
        row = cursor.fetchone()
        conn.close()

        return dict(row) if row else None

    def get_conflict_history(self, start_time: Optional[str] = None,
                             end_time: Optional[str] = None,
                             limit: int = 100) -> List[Dict[str, Any]]:
        """
        Get conflicts detected within a time window, newest first.

        Args:
            start_time: ISO timestamp lower bound (inclusive), or None
            end_time: ISO timestamp upper bound (inclusive), or None
            limit: Maximum rows to return

        Returns:
            List of conflict dictionaries
        """
        query = 'SELECT * FROM conflicts WHERE 1 = 1'
        params: List[Any] = []

        if start_time:
            query += ' AND detected_at >= ?'
            params.append(start_time)
        if end_time:
            query += ' AND detected_at <= ?'
            params.append(end_time)

        query += ' ORDER BY detected_at DESC LIMIT ?'
        params.append(limit)

        conn = self._connect()
        cursor = conn.cursor()
        cursor.execute(query, params)
        rows = cursor.fetchall()
        conn.close()

        return [dict(row) for row in rows]

    def get_statistics(self) -> Dict[str, Any]:
        """
        Get overall database statistics.

        Returns:
            Dictionary with statistical data
        """
        conn = sqlite3.connect(self.db_path)
        cursor = conn.cursor()

        cursor.execute('''
            SELECT
                COUNT(*) as total_tracks,
                SUM(position_count) as total_positions,
                MIN(first_seen) as first_observation,
                MAX(last_seen) as last_observation
            FROM aircraft_tracks
        ''')
        tracks = cursor.fetchone()

        cursor.execute('''
            SELECT
                COUNT(*) as total_conflicts,
                SUM(CASE WHEN status = 'active' THEN 1 ELSE 0 END) as active_conflicts,
                SUM(CASE WHEN severity = 'critical' THEN 1 ELSE 0 END) as critical_conflicts,
                MIN(min_horizontal_distance) as closest_approach_nm
            FROM conflicts
        ''')
        conflicts = cursor.fetchone()
        conn.close()

        return {
            'total_tracks': tracks[0] or 0,
            'total_positions': tracks[1] or 0,
            'first_observation': tracks[2],
            'last_observation': tracks[3],
            'total_conflicts': conflicts[0] or 0,
            'active_conflicts': conflicts[1] or 0,
            'critical_conflicts': conflicts[2] or 0,
            'closest_approach_nm': conflicts[3],
        }
