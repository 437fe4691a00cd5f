"""
Tests for trajectory prediction.
"""

from datetime import timedelta
from types import SimpleNamespace

import pytest

from airwatch.analysis.predictor import TrajectoryPredictor
from airwatch.tracking.models import PositionSample
from airwatch.utils import calculate_bearing, distance_nm


def make_track(clock, count=5, interval=10, heading=90.0, ground_speed=360.0,
               vertical_rate=0.0, altitude=10000.0, speeds=None):
    """Track of ``count`` samples ending at the clock's current time, flying east."""
    positions = []
    start = clock.now - timedelta(seconds=interval * (count - 1))
    for i in range(count):
        positions.append(
            PositionSample(
                timestamp=start + timedelta(seconds=interval * i),
                lat=55.5,
                lon=-4.6 + 0.01 * i,
                altitude=altitude,
                heading=heading,
                ground_speed=speeds[i] if speeds else ground_speed,
                vertical_rate=vertical_rate,
            )
        )
    return SimpleNamespace(positions=positions)


@pytest.fixture
def predictor(clock):
    return TrajectoryPredictor(clock=clock)


class TestPredict:
    """Tests for TrajectoryPredictor.predict."""

    def test_no_positions(self, predictor):
        """Test tracks without any position give no prediction."""
        assert predictor.predict(SimpleNamespace(positions=[])) is None

    def test_single_position_gives_empty_prediction(self, predictor, clock):
        """Test one sample is not enough to extrapolate."""
        prediction = predictor.predict(make_track(clock, count=1))
        assert prediction is not None
        assert prediction.is_empty
        assert prediction.confidence == pytest.approx(0.05)

    def test_slow_aircraft_gives_empty_prediction(self, predictor, clock):
        """Test aircraft below 50 kt are not extrapolated."""
        prediction = predictor.predict(make_track(clock, ground_speed=30))
        assert prediction.is_empty
        assert prediction.confidence == pytest.approx(0.05)
        assert prediction.velocity.ground_speed == 30

    def test_path_length_matches_horizon(self, predictor, clock):
        """Test one point per minute of horizon."""
        assert len(predictor.predict(make_track(clock)).predicted_path) == 10
        assert len(predictor.predict(make_track(clock), horizon_minutes=3).predicted_path) == 3

    def test_constant_velocity_projection(self, predictor, clock):
        """Test points advance ground_speed/60 NM per minute along the heading."""
        track = make_track(clock, ground_speed=360.0)
        current = track.positions[-1]
        path = predictor.predict(track).predicted_path

        assert distance_nm(current.lat, current.lon, path[0].lat, path[0].lon) == pytest.approx(6.0, rel=1e-3)
        assert distance_nm(current.lat, current.lon, path[-1].lat, path[-1].lon) == pytest.approx(60.0, rel=1e-3)
        assert calculate_bearing(current.lat, current.lon, path[0].lat, path[0].lon) == pytest.approx(90.0, abs=0.1)

    def test_eta_per_minute(self, predictor, clock):
        """Test ETAs are whole minutes after the latest sample."""
        track = make_track(clock)
        path = predictor.predict(track).predicted_path
        assert path[0].timestamp == track.positions[-1].timestamp + timedelta(minutes=1)
        assert path[-1].timestamp == track.positions[-1].timestamp + timedelta(minutes=10)

    def test_altitude_projection(self, predictor, clock):
        """Test climb and descent projection floors at zero."""
        climbing = predictor.predict(make_track(clock, vertical_rate=600.0)).predicted_path
        assert climbing[0].altitude == 10010
        assert climbing[-1].altitude == 10100

        descending = predictor.predict(
            make_track(clock, altitude=50.0, vertical_rate=-6000.0)
        ).predicted_path
        assert descending[-1].altitude == 0

    def test_unknown_altitude_stays_unknown(self, predictor, clock):
        """Test a track without altitude predicts no altitude."""
        path = predictor.predict(make_track(clock, altitude=None)).predicted_path
        assert all(p.altitude is None for p in path)

    def test_point_confidence_non_increasing(self, predictor, clock):
        """Test confidence decays along the path by up to 30%."""
        prediction = predictor.predict(make_track(clock))
        confidences = [p.confidence for p in prediction.predicted_path]

        assert all(a >= b for a, b in zip(confidences, confidences[1:]))
        assert confidences[-1] == pytest.approx(prediction.confidence * 0.7)

    def test_generated_at_uses_clock(self, predictor, clock):
        assert predictor.predict(make_track(clock)).generated_at == clock.now


class TestConfidence:
    """Tests for data-quality confidence scoring."""

    def test_fresh_steady_track(self, predictor, clock):
        """Test full confidence for five fresh, steady samples."""
        assert predictor.predict(make_track(clock)).confidence == pytest.approx(1.0)

    def test_sparse_history_penalty(self, predictor, clock):
        assert predictor.predict(make_track(clock, count=2)).confidence == pytest.approx(0.5)
        assert predictor.predict(make_track(clock, count=4)).confidence == pytest.approx(0.7)

    def test_erratic_speed_penalty(self, predictor, clock):
        """Test a large spread of recent speeds is penalised."""
        track = make_track(clock, speeds=[300, 300, 100, 400, 200])
        assert predictor.predict(track).confidence == pytest.approx(0.7)

    def test_aging_data(self, predictor, clock):
        """Test confidence decays once data is older than the freshness window."""
        track = make_track(clock)
        clock.advance(150)
        assert predictor.predict(track).confidence == pytest.approx(0.5)

        clock.advance(150)
        assert predictor.predict(track).confidence == pytest.approx(0.3)

    def test_stale_data(self, predictor, clock):
        """Test data older than ten freshness windows is flat-rated."""
        track = make_track(clock)
        clock.advance(601)
        assert predictor.predict(track).confidence == pytest.approx(0.1)


class TestVelocity:
    """Tests for velocity derivation."""

    def test_prefers_reported_values(self, predictor, clock):
        track = make_track(clock, heading=45.0, ground_speed=250.0, vertical_rate=-500.0)
        velocity = predictor.velocity_vector(track.positions)
        assert velocity.heading == 45.0
        assert velocity.ground_speed == 250.0
        assert velocity.vertical_rate == -500.0

    def test_derives_missing_values(self, predictor, clock):
        """Test heading, speed and climb are derived from the last two samples."""
        previous = PositionSample(timestamp=clock.now - timedelta(minutes=1), lat=55.5, lon=-4.6, altitude=10000)
        current = PositionSample(timestamp=clock.now, lat=55.6, lon=-4.6, altitude=10500)

        velocity = predictor.velocity_vector([previous, current])
        assert velocity.heading == pytest.approx(0.0, abs=0.01)
        assert velocity.ground_speed == pytest.approx(
            distance_nm(55.5, -4.6, 55.6, -4.6) * 60, rel=1e-6
        )
        assert velocity.vertical_rate == pytest.approx(500.0)

    def test_zero_values_are_not_missing(self, predictor, clock):
        """Test a reported heading of 0 is kept rather than re-derived."""
        previous = PositionSample(timestamp=clock.now - timedelta(minutes=1), lat=55.5, lon=-4.6)
        current = PositionSample(timestamp=clock.now, lat=55.5, lon=-4.4, heading=0.0,
                                 ground_speed=200.0, vertical_rate=0.0)
        velocity = predictor.velocity_vector([previous, current])
        assert velocity.heading == 0.0
