"""
Tests for AIRWATCH track store.
"""

from datetime import timedelta
from unittest.mock import Mock

import pytest

from airwatch.analysis.predictor import TrajectoryPredictor
from airwatch.tracking.events import AIRCRAFT_UPDATE, EventBus
from airwatch.tracking.models import InvalidInputError, PositionUpdate
from airwatch.tracking.policies import STATUS_PARKING, HomeBaseParkingPolicy
from airwatch.tracking.store import TrackStore

HOME_LAT = 55.5094
HOME_LON = -4.5944


def make_update(clock, hex_code="4ca123", lat=55.6, lon=-4.5, **kwargs):
    """Position update stamped with the fake clock's current time."""
    fields = {"altitude": 12000, "heading": 90, "ground_speed": 320}
    fields.update(kwargs)
    return PositionUpdate(hex=hex_code, lat=lat, lon=lon, timestamp=clock.now, **fields)


@pytest.fixture
def persistence():
    return Mock()


@pytest.fixture
def store(clock, persistence):
    """Track store with mocked persistence and no predictor."""
    return TrackStore(persistence=persistence, clock=clock)


class TestUpdate:
    """Tests for TrackStore.update."""

    def test_creates_track(self, store, clock):
        """Test first update creates a track keyed by hex."""
        snapshot = store.update(make_update(clock, flight="RYR12"))

        assert snapshot.id == "4ca123"
        assert snapshot.flight == "RYR12"
        assert snapshot.first_seen == clock.now
        assert snapshot.position_count == 1
        assert len(store) == 1

    def test_identity_precedence(self, store, clock):
        """Test tail is used only when hex is absent."""
        store.update(PositionUpdate(tail="G-ABCD", lat=55.5, lon=-4.6))
        store.update(PositionUpdate(hex="abc123", tail="G-ZZZZ", lat=55.5, lon=-4.6))

        ids = [s.id for s in store.get_active()]
        assert ids == ["G-ABCD", "abc123"]

    def test_invalid_update_changes_nothing(self, store, persistence):
        """Test rejected updates leave the store untouched."""
        with pytest.raises(InvalidInputError):
            store.update(PositionUpdate(lat=55.5, lon=-4.6))
        with pytest.raises(InvalidInputError):
            store.update(PositionUpdate(hex="4ca123", lat=95.0, lon=-4.6))

        assert len(store) == 0
        persistence.save_track.assert_not_called()

    def test_bad_heading_keeps_position(self, store, clock):
        """Test an out-of-range heading does not reject the position."""
        snapshot = store.update(make_update(clock, heading=370))

        assert snapshot.position_count == 1
        assert snapshot.current_position.heading == pytest.approx(10)

    def test_ingest_logs_instead_of_raising(self, store):
        """Test the dictionary entry point swallows invalid input."""
        assert store.ingest({"lat": 55.5, "lon": -4.6}) is None
        assert store.ingest({"hex": "4CA123", "lat": 55.5, "lon": -4.6}).id == "4ca123"

    def test_metadata_merge(self, store, clock):
        """Test later updates fill metadata without erasing it."""
        store.update(make_update(clock, flight="RYR12"))
        clock.advance(5)
        snapshot = store.update(
            PositionUpdate(hex="4ca123", aircraft_type="B738", timestamp=clock.now)
        )

        assert snapshot.flight == "RYR12"
        assert snapshot.aircraft_type == "B738"
        assert snapshot.position_count == 1
        assert snapshot.last_seen == clock.now

    def test_default_timestamp_is_now(self, store, clock):
        """Test an update without timestamp is stamped with the clock."""
        snapshot = store.update(PositionUpdate(hex="4ca123", lat=55.5, lon=-4.6))
        assert snapshot.current_position.timestamp == clock.now


class TestSignificanceFilter:
    """Tests for the per-sample time and distance filter."""

    def test_rejects_rapid_samples(self, store, clock):
        """Test samples less than a second apart are dropped."""
        store.update(make_update(clock))
        clock.advance(0.5)
        snapshot = store.update(make_update(clock, lat=55.7))
        assert snapshot.position_count == 1

    def test_rejects_tiny_moves(self, store, clock):
        """Test samples that barely move are dropped."""
        store.update(make_update(clock))
        clock.advance(5)
        snapshot = store.update(make_update(clock, lat=55.6005, lon=-4.5005))
        assert snapshot.position_count == 1
        # last_seen still advances
        assert snapshot.last_seen == clock.now

    def test_accepts_movement(self, store, clock):
        """Test moving in either axis is enough."""
        store.update(make_update(clock))
        clock.advance(5)
        snapshot = store.update(make_update(clock, lat=55.6, lon=-4.49))
        assert snapshot.position_count == 2


class TestHistory:
    """Tests for bounded, ordered history."""

    def test_history_bounded(self, clock, persistence):
        """Test oldest samples are dropped beyond the limit."""
        store = TrackStore(persistence=persistence, max_track_points=5, clock=clock)
        for i in range(10):
            store.update(make_update(clock, lat=55.0 + 0.01 * i))
            clock.advance(2)

        track = store.get_track("4ca123")
        assert track.position_count == 5
        assert len(track.positions) == 5
        assert track.positions[-1].lat == pytest.approx(55.09)
        assert track.positions[0].lat == pytest.approx(55.05)

    def test_positions_sorted(self, store, clock):
        """Test history stays sorted by timestamp."""
        for i in range(6):
            store.update(make_update(clock, lat=55.0 + 0.01 * i))
            clock.advance(3)

        timestamps = [p.timestamp for p in store.get_track("4ca123").positions]
        assert timestamps == sorted(timestamps)

    def test_out_of_order_update(self, store, clock):
        """Test a late report neither rewinds last_seen nor breaks ordering."""
        store.update(make_update(clock))
        latest = clock.advance(30)
        store.update(make_update(clock, lat=55.7))

        late = make_update(clock, lat=55.65)
        late.timestamp = latest - timedelta(seconds=20)
        snapshot = store.update(late)

        assert snapshot.last_seen == latest
        assert snapshot.position_count == 2
        timestamps = [p.timestamp for p in snapshot.positions]
        assert timestamps == sorted(timestamps)


class TestPersistence:
    """Tests for throttled, best-effort persistence."""

    def test_persist_interval(self, store, clock, persistence):
        """Test a track is saved at most once per interval."""
        store.update(make_update(clock, lat=55.60))
        clock.advance(2)
        store.update(make_update(clock, lat=55.61))
        assert persistence.save_track.call_count == 1

        clock.advance(6)
        store.update(make_update(clock, lat=55.62))
        assert persistence.save_track.call_count == 2

    def test_persistence_failure_is_not_fatal(self, clock):
        """Test update succeeds when saving raises."""
        failing = Mock()
        failing.save_track.side_effect = RuntimeError("disk full")
        store = TrackStore(persistence=failing, clock=clock)

        snapshot = store.update(make_update(clock))
        assert snapshot.id == "4ca123"
        assert len(store) == 1


class TestEvents:
    """Tests for aircraft:update notifications."""

    def test_update_publishes(self, clock):
        """Test each update publishes a snapshot."""
        bus = EventBus()
        received = []
        bus.subscribe(AIRCRAFT_UPDATE, received.append)
        store = TrackStore(event_bus=bus, clock=clock)

        store.update(make_update(clock))
        clock.advance(5)
        store.update(make_update(clock, lat=55.7))

        assert len(received) == 2
        assert received[-1].position_count == 2

    def test_failing_subscriber_does_not_break_update(self, clock):
        """Test a raising subscriber is isolated from ingestion."""
        bus = EventBus()
        bus.subscribe(AIRCRAFT_UPDATE, Mock(side_effect=RuntimeError("boom")))
        store = TrackStore(event_bus=bus, clock=clock)

        assert store.update(make_update(clock)).id == "4ca123"


class TestPrediction:
    """Tests for prediction refresh on update."""

    def test_prediction_after_two_samples(self, clock):
        """Test a predicted path appears once two samples exist."""
        store = TrackStore(predictor=TrajectoryPredictor(clock=clock), clock=clock)
        first = store.update(make_update(clock))
        assert first.predicted_path == ()

        clock.advance(10)
        second = store.update(make_update(clock, lon=-4.48))
        assert len(second.predicted_path) == 10
        assert second.prediction_generated_at == clock.now
        assert 0 < second.prediction_confidence <= 1

    def test_empty_prediction_is_not_an_error(self, clock):
        """Test slow aircraft keep an empty predicted path."""
        store = TrackStore(predictor=TrajectoryPredictor(clock=clock), clock=clock)
        store.update(make_update(clock, ground_speed=10))
        clock.advance(10)
        snapshot = store.update(make_update(clock, lon=-4.49, ground_speed=10))
        assert snapshot.predicted_path == ()

    def test_predictor_failure_is_logged(self, clock):
        """Test a raising predictor does not fail the update."""
        predictor = Mock()
        predictor.predict.side_effect = RuntimeError("bad math")
        store = TrackStore(predictor=predictor, clock=clock)

        store.update(make_update(clock))
        clock.advance(10)
        snapshot = store.update(make_update(clock, lon=-4.48))
        assert snapshot.position_count == 2
        assert snapshot.predicted_path == ()


class TestQueries:
    """Tests for read-side queries."""

    def test_get_active_sorted_and_without_history(self, store, clock):
        """Test active aircraft come back sorted with no history attached."""
        store.update(make_update(clock, hex_code="zzz999"))
        store.update(make_update(clock, hex_code="aaa111"))

        active = store.get_active()
        assert [s.id for s in active] == ["aaa111", "zzz999"]
        assert all(s.positions == () for s in active)
        assert all(s.current_position is not None for s in active)

    def test_queries_idempotent(self, store, clock):
        """Test repeated queries without updates return equal results."""
        store.update(make_update(clock))
        clock.advance(5)
        store.update(make_update(clock, lat=55.7))

        assert store.get_active() == store.get_active()
        assert store.get_track("4ca123") == store.get_track("4ca123")

    def test_get_track_unknown(self, store):
        assert store.get_track("nope") is None

    def test_inactive_track_hidden(self, store, clock):
        """Test tracks silent for the full timeout are no longer active."""
        store.update(make_update(clock))
        clock.advance(1199)
        assert len(store.get_active()) == 1
        clock.advance(1)
        assert store.get_active() == []


class TestCleanup:
    """Tests for parking classification and eviction."""

    @pytest.fixture
    def parking_store(self, clock, persistence):
        bus = EventBus()
        policy = HomeBaseParkingPolicy(HOME_LAT, HOME_LON)
        return TrackStore(
            persistence=persistence, event_bus=bus, idle_policy=policy, clock=clock
        )

    def test_evicts_after_timeout(self, store, clock, persistence):
        """Test stale tracks are persisted then removed."""
        store.update(make_update(clock))
        persistence.reset_mock()

        clock.advance(1201)
        assert store.cleanup() == 1
        assert len(store) == 0
        assert store.get_track("4ca123") is None
        persistence.save_track.assert_called_once()
        assert persistence.save_track.call_args[0][0].id == "4ca123"

    def test_evicts_at_exact_timeout(self, store, clock):
        """Test eviction and the active view agree at the timeout boundary."""
        store.update(make_update(clock))

        clock.advance(1200)
        assert store.get_active() == []
        assert store.cleanup() == 1
        assert store.get_track("4ca123") is None

    def test_keeps_recent_tracks(self, store, clock):
        store.update(make_update(clock))
        clock.advance(600)
        assert store.cleanup() == 0
        assert len(store) == 1

    def test_parked_aircraft_lifecycle(self, parking_store, clock, persistence):
        """Test parking at 16 minutes and eviction after 20 minutes."""
        events = []
        parking_store.event_bus.subscribe(AIRCRAFT_UPDATE, events.append)
        parking_store.update(
            make_update(clock, lat=HOME_LAT, lon=HOME_LON, altitude=0, ground_speed=5)
        )
        events.clear()
        persistence.reset_mock()

        clock.advance(16 * 60)
        assert parking_store.cleanup() == 0
        active = parking_store.get_active()
        assert len(active) == 1
        assert active[0].status == STATUS_PARKING
        assert events[-1].status == STATUS_PARKING
        persistence.save_track.assert_called_once()

        clock.advance(4 * 60 + 1)
        assert parking_store.cleanup() == 1
        assert parking_store.get_active() == []

    def test_departure_clears_parking(self, parking_store, clock):
        """Test a parked aircraft that moves again returns to normal status."""
        parking_store.update(
            make_update(clock, lat=HOME_LAT, lon=HOME_LON, altitude=0, ground_speed=5)
        )
        clock.advance(16 * 60)
        parking_store.cleanup()
        assert parking_store.get_track("4ca123").status == STATUS_PARKING

        clock.advance(30)
        snapshot = parking_store.update(
            make_update(clock, lat=HOME_LAT + 0.01, lon=HOME_LON, altitude=500, ground_speed=140)
        )

        assert snapshot.status == "normal"
        assert parking_store.get_active()[0].status == "normal"

    def test_parking_tag_only_once(self, parking_store, clock, persistence):
        """Test an already parked aircraft is not re-tagged."""
        parking_store.update(
            make_update(clock, lat=HOME_LAT, lon=HOME_LON, altitude=0, ground_speed=5)
        )
        persistence.reset_mock()

        clock.advance(16 * 60)
        parking_store.cleanup()
        clock.advance(60)
        parking_store.cleanup()
        assert persistence.save_track.call_count == 1

    def test_airborne_idle_aircraft_not_parked(self, parking_store, clock):
        """Test aircraft far from home or airborne keep normal status."""
        parking_store.update(make_update(clock, lat=56.5, lon=-4.5))
        parking_store.update(
            make_update(clock, hex_code="abc999", lat=HOME_LAT, lon=HOME_LON,
                        altitude=3000, ground_speed=150)
        )
        clock.advance(16 * 60)
        parking_store.cleanup()
        assert {s.status for s in parking_store.get_active()} == {"normal"}

    def test_policy_must_fire_before_eviction(self):
        """Test a parking threshold at or past the timeout is rejected."""
        policy = HomeBaseParkingPolicy(HOME_LAT, HOME_LON, idle_seconds=1200)
        with pytest.raises(ValueError):
            TrackStore(idle_policy=policy, inactivity_timeout=1200)
