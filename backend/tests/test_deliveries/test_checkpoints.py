"""
Tests for checkpoint trail synthesis.
"""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from sandtrack.core.config import Settings
from sandtrack.services.deliveries.checkpoints import (
    CheckpointTrailStrategy,
    CheckpointType,
    LinearRouteTrail,
    Route,
    RoutePoint,
    checkpoint_names,
)

NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def route() -> Route:
    return Route(
        quarry=RoutePoint(name="Cantera Añelo", lat=-38.0, lng=-68.0),
        well=RoutePoint(name="Pad 7", lat=-39.1, lng=-69.1),
    )


def order_stub(**fields) -> SimpleNamespace:
    values = {
        "delivery_location": "",
        "quarry_name": None,
        "quarry_lat": None,
        "quarry_lng": None,
        "well_name": None,
        "well_lat": None,
        "well_lng": None,
    }
    values.update(fields)
    return SimpleNamespace(**values)


class TestCheckpointNames:
    def test_two_checkpoints(self) -> None:
        assert checkpoint_names(2) == ["Quarry Exit", "Well Site Arrival"]

    def test_three_checkpoints(self) -> None:
        assert checkpoint_names(3) == ["Quarry Exit", "Checkpoint 1", "Well Site Arrival"]

    def test_full_trail(self) -> None:
        names = checkpoint_names(12)

        assert len(names) == 12
        assert names[:2] == ["Quarry Exit", "Highway Entry"]
        assert names[2:10] == [f"Checkpoint {n}" for n in range(1, 9)]
        assert names[-2:] == ["Well Site Entry", "Well Site Arrival"]

    def test_single_checkpoint_is_rejected(self) -> None:
        with pytest.raises(ValueError):
            checkpoint_names(1)


class TestLinearRouteTrail:
    def test_default_trail(self, route: Route) -> None:
        trail = LinearRouteTrail().build(route, NOW)

        assert len(trail.checkpoints) == 12
        assert [cp.id for cp in trail.checkpoints] == list(range(1, 13))
        assert all(cp.auto_detected for cp in trail.checkpoints)

    def test_endpoints_are_quarry_and_well(self, route: Route) -> None:
        trail = LinearRouteTrail().build(route, NOW)
        first, last = trail.checkpoints[0], trail.checkpoints[-1]

        assert first.type is CheckpointType.QUARRY_EXIT
        assert (first.lat, first.lng) == (route.quarry.lat, route.quarry.lng)
        assert last.type is CheckpointType.WELL_ARRIVAL
        assert (last.lat, last.lng) == (route.well.lat, route.well.lng)
        assert {cp.type for cp in trail.checkpoints[1:-1]} == {CheckpointType.ROUTE}

    def test_timestamps_step_back_from_now(self, route: Route) -> None:
        trail = LinearRouteTrail().build(route, NOW)
        timestamps = [cp.timestamp for cp in trail.checkpoints]

        assert timestamps[0] == NOW - timedelta(minutes=120)
        assert timestamps[-1] == NOW - timedelta(minutes=10)
        assert timestamps == sorted(timestamps)
        assert all(b - a == timedelta(minutes=10) for a, b in zip(timestamps, timestamps[1:]))

    def test_intermediate_points_lie_on_the_line(self, route: Route) -> None:
        trail = LinearRouteTrail(count=3).build(route, NOW)
        middle = trail.checkpoints[1]

        assert middle.lat == pytest.approx(-38.55)
        assert middle.lng == pytest.approx(-68.55)

    def test_gps_track_matches_checkpoints(self, route: Route) -> None:
        trail = LinearRouteTrail(count=5, interval_minutes=3).build(route, NOW)

        assert len(trail.gps_track) == 5
        for point, cp in zip(trail.gps_track, trail.checkpoints):
            assert (point.lat, point.lng, point.timestamp) == (cp.lat, cp.lng, cp.timestamp)
        assert trail.checkpoints[0].timestamp == NOW - timedelta(minutes=15)

    @pytest.mark.parametrize("count", [0, 1, 13])
    def test_count_out_of_range(self, count: int) -> None:
        with pytest.raises(ValueError):
            LinearRouteTrail(count=count)

    def test_from_settings(self) -> None:
        strategy = LinearRouteTrail.from_settings(
            Settings(checkpoint_count=4, checkpoint_interval_minutes=7)
        )

        assert strategy.count == 4
        assert strategy.interval == timedelta(minutes=7)

    def test_base_strategy_is_abstract(self) -> None:
        with pytest.raises(TypeError):
            CheckpointTrailStrategy(count=3)


class TestRouteForOrder:
    def test_defaults_apply_without_coordinates(self) -> None:
        settings = Settings()
        route = Route.for_order(order_stub(), settings)

        assert route.quarry.name == settings.default_quarry_name
        assert (route.quarry.lat, route.quarry.lng) == (
            settings.default_quarry_lat,
            settings.default_quarry_lng,
        )
        assert route.well.name == settings.default_well_name
        assert (route.well.lat, route.well.lng) == (
            settings.default_well_lat,
            settings.default_well_lng,
        )

    def test_order_coordinates_win(self) -> None:
        route = Route.for_order(
            order_stub(quarry_name="Q", quarry_lat=1.5, quarry_lng=2.5, well_lat=0.0, well_lng=0.0),
            Settings(),
        )

        assert (route.quarry.name, route.quarry.lat, route.quarry.lng) == ("Q", 1.5, 2.5)
        assert (route.well.lat, route.well.lng) == (0.0, 0.0)

    def test_well_name_falls_back_to_delivery_location(self) -> None:
        route = Route.for_order(order_stub(delivery_location="Loma Campana Pad 7"), Settings())

        assert route.well.name == "Loma Campana Pad 7"
