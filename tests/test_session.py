import math

import pytest

from crewtrack.analyze.course import RaceTopology
from crewtrack.analyze.eta import Split, Waypoint
from crewtrack.analyze.geodesy import EARTH_RADIUS_KM
from crewtrack.analyze.session import RaceContext
from crewtrack.analyze.track import Track
from crewtrack.errors import TopologyError

K = EARTH_RADIUS_KM * math.radians(0.01)
LOOP = 100.12 / 3


@pytest.fixture
def ctx(long_track):
    return RaceContext(track=long_track)


def test_prologue_position(ctx):
    pos = ctx.runner_position(0.5)

    assert pos.race_km == 0.5
    assert pos.track_km == 0.5
    assert pos.lap_index is None
    assert pos.position.lon == pytest.approx(0.5 / K * 0.01)
    assert pos.position.bearing == pytest.approx(90.0)


def test_position_is_clamped_to_race(ctx, long_track):
    start = ctx.runner_position(-5.0)
    finish = ctx.runner_position(250.0)

    assert start.race_km == 0.0
    assert (start.position.lat, start.position.lon) == pytest.approx((0.0, 0.0))
    assert finish.race_km == 100.12
    assert finish.track_km == long_track.track_length_km
    assert finish.lap_index == 2
    assert finish.position.lon == pytest.approx(0.39)


def test_mid_lap_two(ctx, long_track):
    pos = ctx.runner_position(3.5 + 1.5 * LOOP)

    assert pos.lap_index == 1
    assert pos.track_km == pytest.approx(long_track.track_length_km / 2)
    assert pos.position.lon == pytest.approx(0.195)


def test_covered_segment_restarts_each_lap(ctx, long_track):
    seg = ctx.covered_segment(3.5 + 1.5 * LOOP)

    assert (seg[0].lat, seg[0].lon) == pytest.approx((0.0, 0.0))
    assert seg[-1].lon == pytest.approx(0.195)
    assert all(a.lon < b.lon for a, b in zip(seg, seg[1:]))


def test_covered_segment_lap_zero_starts_after_joining_stretch(ctx):
    seg = ctx.covered_segment(10.0)
    assert seg[0].lon == pytest.approx(1.0 / K * 0.01)


def test_covered_segment_in_prologue_is_empty(ctx):
    assert ctx.covered_segment(0.0) == []


def test_empty_track_has_no_position():
    pos = RaceContext().runner_position(10.0)
    assert pos.position is None
    assert pos.track_km == 0.0
    assert RaceContext().covered_segment(10.0) == []


def test_with_track_returns_new_context(ctx, long_track):
    empty = ctx.with_track(Track())

    assert empty.track.is_empty
    assert ctx.track is long_track
    assert empty.topology is ctx.topology


def test_with_topology_validates(ctx):
    with pytest.raises(TopologyError):
        ctx.with_topology(race_start_km=200.0)
    assert ctx.topology == RaceTopology()


def test_single_loop_topology(ctx, long_track):
    single = ctx.with_topology(num_loops=1, race_start_km=0.0)
    pos = single.runner_position(50.06)

    assert pos.track_km == pytest.approx(long_track.track_length_km / 2)
    assert pos.lap_index == 0
    assert single.covered_segment(50.06)[0].lon == pytest.approx(0.0)


def test_compute_etas_uses_context_plan_and_clock(ctx):
    c = RaceContext(waypoints=(Waypoint("A", 5.0, "6:30 AM"),), race_start_minutes=360)
    report = c.compute_etas([Split(10.0, "7:00 AM")])

    assert report.etas[0].eta == "6:30 AM"
    assert report.etas[0].plan_delta_minutes == 0
