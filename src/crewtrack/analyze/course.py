# crewtrack/analyze/course.py
"""
Race distance <-> track distance mapping.

Race km is the runner's cumulative event distance (prologue plus every lap).
Track km is the distance along the one recorded polyline, which covers a
single lap and may not include the prologue. The two are kept apart by the
RaceKm / TrackKm aliases so a marker is never placed with the wrong one.

Two course shapes are supported:

  num_loops == 1   linear rescale of [race_start_km, race_distance_km] onto
                   the whole track.

  num_loops == 3   out-and-back prologue spur along the start of the track,
                   a joining stretch up to race_start_km, then three laps.

::

    race km  0 ── 1.25 ── 2.5 ──── race_start_km ─── lap 0 ─── lap 1 ─── lap 2 ── finish
    track km 0 ↗ 1.25 ↘  0 ──→ race_start_km-2.5 ──→ L | 0 ──→ L | 0 ──→ L

Lap 0 starts part way along the track (where the joining stretch ended), so
its remaining track length is stretched over a full lap of race distance.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Mapping, NewType, Optional

from crewtrack.errors import TopologyError

RaceKm = NewType("RaceKm", float)
TrackKm = NewType("TrackKm", float)

RACE_DISTANCE_KM = 100.12
RACE_START_KM = 3.5

# Prologue out-and-back: out 1.25 km, back 1.25 km before joining the loop.
PROLOGUE_OUT_KM = 1.25
PROLOGUE_TOTAL_KM = PROLOGUE_OUT_KM * 2

SUPPORTED_LOOPS = (1, 3)


@dataclass(frozen=True)
class RaceTopology:
    """
    Course shape parameters, fixed for a tracking session.

    Reconfiguring (e.g. the crew correcting race_start_km) means building a
    new RaceTopology, never mutating this one.
    """

    race_start_km: float = RACE_START_KM
    race_distance_km: float = RACE_DISTANCE_KM
    num_loops: int = 3
    prologue_out_km: float = PROLOGUE_OUT_KM

    def __post_init__(self) -> None:
        for name in ("race_start_km", "race_distance_km", "prologue_out_km"):
            if not math.isfinite(getattr(self, name)):
                raise TopologyError(f"{name} must be a finite number, got {getattr(self, name)}")
        if self.num_loops not in SUPPORTED_LOOPS:
            raise TopologyError(f"num_loops must be one of {SUPPORTED_LOOPS}, got {self.num_loops}")
        if self.race_distance_km <= 0:
            raise TopologyError(f"race_distance_km must be positive, got {self.race_distance_km}")
        if self.race_start_km >= self.race_distance_km:
            raise TopologyError(
                f"race_start_km ({self.race_start_km}) must be below "
                f"race_distance_km ({self.race_distance_km})"
            )

    @property
    def prologue_total_km(self) -> float:
        return self.prologue_out_km * 2

    @property
    def loop_length_race_km(self) -> float:
        return self.race_distance_km / self.num_loops


# ---------------------------------------------------------------------------
# Single loop
# ---------------------------------------------------------------------------
def race_km_to_track_km(
    race_km: RaceKm,
    track_length_km: float,
    race_start_km: float = 0.0,
    race_distance_km: float = RACE_DISTANCE_KM,
) -> TrackKm:
    """
    Linear rescale for a single-loop course.

    Before race_start_km the runner is held at the track start; at or past
    the finish, at the track end.
    """
    if race_km <= max(0.0, race_start_km):
        return TrackKm(0.0)
    if race_km >= race_distance_km:
        return TrackKm(track_length_km)
    progress = (race_km - race_start_km) / (race_distance_km - race_start_km)
    return TrackKm(progress * track_length_km)


# ---------------------------------------------------------------------------
# Three loops with prologue
# ---------------------------------------------------------------------------
def _prologue_track_km(track_length_km: float, race_start_km: float, prologue_total_km: float) -> float:
    """Track km where lap 0 begins (end of the joining stretch)."""
    return min(race_start_km - prologue_total_km, track_length_km)


def _lap_and_offset(race_km: float, race_start_km: float, loop_length_race_km: float) -> tuple[int, float]:
    into_loops = race_km - race_start_km
    lap_index = math.floor(into_loops / loop_length_race_km)
    return lap_index, into_loops - lap_index * loop_length_race_km


def race_km_to_track_km_three_loops(
    race_km: RaceKm,
    track_length_km: float,
    race_start_km: float = RACE_START_KM,
    race_distance_km: float = RACE_DISTANCE_KM,
    *,
    prologue_out_km: float = PROLOGUE_OUT_KM,
) -> TrackKm:
    """Map race km to track km on the prologue + three lap course."""
    if race_km <= 0:
        return TrackKm(0.0)
    if race_km >= race_distance_km:
        return TrackKm(track_length_km)

    prologue_total_km = prologue_out_km * 2
    loop_length_race_km = race_distance_km / 3

    # outbound on the spur
    if race_km <= prologue_out_km:
        return TrackKm(min(race_km, track_length_km))
    # inbound on the spur
    if race_km <= prologue_total_km:
        return TrackKm(max(0.0, prologue_total_km - race_km))
    # joining stretch before lap 0
    if race_km <= race_start_km:
        return TrackKm(min(race_km - prologue_total_km, track_length_km))

    lap_index, km_in_lap = _lap_and_offset(race_km, race_start_km, loop_length_race_km)
    fraction = km_in_lap / loop_length_race_km

    if lap_index == 0:
        start = _prologue_track_km(track_length_km, race_start_km, prologue_total_km)
        return TrackKm(start + (track_length_km - start) * fraction)
    return TrackKm(fraction * track_length_km)


def lap_start_track_km(
    race_km: RaceKm,
    track_length_km: float,
    race_start_km: float = RACE_START_KM,
    race_distance_km: float = RACE_DISTANCE_KM,
    *,
    prologue_out_km: float = PROLOGUE_OUT_KM,
) -> TrackKm:
    """
    Track km at which the runner's current lap began.

    0 for the prologue, the joining stretch and laps >= 1; the lap 0 offset
    while on lap 0. Feeds segment_points() for the "covered this lap" trace.
    """
    if race_km <= 0 or race_km >= race_distance_km:
        return TrackKm(0.0)
    if race_km <= race_start_km:
        return TrackKm(0.0)
    lap_index, _ = _lap_and_offset(race_km, race_start_km, race_distance_km / 3)
    if lap_index == 0:
        return TrackKm(_prologue_track_km(track_length_km, race_start_km, prologue_out_km * 2))
    return TrackKm(0.0)


def track_km_to_race_km(
    track_km: TrackKm,
    lap_index: int,
    track_length_km: float,
    race_start_km: float = RACE_START_KM,
    race_distance_km: float = RACE_DISTANCE_KM,
    *,
    prologue_out_km: float = PROLOGUE_OUT_KM,
) -> RaceKm:
    """
    Inverse of the lap formulas: race km of a track position on a given lap.

    Used to place fixed stations (known by track km) on laps 0, 1 and 2.
    A zero-length denominator yields the race km at which that lap starts.
    """
    loop_length_race_km = race_distance_km / 3
    lap_origin = race_start_km + lap_index * loop_length_race_km

    if lap_index == 0:
        start = _prologue_track_km(track_length_km, race_start_km, prologue_out_km * 2)
        span = track_length_km - start
        if span <= 0:
            return RaceKm(lap_origin)
        return RaceKm(lap_origin + (track_km - start) / span * loop_length_race_km)

    if track_length_km <= 0:
        return RaceKm(lap_origin)
    return RaceKm(lap_origin + track_km / track_length_km * loop_length_race_km)


def aid_station_race_kms(
    track_length_km: float,
    race_start_km: float,
    race_distance_km: float,
    aid_track_km: Mapping[str, float],
) -> list[float]:
    """
    Race km of every built-in station, derived from where the mid-lap
    stations sit on the track, in course order:

      start, prologue done, (Gate, Nature Center, Dam Nation, lap end) x 3

    with the last lap end being the finish.
    """
    loop = race_distance_km / 3

    def on_lap(name: str, lap: int) -> float:
        return track_km_to_race_km(aid_track_km[name], lap, track_length_km, race_start_km, race_distance_km)

    out = [0.0, race_start_km]
    for lap in range(3):
        out.extend(on_lap(name, lap) for name in ("Gate", "Nature Center", "Dam Nation"))
        out.append(race_start_km + (lap + 1) * loop if lap < 2 else race_distance_km)
    return out


# ---------------------------------------------------------------------------
# Context object
# ---------------------------------------------------------------------------
class CourseMapper:
    """
    Course mapping bound to one track length and topology.

    Args:
        track_length_km: length of the recorded polyline.
        topology: course shape; decides which mapping is used.
    """

    def __init__(self, track_length_km: float, topology: Optional[RaceTopology] = None) -> None:
        self.track_length_km = track_length_km
        self.topology = topology or RaceTopology()

    def clamp(self, race_km: float) -> RaceKm:
        return RaceKm(max(0.0, min(race_km, self.topology.race_distance_km)))

    def race_km_to_track_km(self, race_km: float) -> TrackKm:
        topo = self.topology
        race_km = self.clamp(race_km)
        if topo.num_loops == 1:
            return race_km_to_track_km(
                race_km, self.track_length_km, topo.race_start_km, topo.race_distance_km
            )
        return race_km_to_track_km_three_loops(
            race_km, self.track_length_km, topo.race_start_km, topo.race_distance_km,
            prologue_out_km=topo.prologue_out_km,
        )

    def lap_start_track_km(self, race_km: float) -> TrackKm:
        topo = self.topology
        if topo.num_loops == 1:
            return TrackKm(0.0)
        return lap_start_track_km(
            self.clamp(race_km), self.track_length_km, topo.race_start_km, topo.race_distance_km,
            prologue_out_km=topo.prologue_out_km,
        )

    def track_km_to_race_km(self, track_km: float, lap_index: int) -> RaceKm:
        topo = self.topology
        if topo.num_loops == 1:
            # inverse of the linear rescale; lap_index is meaningless here
            if self.track_length_km <= 0:
                return RaceKm(topo.race_start_km)
            span = topo.race_distance_km - topo.race_start_km
            return RaceKm(topo.race_start_km + track_km / self.track_length_km * span)
        return track_km_to_race_km(
            TrackKm(track_km), lap_index, self.track_length_km,
            topo.race_start_km, topo.race_distance_km,
            prologue_out_km=topo.prologue_out_km,
        )

    def lap_index(self, race_km: float) -> Optional[int]:
        """0-based lap, or None while still on the prologue / joining stretch."""
        topo = self.topology
        race_km = self.clamp(race_km)
        if race_km <= topo.race_start_km:
            return None
        lap, _ = _lap_and_offset(race_km, topo.race_start_km, topo.loop_length_race_km)
        return min(lap, topo.num_loops - 1)
