# crewtrack/analyze/session.py
"""
Everything a crew screen needs for one refresh, in one immutable object.

A RaceContext bundles the current Track, course topology, station plan and
race clock. Reloading the course or correcting the topology produces a new
context; callers swap their reference in one assignment, so a concurrent
reader sees either the old context or the new one, never a mix.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Iterable, Optional

from crewtrack.analyze.course import CourseMapper, RaceKm, RaceTopology, TrackKm
from crewtrack.analyze.eta import RACE_START_MINUTES, ETAReport, Split, Waypoint, compute_etas
from crewtrack.analyze.track import Track, TrackPosition, position_at_distance, segment_points
from crewtrack.formats.gpx import TrackPoint


@dataclass(frozen=True)
class RunnerPosition:
    race_km: RaceKm
    track_km: TrackKm
    lap_index: Optional[int]
    position: Optional[TrackPosition]


@dataclass(frozen=True)
class RaceContext:
    track: Track = field(default_factory=Track)
    topology: RaceTopology = field(default_factory=RaceTopology)
    waypoints: tuple[Waypoint, ...] = ()
    race_start_minutes: float = RACE_START_MINUTES

    def with_track(self, track: Track) -> "RaceContext":
        return dataclasses.replace(self, track=track)

    def with_topology(self, **changes) -> "RaceContext":
        """New context with topology fields replaced (validated on construction)."""
        return dataclasses.replace(self, topology=dataclasses.replace(self.topology, **changes))

    def mapper(self) -> CourseMapper:
        return CourseMapper(self.track.track_length_km, self.topology)

    def runner_position(self, race_km: float) -> RunnerPosition:
        """Where the marker goes for a runner at *race_km*."""
        mapper = self.mapper()
        race_km = mapper.clamp(race_km)
        track_km = mapper.race_km_to_track_km(race_km)
        return RunnerPosition(
            race_km=race_km,
            track_km=track_km,
            lap_index=mapper.lap_index(race_km),
            position=position_at_distance(self.track, track_km),
        )

    def covered_segment(self, race_km: float) -> list[TrackPoint]:
        """Track trace from the start of the current lap up to the runner."""
        mapper = self.mapper()
        return segment_points(
            self.track,
            mapper.lap_start_track_km(race_km),
            mapper.race_km_to_track_km(race_km),
        )

    def compute_etas(self, splits: Iterable[Split]) -> ETAReport:
        return compute_etas(splits, self.waypoints, self.race_start_minutes)
