# crewtrack/analyze/track.py
"""
Course track construction and along-track geometry for crewtrack.

A Track is the single recorded GPS polyline annotated with cumulative
distance. It is immutable: reloading a course builds a new Track and swaps it
in whole, so a reader never sees a half-built one.

Every query here degrades to None / [] on an empty track instead of raising.
"""

from __future__ import annotations

import bisect
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional

from crewtrack.analyze.geodesy import bearing_degrees, distance_km
from crewtrack.formats.gpx import TrackPoint, extract_trackpoints, read_gpx

Bounds = tuple[tuple[float, float], tuple[float, float]]


@dataclass(frozen=True)
class AnnotatedTrackPoint:
    lat: float
    lon: float
    cumul_km: float


@dataclass(frozen=True)
class TrackPosition:
    lat: float
    lon: float
    bearing: float


@dataclass(frozen=True)
class Track:
    """
    Polyline with cumulative distance.

    Attributes:
    - points: ordered annotated points, cumul_km[0] == 0, non-decreasing
    - track_length_km: cumul_km of the last point (0 for an empty track)
    - bounds: ((min_lat, min_lon), (max_lat, max_lon)), None when empty
    """

    points: tuple[AnnotatedTrackPoint, ...] = ()
    track_length_km: float = 0.0
    bounds: Optional[Bounds] = None
    _cumul: tuple[float, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_cumul", tuple(p.cumul_km for p in self.points))

    def __len__(self) -> int:
        return len(self.points)

    @property
    def is_empty(self) -> bool:
        return not self.points


def build_track(points: Iterable[TrackPoint]) -> Track:
    """Annotate an ordered lat/lon sequence with cumulative distance (km)."""
    pts = list(points)
    if not pts:
        return Track()

    out = [AnnotatedTrackPoint(lat=pts[0].lat, lon=pts[0].lon, cumul_km=0.0)]
    cumul = 0.0
    for a, b in zip(pts, pts[1:]):
        cumul += distance_km(a, b)
        out.append(AnnotatedTrackPoint(lat=b.lat, lon=b.lon, cumul_km=cumul))

    lats = [p.lat for p in pts]
    lons = [p.lon for p in pts]
    bounds = ((min(lats), min(lons)), (max(lats), max(lons)))

    return Track(points=tuple(out), track_length_km=cumul, bounds=bounds)


def load_track(gpx_path: Path) -> Track:
    """
    Read a GPX course file and build its Track.

    Raises:
      InvalidGpxError, OSError
    """
    tree = read_gpx(gpx_path)
    return build_track(extract_trackpoints(tree))


def position_at_distance(track: Track, distance: float) -> Optional[TrackPosition]:
    """
    Lat/lon and bearing at *distance* km along the track.

    The distance is clamped to [0, track_length_km]. Between vertices the
    position is linearly interpolated; the bearing is that of the segment.
    """
    pts = track.points
    if not pts:
        return None

    total = track.track_length_km
    if total <= 0:
        # single point, or every point stacked on the first
        b = pts[1] if len(pts) > 1 else pts[0]
        return TrackPosition(lat=pts[0].lat, lon=pts[0].lon, bearing=bearing_degrees(pts[0], b))

    d = max(0.0, min(distance, total))
    # first vertex with cumul >= d closes the bracketing segment
    idx = bisect.bisect_left(track._cumul, d)
    idx = min(max(idx, 1), len(pts) - 1)
    a, b = pts[idx - 1], pts[idx]

    seg = b.cumul_km - a.cumul_km
    t = (d - a.cumul_km) / seg if seg > 0 else 0.0
    return TrackPosition(
        lat=a.lat + t * (b.lat - a.lat),
        lon=a.lon + t * (b.lon - a.lon),
        bearing=bearing_degrees(a, b),
    )


def distance_along_track(track: Track, point) -> Optional[float]:
    """
    Along-track km of the nearest point on the polyline to *point*.

    Each segment is projected onto in lat/lon space (t clamped to [0, 1]) and
    compared by great-circle distance. The first minimum wins, so an
    out-and-back section resolves to its earlier pass.
    """
    pts = track.points
    if not pts:
        return None
    if len(pts) == 1:
        return pts[0].cumul_km

    best_km = pts[0].cumul_km
    best_dist = distance_km(point, pts[0])

    for a, b in zip(pts, pts[1:]):
        seg_lat = b.lat - a.lat
        seg_lon = b.lon - a.lon
        seg_len2 = seg_lat * seg_lat + seg_lon * seg_lon
        if seg_len2 > 0:
            t = ((point.lat - a.lat) * seg_lat + (point.lon - a.lon) * seg_lon) / seg_len2
            t = max(0.0, min(1.0, t))
        else:
            t = 0.0
        proj = TrackPoint(lat=a.lat + t * seg_lat, lon=a.lon + t * seg_lon)
        dist = distance_km(point, proj)
        if dist < best_dist:
            best_dist = dist
            best_km = a.cumul_km + t * (b.cumul_km - a.cumul_km)

    last = pts[-1]
    if distance_km(point, last) < best_dist:
        best_km = last.cumul_km

    return best_km


def segment_points(track: Track, start_km: float, end_km: float) -> list[TrackPoint]:
    """
    Points tracing the track between two along-track distances.

    Interpolated start, every vertex strictly inside, interpolated end.
    Empty when the clamped range is empty or fewer than two points result.
    """
    pts = track.points
    if not pts or start_km >= end_km:
        return []
    total = track.track_length_km
    if total <= 0:
        return []

    start = max(0.0, min(start_km, total))
    end = max(0.0, min(end_km, total))
    if start >= end:
        return []

    start_pos = position_at_distance(track, start)
    end_pos = position_at_distance(track, end)

    out = [TrackPoint(lat=start_pos.lat, lon=start_pos.lon)]
    out.extend(TrackPoint(lat=p.lat, lon=p.lon) for p in pts if start < p.cumul_km < end)
    out.append(TrackPoint(lat=end_pos.lat, lon=end_pos.lon))
    return out if len(out) >= 2 else []
