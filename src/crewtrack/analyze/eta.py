# crewtrack/analyze/eta.py
"""
Arrival estimates at aid stations from sparse timing splits.

Splits are (race km, clock time) observations of one runner. For a station
the runner has already passed, the arrival time is interpolated between the
splits bracketing it; for a station ahead, it is extrapolated from the last
split with a recent pace. Each estimate is compared to the station's planned
time to give a signed plan delta in minutes.

Times are minutes since midnight from 12-hour "H:MM AM/PM" strings. There is
no date: an event running past midnight wraps (see DESIGN.md).

Nothing here raises for bad input. An unparseable clock time yields None,
which surfaces as the UNKNOWN sentinel for the affected values only.
"""

from __future__ import annotations

import bisect
import math
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Mapping, Optional, Sequence

UNKNOWN = "unknown"

# Race clock zero: 7:00 AM.
RACE_START_MINUTES = 7 * 60

# |delta| <= this many minutes counts as on plan.
ON_PLAN_BAND_MINUTES = 5

# Plan cells meaning "no target".
_NO_PLAN = {"", "-", "—", "–", "n/a", "none"}

_CLOCK_RE = re.compile(r"^(\d{1,2}):(\d{2})\s*(AM|PM)$", re.IGNORECASE)
_SPLIT_ID_RE = re.compile(r"^split(\d)$")


class PlanStatus(str, Enum):
    AHEAD = "ahead"
    ON = "on"
    BEHIND = "behind"


# ---------------------------------------------------------------------------
# Clock helpers
# ---------------------------------------------------------------------------
def parse_clock(text: Optional[str]) -> Optional[int]:
    """Parse "9:15 AM" / "1:45 pm" into minutes from midnight, or None."""
    if not text:
        return None
    m = _CLOCK_RE.match(text.strip())
    if not m:
        return None
    h = int(m.group(1))
    mins = int(m.group(2))
    if h > 12 or mins > 59:
        return None
    pm = m.group(3).upper() == "PM"
    if pm and h != 12:
        h += 12
    if not pm and h == 12:
        h = 0
    return h * 60 + mins


def format_clock(total_minutes: float) -> str:
    """Format minutes from midnight as "9:15 AM" (floored, wraps at 24 h)."""
    h = int(total_minutes // 60) % 24
    m = int(total_minutes % 60)
    ampm = "PM" if h >= 12 else "AM"
    hour = h % 12 or 12
    return f"{hour}:{m:02d} {ampm}"


def round_half_up(x: float) -> int:
    return math.floor(x + 0.5)


def classify_delta(delta: int) -> PlanStatus:
    if delta < -ON_PLAN_BAND_MINUTES:
        return PlanStatus.AHEAD
    if delta > ON_PLAN_BAND_MINUTES:
        return PlanStatus.BEHIND
    return PlanStatus.ON


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class Split:
    """One observation of the runner: race km reached at a clock time."""

    km: float
    clock_time: str
    split_id: Optional[str] = None

    @property
    def minutes(self) -> Optional[int]:
        return parse_clock(self.clock_time)

    @classmethod
    def from_mapping(cls, d: Mapping[str, Any]) -> Optional["Split"]:
        """
        Build from a loose record ({"km", "clockTime"|"clock_time", ...}).

        Returns None when km is missing or non-numeric; the clock string is
        kept as-is and judged later.
        """
        try:
            km = float(d.get("km"))
        except (TypeError, ValueError):
            return None
        if not math.isfinite(km):
            return None
        clock = d.get("clock_time", d.get("clockTime", ""))
        split_id = d.get("split_id", d.get("splitId"))
        return cls(km=km, clock_time=str(clock or "").strip(), split_id=split_id or None)


@dataclass(frozen=True)
class Waypoint:
    """
    A named station on the course with an optional planned arrival time.

    target is None when the plan has no time for this station; the common
    placeholders ("—", "-", "") are normalized to None. A km that is not a
    finite number reads as 0.
    """

    name: str
    km: float
    target: Optional[str] = None
    crew_access: bool = False
    early: Optional[str] = None
    late: Optional[str] = None
    cutoff: Optional[str] = None

    def __post_init__(self) -> None:
        if not math.isfinite(self.km):
            object.__setattr__(self, "km", 0.0)
        for attr in ("target", "early", "late", "cutoff"):
            v = getattr(self, attr)
            if v is not None and v.strip().lower() in _NO_PLAN:
                object.__setattr__(self, attr, None)
            elif v is not None:
                object.__setattr__(self, attr, v.strip())

    @property
    def target_minutes(self) -> Optional[int]:
        return parse_clock(self.target)


@dataclass(frozen=True)
class ETAResult:
    name: str
    km: float
    eta: str
    plan_delta_minutes: Optional[int] = None
    plan_status: Optional[PlanStatus] = None
    crew_access: bool = False
    cutoff: Optional[str] = None


@dataclass(frozen=True)
class LastSplit:
    km: float
    clock_time: str
    label: str


@dataclass(frozen=True)
class ETAReport:
    last_split: Optional[LastSplit]
    plan_delta_at_last_split: Optional[int] = None
    plan_status_at_last_split: Optional[PlanStatus] = None
    etas: list[ETAResult] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Interpolation primitives
# ---------------------------------------------------------------------------
def _bracket(kms: Sequence[float], km: float) -> tuple[Optional[int], Optional[int]]:
    """Indices of the last entry with km <= *km* and the first with km > *km*."""
    i = bisect.bisect_right(kms, km)
    before = i - 1 if i > 0 else None
    after = i if i < len(kms) else None
    return before, after


def _lerp(km: float, a_km: float, a_min: Optional[float], b_km: float, b_min: Optional[float]) -> Optional[float]:
    if a_min is None or b_min is None:
        return None
    t = (km - a_km) / (b_km - a_km)
    return a_min + t * (b_min - a_min)


def _from_race_start(km: float, first_km: float, first_min: Optional[float], race_start: float) -> Optional[float]:
    """Extrapolate backward from the first observation using the pace since race start."""
    if first_min is None or first_km <= 0:
        return None
    return race_start + (first_min - race_start) / first_km * km


def extrapolation_pace(ordered: Sequence[Split], race_start_minutes: float = RACE_START_MINUTES) -> Optional[float]:
    """
    Minutes per km used to project beyond the last split.

    Preference: the three-split window ending at the last split (smooths
    single-segment noise), then the last two splits, then the average since
    race start. *ordered* must be sorted by km.
    """
    if not ordered:
        return None
    last = ordered[-1]
    last_min = last.minutes
    if last_min is None:
        return None

    for window in (3, 2):
        if len(ordered) < window:
            continue
        first = ordered[-window]
        first_min = first.minutes
        if first_min is not None and last.km > first.km:
            return (last_min - first_min) / (last.km - first.km)

    if last.km > 0:
        return (last_min - race_start_minutes) / last.km
    return None


def plan_target_at_km(
    km: float,
    waypoints: Sequence[Waypoint],
    race_start_minutes: float = RACE_START_MINUTES,
) -> Optional[float]:
    """
    Planned clock minutes at an arbitrary race km.

    Interpolates between the stations with a usable target. Before the first
    one, projects from race start; past the last one, continues at the plan's
    average pace.
    """
    stations = sorted(
        (w for w in waypoints if w.target_minutes is not None),
        key=lambda w: w.km,
    )
    if not stations:
        return None
    kms = [w.km for w in stations]
    before, after = _bracket(kms, km)

    if before is not None and after is not None:
        a, b = stations[before], stations[after]
        return _lerp(km, a.km, a.target_minutes, b.km, b.target_minutes)
    if before is None:
        first = stations[0]
        return _from_race_start(km, first.km, first.target_minutes, race_start_minutes)

    last = stations[-1]
    last_min = last.target_minutes
    if km == last.km:
        return float(last_min)
    if last.km <= 0:
        return None
    pace = (last_min - race_start_minutes) / last.km
    return last_min + pace * (km - last.km)


def _last_split_label(split: Split) -> str:
    if split.split_id:
        m = _SPLIT_ID_RE.match(split.split_id)
        if m:
            n = int(m.group(1))
            return "Split 6/6 (Finish)" if n == 6 else f"Split {n}/6"
    return f"{split.km:.1f} km"


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------
def _eta_minutes(
    w_km: float,
    ordered: Sequence[Split],
    kms: Sequence[float],
    pace: Optional[float],
    race_start_minutes: float,
) -> Optional[float]:
    last = ordered[-1]
    last_min = last.minutes

    if w_km > last.km:
        if last_min is None or pace is None:
            return None
        return last_min + pace * (w_km - last.km)

    before, after = _bracket(kms, w_km)
    if after is None:
        return last_min
    if before is None:
        first = ordered[0]
        return _from_race_start(w_km, first.km, first.minutes, race_start_minutes)
    a, b = ordered[before], ordered[after]
    return _lerp(w_km, a.km, a.minutes, b.km, b.minutes)


def compute_etas(
    splits: Iterable[Split],
    waypoints: Sequence[Waypoint],
    race_start_minutes: float = RACE_START_MINUTES,
) -> ETAReport:
    """
    Estimate arrival at every waypoint and compare against the plan.

    Args:
        splits: observations in any order; sorted by km (stable) here.
            Splits whose km is not a finite number are ignored.
        waypoints: stations in course order.
        race_start_minutes: clock minutes of race km 0.

    Returns:
        ETAReport. With no splits, every ETA is UNKNOWN and every delta None.
    """
    ordered = sorted((s for s in splits if math.isfinite(s.km)), key=lambda s: s.km)
    if not ordered:
        return ETAReport(
            last_split=None,
            etas=[ETAResult(name=w.name, km=w.km, eta=UNKNOWN,
                           crew_access=w.crew_access, cutoff=w.cutoff) for w in waypoints],
        )

    last = ordered[-1]
    kms = [s.km for s in ordered]
    pace = extrapolation_pace(ordered, race_start_minutes)

    eta_mins = [_eta_minutes(w.km, ordered, kms, pace, race_start_minutes) for w in waypoints]
    targets: list[Optional[float]] = [w.target_minutes for w in waypoints]

    # The finish target carries the deficit already built up at the station
    # before it, so the last row follows the race trend.
    n = len(waypoints)
    if n >= 2 and targets[-1] is not None:
        pen_eta, pen_target = eta_mins[-2], targets[-2]
        if pen_eta is not None and pen_target is not None:
            targets[-1] = targets[-1] - (pen_eta - pen_target)

    etas: list[ETAResult] = []
    for w, eta, target in zip(waypoints, eta_mins, targets):
        delta = status = None
        if eta is not None and target is not None:
            delta = round_half_up(eta - target)
            status = classify_delta(delta)
        etas.append(ETAResult(
            name=w.name,
            km=w.km,
            eta=format_clock(eta) if eta is not None else UNKNOWN,
            plan_delta_minutes=delta,
            plan_status=status,
            crew_access=w.crew_access,
            cutoff=w.cutoff,
        ))

    delta_now = status_now = None
    last_min = last.minutes
    plan_now = plan_target_at_km(last.km, waypoints, race_start_minutes)
    if last_min is not None and plan_now is not None:
        delta_now = round_half_up(last_min - plan_now)
        status_now = classify_delta(delta_now)

    return ETAReport(
        last_split=LastSplit(km=last.km, clock_time=last.clock_time, label=_last_split_label(last)),
        plan_delta_at_last_split=delta_now,
        plan_status_at_last_split=status_now,
        etas=etas,
    )
