# crewtrack/formats/pacing_plan.py
"""
Pacing plan CSV -> ordered Waypoints.

Expected header (extra columns are ignored, missing ones read as empty):

    station,km,mile,target_time,early_time,late_time,notes

An optional cutoff_time column is carried through as display text.

A plan that cannot be read falls back to the built-in station table so the
crew always has something to look at.
"""

from __future__ import annotations

import csv
import io
import math
from pathlib import Path
from typing import Optional

from crewtrack.analyze.eta import Waypoint
from crewtrack.course_data import AID_STATIONS
from crewtrack.errors import PlanError
from crewtrack.util.logging import warn


def is_crew_access(station: str, notes: str) -> bool:
    """Crew can meet the runner at Tyler's, at the finish, or wherever the notes say so."""
    s = (station or "").lower()
    n = (notes or "").lower()
    return (
        "tyler's" in s or "tylers" in s or "finish" in s
        or "crew" in n or "zach" in n
    )


def _as_km(text: str) -> float:
    try:
        km = float(text)
    except (TypeError, ValueError):
        return 0.0
    return km if math.isfinite(km) else 0.0


def row_to_waypoint(row: dict[str, str]) -> Optional[Waypoint]:
    name = (row.get("station") or "").strip()
    if not name:
        return None
    return Waypoint(
        name=name,
        km=_as_km((row.get("km") or "").strip()),
        target=(row.get("target_time") or "").strip() or None,
        crew_access=is_crew_access(name, row.get("notes") or ""),
        early=(row.get("early_time") or "").strip() or None,
        late=(row.get("late_time") or "").strip() or None,
        cutoff=(row.get("cutoff_time") or "").strip() or None,
    )


def parse_pacing_csv(text: str) -> list[Waypoint]:
    """
    Parse plan CSV text.

    Raises:
      PlanError if there are no data rows or no row names a station.
    """
    reader = csv.DictReader(io.StringIO(text.strip()), skipinitialspace=True)
    rows = [{(k or "").strip(): (v or "") for k, v in r.items()} for r in reader]
    if not rows:
        raise PlanError("Empty pacing plan CSV")

    waypoints = [w for w in (row_to_waypoint(r) for r in rows) if w is not None]
    if not waypoints:
        raise PlanError("No valid stations in pacing plan CSV")
    return waypoints


def load_pacing_plan(path: Optional[Path]) -> list[Waypoint]:
    """
    Load the plan from *path*, or the built-in table if it is unset,
    unreadable or invalid.
    """
    if path is None:
        return list(AID_STATIONS)
    try:
        return parse_pacing_csv(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, PlanError) as e:
        warn(f"Pacing plan: could not load {path}, using built-in ({e})")
        return list(AID_STATIONS)
