# crewtrack/sources/results.py
"""
Official results -> splits.

The results site reports each timing mat as elapsed chip time since the gun
("HH:MM:SS"). Splits want a clock time, so chip times are shifted by the
race start and formatted the same way crew check-ins are.
"""

from __future__ import annotations

import re
from typing import Mapping, Optional

from crewtrack.analyze.eta import RACE_START_MINUTES, Split, format_clock
from crewtrack.course_data import SPLITS_100K_KM

_CHIP_RE = re.compile(r"^(\d{1,2}):(\d{2}):(\d{2})$")
_LAP_LABEL_RE = re.compile(r"^Lap (\d) Chip Time$", re.IGNORECASE)


def parse_chip_time(text: Optional[str], race_start_minutes: float = RACE_START_MINUTES) -> Optional[float]:
    """Elapsed "HH:MM:SS" -> clock minutes from midnight, or None ("Active", blanks, ...)."""
    m = _CHIP_RE.match((text or "").strip())
    if not m:
        return None
    hours, minutes, seconds = (int(g) for g in m.groups())
    return race_start_minutes + hours * 60 + minutes + seconds / 60


def splits_from_chip_times(
    lap_times: Mapping[int, str],
    race_start_minutes: float = RACE_START_MINUTES,
) -> list[Split]:
    """Build splits for laps 1..6 that have a usable chip time, in lap order."""
    splits: list[Split] = []
    for lap in sorted(SPLITS_100K_KM):
        clock = parse_chip_time(lap_times.get(lap), race_start_minutes)
        if clock is None:
            continue
        splits.append(Split(km=SPLITS_100K_KM[lap], clock_time=format_clock(clock), split_id=f"split{lap}"))
    return splits


def lap_times_from_rows(rows: Mapping[str, str]) -> dict[int, str]:
    """Pick "Lap N Chip Time" cells out of a label -> value table."""
    out: dict[int, str] = {}
    for label, value in rows.items():
        m = _LAP_LABEL_RE.match(label.strip())
        if m:
            out[int(m.group(1))] = value
    return out
