"""
crewtrack configuration loader

This module centralizes *all* configuration handling for crewtrack.

Design goals:
- CLI flags override everything.
- Sensible defaults if no config exists (the built-in 100 km course).
- Per-machine config without committing personal paths:
    ~/.config/crewtrack/config.toml
- Repo-local config:
    <repo_root>/config/config.toml
- Environment variable overrides for automation.

Precedence (highest to lowest) for any given value:
1) CLI argument (handled by each entry point)
2) Environment variables (CREWTRACK_*)
3) User config: ~/.config/crewtrack/config.toml
4) Repo config: <repo_root>/config/config.toml
5) Hard defaults

Example config.toml:

    [paths]
    course_gpx = "~/race/course.gpx"
    pacing_plan = "~/race/pacing_plan.csv"
    checkin_db = "~/.local/share/crewtrack/checkins.sqlite"

    [race]
    start_km = 3.5
    distance_km = 100.12
    loops = 3
    start_time = "7:00 AM"

    [checkin]
    ttl_seconds = 86400

This module uses Python's built-in tomllib on Python 3.11+, or `tomli` if installed.
"""

from __future__ import annotations

import math
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from crewtrack.analyze.course import RaceTopology
from crewtrack.analyze.eta import RACE_START_MINUTES, parse_clock
from crewtrack.errors import ConfigError

DEFAULT_CHECKIN_TTL_SEC = 24 * 60 * 60


# ---------------------------------------------------------------------------
# TOML loading helpers
# ---------------------------------------------------------------------------
def _load_toml(path: Path) -> dict[str, Any]:
    """
    Parse a TOML file at `path`.

    - Missing file: empty dict (missing config files are normal).
    - Invalid TOML: ConfigError with the file in the message.
    """
    if not path.is_file():
        return {}

    try:
        try:
            # Python 3.11+ standard library
            import tomllib
            return tomllib.loads(path.read_text(encoding="utf-8")) or {}
        except ModuleNotFoundError:
            import tomli
            return tomli.loads(path.read_text(encoding="utf-8")) or {}
    except (ValueError, OSError) as e:
        # TOMLDecodeError subclasses ValueError in both parsers
        raise ConfigError(f"Failed to parse TOML config: {path} ({e})") from e


# ---------------------------------------------------------------------------
# Generic coercion helpers
# ---------------------------------------------------------------------------
def _deep_get(d: dict[str, Any], dotted_key: str) -> Any:
    """
    Fetch nested dictionary values using dot-separated keys.

    Example:
        _deep_get(cfg, "race.start_km")

    Returns None if any part of the path is missing.
    """
    cur: Any = d
    for part in dotted_key.split("."):
        if not isinstance(cur, dict) or part not in cur:
            return None
        cur = cur[part]
    return cur


def _as_path(v: Any) -> Optional[Path]:
    if v is None:
        return None
    if isinstance(v, Path):
        return v.expanduser()
    if isinstance(v, str) and v.strip():
        return Path(v).expanduser()
    return None


def _as_float(v: Any) -> Optional[float]:
    """Finite numbers or numeric strings; anything else is treated as unset."""
    if v is None or isinstance(v, bool):
        return None
    try:
        f = float(v)
    except (TypeError, ValueError):
        return None
    return f if math.isfinite(f) else None


def _as_int(v: Any) -> Optional[int]:
    f = _as_float(v)
    if f is None or f != int(f):
        return None
    return int(f)


def _as_clock(v: Any) -> Optional[int]:
    return parse_clock(v) if isinstance(v, str) else None


# key -> (coercer, env var)
_SCALARS = {
    "paths.course_gpx": (_as_path, "CREWTRACK_COURSE_GPX"),
    "paths.pacing_plan": (_as_path, "CREWTRACK_PACING_PLAN"),
    "paths.checkin_db": (_as_path, "CREWTRACK_CHECKIN_DB"),
    "race.start_km": (_as_float, "CREWTRACK_RACE_START_KM"),
    "race.distance_km": (_as_float, "CREWTRACK_RACE_DISTANCE_KM"),
    "race.loops": (_as_int, "CREWTRACK_LOOPS"),
    "race.start_time": (_as_clock, "CREWTRACK_RACE_START_TIME"),
    "checkin.ttl_seconds": (_as_int, "CREWTRACK_CHECKIN_TTL"),
}


# ---------------------------------------------------------------------------
# Repo discovery + defaults
# ---------------------------------------------------------------------------
def find_repo_root(start: Path) -> Optional[Path]:
    """
    Walk upward from `start` looking for the crewtrack repo root.

    The presence of a `config/` directory marks the repo root.
    """
    start = start.resolve()
    for p in [start] + list(start.parents):
        if (p / "config").is_dir():
            return p
    return None


def default_data_root() -> Path:
    return Path.home() / ".local" / "share" / "crewtrack"


# ---------------------------------------------------------------------------
# Typed config dataclasses
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class CrewtrackPaths:
    """Resolved file locations. course_gpx / pacing_plan may be unset."""

    course_gpx: Optional[Path]
    pacing_plan: Optional[Path]
    checkin_db: Path


@dataclass(frozen=True)
class RaceSettings:
    start_km: float = 3.5
    distance_km: float = 100.12
    loops: int = 3
    start_minutes: int = RACE_START_MINUTES

    def topology(self) -> RaceTopology:
        """
        Raises:
          TopologyError for inconsistent values.
        """
        return RaceTopology(
            race_start_km=self.start_km,
            race_distance_km=self.distance_km,
            num_loops=self.loops,
        )


@dataclass(frozen=True)
class CheckinSettings:
    ttl_seconds: int = DEFAULT_CHECKIN_TTL_SEC


@dataclass(frozen=True)
class CrewtrackConfig:
    """
    Fully merged crewtrack configuration.

    Attributes:
    - paths: resolved file layout
    - race: course topology and race clock
    - checkin: check-in store behaviour
    - source: provenance map showing where each value came from
    """

    paths: CrewtrackPaths
    race: RaceSettings
    checkin: CheckinSettings
    source: dict[str, str]


# ---------------------------------------------------------------------------
# Main config loader
# ---------------------------------------------------------------------------
def load_config(
    repo_root: Optional[Path] = None,
    repo_config_path: Optional[Path] = None,
    user_config_path: Optional[Path] = None,
) -> CrewtrackConfig:
    """
    Load, merge, and normalize all crewtrack configuration.

    Raises:
      ConfigError if a config file exists but is not valid TOML.
    """
    if repo_root is None:
        repo_root = find_repo_root(Path(__file__).resolve())
    if repo_config_path is None and repo_root is not None:
        repo_config_path = repo_root / "config" / "config.toml"
    if user_config_path is None:
        user_config_path = Path.home() / ".config" / "crewtrack" / "config.toml"

    repo_cfg = _load_toml(repo_config_path) if repo_config_path else {}
    user_cfg = _load_toml(user_config_path) if user_config_path else {}

    defaults = RaceSettings()
    values: dict[str, Any] = {
        "paths.course_gpx": None,
        "paths.pacing_plan": None,
        "paths.checkin_db": default_data_root() / "checkins.sqlite",
        "race.start_km": defaults.start_km,
        "race.distance_km": defaults.distance_km,
        "race.loops": defaults.loops,
        "race.start_time": defaults.start_minutes,
        "checkin.ttl_seconds": DEFAULT_CHECKIN_TTL_SEC,
    }
    src = {k: "default" for k in values}

    # Repo then user; later layers win. Values that fail coercion are ignored.
    for cfg, label, path in ((repo_cfg, "repo", repo_config_path), (user_cfg, "user", user_config_path)):
        for key, (coerce, _env) in _SCALARS.items():
            v = coerce(_deep_get(cfg, key))
            if v is None:
                continue
            values[key] = v
            src[key] = f"{label}:{path}"

    # Environment variable overrides (highest non-CLI precedence)
    for key, (coerce, env) in _SCALARS.items():
        raw = os.environ.get(env)
        if not raw:
            continue
        v = coerce(raw)
        if v is None:
            continue
        values[key] = v
        src[key] = f"env:{env}"

    paths = CrewtrackPaths(
        course_gpx=values["paths.course_gpx"],
        pacing_plan=values["paths.pacing_plan"],
        checkin_db=values["paths.checkin_db"],
    )
    race = RaceSettings(
        start_km=values["race.start_km"],
        distance_km=values["race.distance_km"],
        loops=values["race.loops"],
        start_minutes=values["race.start_time"],
    )
    checkin = CheckinSettings(ttl_seconds=values["checkin.ttl_seconds"])

    return CrewtrackConfig(paths=paths, race=race, checkin=checkin, source=src)
