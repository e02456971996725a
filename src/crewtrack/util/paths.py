# crewtrack/util/paths.py
from __future__ import annotations

from pathlib import Path

def ensure_dir(path: Path) -> None:
    """Ensure a directory exists."""
    path.mkdir(parents=True, exist_ok=True)

def expand(path: str | Path | None) -> Path | None:
    """Expand ~ and return a Path, or None for empty input."""
    if path is None or str(path).strip() == "":
        return None
    return Path(path).expanduser()
