from pathlib import Path
import pytest

from crewtrack.analyze.track import build_track
from crewtrack.formats.gpx import TrackPoint


CREWTRACK_ENV = (
    "CREWTRACK_COURSE_GPX",
    "CREWTRACK_PACING_PLAN",
    "CREWTRACK_CHECKIN_DB",
    "CREWTRACK_RACE_START_KM",
    "CREWTRACK_RACE_DISTANCE_KM",
    "CREWTRACK_LOOPS",
    "CREWTRACK_RACE_START_TIME",
    "CREWTRACK_CHECKIN_TTL",
)


def equator_points(n: int, step_deg: float = 0.01) -> list[TrackPoint]:
    """n points due east along the equator, step_deg apart."""
    return [TrackPoint(lat=0.0, lon=i * step_deg) for i in range(n)]


def write_gpx(path: Path, points) -> Path:
    pts = "\n".join(f'      <trkpt lat="{p.lat}" lon="{p.lon}"/>' for p in points)
    path.write_text(
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<gpx version="1.1" xmlns="http://www.topografix.com/GPX/1/1">\n'
        f"  <trk><trkseg>\n{pts}\n  </trkseg></trk>\n</gpx>\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def sample_gpx_path() -> Path:
    return Path(__file__).parent / "data" / "sample_course.gpx"


@pytest.fixture
def sample_plan_path() -> Path:
    return Path(__file__).parent / "data" / "pacing_plan.csv"


@pytest.fixture
def line_track():
    """Five points along the equator, 0.01 degrees apart (four equal segments)."""
    return build_track(equator_points(5))


@pytest.fixture
def long_track():
    """40 points along the equator: long enough for the prologue + lap mapping."""
    return build_track(equator_points(40))


@pytest.fixture
def clean_env(monkeypatch):
    for var in CREWTRACK_ENV:
        monkeypatch.delenv(var, raising=False)
    return monkeypatch
