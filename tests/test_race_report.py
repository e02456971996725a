import pytest

from conftest import equator_points, write_gpx
from crewtrack.analyze import race_report as rr
from crewtrack.checkin.store import CheckinStore
from crewtrack.config import load_config


@pytest.fixture
def run(tmp_path, clean_env, monkeypatch, capsys):
    clean_env.setenv("HOME", str(tmp_path / "home"))
    user_cfg = tmp_path / "user.toml"
    user_cfg.write_text("", encoding="utf-8")
    monkeypatch.setattr(rr, "load_config", lambda: load_config(repo_root=tmp_path, user_config_path=user_cfg))

    def _run(*args):
        rc = rr.main(list(args))
        return rc, capsys.readouterr()

    return _run


@pytest.fixture
def splits_csv(tmp_path):
    p = tmp_path / "splits.csv"
    p.write_text("km,clock_time\n10,8:00 AM\n20,9:00 AM\nnope,9:30 AM\n", encoding="utf-8")
    return p


def test_tsv_report(run, splits_csv, sample_plan_path):
    rc, out = run("--splits", str(splits_csv), "--plan", str(sample_plan_path), "--tsv")

    assert rc == 0
    assert out.out.splitlines() == [
        "station\tkm\teta\tdelta_min\tstatus\tcrew",
        "START — Tyler's\t0.00\t7:00 AM\t0\ton\t1",
        "Gate\t9.66\t7:57 AM\t14\tbehind\t0",
        "Nature Center (Zach)\t18.19\t8:49 AM\t26\tbehind\t1",
        "Dam Nation\t26.23\t9:37 AM\t\t\t0",
    ]


def test_plain_report_with_position(run, tmp_path, splits_csv, sample_plan_path):
    gpx = write_gpx(tmp_path / "course.gpx", equator_points(40))

    rc, out = run("--gpx", str(gpx), "--splits", str(splits_csv),
                  "--plan", str(sample_plan_path), "--race-km", "0.5")

    assert rc == 0
    assert "Last check-in : 20.0 km — 20.0 km at 9:00 AM" in out.out
    assert "vs plan     : +29 min (behind)" in out.out
    assert "0.50 track km (prologue)" in out.out
    assert "Estimated arrival at aid stations" in out.out
    assert "Loaded course" in out.err


def test_report_without_splits_uses_builtin_plan(run):
    rc, out = run()

    assert rc == 0
    assert "no split data yet" in out.out
    assert out.out.count("unknown") == 14


def test_results_csv(run, tmp_path):
    results = tmp_path / "results.csv"
    results.write_text("Bib,545\nLap 1 Chip Time,2:16:00\nLap 2 Chip Time,Active\n", encoding="utf-8")

    rc, out = run("--results", str(results))

    assert rc == 0
    assert "Split 1/6" in out.out
    assert "9:16 AM" in out.out


def test_checkin_is_added_as_split(run, tmp_path):
    db = tmp_path / "checkins.sqlite"
    store = CheckinStore.open(db)
    try:
        store.put_checkin("545", 44.9, "1:51 PM")
    finally:
        store.close()

    rc, out = run("--bib", "545", "--checkin-db", str(db))
    assert rc == 0
    assert "44.9 km at 1:51 PM" in out.out

    rc, out = run("--bib", "999", "--checkin-db", str(db))
    assert rc == 0
    assert "No live check-in for bib 999" in out.err
    assert "no split data yet" in out.out


@pytest.mark.parametrize(
    "args",
    [
        ("--race-start-km", "200"),
        ("--splits", "/nonexistent/splits.csv"),
    ],
)
def test_bad_input_exits_2(run, args):
    rc, out = run(*args)
    assert rc == 2
    assert "Error" in out.err


def test_unopenable_checkin_db_exits_2(run, tmp_path):
    rc, out = run("--bib", "545", "--checkin-db", str(tmp_path))
    assert rc == 2
    assert "Error" in out.err


def test_plain_report_shows_cutoffs(run):
    rc, out = run()

    assert rc == 0
    assert "cutoff 2:00 PM*" in out.out
    assert out.out.count("cutoff") == 5
