#!/usr/bin/env python3
"""
crewtrack: print where the runner is and when they will reach each station.

Splits come from any mix of:
  --splits   CSV with km,clock_time[,split_id]
  --results  CSV of results-page rows (label,value), "Lap N Chip Time" used
  --bib      latest field check-in from the check-in store
"""

from __future__ import annotations

import argparse
import csv
import sqlite3
from pathlib import Path
from typing import Optional

from crewtrack.analyze.eta import ETAReport, Split
from crewtrack.analyze.session import RaceContext, RunnerPosition
from crewtrack.analyze.track import Track, load_track
from crewtrack.checkin.store import CheckinStore
from crewtrack.config import load_config
from crewtrack.errors import CrewtrackError
from crewtrack.formats.pacing_plan import load_pacing_plan
from crewtrack.sources.results import lap_times_from_rows, splits_from_chip_times
from crewtrack.util.logging import log
from crewtrack.util.paths import expand


def read_splits_csv(path: Path) -> list[Split]:
    """Rows with a numeric km; the clock string is judged by the ETA engine."""
    with path.open(newline="", encoding="utf-8") as fh:
        rows = list(csv.DictReader(fh, skipinitialspace=True))
    return [s for s in (Split.from_mapping(r) for r in rows) if s is not None]


def read_results_csv(path: Path, race_start_minutes: float) -> list[Split]:
    with path.open(newline="", encoding="utf-8") as fh:
        rows = {r[0]: r[1] for r in csv.reader(fh) if len(r) >= 2}
    return splits_from_chip_times(lap_times_from_rows(rows), race_start_minutes)


def _fmt_delta(delta: Optional[int]) -> str:
    if delta is None:
        return "—"
    return f"{delta:+d} min"


def print_report(report: ETAReport, position: Optional[RunnerPosition], *, tsv: bool) -> None:
    if tsv:
        print("station\tkm\teta\tdelta_min\tstatus\tcrew")
        for e in report.etas:
            print(
                f"{e.name}\t"
                f"{e.km:.2f}\t"
                f"{e.eta}\t"
                f"{'' if e.plan_delta_minutes is None else e.plan_delta_minutes}\t"
                f"{e.plan_status.value if e.plan_status else ''}\t"
                f"{int(e.crew_access)}"
            )
        return

    last = report.last_split
    if last is None:
        print("\nLast check-in : no split data yet")
    else:
        print(f"\nLast check-in : {last.label} — {last.km:.1f} km at {last.clock_time}")
        status = report.plan_status_at_last_split
        print(f"  vs plan     : {_fmt_delta(report.plan_delta_at_last_split)}"
              f"{f' ({status.value})' if status else ''}")

    if position is not None and position.position is not None:
        lap = "prologue" if position.lap_index is None else f"lap {position.lap_index + 1}"
        print(f"  position    : {position.track_km:.2f} track km ({lap}) "
              f"at {position.position.lat:.5f}, {position.position.lon:.5f}")

    print("\nEstimated arrival at aid stations")
    for e in report.etas:
        crew = "*" if e.crew_access else " "
        status = e.plan_status.value if e.plan_status else ""
        cutoff = f"  cutoff {e.cutoff}" if e.cutoff else ""
        print(f" {crew} {e.name:<28} {e.km:6.1f} km  {e.eta:>8}  {_fmt_delta(e.plan_delta_minutes):>9}  {status:<6}{cutoff}")


def main(argv: Optional[list[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="crewtrack: runner position and aid station ETAs.")
    ap.add_argument("--gpx", default=None,
                    help="Course GPX (one lap). Default: from crewtrack config.")
    ap.add_argument("--plan", default=None,
                    help="Pacing plan CSV. Default: from config, else built-in stations.")
    ap.add_argument("--splits", default=None,
                    help="CSV of splits: km,clock_time[,split_id].")
    ap.add_argument("--results", default=None,
                    help="CSV of results-page rows (label,value).")
    ap.add_argument("--bib", default=None,
                    help="Add the latest field check-in for this bib.")
    ap.add_argument("--checkin-db", default=None,
                    help="Check-in SQLite DB (default: from config).")
    ap.add_argument("--race-km", type=float, default=None,
                    help="Place the runner here instead of at the last split.")
    ap.add_argument("--race-start-km", type=float, default=None,
                    help="Race km at which the track's km 0 aligns.")
    ap.add_argument("--loops", type=int, choices=(1, 3), default=None,
                    help="Number of laps of the recorded track.")
    ap.add_argument("--tsv", action="store_true",
                    help="Print tab-separated ETA rows (good for piping).")
    ap.add_argument("--plot", action="store_true",
                    help="Show the course with the runner (matplotlib).")

    args = ap.parse_args(argv)

    try:
        cfg = load_config()
        topology = cfg.race.topology()
        overrides = {}
        if args.race_start_km is not None:
            overrides["race_start_km"] = args.race_start_km
        if args.loops is not None:
            overrides["num_loops"] = args.loops

        gpx_path = expand(args.gpx) or cfg.paths.course_gpx
        track = load_track(gpx_path) if gpx_path else Track()
        if gpx_path:
            log(f"Loaded course {gpx_path}: {len(track)} points, {track.track_length_km:.2f} km")

        plan_path = expand(args.plan) or cfg.paths.pacing_plan
        ctx = RaceContext(
            track=track,
            topology=topology,
            waypoints=tuple(load_pacing_plan(plan_path)),
            race_start_minutes=cfg.race.start_minutes,
        )
        if overrides:
            ctx = ctx.with_topology(**overrides)

        splits: list[Split] = []
        if args.splits:
            splits.extend(read_splits_csv(expand(args.splits)))
        if args.results:
            splits.extend(read_results_csv(expand(args.results), ctx.race_start_minutes))
        if args.bib:
            db_path = expand(args.checkin_db) or cfg.paths.checkin_db
            store = CheckinStore.open(db_path, ttl_seconds=cfg.checkin.ttl_seconds,
                                      race_distance_km=ctx.topology.race_distance_km)
            try:
                rec = store.get_checkin(args.bib)
            finally:
                store.close()
            if rec is None:
                log(f"No live check-in for bib {args.bib}")
            else:
                splits.append(rec.as_split())
    except (CrewtrackError, OSError, sqlite3.Error) as e:
        log(f"Error: {e}")
        return 2

    report = ctx.compute_etas(splits)

    race_km = args.race_km
    if race_km is None and report.last_split is not None:
        race_km = report.last_split.km
    position = ctx.runner_position(race_km) if (race_km is not None and not track.is_empty) else None

    print_report(report, position, tsv=args.tsv)

    if args.plot and not track.is_empty:
        from crewtrack.visualize.plot import plot_course

        stations = []
        for w in ctx.waypoints:
            p = ctx.runner_position(w.km).position
            if p is not None:
                stations.append((w.name, p.lat, p.lon))
        plot_course(
            track,
            covered=ctx.covered_segment(race_km) if race_km is not None else (),
            runner=position.position if position else None,
            stations=stations,
            title=f"Course ({ctx.topology.num_loops} lap(s))",
        )

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
