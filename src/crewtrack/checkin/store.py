#!/usr/bin/env python3
"""store.py

Crowd-sourced field check-ins, kept in SQLite.

One record per bib: a new check-in overwrites the old one (last write wins)
and every record expires after a TTL (24 h by default), so yesterday's race
never leaks into today's projections. The bib of the most recent write is
remembered as the default bib for the crew's screens.

Usage:
  crewtrack-checkin put 545 44.9 "1:51 PM"
  crewtrack-checkin get 545
  crewtrack-checkin delete 545
  crewtrack-checkin purge
  crewtrack-checkin bib [545]
"""

from __future__ import annotations

import argparse
import json
import re
import sqlite3
import time
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Callable, Optional

from crewtrack.analyze.eta import Split
from crewtrack.config import DEFAULT_CHECKIN_TTL_SEC, load_config
from crewtrack.course_data import RACE_DISTANCE_KM
from crewtrack.errors import CheckinError, CrewtrackError
from crewtrack.util.logging import log, utc_now_iso
from crewtrack.util.paths import ensure_dir, expand

TIME_PATTERN = re.compile(r"^\d{1,2}:\d{2}\s*[AP]M$", re.IGNORECASE)

SCHEMA = """
CREATE TABLE IF NOT EXISTS checkins (
    bib         TEXT PRIMARY KEY,
    km          REAL NOT NULL,
    clock_time  TEXT NOT NULL,
    at          TEXT NOT NULL,
    expires_at  REAL NOT NULL
);
CREATE TABLE IF NOT EXISTS settings (
    key    TEXT PRIMARY KEY,
    value  TEXT NOT NULL
);
"""


@dataclass(frozen=True)
class Checkin:
    bib: str
    km: float
    clock_time: str
    at: str   # ISO UTC time the check-in was recorded

    def as_split(self) -> Split:
        return Split(km=self.km, clock_time=self.clock_time)


def connect(db_path: Path) -> sqlite3.Connection:
    ensure_dir(db_path.parent)
    return sqlite3.connect(str(db_path))


class CheckinStore:
    """
    TTL'd key-value store of check-ins keyed by bib.

    Args:
        conn: open SQLite connection (schema is created if missing).
        ttl_seconds: lifetime of each check-in.
        race_distance_km: upper bound for a valid check-in distance.
        clock: seconds-since-epoch source; injectable for tests.
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        *,
        ttl_seconds: int = DEFAULT_CHECKIN_TTL_SEC,
        race_distance_km: float = RACE_DISTANCE_KM,
        clock: Callable[[], float] = time.time,
    ) -> None:
        conn.executescript(SCHEMA)
        self.conn = conn
        self.ttl_seconds = ttl_seconds
        self.race_distance_km = race_distance_km
        self.clock = clock

    @classmethod
    def open(cls, db_path: Path, **kwargs) -> "CheckinStore":
        conn = connect(db_path)
        try:
            return cls(conn, **kwargs)
        except sqlite3.Error:
            conn.close()
            raise

    def close(self) -> None:
        self.conn.close()

    # ------------------------------------------------------------------
    # Check-ins
    # ------------------------------------------------------------------
    def _validate(self, bib: str, km: float, clock_time: str) -> tuple[str, float, str]:
        bib = (bib or "").strip()
        if not bib:
            raise CheckinError("Missing bib")
        try:
            km = float(km)
        except (TypeError, ValueError) as e:
            raise CheckinError(f"km must be a number, got {km!r}") from e
        if not (0 <= km <= self.race_distance_km):
            raise CheckinError(f"km must be within 0..{self.race_distance_km}, got {km}")
        clock_time = (clock_time or "").strip()
        if not TIME_PATTERN.match(clock_time):
            raise CheckinError(f"clock time must look like '9:15 AM', got {clock_time!r}")
        return bib, km, clock_time

    def put_checkin(self, bib: str, km: float, clock_time: str) -> Checkin:
        """
        Store (or overwrite) the check-in for *bib* and make it the default bib.

        Raises:
          CheckinError for a missing bib, out-of-range km or bad clock time.
        """
        bib, km, clock_time = self._validate(bib, km, clock_time)
        rec = Checkin(bib=bib, km=km, clock_time=clock_time, at=utc_now_iso())
        with self.conn:
            self.conn.execute(
                """INSERT OR REPLACE INTO checkins (bib, km, clock_time, at, expires_at)
                     VALUES (?,?,?,?,?)""",
                (rec.bib, rec.km, rec.clock_time, rec.at, self.clock() + self.ttl_seconds),
            )
            self._set_setting("bib", bib)
        return rec

    def get_checkin(self, bib: str) -> Optional[Checkin]:
        """Latest live check-in for *bib*; expired rows are dropped on sight."""
        row = self.conn.execute(
            "SELECT bib, km, clock_time, at, expires_at FROM checkins WHERE bib = ?",
            ((bib or "").strip(),),
        ).fetchone()
        if row is None:
            return None
        if row[4] <= self.clock():
            with self.conn:
                self.conn.execute("DELETE FROM checkins WHERE bib = ?", (row[0],))
            return None
        return Checkin(bib=row[0], km=float(row[1]), clock_time=row[2], at=row[3])

    def delete_checkin(self, bib: str) -> bool:
        with self.conn:
            cur = self.conn.execute("DELETE FROM checkins WHERE bib = ?", ((bib or "").strip(),))
        return cur.rowcount > 0

    def purge(self) -> int:
        """Delete every check-in; returns how many were removed."""
        with self.conn:
            cur = self.conn.execute("DELETE FROM checkins")
        return cur.rowcount

    # ------------------------------------------------------------------
    # Default bib
    # ------------------------------------------------------------------
    def _set_setting(self, key: str, value: str) -> None:
        self.conn.execute("INSERT OR REPLACE INTO settings (key, value) VALUES (?,?)", (key, value))

    def set_default_bib(self, bib: str) -> None:
        bib = (bib or "").strip()
        if not bib:
            raise CheckinError("Missing bib")
        with self.conn:
            self._set_setting("bib", bib)

    def get_default_bib(self) -> str:
        row = self.conn.execute("SELECT value FROM settings WHERE key = 'bib'").fetchone()
        return row[0] if row else ""


def main(argv: Optional[list[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="crewtrack: field check-in store.")
    ap.add_argument("--db", default=None,
                    help="SQLite DB path (default: from crewtrack config)")
    sub = ap.add_subparsers(dest="cmd", required=True)

    p_put = sub.add_parser("put", help="Record a check-in for a bib.")
    p_put.add_argument("bib")
    p_put.add_argument("km", type=float)
    p_put.add_argument("clock_time", help='e.g. "1:51 PM"')

    p_get = sub.add_parser("get", help="Show the latest check-in for a bib.")
    p_get.add_argument("bib", nargs="?", default=None)

    p_del = sub.add_parser("delete", help="Delete the check-in for a bib.")
    p_del.add_argument("bib")

    sub.add_parser("purge", help="Delete all check-ins.")

    p_bib = sub.add_parser("bib", help="Show or set the default bib.")
    p_bib.add_argument("bib", nargs="?", default=None)

    args = ap.parse_args(argv)
    try:
        cfg = load_config()
        db_path = expand(args.db) or cfg.paths.checkin_db
        store = CheckinStore.open(db_path, ttl_seconds=cfg.checkin.ttl_seconds,
                                  race_distance_km=cfg.race.distance_km)
    except (CrewtrackError, OSError, sqlite3.Error) as e:
        log(f"Error: {e}")
        return 2
    try:
        if args.cmd == "put":
            rec = store.put_checkin(args.bib, args.km, args.clock_time)
            log(f"Stored check-in for bib {rec.bib} in {db_path}")
            print(json.dumps(asdict(rec)))
        elif args.cmd == "get":
            bib = args.bib or store.get_default_bib()
            rec = store.get_checkin(bib) if bib else None
            if rec is None:
                log(f"No check-in for bib {bib or '(none)'}")
                return 1
            print(json.dumps(asdict(rec)))
        elif args.cmd == "delete":
            removed = store.delete_checkin(args.bib)
            print(json.dumps({"ok": True, "deleted": int(removed)}))
        elif args.cmd == "purge":
            count = store.purge()
            log(f"Purged {count} check-in(s)")
            print(json.dumps({"ok": True, "deleted": count}))
        elif args.cmd == "bib":
            if args.bib:
                store.set_default_bib(args.bib)
            print(json.dumps({"bib": store.get_default_bib()}))
    except (CrewtrackError, sqlite3.Error) as e:
        log(f"Error: {e}")
        return 2
    finally:
        store.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
