# crewtrack/course_data.py
"""
Built-in course tables for the 100 km race: three laps of the main loop
after a 2.5 km out-and-back prologue.

These are the fallback when no pacing plan CSV is available, and the
official split mats used to turn results chip times into splits.
"""

from __future__ import annotations

from crewtrack.analyze.eta import Waypoint

RACE_DISTANCE_KM = 100.12

# Official timing mats (lap number -> race km).
SPLITS_100K_KM = {
    1: 12.71,
    2: 35.41,
    3: 44.9,
    4: 67.74,
    5: 77.25,
    6: 100.12,
}

# Where the mid-lap stations sit on the recorded loop polyline (track km).
AID_TRACK_KM = {
    "Gate": 6.3,
    "Nature Center": 14.87,
    "Dam Nation": 24.89,
}

# Cutoffs marked "*" fall on the next day.
AID_STATIONS: tuple[Waypoint, ...] = (
    Waypoint("START — Tyler's", 0.0, "7:00 AM", crew_access=True),
    Waypoint("Tyler's (Prologue done)", 3.54, "7:16 AM", True, "7:12 AM", "7:20 AM"),
    Waypoint("Gate", 9.66, "7:44 AM", False, "7:38 AM", "7:55 AM"),
    Waypoint("Nature Center", 18.19, "8:23 AM", False, "8:13 AM", "8:40 AM"),
    Waypoint("Dam Nation", 26.23, "9:00 AM", False, "8:47 AM", "9:22 AM"),
    Waypoint("Tyler's (Lap 1 done)", 35.73, "9:55 AM", True, "9:35 AM", "10:30 AM"),
    Waypoint("Gate", 41.84, "10:28 AM", False, "10:05 AM", "11:08 AM"),
    Waypoint("Nature Center", 50.38, "11:12 AM", False, "10:45 AM", "12:00 PM"),
    Waypoint("Dam Nation", 58.42, "11:55 AM", False, "11:22 AM", "12:50 PM"),
    Waypoint("Tyler's (Lap 2 done)", 67.9, "1:45 PM", True, "1:00 PM", "2:30 PM", "7:36 AM*"),
    Waypoint("Gate", 74.03, "2:40 PM", False, "1:50 PM", "3:45 PM", "8:48 AM*"),
    Waypoint("Nature Center", 82.43, "4:00 PM", False, "2:50 PM", "5:30 PM", "10:30 AM*"),
    Waypoint("Dam Nation", 90.47, "5:20 PM", False, "4:00 PM", "7:00 PM", "12:06 PM*"),
    Waypoint("FINISH — Tyler's", 99.94, "9:00 PM", True, "8:00 PM", "10:00 PM", "2:00 PM*"),
)
