# crewtrack/visualize/plot.py
"""
Plotting routines for crewtrack
"""

from typing import Iterable, Optional

import matplotlib.pyplot as plt

def plot_course(track, *, covered=(), runner=None,
                stations: Optional[Iterable[tuple[str, float, float]]] = None,
                title: str = "Course", show: bool = True):
    """
    Course outline with the lap covered so far, the runner and named stations.

    covered: TrackPoints from RaceContext.covered_segment()
    runner: TrackPosition (or anything with lat/lon), or None
    stations: (name, lat, lon) triples
    """
    fig, ax = plt.subplots(figsize=(8, 6))

    lats = [p.lat for p in track.points]
    lons = [p.lon for p in track.points]
    ax.plot(lons, lats, color="lightgray", linewidth=2, label="Course")

    covered = list(covered)
    if covered:
        ax.plot([p.lon for p in covered], [p.lat for p in covered],
                color="tab:orange", linewidth=3, label="This lap")

    for name, lat, lon in stations or ():
        ax.scatter([lon], [lat], marker="s", s=20, color="tab:blue")
        ax.annotate(name, (lon, lat), fontsize=7, xytext=(3, 3), textcoords="offset points")

    if runner is not None:
        ax.scatter([runner.lon], [runner.lat], s=60, color="tab:red", zorder=5, label="Runner")

    ax.set_xlabel("Longitude")
    ax.set_ylabel("Latitude")
    ax.set_title(title)
    ax.legend(loc="best")
    if show:
        plt.show()
    return fig
