# crewtrack/formats/gpx.py
"""
GPX helpers for crewtrack

This module is intentionally format-focused:
- GPX namespace handling (1.1, 1.0, or none at all)
- safely reading an ElementTree
- extracting the ordered lat/lon sequence of the course track

Key design principle:
  The geometry core only needs an ordered sequence of {lat, lon}. Everything
  about the container format stays here, and malformed coordinate pairs are
  dropped here, never passed downstream.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional, Union
from xml.etree import ElementTree as ET

from crewtrack.errors import InvalidGpxError

# GPX 1.1 default namespace
GPX_NS = {"gpx": "http://www.topografix.com/GPX/1/1"}
GPX10_NS = {"gpx": "http://www.topografix.com/GPX/1/0"}


@dataclass(frozen=True)
class TrackPoint:
    lat: float
    lon: float


def read_gpx(path: Path) -> ET.ElementTree:
    """
    Read a GPX file into an ElementTree.

    Raises:
      InvalidGpxError (not well-formed XML), OSError
    """
    try:
        return ET.parse(path)
    except ET.ParseError as e:
        raise InvalidGpxError(f"Invalid GPX: {path} ({e})") from e


def _parse_coord(text: Optional[str]) -> Optional[float]:
    if text is None:
        return None
    try:
        v = float(text.strip())
    except ValueError:
        return None
    if math.isnan(v) or math.isinf(v):
        return None
    return v


def _iter_trkpts(root: ET.Element) -> Iterator[ET.Element]:
    # Course files in the wild are 1.1, 1.0, or namespace-less exports.
    for ns in (GPX_NS, GPX10_NS):
        found = root.findall(".//gpx:trkpt", ns)
        if found:
            yield from found
            return
    yield from root.iter("trkpt")


def extract_trackpoints(tree: Union[ET.ElementTree, ET.Element]) -> list[TrackPoint]:
    """Extract ordered trackpoints (lat/lon only) from a GPX tree or root."""
    root = tree.getroot() if isinstance(tree, ET.ElementTree) else tree
    pts: list[TrackPoint] = []

    for trkpt in _iter_trkpts(root):
        lat = _parse_coord(trkpt.get("lat"))
        lon = _parse_coord(trkpt.get("lon"))
        if lat is None or lon is None:
            continue   # malformed pair: drop, do not retry
        pts.append(TrackPoint(lat=lat, lon=lon))

    return pts


def parse_gpx_text(xml_text: str) -> list[TrackPoint]:
    """
    Parse GPX from an in-memory string.

    Raises:
      InvalidGpxError
    """
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as e:
        raise InvalidGpxError(f"Invalid GPX: {e}") from e
    return extract_trackpoints(root)
