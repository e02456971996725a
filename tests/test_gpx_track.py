import pytest

from crewtrack.analyze.geodesy import distance_km
from crewtrack.analyze.track import load_track
from crewtrack.errors import InvalidGpxError
from crewtrack.formats.gpx import TrackPoint, extract_trackpoints, parse_gpx_text, read_gpx


def test_extract_drops_malformed_points(sample_gpx_path):
    pts = extract_trackpoints(read_gpx(sample_gpx_path))

    assert pts == [
        TrackPoint(30.0, -95.0),
        TrackPoint(30.0, -94.99),
        TrackPoint(30.01, -94.99),
        TrackPoint(30.01, -95.0),
        TrackPoint(30.0, -95.0),
    ]


def test_load_track_sample_loop(sample_gpx_path):
    track = load_track(sample_gpx_path)
    pts = [TrackPoint(p.lat, p.lon) for p in track.points]
    expected = sum(distance_km(a, b) for a, b in zip(pts, pts[1:]))

    assert len(track) == 5
    assert track.points[0].cumul_km == 0.0
    assert track.track_length_km == pytest.approx(expected)
    assert track.track_length_km == pytest.approx(4.15, abs=0.05)
    assert track.bounds == ((30.0, -95.0), (30.01, -94.99))


def test_gpx_without_namespace():
    xml = """<gpx><trk><trkseg>
      <trkpt lat="1.5" lon="2.5"/><trkpt lat="1.6" lon="2.6"/>
    </trkseg></trk></gpx>"""
    assert parse_gpx_text(xml) == [TrackPoint(1.5, 2.5), TrackPoint(1.6, 2.6)]


def test_gpx_1_0_namespace():
    xml = """<gpx xmlns="http://www.topografix.com/GPX/1/0"><trk><trkseg>
      <trkpt lat="1" lon="2"/></trkseg></trk></gpx>"""
    assert parse_gpx_text(xml) == [TrackPoint(1.0, 2.0)]


def test_invalid_gpx_raises(tmp_path):
    bad = tmp_path / "bad.gpx"
    bad.write_text("<gpx><trk>", encoding="utf-8")

    with pytest.raises(InvalidGpxError):
        load_track(bad)
    with pytest.raises(InvalidGpxError):
        parse_gpx_text("not xml at all")


def test_gpx_without_trackpoints_gives_empty_track(tmp_path):
    p = tmp_path / "empty.gpx"
    p.write_text('<gpx xmlns="http://www.topografix.com/GPX/1/1"><wpt lat="1" lon="2"/></gpx>',
                 encoding="utf-8")

    track = load_track(p)
    assert track.is_empty
    assert track.track_length_km == 0.0
    assert track.bounds is None
