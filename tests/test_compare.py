# Copyright 2024, Scott Smith.  MIT License (see LICENSE).

import pytest

from disktelemetry import gps
from disktelemetry.base import LapKey
from disktelemetry.compare import chart_distances, compare_laps, line_offset_m

from ibt_builder import straight_lap

REF = LapKey(None, 1)
SLOW = LapKey(None, 2)
WIDE = LapKey(None, 3)

@pytest.fixture
def laps(lap_set_of):
    return lap_set_of(straight_lap(3., 90., key=REF),
                      straight_lap(3., 90., key=SLOW, speed_scale=1.1),
                      straight_lap(3., 90., key=WIDE, lat=0.0001))

def test_slower_lap_has_positive_delta(laps):
    rows = compare_laps(laps, [REF, SLOW])
    assert len(rows) == 301
    assert rows[0]['distance_km'] == 0
    mid = rows[150]
    assert mid['distance_km'] == pytest.approx(1.5)
    assert mid['1']['delta_sec'] == 0
    assert mid['1']['time_sec'] == pytest.approx(45.)
    assert mid['2']['time_sec'] == pytest.approx(49.5)
    assert mid['2']['delta_sec'] == pytest.approx(4.5)
    assert mid['2']['speed_kmh'] < mid['1']['speed_kmh']
    assert mid['2']['throttle_pct'] is None
    assert all(r['2']['delta_sec'] >= 0 for r in rows)
    assert rows[-1]['2']['delta_sec'] == pytest.approx(9.)

def test_line_offset(laps):
    offset = line_offset_m(laps[REF], laps[WIDE], 1.5)
    assert offset == pytest.approx(11.12, abs=.01)
    # the reference's own line sits to the right of the wide lap
    assert line_offset_m(laps[WIDE], laps[REF], 1.5) == pytest.approx(-11.12, abs=.01)
    # no look-ahead position past the end of the lap
    assert line_offset_m(laps[REF], laps[WIDE], 2.995) is None

def test_offsets_in_rows(laps):
    rows = compare_laps(laps, [REF, WIDE])
    assert rows[100]['1']['offset_m'] == 0
    assert rows[100]['3']['offset_m'] == pytest.approx(11.12, abs=.01)
    assert rows[100]['3']['delta_sec'] == pytest.approx(0.)

def test_chart_point_limit(laps):
    distances = chart_distances(laps[REF], 100)
    assert len(distances) <= 100
    assert distances[0] == 0
    assert distances == sorted(distances)
    assert len(compare_laps(laps, [REF, SLOW], max_points=100)) == len(distances)
    assert compare_laps(laps, []) == []

def test_offset_geometry():
    assert gps.signed_offset_m((0., 0.001), (0., 0.), (0., 0.002)) == pytest.approx(0.)
    assert gps.signed_offset_m((0.0001, 0.), (0., 0.), (0., 0.)) == pytest.approx(11.12, abs=.01)
    assert gps.distance_m(0., 0., 0., 0.001) == pytest.approx(111.19, abs=.01)
