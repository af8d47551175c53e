# Copyright 2024, Scott Smith.  MIT License (see LICENSE).

import pytest

from disktelemetry.base import SectorBoundary
from disktelemetry.session_info import (load_document, normalize_sector_boundaries,
                                        parse_lines, parse_session_info,
                                        scale_fractional_sectors)

from ibt_builder import SESSION_YAML

# Unquoted names like these are what trip up strict YAML parsers.
BROKEN_YAML = SESSION_YAML.replace('UserName: Pace Car', 'UserName: Pace: Car') \
                          .replace('CarPath: mx5 mx52016', 'CarPath: *mx5')

def _pairs(sectors):
    return [(s.sector_num, pytest.approx(s.start_pct)) for s in sectors]

def _check_typed(info):
    w = info.weekend
    assert w.track_name == 'lagunaseca'
    assert w.track_id == 47
    assert w.track_length_km == pytest.approx(3.6)
    assert w.track_display_name == 'WeatherTech Raceway Laguna Seca'
    assert w.track_display_short_name == 'Laguna Seca'
    assert w.track_config_name == 'Full Course'
    assert w.track_num_turns == 11
    assert w.event_type == 'Practice'
    assert w.date == '2024-05-01'
    assert w.track_state is None

    assert info.driver_car_idx == 3
    assert [d.car_idx for d in info.drivers] == [0, 3]
    assert info.driver_name == 'Jane Driver'
    assert info.car_name == 'Mazda MX-5 Cup'

    practice, race = info.sessions
    assert practice.session_num == 0
    assert practice.session_laps is None
    assert practice.session_time == pytest.approx(1800.)
    assert practice.session_type == 'Practice'
    result = practice.results[0]
    assert (result.position, result.car_idx, result.fastest_lap) == (1, 3, 4)
    assert result.fastest_time == pytest.approx(82.501)
    assert result.incidents == 2
    assert race.session_laps == 20
    assert race.session_time is None
    assert race.results == []
    assert info.session(1) is race

    assert _pairs(info.sectors) == [(0, 0.), (1, 33.3333), (2, 66.6666), (3, 100.)]

def test_parse_valid_yaml():
    _check_typed(parse_session_info(SESSION_YAML))

def test_invalid_yaml_falls_back_to_line_parser():
    info = parse_session_info(BROKEN_YAML)
    _check_typed(info)
    assert info.drivers[0].user_name == 'Pace: Car'
    assert info.drivers[1].car_path == '*mx5'

def test_load_document_fallback_matches_yaml_shape():
    strict = load_document(SESSION_YAML)
    tolerant = parse_lines(SESSION_YAML)
    assert tolerant['DriverInfo']['DriverCarIdx'] == strict['DriverInfo']['DriverCarIdx']
    assert tolerant['SessionInfo']['Sessions'][0]['ResultsPositions'][0]['Time'] == \
        pytest.approx(82.501)
    assert len(tolerant['SplitTimeInfo']['Sectors']) == 3
    assert tolerant['SessionInfo']['Sessions'][1]['ResultsPositions'] is None

def test_line_parser_details():
    doc = parse_lines('Top:\n'
                      '  Name: "quoted: value"\n'
                      '  Count: 12\n'
                      '  Ratio: 0.25\n'
                      '  Items:\n'
                      '    - plain\n'
                      '    - Key: 1\n'
                      '      Other: two words\n'
                      '  Empty:\n'
                      'Next: 3\n')
    assert doc == {'Top': {'Name': 'quoted: value',
                           'Count': 12,
                           'Ratio': 0.25,
                           'Items': ['plain', {'Key': 1, 'Other': 'two words'}],
                           'Empty': None},
                   'Next': 3}

def test_missing_everything_is_empty_not_an_error():
    info = parse_session_info('')
    assert info.weekend.track_name is None
    assert info.drivers == []
    assert info.sessions == []
    assert info.driver_name is None
    assert info.car_name is None
    assert _pairs(info.sectors) == [(0, 0.), (1, 100.)]

def test_car_name_falls_back_to_first_driver():
    info = parse_session_info('DriverInfo:\n'
                              ' Drivers:\n'
                              ' - CarIdx: 7\n'
                              '   UserName: Solo\n'
                              '   CarScreenName: Skip Barber\n')
    assert info.driver_car_idx is None
    assert info.car_name == 'Skip Barber'

@pytest.mark.parametrize('given,expected', [
    ([], [(0, 0.), (1, 100.)]),
    ([(0, 0.), (1, 50.)], [(0, 0.), (1, 50.), (2, 100.)]),
    ([(2, 60.), (1, 30.), (1, 99.)], [(0, 0.), (1, 30.), (2, 60.), (3, 100.)]),
    ([(0, 0.), (1, .5)], [(0, 0.), (1, .5), (2, 100.)]),
    ([(0, 0.), (1, 40.), (2, 100.)], [(0, 0.), (1, 40.), (2, 100.)]),
])
def test_normalize_sector_boundaries(given, expected):
    result = normalize_sector_boundaries([SectorBoundary(n, p) for n, p in given])
    assert _pairs(result) == expected

@pytest.mark.parametrize('given,expected', [
    ([(0, 0.), (1, .25), (2, .5)], [(0, 0.), (1, 25.), (2, 50.)]),
    ([(0, 0.), (1, 25.), (2, 50.)], [(0, 0.), (1, 25.), (2, 50.)]),
    ([(0, 0.)], [(0, 0.)]),
    ([], []),
])
def test_fractional_sectors_scaled_once(given, expected):
    result = scale_fractional_sectors([SectorBoundary(n, p) for n, p in given])
    assert _pairs(result) == expected

def test_session_sectors_as_fractions():
    info = parse_session_info('SplitTimeInfo:\n'
                              ' Sectors:\n'
                              ' - SectorNum: 0\n'
                              '   SectorStartPct: 0.000000\n'
                              ' - SectorNum: 1\n'
                              '   SectorStartPct: 0.500000\n')
    assert _pairs(info.sectors) == [(0, 0.), (1, 50.), (2, 100.)]
