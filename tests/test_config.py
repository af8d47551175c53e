# Copyright 2024, Scott Smith.  MIT License (see LICENSE).

import logging

import pytest

from disktelemetry.config import Settings, load_settings

def test_defaults():
    s = load_settings()
    assert s == Settings()
    assert s.target_points == 10000
    assert s.completion_threshold == 0.9
    assert s.sample_count == 900

@pytest.mark.parametrize('records,stride', [(0, 1), (9999, 1), (20000, 2), (123456, 12)])
def test_stride_for(records, stride):
    assert Settings().stride_for(records) == stride

def test_ini_overrides(tmp_path):
    path = tmp_path / 'settings.ini'
    path.write_text('[decode]\n'
                    'target_points = 50\n'
                    '\n'
                    '[laps]\n'
                    'completion_threshold = 0.8\n'
                    'unrelated = yes\n')
    s = load_settings(str(path))
    assert s.target_points == 50
    assert s.completion_threshold == 0.8
    assert s.chunk_records == 1024
    assert s.min_lap_points == 20
    assert s.stride_for(120) == 2

def test_missing_file_warns(tmp_path, caplog):
    with caplog.at_level(logging.WARNING):
        s = load_settings(str(tmp_path / 'nope.ini'))
    assert s == Settings()
    assert 'nope.ini' in caplog.text
