# Copyright 2024, Scott Smith.  MIT License (see LICENSE).

import pytest

from disktelemetry.base import LapSet

from ibt_builder import build_ibt

@pytest.fixture
def ibt_file(tmp_path):
    def write(*args, name='test.ibt', **kwargs):
        path = tmp_path / name
        path.write_bytes(build_ibt(*args, **kwargs))
        return str(path)
    return write

@pytest.fixture
def lap_set_of():
    def make(*laps, car_filter='none'):
        return LapSet({lap.key: lap for lap in laps}, car_filter)
    return make
