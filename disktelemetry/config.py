# Copyright 2024, Scott Smith.  MIT License (see LICENSE).

import configparser
from dataclasses import dataclass, fields
import logging

logger = logging.getLogger(__name__)

# option name -> ini section
_sections = {
    'target_points': 'decode',
    'chunk_records': 'decode',
    'min_lap_points': 'laps',
    'completion_threshold': 'laps',
    'chart_points': 'laps',
    'sample_count': 'trackmap',
}

@dataclass
class Settings:
    target_points: int = 10000 # roughly how many samples to decode per file
    chunk_records: int = 1024
    min_lap_points: int = 20
    completion_threshold: float = 0.9 # fraction of the longest lap
    chart_points: int = 500
    sample_count: int = 900

    def stride_for(self, record_count):
        return max(1, record_count // max(1, self.target_points))

    @classmethod
    def from_config(cls, config):
        settings = cls()
        for f in fields(cls):
            section = _sections[f.name]
            try:
                if f.type is float:
                    value = config.getfloat(section, f.name)
                else:
                    value = config.getint(section, f.name)
            except (configparser.NoSectionError, configparser.NoOptionError):
                continue
            setattr(settings, f.name, value)
        return settings

def load_settings(fname=None):
    config = configparser.ConfigParser()
    if fname:
        read = config.read(fname, encoding='utf-8')
        if not read:
            logger.warning('Unable to read config file %s, using defaults', fname)
        else:
            logger.debug('read settings from %s', fname)
    return Settings.from_config(config)
