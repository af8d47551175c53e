# Copyright 2024, Scott Smith.  MIT License (see LICENSE).

# The session info block is YAML, mostly.  Driver and team names are
# written unquoted so a name with a ':' or a leading '*' is enough to
# make a strict parser give up on the whole document.  When that
# happens we fall back to a tolerant line parser that understands the
# small subset of YAML actually emitted (nested mappings, "- key: val"
# lists, scalars).

from dataclasses import dataclass, field
import logging
import math
import re
import typing

import yaml

from .base import SectorBoundary

logger = logging.getLogger(__name__)

_key_re = re.compile(r'^([^\s\'"-][^:]*):(?:\s+(.*))?$')
_number_re = re.compile(r'^\s*([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)')

def _scalar(text):
    text = text.strip()
    if not text:
        return None
    if len(text) >= 2 and text[0] == text[-1] and text[0] in '"\'':
        return text[1:-1]
    for conv in (int, float):
        try:
            return conv(text)
        except ValueError:
            pass
    return text

def _tokens(text):
    for line in text.splitlines():
        content = line.strip()
        if not content or content in ('---', '...') or content.startswith('#'):
            continue
        indent = len(line) - len(line.lstrip())
        if content == '-' or content.startswith('- '):
            rest = content[1:].lstrip()
            if _key_re.match(rest):
                # list item that is itself a mapping: the first key lines
                # up with the keys on the following lines
                yield indent, '-'
                yield indent + len(content) - len(rest), rest
                continue
        yield indent, content

def _parse_block(tokens, pos):
    indent, content = tokens[pos]
    if content == '-' or content.startswith('- '):
        return _parse_list(tokens, pos, indent)
    return _parse_map(tokens, pos, indent)

def _parse_map(tokens, pos, indent):
    result = {}
    while pos < len(tokens):
        ind, content = tokens[pos]
        if ind < indent or (ind == indent and content.startswith('-')):
            break
        pos += 1
        m = _key_re.match(content) if ind == indent else None
        if not m:
            logger.debug('session info: skipping line %r', content)
            continue
        key, value = m.group(1).strip(), m.group(2)
        if value:
            result[key] = _scalar(value)
        elif pos < len(tokens) and (tokens[pos][0] > indent
                                    or (tokens[pos][0] == indent
                                        and tokens[pos][1].startswith('-'))):
            result[key], pos = _parse_block(tokens, pos)
        else:
            result[key] = None
    return result, pos

def _parse_list(tokens, pos, indent):
    items = []
    while pos < len(tokens):
        ind, content = tokens[pos]
        if ind != indent or not (content == '-' or content.startswith('- ')):
            break
        pos += 1
        rest = content[1:].strip()
        if rest:
            items.append(_scalar(rest))
        elif pos < len(tokens) and tokens[pos][0] > indent:
            item, pos = _parse_block(tokens, pos)
            items.append(item)
        else:
            items.append(None)
    return items, pos

def parse_lines(text):
    tokens = list(_tokens(text))
    result = {}
    pos = 0
    while pos < len(tokens):
        # anything indented past the top level without a parent is noise
        block, new_pos = _parse_map(tokens, pos, tokens[pos][0])
        result.update(block)
        pos = max(new_pos, pos + 1)
    return result

def load_document(text):
    try:
        doc = yaml.safe_load(text)
    except yaml.YAMLError as e:
        logger.debug('session info is not strict YAML (%s), using line parser',
                     str(e).splitlines()[0] if str(e) else type(e).__name__)
        doc = None
    if not isinstance(doc, dict):
        doc = parse_lines(text)
    return doc

def _get(d, *path):
    for p in path:
        if not isinstance(d, dict):
            return None
        d = d.get(p)
    return d

def _float(v):
    if isinstance(v, bool) or v is None:
        return None
    if isinstance(v, (int, float)):
        return float(v)
    m = _number_re.match(str(v))
    return float(m.group(1)) if m else None

def _int(v):
    if isinstance(v, bool) or v is None:
        return None
    if isinstance(v, int):
        return v
    f = _float(v)
    return int(f) if f is not None and math.isfinite(f) else None

def _str(v):
    return None if v is None else str(v)

def _list(v):
    return [i for i in v if isinstance(i, dict)] if isinstance(v, list) else []

@dataclass(eq=False)
class WeekendInfo:
    track_name: typing.Optional[str] = None
    track_id: typing.Optional[int] = None
    track_length_km: typing.Optional[float] = None
    track_length_official_km: typing.Optional[float] = None
    track_display_name: typing.Optional[str] = None
    track_display_short_name: typing.Optional[str] = None
    track_config_name: typing.Optional[str] = None
    track_city: typing.Optional[str] = None
    track_state: typing.Optional[str] = None
    track_country: typing.Optional[str] = None
    track_num_turns: typing.Optional[int] = None
    track_type: typing.Optional[str] = None
    category: typing.Optional[str] = None
    official: typing.Optional[int] = None
    event_type: typing.Optional[str] = None
    date: typing.Optional[str] = None

@dataclass(eq=False)
class Driver:
    car_idx: typing.Optional[int]
    user_name: typing.Optional[str]
    car_screen_name: typing.Optional[str]
    car_path: typing.Optional[str]

@dataclass(eq=False)
class ResultPosition:
    position: typing.Optional[int]
    class_position: typing.Optional[int]
    car_idx: typing.Optional[int]
    lap: typing.Optional[int]
    time: typing.Optional[float]
    fastest_lap: typing.Optional[int]
    fastest_time: typing.Optional[float]
    laps_complete: typing.Optional[int]
    incidents: typing.Optional[int]

@dataclass(eq=False)
class Session:
    session_num: typing.Optional[int]
    session_type: typing.Optional[str]
    session_name: typing.Optional[str]
    session_laps: typing.Optional[int] # None is unlimited
    session_time: typing.Optional[float] # seconds, None is unlimited
    results: typing.List[ResultPosition] = field(default_factory=list)

@dataclass(eq=False)
class SessionInfo:
    weekend: WeekendInfo = field(default_factory=WeekendInfo)
    driver_car_idx: typing.Optional[int] = None
    drivers: typing.List[Driver] = field(default_factory=list)
    sessions: typing.List[Session] = field(default_factory=list)
    sectors: typing.List[SectorBoundary] = field(default_factory=list) # normalized
    raw: dict = field(default_factory=dict, repr=False)

    @property
    def driver(self):
        for d in self.drivers:
            if d.car_idx is not None and d.car_idx == self.driver_car_idx:
                return d
        return self.drivers[0] if self.drivers else None

    @property
    def driver_name(self):
        d = self.driver
        return d.user_name if d else None

    @property
    def car_name(self):
        d = self.driver
        return d.car_screen_name if d else None

    def session(self, session_num):
        for s in self.sessions:
            if s.session_num == session_num:
                return s
        return None

def _weekend(d):
    return WeekendInfo(
        track_name=_str(_get(d, 'TrackName')),
        track_id=_int(_get(d, 'TrackID')),
        track_length_km=_float(_get(d, 'TrackLength')),
        track_length_official_km=_float(_get(d, 'TrackLengthOfficial')),
        track_display_name=_str(_get(d, 'TrackDisplayName')),
        track_display_short_name=_str(_get(d, 'TrackDisplayShortName')),
        track_config_name=_str(_get(d, 'TrackConfigName')),
        track_city=_str(_get(d, 'TrackCity')),
        track_state=_str(_get(d, 'TrackState')),
        track_country=_str(_get(d, 'TrackCountry')),
        track_num_turns=_int(_get(d, 'TrackNumTurns')),
        track_type=_str(_get(d, 'TrackType')),
        category=_str(_get(d, 'Category')),
        official=_int(_get(d, 'Official')),
        event_type=_str(_get(d, 'EventType')),
        date=_str(_get(d, 'WeekendOptions', 'Date')))

def _result(d):
    return ResultPosition(
        position=_int(d.get('Position')),
        class_position=_int(d.get('ClassPosition')),
        car_idx=_int(d.get('CarIdx')),
        lap=_int(d.get('Lap')),
        time=_float(d.get('Time')),
        fastest_lap=_int(d.get('FastestLap')),
        fastest_time=_float(d.get('FastestTime')),
        laps_complete=_int(d.get('LapsComplete')),
        incidents=_int(d.get('Incidents')))

def _session(d):
    return Session(
        session_num=_int(d.get('SessionNum')),
        session_type=_str(d.get('SessionType')),
        session_name=_str(d.get('SessionName')),
        session_laps=_int(d.get('SessionLaps')),
        session_time=_float(d.get('SessionTime')),
        results=[_result(r) for r in _list(d.get('ResultsPositions'))])

def _sector(d):
    num = _int(d.get('SectorNum'))
    pct = _float(d.get('SectorStartPct'))
    if num is None or pct is None or not math.isfinite(pct):
        return None
    return SectorBoundary(num, pct)

def scale_fractional_sectors(sectors):
    # SectorStartPct is written as a fraction of a lap
    if (sectors and all(s.start_pct <= 1 for s in sectors)
        and any(s.start_pct > 0 for s in sectors)):
        return [SectorBoundary(s.sector_num, s.start_pct * 100) for s in sectors]
    return sectors

def normalize_sector_boundaries(sectors):
    sectors = [s for s in sectors if math.isfinite(s.start_pct)]
    result = []
    seen = set()
    for s in sectors:
        if s.sector_num in seen:
            continue
        seen.add(s.sector_num)
        result.append(SectorBoundary(s.sector_num, s.start_pct))
    result.sort(key=lambda s: s.sector_num)

    if 0 not in seen:
        result.insert(0, SectorBoundary(0, 0.))
    if result[-1].start_pct < 100:
        result.append(SectorBoundary(max(s.sector_num for s in result) + 1, 100.))
    return result

def parse_session_info(text):
    doc = load_document(text or '')
    drivers = [Driver(car_idx=_int(d.get('CarIdx')),
                      user_name=_str(d.get('UserName')),
                      car_screen_name=_str(d.get('CarScreenName')),
                      car_path=_str(d.get('CarPath')))
               for d in _list(_get(doc, 'DriverInfo', 'Drivers'))]
    sectors = [s for s in map(_sector, _list(_get(doc, 'SplitTimeInfo', 'Sectors'))) if s]
    return SessionInfo(
        weekend=_weekend(_get(doc, 'WeekendInfo')),
        driver_car_idx=_int(_get(doc, 'DriverInfo', 'DriverCarIdx')),
        drivers=drivers,
        sessions=[_session(s) for s in _list(_get(doc, 'SessionInfo', 'Sessions'))],
        sectors=normalize_sector_boundaries(scale_fractional_sectors(sectors)),
        raw=doc)
