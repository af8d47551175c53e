# Copyright 2024, Scott Smith.  MIT License (see LICENSE).

from dataclasses import dataclass, field
import typing

# Every variable descriptor in the table is this many bytes, and so is
# the shortest header that still carries the disk sub-header.
VAR_HEADER_SIZE = 144

# type code -> (name, element size in bytes, numpy dtype)
var_types = {
    0: ('char', 1, '<u1'),
    1: ('bool', 1, '<u1'),
    2: ('int', 4, '<i4'),
    3: ('bitField', 4, '<u4'),
    4: ('float', 4, '<f4'),
    5: ('double', 8, '<f8'),
}

@dataclass(eq=False)
class DiskSubHeader:
    session_start_date: int # seconds since the epoch
    session_start_time: float # session time, seconds
    session_end_time: float
    lap_count: int
    record_count: int

@dataclass(eq=False)
class Header:
    ver: int
    status: int
    tick_rate: int
    session_info_update: int
    session_info_len: int
    session_info_offset: int
    num_vars: int
    var_header_offset: int
    num_buf: int
    buf_len: int
    header_bytes: int
    disk_sub_header: typing.Optional[DiskSubHeader] = None

    @property
    def data_start(self):
        return self.session_info_offset + self.session_info_len

@dataclass(eq=False)
class Variable:
    index: int
    name: str
    type_code: int
    offset: int
    count: int
    count_as_time: int
    unit: str
    desc: str

    @property
    def type_name(self):
        if self.type_code in var_types:
            return var_types[self.type_code][0]
        return 'unknown(%d)' % self.type_code

    @property
    def known(self):
        return self.type_code in var_types

    @property
    def byte_size(self):
        # unknown types have no size, treat them as bytes so range checks still work
        size = var_types[self.type_code][1] if self.known else 1
        return size * max(self.count, 1)

@dataclass(eq=False)
class SectorBoundary:
    sector_num: int
    start_pct: float # percent of lap distance, 0..100

@dataclass(eq=False)
class SectorTime:
    sector_num: int
    time_sec: float # elapsed since the previous boundary
    distance_km: float # where this boundary sits in the lap
    length_km: float # distance since the previous boundary

@dataclass(eq=False, slots=True)
class LapPoint:
    distance_km: float
    time_sec: float
    lat: typing.Optional[float] = None
    lon: typing.Optional[float] = None
    altitude_m: typing.Optional[float] = None
    speed_kmh: typing.Optional[float] = None
    throttle_pct: typing.Optional[float] = None
    brake_pct: typing.Optional[float] = None
    gear: typing.Optional[float] = None
    rpm: typing.Optional[float] = None
    steering_deg: typing.Optional[float] = None

class LapKey(typing.NamedTuple):
    session_num: typing.Optional[int]
    lap: int

    def __str__(self):
        return str(self.lap) if self.session_num is None else '%d:%d' % (self.session_num,
                                                                         self.lap)

    @classmethod
    def parse(cls, text):
        if ':' in text:
            session, lap = text.split(':', 1)
            return cls(int(session), int(lap))
        return cls(None, int(text))

    def sort_key(self):
        return (self.session_num is not None, self.session_num or 0, self.lap)

@dataclass(eq=False)
class LapSeries:
    key: LapKey
    by_dist: typing.List[LapPoint]
    by_time: typing.List[LapPoint]
    distance_km: float
    lap_time_sec: float
    sector_times: typing.List[SectorTime] = field(default_factory=list)

    @property
    def lap_number(self):
        return self.key.lap

    @property
    def session_num(self):
        return self.key.session_num

    @property
    def point_count(self):
        return len(self.by_dist)

# car_filter values
CAR_FILTERED = 'filtered' # rows restricted to the driver's car
CAR_UNRESOLVED = 'unresolved' # car index channel present, driver's car unknown
CAR_NONE = 'none' # no car index channel

@dataclass(eq=False)
class LapSet:
    laps: typing.Dict[LapKey, LapSeries]
    car_filter: str = CAR_NONE

    def keys(self):
        return sorted(self.laps.keys(), key=LapKey.sort_key)

    def values(self):
        return [self.laps[k] for k in self.keys()]

    def items(self):
        return [(k, self.laps[k]) for k in self.keys()]

    def get(self, key, default=None):
        return self.laps.get(key, default)

    def __getitem__(self, key):
        return self.laps[key]

    def __contains__(self, key):
        return key in self.laps

    def __iter__(self):
        return iter(self.keys())

    def __len__(self):
        return len(self.laps)
