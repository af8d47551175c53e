# Copyright 2024, Scott Smith.  MIT License (see LICENSE).

from dataclasses import dataclass
import struct

from disktelemetry.base import LapKey, LapPoint, LapSeries

# type name -> (type code, element size, struct code)
TYPES = {
    'char': (0, 1, 'B'),
    'bool': (1, 1, '?'),
    'int': (2, 4, 'i'),
    'bitField': (3, 4, 'I'),
    'float': (4, 4, 'f'),
    'double': (5, 8, 'd'),
}

SESSION_YAML = '''---
WeekendInfo:
 TrackName: lagunaseca
 TrackID: 47
 TrackLength: 3.60 km
 TrackLengthOfficial: 3.60 km
 TrackDisplayName: WeatherTech Raceway Laguna Seca
 TrackDisplayShortName: Laguna Seca
 TrackConfigName: Full Course
 TrackCity: Salinas
 TrackCountry: USA
 TrackNumTurns: 11
 Category: Road
 EventType: Practice
 Official: 0
 WeekendOptions:
  Date: 2024-05-01

SessionInfo:
 Sessions:
 - SessionNum: 0
   SessionLaps: unlimited
   SessionTime: 1800.0000 sec
   SessionType: Practice
   SessionName: PRACTICE
   ResultsPositions:
   - Position: 1
     ClassPosition: 0
     CarIdx: 3
     Lap: 5
     Time: 82.5010
     FastestLap: 4
     FastestTime: 82.5010
     LapsComplete: 6
     Incidents: 2
 - SessionNum: 1
   SessionLaps: 20
   SessionTime: unlimited
   SessionType: Race
   SessionName: RACE
   ResultsPositions:

DriverInfo:
 DriverCarIdx: 3
 Drivers:
 - CarIdx: 0
   UserName: Pace Car
   CarScreenName: safety pcporsche911cup
   CarPath: safety pcporsche911cup
 - CarIdx: 3
   UserName: Jane Driver
   CarScreenName: Mazda MX-5 Cup
   CarPath: mx5 mx52016

SplitTimeInfo:
 Sectors:
 - SectorNum: 0
   SectorStartPct: 0.000000
 - SectorNum: 1
   SectorStartPct: 0.333333
 - SectorNum: 2
   SectorStartPct: 0.666666
...
'''

@dataclass
class Chan:
    name: str
    type: str = 'float'
    count: int = 1
    unit: str = ''
    desc: str = ''
    type_code: int = None # override, for unknown types
    size: int = None # element size for unknown types

    def code(self):
        return TYPES[self.type][0] if self.type_code is None else self.type_code

    def elem_size(self):
        return TYPES[self.type][1] if self.size is None else self.size

def _pack_value(chan, value):
    if chan.type_code is not None:
        return bytes(chan.elem_size() * chan.count)
    _, size, code = TYPES[chan.type]
    if chan.type == 'char' and chan.count > 1:
        raw = (value or '').encode('utf-8')[:chan.count]
        return raw + bytes(chan.count - len(raw))
    if chan.count > 1:
        return struct.pack('<%d%s' % (chan.count, code), *value)
    return struct.pack('<' + code, value)

def build_ibt(channels, records, session_info=SESSION_YAML, disk_header=True,
              record_count=None, num_buf=1, tick_rate=60, lap_count=0,
              start_date=1714564800, trailing=b''):
    """Assemble a disk telemetry image.

    records is a list of {channel name: value} dicts, missing values are
    written as zero bytes.
    """
    header_len = 144 if disk_header else 40
    offsets = []
    buf_len = 0
    for c in channels:
        offsets.append(buf_len)
        buf_len += c.elem_size() * c.count
    buf_len = max(buf_len, 1)

    session = session_info.encode('utf-8') + b'\0\0\0\0'
    var_header_offset = header_len
    session_info_offset = var_header_offset + 144 * len(channels)

    head = struct.pack('<10i', 2, 1, tick_rate, 0, len(session), session_info_offset,
                       len(channels), var_header_offset, num_buf, buf_len)
    if disk_header:
        head += bytes(112 - len(head))
        head += struct.pack('<i4xddii', start_date, 0., len(records) / tick_rate, lap_count,
                            len(records) if record_count is None else record_count)
    var_table = b''.join(struct.pack('<4i32s64s32s', c.code(), offs, c.count, 0,
                                     c.name.encode(), c.desc.encode(), c.unit.encode())
                         for c, offs in zip(channels, offsets))
    data = b''
    for rec in records:
        row = b''.join(_pack_value(c, rec[c.name]) if c.name in rec
                       else bytes(c.elem_size() * c.count)
                       for c in channels)
        data += row + bytes(buf_len - len(row))
    return head + var_table + session + data + trailing

# 50 records, lap 1 then lap 2, lap distance in meters
LAP_CHANNELS = [Chan('SessionTime', 'double', unit='s'),
                Chan('Lap', 'int'),
                Chan('LapDist', 'float', unit='m')]

def two_lap_records(per_lap=25, step_m=40.):
    return [{'SessionTime': i * 0.1,
             'Lap': 1 + i // per_lap,
             'LapDist': (i % per_lap) * step_m}
            for i in range(2 * per_lap)]

def make_lap(points, key=None):
    by_dist = sorted(points, key=lambda p: p.distance_km)
    by_time = sorted(points, key=lambda p: p.time_sec)
    return LapSeries(key=key or LapKey(None, 1),
                     by_dist=by_dist,
                     by_time=by_time,
                     distance_km=max(p.distance_km for p in points),
                     lap_time_sec=max(p.time_sec for p in points))

def straight_lap(length_km=3., lap_time=90., count=301, lat=0., lon0=0., alt=None, key=None,
                 speed_scale=1.):
    # heading east along a line of latitude, about 111 m per 0.001 deg
    points = []
    for i in range(count):
        frac = i / (count - 1)
        d = frac * length_km
        points.append(LapPoint(distance_km=d,
                               time_sec=frac * lap_time * speed_scale,
                               lat=lat,
                               lon=lon0 + d / 111.19492664455873,
                               altitude_m=None if alt is None else alt + d,
                               speed_kmh=length_km / (lap_time * speed_scale) * 3600))
    return make_lap(points, key)

