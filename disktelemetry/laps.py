# Copyright 2024, Scott Smith.  MIT License (see LICENSE).

from dataclasses import dataclass, fields
import logging
import math
import time

import numpy as np

from .base import (CAR_FILTERED, CAR_NONE, CAR_UNRESOLVED,
                   LapKey, LapPoint, LapSeries, LapSet)
from .errors import NoUsableLaps, UnknownChannel
from .sectors import compute_sector_times
from . import config
from . import unitconv

logger = logging.getLogger(__name__)

@dataclass
class LapChannels:
    time: str = 'SessionTime'
    lap: str = 'Lap'
    lap_dist: str = 'LapDist'
    lat: str = 'Lat'
    lon: str = 'Lon'
    altitude: str = 'Alt'
    session_num: str = 'SessionNum'
    car_idx: str = 'PlayerCarIdx'
    speed: str = 'Speed'
    throttle: str = 'Throttle'
    brake: str = 'Brake'
    gear: str = 'Gear'
    rpm: str = 'RPM'
    steering: str = 'SteeringWheelAngle'

    def required(self):
        return [self.time, self.lap, self.lap_dist]

    def all(self):
        return [getattr(self, f.name) for f in fields(self)]

# LapChannels attribute -> (LapPoint field, unit assumed when the file has none, wanted unit)
_point_channels = {
    'lat': ('lat', None, None),
    'lon': ('lon', None, None),
    'altitude': ('altitude_m', 'm', 'm'),
    'speed': ('speed_kmh', 'm/s', 'km/h'),
    'throttle': ('throttle_pct', 'ratio', 'pct'),
    'brake': ('brake_pct', 'ratio', 'pct'),
    'gear': ('gear', None, None),
    'rpm': ('rpm', None, None),
    'steering': ('steering_deg', 'rad', 'deg'),
}

def _numeric(table, name):
    # float column for a scalar numeric channel, else None
    if not table.has(name):
        return None
    col = table[name]
    if not isinstance(col, np.ndarray) or col.ndim != 1:
        return None
    return col.astype(np.float64)

def _converted(table, name, assumed, wanted):
    values = _numeric(table, name)
    if values is None or wanted is None:
        return values
    return np.asarray(unitconv.convert_or_keep(values, table.variable(name).unit, wanted, assumed),
                      dtype=np.float64)

def _optional(values):
    return [v if math.isfinite(v) else None for v in values.tolist()]

def build_laps(table, target_car_idx=None, channels=None, min_points=20,
               sector_boundaries=None):
    channels = channels or LapChannels()
    min_points = max(1, min_points)
    for name in channels.required():
        if not table.has(name):
            raise UnknownChannel(name)

    t1 = time.perf_counter()
    session_time = _numeric(table, channels.time)
    lap = _numeric(table, channels.lap)
    dist = _converted(table, channels.lap_dist, 'm', 'km')
    if session_time is None or lap is None or dist is None:
        raise NoUsableLaps('Time, lap and lap distance channels must be numeric scalars')

    keep = np.isfinite(session_time) & np.isfinite(lap) & np.isfinite(dist)

    extra = {}
    for attr, (point_field, assumed, wanted) in _point_channels.items():
        values = _converted(table, getattr(channels, attr), assumed, wanted)
        if values is not None:
            extra[point_field] = values
    if 'lat' in extra and 'lon' in extra:
        keep &= np.isfinite(extra['lat']) & np.isfinite(extra['lon'])
    else:
        # GPS only counts when both halves are there
        extra.pop('lat', None)
        extra.pop('lon', None)

    session = _numeric(table, channels.session_num)
    if session is not None:
        keep &= np.isfinite(session)

    car = _numeric(table, channels.car_idx)
    if car is None:
        car_filter = CAR_NONE
    elif target_car_idx is not None:
        keep &= car == target_car_idx
        car_filter = CAR_FILTERED
    else:
        logger.warning('%s present but the driver car is unknown, using all rows',
                       channels.car_idx)
        car_filter = CAR_UNRESOLVED

    idx = np.nonzero(keep)[0]
    lap_k = lap[idx].astype(np.int64)
    sess_k = (session[idx].astype(np.int64) if session is not None
              else np.zeros(len(idx), dtype=np.int64))
    order = np.lexsort((lap_k, sess_k)) # stable, so rows stay in record order
    idx = idx[order]
    lap_k = lap_k[order]
    sess_k = sess_k[order]
    splits = np.nonzero((lap_k[1:] != lap_k[:-1]) | (sess_k[1:] != sess_k[:-1]))[0] + 1

    laps = {}
    for group in np.split(np.arange(len(idx)), splits):
        if len(group) < min_points:
            continue
        lap_number = int(lap_k[group[0]])
        if lap_number <= 0:
            continue
        key = LapKey(int(sess_k[group[0]]) if session is not None else None, lap_number)
        laps[key] = _make_lap(key, idx[group], session_time, dist, extra, sector_boundaries)

    if not laps:
        raise NoUsableLaps('Could not find usable laps (missing %s?)'
                           % '/'.join(channels.required()))
    logger.debug('built %d laps from %d rows in %.3fs', len(laps), len(table),
                 time.perf_counter() - t1)
    return LapSet(laps, car_filter)

def _make_lap(key, rows, session_time, dist, extra, sector_boundaries):
    d = dist[rows]
    t = session_time[rows]
    d = d - np.min(d)
    t = t - np.min(t)

    columns = {'distance_km': d.tolist(), 'time_sec': t.tolist()}
    for point_field, values in extra.items():
        columns[point_field] = _optional(values[rows])
    names = list(columns)
    points = [LapPoint(**dict(zip(names, vals))) for vals in zip(*columns.values())]

    lap = LapSeries(key=key,
                    by_dist=[points[i] for i in np.argsort(d, kind='stable')],
                    by_time=[points[i] for i in np.argsort(t, kind='stable')],
                    distance_km=float(np.max(d)),
                    lap_time_sec=float(np.max(t)))
    if sector_boundaries is not None:
        lap.sector_times = compute_sector_times(lap, sector_boundaries)
    return lap

def completed_laps(lap_set, threshold=0.9):
    if not len(lap_set):
        raise NoUsableLaps('No laps to choose from')
    longest = max(lap.distance_km for lap in lap_set.values())
    done = {key: lap for key, lap in lap_set.items()
            if lap.distance_km >= longest * threshold
            and lap.lap_time_sec > 0 and math.isfinite(lap.lap_time_sec)}
    if not done:
        raise NoUsableLaps('No completed laps found, all laps appear to be incomplete')
    return LapSet(done, lap_set.car_filter)

def fastest_lap(lap_set, threshold=0.9):
    return min(completed_laps(lap_set, threshold).values(), key=lambda lap: lap.lap_time_sec)

def load_laps(ibt, settings=None, channels=None, progress=None, target_car_idx=None):
    settings = settings or config.Settings()
    channels = channels or LapChannels()
    names = channels.required() + [n for n in channels.all()
                                   if n not in channels.required() and ibt.has_channel(n)]
    table = ibt.decode(names,
                       stride=settings.stride_for(ibt.record_count),
                       chunk_records=settings.chunk_records,
                       progress=progress)
    if target_car_idx is None:
        target_car_idx = ibt.session_info.driver_car_idx
    return build_laps(table,
                      target_car_idx=target_car_idx,
                      channels=channels,
                      min_points=settings.min_lap_points,
                      sector_boundaries=ibt.session_info.sectors)
