# Copyright 2024, Scott Smith.  MIT License (see LICENSE).

import bisect
import math
import operator

def _getter(f):
    return operator.attrgetter(f) if isinstance(f, str) else f

def interpolate(points, x, get_y, key='distance_km'):
    """Linear interpolation of get_y over points sorted ascending by key.

    key and get_y are attribute names or callables.  Returns None when x
    is outside the covered range (no extrapolation), or when either
    neighbor has no y value.
    """
    if not points or x is None or math.isnan(x):
        return None
    key = _getter(key)
    get_y = _getter(get_y)
    if x < key(points[0]) or x > key(points[-1]):
        return None

    i = bisect.bisect_right(points, x, key=key) - 1 # greatest i with key <= x
    if i < 0:
        return None
    if i >= len(points) - 1:
        return get_y(points[-1])

    p0 = points[i]
    p1 = points[i + 1]
    y0 = get_y(p0)
    y1 = get_y(p1)
    if y0 is None or y1 is None:
        return None
    x0 = key(p0)
    span = key(p1) - x0
    if span == 0:
        return y0
    return y0 + (y1 - y0) * (x - x0) / span

def interpolate_gps(points, distance_km):
    lat = interpolate(points, distance_km, 'lat')
    lon = interpolate(points, distance_km, 'lon')
    if lat is None or lon is None:
        return None
    return lat, lon
