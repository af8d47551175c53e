# Copyright 2024, Scott Smith.  MIT License (see LICENSE).

import numpy as np

# Everything here works on track-sized areas, a few km across, so a
# spherical earth and a flat local projection are accurate to well
# under the GPS noise.

EARTH_RADIUS = 6371000. # meters, mean radius
METERS_PER_DEG = EARTH_RADIUS * np.pi / 180

# lat, lon = degrees, returns meters.  Works on scalars or arrays.
def distance_m(lat1, lon1, lat2, lon2):
    # haversine
    lat1 = np.radians(lat1)
    lat2 = np.radians(lat2)
    dlat = lat2 - lat1
    dlon = np.radians(np.subtract(lon2, lon1))
    a = np.sin(dlat / 2) ** 2 + np.cos(lat1) * np.cos(lat2) * np.sin(dlon / 2) ** 2
    return 2 * EARTH_RADIUS * np.arctan2(np.sqrt(a), np.sqrt(1 - a))

# equirectangular projection around (lat0, lon0), returns x (east), y (north) in meters
def local_xy(lat, lon, lat0, lon0):
    return (np.subtract(lon, lon0) * (METERS_PER_DEG * np.cos(np.radians(lat0))),
            np.subtract(lat, lat0) * METERS_PER_DEG)

def signed_offset_m(point, start, end):
    """Perpendicular distance of point from the line start->end.

    All three are (lat, lon).  Positive is left of the direction of
    travel.  A zero length line gives the plain distance to start.
    """
    px, py = local_xy(point[0], point[1], start[0], start[1])
    dx, dy = local_xy(end[0], end[1], start[0], start[1])
    length = np.hypot(dx, dy)
    if length == 0:
        return float(np.hypot(px, py))
    return float((dx * py - dy * px) / length)
