# Copyright 2024, Scott Smith.  MIT License (see LICENSE).

from .base import SectorTime
from .interp import interpolate
from .session_info import normalize_sector_boundaries

def compute_sector_times(lap, boundaries):
    """Per-sector elapsed times for one lap.

    Each boundary is placed at start_pct of the lap's distance and timed
    by interpolating the distance-sorted points.  Boundaries the lap
    doesn't cover are skipped.  The boundary at the start line only
    establishes the baseline; every other boundary yields the time and
    distance since the previous resolved boundary, tagged with its own
    sector number.
    """
    result = []
    prev_time = 0.
    prev_dist = 0.
    for b in normalize_sector_boundaries(boundaries):
        dist = b.start_pct / 100 * lap.distance_km
        t = interpolate(lap.by_dist, dist, 'time_sec')
        if t is None:
            continue
        if dist != 0:
            result.append(SectorTime(sector_num=b.sector_num,
                                     time_sec=t - prev_time,
                                     distance_km=dist,
                                     length_km=dist - prev_dist))
        prev_time = t
        prev_dist = dist
    return result
