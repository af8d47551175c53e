# Copyright 2024, Scott Smith.  MIT License (see LICENSE).

# Lines up several laps against a reference lap by lap distance, the
# way an overlay chart shows them.

from .interp import interpolate, interpolate_gps
from . import gps

LOOK_AHEAD_KM = 0.010

channels = ['speed_kmh', 'throttle_pct', 'brake_pct', 'gear', 'rpm', 'steering_deg']

def chart_distances(lap, max_points=500):
    distances = [p.distance_km for p in lap.by_dist]
    stride = max(1, -(-len(distances) // max(1, max_points))) # ceil
    return distances[::stride]

def line_offset_m(ref, other, distance_km):
    """Signed distance of other's line from ref's at distance_km.

    Positive is left of ref's direction of travel, judged from ref's
    position a short way further down the lap.
    """
    here = interpolate_gps(ref.by_dist, distance_km)
    ahead = interpolate_gps(ref.by_dist, distance_km + LOOK_AHEAD_KM)
    pos = interpolate_gps(other.by_dist, distance_km)
    if here is None or ahead is None or pos is None:
        return None
    return gps.signed_offset_m(pos, here, ahead)

def compare_laps(lap_set, keys, max_points=500):
    laps = [lap_set[k] for k in keys]
    if not laps:
        return []
    ref = laps[0]
    rows = []
    for d in chart_distances(ref, max_points):
        ref_time = interpolate(ref.by_dist, d, 'time_sec')
        row = {'distance_km': d}
        for key, lap in zip(keys, laps):
            entry = {ch: interpolate(lap.by_dist, d, ch) for ch in channels}
            t = interpolate(lap.by_dist, d, 'time_sec')
            entry['time_sec'] = t
            if lap is ref:
                entry['delta_sec'] = 0. if t is not None else None
                entry['offset_m'] = 0. if t is not None else None
            else:
                entry['delta_sec'] = t - ref_time if t is not None and ref_time is not None else None
                entry['offset_m'] = line_offset_m(ref, lap, d)
            row[str(key)] = entry
        rows.append(row)
    return rows
