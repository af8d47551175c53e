# Copyright 2024, Scott Smith.  MIT License (see LICENSE).

# Track maps are built from two laps driven along the left and right
# edges of the track.  Both edges are resampled at the same lap
# distances so point i of each side lines up across the track.

import dataclasses
from dataclasses import dataclass, field
import logging
import math
import re
import typing
import unicodedata

import dacite

from .errors import EmptyMesh, InsufficientLapData, InvalidTrackMapDocument
from .interp import interpolate, interpolate_gps

logger = logging.getLogger(__name__)

TRACK_MAP_VERSION = 1

@dataclass(eq=False)
class TrackMapSide:
    lat: float
    lon: float
    altitude_m: typing.Optional[float] = None

@dataclass(eq=False)
class TrackMapPoint:
    distance_km: float
    left: TrackMapSide
    right: TrackMapSide

@dataclass(eq=False)
class TrackMapCorner:
    distance_km: float
    lat: float
    lon: float
    altitude_m: typing.Optional[float] = None

@dataclass(eq=False)
class TrackMap:
    version: int
    track_key: typing.Optional[str] # None for previews, which can't be saved
    track_name: typing.Optional[str]
    track_config_name: typing.Optional[str]
    track_id: typing.Optional[int]
    points: typing.List[TrackMapPoint]
    left_lap: typing.Optional[typing.Union[int, str]] = None # lap keys the edges came from
    right_lap: typing.Optional[typing.Union[int, str]] = None
    corners: typing.List[TrackMapCorner] = field(default_factory=list)

    @property
    def is_preview(self):
        return not self.track_key

def _altitude(points, distance_km):
    return interpolate(points, distance_km, 'altitude_m')

def build_track_map(left_points, right_points, left_lap, right_lap,
                    track_key=None, track_name=None, track_config_name=None, track_id=None,
                    corners=None, sample_count=900):
    if len(left_points) < 2 or len(right_points) < 2:
        raise InsufficientLapData('Both edge laps must contain at least two points')
    cover = min(left_points[-1].distance_km, right_points[-1].distance_km)
    if not math.isfinite(cover) or cover <= 0:
        raise InsufficientLapData('Edge laps do not contain usable lap distance values')

    count = max(2, int(sample_count))
    points = []
    for i in range(count):
        distance_km = i / (count - 1) * cover
        left = interpolate_gps(left_points, distance_km)
        right = interpolate_gps(right_points, distance_km)
        if left is None or right is None:
            continue
        points.append(TrackMapPoint(
            distance_km,
            TrackMapSide(left[0], left[1], _altitude(left_points, distance_km)),
            TrackMapSide(right[0], right[1], _altitude(right_points, distance_km))))
    if len(points) < 2:
        raise EmptyMesh('Unable to build a track mesh from the selected laps')
    if len(points) < count:
        logger.debug('track map: dropped %d of %d samples without GPS on both sides',
                     count - len(points), count)

    placed = []
    for c in corners or []:
        altitude = c.altitude_m
        if altitude is None:
            left_alt = _altitude(left_points, c.distance_km)
            right_alt = _altitude(right_points, c.distance_km)
            if left_alt is not None and right_alt is not None:
                altitude = (left_alt + right_alt) / 2
            else:
                altitude = left_alt if left_alt is not None else right_alt
        placed.append(TrackMapCorner(c.distance_km, c.lat, c.lon, altitude))
    placed.sort(key=lambda c: c.distance_km)

    return TrackMap(version=TRACK_MAP_VERSION,
                    track_key=track_key,
                    track_name=track_name,
                    track_config_name=track_config_name,
                    track_id=track_id,
                    left_lap=left_lap,
                    right_lap=right_lap,
                    points=points,
                    corners=placed)

def normalize_track_key(value):
    value = ''.join(ch for ch in unicodedata.normalize('NFKD', value)
                    if not unicodedata.combining(ch))
    return re.sub('[^a-zA-Z0-9]+', '-', value).strip('-').lower()

def create_track_key(weekend):
    if weekend is None:
        return None
    base = (weekend.track_display_name or weekend.track_name
            or weekend.track_display_short_name)
    if not base:
        return None
    config = weekend.track_config_name
    if config and config.lower() not in base.lower():
        base = '%s %s' % (base, config)
    return normalize_track_key(base) or None

# exchange format is camelCase, dataclasses are snake_case
def _camel(name):
    head, *rest = name.split('_')
    return head + ''.join(r[:1].upper() + r[1:] for r in rest)

def _snake(name):
    return re.sub('([A-Z])', r'_\1', name).lower()

def _snake_keys(obj):
    if isinstance(obj, dict):
        return {_snake(k): _snake_keys(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_snake_keys(v) for v in obj]
    return obj

def track_map_to_dict(mesh):
    if mesh.is_preview:
        raise InvalidTrackMapDocument('Track map has no track key, preview maps cannot be saved')
    return dataclasses.asdict(mesh, dict_factory=lambda x: {_camel(a): b for a, b in x})

def _is_number(v):
    return isinstance(v, (int, float)) and not isinstance(v, bool)

def _check(ok, msg):
    if not ok:
        raise InvalidTrackMapDocument('Invalid track map: ' + msg)

def _validate(doc):
    _check(isinstance(doc, dict), 'not an object')
    _check(doc.get('version') == TRACK_MAP_VERSION and _is_number(doc.get('version')),
           'unsupported version %r' % (doc.get('version'),))
    _check(isinstance(doc.get('trackKey'), str) and doc['trackKey'] != '',
           'missing trackKey')
    _check(doc.get('trackId') is None or _is_number(doc['trackId']), 'trackId is not a number')
    points = doc.get('points')
    _check(isinstance(points, list) and len(points) >= 2, 'need at least two points')
    first = points[0]
    _check(isinstance(first, dict) and _is_number(first.get('distanceKm')),
           'first point has no distance')
    for side in ('left', 'right'):
        s = first.get(side)
        _check(isinstance(s, dict) and _is_number(s.get('lat')) and _is_number(s.get('lon')),
               'first point has no %s position' % side)
    corners = doc.get('corners')
    if corners is not None:
        _check(isinstance(corners, list), 'corners is not a list')
        for c in corners:
            _check(isinstance(c, dict)
                   and all(_is_number(c.get(k)) for k in ('distanceKm', 'lat', 'lon'))
                   and (c.get('altitudeM') is None or _is_number(c['altitudeM'])),
                   'bad corner %r' % (c,))

def _float(v):
    if not _is_number(v):
        raise InvalidTrackMapDocument('Invalid track map: %r is not a number' % (v,))
    return float(v)

def track_map_from_dict(doc):
    _validate(doc)
    data = _snake_keys(doc)
    data['version'] = TRACK_MAP_VERSION
    track_id = data.get('track_id')
    if isinstance(track_id, float):
        _check(track_id.is_integer(), 'trackId is not a whole number')
        data['track_id'] = int(track_id)
    data.setdefault('corners', [])
    if data['corners'] is None:
        data['corners'] = []
    for k in ('track_name', 'track_config_name', 'track_id'):
        data.setdefault(k, None)
    try:
        return dacite.from_dict(data_class=TrackMap,
                                data=data,
                                config=dacite.Config(type_hooks={float: _float}))
    except (dacite.DaciteError, ValueError, TypeError) as e:
        raise InvalidTrackMapDocument('Invalid track map: %s' % e) from e
