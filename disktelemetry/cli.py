# Copyright 2024, Scott Smith.  MIT License (see LICENSE).

import argparse
import contextlib
import csv
import json
import logging
import math
import os
import sys
import tempfile

from .base import LapKey
from .errors import NoUsableLaps, TelemetryError, UnknownChannel
from . import compare
from . import config
from . import iracing
from . import laps
from . import source
from . import trackmap
from . import version

logger = logging.getLogger(__name__)

@contextlib.contextmanager
def atomic_write(fname):
    # write next to the destination, then move into place
    dirname = os.path.dirname(os.path.abspath(fname))
    fd, tmp = tempfile.mkstemp(dir=dirname, prefix='.tmp', suffix=os.path.basename(fname))
    try:
        with os.fdopen(fd, 'w', encoding='utf-8', newline='') as f:
            yield f
        os.replace(tmp, fname)
    except BaseException:
        os.unlink(tmp)
        raise

@contextlib.contextmanager
def _output(path):
    if path == '-':
        yield sys.stdout
    else:
        with atomic_write(path) as f:
            yield f

def format_lap_time(seconds):
    if seconds is None or not math.isfinite(seconds) or seconds < 0:
        return '-'
    ms = round(seconds * 1000)
    return '%02d:%02d.%03d' % (ms // 60000, ms % 60000 // 1000, ms % 1000)

def _split(text):
    return [s.strip() for s in text.split(',') if s.strip()] if text else []

def pick_channels(variables, wanted=None, exclude=None, include_time=True):
    by_name = iracing.find_variables(variables)
    selected = []
    def add(v):
        if v is not None and v not in selected:
            selected.append(v)

    if wanted:
        for name in wanted:
            v = by_name.get(name.lower())
            if v is None:
                raise UnknownChannel(name)
            add(v)
    else:
        for v in by_name.values():
            add(v)

    skip = {name.lower() for name in exclude or []}
    selected = [v for v in selected if v.name.lower() not in skip]

    if include_time:
        add(by_name.get('sessiontime'))
    # SessionTime leads, if it's there at all
    selected.sort(key=lambda v: v.name.lower() != 'sessiontime')
    return selected

def _csv_columns(channels, include_index):
    names = ['SampleIndex'] if include_index else []
    for v in channels:
        if v.count == 1 or v.type_code == 0:
            names.append(v.name)
        else:
            names.extend('%s[%d]' % (v.name, i) for i in range(v.count))
    return names

def _csv_value(v):
    if v is None:
        return ''
    if isinstance(v, bool):
        return '1' if v else '0'
    if isinstance(v, float) and math.isnan(v):
        return ''
    return v

def _json_value(v):
    if isinstance(v, float) and not math.isfinite(v):
        return None
    if isinstance(v, list):
        return [_json_value(i) for i in v]
    if isinstance(v, dict):
        return {k: _json_value(i) for k, i in v.items()}
    return v

def _blocks(ibt, channels, args, settings):
    # decode a bounded block at a time, each block starting on stride
    stride = max(1, args.stride)
    end = ibt.record_count if args.end is None else min(args.end, ibt.record_count)
    step = stride * settings.chunk_records
    names = [v.name for v in channels]
    start = args.start
    if start < 0 or start > end:
        ibt.decode(names, start=start, end=end) # raises OutOfRange
    while start < end:
        table = ibt.decode(names, start=start, end=min(end, start + step), stride=stride,
                           chunk_records=settings.chunk_records)
        yield from table.rows()
        start += step

def _write_csv(f, ibt, channels, args, settings):
    writer = csv.writer(f, delimiter=args.delimiter, lineterminator='\n')
    writer.writerow(_csv_columns(channels, args.index))
    count = 0
    for row in _blocks(ibt, channels, args, settings):
        out = [row.index] if args.index else []
        for v, value in zip(channels, row.values):
            if isinstance(value, list):
                out.extend(_csv_value(i) for i in value)
            else:
                out.append(_csv_value(value))
        writer.writerow(out)
        count += 1
    return count

def _json_rows(ibt, channels, args, settings):
    for row in _blocks(ibt, channels, args, settings):
        obj = {'SampleIndex': row.index} if args.index else {}
        for v, value in zip(channels, row.values):
            obj[v.name] = _json_value(value)
        yield obj

def _write_ndjson(f, ibt, channels, args, settings):
    count = 0
    for obj in _json_rows(ibt, channels, args, settings):
        f.write(json.dumps(obj) + '\n')
        count += 1
    return count

def _write_json(f, ibt, channels, args, settings):
    count = 0
    f.write('[\n')
    for obj in _json_rows(ibt, channels, args, settings):
        f.write((',\n' if count else '') + json.dumps(obj))
        count += 1
    f.write('\n]\n')
    return count

_writers = {'csv': _write_csv, 'ndjson': _write_ndjson, 'json': _write_json}

def cmd_vars(ibt, args, settings):
    for v in ibt.variables:
        print('\t'.join([v.name, v.type_name, str(v.count), v.unit, str(v.offset), v.desc]))

def cmd_info(ibt, args, settings):
    h = ibt.header
    for name in ('ver', 'status', 'tick_rate', 'session_info_update', 'session_info_len',
                 'session_info_offset', 'num_vars', 'var_header_offset', 'num_buf', 'buf_len'):
        print('%s: %s' % (name, getattr(h, name)))
    for k, v in iracing.read_summary(ibt).items():
        print('%s: %s' % (k, v))
    key = trackmap.create_track_key(ibt.session_info.weekend)
    if key:
        print('Track Key: %s' % key)
    if args.yaml:
        with _output(args.yaml) as f:
            f.write(ibt.session_text)

def cmd_export(ibt, args, settings):
    channels = pick_channels(ibt.variables, _split(args.vars), _split(args.exclude),
                             include_time=args.time)
    if not channels:
        raise UnknownChannel(args.vars or '(none selected)')
    out = args.out
    if out is None:
        out = os.path.splitext(args.file)[0] + '.' + args.format
    with _output(out) as f:
        count = _writers[args.format](f, ibt, channels, args, settings)
    logger.info('Wrote %s: %s, %d of %d samples, %d channels', args.format.upper(),
                '(stdout)' if out == '-' else out, count, ibt.record_count, len(channels))

def _load_laps(ibt, args, settings):
    lap_set = laps.load_laps(ibt, settings, target_car_idx=args.car_idx)
    if lap_set.car_filter == 'unresolved':
        logger.warning('Laps may mix cars, pass --car-idx to pick one')
    return lap_set

def cmd_laps(ibt, args, settings):
    lap_set = _load_laps(ibt, args, settings)
    try:
        best = laps.fastest_lap(lap_set, settings.completion_threshold)
    except NoUsableLaps:
        best = None
    for key, lap in lap_set.items():
        sectors = ' '.join('S%d %.3fs' % (s.sector_num, s.time_sec) for s in lap.sector_times)
        print('%s%-6s %s %7.3f km %5d pts  %s' % ('*' if lap is best else ' ', key,
                                                  format_lap_time(lap.lap_time_sec),
                                                  lap.distance_km, lap.point_count, sectors))

def _find_lap(lap_set, text):
    try:
        key = LapKey.parse(text)
    except ValueError:
        raise NoUsableLaps('Bad lap %r, expected N or S:N' % text) from None
    if key in lap_set:
        return key, lap_set[key]
    if key.session_num is None:
        # a bare lap number is fine if only one session has it
        matches = [k for k in lap_set if k.lap == key.lap]
        if len(matches) == 1:
            return matches[0], lap_set[matches[0]]
    raise NoUsableLaps('Lap %s not found (have %s)' % (text, ', '.join(map(str, lap_set))))

def _lap_label(key):
    return key.lap if key.session_num is None else str(key)

def cmd_trackmap(ibt, args, settings):
    lap_set = _load_laps(ibt, args, settings)
    left_key, left = _find_lap(lap_set, args.left)
    right_key, right = _find_lap(lap_set, args.right)
    weekend = ibt.session_info.weekend
    mesh = trackmap.build_track_map(
        left.by_dist, right.by_dist, _lap_label(left_key), _lap_label(right_key),
        track_key=args.track_key or trackmap.create_track_key(weekend),
        track_name=weekend.track_display_name or weekend.track_name,
        track_config_name=weekend.track_config_name,
        track_id=weekend.track_id,
        sample_count=args.samples or settings.sample_count)
    doc = trackmap.track_map_to_dict(mesh)
    with _output(args.out) as f:
        json.dump(doc, f, indent=4)
    logger.info('Wrote track map %s: %d points', mesh.track_key, len(mesh.points))

def cmd_compare(ibt, args, settings):
    lap_set = _load_laps(ibt, args, settings)
    keys = [_find_lap(lap_set, text)[0] for text in args.laps]
    rows = compare.compare_laps(lap_set, keys, settings.chart_points)
    with _output(args.out) as f:
        for row in rows:
            f.write(json.dumps(_json_value(row)) + '\n')

def build_parser():
    parser = argparse.ArgumentParser(prog='disktelemetry',
                                     description='Decode disk telemetry (.ibt) files.')
    parser.add_argument('--version', action='version', version=version.version)
    parser.add_argument('--config', help='settings file (ini)')
    parser.add_argument('-v', '--verbose', action='store_true', help='debug logging')
    sub = parser.add_subparsers(dest='command', required=True)

    p = sub.add_parser('vars', help='list channels')
    p.add_argument('file')
    p.set_defaults(func=cmd_vars)

    p = sub.add_parser('info', help='show header and session summary')
    p.add_argument('file')
    p.add_argument('--yaml', help='also write the raw session info text here (- for stdout)')
    p.set_defaults(func=cmd_info)

    p = sub.add_parser('export', help='export samples')
    p.add_argument('file')
    p.add_argument('--format', choices=sorted(_writers), default='csv')
    p.add_argument('--vars', help='comma separated channels to export (default all)')
    p.add_argument('--exclude', help='comma separated channels to leave out')
    p.add_argument('--start', type=int, default=0, help='first sample (inclusive)')
    p.add_argument('--end', type=int, help='last sample (exclusive)')
    p.add_argument('--stride', type=int, default=1, help='export every Nth sample')
    p.add_argument('--delimiter', default=',', help='CSV delimiter')
    p.add_argument('--out', help='output path, - for stdout (default: next to the input)')
    p.add_argument('--no-index', dest='index', action='store_false',
                   help='leave out the SampleIndex column')
    p.add_argument('--no-time', dest='time', action='store_false',
                   help="don't add SessionTime automatically")
    p.set_defaults(func=cmd_export)

    p = sub.add_parser('laps', help='list laps and sector times')
    p.add_argument('file')
    p.add_argument('--car-idx', type=int, help='car to keep (default: the driver from session info)')
    p.set_defaults(func=cmd_laps)

    p = sub.add_parser('trackmap', help='build a track map from two edge laps')
    p.add_argument('file')
    p.add_argument('--left', required=True, help='lap driven along the left edge (N or S:N)')
    p.add_argument('--right', required=True, help='lap driven along the right edge')
    p.add_argument('--samples', type=int, help='points along the track')
    p.add_argument('--track-key', help='override the key derived from session info')
    p.add_argument('--car-idx', type=int)
    p.add_argument('--out', required=True)
    p.set_defaults(func=cmd_trackmap)

    p = sub.add_parser('compare', help='line laps up by distance against the first one')
    p.add_argument('file')
    p.add_argument('laps', nargs='+', help='lap keys (N or S:N), the first is the reference')
    p.add_argument('--car-idx', type=int)
    p.add_argument('--out', default='-', help='output path (default stdout), one JSON row per line')
    p.set_defaults(func=cmd_compare)
    return parser

def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format='%(levelname)s: %(message)s')
    settings = config.load_settings(args.config)
    try:
        with source.open_source(args.file) as src:
            args.func(iracing.IBTFile(src), args, settings)
    except (TelemetryError, OSError) as e:
        logger.error('%s', e)
        return 1
    return 0
