# Copyright 2024, Scott Smith.  MIT License (see LICENSE).

# Parts taken/reinterpreted from https://github.com/gmartsenkov/itelem (also MIT licensed)

# Disk telemetry layout:
#   header (var_header_offset bytes, usually 144, with the disk sub-header at 112)
#   variable headers (num_vars * 144 bytes)
#   session info text (session_info_len bytes at session_info_offset)
#   sample records, buf_len bytes each, starting right after the session info

from dataclasses import dataclass, field
import logging
import struct
import time
import typing

import numpy as np

from .base import DiskSubHeader, Header, Variable, VAR_HEADER_SIZE, var_types
from .errors import MalformedHeader, OutOfRange, UnknownChannel
from . import session_info

logger = logging.getLogger(__name__)

_header = struct.Struct('<10i')
_disk_header = struct.Struct('<i4xddii') # at offset 112
_var_header = struct.Struct('<4i')

def _dec_str(s, offs, maxlen):
    s = bytes(s[offs:offs + maxlen])
    idx = s.find(b'\0')
    if idx >= 0:
        s = s[:idx]
    return s.decode('utf-8', errors='replace')

def read_header(source):
    if source.size < _header.size:
        raise MalformedHeader('File too short for a header (%d bytes)' % source.size)
    (ver, status, tick_rate, session_info_update, session_info_len, session_info_offset,
     num_vars, var_header_offset, num_buf, buf_len) = _header.unpack(
         source.read_range(0, _header.size))

    if var_header_offset <= 0:
        raise MalformedHeader('Invalid header: var_header_offset=%d' % var_header_offset)
    if var_header_offset > source.size:
        raise MalformedHeader('Invalid header: var_header_offset=%d past end of file'
                              % var_header_offset)
    if buf_len <= 0:
        raise MalformedHeader('Invalid header: buf_len=%d' % buf_len)
    if num_vars < 0:
        raise MalformedHeader('Invalid header: num_vars=%d' % num_vars)
    if (session_info_offset < 0 or session_info_len < 0
        or session_info_offset + session_info_len > source.size):
        raise MalformedHeader('Invalid header: session info (%d bytes at %d) outside file'
                              % (session_info_len, session_info_offset))
    if num_buf != 1:
        logger.warning("Don't understand multiple buffers (num_buf=%d), using the first",
                       num_buf)

    disk = None
    full = source.read_range(0, var_header_offset)
    if len(full) >= VAR_HEADER_SIZE:
        disk = DiskSubHeader(*_disk_header.unpack_from(full, 112))

    return Header(ver, status, tick_rate, session_info_update, session_info_len,
                  session_info_offset, num_vars, var_header_offset, num_buf, buf_len,
                  header_bytes=var_header_offset,
                  disk_sub_header=disk)

def _decode_var(buf, index):
    offs = index * VAR_HEADER_SIZE
    rtype, offset, count, count_as_time = _var_header.unpack_from(buf, offs)
    return Variable(index=index,
                    name=_dec_str(buf, offs + 16, 32),
                    type_code=rtype,
                    offset=offset,
                    count=count,
                    count_as_time=count_as_time,
                    unit=_dec_str(buf, offs + 112, 32),
                    desc=_dec_str(buf, offs + 48, 64))

def read_variables(source, header):
    buf = source.read_range(header.var_header_offset, header.num_vars * VAR_HEADER_SIZE)
    return [_decode_var(buf, i) for i in range(header.num_vars)]

def find_variables(variables):
    found = {}
    for v in variables:
        key = v.name.lower()
        if key in found:
            logger.warning('Duplicate channel name %s (index %d), keeping index %d',
                           v.name, v.index, found[key].index)
            continue
        found[key] = v
    return found

def read_session_info_text(source, header):
    return _dec_str(source.read_range(header.session_info_offset, header.session_info_len),
                    0, header.session_info_len)

def record_count(header, size):
    if header.disk_sub_header:
        return header.disk_sub_header.record_count
    data_bytes = size - header.data_start
    if data_bytes <= 0:
        return 0
    count, remainder = divmod(data_bytes, header.buf_len)
    if remainder:
        logger.warning('Data section is not an even multiple of buf_len, ignoring %d bytes',
                       remainder)
    return count

class SampleRow(typing.NamedTuple):
    index: int
    values: tuple

def _pyval(v):
    # numpy scalars and arrays -> plain python, strings and None as-is
    tolist = getattr(v, 'tolist', None)
    return tolist() if tolist else v

@dataclass(eq=False)
class SampleTable:
    channels: typing.List[Variable]
    index: np.ndarray # record number of each retained row
    columns: list # parallel to channels
    total_records: int
    stride: int
    _by_name: dict = field(init=False, repr=False)

    def __post_init__(self):
        self._by_name = {v.name.lower(): i for i, v in enumerate(self.channels)}

    def names(self):
        return [v.name for v in self.channels]

    def has(self, name):
        return name.lower() in self._by_name

    def _column(self, name):
        try:
            return self._by_name[name.lower()]
        except KeyError:
            raise UnknownChannel(name) # pylint: disable=raise-missing-from

    def variable(self, name):
        return self.channels[self._column(name)]

    def __getitem__(self, name):
        return self.columns[self._column(name)]

    def __len__(self):
        return len(self.index)

    def rows(self):
        for i, idx in enumerate(self.index):
            yield SampleRow(int(idx), tuple(_pyval(col[i]) for col in self.columns))

def _column_decoder(var):
    if not var.known:
        return lambda recs: [None] * len(recs)

    _, size, dtype = var_types[var.type_code]
    start = var.offset
    width = size * var.count

    def raw(recs):
        return np.ascontiguousarray(recs[:, start:start + width])

    if var.type_code == 0 and var.count > 1:
        # char arrays are a single string
        return lambda recs: [_dec_str(r, 0, width) for r in raw(recs)]

    def decode(recs):
        vals = raw(recs).view(dtype)
        if var.type_code == 1:
            vals = vals != 0
        return vals[:, 0] if var.count == 1 else vals
    return decode

def _join(parts):
    if isinstance(parts[0], list):
        return [v for p in parts for v in p]
    return np.concatenate(parts)

def decode_samples(source, header, variables, channel_names,
                   start=0, end=None, stride=1, chunk_records=1024, progress=None):
    by_name = find_variables(variables)
    selected = []
    for name in channel_names:
        var = by_name.get(name.lower())
        if var is None:
            raise UnknownChannel(name)
        if var not in selected:
            selected.append(var)
    for var in selected:
        if var.offset < 0 or var.offset + var.byte_size > header.buf_len:
            raise MalformedHeader('Channel %s (%d bytes at %d) does not fit in %d byte records'
                                  % (var.name, var.byte_size, var.offset, header.buf_len))

    total = record_count(header, source.size)
    end = total if end is None else min(end, total)
    if start < 0 or start > end:
        raise OutOfRange('Invalid range: start=%d, end=%d' % (start, end))
    stride = max(1, int(stride))
    chunk_records = max(1, int(chunk_records))

    decoders = [_column_decoder(v) for v in selected]
    empty = np.empty((0, header.buf_len), dtype=np.uint8)
    parts = [[dec(empty)] for dec in decoders]
    index_parts = [np.empty(0, dtype=np.int64)]

    t1 = time.perf_counter()
    rec = start
    while rec < end:
        take = min(chunk_records, end - rec)
        chunk = source.read_range(header.data_start + rec * header.buf_len,
                                  take * header.buf_len)
        records = np.frombuffer(chunk, dtype=np.uint8).reshape((take, header.buf_len))
        first = -(rec - start) % stride # first record in this chunk that is on stride
        kept = records[first::stride]
        if len(kept):
            index_parts.append(np.arange(rec + first, rec + take, stride, dtype=np.int64))
            for part, dec in zip(parts, decoders):
                part.append(dec(kept))
        rec += take
        if progress:
            progress(rec, end) # may raise to cancel; nothing is returned then
    logger.debug('decoded %d channels over records %d..%d (stride %d) in %.3fs',
                 len(selected), start, end, stride, time.perf_counter() - t1)

    return SampleTable(channels=selected,
                       index=np.concatenate(index_parts),
                       columns=[_join(p) for p in parts],
                       total_records=total,
                       stride=stride)

class IBTFile:
    # Everything that is parsed once per source.
    def __init__(self, source):
        self.source = source
        self.header = read_header(source)
        self.variables = read_variables(source, self.header)
        self.session_text = read_session_info_text(source, self.header)
        self.session_info = session_info.parse_session_info(self.session_text)
        self._by_name = find_variables(self.variables)

    @property
    def record_count(self):
        return record_count(self.header, self.source.size)

    def has_channel(self, name):
        return name.lower() in self._by_name

    def variable(self, name):
        return self._by_name.get(name.lower())

    def decode(self, channel_names, **kwargs):
        return decode_samples(self.source, self.header, self.variables, channel_names, **kwargs)

def _set_if(meta, name, val, formatter=None):
    if val is not None and val != '':
        meta[name] = formatter % val if formatter else val

def read_summary(source):
    ibt = source if isinstance(source, IBTFile) else IBTFile(source)
    info = ibt.session_info
    weekend = info.weekend
    metadata = {}
    disk = ibt.header.disk_sub_header
    if disk:
        tm = time.localtime(disk.session_start_date)
        metadata['Log Date'] = '%02d/%02d/%d' % (tm.tm_mon, tm.tm_mday, tm.tm_year)
        metadata['Log Time'] = '%02d:%02d:%02d' % (tm.tm_hour, tm.tm_min, tm.tm_sec)
        metadata['Laps'] = disk.lap_count
    metadata['Records'] = ibt.record_count
    _set_if(metadata, 'Driver', info.driver_name)
    _set_if(metadata, 'Venue', weekend.track_display_name or weekend.track_name)
    _set_if(metadata, 'Track Config', weekend.track_config_name)
    _set_if(metadata, 'Vehicle', info.car_name)
    _set_if(metadata, 'Session', weekend.event_type)
    _set_if(metadata, 'Tick Rate', ibt.header.tick_rate, '%d Hz')
    return metadata
