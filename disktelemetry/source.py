# Copyright 2024, Scott Smith.  MIT License (see LICENSE).

# Read-only byte sources.  The decoder only ever needs the total size
# and ranged reads, so anything providing those two can stand in for a
# file (a network blob, a test buffer, ...).

import mmap
import os

from .errors import OutOfRange

def _check_range(offset, length, size):
    if offset < 0 or length < 0 or offset + length > size:
        raise OutOfRange('Read of %d bytes at %d is outside source of %d bytes'
                         % (length, offset, size))

class BytesSource:
    def __init__(self, data):
        self._data = memoryview(data).cast('B')
        self.size = len(self._data)

    def read_range(self, offset, length):
        _check_range(offset, length, self.size)
        return self._data[offset:offset + length].tobytes()

    def close(self):
        self._data.release()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

class FileSource:
    # The file is memory mapped so repeated ranged reads only page in
    # what they touch.
    def __init__(self, fname):
        self.file_name = os.fspath(fname)
        self._f = open(self.file_name, 'rb')
        self.size = os.fstat(self._f.fileno()).st_size
        self._m = None
        if self.size: # can't map an empty file
            self._m = mmap.mmap(self._f.fileno(), 0, access=mmap.ACCESS_READ)

    def read_range(self, offset, length):
        _check_range(offset, length, self.size)
        if not length:
            return b''
        return self._m[offset:offset + length]

    def close(self):
        if self._m is not None:
            self._m.close()
            self._m = None
        self._f.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

def open_source(obj):
    if isinstance(obj, (bytes, bytearray, memoryview)):
        return BytesSource(obj)
    return FileSource(obj)
