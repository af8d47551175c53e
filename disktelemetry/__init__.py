# Copyright 2024, Scott Smith.  MIT License (see LICENSE).

from .base import (LapKey, LapPoint, LapSeries, LapSet, SectorBoundary, SectorTime,
                   Header, DiskSubHeader, Variable)
from .errors import (TelemetryError, OutOfRange, MalformedHeader, UnknownChannel,
                     NoUsableLaps, InsufficientLapData, EmptyMesh, InvalidTrackMapDocument)
from .source import BytesSource, FileSource, open_source
from .iracing import (IBTFile, SampleTable, decode_samples, find_variables, read_header,
                      read_session_info_text, read_summary, read_variables)
from .session_info import (SessionInfo, normalize_sector_boundaries, parse_session_info,
                           scale_fractional_sectors)
from .interp import interpolate
from .laps import LapChannels, build_laps, completed_laps, fastest_lap, load_laps
from .sectors import compute_sector_times
from .trackmap import (TrackMap, build_track_map, create_track_key, track_map_from_dict,
                       track_map_to_dict)
from .compare import compare_laps
from .config import Settings, load_settings
from .version import version as __version__
