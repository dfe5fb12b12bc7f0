__version__ = "0.1.0"


from .core import (
    SyncRecordReader, ReadMeasurement, RunConfig, RunStats,
    FastqSyncError, DesyncError, MalformedRecordError, NameMismatchError,
    format_row, write_row, run,
)
from .measure import CompressionMeasurer, DEFAULT_LEVEL
from .streams import StreamOpenError, open_input, open_output, iter_lines


__all__ = [
    "SyncRecordReader", "ReadMeasurement", "RunConfig", "RunStats",
    "FastqSyncError", "DesyncError", "MalformedRecordError", "NameMismatchError",
    "format_row", "write_row", "run",
    "CompressionMeasurer", "DEFAULT_LEVEL",
    "StreamOpenError", "open_input", "open_output", "iter_lines",
    "__version__",
]
