"""
Byte-stream and line helpers.

Inputs and outputs are selected by path: no path (or ``-``) means the
standard stream, a ``.gz`` suffix means gzip, anything else is a plain
file.
"""
from __future__ import annotations

import gzip
import sys
from typing import IO, BinaryIO, Iterator, Optional

GZIP_SUFFIX = ".gz"
NAME_ERRORS = "surrogateescape"


class StreamOpenError(OSError):
    """An input or output path could not be opened."""

    def __init__(self, path: str, reason: BaseException) -> None:
        super().__init__(f"Failed to open {path}: {reason}")
        self.path = path
        self.reason = reason


def is_std_stream(filepath: Optional[str]) -> bool:
    """True when *filepath* selects stdin/stdout instead of a file."""
    return not filepath or filepath == "-"


# --- I/O HELPERS ---

def open_input(filepath: Optional[str]) -> BinaryIO:
    """Returns a binary handle for reading (supports gzip and stdin)."""
    if is_std_stream(filepath):
        return sys.stdin.buffer
    try:
        if filepath.endswith(GZIP_SUFFIX):
            fh = gzip.open(filepath, "rb")
            try:
                # Reads the gzip member header now rather than on the first line.
                fh.peek(1)
            except (OSError, EOFError):
                fh.close()
                raise
            return fh
        return open(filepath, "rb")
    except (OSError, EOFError) as exc:
        raise StreamOpenError(filepath, exc) from exc


def open_output(filepath: Optional[str]) -> IO[str]:
    """Returns a text handle for writing rows (supports gzip and stdout).

    Read names that are not valid UTF-8 are carried as surrogate escapes
    and written back as their original bytes.
    """
    if is_std_stream(filepath):
        if hasattr(sys.stdout, "reconfigure"):
            sys.stdout.reconfigure(errors=NAME_ERRORS)
        return sys.stdout
    try:
        if filepath.endswith(GZIP_SUFFIX):
            return gzip.open(filepath, "wt", encoding="utf-8", errors=NAME_ERRORS)
        return open(filepath, "w", encoding="utf-8", errors=NAME_ERRORS)
    except OSError as exc:
        raise StreamOpenError(filepath, exc) from exc


# --- LINE SOURCE ---

def iter_lines(fh: BinaryIO) -> Iterator[bytes]:
    """Yields physical lines without their line terminator.

    Handles both ``\\n`` and ``\\r\\n`` endings; a last line lacking a
    newline is still produced.
    """
    readline = fh.readline  # Cache method lookup
    while True:
        line = readline()
        if not line:
            return
        end = len(line)
        if line[-1] == 10:  # \n
            end -= 1
            if end > 0 and line[end - 1] == 13:  # \r
                end -= 1
        yield line[:end]
