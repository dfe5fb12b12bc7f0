"""
Synchronized FASTQ reading and per-read compressibility.

One or more FASTQ line sources are advanced in lock-step, one physical
line at a time.  Every fourth line cycle forms a record; the sequence
line of the primary stream (index 0) is fed to a fresh
:class:`~readcompressibility.measure.CompressionMeasurer` and the
finished measurement is emitted as one tab-separated row::

    name <TAB> raw_length <TAB> compressed_length <TAB> ratio

Mates (streams with index >= 1) are validated but do not contribute to
the measurement.
"""
from __future__ import annotations

import sys
from dataclasses import dataclass, field
from typing import IO, Callable, Iterable, Iterator, Optional, Sequence

from .measure import DEFAULT_LEVEL, CompressionMeasurer, new_compressor, validate_level

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

HEADER_SIGIL = 64  # ord('@')
MAX_INPUTS = 2

# Line offsets within a 4-line record (0 is the header)
SEQUENCE_LINE = 1
SEPARATOR_LINE = 2
QUALITY_LINE = 3


def _show(line: bytes) -> str:
    return line.decode("ascii", errors="replace")


def decode_name(name: bytes) -> str:
    """Read names round-trip byte for byte through ``surrogateescape``."""
    return name.decode("utf-8", errors="surrogateescape")


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class FastqSyncError(ValueError):
    """Structural error while reading the inputs in lock-step.

    ``line_number`` is the 1-based physical line within each file and
    ``stream_index`` the 0-based input the problem was found on.
    """

    def __init__(self, message: str, line_number: int, stream_index: int) -> None:
        super().__init__(message)
        self.line_number = line_number
        self.stream_index = stream_index


class DesyncError(FastqSyncError):
    """The inputs do not hold the same number of lines."""


class MalformedRecordError(FastqSyncError):
    """A header line does not start with ``@``."""

    def __init__(self, line_number: int, stream_index: int, line: bytes) -> None:
        super().__init__(
            f"Line {line_number} of input {stream_index + 1} should be a fastq "
            f"header line, got: {_show(line)}",
            line_number,
            stream_index,
        )
        self.line = line


class NameMismatchError(FastqSyncError):
    """A mate's read name differs from the primary read name."""

    def __init__(
        self, line_number: int, stream_index: int, expected: str, found: str
    ) -> None:
        super().__init__(
            f"Expecting read {expected} on line {line_number} in input "
            f"{stream_index + 1}, got {found}",
            line_number,
            stream_index,
        )
        self.expected = expected
        self.found = found


# ---------------------------------------------------------------------------
# Data
# ---------------------------------------------------------------------------

@dataclass(slots=True)
class RunConfig:
    """Settings for a single run."""

    files: list[str] = field(default_factory=list)
    out: Optional[str] = None
    limit: int = 0
    check_names: bool = False
    level: int = DEFAULT_LEVEL

    def __post_init__(self) -> None:
        if len(self.files) > MAX_INPUTS:
            raise ValueError(
                f"Maximum {MAX_INPUTS} input files allowed, got {len(self.files)}"
            )
        if self.limit < 0:
            raise ValueError(f"limit must be >= 0, got {self.limit}")
        validate_level(self.level)


@dataclass(slots=True)
class ReadMeasurement:
    name: str
    raw_length: int
    compressed_length: int

    @property
    def ratio(self) -> float:
        return self.raw_length / self.compressed_length


@dataclass(slots=True)
class RunStats:
    """Counters for one run: lock-step lines consumed and reads emitted."""

    lines: int = 0
    reads: int = 0


# ---------------------------------------------------------------------------
# Reader
# ---------------------------------------------------------------------------

class SyncRecordReader:
    """Read N FASTQ line sources in lock-step and measure each read.

    Yields :class:`ReadMeasurement` objects in input order.  Iteration
    stops when the primary source is exhausted or ``limit`` reads have
    been produced; counters are available on :attr:`stats`.
    """

    __slots__ = ("_sources", "_limit", "_check_names", "_cctx", "_name", "stats")

    def __init__(
        self,
        sources: Sequence[Iterable[bytes]],
        limit: int = 0,
        check_names: bool = False,
        level: int = DEFAULT_LEVEL,
    ) -> None:
        if not sources:
            raise ValueError("At least one input is required")
        if limit < 0:
            raise ValueError(f"limit must be >= 0, got {limit}")
        self._sources = [iter(src) for src in sources]
        self._limit = limit
        self._check_names = check_names
        # One context for the whole run; every read still gets its own frame.
        self._cctx = new_compressor(level)
        self._name = b""
        self.stats = RunStats()

    def __iter__(self) -> Iterator[ReadMeasurement]:
        return self.records()

    # -- public --------------------------------------------------------------

    def records(self) -> Iterator[ReadMeasurement]:
        stats = self.stats
        while not (self._limit and stats.reads >= self._limit):
            record = self._read_cycle()
            if record is None:
                return
            stats.reads += 1
            yield record

    # -- private -------------------------------------------------------------

    def _advance(self, headers: bool = False) -> list[bytes] | None:
        """Pull one line from every source.  ``None`` when source 0 is done.

        With *headers* each line is validated as soon as it is read.
        """
        line_number = self.stats.lines + 1
        lines = []
        for index, source in enumerate(self._sources):
            line = next(source, None)
            if line is None:
                if index == 0:
                    return None
                raise DesyncError(
                    f"Input {index + 1} ended at line {line_number} while "
                    f"input 1 continues",
                    line_number,
                    index,
                )
            if headers:
                self._check_header(line, line_number, index)
            lines.append(line)
        self.stats.lines += 1
        return lines

    def _read_cycle(self) -> ReadMeasurement | None:
        if self._advance(headers=True) is None:
            self._check_mates_exhausted()
            return None
        name = decode_name(self._name)

        with CompressionMeasurer(compressor=self._cctx) as measurer:
            for offset in (SEQUENCE_LINE, SEPARATOR_LINE, QUALITY_LINE):
                lines = self._advance()
                if lines is None:
                    print(
                        f"[Warning] Input ended inside record {name} "
                        f"(line {self.stats.lines}); record skipped.",
                        file=sys.stderr,
                    )
                    return None
                if offset == SEQUENCE_LINE:
                    measurer.add_sequence(lines[0])
            compressed = measurer.finish()
        return ReadMeasurement(name, measurer.raw_length, compressed)

    def _check_header(self, header: bytes, line_number: int, index: int) -> None:
        if not header or header[0] != HEADER_SIGIL:
            raise MalformedRecordError(line_number, index, header)
        found = header[1:].split(b" ", 1)[0]
        if index == 0:
            self._name = found
        elif self._check_names and found != self._name:
            raise NameMismatchError(
                line_number, index, decode_name(self._name), decode_name(found)
            )

    def _check_mates_exhausted(self) -> None:
        line_number = self.stats.lines + 1
        for index, source in enumerate(self._sources[1:], start=1):
            if next(source, None) is not None:
                raise DesyncError(
                    f"Input {index + 1} has more lines than input 1 "
                    f"(extra line {line_number})",
                    line_number,
                    index,
                )


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------

def format_row(record: ReadMeasurement) -> str:
    return (
        f"{record.name}\t{record.raw_length}\t{record.compressed_length}"
        f"\t{record.ratio:.4f}\n"
    )


def write_row(out: IO[str], record: ReadMeasurement) -> None:
    out.write(format_row(record))


def run(
    sources: Sequence[Iterable[bytes]],
    out: IO[str],
    config: RunConfig,
    progress: Callable[[RunStats], None] | None = None,
) -> RunStats:
    """Measure every read from *sources* and write the rows to *out*.

    Rows written before an error stay in *out*; the error propagates.
    """
    reader = SyncRecordReader(
        sources,
        limit=config.limit,
        check_names=config.check_names,
        level=config.level,
    )
    for record in reader:
        write_row(out, record)
        if progress is not None:
            progress(reader.stats)
    return reader.stats
