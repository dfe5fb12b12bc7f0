"""
Per-read compression measurement.

A :class:`CompressionMeasurer` wraps one zstandard frame written into an
in-memory sink.  It is created for exactly one read and discarded after
:meth:`~CompressionMeasurer.finish`; the reported compressed length is
the full size of the frame, header and epilogue included.
"""
from __future__ import annotations

import io

import zstandard

# Ratio-oriented default; zstd accepts 1-22.
DEFAULT_LEVEL = 19
MIN_LEVEL = 1
MAX_LEVEL = 22


def validate_level(level: int) -> int:
    if not MIN_LEVEL <= level <= MAX_LEVEL:
        raise ValueError(
            f"compression level must be {MIN_LEVEL}-{MAX_LEVEL}, got {level}"
        )
    return level


def new_compressor(level: int = DEFAULT_LEVEL) -> zstandard.ZstdCompressor:
    """Build a compression context.

    A context may be shared by any number of measurers used one after
    another; each stream writer it opens produces an independent frame.
    """
    return zstandard.ZstdCompressor(level=validate_level(level))


class CompressionMeasurer:
    """Accumulate sequence bytes into a fresh frame and size the output.

    Usage::

        with CompressionMeasurer() as m:
            m.add_sequence(b"ACGT")
            compressed = m.finish()
        ratio = m.raw_length / compressed
    """

    __slots__ = (
        "_level", "_cctx", "_sink", "_writer", "_compressed_length", "raw_length",
    )

    def __init__(
        self,
        level: int = DEFAULT_LEVEL,
        compressor: zstandard.ZstdCompressor | None = None,
    ) -> None:
        self._level = validate_level(level)
        self._cctx = compressor
        self._sink: io.BytesIO | None = None
        self._writer = None
        self._compressed_length: int | None = None
        self.raw_length = 0

    # -- context manager -----------------------------------------------------

    def __enter__(self) -> CompressionMeasurer:
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        self.release()

    # -- public --------------------------------------------------------------

    @property
    def compressed_length(self) -> int | None:
        """Size of the finished frame, or ``None`` before :meth:`finish`."""
        return self._compressed_length

    def start(self) -> None:
        """Create the sink and attach a streaming compressor to it."""
        if self._sink is not None or self._compressed_length is not None:
            raise RuntimeError("CompressionMeasurer already started")
        self._sink = io.BytesIO()
        cctx = self._cctx if self._cctx is not None else new_compressor(self._level)
        self._writer = cctx.stream_writer(self._sink, closefd=False)

    def write(self, data: bytes) -> None:
        if self._writer is None:
            raise RuntimeError("CompressionMeasurer is not accepting data")
        self._writer.write(data)

    def add_sequence(self, seq: bytes) -> None:
        """Count *seq* towards the raw length and compress it plus a newline."""
        self.raw_length += len(seq)
        self.write(seq)
        self.write(b"\n")

    def finish(self) -> int:
        """End the frame and return the number of bytes in the sink."""
        if self._writer is None:
            raise RuntimeError("CompressionMeasurer is not accepting data")
        self._writer.close()
        self._writer = None
        self._compressed_length = len(self._sink.getvalue())
        self._sink = None
        return self._compressed_length

    def ratio(self) -> float:
        """Raw length divided by compressed length."""
        if self._compressed_length is None:
            raise RuntimeError("CompressionMeasurer has not been finished")
        return self.raw_length / self._compressed_length

    def release(self) -> None:
        """Drop the compressor and sink without producing a measurement."""
        self._writer = None
        self._sink = None
