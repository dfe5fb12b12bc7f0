import sys
import argparse
import time
from contextlib import ExitStack
from typing import Optional

from .core import (
    RunConfig, RunStats, FastqSyncError, run, MAX_INPUTS,
)
from .measure import DEFAULT_LEVEL
from .streams import (
    StreamOpenError, open_input, open_output, iter_lines, is_std_stream,
)

PROGRESS_EVERY = 1_000_000


def get_version():
    try:
        from . import __version__
        return f"readcompressibility {__version__}"
    except ImportError:
        return "readcompressibility (unknown version)"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="readcompressibility",
        description="Per-read ZSTD compression ratio of single- or paired-end FASTQ "
                    "(only the first file's sequence is measured). Ratios are sizes of "
                    "ZSTD frames and are not comparable with zlib-based ratios.",
        usage="%(prog)s [options] unaligned_1.fq.gz [unaligned_2.fq.gz]",
    )
    parser.add_argument('--version', action='version', version=get_version(),
                        help="Show version and exit")
    parser.add_argument("files", nargs="*",
                        help="Input FASTQ files (0=stdin, 1=single-end, 2=paired R1 R2). "
                             "Files ending in .gz are decompressed.")
    parser.add_argument("-out", "--out", default="",
                        help="Output filename (default: stdout). Ends in .gz for gzip.")
    parser.add_argument("-limit", "--limit", type=int, default=0,
                        help="Limit the number of reads to consider (default: 0 = unlimited)")
    parser.add_argument("-check", "--check", dest="check_names", action="store_true",
                        help="Check that the read names match (for PE data)")
    parser.add_argument("-level", "--level", type=int, default=DEFAULT_LEVEL,
                        help=f"ZSTD compression level (1-22, default: {DEFAULT_LEVEL}). "
                             "Ratios are only comparable between runs at the same level "
                             "and differ from zlib-based tools.")
    parser.add_argument("-q", "--quiet", action="store_true",
                        help="Suppress progress messages")
    return parser


# --- COMMAND: MEASURE ---

def measure_command(args) -> RunStats:
    start_time = time.time()

    files = args.files if args.files else []
    if len(files) > MAX_INPUTS:
        sys.exit(f"Error: Maximum {MAX_INPUTS} input files allowed")

    try:
        config = RunConfig(
            files=list(files),
            out=args.out,
            limit=args.limit,
            check_names=args.check_names,
            level=args.level,
        )
    except ValueError as e:
        sys.exit(f"Error: {e}")

    is_stdout = is_std_stream(config.out)
    quiet = getattr(args, 'quiet', False)

    def progress(stats: RunStats) -> None:
        if stats.reads % PROGRESS_EVERY == 0:
            print(f"      Processed {stats.reads // PROGRESS_EVERY}M reads...",
                  end='\r', file=sys.stderr)

    # Standard streams are left open; files are closed on every exit path.
    try:
        with ExitStack() as stack:
            sources = []
            for path in config.files or [None]:
                fh = open_input(path)
                if not is_std_stream(path):
                    stack.callback(fh.close)
                sources.append(iter_lines(fh))

            out = open_output(config.out)
            if not is_stdout:
                stack.callback(out.close)
                print(f"[readcomp] Measuring {len(sources)} input(s) to {config.out}...",
                      file=sys.stderr)

            stats = run(sources, out, config,
                        progress=None if (is_stdout or quiet) else progress)
    except StreamOpenError as e:
        sys.exit(f"Error: {e}")
    except FastqSyncError as e:
        sys.exit(f"Error: {e}")
    except BrokenPipeError:
        sys.stderr.close()
        sys.exit(1)

    duration = time.time() - start_time
    print(f"[readcomp] Done. Processed {stats.lines} lines ({stats.reads} reads) "
          f"in {duration:.2f}s.", file=sys.stderr)
    return stats


# --- MAIN ---

def main(argv: Optional[list] = None):
    parser = build_parser()
    args = parser.parse_args(argv)
    measure_command(args)


if __name__ == "__main__":
    main()
