import argparse
import logging
import math
import os
import sys
import time

from .errors import ArgumentError, RenderError, ResourceError
from .kernel import FrameBuffers, render_frame
from .palette import build_palette, emit_rows
from .viewport import coordinate_tables, map_viewport

# --- CONFIGURATION ---
WORKERS_ENV = "ANSI_MANDELBROT_WORKERS"
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
EXIT_SUCCESS = 0
EXIT_FAILURE = 1

logger = logging.getLogger(__name__)


def default_workers():
    """Worker threads from ANSI_MANDELBROT_WORKERS, else one per CPU."""
    value = os.environ.get(WORKERS_ENV)
    if value is None:
        return os.cpu_count() or 1
    try:
        workers = int(value)
    except ValueError:
        raise ArgumentError(f"{WORKERS_ENV} must be an integer, got {value!r}") from None
    if workers < 0:
        raise ArgumentError(f"{WORKERS_ENV} must not be negative")
    return workers


def render(width, height, max_iter, center_x, center_y, zoom, stream, workers=1):
    """
    Render one frame and stream it to `stream` (binary, write() returning
    the byte count). Returns the number of bytes written.
    """
    view = map_viewport(width, height, center_x, center_y, zoom)
    try:
        xs, ys = coordinate_tables(view)
    except (MemoryError, ValueError) as exc:
        raise ResourceError("Allocation failed.") from exc

    with FrameBuffers(width, height) as frame:
        start_time = time.time()
        render_frame(xs, ys, max_iter, frame, workers)
        logger.info("Computed %dx%d frame (max_iter=%d, workers=%d) in %.4fs",
                    width, height, max_iter, workers, time.time() - start_time)

        palette = build_palette()
        start_time = time.time()
        written = emit_rows(frame.colors, palette, stream)
        logger.info("Wrote %d bytes in %.4fs", written, time.time() - start_time)
    return written


class _ArgumentParser(argparse.ArgumentParser):
    # argparse exits with status 2 on its own; every argument error here is status 1.
    def error(self, message):
        raise ArgumentError(f"Invalid argument(s): {message}")


def _finite_float(text):
    value = float(text)
    if not math.isfinite(value):
        raise argparse.ArgumentTypeError(f"not a finite number: {text!r}")
    return value


def _non_negative_int(text):
    value = int(text)
    if value < 0:
        raise argparse.ArgumentTypeError(f"must not be negative: {text!r}")
    return value


def build_parser():
    parser = _ArgumentParser(
        prog="ansi-mandelbrot",
        description="Render the Mandelbrot set as ANSI 256-color text rows on stdout.",
    )
    parser.add_argument("width", type=int, help="columns (pixels per row)")
    parser.add_argument("height", type=int, help="rows")
    parser.add_argument("max_iter", type=int, help="iteration cap; points reaching it are interior")
    parser.add_argument("center_x", type=_finite_float, help="real part of the view center")
    parser.add_argument("center_y", type=_finite_float, help="imaginary part of the view center")
    parser.add_argument("zoom", type=_finite_float, help="half-width of the view on the real axis")
    parser.add_argument("-w", "--workers", type=_non_negative_int, default=None,
                        help=f"worker threads, 0 lets numba schedule rows "
                             f"(default: ${WORKERS_ENV} or CPU count)")
    parser.add_argument("-v", "--verbose", action="store_true", help="log timings to stderr")
    return parser


_FLAGS = ("-v", "--verbose", "-h", "--help")
_VALUE_OPTIONS = ("-w", "--workers")


def split_argv(argv):
    """
    Separate our options from the positional values.

    argparse takes "-1e-3" for an option, so positionals are handed back
    after a "--" and always parse as values.
    """
    options = []
    positionals = []
    tokens = iter(argv)
    for token in tokens:
        if token == "--":
            positionals.extend(tokens)
        elif token in _FLAGS:
            options.append(token)
        elif token in _VALUE_OPTIONS:
            options.append(token)
            value = next(tokens, None)
            if value is not None:
                options.append(value)
        elif token.startswith("--workers=") or token.startswith("-w"):
            options.append(token)
        else:
            positionals.append(token)
    return options + ["--"] + positionals


def parse_args(parser, argv=None):
    if argv is None:
        argv = sys.argv[1:]
    args = parser.parse_args(split_argv(argv))
    if args.width <= 0 or args.height <= 0 or args.max_iter <= 0 or args.zoom <= 0.0:
        raise ArgumentError("Arguments must be positive.")
    if args.workers is None:
        args.workers = default_workers()
    return args


def main(argv=None, stream=None):
    logging.basicConfig(level=logging.WARNING, format=LOG_FORMAT, stream=sys.stderr)
    parser = build_parser()
    try:
        args = parse_args(parser, argv)
    except ArgumentError as exc:
        parser.print_usage(sys.stderr)
        logger.error("%s", exc)
        return EXIT_FAILURE

    logging.getLogger(__package__).setLevel(logging.INFO if args.verbose else logging.NOTSET)

    params = (args.width, args.height, args.max_iter,
              args.center_x, args.center_y, args.zoom)
    try:
        if stream is None:
            # Unbuffered so each row is a single write(2) on fd 1.
            with os.fdopen(sys.stdout.fileno(), "wb", buffering=0, closefd=False) as out:
                render(*params, out, workers=args.workers)
        else:
            render(*params, stream, workers=args.workers)
    except RenderError as exc:
        logger.error("%s", exc)
        return EXIT_FAILURE
    return EXIT_SUCCESS
