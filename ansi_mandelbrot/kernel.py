import logging
import concurrent.futures

import numpy as np
from numba import jit, prange

from .colors import iteration_to_color
from .errors import ResourceError

logger = logging.getLogger(__name__)

ESCAPE_RADIUS_SQ = 4.0


# --- 1. THE KERNEL (COMPILED) ---
# nogil=True lets the row workers below run on real threads.
# No fastmath: results must be bit-identical whatever the worker count.
@jit(nopython=True, nogil=True)
def escape_time(x0, y0, max_iter):
    """
    Number of steps of z -> z*z + c (z0 = 0, c = x0 + i*y0) before |z|^2
    exceeds 4, capped at max_iter.

    The squares are carried between steps so there is no sqrt and no
    repeated multiply in the escape test.
    """
    x = 0.0
    y = 0.0
    x2 = 0.0
    y2 = 0.0
    n = 0
    while x2 + y2 <= ESCAPE_RADIUS_SQ and n < max_iter:
        y = 2.0 * x * y + y0
        x = x2 - y2 + x0
        x2 = x * x
        y2 = y * y
        n += 1
    return n


@jit(nopython=True, nogil=True)
def compute_rows(xs, ys, max_iter, iterations, colors, row_start, row_stop):
    """Fill rows [row_start, row_stop) of both grids. Touches nothing else."""
    width = xs.shape[0]
    for py in range(row_start, row_stop):
        y0 = ys[py]
        for px in range(width):
            n = escape_time(xs[px], y0, max_iter)
            iterations[py, px] = n
            colors[py, px] = iteration_to_color(n, max_iter)


# --- 2. PARALLEL LOOP ---
# prange: numba splits the rows across its own thread pool.
@jit(nopython=True, parallel=True)
def compute_frame_parallel(xs, ys, max_iter, iterations, colors):
    width = xs.shape[0]
    for py in prange(ys.shape[0]):
        y0 = ys[py]
        for px in range(width):
            n = escape_time(xs[px], y0, max_iter)
            iterations[py, px] = n
            colors[py, px] = iteration_to_color(n, max_iter)


# --- 3. FRAME BUFFERS ---
class FrameBuffers:
    """
    Preallocated iteration and color grids for one frame, row-major,
    shaped (height, width). Use as a context manager so the grids are
    dropped on every exit path.
    """

    def __init__(self, width, height):
        self.width = width
        self.height = height
        self.iterations = None
        self.colors = None
        try:
            self.iterations = np.empty((height, width), dtype=np.int32)
            self.colors = np.empty((height, width), dtype=np.uint8)
        except (MemoryError, ValueError) as exc:
            self.release()
            raise ResourceError("Allocation failed.") from exc

    def release(self):
        self.iterations = None
        self.colors = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False


# --- 4. THE WORKER POOL ---
def partition_rows(height, workers):
    """
    Split [0, height) into at most `workers` contiguous, disjoint ranges
    whose sizes differ by at most one row.
    """
    workers = max(1, min(workers, height))
    base, extra = divmod(height, workers)
    ranges = []
    start = 0
    for i in range(workers):
        stop = start + base + (1 if i < extra else 0)
        ranges.append((start, stop))
        start = stop
    return ranges


def render_frame(xs, ys, max_iter, frame, workers):
    """
    Run the computation phase into `frame`.

    workers >= 1: one compute_rows task per row partition on a thread pool.
    workers == 0: hand the whole frame to numba's prange scheduler.
    Returns once every row is written; a failing task re-raises here.
    """
    if workers == 0:
        logger.debug("computing %d rows with numba prange", frame.height)
        compute_frame_parallel(xs, ys, max_iter, frame.iterations, frame.colors)
        return

    partitions = partition_rows(frame.height, workers)
    logger.debug("computing %d rows in %d partitions", frame.height, len(partitions))
    with concurrent.futures.ThreadPoolExecutor(max_workers=len(partitions)) as executor:
        futures = [
            executor.submit(compute_rows, xs, ys, max_iter,
                            frame.iterations, frame.colors, start, stop)
            for start, stop in partitions
        ]
        for future in futures:
            future.result()
