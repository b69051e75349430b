from typing import NamedTuple

import numpy as np


class Viewport(NamedTuple):
    width: int
    height: int
    center_x: float
    center_y: float
    zoom: float
    aspect: float
    xmin: float
    ymin: float
    dx: float
    dy: float


def map_viewport(width, height, center_x, center_y, zoom):
    """
    Fit the pixel grid onto the complex plane.

    zoom is the radius along the real axis; the imaginary extent follows
    the pixel aspect ratio so pixels stay square.
    """
    aspect = height / width
    xmin = center_x - zoom
    ymin = center_y - zoom * aspect
    dx = (2.0 * zoom) / width
    dy = (2.0 * zoom * aspect) / height
    return Viewport(width, height, center_x, center_y, zoom,
                    aspect, xmin, ymin, dx, dy)


def coordinate_tables(view):
    """
    Precompute the real part of every column and the imaginary part of
    every row. Returns read-only float64 arrays (xs, ys).
    """
    xs = view.xmin + view.dx * np.arange(view.width, dtype=np.float64)
    ys = view.ymin + view.dy * np.arange(view.height, dtype=np.float64)
    xs.flags.writeable = False
    ys.flags.writeable = False
    return xs, ys
