"""ANSI 256-color Mandelbrot renderer for the terminal."""

from .cli import main, render
from .colors import INTERIOR_COLOR, iteration_to_color
from .errors import ArgumentError, OutputError, RenderError, ResourceError
from .kernel import FrameBuffers, escape_time, partition_rows, render_frame
from .palette import Palette, build_palette, emit_rows
from .viewport import Viewport, coordinate_tables, map_viewport

__version__ = "0.1.0"
