import logging
from typing import NamedTuple

from .colors import PALETTE_SIZE
from .errors import OutputError, ResourceError

logger = logging.getLogger(__name__)

# Background color i, one visible cell, reset.
ENTRY_TEMPLATE = "\x1b[48;5;{}m \x1b[0m"
MAX_ENTRY_LEN = 20


class Palette(NamedTuple):
    """
    The 256 xterm background-color cells as ready-to-copy byte strings.

    Built once by build_palette() before any row is emitted and never
    modified afterwards, so row emission can read it freely.
    """
    entries: tuple
    lengths: tuple
    max_len: int


def build_palette():
    entries = []
    for i in range(PALETTE_SIZE):
        entry = ENTRY_TEMPLATE.format(i).encode("ascii")
        if len(entry) >= MAX_ENTRY_LEN:
            entry = entry[:MAX_ENTRY_LEN - 1]
        entries.append(entry)
    lengths = tuple(len(entry) for entry in entries)
    return Palette(tuple(entries), lengths, max(lengths))


def _write_row(stream, row):
    try:
        written = stream.write(row)
    except OSError as exc:
        raise OutputError(f"write: {exc.strerror or exc}") from exc
    if written is None or written < len(row):
        raise OutputError(f"write: short write ({written or 0} of {len(row)} bytes)")


def emit_rows(colors, palette, stream):
    """
    Write the color grid to a binary stream, top row first, one write()
    per row. Each row is the palette entries of its pixels, left to right,
    followed by a newline.

    Any failed or short write raises OutputError and nothing more is
    written. Returns the number of bytes written.
    """
    height, width = colors.shape
    try:
        row_buf = bytearray(width * palette.max_len + 1)
    except (MemoryError, OverflowError) as exc:
        raise ResourceError("Allocation failed.") from exc

    entries = palette.entries
    lengths = palette.lengths
    total = 0
    for py in range(height):
        pos = 0
        for color in colors[py].tolist():
            end = pos + lengths[color]
            row_buf[pos:end] = entries[color]
            pos = end
        row_buf[pos] = 0x0A
        pos += 1
        _write_row(stream, row_buf[:pos])
        total += pos
    logger.debug("emitted %d rows, %d bytes", height, total)
    return total
