"""Error taxonomy. Every error is terminal for the run and maps to exit code 1."""


class RenderError(Exception):
    """Base class for failures that abort a render."""


class ArgumentError(RenderError):
    """Wrong argument count, non-numeric value or out-of-range value."""


class ResourceError(RenderError):
    """A grid, table or row buffer could not be allocated."""


class OutputError(RenderError):
    """A row could not be written to the output stream in full."""
