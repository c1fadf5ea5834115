"""Error kinds raised by the trace serialiser.

Every error derives from TraceSerialiserError and from the builtin that best
describes it, so callers can catch either the specific kind or the builtin.
"""

from typing import Optional


class TraceSerialiserError(Exception):
    """Base class for all serialiser errors."""


class InvalidSampleTypeError(TraceSerialiserError, TypeError):
    """Sample kind is not numeric (strings, objects, complex numbers)."""


class InvalidSampleWidthError(TraceSerialiserError, ValueError):
    """Sample width is not 1, 2 or 4 bytes, or unusable for the sample kind."""


class SampleOverflowError(InvalidSampleWidthError):
    """A sample value does not fit in the declared sample width."""


class DimensionMismatchError(TraceSerialiserError, ValueError):
    """Trace count / samples per trace do not match the supplied data."""


class StructuralMismatchError(TraceSerialiserError, ValueError):
    """Traces (or extra data blobs) have unequal lengths where equal is required."""


class InvalidTagError(TraceSerialiserError, ValueError):
    """Tag is reserved, the trace block marker, or outside 0..255."""

    def __init__(self, message: str, tag: Optional[int] = None):
        super().__init__(message)
        self.tag = tag


class PreconditionNotMetError(TraceSerialiserError, ValueError):
    """A gated header was set before the header that enables it."""

    def __init__(self, message: str, required_tag: Optional[int] = None):
        super().__init__(message)
        self.required_tag = required_tag


class SinkUnavailableError(TraceSerialiserError, OSError):
    """The output destination could not be opened or fully written."""
