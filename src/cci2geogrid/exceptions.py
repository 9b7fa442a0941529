# src/cci2geogrid/exceptions.py

"""
Error hierarchy for the conversion pipeline.

Every failure the pipeline can hit is fatal for the run. Stages raise one of
these and never retry or roll back files already written.
"""

from typing import Iterable, Tuple

__all__ = [
    "Cci2GeogridError",
    "RasterError",
    "RasterIOError",
    "RasterValidationError",
    "RasterSizeError",
    "OutputTargetError",
    "DivisibilityError",
    "UnknownClassError"
]

class Cci2GeogridError(Exception):
    """Base class for all errors raised by cci2geogrid."""

class RasterError(Cci2GeogridError):
    """Generic raster failure."""

class RasterIOError(RasterError, IOError):
    """An underlying read or write failed."""

class RasterValidationError(RasterError, ValueError):
    """Raster contents or dimensions are not acceptable."""

class RasterSizeError(RasterIOError):
    """
    Fewer bytes are available than the declared dimensions require.

    Attributes:
        expected: Number of bytes required.
        actual: Number of bytes actually available.
    """
    def __init__(self, expected: int, actual: int, source: str = "input"):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Truncated {source}: expected {expected} bytes, got {actual}"
        )

class OutputTargetError(RasterIOError):
    """The output target is missing or not a directory."""

class DivisibilityError(RasterValidationError):
    """A dimension cannot be split evenly (odd split width or non-divisible grid)."""

class UnknownClassError(RasterValidationError):
    """
    A cell holds a value outside the CCI land-cover legend.

    Attributes:
        codes: Sorted tuple of the offending byte values.
    """
    def __init__(self, codes: Iterable[int]):
        self.codes: Tuple[int, ...] = tuple(sorted(int(c) for c in set(codes)))
        super().__init__(f"Unexpected class code(s) in data: {list(self.codes)}")
