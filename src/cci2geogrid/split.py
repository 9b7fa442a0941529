# src/cci2geogrid/split.py

"""
This module splits a full-globe raster into western and eastern halves.

The split is streamed one row at a time so that peak memory stays at a
single row buffer regardless of the size of the input.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Generator, Union

import numpy as np

from .exceptions import DivisibilityError, RasterIOError, RasterSizeError
from .io import readinto_exact

log = logging.getLogger(__name__)

__all__ = [
    "SplitReport",
    "iter_rows",
    "split_stream",
    "split_hemispheres"
]

@dataclass(frozen=True)
class SplitReport:
    """
    Outcome of a hemisphere split.

    Args:
        rows: Number of rows written to each half.
        half_width: Width in bytes of each half.
        west: Path of the western half.
        east: Path of the eastern half.
    """
    rows: int
    half_width: int
    west: Path
    east: Path

def iter_rows(
    stream: BinaryIO,
    width: int,
    height: int
) -> Generator[np.ndarray, None, None]:
    """
    Yield height rows of width bytes from a binary stream.

    The same buffer is reused for every row; copy a row if it must outlive
    the next iteration.

    Raises:
        RasterSizeError: If the stream ends before height full rows were read.
    """
    row = np.empty(width, dtype=np.uint8)
    for y in range(height):
        try:
            readinto_exact(stream, row)
        except RasterSizeError as e:
            raise RasterSizeError(width * height, y * width + e.actual) from None
        yield row

def _rollback(stream: BinaryIO, size: int) -> None:
    try:
        stream.seek(size)
        stream.truncate()
    except OSError as e:
        log.warning(f"Could not roll back {getattr(stream, 'name', 'output')} to {size} bytes: {e}")

def split_stream(
    source: BinaryIO,
    west: BinaryIO,
    east: BinaryIO,
    width: int,
    height: int,
    progress_step: float = 0.1
) -> int:
    """
    Copy the left half of each source row to west and the right half to east.

    A row is read completely before either half is written, so a short read
    never leaves a half row in one output without its counterpart. Both
    halves are flushed after every row. If a write fails, both outputs are
    truncated back to the last row that reached both of them.

    Returns:
        int: Number of rows written.

    Raises:
        DivisibilityError: If width is odd.
        RasterSizeError: If the source holds fewer than height rows.
        RasterIOError: If writing either half fails. The OSError is chained.
    """
    if width % 2 != 0:
        raise DivisibilityError(f"Cannot split a raster of odd width {width} into hemispheres")

    half = width // 2
    report_every = max(1, int(height * progress_step)) if progress_step else 0
    rows = 0

    for row in iter_rows(source, width, height):
        try:
            west.write(memoryview(row[:half]))
            west.flush()
            east.write(memoryview(row[half:]))
            east.flush()
        except OSError as e:
            log.error(f"Write failed on row {rows}; rolling both halves back to {rows} rows")
            _rollback(west, rows * half)
            _rollback(east, rows * half)
            raise RasterIOError(f"Failed to write row {rows} of the hemisphere split: {e}") from e
        rows += 1
        if report_every and rows % report_every == 0:
            log.info(f"Split {rows}/{height} rows ({100 * rows // height}%)")

    return rows

def split_hemispheres(
    source: Union[str, Path],
    west: Union[str, Path],
    east: Union[str, Path],
    width: int,
    height: int,
    progress_step: float = 0.1
) -> SplitReport:
    """
    Split a full-globe raw raster file into west and east half-width files.

    Args:
        source: Path to the full-globe raster.
        west: Output path for columns [0, width/2).
        east: Output path for columns [width/2, width).
        width: Number of columns in source (must be even).
        height: Number of rows in source.
        progress_step: Fraction of rows between progress log lines (0 disables).

    Returns:
        SplitReport: Summary of the written halves.

    Raises:
        DivisibilityError: If width is odd. Checked before any file is created.
        FileNotFoundError: If source does not exist.
        RasterSizeError: If source is truncated.
        RasterIOError: If a read or write fails.
    """
    source, west, east = Path(source), Path(west), Path(east)

    if width % 2 != 0:
        raise DivisibilityError(f"Cannot split a raster of odd width {width} into hemispheres")
    if not source.exists():
        raise FileNotFoundError(f"Raster file not found: {source}")

    log.info(f"Splitting {source.name} ({width}x{height}) → {west.name}, {east.name}")

    try:
        with source.open("rb") as src, west.open("wb") as w_dst, east.open("wb") as e_dst:
            rows = split_stream(src, w_dst, e_dst, width, height, progress_step=progress_step)
    except OSError as e:
        if isinstance(e, RasterIOError):
            raise
        raise RasterIOError(f"Failed to split {source}: {e}") from e

    log.info(f"Split complete: {rows} rows of {width // 2} bytes per hemisphere")
    return SplitReport(rows=rows, half_width=width // 2, west=west, east=east)
