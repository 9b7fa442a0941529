# src/cci2geogrid/io.py

"""
This module handles all disk-based operations for raw byte rasters.

Rasters are headerless files: one uint8 class code per cell, row-major.
Tiles are written in the same layout under geogrid-style filenames.
"""

import logging
import re
from pathlib import Path
from typing import BinaryIO, Dict, Iterable, List, Tuple, Union

import numpy as np
from rasterio.windows import Window

from .exceptions import (
    OutputTargetError,
    RasterIOError,
    RasterSizeError,
    RasterValidationError
)
from .layer import Dataset, Tile
from .remap import remap_array
from .resources import ProcessingMode

log = logging.getLogger(__name__)

__all__ = [
    "load",
    "read_exact",
    "readinto_exact",
    "write_tile",
    "save",
    "parse_tile_filename",
    "verify_tiles",
    "stitch_tiles"
]

TILE_NAME_PATTERN = re.compile(r"^(\d{5,})-(\d{5,})\.(\d{5,})-(\d{5,})$")

def readinto_exact(stream: BinaryIO, buffer: Union[np.ndarray, memoryview]) -> int:
    """
    Fill buffer completely from a binary stream.

    Args:
        stream: Open binary file object.
        buffer: Writable contiguous buffer to fill.

    Returns:
        int: Number of bytes read (always the full buffer size).

    Raises:
        RasterSizeError: If the stream ends before the buffer is full.
    """
    view = memoryview(buffer).cast("B")
    total = len(view)
    filled = 0
    while filled < total:
        n = stream.readinto(view[filled:])
        if not n:
            raise RasterSizeError(total, filled)
        filled += n
    return filled

def read_exact(stream: BinaryIO, n: int) -> bytes:
    """Read exactly n bytes from a binary stream or raise RasterSizeError."""
    buf = bytearray(n)
    readinto_exact(stream, buf)
    return bytes(buf)

def load(
    path: Union[str, Path],
    width: int,
    height: int,
    mode: Union[ProcessingMode, str] = ProcessingMode.IN_MEMORY
) -> Dataset:
    """
    Load a raw byte raster from disk.

    Exactly width*height bytes are read starting at offset 0. Any trailing
    bytes in the file are ignored.

    Args:
        path: Path to the raw raster file.
        width: Number of columns.
        height: Number of rows.
        mode: IN_MEMORY reads into a writable buffer; STREAMED memory-maps
              the file read-only so cells are paged in on demand.

    Returns:
        Dataset: The loaded raster.

    Raises:
        FileNotFoundError: If path does not exist.
        RasterSizeError: If the file holds fewer than width*height bytes.
        RasterIOError: If the read itself fails.
    """
    path = Path(path)
    mode = ProcessingMode(mode)

    if not path.exists():
        raise FileNotFoundError(f"Raster file not found: {path}")

    expected = width * height
    log.debug(f"Loading raster: {path.name} ({width}x{height}, {mode.value})")

    try:
        if mode == ProcessingMode.STREAMED:
            available = path.stat().st_size
            if available < expected:
                raise RasterSizeError(expected, available, source=path.name)
            data = np.memmap(path, dtype=np.uint8, mode="r", shape=(height, width))
        else:
            data = np.empty(expected, dtype=np.uint8)
            with path.open("rb") as fh:
                try:
                    readinto_exact(fh, data)
                except RasterSizeError as e:
                    raise RasterSizeError(expected, e.actual, source=path.name) from None

    except OSError as e:
        if isinstance(e, RasterIOError):
            raise
        raise RasterIOError(f"Failed to read raster from {path}: {e}") from e

    return Dataset(data, width, height)

def _write_rows(rows: Iterable[np.ndarray], out_path: Path, remap: bool) -> None:
    with out_path.open("wb") as fh:
        for row in rows:
            if remap:
                row = remap_array(row)
            fh.write(memoryview(row))

def write_tile(
    tile: Tile,
    output_dir: Union[str, Path],
    remap: bool = False
) -> Path:
    """
    Write one tile to output_dir under its geogrid filename.

    Rows are written top to bottom, one write per row, since a tile's rows
    are not contiguous in the dataset buffer unless it spans the full width.

    Args:
        tile: The tile to write.
        output_dir: EXISTING directory to write into.
        remap: Remap each row from CCI to USGS codes before writing. Used
               when the dataset is read-only and was not remapped in place.

    Returns:
        Path: The written file.

    Raises:
        OutputTargetError: If output_dir is missing or not a directory.
        UnknownClassError: If remap is set and a row holds an unknown code.
        RasterIOError: If a write fails. The partial file is left on disk.
    """
    output_dir = Path(output_dir)
    if not output_dir.is_dir():
        raise OutputTargetError(f"Output directory does not exist or is not a directory: {output_dir}")

    out_path = output_dir / tile.filename
    log.debug(f"Writing tile {tile.window} → {out_path.name}")

    try:
        _write_rows(tile.iter_rows(), out_path, remap)
    except OSError as e:
        raise RasterIOError(f"Failed to write tile to {out_path}: {e}") from e

    return out_path

def save(
    dataset: Dataset,
    path: Union[str, Path],
    remap: bool = False
) -> Path:
    """
    Write a whole Dataset to path as a headerless byte raster.

    A writable dataset that needs no remapping is written straight from its
    buffer, without an intermediate copy. With remap set, rows are remapped
    and written one block at a time.

    Raises:
        OutputTargetError: If the parent directory does not exist.
        UnknownClassError: If remap is set and a cell holds an unknown code.
        RasterIOError: If a write fails. The partial file is left on disk.
    """
    path = Path(path)
    if not path.parent.is_dir():
        raise OutputTargetError(f"Output directory does not exist or is not a directory: {path.parent}")

    log.info(f"Saving raster {dataset.width}x{dataset.height} → {path}")

    try:
        _write_rows(dataset.iter_row_blocks(), path, remap)
    except OSError as e:
        raise RasterIOError(f"Failed to save raster to {path}: {e}") from e

    return path

def parse_tile_filename(name: str) -> Tuple[range, range]:
    """
    Decode a geogrid tile filename back into half-open pixel ranges.

    "00001-00002.00003-00004" -> (range(0, 2), range(2, 4))

    Raises:
        RasterValidationError: If name is not a tile filename.
    """
    match = TILE_NAME_PATTERN.match(name)
    if not match:
        raise RasterValidationError(f"Not a tile filename: {name!r}")

    x1, x2, y1, y2 = (int(g) for g in match.groups())
    if x1 < 1 or y1 < 1 or x2 < x1 or y2 < y1:
        raise RasterValidationError(f"Invalid pixel ranges in tile filename: {name!r}")
    return range(x1 - 1, x2), range(y1 - 1, y2)

def _overlaps(a: Tuple[range, range], b: Tuple[range, range]) -> bool:
    return all(r1.start < r2.stop and r2.start < r1.stop for r1, r2 in zip(a, b))

def verify_tiles(
    directory: Union[str, Path],
    width: int,
    height: int
) -> Dict[Path, Window]:
    """
    Check that a directory of tile files covers a width x height raster
    exactly once, using only filenames and file sizes.

    No tile contents are read and nothing raster-sized is allocated.
    Files whose names are not tile filenames are skipped.

    Returns:
        Dict[Path, Window]: Each tile file and the window it covers.

    Raises:
        OutputTargetError: If directory is missing or not a directory.
        RasterValidationError: If a tile falls outside the raster, overlaps
            another tile, has the wrong size, or the tiles leave gaps.
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise OutputTargetError(f"Tile directory does not exist or is not a directory: {directory}")

    placed: List[Tuple[range, range]] = []
    windows: Dict[Path, Window] = {}
    area = 0

    for path in sorted(directory.iterdir()):
        if not TILE_NAME_PATTERN.match(path.name):
            log.debug(f"Skipping non-tile file {path.name}")
            continue

        ranges = parse_tile_filename(path.name)
        x_range, y_range = ranges
        if x_range.stop > width or y_range.stop > height:
            raise RasterValidationError(f"Tile {path.name} lies outside a {width}x{height} canvas")

        if any(_overlaps(ranges, other) for other in placed):
            raise RasterValidationError(f"Tile {path.name} overlaps a previously placed tile")

        size = path.stat().st_size
        expected = len(x_range) * len(y_range)
        if size != expected:
            raise RasterValidationError(f"Tile {path.name} holds {size} bytes, expected {expected}")

        placed.append(ranges)
        windows[path] = Window.from_slices(
            (y_range.start, y_range.stop),
            (x_range.start, x_range.stop)
        )
        area += expected

    # Tiles are in bounds and disjoint, so equal area means full coverage.
    if area != width * height:
        raise RasterValidationError(
            f"{len(placed)} tiles leave {width * height - area} of {width * height} cells uncovered"
        )

    log.info(f"Verified {len(placed)} tiles covering a {width}x{height} raster")
    return windows

def stitch_tiles(
    directory: Union[str, Path],
    width: int,
    height: int
) -> np.ndarray:
    """
    Reassemble a directory of tile files into a single (height, width) array.

    The tile set is checked with verify_tiles first, then each file is
    placed by the window encoded in its name.

    Raises:
        OutputTargetError: If directory is missing or not a directory.
        RasterValidationError: If the tiles do not cover the canvas exactly.
    """
    windows = verify_tiles(directory, width, height)

    canvas = np.empty((height, width), dtype=np.uint8)
    for path, window in windows.items():
        rows, cols = window.toslices()
        canvas[rows, cols] = np.fromfile(path, dtype=np.uint8).reshape(
            int(window.height), int(window.width)
        )

    log.info(f"Stitched {len(windows)} tiles into a {width}x{height} canvas")
    return canvas
