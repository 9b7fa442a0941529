# src/cci2geogrid/layer.py

"""
This module defines the in-memory raster (Dataset) and the rectangular
views (Tile) used to cut it into a geogrid tile set.
"""

import logging
from dataclasses import dataclass
from typing import Iterator, List, Union

import numpy as np
from rasterio.windows import Window

from .exceptions import DivisibilityError, RasterSizeError, RasterValidationError
from .remap import check_codes, remap_array

log = logging.getLogger(__name__)

# Upper bound on cells remapped per numpy call; temporaries are ~10 bytes per cell.
REMAP_BLOCK_CELLS = 1 << 16

__all__ = [
    "REMAP_BLOCK_CELLS",
    "Dataset",
    "Tile",
    "grid_ranges",
    "tile_filename"
]

def grid_ranges(length: int, n: int) -> List[range]:
    """
    Split [0, length) into n contiguous half-open ranges of equal size.

    Raises:
        DivisibilityError: If length is not a multiple of n.
    """
    if n < 1:
        raise DivisibilityError(f"Grid size must be a positive integer, got {n}")
    if length % n != 0:
        raise DivisibilityError(f"Length {length} is not divisible by grid size {n}")

    step = length // n
    return [range(i * step, (i + 1) * step) for i in range(n)]

def tile_filename(x_range: range, y_range: range) -> str:
    """
    Build the geogrid filename for a pair of half-open pixel ranges.

    Ranges are rendered 1-based and inclusive: [start, stop) becomes
    start+1 .. stop, so range(0, 2) is written as "00001-00002".
    """
    return (
        f"{x_range.start + 1:05}-{x_range.stop:05}."
        f"{y_range.start + 1:05}-{y_range.stop:05}"
    )

class Dataset:
    """
    A single-band byte raster held as a (height, width) numpy array.

    The dataset is the sole owner of its buffer. Tiles created from it are
    views and must not outlive it.

    Attributes:
        data (np.ndarray): uint8 class codes in (Height, Width) layout.
    """

    def __init__(self, data: Union[np.ndarray, bytes, bytearray], width: int, height: int):
        """
        Args:
            data: Flat or 2D byte buffer. Must hold at least width*height cells;
                  anything beyond that is ignored.
            width: Number of columns.
            height: Number of rows.

        Raises:
            RasterValidationError: If the dimensions are not positive.
            RasterSizeError: If the buffer is shorter than width*height.
        """
        if width <= 0 or height <= 0:
            raise RasterValidationError(f"Dimensions must be positive, got {width}x{height}")

        if isinstance(data, (bytes, bytearray)):
            data = np.frombuffer(data, dtype=np.uint8)
        if not isinstance(data, np.ndarray):
            raise TypeError(f"Data must be numpy.ndarray or bytes, got {type(data)}")
        if data.dtype != np.uint8:
            raise TypeError(f"Data must be uint8, got {data.dtype}")

        expected = width * height
        flat = data.reshape(-1)
        if flat.size < expected:
            raise RasterSizeError(expected, flat.size, source="raster buffer")
        if flat.size > expected:
            log.debug(f"Ignoring {flat.size - expected} trailing bytes")

        self._data = flat[:expected].reshape(height, width)
        self._width = width
        self._height = height

    @property
    def data(self) -> np.ndarray:
        return self._data

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def shape(self):
        return (self._height, self._width)

    @property
    def nbytes(self) -> int:
        return self._width * self._height

    @property
    def writable(self) -> bool:
        return bool(self._data.flags.writeable)

    def iter_row_blocks(self, max_cells: int = REMAP_BLOCK_CELLS) -> Iterator[np.ndarray]:
        """
        Yield views of consecutive full-width row blocks, each holding at
        most max_cells cells (and at least one row).
        """
        rows = max(1, max_cells // self._width)
        for start in range(0, self._height, rows):
            yield self._data[start:start + rows]

    def remap(self) -> "Dataset":
        """
        Rewrite every cell from CCI to USGS codes in place.

        The buffer is processed in row blocks so that temporary memory stays
        bounded by REMAP_BLOCK_CELLS rather than growing with the raster.
        Every block is validated before the first one is rewritten.

        Raises:
            UnknownClassError: If any cell holds an unknown code. The buffer
                is left unchanged in that case.
            RasterValidationError: If the buffer is read-only (memory-mapped).
        """
        if not self.writable:
            raise RasterValidationError("Cannot remap a read-only dataset in place")

        log.info(f"Remapping {self.nbytes} cells from CCI to USGS classes")
        for block in self.iter_row_blocks():
            check_codes(block)
        for block in self.iter_row_blocks():
            remap_array(block, out=block)
        return self

    def to_tiles(self, n: int) -> List["Tile"]:
        """
        Partition the dataset into an n x n grid of tiles.

        Column ranges form the outer loop and row ranges the inner loop, so
        every row tile of the first column range comes before any tile of
        the second column range.

        Args:
            n: Number of tiles along each axis.

        Returns:
            List[Tile]: Exactly n*n non-overlapping tiles covering the dataset.

        Raises:
            DivisibilityError: If width or height is not a multiple of n.
                Nothing is produced in that case.
        """
        if n < 1:
            raise DivisibilityError(f"Grid size must be a positive integer, got {n}")
        if self._width % n != 0 or self._height % n != 0:
            raise DivisibilityError(
                f"Raster {self._width}x{self._height} cannot be split into a "
                f"{n}x{n} grid: both dimensions must be divisible by {n}"
            )

        x_ranges = grid_ranges(self._width, n)
        y_ranges = grid_ranges(self._height, n)
        log.debug(f"Tile size: {self._width // n}x{self._height // n}")

        return [
            Tile(self, x_range, y_range)
            for x_range in x_ranges
            for y_range in y_ranges
        ]

    def __repr__(self) -> str:
        return f"<Dataset {self._width}x{self._height}>"

@dataclass(frozen=True, eq=False)
class Tile:
    """
    A rectangular, non-owning view into a Dataset.

    Attributes:
        dataset: The Dataset this tile reads from.
        x_range: Half-open column range [x1, x2).
        y_range: Half-open row range [y1, y2).
    """
    dataset: Dataset
    x_range: range
    y_range: range

    def __post_init__(self):
        for name, rng, limit in (
            ("x_range", self.x_range, self.dataset.width),
            ("y_range", self.y_range, self.dataset.height),
        ):
            if rng.step != 1:
                raise RasterValidationError(f"{name} must be contiguous, got {rng}")
            if rng.stop <= rng.start:
                raise RasterValidationError(f"{name} must be non-empty, got {rng}")
            if rng.start < 0 or rng.stop > limit:
                raise RasterValidationError(f"{name} {rng} is outside [0, {limit})")

    @property
    def width(self) -> int:
        return len(self.x_range)

    @property
    def height(self) -> int:
        return len(self.y_range)

    @property
    def nbytes(self) -> int:
        return self.width * self.height

    @property
    def window(self) -> Window:
        """The tile as a rasterio Window (col_off, row_off, width, height)."""
        return Window.from_slices(
            (self.y_range.start, self.y_range.stop),
            (self.x_range.start, self.x_range.stop)
        )

    @property
    def data(self) -> np.ndarray:
        """A (height, width) view of the tile's cells. No copy is made."""
        return self.dataset.data[
            self.y_range.start:self.y_range.stop,
            self.x_range.start:self.x_range.stop
        ]

    @property
    def filename(self) -> str:
        return tile_filename(self.x_range, self.y_range)

    def iter_rows(self) -> Iterator[np.ndarray]:
        """Yield the tile's rows top to bottom, each a contiguous 1D slice."""
        cols = slice(self.x_range.start, self.x_range.stop)
        for y in self.y_range:
            yield self.dataset.data[y, cols]

    def __repr__(self) -> str:
        return (
            f"<Tile x=[{self.x_range.start},{self.x_range.stop}) "
            f"y=[{self.y_range.start},{self.y_range.stop})>"
        )
