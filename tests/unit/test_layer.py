# tests/unit/test_layer.py

import tracemalloc

import pytest
import numpy as np
from rasterio.windows import Window

from cci2geogrid.layer import REMAP_BLOCK_CELLS, Dataset, Tile, grid_ranges, tile_filename
from cci2geogrid.resources import DEFAULT_SAFETY_FACTOR
from cci2geogrid.exceptions import (
    DivisibilityError,
    RasterSizeError,
    RasterValidationError,
    UnknownClassError
)
from helpers import assert_exact_partition, expected_usgs

def test_grid_ranges_contiguous():
    assert grid_ranges(12, 3) == [range(0, 4), range(4, 8), range(8, 12)]
    assert grid_ranges(5, 1) == [range(0, 5)]

def test_grid_ranges_not_divisible():
    with pytest.raises(DivisibilityError):
        grid_ranges(10, 3)
    with pytest.raises(DivisibilityError):
        grid_ranges(10, 0)

def test_dataset_row_major_layout():
    buf = np.arange(12, dtype=np.uint8)
    ds = Dataset(buf, width=4, height=3)
    assert ds.shape == (3, 4)
    # offset y*width + x
    assert ds.data[2, 1] == 2 * 4 + 1

def test_dataset_truncates_excess_and_rejects_shortfall():
    ds = Dataset(np.arange(10, dtype=np.uint8), width=3, height=3)
    assert ds.data.reshape(-1).tolist() == list(range(9))

    with pytest.raises(RasterSizeError) as excinfo:
        Dataset(np.zeros(8, dtype=np.uint8), width=3, height=3)
    assert excinfo.value.expected == 9
    assert excinfo.value.actual == 8

def test_dataset_rejects_bad_dimensions():
    with pytest.raises(RasterValidationError):
        Dataset(np.zeros(4, dtype=np.uint8), width=0, height=4)

def test_dataset_remap_in_place(cci_grid):
    arr = cci_grid(4, 4)
    ds = Dataset(arr.copy(), 4, 4)
    ds.remap()
    assert np.array_equal(ds.data, expected_usgs(arr))

def test_dataset_remap_memory_stays_within_safety_factor(cci_grid):
    """In-place remap of a 4000x4000 raster stays within the IN_MEMORY budget."""
    width = height = 4000
    arr = cci_grid(width, height)
    ds = Dataset(arr.copy(), width, height)
    raw = width * height

    tracemalloc.start()
    try:
        ds.remap()
        _, peak = tracemalloc.get_traced_memory()
    finally:
        tracemalloc.stop()

    assert raw + peak <= raw * DEFAULT_SAFETY_FACTOR
    assert np.array_equal(ds.data[-2:], expected_usgs(arr[-2:]))

def test_dataset_remap_unknown_code_in_last_block_changes_nothing(cci_grid):
    width = 1000
    height = 3 * REMAP_BLOCK_CELLS // width
    arr = cci_grid(width, height)
    arr[-1, -1] = 99
    ds = Dataset(arr.copy(), width, height)

    with pytest.raises(UnknownClassError) as excinfo:
        ds.remap()

    assert excinfo.value.codes == (99,)
    assert np.array_equal(ds.data, arr)

def test_iter_row_blocks_bounded_and_complete():
    ds = Dataset(np.arange(50, dtype=np.uint8), 10, 5)
    blocks = list(ds.iter_row_blocks(max_cells=25))

    assert [b.shape for b in blocks] == [(2, 10), (2, 10), (1, 10)]
    assert np.array_equal(np.vstack(blocks), ds.data)
    # Rows wider than max_cells still yield one row per block
    assert len(list(ds.iter_row_blocks(max_cells=3))) == 5

def test_dataset_remap_read_only_buffer():
    ds = Dataset(bytes([10, 20, 30, 40]), 2, 2)
    assert not ds.writable
    with pytest.raises(RasterValidationError):
        ds.remap()

def test_to_tiles_example_4x4():
    ds = Dataset(np.zeros(16, dtype=np.uint8), 4, 4)
    tiles = ds.to_tiles(2)

    assert len(tiles) == 4
    assert {t.x_range for t in tiles} == {range(0, 2), range(2, 4)}
    assert {t.y_range for t in tiles} == {range(0, 2), range(2, 4)}
    assert all(t.width == 2 and t.height == 2 for t in tiles)
    assert tiles[0].filename == "00001-00002.00001-00002"
    assert tiles[-1].filename == "00003-00004.00003-00004"

def test_to_tiles_column_major_order():
    """All row tiles of the first column range come before the second column range."""
    ds = Dataset(np.zeros(6 * 4, dtype=np.uint8), 6, 4)
    order = [(t.x_range.start, t.y_range.start) for t in ds.to_tiles(2)]
    assert order == [(0, 0), (0, 2), (3, 0), (3, 2)]

@pytest.mark.parametrize("width,height,n", [(4, 4, 1), (8, 6, 2), (12, 12, 3), (10, 20, 5), (7, 7, 7)])
def test_to_tiles_partitions_dataset(width, height, n):
    ds = Dataset(np.zeros(width * height, dtype=np.uint8), width, height)
    tiles = ds.to_tiles(n)

    assert len(tiles) == n * n
    assert_exact_partition(tiles, width, height)

@pytest.mark.parametrize("width,height,n", [(8, 6, 4), (9, 6, 3), (8, 6, 0)])
def test_to_tiles_not_divisible(width, height, n):
    ds = Dataset(np.zeros(width * height, dtype=np.uint8), width, height)
    with pytest.raises(DivisibilityError):
        ds.to_tiles(n)

def test_tile_is_a_view():
    arr = np.arange(16, dtype=np.uint8)
    ds = Dataset(arr, 4, 4)
    tile = Tile(ds, range(1, 3), range(2, 4))

    assert tile.data.tolist() == [[9, 10], [13, 14]]
    assert np.shares_memory(tile.data, ds.data)
    assert [row.tolist() for row in tile.iter_rows()] == [[9, 10], [13, 14]]

def test_tile_window():
    ds = Dataset(np.zeros(16, dtype=np.uint8), 4, 4)
    tile = Tile(ds, range(2, 4), range(0, 2))
    assert tile.window == Window(2, 0, 2, 2)

@pytest.mark.parametrize("x_range,y_range", [
    (range(2, 2), range(0, 2)),
    (range(0, 2), range(3, 1)),
    (range(0, 5), range(0, 2)),
    (range(0, 4, 2), range(0, 2)),
])
def test_tile_invalid_ranges(x_range, y_range):
    ds = Dataset(np.zeros(16, dtype=np.uint8), 4, 4)
    with pytest.raises(RasterValidationError):
        Tile(ds, x_range, y_range)

def test_tile_filename_uses_one_based_inclusive_ranges():
    assert tile_filename(range(0, 64800), range(0, 64800)) == "00001-64800.00001-64800"
    assert tile_filename(range(6480, 12960), range(58320, 64800)) == "06481-12960.58321-64800"
