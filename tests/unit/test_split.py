# tests/unit/test_split.py

import errno
import io as pyio
import os

import pytest
import numpy as np

from cci2geogrid import split
from cci2geogrid.exceptions import DivisibilityError, RasterIOError, RasterSizeError
from helpers import FailingWriter

def test_split_hemispheres_reconstructs_rows(tmp_path, raw_raster_factory):
    path, arr = raw_raster_factory(width=10, height=7)
    west, east = tmp_path / "west.dat", tmp_path / "east.dat"

    report = split.split_hemispheres(path, west, east, 10, 7)

    assert report.rows == 7
    assert report.half_width == 5
    w = np.fromfile(west, dtype=np.uint8).reshape(7, 5)
    e = np.fromfile(east, dtype=np.uint8).reshape(7, 5)
    assert np.array_equal(np.hstack([w, e]), arr)

def test_split_ignores_trailing_bytes(tmp_path, raw_raster_factory):
    path, arr = raw_raster_factory(width=4, height=2, trailing=b"\x01\x02\x03")
    west, east = tmp_path / "w", tmp_path / "e"
    split.split_hemispheres(path, west, east, 4, 2)

    assert west.read_bytes() == arr[:, :2].tobytes()
    assert east.read_bytes() == arr[:, 2:].tobytes()

def test_split_odd_width_creates_nothing(tmp_path, raw_raster_factory):
    path, _ = raw_raster_factory(width=5, height=2)
    west, east = tmp_path / "w", tmp_path / "e"

    with pytest.raises(DivisibilityError):
        split.split_hemispheres(path, west, east, 5, 2)
    assert not west.exists()
    assert not east.exists()

def test_split_missing_source(tmp_path):
    with pytest.raises(FileNotFoundError):
        split.split_hemispheres(tmp_path / "none", tmp_path / "w", tmp_path / "e", 4, 4)

def test_split_stream_never_writes_half_rows():
    """A short final row is detected before either half of it is written."""
    source = pyio.BytesIO(bytes(range(4 * 2 + 3)))
    west, east = pyio.BytesIO(), pyio.BytesIO()

    with pytest.raises(RasterSizeError) as excinfo:
        split.split_stream(source, west, east, 4, 3)

    assert excinfo.value.expected == 12
    assert excinfo.value.actual == 11
    assert west.getvalue() == bytes([0, 1, 4, 5])
    assert east.getvalue() == bytes([2, 3, 6, 7])

def test_iter_rows_reuses_buffer():
    source = pyio.BytesIO(bytes(range(6)))
    rows = [row.copy().tolist() for row in split.iter_rows(source, 3, 2)]
    assert rows == [[0, 1, 2], [3, 4, 5]]

def test_split_stream_write_failure_rolls_back_both_halves():
    """East fails on the third row; west is cut back to the two rows east holds."""
    source = pyio.BytesIO(bytes(range(4 * 3)))
    west, east = pyio.BytesIO(), FailingWriter(fail_after=2)

    with pytest.raises(RasterIOError) as excinfo:
        split.split_stream(source, west, east, 4, 3)

    assert isinstance(excinfo.value.__cause__, OSError)
    assert excinfo.value.__cause__.errno == errno.ENOSPC
    assert west.getvalue() == bytes([0, 1, 4, 5])
    assert east.getvalue() == bytes([2, 3, 6, 7])

def test_split_stream_first_write_failure_leaves_outputs_empty():
    source = pyio.BytesIO(bytes(range(8)))
    west, east = FailingWriter(fail_after=0), pyio.BytesIO()

    with pytest.raises(RasterIOError):
        split.split_stream(source, west, east, 4, 2)
    assert west.getvalue() == b""
    assert east.getvalue() == b""

@pytest.mark.skipif(not os.path.exists("/dev/full"), reason="needs /dev/full")
def test_split_hemispheres_disk_full(tmp_path, raw_raster_factory):
    path, arr = raw_raster_factory(width=8, height=4)
    west = tmp_path / "west.dat"

    with pytest.raises(RasterIOError) as excinfo:
        split.split_hemispheres(path, west, "/dev/full", 8, 4)

    assert isinstance(excinfo.value.__cause__, OSError)
    # East failed on the first row, so west is rolled back to empty
    assert west.read_bytes() == b""
