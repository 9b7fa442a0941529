# tests/conftest.py

import pytest
import numpy as np

from cci2geogrid.remap import CCI_TO_USGS

CCI_CODES = np.array(sorted(CCI_TO_USGS), dtype=np.uint8)

@pytest.fixture
def cci_grid():
    """
    Fixture: Returns a factory building a (height, width) array of valid CCI codes.
    Cells cycle through the legend so that every tile holds distinct values.
    """
    def _make(width, height):
        idx = np.arange(width * height) % len(CCI_CODES)
        return CCI_CODES[idx].reshape(height, width)
    return _make

@pytest.fixture
def raw_raster_factory(tmp_path, cci_grid):
    """
    Fixture: Writes a headerless byte raster to tmp_path and returns (path, array).
    """
    def _create(name="raster.dat", width=8, height=6, data=None, trailing=b""):
        arr = cci_grid(width, height) if data is None else np.asarray(data, dtype=np.uint8)
        path = tmp_path / name
        path.write_bytes(arr.tobytes() + trailing)
        return path, arr
    return _create

@pytest.fixture
def out_dir(tmp_path):
    d = tmp_path / "tiles"
    d.mkdir()
    return d
