# tests/helpers.py

import errno
import io

import numpy as np

from cci2geogrid.remap import CCI_TO_USGS

def expected_usgs(arr: np.ndarray) -> np.ndarray:
    """Reference remap, cell by cell through the plain dict."""
    return np.vectorize(lambda v: CCI_TO_USGS[int(v)], otypes=[np.uint8])(arr)

def assert_exact_partition(tiles, width: int, height: int):
    """Strictly verify that tiles cover [0,width)x[0,height) once and only once."""
    coverage = np.zeros((height, width), dtype=np.int32)
    for tile in tiles:
        coverage[tile.y_range.start:tile.y_range.stop, tile.x_range.start:tile.x_range.stop] += 1

    assert coverage.min() == 1, "Gap in tile coverage"
    assert coverage.max() == 1, "Overlapping tiles"

class FailingWriter(io.BytesIO):
    """In-memory stream whose write raises ENOSPC once `fail_after` writes succeeded."""

    def __init__(self, fail_after: int):
        super().__init__()
        self.fail_after = fail_after
        self.writes = 0

    def write(self, data):
        if self.writes >= self.fail_after:
            raise OSError(errno.ENOSPC, "No space left on device")
        self.writes += 1
        return super().write(data)
