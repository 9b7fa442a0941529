# src/cci2geogrid/remap.py

"""
This module maps ESA CCI land-cover classes onto the USGS land-use classes
expected by the WRF geogrid tool.

The table is fixed. Codes outside it mean the input is not a CCI raster (or
was read with the wrong layout), so they are rejected instead of passed through.
"""

import logging
from typing import Dict, Optional

import numpy as np

from .exceptions import UnknownClassError

log = logging.getLogger(__name__)

__all__ = [
    "CCI_TO_USGS",
    "cci_to_usgs",
    "check_codes",
    "remap_array",
    "build_lookup"
]

CCI_TO_USGS: Dict[int, int] = {
    0: 0,
    10: 102,
    11: 102,
    12: 115,
    20: 103,
    30: 106,
    40: 106,
    50: 113,
    60: 111,
    61: 111,
    62: 111,
    70: 114,
    71: 114,
    72: 114,
    80: 112,
    81: 112,
    82: 112,
    90: 115,
    100: 109,
    110: 109,
    120: 108,
    121: 108,
    122: 108,
    130: 107,
    140: 123,
    150: 119,
    151: 119,
    152: 119,
    153: 119,
    160: 118,
    170: 118,
    180: 117,
    190: 101,
    200: 119,
    201: 119,
    202: 119,
    210: 116,
    220: 124,
}

def build_lookup() -> tuple:
    """
    Build the 256-entry lookup table used for vectorised remapping.

    Returns:
        tuple: (lut, valid) where lut is a uint8 array of target codes and
            valid is a boolean mask of the codes present in CCI_TO_USGS.
    """
    lut = np.zeros(256, dtype=np.uint8)
    valid = np.zeros(256, dtype=bool)
    for src, dst in CCI_TO_USGS.items():
        lut[src] = dst
        valid[src] = True
    lut.setflags(write=False)
    valid.setflags(write=False)
    return lut, valid

_LUT, _VALID = build_lookup()

def cci_to_usgs(code: int) -> int:
    """
    Map a single CCI class code to its USGS class code.

    Raises:
        UnknownClassError: If code is not a known CCI class.
    """
    try:
        return CCI_TO_USGS[int(code)]
    except KeyError:
        raise UnknownClassError([code]) from None

def check_codes(data: np.ndarray) -> None:
    """
    Verify that every cell of a uint8 array is a known CCI class.

    Raises:
        TypeError: If data is not uint8.
        UnknownClassError: If any cell holds a code outside the CCI legend.
    """
    if data.dtype != np.uint8:
        raise TypeError(f"Expected uint8 class codes, got {data.dtype}")

    valid = _VALID[data]
    if not valid.all():
        codes = np.unique(data[~valid])
        log.error(f"Found {int(valid.size - np.count_nonzero(valid))} cells with unknown class codes {codes.tolist()}")
        raise UnknownClassError(codes.tolist())

def remap_array(data: np.ndarray, out: Optional[np.ndarray] = None) -> np.ndarray:
    """
    Remap every cell of a uint8 array from CCI to USGS codes.

    The whole array is validated before anything is written, so a failure
    leaves both data and out untouched. Temporaries scale with the array
    (about 10 bytes per cell), so callers remapping large rasters should
    pass bounded blocks (see Dataset.remap).

    Args:
        data: Array of CCI codes (any shape, dtype uint8).
        out: Optional destination array. Pass data itself to remap in place.

    Returns:
        np.ndarray: The remapped array (out if given).

    Raises:
        UnknownClassError: If any cell holds a code outside the CCI legend.
    """
    check_codes(data)
    return np.take(_LUT, data, out=out)
