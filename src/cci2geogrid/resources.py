# src/cci2geogrid/resources.py

"""
This module checks system memory before a hemisphere is loaded.

A globe-scale hemisphere is several gigabytes. When it does not fit in RAM
the remap-and-tile stage memory-maps the file and remaps tile rows on the
fly instead of loading and remapping the whole buffer in place.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Union

import psutil

log = logging.getLogger(__name__)

__all__ = [
    "ProcessingMode",
    "MemoryEstimate",
    "StrategyReport",
    "estimate_memory",
    "determine_strategy"
]

# IN_MEMORY holds the raster plus block-sized remap temporaries (see layer.REMAP_BLOCK_CELLS)
DEFAULT_SAFETY_FACTOR = 1.1
MIN_FREE_GB = 1.0

class ProcessingMode(Enum):
    """
    How a hemisphere is remapped and tiled.

    Modes:
        IN_MEMORY: Load the whole raster, remap it in place, then write tiles.
        STREAMED: Memory-map the raster read-only and remap each tile row as
            it is written. Peak memory is one row.
    """
    IN_MEMORY = "in_memory"
    STREAMED = "streamed"

@dataclass(frozen=True)
class MemoryEstimate:
    """
    Estimation of memory requirements for loading a raster.

    Args:
        total_required_bytes: Bytes required to load the raster (with overhead)
        available_system_bytes: Currently available system memory in bytes
        is_safe: True if loading is considered safe
        reason: Human-readable summary of the numbers
    """
    total_required_bytes: int
    available_system_bytes: int
    is_safe: bool
    reason: str

@dataclass(frozen=True)
class StrategyReport:
    """
    The chosen processing mode and the context for that decision.
    """
    mode: ProcessingMode
    reason: str
    memory_stats: MemoryEstimate

def estimate_memory(
    width: int,
    height: int,
    safety_factor: float = DEFAULT_SAFETY_FACTOR,
    min_free_gb: float = MIN_FREE_GB
) -> MemoryEstimate:
    """
    Checks whether a width x height byte raster fits in RAM.

    Args:
        width: Number of columns.
        height: Number of rows.
        safety_factor: Multiplier to account for overhead.
        min_free_gb: Memory to leave available after loading.
    """
    raw_bytes = width * height
    total_required = int(raw_bytes * safety_factor)

    mem = psutil.virtual_memory()
    min_free_bytes = int(min_free_gb * (1024**3))
    is_safe = (total_required + min_free_bytes) <= mem.available

    reason = f"Req: {total_required/1e9:.2f}GB, Avail: {mem.available/1e9:.2f}GB"
    return MemoryEstimate(total_required, mem.available, is_safe, reason)

def determine_strategy(
    width: int,
    height: int,
    user_mode: Union[ProcessingMode, str] = "auto"
) -> StrategyReport:
    """
    Chooses between loading a hemisphere fully and streaming it.

    Args:
        width: Number of columns.
        height: Number of rows.
        user_mode: 'auto', 'in_memory' or 'streamed'. Anything but 'auto'
            is honoured as given.

    Returns:
        StrategyReport: The mode to use and why.

    Raises:
        ValueError: If user_mode is not a known mode.
    """
    estimate = estimate_memory(width, height)

    if isinstance(user_mode, ProcessingMode):
        user_mode = user_mode.value

    if user_mode != "auto":
        try:
            mode = ProcessingMode(user_mode)
        except ValueError:
            valid_modes = [m.value for m in ProcessingMode] + ["auto"]
            raise ValueError(f"Invalid mode '{user_mode}'. Must be one of: {valid_modes}") from None

        if mode == ProcessingMode.IN_MEMORY and not estimate.is_safe:
            log.warning(f"Forcing IN_MEMORY although memory looks tight. {estimate.reason}")
        return StrategyReport(mode, f"User forced mode: {user_mode}", estimate)

    if estimate.is_safe:
        return StrategyReport(
            mode=ProcessingMode.IN_MEMORY,
            reason=f"Safe for RAM. {estimate.reason}",
            memory_stats=estimate
        )

    return StrategyReport(
        mode=ProcessingMode.STREAMED,
        reason=f"RAM full. Streaming from a memory map. {estimate.reason}",
        memory_stats=estimate
    )
