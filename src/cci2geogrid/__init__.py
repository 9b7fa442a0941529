# src/cci2geogrid/__init__.py
#
# Copyright (c) The cci2geogrid project contributors
# This software is distributed under the Apache-2.0 license.
# See the NOTICE file for more information

"""
cci2geogrid converts the ESA CCI global land-cover raster into USGS land-use
tiles for the WRF geogrid tool: hemisphere splitting, class remapping,
grid partitioning and tile I/O.
"""

# Errors
from .exceptions import (
    Cci2GeogridError,
    RasterError,
    RasterIOError,
    RasterValidationError,
    RasterSizeError,
    OutputTargetError,
    DivisibilityError,
    UnknownClassError
)

# Class remapping
from .remap import (
    CCI_TO_USGS,
    cci_to_usgs,
    check_codes,
    remap_array
)

# Core data structures
from .layer import (
    Dataset,
    Tile,
    grid_ranges,
    tile_filename
)

# Resource management
from .resources import (
    ProcessingMode,
    MemoryEstimate,
    StrategyReport,
    determine_strategy
)

# I/O operations
from .io import (
    load,
    read_exact,
    write_tile,
    save,
    parse_tile_filename,
    verify_tiles,
    stitch_tiles
)

# Hemisphere split
from .split import (
    SplitReport,
    iter_rows,
    split_hemispheres
)

# Pipeline
from .config import (
    GLOBE_WIDTH,
    GLOBE_HEIGHT,
    GRID_SIZE,
    PipelineConfig
)
from .engine import (
    HemisphereReport,
    PipelineReport,
    process_dataset,
    process_hemisphere,
    convert_file,
    run_pipeline
)

__all__ = [
    # Errors
    "Cci2GeogridError",
    "RasterError",
    "RasterIOError",
    "RasterValidationError",
    "RasterSizeError",
    "OutputTargetError",
    "DivisibilityError",
    "UnknownClassError",

    # Remap
    "CCI_TO_USGS",
    "cci_to_usgs",
    "check_codes",
    "remap_array",

    # Layer
    "Dataset",
    "Tile",
    "grid_ranges",
    "tile_filename",

    # Resources
    "ProcessingMode",
    "MemoryEstimate",
    "StrategyReport",
    "determine_strategy",

    # I/O
    "load",
    "read_exact",
    "write_tile",
    "save",
    "parse_tile_filename",
    "verify_tiles",
    "stitch_tiles",

    # Split
    "SplitReport",
    "iter_rows",
    "split_hemispheres",

    # Pipeline
    "GLOBE_WIDTH",
    "GLOBE_HEIGHT",
    "GRID_SIZE",
    "PipelineConfig",
    "HemisphereReport",
    "PipelineReport",
    "process_dataset",
    "process_hemisphere",
    "convert_file",
    "run_pipeline"
]
