# src/cci2geogrid/engine.py

"""
This module drives the conversion pipeline.

    full globe --split--> west, east --load/remap/tile--> geogrid tile sets

Each stage is fail fast. Errors propagate to the caller as Cci2GeogridError
(or OSError) subclasses; the engine never exits the process itself.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Union

from .config import PipelineConfig
from .exceptions import OutputTargetError
from .io import load, save, write_tile
from .layer import Dataset, grid_ranges
from .resources import ProcessingMode, determine_strategy
from .split import SplitReport, split_hemispheres

log = logging.getLogger(__name__)

__all__ = [
    "HemisphereReport",
    "PipelineReport",
    "process_dataset",
    "process_hemisphere",
    "convert_file",
    "run_pipeline"
]

@dataclass
class HemisphereReport:
    """
    Outcome of remapping and tiling one hemisphere.

    Args:
        source: Raster that was tiled.
        output_dir: Directory the tiles were written to.
        mode: Processing mode that was used.
        tiles: Written tile files, in write order.
    """
    source: Path
    output_dir: Path
    mode: ProcessingMode
    tiles: List[Path] = field(default_factory=list)

@dataclass
class PipelineReport:
    split: SplitReport
    west: HemisphereReport
    east: HemisphereReport

    @property
    def tile_count(self) -> int:
        return len(self.west.tiles) + len(self.east.tiles)

def _ensure_dir(path: Path, create: bool) -> None:
    if path.is_dir():
        return
    if create and not path.exists():
        log.info(f"Creating output directory {path}")
        path.mkdir(parents=True, exist_ok=True)
        return
    raise OutputTargetError(f"Output directory does not exist or is not a directory: {path}")

def process_dataset(
    dataset: Dataset,
    output_dir: Union[str, Path],
    grid_size: int
) -> List[Path]:
    """
    Remap a dataset and write it as a grid_size x grid_size tile set.

    Writable datasets are remapped in place before tiling. Read-only
    (memory-mapped) datasets are remapped row by row while tiles are written.

    Returns:
        List[Path]: Written tile files in tiler order.
    """
    output_dir = Path(output_dir)
    tiles = dataset.to_tiles(grid_size)

    remap_rows = not dataset.writable
    if not remap_rows:
        dataset.remap()

    written = []
    total = len(tiles)
    for i, tile in enumerate(tiles, start=1):
        written.append(write_tile(tile, output_dir, remap=remap_rows))
        log.info(f"Tile {i}/{total}: {tile.filename}")

    return written

def process_hemisphere(
    path: Union[str, Path],
    output_dir: Union[str, Path],
    width: int,
    height: int,
    grid_size: int,
    mode: Union[ProcessingMode, str] = "auto"
) -> HemisphereReport:
    """
    Load a hemisphere raster, remap it to USGS classes and write its tiles.

    Args:
        path: Half-width raw raster.
        output_dir: EXISTING directory to receive the tiles.
        width: Columns in the hemisphere raster.
        height: Rows in the hemisphere raster.
        grid_size: Tiles per axis.
        mode: 'auto', 'in_memory' or 'streamed'.

    Raises:
        DivisibilityError: If the raster cannot be split into the grid.
        OutputTargetError: If output_dir is not an existing directory.
        RasterSizeError: If the raster file is truncated.
        UnknownClassError: If a cell holds a code outside the CCI legend.
    """
    path, output_dir = Path(path), Path(output_dir)

    # Fail before the (potentially multi-GB) load.
    grid_ranges(width, grid_size)
    grid_ranges(height, grid_size)
    _ensure_dir(output_dir, create=False)

    report = determine_strategy(width, height, user_mode=mode)
    log.info(f"Processing {path.name} in {report.mode.value} mode")
    log.debug(f"Strategy Report: {report.reason}")

    dataset = load(path, width, height, mode=report.mode)
    tiles = process_dataset(dataset, output_dir, grid_size)

    log.info(f"Wrote {len(tiles)} tiles to {output_dir}")
    return HemisphereReport(source=path, output_dir=output_dir, mode=report.mode, tiles=tiles)

def convert_file(
    source: Union[str, Path],
    destination: Union[str, Path],
    width: int,
    height: int,
    mode: Union[ProcessingMode, str] = "auto"
) -> Path:
    """
    Remap a whole raster to USGS classes and write it as a single file.

    Equivalent to a 1x1 tile set, but written to an explicit destination
    path instead of a generated tile name. The load follows the same
    memory strategy as process_hemisphere.

    Returns:
        Path: The written file.
    """
    source, destination = Path(source), Path(destination)
    _ensure_dir(destination.parent, create=False)

    report = determine_strategy(width, height, user_mode=mode)
    log.info(f"Converting {source.name} in {report.mode.value} mode")
    log.debug(f"Strategy Report: {report.reason}")

    dataset = load(source, width, height, mode=report.mode)
    remap_rows = not dataset.writable
    if not remap_rows:
        dataset.remap()

    return save(dataset, destination, remap=remap_rows)

def run_pipeline(config: PipelineConfig) -> PipelineReport:
    """
    Run the full conversion: split, then tile the west half, then the east half.

    All dimension constraints and output directories are checked before the
    split starts. The first error aborts the run; files already written stay
    on disk as they are.

    Args:
        config: Paths, dimensions and grid size for the run.

    Returns:
        PipelineReport: The split summary and both hemisphere reports.
    """
    config.validate()
    if not config.input_path.exists():
        raise FileNotFoundError(f"Raster file not found: {config.input_path}")
    for directory in (
        config.west_split.parent,
        config.east_split.parent,
        config.west_tiles,
        config.east_tiles,
    ):
        _ensure_dir(directory, create=config.create_dirs)

    log.info(
        f"Starting pipeline: {config.input_path} ({config.width}x{config.height}), "
        f"{config.grid_size}x{config.grid_size} tiles per hemisphere"
    )

    split = split_hemispheres(
        config.input_path,
        config.west_split,
        config.east_split,
        config.width,
        config.height
    )

    hemispheres = []
    for name, raster_path, tile_dir in (
        ("west", config.west_split, config.west_tiles),
        ("east", config.east_split, config.east_tiles),
    ):
        log.info(f"Processing {name} hemisphere")
        hemispheres.append(
            process_hemisphere(
                raster_path,
                tile_dir,
                config.half_width,
                config.height,
                config.grid_size,
                mode=config.mode
            )
        )

    report = PipelineReport(split=split, west=hemispheres[0], east=hemispheres[1])
    log.info(f"Pipeline complete: {report.tile_count} tiles written")
    return report
