# src/cci2geogrid/config.py

"""
Run configuration for the conversion pipeline.

Paths and the grid size are injected into the core through PipelineConfig.
Defaults describe the 30 arc-second ESA CCI global grid and can be overridden
through CCI2GEOGRID_* environment variables or a .env file.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from dotenv import find_dotenv, load_dotenv

from .exceptions import DivisibilityError, RasterValidationError
from .resources import ProcessingMode

log = logging.getLogger(__name__)

__all__ = [
    "GLOBE_WIDTH",
    "GLOBE_HEIGHT",
    "GRID_SIZE",
    "ENV_PREFIX",
    "PipelineConfig"
]

GLOBE_WIDTH = 129600
GLOBE_HEIGHT = 64800
GRID_SIZE = 10

ENV_PREFIX = "CCI2GEOGRID_"

def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.getenv(f"{ENV_PREFIX}{name}", default)

@dataclass
class PipelineConfig:
    """
    Everything a pipeline run needs to know.

    Args:
        input_path: Full-globe CCI raster.
        west_split: Output path for the western half-width raster.
        east_split: Output path for the eastern half-width raster.
        west_tiles: Directory receiving the western tiles.
        east_tiles: Directory receiving the eastern tiles.
        width: Columns in the full-globe raster (must be even).
        height: Rows in the full-globe raster.
        grid_size: Tiles per axis for each hemisphere.
        mode: 'auto', 'in_memory' or 'streamed'.
        create_dirs: Create missing tile directories before writing.
    """
    input_path: Path
    west_split: Path
    east_split: Path
    west_tiles: Path
    east_tiles: Path
    width: int = GLOBE_WIDTH
    height: int = GLOBE_HEIGHT
    grid_size: int = GRID_SIZE
    mode: Union[ProcessingMode, str] = "auto"
    create_dirs: bool = False

    def __post_init__(self):
        self.input_path = Path(self.input_path)
        self.west_split = Path(self.west_split)
        self.east_split = Path(self.east_split)
        self.west_tiles = Path(self.west_tiles)
        self.east_tiles = Path(self.east_tiles)

    @property
    def half_width(self) -> int:
        return self.width // 2

    def validate(self) -> None:
        """
        Check every dimension constraint before anything touches the disk.

        Raises:
            RasterValidationError: If a dimension is not positive.
            DivisibilityError: If width is odd or a hemisphere cannot be
                split into grid_size x grid_size equal tiles.
        """
        if self.width <= 0 or self.height <= 0:
            raise RasterValidationError(f"Dimensions must be positive, got {self.width}x{self.height}")
        if self.grid_size < 1:
            raise DivisibilityError(f"Grid size must be a positive integer, got {self.grid_size}")
        if self.width % 2 != 0:
            raise DivisibilityError(f"Cannot split a raster of odd width {self.width} into hemispheres")
        if self.half_width % self.grid_size != 0 or self.height % self.grid_size != 0:
            raise DivisibilityError(
                f"Hemisphere {self.half_width}x{self.height} cannot be split into a "
                f"{self.grid_size}x{self.grid_size} grid"
            )

    @classmethod
    def from_directory(cls, data_dir: Union[str, Path], **overrides) -> "PipelineConfig":
        """
        Build a configuration using the conventional layout under data_dir:

            raster/raster.dat, raster/west.dat, raster/east.dat,
            geogrid/west/, geogrid/east/
        """
        data_dir = Path(data_dir)
        paths = dict(
            input_path=data_dir / "raster" / "raster.dat",
            west_split=data_dir / "raster" / "west.dat",
            east_split=data_dir / "raster" / "east.dat",
            west_tiles=data_dir / "geogrid" / "west",
            east_tiles=data_dir / "geogrid" / "east",
        )
        paths.update(overrides)
        return cls(**paths)

    @classmethod
    def from_env(cls, dotenv: bool = True, **overrides) -> "PipelineConfig":
        """
        Build a configuration from CCI2GEOGRID_* environment variables.

        CCI2GEOGRID_DATA_DIR sets the base layout (see from_directory);
        CCI2GEOGRID_INPUT, _WEST_SPLIT, _EAST_SPLIT, _WEST_TILES, _EAST_TILES,
        _WIDTH, _HEIGHT, _GRID_SIZE and _MODE override individual settings.
        Keyword overrides win over the environment.
        """
        if dotenv:
            env_path = find_dotenv(usecwd=True)
            if env_path:
                log.debug(f"Loading environment from {env_path}")
                load_dotenv(env_path)

        settings = {}
        for key, name in (
            ("input_path", "INPUT"),
            ("west_split", "WEST_SPLIT"),
            ("east_split", "EAST_SPLIT"),
            ("west_tiles", "WEST_TILES"),
            ("east_tiles", "EAST_TILES"),
        ):
            value = _env(name)
            if value:
                settings[key] = Path(value)

        for key, name in (("width", "WIDTH"), ("height", "HEIGHT"), ("grid_size", "GRID_SIZE")):
            value = _env(name)
            if value:
                try:
                    settings[key] = int(value)
                except ValueError:
                    raise RasterValidationError(f"{ENV_PREFIX}{name} must be an integer, got {value!r}") from None

        mode = _env("MODE")
        if mode:
            settings["mode"] = mode

        settings.update(overrides)
        return cls.from_directory(_env("DATA_DIR", "data"), **settings)
