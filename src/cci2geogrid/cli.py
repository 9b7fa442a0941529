import argparse
import logging
import sys
from pathlib import Path
from typing import Callable, List, Optional

from .config import GLOBE_HEIGHT, GLOBE_WIDTH, GRID_SIZE, PipelineConfig
from .engine import convert_file, process_hemisphere, run_pipeline
from .exceptions import Cci2GeogridError
from .io import verify_tiles
from .split import split_hemispheres

def setup_logging(level: int = logging.INFO) -> None:
    """
    Configures the standard logging format and level for the command-line interface.

    Args:
        level (int): The logging threshold level.
    """
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

def _run(args: argparse.Namespace) -> None:
    overrides = {
        key: getattr(args, key)
        for key in ("input_path", "west_split", "east_split", "west_tiles", "east_tiles",
                    "width", "height", "grid_size", "mode")
        if getattr(args, key, None) is not None
    }
    if args.data_dir:
        config = PipelineConfig.from_directory(args.data_dir, **overrides)
    else:
        config = PipelineConfig.from_env(**overrides)
    config.create_dirs = args.create_dirs

    report = run_pipeline(config)
    logging.info(
        f"Wrote {len(report.west.tiles)} west tiles to {report.west.output_dir} "
        f"and {len(report.east.tiles)} east tiles to {report.east.output_dir}"
    )

def _split(args: argparse.Namespace) -> None:
    split_hemispheres(args.source, args.west, args.east, args.width, args.height)

def _tile(args: argparse.Namespace) -> None:
    if args.create_dirs:
        Path(args.output_dir).mkdir(parents=True, exist_ok=True)
    process_hemisphere(
        args.source,
        args.output_dir,
        args.width,
        args.height,
        args.grid_size,
        mode=args.mode
    )

def _convert(args: argparse.Namespace) -> None:
    convert_file(args.source, args.destination, args.width, args.height, mode=args.mode)

def _verify(args: argparse.Namespace) -> None:
    verify_tiles(args.directory, args.width, args.height)
    logging.info(f"{args.directory} is a complete {args.width}x{args.height} tile set.")

def _add_mode(parser: argparse.ArgumentParser, default: Optional[str] = "auto") -> None:
    parser.add_argument(
        "--mode",
        choices=["auto", "in_memory", "streamed"],
        default=default,
        help="How hemispheres are remapped: load fully, memory-map, or decide from free RAM."
    )

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cci2geogrid",
        description="Convert ESA CCI land cover into USGS geogrid tiles"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser(
        "run",
        help="Split the global raster and write both hemisphere tile sets."
    )
    run_parser.add_argument(
        "--data-dir",
        type=Path,
        help="Base directory holding raster/raster.dat; outputs go to raster/ and geogrid/."
    )
    run_parser.add_argument("--input", dest="input_path", type=Path, help="Full-globe CCI raster.")
    run_parser.add_argument("--west-split", type=Path, help="Output path for the western half.")
    run_parser.add_argument("--east-split", type=Path, help="Output path for the eastern half.")
    run_parser.add_argument("--west-tiles", type=Path, help="Directory for western tiles.")
    run_parser.add_argument("--east-tiles", type=Path, help="Directory for eastern tiles.")
    run_parser.add_argument("--width", type=int, help=f"Global raster width. Defaults to {GLOBE_WIDTH}.")
    run_parser.add_argument("--height", type=int, help=f"Global raster height. Defaults to {GLOBE_HEIGHT}.")
    run_parser.add_argument("--grid-size", type=int, help=f"Tiles per axis. Defaults to {GRID_SIZE}.")
    run_parser.add_argument(
        "--create-dirs",
        action="store_true",
        help="Create missing tile directories instead of failing."
    )
    _add_mode(run_parser, default=None)
    run_parser.set_defaults(handler=_run)

    split_parser = subparsers.add_parser("split", help="Split a global raster into west and east halves.")
    split_parser.add_argument("source", type=Path)
    split_parser.add_argument("west", type=Path)
    split_parser.add_argument("east", type=Path)
    split_parser.add_argument("--width", type=int, default=GLOBE_WIDTH)
    split_parser.add_argument("--height", type=int, default=GLOBE_HEIGHT)
    split_parser.set_defaults(handler=_split)

    tile_parser = subparsers.add_parser("tile", help="Remap one hemisphere raster and write its tiles.")
    tile_parser.add_argument("source", type=Path)
    tile_parser.add_argument("output_dir", type=Path)
    tile_parser.add_argument("--width", type=int, default=GLOBE_WIDTH // 2)
    tile_parser.add_argument("--height", type=int, default=GLOBE_HEIGHT)
    tile_parser.add_argument("--grid-size", type=int, default=GRID_SIZE)
    tile_parser.add_argument("--create-dirs", action="store_true")
    _add_mode(tile_parser)
    tile_parser.set_defaults(handler=_tile)

    convert_parser = subparsers.add_parser("convert", help="Remap one raster into a single output file.")
    convert_parser.add_argument("source", type=Path)
    convert_parser.add_argument("destination", type=Path)
    convert_parser.add_argument("--width", type=int, default=GLOBE_WIDTH // 2)
    convert_parser.add_argument("--height", type=int, default=GLOBE_HEIGHT)
    _add_mode(convert_parser)
    convert_parser.set_defaults(handler=_convert)

    verify_parser = subparsers.add_parser("verify", help="Check that a tile directory covers a raster exactly.")
    verify_parser.add_argument("directory", type=Path)
    verify_parser.add_argument("--width", type=int, default=GLOBE_WIDTH // 2)
    verify_parser.add_argument("--height", type=int, default=GLOBE_HEIGHT)
    verify_parser.set_defaults(handler=_verify)

    return parser

def main(argv: Optional[List[str]] = None) -> None:
    """
    Parses command-line arguments and routes execution to the matching pipeline stage.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    handler: Callable[[argparse.Namespace], None] = args.handler
    try:
        handler(args)
    except (Cci2GeogridError, OSError) as e:
        logging.error(f"{args.command} failed: {e}")
        sys.exit(1)

if __name__ == "__main__":
    main()
