# tests/integration/test_cli.py

import logging

import pytest
import numpy as np

from cci2geogrid import cli
from helpers import expected_usgs

def test_run_command(tmp_path, raw_raster_factory):
    path, arr = raw_raster_factory("globe.dat", width=8, height=4)

    cli.main([
        "run",
        "--data-dir", str(tmp_path),
        "--input", str(path),
        "--width", "8",
        "--height", "4",
        "--grid-size", "2",
        "--mode", "streamed",
        "--create-dirs",
    ])

    west_tiles = tmp_path / "geogrid" / "west"
    east_tiles = tmp_path / "geogrid" / "east"
    assert sorted(p.name for p in west_tiles.iterdir()) == [
        "00001-00002.00001-00002",
        "00001-00002.00003-00004",
        "00003-00004.00001-00002",
        "00003-00004.00003-00004",
    ]
    cli.main(["verify", str(east_tiles), "--width", "4", "--height", "4"])

    tile = (east_tiles / "00003-00004.00003-00004").read_bytes()
    assert tile == expected_usgs(arr[2:4, 6:8]).tobytes()

def test_split_tile_and_convert_commands(tmp_path, raw_raster_factory):
    path, arr = raw_raster_factory("globe.dat", width=8, height=4)
    west, east = tmp_path / "west.dat", tmp_path / "east.dat"

    cli.main(["split", str(path), str(west), str(east), "--width", "8", "--height", "4"])
    assert east.read_bytes() == arr[:, 4:].tobytes()

    out = tmp_path / "tiles" / "west"
    cli.main([
        "tile", str(west), str(out),
        "--width", "4", "--height", "4", "--grid-size", "1", "--create-dirs",
    ])
    assert (out / "00001-00004.00001-00004").read_bytes() == expected_usgs(arr[:, :4]).tobytes()

    single = tmp_path / "east_usgs.dat"
    cli.main(["convert", str(east), str(single), "--width", "4", "--height", "4", "--mode", "streamed"])
    assert np.array_equal(np.fromfile(single, dtype=np.uint8).reshape(4, 4), expected_usgs(arr[:, 4:]))

def test_errors_exit_with_status_one(tmp_path, raw_raster_factory, caplog):
    path, _ = raw_raster_factory("globe.dat", width=8, height=4)

    with caplog.at_level(logging.ERROR), pytest.raises(SystemExit) as excinfo:
        cli.main([
            "tile", str(path), str(tmp_path / "missing"),
            "--width", "8", "--height", "4", "--grid-size", "2",
        ])

    assert excinfo.value.code == 1
    assert "tile failed" in caplog.text

def test_verify_incomplete_directory(tmp_path):
    (tmp_path / "00001-00002.00001-00002").write_bytes(bytes(4))
    with pytest.raises(SystemExit):
        cli.main(["verify", str(tmp_path), "--width", "4", "--height", "4"])
