"""Tests for geometry file format detection and loading."""

import struct
import sys
from pathlib import Path

import pytest

pytest.importorskip("OCP")

sys.path.append(str(Path(__file__).resolve().parents[1]))

from OCP.BRepPrimAPI import BRepPrimAPI_MakeBox  # noqa: E402
from OCP.BRepTools import BRepTools  # noqa: E402
from OCP.STEPControl import STEPControl_AsIs, STEPControl_Writer  # noqa: E402

from faceproj.shape_loader import load_shape, part_format  # noqa: E402
from faceproj.surface_source import count_topology  # noqa: E402


@pytest.mark.parametrize(
    "name, expected",
    [
        ("part.STEP", "step"),
        ("part.stp", "step"),
        ("part.igs", "iges"),
        ("part.brep", "brep"),
        ("part.rle", "brep"),
        ("part.stla", "stl_ascii"),
        ("part.stlb", "stl_binary"),
    ],
)
def test_part_format_from_suffix(tmp_path: Path, name: str, expected: str) -> None:
    """Known suffixes decide the format without reading the file."""
    assert part_format(tmp_path / name) == expected


def test_part_format_from_contents(tmp_path: Path) -> None:
    """Unknown suffixes fall back to the file contents."""
    step = tmp_path / "a.dat"
    step.write_text("ISO-10303-21;\nHEADER;\nFILE_DESCRIPTION((''),'2;1');\n")
    brep = tmp_path / "b.dat"
    brep.write_text("DBRep_DrawableShape\n\nCASCADE Topology V1\n")
    stl = tmp_path / "c.dat"
    stl.write_text("solid cube\nendsolid cube\n")
    iges = tmp_path / "d.dat"
    iges.write_text(" " * 72 + "S      1\n")
    binary = tmp_path / "e.dat"
    binary.write_bytes(b"\0" * 80 + struct.pack("<I", 1) + b"\0" * 50)
    other = tmp_path / "f.dat"
    other.write_bytes(b"\x01\x02\x03")

    assert part_format(step) == "step"
    assert part_format(brep) == "brep"
    assert part_format(stl) == "stl_ascii"
    assert part_format(iges) == "iges"
    assert part_format(binary) == "stl_binary"
    assert part_format(other) == "unknown"


def test_load_brep_and_step_round_trip(tmp_path: Path) -> None:
    """BREP and STEP files written by OCC load back as the same box."""
    box = BRepPrimAPI_MakeBox(1.0, 2.0, 3.0).Shape()
    brep_path = tmp_path / "box.brep"
    assert BRepTools.Write_s(box, str(brep_path))
    step_path = tmp_path / "box.step"
    writer = STEPControl_Writer()
    writer.Transfer(box, STEPControl_AsIs)
    writer.Write(str(step_path))

    shape, info = load_shape(brep_path)
    assert info["format"] == "brep"
    assert count_topology(shape)["faces"] == 6

    shape, info = load_shape(step_path)
    assert info["format"] == "step"
    assert info["transfer_roots"] >= 1
    assert count_topology(shape)["faces"] == 6


def test_load_shape_errors(tmp_path: Path) -> None:
    """Missing, STL and unknown files raise."""
    with pytest.raises(FileNotFoundError):
        load_shape(tmp_path / "missing.step")

    stl = tmp_path / "mesh.stla"
    stl.write_text("solid x\nendsolid x\n")
    with pytest.raises(ValueError):
        load_shape(stl)

    junk = tmp_path / "junk.bin"
    junk.write_bytes(b"\x01\x02")
    with pytest.raises(ValueError):
        load_shape(junk)
