from __future__ import annotations

import logging
import re
import struct
from pathlib import Path
from typing import Any, Dict, Tuple

LOGGER = logging.getLogger(__name__)

USING_OCP = False

try:
    from OCP.BRep import BRep_Builder
    from OCP.BRepTools import BRepTools
    from OCP.IFSelect import IFSelect_RetDone
    from OCP.IGESControl import IGESControl_Reader
    from OCP.STEPControl import STEPControl_Reader
    from OCP.TopoDS import TopoDS_Shape

    USING_OCP = True
except Exception:
    from OCC.Core.BRep import BRep_Builder
    from OCC.Core.BRepTools import breptools_Read
    from OCC.Core.IFSelect import IFSelect_RetDone
    from OCC.Core.IGESControl import IGESControl_Reader
    from OCC.Core.STEPControl import STEPControl_Reader
    from OCC.Core.TopoDS import TopoDS_Shape


FORMAT_STEP = "step"
FORMAT_IGES = "iges"
FORMAT_BREP = "brep"
FORMAT_STL_ASCII = "stl_ascii"
FORMAT_STL_BINARY = "stl_binary"
FORMAT_UNKNOWN = "unknown"

_SUFFIX_FORMATS = {
    ".step": FORMAT_STEP,
    ".stp": FORMAT_STEP,
    ".iges": FORMAT_IGES,
    ".igs": FORMAT_IGES,
    ".brep": FORMAT_BREP,
    ".rle": FORMAT_BREP,
    ".stla": FORMAT_STL_ASCII,
    ".stlb": FORMAT_STL_BINARY,
}

_SNIFF_SIZE = 2048
_STL_HEADER_SIZE = 80 + 4
_STL_FACET_SIZE = 12 * 4 + 2


def _sniff_format(path: Path) -> str:
    try:
        with path.open("rb") as fh:
            head = fh.read(_SNIFF_SIZE)
    except OSError:
        return FORMAT_UNKNOWN

    text = head.decode("latin-1")
    if re.match(r"^.{72}S\s*[0-9]+\s*[\n\r\f]", text):
        return FORMAT_IGES
    if re.match(r"^\s*ISO-10303-21\s*;\s*HEADER", text):
        return FORMAT_STEP
    if re.match(r"^\s*DBRep_DrawableShape", text):
        return FORMAT_BREP
    if re.match(r"^\s*solid", text):
        return FORMAT_STL_ASCII

    if len(head) >= _STL_HEADER_SIZE:
        (facet_count,) = struct.unpack("<I", head[80:84])
        if _STL_FACET_SIZE * facet_count + _STL_HEADER_SIZE == path.stat().st_size:
            return FORMAT_STL_BINARY
    return FORMAT_UNKNOWN


def part_format(path: str | Path) -> str:
    """Guess the geometry format from the file suffix, then from its first bytes."""
    p = Path(path)
    fmt = _SUFFIX_FORMATS.get(p.suffix.lower())
    if fmt is not None:
        return fmt
    return _sniff_format(p)


def _read_with_xs_reader(reader: Any, path: Path, label: str) -> Tuple[Any, int]:
    status = reader.ReadFile(str(path))
    if status != IFSelect_RetDone:
        raise RuntimeError(f"{label} read failed with status: {int(status)}")

    transfer_result = reader.TransferRoots()
    LOGGER.info("TransferRoots result: %s", transfer_result)
    return reader.OneShape(), int(transfer_result)


def _read_brep(path: Path) -> Any:
    shape = TopoDS_Shape()
    builder = BRep_Builder()
    ok = BRepTools.Read_s(shape, str(path), builder) if USING_OCP else breptools_Read(shape, str(path), builder)
    if not ok:
        raise RuntimeError(f"BREP read failed: {path}")
    return shape


def load_shape(path: str | Path) -> Tuple[Any, Dict[str, Any]]:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Geometry file not found: {p}")

    fmt = part_format(p)
    transfer_roots = None
    if fmt == FORMAT_STEP:
        shape, transfer_roots = _read_with_xs_reader(STEPControl_Reader(), p, "STEP")
    elif fmt == FORMAT_IGES:
        shape, transfer_roots = _read_with_xs_reader(IGESControl_Reader(), p, "IGES")
    elif fmt == FORMAT_BREP:
        shape = _read_brep(p)
    elif fmt in (FORMAT_STL_ASCII, FORMAT_STL_BINARY):
        raise ValueError(f"STL has no parametric faces to project on: {p}")
    else:
        raise ValueError(f"Unsupported geometry format: {p}")

    if shape is None or shape.IsNull():
        raise RuntimeError("Reader returned empty shape")

    info = {
        "source_path": str(p),
        "format": fmt,
        "transfer_roots": transfer_roots,
        "occt_binding": "OCP(cadquery-ocp)" if USING_OCP else "pythonocc-core",
    }
    return shape, info
