from __future__ import annotations

import logging
import math
from typing import Any, Dict, Iterator, Tuple

LOGGER = logging.getLogger(__name__)

USING_OCP = False

try:
    from OCP.BRep import BRep_Tool
    from OCP.BRepAdaptor import BRepAdaptor_Surface
    from OCP.BRepLProp import BRepLProp_SLProps
    from OCP.TopAbs import TopAbs_EDGE, TopAbs_FACE, TopAbs_REVERSED, TopAbs_SHELL, TopAbs_SOLID, TopAbs_VERTEX
    from OCP.TopExp import TopExp_Explorer
    from OCP.TopoDS import TopoDS

    USING_OCP = True
except Exception:
    from OCC.Core.BRep import BRep_Tool
    from OCC.Core.BRepAdaptor import BRepAdaptor_Surface
    from OCC.Core.BRepLProp import BRepLProp_SLProps
    from OCC.Core.TopAbs import TopAbs_EDGE, TopAbs_FACE, TopAbs_REVERSED, TopAbs_SHELL, TopAbs_SOLID, TopAbs_VERTEX
    from OCC.Core.TopExp import TopExp_Explorer
    from OCC.Core.TopoDS import topods


NORMAL_FALLBACK: Tuple[float, float, float] = (0.0, 0.0, 1.0)


_TOPOLOGY_KINDS = (
    ("solids", TopAbs_SOLID),
    ("shells", TopAbs_SHELL),
    ("faces", TopAbs_FACE),
    ("edges", TopAbs_EDGE),
    ("vertices", TopAbs_VERTEX),
)


def _explore(shape: Any, kind: Any) -> Iterator[Any]:
    ex = TopExp_Explorer(shape, kind)
    while ex.More():
        yield ex.Current()
        ex.Next()


def iter_faces(shape: Any) -> Iterator[Any]:
    if shape is None or shape.IsNull():
        return
    for sub_shape in _explore(shape, TopAbs_FACE):
        yield TopoDS.Face_s(sub_shape) if USING_OCP else topods.Face(sub_shape)


def count_topology(shape: Any) -> Dict[str, int]:
    """Sub-shape counts per kind; shared sub-shapes are counted once per occurrence."""
    return {name: sum(1 for _ in _explore(shape, kind)) for name, kind in _TOPOLOGY_KINDS}


def face_surface(face: Any) -> Any:
    """Geometric surface of ``face`` with the face location applied, or None."""
    try:
        surface = BRep_Tool.Surface_s(face) if USING_OCP else BRep_Tool.Surface(face)
    except Exception:
        LOGGER.debug("Surface lookup failed", exc_info=True)
        return None
    if surface is None:
        return None
    is_null = getattr(surface, "IsNull", None)
    if callable(is_null) and is_null():
        return None
    return surface


def normal_at_uv(face: Any, u: float, v: float) -> Tuple[float, float, float]:
    """Unit normal of ``face`` at (u, v), flipped for reversed faces so it points outward."""
    try:
        props = BRepLProp_SLProps(BRepAdaptor_Surface(face, True), float(u), float(v), 1, 1e-6)
        if not props.IsNormalDefined():
            LOGGER.debug("Normal undefined at uv=(%s, %s)", u, v)
            return NORMAL_FALLBACK
        n = props.Normal()
    except Exception:
        LOGGER.debug("Normal evaluation failed at uv=(%s, %s)", u, v, exc_info=True)
        return NORMAL_FALLBACK
    nx, ny, nz = float(n.X()), float(n.Y()), float(n.Z())
    if face.Orientation() == TopAbs_REVERSED:
        nx, ny, nz = -nx, -ny, -nz
    length = math.sqrt(nx * nx + ny * ny + nz * nz)
    if length <= 1e-15:
        return NORMAL_FALLBACK
    return (nx / length, ny / length, nz / length)


class OccSurfaceSource:
    """Faces, surfaces and normals of an OCC shape."""

    def faces(self, shape: Any) -> Iterator[Any]:
        return iter_faces(shape)

    def surface(self, face: Any) -> Any:
        return face_surface(face)

    def normal(self, face: Any, u: float, v: float) -> Tuple[float, float, float]:
        return normal_at_uv(face, u, v)
