from __future__ import annotations

import logging
from typing import Any, Tuple

LOGGER = logging.getLogger(__name__)

try:
    from OCP.GeomAPI import GeomAPI_ProjectPointOnSurf
    from OCP.gp import gp_Pnt
except Exception:
    from OCC.Core.GeomAPI import GeomAPI_ProjectPointOnSurf
    from OCC.Core.gp import gp_Pnt


def _is_null(handle: Any) -> bool:
    if handle is None:
        return True
    is_null = getattr(handle, "IsNull", None)
    return bool(is_null()) if callable(is_null) else False


def _pnt_xyz(p: Any) -> Tuple[float, float, float]:
    return (float(p.X()), float(p.Y()), float(p.Z()))


class SurfaceProjector:
    """Reusable GeomAPI_ProjectPointOnSurf context bound to one surface.

    Nothing is computed at construction. ``seed_point`` is kept for reference
    only: the extrema algorithm is initialised with the first point given to
    :meth:`perform`, which replaces the seed. Kernel failures and null surfaces
    leave the context "not done".
    """

    def __init__(self, seed_point: Tuple[float, float, float], surface: Any, tolerance: float | None = None) -> None:
        self.seed_point = seed_point
        self.surface = None if _is_null(surface) else surface
        self.tolerance = tolerance
        self._algo = GeomAPI_ProjectPointOnSurf() if self.surface is not None else None
        self._initialized = False
        self._failed = False

    def perform(self, point: Tuple[float, float, float]) -> None:
        if self._algo is None:
            self._failed = True
            return
        pnt = gp_Pnt(float(point[0]), float(point[1]), float(point[2]))
        try:
            if not self._initialized:
                if self.tolerance is None:
                    self._algo.Init(pnt, self.surface)
                else:
                    self._algo.Init(pnt, self.surface, float(self.tolerance))
                self._initialized = True
            else:
                self._algo.Perform(pnt)
            self._failed = False
        except Exception:
            LOGGER.debug("Point projection failed for %s", point, exc_info=True)
            self._failed = True

    def is_done(self) -> bool:
        if self._algo is None or self._failed or not self._initialized:
            return False
        return bool(self._algo.IsDone())

    def nb_points(self) -> int:
        if not self.is_done():
            return 0
        return int(self._algo.NbPoints())

    def lower_distance(self) -> float:
        return float(self._algo.LowerDistance())

    def nearest_point(self) -> Tuple[float, float, float]:
        return _pnt_xyz(self._algo.NearestPoint())

    def lower_distance_parameters(self) -> Tuple[float, float]:
        u, v = self._algo.LowerDistanceParameters()
        return (float(u), float(v))
