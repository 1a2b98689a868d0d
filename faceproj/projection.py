"""Nearest-point projection of a 3D point onto a soup of faces.

A :class:`FaceProjectorPool` keeps one single-surface projector per face of a
shape. :class:`PointOnFacesProjection` runs a query point through every
projector of its pool and keeps the entry with the lowest distance. Entries
whose projection failed, or found no candidate, count as infinitely far and
are never reported as a solution.

The geometry kernel is reached only through the collaborator protocols below,
so the selection logic does not depend on a particular binding.
"""

from __future__ import annotations

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Iterator, Optional, Protocol, Sequence, Tuple

LOGGER = logging.getLogger(__name__)

Vec3 = Tuple[float, float, float]
UV = Tuple[float, float]

ORIGIN: Vec3 = (0.0, 0.0, 0.0)
DEFAULT_UV: UV = (0.0, 0.0)
DEFAULT_NORMAL: Vec3 = (0.0, 0.0, 1.0)


class SingleSurfaceProjector(Protocol):
    def perform(self, point: Vec3) -> None: ...

    def is_done(self) -> bool: ...

    def nb_points(self) -> int: ...

    def lower_distance(self) -> float: ...

    def nearest_point(self) -> Vec3: ...

    def lower_distance_parameters(self) -> UV: ...


class SurfaceSource(Protocol):
    def faces(self, shape: Any) -> Iterable[Any]: ...

    def surface(self, face: Any) -> Any: ...

    def normal(self, face: Any, u: float, v: float) -> Vec3: ...


ProjectorFactory = Callable[[Vec3, Any], SingleSurfaceProjector]


def _as_vec3(point: Sequence[float]) -> Vec3:
    if len(point) != 3:
        raise ValueError(f"Expected a 3D point, got {len(point)} coordinates")
    return (float(point[0]), float(point[1]), float(point[2]))


def has_solution(projector: SingleSurfaceProjector) -> bool:
    return bool(projector.is_done()) and projector.nb_points() > 0


def projector_distance(projector: SingleSurfaceProjector) -> float:
    """Comparison key of a projector: its lowest distance, +inf without a solution."""
    if has_solution(projector):
        return float(projector.lower_distance())
    return math.inf


@dataclass(frozen=True)
class ProjectorEntry:
    index: int
    face: Any
    projector: SingleSurfaceProjector


@dataclass(frozen=True)
class ProjectionSolution:
    is_done: bool
    face: Any
    face_index: Optional[int]
    distance: float
    point: Vec3
    uv: UV
    normal: Vec3


def select_minimum(entries: Sequence[ProjectorEntry]) -> Optional[ProjectorEntry]:
    """Return the entry with the lowest :func:`projector_distance`.

    Entries are scanned in enumeration order and only a strictly lower
    distance replaces the current best, so ties go to the earliest entry.
    When every entry failed the first one is returned; callers check
    :func:`has_solution` on it.
    """
    if not entries:
        return None
    best: Optional[ProjectorEntry] = None
    best_distance = math.inf
    for entry in entries:
        dist = projector_distance(entry.projector)
        if best is None or dist < best_distance:
            best = entry
            best_distance = dist
    if best is None:
        raise AssertionError("a non-empty face soup always has a minimal entry")
    return best


def _default_source() -> SurfaceSource:
    from .surface_source import OccSurfaceSource

    return OccSurfaceSource()


def _default_projector_factory() -> ProjectorFactory:
    from .surface_projector import SurfaceProjector

    return SurfaceProjector


class FaceProjectorPool:
    """One projector per face of the last prepared shape."""

    def __init__(
        self,
        source: SurfaceSource | None = None,
        projector_factory: ProjectorFactory | None = None,
        seed_point: Vec3 = ORIGIN,
    ) -> None:
        self.source = source if source is not None else _default_source()
        self.projector_factory = projector_factory if projector_factory is not None else _default_projector_factory()
        self.seed_point = _as_vec3(seed_point)
        self._entries: Tuple[ProjectorEntry, ...] = ()
        self._generation = 0

    @property
    def entries(self) -> Tuple[ProjectorEntry, ...]:
        return self._entries

    @property
    def generation(self) -> int:
        return self._generation

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ProjectorEntry]:
        return iter(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)

    def prepare(self, shape: Any) -> int:
        self.release()
        entries: list[ProjectorEntry] = []
        for idx, face in enumerate(self.source.faces(shape)):
            surface = self.source.surface(face)
            if surface is None:
                LOGGER.debug("Face %d has no underlying surface", idx + 1)
            entries.append(ProjectorEntry(idx, face, self.projector_factory(self.seed_point, surface)))
        self._entries = tuple(entries)
        LOGGER.info("Prepared %d face projector(s)", len(self._entries))
        return len(self._entries)

    def release(self) -> None:
        self._entries = ()
        self._generation += 1


class PointOnFacesProjection:
    """Normal projection of points on a soup of faces.

    Every call to :meth:`compute` projects the point on each face of the pool
    and keeps the face with the lowest distance. This is as slow as the
    number of faces times the cost of one surface projection; use
    ``workers > 1`` to spread the per-face projections over threads.

    Usage::

        proj = PointOnFacesProjection(shape)
        if proj.compute((x, y, z)).is_done():
            face, point = proj.solution_face(), proj.solution_point()

    A single instance must not be used from several threads at once.
    """

    def __init__(
        self,
        shape: Any = None,
        *,
        source: SurfaceSource | None = None,
        projector_factory: ProjectorFactory | None = None,
        workers: int = 1,
    ) -> None:
        if workers < 1:
            raise ValueError(f"workers must be >= 1, got {workers}")
        self._pool = FaceProjectorPool(source=source, projector_factory=projector_factory)
        self._workers = int(workers)
        self._executor: ThreadPoolExecutor | None = None
        self._result: Optional[ProjectorEntry] = None
        self._result_generation = -1
        if shape is not None:
            self.prepare(shape)

    @property
    def pool(self) -> FaceProjectorPool:
        return self._pool

    @property
    def workers(self) -> int:
        return self._workers

    def prepare(self, shape: Any) -> int:
        self._result = None
        return self._pool.prepare(shape)

    def compute(self, point: Sequence[float]) -> "PointOnFacesProjection":
        query = _as_vec3(point)
        entries = self._pool.entries
        if self._workers > 1 and len(entries) > 1:
            executor = self._get_executor()
            # Consume the iterator so worker exceptions surface here.
            list(executor.map(lambda entry: entry.projector.perform(query), entries))
        else:
            for entry in entries:
                entry.projector.perform(query)
        self._result = select_minimum(entries)
        self._result_generation = self._pool.generation
        return self

    def _get_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=self._workers, thread_name_prefix="faceproj")
        return self._executor

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def __enter__(self) -> "PointOnFacesProjection":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def is_done(self) -> bool:
        if self._result is None or self._result_generation != self._pool.generation:
            return False
        return has_solution(self._result.projector)

    def solution_face(self) -> Any:
        if self.is_done():
            return self._result.face
        return None

    def solution_index(self) -> Optional[int]:
        if self.is_done():
            return self._result.index
        return None

    def solution_distance(self) -> float:
        if self.is_done():
            return float(self._result.projector.lower_distance())
        return math.inf

    def solution_point(self) -> Vec3:
        if self.is_done():
            return _as_vec3(self._result.projector.nearest_point())
        return ORIGIN

    def solution_uv(self) -> UV:
        if self.is_done():
            u, v = self._result.projector.lower_distance_parameters()
            return (float(u), float(v))
        return DEFAULT_UV

    def solution_normal(self) -> Vec3:
        if self.is_done():
            u, v = self.solution_uv()
            return _as_vec3(self._pool.source.normal(self._result.face, u, v))
        return DEFAULT_NORMAL

    def solution(self) -> ProjectionSolution:
        return ProjectionSolution(
            is_done=self.is_done(),
            face=self.solution_face(),
            face_index=self.solution_index(),
            distance=self.solution_distance(),
            point=self.solution_point(),
            uv=self.solution_uv(),
            normal=self.solution_normal(),
        )
