"""In-memory faces and projectors standing in for the geometry kernel.

Every fake face is the horizontal plane ``z = height``; its parameters are
the x and y coordinates of a point on it.
"""

from __future__ import annotations

import math
import random
import time
from dataclasses import dataclass, field
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class FakePlane:
    height: float
    kind: str = "plane"


@dataclass(eq=False)
class FakeFace:
    name: str
    surface: Optional[FakePlane]
    normal: Tuple[float, float, float] = (0.0, 0.0, 1.0)


@dataclass
class FakeShape:
    faces: List[FakeFace] = field(default_factory=list)


def plane_face(name: str, height: float) -> FakeFace:
    return FakeFace(name, FakePlane(height))


def degenerate_face(name: str) -> FakeFace:
    return FakeFace(name, None)


def empty_face(name: str) -> FakeFace:
    """A face whose projection converges without any candidate."""
    return FakeFace(name, FakePlane(0.0, kind="empty"))


class FakeSource:
    def __init__(self) -> None:
        self.normal_calls: List[Tuple[str, float, float]] = []

    def faces(self, shape: FakeShape):
        return iter(shape.faces)

    def surface(self, face: FakeFace):
        return face.surface

    def normal(self, face: FakeFace, u: float, v: float):
        self.normal_calls.append((face.name, u, v))
        return face.normal


class PlaneProjector:
    def __init__(self, seed_point, surface: FakePlane, delay: float = 0.0) -> None:
        self.seed_point = seed_point
        self.surface = surface
        self.delay = delay
        self.calls = 0
        self._done = False
        self._point = None

    def perform(self, point) -> None:
        self.calls += 1
        if self.delay:
            time.sleep(random.uniform(0.0, self.delay))
        self._point = tuple(point)
        self._done = True

    def is_done(self) -> bool:
        return self._done

    def nb_points(self) -> int:
        return 1 if self._done else 0

    def lower_distance(self) -> float:
        return abs(self._point[2] - self.surface.height)

    def nearest_point(self):
        return (self._point[0], self._point[1], self.surface.height)

    def lower_distance_parameters(self):
        return (self._point[0], self._point[1])


class FailingProjector:
    def __init__(self, seed_point=None, surface=None) -> None:
        self.seed_point = seed_point
        self.calls = 0

    def perform(self, point) -> None:
        self.calls += 1

    def is_done(self) -> bool:
        return False

    def nb_points(self) -> int:
        return 0

    def lower_distance(self) -> float:
        raise AssertionError("lower_distance() called on a failed projection")

    def nearest_point(self):
        raise AssertionError("nearest_point() called on a failed projection")

    def lower_distance_parameters(self):
        raise AssertionError("lower_distance_parameters() called on a failed projection")


class EmptyProjector(FailingProjector):
    def is_done(self) -> bool:
        return self.calls > 0


def fake_projector_factory(seed_point, surface, delay: float = 0.0):
    if surface is None:
        return FailingProjector(seed_point, surface)
    if surface.kind == "empty":
        return EmptyProjector(seed_point, surface)
    return PlaneProjector(seed_point, surface, delay=delay)


def brute_force_distance(faces: List[FakeFace], point) -> float:
    best = math.inf
    for face in faces:
        if face.surface is None or face.surface.kind != "plane":
            continue
        best = min(best, abs(point[2] - face.surface.height))
    return best
