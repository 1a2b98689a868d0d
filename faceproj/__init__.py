from .projection import (
    FaceProjectorPool,
    PointOnFacesProjection,
    ProjectionSolution,
    ProjectorEntry,
    projector_distance,
    select_minimum,
)

__all__ = [
    "FaceProjectorPool",
    "PointOnFacesProjection",
    "ProjectionSolution",
    "ProjectorEntry",
    "projector_distance",
    "select_minimum",
]
