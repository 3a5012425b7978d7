"""Obstacle Pipeline Models.

This package contains the obstacle geometry models shared by every stage:
- Sphere, capsule and composite shape approximations
"""

from obstacle_pipeline.models.geometry import (
    CapsuleModel,
    CompositeModel,
    ObjectModel,
    SphereModel,
    center_point,
    copy_model,
    is_finite,
    iter_points,
    model_from_dict,
    model_to_dict,
    shape_name,
    translate,
)

__all__ = [
    "ObjectModel",
    "SphereModel",
    "CapsuleModel",
    "CompositeModel",
    "center_point",
    "translate",
    "iter_points",
    "is_finite",
    "shape_name",
    "copy_model",
    "model_to_dict",
    "model_from_dict",
]
