"""Obstacle Geometry Models.

This module defines the closed set of shapes an obstacle can be approximated
with. Every shape exposes a reference (center) point and can be rigidly
translated; the composite variant additionally carries an ordered,
replaceable list of child shapes.

Shape Variants:
    - SphereModel: center + radius
    - CapsuleModel: two axis end points + radius
    - CompositeModel: ordered list of child shapes (any variant)

Dispatch is done with exhaustive ``match`` statements over the variants, so
adding a new shape means touching every operation below.

Dict Format:
    {"type": "sphere", "center": [x, y, z], "radius": r}
    {"type": "capsule", "first": [x, y, z], "second": [x, y, z], "radius": r}
    {"type": "composite", "models": [<shape dict>, ...]}
"""

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Sequence, Union

import numpy as np


def _as_point(value: Sequence[float]) -> np.ndarray:
    point = np.asarray(value, dtype=np.float64).reshape(-1)
    if point.shape != (3,):
        raise ValueError(f"Expected a 3D point, got shape {point.shape}")
    return point


# =============================================================================
# Shape Variants
# =============================================================================


@dataclass(eq=False)
class SphereModel:
    """Sphere obstacle approximation.

    Attributes:
        center: Sphere center [x, y, z]
        radius: Sphere radius
    """

    center: np.ndarray
    radius: float = 0.0

    def __post_init__(self):
        self.center = _as_point(self.center)
        self.radius = float(self.radius)


@dataclass(eq=False)
class CapsuleModel:
    """Capsule (swept sphere) obstacle approximation.

    Attributes:
        first: First end point of the capsule axis
        second: Second end point of the capsule axis
        radius: Capsule radius
    """

    first: np.ndarray
    second: np.ndarray
    radius: float = 0.0

    def __post_init__(self):
        self.first = _as_point(self.first)
        self.second = _as_point(self.second)
        self.radius = float(self.radius)


@dataclass(eq=False)
class CompositeModel:
    """Obstacle approximated by several sub-shapes.

    The children are kept in order; ``set_models`` swaps the whole list.
    """

    models: List["ObjectModel"] = field(default_factory=list)

    def set_models(self, models: Sequence["ObjectModel"]) -> None:
        """Replace the child shapes wholesale."""
        self.models = list(models)


ObjectModel = Union[SphereModel, CapsuleModel, CompositeModel]

SHAPE_TYPES = ("sphere", "capsule", "composite")


# =============================================================================
# Operations
# =============================================================================


def center_point(model: ObjectModel) -> np.ndarray:
    """Return the reference point of a shape.

    Args:
        model: Any shape variant

    Returns:
        Reference point [x, y, z]. For a composite this is the mean of the
        children's reference points (NaN for an empty composite).
    """
    match model:
        case SphereModel(center=center):
            return center.copy()
        case CapsuleModel(first=first, second=second):
            return (first + second) / 2
        case CompositeModel(models=models):
            if not models:
                return np.full(3, np.nan)
            return np.mean([center_point(child) for child in models], axis=0)
        case _:
            raise TypeError(f"Unsupported obstacle model: {type(model).__name__}")


def translate(model: ObjectModel, vector: np.ndarray) -> None:
    """Rigidly translate a shape in place.

    Args:
        model: Shape to move
        vector: Translation [dx, dy, dz]
    """
    match model:
        case SphereModel():
            model.center = model.center + vector
        case CapsuleModel():
            model.first = model.first + vector
            model.second = model.second + vector
        case CompositeModel(models=models):
            for child in models:
                translate(child, vector)
        case _:
            raise TypeError(f"Unsupported obstacle model: {type(model).__name__}")


def iter_points(model: ObjectModel) -> Iterator[np.ndarray]:
    """Yield every point that defines the shape, depth first."""
    match model:
        case SphereModel(center=center):
            yield center
        case CapsuleModel(first=first, second=second):
            yield first
            yield second
        case CompositeModel(models=models):
            for child in models:
                yield from iter_points(child)
        case _:
            raise TypeError(f"Unsupported obstacle model: {type(model).__name__}")


def is_finite(model: ObjectModel) -> bool:
    """Check that a shape has a finite reference point and finite geometry.

    An empty composite has no reference point and is therefore not finite.
    Neither is a shape whose coordinates are finite but whose reference point
    overflows (e.g. a capsule with both ends near the float64 maximum).
    """
    match model:
        case SphereModel(radius=radius) | CapsuleModel(radius=radius):
            if not np.isfinite(radius):
                return False
        case CompositeModel(models=models):
            if not models or not all(is_finite(child) for child in models):
                return False
        case _:
            raise TypeError(f"Unsupported obstacle model: {type(model).__name__}")

    if not all(np.all(np.isfinite(point)) for point in iter_points(model)):
        return False

    with np.errstate(over="ignore"):
        return bool(np.all(np.isfinite(center_point(model))))


def shape_name(model: ObjectModel) -> str:
    """Short type name used in dict form and reports."""
    match model:
        case SphereModel():
            return "sphere"
        case CapsuleModel():
            return "capsule"
        case CompositeModel():
            return "composite"
        case _:
            raise TypeError(f"Unsupported obstacle model: {type(model).__name__}")


def copy_model(model: ObjectModel) -> ObjectModel:
    """Deep copy a shape, children included."""
    return copy.deepcopy(model)


# =============================================================================
# Dict Conversion
# =============================================================================


def model_to_dict(model: ObjectModel) -> Dict[str, Any]:
    """Convert a shape to its plain-dict form."""
    match model:
        case SphereModel(center=center, radius=radius):
            return {"type": "sphere", "center": center.tolist(), "radius": radius}
        case CapsuleModel(first=first, second=second, radius=radius):
            return {
                "type": "capsule",
                "first": first.tolist(),
                "second": second.tolist(),
                "radius": radius,
            }
        case CompositeModel(models=models):
            return {"type": "composite", "models": [model_to_dict(child) for child in models]}
        case _:
            raise TypeError(f"Unsupported obstacle model: {type(model).__name__}")


def model_from_dict(data: Dict[str, Any]) -> ObjectModel:
    """Build a shape from its plain-dict form.

    Args:
        data: Shape dictionary (see module docstring)

    Returns:
        Shape instance

    Raises:
        ValueError: If the shape type is unknown or a point is malformed
    """
    shape_type = data.get("type")

    if shape_type == "sphere":
        return SphereModel(center=data["center"], radius=data.get("radius", 0.0))
    elif shape_type == "capsule":
        return CapsuleModel(
            first=data["first"],
            second=data["second"],
            radius=data.get("radius", 0.0),
        )
    elif shape_type == "composite":
        return CompositeModel(models=[model_from_dict(child) for child in data.get("models", [])])
    else:
        raise ValueError(f"Unknown shape type: {shape_type}. Supported: {list(SHAPE_TYPES)}")
