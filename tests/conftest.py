"""Pytest configuration and fixtures for Obstacle Pipeline tests."""

import sys
from pathlib import Path

import numpy as np
import pytest

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from obstacle_pipeline.models.geometry import CapsuleModel, CompositeModel, SphereModel  # noqa: E402


def sphere(x: float, y: float = 0.0, z: float = 0.0, radius: float = 0.1) -> SphereModel:
    """Shorthand for a sphere observation."""
    return SphereModel(center=[x, y, z], radius=radius)


def composite(*xs: float, y: float = 0.0, z: float = 0.0) -> CompositeModel:
    """Composite observation made of spheres placed along the x axis."""
    return CompositeModel(models=[sphere(x, y, z) for x in xs])


@pytest.fixture
def make_sphere():
    return sphere


@pytest.fixture
def make_composite():
    return composite


@pytest.fixture
def sample_capsule():
    """Capsule lying along the x axis, centered at (1, 0, 0)."""
    return CapsuleModel(first=[0.5, 0.0, 0.0], second=[1.5, 0.0, 0.0], radius=0.2)


@pytest.fixture
def sample_composite():
    """Composite of a sphere and a capsule."""
    return CompositeModel(
        models=[
            SphereModel(center=[0.0, 0.0, 0.0], radius=0.1),
            CapsuleModel(first=[1.0, 0.0, 0.0], second=[1.0, 2.0, 0.0], radius=0.1),
        ]
    )


@pytest.fixture
def fast_config():
    """Short thresholds so lifecycle tests stay small."""
    from obstacle_pipeline.pipelines.obstacle_smoothing.aggregator import SmoothingConfig

    return SmoothingConfig(match_threshold=0.05, found_threshold=3, lost_threshold=4, refresh_period=30)


@pytest.fixture
def sample_obstacle_frames():
    """Eight frames of shape dicts: one steady obstacle plus a one-frame glitch."""
    frames = []
    for frame_idx in range(8):
        frame = [
            {"type": "sphere", "center": [1.0, 2.0, 0.5], "radius": 0.2},
            {
                "type": "composite",
                "models": [
                    {"type": "sphere", "center": [4.0, 0.0, 0.0], "radius": 0.1},
                    {"type": "capsule", "first": [4.2, 0.0, 0.0], "second": [4.2, 0.0, 1.0]},
                ],
            },
        ]
        if frame_idx == 2:
            frame.append({"type": "sphere", "center": [-3.0, -3.0, 0.0], "radius": 0.1})
        frames.append(frame)
    return frames


@pytest.fixture
def rng():
    return np.random.default_rng(7)
