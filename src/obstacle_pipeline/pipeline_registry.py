"""Kedro Pipeline Registry.

This module provides the central registry for all pipelines in the obstacle pipeline project.
"""

from typing import Dict

from kedro.pipeline import Pipeline

from obstacle_pipeline.pipelines.obstacle_smoothing import (
    create_pipeline as create_smoothing_pipeline,
)


def register_pipelines() -> Dict[str, Pipeline]:
    """Register all project pipelines.

    Returns:
        A dictionary mapping pipeline names to Pipeline objects.
    """
    obstacle_smoothing_pipeline = create_smoothing_pipeline()

    return {
        "obstacle_smoothing": obstacle_smoothing_pipeline,
        # Default pipeline
        "__default__": obstacle_smoothing_pipeline,
    }
