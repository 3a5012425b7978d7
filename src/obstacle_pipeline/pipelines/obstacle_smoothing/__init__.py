"""Obstacle Smoothing Pipeline.

This module consolidates per-frame obstacle detections over time:
- Nearest reference point matching gives obstacles persistent identities
- Hysteresis on found/lost streaks suppresses detections caused by noise
- Matched geometry is blended towards each new observation

Example Usage:
    from obstacle_pipeline.pipelines.obstacle_smoothing import (
        SmoothObstacleAggregator,
        SmoothingConfig,
    )

    aggregator = SmoothObstacleAggregator(SmoothingConfig(found_threshold=5))
    snapshot = aggregator.update_obstacles(observations)
    print(f"Confirmed: {len(snapshot)}")
"""

from kedro.pipeline import Pipeline, node, pipeline

from .aggregator import (
    InvalidObservation,
    ObstacleSink,
    RecordingSink,
    SmoothedObstacle,
    SmoothingConfig,
    SmoothObstacleAggregator,
)
from .nodes import (
    SmoothingResult,
    compute_smoothing_metrics,
    create_aggregator,
    extract_obstacle_histories,
    log_smoothing_to_mlflow,
    smooth_obstacle_frames,
)

__all__ = [
    # Aggregator
    "SmoothObstacleAggregator",
    "SmoothingConfig",
    "SmoothedObstacle",
    "ObstacleSink",
    "RecordingSink",
    "InvalidObservation",
    # Node functions
    "SmoothingResult",
    "create_aggregator",
    "smooth_obstacle_frames",
    "extract_obstacle_histories",
    "compute_smoothing_metrics",
    "log_smoothing_to_mlflow",
    "create_pipeline",
]


def create_pipeline(**kwargs) -> Pipeline:
    """Create the obstacle smoothing pipeline.

    Returns:
        A Kedro Pipeline object for obstacle smoothing.
    """
    return pipeline(
        [
            node(
                func=create_aggregator,
                inputs=["params:obstacle_smoothing"],
                outputs="obstacle_aggregator",
                name="create_aggregator",
                tags=["smoothing", "init"],
            ),
            node(
                func=smooth_obstacle_frames,
                inputs=["obstacle_aggregator", "obstacle_frames", "params:obstacle_smoothing"],
                outputs="smoothing_results",
                name="smooth_obstacle_frames",
                tags=["smoothing", "inference"],
            ),
            node(
                func=extract_obstacle_histories,
                inputs=["smoothing_results", "params:obstacle_smoothing"],
                outputs="obstacle_histories",
                name="extract_obstacle_histories",
                tags=["smoothing", "histories"],
            ),
            node(
                func=compute_smoothing_metrics,
                inputs=["smoothing_results", "params:obstacle_smoothing"],
                outputs="smoothing_metrics",
                name="compute_smoothing_metrics",
                tags=["smoothing", "metrics"],
            ),
            node(
                func=log_smoothing_to_mlflow,
                inputs=["smoothing_metrics", "params:obstacle_smoothing"],
                outputs=None,
                name="log_smoothing_to_mlflow",
                tags=["smoothing", "mlflow"],
            ),
        ],
        tags=["smoothing"],
    )
