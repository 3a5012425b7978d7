"""Obstacle Smoothing Pipeline Nodes.

This module contains the Kedro node functions that run the smooth obstacle
aggregator over a recorded sequence of segmented frames, and summarise the
result.

Input Format (one list per frame):
    [
        {"type": "sphere", "center": [x, y, z], "radius": r},
        {"type": "composite", "models": [...]},
        ...
    ]
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Dict, List

import mlflow
import numpy as np
import pandas as pd

from obstacle_pipeline.models.geometry import (
    ObjectModel,
    is_finite,
    model_from_dict,
    model_to_dict,
    shape_name,
)
from obstacle_pipeline.utils.mlflow_utils import log_smoothing_metrics, mlflow_run
from obstacle_pipeline.utils.profiling import Profiler, timed

from .aggregator import (
    InvalidObservation,
    SmoothedObstacle,
    SmoothingConfig,
    SmoothObstacleAggregator,
)

logger = logging.getLogger(__name__)


@dataclass
class SmoothingResult:
    """Confirmed obstacles after a single frame.

    Attributes:
        frame_id: Frame index within the sequence
        obstacles: Confirmed obstacles emitted for the frame
        num_observations: Observations fed to the aggregator
        num_tracked: Obstacles tracked after the frame (confirmed or not)
        processing_time: Aggregator update time in seconds
    """

    frame_id: int
    obstacles: List[SmoothedObstacle]
    num_observations: int
    num_tracked: int
    processing_time: float

    @property
    def num_obstacles(self) -> int:
        return len(self.obstacles)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "frame_id": self.frame_id,
            "obstacles": [
                {"obstacle_id": obs.obstacle_id, "model": model_to_dict(obs.model)}
                for obs in self.obstacles
            ],
            "num_observations": self.num_observations,
            "num_tracked": self.num_tracked,
            "processing_time": self.processing_time,
        }


def create_aggregator(params: Dict[str, Any]) -> SmoothObstacleAggregator:
    """Create a smooth obstacle aggregator.

    Args:
        params: Smoothing configuration

    Returns:
        Aggregator instance

    Example:
        params = {
            "match_threshold": 0.05,
            "found_threshold": 5,
            "lost_threshold": 10,
            "refresh_period": 30,
        }
        aggregator = create_aggregator(params)
    """
    config = SmoothingConfig.from_params(params)
    aggregator = SmoothObstacleAggregator(config)
    logger.info(
        f"Created obstacle aggregator: match_threshold={config.match_threshold}, "
        f"found={config.found_threshold}, lost={config.lost_threshold}, "
        f"refresh every {config.refresh_period} frames"
    )
    return aggregator


def _parse_frame(
    frame: List[Any],
    frame_idx: int,
    drop_invalid: bool,
) -> List[ObjectModel]:
    """Convert one frame of shape dicts to models."""
    models = []
    for obs_idx, item in enumerate(frame):
        try:
            model = model_from_dict(item) if isinstance(item, dict) else item
            valid = is_finite(model)
        except (KeyError, TypeError, ValueError) as e:
            if not drop_invalid:
                raise InvalidObservation(
                    f"Frame {frame_idx}: observation {obs_idx} is malformed: {e}", index=obs_idx
                ) from e
            logger.warning(f"Frame {frame_idx}: dropping malformed observation {obs_idx}: {e}")
            continue

        if not valid:
            if not drop_invalid:
                raise InvalidObservation(
                    f"Frame {frame_idx}: observation {obs_idx} has non-finite geometry",
                    index=obs_idx,
                )
            logger.warning(f"Frame {frame_idx}: dropping non-finite observation {obs_idx}")
            continue
        models.append(model)
    return models


def smooth_obstacle_frames(
    aggregator: SmoothObstacleAggregator,
    obstacle_frames: List[List[Any]],
    params: Dict[str, Any],
) -> List[SmoothingResult]:
    """Run the aggregator over a sequence of frames.

    Args:
        aggregator: Initialized aggregator
        obstacle_frames: Observations per frame (shape dicts or models)
        params: Smoothing parameters:
            - drop_invalid: Skip malformed/non-finite observations with a
              warning instead of failing the run (default True)

    Returns:
        List of smoothing results, one per frame
    """
    drop_invalid = params.get("drop_invalid", True)
    profiler = Profiler()

    results = []
    for frame_idx, frame in enumerate(obstacle_frames):
        observations = _parse_frame(frame, frame_idx, drop_invalid)

        with profiler.profile("update_obstacles"):
            snapshot = aggregator.update_obstacles(observations)

        results.append(
            SmoothingResult(
                frame_id=frame_idx,
                obstacles=list(snapshot),
                num_observations=len(observations),
                num_tracked=len(aggregator.tracked_ids),
                processing_time=profiler.get_timing("update_obstacles").times[-1],
            )
        )

    total_obstacles = sum(r.num_obstacles for r in results)
    logger.info(
        f"Smoothing complete: {len(results)} frames, {total_obstacles} confirmed obstacle instances"
    )

    return results


@timed()
def extract_obstacle_histories(
    smoothing_results: List[SmoothingResult],
    params: Dict[str, Any],
) -> pd.DataFrame:
    """Extract per-obstacle position histories.

    Args:
        smoothing_results: List of smoothing results
        params: Smoothing parameters

    Returns:
        DataFrame with columns obstacle_id, frame_id, x, y, z, shape
    """
    rows = []
    for result in smoothing_results:
        for obstacle in result.obstacles:
            x, y, z = obstacle.center
            rows.append(
                {
                    "obstacle_id": obstacle.obstacle_id,
                    "frame_id": result.frame_id,
                    "x": float(x),
                    "y": float(y),
                    "z": float(z),
                    "shape": shape_name(obstacle.model),
                }
            )

    df = pd.DataFrame(rows, columns=["obstacle_id", "frame_id", "x", "y", "z", "shape"])

    if not df.empty:
        df = df.sort_values(["obstacle_id", "frame_id"]).reset_index(drop=True)

    logger.info(f"Extracted {df['obstacle_id'].nunique()} obstacle histories")

    return df


@timed()
def compute_smoothing_metrics(
    smoothing_results: List[SmoothingResult],
    params: Dict[str, Any],
) -> Dict[str, float]:
    """Compute smoothing statistics.

    Args:
        smoothing_results: List of smoothing results
        params: Smoothing parameters

    Returns:
        Dictionary of computed metrics
    """
    if not smoothing_results:
        return {}

    total_frames = len(smoothing_results)
    total_obstacles = sum(r.num_obstacles for r in smoothing_results)
    total_observations = sum(r.num_observations for r in smoothing_results)

    # Frames each confirmed obstacle was reported in
    lifetimes = defaultdict(int)
    for result in smoothing_results:
        for obstacle in result.obstacles:
            lifetimes[obstacle.obstacle_id] += 1
    lengths = list(lifetimes.values())

    processing_times = [r.processing_time for r in smoothing_results]
    avg_time = float(np.mean(processing_times))
    fps = 1.0 / avg_time if avg_time > 0 else 0.0

    metrics = {
        "total_frames": total_frames,
        "total_observations": total_observations,
        "total_obstacle_instances": total_obstacles,
        "unique_obstacles": len(lifetimes),
        "obstacles_per_frame": total_obstacles / total_frames,
        "avg_obstacle_lifetime": float(np.mean(lengths)) if lengths else 0.0,
        "max_obstacle_lifetime": max(lengths) if lengths else 0,
        "min_obstacle_lifetime": min(lengths) if lengths else 0,
        "avg_processing_time_ms": avg_time * 1000,
        "fps": fps,
    }

    logger.info(f"Smoothing metrics: {len(lifetimes)} unique obstacles, {fps:.1f} FPS")

    return metrics


def log_smoothing_to_mlflow(
    metrics: Dict[str, float],
    params: Dict[str, Any],
) -> None:
    """Log smoothing metrics to MLFlow.

    Logs into the active run if there is one, otherwise opens a run in the
    ``experiment_name`` experiment.

    Args:
        metrics: Computed smoothing metrics
        params: Smoothing parameters
    """
    config = SmoothingConfig.from_params(params)
    config_params = {
        "match_threshold": config.match_threshold,
        "found_threshold": config.found_threshold,
        "lost_threshold": config.lost_threshold,
        "refresh_period": config.refresh_period,
    }

    try:
        if mlflow.active_run() is not None:
            log_smoothing_metrics(metrics, config_params)
        else:
            experiment_name = params.get("experiment_name", "obstacle_smoothing")
            with mlflow_run(experiment_name, run_name="obstacle_smoothing"):
                log_smoothing_metrics(metrics, config_params)

        logger.info("Smoothing metrics logged to MLFlow")

    except Exception as e:
        logger.warning(f"Failed to log to MLFlow: {e}")
