"""Utility modules for the Obstacle Pipeline.

This package contains utility functions for:
- Profiling (per-operation timings, timing decorator)
- MLFlow experiment tracking
"""

from obstacle_pipeline.utils.mlflow_utils import (
    log_metrics_safe,
    log_params_safe,
    log_smoothing_metrics,
    mlflow_run,
)
from obstacle_pipeline.utils.profiling import Profiler, TimingResult, timed

__all__ = [
    # Profiling
    "Profiler",
    "TimingResult",
    "timed",
    # MLFlow
    "mlflow_run",
    "log_params_safe",
    "log_metrics_safe",
    "log_smoothing_metrics",
]
