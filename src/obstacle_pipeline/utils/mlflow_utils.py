"""MLFlow Utilities for the Obstacle Pipeline.

This module provides helpers for experiment tracking with MLFlow: a run
context manager and "safe" logging functions that never let an experiment
tracking hiccup break a smoothing run.
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Optional, Union

import mlflow
import numpy as np

logger = logging.getLogger(__name__)


def get_or_create_experiment(experiment_name: str) -> str:
    """Get or create an MLFlow experiment.

    Args:
        experiment_name: Name of the experiment.

    Returns:
        Experiment ID.
    """
    experiment = mlflow.get_experiment_by_name(experiment_name)
    if experiment is None:
        experiment_id = mlflow.create_experiment(experiment_name)
        logger.info(f"Created new experiment: {experiment_name} (ID: {experiment_id})")
    else:
        experiment_id = experiment.experiment_id
        logger.info(f"Using existing experiment: {experiment_name} (ID: {experiment_id})")

    return experiment_id


@contextmanager
def mlflow_run(
    experiment_name: str = "obstacle_pipeline",
    run_name: Optional[str] = None,
    tags: Optional[Dict[str, str]] = None,
    nested: bool = False,
):
    """Context manager for MLFlow runs.

    Args:
        experiment_name: Name of the experiment.
        run_name: Optional name for this run.
        tags: Optional tags to add to the run.
        nested: Whether this is a nested run.

    Yields:
        Active MLFlow run.

    Example:
        >>> with mlflow_run("obstacle_smoothing", run_name="lab_sequence") as run:
        ...     log_metrics_safe({"unique_obstacles": 4})
    """
    get_or_create_experiment(experiment_name)
    mlflow.set_experiment(experiment_name)

    with mlflow.start_run(run_name=run_name, nested=nested) as run:
        if tags:
            mlflow.set_tags(tags)
        logger.info(f"Started MLFlow run: {run.info.run_id}")
        yield run
        logger.info(f"Finished MLFlow run: {run.info.run_id}")


def log_params_safe(params: Dict[str, Any], prefix: str = "") -> None:
    """Safely log parameters to MLFlow.

    Handles nested dictionaries, non-string values, and MLFlow limitations.

    Args:
        params: Dictionary of parameters to log.
        prefix: Optional prefix for parameter names.
    """
    flat_params = _flatten_dict(params, prefix)

    for key, value in flat_params.items():
        try:
            # MLFlow has a 500 character limit for param values
            str_value = str(value)
            if len(str_value) > 500:
                str_value = str_value[:497] + "..."
            mlflow.log_param(key, str_value)
        except Exception as e:
            logger.warning(f"Failed to log param {key}: {e}")


def log_metrics_safe(
    metrics: Dict[str, Union[int, float]],
    step: Optional[int] = None,
    prefix: str = "",
) -> None:
    """Safely log metrics to MLFlow.

    Non-numeric, NaN and infinite values are skipped.

    Args:
        metrics: Dictionary of metrics to log.
        step: Optional step number for the metrics.
        prefix: Optional prefix for metric names.
    """
    for key, value in metrics.items():
        if isinstance(value, bool) or not isinstance(value, (int, float, np.number)):
            continue
        if np.isnan(value) or np.isinf(value):
            continue
        metric_name = f"{prefix}{key}" if prefix else key
        try:
            mlflow.log_metric(metric_name, float(value), step=step)
        except Exception as e:
            logger.warning(f"Failed to log metric {metric_name}: {e}")


def log_smoothing_metrics(
    metrics: Dict[str, float],
    smoothing_config: Dict[str, Any],
    step: Optional[int] = None,
) -> None:
    """Log obstacle smoothing metrics and configuration.

    Args:
        metrics: Smoothing metrics (unique obstacles, lifetimes, fps, ...).
        smoothing_config: Aggregator configuration parameters.
        step: Optional step number.
    """
    log_params_safe(smoothing_config, prefix="smoothing_")
    log_metrics_safe(metrics, step=step, prefix="smoothing_")


def _flatten_dict(d: Dict[str, Any], prefix: str = "") -> Dict[str, Any]:
    """Flatten a nested dictionary.

    Args:
        d: Dictionary to flatten.
        prefix: Prefix for keys.

    Returns:
        Flattened dictionary.
    """
    items = {}
    for key, value in d.items():
        new_key = f"{prefix}{key}" if prefix else key
        if isinstance(value, dict):
            items.update(_flatten_dict(value, f"{new_key}_"))
        else:
            items[new_key] = value
    return items
