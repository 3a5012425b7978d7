"""Unit tests for MLFlow utilities."""

from unittest.mock import MagicMock, patch

import numpy as np

MLFLOW = "obstacle_pipeline.utils.mlflow_utils.mlflow"


class TestFlattenDict:
    """Tests for dictionary flattening utility."""

    def test_flatten_simple_dict(self):
        from obstacle_pipeline.utils.mlflow_utils import _flatten_dict

        assert _flatten_dict({"a": 1, "b": 2}) == {"a": 1, "b": 2}

    def test_flatten_nested_dict(self):
        """Test flattening a nested dictionary."""
        from obstacle_pipeline.utils.mlflow_utils import _flatten_dict

        d = {"level1": {"level2a": 1, "level2b": {"level3": 2}}, "top": 3}
        result = _flatten_dict(d)

        assert result["level1_level2a"] == 1
        assert result["level1_level2b_level3"] == 2
        assert result["top"] == 3

    def test_flatten_with_prefix(self):
        from obstacle_pipeline.utils.mlflow_utils import _flatten_dict

        assert _flatten_dict({"a": 1}, prefix="test_") == {"test_a": 1}


class TestLogParamsSafe:
    """Tests for safe parameter logging."""

    def test_log_params_simple(self):
        from obstacle_pipeline.utils.mlflow_utils import log_params_safe

        with patch(MLFLOW) as mock_mlflow:
            log_params_safe({"match_threshold": 0.05, "found_threshold": 5})

            assert mock_mlflow.log_param.call_count == 2

    def test_log_params_long_value_truncated(self):
        """Test that long parameter values are truncated."""
        from obstacle_pipeline.utils.mlflow_utils import log_params_safe

        with patch(MLFLOW) as mock_mlflow:
            log_params_safe({"long_param": "x" * 600})

            call_args = mock_mlflow.log_param.call_args[0]
            assert len(call_args[1]) <= 500

    def test_log_params_failure_is_swallowed(self):
        """Test that a failing param does not stop the others."""
        from obstacle_pipeline.utils.mlflow_utils import log_params_safe

        with patch(MLFLOW) as mock_mlflow:
            mock_mlflow.log_param.side_effect = [Exception("conflict"), None]
            log_params_safe({"a": 1, "b": 2})

            assert mock_mlflow.log_param.call_count == 2


class TestLogMetricsSafe:
    """Tests for safe metrics logging."""

    def test_log_metrics_simple(self):
        from obstacle_pipeline.utils.mlflow_utils import log_metrics_safe

        with patch(MLFLOW) as mock_mlflow:
            log_metrics_safe({"unique_obstacles": 3, "fps": np.float64(120.5)}, step=2)

            mock_mlflow.log_metric.assert_any_call("unique_obstacles", 3.0, step=2)
            mock_mlflow.log_metric.assert_any_call("fps", 120.5, step=2)

    def test_log_metrics_skips_invalid_values(self):
        """Test that NaN, inf, bool and non-numeric values are skipped."""
        from obstacle_pipeline.utils.mlflow_utils import log_metrics_safe

        with patch(MLFLOW) as mock_mlflow:
            log_metrics_safe(
                {
                    "valid": 1.0,
                    "nan": float("nan"),
                    "inf": float("inf"),
                    "flag": True,
                    "label": "sphere",
                }
            )

            mock_mlflow.log_metric.assert_called_once_with("valid", 1.0, step=None)


class TestLogSmoothingMetrics:
    """Tests for smoothing-specific logging."""

    def test_prefixes(self):
        from obstacle_pipeline.utils.mlflow_utils import log_smoothing_metrics

        with patch(MLFLOW) as mock_mlflow:
            log_smoothing_metrics({"fps": 100.0}, {"lost_threshold": 10})

            mock_mlflow.log_param.assert_called_once_with("smoothing_lost_threshold", "10")
            mock_mlflow.log_metric.assert_called_once_with("smoothing_fps", 100.0, step=None)


class TestMlflowRun:
    """Tests for the run context manager."""

    def test_creates_missing_experiment(self):
        from obstacle_pipeline.utils.mlflow_utils import mlflow_run

        with patch(MLFLOW) as mock_mlflow:
            mock_mlflow.get_experiment_by_name.return_value = None
            mock_mlflow.create_experiment.return_value = "7"

            with mlflow_run("obstacles", run_name="lab", tags={"sensor": "lidar"}) as run:
                assert run is mock_mlflow.start_run.return_value.__enter__.return_value

            mock_mlflow.create_experiment.assert_called_once_with("obstacles")
            mock_mlflow.set_experiment.assert_called_once_with("obstacles")
            mock_mlflow.start_run.assert_called_once_with(run_name="lab", nested=False)
            mock_mlflow.set_tags.assert_called_once_with({"sensor": "lidar"})

    def test_reuses_existing_experiment(self):
        from obstacle_pipeline.utils.mlflow_utils import get_or_create_experiment

        with patch(MLFLOW) as mock_mlflow:
            mock_mlflow.get_experiment_by_name.return_value = MagicMock(experiment_id="3")

            assert get_or_create_experiment("obstacles") == "3"
            mock_mlflow.create_experiment.assert_not_called()
