"""Unit tests for pipeline registry."""

import pytest

# Check if kedro is available
try:
    import kedro
    from kedro.pipeline import Pipeline

    KEDRO_AVAILABLE = True
except ImportError:
    KEDRO_AVAILABLE = False

pytestmark = pytest.mark.skipif(not KEDRO_AVAILABLE, reason="kedro is not installed")


class TestPipelineRegistry:
    """Tests for pipeline registry."""

    def test_register_pipelines_returns_dict(self):
        """Test that register_pipelines returns a dictionary."""
        from obstacle_pipeline.pipeline_registry import register_pipelines

        pipelines = register_pipelines()

        assert isinstance(pipelines, dict)
        assert set(pipelines) == {"obstacle_smoothing", "__default__"}

    def test_all_pipelines_are_pipeline_objects(self):
        from obstacle_pipeline.pipeline_registry import register_pipelines

        for name, pipeline in register_pipelines().items():
            assert isinstance(pipeline, Pipeline), f"{name} is not a Pipeline"

    def test_default_is_smoothing(self):
        from obstacle_pipeline.pipeline_registry import register_pipelines

        pipelines = register_pipelines()

        assert len(pipelines["__default__"].nodes) == len(pipelines["obstacle_smoothing"].nodes)


class TestSmoothingPipeline:
    """Tests for the obstacle smoothing pipeline structure."""

    def test_node_names(self):
        from obstacle_pipeline.pipelines.obstacle_smoothing import create_pipeline

        names = {node.name for node in create_pipeline().nodes}

        assert names == {
            "create_aggregator",
            "smooth_obstacle_frames",
            "extract_obstacle_histories",
            "compute_smoothing_metrics",
            "log_smoothing_to_mlflow",
        }

    def test_data_flow(self):
        """Test the external inputs and the final outputs."""
        from obstacle_pipeline.pipelines.obstacle_smoothing import create_pipeline

        pipeline = create_pipeline()

        all_outputs = set()
        for node in pipeline.nodes:
            all_outputs.update(node.outputs)

        assert pipeline.inputs() == {"obstacle_frames", "params:obstacle_smoothing"}
        assert {"obstacle_histories", "smoothing_metrics"} <= all_outputs

    def test_tags(self):
        from obstacle_pipeline.pipelines.obstacle_smoothing import create_pipeline

        for node in create_pipeline().nodes:
            assert "smoothing" in node.tags
