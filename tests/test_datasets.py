"""Unit tests for custom Kedro datasets."""

import json
import os
import tempfile

import pytest


def _frames(n):
    return [[{"type": "sphere", "center": [float(i), 0.0, 0.0], "radius": 0.1}] for i in range(n)]


class TestObstacleFramesDataSet:
    """Tests for ObstacleFramesDataSet."""

    def test_describe(self):
        """Test dataset description."""
        from obstacle_pipeline.datasets import ObstacleFramesDataSet

        dataset = ObstacleFramesDataSet(
            filepath="frames.json",
            load_args={"start_frame": 2, "max_frames": 10},
        )

        desc = dataset._describe()
        assert desc["filepath"] == "frames.json"
        assert desc["load_args"]["max_frames"] == 10

    def test_exists_false(self):
        """Test exists returns False for non-existent file."""
        from obstacle_pipeline.datasets import ObstacleFramesDataSet

        dataset = ObstacleFramesDataSet(filepath="/nonexistent/frames.json")
        assert not dataset._exists()

    def test_save_and_load(self):
        """Test saving and loading frames."""
        from obstacle_pipeline.datasets import ObstacleFramesDataSet

        with tempfile.TemporaryDirectory() as tmpdir:
            filepath = os.path.join(tmpdir, "nested", "frames.json")
            dataset = ObstacleFramesDataSet(filepath=filepath, save_args={"indent": 2})

            original = _frames(4)
            dataset.save(original)

            assert dataset.exists()
            assert dataset.load() == original

    def test_save_args_forwarded(self):
        """Test that save_args reach the JSON writer."""
        from obstacle_pipeline.datasets import ObstacleFramesDataSet

        with tempfile.TemporaryDirectory() as tmpdir:
            filepath = os.path.join(tmpdir, "frames.json")
            ObstacleFramesDataSet(filepath=filepath, save_args={"indent": None}).save(_frames(2))

            with open(filepath) as f:
                assert "\n" not in f.read()

    def test_load_window(self):
        """Test start_frame and max_frames."""
        from obstacle_pipeline.datasets import ObstacleFramesDataSet

        with tempfile.TemporaryDirectory() as tmpdir:
            filepath = os.path.join(tmpdir, "frames.json")
            with open(filepath, "w") as f:
                json.dump(_frames(10), f)

            dataset = ObstacleFramesDataSet(
                filepath=filepath, load_args={"start_frame": 3, "max_frames": 4}
            )
            frames = dataset._load()

            assert len(frames) == 4
            assert frames[0][0]["center"] == [3.0, 0.0, 0.0]

    def test_load_rejects_non_frame_list(self):
        """Test that a file without a list of frames is rejected."""
        from obstacle_pipeline.datasets import ObstacleFramesDataSet

        with tempfile.TemporaryDirectory() as tmpdir:
            filepath = os.path.join(tmpdir, "frames.json")
            with open(filepath, "w") as f:
                json.dump({"frames": []}, f)

            dataset = ObstacleFramesDataSet(filepath=filepath)

            with pytest.raises(ValueError):
                dataset._load()
