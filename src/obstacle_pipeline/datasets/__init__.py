"""Custom Kedro Datasets for the Obstacle Pipeline.

This module provides custom dataset implementations for:
- Recorded segmenter output, one list of obstacle shapes per frame
  (ObstacleFramesDataSet)
"""

import logging
from pathlib import PurePosixPath
from typing import Any, Dict, List, Optional

from kedro.io import AbstractDataset
from kedro_datasets.json import JSONDataset

logger = logging.getLogger(__name__)


class ObstacleFramesDataSet(AbstractDataset[List[List[Dict[str, Any]]], List[List[Dict[str, Any]]]]):
    """Dataset for a sequence of segmented obstacle frames stored as JSON.

    The file holds a JSON list of frames; each frame is a list of shape dicts
    (see ``obstacle_pipeline.models.geometry``). Reading and writing go
    through ``kedro_datasets.json.JSONDataset``; this dataset adds the frame
    structure check and a ``start_frame``/``max_frames`` window on load.

    Example catalog.yml entry:
        obstacle_frames:
            type: obstacle_pipeline.datasets.ObstacleFramesDataSet
            filepath: data/01_raw/obstacle_frames.json
            load_args:
                start_frame: 0
                max_frames: 500
    """

    def __init__(
        self,
        filepath: str,
        load_args: Optional[Dict[str, Any]] = None,
        save_args: Optional[Dict[str, Any]] = None,
        credentials: Optional[Dict[str, Any]] = None,
        fs_args: Optional[Dict[str, Any]] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        """Initialize ObstacleFramesDataSet.

        Args:
            filepath: Path to the JSON file (any fsspec protocol).
            load_args: Arguments for loading:
                - start_frame: Index of the first frame to return
                - max_frames: Maximum number of frames to return
            save_args: Passed to ``json.dump`` (e.g. ``indent``).
            credentials: Filesystem credentials.
            fs_args: Extra arguments for the fsspec filesystem.
            metadata: Optional metadata dictionary.
        """
        self._filepath = PurePosixPath(filepath)
        self._load_args = load_args or {}
        self._save_args = save_args or {}
        self._metadata = metadata or {}
        self._json = JSONDataset(
            filepath=filepath,
            save_args=self._save_args,
            credentials=credentials,
            fs_args=fs_args,
        )

    def _load(self) -> List[List[Dict[str, Any]]]:
        """Load the frames.

        Returns:
            List of frames, each a list of shape dicts.
        """
        frames = self._json.load()

        if not isinstance(frames, list) or not all(isinstance(frame, list) for frame in frames):
            raise ValueError(f"Expected a list of frames in {self._filepath}")

        start_frame = self._load_args.get("start_frame", 0)
        max_frames = self._load_args.get("max_frames")
        end_frame = start_frame + max_frames if max_frames is not None else None
        frames = frames[start_frame:end_frame]

        logger.info(f"Loaded {len(frames)} obstacle frames from {self._filepath}")

        return frames

    def _save(self, data: List[List[Dict[str, Any]]]) -> None:
        """Save frames to file.

        Args:
            data: List of frames, each a list of shape dicts.
        """
        self._json.save(data)
        logger.info(f"Saved {len(data)} obstacle frames to {self._filepath}")

    def _describe(self) -> Dict[str, Any]:
        """Return a description of the dataset."""
        return {
            "filepath": str(self._filepath),
            "load_args": self._load_args,
            "save_args": self._save_args,
        }

    def _exists(self) -> bool:
        """Check if the frames file exists."""
        return self._json.exists()
