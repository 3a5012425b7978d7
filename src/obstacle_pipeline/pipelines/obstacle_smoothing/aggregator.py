"""Smooth Obstacle Aggregator.

This module turns the raw, identity-less obstacles a segmenter reports each
frame into a stable set of confirmed obstacles. An obstacle is reported only
after it has been seen in enough consecutive frames, and it is dropped only
after it has been missing for enough consecutive frames, so obstacles caused
by sensor noise never reach the consumers.

Per-Frame Flow:

    Observations (frame t)
           ↓
    ┌──────────────────────────────────────┐
    │  Validation (finite geometry only)   │
    └──────────────────────────────────────┘
           ↓
    ┌──────────────────────────────────────┐
    │  Matching (nearest reference point)  │
    └──────────────────────────────────────┘
           ↓
    ┌──────────────────────────────────────┐
    │  Streak update + eviction            │
    └──────────────────────────────────────┘
           ↓
    ┌──────────────────────────────────────┐
    │  Geometry blend (+ periodic refresh) │
    └──────────────────────────────────────┘
           ↓
    ┌──────────────────────────────────────┐
    │  Promotion                           │
    └──────────────────────────────────────┘
           ↓
    Snapshot of confirmed obstacles -> attached sinks

Frames must be fed one at a time; a frame is processed synchronously from
top to bottom and sinks are called on the caller's thread.
"""

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, fields
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np

from obstacle_pipeline.models.geometry import (
    CompositeModel,
    ObjectModel,
    center_point,
    copy_model,
    is_finite,
    translate,
)

from .lifecycle import ObstacleTable, TrackedObstacle
from .matching import CorrespondenceMap, NearestCentroidMatcher

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration and Errors
# =============================================================================


@dataclass
class SmoothingConfig:
    """Tunable parameters of the aggregator.

    Attributes:
        match_threshold: Squared-distance acceptance threshold for matching
        found_threshold: Consecutive matched frames before an obstacle is reported
        lost_threshold: Consecutive missed frames before an obstacle is dropped
        refresh_period: Every this many frames, composite obstacles take over
            the sub-shapes of their new observation
    """

    match_threshold: float = 0.05
    found_threshold: int = 5
    lost_threshold: int = 10
    refresh_period: int = 30

    def __post_init__(self):
        threshold = self.match_threshold
        if isinstance(threshold, bool) or not isinstance(threshold, (int, float)):
            raise ValueError(f"match_threshold must be a number, got {threshold!r}")
        if not math.isfinite(threshold) or threshold < 0:
            raise ValueError(f"match_threshold must be finite and >= 0, got {self.match_threshold}")
        for name in ("found_threshold", "lost_threshold", "refresh_period"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ValueError(f"{name} must be an integer >= 1, got {value!r}")

    @classmethod
    def from_params(cls, params: Optional[Dict[str, Any]] = None) -> "SmoothingConfig":
        """Create from a Kedro parameters dictionary, ignoring unrelated keys."""
        params = params or {}
        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in params.items() if key in known})


class InvalidObservation(ValueError):
    """Raised when an observation cannot enter the tracker.

    Attributes:
        index: Position of the offending observation in its frame
    """

    def __init__(self, message: str, index: Optional[int] = None):
        self.index = index
        super().__init__(message)


# =============================================================================
# Output
# =============================================================================


@dataclass(frozen=True)
class SmoothedObstacle:
    """A confirmed obstacle as handed to sinks.

    Attributes:
        obstacle_id: Persistent identity
        model: Snapshot of the tracked geometry (a copy, never mutated later)
    """

    obstacle_id: int
    model: ObjectModel

    @property
    def center(self) -> np.ndarray:
        return center_point(self.model)


ObstacleSnapshot = Tuple[SmoothedObstacle, ...]


class ObstacleSink(ABC):
    """Anything that wants to be notified of the obstacles of each frame."""

    @abstractmethod
    def update_obstacles(self, obstacles: Sequence[Any]) -> Any:
        """Receive the obstacles of a new frame."""


class RecordingSink(ObstacleSink):
    """Sink that keeps every snapshot it receives."""

    def __init__(self):
        self.snapshots: List[ObstacleSnapshot] = []

    def update_obstacles(self, obstacles: Sequence[SmoothedObstacle]) -> None:
        self.snapshots.append(tuple(obstacles))

    @property
    def latest(self) -> ObstacleSnapshot:
        return self.snapshots[-1] if self.snapshots else ()


# =============================================================================
# Aggregator
# =============================================================================


class SmoothObstacleAggregator(ObstacleSink):
    """Temporal smoothing of per-frame obstacle detections.

    The aggregator is itself a sink, so several of them can be chained: a
    downstream aggregator accepts the snapshots of an upstream one.

    Example:
        >>> aggregator = SmoothObstacleAggregator(SmoothingConfig(found_threshold=3))
        >>> sink = RecordingSink()
        >>> aggregator.attach_sink(sink)
        >>> for frame in frames:
        ...     aggregator.update_obstacles(frame)
        >>> print(f"Obstacles: {len(sink.latest)}")
    """

    def __init__(self, config: Optional[SmoothingConfig] = None):
        """Initialize aggregator.

        Args:
            config: Smoothing parameters (defaults used if omitted)
        """
        self.config = config or SmoothingConfig()

        self._matcher = NearestCentroidMatcher(match_threshold=self.config.match_threshold)
        self._table = ObstacleTable(
            found_threshold=self.config.found_threshold,
            lost_threshold=self.config.lost_threshold,
        )
        self._sinks: List[ObstacleSink] = []
        self._frame_count = 0

    def reset(self) -> None:
        """Forget all tracked obstacles.

        The identity counter keeps running, so identities handed out before
        the reset are never reused.
        """
        self._table.reset()
        self._frame_count = 0

    def attach_sink(self, sink: ObstacleSink) -> None:
        """Attach a sink; sinks are notified in attachment order."""
        self._sinks.append(sink)

    @property
    def sinks(self) -> Tuple[ObstacleSink, ...]:
        return tuple(self._sinks)

    @property
    def frame_count(self) -> int:
        return self._frame_count

    @property
    def tracked_ids(self) -> List[int]:
        return self._table.ids()

    @property
    def next_obstacle_id(self) -> int:
        return self._matcher.next_id

    def get_track(self, obstacle_id: int) -> Optional[TrackedObstacle]:
        return self._table.get(obstacle_id)

    def materialized(self) -> ObstacleSnapshot:
        """Snapshot of the confirmed obstacles, in confirmation order."""
        return tuple(
            SmoothedObstacle(obstacle_id=track.obstacle_id, model=copy_model(track.model))
            for track in self._table.materialized()
        )

    def update_obstacles(
        self,
        obstacles: Sequence[Union[ObjectModel, SmoothedObstacle]],
    ) -> ObstacleSnapshot:
        """Process one frame of observations.

        Args:
            obstacles: Observed obstacle geometries of the frame (snapshots of
                an upstream aggregator are accepted too)

        Returns:
            The snapshot that was sent to the attached sinks

        Raises:
            InvalidObservation: If any observation is not a finite shape; the
                frame is rejected before any state changes
        """
        observations = self._validate(obstacles)

        self._frame_count += 1
        logger.debug(f"Frame {self._frame_count}: {len(observations)} new obstacle(s)")

        previously_tracked = set(self._table.ids())
        correspondence = self._matcher.match(self._table, observations)
        self._table.update_streaks(correspondence.keys())
        self._table.drop_lost()
        self._adapt_tracked(
            {oid: idx for oid, idx in correspondence.items() if oid in previously_tracked},
            observations,
        )
        self._table.materialize_found()

        snapshot = self.materialized()
        logger.debug(f"Frame {self._frame_count}: {len(snapshot)} confirmed obstacle(s)")

        self._notify_sinks(snapshot)
        return snapshot

    @staticmethod
    def _validate(
        obstacles: Sequence[Union[ObjectModel, SmoothedObstacle]],
    ) -> List[ObjectModel]:
        observations = []
        for idx, obstacle in enumerate(obstacles):
            model = obstacle.model if isinstance(obstacle, SmoothedObstacle) else obstacle
            try:
                finite = is_finite(model)
            except TypeError as e:
                raise InvalidObservation(
                    f"Observation {idx} is not an obstacle model: {e}", index=idx
                ) from e
            if not finite:
                raise InvalidObservation(
                    f"Observation {idx} has non-finite geometry or reference point", index=idx
                )
            observations.append(model)
        return observations

    def _adapt_tracked(
        self,
        correspondence: CorrespondenceMap,
        observations: Sequence[ObjectModel],
    ) -> None:
        """Blend each matched observation into its tracked geometry.

        The tracked obstacle moves halfway towards the observation. On refresh
        frames, a composite obstacle matched to a composite observation takes
        over the observation's sub-shapes, placed at the blended position.

        Obstacles registered in this frame are left out of ``correspondence``:
        they already hold a copy of their observation.
        """
        refresh = self._frame_count % self.config.refresh_period == 0

        for obstacle_id, obs_idx in correspondence.items():
            track = self._table.get(obstacle_id)
            if track is None:
                continue
            observation = observations[obs_idx]

            old_center = center_point(track.model)
            translation = (center_point(observation) - old_center) / 2

            if refresh and self._refresh_structure(track, observation):
                translate(track.model, old_center + translation - center_point(track.model))
                logger.debug(f"Obstacle {obstacle_id}: sub-shapes refreshed")
            else:
                translate(track.model, translation)

    @staticmethod
    def _refresh_structure(track: TrackedObstacle, observation: ObjectModel) -> bool:
        match (track.model, observation):
            case (CompositeModel(), CompositeModel(models=models)):
                track.model.set_models([copy_model(child) for child in models])
                return True
            case _:
                return False

    def _notify_sinks(self, snapshot: ObstacleSnapshot) -> None:
        for sink in self._sinks:
            sink.update_obstacles(snapshot)
