"""Frame-to-Track Association.

Each observation in a frame is matched to the tracked obstacle whose
reference point is nearest to its own, provided the squared distance is
within the acceptance threshold. Observations without such a candidate get
a brand new identity.

Association Rules:
    - Candidates: tracked obstacles with squared distance <= match_threshold
    - Among candidates the nearest wins; on exact ties the oldest identity
    - Two observations claiming one identity: the closer keeps it, the other
      is treated as unmatched (it does not fall back to its second choice)
    - New obstacles are inserted only after the whole frame has been scanned,
      so observations never match each other within a frame
"""

import logging
from typing import Dict, List, Sequence

import numpy as np
from scipy.spatial.distance import cdist

from obstacle_pipeline.models.geometry import ObjectModel, center_point, copy_model

from .lifecycle import ObstacleTable

logger = logging.getLogger(__name__)

# Maps obstacle identity -> index of the observation it matched this frame.
CorrespondenceMap = Dict[int, int]


class NearestCentroidMatcher:
    """Nearest-centroid data association with a per-instance identity counter.

    Example:
        >>> matcher = NearestCentroidMatcher(match_threshold=0.05)
        >>> correspondence = matcher.match(table, observations)
    """

    def __init__(self, match_threshold: float = 0.05):
        """Initialize matcher.

        Args:
            match_threshold: Acceptance threshold on the squared distance
                between reference points
        """
        self.match_threshold = match_threshold
        self._next_id = 0

    @property
    def next_id(self) -> int:
        """Identity the next new obstacle will receive."""
        return self._next_id

    def _allocate_id(self) -> int:
        obstacle_id = self._next_id
        self._next_id += 1
        return obstacle_id

    def match(
        self,
        table: ObstacleTable,
        observations: Sequence[ObjectModel],
    ) -> CorrespondenceMap:
        """Match a frame's observations against the tracked obstacles.

        Unmatched observations are registered in ``table`` under fresh
        identities once every observation has been considered.

        Args:
            table: Tracked obstacles
            observations: Validated observations of the current frame

        Returns:
            Correspondence of identity -> observation index, covering both
            matched and newly registered obstacles
        """
        correspondence: CorrespondenceMap = {}
        if len(observations) == 0:
            return correspondence

        tracks = list(table)
        distances = self._distance_matrix(tracks, observations)

        claimed_dist: Dict[int, float] = {}
        unmatched: List[int] = []

        for obs_idx, row in enumerate(distances):
            candidates = np.flatnonzero(row <= self.match_threshold)
            if candidates.size == 0:
                logger.debug(f"Observation {obs_idx}: no candidate within threshold")
                unmatched.append(obs_idx)
                continue

            # argmin returns the first minimum, i.e. the oldest identity on ties
            best = int(candidates[np.argmin(row[candidates])])
            obstacle_id = tracks[best].obstacle_id
            dist = float(row[best])
            logger.debug(f"Observation {obs_idx} -> obstacle {obstacle_id} (dist={dist:.4f})")

            if obstacle_id not in correspondence:
                correspondence[obstacle_id] = obs_idx
                claimed_dist[obstacle_id] = dist
            elif dist < claimed_dist[obstacle_id]:
                loser = correspondence[obstacle_id]
                logger.debug(
                    f"Observation {obs_idx} is closer to obstacle {obstacle_id} "
                    f"than observation {loser}; releasing {loser}"
                )
                correspondence[obstacle_id] = obs_idx
                claimed_dist[obstacle_id] = dist
                unmatched.append(loser)
            else:
                logger.debug(
                    f"Obstacle {obstacle_id} already claimed by observation "
                    f"{correspondence[obstacle_id]}; observation {obs_idx} unmatched"
                )
                unmatched.append(obs_idx)

        # Deferred insertion, in observation order so identities are deterministic
        for obs_idx in sorted(unmatched):
            obstacle_id = self._allocate_id()
            table.register(obstacle_id, copy_model(observations[obs_idx]))
            correspondence[obstacle_id] = obs_idx

        return correspondence

    @staticmethod
    def _distance_matrix(tracks, observations: Sequence[ObjectModel]) -> np.ndarray:
        """Squared distances, observations x tracks."""
        if not tracks:
            return np.empty((len(observations), 0))

        obs_centers = np.array([center_point(obs) for obs in observations])
        track_centers = np.array([center_point(track.model) for track in tracks])
        return cdist(obs_centers, track_centers, "sqeuclidean")
