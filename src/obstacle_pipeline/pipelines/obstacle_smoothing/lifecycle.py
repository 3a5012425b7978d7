"""Obstacle Lifecycle Bookkeeping.

Every tracked obstacle lives in a single table keyed by its identity. The
table entry carries a tagged lifecycle state:

    Unconfirmed(found, lost)  --found >= found_threshold-->  Confirmed(lost, slot)
            |                                                       |
            +------------- lost >= lost_threshold ------------------+--> evicted

Evicted obstacles are removed from the table outright. The confirmed
(materialized) set is not stored separately: it is the table filtered to
``Confirmed`` entries and ordered by the emission slot handed out at
promotion, so dropping one obstacle never moves the others.

Per frame, the aggregator calls ``update_streaks`` -> ``drop_lost`` ->
``materialize_found`` in that order.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, Iterator, List, Optional, Union

from obstacle_pipeline.models.geometry import ObjectModel

logger = logging.getLogger(__name__)


# =============================================================================
# Lifecycle States
# =============================================================================


@dataclass(frozen=True)
class Unconfirmed:
    """Obstacle seen, but not for long enough to be reported.

    Attributes:
        found: Consecutive frames the obstacle was matched
        lost: Consecutive frames the obstacle was missed
    """

    found: int = 0
    lost: int = 0


@dataclass(frozen=True)
class Confirmed:
    """Obstacle promoted to the materialized set.

    Attributes:
        lost: Consecutive frames the obstacle was missed
        emission_slot: Promotion sequence number, fixes the output order
    """

    lost: int
    emission_slot: int


LifecycleState = Union[Unconfirmed, Confirmed]


def on_matched(state: LifecycleState) -> LifecycleState:
    """Streak update for an obstacle matched in the current frame."""
    match state:
        case Unconfirmed(found=found):
            return Unconfirmed(found=found + 1, lost=0)
        case Confirmed():
            # Confirmed obstacles no longer count found frames.
            return replace(state, lost=0)
        case _:
            raise TypeError(f"Unknown lifecycle state: {state!r}")


def on_missed(state: LifecycleState) -> LifecycleState:
    """Streak update for an obstacle missing from the current frame."""
    match state:
        case Unconfirmed(lost=lost):
            return Unconfirmed(found=0, lost=lost + 1)
        case Confirmed(lost=lost):
            return replace(state, lost=lost + 1)
        case _:
            raise TypeError(f"Unknown lifecycle state: {state!r}")


# =============================================================================
# Tracked Obstacle Table
# =============================================================================


@dataclass
class TrackedObstacle:
    """An obstacle with a persistent identity.

    Attributes:
        obstacle_id: Identity, never reused
        model: Current (blended) geometry estimate
        state: Lifecycle state
    """

    obstacle_id: int
    model: ObjectModel
    state: LifecycleState = field(default_factory=Unconfirmed)

    @property
    def is_confirmed(self) -> bool:
        return isinstance(self.state, Confirmed)

    @property
    def found(self) -> int:
        """Found streak; confirmed obstacles have graduated and report 0."""
        return self.state.found if isinstance(self.state, Unconfirmed) else 0

    @property
    def lost(self) -> int:
        return self.state.lost


class ObstacleTable:
    """Identity-keyed table of tracked obstacles with hysteresis transitions.

    Key Properties:
        - Found and lost streaks are mutually exclusive per frame
        - Eviction removes an obstacle in one step (no partial cleanup)
        - The materialized view is ordered by promotion, stable on removal
    """

    def __init__(self, found_threshold: int = 5, lost_threshold: int = 10):
        """Initialize the table.

        Args:
            found_threshold: Consecutive matched frames needed to confirm
            lost_threshold: Consecutive missed frames needed to evict
        """
        self.found_threshold = found_threshold
        self.lost_threshold = lost_threshold

        self._tracks: Dict[int, TrackedObstacle] = {}
        self._next_slot = 0

    def reset(self) -> None:
        """Drop every tracked obstacle."""
        self._tracks.clear()
        self._next_slot = 0

    def __len__(self) -> int:
        return len(self._tracks)

    def __contains__(self, obstacle_id: int) -> bool:
        return obstacle_id in self._tracks

    def __iter__(self) -> Iterator[TrackedObstacle]:
        return iter(list(self._tracks.values()))

    def ids(self) -> List[int]:
        return list(self._tracks)

    def get(self, obstacle_id: int) -> Optional[TrackedObstacle]:
        return self._tracks.get(obstacle_id)

    def register(self, obstacle_id: int, model: ObjectModel) -> TrackedObstacle:
        """Start tracking a new obstacle.

        The entry starts with empty streaks; the frame that created it counts
        as its first found frame once ``update_streaks`` runs.
        """
        if obstacle_id in self._tracks:
            raise ValueError(f"Obstacle {obstacle_id} is already tracked")

        track = TrackedObstacle(obstacle_id=obstacle_id, model=model)
        self._tracks[obstacle_id] = track
        logger.debug(f"Inserting previously untracked obstacle {obstacle_id}")
        return track

    def update_streaks(self, matched_ids: Iterable[int]) -> None:
        """Advance found/lost streaks of every tracked obstacle.

        Args:
            matched_ids: Identities matched in the current frame
        """
        matched = set(matched_ids)
        for obstacle_id, track in self._tracks.items():
            if obstacle_id in matched:
                track.state = on_matched(track.state)
            else:
                track.state = on_missed(track.state)
                logger.debug(f"Obstacle {obstacle_id} lost for {track.lost} frame(s)")

    def drop_lost(self) -> List[int]:
        """Evict every obstacle missed for ``lost_threshold`` frames in a row.

        Returns:
            Evicted identities
        """
        evicted = [
            obstacle_id
            for obstacle_id, track in self._tracks.items()
            if track.lost >= self.lost_threshold
        ]
        for obstacle_id in evicted:
            self.evict(obstacle_id)
        return evicted

    def evict(self, obstacle_id: int) -> None:
        """Stop tracking an obstacle. Unknown identities are ignored."""
        track = self._tracks.pop(obstacle_id, None)
        if track is not None:
            logger.debug(
                f"Obstacle {obstacle_id} not found {track.lost} times in a row: dropping"
            )

    def materialize_found(self) -> List[int]:
        """Promote every unconfirmed obstacle found ``found_threshold`` frames in a row.

        Returns:
            Promoted identities, in promotion order
        """
        promoted = []
        for obstacle_id, track in self._tracks.items():
            state = track.state
            if isinstance(state, Unconfirmed) and state.found >= self.found_threshold:
                track.state = Confirmed(lost=state.lost, emission_slot=self._next_slot)
                self._next_slot += 1
                promoted.append(obstacle_id)
                logger.debug(f"Obstacle {obstacle_id} found {state.found} times in a row: including")
        return promoted

    def materialized(self) -> List[TrackedObstacle]:
        """Confirmed obstacles in promotion order."""
        confirmed = [track for track in self._tracks.values() if track.is_confirmed]
        return sorted(confirmed, key=lambda track: track.state.emission_slot)
