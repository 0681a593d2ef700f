"""
Game State Sequencer
====================

Tick-driven game logic that walks the player through a pose routine.

The routine alternates each configured pose with a relax phase:

    Relax (initial) → pose[0] → Relax → pose[1] → Relax → ... → pose[0]

Until the first tick the label is "Relax". The current label is uplinked
with every payload so the server knows which pose to score.
"""

import logging
from typing import Optional, Sequence


logger = logging.getLogger(__name__)


RELAX_STATE = "Relax"

SURYA_NAMASKAR_POSES = (
    "Pranamasana",
    "Hasta Uttanasana",
    "Padahastasana",
    "Ashwa Sanchalanasana",
    "Dandasana",
    "Ashtanga Namaskara",
    "Bhujangasana",
    "Adho Mukha Svanasana",
    "Ashwa Sanchalanasana",
    "Padahastasana",
    "Hasta Uttanasana",
    "Pranamasana",
)


class PoseSequenceGameState:
    """
    Cycles through a pose routine with timed relax breaks.

    Attributes:
        poses: Pose names in routine order
        pose_duration: Seconds to hold each pose
        relax_duration: Seconds of rest between poses

    Example:
        game = PoseSequenceGameState()
        game.tick(0.016)
        print(game.current_state(), game.remaining_seconds)
    """

    def __init__(
        self,
        poses: Sequence[str] = SURYA_NAMASKAR_POSES,
        pose_duration: float = 5.0,
        relax_duration: float = 2.0,
    ) -> None:
        if not poses:
            raise ValueError("poses must not be empty")
        if pose_duration <= 0 or relax_duration <= 0:
            raise ValueError("phase durations must be positive")

        self.poses = list(poses)
        self.pose_duration = pose_duration
        self.relax_duration = relax_duration

        self._label: str = RELAX_STATE
        self._pose_index: int = 0
        self._relaxing: bool = False
        self._remaining: float = 0.0
        self._started: bool = False

    def current_state(self) -> Optional[str]:
        return self._label

    @property
    def remaining_seconds(self) -> float:
        """Time left in the current phase."""
        return max(0.0, self._remaining)

    @property
    def countdown_text(self) -> str:
        return f"Time: {self.remaining_seconds:.1f}s"

    def tick(self, elapsed: float) -> None:
        """Advance the routine by elapsed seconds."""
        if not self._started:
            self._started = True
            self._enter_phase()

        self._remaining -= elapsed
        while self._remaining <= 0:
            self._advance()

    def _advance(self) -> None:
        if not self._relaxing:
            self._pose_index = (self._pose_index + 1) % len(self.poses)
        self._relaxing = not self._relaxing

        carry = self._remaining
        self._enter_phase()
        self._remaining += carry

    def _enter_phase(self) -> None:
        if self._relaxing:
            self._label = RELAX_STATE
            self._remaining = self.relax_duration
        else:
            self._label = self.poses[self._pose_index]
            self._remaining = self.pose_duration
        logger.debug(f"Game state: {self._label} ({self._remaining:.1f}s)")
