"""Mutable state of one experiment run."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

logger = logging.getLogger(__name__)


class RunPhase(Enum):
    IDLE = "idle"
    WINDING = "winding"            # cord still wound, weight driving the wheel
    DETACHED = "detached"          # cord off the axle, weight falling away
    DECELERATING = "decelerating"  # weight gone, wheel coasting down
    FINISHED = "finished"


@dataclass
class RunState:
    """Counters and results of the current run.

    Owned by ExperimentSession; mutated only by the session and the
    AnimationStateMachine; replaced by a fresh instance on reset.
    """

    phase: RunPhase = RunPhase.IDLE
    rotation_index: int = 0
    sub_rotation: int = 0
    elapsed_lap_seconds: float | None = None
    observed_moment_of_inertia: float | None = None
    angular_acceleration: float = 0.0
    final_rotation: bool = False
    history: list[RunPhase] = field(default_factory=lambda: [RunPhase.IDLE])

    def transition(self, phase: RunPhase) -> None:
        if phase is self.phase:
            return
        logger.info("Run phase %s -> %s", self.phase.value, phase.value)
        self.phase = phase
        self.history.append(phase)

    @property
    def running(self) -> bool:
        return self.phase not in (RunPhase.IDLE, RunPhase.FINISHED)

    @property
    def total_rotations(self) -> float:
        """Counter reading: full rotations plus hundredths."""
        return self.rotation_index + self.sub_rotation / 100
