# Copyright 2024 Nam. All rights reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0

import logging
import time
from typing import Callable, Dict, NamedTuple, Optional, Sequence, Tuple

from ..errors import ConfigurationError
from ..legs import LEGS, NUM_LEGS, Leg, LegState

logger = logging.getLogger(__name__)

# Phase offsets [RL, FL, RR, FR]
GAIT_OFFSETS: Dict[str, Tuple[float, ...]] = {
    "trot": (0.0, 0.5, 0.5, 0.0),
    "pace": (0.0, 0.0, 0.5, 0.5),
    "bound": (0.0, 0.5, 0.0, 0.5),
    "pronk": (0.0, 0.0, 0.0, 0.0),
}


class LegGait(NamedTuple):
    """Gait state of one leg for the current cycle."""

    leg: Leg
    state: LegState
    phase: float


# Indexed by leg ordinal, rebuilt every cycle
GaitMap = Tuple[LegGait, ...]


class GaitScheduler:
    """
    Free running phase clock for all four legs.

    Each leg cycles through:
    - Stance phase: phase in [0, stance_fraction), foot on ground
    - Swing phase: phase in [stance_fraction, 1), foot in air

    The gait pattern is entirely given by the per-leg phase offsets.
    """

    def __init__(
        self,
        stance_duration: float,
        swing_duration: float,
        offsets: Sequence[float],
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize gait scheduler.

        Args:
            stance_duration: Stance time per cycle (seconds)
            swing_duration: Swing time per cycle (seconds)
            offsets: Phase offsets [RL, FL, RR, FR], each in [0, 1)
            clock: Monotonic time source (seconds)
        """
        if stance_duration <= 0.0 or swing_duration <= 0.0:
            raise ConfigurationError(
                f"Gait durations must be positive: "
                f"t_stance={stance_duration}, t_swing={swing_duration}"
            )
        if len(offsets) != NUM_LEGS or any(not 0.0 <= o < 1.0 for o in offsets):
            raise ConfigurationError(f"Expected {NUM_LEGS} phase offsets in [0, 1), got {offsets}")

        self.stance_duration = stance_duration
        self.swing_duration = swing_duration
        self.offsets = tuple(float(o) for o in offsets)
        self.clock = clock
        self._origin: Optional[float] = None

        logger.info(
            f"Gait scheduler initialized: "
            f"period={self.period}s, stance_fraction={self.stance_fraction:.3f}, "
            f"offsets={self.offsets}"
        )

    @property
    def period(self) -> float:
        return self.stance_duration + self.swing_duration

    @property
    def stance_fraction(self) -> float:
        return self.stance_duration / self.period

    @property
    def started(self) -> bool:
        return self._origin is not None

    def start(self):
        """Record the time origin of the gait."""
        self._origin = self.clock()
        logger.debug(f"Gait started at t={self._origin:.3f}s")

    def elapsed(self) -> float:
        """Seconds since start()."""
        if self._origin is None:
            raise RuntimeError("Gait scheduler has not been started")
        return self.clock() - self._origin

    def schedule(self) -> GaitMap:
        """Gait map for the current instant."""
        return self.schedule_at(self.elapsed())

    def schedule_at(self, elapsed: float) -> GaitMap:
        """
        Compute the gait state of every leg at a given elapsed time.

        Args:
            elapsed: Seconds since the gait origin

        Returns:
            Tuple of LegGait indexed by leg ordinal
        """
        raw_phase = (elapsed % self.period) / self.period
        return tuple(self._leg_gait(leg, raw_phase) for leg in LEGS)

    def _leg_gait(self, leg: Leg, raw_phase: float) -> LegGait:
        phase = (raw_phase + self.offsets[leg]) % 1.0
        # Float rounding can land exactly on 1.0
        if phase >= 1.0:
            phase = 0.0

        state = LegState.STANCE if phase < self.stance_fraction else LegState.SWING
        return LegGait(leg, state, phase)

