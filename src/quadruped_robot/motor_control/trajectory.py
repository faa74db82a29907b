# Copyright 2024 Nam. All rights reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0

import logging
from typing import List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from ..errors import ConfigurationError, LegNotFoundError
from ..legs import LEGS, NUM_LEGS, Frame, FootState, Leg, LegState, TrajectoryBounds, to_leg
from .gait_scheduler import GaitMap

logger = logging.getLogger(__name__)

# Samples per swing path for visualization
PATH_STEPS = 30


def _blend(u: float) -> Tuple[float, float]:
    """Cubic smooth step and its derivative, zero slope at both ends."""
    return 3 * u**2 - 2 * u**3, 6 * u * (1 - u)


class SwingTrajectory:
    """
    Swing foot path between two footholds.

    Horizontal motion follows a smooth step from start to end. Vertical
    motion adds a single cosine arch peaking at the swing height at mid swing.
    Position and velocity are continuous at liftoff and touchdown, where the
    velocity is zero.
    """

    def __init__(self, start, end, height: float, duration: float):
        """
        Args:
            start: Liftoff position, world frame
            end: Touchdown position, world frame
            height: Peak lift above the start/end blend (meters)
            duration: Swing duration (seconds)
        """
        self.start = np.array(start, dtype=float)
        self.end = np.array(end, dtype=float)
        self.height = height
        self.duration = duration

    @property
    def bounds(self) -> TrajectoryBounds:
        return TrajectoryBounds(self.start.copy(), self.end.copy())

    def position(self, u: float) -> np.ndarray:
        """Foot position at swing progress u in [0, 1]."""
        u = min(max(u, 0.0), 1.0)
        s, _ = _blend(u)

        position = (1.0 - s) * self.start + s * self.end
        position[2] += 0.5 * self.height * (1.0 - np.cos(2.0 * np.pi * u))
        return position

    def velocity(self, u: float) -> np.ndarray:
        """Foot velocity (m/s) at swing progress u in [0, 1]."""
        u = min(max(u, 0.0), 1.0)
        _, ds = _blend(u)

        velocity = ds * (self.end - self.start)
        velocity[2] += np.pi * self.height * np.sin(2.0 * np.pi * u)
        return velocity / self.duration

    def state(self, u: float) -> FootState:
        return FootState(position=self.position(u), velocity=self.velocity(u), frame=Frame.WORLD)


class FootTrajectoryManager:
    """
    Keeps one swing trajectory per leg and produces reference foot states.

    All positions are in the world frame.
    """

    def __init__(
        self,
        height: float,
        swing_duration: float,
        stance_duration: float,
        initial_positions: Sequence[np.ndarray],
    ):
        """
        Initialize trajectory manager.

        Args:
            height: Peak swing height (meters)
            swing_duration: Swing time (seconds)
            stance_duration: Stance time (seconds)
            initial_positions: Nominal foot positions [RL, FL, RR, FR], world frame
        """
        if swing_duration <= 0.0 or stance_duration <= 0.0:
            raise ConfigurationError(
                f"Gait durations must be positive: "
                f"t_stance={stance_duration}, t_swing={swing_duration}"
            )
        if len(initial_positions) != NUM_LEGS:
            raise ConfigurationError(
                f"Expected {NUM_LEGS} initial foot positions, got {len(initial_positions)}"
            )

        self.height = height
        self.swing_duration = swing_duration
        self.stance_duration = stance_duration
        self.stance_fraction = stance_duration / (stance_duration + swing_duration)

        self._initial = [np.array(p, dtype=float) for p in initial_positions]
        self._trajectories: List[Optional[SwingTrajectory]] = [None] * NUM_LEGS

        logger.info(
            f"Foot trajectory manager initialized: "
            f"height={height}m, t_swing={swing_duration}s, t_stance={stance_duration}s"
        )

    def swing_progress(self, phase: float) -> float:
        """Map a gait phase to swing progress, 0 at liftoff and 1 at touchdown."""
        if phase <= self.stance_fraction:
            return 0.0
        return min((phase - self.stance_fraction) / (1.0 - self.stance_fraction), 1.0)

    def trajectory(self, leg: Union[Leg, str]) -> SwingTrajectory:
        leg = to_leg(leg)
        trajectory = self._trajectories[leg]
        if trajectory is None:
            raise LegNotFoundError(leg, f"No swing trajectory stored for leg {leg.name}")
        return trajectory

    def held_position(self, leg: Union[Leg, str]) -> np.ndarray:
        """Position a stance foot holds: last touchdown point, or the initial position."""
        leg = to_leg(leg)
        trajectory = self._trajectories[leg]
        if trajectory is None:
            return self._initial[leg].copy()
        return trajectory.end.copy()

    def set_trajectory(self, leg: Union[Leg, str], bounds: TrajectoryBounds):
        """Build and store a new swing trajectory for a leg."""
        leg = to_leg(leg)
        self._trajectories[leg] = SwingTrajectory(
            bounds.start, bounds.end, self.height, self.swing_duration
        )
        logger.debug(f"New swing trajectory for {leg.name}: {bounds.start} -> {bounds.end}")

    def reference_state(self, leg: Union[Leg, str], phase: float) -> FootState:
        """
        Sample one leg's swing trajectory at a gait phase.

        Phases inside the stance portion map to the liftoff point.

        Args:
            leg: Leg identifier
            phase: Gait phase in [0, 1]

        Returns:
            World frame foot state

        Raises:
            LegNotFoundError: if the leg has no trajectory
        """
        return self.trajectory(leg).state(self.swing_progress(phase))

    def reference_states(
        self,
        gait_map: GaitMap,
        bounds_map: Optional[Mapping[Leg, TrajectoryBounds]] = None,
    ) -> Tuple[FootState, ...]:
        """
        Compute the reference foot state of every leg.

        Legs present in bounds_map just lifted off and get a new trajectory
        before sampling. Stance legs hold their position.

        Args:
            gait_map: Gait map for this cycle
            bounds_map: Optional {leg: TrajectoryBounds} for legs entering swing

        Returns:
            Tuple of world frame FootState indexed by leg ordinal

        Raises:
            LegNotFoundError: if a swing leg has no trajectory
        """
        if bounds_map:
            for leg, bounds in bounds_map.items():
                self.set_trajectory(leg, bounds)

        states = []
        for leg in LEGS:
            leg_gait = gait_map[leg]
            if leg_gait.state is LegState.SWING:
                states.append(self.reference_state(leg, leg_gait.phase))
            else:
                states.append(FootState(
                    position=self.held_position(leg),
                    velocity=np.zeros(3),
                    frame=Frame.WORLD,
                ))

        return tuple(states)

    def swing_path(self, leg: Union[Leg, str], steps: int = PATH_STEPS) -> List[Tuple[float, np.ndarray]]:
        """
        Sample a leg's whole swing for visualization.

        Args:
            leg: Leg identifier
            steps: Number of samples

        Returns:
            List of (seconds since liftoff, world frame position)
        """
        trajectory = self.trajectory(leg)
        if steps < 2:
            raise ValueError(f"Swing path needs at least 2 samples, got {steps}")

        path = []
        for i in range(steps):
            u = i / (steps - 1)
            path.append((u * self.swing_duration, trajectory.position(u)))
        return path
