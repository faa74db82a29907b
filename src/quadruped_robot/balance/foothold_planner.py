# Copyright 2024 Nam. All rights reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0

import logging
from typing import Dict

import numpy as np

from ..legs import LEGS, Leg, LegState
from ..motor_control.gait_scheduler import GaitMap

logger = logging.getLogger(__name__)

FootholdMap = Dict[Leg, np.ndarray]


class FootholdPlanner:
    """
    Plans where a leg lands at the end of its swing.

    Implements the Raibert heuristic:
    - Hip position under the current body pose, projected to the ground
    - Velocity feed-forward over half the stance
    - Feedback on the velocity tracking error
    - Tangential offset for the desired turn rate
    """

    def __init__(
        self,
        kinematics,
        stance_fraction: float,
        feedback_gain: float = 0.1,
        liftoff_window: float = 0.05,
        ground_height: float = 0.0,
    ):
        """
        Initialize foothold planner.

        Args:
            kinematics: QuadrupedKinematics providing the hip offsets
            stance_fraction: Phase at which a leg lifts off
            feedback_gain: Gain on the velocity error (seconds)
            liftoff_window: Phase window after liftoff in which a leg is planned
            ground_height: World height footholds are projected to (meters)
        """
        self.kinematics = kinematics
        self.stance_fraction = stance_fraction
        self.feedback_gain = feedback_gain
        self.liftoff_window = liftoff_window
        self.ground_height = ground_height

        logger.info(
            f"Foothold planner initialized: "
            f"gain={feedback_gain}, window={liftoff_window}, ground={ground_height}m"
        )

    def just_lifted_off(self, state: LegState, phase: float) -> bool:
        """True if a leg is in the first sample window of its swing."""
        return (
            state is LegState.SWING
            and 0.0 <= phase - self.stance_fraction < self.liftoff_window
        )

    def positions(
        self,
        stance_duration: float,
        rotation: np.ndarray,
        position: np.ndarray,
        velocity: np.ndarray,
        desired_velocity: np.ndarray,
        desired_angular_velocity: np.ndarray,
        gait_map: GaitMap,
    ) -> FootholdMap:
        """
        Compute landing positions for legs that just entered swing.

        Args:
            stance_duration: Stance time (seconds)
            rotation: Body rotation matrix R_wb
            position: Body position, world frame
            velocity: Body linear velocity, world frame
            desired_velocity: Desired linear velocity, world frame
            desired_angular_velocity: Desired angular velocity, world frame
            gait_map: Gait map for this cycle

        Returns:
            {leg: foothold} in the world frame, empty if no leg lifted off
        """
        footholds = {}
        for leg in LEGS:
            leg_gait = gait_map[leg]
            if not self.just_lifted_off(leg_gait.state, leg_gait.phase):
                continue

            footholds[leg] = self.foothold(
                leg,
                stance_duration,
                rotation,
                position,
                velocity,
                desired_velocity,
                desired_angular_velocity,
            )

        return footholds

    def foothold(
        self,
        leg: Leg,
        stance_duration: float,
        rotation: np.ndarray,
        position: np.ndarray,
        velocity: np.ndarray,
        desired_velocity: np.ndarray,
        desired_angular_velocity: np.ndarray,
    ) -> np.ndarray:
        """Landing position of one leg, world frame."""
        rotation = np.asarray(rotation, dtype=float)
        velocity = np.asarray(velocity, dtype=float)
        desired_velocity = np.asarray(desired_velocity, dtype=float)

        hip_world = rotation @ self.kinematics.hip_offset(leg)
        half_stance = 0.5 * stance_duration

        foothold = hip_world + np.asarray(position, dtype=float)
        foothold += half_stance * velocity
        foothold += self.feedback_gain * (velocity - desired_velocity)
        foothold += half_stance * np.cross(np.asarray(desired_angular_velocity, dtype=float), hip_world)

        # Horizontal terms only, land on the ground
        foothold[2] = self.ground_height
        return foothold
