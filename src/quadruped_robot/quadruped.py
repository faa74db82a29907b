#!/usr/bin/env python

# Copyright 2024 Nam. All rights reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np

from .balance.foothold_planner import FootholdMap, FootholdPlanner
from .config import QuadrupedConfig
from .errors import UnreachableError
from .legs import LEGS, NUM_LEGS, BodyPose, FootState, Frame, Leg, LegState, TrajectoryBounds
from .motor_control.gait_scheduler import GaitMap, GaitScheduler
from .motor_control.kinematics import QuadrupedKinematics
from .motor_control.trajectory import FootTrajectoryManager

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VelocityCommand:
    """Desired body velocity and turn rate."""

    linear: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    angular: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    frame: Frame = Frame.WORLD

    @classmethod
    def from_yaw_rate(cls, vx: float, vy: float, yaw_rate: float, frame: Frame = Frame.BODY) -> "VelocityCommand":
        return cls(linear=(vx, vy, 0.0), angular=(0.0, 0.0, yaw_rate), frame=frame)

    def in_world(self, pose: BodyPose) -> Tuple[np.ndarray, np.ndarray]:
        """Linear and angular velocity expressed in the world frame."""
        linear = np.asarray(self.linear, dtype=float)
        angular = np.asarray(self.angular, dtype=float)
        if self.frame is Frame.BODY:
            return pose.rotation @ linear, pose.rotation @ angular
        return linear, angular


@dataclass(frozen=True)
class BodyState:
    """Estimated body pose and linear velocity (world frame)."""

    pose: BodyPose = field(default_factory=BodyPose)
    velocity: np.ndarray = field(default_factory=lambda: np.zeros(3))


class CommandSlot:
    """
    Single slot, last value wins handoff for velocity commands.

    Written by an external listener thread, read once at the top of each
    control cycle.
    """

    def __init__(self, initial: Optional[VelocityCommand] = None):
        self._lock = threading.Lock()
        self._command = initial if initial is not None else VelocityCommand()

    def put(self, command: VelocityCommand):
        with self._lock:
            self._command = command

    def get(self) -> VelocityCommand:
        with self._lock:
            return self._command


@dataclass
class CycleOutput:
    """Everything produced by one control cycle."""

    joint_positions: np.ndarray
    """12 joint angles (radians) in leg order"""

    gait_map: GaitMap
    footholds: FootholdMap
    foot_states: Tuple[FootState, ...]
    """World frame reference foot states indexed by leg"""

    swing_paths: Dict[Leg, List[Tuple[float, np.ndarray]]] = field(default_factory=dict)
    """Diagnostic samples of newly planned swings"""


class QuadrupedController:
    """
    Locomotion core of a quadruped robot.

    One call to step() runs a full control cycle:
    schedule -> plan footholds -> reference foot states -> inverse kinematics.
    Rate control belongs to the caller, step() never sleeps.
    """

    def __init__(
        self,
        config: QuadrupedConfig = None,
        clock: Callable[[], float] = time.monotonic,
        record_swing_paths: bool = False,
    ):
        if config is None:
            config = QuadrupedConfig()
        self.config = config
        self.record_swing_paths = record_swing_paths

        self.kinematics = QuadrupedKinematics(config)
        self.scheduler = GaitScheduler(
            config.stance_duration,
            config.swing_duration,
            config.gait_offsets,
            clock=clock,
        )

        initial_pose = BodyPose.from_quaternion(config.body_position, config.body_orientation)
        self._state = BodyState(pose=initial_pose)
        self._joint_positions = np.array(config.init_joint_positions, dtype=float)

        # Foot start positions in world frame
        feet_body = self.kinematics.forward_kinematics(self._joint_positions)
        initial_feet = [initial_pose.to_world(feet_body[:, leg]) for leg in LEGS]

        ground_height = config.ground_height
        if ground_height is None:
            ground_height = float(np.mean([p[2] for p in initial_feet]))

        self.trajectories = FootTrajectoryManager(
            config.swing_height,
            config.swing_duration,
            config.stance_duration,
            initial_feet,
        )
        self.planner = FootholdPlanner(
            self.kinematics,
            config.stance_fraction,
            feedback_gain=config.feedback_gain,
            liftoff_window=config.liftoff_window,
            ground_height=ground_height,
        )

        self.commands = CommandSlot()
        self._swinging = [False] * NUM_LEGS
        self._first_cycle = True

        logger.info(f"Quadruped controller initialized: ground_height={ground_height:.3f}m")

    @property
    def joint_positions(self) -> np.ndarray:
        """Last commanded joint vector."""
        return self._joint_positions.copy()

    def start(self):
        """Start the gait clock."""
        self.scheduler.start()
        self._swinging = [False] * NUM_LEGS
        self._first_cycle = True
        logger.info("Gait started")

    def step(
        self,
        command: Optional[VelocityCommand] = None,
        state: Optional[BodyState] = None,
    ) -> CycleOutput:
        """
        Run one control cycle.

        Args:
            command: Velocity command, defaults to the latest one in the command slot
            state: Body state estimate, defaults to the last one received

        Returns:
            CycleOutput with the joint command for this cycle
        """
        if command is None:
            command = self.commands.get()
        if state is not None:
            self._state = state
        pose = self._state.pose
        desired_velocity, desired_angular_velocity = command.in_world(pose)

        gait_map = self.scheduler.schedule()

        motion = (
            self.config.stance_duration,
            pose.rotation,
            pose.position,
            self._state.velocity,
            desired_velocity,
            desired_angular_velocity,
        )
        footholds = self.planner.positions(*motion, gait_map)

        bounds_map = self._swing_bounds(gait_map, footholds, motion)
        foot_states = self.trajectories.reference_states(gait_map, bounds_map)

        swing_paths = {}
        if self.record_swing_paths:
            swing_paths = {leg: self.trajectories.swing_path(leg) for leg in bounds_map}

        q = self._joint_positions.copy()
        for leg in LEGS:
            target = foot_states[leg].in_frame(Frame.BODY, pose).position
            try:
                q[leg.joint_slice] = self.kinematics.leg_inverse_kinematics(leg, target)
            except UnreachableError as e:
                logger.warning(f"Holding {leg.name} joints: {e}")

        self._swinging = [leg_gait.state is LegState.SWING for leg_gait in gait_map]
        self._first_cycle = False
        self._joint_positions = q

        return CycleOutput(
            joint_positions=q,
            gait_map=gait_map,
            footholds={leg: bounds.end for leg, bounds in bounds_map.items() if leg in footholds},
            foot_states=foot_states,
            swing_paths=swing_paths,
        )

    def _swing_bounds(self, gait_map: GaitMap, footholds: FootholdMap, motion: tuple) -> Dict[Leg, TrajectoryBounds]:
        """
        Trajectory bounds for legs that entered swing since the last cycle.

        A leg that lifted off between two ticks is planned here when the tick
        landed past the liftoff window. Its foothold is added to footholds.
        Only on the first cycle after start() is there no previous gait state,
        and a leg found mid swing then steps in place.
        """
        bounds_map = {}
        for leg in LEGS:
            if gait_map[leg].state is not LegState.SWING or self._swinging[leg]:
                continue

            start = self.trajectories.held_position(leg)
            if leg not in footholds and not self._first_cycle:
                footholds[leg] = self.planner.foothold(leg, *motion)
                logger.debug(f"{leg.name} lifted off between cycles, planned at phase {gait_map[leg].phase:.3f}")

            if leg in footholds:
                end = footholds[leg]
            else:
                logger.warning(
                    f"{leg.name} entered swing at phase {gait_map[leg].phase:.3f} "
                    f"without a foothold, stepping in place"
                )
                end = start
            bounds_map[leg] = TrajectoryBounds(start, end)

        return bounds_map

    def joint_state(self, q: np.ndarray = None) -> Dict[str, float]:
        """Joint positions keyed by the configured joint names."""
        if q is None:
            q = self._joint_positions
        return dict(zip(self.config.joint_names, (float(v) for v in q)))
