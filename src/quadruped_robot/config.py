# Copyright 2024 Nam. All rights reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence, Tuple

from .errors import ConfigurationError
from .legs import JOINTS_PER_LEG, LEGS, NUM_JOINTS, NUM_LEGS, Leg, to_leg

logger = logging.getLogger(__name__)

Vector3 = Tuple[float, float, float]

# Reference robot dimensions (meters)
BASE_TO_HIP_X = 0.196
BASE_TO_HIP_Y = 0.050
BASE_TO_HIP_Z = 0.0
HIP_LINK = 0.077
THIGH_LINK = 0.211
CALF_LINK = 0.230


def default_hip_offsets() -> Tuple[Vector3, ...]:
    """Body origin to hip translation for RL, FL, RR, FR."""
    return (
        (-BASE_TO_HIP_X, BASE_TO_HIP_Y, BASE_TO_HIP_Z),
        (BASE_TO_HIP_X, BASE_TO_HIP_Y, BASE_TO_HIP_Z),
        (-BASE_TO_HIP_X, -BASE_TO_HIP_Y, BASE_TO_HIP_Z),
        (BASE_TO_HIP_X, -BASE_TO_HIP_Y, BASE_TO_HIP_Z),
    )


def default_link_lengths() -> Tuple[Vector3, ...]:
    """Signed link lengths for RL, FL, RR, FR. The sign of l1 mirrors left and right."""
    left = (HIP_LINK, -THIGH_LINK, -CALF_LINK)
    right = (-HIP_LINK, -THIGH_LINK, -CALF_LINK)
    return (left, left, right, right)


def default_joint_names() -> Tuple[str, ...]:
    return tuple(
        f"{leg.name}_{joint}_joint"
        for leg in LEGS
        for joint in ("hip", "thigh", "calf")
    )


def default_init_joint_positions() -> Tuple[float, ...]:
    return (0.0, 0.67, -1.3) * NUM_LEGS


@dataclass(frozen=True)
class LegGeometry:
    """Immutable kinematic description of one leg."""

    hip_offset: Vector3
    """Translation from the body origin to the hip, body frame (meters)"""

    links: Vector3
    """Signed link lengths (l1, l2, l3)"""


@dataclass(kw_only=True)
class QuadrupedConfig:
    """Configuration for the quadruped locomotion core."""

    # Robot Structure
    leg_names: Tuple[str, ...] = tuple(leg.name for leg in LEGS)
    """Leg names in joint vector order, must be RL, FL, RR, FR"""

    num_joints: int = NUM_JOINTS
    """Number of actuated joints"""

    joint_names: Tuple[str, ...] = field(default_factory=default_joint_names)
    """Joint names, three per leg in leg order"""

    init_joint_positions: Tuple[float, ...] = field(default_factory=default_init_joint_positions)
    """Initial joint vector (radians)"""

    # Kinematics
    hip_offsets: Tuple[Vector3, ...] = field(default_factory=default_hip_offsets)
    """Per-leg body to hip translation (meters)"""

    link_lengths: Tuple[Vector3, ...] = field(default_factory=default_link_lengths)
    """Per-leg signed link lengths (meters)"""

    knee_sign: float = -1.0
    """Sign of the knee angle returned by inverse kinematics"""

    # Gait Parameters
    stance_duration: float = 1.0
    """Time a foot spends on the ground per gait cycle (seconds)"""

    swing_duration: float = 1.0
    """Time a foot spends in the air per gait cycle (seconds)"""

    swing_height: float = 0.08
    """Peak foot lift during swing (meters)"""

    gait_offsets: Tuple[float, ...] = (0.0, 0.5, 0.5, 0.0)
    """Per-leg phase offsets in [0, 1), default is a trot"""

    liftoff_window: float = 0.05
    """Phase window after liftoff in which a swing leg gets a new foothold"""

    # Foothold Parameters
    feedback_gain: float = 0.1
    """Gain on the velocity tracking error in the foothold heuristic"""

    ground_height: Optional[float] = None
    """World height of the ground, defaults to the initial mean foot height"""

    # Initial Body State
    body_position: Vector3 = (0.0, 0.0, 0.0)
    """Initial body position in the world frame (meters)"""

    body_orientation: Tuple[float, float, float, float] = (0.0, 0.0, 0.0, 1.0)
    """Initial body orientation quaternion (x, y, z, w)"""

    def __post_init__(self):
        self._validate()
        logger.debug(
            f"Configuration loaded: "
            f"t_stance={self.stance_duration}s, t_swing={self.swing_duration}s, "
            f"offsets={self.gait_offsets}"
        )

    def _validate(self):
        expected_legs = tuple(leg.name for leg in LEGS)
        if tuple(self.leg_names) != expected_legs:
            raise ConfigurationError(
                f"Invalid leg configuration. Expected legs {expected_legs}, got {tuple(self.leg_names)}"
            )

        if (
            self.num_joints != NUM_JOINTS
            or len(self.joint_names) != self.num_joints
            or len(self.init_joint_positions) != self.num_joints
        ):
            raise ConfigurationError(
                "Invalid joint configuration. Num(joints) != Num(joint names) "
                "!= Num(joint initial positions): "
                f"Num(joints)={self.num_joints}, "
                f"Num(joint names)={len(self.joint_names)}, "
                f"Num(joint initial positions)={len(self.init_joint_positions)}"
            )

        _check_vectors("hip_offsets", self.hip_offsets)
        _check_vectors("link_lengths", self.link_lengths)
        for leg, links in zip(LEGS, self.link_lengths):
            if links[1] == 0.0 or links[2] == 0.0:
                raise ConfigurationError(f"Leg {leg.name} has a zero length thigh or calf link")

        if self.knee_sign not in (-1.0, 1.0):
            raise ConfigurationError(f"knee_sign must be -1 or 1, got {self.knee_sign}")

        if self.stance_duration <= 0.0 or self.swing_duration <= 0.0:
            raise ConfigurationError(
                f"Stance and swing durations must be positive: "
                f"t_stance={self.stance_duration}, t_swing={self.swing_duration}"
            )

        if len(self.gait_offsets) != NUM_LEGS:
            raise ConfigurationError(
                f"Expected {NUM_LEGS} gait offsets, got {len(self.gait_offsets)}"
            )
        if any(not 0.0 <= offset < 1.0 for offset in self.gait_offsets):
            raise ConfigurationError(f"Gait offsets must lie in [0, 1): {self.gait_offsets}")

        if self.swing_height < 0.0:
            raise ConfigurationError(f"Swing height must be non-negative, got {self.swing_height}")

        if not 0.0 < self.liftoff_window < 1.0:
            raise ConfigurationError(f"Liftoff window must lie in (0, 1), got {self.liftoff_window}")

        if len(self.body_position) != 3 or len(self.body_orientation) != 4:
            raise ConfigurationError("Body position needs 3 values and orientation needs 4")

    @property
    def stance_fraction(self) -> float:
        return self.stance_duration / (self.stance_duration + self.swing_duration)

    def geometry(self, leg: Leg) -> LegGeometry:
        leg = to_leg(leg)
        return LegGeometry(
            hip_offset=tuple(self.hip_offsets[leg]),
            links=tuple(self.link_lengths[leg]),
        )

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> "QuadrupedConfig":
        """
        Build a configuration from a parameter store snapshot.

        Keys follow the parameter server layout, for example "gait/t_stance".
        Both nested mappings and flat "section/name" keys are accepted.
        Missing keys keep their defaults.

        Args:
            params: Parameter mapping

        Returns:
            Validated QuadrupedConfig

        Raises:
            ConfigurationError: if the parameters are inconsistent
        """
        kwargs = {}
        for key, name, convert in _PARAM_KEYS:
            value = _lookup(params, key)
            if value is not None:
                kwargs[name] = convert(value)

        return cls(**kwargs)


def _check_vectors(name: str, vectors: Sequence[Sequence[float]]):
    if len(vectors) != NUM_LEGS or any(len(v) != JOINTS_PER_LEG for v in vectors):
        raise ConfigurationError(
            f"{name} must hold {NUM_LEGS} vectors of {JOINTS_PER_LEG} values, got {vectors}"
        )


def _lookup(params: Mapping[str, Any], key: str):
    if key in params:
        return params[key]
    node = params
    for part in key.split("/"):
        if not isinstance(node, Mapping) or part not in node:
            return None
        node = node[part]
    return node


def _tuple(value):
    return tuple(value)


def _vectors(value):
    return tuple(tuple(float(v) for v in vector) for vector in value)


_PARAM_KEYS = (
    ("legs/leg_names", "leg_names", _tuple),
    ("joints/num_joints", "num_joints", int),
    ("joints/joint_names", "joint_names", _tuple),
    ("joints/init_joint_positions", "init_joint_positions", _tuple),
    ("kinematics/hip_offsets", "hip_offsets", _vectors),
    ("kinematics/link_lengths", "link_lengths", _vectors),
    ("kinematics/knee_sign", "knee_sign", float),
    ("gait/t_stance", "stance_duration", float),
    ("gait/t_swing", "swing_duration", float),
    ("gait/height", "swing_height", float),
    ("gait/gait_offset_phases", "gait_offsets", _tuple),
    ("gait/liftoff_window", "liftoff_window", float),
    ("foothold/feedback_gain", "feedback_gain", float),
    ("foothold/ground_height", "ground_height", float),
    ("robot_state/position", "body_position", _tuple),
    ("robot_state/orientation", "body_orientation", _tuple),
)
