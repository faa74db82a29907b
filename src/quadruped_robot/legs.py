# Copyright 2024 Nam. All rights reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0

"""
Shared data model for the locomotion core.

Leg order is RL, FL, RR, FR. It fixes the joint vector layout
(three joints per leg) and the gait phase offset layout.
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import NamedTuple, Union

import numpy as np

from .errors import LegNotFoundError

NUM_LEGS = 4
JOINTS_PER_LEG = 3
NUM_JOINTS = NUM_LEGS * JOINTS_PER_LEG


class Leg(IntEnum):
    """Leg identifiers. The value is the index into every per-leg table."""

    RL = 0  # rear left
    FL = 1  # front left
    RR = 2  # rear right
    FR = 3  # front right

    @property
    def is_left(self) -> bool:
        return self in (Leg.RL, Leg.FL)

    @property
    def joint_slice(self) -> slice:
        """Slice of this leg's joint triple within the 12 joint vector."""
        start = self.value * JOINTS_PER_LEG
        return slice(start, start + JOINTS_PER_LEG)


LEGS = tuple(Leg)


def to_leg(leg: Union[Leg, str]) -> Leg:
    """
    Resolve a leg identifier.

    Args:
        leg: Leg member or its name ("RL", "FL", "RR", "FR")

    Returns:
        Leg member

    Raises:
        LegNotFoundError: if the identifier does not name a leg
    """
    if isinstance(leg, Leg):
        return leg
    if isinstance(leg, str):
        try:
            return Leg[leg.upper()]
        except KeyError:
            raise LegNotFoundError(leg) from None
    raise LegNotFoundError(leg)


class Frame(Enum):
    """Reference frame a vector is expressed in."""

    BODY = "body"
    WORLD = "world"


class LegState(Enum):
    """Gait state of a leg."""

    STANCE = "stance"
    SWING = "swing"


def quaternion_to_rotation(x: float, y: float, z: float, w: float) -> np.ndarray:
    """Rotation matrix (body -> world) from a unit quaternion."""
    q = np.array([w, x, y, z], dtype=float)
    norm = np.linalg.norm(q)
    if norm == 0.0:
        raise ValueError("Quaternion has zero norm")
    w, x, y, z = q / norm
    return np.array([
        [1 - 2 * (y * y + z * z), 2 * (x * y - z * w), 2 * (x * z + y * w)],
        [2 * (x * y + z * w), 1 - 2 * (x * x + z * z), 2 * (y * z - x * w)],
        [2 * (x * z - y * w), 2 * (y * z + x * w), 1 - 2 * (x * x + y * y)],
    ])


@dataclass(frozen=True)
class BodyPose:
    """Body pose in the world frame."""

    rotation: np.ndarray = field(default_factory=lambda: np.eye(3))
    """Rotation matrix R_wb mapping body vectors into the world frame"""

    position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    """Body origin in the world frame (meters)"""

    def __post_init__(self):
        rotation = np.asarray(self.rotation, dtype=float)
        position = np.asarray(self.position, dtype=float)
        if rotation.shape != (3, 3):
            raise ValueError(f"Rotation must be 3x3, got {rotation.shape}")
        if position.shape != (3,):
            raise ValueError(f"Position must have 3 components, got {position.shape}")
        object.__setattr__(self, "rotation", rotation)
        object.__setattr__(self, "position", position)

    @classmethod
    def from_quaternion(cls, position, orientation) -> "BodyPose":
        """Build a pose from a position and an (x, y, z, w) quaternion."""
        return cls(rotation=quaternion_to_rotation(*orientation), position=position)

    def to_world(self, point: np.ndarray) -> np.ndarray:
        return self.rotation @ np.asarray(point, dtype=float) + self.position

    def to_body(self, point: np.ndarray) -> np.ndarray:
        return self.rotation.T @ (np.asarray(point, dtype=float) - self.position)


@dataclass(frozen=True)
class FootState:
    """Reference foot position and velocity, tagged with their frame."""

    position: np.ndarray
    velocity: np.ndarray
    frame: Frame = Frame.WORLD

    def in_frame(self, frame: Frame, pose: BodyPose) -> "FootState":
        """Express this state in another frame using the current body pose."""
        if frame is self.frame:
            return self
        if frame is Frame.BODY:
            return FootState(
                position=pose.to_body(self.position),
                velocity=pose.rotation.T @ self.velocity,
                frame=Frame.BODY,
            )
        return FootState(
            position=pose.to_world(self.position),
            velocity=pose.rotation @ self.velocity,
            frame=Frame.WORLD,
        )


class TrajectoryBounds(NamedTuple):
    """Start and end foothold (world frame) of one swing."""

    start: np.ndarray
    end: np.ndarray
