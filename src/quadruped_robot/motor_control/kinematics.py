# Copyright 2024 Nam. All rights reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0

import logging
from typing import Mapping, Union

import numpy as np

from ..errors import LegNotFoundError, UnreachableError
from ..legs import LEGS, NUM_JOINTS, NUM_LEGS, Leg, to_leg

logger = logging.getLogger(__name__)


def _wrap_angle(angle: float) -> float:
    """Wrap an angle to (-pi, pi]."""
    return float(np.arctan2(np.sin(angle), np.cos(angle)))


def leg_forward_kinematics(offset, links, joints) -> np.ndarray:
    """
    Foot position relative to the body for one leg.

    The first joint rotates about the fore-aft (x) axis, the other two form
    a planar arm in the pitch plane.

    Args:
        offset: Body to hip translation (x, y, z)
        links: Signed link lengths (l1, l2, l3)
        joints: Joint angles (t1, t2, t3) in radians

    Returns:
        Foot position (x, y, z) in the body frame
    """
    l1, l2, l3 = links
    t1, t2, t3 = joints

    return np.array([
        l2 * np.sin(t2) + l3 * np.sin(t2 + t3) + offset[0],
        l1 * np.cos(t1) - l2 * np.sin(t1) * np.cos(t2) - l3 * np.sin(t1) * np.cos(t2 + t3) + offset[1],
        l1 * np.sin(t1) + l2 * np.cos(t1) * np.cos(t2) + l3 * np.cos(t1) * np.cos(t2 + t3) + offset[2],
    ])


def leg_jacobian(links, joints) -> np.ndarray:
    """
    Analytic Jacobian d(x, y, z)/d(t1, t2, t3) of leg_forward_kinematics.

    Args:
        links: Signed link lengths (l1, l2, l3)
        joints: Joint angles (t1, t2, t3) in radians

    Returns:
        3x3 Jacobian matrix
    """
    l1, l2, l3 = links
    t1, t2, t3 = joints

    # Reach in the pitch plane and its derivative w.r.t. t2
    reach = l2 * np.cos(t2) + l3 * np.cos(t2 + t3)
    reach_dt2 = -(l2 * np.sin(t2) + l3 * np.sin(t2 + t3))

    j11 = 0.0
    j12 = reach
    j13 = l3 * np.cos(t2 + t3)

    j21 = -l1 * np.sin(t1) - np.cos(t1) * reach
    j22 = -np.sin(t1) * reach_dt2
    j23 = l3 * np.sin(t1) * np.sin(t2 + t3)

    j31 = l1 * np.cos(t1) - np.sin(t1) * reach
    j32 = np.cos(t1) * reach_dt2
    j33 = -l3 * np.sin(t2 + t3) * np.cos(t1)

    return np.array([
        [j11, j12, j13],
        [j21, j22, j23],
        [j31, j32, j33],
    ])


class QuadrupedKinematics:
    """
    Kinematics solver for a quadruped with 3 DOF per leg.

    Leg structure:
    - Hip (abduction): rotates about the body x axis, link l1
    - Thigh: hip pitch, link l2
    - Calf: knee pitch, link l3

    Joint vectors follow leg order RL, FL, RR, FR with three joints per leg.
    """

    def __init__(self, config):
        """
        Initialize kinematics solver.

        Args:
            config: QuadrupedConfig object
        """
        self.config = config
        self.knee_sign = config.knee_sign

        # Per-leg tables indexed by leg ordinal
        self.hip_offsets = tuple(np.asarray(config.hip_offsets[leg], dtype=float) for leg in LEGS)
        self.links = tuple(np.asarray(config.link_lengths[leg], dtype=float) for leg in LEGS)

        logger.info(
            f"Kinematics initialized: "
            f"links={[tuple(l) for l in config.link_lengths]}, knee_sign={self.knee_sign}"
        )

    def hip_offset(self, leg: Union[Leg, str]) -> np.ndarray:
        return self.hip_offsets[to_leg(leg)]

    def leg_links(self, leg: Union[Leg, str]) -> np.ndarray:
        return self.links[to_leg(leg)]

    def leg_forward_kinematics(self, leg: Union[Leg, str], joints) -> np.ndarray:
        """Foot position in the body frame for a named leg."""
        leg = to_leg(leg)
        return leg_forward_kinematics(self.hip_offsets[leg], self.links[leg], joints)

    def forward_kinematics(self, q: np.ndarray) -> np.ndarray:
        """
        Compute foot positions from the joint vector (forward kinematics).

        Args:
            q: Joint vector of 12 angles (radians)

        Returns:
            3x4 array, column i is the body frame foot position of leg i
        """
        q = _as_vector(q, NUM_JOINTS, "joint")

        positions = np.zeros((3, NUM_LEGS))
        for leg in LEGS:
            positions[:, leg] = leg_forward_kinematics(
                self.hip_offsets[leg], self.links[leg], q[leg.joint_slice]
            )

        return positions

    def leg_inverse_kinematics(self, leg: Union[Leg, str], position) -> np.ndarray:
        """
        Compute joint angles placing a leg's foot at a body frame position.

        The (y, z) foot coordinates relative to the hip are the pair
        (l1, r) rotated by t1, where r is the signed reach of the pitch plane
        arm. The reach takes the sign of l2 and the knee angle takes the sign
        of knee_sign, which picks one solution branch for every call.

        Args:
            leg: Leg identifier
            position: Desired foot position (x, y, z) in the body frame

        Returns:
            Joint angles (t1, t2, t3) in radians

        Raises:
            UnreachableError: if the target lies outside the leg workspace
        """
        leg = to_leg(leg)
        l1, l2, l3 = self.links[leg]
        x, y, z = np.asarray(position, dtype=float) - self.hip_offsets[leg]

        # Remove the abduction rotation
        reach_sq = y**2 + z**2 - l1**2
        if reach_sq < 0.0:
            raise UnreachableError(
                leg, tuple(position), float(np.sqrt(y**2 + z**2)),
                f"Target {tuple(position)} is inside the hip offset circle of leg {leg.name}",
            )
        reach = np.copysign(np.sqrt(reach_sq), l2)
        t1 = _wrap_angle(np.arctan2(z, y) - np.arctan2(reach, l1))

        # Planar two link arm, check reach before the law of cosines
        distance = np.sqrt(x**2 + reach**2)
        max_reach = abs(l2) + abs(l3)
        min_reach = abs(abs(l2) - abs(l3))
        if distance > max_reach or distance < min_reach or distance == 0.0:
            raise UnreachableError(leg, tuple(position), float(distance))

        cos_knee = (distance**2 - l2**2 - l3**2) / (2 * l2 * l3)
        t3 = self.knee_sign * np.arccos(np.clip(cos_knee, -1.0, 1.0))

        t2 = _wrap_angle(
            np.arctan2(x, reach) - np.arctan2(l3 * np.sin(t3), l2 + l3 * np.cos(t3))
        )

        return np.array([t1, t2, t3])

    def inverse_kinematics(self, foot_positions: Mapping[Leg, np.ndarray]) -> np.ndarray:
        """
        Compute the joint vector from desired body frame foot positions.

        Args:
            foot_positions: Mapping {leg: (x, y, z)} covering all four legs

        Returns:
            Joint vector of 12 angles (radians)
        """
        targets = {to_leg(leg): position for leg, position in foot_positions.items()}

        q = np.zeros(NUM_JOINTS)
        for leg in LEGS:
            if leg not in targets:
                raise LegNotFoundError(leg, f"No foot position given for leg {leg.name}")
            q[leg.joint_slice] = self.leg_inverse_kinematics(leg, targets[leg])
        return q

    def compute_leg_jacobian(self, leg: Union[Leg, str], joints) -> np.ndarray:
        """3x3 Jacobian of one leg at the given joint triple."""
        return leg_jacobian(self.links[to_leg(leg)], joints)

    def jacobian_transpose_control(self, q: np.ndarray, f: np.ndarray) -> np.ndarray:
        """
        Map foot forces to joint torques (tau = J^T f per leg).

        Args:
            q: Joint vector of 12 angles (radians)
            f: Foot force vector of 12 values (3 per leg)

        Returns:
            Joint torque vector of 12 values
        """
        q = _as_vector(q, NUM_JOINTS, "joint")
        f = _as_vector(f, NUM_JOINTS, "force")

        tau = np.zeros(NUM_JOINTS)
        for leg in LEGS:
            jac = leg_jacobian(self.links[leg], q[leg.joint_slice])
            tau[leg.joint_slice] = jac.T @ f[leg.joint_slice]

        return tau


def _as_vector(values, size: int, name: str) -> np.ndarray:
    vector = np.asarray(values, dtype=float).reshape(-1)
    if vector.shape[0] != size:
        raise ValueError(f"Expected {size} {name} values, got {vector.shape[0]}")
    return vector
