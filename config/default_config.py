#!/usr/bin/env python

# Copyright 2024 Nam. All rights reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0

"""
Parameter store snapshot for the quadruped locomotion core.

Layout matches QuadrupedConfig.from_params().
"""

LEG_NAMES = ["RL", "FL", "RR", "FR"]

JOINT_NAMES = [
    f"{leg}_{joint}_joint"
    for leg in LEG_NAMES
    for joint in ("hip", "thigh", "calf")
]

# Standing pose, foot roughly below the hip
INIT_JOINT_POSITIONS = [0.0, 0.67, -1.3] * 4

# Leg dimensions (meters)
BASE_TO_HIP = (0.196, 0.050, 0.0)
HIP_LINK = 0.077
THIGH_LINK = 0.211
CALF_LINK = 0.230

# Gait parameters
T_STANCE = 0.6  # seconds
T_SWING = 0.4  # seconds
SWING_HEIGHT = 0.08  # meters
TROT_OFFSETS = [0.0, 0.5, 0.5, 0.0]  # [RL FL RR FR]

DEFAULT_PARAMS = {
    "legs": {
        "leg_names": LEG_NAMES,
    },
    "joints": {
        "num_joints": 12,
        "joint_names": JOINT_NAMES,
        "init_joint_positions": INIT_JOINT_POSITIONS,
    },
    "kinematics": {
        "hip_offsets": [
            [-BASE_TO_HIP[0], BASE_TO_HIP[1], BASE_TO_HIP[2]],
            [BASE_TO_HIP[0], BASE_TO_HIP[1], BASE_TO_HIP[2]],
            [-BASE_TO_HIP[0], -BASE_TO_HIP[1], BASE_TO_HIP[2]],
            [BASE_TO_HIP[0], -BASE_TO_HIP[1], BASE_TO_HIP[2]],
        ],
        "link_lengths": [
            [HIP_LINK, -THIGH_LINK, -CALF_LINK],
            [HIP_LINK, -THIGH_LINK, -CALF_LINK],
            [-HIP_LINK, -THIGH_LINK, -CALF_LINK],
            [-HIP_LINK, -THIGH_LINK, -CALF_LINK],
        ],
        "knee_sign": -1.0,
    },
    "gait": {
        "t_stance": T_STANCE,
        "t_swing": T_SWING,
        "height": SWING_HEIGHT,
        "gait_offset_phases": TROT_OFFSETS,
    },
    "foothold": {
        "feedback_gain": 0.1,
    },
    "robot_state": {
        "position": [0.0, 0.0, 0.35],
        "orientation": [0.0, 0.0, 0.0, 1.0],
    },
}
