# Copyright 2024 Nam. All rights reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0

"""Locomotion control core for a four-legged walking robot."""

from .config import QuadrupedConfig
from .errors import ConfigurationError, LegNotFoundError, LocomotionError, UnreachableError
from .legs import BodyPose, FootState, Frame, Leg, LegState, TrajectoryBounds
from .quadruped import BodyState, CommandSlot, CycleOutput, QuadrupedController, VelocityCommand

__version__ = "0.1.0"

__all__ = [
    "BodyPose",
    "BodyState",
    "CommandSlot",
    "ConfigurationError",
    "CycleOutput",
    "FootState",
    "Frame",
    "Leg",
    "LegNotFoundError",
    "LegState",
    "LocomotionError",
    "QuadrupedConfig",
    "QuadrupedController",
    "TrajectoryBounds",
    "UnreachableError",
    "VelocityCommand",
]
