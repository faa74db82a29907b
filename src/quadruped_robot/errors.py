# Copyright 2024 Nam. All rights reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0


class LocomotionError(Exception):
    """Base class for errors raised by the locomotion core."""


class ConfigurationError(LocomotionError, ValueError):
    """Raised when the robot configuration is inconsistent."""


class UnreachableError(LocomotionError):
    """Raised when an inverse kinematics target lies outside the leg workspace."""

    def __init__(self, leg, target, distance: float, message: str = None):
        self.leg = leg
        self.target = target
        self.distance = distance
        if message is None:
            message = f"Target {target} is unreachable for leg {leg} (distance={distance:.4f}m)"
        super().__init__(message)


class LegNotFoundError(LocomotionError, KeyError):
    """Raised when a leg identifier is unknown or has no state attached to it."""

    def __init__(self, leg, message: str = None):
        self.leg = leg
        if message is None:
            message = f"Leg not found: {leg!r}"
        super().__init__(message)

    def __str__(self):
        # KeyError would otherwise repr() the message
        return self.args[0]
