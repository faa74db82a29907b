# Motor control module

from .kinematics import QuadrupedKinematics
from .gait_scheduler import GaitScheduler
from .trajectory import FootTrajectoryManager

__all__ = ["QuadrupedKinematics", "GaitScheduler", "FootTrajectoryManager"]
