#!/usr/bin/env python
"""
Simple trot in simulation: runs the control cycle with a simulated clock
and a body that tracks the commanded velocity perfectly.
"""

import argparse
import logging
import sys
from pathlib import Path

import numpy as np

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
sys.path.insert(0, str(Path(__file__).parent.parent / "config"))

import test_config  # noqa: E402  sets up logging
from default_config import DEFAULT_PARAMS  # noqa: E402
from quadruped_robot import (  # noqa: E402
    BodyPose,
    BodyState,
    Frame,
    LegState,
    QuadrupedConfig,
    QuadrupedController,
    VelocityCommand,
)

logger = logging.getLogger("simple_walk")


class SimClock:
    """Clock advanced by hand, one control period per cycle."""

    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def main():
    parser = argparse.ArgumentParser(description="Run the quadruped locomotion core in simulation")
    parser.add_argument("--duration", type=float, default=3.0, help="Simulated time (s)")
    parser.add_argument("--rate", type=float, default=test_config.TEST_CONTROL_RATE, help="Control rate (Hz)")
    parser.add_argument("--vx", type=float, default=test_config.TEST_FORWARD_VELOCITY, help="Forward velocity (m/s)")
    parser.add_argument("--yaw-rate", type=float, default=0.0, help="Turn rate (rad/s)")
    args = parser.parse_args()

    config = QuadrupedConfig.from_params(DEFAULT_PARAMS)
    clock = SimClock()
    controller = QuadrupedController(config, clock=clock, record_swing_paths=True)

    command = VelocityCommand.from_yaw_rate(args.vx, 0.0, args.yaw_rate, frame=Frame.BODY)
    controller.commands.put(command)

    dt = 1.0 / args.rate
    pose = BodyPose.from_quaternion(config.body_position, config.body_orientation)
    yaw = 0.0

    controller.start()
    for _ in range(int(args.duration * args.rate)):
        linear, angular = command.in_world(pose)
        state = BodyState(pose=pose, velocity=linear)

        output = controller.step(state=state)

        for leg, path in output.swing_paths.items():
            logger.info(
                f"{leg.name} liftoff at t={clock.now:.2f}s, "
                f"landing at {np.round(path[-1][1], 3)} ({len(path)} samples)"
            )

        swing = "".join(
            leg_gait.leg.name[0] if leg_gait.state is LegState.SWING else "-"
            for leg_gait in output.gait_map
        )
        logger.debug(f"t={clock.now:.2f}s swing={swing} q={np.round(output.joint_positions, 3)}")

        # Perfect velocity tracking
        yaw += angular[2] * dt
        rotation = np.array([
            [np.cos(yaw), -np.sin(yaw), 0.0],
            [np.sin(yaw), np.cos(yaw), 0.0],
            [0.0, 0.0, 1.0],
        ])
        pose = BodyPose(rotation=rotation, position=pose.position + linear * dt)
        clock.now += dt

    logger.info(f"Final body position: {np.round(pose.position, 3)}")
    logger.info(f"Final joint state: {controller.joint_state()}")


if __name__ == "__main__":
    main()
