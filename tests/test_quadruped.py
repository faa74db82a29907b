# Copyright 2024 Nam. All rights reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0

import logging
import threading

import pytest
import numpy as np

from quadruped_robot import (
    BodyPose,
    BodyState,
    CommandSlot,
    Frame,
    Leg,
    LegState,
    QuadrupedConfig,
    QuadrupedController,
    VelocityCommand,
)

DT = 0.005


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def config():
    """Trot with 0.6s stance and 0.4s swing."""
    return QuadrupedConfig(
        stance_duration=0.6,
        swing_duration=0.4,
        gait_offsets=(0.0, 0.5, 0.5, 0.0),
    )


@pytest.fixture
def controller(config, clock):
    """Create a started controller."""
    controller = QuadrupedController(config, clock=clock, record_swing_paths=True)
    controller.start()
    return controller


def run_period(controller, clock, cycles=200):
    """Step the controller through one gait period between grid points."""
    outputs = []
    for i in range(cycles):
        clock.now = (i + 0.5) * DT
        outputs.append(controller.step())
    return outputs


def test_first_cycle_holds_initial_joints(controller, config, clock):
    """All legs start in stance on the initial footholds."""
    clock.now = 0.001
    output = controller.step()

    assert output.joint_positions.shape == (12,)
    assert all(leg_gait.state is LegState.STANCE for leg_gait in output.gait_map)
    np.testing.assert_allclose(output.joint_positions, config.init_joint_positions, atol=1e-9)
    assert output.footholds == {}


def test_trot_one_period(controller, clock):
    """Each leg swings exactly once per period, diagonal pairs together."""
    outputs = run_period(controller, clock)

    for leg in Leg:
        states = [output.gait_map[leg].state for output in outputs]
        transitions = sum(states[i] is not states[i - 1] for i in range(len(states)))
        assert transitions == 2

        planned = [i for i, output in enumerate(outputs) if leg in output.footholds]
        assert len(planned) == 1

    for output in outputs:
        assert output.gait_map[Leg.RL].state is output.gait_map[Leg.FR].state
        assert output.gait_map[Leg.FL].state is output.gait_map[Leg.RR].state

    liftoff = {
        leg: next(i for i, output in enumerate(outputs) if leg in output.footholds)
        for leg in Leg
    }
    assert liftoff[Leg.RL] == liftoff[Leg.FR]
    assert liftoff[Leg.FL] == liftoff[Leg.RR]
    assert liftoff[Leg.RL] - liftoff[Leg.FL] == 100


def test_joint_vector_stays_valid(controller, clock):
    """The joint command is always 12 finite values."""
    for output in run_period(controller, clock):
        assert output.joint_positions.shape == (12,)
        assert np.all(np.isfinite(output.joint_positions))


def test_swing_lands_on_planned_foothold(controller, clock):
    """A leg that finished its swing stands on its foothold."""
    outputs = run_period(controller, clock)
    foothold = next(output.footholds[Leg.FL] for output in outputs if Leg.FL in output.footholds)

    np.testing.assert_allclose(controller.trajectories.held_position(Leg.FL), foothold)
    # FL touched down at t=0.5 and is in stance at the end of the period
    assert outputs[-1].gait_map[Leg.FL].state is LegState.STANCE
    np.testing.assert_allclose(outputs[-1].foot_states[Leg.FL].position, foothold)


def test_standing_foothold_under_hip(controller, clock):
    """With zero velocity a foothold sits under the hip on the ground."""
    outputs = run_period(controller, clock)
    foothold = next(output.footholds[Leg.FR] for output in outputs if Leg.FR in output.footholds)

    hip = controller.kinematics.hip_offset(Leg.FR)
    ground = controller.planner.ground_height
    np.testing.assert_allclose(foothold, [hip[0], hip[1], ground])


def test_swing_paths_recorded(controller, clock):
    """Diagnostic swing paths are produced for newly planned legs."""
    outputs = run_period(controller, clock)

    for output in outputs:
        assert set(output.swing_paths) == set(output.footholds)
        for path in output.swing_paths.values():
            assert len(path) == 30


def test_body_frame_command(controller, clock):
    """Body frame commands are rotated into the world frame."""
    yaw = np.pi / 2
    rotation = np.array([
        [np.cos(yaw), -np.sin(yaw), 0.0],
        [np.sin(yaw), np.cos(yaw), 0.0],
        [0.0, 0.0, 1.0],
    ])
    pose = BodyPose(rotation=rotation, position=np.zeros(3))

    linear, angular = VelocityCommand.from_yaw_rate(0.3, 0.0, 0.5).in_world(pose)

    np.testing.assert_allclose(linear, [0.0, 0.3, 0.0], atol=1e-12)
    np.testing.assert_allclose(angular, [0.0, 0.0, 0.5])


def test_command_slot_feeds_planner(controller, clock):
    """Commands from the slot reach the foothold planner."""
    controller.commands.put(VelocityCommand(linear=(0.5, 0.0, 0.0), frame=Frame.WORLD))
    outputs = run_period(controller, clock)

    foothold = next(output.footholds[Leg.FL] for output in outputs if Leg.FL in output.footholds)
    hip = controller.kinematics.hip_offset(Leg.FL)
    # Body at rest while 0.5 m/s is requested: feedback pulls the foot back
    assert foothold[0] == pytest.approx(hip[0] - 0.1 * 0.5)


def test_body_state_feeds_planner(controller, clock):
    """Body velocity from the state estimate moves the footholds forward."""
    state = BodyState(velocity=np.array([0.4, 0.0, 0.0]))
    command = VelocityCommand(linear=(0.4, 0.0, 0.0))

    footholds = {}
    for i in range(200):
        clock.now = (i + 0.5) * DT
        footholds.update(controller.step(command=command, state=state).footholds)

    hip = controller.kinematics.hip_offset(Leg.RR)
    assert footholds[Leg.RR][0] == pytest.approx(hip[0] + 0.3 * 0.4)


def test_unreachable_swing_holds_joints(clock, caplog):
    """Unreachable targets are logged and the leg keeps its last command."""
    config = QuadrupedConfig(
        stance_duration=0.6,
        swing_duration=0.4,
        gait_offsets=(0.0, 0.5, 0.5, 0.0),
        swing_height=1.0,
    )
    controller = QuadrupedController(config, clock=clock)
    controller.start()

    with caplog.at_level(logging.WARNING):
        outputs = run_period(controller, clock, cycles=60)

    assert "Holding" in caplog.text
    # FL lifts off at t=0.1 and is mid swing at t=0.3
    mid_swing = outputs[59]
    assert mid_swing.gait_map[Leg.FL].state is LegState.SWING
    np.testing.assert_array_equal(
        mid_swing.joint_positions[Leg.FL.joint_slice],
        outputs[58].joint_positions[Leg.FL.joint_slice],
    )


def test_missed_liftoff_window_steps_in_place(controller, clock, caplog):
    """A leg first seen mid swing keeps its foot where it was."""
    clock.now = 0.3
    with caplog.at_level(logging.WARNING):
        output = controller.step()

    assert output.gait_map[Leg.FL].state is LegState.SWING
    assert output.footholds == {}
    assert "without a foothold" in caplog.text
    np.testing.assert_allclose(
        controller.trajectories.held_position(Leg.FL)[:2],
        output.foot_states[Leg.FL].position[:2],
    )


def test_low_rate_plans_every_swing(controller, clock, caplog):
    """At 10 Hz every liftoff still gets a foothold, one per leg per period."""
    state = BodyState(velocity=np.array([0.3, 0.0, 0.0]))
    command = VelocityCommand(linear=(0.3, 0.0, 0.0))

    planned = {leg: [] for leg in Leg}
    with caplog.at_level(logging.WARNING):
        for i in range(30):
            clock.now = (i + 0.5) * 0.1
            output = controller.step(command=command, state=state)
            for leg, foothold in output.footholds.items():
                planned[leg].append(foothold)

    assert "without a foothold" not in caplog.text
    for leg in Leg:
        assert len(planned[leg]) == 3

    # RL lifts off at t=0.6 and is first seen at phase 0.65, past the window
    hip = controller.kinematics.hip_offset(Leg.RL)
    np.testing.assert_allclose(
        planned[Leg.RL][0],
        [hip[0] + 0.3 * 0.3, hip[1], controller.planner.ground_height],
    )
    np.testing.assert_allclose(controller.trajectories.held_position(Leg.RL), planned[Leg.RL][-1])


def test_step_before_start(config, clock):
    controller = QuadrupedController(config, clock=clock)

    with pytest.raises(RuntimeError):
        controller.step()


def test_joint_state_names(controller, config):
    """Joint state maps configured names to positions."""
    joint_state = controller.joint_state()

    assert list(joint_state) == list(config.joint_names)
    assert joint_state["FR_calf_joint"] == pytest.approx(config.init_joint_positions[11])


def test_command_slot_last_value_wins():
    """The slot keeps only the latest command written from another thread."""
    slot = CommandSlot()
    commands = [VelocityCommand(linear=(0.1 * i, 0.0, 0.0)) for i in range(10)]

    def listener():
        for command in commands:
            slot.put(command)

    thread = threading.Thread(target=listener)
    thread.start()
    thread.join()

    assert slot.get() is commands[-1]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
