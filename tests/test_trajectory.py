# Copyright 2024 Nam. All rights reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0

import pytest
import numpy as np

from quadruped_robot import Frame, Leg, LegNotFoundError, LegState, TrajectoryBounds
from quadruped_robot.motor_control.gait_scheduler import LegGait
from quadruped_robot.motor_control.trajectory import FootTrajectoryManager, SwingTrajectory

HEIGHT = 0.08
T_SWING = 0.4
T_STANCE = 0.6
STANCE_FRACTION = 0.6

INITIAL = [
    np.array([-0.2, 0.13, 0.0]),
    np.array([0.2, 0.13, 0.0]),
    np.array([-0.2, -0.13, 0.0]),
    np.array([0.2, -0.13, 0.0]),
]


def gait_map(swing_phases):
    """Gait map with the given {leg: phase} swinging and other legs in stance."""
    return tuple(
        LegGait(leg, LegState.SWING, swing_phases[leg]) if leg in swing_phases
        else LegGait(leg, LegState.STANCE, 0.1)
        for leg in Leg
    )


@pytest.fixture
def manager():
    """Create trajectory manager."""
    return FootTrajectoryManager(HEIGHT, T_SWING, T_STANCE, INITIAL)


@pytest.fixture
def bounds():
    return TrajectoryBounds(np.array([0.2, 0.13, 0.0]), np.array([0.32, 0.1, 0.0]))


def test_boundary_positions(manager, bounds):
    """Phase 0 gives the start exactly and phase 1 gives the end."""
    manager.set_trajectory(Leg.FL, bounds)

    start = manager.reference_state(Leg.FL, 0.0)
    assert np.array_equal(start.position, bounds.start)
    assert start.frame is Frame.WORLD

    liftoff = manager.reference_state(Leg.FL, STANCE_FRACTION)
    assert np.array_equal(liftoff.position, bounds.start)

    end = manager.reference_state(Leg.FL, 1.0 - 1e-9)
    np.testing.assert_allclose(end.position, bounds.end, atol=1e-6)

    assert manager.reference_state(Leg.FL, 1.0).position[2] == pytest.approx(0.0)


def test_boundary_velocity_is_zero(manager, bounds):
    """Liftoff and touchdown happen with zero foot velocity."""
    manager.set_trajectory(Leg.FL, bounds)

    np.testing.assert_allclose(manager.reference_state(Leg.FL, STANCE_FRACTION).velocity, 0.0, atol=1e-12)
    np.testing.assert_allclose(manager.reference_state(Leg.FL, 1.0).velocity, 0.0, atol=1e-9)


def test_peak_height_at_mid_swing(manager, bounds):
    """Foot reaches the swing height halfway through swing."""
    manager.set_trajectory(Leg.FL, bounds)
    mid = STANCE_FRACTION + 0.5 * (1.0 - STANCE_FRACTION)

    state = manager.reference_state(Leg.FL, mid)

    assert state.position[2] == pytest.approx(HEIGHT)
    np.testing.assert_allclose(state.position[:2], 0.5 * (bounds.start[:2] + bounds.end[:2]))


def test_horizontal_motion_is_monotonic(bounds):
    """Horizontal progress never reverses."""
    trajectory = SwingTrajectory(bounds.start, bounds.end, HEIGHT, T_SWING)
    xs = [trajectory.position(u)[0] for u in np.linspace(0.0, 1.0, 101)]

    assert all(b >= a for a, b in zip(xs, xs[1:]))


def test_velocity_matches_position_derivative(bounds):
    """Velocity is the time derivative of the sampled position."""
    trajectory = SwingTrajectory(bounds.start, bounds.end, HEIGHT, T_SWING)
    du = 1e-6

    for u in (0.1, 0.35, 0.5, 0.8):
        numeric = (trajectory.position(u + du) - trajectory.position(u - du)) / (2 * du * T_SWING)
        np.testing.assert_allclose(trajectory.velocity(u), numeric, atol=1e-5)


def test_stance_holds_initial_position(manager):
    """Before any swing, stance feet hold their initial positions."""
    states = manager.reference_states(gait_map({}))

    assert len(states) == 4
    for leg in Leg:
        np.testing.assert_array_equal(states[leg].position, INITIAL[leg])
        np.testing.assert_array_equal(states[leg].velocity, np.zeros(3))


def test_reference_states_with_new_bounds(manager, bounds):
    """New bounds create a trajectory that is sampled at the leg phase."""
    states = manager.reference_states(gait_map({Leg.FL: STANCE_FRACTION}), {Leg.FL: bounds})

    np.testing.assert_array_equal(states[Leg.FL].position, bounds.start)
    np.testing.assert_array_equal(states[Leg.RL].position, INITIAL[Leg.RL])

    states = manager.reference_states(gait_map({Leg.FL: 0.8}))
    assert states[Leg.FL].position[2] == pytest.approx(HEIGHT)


def test_stance_holds_touchdown_position(manager, bounds):
    """After a swing, the stance foot holds the touchdown point."""
    manager.reference_states(gait_map({Leg.FL: STANCE_FRACTION}), {Leg.FL: bounds})

    states = manager.reference_states(gait_map({}))

    np.testing.assert_allclose(states[Leg.FL].position, bounds.end)
    np.testing.assert_allclose(manager.held_position(Leg.FL), bounds.end)


def test_swing_without_trajectory(manager):
    """A swing leg with no trajectory signals a desynchronization."""
    with pytest.raises(LegNotFoundError):
        manager.reference_states(gait_map({Leg.RR: 0.7}))


def test_unknown_leg(manager):
    """Test that unknown legs are rejected."""
    with pytest.raises(LegNotFoundError):
        manager.reference_state("middle", 0.7)


def test_swing_path(manager, bounds):
    """Swing path samples run from liftoff to touchdown."""
    manager.set_trajectory("FL", bounds)

    path = manager.swing_path(Leg.FL)

    assert len(path) == 30
    assert path[0][0] == pytest.approx(0.0)
    assert path[-1][0] == pytest.approx(T_SWING)
    np.testing.assert_array_equal(path[0][1], bounds.start)
    np.testing.assert_allclose(path[-1][1], bounds.end)
    assert max(point[2] for _, point in path) <= HEIGHT + 1e-12


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
