from __future__ import annotations

import math

import numpy as np
import pytest

from vjsim.errors import InvalidParameterError
from vjsim.force_generator import (
    ForceGeneratorParams,
    get_activation,
    get_force_percentage,
    get_generator_forces,
    get_initial_activation,
    get_velocity_from_external_force,
    get_viscous_force,
)


def test_force_percentage_peaks_at_peak_location():
    assert get_force_percentage(0.34, 0.4, 1.05, -0.06) == pytest.approx(1.0)


def test_force_percentage_decays_away_from_peak():
    before = get_force_percentage(np.linspace(0.0, 0.34, 50), 0.4, 1.05, -0.06)
    after = get_force_percentage(np.linspace(0.34, 0.6, 50), 0.4, 1.05, -0.06)
    assert np.all(np.diff(before) > 0.0)
    assert np.all(np.diff(after) < 0.0)


def test_force_percentage_is_clipped_to_unit_interval():
    p = get_force_percentage(np.linspace(0.0, 0.4, 100), 0.4, 50.0, -0.2)
    assert np.all(p >= 0.0)
    assert np.all(p <= 1.0)
    assert p[0] == 0.0


def test_force_percentage_zero_decline_rate_is_constant():
    p = get_force_percentage(np.linspace(0.0, 0.4, 20), 0.4, 0.0, -0.06)
    assert np.all(p == 1.0)


def test_activation_starts_at_initial_activation():
    assert get_activation(0.0, 0.3, 0.3) == pytest.approx(0.3)


def test_activation_is_monotonic_and_bounded():
    a = get_activation(np.linspace(0.0, 0.5, 200), 0.2, 0.3)
    assert np.all(np.diff(a) >= 0.0)
    assert a[0] == pytest.approx(0.2)
    assert a[-1] == 1.0


def test_activation_zero_time_to_max_is_full():
    a = get_activation(np.array([0.0, 0.01, 1.0]), 0.25, 0.0)
    assert np.all(a == 1.0)


def test_higher_initial_activation_reaches_full_sooner():
    # Starting at 0.5 enters the ramp half way, so full activation at 0.15 s.
    assert get_activation(0.2, 0.5, 0.3) == 1.0
    assert get_activation(0.2, 0.0, 0.3) < 1.0
    assert get_activation(0.1, 0.5, 0.3) > get_activation(0.1, 0.0, 0.3)


def test_activation_rejects_out_of_range_initial_activation():
    with pytest.raises(InvalidParameterError) as exc:
        get_activation(0.0, 1.2, 0.3)
    assert exc.value.field == 'initial_activation'


def test_viscous_force_is_linear_in_velocity():
    assert get_viscous_force(2.0, 3000.0, 4.0) == pytest.approx(1500.0)
    assert get_viscous_force(0.0, 3000.0, 4.0) == 0.0


def test_viscous_force_vanishes_for_infinite_max_velocity():
    assert get_viscous_force(3.0, 3000.0, math.inf) == 0.0


def test_velocity_from_external_force():
    assert get_velocity_from_external_force(1000.0, 3000.0, 4.0) == pytest.approx(8.0 / 3.0)
    assert get_velocity_from_external_force(0.0, 3000.0, 4.0) == pytest.approx(4.0)
    assert math.isnan(get_velocity_from_external_force(3000.0, 3000.0, 4.0))


def test_initial_activation_holds_the_weight():
    weight = 75.0 * 9.81
    a0 = get_initial_activation(weight, 3000.0, 0.4, 1.05, -0.06)
    expected = weight / (3000.0 * (1.0 - 1.05 * 0.34**2))
    assert a0 == pytest.approx(expected)


def test_generator_forces_balance_weight_at_start():
    weight = 75.0 * 9.81
    gen = ForceGeneratorParams()
    a0 = get_initial_activation(weight, gen.max_force, 0.4, gen.decline_rate, gen.peak_location)
    f = get_generator_forces(
        current_time=0.0,
        current_distance=0.0,
        current_velocity=0.0,
        generator=gen,
        push_off_distance=0.4,
        initial_activation=a0,
        total_mass=75.0,
        weight=weight,
    )
    assert f.ground_reaction_force == pytest.approx(weight)
    assert f.propulsive_force == pytest.approx(0.0, abs=1e-8)
    assert f.acceleration == pytest.approx(0.0, abs=1e-9)


def test_viscous_loss_is_scaled_by_force_percentage():
    gen = ForceGeneratorParams(max_force=3000.0, max_velocity=4.0, decline_rate=10.0, peak_location=-0.2)
    f = get_generator_forces(
        current_time=1.0,
        current_distance=0.39,
        current_velocity=3.5,
        generator=gen,
        push_off_distance=0.4,
        initial_activation=0.5,
        total_mass=75.0,
        weight=75.0 * 9.81,
    )
    assert f.ground_reaction_force == pytest.approx(
        f.generated_force - f.viscous_force * f.force_percentage
    )
    assert f.ground_reaction_force >= 0.0


@pytest.mark.parametrize(
    'kwargs, field',
    [
        ({'max_force': 0.0}, 'max_force'),
        ({'max_velocity': -1.0}, 'max_velocity'),
        ({'decline_rate': -0.1}, 'decline_rate'),
        ({'time_to_max_activation': -0.1}, 'time_to_max_activation'),
    ],
)
def test_generator_params_validation(kwargs, field):
    with pytest.raises(InvalidParameterError) as exc:
        ForceGeneratorParams(**kwargs).validate()
    assert exc.value.field == field
