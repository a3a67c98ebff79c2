"""Load profiles: one simulated jump per external load."""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass

import pandas as pd

from vjsim.errors import VjsimError
from vjsim.force_generator import ForceGeneratorParams
from vjsim.simulation import (
    DEFAULT_MAX_TIME,
    DEFAULT_TIME_STEP,
    GRAVITY_CONST,
    SUMMARY_COLUMNS,
    LoadState,
    simulate_jump,
)


PROFILE_COLUMNS = ('bodyweight', 'external_load', 'mass', *SUMMARY_COLUMNS, 'error')


def generate_profile(
    bodyweight_mass: float,
    external_loads: Sequence[float],
    generator: ForceGeneratorParams,
    *,
    push_off_distance: float = 0.4,
    gravity_const: float = GRAVITY_CONST,
    time_step: float = DEFAULT_TIME_STEP,
    max_time: float = DEFAULT_MAX_TIME,
    echo=None,
) -> pd.DataFrame:
    """
    Simulate one jump per external load (kg) and collect the summaries.

    Rows follow the order of external_loads (no sorting, no de-duplication).
    A load that fails validation or never takes off gives a row with NaN
    outputs and the error message in the 'error' column.
    """
    records: list[dict] = []
    n = len(external_loads)

    for i, external_load in enumerate(external_loads):
        external_load = float(external_load)
        load = LoadState(
            bodyweight_mass=bodyweight_mass,
            external_load_mass=external_load,
            push_off_distance=push_off_distance,
            gravity_const=gravity_const,
        )
        row = {
            'bodyweight': float(bodyweight_mass),
            'external_load': external_load,
            'mass': float(bodyweight_mass) + external_load,
        }
        try:
            result = simulate_jump(load, generator, time_step=time_step, max_time=max_time)
        except VjsimError as e:
            row.update({c: math.nan for c in SUMMARY_COLUMNS})
            row['error'] = str(e)
            if echo is not None:
                echo(f'  load {i + 1}/{n} ({external_load:g} kg): {e}')
        else:
            row.update(result.summary.as_dict())
            row['error'] = None
            if echo is not None:
                echo(
                    f'  load {i + 1}/{n} ({external_load:g} kg): '
                    f'height={result.summary.height:.3f} m, '
                    f'TOV={result.summary.take_off_velocity:.3f} m/s'
                )
        records.append(row)

    return pd.DataFrame.from_records(records, columns=list(PROFILE_COLUMNS))


def vj_profile(
    mass: float = 75.0,
    external_load: Sequence[float] = (0.0, 20.0, 40.0, 60.0, 80.0),
    push_off_distance: float = 0.4,
    max_force: float = 3000.0,
    max_velocity: float = 4.0,
    decline_rate: float = 1.05,
    peak_location: float = -0.06,
    time_to_max_activation: float = 0.3,
    *,
    gravity_const: float = GRAVITY_CONST,
    time_step: float = DEFAULT_TIME_STEP,
    max_time: float = DEFAULT_MAX_TIME,
    echo=None,
) -> pd.DataFrame:
    """Keyword front door for generate_profile()."""
    generator = ForceGeneratorParams(
        max_force=max_force,
        max_velocity=max_velocity,
        decline_rate=decline_rate,
        peak_location=peak_location,
        time_to_max_activation=time_to_max_activation,
    )
    return generate_profile(
        mass,
        external_load,
        generator,
        push_off_distance=push_off_distance,
        gravity_const=gravity_const,
        time_step=time_step,
        max_time=max_time,
        echo=echo,
    )


@dataclass(frozen=True)
class BoscoIndex:
    height_BW: float
    height_2BW: float
    index: float


def get_bosco_index(
    bodyweight_mass: float,
    generator: ForceGeneratorParams,
    *,
    push_off_distance: float = 0.4,
    gravity_const: float = GRAVITY_CONST,
    time_step: float = DEFAULT_TIME_STEP,
    max_time: float = DEFAULT_MAX_TIME,
) -> BoscoIndex:
    """
    Bosco index: jump height with double bodyweight as a percentage of the
    bodyweight jump height. Errors from either jump propagate.
    """
    kwargs = dict(time_step=time_step, max_time=max_time)
    single = simulate_jump(
        LoadState(bodyweight_mass, 0.0, push_off_distance, gravity_const), generator, **kwargs
    )
    double = simulate_jump(
        LoadState(bodyweight_mass, bodyweight_mass, push_off_distance, gravity_const),
        generator,
        **kwargs,
    )
    h_bw = single.summary.height
    h_2bw = double.summary.height
    return BoscoIndex(height_BW=h_bw, height_2BW=h_2bw, index=h_2bw / h_bw * 100.0)
