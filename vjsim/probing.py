"""One-parameter-at-a-time sensitivity analysis ("probing")."""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable, Sequence

import numpy as np
import pandas as pd

from vjsim.errors import InvalidParameterError, VjsimError
from vjsim.fitting import get_all_profiles
from vjsim.profile import vj_profile
from vjsim.simulation import DEFAULT_MAX_TIME, DEFAULT_TIME_STEP, GRAVITY_CONST, vj_simulate


AGGREGATE_MODES = ('raw', 'diff', 'ratio')
KEY_COLUMNS = ('probing', 'change_ratio')


def _with_baseline_ratio(change_ratios: Iterable[float]) -> list[float]:
    ratios = [float(r) for r in change_ratios]
    if not ratios:
        raise InvalidParameterError('change_ratios', ratios, 'must not be empty')
    if any(not r > 0.0 for r in ratios):
        raise InvalidParameterError('change_ratios', ratios, 'must all be > 0')
    if 1.0 not in ratios:
        pos = next((i for i, r in enumerate(ratios) if r > 1.0), len(ratios))
        ratios.insert(pos, 1.0)
    return ratios


def _evaluate(target_fn: Callable[..., dict], params: dict, echo=None) -> dict:
    try:
        outputs = dict(target_fn(**params))
    except VjsimError as e:
        if echo is not None:
            echo(f'    failed: {e}')
        return {'error': str(e)}
    outputs['error'] = None
    return outputs


def probe_parameters(
    baseline: dict,
    change_ratios: Sequence[float],
    target_fn: Callable[..., dict],
    *,
    aggregate: str = 'raw',
    parameters: Sequence[str] | None = None,
    inverse_parameters: Iterable[str] = (),
    echo=None,
) -> pd.DataFrame:
    """
    Perturb one baseline parameter at a time and collect target_fn outputs.

    For every probed parameter and change ratio, target_fn(**params) is called
    with only that parameter multiplied by the ratio (divided, for names in
    inverse_parameters, e.g. a time where shorter is the improvement). A ratio
    of 1.0 is added when missing so each parameter carries a reference row.

    aggregate:
      'raw'   outputs as returned
      'diff'  outputs minus the unperturbed baseline outputs
      'ratio' outputs divided by the unperturbed baseline outputs

    The 1.0 rows are exactly 0 ('diff') or 1 ('ratio') for every output the
    baseline defines. Other rows divide by the baseline as is, so a zero
    baseline output gives inf or NaN there.

    A failing call (VjsimError) gives NaN outputs and an 'error' message; the
    remaining combinations still run.
    """
    if aggregate not in AGGREGATE_MODES:
        raise InvalidParameterError('aggregate', aggregate, f'use one of {AGGREGATE_MODES}')

    if parameters is None:
        parameters = [
            k
            for k, v in baseline.items()
            if isinstance(v, (int, float, np.floating)) and not isinstance(v, bool)
        ]
    for name in parameters:
        if name not in baseline:
            raise InvalidParameterError('parameters', name, 'not a baseline parameter')

    inverse = set(inverse_parameters)
    ratios = _with_baseline_ratio(change_ratios)

    if echo is not None:
        echo('Probing baseline')
    baseline_out = _evaluate(target_fn, baseline, echo)

    records: list[dict] = []
    for name in parameters:
        for ratio in ratios:
            if ratio == 1.0:
                outputs = baseline_out
            else:
                params = dict(baseline)
                if name in inverse:
                    params[name] = baseline[name] / ratio
                else:
                    params[name] = baseline[name] * ratio
                if echo is not None:
                    echo(f'Probing {name} x {ratio:g}: {params[name]:g}')
                outputs = _evaluate(target_fn, params, echo)
            records.append({'probing': name, 'change_ratio': ratio, **outputs})

    table = pd.DataFrame.from_records(records)
    value_columns = [
        c
        for c in table.columns
        if c not in KEY_COLUMNS and c != 'error' and pd.api.types.is_numeric_dtype(table[c])
    ]

    if aggregate != 'raw':
        reference = pd.Series(
            {c: baseline_out.get(c, math.nan) for c in value_columns}, dtype=float
        )
        if aggregate == 'diff':
            table[value_columns] = table[value_columns].sub(reference, axis=1)
        else:
            table[value_columns] = table[value_columns].div(reference, axis=1)
        # Control rows stay exact where the baseline output is 0 or inf.
        defined = [c for c in value_columns if not math.isnan(reference[c])]
        if defined:
            control = table['change_ratio'] == 1.0
            table.loc[control, defined] = 0.0 if aggregate == 'diff' else 1.0

    columns = [*KEY_COLUMNS, *(c for c in table.columns if c not in KEY_COLUMNS and c != 'error')]
    if 'error' in table.columns:
        columns.append('error')
    return table[columns]


def jump_probe_target(
    *,
    gravity_const: float = GRAVITY_CONST,
    time_step: float = DEFAULT_TIME_STEP,
    max_time: float = DEFAULT_MAX_TIME,
) -> Callable[..., dict]:
    """Target for probe_parameters(): one jump, summary fields as outputs."""

    def target(**params) -> dict:
        result = vj_simulate(
            **params, gravity_const=gravity_const, time_step=time_step, max_time=max_time
        )
        return result.summary.as_dict()

    return target


def profile_probe_target(
    external_load: Sequence[float],
    *,
    poly_degree: int = 1,
    gravity_const: float = GRAVITY_CONST,
    time_step: float = DEFAULT_TIME_STEP,
    max_time: float = DEFAULT_MAX_TIME,
) -> Callable[..., dict]:
    """Target for probe_parameters(): load profile, flattened fitted profiles as outputs."""
    loads = [float(x) for x in external_load]

    def target(**params) -> dict:
        table = vj_profile(
            external_load=loads,
            **params,
            gravity_const=gravity_const,
            time_step=time_step,
            max_time=max_time,
        )
        return get_all_profiles(table, poly_degree).as_dict()

    return target


def _jump_baseline(
    mass, push_off_distance, max_force, max_velocity, decline_rate, peak_location,
    time_to_max_activation,
) -> dict:
    return {
        'mass': mass,
        'push_off_distance': push_off_distance,
        'max_force': max_force,
        'max_velocity': max_velocity,
        'decline_rate': decline_rate,
        'peak_location': peak_location,
        'time_to_max_activation': time_to_max_activation,
    }


def probe_vj_simulate(
    mass: float = 75.0,
    push_off_distance: float = 0.4,
    max_force: float = 3000.0,
    max_velocity: float = 4.0,
    decline_rate: float = 1.05,
    peak_location: float = -0.06,
    time_to_max_activation: float = 0.3,
    *,
    change_ratio: Sequence[float] = (0.9, 1.0, 1.1),
    aggregate: str = 'raw',
    parameters: Sequence[str] | None = None,
    inverse_parameters: Iterable[str] = (),
    gravity_const: float = GRAVITY_CONST,
    time_step: float = DEFAULT_TIME_STEP,
    max_time: float = DEFAULT_MAX_TIME,
    echo=None,
) -> pd.DataFrame:
    """Probe single-jump summaries around a baseline Force Generator and body."""
    baseline = _jump_baseline(
        mass, push_off_distance, max_force, max_velocity, decline_rate, peak_location,
        time_to_max_activation,
    )
    return probe_parameters(
        baseline,
        change_ratio,
        jump_probe_target(gravity_const=gravity_const, time_step=time_step, max_time=max_time),
        aggregate=aggregate,
        parameters=parameters,
        inverse_parameters=inverse_parameters,
        echo=echo,
    )


def probe_vj_profile(
    mass: float = 75.0,
    external_load: Sequence[float] = (0.0, 20.0, 40.0, 60.0, 80.0),
    push_off_distance: float = 0.4,
    max_force: float = 3000.0,
    max_velocity: float = 4.0,
    decline_rate: float = 1.05,
    peak_location: float = -0.06,
    time_to_max_activation: float = 0.3,
    *,
    change_ratio: Sequence[float] = (0.9, 1.0, 1.1),
    aggregate: str = 'raw',
    parameters: Sequence[str] | None = None,
    inverse_parameters: Iterable[str] = (),
    poly_degree: int = 1,
    gravity_const: float = GRAVITY_CONST,
    time_step: float = DEFAULT_TIME_STEP,
    max_time: float = DEFAULT_MAX_TIME,
    echo=None,
) -> pd.DataFrame:
    """Probe fitted load-profile parameters around a baseline Force Generator and body."""
    baseline = _jump_baseline(
        mass, push_off_distance, max_force, max_velocity, decline_rate, peak_location,
        time_to_max_activation,
    )
    target = profile_probe_target(
        external_load,
        poly_degree=poly_degree,
        gravity_const=gravity_const,
        time_step=time_step,
        max_time=max_time,
    )
    return probe_parameters(
        baseline,
        change_ratio,
        target,
        aggregate=aggregate,
        parameters=parameters,
        inverse_parameters=inverse_parameters,
        echo=echo,
    )


def get_probe_effects(
    probe_table: pd.DataFrame,
    column: str = 'height',
    change_ratio: float = 1.1,
) -> pd.DataFrame:
    """
    Compare marginal effects of the probed parameters on one output.

    probe_table must be a 'raw' probe result. The effect of a parameter is its
    output at change_ratio minus its output at 1.0; every ordered pair of
    parameters is reported with the difference and ratio of their effects.
    """
    if column not in probe_table.columns:
        raise InvalidParameterError('column', column, 'not in probe table')

    effects: dict[str, float] = {}
    for name, group in probe_table.groupby('probing', sort=False):
        ratios = group['change_ratio'].to_numpy(dtype=float)
        at_ratio = group.loc[np.isclose(ratios, change_ratio), column]
        at_base = group.loc[ratios == 1.0, column]
        if at_ratio.empty or at_base.empty:
            raise InvalidParameterError(
                'change_ratio', change_ratio, f'no probe rows for {name!r} at this ratio'
            )
        effects[name] = float(at_ratio.iloc[0]) - float(at_base.iloc[0])

    records = []
    for name, effect in effects.items():
        for other, other_effect in effects.items():
            if other == name:
                continue
            records.append(
                {
                    'parameter': name,
                    'compared_to': other,
                    'effect': effect,
                    'compared_effect': other_effect,
                    'effect_diff': effect - other_effect,
                    'effect_ratio': effect / other_effect if other_effect != 0.0 else math.nan,
                }
            )
    return pd.DataFrame.from_records(
        records,
        columns=['parameter', 'compared_to', 'effect', 'compared_effect', 'effect_diff', 'effect_ratio'],
    )
