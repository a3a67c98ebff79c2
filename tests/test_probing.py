from __future__ import annotations

import math

import pandas as pd
import pytest

from vjsim.errors import InvalidParameterError
from vjsim.probing import (
    get_probe_effects,
    probe_parameters,
    probe_vj_profile,
    probe_vj_simulate,
)


BASELINE = {'a': 1.0, 'b': 2.0}


def linear_target(a, b):
    return {'y': 2.0 * a + b}


def test_reference_ratio_is_inserted_in_order():
    table = probe_parameters(BASELINE, [0.8, 1.2], linear_target)
    assert table['probing'].tolist() == ['a', 'a', 'a', 'b', 'b', 'b']
    assert table['change_ratio'].tolist() == [0.8, 1.0, 1.2] * 2
    assert list(table.columns) == ['probing', 'change_ratio', 'y', 'error']


def test_raw_outputs_perturb_one_parameter_at_a_time():
    table = probe_parameters(BASELINE, [0.5, 1.0, 2.0], linear_target).set_index(
        ['probing', 'change_ratio']
    )
    assert table.loc[('a', 2.0), 'y'] == pytest.approx(6.0)
    assert table.loc[('b', 2.0), 'y'] == pytest.approx(6.0)
    assert table.loc[('a', 0.5), 'y'] == pytest.approx(3.0)
    assert table.loc[('a', 1.0), 'y'] == pytest.approx(4.0)


def test_aggregate_controls():
    ratio = probe_parameters(BASELINE, [0.5, 2.0], linear_target, aggregate='ratio')
    diff = probe_parameters(BASELINE, [0.5, 2.0], linear_target, aggregate='diff')
    assert (ratio.loc[ratio['change_ratio'] == 1.0, 'y'] == 1.0).all()
    assert (diff.loc[diff['change_ratio'] == 1.0, 'y'] == 0.0).all()
    a_up = (ratio['probing'] == 'a') & (ratio['change_ratio'] == 2.0)
    assert ratio.loc[a_up, 'y'].iloc[0] == pytest.approx(1.5)
    assert diff.loc[a_up, 'y'].iloc[0] == pytest.approx(2.0)


def test_inverse_parameters_divide():
    table = probe_parameters(
        BASELINE, [2.0], linear_target, parameters=['a'], inverse_parameters=['a']
    )
    assert table['probing'].unique().tolist() == ['a']
    assert table.loc[table['change_ratio'] == 2.0, 'y'].iloc[0] == pytest.approx(3.0)


def test_failing_combination_is_recorded():
    def target(a, b):
        if a > 1.5:
            raise InvalidParameterError('a', a, 'too large')
        return {'y': a + b}

    table = probe_parameters(BASELINE, [2.0], target, aggregate='ratio')
    failed = table[table['error'].notna()]
    assert failed[['probing', 'change_ratio']].values.tolist() == [['a', 2.0]]
    assert math.isnan(failed['y'].iloc[0])
    assert table['error'].isna().sum() == 3


@pytest.mark.parametrize(
    'kwargs',
    [
        {'aggregate': 'mean'},
        {'parameters': ['c']},
    ],
)
def test_invalid_probe_arguments(kwargs):
    with pytest.raises(InvalidParameterError):
        probe_parameters(BASELINE, [1.1], linear_target, **kwargs)


@pytest.mark.parametrize('ratios', [[], [0.0, 1.1], [-1.0]])
def test_invalid_change_ratios(ratios):
    with pytest.raises(InvalidParameterError):
        probe_parameters(BASELINE, ratios, linear_target)


def test_probe_vj_simulate_max_force():
    table = probe_vj_simulate(
        parameters=['max_force', 'time_to_max_activation'],
        change_ratio=[1.1],
        aggregate='ratio',
        time_step=0.002,
    )
    assert len(table) == 4
    rows = table.set_index(['probing', 'change_ratio'])
    assert rows.loc[('max_force', 1.0), 'height'] == 1.0
    assert rows.loc[('max_force', 1.1), 'height'] > 1.0
    # Slower activation wastes force at the start of push-off.
    assert rows.loc[('time_to_max_activation', 1.1), 'height'] < 1.0


def test_probe_vj_profile_outputs_fitted_profiles():
    table = probe_vj_profile(
        external_load=[0.0, 40.0, 80.0],
        parameters=['max_force'],
        change_ratio=[1.1],
        time_step=0.002,
    )
    assert 'mean_FV_F0' in table.columns
    f0 = table.set_index('change_ratio')['mean_FV_F0']
    assert f0.loc[1.1] > f0.loc[1.0]


def test_probe_effects():
    table = pd.DataFrame(
        {
            'probing': ['a', 'a', 'b', 'b'],
            'change_ratio': [1.0, 1.1, 1.0, 1.1],
            'height': [0.4, 0.44, 0.4, 0.42],
        }
    )
    effects = get_probe_effects(table, 'height', 1.1)
    assert effects[['parameter', 'compared_to']].values.tolist() == [['a', 'b'], ['b', 'a']]
    first = effects.iloc[0]
    assert first['effect'] == pytest.approx(0.04)
    assert first['effect_diff'] == pytest.approx(0.02)
    assert first['effect_ratio'] == pytest.approx(2.0)

    with pytest.raises(InvalidParameterError):
        get_probe_effects(table, 'height', 1.5)
    with pytest.raises(InvalidParameterError):
        get_probe_effects(table, 'power')


def test_control_rows_are_exact_for_zero_baseline_outputs():
    def target(a, b):
        return {'y': a - 1.0, 'z': b}

    ratio = probe_parameters(BASELINE, [2.0], target, aggregate='ratio')
    control = ratio[ratio['change_ratio'] == 1.0]
    assert (control['y'] == 1.0).all()
    assert (control['z'] == 1.0).all()
    a_up = (ratio['probing'] == 'a') & (ratio['change_ratio'] == 2.0)
    assert math.isinf(ratio.loc[a_up, 'y'].iloc[0])


def test_constant_force_rate_of_development_control():
    kwargs = dict(
        max_velocity=math.inf,
        decline_rate=0.0,
        peak_location=0.0,
        time_to_max_activation=0.0,
        parameters=['max_force'],
        change_ratio=[1.1],
        time_step=0.002,
    )
    ratio = probe_vj_simulate(aggregate='ratio', **kwargs).set_index('change_ratio')
    diff = probe_vj_simulate(aggregate='diff', **kwargs).set_index('change_ratio')
    assert ratio.loc[1.0, 'peak_RFD'] == 1.0
    assert ratio.loc[1.0, 'height'] == 1.0
    assert diff.loc[1.0, 'peak_RFD'] == 0.0
