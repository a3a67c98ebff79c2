from __future__ import annotations

import math

import numpy as np
import pytest

from vjsim.profile import PROFILE_COLUMNS, generate_profile, get_bosco_index, vj_profile
from vjsim.simulation import LoadState, simulate_jump


def test_profile_rows_follow_load_order(generator):
    loads = [40.0, 0.0, 20.0, 20.0]
    table = generate_profile(75.0, loads, generator)
    assert list(table.columns) == list(PROFILE_COLUMNS)
    assert table['external_load'].tolist() == loads
    assert table['mass'].tolist() == [115.0, 75.0, 95.0, 95.0]
    assert (table['bodyweight'] == 75.0).all()
    # Duplicated loads are kept and identical.
    assert table.loc[2, 'height'] == table.loc[3, 'height']


def test_profile_row_matches_single_jump(generator, reference_table):
    single = simulate_jump(LoadState(75.0, 40.0, 0.4), generator).summary
    row = reference_table[reference_table['external_load'] == 40.0].iloc[0]
    assert row['height'] == pytest.approx(single.height)
    assert row['peak_GRF'] == pytest.approx(single.peak_GRF)


def test_profile_height_decreases_with_load(reference_table):
    assert np.all(np.diff(reference_table['height'].to_numpy()) < 0.0)
    assert reference_table['error'].isna().all()


def test_failed_load_does_not_stop_the_profile(generator):
    lines: list[str] = []
    table = generate_profile(75.0, [0.0, 400.0, 20.0], generator, echo=lines.append)
    assert table['error'].isna().tolist() == [True, False, True]
    assert 'initial_activation' in table.loc[1, 'error']
    assert math.isnan(table.loc[1, 'take_off_velocity'])
    assert table.loc[2, 'height'] > 0.0
    assert len(lines) == 3


def test_vj_profile_keyword_front_door(generator):
    table = vj_profile(mass=75.0, external_load=[0.0, 30.0], max_force=generator.max_force)
    assert len(table) == 2
    assert table.loc[0, 'height'] > table.loc[1, 'height']


def test_bosco_index(generator):
    bosco = get_bosco_index(75.0, generator)
    assert 0.0 < bosco.height_2BW < bosco.height_BW
    assert bosco.index == pytest.approx(bosco.height_2BW / bosco.height_BW * 100.0)
