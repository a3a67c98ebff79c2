from __future__ import annotations

import copy
import json

import pytest

from simulate import _apply_env_overrides
from vjsim.env import env_float, env_float_list, env_str
from vjsim.settings import (
    DEFAULT_CONFIG_PATH,
    REPO_ROOT,
    load_json,
    read_config,
    req_float,
    req_float_list,
    req_int,
    req_str,
    resolve_path,
    validate_config,
)


@pytest.fixture
def config() -> dict:
    return load_json(DEFAULT_CONFIG_PATH)


def test_default_config_is_valid():
    cfg = read_config()
    assert req_float(cfg, ['body', 'mass']) == 75.0
    assert req_float_list(cfg, ['profile', 'external_load_ratios'])[0] == 0.0


def test_missing_key_names_full_path(config):
    del config['generator']['decline_rate']
    with pytest.raises(KeyError, match='generator.decline_rate'):
        validate_config(config)


@pytest.mark.parametrize(
    'keys, value',
    [
        (['simulation', 'time_step'], 'fast'),
        (['body', 'mass'], True),
        (['profile', 'poly_degree'], None),
        (['profile', 'external_load_ratios'], []),
        (['probe', 'target'], 'sprint'),
        (['output_dir'], '  '),
    ],
)
def test_malformed_values(config, keys, value):
    node = config
    for k in keys[:-1]:
        node = node[k]
    node[keys[-1]] = value
    with pytest.raises(ValueError):
        validate_config(config)


def test_typed_accessors(config):
    assert req_str(config, ['probe', 'aggregate']) == 'ratio'
    assert req_int(config, ['profile', 'poly_degree']) == 1
    config['profile']['poly_degree'] = '2'
    assert req_int(config, ['profile', 'poly_degree']) == 2


def test_read_config_from_path(tmp_path, config):
    path = tmp_path / 'cfg.json'
    config['body']['mass'] = 90.0
    path.write_text(json.dumps(config), encoding='utf-8')
    assert read_config(path)['body']['mass'] == 90.0


def test_resolve_path(tmp_path):
    assert resolve_path('output') == REPO_ROOT / 'output'
    assert resolve_path(str(tmp_path)) == tmp_path


def test_env_helpers(monkeypatch):
    monkeypatch.setenv('VJSIM_TEST_STR', '  ')
    monkeypatch.setenv('VJSIM_TEST_FLOAT', '0.002')
    monkeypatch.setenv('VJSIM_TEST_LIST', '0, 0.5 1')
    assert env_str('VJSIM_TEST_STR') is None
    assert env_str('VJSIM_TEST_UNSET') is None
    assert env_float('VJSIM_TEST_FLOAT') == 0.002
    assert env_float_list('VJSIM_TEST_LIST') == [0.0, 0.5, 1.0]

    monkeypatch.setenv('VJSIM_TEST_FLOAT', 'abc')
    with pytest.raises(ValueError, match='VJSIM_TEST_FLOAT'):
        env_float('VJSIM_TEST_FLOAT')


def test_env_overrides(monkeypatch, config):
    original = copy.deepcopy(config)
    monkeypatch.delenv('VJSIM_OUTPUT_DIR', raising=False)
    monkeypatch.setenv('VJSIM_TIME_STEP', '0.005')
    monkeypatch.setenv('VJSIM_EXTERNAL_LOAD_RATIOS', '0,0.5')
    out = _apply_env_overrides(config)
    assert out['simulation']['time_step'] == 0.005
    assert out['profile']['external_load_ratios'] == [0.0, 0.5]
    assert out['output_dir'] == original['output_dir']
