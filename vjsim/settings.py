"""Config loading for the CLI (config.json at the repo root, no in-code defaults).

Policy:
- Every key listed in validate_config() must be present in the file.
- Missing or malformed keys terminate with a clear error naming the key.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any


REPO_ROOT = Path(__file__).parent.parent
DEFAULT_CONFIG_PATH = REPO_ROOT / 'config.json'

PROBE_TARGETS = ('jump', 'profile')


def resolve_path(p: str) -> Path:
    path = Path(p)
    return path if path.is_absolute() else (REPO_ROOT / path)


def load_json(path: Path) -> dict:
    return json.loads(path.read_text(encoding='utf-8'))


def _require_path(cfg: dict, keys: list[str]) -> Any:
    cur: Any = cfg
    prefix: list[str] = []
    for k in keys:
        prefix.append(k)
        if not isinstance(cur, dict) or k not in cur:
            raise KeyError(f'Missing required config key: {".".join(prefix)}')
        cur = cur[k]
    return cur


def req_str(cfg: dict, keys: list[str]) -> str:
    v = _require_path(cfg, keys)
    if not isinstance(v, str) or not v.strip():
        raise ValueError(f'Config key {".".join(keys)} must be a non-empty string.')
    return v


def req_float(cfg: dict, keys: list[str]) -> float:
    v = _require_path(cfg, keys)
    if isinstance(v, bool):
        raise ValueError(f'Config key {".".join(keys)} must be a float-like value.')
    try:
        return float(v)
    except (TypeError, ValueError) as e:
        raise ValueError(f'Config key {".".join(keys)} must be a float-like value.') from e


def req_int(cfg: dict, keys: list[str]) -> int:
    v = _require_path(cfg, keys)
    if isinstance(v, bool):
        raise ValueError(f'Config key {".".join(keys)} must be an int-like value.')
    try:
        return int(v)
    except (TypeError, ValueError) as e:
        raise ValueError(f'Config key {".".join(keys)} must be an int-like value.') from e


def req_float_list(cfg: dict, keys: list[str]) -> list[float]:
    v = _require_path(cfg, keys)
    if not isinstance(v, list) or not v:
        raise ValueError(f'Config key {".".join(keys)} must be a non-empty list of numbers.')
    try:
        return [float(x) for x in v]
    except (TypeError, ValueError) as e:
        raise ValueError(f'Config key {".".join(keys)} must be a non-empty list of numbers.') from e


def read_config(path: Path | None = None) -> dict:
    cfg = load_json(path if path is not None else DEFAULT_CONFIG_PATH)
    validate_config(cfg)
    return cfg


def validate_config(cfg: dict) -> None:
    # Existence/type checks (no defaults).
    req_str(cfg, ['output_dir'])

    req_float(cfg, ['simulation', 'gravity_const'])
    req_float(cfg, ['simulation', 'time_step'])
    req_float(cfg, ['simulation', 'max_time'])

    req_float(cfg, ['body', 'mass'])
    req_float(cfg, ['body', 'push_off_distance'])

    for k in ('max_force', 'max_velocity', 'decline_rate', 'peak_location', 'time_to_max_activation'):
        req_float(cfg, ['generator', k])

    req_float_list(cfg, ['profile', 'external_load_ratios'])
    req_int(cfg, ['profile', 'poly_degree'])

    target = req_str(cfg, ['probe', 'target'])
    if target not in PROBE_TARGETS:
        raise ValueError(f'Config key probe.target must be one of {PROBE_TARGETS}, got {target!r}.')
    req_float_list(cfg, ['probe', 'change_ratios'])
    req_str(cfg, ['probe', 'aggregate'])
