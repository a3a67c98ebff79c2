#!/usr/bin/env -S uv run

from __future__ import annotations

import argparse
from pathlib import Path

from vjsim.commands import run_probe, run_profile, run_simulate_jump
from vjsim.env import env_float, env_float_list, env_str
from vjsim.errors import VjsimError
from vjsim.settings import DEFAULT_CONFIG_PATH, read_config, resolve_path


COMMANDS = {
    'jump': run_simulate_jump,
    'profile': run_profile,
    'probe': run_probe,
}


def _apply_env_overrides(config: dict) -> dict:
    time_step = env_float('VJSIM_TIME_STEP')
    if time_step is not None:
        config['simulation']['time_step'] = time_step

    load_ratios = env_float_list('VJSIM_EXTERNAL_LOAD_RATIOS')
    if load_ratios is not None:
        config['profile']['external_load_ratios'] = load_ratios

    output_dir = env_str('VJSIM_OUTPUT_DIR')
    if output_dir is not None:
        config['output_dir'] = output_dir
    return config


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description='Vertical jump simulator')
    parser.add_argument('command', choices=sorted(COMMANDS), help='What to run.')
    parser.add_argument('--config', type=Path, default=None, help='Config JSON (default: config.json, or $VJSIM_CONFIG).')
    parser.add_argument('--out', type=Path, default=None, help='Output directory (default: <output_dir>/<command>).')
    parser.add_argument('--time-step', type=float, default=None, help='Integration time step in seconds.')
    args = parser.parse_args(argv)

    config_path = args.config
    if config_path is None:
        env_config = env_str('VJSIM_CONFIG')
        config_path = Path(env_config) if env_config else DEFAULT_CONFIG_PATH

    config = _apply_env_overrides(read_config(config_path))
    if args.time_step is not None:
        config['simulation']['time_step'] = args.time_step

    out_dir = args.out if args.out is not None else resolve_path(config['output_dir']) / args.command

    try:
        COMMANDS[args.command](config, out_dir)
    except VjsimError as e:
        raise SystemExit(f'Error: {e}') from e

    print(f'\nResults written to {out_dir}/')


if __name__ == '__main__':
    main()
