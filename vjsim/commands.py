"""Jump, profile and probe commands behind simulate.py."""

from __future__ import annotations

import math
from pathlib import Path

import pandas as pd

from vjsim.errors import VjsimError
from vjsim.fitting import get_all_profiles, get_load_peak_force_profile, get_simple_profile
from vjsim.force_generator import ForceGeneratorParams
from vjsim.output import write_summary_json, write_table_csv, write_trace_csv
from vjsim.probing import probe_vj_profile, probe_vj_simulate
from vjsim.profile import generate_profile, get_bosco_index
from vjsim.samozino import get_all_samozino_profiles, optimal_FV_profile
from vjsim.settings import req_float, req_float_list, req_int, req_str
from vjsim.simulation import JumpResult, LoadState, simulate_jump


def _generator_from_config(config: dict) -> ForceGeneratorParams:
    return ForceGeneratorParams(
        max_force=req_float(config, ['generator', 'max_force']),
        max_velocity=req_float(config, ['generator', 'max_velocity']),
        decline_rate=req_float(config, ['generator', 'decline_rate']),
        peak_location=req_float(config, ['generator', 'peak_location']),
        time_to_max_activation=req_float(config, ['generator', 'time_to_max_activation']),
    )


def _simulation_kwargs(config: dict) -> dict:
    return {
        'gravity_const': req_float(config, ['simulation', 'gravity_const']),
        'time_step': req_float(config, ['simulation', 'time_step']),
        'max_time': req_float(config, ['simulation', 'max_time']),
    }


def _echo_generator(generator: ForceGeneratorParams, mass: float, push_off_distance: float, echo) -> None:
    echo(
        f'Force Generator: max_force={generator.max_force:g} N, '
        f'max_velocity={generator.max_velocity:g} m/s, '
        f'decline_rate={generator.decline_rate:g}, '
        f'peak_location={generator.peak_location:g} m, '
        f'time_to_max_activation={generator.time_to_max_activation:g} s'
    )
    echo(f'Body: mass={mass:g} kg, push_off_distance={push_off_distance:g} m')


def run_simulate_jump(config: dict, out_dir: Path, echo=print) -> JumpResult:
    """Simulate the bodyweight jump; writes trace.csv and summary.json."""
    mass = req_float(config, ['body', 'mass'])
    push_off_distance = req_float(config, ['body', 'push_off_distance'])
    generator = _generator_from_config(config)
    sim = _simulation_kwargs(config)

    _echo_generator(generator, mass, push_off_distance, echo)
    load = LoadState(mass, 0.0, push_off_distance, sim['gravity_const'])
    result = simulate_jump(
        load, generator, time_step=sim['time_step'], save_trace=True, max_time=sim['max_time']
    )

    out_dir.mkdir(parents=True, exist_ok=True)
    write_trace_csv(out_dir / 'trace.csv', result.trace)
    write_summary_json(out_dir / 'summary.json', result.summary.as_dict())

    s = result.summary
    echo(f'  Take-off: t={s.take_off_time:.3f} s, v={s.take_off_velocity:.3f} m/s')
    echo(f'  Height: {s.height:.3f} m')
    echo(f'  GRF: peak={s.peak_GRF:.1f} N, mean(distance)={s.mean_GRF_over_distance:.1f} N')
    echo(f'  Power: peak={s.peak_power:.1f} W, mean={s.mean_power:.1f} W')
    echo(f'  Trace: {len(result.trace)} steps')
    return result


def run_profile(config: dict, out_dir: Path, echo=print) -> pd.DataFrame:
    """
    Simulate the load profile and fit it.

    Writes profile.csv (per-load jumps), profiles.csv (fitted profiles) and
    summary.json (flat fitted values, Samozino comparison, two-point simple
    profile, Bosco index).
    """
    mass = req_float(config, ['body', 'mass'])
    push_off_distance = req_float(config, ['body', 'push_off_distance'])
    generator = _generator_from_config(config)
    sim = _simulation_kwargs(config)
    load_ratios = req_float_list(config, ['profile', 'external_load_ratios'])
    poly_degree = req_int(config, ['profile', 'poly_degree'])

    _echo_generator(generator, mass, push_off_distance, echo)
    external_loads = [r * mass for r in load_ratios]
    echo(f'Simulating {len(external_loads)} loads...')
    table = generate_profile(
        mass,
        external_loads,
        generator,
        push_off_distance=push_off_distance,
        echo=echo,
        **sim,
    )

    profiles = get_all_profiles(table, poly_degree)
    samozino = get_all_samozino_profiles(table, push_off_distance, sim['gravity_const'])

    summary: dict = {'profiles': profiles.as_dict(), 'samozino': samozino.as_dict()}
    for key, fit in (('load_peak_force', get_load_peak_force_profile), ('simple', get_simple_profile)):
        try:
            summary[key] = fit(table).as_dict()
        except VjsimError as e:
            summary[key] = {'error': str(e)}
            echo(f'  {key} profile not fitted: {e}')
    if math.isfinite(generator.max_velocity):
        summary['generator_optimal_profile'] = optimal_FV_profile(
            generator.max_force,
            generator.max_velocity,
            mass,
            push_off_distance,
            sim['gravity_const'],
        ).as_dict()
    bosco = get_bosco_index(mass, generator, push_off_distance=push_off_distance, **sim)
    summary['bosco'] = {'height_2BW': bosco.height_2BW, 'index': bosco.index}

    out_dir.mkdir(parents=True, exist_ok=True)
    write_table_csv(out_dir / 'profile.csv', table)
    write_table_csv(out_dir / 'profiles.csv', profiles.to_frame())
    write_summary_json(out_dir / 'summary.json', summary)

    mean_fv = profiles.results['mean_FV']
    echo(
        f'  Mean FV: F0={mean_fv.F0:.1f} N, V0={mean_fv.V0:.3f} m/s, '
        f'Sfv={mean_fv.Sfv:.1f}, Pmax={mean_fv.Pmax:.1f} W'
    )
    echo(f'  Bosco index: {bosco.index:.1f} %')
    failed = int(table['error'].notna().sum())
    if failed:
        echo(f'  {failed} load(s) did not take off')
    return table


def run_probe(config: dict, out_dir: Path, echo=print) -> pd.DataFrame:
    """Probe the configured target around the config baseline; writes probe.csv."""
    mass = req_float(config, ['body', 'mass'])
    push_off_distance = req_float(config, ['body', 'push_off_distance'])
    generator = _generator_from_config(config)
    sim = _simulation_kwargs(config)
    target = req_str(config, ['probe', 'target'])
    change_ratios = req_float_list(config, ['probe', 'change_ratios'])
    aggregate = req_str(config, ['probe', 'aggregate'])

    _echo_generator(generator, mass, push_off_distance, echo)
    echo(f'Probing target={target}, ratios={change_ratios}, aggregate={aggregate}')
    kwargs = dict(
        mass=mass,
        push_off_distance=push_off_distance,
        **generator.as_dict(),
        change_ratio=change_ratios,
        aggregate=aggregate,
        echo=echo,
        **sim,
    )
    if target == 'profile':
        load_ratios = req_float_list(config, ['profile', 'external_load_ratios'])
        table = probe_vj_profile(
            external_load=[r * mass for r in load_ratios],
            poly_degree=req_int(config, ['profile', 'poly_degree']),
            **kwargs,
        )
    else:
        table = probe_vj_simulate(**kwargs)

    out_dir.mkdir(parents=True, exist_ok=True)
    write_table_csv(out_dir / 'probe.csv', table)
    echo(f'  {len(table)} probe rows')
    return table
