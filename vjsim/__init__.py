"""Vertical jump simulator: Force Generator model, push-off engine, load profiles,
profile fitting and parameter probing."""

from __future__ import annotations

from vjsim.errors import (
    InvalidParameterError,
    NonConvergenceError,
    NoRealRootError,
    VjsimError,
)
from vjsim.fitting import (
    AllProfiles,
    FVProfileResult,
    PowerProfileResult,
    fit_FV_profile,
    fit_polynomial,
    fit_power_profile,
    get_all_profiles,
    get_load_peak_force_profile,
    get_simple_profile,
)
from vjsim.force_generator import (
    ForceGeneratorParams,
    get_activation,
    get_force_percentage,
    get_initial_activation,
    get_velocity_from_external_force,
    get_viscous_force,
)
from vjsim.probing import (
    get_probe_effects,
    jump_probe_target,
    probe_parameters,
    probe_vj_profile,
    probe_vj_simulate,
    profile_probe_target,
)
from vjsim.profile import generate_profile, get_bosco_index, vj_profile
from vjsim.samozino import (
    get_all_samozino_profiles,
    get_samozino_height,
    get_samozino_profile,
    get_samozino_take_off_velocity,
    optimal_FV_profile,
)
from vjsim.simulation import (
    GRAVITY_CONST,
    JumpResult,
    LoadState,
    SimulationSummary,
    SimulationTrace,
    simulate_batch,
    simulate_jump,
    vj_simulate,
)


__all__ = [
    # Errors
    'VjsimError',
    'InvalidParameterError',
    'NonConvergenceError',
    'NoRealRootError',
    # Force Generator
    'ForceGeneratorParams',
    'get_force_percentage',
    'get_activation',
    'get_viscous_force',
    'get_velocity_from_external_force',
    'get_initial_activation',
    # Simulation
    'GRAVITY_CONST',
    'LoadState',
    'SimulationTrace',
    'SimulationSummary',
    'JumpResult',
    'simulate_jump',
    'vj_simulate',
    'simulate_batch',
    # Profiles
    'generate_profile',
    'vj_profile',
    'get_bosco_index',
    # Fitting
    'AllProfiles',
    'FVProfileResult',
    'PowerProfileResult',
    'fit_polynomial',
    'fit_FV_profile',
    'fit_power_profile',
    'get_all_profiles',
    'get_load_peak_force_profile',
    'get_simple_profile',
    # Samozino
    'optimal_FV_profile',
    'get_samozino_take_off_velocity',
    'get_samozino_height',
    'get_samozino_profile',
    'get_all_samozino_profiles',
    # Probing
    'probe_parameters',
    'jump_probe_target',
    'profile_probe_target',
    'probe_vj_simulate',
    'probe_vj_profile',
    'get_probe_effects',
]
