"""
Samozino macroscopic model of a squat jump.

With a linear force-velocity profile F(v) = F0 * (1 - v / V0), mean push-off
velocity v_to / 2 and push-off distance hpo, the work-energy balance

    (F0_rel * (1 - v_to / (2 * V0)) - g) * hpo = v_to^2 / 2

gives the take-off velocity in closed form. For a fixed relative Pmax
(F0_rel * V0 / 4) take-off velocity is maximal when v_to = V0, which leaves the
cubic  a^3 - 2 g a^2 - 16 Pmax^2 / hpo = 0  for the optimal F0_rel = a.

All "_rel" quantities are per kg of bodyweight.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass

import numpy as np
import pandas as pd

from vjsim.errors import InvalidParameterError, VjsimError
from vjsim.fitting import AllProfiles, FVProfileResult, failed_profile, fit_FV_profile
from vjsim.simulation import GRAVITY_CONST


@dataclass(frozen=True)
class SamozinoProfile:
    F0: float
    F0_rel: float
    V0: float
    Pmax: float
    Pmax_rel: float
    Sfv: float
    Sfv_rel: float
    take_off_velocity: float
    height: float
    optimal_F0: float
    optimal_F0_rel: float
    optimal_Fmax: float
    optimal_V0: float
    optimal_Pmax: float
    optimal_Pmax_rel: float
    optimal_Sfv: float
    optimal_Sfv_rel: float
    optimal_take_off_velocity: float
    optimal_height: float
    optimal_height_diff: float
    optimal_height_ratio: float
    Sfv_perc: float
    FV_imbalance: float

    def as_dict(self) -> dict:
        return asdict(self)


def _check_profile_inputs(F0, V0, bodyweight, push_off_distance, gravity_const) -> None:
    if not F0 > 0.0:
        raise InvalidParameterError('F0', F0, 'must be > 0')
    if not (V0 > 0.0 and math.isfinite(V0)):
        raise InvalidParameterError('V0', V0, 'must be finite and > 0')
    if not bodyweight > 0.0:
        raise InvalidParameterError('bodyweight', bodyweight, 'must be > 0')
    if not push_off_distance > 0.0:
        raise InvalidParameterError('push_off_distance', push_off_distance, 'must be > 0')
    if not gravity_const > 0.0:
        raise InvalidParameterError('gravity_const', gravity_const, 'must be > 0')


def get_samozino_take_off_velocity(
    F0: float,
    V0: float,
    bodyweight: float,
    push_off_distance: float,
    gravity_const: float = GRAVITY_CONST,
) -> float:
    """
    Take-off velocity predicted by the Samozino model (F0 in N).

    The larger root of the work-energy balance. When F0 cannot lift the
    bodyweight the balance usually has no real root and the result is NaN;
    where a root still exists it is negative. V0 = inf gives the
    constant-force result.
    """
    F0_rel = F0 / bodyweight
    b = F0_rel * push_off_distance / V0
    disc = b * b + 8.0 * (F0_rel - gravity_const) * push_off_distance
    if disc < 0.0:
        return math.nan
    return (-b + math.sqrt(disc)) / 2.0


def get_samozino_height(
    F0: float,
    V0: float,
    bodyweight: float,
    push_off_distance: float,
    gravity_const: float = GRAVITY_CONST,
) -> float:
    """Jump height from get_samozino_take_off_velocity(); negative for a negative TOV."""
    v = get_samozino_take_off_velocity(F0, V0, bodyweight, push_off_distance, gravity_const)
    return v * abs(v) / (2.0 * gravity_const)


def _optimal_F0_rel(Pmax_rel: float, push_off_distance: float, gravity_const: float) -> float:
    c = 16.0 * Pmax_rel**2 / push_off_distance
    roots = np.roots([1.0, -2.0 * gravity_const, 0.0, -c])
    real = roots[np.abs(roots.imag) <= 1e-9 * np.maximum(1.0, np.abs(roots.real))].real
    # Single real root above 2g for any c > 0.
    return float(np.max(real))


def optimal_FV_profile(
    F0: float,
    V0: float,
    bodyweight: float,
    push_off_distance: float,
    gravity_const: float = GRAVITY_CONST,
) -> SamozinoProfile:
    """
    Actual vs height-maximising FV profile with the same Pmax.

    Sfv_perc is Sfv / optimal_Sfv in percent; FV_imbalance is |1 - Sfv_perc/100|
    in percent. optimal_Fmax is the optimal zero-velocity force in N, i.e. the
    max_force a Force Generator with this profile would need.
    """
    _check_profile_inputs(F0, V0, bodyweight, push_off_distance, gravity_const)

    F0_rel = F0 / bodyweight
    Pmax_rel = F0_rel * V0 / 4.0
    Sfv_rel = -F0_rel / V0
    take_off_velocity = get_samozino_take_off_velocity(
        F0, V0, bodyweight, push_off_distance, gravity_const
    )
    height = get_samozino_height(F0, V0, bodyweight, push_off_distance, gravity_const)

    opt_F0_rel = _optimal_F0_rel(Pmax_rel, push_off_distance, gravity_const)
    opt_V0 = 4.0 * Pmax_rel / opt_F0_rel
    opt_Sfv_rel = -opt_F0_rel / opt_V0
    opt_F0 = opt_F0_rel * bodyweight
    opt_take_off_velocity = get_samozino_take_off_velocity(
        opt_F0, opt_V0, bodyweight, push_off_distance, gravity_const
    )
    opt_height = get_samozino_height(opt_F0, opt_V0, bodyweight, push_off_distance, gravity_const)

    Sfv_perc = Sfv_rel / opt_Sfv_rel * 100.0

    return SamozinoProfile(
        F0=F0,
        F0_rel=F0_rel,
        V0=V0,
        Pmax=F0 * V0 / 4.0,
        Pmax_rel=Pmax_rel,
        Sfv=-F0 / V0,
        Sfv_rel=Sfv_rel,
        take_off_velocity=take_off_velocity,
        height=height,
        optimal_F0=opt_F0,
        optimal_F0_rel=opt_F0_rel,
        optimal_Fmax=opt_F0,
        optimal_V0=opt_V0,
        optimal_Pmax=opt_F0 * opt_V0 / 4.0,
        optimal_Pmax_rel=opt_F0_rel * opt_V0 / 4.0,
        optimal_Sfv=-opt_F0 / opt_V0,
        optimal_Sfv_rel=opt_Sfv_rel,
        optimal_take_off_velocity=opt_take_off_velocity,
        optimal_height=opt_height,
        optimal_height_diff=opt_height - height,
        optimal_height_ratio=opt_height / height if height != 0.0 else math.nan,
        Sfv_perc=Sfv_perc,
        FV_imbalance=abs(100.0 - Sfv_perc),
    )


@dataclass
class SamozinoProfileResult:
    fv: FVProfileResult
    optimal: SamozinoProfile | None

    @property
    def error(self) -> str | None:
        return self.fv.error

    def as_dict(self) -> dict:
        out = self.fv.as_dict()
        if self.optimal is not None:
            for key, value in self.optimal.as_dict().items():
                if key.startswith('optimal_') or key in ('Sfv_perc', 'FV_imbalance'):
                    out[key] = value
        return out


def get_samozino_mean_values(
    table: pd.DataFrame,
    push_off_distance: float,
    gravity_const: float = GRAVITY_CONST,
) -> pd.DataFrame:
    """
    Samozino simple method: mean force and velocity from height alone.

      mean_force    = mass * g * (height / hpo + 1)
      mean_velocity = sqrt(g * height / 2)
    """
    mass = table['mass'].astype(float)
    height = table['height'].astype(float)
    out = table[['bodyweight', 'mass']].copy()
    out['mean_force'] = mass * gravity_const * (height / push_off_distance + 1.0)
    out['mean_velocity'] = np.sqrt(gravity_const * height / 2.0)
    return out


def get_samozino_profile(
    table: pd.DataFrame,
    push_off_distance: float,
    gravity_const: float = GRAVITY_CONST,
    *,
    method: str = 'height',
) -> SamozinoProfileResult:
    """
    Linear FV profile plus Samozino optimum from a profile table.

    method='height' uses the simple method (get_samozino_mean_values);
    method='mean' uses the simulated mean_GRF_over_distance / mean_velocity.
    """
    if method == 'height':
        data = get_samozino_mean_values(table, push_off_distance, gravity_const)
        fv = fit_FV_profile(data, 'mean_force', 'mean_velocity', 1)
    elif method == 'mean':
        fv = fit_FV_profile(table, 'mean_GRF_over_distance', 'mean_velocity', 1)
    else:
        raise InvalidParameterError('method', method, "use 'height' or 'mean'")

    optimal = None
    if not fv.no_real_root and fv.F0 > 0.0 and fv.V0 > 0.0:
        bodyweight = float(table['bodyweight'].iloc[0])
        optimal = optimal_FV_profile(fv.F0, fv.V0, bodyweight, push_off_distance, gravity_const)
    return SamozinoProfileResult(fv=fv, optimal=optimal)


def get_all_samozino_profiles(
    table: pd.DataFrame,
    push_off_distance: float,
    gravity_const: float = GRAVITY_CONST,
) -> AllProfiles:
    """Both Samozino methods; a method that cannot be fitted keeps NaN values and its error."""
    results: dict = {}
    for method in ('height', 'mean'):
        try:
            results[f'samozino_{method}'] = get_samozino_profile(
                table, push_off_distance, gravity_const, method=method
            )
        except VjsimError as e:
            results[f'samozino_{method}'] = SamozinoProfileResult(
                fv=failed_profile('fv', 1, e), optimal=None
            )
    return AllProfiles(results=results)
