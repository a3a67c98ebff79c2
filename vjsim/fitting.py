"""Force-velocity, load-velocity and power profiles fitted to profile tables."""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field

import numpy as np
import pandas as pd
from numpy.polynomial import Polynomial
from scipy.linalg import lstsq

from vjsim.errors import InvalidParameterError, NoRealRootError, VjsimError


# Extension of the observed x range (fraction of the range on each side)
# within which a power-profile vertex is still accepted.
DEFAULT_POWER_EXTRAPOLATION = 0.25


@dataclass
class FVProfileResult:
    F0: float
    F0_rel: float
    V0: float
    Sfv: float
    Pmax: float
    Pmax_rel: float
    RFv: float
    no_real_root: bool
    poly_degree: int
    n_obs: int
    model: Polynomial | None = field(repr=False)
    error: str | None = None

    def as_dict(self) -> dict:
        return {
            'F0': self.F0,
            'F0_rel': self.F0_rel,
            'V0': self.V0,
            'Sfv': self.Sfv,
            'Pmax': self.Pmax,
            'Pmax_rel': self.Pmax_rel,
            'RFv': self.RFv,
        }


@dataclass
class PowerProfileResult:
    Pmax: float
    Pmax_rel: float
    x_at_Pmax: float
    no_real_root: bool
    poly_degree: int
    n_obs: int
    model: Polynomial | None = field(repr=False)
    error: str | None = None

    def as_dict(self) -> dict:
        return {'Pmax': self.Pmax, 'Pmax_rel': self.Pmax_rel, 'x_at_Pmax': self.x_at_Pmax}


@dataclass
class LoadForceProfile:
    slope: float
    slope_rel: float
    model: Polynomial = field(repr=False)

    def as_dict(self) -> dict:
        return {'slope': self.slope, 'slope_rel': self.slope_rel}


@dataclass
class AllProfiles:
    """Named profile results; flat dict and table views for export."""

    results: dict

    def as_dict(self) -> dict:
        flat: dict = {}
        for name, result in self.results.items():
            for key, value in result.as_dict().items():
                flat[f'{name}_{key}'] = value
        return flat

    def to_frame(self) -> pd.DataFrame:
        records = [
            {'profile': name, **result.as_dict(), 'error': getattr(result, 'error', None)}
            for name, result in self.results.items()
        ]
        return pd.DataFrame.from_records(records)


def fit_polynomial(x, y, degree: int) -> Polynomial:
    """
    Ordinary least squares polynomial y ~ x of the given degree.

    Solved with an SVD-based least squares on a Vandermonde design in
    x scaled to unit magnitude; coefficients are returned in the original x units.
    """
    degree = int(degree)
    if degree < 1:
        raise InvalidParameterError('poly_degree', degree, 'must be >= 1')

    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    if x.shape != y.shape:
        raise InvalidParameterError('y', y.shape, f'shape must match x {x.shape}')
    if x.size < degree + 1:
        raise InvalidParameterError(
            'n_obs', int(x.size), f'need at least {degree + 1} observations for degree {degree}'
        )

    scale = float(np.max(np.abs(x)))
    if scale == 0.0:
        scale = 1.0

    design = np.vander(x / scale, degree + 1, increasing=True)
    coef, _, rank, _ = lstsq(design, y)
    if rank < degree + 1:
        raise InvalidParameterError('x', x.tolist(), f'too few distinct values for degree {degree}')

    return Polynomial(coef / scale ** np.arange(degree + 1))


def _real_roots(poly: Polynomial) -> np.ndarray:
    poly = poly.trim()
    if poly.degree() < 1:
        return np.array([], dtype=float)
    roots = poly.roots()
    tol = 1e-9 * np.maximum(1.0, np.abs(roots.real))
    return np.sort(roots[np.abs(roots.imag) <= tol].real)


def select_intercept_root(poly: Polynomial, x_min: float, x_max: float) -> float:
    """
    Positive real root of poly nearest to the observed range [x_min, x_max].

    Roots inside the range have distance 0; ties go to the smaller root.
    Raises NoRealRootError when no positive real root exists.
    """
    roots = _real_roots(poly)
    positive = roots[roots > 0.0]
    if positive.size == 0:
        raise NoRealRootError(f'No positive real root for {poly}')

    distance = np.maximum(x_min - positive, 0.0) + np.maximum(positive - x_max, 0.0)
    best = np.lexsort((positive, distance))[0]
    return float(positive[best])


def _clean_xy(table: pd.DataFrame, x_column: str, y_column: str) -> pd.DataFrame:
    for col in (x_column, y_column):
        if col not in table.columns:
            raise InvalidParameterError('column', col, f'not in table columns {list(table.columns)}')
    return table[[x_column, y_column]].astype(float).dropna()


def _bodyweight(table: pd.DataFrame, bodyweight: float | None) -> float:
    if bodyweight is not None:
        return float(bodyweight)
    if 'bodyweight' in table.columns and len(table):
        return float(table['bodyweight'].iloc[0])
    return math.nan


def fit_FV_profile(
    table: pd.DataFrame,
    force_column: str = 'mean_GRF_over_distance',
    velocity_column: str = 'mean_velocity',
    poly_degree: int = 1,
    *,
    bodyweight: float | None = None,
) -> FVProfileResult:
    """
    Fit velocity ~ poly(force) and extrapolate the profile intercepts.

      V0   = p(0)
      F0   = admissible positive real root of p (NaN if none, no_real_root=True)
      Sfv  = force per unit velocity at zero force, 1 / p'(0); -F0/V0 when linear
      Pmax = F0 * V0 / 4; exact only for a linear profile, an approximation
             for poly_degree > 1
      RFv  = F0 / V0

    Rows with missing values in either column are ignored. F0_rel and
    Pmax_rel use the 'bodyweight' column unless bodyweight is given.
    """
    data = _clean_xy(table, force_column, velocity_column)
    force = data[force_column].to_numpy()
    velocity = data[velocity_column].to_numpy()

    model = fit_polynomial(force, velocity, poly_degree)
    bw = _bodyweight(table, bodyweight)

    V0 = float(model(0.0))
    try:
        F0 = select_intercept_root(model, float(force.min()), float(force.max()))
        no_real_root = False
    except NoRealRootError:
        F0 = math.nan
        no_real_root = True

    slope = float(model.deriv()(0.0))
    Sfv = 1.0 / slope if slope != 0.0 else math.nan
    Pmax = F0 * V0 / 4.0

    return FVProfileResult(
        F0=F0,
        F0_rel=F0 / bw,
        V0=V0,
        Sfv=Sfv,
        Pmax=Pmax,
        Pmax_rel=Pmax / bw,
        RFv=F0 / V0 if V0 != 0.0 else math.nan,
        no_real_root=no_real_root,
        poly_degree=int(poly_degree),
        n_obs=int(force.size),
        model=model,
    )


def fit_power_profile(
    table: pd.DataFrame,
    x_column: str = 'mean_GRF_over_distance',
    power_column: str = 'mean_power',
    poly_degree: int = 2,
    *,
    extrapolation: float = DEFAULT_POWER_EXTRAPOLATION,
    bodyweight: float | None = None,
) -> PowerProfileResult:
    """
    Fit power ~ poly(x) and return the vertex (maximum).

    Candidates are the real roots of p' with p'' < 0 lying inside the observed
    x range widened by `extrapolation` times the range on each side; the one
    with the highest predicted power wins.
    """
    if int(poly_degree) < 2:
        raise InvalidParameterError('poly_degree', poly_degree, 'power profile needs degree >= 2')

    data = _clean_xy(table, x_column, power_column)
    x = data[x_column].to_numpy()
    power = data[power_column].to_numpy()

    model = fit_polynomial(x, power, poly_degree)
    bw = _bodyweight(table, bodyweight)

    span = float(x.max() - x.min())
    lo = float(x.min()) - extrapolation * span
    hi = float(x.max()) + extrapolation * span

    d1 = model.deriv()
    d2 = d1.deriv()
    candidates = [r for r in _real_roots(d1) if lo <= r <= hi and d2(r) < 0.0]

    if not candidates:
        return PowerProfileResult(
            Pmax=math.nan,
            Pmax_rel=math.nan,
            x_at_Pmax=math.nan,
            no_real_root=True,
            poly_degree=int(poly_degree),
            n_obs=int(x.size),
            model=model,
        )

    x_best = max(candidates, key=lambda r: model(r))
    Pmax = float(model(x_best))
    return PowerProfileResult(
        Pmax=Pmax,
        Pmax_rel=Pmax / bw,
        x_at_Pmax=float(x_best),
        no_real_root=False,
        poly_degree=int(poly_degree),
        n_obs=int(x.size),
        model=model,
    )


# (name, x column, y column, kind)
STANDARD_PROFILES = (
    ('load_height', 'mass', 'height', 'fv'),
    ('load_take_off_velocity', 'mass', 'take_off_velocity', 'fv'),
    ('external_load_take_off_velocity', 'external_load', 'take_off_velocity', 'fv'),
    ('mean_FV', 'mean_GRF_over_distance', 'mean_velocity', 'fv'),
    ('peak_FV', 'peak_GRF', 'peak_velocity', 'fv'),
    ('mean_power', 'mean_GRF_over_distance', 'mean_power', 'power'),
    ('peak_power', 'peak_GRF', 'peak_power', 'power'),
)


def failed_profile(kind: str, poly_degree: int, error: VjsimError):
    if kind == 'fv':
        return FVProfileResult(
            F0=math.nan,
            F0_rel=math.nan,
            V0=math.nan,
            Sfv=math.nan,
            Pmax=math.nan,
            Pmax_rel=math.nan,
            RFv=math.nan,
            no_real_root=False,
            poly_degree=int(poly_degree),
            n_obs=0,
            model=None,
            error=str(error),
        )
    return PowerProfileResult(
        Pmax=math.nan,
        Pmax_rel=math.nan,
        x_at_Pmax=math.nan,
        no_real_root=False,
        poly_degree=int(poly_degree),
        n_obs=0,
        model=None,
        error=str(error),
    )


def get_all_profiles(
    table: pd.DataFrame,
    poly_degree: int = 1,
    power_poly_degree: int = 2,
) -> AllProfiles:
    """
    Fit every standard profile pair of a profile table, each independently.

    A pair that cannot be fitted (e.g. too few successful loads for its
    degree) gets NaN values and its error message; the other pairs are kept.
    """
    results: dict = {}
    for name, x_column, y_column, kind in STANDARD_PROFILES:
        degree = poly_degree if kind == 'fv' else power_poly_degree
        try:
            if kind == 'fv':
                results[name] = fit_FV_profile(table, x_column, y_column, degree)
            else:
                results[name] = fit_power_profile(table, x_column, y_column, degree)
        except VjsimError as e:
            results[name] = failed_profile(kind, degree, e)
    return AllProfiles(results=results)


def get_load_peak_force_profile(table: pd.DataFrame) -> LoadForceProfile:
    """Linear peak_GRF ~ mass slope; slope_rel divides by bodyweight."""
    data = _clean_xy(table, 'mass', 'peak_GRF')
    model = fit_polynomial(data['mass'].to_numpy(), data['peak_GRF'].to_numpy(), 1)
    slope = float(model.coef[1])
    return LoadForceProfile(slope=slope, slope_rel=slope / _bodyweight(table, None), model=model)


@dataclass(frozen=True)
class SimpleProfile:
    """Two-point profile from the lightest and heaviest successful loads."""

    light_mass: float
    heavy_mass: float
    light_height: float
    heavy_height: float
    height_ratio: float
    F0: float
    F0_rel: float
    V0: float
    Sfv: float
    Pmax: float
    Pmax_rel: float
    L0: float
    L0_rel: float

    def as_dict(self) -> dict:
        return asdict(self)


def get_simple_profile(
    table: pd.DataFrame,
    force_column: str = 'mean_GRF_over_distance',
    velocity_column: str = 'mean_velocity',
) -> SimpleProfile:
    """
    Field-test style profile from only two jumps: the lightest and the
    heaviest load that took off.

      height_ratio  heavy / light height, in percent
      F0, V0, ...   straight line through the two (force, velocity) points
      L0            mass at which the load / take-off velocity line reaches 0
    """
    columns = ['mass', 'height', 'take_off_velocity', force_column, velocity_column]
    for col in columns:
        if col not in table.columns:
            raise InvalidParameterError('column', col, f'not in table columns {list(table.columns)}')
    data = table.dropna(subset=columns)
    if data.empty:
        raise InvalidParameterError('n_obs', 0, 'no successful jumps in the profile')

    light = data['mass'].astype(float).idxmin()
    heavy = data['mass'].astype(float).idxmax()
    if data.loc[light, 'mass'] == data.loc[heavy, 'mass']:
        raise InvalidParameterError('mass', float(data.loc[light, 'mass']), 'need two distinct loads')

    pair = data.loc[[light, heavy]]
    fv = fit_FV_profile(pair, force_column, velocity_column, 1)
    lv = fit_FV_profile(pair, 'mass', 'take_off_velocity', 1)
    bw = _bodyweight(table, None)

    light_height = float(pair.loc[light, 'height'])
    heavy_height = float(pair.loc[heavy, 'height'])
    return SimpleProfile(
        light_mass=float(pair.loc[light, 'mass']),
        heavy_mass=float(pair.loc[heavy, 'mass']),
        light_height=light_height,
        heavy_height=heavy_height,
        height_ratio=heavy_height / light_height * 100.0 if light_height != 0.0 else math.nan,
        F0=fv.F0,
        F0_rel=fv.F0_rel,
        V0=fv.V0,
        Sfv=fv.Sfv,
        Pmax=fv.Pmax,
        Pmax_rel=fv.Pmax_rel,
        L0=lv.F0,
        L0_rel=lv.F0 / bw,
    )
