"""Push-off simulation of a single-degree-of-freedom vertical jump."""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, fields

import numpy as np
import pandas as pd

from vjsim.errors import InvalidParameterError, NonConvergenceError, VjsimError
from vjsim.force_generator import (
    ForceGeneratorParams,
    get_generator_forces,
    get_initial_activation,
)


GRAVITY_CONST = 9.81
DEFAULT_TIME_STEP = 0.001
# Upper bound on push-off duration before the jump is declared not achieved.
DEFAULT_MAX_TIME = 5.0


@dataclass(frozen=True)
class LoadState:
    bodyweight_mass: float
    external_load_mass: float = 0.0
    push_off_distance: float = 0.4
    gravity_const: float = GRAVITY_CONST

    @property
    def total_mass(self) -> float:
        return self.bodyweight_mass + self.external_load_mass

    @property
    def weight(self) -> float:
        return self.total_mass * self.gravity_const

    def validate(self) -> None:
        if not self.bodyweight_mass > 0.0:
            raise InvalidParameterError('bodyweight_mass', self.bodyweight_mass, 'must be > 0')
        if not math.isfinite(self.external_load_mass):
            raise InvalidParameterError('external_load_mass', self.external_load_mass, 'must be finite')
        if not self.total_mass > 0.0:
            raise InvalidParameterError(
                'external_load_mass',
                self.external_load_mass,
                f'total mass {self.total_mass} must be > 0',
            )
        if not self.push_off_distance > 0.0:
            raise InvalidParameterError('push_off_distance', self.push_off_distance, 'must be > 0')
        if not self.gravity_const > 0.0:
            raise InvalidParameterError('gravity_const', self.gravity_const, 'must be > 0')


TRACE_COLUMNS = (
    'time',
    'distance',
    'velocity',
    'force_percentage',
    'activation',
    'potential_force',
    'generated_force',
    'viscous_force',
    'ground_reaction_force',
    'propulsive_force',
    'acceleration',
    'power',
)


@dataclass
class SimulationTrace:
    """Per-step state; each array has one entry per integration step."""

    time: np.ndarray
    distance: np.ndarray
    velocity: np.ndarray
    force_percentage: np.ndarray
    activation: np.ndarray
    potential_force: np.ndarray
    generated_force: np.ndarray
    viscous_force: np.ndarray
    ground_reaction_force: np.ndarray
    propulsive_force: np.ndarray
    acceleration: np.ndarray
    power: np.ndarray

    def __len__(self) -> int:
        return int(self.time.size)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({name: getattr(self, name) for name in TRACE_COLUMNS})


@dataclass(frozen=True)
class SimulationSummary:
    height: float
    take_off_time: float
    take_off_velocity: float
    peak_velocity: float
    mean_velocity: float
    mean_GRF_over_distance: float
    mean_GRF_over_time: float
    peak_GRF: float
    peak_power: float
    mean_power: float
    peak_RFD: float
    peak_RPD: float
    initial_activation: float

    def as_dict(self) -> dict:
        return asdict(self)


SUMMARY_COLUMNS = tuple(f.name for f in fields(SimulationSummary))


@dataclass
class JumpResult:
    summary: SimulationSummary
    trace: SimulationTrace | None = None


def _validate_run(
    load: LoadState,
    generator: ForceGeneratorParams,
    time_step: float,
    max_time: float,
) -> float:
    load.validate()
    generator.validate()
    if not time_step > 0.0:
        raise InvalidParameterError('time_step', time_step, 'must be > 0')
    if not max_time > time_step:
        raise InvalidParameterError('max_time', max_time, 'must exceed time_step')

    initial_activation = get_initial_activation(
        load.weight,
        generator.max_force,
        load.push_off_distance,
        generator.decline_rate,
        generator.peak_location,
    )
    if not 0.0 < initial_activation <= 1.0:
        raise InvalidParameterError(
            'initial_activation',
            initial_activation,
            'weight exceeds the potential force at the start of push-off',
        )
    return initial_activation


class _SummaryAccumulator:
    """Running sums and peaks over push-off steps, so no trace is needed."""

    def __init__(self) -> None:
        self.grf_distance = 0.0
        self.grf_time = 0.0
        self.work = 0.0
        self.peak_velocity = 0.0
        self.peak_grf = -math.inf
        self.peak_power = -math.inf
        self.peak_rfd = -math.inf
        self.peak_rpd = -math.inf
        self._prev: tuple[float, float] | None = None

    def add(
        self, velocity: float, grf: float, power: float, dt_step: float, dd_step: float, dt: float
    ) -> None:
        # dt_step/dd_step are the widths this sample covers; the last one ends at take-off.
        self.grf_distance += grf * dd_step
        self.grf_time += grf * dt_step
        self.work += power * dt_step
        self.peak_velocity = max(self.peak_velocity, velocity)
        self.peak_grf = max(self.peak_grf, grf)
        self.peak_power = max(self.peak_power, power)
        if self._prev is not None:
            prev_grf, prev_power = self._prev
            self.peak_rfd = max(self.peak_rfd, (grf - prev_grf) / dt)
            self.peak_rpd = max(self.peak_rpd, (power - prev_power) / dt)
        self._prev = (grf, power)

    def summary(
        self,
        *,
        take_off_time: float,
        take_off_velocity: float,
        push_off_distance: float,
        gravity_const: float,
        initial_activation: float,
    ) -> SimulationSummary:
        # Rates of development need at least two samples.
        peak_rfd = self.peak_rfd if math.isfinite(self.peak_rfd) else 0.0
        peak_rpd = self.peak_rpd if math.isfinite(self.peak_rpd) else 0.0
        return SimulationSummary(
            height=take_off_velocity**2 / (2.0 * gravity_const),
            take_off_time=float(take_off_time),
            take_off_velocity=float(take_off_velocity),
            peak_velocity=max(self.peak_velocity, float(take_off_velocity)),
            mean_velocity=float(push_off_distance / take_off_time),
            mean_GRF_over_distance=self.grf_distance / push_off_distance,
            mean_GRF_over_time=self.grf_time / take_off_time,
            peak_GRF=self.peak_grf,
            peak_power=self.peak_power,
            mean_power=self.work / take_off_time,
            peak_RFD=peak_rfd,
            peak_RPD=peak_rpd,
            initial_activation=float(initial_activation),
        )


def simulate_jump(
    load: LoadState,
    generator: ForceGeneratorParams,
    *,
    time_step: float = DEFAULT_TIME_STEP,
    save_trace: bool = False,
    max_time: float = DEFAULT_MAX_TIME,
) -> JumpResult:
    """
    Integrate the push-off phase from rest until the mass reaches push_off_distance.

    Each step evaluates the generator at the current state, then
      v_next = v + a * dt
      d_next = d + v_next * dt
    The step that crosses push_off_distance is interpolated linearly to the
    crossing, so take-off time and velocity do not snap to the time grid.

    Per-step rows are only kept when save_trace is set; the summary is built
    from running sums either way.

    Raises InvalidParameterError for invalid inputs and NonConvergenceError when
    the mass stops progressing (velocity reverses at full activation) or push-off
    runs longer than max_time.
    """
    initial_activation = _validate_run(load, generator, time_step, max_time)

    push_off_distance = load.push_off_distance
    total_mass = load.total_mass
    weight = load.weight
    dt = float(time_step)
    max_steps = int(math.ceil(max_time / dt))

    acc = _SummaryAccumulator()
    rows: list[tuple[float, ...]] = []
    t = 0.0
    d = 0.0
    v = 0.0

    for _ in range(max_steps):
        f = get_generator_forces(
            current_time=t,
            current_distance=d,
            current_velocity=v,
            generator=generator,
            push_off_distance=push_off_distance,
            initial_activation=initial_activation,
            total_mass=total_mass,
            weight=weight,
        )
        power = f.ground_reaction_force * v
        if save_trace:
            rows.append(
                (
                    t,
                    d,
                    v,
                    f.force_percentage,
                    f.activation,
                    f.potential_force,
                    f.generated_force,
                    f.viscous_force,
                    f.ground_reaction_force,
                    f.propulsive_force,
                    f.acceleration,
                    power,
                )
            )

        v_next = v + f.acceleration * dt
        d_next = d + v_next * dt

        if d_next >= push_off_distance:
            frac = (push_off_distance - d) / (d_next - d)
            take_off_time = t + frac * dt
            take_off_velocity = v + frac * (v_next - v)
            acc.add(v, f.ground_reaction_force, power, frac * dt, push_off_distance - d, dt)
            break

        if v_next < 0.0 and f.activation >= 1.0:
            raise NonConvergenceError(
                'velocity reversed at full activation', time=t + dt, distance=d_next, velocity=v_next
            )

        acc.add(v, f.ground_reaction_force, power, dt, d_next - d, dt)
        t += dt
        d = d_next
        v = v_next
    else:
        raise NonConvergenceError(
            f'take-off not reached within {max_time} s', time=t, distance=d, velocity=v
        )

    summary = acc.summary(
        take_off_time=take_off_time,
        take_off_velocity=take_off_velocity,
        push_off_distance=push_off_distance,
        gravity_const=load.gravity_const,
        initial_activation=initial_activation,
    )
    trace = None
    if save_trace:
        trace = SimulationTrace(*(np.asarray(col, dtype=float) for col in zip(*rows)))
    return JumpResult(summary=summary, trace=trace)


def vj_simulate(
    mass: float = 75.0,
    push_off_distance: float = 0.4,
    max_force: float = 3000.0,
    max_velocity: float = 4.0,
    decline_rate: float = 1.05,
    peak_location: float = -0.06,
    time_to_max_activation: float = 0.3,
    *,
    external_load: float = 0.0,
    gravity_const: float = GRAVITY_CONST,
    time_step: float = DEFAULT_TIME_STEP,
    save_trace: bool = False,
    max_time: float = DEFAULT_MAX_TIME,
) -> JumpResult:
    """Keyword front door for simulate_jump()."""
    load = LoadState(
        bodyweight_mass=mass,
        external_load_mass=external_load,
        push_off_distance=push_off_distance,
        gravity_const=gravity_const,
    )
    generator = ForceGeneratorParams(
        max_force=max_force,
        max_velocity=max_velocity,
        decline_rate=decline_rate,
        peak_location=peak_location,
        time_to_max_activation=time_to_max_activation,
    )
    return simulate_jump(
        load,
        generator,
        time_step=time_step,
        save_trace=save_trace,
        max_time=max_time,
    )


BATCH_PARAMS = (
    'mass',
    'external_load',
    'push_off_distance',
    'max_force',
    'max_velocity',
    'decline_rate',
    'peak_location',
    'time_to_max_activation',
    'gravity_const',
)


def simulate_batch(
    *,
    time_step: float = DEFAULT_TIME_STEP,
    max_time: float = DEFAULT_MAX_TIME,
    echo=None,
    **params,
) -> pd.DataFrame:
    """
    Simulate many independent jumps; scalar or vector parameters broadcast element-wise.

    Returns one row per case, in broadcast order: the inputs, the summary
    fields and an 'error' column (None on success). A failing case keeps its
    inputs with NaN outputs and does not stop the batch.
    """
    unknown = set(params) - set(BATCH_PARAMS)
    if unknown:
        raise InvalidParameterError(
            'params', sorted(unknown), f'unknown batch parameter(s); use {list(BATCH_PARAMS)}'
        )

    defaults = {
        'mass': 75.0,
        'external_load': 0.0,
        'push_off_distance': 0.4,
        'max_force': 3000.0,
        'max_velocity': 4.0,
        'decline_rate': 1.05,
        'peak_location': -0.06,
        'time_to_max_activation': 0.3,
        'gravity_const': GRAVITY_CONST,
    }
    defaults.update(params)

    names = list(BATCH_PARAMS)
    try:
        arrays = np.broadcast_arrays(*(np.asarray(defaults[n], dtype=float) for n in names))
    except ValueError as e:
        raise InvalidParameterError('params', params, 'vectors cannot be broadcast together') from e
    columns = {n: a.ravel() for n, a in zip(names, arrays)}
    n_cases = columns['mass'].size

    records: list[dict] = []
    for i in range(n_cases):
        case = {n: float(columns[n][i]) for n in names}
        row = dict(case)
        try:
            result = vj_simulate(**case, time_step=time_step, max_time=max_time)
        except VjsimError as e:
            row.update({c: math.nan for c in SUMMARY_COLUMNS})
            row['error'] = str(e)
            if echo is not None:
                echo(f'  case {i + 1}/{n_cases}: {e}')
        else:
            row.update(result.summary.as_dict())
            row['error'] = None
        records.append(row)

    return pd.DataFrame.from_records(records, columns=[*names, *SUMMARY_COLUMNS, 'error'])
