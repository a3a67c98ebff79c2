"""Force Generator: force-length, force-time and force-velocity characteristics.

All functions are pure and accept floats or numpy arrays (element-wise).

Sign conventions:
  - distance is measured from the start of push-off (0) to take-off
    (push_off_distance); distance_to_take_off = distance - push_off_distance
    is therefore <= 0 during push-off.
  - peak_location is expressed in the same take-off relative frame
    (e.g. -0.06 m means 6 cm before take-off).
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass

import numpy as np

from vjsim.errors import InvalidParameterError


@dataclass(frozen=True)
class ForceGeneratorParams:
    max_force: float = 3000.0  # N
    max_velocity: float = 4.0  # m/s, math.inf disables the force-velocity characteristic
    decline_rate: float = 1.05
    peak_location: float = -0.06  # m, relative to take-off
    time_to_max_activation: float = 0.3  # s

    def validate(self) -> None:
        if not self.max_force > 0.0:
            raise InvalidParameterError('max_force', self.max_force, 'must be > 0')
        if not self.max_velocity > 0.0:
            raise InvalidParameterError('max_velocity', self.max_velocity, 'must be > 0 or inf')
        if not self.decline_rate >= 0.0:
            raise InvalidParameterError('decline_rate', self.decline_rate, 'must be >= 0')
        if not math.isfinite(self.peak_location):
            raise InvalidParameterError('peak_location', self.peak_location, 'must be finite')
        if not self.time_to_max_activation >= 0.0:
            raise InvalidParameterError(
                'time_to_max_activation', self.time_to_max_activation, 'must be >= 0'
            )

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass
class GeneratorForces:
    force_percentage: float
    activation: float
    potential_force: float
    generated_force: float
    viscous_force: float
    ground_reaction_force: float
    propulsive_force: float
    acceleration: float


def get_force_percentage(
    current_distance,
    push_off_distance,
    decline_rate=1.05,
    peak_location=-0.06,
):
    """
    Isometric force-length characteristic, as a fraction of max force.

      x = current_distance - push_off_distance
      p = clip(1 - decline_rate * (x - peak_location)^2, 0, 1)

    p is 1 at the peak location and falls off on both sides; decline_rate is
    the curvature in 1/m^2. decline_rate = 0 disables the characteristic.
    """
    x = np.subtract(current_distance, push_off_distance)
    p = 1.0 - np.multiply(decline_rate, np.square(x - peak_location))
    return np.clip(p, 0.0, 1.0)


def get_activation(current_time, initial_activation=0.0, time_to_max_activation=0.3):
    """
    Force-time characteristic: fraction of potential force realised at time t.

    A fixed cosine ramp s(tau) = (1 - cos(pi * tau)) / 2 takes activation from
    0 to 1 over time_to_max_activation. The curve is entered where
    s(tau0) = initial_activation, so starting partly activated reaches full
    activation (time_to_max_activation * (1 - tau0)) earlier than from zero.
    """
    a0 = np.asarray(initial_activation, dtype=float)
    if np.any((a0 < 0.0) | (a0 > 1.0)):
        raise InvalidParameterError('initial_activation', initial_activation, 'must lie in [0, 1]')

    t = np.asarray(current_time, dtype=float)
    t_max = np.asarray(time_to_max_activation, dtype=float)

    tau0 = np.arccos(1.0 - 2.0 * a0) / np.pi
    with np.errstate(divide='ignore', invalid='ignore'):
        tau = np.where(t_max > 0.0, t / np.where(t_max > 0.0, t_max, 1.0) + tau0, 1.0)
    tau = np.clip(tau, 0.0, 1.0)
    activation = (1.0 - np.cos(np.pi * tau)) / 2.0

    # Cosine round-off must not pull the curve below its starting value.
    activation = np.maximum(activation, a0)
    return activation[()] if activation.ndim == 0 else activation


def get_viscous_force(current_velocity, max_force=3000.0, max_velocity=4.0):
    """Force-velocity characteristic as a linear viscous loss k * v, k = F0 / V0."""
    v = np.asarray(current_velocity, dtype=float)
    max_velocity = np.asarray(max_velocity, dtype=float)
    k = np.where(np.isinf(max_velocity), 0.0, np.divide(max_force, max_velocity))
    force = k * v
    return force[()] if force.ndim == 0 else force


def get_velocity_from_external_force(external_force, max_force=3000.0, max_velocity=4.0):
    """
    Velocity reachable against an external resisting force:
      v = (max_force - external_force) * max_velocity / max_force

    Undefined (NaN) where external_force >= max_force.
    """
    f_ext = np.asarray(external_force, dtype=float)
    velocity = np.where(
        f_ext < max_force,
        (np.subtract(max_force, f_ext)) * np.divide(max_velocity, max_force),
        np.nan,
    )
    return velocity[()] if velocity.ndim == 0 else velocity


def get_initial_activation(
    weight: float,
    max_force: float,
    push_off_distance: float,
    decline_rate: float,
    peak_location: float,
) -> float:
    """Activation needed to hold the weight statically at the start of push-off."""
    force_percentage = float(
        get_force_percentage(0.0, push_off_distance, decline_rate, peak_location)
    )
    potential_force = max_force * force_percentage
    if potential_force <= 0.0:
        return math.inf
    return float(weight / potential_force)


def get_generator_forces(
    *,
    current_time: float,
    current_distance: float,
    current_velocity: float,
    generator: ForceGeneratorParams,
    push_off_distance: float,
    initial_activation: float,
    total_mass: float,
    weight: float,
) -> GeneratorForces:
    """
    Forces acting on the mass at one instant.

    The viscous loss is scaled by the same force-length percentage as the
    generated force, so GRF cannot turn negative where the percentage drops
    towards zero.
    """
    force_percentage = float(
        get_force_percentage(
            current_distance,
            push_off_distance,
            generator.decline_rate,
            generator.peak_location,
        )
    )
    activation = float(
        get_activation(current_time, initial_activation, generator.time_to_max_activation)
    )
    potential_force = generator.max_force * force_percentage
    generated_force = activation * potential_force
    viscous_force = float(
        get_viscous_force(current_velocity, generator.max_force, generator.max_velocity)
    )
    grf = generated_force - viscous_force * force_percentage
    propulsive_force = grf - weight

    return GeneratorForces(
        force_percentage=force_percentage,
        activation=activation,
        potential_force=potential_force,
        generated_force=generated_force,
        viscous_force=viscous_force,
        ground_reaction_force=grf,
        propulsive_force=propulsive_force,
        acceleration=propulsive_force / total_mass,
    )
