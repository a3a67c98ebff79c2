"""Error types raised by the jump model, the engine and the fitting layer."""

from __future__ import annotations


class VjsimError(Exception):
    """Base class for all vjsim errors."""


class InvalidParameterError(VjsimError, ValueError):
    def __init__(self, field: str, value, reason: str):
        self.field = field
        self.value = value
        super().__init__(f'Invalid {field}={value!r}: {reason}')


class NonConvergenceError(VjsimError, RuntimeError):
    """Push-off did not reach take-off."""

    def __init__(self, reason: str, *, time: float, distance: float, velocity: float):
        self.time = time
        self.distance = distance
        self.velocity = velocity
        super().__init__(
            f'Jump not achieved: {reason} '
            f'(t={time:.4f} s, d={distance:.4f} m, v={velocity:.4f} m/s)'
        )


class NoRealRootError(VjsimError, ValueError):
    """Fitted polynomial has no admissible real root."""
