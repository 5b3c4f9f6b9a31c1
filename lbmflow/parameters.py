"""
Simulation Parameters

Flow parameters and the inlet/lid velocity ramp-up schedule.

The relaxation rate is always derived from the current viscosity:
    tau = 3 nu + 0.5,  omega = 1 / tau
"""

import math
import warnings

from .collision import tau_from_viscosity, validate_tau


DEFAULT_VISCOSITY = 0.02
DEFAULT_VELOCITY = 0.1
RAMP_UP_STEPS = 500

# Lattice Mach number above which compressibility errors dominate
MAX_MACH = 0.3


class SimulationParameters:
    """
    Kinematic viscosity and target driving velocity.

    Parameters
    ----------
    viscosity : float
        Kinematic viscosity nu (lattice units, > 0)
    velocity : float
        Target inlet/lid velocity u0 (lattice units)

    Attributes
    ----------
    tau : float
        Relaxation time, re-derived whenever `viscosity` is set
    omega : float
        Relaxation frequency (1/tau)
    """

    def __init__(self, viscosity=DEFAULT_VISCOSITY, velocity=DEFAULT_VELOCITY):
        self.viscosity = viscosity
        self.velocity = velocity

    @property
    def viscosity(self):
        return self._viscosity

    @viscosity.setter
    def viscosity(self, nu):
        nu = float(nu)
        if not math.isfinite(nu) or nu <= 0.0:
            raise ValueError(f"viscosity must be finite and > 0, got {nu}")

        tau = validate_tau(tau_from_viscosity(nu))
        self._viscosity = nu
        self._tau = tau
        self._omega = 1.0 / tau

    @property
    def velocity(self):
        return self._velocity

    @velocity.setter
    def velocity(self, u0):
        u0 = float(u0)
        if not math.isfinite(u0):
            raise ValueError(f"velocity must be finite, got {u0}")

        mach = abs(u0) * math.sqrt(3.0)
        if mach > MAX_MACH:
            warnings.warn(
                f"velocity = {u0} gives lattice Mach number {mach:.3f} > {MAX_MACH}; "
                f"expect compressibility errors or divergence."
            )
        self._velocity = u0

    @property
    def tau(self):
        return self._tau

    @property
    def omega(self):
        return self._omega

    def __repr__(self):
        return (
            f"SimulationParameters(viscosity={self._viscosity}, "
            f"velocity={self._velocity}, tau={self._tau:.4f})"
        )


class RampUpSchedule:
    """
    Linear ramp of the driving velocity from zero to its target.

    Each `advance` counts one tick; after `ramp_up_steps` ticks the
    current velocity equals the target and stays pinned to it.

    Parameters
    ----------
    ramp_up_steps : int
        Number of ticks over which to ramp (0 disables the ramp)
    """

    def __init__(self, ramp_up_steps=RAMP_UP_STEPS):
        if ramp_up_steps < 0:
            raise ValueError(f"ramp_up_steps must be >= 0, got {ramp_up_steps}")
        self.ramp_up_steps = int(ramp_up_steps)
        self.step_count = 0
        self.current_velocity = 0.0

    def reset(self):
        self.step_count = 0
        self.current_velocity = 0.0

    def advance(self, target_velocity):
        """
        Count one tick and return the velocity to drive it with.
        """
        if self.step_count < self.ramp_up_steps:
            self.step_count += 1

        if self.step_count >= self.ramp_up_steps:
            self.current_velocity = target_velocity
        else:
            self.current_velocity = target_velocity * self.step_count / self.ramp_up_steps
        return self.current_velocity
