"""
D2Q9 Obstacle Flow Solver

Single-relaxation-time (BGK) lattice Boltzmann engine over a rectangular
domain with an optional obstacle, configured at construction with a
boundary policy (open channel or closed cavity), a streaming scheme (pull
or push) and a backend (NumPy or Numba). All combinations share one code
path per stage; the backends produce identical field values.

Each `step()` runs to completion: ramp-up, collision, streaming, domain-edge
rules, buffer swap. Parameter and geometry changes are picked up at the
next tick.

Field queries return flattened copies in row-major order,
index = j * width + i, where j counts rows from the bottom (y = 0) and i
counts columns from the inlet side (x = 0).

Numerical divergence (from too high a velocity or too low a viscosity) is
not trapped: NaN/inf simply appear in the field queries. Choosing stable
parameters is the caller's responsibility; `is_diverged()` reports it.
"""

import time

import numpy as np

from .lattice import EX, EY, W, Q
from .equilibrium import compute_equilibrium, compute_equilibrium_fast
from .collision import bgk_collision, bgk_collision_fast
from .streaming import (
    StreamingScheme,
    stream_pull, stream_pull_fast,
    stream_push, stream_push_fast,
)
from .boundary import (
    BoundaryPolicy,
    apply_open_channel_boundaries,
    classify_regions,
    create_cavity_walls,
    create_wall_velocity,
)
from .geometry import Geometry, create_obstacle_mask
from .observables import (
    compute_pressure,
    compute_velocity_magnitude,
    compute_vorticity,
)
from .parameters import (
    DEFAULT_VELOCITY,
    DEFAULT_VISCOSITY,
    RAMP_UP_STEPS,
    RampUpSchedule,
    SimulationParameters,
)


_STREAMERS = {
    (StreamingScheme.PULL, False): stream_pull,
    (StreamingScheme.PULL, True): stream_pull_fast,
    (StreamingScheme.PUSH, False): stream_push,
    (StreamingScheme.PUSH, True): stream_push_fast,
}

_DEFAULT_GEOMETRY = {
    BoundaryPolicy.OPEN_CHANNEL: Geometry.CIRCLE,
    BoundaryPolicy.CLOSED_CAVITY: Geometry.NONE,
}


def _validate_dimension(name, value, minimum):
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    return int(value)


class LBMSolver:
    """
    D2Q9 BGK solver for flow around an obstacle.

    Parameters
    ----------
    width : int
        Number of lattice points in x-direction
    height : int
        Number of lattice points in y-direction
    policy : BoundaryPolicy or str
        Domain-edge regime (default open channel)
    scheme : StreamingScheme or str
        Streaming strategy (default pull)
    geometry : Geometry or str, optional
        Obstacle shape. Defaults to a circle in the open channel and no
        obstacle in the cavity.
    viscosity : float
        Kinematic viscosity (lattice units, > 0)
    velocity : float
        Target inlet (channel) or lid (cavity) velocity
    ramp_up_steps : int
        Ticks over which the driving velocity ramps up from zero
    use_fast : bool
        Use Numba-accelerated kernels (default True)

    Attributes
    ----------
    f : ndarray
        Distribution functions, shape (Q, ny, nx)
    rho : ndarray
        Density field, shape (ny, nx)
    ux, uy : ndarray
        Velocity fields, shape (ny, nx)
    obstacle : ndarray
        Obstacle mask, shape (ny, nx)
    """

    def __init__(self, width, height, policy=BoundaryPolicy.OPEN_CHANNEL,
                 scheme=StreamingScheme.PULL, geometry=None,
                 viscosity=DEFAULT_VISCOSITY, velocity=DEFAULT_VELOCITY,
                 ramp_up_steps=RAMP_UP_STEPS, use_fast=True):
        self.policy = BoundaryPolicy(policy)
        self.scheme = StreamingScheme(scheme)

        minimum = 3 if self.policy is BoundaryPolicy.CLOSED_CAVITY else 2
        self.nx = _validate_dimension("width", width, minimum)
        self.ny = _validate_dimension("height", height, 1)
        if self.policy is BoundaryPolicy.CLOSED_CAVITY:
            _validate_dimension("height", height, minimum)

        self.params = SimulationParameters(viscosity, velocity)
        self.ramp = RampUpSchedule(ramp_up_steps)
        self.use_fast = use_fast

        self._collide = bgk_collision_fast if use_fast else bgk_collision
        self._stream = _STREAMERS[(self.scheme, bool(use_fast))]

        shape = (self.ny, self.nx)

        # Double-buffered distributions
        self.f = np.empty((Q,) + shape, dtype=np.float64)
        self._f_next = np.empty_like(self.f)

        self.rho = np.ones(shape, dtype=np.float64)
        self.ux = np.zeros(shape, dtype=np.float64)
        self.uy = np.zeros(shape, dtype=np.float64)

        if self.policy is BoundaryPolicy.CLOSED_CAVITY:
            self.wall_mask, self.lid_mask = create_cavity_walls(self.nx, self.ny)
        else:
            self.wall_mask = np.zeros(shape, dtype=bool)
            self.lid_mask = np.zeros(shape, dtype=bool)
        self.wall_ux, self.wall_uy = create_wall_velocity(self.lid_mask, 0.0)

        if geometry is None:
            geometry = _DEFAULT_GEOMETRY[self.policy]
        self.geometry = Geometry.from_name(geometry)
        self._install_obstacle(create_obstacle_mask(self.geometry, self.nx, self.ny))

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def _install_obstacle(self, mask):
        self.obstacle = mask
        self.blocked = mask | self.wall_mask | self.lid_mask
        self.regions = classify_regions(self.policy, mask)
        self.reset()

    def reset(self):
        """
        Reinitialize to rest equilibrium under the current geometry.

        Zeroes the ramp-up schedule; viscosity and velocity are kept.
        """
        self.ramp.reset()
        self.time_step = 0
        self.total_time = 0.0

        self.rho[:] = 1.0
        self.ux[:] = 0.0
        self.uy[:] = 0.0
        self.f[:] = W[:, None, None]
        self._f_next[:] = self.f
        self.wall_ux[self.lid_mask] = 0.0

    def initialize_from_fields(self, rho, ux, uy):
        """
        Initialize fluid cells at the equilibrium of given fields.

        Obstacle and wall cells stay at rest equilibrium. Resets the
        ramp-up schedule.

        Parameters
        ----------
        rho : ndarray
            Density field, shape (ny, nx)
        ux : ndarray
            X-velocity field, shape (ny, nx)
        uy : ndarray
            Y-velocity field, shape (ny, nx)
        """
        shape = (self.ny, self.nx)
        fields = []
        for name, field in (("rho", rho), ("ux", ux), ("uy", uy)):
            field = np.asarray(field, dtype=np.float64)
            if field.shape != shape:
                raise ValueError(f"{name} must have shape {shape}, got {field.shape}")
            fields.append(field)

        self.reset()

        fluid = ~self.blocked
        for target, field in zip((self.rho, self.ux, self.uy), fields):
            target[fluid] = field[fluid]

        if self.use_fast:
            f_eq = compute_equilibrium_fast(self.rho, self.ux, self.uy)
        else:
            f_eq = compute_equilibrium(self.rho, self.ux, self.uy)

        self.f[:, fluid] = f_eq[:, fluid]
        self._f_next[:] = self.f

    def set_viscosity(self, viscosity):
        """Set kinematic viscosity; tau and omega are re-derived at once."""
        self.params.viscosity = viscosity

    def set_velocity(self, velocity):
        """Set the target inlet/lid velocity."""
        self.params.velocity = velocity

    def set_geometry(self, geometry):
        """
        Rasterize a new obstacle and reinitialize to rest.

        Raises
        ------
        UnknownGeometryError
            If the shape is not recognized; the solver is left unchanged
        """
        geometry = Geometry.from_name(geometry)
        mask = create_obstacle_mask(geometry, self.nx, self.ny)
        self.geometry = geometry
        self._install_obstacle(mask)

    def set_obstacle_mask(self, mask):
        """
        Install a caller-rasterized obstacle and reinitialize to rest.

        Parameters
        ----------
        mask : ndarray
            Boolean mask (True for solid), shape (ny, nx)
        """
        mask = np.array(mask, dtype=bool)
        if mask.shape != (self.ny, self.nx):
            raise ValueError(
                f"mask must have shape {(self.ny, self.nx)}, got {mask.shape}"
            )
        self.geometry = None
        self._install_obstacle(mask)

    # ------------------------------------------------------------------
    # Time stepping
    # ------------------------------------------------------------------

    def step(self):
        """
        Perform one LBM timestep.

        Returns
        -------
        dt : float
            Time taken for this step (seconds)
        """
        start = time.perf_counter()

        u_drive = self.ramp.advance(self.params.velocity)
        if self.policy is BoundaryPolicy.CLOSED_CAVITY:
            self.wall_ux[self.lid_mask] = u_drive

        # Collision
        self._collide(self.f, self.blocked, self.rho, self.ux, self.uy, self.params.omega)

        # Streaming (with obstacle and wall bounce-back)
        self._stream(self.f, self._f_next, self.blocked, self.wall_ux, self.wall_uy)
        self.f, self._f_next = self._f_next, self.f

        # Domain edges
        if self.policy is BoundaryPolicy.OPEN_CHANNEL:
            apply_open_channel_boundaries(
                self.f, self.rho, self.ux, self.uy, self.obstacle, u_drive
            )

        dt = time.perf_counter() - start
        self.time_step += 1
        self.total_time += dt
        return dt

    def run(self, num_steps, verbose=False, report_interval=100):
        """
        Run simulation for specified number of steps.

        Parameters
        ----------
        num_steps : int
            Number of timesteps to run
        verbose : bool
            Print progress information
        report_interval : int
            Steps between progress reports

        Returns
        -------
        mlups : float
            Performance in Million Lattice Updates Per Second
        """
        start = time.perf_counter()

        for step in range(num_steps):
            self.step()

            if verbose and (step + 1) % report_interval == 0:
                elapsed = time.perf_counter() - start
                mlups = (step + 1) * self.nx * self.ny / elapsed / 1e6
                print(f"Step {step + 1}/{num_steps}, MLUPS: {mlups:.2f}")

        total = time.perf_counter() - start
        mlups = num_steps * self.nx * self.ny / total / 1e6 if total > 0 else 0.0

        if verbose:
            print(f"Completed {num_steps} steps in {total:.2f}s")
            print(f"Performance: {mlups:.2f} MLUPS")
            if self.is_diverged():
                print("Warning: non-finite values in macroscopic fields")

        return mlups

    # ------------------------------------------------------------------
    # Parameters and state
    # ------------------------------------------------------------------

    @property
    def width(self):
        return self.nx

    @property
    def height(self):
        return self.ny

    @property
    def viscosity(self):
        return self.params.viscosity

    @property
    def velocity(self):
        return self.params.velocity

    @property
    def tau(self):
        return self.params.tau

    @property
    def omega(self):
        return self.params.omega

    @property
    def step_count(self):
        """Ramp-up counter; saturates at `ramp_up_steps`."""
        return self.ramp.step_count

    @property
    def ramp_up_steps(self):
        return self.ramp.ramp_up_steps

    @property
    def current_velocity(self):
        return self.ramp.current_velocity

    def is_diverged(self):
        """True if any macroscopic field holds NaN or inf."""
        return not (
            np.all(np.isfinite(self.rho))
            and np.all(np.isfinite(self.ux))
            and np.all(np.isfinite(self.uy))
        )

    # ------------------------------------------------------------------
    # Field queries (flattened, row-major)
    # ------------------------------------------------------------------

    def get_velocity_magnitude(self):
        """Return velocity magnitude field."""
        return compute_velocity_magnitude(self.ux, self.uy).flatten()

    def get_vorticity(self):
        """Return vorticity field; border cells are 0."""
        return compute_vorticity(self.ux, self.uy).flatten()

    def get_pressure(self):
        """Return pressure field, p = rho / 3."""
        return compute_pressure(self.rho).flatten()

    def get_density(self):
        return self.rho.flatten()

    def get_obstacle(self):
        """Return obstacle mask (cavity walls are not included)."""
        return self.obstacle.flatten()

    def get_ux(self):
        return self.ux.flatten()

    def get_uy(self):
        return self.uy.flatten()

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def get_total_mass(self):
        """Return total mass held by fluid cells."""
        return np.sum(self.f[:, ~self.blocked])

    def get_total_momentum(self):
        """Return total momentum held by fluid cells."""
        f_fluid = self.f[:, ~self.blocked]
        mom_x = np.sum(f_fluid * EX[:, None])
        mom_y = np.sum(f_fluid * EY[:, None])
        return mom_x, mom_y

    def get_kinetic_energy(self):
        """Return total kinetic energy of fluid cells."""
        fluid = ~self.blocked
        return 0.5 * np.sum(self.rho[fluid] * (self.ux[fluid]**2 + self.uy[fluid]**2))

    def get_enstrophy(self):
        """Return total enstrophy (integral of vorticity squared)."""
        vorticity = compute_vorticity(self.ux, self.uy)
        return 0.5 * np.sum(vorticity**2)
