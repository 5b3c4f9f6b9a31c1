"""
Boundary Condition Handlers

Implements the domain-edge rules for the two supported boundary policies:

- Open channel: equilibrium velocity inlet (left), zero-gradient outlet
  (right), free-slip walls (top and bottom)
- Closed cavity: no-slip walls on three sides and a moving lid on top

Bounce-back at obstacles and cavity walls happens link by link during
streaming (see `streaming`); this module builds the masks and wall
velocities it needs and applies the post-streaming edge rules.
"""

from enum import Enum

import numpy as np
from .lattice import Q
from .equilibrium import equilibrium_single_site


class BoundaryPolicy(Enum):
    """Domain-edge regime, selected once at solver construction."""
    OPEN_CHANNEL = "open_channel"
    CLOSED_CAVITY = "closed_cavity"


class RegionKind(Enum):
    """Role of a cell; static once the geometry is generated."""
    INTERIOR_FLUID = 0
    INLET = 1
    OUTLET = 2
    FREE_SLIP_WALL = 3
    NO_SLIP_WALL = 4
    MOVING_LID = 5
    OBSTACLE_SOLID = 6


# Free-slip reflection pairs: vertical, NE <-> SE, NW <-> SW
FREE_SLIP_PAIRS = ((2, 4), (5, 8), (6, 7))


def create_cavity_walls(nx, ny):
    """
    Create masks for the closed cavity.

    The cavity has:
    - Bottom wall at y=0 (no-slip)
    - Left wall at x=0 (no-slip)
    - Right wall at x=nx-1 (no-slip)
    - Moving lid at y=ny-1, corners excluded (corners are stationary)

    Parameters
    ----------
    nx, ny : int
        Grid dimensions

    Returns
    -------
    wall_mask : ndarray
        Boolean mask for the stationary walls, shape (ny, nx)
    lid_mask : ndarray
        Boolean mask for the moving lid, shape (ny, nx)
    """
    wall_mask = np.zeros((ny, nx), dtype=bool)
    wall_mask[0, :] = True    # Bottom wall
    wall_mask[:, 0] = True    # Left wall
    wall_mask[:, -1] = True   # Right wall

    lid_mask = np.zeros((ny, nx), dtype=bool)
    lid_mask[-1, 1:-1] = True

    return wall_mask, lid_mask


def create_wall_velocity(lid_mask, lid_velocity):
    """
    Velocity field of the blocked cells: (lid_velocity, 0) on the lid,
    zero elsewhere.

    Returns
    -------
    wall_ux, wall_uy : ndarray
        Shape of `lid_mask`
    """
    wall_ux = np.where(lid_mask, lid_velocity, 0.0).astype(np.float64)
    wall_uy = np.zeros(lid_mask.shape, dtype=np.float64)
    return wall_ux, wall_uy


def classify_regions(policy, obstacle):
    """
    Assign every cell its region for the given policy.

    Obstacle cells take precedence over edge regions. Under the open
    channel, inlet and outlet columns take precedence over the free-slip
    rows.

    Parameters
    ----------
    policy : BoundaryPolicy
    obstacle : ndarray
        Boolean obstacle mask, shape (ny, nx)

    Returns
    -------
    regions : ndarray
        Integer array of `RegionKind` values, shape (ny, nx)
    """
    ny, nx = obstacle.shape
    regions = np.full((ny, nx), RegionKind.INTERIOR_FLUID.value, dtype=np.int8)

    if policy is BoundaryPolicy.OPEN_CHANNEL:
        regions[0, :] = RegionKind.FREE_SLIP_WALL.value
        regions[-1, :] = RegionKind.FREE_SLIP_WALL.value
        regions[:, -1] = RegionKind.OUTLET.value
        regions[:, 0] = RegionKind.INLET.value
    elif policy is BoundaryPolicy.CLOSED_CAVITY:
        wall_mask, lid_mask = create_cavity_walls(nx, ny)
        regions[wall_mask] = RegionKind.NO_SLIP_WALL.value
        regions[lid_mask] = RegionKind.MOVING_LID.value
    else:
        raise ValueError(f"Unknown boundary policy: {policy!r}")

    regions[obstacle] = RegionKind.OBSTACLE_SOLID.value
    return regions


def apply_velocity_inlet(f, rho, ux, uy, obstacle, u_in):
    """
    Equilibrium velocity inlet on the left column (x=0).

    Overwrites all populations with f_eq(rho=1, u_in, 0) and sets the
    column's macroscopic fields to the same values.
    """
    f_in = equilibrium_single_site(1.0, u_in, 0.0)
    open_rows = ~obstacle[:, 0]

    for k in range(Q):
        f[k, open_rows, 0] = f_in[k]

    rho[open_rows, 0] = 1.0
    ux[open_rows, 0] = u_in
    uy[open_rows, 0] = 0.0


def apply_zero_gradient_outlet(f, obstacle):
    """Zero-gradient outlet: copy column nx-2 into column nx-1."""
    open_rows = ~obstacle[:, -1]
    f[:, open_rows, -1] = f[:, open_rows, -2]


def apply_free_slip_walls(f, obstacle):
    """
    Free-slip (specular) walls on the bottom and top rows.

    Only the populations with a vertical component are reflected; the
    horizontal component is preserved.
    """
    for row in (0, -1):
        open_cols = ~obstacle[row, :]
        for a, b in FREE_SLIP_PAIRS:
            f_a = f[a, row, open_cols].copy()
            f[a, row, open_cols] = f[b, row, open_cols]
            f[b, row, open_cols] = f_a
        if f.shape[1] == 1:
            break


def apply_open_channel_boundaries(f, rho, ux, uy, obstacle, u_in):
    """
    Apply the open-channel edge rules after streaming.

    Order: inlet, outlet, free-slip walls.

    Parameters
    ----------
    f : ndarray
        Post-streaming distribution, shape (Q, ny, nx). Modified in place.
    rho, ux, uy : ndarray
        Macroscopic fields; the inlet column is updated
    obstacle : ndarray
        Boolean obstacle mask; obstacle cells are left untouched
    u_in : float
        Current inlet velocity
    """
    apply_velocity_inlet(f, rho, ux, uy, obstacle, u_in)
    apply_zero_gradient_outlet(f, obstacle)
    apply_free_slip_walls(f, obstacle)
