"""
Macroscopic Observable Extraction

Compute density, velocity, and derived quantities from distributions.

In LBM, macroscopic quantities are moments of the distribution function:
    - Density (0th moment): rho = sum_i(f_i)
    - Momentum (1st moment): rho*u = sum_i(f_i * e_i)

Moments are accumulated sequentially in direction order, matching the
compiled collision kernel. Division by rho is not guarded: a collapsed density
yields NaN/inf, which is the solver's documented diverged state.
"""

import numpy as np
from .lattice import EX_F, EY_F, CS2, Q


def compute_density(f):
    """
    Compute density field from distribution functions.

    Parameters
    ----------
    f : ndarray
        Distribution functions, shape (Q, ny, nx)

    Returns
    -------
    rho : ndarray
        Density field, shape (ny, nx)
    """
    rho = np.zeros(f.shape[1:], dtype=np.float64)
    for k in range(Q):
        rho += f[k]
    return rho


def compute_velocity(f, rho=None):
    """
    Compute velocity field from distribution functions.

    rho * u = sum_i(f_i * e_i)

    Parameters
    ----------
    f : ndarray
        Distribution functions, shape (Q, ny, nx)
    rho : ndarray, optional
        Density field, shape (ny, nx). If None, computed from f.

    Returns
    -------
    ux : ndarray
        X-velocity field, shape (ny, nx)
    uy : ndarray
        Y-velocity field, shape (ny, nx)
    """
    if rho is None:
        rho = compute_density(f)

    rho_ux = np.zeros(f.shape[1:], dtype=np.float64)
    rho_uy = np.zeros(f.shape[1:], dtype=np.float64)

    for k in range(Q):
        rho_ux += f[k] * EX_F[k]
        rho_uy += f[k] * EY_F[k]

    with np.errstate(divide='ignore', invalid='ignore'):
        ux = rho_ux / rho
        uy = rho_uy / rho

    return ux, uy


def compute_macroscopic(f):
    """
    Compute all macroscopic quantities from distribution functions.

    Returns
    -------
    rho, ux, uy : ndarray
        Density and velocity fields, shape (ny, nx)
    """
    rho = compute_density(f)
    ux, uy = compute_velocity(f, rho)
    return rho, ux, uy


def compute_vorticity(ux, uy, dx=1.0):
    """
    Compute vorticity field using central differences.

    omega = du_y/dx - du_x/dy

    The stencil needs both neighbours, so every border cell is reported
    as 0.0.

    Parameters
    ----------
    ux : ndarray
        X-velocity field, shape (ny, nx)
    uy : ndarray
        Y-velocity field, shape (ny, nx)
    dx : float
        Grid spacing (default 1.0 in lattice units)

    Returns
    -------
    vorticity : ndarray
        Vorticity field, shape (ny, nx)
    """
    vorticity = np.zeros(ux.shape, dtype=np.float64)

    if ux.shape[0] < 3 or ux.shape[1] < 3:
        return vorticity

    duy_dx = (uy[1:-1, 2:] - uy[1:-1, :-2]) / (2.0 * dx)
    dux_dy = (ux[2:, 1:-1] - ux[:-2, 1:-1]) / (2.0 * dx)
    vorticity[1:-1, 1:-1] = duy_dx - dux_dy

    return vorticity


def compute_pressure(rho, cs2=CS2):
    """
    Compute pressure field from density.

    LBM equation of state: p = rho * c_s^2
    """
    return rho * cs2


def compute_velocity_magnitude(ux, uy):
    """
    Compute velocity magnitude field.

    |u| = sqrt(ux^2 + uy^2)
    """
    return np.sqrt(ux * ux + uy * uy)
