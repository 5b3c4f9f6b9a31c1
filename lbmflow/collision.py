"""
Collision Operator

BGK collision for LBM.

The collision step models molecular interactions and drives the distribution
toward equilibrium. The relaxation time tau controls the viscosity:

    nu = c_s^2 * (tau - 0.5) * dt

where c_s^2 = 1/3 for D2Q9 and dt = 1 in lattice units, i.e. tau = 3 nu + 0.5.

Stability requires tau > 0.5 (nu > 0).

Blocked cells (obstacles and cavity walls) are skipped entirely: neither
their populations nor their macroscopic fields are touched here.
"""

import warnings

import numpy as np
from numba import njit, prange
from .lattice import EX_F, EY_F, W, CS2, Q
from .equilibrium import compute_equilibrium
from .observables import compute_macroscopic


def tau_from_viscosity(nu, dt=1.0, cs2=CS2):
    """
    Compute relaxation time from kinematic viscosity.

    tau = nu / (c_s^2 * dt) + 0.5

    Parameters
    ----------
    nu : float
        Kinematic viscosity
    dt : float
        Time step (default 1.0 in lattice units)
    cs2 : float
        Sound speed squared (default 1/3)

    Returns
    -------
    tau : float
        Relaxation time
    """
    return nu / (cs2 * dt) + 0.5


def viscosity_from_tau(tau, dt=1.0, cs2=CS2):
    """
    Compute kinematic viscosity from relaxation time.

    nu = c_s^2 * (tau - 0.5) * dt

    Raises
    ------
    ValueError
        If tau <= 0.5
    """
    if tau <= 0.5:
        raise ValueError(f"tau must be > 0.5 for stability, got {tau}")
    return cs2 * (tau - 0.5) * dt


def validate_tau(tau, name="tau"):
    """
    Validate that relaxation time is in stable range.

    Raises
    ------
    ValueError
        If tau <= 0.5

    Returns
    -------
    tau : float
        Validated tau value
    """
    if tau <= 0.5:
        raise ValueError(
            f"{name} must be > 0.5 for stability (got {tau}). "
            f"This corresponds to nu > 0."
        )
    if tau < 0.51:
        warnings.warn(
            f"{name} = {tau} is very close to the stability limit 0.5; "
            f"the simulation may diverge."
        )
    return tau


def bgk_collision(f, blocked, rho, ux, uy, omega):
    """
    BGK (Bhatnagar-Gross-Krook) collision, in place.

    f_out = f + omega * (f_eq - f)

    Parameters
    ----------
    f : ndarray
        Distribution functions, shape (Q, ny, nx). Modified in place.
    blocked : ndarray
        Boolean mask of cells excluded from collision, shape (ny, nx)
    rho, ux, uy : ndarray
        Macroscopic fields, shape (ny, nx). Updated at fluid cells only.
    omega : float
        Relaxation frequency (1/tau)
    """
    fluid = ~blocked

    rho_all, ux_all, uy_all = compute_macroscopic(f)
    f_eq = compute_equilibrium(rho_all, ux_all, uy_all)

    rho[fluid] = rho_all[fluid]
    ux[fluid] = ux_all[fluid]
    uy[fluid] = uy_all[fluid]

    for k in range(Q):
        f_k = f[k]
        f_k[fluid] = f_k[fluid] + omega * (f_eq[k][fluid] - f_k[fluid])


@njit(parallel=True, cache=True, error_model='numpy')
def bgk_collision_numba(f, blocked, rho, ux, uy, omega, ex, ey, w):
    """
    Numba-accelerated BGK collision, in place.

    Parameters
    ----------
    f : ndarray
        Distribution functions, shape (Q, ny, nx)
    blocked : ndarray
        Boolean mask of cells excluded from collision, shape (ny, nx)
    rho, ux, uy : ndarray
        Macroscopic fields, written at fluid cells
    omega : float
        Relaxation frequency (1/tau)
    ex, ey : ndarray
        Lattice velocity components (float64)
    w : ndarray
        Lattice weights
    """
    q, ny, nx = f.shape

    for j in prange(ny):
        for i in range(nx):
            if blocked[j, i]:
                continue

            rho_local = 0.0
            rho_ux = 0.0
            rho_uy = 0.0
            for k in range(q):
                f_k = f[k, j, i]
                rho_local += f_k
                rho_ux += f_k * ex[k]
                rho_uy += f_k * ey[k]

            ux_local = rho_ux / rho_local
            uy_local = rho_uy / rho_local

            rho[j, i] = rho_local
            ux[j, i] = ux_local
            uy[j, i] = uy_local

            u_sq = ux_local * ux_local + uy_local * uy_local
            for k in range(q):
                eu = ex[k] * ux_local + ey[k] * uy_local
                f_eq = w[k] * rho_local * (1.0 + 3.0 * eu + 4.5 * eu * eu - 1.5 * u_sq)
                f[k, j, i] = f[k, j, i] + omega * (f_eq - f[k, j, i])


def bgk_collision_fast(f, blocked, rho, ux, uy, omega):
    """
    Numba-accelerated BGK collision.

    Same contract as `bgk_collision`.
    """
    bgk_collision_numba(f, blocked, rho, ux, uy, omega, EX_F, EY_F, W)
