"""
Equilibrium Distribution Functions

Maxwell-Boltzmann equilibrium for the D2Q9 lattice, truncated to second
order in velocity:

    f_i^eq = w_i * rho * [1 + 3 (e_i . u) + 4.5 (e_i . u)^2 - 1.5 u^2]

which is the c_s^2 = 1/3 form of

    f_i^eq = w_i * rho * [1 + (e_i . u)/c_s^2 + (e_i . u)^2/(2 c_s^4) - u^2/(2 c_s^2)]

The NumPy and Numba versions evaluate the same expression in the same order,
so both produce identical values.
"""

import numpy as np
from numba import njit, prange
from .lattice import EX, EY, EX_F, EY_F, W, Q


def compute_equilibrium(rho, ux, uy):
    """
    Compute equilibrium distribution for all lattice sites.

    Parameters
    ----------
    rho : ndarray
        Density field, shape (ny, nx)
    ux : ndarray
        X-velocity field, shape (ny, nx)
    uy : ndarray
        Y-velocity field, shape (ny, nx)

    Returns
    -------
    f_eq : ndarray
        Equilibrium distribution, shape (Q, ny, nx)
    """
    ny, nx = rho.shape
    f_eq = np.zeros((Q, ny, nx), dtype=np.float64)

    u_sq = ux * ux + uy * uy

    for k in range(Q):
        eu = EX_F[k] * ux + EY_F[k] * uy
        f_eq[k] = W[k] * rho * (1.0 + 3.0 * eu + 4.5 * eu * eu - 1.5 * u_sq)

    return f_eq


@njit(parallel=True, cache=True)
def compute_equilibrium_numba(rho, ux, uy, f_eq, ex, ey, w):
    """
    Numba-accelerated equilibrium computation.

    Parameters
    ----------
    rho, ux, uy : ndarray
        Macroscopic fields, shape (ny, nx)
    f_eq : ndarray
        Output equilibrium distribution, shape (Q, ny, nx)
    ex, ey : ndarray
        Lattice velocity components (float64)
    w : ndarray
        Lattice weights
    """
    q, ny, nx = f_eq.shape

    for j in prange(ny):
        for i in range(nx):
            rho_ij = rho[j, i]
            ux_ij = ux[j, i]
            uy_ij = uy[j, i]
            u_sq = ux_ij * ux_ij + uy_ij * uy_ij

            for k in range(q):
                eu = ex[k] * ux_ij + ey[k] * uy_ij
                f_eq[k, j, i] = w[k] * rho_ij * (1.0 + 3.0 * eu + 4.5 * eu * eu - 1.5 * u_sq)


def compute_equilibrium_fast(rho, ux, uy):
    """
    Fast equilibrium computation using Numba.

    Same contract as `compute_equilibrium`.
    """
    ny, nx = rho.shape
    f_eq = np.zeros((Q, ny, nx), dtype=np.float64)
    compute_equilibrium_numba(
        np.ascontiguousarray(rho, dtype=np.float64),
        np.ascontiguousarray(ux, dtype=np.float64),
        np.ascontiguousarray(uy, dtype=np.float64),
        f_eq, EX_F, EY_F, W,
    )
    return f_eq


def equilibrium_single_site(rho, ux, uy):
    """
    Compute equilibrium distribution for a single lattice site.

    Used by the velocity inlet and for testing.

    Parameters
    ----------
    rho : float
        Density at the site
    ux : float
        X-velocity at the site
    uy : float
        Y-velocity at the site

    Returns
    -------
    f_eq : ndarray
        Equilibrium distribution, shape (Q,)
    """
    f_eq = np.zeros(Q, dtype=np.float64)
    u_sq = ux * ux + uy * uy

    for k in range(Q):
        eu = EX[k] * ux + EY[k] * uy
        f_eq[k] = W[k] * rho * (1.0 + 3.0 * eu + 4.5 * eu * eu - 1.5 * u_sq)

    return f_eq
