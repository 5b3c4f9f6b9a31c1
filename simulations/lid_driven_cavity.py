"""
Lid-Driven Cavity Simulation

Classic benchmark case for the closed-cavity policy:
- Three stationary walls (no-slip bounce-back)
- One moving wall (lid) sliding in +x along the top row

The walls occupy the outer ring of lattice nodes and bounce-back places
the no-slip surface halfway between the wall row and the first fluid row,
so the effective cavity size is L = n - 2.

Reference data from Ghia et al. (1982) "High-Re Solutions for
Incompressible Flow Using the Navier-Stokes Equations and a
Multigrid Method", Journal of Computational Physics, 48, 387-411.
"""

import argparse
import time
import sys
import os

import numpy as np
import matplotlib.pyplot as plt

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from lbmflow import BoundaryPolicy, Geometry, LBMSolver
from lbmflow.observables import compute_velocity_magnitude, compute_vorticity


# Ghia et al. (1982) centerline velocities at Re = 100
GHIA_DATA = {
    100: {
        # Vertical centerline: u_x vs y
        'y': np.array([0.0000, 0.0547, 0.0625, 0.0703, 0.1016, 0.1719,
                       0.2813, 0.4531, 0.5000, 0.6172, 0.7344, 0.8516,
                       0.9531, 0.9609, 0.9688, 0.9766, 1.0000]),
        'ux': np.array([0.00000, -0.03717, -0.04192, -0.04775, -0.06434, -0.10150,
                        -0.15662, -0.21090, -0.20581, -0.13641, 0.00332, 0.23151,
                        0.68717, 0.73722, 0.78871, 0.84123, 1.00000]),
        # Horizontal centerline: u_y vs x
        'x': np.array([0.0000, 0.0625, 0.0703, 0.0781, 0.0938, 0.1563,
                       0.2266, 0.2344, 0.5000, 0.8047, 0.8594, 0.9063,
                       0.9453, 0.9531, 0.9609, 0.9688, 1.0000]),
        'uy': np.array([0.00000, 0.09233, 0.10091, 0.10890, 0.12317, 0.16077,
                        0.17507, 0.17527, 0.05454, -0.24533, -0.22445, -0.16914,
                        -0.10313, -0.08864, -0.07391, -0.05906, 0.00000])
    },
}


class LidDrivenCavity:
    """
    Lid-driven cavity case built on the closed-cavity solver.

    Parameters
    ----------
    n : int
        Grid size (n x n nodes, including the wall ring)
    re : float
        Reynolds number (Re = U_lid * L / nu)
    u_lid : float
        Lid velocity (default 0.05 in lattice units for stability)
    scheme : str
        Streaming scheme, "pull" or "push"
    use_fast : bool
        Use the Numba backend
    ramp_up_steps : int
        Ticks over which the lid accelerates from rest
    """

    def __init__(self, n, re, u_lid=0.05, scheme="pull", use_fast=True,
                 ramp_up_steps=500):
        self.n = n
        self.re = re
        self.u_lid = u_lid

        # Re = U * L / nu => nu = U * L / Re
        self.L = n - 2
        self.nu = u_lid * self.L / re

        self.solver = LBMSolver(
            n, n,
            policy=BoundaryPolicy.CLOSED_CAVITY,
            scheme=scheme,
            geometry=Geometry.NONE,
            viscosity=self.nu,
            velocity=u_lid,
            ramp_up_steps=ramp_up_steps,
            use_fast=use_fast,
        )

    @property
    def ux(self):
        return self.solver.ux

    @property
    def uy(self):
        return self.solver.uy

    @property
    def tau(self):
        return self.solver.tau

    @property
    def time_step(self):
        return self.solver.time_step

    def run(self, num_steps, check_interval=1000, tolerance=1e-6, verbose=True):
        """
        Run simulation until steady state or max steps.

        Parameters
        ----------
        num_steps : int
            Maximum number of timesteps
        check_interval : int
            Steps between convergence checks
        tolerance : float
            Convergence tolerance on the max velocity change, relative to U_lid
        verbose : bool
            Print progress

        Returns
        -------
        converged : bool
            Whether simulation converged
        """
        ux_old = self.ux.copy()
        uy_old = self.uy.copy()

        # Don't check convergence before the lid is up to speed
        min_steps_before_convergence = max(check_interval * 3, self.solver.ramp_up_steps)

        for step in range(num_steps):
            self.solver.step()

            if (step + 1) % check_interval == 0:
                du = np.sqrt((self.ux - ux_old)**2 + (self.uy - uy_old)**2)
                max_change = np.max(du) / self.u_lid

                ux_old = self.ux.copy()
                uy_old = self.uy.copy()

                if verbose:
                    print(f"Step {step + 1}: max velocity change = {max_change:.2e}")

                if self.solver.is_diverged():
                    if verbose:
                        print(f"Diverged at step {step + 1}")
                    return False

                if step + 1 >= min_steps_before_convergence and max_change < tolerance:
                    if verbose:
                        print(f"Converged at step {step + 1}")
                    return True

        if verbose:
            print(f"Did not converge after {num_steps} steps")
        return False

    def get_centerline_profiles(self):
        """
        Get velocity profiles along centerlines for comparison with Ghia.

        Fluid nodes sit at (j - 0.5) / L; the wall values (0 at the
        stationary walls, 1 at the lid) are appended at both ends.

        Returns
        -------
        y_norm : ndarray
            Normalized y-coordinates (0 to 1)
        ux_centerline : ndarray
            u_x along vertical centerline, normalized by u_lid
        x_norm : ndarray
            Normalized x-coordinates (0 to 1)
        uy_centerline : ndarray
            u_y along horizontal centerline, normalized by u_lid
        """
        n = self.n
        center = n // 2
        positions = (np.arange(1, n - 1) - 0.5) / self.L
        norm = np.concatenate(([0.0], positions, [1.0]))

        ux_centerline = np.concatenate(
            ([0.0], self.ux[1:-1, center] / self.u_lid, [1.0])
        )
        uy_centerline = np.concatenate(
            ([0.0], self.uy[center, 1:-1] / self.u_lid, [0.0])
        )

        return norm, ux_centerline, norm.copy(), uy_centerline

    def compare_with_ghia(self):
        """
        Compare with Ghia et al. reference data.

        Returns
        -------
        ux_error : float
            RMS error for u_x profile
        uy_error : float
            RMS error for u_y profile
        """
        if self.re not in GHIA_DATA:
            print(f"No Ghia data for Re = {self.re}")
            return None, None

        ghia = GHIA_DATA[self.re]
        y_norm, ux_profile, x_norm, uy_profile = self.get_centerline_profiles()

        ux_interp = np.interp(ghia['y'], y_norm, ux_profile)
        uy_interp = np.interp(ghia['x'], x_norm, uy_profile)

        ux_error = np.sqrt(np.mean((ux_interp - ghia['ux'])**2))
        uy_error = np.sqrt(np.mean((uy_interp - ghia['uy'])**2))

        return ux_error, uy_error

    def plot_results(self, save_path=None, show=True):
        """
        Plot velocity field and comparison with Ghia data.

        Parameters
        ----------
        save_path : str, optional
            Path to save figure
        show : bool
            Open an interactive window
        """
        fig, axes = plt.subplots(2, 2, figsize=(12, 10))

        u_mag = compute_velocity_magnitude(self.ux, self.uy)
        im1 = axes[0, 0].imshow(u_mag / self.u_lid, origin='lower',
                                cmap='viridis', aspect='equal')
        axes[0, 0].set_title('Velocity Magnitude')
        plt.colorbar(im1, ax=axes[0, 0], label='|u|/U_lid')

        vorticity = compute_vorticity(self.ux, self.uy)
        vmax = np.percentile(np.abs(vorticity), 95)
        im2 = axes[0, 1].imshow(vorticity, origin='lower',
                                cmap='RdBu_r', vmin=-vmax, vmax=vmax, aspect='equal')
        axes[0, 1].set_title('Vorticity')
        plt.colorbar(im2, ax=axes[0, 1], label='ω')

        y_norm, ux_profile, x_norm, uy_profile = self.get_centerline_profiles()
        ghia = GHIA_DATA.get(self.re)

        axes[1, 0].plot(ux_profile, y_norm, 'b-', linewidth=2, label='LBM')
        if ghia is not None:
            axes[1, 0].plot(ghia['ux'], ghia['y'], 'ro', markersize=6, label='Ghia et al.')
        axes[1, 0].set_xlabel('$u_x / U_{lid}$')
        axes[1, 0].set_ylabel('$y / L$')
        axes[1, 0].set_title('Vertical Centerline')
        axes[1, 0].legend()
        axes[1, 0].grid(True, alpha=0.3)

        axes[1, 1].plot(x_norm, uy_profile, 'b-', linewidth=2, label='LBM')
        if ghia is not None:
            axes[1, 1].plot(ghia['x'], ghia['uy'], 'ro', markersize=6, label='Ghia et al.')
        axes[1, 1].set_xlabel('$x / L$')
        axes[1, 1].set_ylabel('$u_y / U_{lid}$')
        axes[1, 1].set_title('Horizontal Centerline')
        axes[1, 1].legend()
        axes[1, 1].grid(True, alpha=0.3)

        plt.suptitle(f'Lid-Driven Cavity, Re = {self.re}, Grid = {self.n}×{self.n}')
        plt.tight_layout()

        if save_path:
            plt.savefig(save_path, dpi=150, bbox_inches='tight')
            print(f"Saved figure to {save_path}")

        if show:
            plt.show()

        return fig


def run_lid_driven_cavity(n=129, re=100, max_steps=100000, scheme="pull",
                          use_fast=True, verbose=True):
    """
    Run lid-driven cavity simulation.

    Parameters
    ----------
    n : int
        Grid size
    re : float
        Reynolds number
    max_steps : int
        Maximum simulation steps
    scheme : str
        Streaming scheme, "pull" or "push"
    use_fast : bool
        Use the Numba backend
    verbose : bool
        Print progress

    Returns
    -------
    case : LidDrivenCavity
        Case object with results
    """
    if verbose:
        print("Lid-Driven Cavity Simulation")
        print("=" * 50)
        print(f"Grid: {n} x {n}")
        print(f"Reynolds number: {re}")
        print(f"Streaming: {scheme}, backend: {'numba' if use_fast else 'numpy'}")

    case = LidDrivenCavity(n, re, scheme=scheme, use_fast=use_fast)

    if verbose:
        print(f"Tau: {case.tau:.4f}")
        print(f"Viscosity: {case.nu:.6f}")
        print()

    start = time.perf_counter()
    case.run(max_steps, check_interval=5000, tolerance=1e-5, verbose=verbose)
    elapsed = time.perf_counter() - start

    if verbose:
        print()
        print(f"Simulation time: {elapsed:.2f}s")
        print(f"Steps: {case.time_step}")

        if re in GHIA_DATA:
            ux_err, uy_err = case.compare_with_ghia()
            print(f"RMS Error vs Ghia: ux = {ux_err:.4f}, uy = {uy_err:.4f}")

    return case


def main():
    parser = argparse.ArgumentParser(description="Lid-driven cavity simulation")
    parser.add_argument("--n", type=int, default=129, help="Grid size")
    parser.add_argument("--re", type=float, default=100, help="Reynolds number")
    parser.add_argument("--steps", type=int, default=100000, help="Maximum steps")
    parser.add_argument("--scheme", choices=["pull", "push"], default="pull")
    parser.add_argument("--numpy", action="store_true", help="Use the NumPy backend")
    parser.add_argument("--save", type=str, default=None, help="Save figure to path")
    parser.add_argument("--no-show", action="store_true", help="Do not open a window")
    args = parser.parse_args()

    re = int(args.re) if float(args.re).is_integer() else args.re
    case = run_lid_driven_cavity(
        n=args.n, re=re, max_steps=args.steps,
        scheme=args.scheme, use_fast=not args.numpy,
    )
    case.plot_results(save_path=args.save, show=not args.no_show)


if __name__ == "__main__":
    main()
