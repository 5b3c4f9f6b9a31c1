"""
Obstacle Channel Flow Simulation

Flow past a named obstacle in the open channel:
- Equilibrium velocity inlet on the left column
- Zero-gradient outlet on the right column
- Free-slip top and bottom walls
- Link-wise bounce-back on the obstacle

Forces are estimated with a control-volume momentum balance between a
section just behind the inlet and one ahead of the outlet. At Re > ~47 a
circle sheds a Karman vortex street and the lift signal gives the
Strouhal number (St ~ 0.2 for Re = 100-1000).
"""

import argparse
import time
import sys
import os

import numpy as np
import matplotlib.pyplot as plt

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from lbmflow import Geometry, LBMSolver


class ChannelFlow:
    """
    Open-channel case built on the solver's field query interface.

    Parameters
    ----------
    nx, ny : int
        Domain size (nx = length, ny = height)
    geometry : str or Geometry
        Obstacle shape
    viscosity : float
        Kinematic viscosity (lattice units)
    velocity : float
        Target inlet velocity (lattice units)
    scheme : str
        Streaming scheme, "pull" or "push"
    use_fast : bool
        Use the Numba backend
    """

    def __init__(self, nx, ny, geometry="circle", viscosity=0.02, velocity=0.1,
                 scheme="pull", use_fast=True):
        self.solver = LBMSolver(
            nx, ny,
            scheme=scheme,
            geometry=geometry,
            viscosity=viscosity,
            velocity=velocity,
            use_fast=use_fast,
        )
        self.nx = nx
        self.ny = ny

        # Characteristic length: frontal height of the obstacle
        rows = np.where(self.solver.obstacle.any(axis=1))[0]
        self.length = float(rows.max() - rows.min() + 1) if rows.size else 1.0

        self.force_history = []
        self.lift_history = []
        self.time_history = []

    @property
    def reynolds(self):
        return self.solver.velocity * self.length / self.solver.viscosity

    def _field(self, values):
        return values.reshape(self.ny, self.nx)

    def compute_forces(self):
        """
        Control-volume force on the obstacle.

        x-momentum flux is rho*u*u + p with p = rho/3.

        Returns
        -------
        F_x, F_y : float
            Drag and lift forces
        """
        rho = self._field(self.solver.get_density())
        ux = self._field(self.solver.get_ux())
        uy = self._field(self.solver.get_uy())
        pressure = self._field(self.solver.get_pressure())

        inlet_x = min(5, self.nx - 1)
        outlet_x = max(self.nx - 20, inlet_x)

        flux_in_x = np.sum(rho[:, inlet_x] * ux[:, inlet_x]**2 + pressure[:, inlet_x])
        flux_out_x = np.sum(rho[:, outlet_x] * ux[:, outlet_x]**2 + pressure[:, outlet_x])

        flux_in_y = np.sum(rho[:, inlet_x] * ux[:, inlet_x] * uy[:, inlet_x])
        flux_out_y = np.sum(rho[:, outlet_x] * ux[:, outlet_x] * uy[:, outlet_x])

        return flux_in_x - flux_out_x, flux_in_y - flux_out_y

    def force_coefficient(self, force):
        """C = F / (0.5 * rho * U^2 * L)"""
        return force / (0.5 * self.solver.velocity**2 * self.length)

    def run(self, num_steps, measure_interval=100, verbose=True):
        """
        Run simulation, sampling forces every `measure_interval` steps.

        Returns
        -------
        results : dict
            C_D, C_D_std, C_L_rms, St
        """
        start_time = time.perf_counter()

        for step in range(num_steps):
            self.solver.step()

            if (step + 1) % measure_interval == 0:
                F_x, F_y = self.compute_forces()
                self.force_history.append(F_x)
                self.lift_history.append(F_y)
                self.time_history.append(self.solver.time_step)

                if verbose and (step + 1) % (measure_interval * 10) == 0:
                    print(f"Step {step + 1}: C_D = {self.force_coefficient(F_x):.4f}, "
                          f"C_L = {self.force_coefficient(F_y):.4f}, "
                          f"u_in = {self.solver.current_velocity:.4f}")

        elapsed = time.perf_counter() - start_time
        mlups = num_steps * self.nx * self.ny / elapsed / 1e6 if elapsed > 0 else 0.0

        if verbose:
            print(f"\nCompleted {num_steps} steps in {elapsed:.2f}s")
            print(f"Performance: {mlups:.2f} MLUPS")
            if self.solver.is_diverged():
                print("Warning: simulation diverged; lower the velocity or raise the viscosity")

        return self.analyze_results()

    def analyze_results(self):
        """Mean drag, RMS lift and shedding frequency over the second half."""
        if len(self.force_history) < 10:
            return {}

        n_half = len(self.force_history) // 2
        C_D_values = self.force_coefficient(np.array(self.force_history[n_half:]))
        C_L_values = self.force_coefficient(np.array(self.lift_history[n_half:]))
        times = np.array(self.time_history[n_half:])

        St = None
        if len(C_L_values) > 20:
            dt = times[1] - times[0]
            fft = np.fft.rfft(C_L_values - np.mean(C_L_values))
            freqs = np.fft.rfftfreq(len(C_L_values), d=dt)

            fft_mag = np.abs(fft[1:])
            if len(fft_mag) > 0 and np.max(fft_mag) > 0.01:
                peak_idx = np.argmax(fft_mag) + 1
                St = freqs[peak_idx] * self.length / self.solver.velocity

        return {
            'C_D': np.mean(C_D_values),
            'C_D_std': np.std(C_D_values),
            'C_L_rms': np.sqrt(np.mean(C_L_values**2)),
            'St': St,
            'Re': self.reynolds,
            'tau': self.solver.tau,
        }

    def plot_results(self, save_path=None, show=True):
        """Plot velocity, vorticity, pressure and force history."""
        solid = self._field(self.solver.get_obstacle())

        fig, axes = plt.subplots(2, 2, figsize=(14, 8))

        ax = axes[0, 0]
        vm = self._field(self.solver.get_velocity_magnitude())
        vm[solid] = np.nan
        im = ax.imshow(vm, origin='lower', cmap='viridis', aspect='equal')
        ax.set_title(f'Velocity Magnitude (Re = {self.reynolds:.0f})')
        plt.colorbar(im, ax=ax, label='|u|')

        ax = axes[0, 1]
        vort = self._field(self.solver.get_vorticity())
        vort[solid] = np.nan
        vmax = np.nanpercentile(np.abs(vort), 95)
        im = ax.imshow(vort, origin='lower', cmap='RdBu_r', vmin=-vmax, vmax=vmax, aspect='equal')
        ax.set_title('Vorticity')
        plt.colorbar(im, ax=ax, label='omega')

        ax = axes[1, 0]
        pressure = self._field(self.solver.get_pressure())
        pressure[solid] = np.nan
        im = ax.imshow(pressure, origin='lower', cmap='coolwarm', aspect='equal')
        ax.set_title('Pressure')
        plt.colorbar(im, ax=ax, label='p')

        ax = axes[1, 1]
        if len(self.force_history) > 0:
            ax.plot(self.time_history, self.force_coefficient(np.array(self.force_history)),
                    'b-', linewidth=1, label='C_D')
            ax.plot(self.time_history, self.force_coefficient(np.array(self.lift_history)),
                    'g-', linewidth=1, label='C_L')
            ax.set_xlabel('Time step')
            ax.set_title('Force Coefficients')
            ax.legend()
            ax.grid(True, alpha=0.3)

        plt.tight_layout()

        if save_path:
            directory = os.path.dirname(save_path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            plt.savefig(save_path, dpi=150, bbox_inches='tight')
            print(f"Saved: {save_path}")

        if show:
            plt.show()

        return fig


def run_channel_flow(nx=400, ny=100, geometry="circle", viscosity=0.02, velocity=0.1,
                     num_steps=20000, scheme="pull", use_fast=True, verbose=True):
    """Run an obstacle channel flow simulation."""
    case = ChannelFlow(nx, ny, geometry=geometry, viscosity=viscosity,
                       velocity=velocity, scheme=scheme, use_fast=use_fast)

    if verbose:
        print("Obstacle Channel Flow")
        print("=" * 50)
        print(f"Grid: {nx} x {ny}")
        print(f"Geometry: {case.solver.geometry.value}")
        print(f"Viscosity: {viscosity}, tau: {case.solver.tau:.4f}")
        print(f"Inlet velocity: {velocity}")
        print(f"Reynolds number: {case.reynolds:.1f}")
        print()

    results = case.run(num_steps, verbose=verbose)

    if verbose and results:
        print(f"C_D = {results['C_D']:.3f} +/- {results['C_D_std']:.3f}")
        print(f"C_L rms = {results['C_L_rms']:.3f}")
        if results['St'] is not None:
            print(f"St = {results['St']:.3f}")

    return case, results


def main():
    parser = argparse.ArgumentParser(description="Obstacle channel flow simulation")
    parser.add_argument("--nx", type=int, default=400, help="Domain length")
    parser.add_argument("--ny", type=int, default=100, help="Domain height")
    parser.add_argument("--geometry", default="circle",
                        choices=[g.value for g in Geometry])
    parser.add_argument("--viscosity", type=float, default=0.02)
    parser.add_argument("--velocity", type=float, default=0.1)
    parser.add_argument("--steps", type=int, default=20000)
    parser.add_argument("--scheme", choices=["pull", "push"], default="pull")
    parser.add_argument("--numpy", action="store_true", help="Use the NumPy backend")
    parser.add_argument("--save", type=str, default=None, help="Save figure to path")
    parser.add_argument("--no-show", action="store_true", help="Do not open a window")
    args = parser.parse_args()

    case, _ = run_channel_flow(
        nx=args.nx, ny=args.ny, geometry=args.geometry,
        viscosity=args.viscosity, velocity=args.velocity,
        num_steps=args.steps, scheme=args.scheme, use_fast=not args.numpy,
    )
    case.plot_results(save_path=args.save, show=not args.no_show)


if __name__ == "__main__":
    main()
