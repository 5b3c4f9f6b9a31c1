"""
Open Channel Tests

Inlet, outlet and free-slip edge rules, region classification and flow
around an obstacle.
"""

import pytest
import numpy as np
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from lbmflow import BoundaryPolicy, Geometry, LBMSolver, RegionKind
from lbmflow.lattice import W
from lbmflow.equilibrium import compute_equilibrium, equilibrium_single_site
from lbmflow.boundary import (
    FREE_SLIP_PAIRS,
    apply_free_slip_walls,
    apply_velocity_inlet,
    apply_zero_gradient_outlet,
    classify_regions,
)


def random_distribution(nx, ny, seed=0):
    rng = np.random.default_rng(seed)
    return rng.random((9, ny, nx))


class TestEdgeRules:
    """Open-channel edge rules applied after streaming."""

    def test_inlet_sets_equilibrium(self):
        nx, ny = 12, 8
        f = random_distribution(nx, ny)
        rho = np.full((ny, nx), 1.3)
        ux = np.zeros((ny, nx))
        uy = np.full((ny, nx), 0.2)
        obstacle = np.zeros((ny, nx), dtype=bool)

        apply_velocity_inlet(f, rho, ux, uy, obstacle, 0.07)

        f_in = equilibrium_single_site(1.0, 0.07, 0.0)
        np.testing.assert_array_equal(f[:, :, 0], np.repeat(f_in[:, None], ny, axis=1))
        assert np.all(rho[:, 0] == 1.0)
        assert np.all(ux[:, 0] == 0.07)
        assert np.all(uy[:, 0] == 0.0)
        # Other columns untouched
        assert np.all(rho[:, 1:] == 1.3)

    def test_outlet_copies_previous_column(self):
        nx, ny = 12, 8
        f = random_distribution(nx, ny)
        obstacle = np.zeros((ny, nx), dtype=bool)

        apply_zero_gradient_outlet(f, obstacle)

        np.testing.assert_array_equal(f[:, :, -1], f[:, :, -2])

    def test_free_slip_swaps_vertical_pairs(self):
        nx, ny = 12, 8
        f = random_distribution(nx, ny)
        f_before = f.copy()
        obstacle = np.zeros((ny, nx), dtype=bool)

        apply_free_slip_walls(f, obstacle)

        for row in (0, ny - 1):
            for a, b in FREE_SLIP_PAIRS:
                np.testing.assert_array_equal(f[a, row], f_before[b, row])
                np.testing.assert_array_equal(f[b, row], f_before[a, row])
            for k in (0, 1, 3):
                np.testing.assert_array_equal(f[k, row], f_before[k, row])
        np.testing.assert_array_equal(f[:, 1:-1], f_before[:, 1:-1])

    def test_free_slip_single_row_swaps_once(self):
        f = random_distribution(6, 1)
        f_before = f.copy()

        apply_free_slip_walls(f, np.zeros((1, 6), dtype=bool))

        np.testing.assert_array_equal(f[2], f_before[4])
        np.testing.assert_array_equal(f[4], f_before[2])

    def test_obstacle_overrides_edge_rules(self):
        nx, ny = 12, 8
        f = random_distribution(nx, ny)
        f_before = f.copy()
        rho = np.ones((ny, nx))
        ux = np.zeros((ny, nx))
        uy = np.zeros((ny, nx))
        obstacle = np.zeros((ny, nx), dtype=bool)
        obstacle[3, 0] = True
        obstacle[5, -1] = True
        obstacle[0, 4] = True

        apply_velocity_inlet(f, rho, ux, uy, obstacle, 0.1)
        apply_zero_gradient_outlet(f, obstacle)
        apply_free_slip_walls(f, obstacle)

        np.testing.assert_array_equal(f[:, 3, 0], f_before[:, 3, 0])
        np.testing.assert_array_equal(f[:, 5, -1], f_before[:, 5, -1])
        np.testing.assert_array_equal(f[:, 0, 4], f_before[:, 0, 4])
        assert ux[3, 0] == 0.0


class TestRegions:
    """Static cell classification."""

    def test_open_channel_regions(self):
        obstacle = np.zeros((10, 20), dtype=bool)
        obstacle[4:6, 5:7] = True

        regions = classify_regions(BoundaryPolicy.OPEN_CHANNEL, obstacle)

        assert regions[5, 0] == RegionKind.INLET.value
        assert regions[0, 0] == RegionKind.INLET.value
        assert regions[5, -1] == RegionKind.OUTLET.value
        assert regions[0, 10] == RegionKind.FREE_SLIP_WALL.value
        assert regions[-1, 10] == RegionKind.FREE_SLIP_WALL.value
        assert regions[4, 5] == RegionKind.OBSTACLE_SOLID.value
        assert regions[2, 10] == RegionKind.INTERIOR_FLUID.value

    def test_cavity_regions(self):
        obstacle = np.zeros((10, 12), dtype=bool)

        regions = classify_regions(BoundaryPolicy.CLOSED_CAVITY, obstacle)

        assert regions[-1, 5] == RegionKind.MOVING_LID.value
        assert regions[-1, 0] == RegionKind.NO_SLIP_WALL.value
        assert regions[-1, -1] == RegionKind.NO_SLIP_WALL.value
        assert regions[0, 5] == RegionKind.NO_SLIP_WALL.value
        assert regions[5, 0] == RegionKind.NO_SLIP_WALL.value
        assert regions[5, 5] == RegionKind.INTERIOR_FLUID.value

    def test_solver_regions_follow_geometry(self):
        solver = LBMSolver(60, 30, geometry=Geometry.SQUARE)

        solid = solver.regions == RegionKind.OBSTACLE_SOLID.value

        np.testing.assert_array_equal(solid, solver.obstacle)


class TestChannelFlow:
    """Flow through the open channel."""

    def test_first_tick_around_circle(self):
        solver = LBMSolver(80, 40, geometry=Geometry.CIRCLE, viscosity=0.02, velocity=0.1)

        solver.step()

        fluid = ~solver.obstacle
        assert np.all(solver.rho[fluid] >= 0.9)
        assert np.all(solver.rho[fluid] <= 1.1)
        assert np.all(solver.rho[solver.obstacle] == 1.0)
        assert np.all(solver.ux[solver.obstacle] == 0.0)
        assert np.all(solver.uy[solver.obstacle] == 0.0)
        np.testing.assert_array_equal(
            solver.f[:, solver.obstacle],
            np.repeat(W[:, None], solver.obstacle.sum(), axis=1),
        )

    def test_uniform_flow_is_preserved(self):
        """Without an obstacle, uniform inlet flow passes through unchanged."""
        nx, ny = 30, 12
        solver = LBMSolver(nx, ny, geometry=Geometry.NONE, velocity=0.05, ramp_up_steps=0)
        solver.initialize_from_fields(
            np.ones((ny, nx)), np.full((ny, nx), 0.05), np.zeros((ny, nx))
        )

        solver.run(50)

        np.testing.assert_allclose(solver.ux, 0.05, rtol=1e-12)
        np.testing.assert_allclose(solver.uy, 0.0, atol=1e-14)
        np.testing.assert_allclose(solver.rho, 1.0, rtol=1e-12)
        f_expected = compute_equilibrium(np.ones((ny, nx)), np.full((ny, nx), 0.05), np.zeros((ny, nx)))
        np.testing.assert_allclose(solver.f, f_expected, rtol=1e-12)

    def test_outlet_after_step(self):
        solver = LBMSolver(40, 16, geometry=Geometry.NONE, ramp_up_steps=5)

        solver.run(10)

        np.testing.assert_array_equal(solver.f[:, :, -1], solver.f[:, :, -2])

    def test_flow_is_symmetric_about_centreline(self):
        """A symmetric obstacle in a symmetric channel gives a mirror-symmetric flow."""
        nx, ny = 60, 21
        mask = np.zeros((ny, nx), dtype=bool)
        mask[8:13, 14:19] = True
        solver = LBMSolver(nx, ny, ramp_up_steps=20, use_fast=False)
        solver.set_obstacle_mask(mask)

        solver.run(100)

        np.testing.assert_allclose(solver.ux, solver.ux[::-1], rtol=1e-10, atol=1e-14)
        np.testing.assert_allclose(solver.uy, -solver.uy[::-1], atol=1e-12)

    def test_wake_slows_behind_obstacle(self):
        solver = LBMSolver(80, 40, geometry=Geometry.CIRCLE, velocity=0.05, ramp_up_steps=100)

        solver.run(1500)

        ux = solver.get_ux().reshape(40, 80)
        behind = ux[20, 34]
        free = ux[3, 34]
        assert behind < free
        assert not solver.is_diverged()

    @pytest.mark.parametrize("geometry", [g for g in Geometry if g is not Geometry.NONE])
    def test_every_geometry_runs(self, geometry):
        solver = LBMSolver(80, 40, geometry=geometry, ramp_up_steps=20)

        solver.run(100)

        assert not solver.is_diverged()
        assert solver.get_obstacle().any()


class TestEquivalence:
    """Backends and streaming schemes agree."""

    def test_push_equals_pull(self):
        pull = LBMSolver(60, 30, scheme="pull", ramp_up_steps=20, use_fast=False)
        push = LBMSolver(60, 30, scheme="push", ramp_up_steps=20, use_fast=False)

        pull.run(100)
        push.run(100)

        np.testing.assert_array_equal(push.f, pull.f)

    @pytest.mark.parametrize("scheme", ["pull", "push"])
    def test_fast_equals_standard(self, scheme):
        standard = LBMSolver(60, 30, scheme=scheme, ramp_up_steps=20, use_fast=False)
        fast = LBMSolver(60, 30, scheme=scheme, ramp_up_steps=20, use_fast=True)

        standard.run(100)
        fast.run(100)

        np.testing.assert_allclose(fast.get_density(), standard.get_density(), rtol=1e-12)
        np.testing.assert_allclose(fast.get_ux(), standard.get_ux(), rtol=1e-10, atol=1e-14)
        np.testing.assert_allclose(fast.get_uy(), standard.get_uy(), rtol=1e-10, atol=1e-14)


class TestChannelDriver:
    """Channel driver built on the field queries."""

    def test_forces_and_reynolds(self):
        from simulations.channel_flow import ChannelFlow

        case = ChannelFlow(80, 40, geometry="circle", viscosity=0.02, velocity=0.05)
        results = case.run(1500, measure_interval=50, verbose=False)

        # Circle of radius 0.16 * 40 spans 13 rows
        assert case.length == 13
        assert np.isclose(case.reynolds, 0.05 * 13 / 0.02)
        assert len(case.force_history) == 30
        assert np.isfinite(results['C_D'])


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
