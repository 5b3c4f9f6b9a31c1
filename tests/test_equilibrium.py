"""
Tests for equilibrium distribution functions.

Validates mass and momentum conservation, and physical consistency.
"""

import pytest
import numpy as np
import sys
import os

# Add package root to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from lbmflow.lattice import EX, EY, W, CS2, Q, OPPOSITE
from lbmflow.equilibrium import (
    compute_equilibrium,
    compute_equilibrium_fast,
    equilibrium_single_site
)
from lbmflow.observables import compute_density, compute_velocity


class TestLatticeTable:
    """Test the shared D2Q9 direction table."""

    def test_weights_sum_to_one(self):
        assert np.isclose(np.sum(W), 1.0, rtol=1e-15)

    def test_opposite_reverses_velocity(self):
        for k in range(Q):
            assert EX[OPPOSITE[k]] == -EX[k]
            assert EY[OPPOSITE[k]] == -EY[k]

    def test_opposite_is_involution(self):
        np.testing.assert_array_equal(OPPOSITE[OPPOSITE], np.arange(Q))

    def test_table_is_read_only(self):
        with pytest.raises(ValueError):
            W[0] = 0.5
        with pytest.raises(ValueError):
            OPPOSITE[1] = 1


class TestEquilibriumSingleSite:
    """Test equilibrium distribution at a single lattice site."""

    def test_rest_equilibrium_is_weights(self):
        """At rest with rho=1 every population equals its weight."""
        f_eq = equilibrium_single_site(1.0, 0.0, 0.0)

        np.testing.assert_allclose(f_eq, W, rtol=1e-15)

    def test_mass_conservation_moving(self):
        """Verify sum of f_eq equals rho for moving fluid."""
        rho = 1.5
        ux, uy = 0.1, -0.05

        f_eq = equilibrium_single_site(rho, ux, uy)

        assert np.isclose(np.sum(f_eq), rho, rtol=1e-14)

    def test_momentum_conservation_moving(self):
        """Verify momentum of f_eq equals rho*u for moving fluid."""
        rho = 1.2
        ux, uy = 0.15, 0.08

        f_eq = equilibrium_single_site(rho, ux, uy)

        mom_x = np.sum(f_eq * EX)
        mom_y = np.sum(f_eq * EY)

        assert np.isclose(mom_x, rho * ux, rtol=1e-12)
        assert np.isclose(mom_y, rho * uy, rtol=1e-12)

    def test_positivity_low_velocity(self):
        """Verify all f_eq are positive for low Mach number."""
        f_eq = equilibrium_single_site(1.0, 0.05, 0.03)

        assert np.all(f_eq > 0), f"Negative equilibrium values: {f_eq}"

    def test_inlet_profile_is_symmetric_in_y(self):
        """A purely horizontal velocity gives mirror-symmetric N/S populations."""
        f_eq = equilibrium_single_site(1.0, 0.1, 0.0)

        assert np.isclose(f_eq[2], f_eq[4])
        assert np.isclose(f_eq[5], f_eq[8])
        assert np.isclose(f_eq[6], f_eq[7])


class TestEquilibriumField:
    """Test equilibrium distribution for entire field."""

    @pytest.fixture
    def varying_field(self):
        """Create spatially varying field."""
        nx, ny = 32, 24
        x = np.arange(nx)
        y = np.arange(ny)
        X, Y = np.meshgrid(x, y)

        rho = 1.0 + 0.1 * np.sin(2 * np.pi * X / nx)
        ux = 0.1 * np.cos(2 * np.pi * Y / ny)
        uy = 0.05 * np.sin(2 * np.pi * X / nx)

        return rho, ux, uy

    def test_mass_conservation_varying(self, varying_field):
        """Verify mass conservation for varying field."""
        rho, ux, uy = varying_field

        f_eq = compute_equilibrium(rho, ux, uy)
        rho_computed = compute_density(f_eq)

        np.testing.assert_allclose(rho_computed, rho, rtol=1e-14)

    def test_momentum_conservation_varying(self, varying_field):
        """Verify momentum conservation for varying field."""
        rho, ux, uy = varying_field

        f_eq = compute_equilibrium(rho, ux, uy)
        ux_computed, uy_computed = compute_velocity(f_eq, rho)

        np.testing.assert_allclose(ux_computed, ux, rtol=1e-12, atol=1e-15)
        np.testing.assert_allclose(uy_computed, uy, rtol=1e-12, atol=1e-15)

    def test_fast_equals_standard(self, varying_field):
        """Verify Numba implementation matches standard."""
        rho, ux, uy = varying_field

        f_eq_std = compute_equilibrium(rho, ux, uy)
        f_eq_fast = compute_equilibrium_fast(rho, ux, uy)

        np.testing.assert_allclose(f_eq_fast, f_eq_std, rtol=1e-14, atol=1e-16)

    def test_field_matches_single_site(self, varying_field):
        rho, ux, uy = varying_field

        f_eq = compute_equilibrium(rho, ux, uy)
        f_site = equilibrium_single_site(rho[3, 7], ux[3, 7], uy[3, 7])

        np.testing.assert_allclose(f_eq[:, 3, 7], f_site, rtol=1e-14)

    def test_output_shape(self, varying_field):
        rho, ux, uy = varying_field
        ny, nx = rho.shape

        f_eq = compute_equilibrium(rho, ux, uy)

        assert f_eq.shape == (Q, ny, nx)


class TestEquilibriumStressTensor:
    """Test second-order moment (stress tensor) properties."""

    def test_stress_tensor_isotropy_at_rest(self):
        """Verify stress tensor is isotropic for rest fluid."""
        rho = 1.0
        f_eq = equilibrium_single_site(rho, 0.0, 0.0)

        pi_xx = np.sum(f_eq * EX * EX)
        pi_yy = np.sum(f_eq * EY * EY)
        pi_xy = np.sum(f_eq * EX * EY)

        # For rest fluid: Pi_xx = Pi_yy = rho * c_s^2, Pi_xy = 0
        expected_diag = rho * CS2

        assert np.isclose(pi_xx, expected_diag, rtol=1e-12)
        assert np.isclose(pi_yy, expected_diag, rtol=1e-12)
        assert np.isclose(pi_xy, 0.0, atol=1e-14)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
