"""
Tests for the bulk equations of motion and the interface flux.
"""

import warnings

import numpy as np
import pytest

from antclock.core.tm_grid import derivative, laplacian
from antclock.core.tm_rhs import TMRhs, compute_accelerations, interface_flux, matter_stress


class TestAccelerations:
    """rho, X and psi accelerations."""

    def test_uniform_lapse_forcing(self):
        """Uniform rho gives rho_tt = exp(2 rho)/2 everywhere."""
        n = 8
        rho = np.full(n, -1.0)
        z = np.zeros(n)
        acc = compute_accelerations(rho, z, z, z, 0.1)
        assert np.allclose(acc.rho, 0.5 * np.exp(-2.0))

    def test_dilaton_sourced_by_matter(self):
        """X_tt picks up 8 pi times the matter stress."""
        n = 8
        z = np.zeros(n)
        acc = compute_accelerations(z, z, z, np.ones(n), 0.1)
        assert np.allclose(acc.X, 8.0 * np.pi * 0.5)

    def test_matter_is_free_wave(self):
        """psi_tt is the Laplacian of psi."""
        x = np.linspace(0.0, 1.0, 16)
        psi = np.sin(3.0 * x)
        z = np.zeros(16)
        acc = compute_accelerations(z, z, psi, z, 0.05)
        assert np.array_equal(acc.psi, laplacian(psi, 0.05))

    def test_matter_stress(self):
        """T = (psi_t^2 + psi_x^2) / 2."""
        psi = np.linspace(0.0, 1.0, 10) ** 2
        psi_dot = np.full(10, 0.3)
        dx = 0.1
        expected = 0.5 * (psi_dot ** 2 + derivative(psi, dx) ** 2)
        assert np.allclose(matter_stress(psi, psi_dot, dx), expected)

    def test_length_mismatch(self):
        """Mismatched field lengths fail loudly."""
        with pytest.raises(ValueError):
            compute_accelerations(np.zeros(5), np.zeros(4), np.zeros(5), np.zeros(5), 0.1)
        with pytest.raises(ValueError):
            matter_stress(np.zeros(5), np.zeros(6), 0.1)

    def test_overflow_propagates_without_warning(self):
        """exp(2 rho) overflow yields inf rather than an exception."""
        rho = np.full(6, 1000.0)
        z = np.zeros(6)
        compute_accelerations(z, z, z, z, 0.1)  # compile kernels first
        with warnings.catch_warnings():
            warnings.simplefilter("error", RuntimeWarning)
            acc = compute_accelerations(rho, z, z, z, 0.1)
        assert np.all(np.isinf(acc.rho))

    def test_inputs_not_mutated(self, cliff_state):
        """Accelerations are pure in their inputs."""
        b = cliff_state.bulk
        before = b.psi.copy()
        compute_accelerations(b.rho, b.X, b.psi, b.psi_dot, cliff_state.dx)
        assert np.array_equal(b.psi, before)


class TestInterfaceFlux:
    """Phi_in = psi_t[i_b] * psi_x[i_b]."""

    def test_flux_value(self):
        """Flux is the product at the interface index only."""
        psi = np.array([0.0, 1.0, 4.0, 9.0, 16.0])
        psi_dot = np.array([5.0, 5.0, 2.0, 5.0, 5.0])
        dx = 1.0
        # psi_x[2] = (9 - 1) / 2 = 4
        assert interface_flux(psi, psi_dot, dx, 2) == pytest.approx(8.0)

    def test_flux_sign_follows_direction(self, cliff_state):
        """Reversing the wave reverses the flux."""
        b = cliff_state.bulk
        i_b = cliff_state.interface.x_b_index
        forward = interface_flux(b.psi, b.psi_dot, cliff_state.dx, i_b)
        backward = interface_flux(b.psi, -b.psi_dot, cliff_state.dx, i_b)
        assert forward > 0
        assert backward == pytest.approx(-forward)


class TestTMRhs:
    """Bound evaluator."""

    def test_matches_functions(self, cliff_state):
        """TMRhs gives the same numbers as the free functions."""
        rhs = TMRhs.for_state(cliff_state)
        b = cliff_state.bulk
        acc = rhs.accelerations(b.rho, b.X, b.psi, b.psi_dot)
        ref = compute_accelerations(b.rho, b.X, b.psi, b.psi_dot, cliff_state.dx)
        assert np.array_equal(acc.rho, ref.rho)
        assert np.array_equal(acc.X, ref.X)
        assert np.array_equal(acc.psi, ref.psi)
        assert rhs.flux(b.psi, b.psi_dot) == interface_flux(
            b.psi, b.psi_dot, cliff_state.dx, cliff_state.interface.x_b_index)

    def test_bad_dx(self):
        """dx must be positive."""
        with pytest.raises(ValueError):
            TMRhs(0.0, 1)
