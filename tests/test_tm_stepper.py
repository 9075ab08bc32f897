"""
Tests for the RK4 stepper.

Covers the step contract (pure, t/tau advance), the start-of-step position
update, the forward-Euler entropy update with its zero clamp, long-run
invariants, and determinism.
"""

import math
from unittest.mock import patch

import numpy as np
import pytest

from antclock.core.stepper_contract import StepperContract
from antclock.core.tm_core_fields import (
    BULK_FIELD_NAMES, BulkFieldState, InterfaceState, TwoManifoldState,
    initialize_cliff, initialize_smooth,
)
from antclock.core.tm_rhs import TMRhs, interface_flux
from antclock.core.tm_stepper import KAPPA, RK4Stepper, advance_entropy, step_rk4
from tm_test_utils import run_steps, snapshot, states_identical


def _right_moving_state(nx=32, L=2.0, s=0.0):
    """Wave moving away from the interface so the flux is negative there."""
    base = initialize_cliff(nx, L)
    b = base.bulk
    bulk = BulkFieldState(rho=b.rho, rho_dot=b.rho_dot, X=b.X, X_dot=b.X_dot,
                          psi=b.psi, psi_dot=-b.psi_dot)
    return TwoManifoldState(bulk=bulk, interface=InterfaceState(s, base.interface.x_b_index),
                            nx=nx, L=L)


class TestStepContract:
    """Basic step behaviour."""

    def test_time_advances(self, smooth_state):
        """t and tau advance by dt and dt is recorded."""
        new = step_rk4(smooth_state, 0.01)
        assert new.t == pytest.approx(0.01)
        assert new.interface.tau == pytest.approx(0.01)
        assert new.dt == 0.01
        assert new.interface.x_b_index == smooth_state.interface.x_b_index
        assert new.nx == smooth_state.nx and new.L == smooth_state.L

    def test_evaluates_through_bound_rhs(self, cliff_state):
        """One step binds the RHS to the state's grid and evaluates four stages."""
        accelerations = TMRhs.accelerations
        with patch.object(TMRhs, "accelerations", autospec=True,
                          side_effect=accelerations) as acc:
            step_rk4(cliff_state, 0.01)
        assert acc.call_count == 4
        rhs = acc.call_args_list[0].args[0]
        assert rhs.dx == cliff_state.dx
        assert rhs.x_b_index == cliff_state.interface.x_b_index

    def test_input_not_mutated(self, cliff_state):
        """The input state is unchanged and a new instance is returned."""
        before = snapshot(cliff_state)
        s_before = cliff_state.interface.s
        new = step_rk4(cliff_state, 0.01)
        assert new is not cliff_state
        for name in BULK_FIELD_NAMES:
            assert np.array_equal(getattr(cliff_state.bulk, name), before[name])
        assert cliff_state.interface.s == s_before
        assert cliff_state.t == 0.0

    @pytest.mark.parametrize("dt", [0.0, -0.01, float("nan"), float("inf")])
    def test_bad_dt(self, smooth_state, dt):
        """Non-positive or non-finite dt raises."""
        with pytest.raises(ValueError):
            step_rk4(smooth_state, dt)

    def test_stepper_is_contract(self):
        """RK4Stepper implements the stepper contract."""
        stepper = RK4Stepper()
        assert isinstance(stepper, StepperContract)
        assert stepper.name == "rk4"

    def test_object_and_function_agree(self, cliff_state):
        """RK4Stepper()(...) and step_rk4(...) produce identical states."""
        a = RK4Stepper()(cliff_state, 0.01)
        b = step_rk4(cliff_state, 0.01)
        assert states_identical(a, b)


class TestUpdateRules:
    """Position, velocity and entropy updates."""

    def test_positions_use_start_velocity(self, cliff_state):
        """y_new = y + dt * v at the start of the step."""
        dt = 0.01
        new = step_rk4(cliff_state, dt)
        b = cliff_state.bulk
        assert np.allclose(new.bulk.psi, b.psi + dt * b.psi_dot, rtol=0, atol=1e-15)
        assert np.allclose(new.bulk.rho, b.rho + dt * b.rho_dot, rtol=0, atol=1e-15)
        assert np.allclose(new.bulk.X, b.X + dt * b.X_dot, rtol=0, atol=1e-15)

    def test_uniform_lapse_velocity(self, smooth_state):
        """Uniform lapse gains velocity at exp(2 rho)/2 and stays uniform."""
        dt = 0.01
        new = step_rk4(smooth_state, dt)
        expected = 0.5 * math.exp(-2.0) * dt
        assert np.allclose(new.bulk.rho_dot, expected, rtol=1e-3)
        assert np.ptp(new.bulk.rho_dot) == 0.0

    def test_entropy_forward_euler(self, cliff_state):
        """s_new = s + dt (Phi_in - kappa s) with the start-of-step flux."""
        dt = 0.01
        b = cliff_state.bulk
        flux = interface_flux(b.psi, b.psi_dot, cliff_state.dx, cliff_state.interface.x_b_index)
        s = cliff_state.interface.s
        new = step_rk4(cliff_state, dt)
        assert new.interface.s == pytest.approx(s + dt * (flux - KAPPA * s), rel=1e-12)

    def test_entropy_clamped_at_zero(self):
        """Negative flux cannot push entropy below zero."""
        state = _right_moving_state(s=0.0)
        assert interface_flux(state.bulk.psi, state.bulk.psi_dot, state.dx,
                              state.interface.x_b_index) < 0
        new = step_rk4(state, 0.01)
        assert new.interface.s == 0.0

    def test_advance_entropy_nan_passes_through(self):
        """NaN is not clamped away."""
        assert math.isnan(advance_entropy(float("nan"), 0.0, 0.01))
        assert advance_entropy(0.0, -5.0, 0.01) == 0.0

    def test_nan_propagates_silently(self, smooth_state):
        """NaN in the input flows into the output without raising."""
        b = smooth_state.bulk
        psi = b.psi.copy()
        psi[3] = np.nan
        bad = TwoManifoldState(
            bulk=BulkFieldState(rho=b.rho, rho_dot=b.rho_dot, X=b.X, X_dot=b.X_dot,
                                psi=psi, psi_dot=b.psi_dot),
            interface=smooth_state.interface, nx=smooth_state.nx, L=smooth_state.L,
        )
        new = step_rk4(bad, 0.01)
        assert np.isnan(new.bulk.psi).any()


class TestLongRunInvariants:
    """Invariants over 200 steps at dt = 0.01."""

    @pytest.mark.parametrize("init", [initialize_smooth, initialize_cliff])
    def test_entropy_non_negative(self, init):
        """s >= 0 after every step."""
        states = run_steps(init(32, 2.0), step_rk4, 0.01, 200)
        assert all(st.interface.s >= 0 for st in states)

    @pytest.mark.parametrize("init", [initialize_smooth, initialize_cliff])
    def test_tau_strictly_increasing(self, init):
        """Proper time increases every step."""
        states = run_steps(init(32, 2.0), step_rk4, 0.01, 200)
        taus = [st.interface.tau for st in states]
        assert all(b > a for a, b in zip(taus, taus[1:]))

    @pytest.mark.parametrize("init", [initialize_smooth, initialize_cliff])
    def test_fields_stay_finite(self, init):
        """No blow-up over the 200-step horizon."""
        states = run_steps(init(32, 2.0), step_rk4, 0.01, 200)
        assert states[-1].bulk.all_finite()
        assert math.isfinite(states[-1].interface.s)

    def test_determinism(self, cliff_state):
        """Repeated runs from the same state are bitwise identical."""
        a = run_steps(cliff_state, step_rk4, 0.01, 30)
        b = run_steps(cliff_state, step_rk4, 0.01, 30)
        assert all(states_identical(x, y) for x, y in zip(a, b))
