# tm_stepper.py
# =============================================================================
# RK4 Stepper for the Two-Manifold System
# =============================================================================
#
# One classical four-stage RK4 pass over (rho, X, psi) and their velocities:
#
#   stage inputs   y_j = y + h v_{j-1},  v_j = v + h k_{j-1}   (h = dt/2, dt/2, dt)
#   velocities     v_new = v + dt (k1 + 2 k2 + 2 k3 + k4) / 6
#   positions      y_new = y + dt v
#
# Positions advance with the velocity at the start of the step, not the RK4
# blend. Reference outputs depend on this, so it stays.
#
# The interface entropy takes one forward-Euler step from the start-of-step
# flux and is clamped at zero:
#
#   s_new = max(0, s + dt (Phi_in - kappa s) / T_Sigma)
#
# Non-finite values are not caught here; they flow into the returned state
# and are reported by the health checks.

import logging
from typing import Dict, Tuple

import numpy as np
from numba import jit

from .logging_config import Timer, array_stats
from .stepper_contract import StepperContract
from .tm_core_fields import BulkFieldState, InterfaceState, TwoManifoldState
from .tm_rhs import TMRhs

logger = logging.getLogger('antclock.stepper')

KAPPA = 0.01
T_SIGMA = 1.0


@jit(nopython=True)
def _rk4_stage_kernel(y0, v0, v_prev, k_prev, h, y_out, v_out):
    for i in range(y0.shape[0]):
        y_out[i] = y0[i] + h * v_prev[i]
        v_out[i] = v0[i] + h * k_prev[i]


@jit(nopython=True)
def _rk4_combine_kernel(y0, v0, k1, k2, k3, k4, dt, y_out, v_out):
    for i in range(y0.shape[0]):
        v_out[i] = v0[i] + dt * (k1[i] + 2.0 * k2[i] + 2.0 * k3[i] + k4[i]) / 6.0
        y_out[i] = y0[i] + dt * v0[i]


def _accelerations(rhs: TMRhs, y: Dict[str, np.ndarray], v: Dict[str, np.ndarray]) -> Dict[str, np.ndarray]:
    acc = rhs.accelerations(y["rho"], y["X"], y["psi"], v["psi"])
    return {"rho": acc.rho, "X": acc.X, "psi": acc.psi}


def _stage(y0, v0, v_prev, k_prev, h) -> Tuple[Dict[str, np.ndarray], Dict[str, np.ndarray]]:
    y_out, v_out = {}, {}
    for key in y0:
        y_out[key] = np.empty_like(y0[key])
        v_out[key] = np.empty_like(v0[key])
        _rk4_stage_kernel(y0[key], v0[key], v_prev[key], k_prev[key], h, y_out[key], v_out[key])
    return y_out, v_out


def advance_entropy(s: float, flux: float, dt: float) -> float:
    """Forward-Euler entropy update clamped at zero. NaN passes through."""
    s_new = s + dt * (flux - KAPPA * s) / T_SIGMA
    if s_new < 0:
        s_new = 0.0
    return s_new


class RK4Stepper(StepperContract):
    """Advances a TwoManifoldState by one coordinate-time increment."""

    name = "rk4"

    def step(self, state: TwoManifoldState, dt: float) -> TwoManifoldState:
        dt = float(dt)
        with Timer() as timer:
            b = state.bulk
            rhs = TMRhs.for_state(state)
            i_b = state.interface.x_b_index
            y0 = {"rho": b.rho, "X": b.X, "psi": b.psi}
            v0 = {"rho": b.rho_dot, "X": b.X_dot, "psi": b.psi_dot}

            with np.errstate(over='ignore', invalid='ignore'):
                k1 = _accelerations(rhs, y0, v0)
                y2, v2 = _stage(y0, v0, v0, k1, 0.5 * dt)
                k2 = _accelerations(rhs, y2, v2)
                y3, v3 = _stage(y0, v0, v2, k2, 0.5 * dt)
                k3 = _accelerations(rhs, y3, v3)
                y4, v4 = _stage(y0, v0, v3, k3, dt)
                k4 = _accelerations(rhs, y4, v4)

                y_new, v_new = {}, {}
                for key in y0:
                    y_new[key] = np.empty_like(y0[key])
                    v_new[key] = np.empty_like(v0[key])
                    _rk4_combine_kernel(y0[key], v0[key], k1[key], k2[key], k3[key], k4[key],
                                        dt, y_new[key], v_new[key])

                flux = rhs.flux(b.psi, b.psi_dot)
                s_new = advance_entropy(state.interface.s, flux, dt)

            new_state = TwoManifoldState(
                bulk=BulkFieldState(
                    rho=y_new["rho"], rho_dot=v_new["rho"],
                    X=y_new["X"], X_dot=v_new["X"],
                    psi=y_new["psi"], psi_dot=v_new["psi"],
                ),
                interface=InterfaceState(s=s_new, x_b_index=i_b, tau=state.interface.tau + dt),
                nx=state.nx,
                L=state.L,
                t=state.t + dt,
                dt=dt,
            )

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("RK4 step complete", extra={
                "extra_data": {
                    "t": new_state.t,
                    "dt": dt,
                    "flux_in": flux,
                    "s": s_new,
                    "execution_time_ms": timer.elapsed_ms(),
                    "field_stats": {
                        "rho": array_stats(new_state.bulk.rho),
                        "psi": array_stats(new_state.bulk.psi),
                    },
                }
            })
        return new_state


_DEFAULT_STEPPER = RK4Stepper()


def step_rk4(state: TwoManifoldState, dt: float) -> TwoManifoldState:
    """Functional form of RK4Stepper, usable anywhere a stepper function is expected."""
    return _DEFAULT_STEPPER(state, dt)
