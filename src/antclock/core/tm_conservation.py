# tm_conservation.py
# =============================================================================
# Conservation and Second-Law Diagnostics
# =============================================================================
#
# Read-only probes over TwoManifoldState:
#
#   E = sum_i 1/2 [rho_t^2 + e^{2 rho} (X_t^2 + psi_t^2)] dx
#     + sum_i 1/2 [rho_x^2 + e^{2 rho} (X_x^2 + psi_x^2)] dx
#     + s
#
#   ds/dtau = (Phi_in - kappa s) / T_Sigma
#
# The entropy rate is re-derived from the field arrays here rather than
# taken from the stepper, so it acts as an independent check. Violations
# are flagged on ConservationReport and never corrected.

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from .hard_invariants import HealthReport, check_state_health
from .logging_config import Timer
from .tm_core_fields import TwoManifoldState
from .tm_grid import derivative
from .tm_rhs import EIGHT_PI
from .tm_stepper import KAPPA, T_SIGMA, step_rk4

logger = logging.getLogger('antclock.conservation')

SECOND_LAW_EPS = 1e-6
DRIFT_RELATIVE_TOL = 0.01
DRIFT_ABSOLUTE_TOL = 0.01

_TIME_EPS = 1e-9


def _energy_parts(state: TwoManifoldState) -> Tuple[float, float]:
    b = state.bulk
    dx = state.dx
    with np.errstate(over='ignore', invalid='ignore'):
        conformal = np.exp(2.0 * b.rho)
        kinetic = 0.5 * (b.rho_dot ** 2 + conformal * (b.X_dot ** 2 + b.psi_dot ** 2))
        rho_x = derivative(b.rho, dx)
        X_x = derivative(b.X, dx)
        psi_x = derivative(b.psi, dx)
        gradient = 0.5 * (rho_x ** 2 + conformal * (X_x ** 2 + psi_x ** 2))
        return float(np.sum(kinetic) * dx), float(np.sum(gradient) * dx)


def bulk_energy(state: TwoManifoldState) -> float:
    """Kinetic plus gradient energy of the three bulk fields."""
    kinetic, gradient = _energy_parts(state)
    return kinetic + gradient


def total_energy(state: TwoManifoldState) -> float:
    """Bulk energy plus interface entropy, counted one to one."""
    return bulk_energy(state) + state.interface.s


def entropy_production(state: TwoManifoldState, dt: Optional[float] = None) -> float:
    """ds/dtau at the interface, computed directly from the field arrays.

    dt is accepted for call-site symmetry with the stepper; the rate does not
    depend on it.
    """
    b = state.bulk
    n = state.nx
    i_b = state.interface.x_b_index
    psi_x_b = (b.psi[(i_b + 1) % n] - b.psi[(i_b - 1) % n]) / (2.0 * state.dx)
    flux = float(b.psi_dot[i_b] * psi_x_b)
    return (flux - KAPPA * state.interface.s) / T_SIGMA


@dataclass(frozen=True)
class ConservationReport:
    t: float
    total_energy: float
    entropy_rate: float
    energy_change: float
    energy_drift: float
    second_law_violation: bool
    energy_drift_exceeded: bool
    health: Optional[HealthReport] = None

    def to_dict(self):
        return {
            "t": self.t,
            "total_energy": self.total_energy,
            "entropy_rate": self.entropy_rate,
            "energy_change": self.energy_change,
            "energy_drift": self.energy_drift,
            "second_law_violation": self.second_law_violation,
            "energy_drift_exceeded": self.energy_drift_exceeded,
            "health": self.health.to_dict() if self.health is not None else None,
        }


def energy_drift_tolerance(reference_energy: float) -> float:
    return DRIFT_RELATIVE_TOL * abs(reference_energy) + DRIFT_ABSOLUTE_TOL


def conservation_report(state: TwoManifoldState, dt: Optional[float] = None,
                        reference_energy: Optional[float] = None,
                        previous_energy: Optional[float] = None) -> ConservationReport:
    energy = total_energy(state)
    rate = entropy_production(state, dt)
    if reference_energy is None:
        reference_energy = energy
    if previous_energy is None:
        previous_energy = reference_energy
    drift = energy - reference_energy
    report = ConservationReport(
        t=state.t,
        total_energy=energy,
        entropy_rate=rate,
        energy_change=energy - previous_energy,
        energy_drift=drift,
        second_law_violation=bool(rate < -SECOND_LAW_EPS),
        energy_drift_exceeded=bool(not abs(drift) < energy_drift_tolerance(reference_energy)),
        health=check_state_health(state),
    )
    if report.second_law_violation or report.energy_drift_exceeded:
        logger.info("Conservation checkpoint flagged", extra={
            "extra_data": report.to_dict()
        })
    return report


@dataclass(frozen=True, eq=False)
class SimulationResult:
    states: Tuple[TwoManifoldState, ...]
    conservation_reports: Tuple[ConservationReport, ...]
    initial_energy: float

    @property
    def n_steps(self) -> int:
        return len(self.states) - 1

    def second_law_violations(self) -> int:
        return sum(1 for r in self.conservation_reports if r.second_law_violation)


def simulate(initial_state: TwoManifoldState, duration: float, dt: float,
             report_interval: float = 0.1,
             stepper: Callable[[TwoManifoldState, float], TwoManifoldState] = step_rk4) -> SimulationResult:
    """Fixed-step run with a ConservationReport every report_interval of coordinate time."""
    if not np.isfinite(duration) or duration < 0:
        raise ValueError(f"duration must be non-negative and finite, got {duration}")
    if not np.isfinite(dt) or dt <= 0:
        raise ValueError(f"dt must be positive and finite, got {dt}")
    if not np.isfinite(report_interval) or report_interval <= 0:
        raise ValueError(f"report_interval must be positive and finite, got {report_interval}")

    states: List[TwoManifoldState] = [initial_state]
    reports: List[ConservationReport] = []
    state = initial_state
    end_time = initial_state.t + duration
    next_report = initial_state.t + report_interval
    initial_energy = total_energy(initial_state)
    prev_energy = initial_energy

    with Timer() as timer:
        while state.t < end_time - _TIME_EPS:
            state = stepper(state, dt)
            states.append(state)
            if state.t >= next_report - _TIME_EPS:
                report = conservation_report(state, dt, initial_energy, prev_energy)
                reports.append(report)
                prev_energy = report.total_energy
                next_report += report_interval

    logger.info("Fixed-step simulation complete", extra={
        "extra_data": {
            "steps": len(states) - 1,
            "checkpoints": len(reports),
            "t_final": state.t,
            "initial_energy": initial_energy,
            "execution_time_ms": timer.elapsed_ms(),
        }
    })
    return SimulationResult(states=tuple(states), conservation_reports=tuple(reports),
                            initial_energy=initial_energy)


@dataclass(frozen=True)
class EnergyAudit:
    bulk_energy_before: float
    bulk_energy_after: float
    entropy_before: float
    entropy_after: float

    @property
    def bulk_energy_lost(self) -> float:
        return self.bulk_energy_before - self.bulk_energy_after

    @property
    def entropy_gained(self) -> float:
        return self.entropy_after - self.entropy_before

    @property
    def imbalance(self) -> float:
        return self.bulk_energy_lost - self.entropy_gained


def audit_energy_flow(before: TwoManifoldState, after: TwoManifoldState) -> EnergyAudit:
    """Bulk energy lost against interface entropy gained between two states."""
    return EnergyAudit(
        bulk_energy_before=bulk_energy(before),
        bulk_energy_after=bulk_energy(after),
        entropy_before=before.interface.s,
        entropy_after=after.interface.s,
    )


def junction_residual(state: TwoManifoldState) -> float:
    """X_x at the interface minus 8 pi s. Reported only; nothing enforces it."""
    X_x = derivative(state.bulk.X, state.dx)
    return float(X_x[state.interface.x_b_index] - EIGHT_PI * state.interface.s)


def spectral_acceleration(states: Sequence[TwoManifoldState], window: int = 5) -> List[float]:
    """|second difference| of interface entropy at lag `window`, per unit time squared.

    The lag interval is half the coordinate time actually elapsed between the
    outer samples, so adaptive step sizes are handled.
    """
    window = int(window)
    if window < 1:
        raise ValueError(f"window must be at least 1, got {window}")
    out = []
    for i in range(2 * window, len(states)):
        s_now = states[i].interface.s
        s_mid = states[i - window].interface.s
        s_old = states[i - 2 * window].interface.s
        half_span = 0.5 * (states[i].t - states[i - 2 * window].t)
        if half_span <= 0:
            continue
        out.append(abs((s_now - 2.0 * s_mid + s_old) / (half_span * half_span)))
    return out
