# tm_events.py
# =============================================================================
# Antclock Event Detector
# =============================================================================
#
# Scalar activity signals derived from the current state and (optionally) one
# earlier state:
#
#   energy_flux           Phi_in at the interface
#   dilaton_acceleration  |X_t[i_b] - X_t_prev[i_b]| / (t - t_prev), 0 on a cold start
#   matter_activity       (psi_t^2 + psi_x^2) / 2 at the interface
#   spatial_roughness     dx * sum_i (rho_x^2 + X_x^2 + psi_x^2) / 2
#
# The event magnitude is a fixed weighted sum of absolute values; the
# continued-fraction curvature slot is reserved for an external classifier
# and is always zero here.

from dataclasses import dataclass
from typing import Optional

import numpy as np

from .tm_core_fields import TwoManifoldState
from .tm_grid import derivative

DEFAULT_EVENT_THRESHOLD = 0.05
LABEL_THRESHOLD = 0.05

W_ENERGY_FLUX = 0.4
W_DILATON_ACCELERATION = 0.3
W_MATTER_ACTIVITY = 0.2
W_CF_CURVATURE = 0.1

ENERGY_FLUX_SPIKE = "energy_flux_spike"
DILATON_ACCELERATION_SPIKE = "dilaton_acceleration_spike"
MATTER_ACTIVITY_SPIKE = "matter_activity_spike"
EVENT_LABELS = (ENERGY_FLUX_SPIKE, DILATON_ACCELERATION_SPIKE, MATTER_ACTIVITY_SPIKE)


@dataclass(frozen=True)
class BulkEventSignals:
    energy_flux: float
    dilaton_acceleration: float
    matter_activity: float
    spatial_roughness: float


@dataclass(frozen=True)
class CFCurvatureSignals:
    cf_curvature: float = 0.0
    cf_torsion: float = 0.0
    cf_flatness: float = 0.0


@dataclass(frozen=True)
class AntclockEventSignal:
    bulk: BulkEventSignals
    cf: CFCurvatureSignals
    total_event_magnitude: float
    should_tick: bool
    threshold: float

    @property
    def energy_flux(self) -> float:
        return self.bulk.energy_flux

    @property
    def dilaton_acceleration(self) -> float:
        return self.bulk.dilaton_acceleration

    @property
    def matter_activity(self) -> float:
        return self.bulk.matter_activity

    @property
    def spatial_roughness(self) -> float:
        return self.bulk.spatial_roughness

    def to_dict(self):
        return {
            "energy_flux": self.energy_flux,
            "dilaton_acceleration": self.dilaton_acceleration,
            "matter_activity": self.matter_activity,
            "spatial_roughness": self.spatial_roughness,
            "cf_curvature": self.cf.cf_curvature,
            "total_event_magnitude": self.total_event_magnitude,
            "should_tick": self.should_tick,
        }


def compute_bulk_event_signals(state: TwoManifoldState,
                               prev_state: Optional[TwoManifoldState] = None) -> BulkEventSignals:
    b = state.bulk
    dx = state.dx
    i_b = state.interface.x_b_index
    with np.errstate(over='ignore', invalid='ignore'):
        rho_x = derivative(b.rho, dx)
        X_x = derivative(b.X, dx)
        psi_x = derivative(b.psi, dx)

        flux = float(b.psi_dot[i_b] * psi_x[i_b])

        dilaton_acc = 0.0
        if prev_state is not None:
            elapsed = state.t - prev_state.t
            if elapsed > 0:
                dilaton_acc = float(abs(b.X_dot[i_b] - prev_state.bulk.X_dot[i_b]) / elapsed)

        matter = float(0.5 * (b.psi_dot[i_b] ** 2 + psi_x[i_b] ** 2))
        roughness = float(dx * np.sum(0.5 * (rho_x ** 2 + X_x ** 2 + psi_x ** 2)))

    return BulkEventSignals(
        energy_flux=flux,
        dilaton_acceleration=dilaton_acc,
        matter_activity=matter,
        spatial_roughness=roughness,
    )


def compute_cf_curvature_signals(state: TwoManifoldState,
                                 prev_state: Optional[TwoManifoldState] = None) -> CFCurvatureSignals:
    """Placeholder slot for a continued-fraction classifier; always zero."""
    return CFCurvatureSignals()


def compute_antclock_event_signal(state: TwoManifoldState,
                                  prev_state: Optional[TwoManifoldState] = None,
                                  threshold: float = DEFAULT_EVENT_THRESHOLD) -> AntclockEventSignal:
    bulk = compute_bulk_event_signals(state, prev_state)
    cf = compute_cf_curvature_signals(state, prev_state)
    magnitude = (W_ENERGY_FLUX * abs(bulk.energy_flux)
                 + W_DILATON_ACCELERATION * abs(bulk.dilaton_acceleration)
                 + W_MATTER_ACTIVITY * abs(bulk.matter_activity)
                 + W_CF_CURVATURE * abs(cf.cf_curvature))
    return AntclockEventSignal(
        bulk=bulk,
        cf=cf,
        total_event_magnitude=float(magnitude),
        should_tick=bool(magnitude > threshold),
        threshold=float(threshold),
    )


def compute_constraint_residual(state: TwoManifoldState,
                                prev_state: Optional[TwoManifoldState] = None) -> float:
    """Event magnitude used as a stand-in constraint residual."""
    return compute_antclock_event_signal(state, prev_state).total_event_magnitude


def classify_event(signal: AntclockEventSignal) -> Optional[str]:
    """Dominant-signal label, first match in flux, dilaton, matter order."""
    if abs(signal.energy_flux) > LABEL_THRESHOLD:
        return ENERGY_FLUX_SPIKE
    if abs(signal.dilaton_acceleration) > LABEL_THRESHOLD:
        return DILATON_ACCELERATION_SPIKE
    if abs(signal.matter_activity) > LABEL_THRESHOLD:
        return MATTER_ACTIVITY_SPIKE
    return None
