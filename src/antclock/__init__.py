# antclock - event-driven adaptive integrator for a coupled 1+1D bulk/interface system
# Public API re-exported from antclock.core

__version__ = "0.2.0"

from .core.tm_grid import zeros, linspace, add, scale, dot, derivative, laplacian
from .core.tm_core_fields import (
    BulkFieldState, InterfaceState, TwoManifoldState,
    initialize_smooth, initialize_cliff,
)
from .core.tm_rhs import TMRhs, BulkAccelerations, compute_accelerations, interface_flux, matter_stress
from .core.stepper_contract import StepperContract
from .core.tm_stepper import RK4Stepper, step_rk4, KAPPA, T_SIGMA
from .core.tm_conservation import (
    ConservationReport, SimulationResult, EnergyAudit,
    total_energy, bulk_energy, entropy_production, conservation_report,
    simulate, audit_energy_flow, junction_residual, spectral_acceleration,
)
from .core.hard_invariants import HealthReport, HardInvariantChecker, check_state_health
from .core.tm_events import (
    BulkEventSignals, CFCurvatureSignals, AntclockEventSignal,
    compute_bulk_event_signals, compute_cf_curvature_signals,
    compute_antclock_event_signal, compute_constraint_residual, classify_event,
)
from .core.antclock_policy import AntclockConfig, AntclockPolicyError, default_antclock_config
from .core.tm_receipts import ReceiptEmitter, verify_receipt_chain, state_fingerprint
from .core.antclock_driver import (
    AntclockDriver, AntclockSimulationResult, AntclockStepRecord, AntclockStepResult,
    DriverStatus, TickEvent, antclock_simulate, antclock_step, select_dt,
)
from .core.tm_analysis import (
    AntclockAnalysis, WorldlineSample, EventSignalProfile,
    analyze_antclock_result, worldline_history, event_signal_profile,
    compare_event_signal_profiles, run_summary,
)
from .core.logging_config import setup_logging

__all__ = [
    "zeros", "linspace", "add", "scale", "dot", "derivative", "laplacian",
    "BulkFieldState", "InterfaceState", "TwoManifoldState",
    "initialize_smooth", "initialize_cliff",
    "TMRhs", "BulkAccelerations", "compute_accelerations", "interface_flux", "matter_stress",
    "StepperContract", "RK4Stepper", "step_rk4", "KAPPA", "T_SIGMA",
    "ConservationReport", "SimulationResult", "EnergyAudit",
    "total_energy", "bulk_energy", "entropy_production", "conservation_report",
    "simulate", "audit_energy_flow", "junction_residual", "spectral_acceleration",
    "HealthReport", "HardInvariantChecker", "check_state_health",
    "BulkEventSignals", "CFCurvatureSignals", "AntclockEventSignal",
    "compute_bulk_event_signals", "compute_cf_curvature_signals",
    "compute_antclock_event_signal", "compute_constraint_residual", "classify_event",
    "AntclockConfig", "AntclockPolicyError", "default_antclock_config",
    "ReceiptEmitter", "verify_receipt_chain", "state_fingerprint",
    "AntclockDriver", "AntclockSimulationResult", "AntclockStepRecord", "AntclockStepResult",
    "DriverStatus", "TickEvent", "antclock_simulate", "antclock_step", "select_dt",
    "AntclockAnalysis", "WorldlineSample", "EventSignalProfile",
    "analyze_antclock_result", "worldline_history", "event_signal_profile",
    "compare_event_signal_profiles", "run_summary",
    "setup_logging",
]
