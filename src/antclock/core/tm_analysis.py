# tm_analysis.py
# =============================================================================
# Post-Run Analysis
# =============================================================================
#
# Pure summaries over a finished AntclockSimulationResult: step-size stats,
# tick fraction, dominant-event histogram, cumulative entropy production,
# interface worldline export, and event-magnitude profiles.

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

import numpy as np

from .tm_conservation import entropy_production, total_energy
from .tm_core_fields import TwoManifoldState
from .tm_events import DEFAULT_EVENT_THRESHOLD, compute_antclock_event_signal


@dataclass(frozen=True)
class AntclockAnalysis:
    avg_dt: float
    min_dt: float
    max_dt: float
    tick_fraction: float
    dominant_events: Dict[str, int] = field(default_factory=dict)
    n_steps: int = 0
    n_ticks: int = 0
    cumulative_entropy_production: float = 0.0
    termination: str = ""


def analyze_antclock_result(result) -> AntclockAnalysis:
    steps = result.steps
    n_steps = len(steps)
    dominant = dict(Counter(s.label for s in steps if s.tick and s.label is not None))
    if n_steps == 0:
        return AntclockAnalysis(
            avg_dt=0.0, min_dt=0.0, max_dt=0.0, tick_fraction=0.0,
            dominant_events=dominant, n_steps=0, n_ticks=result.total_ticks,
            cumulative_entropy_production=0.0, termination=result.termination.value,
        )

    dts = np.array([s.dt for s in steps], dtype=np.float64)
    # Each step's rate is taken at the state it started from.
    produced = sum(entropy_production(result.states[i], s.dt) * s.dt for i, s in enumerate(steps))
    return AntclockAnalysis(
        avg_dt=float(np.mean(dts)),
        min_dt=float(np.min(dts)),
        max_dt=float(np.max(dts)),
        tick_fraction=result.total_ticks / n_steps,
        dominant_events=dominant,
        n_steps=n_steps,
        n_ticks=result.total_ticks,
        cumulative_entropy_production=float(produced),
        termination=result.termination.value,
    )


@dataclass(frozen=True)
class WorldlineSample:
    t: float
    tau: float
    x_b: float
    v_b: float
    s: float


def worldline_history(states: Sequence[TwoManifoldState]) -> List[WorldlineSample]:
    """Interface trajectory for downstream classifiers. The interface does not move, so v_b is 0."""
    return [
        WorldlineSample(t=st.t, tau=st.interface.tau, x_b=st.x_b, v_b=0.0, s=st.interface.s)
        for st in states
    ]


@dataclass(frozen=True, eq=False)
class EventSignalProfile:
    tau: np.ndarray
    magnitude: np.ndarray
    ticks: np.ndarray

    @property
    def peak(self) -> float:
        return float(np.max(self.magnitude)) if self.magnitude.size else 0.0


def event_signal_profile(states: Sequence[TwoManifoldState],
                         threshold: float = DEFAULT_EVENT_THRESHOLD) -> EventSignalProfile:
    """Event magnitude at every state, each compared with the state one back."""
    taus, mags, ticks = [], [], []
    prev = None
    for st in states:
        sig = compute_antclock_event_signal(st, prev, threshold)
        taus.append(st.interface.tau)
        mags.append(sig.total_event_magnitude)
        ticks.append(sig.should_tick)
        prev = st
    return EventSignalProfile(
        tau=np.array(taus, dtype=np.float64),
        magnitude=np.array(mags, dtype=np.float64),
        ticks=np.array(ticks, dtype=bool),
    )


def compare_event_signal_profiles(ref: EventSignalProfile, test: EventSignalProfile) -> Dict[str, float]:
    """RMS difference on the reference proper-time grid, and relative peak difference."""
    if ref.tau.size == 0 or test.tau.size == 0:
        raise ValueError("Cannot compare empty event signal profiles")
    test_on_ref = np.interp(ref.tau, test.tau, test.magnitude)
    diff = ref.magnitude - test_on_ref
    ref_peak = ref.peak
    denom = abs(ref_peak) if abs(ref_peak) > 0 else 1.0
    return {
        "rms_difference": float(np.sqrt(np.mean(diff * diff))),
        "relative_peak_difference": float(abs(test.peak - ref_peak) / denom),
    }


def run_summary(result) -> Dict[str, Any]:
    """JSON-serialisable digest of a run."""
    analysis = analyze_antclock_result(result)
    final = result.states[-1]
    return {
        "termination": analysis.termination,
        "n_steps": analysis.n_steps,
        "total_ticks": result.total_ticks,
        "total_coordinate_time": result.total_coordinate_time,
        "tick_fraction": analysis.tick_fraction,
        "avg_dt": analysis.avg_dt,
        "min_dt": analysis.min_dt,
        "max_dt": analysis.max_dt,
        "dominant_events": dict(analysis.dominant_events),
        "cumulative_entropy_production": analysis.cumulative_entropy_production,
        "final_entropy": final.interface.s,
        "final_tau": final.interface.tau,
        "final_energy": total_energy(final),
        "all_finite": result.all_finite,
    }
