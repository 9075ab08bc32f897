# antclock_driver.py
# =============================================================================
# Antclock Adaptive Driver
# =============================================================================
#
# Event-driven step control. Each iteration:
#
#   1. event signal from the current state and the state one step back
#   2. dt = clamp(tick ? dt_nominal * event_boost : dt_nominal, dt_min, dt_max)
#   3. integrate with the injected stepper
#   4. on a tick, label the dominant signal and count it
#   5. record the state, the step, and its health
#
# The run stops when the tick budget is spent or the state's coordinate time
# reaches max_coordinate_time. The time limit is absolute, so a run continued
# from a state at t > 0 only covers the remainder. A tick budget of zero
# disables ticking, so such runs always end on the time budget. Non-finite
# numerics never stop the loop; they are kept as health data on the result.

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Tuple

from .antclock_policy import AntclockConfig, default_antclock_config
from .hard_invariants import HardInvariantChecker, HealthReport
from .logging_config import Timer
from .tm_core_fields import TwoManifoldState
from .tm_events import AntclockEventSignal, classify_event, compute_antclock_event_signal
from .tm_receipts import ReceiptEmitter
from .tm_stepper import step_rk4

logger = logging.getLogger('antclock.driver')

StepperFn = Callable[[TwoManifoldState, float], TwoManifoldState]

# Event signals compare against the state this many steps back.
LOOKBACK_STATES = 1

_TIME_EPS = 1e-9


class DriverStatus(Enum):
    RUNNING = "running"
    TERMINATED_MAX_TICKS = "terminated_max_ticks"
    TERMINATED_MAX_TIME = "terminated_max_time"

    @property
    def terminated(self) -> bool:
        return self is not DriverStatus.RUNNING


@dataclass(frozen=True)
class AntclockStepRecord:
    """What happened on one transition states[i] -> states[i + 1]."""
    index: int
    t_start: float
    dt: float
    event_signal: AntclockEventSignal
    tick: bool
    label: Optional[str] = None

    def to_dict(self):
        return {
            "index": self.index,
            "t_start": self.t_start,
            "dt": self.dt,
            "tick": self.tick,
            "label": self.label,
            "event_signal": self.event_signal.to_dict(),
        }


@dataclass(frozen=True, eq=False)
class AntclockStepResult:
    state: TwoManifoldState
    dt: float
    event_signal: AntclockEventSignal
    tick: bool
    label: Optional[str]


@dataclass(frozen=True)
class TickEvent:
    step_index: int
    t: float
    tau: float
    label: Optional[str]
    total_event_magnitude: float


@dataclass(frozen=True, eq=False)
class AntclockSimulationResult:
    states: Tuple[TwoManifoldState, ...]
    steps: Tuple[AntclockStepRecord, ...]
    total_ticks: int
    total_coordinate_time: float
    tick_events: Tuple[TickEvent, ...]
    termination: DriverStatus
    health: Tuple[HealthReport, ...]
    config: AntclockConfig

    @property
    def all_finite(self) -> bool:
        return all(h.all_finite for h in self.health)

    @property
    def n_steps(self) -> int:
        return len(self.steps)


def select_dt(should_tick: bool, config: AntclockConfig) -> float:
    dt = config.dt_nominal * config.event_boost if should_tick else config.dt_nominal
    return min(max(dt, config.dt_min), config.dt_max)


def antclock_step(state: TwoManifoldState, config: AntclockConfig,
                  stepper: StepperFn = step_rk4,
                  prev_state: Optional[TwoManifoldState] = None) -> AntclockStepResult:
    """One adaptive step: detect, choose dt, integrate, label."""
    signal = compute_antclock_event_signal(state, prev_state, config.event_threshold)
    tick = signal.should_tick and config.ticks_enabled
    dt = select_dt(tick, config)
    new_state = stepper(state, dt)
    label = classify_event(signal) if tick else None
    return AntclockStepResult(state=new_state, dt=dt, event_signal=signal, tick=tick, label=label)


class AntclockDriver:
    """Owns one adaptive run: the loop, its status and its history.

    The stepper is any callable (state, dt) -> state, so the integration
    scheme can be swapped without touching the driver.
    """

    def __init__(self, config: Optional[AntclockConfig] = None, stepper: StepperFn = step_rk4,
                 receipt_emitter: Optional[ReceiptEmitter] = None):
        if config is None:
            config = default_antclock_config()
        if not isinstance(config, AntclockConfig):
            raise TypeError(f"config must be an AntclockConfig, got {type(config).__name__}")
        if not callable(stepper):
            raise TypeError("stepper must be callable as stepper(state, dt)")
        self.config = config
        self.stepper = stepper
        self.receipt_emitter = receipt_emitter
        self.invariant_checker = HardInvariantChecker()
        self._reset()

    def _reset(self):
        self.status = DriverStatus.RUNNING
        self.states: List[TwoManifoldState] = []
        self.steps: List[AntclockStepRecord] = []
        self.tick_events: List[TickEvent] = []
        self.health: List[HealthReport] = []
        self.tick_count = 0
        self.coordinate_time = 0.0

    def _check_termination(self) -> DriverStatus:
        cfg = self.config
        if cfg.ticks_enabled and self.tick_count >= cfg.max_semantic_ticks:
            return DriverStatus.TERMINATED_MAX_TICKS
        if self.coordinate_time >= cfg.max_coordinate_time - _TIME_EPS:
            return DriverStatus.TERMINATED_MAX_TIME
        return DriverStatus.RUNNING

    def _lookback_state(self) -> Optional[TwoManifoldState]:
        if len(self.states) > LOOKBACK_STATES:
            return self.states[-1 - LOOKBACK_STATES]
        return None

    def advance(self) -> AntclockStepRecord:
        """Take one adaptive step from the last recorded state."""
        state = self.states[-1]
        result = antclock_step(state, self.config, self.stepper, self._lookback_state())
        index = len(self.steps)
        record = AntclockStepRecord(
            index=index,
            t_start=state.t,
            dt=result.dt,
            event_signal=result.event_signal,
            tick=result.tick,
            label=result.label,
        )
        new_state = result.state
        if result.tick:
            self.tick_count += 1
            self.tick_events.append(TickEvent(
                step_index=index,
                t=new_state.t,
                tau=new_state.interface.tau,
                label=result.label,
                total_event_magnitude=result.event_signal.total_event_magnitude,
            ))
            logger.debug("Antclock tick", extra={
                "extra_data": {
                    "step": index,
                    "t": new_state.t,
                    "dt": result.dt,
                    "label": result.label,
                    "tick_count": self.tick_count,
                    "event_magnitude": result.event_signal.total_event_magnitude,
                }
            })

        self.coordinate_time += result.dt
        self.states.append(new_state)
        self.steps.append(record)
        self.health.append(self.invariant_checker.check(new_state))

        if self.receipt_emitter is not None:
            self.receipt_emitter.emit_step_receipt(
                index, new_state, result.dt, result.tick, result.label,
                result.event_signal.total_event_magnitude,
            )
        return record

    def run(self, initial_state: TwoManifoldState) -> AntclockSimulationResult:
        if not math.isfinite(initial_state.t):
            raise ValueError(f"Initial coordinate time must be finite, got {initial_state.t}")
        self._reset()
        self.coordinate_time = initial_state.t
        self.states.append(initial_state)
        self.health.append(self.invariant_checker.check(initial_state))

        logger.info("Antclock run started", extra={
            "extra_data": {"nx": initial_state.nx, "L": initial_state.L, "t0": initial_state.t,
                           "config": self.config.to_dict()}
        })

        with Timer() as timer:
            self.status = self._check_termination()
            while self.status is DriverStatus.RUNNING:
                self.advance()
                self.status = self._check_termination()

        result = AntclockSimulationResult(
            states=tuple(self.states),
            steps=tuple(self.steps),
            total_ticks=self.tick_count,
            total_coordinate_time=self.coordinate_time,
            tick_events=tuple(self.tick_events),
            termination=self.status,
            health=tuple(self.health),
            config=self.config,
        )

        if not result.all_finite:
            logger.warning("Antclock run produced non-finite values", extra={
                "extra_data": {"violations": len(self.invariant_checker.violations)}
            })
        logger.info("Antclock run finished", extra={
            "extra_data": {
                "termination": self.status.value,
                "steps": result.n_steps,
                "ticks": result.total_ticks,
                "coordinate_time": result.total_coordinate_time,
                "execution_time_ms": timer.elapsed_ms(),
            }
        })
        return result


def antclock_simulate(initial_state: TwoManifoldState, config: Optional[AntclockConfig] = None,
                      stepper: StepperFn = step_rk4,
                      receipt_emitter: Optional[ReceiptEmitter] = None) -> AntclockSimulationResult:
    return AntclockDriver(config, stepper, receipt_emitter).run(initial_state)
