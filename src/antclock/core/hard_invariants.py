# hard_invariants.py
# =============================================================================
# State Health Checks
# =============================================================================
#
# Non-finite values and negative entropy are never raised mid-run. They are
# collected here as data so a run result can report them:
#
# 1. Every bulk array finite (not NaN/inf)
# 2. Interface entropy s finite and s >= 0
# 3. Proper time tau and coordinate time t finite
# 4. Total energy finite

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

import numpy as np

from .tm_core_fields import BULK_FIELD_NAMES

logger = logging.getLogger('antclock.invariants')


@dataclass(frozen=True)
class HealthReport:
    bulk_finite: bool
    entropy_finite: bool
    entropy_non_negative: bool
    tau_finite: bool
    t_finite: bool
    energy_finite: bool
    nonfinite_fields: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def all_finite(self) -> bool:
        return (self.bulk_finite and self.entropy_finite and self.tau_finite
                and self.t_finite and self.energy_finite)

    @property
    def healthy(self) -> bool:
        return self.all_finite and self.entropy_non_negative

    def violations(self) -> List[str]:
        out = []
        for name in self.nonfinite_fields:
            out.append(f"Bulk field {name} contains NaN/inf")
        if not self.entropy_finite:
            out.append("Interface entropy is not finite")
        elif not self.entropy_non_negative:
            out.append("Interface entropy is negative")
        if not self.tau_finite:
            out.append("Proper time tau is not finite")
        if not self.t_finite:
            out.append("Coordinate time t is not finite")
        if not self.energy_finite:
            out.append("Total energy is not finite")
        return out

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bulk_finite": self.bulk_finite,
            "entropy_finite": self.entropy_finite,
            "entropy_non_negative": self.entropy_non_negative,
            "tau_finite": self.tau_finite,
            "t_finite": self.t_finite,
            "energy_finite": self.energy_finite,
            "nonfinite_fields": list(self.nonfinite_fields),
        }


def check_state_health(state) -> HealthReport:
    """Finiteness and sign checks on one state. Never raises on bad numerics."""
    # Local import: tm_conservation imports this module.
    from .tm_conservation import total_energy

    nonfinite = tuple(
        name for name in BULK_FIELD_NAMES
        if not np.all(np.isfinite(getattr(state.bulk, name)))
    )
    s = state.interface.s
    entropy_finite = bool(np.isfinite(s))
    with np.errstate(over='ignore', invalid='ignore'):
        energy = total_energy(state)
    return HealthReport(
        bulk_finite=len(nonfinite) == 0,
        entropy_finite=entropy_finite,
        entropy_non_negative=bool(s >= 0) if entropy_finite else False,
        tau_finite=bool(np.isfinite(state.interface.tau)),
        t_finite=bool(np.isfinite(state.t)),
        energy_finite=bool(np.isfinite(energy)),
        nonfinite_fields=nonfinite,
    )


class HardInvariantChecker:
    """Collects health violations over a run and logs each one.

    Mirrors the accept/reject style of a step gate but never rejects:
    the report is returned for the caller to record.
    """

    def __init__(self):
        self.violations = []

    def check(self, state) -> HealthReport:
        report = check_state_health(state)
        if not report.healthy:
            violations = report.violations()
            margins = {
                "t": float(state.t),
                "s": float(state.interface.s),
                "nonfinite_fields": list(report.nonfinite_fields),
            }
            self.violations.append({
                'violations': violations,
                'margins': margins
            })
            logger.warning(
                f"Hard invariant violations detected: {violations}",
                extra={"extra_data": {"margins": margins, "health": report.to_dict()}}
            )
        return report
