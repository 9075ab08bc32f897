# tm_core_fields.py
# =============================================================================
# Two-Manifold Field State
# =============================================================================
#
# Bulk fields (lapse rho, dilaton X, matter psi) with their velocities, the
# scalar interface (entropy s, fixed grid index, proper time tau), and the
# grid metadata that ties them together.
#
# States are immutable values: arrays are copied on construction and marked
# read-only, and every transition builds a new TwoManifoldState.

import math
from dataclasses import dataclass
from typing import Dict

import numpy as np

from .tm_grid import linspace

BULK_FIELD_NAMES = ("rho", "rho_dot", "X", "X_dot", "psi", "psi_dot")

DEFAULT_RHO0 = -1.0
SMOOTH_PULSE_AMPLITUDE = 0.01
CLIFF_WAVE_AMPLITUDE = 0.5
CLIFF_INITIAL_ENTROPY = 0.1


def _frozen_copy(arr, name: str) -> np.ndarray:
    out = np.array(arr, dtype=np.float64, copy=True)
    if out.ndim != 1:
        raise ValueError(f"{name} must be a 1-D array, got shape {out.shape}")
    out.flags.writeable = False
    return out


@dataclass(frozen=True, eq=False)
class BulkFieldState:
    """Value and velocity arrays of the three bulk fields on one grid."""
    rho: np.ndarray
    rho_dot: np.ndarray
    X: np.ndarray
    X_dot: np.ndarray
    psi: np.ndarray
    psi_dot: np.ndarray

    def __post_init__(self):
        for name in BULK_FIELD_NAMES:
            object.__setattr__(self, name, _frozen_copy(getattr(self, name), name))
        lengths = {name: getattr(self, name).shape[0] for name in BULK_FIELD_NAMES}
        if len(set(lengths.values())) != 1:
            raise ValueError(f"Bulk field arrays must share one length, got {lengths}")

    @property
    def n(self) -> int:
        return self.rho.shape[0]

    def as_dict(self) -> Dict[str, np.ndarray]:
        return {name: getattr(self, name) for name in BULK_FIELD_NAMES}

    def all_finite(self) -> bool:
        return all(bool(np.all(np.isfinite(getattr(self, name)))) for name in BULK_FIELD_NAMES)


@dataclass(frozen=True)
class InterfaceState:
    """Entropy, grid position and proper time of the interface point.

    s must not be negative. NaN is accepted so that blow-up can be reported
    as health data instead of aborting a run.
    """
    s: float
    x_b_index: int
    tau: float = 0.0

    def __post_init__(self):
        object.__setattr__(self, "s", float(self.s))
        object.__setattr__(self, "tau", float(self.tau))
        object.__setattr__(self, "x_b_index", int(self.x_b_index))
        if self.s < 0:
            raise ValueError(f"Interface entropy must be non-negative, got {self.s}")
        if self.x_b_index < 0:
            raise ValueError(f"Interface index must be non-negative, got {self.x_b_index}")


@dataclass(frozen=True, eq=False)
class TwoManifoldState:
    bulk: BulkFieldState
    interface: InterfaceState
    nx: int
    L: float
    t: float = 0.0
    dt: float = 0.0

    def __post_init__(self):
        object.__setattr__(self, "nx", int(self.nx))
        object.__setattr__(self, "L", float(self.L))
        object.__setattr__(self, "t", float(self.t))
        object.__setattr__(self, "dt", float(self.dt))
        if self.nx < 3:
            raise ValueError(f"nx must be at least 3, got {self.nx}")
        if not math.isfinite(self.L) or self.L <= 0:
            raise ValueError(f"L must be positive and finite, got {self.L}")
        if self.bulk.n != self.nx:
            raise ValueError(f"Bulk arrays have length {self.bulk.n}, expected nx={self.nx}")
        if self.interface.x_b_index >= self.nx:
            raise ValueError(
                f"Interface index {self.interface.x_b_index} outside grid of {self.nx} points"
            )

    @property
    def dx(self) -> float:
        return self.L / (self.nx - 1)

    @property
    def x_b(self) -> float:
        return self.interface.x_b_index * self.dx

    @property
    def x(self) -> np.ndarray:
        return linspace(0.0, self.L, self.nx)

    @property
    def period(self) -> float:
        return self.nx * self.dx


def _check_grid(nx: int, L: float):
    if int(nx) < 3:
        raise ValueError(f"nx must be at least 3, got {nx}")
    if not math.isfinite(float(L)) or float(L) <= 0:
        raise ValueError(f"L must be positive and finite, got {L}")


def initialize_smooth(nx: int, L: float, rho0: float = DEFAULT_RHO0,
                      amplitude: float = SMOOTH_PULSE_AMPLITUDE) -> TwoManifoldState:
    """Gaussian matter pulse at rest, centred on the interface.

    The pulse uses periodic distance to the interface so it is mirror
    symmetric there and the interface flux starts at zero.
    """
    _check_grid(nx, L)
    nx = int(nx)
    dx = L / (nx - 1)
    i_b = nx // 2
    idx = np.arange(nx)
    dist = np.abs(idx - i_b)
    dist = np.minimum(dist, nx - dist) * dx
    width = L / 8.0
    psi = amplitude * np.exp(-(dist / width) ** 2)

    bulk = BulkFieldState(
        rho=np.full(nx, float(rho0)),
        rho_dot=np.zeros(nx),
        X=np.zeros(nx),
        X_dot=np.zeros(nx),
        psi=psi,
        psi_dot=np.zeros(nx),
    )
    interface = InterfaceState(s=0.0, x_b_index=i_b, tau=0.0)
    return TwoManifoldState(bulk=bulk, interface=interface, nx=nx, L=L)


def initialize_cliff(nx: int, L: float, rho0: float = DEFAULT_RHO0,
                     amplitude: float = CLIFF_WAVE_AMPLITUDE,
                     s0: float = CLIFF_INITIAL_ENTROPY) -> TwoManifoldState:
    """Sinusoidal matter wave travelling left across an entropy-loaded interface.

    The velocity uses the dispersion relation of the three-point Laplacian, so
    the wave stays a single grid mode and psi_dot * psi_x is non-negative.
    """
    _check_grid(nx, L)
    nx = int(nx)
    dx = L / (nx - 1)
    x = linspace(0.0, L, nx)
    k = 2.0 * np.pi / (nx * dx)
    omega = (2.0 / dx) * np.sin(k * dx / 2.0)

    bulk = BulkFieldState(
        rho=np.full(nx, float(rho0)),
        rho_dot=np.zeros(nx),
        X=np.zeros(nx),
        X_dot=np.zeros(nx),
        psi=amplitude * np.sin(k * x),
        psi_dot=amplitude * omega * np.cos(k * x),
    )
    interface = InterfaceState(s=s0, x_b_index=nx // 2, tau=0.0)
    return TwoManifoldState(bulk=bulk, interface=interface, nx=nx, L=L)
