# tm_rhs.py
# =============================================================================
# Equations of Motion for the Bulk Fields and Interface Flux
# =============================================================================
#
#   rho_tt = lap(rho) + exp(2 rho) / 2
#   X_tt   = lap(X) + 8 pi * T,    T = (psi_t^2 + psi_x^2) / 2
#   psi_tt = lap(psi)
#
# and the energy flux into the interface, Phi_in = psi_t[i_b] * psi_x[i_b].
# Everything here is a pure function of one snapshot.

from typing import NamedTuple

import numpy as np

from .tm_grid import derivative, laplacian

EIGHT_PI = 8.0 * np.pi


class BulkAccelerations(NamedTuple):
    rho: np.ndarray
    X: np.ndarray
    psi: np.ndarray


def matter_stress(psi: np.ndarray, psi_dot: np.ndarray, dx: float) -> np.ndarray:
    """Pointwise matter energy density (psi_t^2 + psi_x^2) / 2."""
    psi_x = derivative(psi, dx)
    psi_dot = np.asarray(psi_dot, dtype=np.float64)
    if psi_dot.shape != psi_x.shape:
        raise ValueError(f"psi_dot shape {psi_dot.shape} does not match psi {psi_x.shape}")
    return 0.5 * (psi_dot ** 2 + psi_x ** 2)


def compute_accelerations(rho, X, psi, psi_dot, dx: float) -> BulkAccelerations:
    """Second time derivatives of (rho, X, psi) from raw arrays.

    exp(2 rho) is left unclamped; overflow shows up as inf in the result.
    """
    with np.errstate(over='ignore', invalid='ignore'):
        rho_acc = laplacian(rho, dx) + 0.5 * np.exp(2.0 * np.asarray(rho, dtype=np.float64))
        X_acc = laplacian(X, dx) + EIGHT_PI * matter_stress(psi, psi_dot, dx)
    psi_acc = laplacian(psi, dx)
    if not (rho_acc.shape == X_acc.shape == psi_acc.shape):
        raise ValueError(
            f"Bulk array length mismatch: rho {rho_acc.shape}, X {X_acc.shape}, psi {psi_acc.shape}"
        )
    return BulkAccelerations(rho=rho_acc, X=X_acc, psi=psi_acc)


def interface_flux(psi, psi_dot, dx: float, x_b_index: int) -> float:
    psi_x = derivative(psi, dx)
    return float(np.asarray(psi_dot, dtype=np.float64)[x_b_index] * psi_x[x_b_index])


class TMRhs:
    """Right-hand side evaluator bound to one grid spacing and interface index."""

    def __init__(self, dx: float, x_b_index: int):
        if not np.isfinite(dx) or dx <= 0:
            raise ValueError(f"dx must be positive and finite, got {dx}")
        self.dx = float(dx)
        self.x_b_index = int(x_b_index)

    @classmethod
    def for_state(cls, state) -> "TMRhs":
        return cls(state.dx, state.interface.x_b_index)

    def accelerations(self, rho, X, psi, psi_dot) -> BulkAccelerations:
        return compute_accelerations(rho, X, psi, psi_dot, self.dx)

    def flux(self, psi, psi_dot) -> float:
        return interface_flux(psi, psi_dot, self.dx, self.x_b_index)
