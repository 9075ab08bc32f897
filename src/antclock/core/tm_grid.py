# tm_grid.py
# =============================================================================
# Periodic 1-D Grid Kernels
# =============================================================================
#
# Finite-difference operators and small vector helpers for an N-point periodic
# grid. Neighbour indices wrap modulo N; there is no boundary special-casing.
#
# Every function here is pure: inputs are never written to and a fresh array
# is returned. Length mismatches raise ValueError before any kernel runs.

import numpy as np
from numba import jit


def _as_vec(f, name="f") -> np.ndarray:
    arr = np.asarray(f, dtype=np.float64)
    if arr.ndim != 1:
        raise ValueError(f"{name} must be a 1-D array, got shape {arr.shape}")
    return arr


def _check_same_length(a: np.ndarray, b: np.ndarray):
    if a.shape[0] != b.shape[0]:
        raise ValueError(f"Array length mismatch: {a.shape[0]} != {b.shape[0]}")


def _check_dx(dx: float) -> float:
    dx = float(dx)
    if not np.isfinite(dx) or dx <= 0:
        raise ValueError(f"dx must be positive and finite, got {dx}")
    return dx


@jit(nopython=True)
def _periodic_derivative_kernel(f, dx, out):
    n = f.shape[0]
    for i in range(n):
        out[i] = (f[(i + 1) % n] - f[(i - 1 + n) % n]) / (2.0 * dx)
    return out


@jit(nopython=True)
def _periodic_laplacian_kernel(f, dx, out):
    n = f.shape[0]
    dx2 = dx * dx
    for i in range(n):
        out[i] = (f[(i + 1) % n] - 2.0 * f[i] + f[(i - 1 + n) % n]) / dx2
    return out


def zeros(n: int) -> np.ndarray:
    n = int(n)
    if n < 0:
        raise ValueError(f"Array length must be non-negative, got {n}")
    return np.zeros(n, dtype=np.float64)


def linspace(a: float, b: float, n: int) -> np.ndarray:
    """Inclusive grid coordinates a..b with n points."""
    return np.linspace(a, b, int(n), dtype=np.float64)


def add(a, b) -> np.ndarray:
    a = _as_vec(a, "a")
    b = _as_vec(b, "b")
    _check_same_length(a, b)
    return a + b


def scale(v, c: float) -> np.ndarray:
    return float(c) * _as_vec(v, "v")


def dot(a, b) -> float:
    a = _as_vec(a, "a")
    b = _as_vec(b, "b")
    _check_same_length(a, b)
    return float(np.dot(a, b))


def derivative(f, dx: float) -> np.ndarray:
    """Periodic central difference: (f[i+1] - f[i-1]) / (2 dx)."""
    f = _as_vec(f)
    dx = _check_dx(dx)
    out = np.empty_like(f)
    if f.shape[0] == 0:
        return out
    return _periodic_derivative_kernel(f, dx, out)


def laplacian(f, dx: float) -> np.ndarray:
    """Periodic three-point Laplacian: (f[i+1] - 2 f[i] + f[i-1]) / dx^2."""
    f = _as_vec(f)
    dx = _check_dx(dx)
    out = np.empty_like(f)
    if f.shape[0] == 0:
        return out
    return _periodic_laplacian_kernel(f, dx, out)
