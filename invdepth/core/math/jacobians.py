"""Jacobian computation utilities."""

import numpy as np
from dataclasses import dataclass
from typing import Any, Callable, Optional


@dataclass(frozen=True)
class DerivativeOptions:
    """Options for numerical differentiation of residual functions."""

    delta: float = 1e-5
    method: str = "central"  # "central", "forward"

    def __post_init__(self):
        if self.delta <= 0:
            raise ValueError(f"delta must be positive, got {self.delta}")
        if self.method not in ("central", "forward"):
            raise ValueError(f"Unknown finite difference method: {self.method}")


def _vector_retract(x: np.ndarray, dx: np.ndarray) -> np.ndarray:
    return x + dx


def numerical_derivative(
    func: Callable[[Any], np.ndarray],
    x: Any,
    retract: Optional[Callable[[Any, np.ndarray], Any]] = None,
    dim: Optional[int] = None,
    delta: float = 1e-5,
    method: str = "central",
    f0: Optional[np.ndarray] = None
) -> np.ndarray:
    """Jacobian of func at x with respect to the local coordinates of x.

    Each column j perturbs x along the j-th tangent direction through
    retract(x, +/- delta * e_j), so manifold-valued arguments such as poses
    get one column per degree of freedom rather than per stored number.

    Args:
        func: Function of one argument returning a residual vector
        x: Operating point (vector or manifold element)
        retract: retract(x, dx) -> perturbed x; vector addition if None
        dim: Tangent dimension; len(x) if None
        delta: Perturbation step
        method: "central" (two evaluations per column) or "forward"
            (one per column plus one at x)
        f0: func(x) if already known; reused by the forward method

    Returns:
        Jacobian matrix J where J[i,j] = d func_i / d xi_j
    """
    if method not in ("central", "forward"):
        raise ValueError(f"Unknown finite difference method: {method}")

    if retract is None:
        x = np.atleast_1d(np.asarray(x, dtype=float))
        retract = _vector_retract
    if dim is None:
        dim = len(x)

    if method == "forward":
        f0 = np.atleast_1d(func(x)) if f0 is None else np.atleast_1d(f0)

    columns = []
    for j in range(dim):
        dx = np.zeros(dim)
        dx[j] = delta

        if method == "central":
            f_plus = np.atleast_1d(func(retract(x, dx)))
            f_minus = np.atleast_1d(func(retract(x, -dx)))
            columns.append((f_plus - f_minus) / (2 * delta))
        else:
            f_plus = np.atleast_1d(func(retract(x, dx)))
            columns.append((f_plus - f0) / delta)

    return np.column_stack(columns)
