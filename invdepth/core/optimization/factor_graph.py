"""Factor graph representation consumed by an external optimizer."""

import numpy as np
from typing import Any, Dict, Iterable, List, Optional, Tuple
from abc import ABC, abstractmethod
from scipy.sparse import csr_matrix

from ..math.se3 import Pose3


def tangent_dimension(value: Any) -> int:
    """Number of local degrees of freedom of a variable value."""
    if isinstance(value, Pose3):
        return Pose3.DIM
    return len(np.atleast_1d(value))


class Factor(ABC):
    """Abstract base class for factors in the factor graph."""

    def __init__(self, factor_id: str, variable_ids: List[str]):
        """Initialize factor.

        Args:
            factor_id: Unique identifier for this factor
            variable_ids: List of variable IDs this factor depends on
        """
        if len(set(variable_ids)) != len(variable_ids):
            raise ValueError(f"Factor {factor_id}: variable IDs must be distinct, got {variable_ids}")
        self.factor_id = factor_id
        self.variable_ids = list(variable_ids)

    @property
    def keys(self) -> List[str]:
        return list(self.variable_ids)

    @abstractmethod
    def compute_residual(self, variables: Dict[str, Any]) -> np.ndarray:
        """Compute residual given variable values.

        Args:
            variables: Dictionary mapping variable IDs to their values

        Returns:
            Residual vector
        """
        pass

    @abstractmethod
    def compute_jacobian(
        self,
        variables: Dict[str, Any],
        wrt: Optional[Iterable[str]] = None
    ) -> Dict[str, np.ndarray]:
        """Compute Jacobian of residual with respect to variables.

        Args:
            variables: Dictionary mapping variable IDs to their values
            wrt: Variable IDs to differentiate against (all if None)

        Returns:
            Dictionary mapping variable IDs to their Jacobian matrices
        """
        pass

    @abstractmethod
    def residual_dimension(self) -> int:
        """Get dimension of residual vector."""
        pass

    def linearize(
        self,
        variables: Dict[str, Any],
        wrt: Optional[Iterable[str]] = None
    ) -> Tuple[np.ndarray, Dict[str, np.ndarray]]:
        """Residual and Jacobians at the given values."""
        return self.compute_residual(variables), self.compute_jacobian(variables, wrt)

    def error(self, variables: Dict[str, Any]) -> float:
        """Half squared norm of the residual."""
        residual = self.compute_residual(variables)
        return 0.5 * float(residual @ residual)


class FactorGraph:
    """Collection of factors evaluated against caller-owned values."""

    def __init__(self):
        """Initialize empty factor graph."""
        self.factors: Dict[str, Factor] = {}
        self._factor_ordering: List[str] = []

    def add_factor(self, factor: Factor) -> None:
        """Add a factor to the graph.

        Args:
            factor: Factor to add
        """
        if factor.factor_id in self.factors:
            raise ValueError(f"Factor {factor.factor_id} already exists")

        self.factors[factor.factor_id] = factor
        self._factor_ordering.append(factor.factor_id)

    def get_factor(self, factor_id: str) -> Factor:
        """Get factor by ID."""
        if factor_id not in self.factors:
            raise ValueError(f"Factor {factor_id} not found")
        return self.factors[factor_id]

    def get_factor_ids(self) -> List[str]:
        """Get list of all factor IDs in order."""
        return self._factor_ordering.copy()

    def get_variable_ids(self) -> List[str]:
        """Variable IDs referenced by the factors, in order of first use."""
        seen = []
        for factor_id in self._factor_ordering:
            for var_id in self.factors[factor_id].variable_ids:
                if var_id not in seen:
                    seen.append(var_id)
        return seen

    def __len__(self) -> int:
        return len(self.factors)

    def _check_values(self, factor: Factor, values: Dict[str, Any]) -> None:
        for var_id in factor.variable_ids:
            if var_id not in values:
                raise KeyError(f"Variable {var_id} required by factor {factor.factor_id} has no value")

    def compute_all_residuals(self, values: Dict[str, Any]) -> np.ndarray:
        """Compute residuals for all factors.

        Returns:
            Concatenated residual vector
        """
        residuals = []

        for factor_id in self._factor_ordering:
            factor = self.factors[factor_id]
            self._check_values(factor, values)
            residuals.append(factor.compute_residual(values))

        if not residuals:
            return np.array([])

        return np.concatenate(residuals)

    def error(self, values: Dict[str, Any]) -> float:
        """Total error: sum of half squared residual norms."""
        residuals = self.compute_all_residuals(values)
        return 0.5 * float(residuals @ residuals)

    def _column_offsets(
        self,
        values: Dict[str, Any],
        ordering: Optional[List[str]]
    ) -> Tuple[Dict[str, int], int]:
        if ordering is None:
            ordering = self.get_variable_ids()

        offsets = {}
        n_cols = 0
        for var_id in ordering:
            if var_id not in values:
                raise KeyError(f"Variable {var_id} in ordering has no value")
            offsets[var_id] = n_cols
            n_cols += tangent_dimension(values[var_id])
        return offsets, n_cols

    def compute_jacobian_structure(
        self,
        values: Dict[str, Any],
        ordering: Optional[List[str]] = None
    ) -> Tuple[List[int], List[int]]:
        """Compute sparsity structure of the stacked Jacobian.

        Variables missing from the ordering are treated as constant.

        Returns:
            Tuple of (row_indices, col_indices) for sparse Jacobian
        """
        offsets, _ = self._column_offsets(values, ordering)
        row_indices = []
        col_indices = []

        residual_offset = 0
        for factor_id in self._factor_ordering:
            factor = self.factors[factor_id]
            residual_dim = factor.residual_dimension()

            for var_id in factor.variable_ids:
                if var_id in offsets:
                    var_offset = offsets[var_id]
                    for r in range(residual_dim):
                        for c in range(tangent_dimension(values[var_id])):
                            row_indices.append(residual_offset + r)
                            col_indices.append(var_offset + c)

            residual_offset += residual_dim

        return row_indices, col_indices

    def linearize(
        self,
        values: Dict[str, Any],
        ordering: Optional[List[str]] = None
    ) -> Tuple[np.ndarray, csr_matrix]:
        """Stack residuals and Jacobian blocks of every factor.

        Args:
            values: Variable values by ID
            ordering: Column order of variables; variables not listed are
                held constant and their Jacobians are not computed

        Returns:
            Tuple of (residual vector, sparse Jacobian)
        """
        offsets, n_cols = self._column_offsets(values, ordering)

        residuals = []
        rows, cols, data = [], [], []
        residual_offset = 0

        for factor_id in self._factor_ordering:
            factor = self.factors[factor_id]
            self._check_values(factor, values)

            wrt = [var_id for var_id in factor.variable_ids if var_id in offsets]
            residual, jacobians = factor.linearize(values, wrt)
            residuals.append(residual)

            for var_id, J in jacobians.items():
                r_idx, c_idx = np.indices(J.shape)
                rows.append((r_idx + residual_offset).ravel())
                cols.append((c_idx + offsets[var_id]).ravel())
                data.append(J.ravel())

            residual_offset += len(residual)

        if not residuals:
            return np.array([]), csr_matrix((0, n_cols))

        if data:
            jacobian = csr_matrix(
                (np.concatenate(data), (np.concatenate(rows), np.concatenate(cols))),
                shape=(residual_offset, n_cols)
            )
        else:
            jacobian = csr_matrix((residual_offset, n_cols))

        return np.concatenate(residuals), jacobian

    def summary(self) -> Dict[str, Any]:
        """Get summary information about the factor graph.

        Returns:
            Dictionary with graph statistics
        """
        factor_type_counts = {}
        total_residual_size = 0

        for factor in self.factors.values():
            factor_type = type(factor).__name__
            factor_type_counts[factor_type] = factor_type_counts.get(factor_type, 0) + 1
            total_residual_size += factor.residual_dimension()

        return {
            "variables": {
                "total": len(self.get_variable_ids()),
            },
            "factors": {
                "total": len(self.factors),
                "total_residuals": total_residual_size,
                "by_type": factor_type_counts
            }
        }
