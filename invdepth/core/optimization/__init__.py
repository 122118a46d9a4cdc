"""Factor graph and inverse-depth residual modules."""

from .factor_graph import FactorGraph, Factor
from .residuals import (
    ResidualOutcome,
    InverseDepthResidual,
    InverseDepthFactor,
    InverseDepthFactor2,
    inverse_depth_residual,
    factor_from_dict,
    factor_from_record,
)

__all__ = [
    "FactorGraph",
    "Factor",
    "ResidualOutcome",
    "InverseDepthResidual",
    "InverseDepthFactor",
    "InverseDepthFactor2",
    "inverse_depth_residual",
    "factor_from_dict",
    "factor_from_record",
]
