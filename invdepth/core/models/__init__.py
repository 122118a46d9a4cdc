"""Data models for invdepth."""

from .entities import Cal3S2
from .factors import (
    FactorRecord,
    InverseDepthFactorRecord,
    InverseDepthFactor2Record,
    create_factor_record,
)

__all__ = [
    "Cal3S2",
    "FactorRecord",
    "InverseDepthFactorRecord",
    "InverseDepthFactor2Record",
    "create_factor_record",
]
