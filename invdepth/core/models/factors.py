"""Serializable records for inverse-depth factors."""

from typing import List, Literal, Union
from pydantic import BaseModel, Field, field_validator

from .entities import Cal3S2


class BaseFactorRecord(BaseModel):
    """Fields shared by every inverse-depth factor record."""

    factor_id: str = Field(description="Unique factor identifier")
    measured: List[float] = Field(
        description="Measured pixel location [u, v]",
        min_length=2,
        max_length=2
    )
    calibration: Cal3S2 = Field(
        default_factory=Cal3S2.placeholder,
        description="Camera calibration"
    )
    sigma: float = Field(default=1.0, gt=0, description="Measurement standard deviation (pixels)")
    delta: float = Field(default=1e-5, gt=0, description="Numerical differentiation step")
    method: Literal["central", "forward"] = Field(
        default="central",
        description="Finite difference scheme"
    )

    @field_validator('measured')
    @classmethod
    def validate_measured(cls, v):
        if len(v) != 2:
            raise ValueError("measured must be exactly 2 elements")
        return v


class InverseDepthFactorRecord(BaseFactorRecord):
    """Landmark observed from the pose it is parameterized in."""

    type: Literal["inverse_depth"] = "inverse_depth"
    pose_id: str = Field(description="Pose variable ID")
    landmark_id: str = Field(description="Inverse-depth landmark variable ID")


class InverseDepthFactor2Record(BaseFactorRecord):
    """Landmark parameterized in one pose and observed from another."""

    type: Literal["inverse_depth_2"] = "inverse_depth_2"
    reference_pose_id: str = Field(description="Pose the landmark is parameterized in")
    observing_pose_id: str = Field(description="Pose of the observing camera")
    landmark_id: str = Field(description="Inverse-depth landmark variable ID")


FactorRecord = Union[InverseDepthFactorRecord, InverseDepthFactor2Record]


def create_factor_record(record_data: dict) -> FactorRecord:
    """Create a factor record from dictionary data."""
    record_type = record_data.get("type")

    if record_type == "inverse_depth":
        return InverseDepthFactorRecord(**record_data)
    elif record_type == "inverse_depth_2":
        return InverseDepthFactor2Record(**record_data)
    else:
        raise ValueError(f"Unknown factor type: {record_type}")
