"""Core entities: camera calibration."""

from typing import List
import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_validator

PLACEHOLDER_INTRINSICS = (444.0, 555.0, 666.0, 777.0, 888.0)


class Cal3S2(BaseModel):
    """Five-parameter pinhole calibration: focal lengths, skew, principal point.

    Normalized image coordinates (x, y) map to pixels as
    u = fx * x + s * y + u0, v = fy * y + v0.

    Instances are frozen so that one calibration can be shared read-only by
    any number of factors.
    """

    model_config = ConfigDict(frozen=True)

    fx: float = Field(description="Focal length in x (pixels)")
    fy: float = Field(description="Focal length in y (pixels)")
    s: float = Field(default=0.0, description="Skew")
    u0: float = Field(default=0.0, description="Principal point u coordinate")
    v0: float = Field(default=0.0, description="Principal point v coordinate")

    @field_validator('fx', 'fy')
    @classmethod
    def validate_focal_length(cls, v):
        if v == 0:
            raise ValueError("focal length must be nonzero")
        return v

    @classmethod
    def placeholder(cls) -> "Cal3S2":
        """Calibration used when a factor is built without one.

        The values are not meant for real cameras; residuals computed with
        them are well defined but meaningless.
        """
        fx, fy, s, u0, v0 = PLACEHOLDER_INTRINSICS
        return cls(fx=fx, fy=fy, s=s, u0=u0, v0=v0)

    @classmethod
    def from_vector(cls, values: List[float]) -> "Cal3S2":
        """Build from [fx, fy, s, u0, v0]."""
        if len(values) != 5:
            raise ValueError(f"calibration vector must have 5 elements, got {len(values)}")
        fx, fy, s, u0, v0 = (float(x) for x in values)
        return cls(fx=fx, fy=fy, s=s, u0=u0, v0=v0)

    def vector(self) -> np.ndarray:
        """Get intrinsics as [fx, fy, s, u0, v0]."""
        return np.array([self.fx, self.fy, self.s, self.u0, self.v0])

    def matrix(self) -> np.ndarray:
        """Get the 3x3 intrinsic matrix K."""
        return np.array([
            [self.fx, self.s, self.u0],
            [0.0, self.fy, self.v0],
            [0.0, 0.0, 1.0]
        ])

    def uncalibrate(self, pn: np.ndarray) -> np.ndarray:
        """Convert normalized coordinates (N x 2 or 2,) to pixel coordinates."""
        pn = np.asarray(pn, dtype=float)
        x = pn[..., 0]
        y = pn[..., 1]
        u = self.fx * x + self.s * y + self.u0
        v = self.fy * y + self.v0
        return np.stack([u, v], axis=-1)

    def calibrate(self, uv: np.ndarray) -> np.ndarray:
        """Convert pixel coordinates (N x 2 or 2,) to normalized coordinates."""
        uv = np.asarray(uv, dtype=float)
        y = (uv[..., 1] - self.v0) / self.fy
        x = (uv[..., 0] - self.u0 - self.s * y) / self.fx
        return np.stack([x, y], axis=-1)

    def is_placeholder(self) -> bool:
        """Check whether these are the not-configured placeholder intrinsics."""
        return tuple(self.vector()) == PLACEHOLDER_INTRINSICS

    def equals(self, other: "Cal3S2", tol: float = 1e-9) -> bool:
        """Compare intrinsics within an absolute tolerance."""
        if not isinstance(other, Cal3S2):
            return False
        return bool(np.all(np.abs(self.vector() - other.vector()) <= tol))

    def __str__(self) -> str:
        return f"fx={self.fx}, fy={self.fy}, s={self.s}, u0={self.u0}, v0={self.v0}"
