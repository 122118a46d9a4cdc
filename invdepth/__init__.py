"""invdepth - Inverse-depth reprojection factors

Reprojection residuals and numerical Jacobians for landmarks parameterized as
(theta, phi, rho), observed from one or two camera poses.
"""

__version__ = "0.1.0"

# Geometry
from .core.math.se3 import Pose3
from .core.math.camera import CheiralityError, PinholeCamera
from .core.math.jacobians import DerivativeOptions

# Models
from .core.models.entities import Cal3S2

# Factors
from .core.optimization.factor_graph import FactorGraph
from .core.optimization.residuals import (
    InverseDepthFactor,
    InverseDepthFactor2,
    factor_from_dict,
)

__all__ = [
    # Version
    "__version__",
    # Geometry
    "Pose3",
    "CheiralityError",
    "PinholeCamera",
    "DerivativeOptions",
    # Models
    "Cal3S2",
    # Factors
    "FactorGraph",
    "InverseDepthFactor",
    "InverseDepthFactor2",
    "factor_from_dict",
]
