"""Math primitives for invdepth."""

from .se3 import Pose3, se3_exp, se3_log, compose, invert
from .camera import CheiralityError, PinholeCamera, project, unproject
from .inverse_depth import local_point, world_point, from_local_point, from_observation
from .jacobians import DerivativeOptions, numerical_derivative

__all__ = [
    "Pose3",
    "se3_exp",
    "se3_log",
    "compose",
    "invert",
    "CheiralityError",
    "PinholeCamera",
    "project",
    "unproject",
    "local_point",
    "world_point",
    "from_local_point",
    "from_observation",
    "DerivativeOptions",
    "numerical_derivative",
]
