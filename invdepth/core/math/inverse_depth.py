"""Inverse-depth landmark parameterization.

A landmark is the triple (theta, phi, rho) expressed in a reference camera
frame: azimuth theta about the camera y axis measured from +z, elevation phi
towards +y, and inverse range rho. The corresponding local point is

    (cos(phi) sin(theta), sin(phi), cos(phi) cos(theta)) / rho
"""

import numpy as np

from .se3 import Pose3
from .camera import PinholeCamera
from ..models.entities import Cal3S2


def as_landmark(landmark) -> np.ndarray:
    """Validate and convert a landmark to a float array [theta, phi, rho]."""
    landmark = np.asarray(landmark, dtype=float)
    if landmark.shape != (3,):
        raise ValueError(f"landmark must be 3-element vector [theta, phi, rho], got shape {landmark.shape}")
    return landmark


def bearing(theta: float, phi: float) -> np.ndarray:
    """Unit direction for azimuth theta and elevation phi."""
    return np.array([
        np.cos(phi) * np.sin(theta),
        np.sin(phi),
        np.cos(phi) * np.cos(theta)
    ])


def is_finite_depth(landmark: np.ndarray) -> bool:
    """Check that rho is nonzero and every component is finite."""
    landmark = as_landmark(landmark)
    return bool(np.all(np.isfinite(landmark)) and landmark[2] != 0.0)


def local_point(landmark: np.ndarray) -> np.ndarray:
    """Landmark position in its reference frame.

    rho == 0 is not guarded here and yields non-finite coordinates.
    """
    theta, phi, rho = as_landmark(landmark)
    with np.errstate(divide="ignore", invalid="ignore"):
        return bearing(theta, phi) / rho


def world_point(pose: Pose3, landmark: np.ndarray) -> np.ndarray:
    """Landmark position in world coordinates given its reference pose."""
    return pose.transform_from(local_point(landmark))


def from_local_point(point: np.ndarray) -> np.ndarray:
    """Inverse of local_point: convert a reference-frame point to (theta, phi, rho)."""
    point = np.asarray(point, dtype=float)
    if point.shape != (3,):
        raise ValueError(f"point must be 3-element vector, got shape {point.shape}")

    x, y, z = point
    distance = np.linalg.norm(point)
    if distance < 1e-12:
        raise ValueError("Cannot parameterize a point at the reference origin")

    theta = np.arctan2(x, z)
    phi = np.arctan2(y, np.hypot(x, z))
    return np.array([theta, phi, 1.0 / distance])


def from_world_point(pose: Pose3, point: np.ndarray) -> np.ndarray:
    """Express a world point as an inverse-depth landmark relative to pose."""
    return from_local_point(pose.transform_to(point))


def from_observation(
    pose: Pose3,
    calibration: Cal3S2,
    uv: np.ndarray,
    depth: float
) -> np.ndarray:
    """Initialize a landmark from its first pixel observation.

    Args:
        pose: Reference camera pose (becomes the landmark's frame)
        calibration: Camera calibration
        uv: Observed pixel [u, v]
        depth: Assumed depth along the optical axis, must be positive

    Returns:
        Landmark [theta, phi, rho]
    """
    if depth <= 0:
        raise ValueError(f"depth must be positive, got {depth}")

    camera = PinholeCamera(pose, calibration)
    return from_world_point(pose, camera.backproject(uv, depth))
