"""Pinhole camera projection and unprojection operations."""

import numpy as np
from typing import Optional

from .se3 import Pose3
from ..models.entities import Cal3S2


class CheiralityError(ValueError):
    """Raised when a point has non-positive depth in the camera frame."""

    def __init__(self, point: np.ndarray, depth: float):
        self.point = np.asarray(point, dtype=float)
        self.depth = float(depth)
        super().__init__(f"CheiralityError: point {self.point.tolist()} has depth {self.depth:.6g} behind camera")


def project(
    K: Cal3S2,
    R: np.ndarray,
    t: np.ndarray,
    X: np.ndarray
) -> np.ndarray:
    """Project 3D points to image coordinates.

    Args:
        K: Camera calibration
        R: 3x3 rotation matrix (world to camera)
        t: 3-element translation vector (world to camera)
        X: Nx3 array of 3D points in world coordinates

    Returns:
        Nx2 array of projected image coordinates [u, v]; rows for points
        with non-positive depth are NaN
    """
    if R.shape != (3, 3):
        raise ValueError(f"R must be 3x3 matrix, got shape {R.shape}")
    if t.shape != (3,):
        raise ValueError(f"t must be 3-element vector, got shape {t.shape}")

    X = np.atleast_2d(np.asarray(X, dtype=float))
    if X.shape[1] != 3:
        raise ValueError(f"X must be Nx3 array, got shape {X.shape}")

    # Transform to camera coordinates
    X_cam = X @ R.T + t

    behind_camera = X_cam[:, 2] <= 0.0
    if np.any(behind_camera):
        X_cam[behind_camera, 2] = np.nan

    x_norm = X_cam[:, 0] / X_cam[:, 2]
    y_norm = X_cam[:, 1] / X_cam[:, 2]

    return K.uncalibrate(np.column_stack([x_norm, y_norm]))


def unproject(
    K: Cal3S2,
    R: np.ndarray,
    t: np.ndarray,
    uv: np.ndarray,
    depth: float = 1.0
) -> np.ndarray:
    """Unproject image coordinates to 3D points at a given depth.

    Args:
        K: Camera calibration
        R: 3x3 rotation matrix (world to camera)
        t: 3-element translation vector (world to camera)
        uv: Nx2 array of image coordinates [u, v]
        depth: Depth along the optical axis (1.0 for the normalized plane)

    Returns:
        Nx3 array of 3D points in world coordinates
    """
    uv = np.atleast_2d(np.asarray(uv, dtype=float))
    if uv.shape[1] != 2:
        raise ValueError(f"uv must be Nx2 array, got shape {uv.shape}")

    pn = K.calibrate(uv)
    X_cam = np.column_stack([pn[:, 0] * depth, pn[:, 1] * depth, np.full(len(uv), depth)])

    # Camera to world
    R_inv = R.T
    t_inv = -R_inv @ t
    return X_cam @ R_inv.T + t_inv


def point_depth(R: np.ndarray, t: np.ndarray, X: np.ndarray) -> np.ndarray:
    """Get depth of 3D points relative to camera.

    Args:
        R: 3x3 rotation matrix (world to camera)
        t: 3-element translation vector (world to camera)
        X: Nx3 array of 3D points in world coordinates

    Returns:
        N-element array of depths (positive = in front of camera)
    """
    X = np.atleast_2d(X)
    X_cam = X @ R.T + t
    return X_cam[:, 2]


class PinholeCamera:
    """Calibrated camera located at a pose (camera frame looks along +z)."""

    def __init__(self, pose: Pose3, calibration: Cal3S2):
        self.pose = pose
        self.calibration = calibration
        # World-to-camera extrinsics
        self._R_cw = pose.R.T
        self._t_cw = -self._R_cw @ pose.t

    def depth(self, point: np.ndarray) -> float:
        return float(point_depth(self._R_cw, self._t_cw, point)[0])

    def try_project(self, point: np.ndarray) -> Optional[np.ndarray]:
        """Project a world point, returning None if it is behind the camera."""
        if self.depth(point) <= 0.0:
            return None
        return project(self.calibration, self._R_cw, self._t_cw, point)[0]

    def project(self, point: np.ndarray) -> np.ndarray:
        """Project a world point to pixels.

        Raises:
            CheiralityError: if the point is not in front of the camera
        """
        uv = self.try_project(point)
        if uv is None:
            raise CheiralityError(point, self.depth(point))
        return uv

    def backproject(self, uv: np.ndarray, depth: float) -> np.ndarray:
        """World point seen at pixel uv with the given depth."""
        return unproject(self.calibration, self._R_cw, self._t_cw, uv, depth)[0]
