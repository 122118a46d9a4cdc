"""SE(3) Lie group operations and the Pose3 rigid-body value type.

Tangent vectors use the rotation-first convention xi = [omega, v], where
omega is the rotation vector (axis * angle) and v the translational part.
"""

import numpy as np
from typing import Tuple

_SMALL_ANGLE = 1e-8


def skew_symmetric(v: np.ndarray) -> np.ndarray:
    """Create skew-symmetric matrix from 3D vector."""
    if v.shape != (3,):
        raise ValueError(f"v must be 3-element vector, got shape {v.shape}")

    return np.array([
        [0, -v[2], v[1]],
        [v[2], 0, -v[0]],
        [-v[1], v[0], 0]
    ])


def so3_exp(omega: np.ndarray) -> np.ndarray:
    """Rodrigues formula: rotation vector to rotation matrix."""
    if omega.shape != (3,):
        raise ValueError(f"omega must be 3-element vector, got shape {omega.shape}")

    theta = np.linalg.norm(omega)
    K = skew_symmetric(omega)

    if theta < _SMALL_ANGLE:
        return np.eye(3) + K + 0.5 * K @ K

    return (
        np.eye(3)
        + (np.sin(theta) / theta) * K
        + ((1 - np.cos(theta)) / theta**2) * K @ K
    )


def so3_log(R: np.ndarray) -> np.ndarray:
    """Rotation matrix to rotation vector."""
    if R.shape != (3, 3):
        raise ValueError(f"R must be 3x3 matrix, got shape {R.shape}")

    cos_theta = np.clip((np.trace(R) - 1) / 2, -1.0, 1.0)
    theta = np.arccos(cos_theta)
    vee = np.array([R[2, 1] - R[1, 2], R[0, 2] - R[2, 0], R[1, 0] - R[0, 1]])

    if theta < _SMALL_ANGLE:
        return 0.5 * vee

    if np.pi - theta < 1e-6:
        # R is close to a half turn, sin(theta) is useless here
        i = int(np.argmax(np.diag(R)))
        axis = R[:, i].copy()
        axis[i] += 1.0
        axis /= np.sqrt(2.0 * (1.0 + R[i, i]))
        return theta * axis

    return (theta / (2 * np.sin(theta))) * vee


def _left_jacobian(omega: np.ndarray) -> np.ndarray:
    theta = np.linalg.norm(omega)
    K = skew_symmetric(omega)

    if theta < _SMALL_ANGLE:
        return np.eye(3) + 0.5 * K + (K @ K) / 6.0

    s = np.sin(theta)
    c = np.cos(theta)
    return np.eye(3) + ((1 - c) / theta**2) * K + ((theta - s) / theta**3) * K @ K


def _left_jacobian_inverse(omega: np.ndarray) -> np.ndarray:
    theta = np.linalg.norm(omega)
    K = skew_symmetric(omega)

    if theta < _SMALL_ANGLE:
        return np.eye(3) - 0.5 * K + (K @ K) / 12.0

    s = np.sin(theta)
    c = np.cos(theta)
    coeff = (1.0 - theta * s / (2.0 * (1.0 - c))) / theta**2
    return np.eye(3) - 0.5 * K + coeff * K @ K


def se3_exp(xi: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Convert se(3) algebra element to SE(3) group (R, t).

    Args:
        xi: 6-element vector [omega, v], rotation first

    Returns:
        Tuple of (R, t) where R is 3x3 rotation matrix, t is 3-element translation
    """
    xi = np.asarray(xi, dtype=float)
    if xi.shape != (6,):
        raise ValueError(f"xi must be 6-element vector, got shape {xi.shape}")

    omega = xi[:3]
    v = xi[3:]

    R = so3_exp(omega)
    t = _left_jacobian(omega) @ v
    return R, t


def se3_log(R: np.ndarray, t: np.ndarray) -> np.ndarray:
    """Convert SE(3) group element (R, t) to se(3) algebra.

    Args:
        R: 3x3 rotation matrix
        t: 3-element translation vector

    Returns:
        6-element se(3) vector [omega, v]
    """
    if R.shape != (3, 3):
        raise ValueError(f"R must be 3x3 matrix, got shape {R.shape}")
    if t.shape != (3,):
        raise ValueError(f"t must be 3-element vector, got shape {t.shape}")

    omega = so3_log(R)
    v = _left_jacobian_inverse(omega) @ t
    return np.concatenate([omega, v])


def compose(R1: np.ndarray, t1: np.ndarray, R2: np.ndarray, t2: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Compose two SE(3) transformations: T1 * T2."""
    R = R1 @ R2
    t = R1 @ t2 + t1
    return R, t


def invert(R: np.ndarray, t: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Invert SE(3) transformation."""
    R_inv = R.T
    t_inv = -R_inv @ t
    return R_inv, t_inv


class Pose3:
    """Rigid-body pose of a camera frame in world coordinates.

    R rotates body-frame vectors into the world frame and t is the position
    of the body origin in the world. Instances are immutable.
    """

    __slots__ = ("_R", "_t")

    DIM = 6

    def __init__(self, R=None, t=None):
        R = np.eye(3) if R is None else np.array(R, dtype=float)
        t = np.zeros(3) if t is None else np.array(t, dtype=float)

        if R.shape != (3, 3):
            raise ValueError(f"R must be 3x3 matrix, got shape {R.shape}")
        if t.shape != (3,):
            raise ValueError(f"t must be 3-element vector, got shape {t.shape}")

        R.setflags(write=False)
        t.setflags(write=False)
        self._R = R
        self._t = t

    @classmethod
    def identity(cls) -> "Pose3":
        return cls()

    @classmethod
    def from_rotation_vector(cls, omega, t=None) -> "Pose3":
        """Build a pose from an axis-angle rotation and a translation."""
        return cls(so3_exp(np.asarray(omega, dtype=float)), t)

    @classmethod
    def expmap(cls, xi: np.ndarray) -> "Pose3":
        R, t = se3_exp(xi)
        return cls(R, t)

    @staticmethod
    def logmap(pose: "Pose3") -> np.ndarray:
        return se3_log(pose.R, pose.t)

    @property
    def R(self) -> np.ndarray:
        return self._R

    @property
    def t(self) -> np.ndarray:
        return self._t

    def transform_from(self, point: np.ndarray) -> np.ndarray:
        """Map a point (or Nx3 points) from the local frame to the world frame."""
        point = np.asarray(point, dtype=float)
        if point.ndim == 1:
            return self._R @ point + self._t
        return point @ self._R.T + self._t

    def transform_to(self, point: np.ndarray) -> np.ndarray:
        """Map a point (or Nx3 points) from the world frame into the local frame."""
        point = np.asarray(point, dtype=float)
        if point.ndim == 1:
            return self._R.T @ (point - self._t)
        return (point - self._t) @ self._R

    def compose(self, other: "Pose3") -> "Pose3":
        R, t = compose(self._R, self._t, other.R, other.t)
        return Pose3(R, t)

    def inverse(self) -> "Pose3":
        R, t = invert(self._R, self._t)
        return Pose3(R, t)

    def retract(self, xi: np.ndarray) -> "Pose3":
        """Perturb the pose along its local tangent space: T * Exp(xi)."""
        return self.compose(Pose3.expmap(xi))

    def local_coordinates(self, other: "Pose3") -> np.ndarray:
        """Tangent vector xi such that self.retract(xi) == other."""
        return Pose3.logmap(self.inverse().compose(other))

    def equals(self, other: "Pose3", tol: float = 1e-9) -> bool:
        return (
            isinstance(other, Pose3)
            and np.allclose(self._R, other.R, rtol=0.0, atol=tol)
            and np.allclose(self._t, other.t, rtol=0.0, atol=tol)
        )

    def __repr__(self) -> str:
        omega = so3_log(self._R)
        return f"Pose3(omega={np.round(omega, 6).tolist()}, t={np.round(self._t, 6).tolist()})"
