"""Reprojection residuals for inverse-depth landmarks."""

import logging
import numpy as np
from abc import abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .factor_graph import Factor
from ..math.camera import PinholeCamera
from ..math.inverse_depth import as_landmark, is_finite_depth, world_point
from ..math.jacobians import DerivativeOptions, numerical_derivative
from ..math.se3 import Pose3
from ..models.entities import Cal3S2
from ..models.factors import (
    FactorRecord,
    InverseDepthFactorRecord,
    InverseDepthFactor2Record,
    create_factor_record,
)

logger = logging.getLogger(__name__)

BEHIND_CAMERA = "CheiralityError"
AT_INFINITY = "landmark at infinity"


@dataclass(frozen=True)
class ResidualOutcome:
    """Result of one residual evaluation.

    A degenerate outcome still carries a usable (large, finite) residual;
    reason says why projection was not possible.
    """

    residual: np.ndarray
    degenerate: bool = False
    reason: Optional[str] = None


def fallback_residual(calibration: Cal3S2) -> np.ndarray:
    """Residual returned when the landmark cannot be projected."""
    return np.full(2, 2.0 * calibration.fx)


def inverse_depth_residual(
    reference_pose: Pose3,
    observing_pose: Pose3,
    landmark: np.ndarray,
    calibration: Cal3S2,
    measured: np.ndarray
) -> ResidualOutcome:
    """Reprojection error of an inverse-depth landmark.

    The landmark is converted to a world point through reference_pose and
    projected by a camera at observing_pose. Points behind that camera and
    landmarks with rho == 0 (or non-finite values) produce the fallback
    residual [2 fx, 2 fx] instead of an error.

    Args:
        reference_pose: Pose the landmark is parameterized in
        observing_pose: Pose of the observing camera
        landmark: [theta, phi, rho]
        calibration: Camera calibration
        measured: Measured pixel [u, v]

    Returns:
        ResidualOutcome with residual = projection - measured
    """
    landmark = as_landmark(landmark)
    if not is_finite_depth(landmark):
        return ResidualOutcome(fallback_residual(calibration), True, AT_INFINITY)

    point = world_point(reference_pose, landmark)
    if not np.all(np.isfinite(point)):
        return ResidualOutcome(fallback_residual(calibration), True, AT_INFINITY)

    uv = PinholeCamera(observing_pose, calibration).try_project(point)
    if uv is None:
        return ResidualOutcome(fallback_residual(calibration), True, BEHIND_CAMERA)

    return ResidualOutcome(uv - measured)


class InverseDepthResidual(Factor):
    """Base class for inverse-depth reprojection factors.

    Holds the fixed measurement, calibration and noise sigma, and derives the
    Jacobians numerically: poses are perturbed through Pose3.retract (6
    columns each), the landmark additively in (theta, phi, rho) (3 columns).
    """

    def __init__(
        self,
        factor_id: str,
        variable_ids: List[str],
        measured: Sequence[float],
        calibration: Optional[Cal3S2] = None,
        sigma: float = 1.0,
        options: Optional[DerivativeOptions] = None
    ):
        super().__init__(factor_id, variable_ids)

        measured = np.array(measured, dtype=float)
        if measured.shape != (2,):
            raise ValueError(f"Factor {factor_id}: measured must be 2-element vector, got shape {measured.shape}")
        if sigma <= 0:
            raise ValueError(f"Factor {factor_id}: sigma must be positive, got {sigma}")

        if calibration is None:
            logger.warning(f"Factor {factor_id}: no calibration supplied, using placeholder intrinsics")
            calibration = Cal3S2.placeholder()

        measured.setflags(write=False)
        self._measured = measured
        self._calibration = calibration
        self.sigma = float(sigma)
        self.options = options or DerivativeOptions()

    @property
    def measured(self) -> np.ndarray:
        """The measured pixel location."""
        return self._measured.copy()

    @property
    def calibration(self) -> Cal3S2:
        return self._calibration

    @property
    def has_placeholder_calibration(self) -> bool:
        return self._calibration.is_placeholder()

    @abstractmethod
    def _outcome(self, *values: Any) -> ResidualOutcome:
        """Evaluate the residual for values ordered like variable_ids."""
        pass

    @abstractmethod
    def _camera_keys(self) -> Tuple[str, str, str]:
        """(reference pose ID, landmark ID, observing pose ID)."""
        pass

    @abstractmethod
    def to_record(self) -> FactorRecord:
        """Serializable record of the factor's fixed fields."""
        pass

    def _evaluate(self, values: Sequence[Any]) -> np.ndarray:
        return self._report(self._outcome(*values))

    def _report(self, outcome: ResidualOutcome) -> np.ndarray:
        """Log a degenerate nominal outcome and return its residual."""
        if outcome.degenerate:
            reference_id, landmark_id, observer_id = self._camera_keys()
            if outcome.reason == BEHIND_CAMERA:
                logger.warning(
                    f"{outcome.reason}: Inverse Depth Landmark [{reference_id},{landmark_id}]"
                    f" moved behind camera [{observer_id}]"
                )
            else:
                logger.warning(
                    f"Inverse Depth Landmark [{reference_id},{landmark_id}] has no finite position"
                    f" ({outcome.reason}) for camera [{observer_id}]"
                )
        return outcome.residual

    def _jacobian_wrt(
        self,
        index: int,
        values: Sequence[Any],
        f0: Optional[np.ndarray] = None
    ) -> np.ndarray:
        def perturbed_residual(x):
            args = list(values)
            args[index] = x
            return self._outcome(*args).residual

        x = values[index]
        if isinstance(x, Pose3):
            return numerical_derivative(
                perturbed_residual, x,
                retract=Pose3.retract, dim=Pose3.DIM,
                delta=self.options.delta, method=self.options.method, f0=f0
            )
        return numerical_derivative(
            perturbed_residual, as_landmark(x),
            delta=self.options.delta, method=self.options.method, f0=f0
        )

    def _nominal_for_jacobians(self, values: Sequence[Any]) -> Optional[np.ndarray]:
        """Base residual shared by forward differences, None when unused."""
        if self.options.method == "forward":
            return self._outcome(*values).residual
        return None

    def evaluate_error(
        self,
        *values: Any,
        jacobians: Optional[Sequence[bool]] = None
    ) -> Tuple[np.ndarray, List[Optional[np.ndarray]]]:
        """Unwhitened residual and, where requested, its Jacobians.

        Args:
            *values: Variable values in the order of variable_ids
            jacobians: One flag per variable; None requests no Jacobians

        Returns:
            Tuple of (residual, list with a Jacobian or None per variable)
        """
        n = len(self.variable_ids)
        if len(values) != n:
            raise ValueError(f"Factor {self.factor_id}: expected {n} values, got {len(values)}")
        if jacobians is None:
            jacobians = [False] * n
        elif len(jacobians) != n:
            raise ValueError(f"Factor {self.factor_id}: expected {n} Jacobian flags, got {len(jacobians)}")

        outcome = self._outcome(*values)
        H = [
            self._jacobian_wrt(i, values, outcome.residual) if requested else None
            for i, requested in enumerate(jacobians)
        ]
        return self._report(outcome), H

    def _ordered_values(self, variables: Dict[str, Any]) -> List[Any]:
        for var_id in self.variable_ids:
            if var_id not in variables:
                raise KeyError(f"Variable {var_id} required by factor {self.factor_id} has no value")
        return [variables[var_id] for var_id in self.variable_ids]

    def _requested(self, wrt: Optional[Iterable[str]]) -> List[bool]:
        if wrt is None:
            return [True] * len(self.variable_ids)

        wrt = set(wrt)
        unknown = wrt - set(self.variable_ids)
        if unknown:
            raise ValueError(f"Factor {self.factor_id} does not involve variables {sorted(unknown)}")
        return [var_id in wrt for var_id in self.variable_ids]

    def compute_residual(self, variables: Dict[str, Any]) -> np.ndarray:
        """Whitened reprojection residual."""
        return self._evaluate(self._ordered_values(variables)) / self.sigma

    def compute_jacobian(
        self,
        variables: Dict[str, Any],
        wrt: Optional[Iterable[str]] = None
    ) -> Dict[str, np.ndarray]:
        """Whitened Jacobians for the requested variables only."""
        values = self._ordered_values(variables)
        requested = self._requested(wrt)
        f0 = self._nominal_for_jacobians(values) if any(requested) else None
        return {
            var_id: self._jacobian_wrt(i, values, f0) / self.sigma
            for i, var_id in enumerate(self.variable_ids)
            if requested[i]
        }

    def linearize(
        self,
        variables: Dict[str, Any],
        wrt: Optional[Iterable[str]] = None
    ) -> Tuple[np.ndarray, Dict[str, np.ndarray]]:
        values = self._ordered_values(variables)
        residual, H = self.evaluate_error(*values, jacobians=self._requested(wrt))
        jacobians = {
            var_id: J / self.sigma
            for var_id, J in zip(self.variable_ids, H)
            if J is not None
        }
        return residual / self.sigma, jacobians

    def residual_dimension(self) -> int:
        return 2

    def describe(self, s: str = "") -> str:
        """Human-readable description, optionally prefixed with a label."""
        label = f"{s} " if s else ""
        keys = ", ".join(self.variable_ids)
        return (
            f"{label}{type(self).__name__} {self.factor_id} keys=[{keys}]\n"
            f"  measured: {self._measured.tolist()}\n"
            f"  calibration: {self._calibration}\n"
            f"  sigma: {self.sigma}"
        )

    def __str__(self) -> str:
        return self.describe()

    def print(self, s: str = "") -> None:
        logger.info(self.describe(s))

    def equals(self, other: Factor, tol: float = 1e-9) -> bool:
        """Structural equality of keys, measurement, calibration and sigma."""
        return (
            type(other) is type(self)
            and other.variable_ids == self.variable_ids
            and bool(np.all(np.abs(other.measured - self._measured) <= tol))
            and self._calibration.equals(other.calibration, tol)
            and abs(other.sigma - self.sigma) <= tol
        )


class InverseDepthFactor(InverseDepthResidual):
    """Landmark observed from the pose it is parameterized in.

    Typically the landmark's first observation.
    """

    def __init__(
        self,
        factor_id: str,
        pose_id: str,
        landmark_id: str,
        measured: Sequence[float],
        calibration: Optional[Cal3S2] = None,
        sigma: float = 1.0,
        options: Optional[DerivativeOptions] = None
    ):
        """Initialize inverse-depth factor.

        Args:
            factor_id: Unique factor identifier
            pose_id: Pose variable ID (reference and observing camera)
            landmark_id: Inverse-depth landmark variable ID
            measured: Measured pixel [u, v]
            calibration: Camera calibration; placeholder intrinsics if None
            sigma: Measurement uncertainty in pixels
            options: Numerical differentiation options
        """
        super().__init__(factor_id, [pose_id, landmark_id], measured, calibration, sigma, options)
        self.pose_id = pose_id
        self.landmark_id = landmark_id

    def _outcome(self, pose: Pose3, landmark: np.ndarray) -> ResidualOutcome:
        return inverse_depth_residual(pose, pose, landmark, self._calibration, self._measured)

    def _camera_keys(self) -> Tuple[str, str, str]:
        return self.pose_id, self.landmark_id, self.pose_id

    def inverse_depth_error(self, pose: Pose3, landmark: np.ndarray) -> np.ndarray:
        """Unwhitened reprojection error."""
        return self._evaluate([pose, landmark])

    def to_record(self) -> InverseDepthFactorRecord:
        return InverseDepthFactorRecord(
            factor_id=self.factor_id,
            pose_id=self.pose_id,
            landmark_id=self.landmark_id,
            measured=self._measured.tolist(),
            calibration=self._calibration,
            sigma=self.sigma,
            delta=self.options.delta,
            method=self.options.method,
        )

    @classmethod
    def from_record(cls, record: InverseDepthFactorRecord) -> "InverseDepthFactor":
        return cls(
            record.factor_id,
            record.pose_id,
            record.landmark_id,
            record.measured,
            calibration=record.calibration,
            sigma=record.sigma,
            options=DerivativeOptions(delta=record.delta, method=record.method),
        )


class InverseDepthFactor2(InverseDepthResidual):
    """Landmark parameterized in one pose and observed from a second pose."""

    def __init__(
        self,
        factor_id: str,
        reference_pose_id: str,
        observing_pose_id: str,
        landmark_id: str,
        measured: Sequence[float],
        calibration: Optional[Cal3S2] = None,
        sigma: float = 1.0,
        options: Optional[DerivativeOptions] = None
    ):
        """Initialize two-pose inverse-depth factor.

        Args:
            factor_id: Unique factor identifier
            reference_pose_id: Pose the landmark is parameterized in
            observing_pose_id: Pose of the camera that made the measurement
            landmark_id: Inverse-depth landmark variable ID
            measured: Measured pixel [u, v]
            calibration: Camera calibration; placeholder intrinsics if None
            sigma: Measurement uncertainty in pixels
            options: Numerical differentiation options
        """
        super().__init__(
            factor_id,
            [reference_pose_id, observing_pose_id, landmark_id],
            measured, calibration, sigma, options
        )
        self.reference_pose_id = reference_pose_id
        self.observing_pose_id = observing_pose_id
        self.landmark_id = landmark_id

    def _outcome(self, reference_pose: Pose3, observing_pose: Pose3, landmark: np.ndarray) -> ResidualOutcome:
        return inverse_depth_residual(reference_pose, observing_pose, landmark, self._calibration, self._measured)

    def _camera_keys(self) -> Tuple[str, str, str]:
        return self.reference_pose_id, self.landmark_id, self.observing_pose_id

    def inverse_depth_error(
        self,
        reference_pose: Pose3,
        observing_pose: Pose3,
        landmark: np.ndarray
    ) -> np.ndarray:
        """Unwhitened reprojection error."""
        return self._evaluate([reference_pose, observing_pose, landmark])

    def to_record(self) -> InverseDepthFactor2Record:
        return InverseDepthFactor2Record(
            factor_id=self.factor_id,
            reference_pose_id=self.reference_pose_id,
            observing_pose_id=self.observing_pose_id,
            landmark_id=self.landmark_id,
            measured=self._measured.tolist(),
            calibration=self._calibration,
            sigma=self.sigma,
            delta=self.options.delta,
            method=self.options.method,
        )

    @classmethod
    def from_record(cls, record: InverseDepthFactor2Record) -> "InverseDepthFactor2":
        return cls(
            record.factor_id,
            record.reference_pose_id,
            record.observing_pose_id,
            record.landmark_id,
            record.measured,
            calibration=record.calibration,
            sigma=record.sigma,
            options=DerivativeOptions(delta=record.delta, method=record.method),
        )


def factor_from_record(record: FactorRecord) -> InverseDepthResidual:
    """Rebuild a factor from its serialized record."""
    if isinstance(record, InverseDepthFactorRecord):
        return InverseDepthFactor.from_record(record)
    elif isinstance(record, InverseDepthFactor2Record):
        return InverseDepthFactor2.from_record(record)
    else:
        raise ValueError(f"Unknown factor record: {type(record).__name__}")


def factor_from_dict(data: dict) -> InverseDepthResidual:
    """Rebuild a factor from a dictionary (e.g. parsed JSON)."""
    return factor_from_record(create_factor_record(data))
