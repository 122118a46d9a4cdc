"""Tests for SE(3) operations and Pose3."""

import numpy as np
import pytest
from invdepth.core.math.se3 import (
    Pose3,
    compose,
    invert,
    se3_exp,
    se3_log,
    skew_symmetric,
    so3_exp,
    so3_log,
)


class TestSE3:
    """Test SE(3) operations."""

    def test_se3_exp_identity(self):
        """Test SE(3) exponential map at identity."""
        R, t = se3_exp(np.zeros(6))

        np.testing.assert_allclose(R, np.eye(3), atol=1e-12)
        np.testing.assert_allclose(t, np.zeros(3), atol=1e-12)

    def test_se3_exp_pure_translation(self):
        """Zero rotation leaves the translational part unchanged."""
        R, t = se3_exp(np.array([0.0, 0.0, 0.0, 1.0, 2.0, 3.0]))

        np.testing.assert_allclose(R, np.eye(3), atol=1e-12)
        np.testing.assert_allclose(t, [1.0, 2.0, 3.0], atol=1e-12)

    def test_se3_exp_is_rotation(self):
        """Test that the rotation part is orthonormal with det 1."""
        R, _ = se3_exp(np.array([1.5, 2.5, 3.5, 1.0, 2.0, 3.0]))

        assert abs(np.linalg.det(R) - 1.0) < 1e-10
        np.testing.assert_allclose(R @ R.T, np.eye(3), atol=1e-10)

    def test_so3_exp_quarter_turn(self):
        """Rotation of pi/2 about z maps x onto y."""
        R = so3_exp(np.array([0.0, 0.0, np.pi / 2]))

        np.testing.assert_allclose(R @ np.array([1.0, 0.0, 0.0]), [0.0, 1.0, 0.0], atol=1e-12)

    def test_so3_round_trip_near_pi(self):
        """Test SO(3) log close to a half turn."""
        omega = np.array([0.0, np.pi - 1e-9, 0.0])
        np.testing.assert_allclose(so3_log(so3_exp(omega)), omega, atol=1e-6)

    @pytest.mark.parametrize("xi", [
        np.array([0.01, 0.02, 0.03, 0.1, 0.2, 0.3]),
        np.array([0.8, 1.2, 0.4, 0.5, 1.0, 1.5]),
        np.array([0.0, 0.0, 0.0, -1.0, 4.0, 0.5]),
    ])
    def test_se3_round_trip(self, xi):
        """Test SE(3) exp/log round trip."""
        R, t = se3_exp(xi)
        np.testing.assert_allclose(se3_log(R, t), xi, atol=1e-10)

    def test_skew_symmetric(self):
        """Test skew-symmetric matrix construction."""
        S = skew_symmetric(np.array([1, 2, 3]))

        expected = np.array([[0, -3, 2], [3, 0, -1], [-2, 1, 0]])
        np.testing.assert_allclose(S, expected)
        np.testing.assert_allclose(S, -S.T)

    def test_compose_with_identity(self):
        """Test SE(3) composition with identity."""
        R1, t1 = se3_exp(np.array([0.4, 0.5, 0.6, 0.1, 0.2, 0.3]))

        R_test, t_test = compose(R1, t1, np.eye(3), np.zeros(3))

        np.testing.assert_allclose(R_test, R1, atol=1e-12)
        np.testing.assert_allclose(t_test, t1, atol=1e-12)

    def test_invert(self):
        """Test SE(3) inversion."""
        R, t = se3_exp(np.array([0.5, 1.0, 1.5, 1.0, 2.0, 3.0]))

        R_inv, t_inv = invert(R, t)
        R_comp, t_comp = compose(R, t, R_inv, t_inv)

        np.testing.assert_allclose(R_comp, np.eye(3), atol=1e-10)
        np.testing.assert_allclose(t_comp, np.zeros(3), atol=1e-10)

    def test_invalid_input_shapes(self):
        """Test error handling for invalid input shapes."""
        with pytest.raises(ValueError):
            se3_exp(np.array([1, 2, 3]))

        with pytest.raises(ValueError):
            se3_log(np.array([[1, 2], [3, 4]]), np.array([1, 2, 3]))

        with pytest.raises(ValueError):
            se3_log(np.eye(3), np.array([1, 2]))


class TestPose3:
    """Test the Pose3 value type."""

    def setup_method(self):
        """Set up test fixtures."""
        self.pose = Pose3.from_rotation_vector([0.1, -0.3, 0.2], [1.0, -2.0, 0.5])

    def test_identity(self):
        pose = Pose3.identity()
        point = np.array([1.0, 2.0, 3.0])

        np.testing.assert_allclose(pose.transform_from(point), point)
        np.testing.assert_allclose(pose.transform_to(point), point)

    def test_transform_round_trip(self):
        """transform_to undoes transform_from."""
        point = np.array([0.3, -1.2, 4.0])
        world = self.pose.transform_from(point)

        np.testing.assert_allclose(self.pose.transform_to(world), point, atol=1e-12)

    def test_transform_many_points(self):
        """Nx3 input transforms row by row."""
        points = np.array([[0.0, 0.0, 1.0], [1.0, 2.0, 3.0]])
        world = self.pose.transform_from(points)

        assert world.shape == (2, 3)
        for i in range(2):
            np.testing.assert_allclose(world[i], self.pose.transform_from(points[i]), atol=1e-12)
        np.testing.assert_allclose(self.pose.transform_to(world), points, atol=1e-12)

    def test_translation_is_origin_position(self):
        """The local origin maps to t."""
        np.testing.assert_allclose(self.pose.transform_from(np.zeros(3)), self.pose.t)

    def test_compose_inverse(self):
        result = self.pose.compose(self.pose.inverse())
        assert result.equals(Pose3.identity(), tol=1e-10)

    def test_retract_zero(self):
        assert self.pose.retract(np.zeros(6)).equals(self.pose, tol=1e-12)

    def test_retract_local_coordinates_round_trip(self):
        """local_coordinates inverts retract."""
        xi = np.array([0.01, -0.02, 0.005, 0.1, 0.0, -0.05])
        perturbed = self.pose.retract(xi)

        np.testing.assert_allclose(self.pose.local_coordinates(perturbed), xi, atol=1e-10)

    def test_retract_translation_is_in_body_frame(self):
        """Translational tangent components move along the body axes."""
        pose = Pose3.from_rotation_vector([0.0, 0.0, np.pi / 2])
        moved = pose.retract(np.array([0.0, 0.0, 0.0, 1.0, 0.0, 0.0]))

        # body x axis points along world y
        np.testing.assert_allclose(moved.t, [0.0, 1.0, 0.0], atol=1e-12)

    def test_immutable(self):
        """Stored arrays cannot be modified in place."""
        with pytest.raises(ValueError):
            self.pose.t[0] = 10.0

        t = np.array([1.0, 2.0, 3.0])
        pose = Pose3(t=t)
        t[0] = 5.0
        assert pose.t[0] == 1.0

    def test_equals(self):
        other = Pose3(self.pose.R, self.pose.t + 1e-12)
        assert self.pose.equals(other, tol=1e-9)
        assert not self.pose.equals(Pose3(self.pose.R, self.pose.t + 1e-3), tol=1e-9)
        assert not self.pose.equals("not a pose")

    def test_invalid_shapes(self):
        with pytest.raises(ValueError):
            Pose3(R=np.eye(2))

        with pytest.raises(ValueError):
            Pose3(t=[1.0, 2.0])
