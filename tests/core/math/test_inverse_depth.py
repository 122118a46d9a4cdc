"""Tests for the inverse-depth parameterization."""

import numpy as np
import pytest

from invdepth.core.math.camera import PinholeCamera
from invdepth.core.math.inverse_depth import (
    as_landmark,
    from_local_point,
    from_observation,
    from_world_point,
    is_finite_depth,
    local_point,
    world_point,
)
from invdepth.core.math.se3 import Pose3
from invdepth.core.models.entities import Cal3S2


class TestLocalPoint:
    """Test the landmark to point conversion."""

    def test_straight_ahead(self):
        """theta = phi = 0 lies on the optical axis at range 1/rho."""
        np.testing.assert_allclose(local_point([0.0, 0.0, 1.0]), [0.0, 0.0, 1.0])
        np.testing.assert_allclose(local_point([0.0, 0.0, 0.25]), [0.0, 0.0, 4.0])

    def test_azimuth_turns_towards_x(self):
        np.testing.assert_allclose(local_point([np.pi / 2, 0.0, 1.0]), [1.0, 0.0, 0.0], atol=1e-12)

    def test_elevation_turns_towards_y(self):
        np.testing.assert_allclose(local_point([0.0, np.pi / 2, 0.5]), [0.0, 2.0, 0.0], atol=1e-12)

    def test_range_is_inverse_depth(self):
        landmark = np.array([0.3, -0.4, 0.2])
        assert np.linalg.norm(local_point(landmark)) == pytest.approx(5.0)

    def test_zero_rho_is_not_finite(self):
        """rho == 0 is left to the caller: the point is non-finite."""
        point = local_point([0.1, 0.1, 0.0])
        assert not np.all(np.isfinite(point))
        assert not is_finite_depth([0.1, 0.1, 0.0])
        assert not is_finite_depth([np.nan, 0.1, 1.0])
        assert is_finite_depth([0.1, 0.1, -0.5])

    def test_world_point_uses_reference_pose(self):
        pose = Pose3.from_rotation_vector([0.0, 0.0, 0.3], [1.0, 2.0, 3.0])
        landmark = np.array([0.2, 0.1, 0.5])

        np.testing.assert_allclose(
            world_point(pose, landmark),
            pose.transform_from(local_point(landmark))
        )

    def test_invalid_landmark_shape(self):
        with pytest.raises(ValueError):
            as_landmark([1.0, 2.0])


class TestInverseConversion:
    """Test converting points back to (theta, phi, rho)."""

    @pytest.mark.parametrize("landmark", [
        np.array([0.0, 0.0, 1.0]),
        np.array([0.4, -0.3, 0.1]),
        np.array([-2.5, 1.2, 3.0]),
    ])
    def test_round_trip(self, landmark):
        np.testing.assert_allclose(from_local_point(local_point(landmark)), landmark, atol=1e-12)

    def test_origin_rejected(self):
        with pytest.raises(ValueError):
            from_local_point(np.zeros(3))

    def test_from_world_point(self):
        pose = Pose3.from_rotation_vector([0.1, 0.2, 0.3], [-1.0, 0.0, 2.0])
        landmark = np.array([0.3, 0.2, 0.25])

        recovered = from_world_point(pose, world_point(pose, landmark))
        np.testing.assert_allclose(recovered, landmark, atol=1e-12)

    def test_from_observation_reprojects_to_pixel(self):
        """A landmark initialized from a pixel projects back onto it."""
        K = Cal3S2(fx=500.0, fy=500.0, s=0.0, u0=320.0, v0=240.0)
        pose = Pose3.from_rotation_vector([0.05, -0.1, 0.0], [0.2, 0.1, -0.3])
        uv = np.array([400.0, 180.0])

        landmark = from_observation(pose, K, uv, depth=4.0)
        point = world_point(pose, landmark)

        np.testing.assert_allclose(PinholeCamera(pose, K).project(point), uv, atol=1e-9)
        assert PinholeCamera(pose, K).depth(point) == pytest.approx(4.0)

    def test_from_observation_requires_positive_depth(self):
        with pytest.raises(ValueError):
            from_observation(Pose3(), Cal3S2(fx=1.0, fy=1.0), np.zeros(2), depth=0.0)
