"""Tests for serializable factor records."""

import json

import pytest
from pydantic import ValidationError

from invdepth.core.models.entities import Cal3S2
from invdepth.core.models.factors import (
    InverseDepthFactor2Record,
    InverseDepthFactorRecord,
    create_factor_record,
)


class TestFactorRecords:
    """Test factor record models."""

    def test_single_pose_record(self):
        record = InverseDepthFactorRecord(
            factor_id="f1",
            pose_id="x1",
            landmark_id="l1",
            measured=[10.0, 20.0],
            calibration=Cal3S2(fx=500.0, fy=500.0),
        )

        assert record.type == "inverse_depth"
        assert record.sigma == 1.0
        assert record.calibration.fx == 500.0

    def test_default_calibration_is_placeholder(self):
        record = InverseDepthFactorRecord(
            factor_id="f1", pose_id="x1", landmark_id="l1", measured=[0.0, 0.0]
        )
        assert record.calibration.is_placeholder()

    def test_measured_length(self):
        with pytest.raises(ValidationError):
            InverseDepthFactorRecord(
                factor_id="f1", pose_id="x1", landmark_id="l1", measured=[1.0]
            )

    def test_sigma_must_be_positive(self):
        with pytest.raises(ValidationError):
            InverseDepthFactor2Record(
                factor_id="f2",
                reference_pose_id="x1",
                observing_pose_id="x2",
                landmark_id="l1",
                measured=[1.0, 2.0],
                sigma=0.0,
            )

    def test_create_from_json(self):
        record = InverseDepthFactor2Record(
            factor_id="f2",
            reference_pose_id="x1",
            observing_pose_id="x2",
            landmark_id="l1",
            measured=[1.0, 2.0],
            calibration=Cal3S2(fx=300.0, fy=310.0, u0=160.0, v0=120.0),
            sigma=0.5,
        )

        data = json.loads(record.model_dump_json())
        restored = create_factor_record(data)

        assert isinstance(restored, InverseDepthFactor2Record)
        assert restored == record

    def test_unknown_type(self):
        with pytest.raises(ValueError):
            create_factor_record({"type": "projection", "factor_id": "f"})

    def test_derivative_options_defaults(self):
        record = InverseDepthFactorRecord(
            factor_id="f1", pose_id="x1", landmark_id="l1", measured=[0.0, 0.0]
        )
        assert record.delta == 1e-5
        assert record.method == "central"

    def test_derivative_options_validated(self):
        with pytest.raises(ValidationError):
            InverseDepthFactorRecord(
                factor_id="f1", pose_id="x1", landmark_id="l1", measured=[0.0, 0.0],
                method="backward"
            )

        with pytest.raises(ValidationError):
            InverseDepthFactorRecord(
                factor_id="f1", pose_id="x1", landmark_id="l1", measured=[0.0, 0.0],
                delta=0.0
            )
