import logging

import numpy as np
import pytest

from bimcal.core.quality import (
    assess_quality,
    check_extrapolation,
    classify_quality,
    point_residuals,
)
from bimcal.domain.schemas import CalibrationQuality, HelmertTransformParams
from bimcal.models import QualityThresholds

IDENTITY = HelmertTransformParams(scale=1.0, rotation=0.0, translation_x=0.0, translation_y=0.0)


class TestClassification:

    @pytest.mark.parametrize(
        "rmse, expected",
        [
            (0.0, "excellent"),
            (0.5, "excellent"),
            (0.5000001, "good"),
            (2.0, "good"),
            (2.0000001, "fair"),
            (5.0, "fair"),
            (5.0000001, "poor"),
            (250.0, "poor"),
        ],
    )
    def test_default_thresholds(self, rmse, expected):
        assert classify_quality(rmse) == expected

    def test_custom_thresholds(self):
        t = QualityThresholds(excellent=0.02, good=0.05, fair=0.1)
        assert classify_quality(0.03, t) == "good"
        assert classify_quality(0.5, t) == "poor"

    def test_thresholds_must_increase(self):
        with pytest.raises(ValueError, match="increasing"):
            QualityThresholds(excellent=2.0, good=1.0, fair=5.0)


class TestAssessment:

    MODEL = np.array([[0.0, 0.0], [10.0, 0.0], [10.0, 10.0], [0.0, 10.0]])

    def test_residuals_are_euclidean_distances(self):
        target = self.MODEL + np.array([[3.0, 4.0], [0.0, 0.0], [0.0, -1.0], [0.0, 0.0]])
        np.testing.assert_allclose(
            point_residuals(IDENTITY, self.MODEL, target), [5.0, 0.0, 1.0, 0.0]
        )

    def test_rmse_and_max_error(self):
        target = self.MODEL + np.array([[3.0, 4.0], [0.0, 0.0], [0.0, -1.0], [0.0, 0.0]])
        q = assess_quality(IDENTITY, self.MODEL, target)
        np.testing.assert_allclose(q.rmse, np.sqrt((25.0 + 1.0) / 4.0))
        assert q.max_error == pytest.approx(5.0)
        assert q.quality == "fair"
        assert q.errors == pytest.approx([5.0, 0.0, 1.0, 0.0])
        assert q.point_count == 4
        assert not q.is_underdetermined

    def test_errors_keep_point_order(self):
        target = self.MODEL.copy()
        target[2] += [0.0, 7.0]
        q = assess_quality(IDENTITY, self.MODEL, target)
        assert int(np.argmax(q.errors)) == 2

    def test_two_points_warn_about_exact_fit(self, caplog):
        with caplog.at_level(logging.WARNING, logger="bimcal.core.quality"):
            q = assess_quality(IDENTITY, self.MODEL[:2], self.MODEL[:2])
        assert q.quality == "excellent"
        assert q.is_underdetermined
        assert "exact by construction" in caplog.text

    def test_empty_point_set(self):
        with pytest.raises(ValueError):
            assess_quality(IDENTITY, np.zeros((0, 2)), np.zeros((0, 2)))

    def test_serialises_max_error_alias(self):
        q = assess_quality(IDENTITY, self.MODEL, self.MODEL)
        dumped = q.model_dump(by_alias=True)
        assert "maxError" in dumped
        assert CalibrationQuality.model_validate(dumped) == q

    def test_errors_must_match_point_count(self):
        with pytest.raises(ValueError):
            CalibrationQuality(rmse=0.0, max_error=0.0, quality="excellent", errors=[0.0], point_count=2)


class TestExtrapolation:

    CONTROL = np.array([[0.0, 0.0], [100.0, 0.0], [100.0, 100.0], [0.0, 100.0]])

    def test_inside_hull(self):
        assert check_extrapolation(np.array([50.0]), np.array([50.0]), self.CONTROL) == (None, 0)

    def test_outside_hull(self):
        dist, count = check_extrapolation(
            np.array([50.0, 130.0, 50.0]), np.array([50.0, 50.0, -10.0]), self.CONTROL
        )
        assert count == 2
        assert dist == pytest.approx(30.0)

    def test_collinear_control_points_have_no_hull(self):
        control = np.array([[0.0, 0.0], [1.0, 1.0], [2.0, 2.0]])
        assert check_extrapolation(np.array([10.0]), np.array([0.0]), control) == (None, 0)

    def test_too_few_control_points(self):
        assert check_extrapolation(np.array([10.0]), np.array([0.0]), self.CONTROL[:2]) == (None, 0)
        assert check_extrapolation(np.array([10.0]), np.array([0.0]), None) == (None, 0)
