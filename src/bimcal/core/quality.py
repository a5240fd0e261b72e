import logging
from typing import Optional, Tuple

import numpy as np
from scipy.spatial import ConvexHull, QhullError

from bimcal.core.math_engine import apply_helmert
from bimcal.domain.schemas import CalibrationQuality, HelmertTransformParams, QualityCategory
from bimcal.models import QualityThresholds

logger = logging.getLogger(__name__)


def classify_quality(rmse: float, thresholds: Optional[QualityThresholds] = None) -> QualityCategory:
    t = thresholds or QualityThresholds()
    if rmse <= t.excellent:
        return "excellent"
    if rmse <= t.good:
        return "good"
    if rmse <= t.fair:
        return "fair"
    return "poor"


def point_residuals(params: HelmertTransformParams, model_xy, target_xy) -> np.ndarray:
    """Distance (m) between each transformed model point and its target."""
    model = np.asarray(model_xy, dtype=float).reshape(-1, 2)
    target = np.asarray(target_xy, dtype=float).reshape(-1, 2)
    pred_x, pred_y = apply_helmert(params, model[:, 0], model[:, 1])
    return np.hypot(pred_x - target[:, 0], pred_y - target[:, 1])


def assess_quality(
    params: HelmertTransformParams,
    model_xy,
    target_xy,
    thresholds: Optional[QualityThresholds] = None,
) -> CalibrationQuality:
    """Scores a fitted transform against the point set it was fitted from."""
    errors = point_residuals(params, model_xy, target_xy)
    n = len(errors)
    if n == 0:
        raise ValueError("No points to assess")

    rmse = float(np.sqrt(np.mean(errors**2)))
    max_error = float(np.max(errors))
    quality = classify_quality(rmse, thresholds)

    if n == 2:
        logger.warning(
            "Calibration from 2 points is exact by construction; "
            "quality %r is not independently verified",
            quality,
        )

    return CalibrationQuality(
        rmse=rmse,
        max_error=max_error,
        quality=quality,
        errors=[float(e) for e in errors],
        point_count=n,
        is_underdetermined=n == 2,
    )


def check_extrapolation(
    x: np.ndarray, y: np.ndarray, control_xy: Optional[np.ndarray]
) -> Tuple[Optional[float], int]:
    """
    Distance (m) of the furthest point outside the convex hull of the control
    points, and how many points fall outside. (None, 0) when inside or when
    the control points do not span an area.
    """
    if control_xy is None or len(control_xy) < 3:
        return None, 0

    try:
        hull = ConvexHull(np.asarray(control_xy, dtype=float))
    except QhullError:
        # Collinear control points have no hull.
        return None, 0

    equations = hull.equations
    pts = np.column_stack((np.atleast_1d(x), np.atleast_1d(y)))
    dists = pts @ equations[:, :2].T + equations[:, 2]
    max_dists = np.max(dists, axis=1)
    outside = max_dists > 1e-5
    if np.any(outside):
        return float(np.max(max_dists[outside])), int(np.sum(outside))
    return None, 0
