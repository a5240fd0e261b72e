from typing import Tuple, Union

import numpy as np

from bimcal.domain.errors import DegeneratePoints, InsufficientPoints
from bimcal.domain.schemas import HelmertTransformParams

ArrayLike = Union[float, np.ndarray]

DEFAULT_EPSILON = 1e-9


def _as_points(values, name: str) -> np.ndarray:
    arr = np.asarray(values, dtype=float)
    if arr.ndim != 2 or arr.shape[1] != 2:
        raise ValueError(f"{name} must have shape (n, 2), got {arr.shape}")
    return arr


def solve_helmert_2d(
    model_xy, target_xy, epsilon: float = DEFAULT_EPSILON
) -> HelmertTransformParams:
    """
    Closed-form least squares 2D similarity (Helmert) transform:

      X = s*(cos(r)*x - sin(r)*y) + tX
      Y = s*(sin(r)*x + cos(r)*y) + tY

    Both point sets are in metres. Exact for 2 points, least squares
    optimal for 3 or more.
    """
    if len(model_xy) < 2:
        raise InsufficientPoints(len(model_xy))

    model = _as_points(model_xy, "model_xy")
    target = _as_points(target_xy, "target_xy")
    if model.shape != target.shape:
        raise ValueError(
            f"model_xy and target_xy differ in length: {len(model)} != {len(target)}"
        )
    if not (np.all(np.isfinite(model)) and np.all(np.isfinite(target))):
        raise ValueError("Calibration coordinates must be finite")

    # Centroids
    model_c = model.mean(axis=0)
    target_c = target.mean(axis=0)

    mx, my = (model - model_c).T
    tx, ty = (target - target_c).T

    s_xx = float(np.sum(mx * mx + my * my))
    if s_xx < epsilon:
        raise DegeneratePoints(s_xx)
    t_xx = float(np.sum(tx * tx + ty * ty))
    if t_xx < epsilon:
        raise DegeneratePoints(t_xx, frame="target")

    s_xy = float(np.sum(mx * ty - my * tx))
    s_xx2 = float(np.sum(mx * tx + my * ty))

    scale = float(np.hypot(s_xx2, s_xy) / s_xx)
    rotation = float(np.arctan2(s_xy, s_xx2))
    if scale <= 0.0:
        # No similarity maps the model spread onto the targets.
        raise DegeneratePoints(t_xx, frame="target")

    cos_r = np.cos(rotation)
    sin_r = np.sin(rotation)
    translation_x = target_c[0] - scale * (cos_r * model_c[0] - sin_r * model_c[1])
    translation_y = target_c[1] - scale * (sin_r * model_c[0] + cos_r * model_c[1])

    return HelmertTransformParams(
        scale=scale,
        rotation=rotation,
        translation_x=float(translation_x),
        translation_y=float(translation_y),
    )


def apply_helmert(
    params: HelmertTransformParams, x: ArrayLike, y: ArrayLike
) -> Tuple[ArrayLike, ArrayLike]:
    """Vectorized forward transform: model metres -> projected metres."""
    cos_r = np.cos(params.rotation)
    sin_r = np.sin(params.rotation)
    X = params.translation_x + params.scale * (cos_r * x - sin_r * y)
    Y = params.translation_y + params.scale * (sin_r * x + cos_r * y)
    return X, Y


def inverse_helmert(
    params: HelmertTransformParams, X: ArrayLike, Y: ArrayLike
) -> Tuple[ArrayLike, ArrayLike]:
    """Vectorized inverse transform: projected metres -> model metres."""
    cos_r = np.cos(-params.rotation)
    sin_r = np.sin(-params.rotation)
    dx = X - params.translation_x
    dy = Y - params.translation_y
    x = (cos_r * dx - sin_r * dy) / params.scale
    y = (sin_r * dx + cos_r * dy) / params.scale
    return x, y
