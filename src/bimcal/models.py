from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class QualityThresholds:
    """
    Upper RMSE bounds (metres) of each quality category.

    Calibrated against handheld GPS, where consumer receivers are
    typically good to 3-10 m:
      - excellent: rmse <= excellent
      - good:      rmse <= good
      - fair:      rmse <= fair
      - poor:      anything above
    """
    excellent: float = 0.5
    good: float = 2.0
    fair: float = 5.0

    def __post_init__(self) -> None:
        if not (0.0 < self.excellent < self.good < self.fair):
            raise ValueError(
                f"Quality thresholds must be increasing: {self.excellent}, {self.good}, {self.fair}"
            )


@dataclass(frozen=True)
class CalibrationConfig:
    thresholds: QualityThresholds = field(default_factory=QualityThresholds)

    # Minimum model spread (squared metres) before the fit is rejected as degenerate.
    degenerate_epsilon: float = 1e-9
    min_points: int = 2
