"""Application configuration.

Loads from bimcal.yaml if present, with environment variable overrides.
Environment variables use the pattern: BIMCAL_<SECTION>_<KEY> (uppercase).
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from bimcal.models import CalibrationConfig, QualityThresholds


@dataclass
class LoggingConfig:
    level: str = "warning"
    format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    file: str = ""


@dataclass
class ProjectDefaults:
    coordinate_system_id: str = "local_calibrated"
    model_units: str = "millimeters"


@dataclass
class QualityConfig:
    excellent_m: float = 0.5
    good_m: float = 2.0
    fair_m: float = 5.0


@dataclass
class AppConfig:
    project: ProjectDefaults = field(default_factory=ProjectDefaults)
    quality: QualityConfig = field(default_factory=QualityConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def calibration_config(self) -> CalibrationConfig:
        return CalibrationConfig(
            thresholds=QualityThresholds(
                excellent=self.quality.excellent_m,
                good=self.quality.good_m,
                fair=self.quality.fair_m,
            )
        )


def _log_level(name: str) -> int:
    level = logging.getLevelName(str(name).upper())
    if not isinstance(level, int):
        raise ValueError(f"Invalid logging.level: {name!r}")
    return level


_QUALITY_KEYS = ("excellent_m", "good_m", "fair_m")


def _apply_env_overrides(config: AppConfig) -> None:
    """Override config values from environment variables."""
    mapping = {
        "BIMCAL_PROJECT_COORDINATE_SYSTEM": lambda v: setattr(config.project, "coordinate_system_id", v),
        "BIMCAL_PROJECT_MODEL_UNITS": lambda v: setattr(config.project, "model_units", v),
        "BIMCAL_QUALITY_EXCELLENT_M": lambda v: setattr(config.quality, "excellent_m", v),
        "BIMCAL_QUALITY_GOOD_M": lambda v: setattr(config.quality, "good_m", v),
        "BIMCAL_QUALITY_FAIR_M": lambda v: setattr(config.quality, "fair_m", v),
        "BIMCAL_LOG_LEVEL": lambda v: setattr(config.logging, "level", v),
        "BIMCAL_LOG_FORMAT": lambda v: setattr(config.logging, "format", v),
        "BIMCAL_LOG_FILE": lambda v: setattr(config.logging, "file", v),
    }
    for env_key, setter in mapping.items():
        val = os.environ.get(env_key)
        if val is not None:
            setter(val)


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load configuration from YAML file + environment overrides."""
    config = AppConfig()

    if config_path is None:
        config_path = Path("bimcal.yaml")
    else:
        config_path = Path(config_path)

    if config_path.exists():
        with open(config_path) as f:
            try:
                raw = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid YAML in {config_path}: {e}") from e

        for section in ("project", "quality", "logging"):
            target = getattr(config, section)
            for k, v in (raw.get(section) or {}).items():
                if hasattr(target, k):
                    setattr(target, k, v)

    # Environment overrides always win
    _apply_env_overrides(config)

    for key in _QUALITY_KEYS:
        value = getattr(config.quality, key)
        try:
            setattr(config.quality, key, float(value))
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid quality.{key}: {value!r}") from e
    _log_level(config.logging.level)
    return config


def setup_logging(config: LoggingConfig) -> None:
    """Configure the root logger from the logging config."""
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if config.file:
        handlers.append(logging.FileHandler(config.file))
    logging.basicConfig(
        level=_log_level(config.level),
        format=config.format,
        handlers=handlers,
        force=True,
    )
