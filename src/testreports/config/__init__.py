"""Config module exports."""

from testreports.config.loader import load_config
from testreports.config.models import (
    COLOR_SCHEMES,
    DEFAULT_THRESHOLDS,
    BadgeThreshold,
    FilterSpec,
    LinksConfig,
    LoggingConfig,
    OutputConfig,
    RenderersConfig,
    RenderSpec,
    ReportsConfig,
)

__all__ = [
    "load_config",
    "BadgeThreshold",
    "COLOR_SCHEMES",
    "DEFAULT_THRESHOLDS",
    "FilterSpec",
    "LinksConfig",
    "LoggingConfig",
    "OutputConfig",
    "RenderSpec",
    "RenderersConfig",
    "ReportsConfig",
]
