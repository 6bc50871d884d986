"""Core module exports."""

from testreports.core.errors import (
    ConfigError,
    ConflictError,
    CycleError,
    ErrorCode,
    InternalError,
    MalformedInputError,
    ReportsError,
    TemplateResolutionError,
    WriteError,
)
from testreports.core.logging import (
    clear_cycle_id,
    configure_logging,
    get_cycle_id,
    get_logger,
    set_cycle_id,
)

__all__ = [
    # Errors
    "ConfigError",
    "ConflictError",
    "CycleError",
    "ErrorCode",
    "InternalError",
    "MalformedInputError",
    "ReportsError",
    "TemplateResolutionError",
    "WriteError",
    # Logging
    "clear_cycle_id",
    "configure_logging",
    "get_cycle_id",
    "get_logger",
    "set_cycle_id",
]
