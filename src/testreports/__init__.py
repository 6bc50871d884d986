"""testreports - aggregate test results and coverage into JSON and Markdown reports."""

from testreports.config import ReportsConfig, load_config
from testreports.cycle import CycleFailure, CycleResult, ReportCycle

__version__ = "0.1.0"

__all__ = [
    "CycleFailure",
    "CycleResult",
    "ReportCycle",
    "ReportsConfig",
    "load_config",
    "__version__",
]
