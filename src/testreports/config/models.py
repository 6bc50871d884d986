"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (TESTREPORTS__SECTION__KEY)
3. YAML config file passed to load_config()
4. Built-in defaults (this file)

Environment Variable Format:
    TESTREPORTS__<SECTION>__<KEY>=<VALUE>

Examples:
    TESTREPORTS__LOGGING__LEVEL=DEBUG
    TESTREPORTS__OUTPUT__ROOT=build/reports
    TESTREPORTS__RENDERERS__JSON__ENABLED=false

FilterSpec and RenderSpec are plain configuration values handed to the engine
by value; the engine never mutates them.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from testreports.model.results import Outcome

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

BadgeStyle = Literal["flat", "flat-square", "plastic", "for-the-badge", "social", "none"]

CounterName = Literal["instruction", "branch", "line", "method", "class"]


class LogOutputConfig(BaseModel):
    """Single logging output configuration."""

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        TESTREPORTS__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="INFO",
        description="Root log level.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class FilterSpec(BaseModel):
    """Inclusion/exclusion rules applied to the model before rendering.

    Patterns are ant-style over dotted names: ``?`` matches one character,
    ``*`` matches within one segment, ``**`` matches any depth. An empty
    include list means "include all"; excludes always win.
    """

    model_config = ConfigDict(frozen=True)

    outcomes: frozenset[Outcome] = Field(
        default_factory=lambda: frozenset(Outcome),
        description="Outcomes shown in detail sections. Totals ignore this filter.",
    )
    stack_includes: tuple[str, ...] = Field(
        default=(),
        description="Declaring locations of stack frames to keep, e.g. 'com.acme.**'.",
    )
    stack_excludes: tuple[str, ...] = Field(
        default=(),
        description="Declaring locations of stack frames to drop.",
    )
    coverage_includes: tuple[str, ...] = Field(
        default=(),
        description="Package/class paths shown in coverage detail.",
    )
    coverage_excludes: tuple[str, ...] = Field(
        default=(),
        description="Package/class paths hidden from coverage detail.",
    )
    case_sensitive: bool = Field(
        default=False,
        description="Match patterns case-sensitively.",
    )

    @field_validator("outcomes")
    @classmethod
    def validate_outcomes(cls, v: frozenset[Outcome]) -> frozenset[Outcome]:
        # An empty set is treated like "include all"
        return v or frozenset(Outcome)


class BadgeThreshold(BaseModel):
    """A badge color used when the displayed percentage reaches ``minimum``."""

    model_config = ConfigDict(frozen=True)

    minimum: float = Field(ge=0.0, le=100.0)
    color: str = Field(min_length=1)


DEFAULT_THRESHOLDS: tuple[BadgeThreshold, ...] = (
    BadgeThreshold(minimum=90.0, color="green"),
    BadgeThreshold(minimum=75.0, color="yellow"),
    BadgeThreshold(minimum=0.0, color="red"),
)

COLOR_SCHEMES: dict[str, tuple[BadgeThreshold, ...]] = {
    "default": DEFAULT_THRESHOLDS,
    "green-red": (
        BadgeThreshold(minimum=100.0, color="4caf50"),
        BadgeThreshold(minimum=80.0, color="88bc4b"),
        BadgeThreshold(minimum=60.0, color="ffeb3b"),
        BadgeThreshold(minimum=50.0, color="ce5226"),
        BadgeThreshold(minimum=0.0, color="9b0000"),
    ),
    "monochrome": (
        BadgeThreshold(minimum=100.0, color="212121"),
        BadgeThreshold(minimum=80.0, color="616161"),
        BadgeThreshold(minimum=60.0, color="9e9e9e"),
        BadgeThreshold(minimum=50.0, color="bdbdbd"),
        BadgeThreshold(minimum=0.0, color="e0e0e0"),
    ),
    "blue-red": (
        BadgeThreshold(minimum=100.0, color="0d47a1"),
        BadgeThreshold(minimum=80.0, color="1976d2"),
        BadgeThreshold(minimum=60.0, color="1e88e5"),
        BadgeThreshold(minimum=50.0, color="d32f2f"),
        BadgeThreshold(minimum=0.0, color="c62828"),
    ),
}


class RenderSpec(BaseModel):
    """Per-renderer configuration.

    Env vars (per renderer, e.g. SUMMARY):
        TESTREPORTS__RENDERERS__SUMMARY__ENABLED
        TESTREPORTS__RENDERERS__SUMMARY__AGGREGATE
        TESTREPORTS__RENDERERS__SUMMARY__PRECISION
    """

    model_config = ConfigDict(frozen=True)

    enabled: bool = Field(default=True, description="Disabled renderers are never invoked.")
    aggregate: bool = Field(
        default=False,
        description="Write one combined artifact instead of one per run.",
    )
    include_stdout: bool = Field(default=False, description="Include captured stdout.")
    include_stderr: bool = Field(default=False, description="Include captured stderr.")
    always_include_output: bool = Field(
        default=False,
        description="Include captured output for passed cases too.",
    )
    per_test_case: bool = Field(
        default=True,
        description="Emit a row/record per test case instead of suite summaries only.",
    )
    badge_style: BadgeStyle = Field(
        default="flat",
        description="shields.io badge style, or 'none' for plain text percentages.",
    )
    color_scheme: str = Field(
        default="default",
        description="Named badge color scheme: default, green-red, monochrome, blue-red.",
    )
    thresholds: tuple[BadgeThreshold, ...] | None = Field(
        default=None,
        description="Explicit badge thresholds; overrides color_scheme when set.",
    )
    coverage_counter: CounterName = Field(
        default="line",
        description="Counter kind behind the headline coverage percentage and badge.",
    )
    abbreviate_packages: bool = Field(
        default=True,
        description="Compress leading package segments in detail tables.",
    )
    precision: int = Field(
        default=0,
        ge=0,
        le=4,
        description="Decimal places of displayed coverage percentages.",
    )
    output_name: str | None = Field(
        default=None,
        description="Artifact base name; defaults to the renderer's own name.",
    )
    templates: dict[str, str] = Field(
        default_factory=dict,
        description="Template overrides by name; take precedence over built-ins.",
    )
    template_dir: str | None = Field(
        default=None,
        description="Directory searched for '<name>.md.j2' overrides.",
    )

    @field_validator("color_scheme")
    @classmethod
    def validate_color_scheme(cls, v: str) -> str:
        if v not in COLOR_SCHEMES:
            valid = ", ".join(sorted(COLOR_SCHEMES))
            raise ValueError(f"Unknown color scheme {v!r}. Valid schemes: {valid}")
        return v

    @property
    def badge_thresholds(self) -> tuple[BadgeThreshold, ...]:
        """Thresholds in descending order."""
        chosen = self.thresholds or COLOR_SCHEMES[self.color_scheme]
        return tuple(sorted(chosen, key=lambda t: t.minimum, reverse=True))


class RenderersConfig(BaseModel):
    """Configuration of the registered renderers, keyed by renderer name."""

    json_: RenderSpec = Field(default_factory=RenderSpec, alias="json")
    summary: RenderSpec = Field(
        default_factory=lambda: RenderSpec(aggregate=True, per_test_case=False)
    )
    detailed: RenderSpec = Field(
        default_factory=lambda: RenderSpec(include_stdout=True, include_stderr=True)
    )

    model_config = ConfigDict(populate_by_name=True)

    def spec_for(self, name: str) -> RenderSpec | None:
        return {"json": self.json_, "summary": self.summary, "detailed": self.detailed}.get(name)


class OutputConfig(BaseModel):
    """Artifact destination and cycle execution settings.

    Env vars:
        TESTREPORTS__OUTPUT__ROOT: Root directory for artifacts
        TESTREPORTS__OUTPUT__RENDER_TIMEOUT_SEC: Max wait at the render barrier
    """

    root: str = Field(default="build/reports/tests", description="Artifact root directory.")
    aggregate_name: str = Field(
        default="all",
        description="Run identifier shown for the combined (aggregated) view.",
    )
    render_timeout_sec: float = Field(
        default=300.0,
        gt=0,
        description="Max wait for expected runs at the render barrier.",
    )
    max_workers: int = Field(
        default=4,
        ge=1,
        description="Renderers executed in parallel.",
    )


class LinksConfig(BaseModel):
    """Source links for test cases.

    Defaults come from CI variables (GITHUB_REPOSITORY, GITHUB_SHA, or the
    GitLab equivalents).
    """

    repository: str | None = Field(
        default_factory=lambda: os.environ.get("GITHUB_REPOSITORY")
        or os.environ.get("CI_PROJECT_PATH")
    )
    commit: str | None = Field(
        default_factory=lambda: os.environ.get("GITHUB_SHA") or os.environ.get("CI_COMMIT_SHA")
    )
    url_template: str = Field(
        default_factory=lambda: (
            "https://gitlab.com/{repository}/-/blob/{commit}/{file}"
            if os.environ.get("GITLAB_CI") == "true"
            else "https://github.com/{repository}/blob/{commit}/{file}"
        )
    )


class ReportsConfig(BaseModel):
    """Root configuration for testreports."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    filters: FilterSpec = Field(default_factory=FilterSpec)
    renderers: RenderersConfig = Field(default_factory=RenderersConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    links: LinksConfig = Field(default_factory=LinksConfig)
