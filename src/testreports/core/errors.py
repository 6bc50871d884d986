"""testreports error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Input (raw records)
- 4xxx: Aggregation
- 5xxx: Template
- 6xxx: Write
- 7xxx: Cycle
- 9xxx: Internal
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002
    CONFIG_FILE_NOT_FOUND = 2004

    # Input (3xxx)
    INPUT_COUNTER_INVALID = 3001
    INPUT_UNKNOWN_CLASS = 3002
    INPUT_UNKNOWN_METHOD = 3003
    INPUT_INVALID_RECORD = 3004

    # Aggregation (4xxx)
    AGGREGATION_CONFLICT = 4001

    # Template (5xxx)
    TEMPLATE_NOT_FOUND = 5001
    TEMPLATE_UNDEFINED = 5002
    TEMPLATE_SYNTAX = 5003
    TEMPLATE_UNSAFE = 5004

    # Write (6xxx)
    WRITE_FAILED = 6001
    WRITE_PATH_ESCAPES_ROOT = 6002
    WRITE_DUPLICATE_PATH = 6003

    # Cycle (7xxx)
    CYCLE_ABORTED = 7001
    CYCLE_INCOMPLETE = 7002

    # Internal (9xxx)
    INTERNAL_ERROR = 9001


@dataclass(frozen=True, slots=True)
class ReportsError(Exception):
    """Base error with structured context for failure reports."""

    code: ErrorCode
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'AGGREGATION_CONFLICT')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON failure reports."""
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(ReportsError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )

    @classmethod
    def file_not_found(cls, path: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_FILE_NOT_FOUND,
            message=f"Config file not found: {path}",
            details={"path": path},
        )


class MalformedInputError(ReportsError):
    """A raw record violates a model invariant. Fatal for that run only."""

    @classmethod
    def invalid_counter(
        cls, subject: str, kind: str, covered: int, total: int
    ) -> "MalformedInputError":
        return cls(
            code=ErrorCode.INPUT_COUNTER_INVALID,
            message=(
                f"Invalid {kind} counter for {subject}: covered={covered}, total={total}"
            ),
            details={"subject": subject, "kind": kind, "covered": covered, "total": total},
        )

    @classmethod
    def unknown_class(cls, class_name: str, line: int) -> "MalformedInputError":
        return cls(
            code=ErrorCode.INPUT_UNKNOWN_CLASS,
            message=f"Line {line} references undeclared class '{class_name}'",
            details={"class_name": class_name, "line": line},
        )

    @classmethod
    def unknown_method(cls, class_name: str, line: int) -> "MalformedInputError":
        return cls(
            code=ErrorCode.INPUT_UNKNOWN_METHOD,
            message=f"No declared method of '{class_name}' encloses line {line}",
            details={"class_name": class_name, "line": line},
        )

    @classmethod
    def invalid_record(cls, record: str, reason: str) -> "MalformedInputError":
        return cls(
            code=ErrorCode.INPUT_INVALID_RECORD,
            message=f"Invalid {record} record: {reason}",
            details={"record": record, "reason": reason},
        )


class ConflictError(ReportsError):
    """Irreconcilable cross-run merge. Fatal for aggregated rendering only."""

    @classmethod
    def totals_differ(
        cls,
        subject: str,
        kind: str,
        totals: tuple[int, int],
        run_ids: tuple[str, ...] = (),
    ) -> "ConflictError":
        return cls(
            code=ErrorCode.AGGREGATION_CONFLICT,
            message=(
                f"'{subject}' reports different {kind} totals across runs: "
                f"{totals[0]} vs {totals[1]}"
            ),
            details={
                "subject": subject,
                "kind": kind,
                "totals": list(totals),
                "run_ids": list(run_ids),
            },
        )


class TemplateResolutionError(ReportsError):
    """A template or one of its placeholders could not be resolved."""

    @property
    def key(self) -> str:
        return str(self.details.get("key", ""))

    @classmethod
    def not_found(cls, template: str) -> "TemplateResolutionError":
        return cls(
            code=ErrorCode.TEMPLATE_NOT_FOUND,
            message=f"Template '{template}' not found",
            details={"template": template, "key": template},
        )

    @classmethod
    def undefined(cls, template: str, key: str) -> "TemplateResolutionError":
        return cls(
            code=ErrorCode.TEMPLATE_UNDEFINED,
            message=f"Template '{template}' references undefined key '{key}'",
            details={"template": template, "key": key},
        )

    @classmethod
    def syntax(cls, template: str, reason: str, line: int | None) -> "TemplateResolutionError":
        return cls(
            code=ErrorCode.TEMPLATE_SYNTAX,
            message=f"Syntax error in template '{template}' at line {line}: {reason}",
            details={"template": template, "reason": reason, "line": line},
        )

    @classmethod
    def unsafe(cls, template: str, reason: str) -> "TemplateResolutionError":
        return cls(
            code=ErrorCode.TEMPLATE_UNSAFE,
            message=f"Template '{template}' attempted an unsafe operation: {reason}",
            details={"template": template, "reason": reason},
        )


class WriteError(ReportsError):
    """An artifact could not be written to its destination."""

    @property
    def path(self) -> str:
        return str(self.details.get("path", ""))

    @classmethod
    def failed(cls, path: str, cause: str) -> "WriteError":
        return cls(
            code=ErrorCode.WRITE_FAILED,
            message=f"Failed to write artifact {path}: {cause}",
            details={"path": path, "cause": cause},
        )

    @classmethod
    def escapes_root(cls, path: str, root: str) -> "WriteError":
        return cls(
            code=ErrorCode.WRITE_PATH_ESCAPES_ROOT,
            message=f"Artifact path '{path}' escapes output root",
            details={"path": path, "root": root},
        )

    @classmethod
    def duplicate_path(cls, path: str, renderer: str) -> "WriteError":
        return cls(
            code=ErrorCode.WRITE_DUPLICATE_PATH,
            message=f"Renderer '{renderer}' produced more than one artifact at {path}",
            details={"path": path, "renderer": renderer},
        )


class CycleError(ReportsError):
    """Report cycle lifecycle violations."""

    @classmethod
    def aborted(cls, reason: str) -> "CycleError":
        return cls(
            code=ErrorCode.CYCLE_ABORTED,
            message=f"Report cycle aborted: {reason}",
            details={"reason": reason},
        )

    @classmethod
    def incomplete(cls, missing: list[str]) -> "CycleError":
        return cls(
            code=ErrorCode.CYCLE_INCOMPLETE,
            message=f"Runs still pending at render barrier: {', '.join(missing)}",
            details={"missing": missing},
        )


class InternalError(ReportsError):
    """Internal/unexpected errors."""

    @classmethod
    def unexpected(cls, reason: str, **details: Any) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_ERROR,
            message=f"Internal error: {reason}",
            details=details,
        )
