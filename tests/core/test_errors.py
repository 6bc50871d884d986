"""Tests for error types and codes."""

import pytest

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


class TestErrorCode:
    """Error code value tests."""

    @pytest.mark.parametrize(
        ("code", "expected_range"),
        [
            (ErrorCode.CONFIG_PARSE_ERROR, 2000),
            (ErrorCode.CONFIG_INVALID_VALUE, 2000),
            (ErrorCode.INPUT_COUNTER_INVALID, 3000),
            (ErrorCode.INPUT_UNKNOWN_METHOD, 3000),
            (ErrorCode.AGGREGATION_CONFLICT, 4000),
            (ErrorCode.TEMPLATE_UNDEFINED, 5000),
            (ErrorCode.WRITE_FAILED, 6000),
            (ErrorCode.CYCLE_INCOMPLETE, 7000),
            (ErrorCode.INTERNAL_ERROR, 9000),
        ],
    )
    def test_given_error_code_when_checked_then_in_correct_range(
        self, code: ErrorCode, expected_range: int
    ) -> None:
        """Error codes fall within their designated numeric range."""
        assert expected_range <= code.value < expected_range + 1000


class TestReportsError:
    """Base error behavior tests."""

    def test_given_error_when_to_dict_then_serializes_all_fields(self) -> None:
        """Error serializes to dict with all required fields."""
        # Given
        error = ReportsError(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message="Test message",
            details={"key": "value"},
        )

        # When
        result = error.to_dict()

        # Then
        assert result == {
            "code": 2001,
            "error": "CONFIG_PARSE_ERROR",
            "message": "Test message",
            "details": {"key": "value"},
        }

    def test_given_error_when_str_then_includes_code_and_message(self) -> None:
        error = InternalError.unexpected("boom")
        assert str(error) == "[9001] INTERNAL_ERROR: Internal error: boom"

    def test_given_error_when_raised_then_catchable_as_base(self) -> None:
        with pytest.raises(ReportsError):
            raise CycleError.aborted("stop")


class TestFactories:
    """Factory methods carry structured details."""

    def test_config_invalid_value(self) -> None:
        error = ConfigError.invalid_value("output.root", 3, "must be a string")
        assert error.code is ErrorCode.CONFIG_INVALID_VALUE
        assert error.details == {"field": "output.root", "value": "3", "reason": "must be a string"}

    def test_invalid_counter(self) -> None:
        error = MalformedInputError.invalid_counter("pkg.Foo:3", "branch", 3, 2)
        assert error.code is ErrorCode.INPUT_COUNTER_INVALID
        assert "pkg.Foo:3" in error.message
        assert error.details["covered"] == 3

    def test_totals_differ(self) -> None:
        error = ConflictError.totals_differ("pkg.Foo", "instruction", (10, 12), ("a", "b"))
        assert error.details == {
            "subject": "pkg.Foo",
            "kind": "instruction",
            "totals": [10, 12],
            "run_ids": ["a", "b"],
        }
        assert "10 vs 12" in error.message

    def test_template_undefined_exposes_key(self) -> None:
        error = TemplateResolutionError.undefined("summary", "rows")
        assert error.key == "rows"
        assert error.code is ErrorCode.TEMPLATE_UNDEFINED

    def test_template_not_found_key_is_template(self) -> None:
        assert TemplateResolutionError.not_found("nope").key == "nope"

    def test_write_error_exposes_path(self) -> None:
        error = WriteError.escapes_root("../x.md", "/out")
        assert error.path == "../x.md"
        assert error.code is ErrorCode.WRITE_PATH_ESCAPES_ROOT

    def test_duplicate_path_names_renderer(self) -> None:
        error = WriteError.duplicate_path("report.json", "json")
        assert error.path == "report.json"
        assert error.details["renderer"] == "json"
        assert error.code is ErrorCode.WRITE_DUPLICATE_PATH

    def test_incomplete_lists_missing_runs(self) -> None:
        error = CycleError.incomplete(["a", "b"])
        assert error.details["missing"] == ["a", "b"]
        assert "a, b" in error.message

    def test_errors_are_immutable(self) -> None:
        error = CycleError.aborted("x")
        with pytest.raises(AttributeError):
            error.message = "changed"  # type: ignore[misc]
