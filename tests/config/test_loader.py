"""Tests for config/loader.py module.

Covers:
- _load_yaml() function
- _deep_merge() function
- load_config() precedence: defaults < YAML < env vars < kwargs
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from testreports.config.loader import _deep_merge, _load_yaml, load_config
from testreports.config.models import LoggingConfig, OutputConfig
from testreports.core.errors import ConfigError, ErrorCode
from testreports.model.results import Outcome


class TestLoadYaml:
    """Tests for _load_yaml function."""

    def test_returns_empty_dict_for_missing_file(self, tmp_path: Path) -> None:
        """Returns empty dict when file doesn't exist."""
        assert _load_yaml(tmp_path / "nonexistent.yaml") == {}

    def test_loads_valid_yaml(self, tmp_path: Path) -> None:
        yaml_file = tmp_path / "config.yaml"
        yaml_file.write_text("logging:\n  level: DEBUG\n")

        assert _load_yaml(yaml_file) == {"logging": {"level": "DEBUG"}}

    def test_returns_empty_for_empty_file(self, tmp_path: Path) -> None:
        yaml_file = tmp_path / "empty.yaml"
        yaml_file.write_text("")

        assert _load_yaml(yaml_file) == {}

    def test_raises_config_error_for_invalid_yaml(self, tmp_path: Path) -> None:
        """Raises ConfigError for invalid YAML syntax."""
        yaml_file = tmp_path / "invalid.yaml"
        yaml_file.write_text("logging:\n  level:\n    - invalid: [unclosed")

        with pytest.raises(ConfigError):
            _load_yaml(yaml_file)

    def test_raises_config_error_for_non_mapping(self, tmp_path: Path) -> None:
        yaml_file = tmp_path / "list.yaml"
        yaml_file.write_text("- a\n- b\n")

        with pytest.raises(ConfigError, match="mapping"):
            _load_yaml(yaml_file)


class TestDeepMerge:
    """Tests for _deep_merge function."""

    def test_override_wins(self) -> None:
        assert _deep_merge({"a": 1, "b": 2}, {"b": 3}) == {"a": 1, "b": 3}

    def test_nested_merge(self) -> None:
        """Nested dicts are merged recursively."""
        base = {"output": {"root": "out", "max_workers": 2}}
        override = {"output": {"root": "other"}}
        assert _deep_merge(base, override) == {"output": {"root": "other", "max_workers": 2}}

    def test_override_replaces_non_dict(self) -> None:
        base: dict[str, Any] = {"a": {"nested": 1}}
        override: dict[str, Any] = {"a": "simple"}
        assert _deep_merge(base, override) == {"a": "simple"}

    def test_does_not_mutate_base(self) -> None:
        base = {"a": 1}
        _deep_merge(base, {"b": 2})
        assert base == {"a": 1}


class TestLoadConfig:
    """Tests for load_config function."""

    def test_returns_default_config_without_file(self) -> None:
        config = load_config()
        assert config.logging.level == "INFO"
        assert config.output.aggregate_name == "all"
        assert config.renderers.summary.aggregate is True

    def test_missing_explicit_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError) as exc_info:
            load_config(tmp_path / "missing.yaml")
        assert exc_info.value.code is ErrorCode.CONFIG_FILE_NOT_FOUND

    def test_loads_yaml_file(self, tmp_path: Path) -> None:
        config_file = tmp_path / "reports.yaml"
        config_file.write_text(
            "renderers:\n"
            "  json:\n"
            "    enabled: false\n"
            "  detailed:\n"
            "    aggregate: true\n"
            "    thresholds:\n"
            "      - {minimum: 80, color: blue}\n"
            "      - {minimum: 0, color: orange}\n"
            "filters:\n"
            "  outcomes: [failed, errored]\n"
            "  stack_excludes: ['org.junit.**']\n"
        )

        config = load_config(config_file)

        assert config.renderers.json_.enabled is False
        assert config.renderers.detailed.aggregate is True
        assert [t.color for t in config.renderers.detailed.badge_thresholds] == ["blue", "orange"]
        assert config.filters.outcomes == frozenset({Outcome.FAILED, Outcome.ERRORED})
        assert config.filters.stack_excludes == ("org.junit.**",)

    def test_defaults_layer_below_yaml(self, tmp_path: Path) -> None:
        config_file = tmp_path / "reports.yaml"
        config_file.write_text("output:\n  root: from-yaml\n")

        config = load_config(
            config_file, defaults={"output": {"root": "from-host", "aggregate_name": "build"}}
        )

        assert config.output.root == "from-yaml"
        assert config.output.aggregate_name == "build"

    def test_env_vars_override_yaml(self, tmp_path: Path) -> None:
        """Environment variables override YAML config."""
        config_file = tmp_path / "reports.yaml"
        config_file.write_text("logging:\n  level: INFO\n")

        with patch.dict(os.environ, {"TESTREPORTS__LOGGING__LEVEL": "WARNING"}):
            config = load_config(config_file)

        assert config.logging.level == "WARNING"

    def test_kwargs_override_all(self) -> None:
        """Keyword arguments override everything."""
        with patch.dict(os.environ, {"TESTREPORTS__LOGGING__LEVEL": "WARNING"}):
            config = load_config(
                logging=LoggingConfig(level="ERROR"), output=OutputConfig(root="kw")
            )

        assert config.logging.level == "ERROR"
        assert config.output.root == "kw"

    def test_raises_config_error_for_invalid_value(self, tmp_path: Path) -> None:
        config_file = tmp_path / "reports.yaml"
        config_file.write_text("output:\n  max_workers: 0\n")

        with pytest.raises(ConfigError) as exc_info:
            load_config(config_file)
        assert exc_info.value.code is ErrorCode.CONFIG_INVALID_VALUE

    def test_unknown_color_scheme_rejected(self, tmp_path: Path) -> None:
        config_file = tmp_path / "reports.yaml"
        config_file.write_text("renderers:\n  summary:\n    color_scheme: rainbow\n")

        with pytest.raises(ConfigError):
            load_config(config_file)
