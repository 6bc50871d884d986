"""Template Engine: named, overridable Markdown templates.

Templates are resolved by name in this order:

1. caller-supplied overrides (``RenderSpec.templates``)
2. override directories (``RenderSpec.template_dir``), as ``<name>.md.j2``
3. the built-in defaults shipped in ``templates/defaults``

Rendering runs in a jinja2 immutable sandbox with strict undefined handling:
templates may substitute values, branch, loop and include other named
templates, but cannot mutate the scope or reach unsafe attributes, and an
unresolved placeholder is an error rather than blank output.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from jinja2 import (
    FunctionLoader,
    StrictUndefined,
    TemplateNotFound,
    TemplateSyntaxError,
    UndefinedError,
)
from jinja2.sandbox import ImmutableSandboxedEnvironment, SecurityError

from testreports.core.errors import TemplateResolutionError
from testreports.core.formatting import (
    abbreviate_package,
    escape_cell,
    format_duration,
    format_percent,
)

DEFAULTS_DIR = Path(__file__).parent / "defaults"
TEMPLATE_SUFFIX = ".md.j2"

_QUOTED_RE = re.compile(r"'([^']*)'")


def builtin_names() -> tuple[str, ...]:
    """Names of the built-in default templates."""
    return tuple(
        sorted(p.name[: -len(TEMPLATE_SUFFIX)] for p in DEFAULTS_DIR.glob(f"*{TEMPLATE_SUFFIX}"))
    )


def _missing_key(error: UndefinedError) -> str:
    message = error.message or ""
    quoted = _QUOTED_RE.findall(message)
    if not quoted:
        return message
    # "'foo' is undefined" or "'dict object' has no attribute 'foo'"
    return quoted[-1]


class TemplateEngine:
    """Resolves named templates against a read-only scope.

    Args:
        overrides: Template sources by name; take precedence over everything.
        search_path: Directories searched for ``<name>.md.j2`` before built-ins.
    """

    def __init__(
        self,
        overrides: Mapping[str, str] | None = None,
        search_path: Iterable[str | Path] = (),
    ) -> None:
        self._overrides = dict(overrides or {})
        self._search_path = tuple(Path(p).expanduser() for p in search_path)
        self._env = ImmutableSandboxedEnvironment(
            loader=FunctionLoader(self._load),
            undefined=StrictUndefined,
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )
        self._env.filters.update(
            duration=format_duration,
            abbreviate=abbreviate_package,
            cell=escape_cell,
            percent=format_percent,
        )

    @classmethod
    def for_spec(cls, templates: Mapping[str, str], template_dir: str | None) -> TemplateEngine:
        return cls(overrides=templates, search_path=(template_dir,) if template_dir else ())

    def source_of(self, name: str) -> str | None:
        """Resolved source of ``name``, or None if no layer provides it."""
        return self._load(name)

    def _load(self, name: str) -> str | None:
        if name in self._overrides:
            return self._overrides[name]
        for directory in (*self._search_path, DEFAULTS_DIR):
            candidate = directory / f"{name}{TEMPLATE_SUFFIX}"
            if candidate.is_file():
                return candidate.read_text(encoding="utf-8")
        return None

    def resolve(self, name: str, scope: Mapping[str, Any]) -> str:
        """Render template ``name`` with ``scope``.

        Raises:
            TemplateResolutionError: Unknown template, undefined key, syntax
                error or sandbox violation.
        """
        try:
            template = self._env.get_template(name)
            return template.render(dict(scope))
        except TemplateNotFound as e:
            raise TemplateResolutionError.not_found(e.name or name) from e
        except TemplateSyntaxError as e:
            raise TemplateResolutionError.syntax(e.name or name, e.message or "", e.lineno) from e
        except SecurityError as e:
            raise TemplateResolutionError.unsafe(name, str(e)) from e
        except UndefinedError as e:
            raise TemplateResolutionError.undefined(name, _missing_key(e)) from e
