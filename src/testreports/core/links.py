"""Source links for test cases.

URL templates use ``{repository}``, ``{commit}`` and ``{file}`` placeholders,
e.g. ``https://github.com/{repository}/blob/{commit}/{file}``.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from urllib.parse import quote

from testreports.core.errors import ConfigError

_PLACEHOLDER = re.compile(r"\{([^{}]*)\}")
_VARIABLES = frozenset({"repository", "commit", "file"})

LinkBuilder = Callable[[str, str, str], str]


def compile_link_template(template: str) -> LinkBuilder:
    """Validate ``template`` and return a builder ``(repository, commit, file) -> url``.

    Raises:
        ConfigError: On unknown variables or an unmatched brace.
    """
    stripped = _PLACEHOLDER.sub("", template)
    if "{" in stripped or "}" in stripped:
        raise ConfigError.invalid_value("links.url_template", template, "unmatched brace")

    for name in _PLACEHOLDER.findall(template):
        if name not in _VARIABLES:
            raise ConfigError.invalid_value(
                "links.url_template",
                template,
                f"unknown variable '{name}', must be one of repository, commit, file",
            )

    def build(repository: str, commit: str, file: str) -> str:
        values = {
            "repository": repository,
            "commit": commit,
            "file": quote(file.replace("\\", "/"), safe="/"),
        }
        return _PLACEHOLDER.sub(lambda m: values[m.group(1)], template)

    return build


def build_link(
    template: str | None,
    repository: str | None,
    commit: str | None,
    file: str | None,
) -> str | None:
    """Build a source link, or None when any part is missing."""
    if not (template and repository and commit and file):
        return None
    return compile_link_template(template)(repository, commit, file)
