"""Renderer protocol and shared helpers.

A renderer is a pure function of (FilteredView, RenderSpec): identical inputs
give byte-identical artifacts. Nothing here reads clocks, hostnames or locale.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol
from urllib.parse import quote

from testreports.config.models import RenderSpec
from testreports.filtering.view import FilteredView, RunView


@dataclass(frozen=True, slots=True)
class Artifact:
    """Rendered bytes and their path relative to the output root."""

    path: str
    content: bytes


class Renderer(Protocol):
    """Protocol for output generators."""

    @property
    def name(self) -> str:
        """Registry key, also the RenderersConfig field name."""
        ...

    @property
    def extension(self) -> str:
        """File extension of produced artifacts, without the dot."""
        ...

    def render(self, view: FilteredView, spec: RenderSpec) -> list[Artifact]:
        """Produce artifacts in a stable order.

        Raises:
            TemplateResolutionError: A template could not be resolved.
            ConflictError: Aggregated coverage cannot be combined.
        """
        ...


def safe_run_id(run_id: str) -> str:
    """Run id encoded for use in a file name.

    Letters, digits and ``_.-~`` are kept; every other character, ``%``
    included, becomes ``%XX`` per UTF-8 byte. Distinct run ids therefore
    never share a file name.
    """
    return quote(run_id, safe="")


def artifact_path(base: str, extension: str, run_id: str | None = None) -> str:
    """``<base>.<ext>`` for combined output, ``<base>-<run>.<ext>`` per run."""
    if run_id is None:
        return f"{base}.{extension}"
    return f"{base}-{safe_run_id(run_id)}.{extension}"


def render_targets(view: FilteredView, spec: RenderSpec) -> list[tuple[RunView, str | None]]:
    """(run view, run id for the file name) pairs a renderer should emit.

    Aggregated mode yields the single combined view with no run suffix.
    """
    if spec.aggregate:
        return [(view.aggregate(), None)]
    return [(run, run.run_id) for run in view.runs]


def finish_text(text: str) -> bytes:
    """Normalize document text to exactly one trailing newline, UTF-8 encoded."""
    return (text.rstrip("\n") + "\n").encode("utf-8")
