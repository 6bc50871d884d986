"""Renderer registry.

This module provides:
- RENDERER_REGISTRY: All available renderers, in execution order
- RENDERER_BY_NAME: Name to renderer mapping
- get_renderer: Lookup by name
"""

from collections.abc import Sequence

from testreports.rendering.badges import coverage_badge, status_badge, threshold_color
from testreports.rendering.base import Artifact, Renderer, artifact_path, safe_run_id
from testreports.rendering.detailed import DetailedRenderer
from testreports.rendering.structured import FORMAT_VERSION, StructuredRenderer
from testreports.rendering.summary import SummaryRenderer

# Populated once at import; there is no runtime discovery
RENDERER_REGISTRY: Sequence[Renderer] = (
    StructuredRenderer(),
    SummaryRenderer(),
    DetailedRenderer(),
)

RENDERER_BY_NAME: dict[str, Renderer] = {r.name: r for r in RENDERER_REGISTRY}

__all__ = [
    "RENDERER_REGISTRY",
    "RENDERER_BY_NAME",
    "get_renderer",
    "Artifact",
    "DetailedRenderer",
    "FORMAT_VERSION",
    "Renderer",
    "StructuredRenderer",
    "SummaryRenderer",
    "artifact_path",
    "coverage_badge",
    "safe_run_id",
    "status_badge",
    "threshold_color",
]


def get_renderer(name: str) -> Renderer | None:
    """Registered renderer called ``name``, or None."""
    return RENDERER_BY_NAME.get(name)
