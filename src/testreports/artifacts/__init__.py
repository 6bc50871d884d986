"""Artifact Writer."""

from testreports.artifacts.writer import ArtifactWriter, WriteResult

__all__ = ["ArtifactWriter", "WriteResult"]
