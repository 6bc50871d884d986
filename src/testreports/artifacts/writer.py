"""Artifact Writer: rendered bytes -> files under the output root.

Each artifact is written all-or-nothing: bytes go to a temporary file in the
destination directory, are fsynced, then renamed over the target with
os.replace. A crash mid-write never leaves a truncated artifact visible, and
a prior artifact at the same path is either fully replaced or untouched.
Artifacts whose bytes already match the file on disk are skipped, so
re-rendering identical inputs keeps mtimes stable.
"""

from __future__ import annotations

import os
import tempfile
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from testreports.core.errors import WriteError
from testreports.rendering.base import Artifact

log = structlog.get_logger(__name__)


@dataclass
class WriteResult:
    """Outcome of writing a batch of artifacts."""

    written: list[Path] = field(default_factory=list)
    unchanged: list[Path] = field(default_factory=list)
    errors: list[WriteError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def paths(self) -> list[Path]:
        """Every artifact now present with the rendered content."""
        return [*self.written, *self.unchanged]


class ArtifactWriter:
    """Writes artifacts below ``root``, creating directories as needed."""

    def __init__(self, root: Path | str) -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def resolve(self, relative: str) -> Path:
        """Absolute target of ``relative``.

        Raises:
            WriteError: The path escapes the output root.
        """
        resolved_root = self._root.resolve()
        target = (self._root / relative).resolve()
        if Path(relative).is_absolute() or not target.is_relative_to(resolved_root):
            raise WriteError.escapes_root(relative, str(resolved_root))
        return target

    def write(self, artifacts: Iterable[Artifact]) -> WriteResult:
        """Write every artifact; failures are collected, never raised."""
        result = WriteResult()
        for artifact in artifacts:
            try:
                target = self.resolve(artifact.path)
                if _same_content(target, artifact.content):
                    result.unchanged.append(target)
                    log.debug("artifact_unchanged", path=artifact.path)
                    continue
                _replace(target, artifact.content)
            except WriteError as e:
                result.errors.append(e)
                log.error("artifact_write_failed", path=artifact.path, reason=e.message)
                continue
            except OSError as e:
                error = WriteError.failed(artifact.path, f"{type(e).__name__}: {e}")
                result.errors.append(error)
                log.error("artifact_write_failed", path=artifact.path, reason=error.message)
                continue
            result.written.append(target)
            log.info("artifact_written", path=artifact.path, size=len(artifact.content))
        return result


def _same_content(target: Path, content: bytes) -> bool:
    if not target.is_file():
        return False
    if target.stat().st_size != len(content):
        return False
    return target.read_bytes() == content


def _replace(target: Path, content: bytes) -> None:
    """Atomically put ``content`` at ``target`` (temp file, fsync, rename)."""
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=target.parent)
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(content)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp, target)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise
