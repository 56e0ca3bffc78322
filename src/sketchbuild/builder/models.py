"""
Data models for the sketch builder.

These models describe the phases a build moves through, the mutable state
owned by one build invocation, and the result handed back to the caller.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Any

from ..core.diagnostics import Diagnostic
from ..core.transpile import SketchMetadata


class BuildKind(StrEnum):
    """Kinds of build request a host can make."""

    FULL = "full"
    AUTO = "auto"  # full build, only if something relevant changed
    INCREMENTAL = "incremental"  # ignored; the transpiler is not incremental


class BuildPhase(StrEnum):
    """Where a build is, or where it ended."""

    IDLE = "idle"
    CLEANING = "cleaning"
    MERGING = "merging"
    TRANSPILING = "transpiling"
    LIBRARY_RESOLVING = "library_resolving"
    CLASSPATH_PUBLISHING = "classpath_publishing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (BuildPhase.SUCCEEDED, BuildPhase.FAILED, BuildPhase.CANCELLED)


class CancellationToken:
    """Cooperative cancellation flag, safe to set from another thread."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()


@dataclass
class BuildState:
    """
    Mutable state of one build invocation.

    Created fresh by every full build and never carried over to the next.
    """

    source_paths: list[Path] = field(default_factory=list)
    library_paths: list[Path] = field(default_factory=list)
    metadata: SketchMetadata = field(default_factory=SketchMetadata)
    succeeded: bool = False

    def add_source_path(self, path: Path) -> None:
        if path not in self.source_paths:
            self.source_paths.append(path)

    def add_library_path(self, path: Path) -> None:
        if path not in self.library_paths:
            self.library_paths.append(path)


@dataclass
class BuildResult:
    """Outcome of a build request."""

    sketch: str
    kind: BuildKind
    phase: BuildPhase = BuildPhase.IDLE
    state: BuildState = field(default_factory=BuildState)
    diagnostics: list[Diagnostic] = field(default_factory=list)
    output_file: Path | None = None
    error_message: str | None = None
    duration_ms: int = 0

    @property
    def succeeded(self) -> bool:
        return self.phase == BuildPhase.SUCCEEDED and self.state.succeeded

    @property
    def failed(self) -> bool:
        return self.phase == BuildPhase.FAILED

    @property
    def cancelled(self) -> bool:
        return self.phase == BuildPhase.CANCELLED

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "sketch": self.sketch,
            "kind": self.kind.value,
            "phase": self.phase.value,
            "succeeded": self.succeeded,
            "diagnostics": [d.to_dict() for d in self.diagnostics],
            "output_file": str(self.output_file) if self.output_file else None,
            "metadata": self.state.metadata.model_dump(),
            "source_paths": [str(p) for p in self.state.source_paths],
            "library_paths": [str(p) for p in self.state.library_paths],
            "error_message": self.error_message,
            "duration_ms": self.duration_ms,
        }
