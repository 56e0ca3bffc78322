"""
Host-side collaborators of the builder: where diagnostics go and where the
computed classpath is published.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path
from typing import Protocol, runtime_checkable

from .diagnostics import Diagnostic
from .errors import PublishError

logger = logging.getLogger(__name__)


@runtime_checkable
class DiagnosticSink(Protocol):
    def report(self, unit: str, diagnostic: Diagnostic) -> None: ...

    def clear_all(self, unit: str) -> None: ...


@runtime_checkable
class ClasspathPublisher(Protocol):
    def publish(self, source_paths: Iterable[Path], library_paths: Iterable[Path]) -> None:
        """Replace the classpath; raises PublishError if it is rejected."""
        ...


class MarkerStore:
    """In-memory diagnostic sink, keyed by sketch name."""

    def __init__(self) -> None:
        self._markers: dict[str, list[Diagnostic]] = {}

    def report(self, unit: str, diagnostic: Diagnostic) -> None:
        logger.debug("%s: %s", unit, diagnostic.message)
        self._markers.setdefault(unit, []).append(diagnostic)

    def clear_all(self, unit: str) -> None:
        self._markers.pop(unit, None)

    def diagnostics(self, unit: str) -> list[Diagnostic]:
        return list(self._markers.get(unit, []))


class MemoryClasspathPublisher:
    """Keeps the last published classpath in memory."""

    def __init__(self) -> None:
        self.source_paths: list[Path] = []
        self.library_paths: list[Path] = []
        self.publish_count = 0

    def publish(self, source_paths: Iterable[Path], library_paths: Iterable[Path]) -> None:
        self.source_paths = list(source_paths)
        self.library_paths = list(library_paths)
        self.publish_count += 1


class FileClasspathPublisher:
    """
    Writes the classpath to a JSON file for the Java toolchain to pick up.

    The file is replaced atomically, so readers never see a half-written
    classpath.
    """

    def __init__(self, path: Path):
        self.path = path

    def publish(self, source_paths: Iterable[Path], library_paths: Iterable[Path]) -> None:
        payload = {
            "updated_at": datetime.now(UTC).isoformat(),
            "source_paths": [str(p) for p in source_paths],
            "library_paths": [str(p) for p in library_paths],
        }
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
            os.replace(tmp, self.path)
        except OSError as e:
            raise PublishError(f"Failed to write classpath {self.path}: {e}") from e


def load_classpath(path: Path) -> tuple[list[Path], list[Path]]:
    """Read back a classpath written by FileClasspathPublisher."""
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise PublishError(f"Failed to read classpath {path}: {e}") from e
    return (
        [Path(p) for p in data.get("source_paths", [])],
        [Path(p) for p in data.get("library_paths", [])],
    )


__all__ = [
    "ClasspathPublisher",
    "DiagnosticSink",
    "FileClasspathPublisher",
    "MarkerStore",
    "MemoryClasspathPublisher",
    "load_classpath",
]
