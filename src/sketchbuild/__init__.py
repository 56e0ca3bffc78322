"""
sketchbuild - build pipeline for multi-tab sketches.

Merges a sketch's tabs into one unit, runs a transpiler over it, and maps
every failure back to the tab and line it came from.
"""

from __future__ import annotations

import re
from importlib.metadata import version as _metadata_version
from pathlib import Path as _Path

from .builder import BuildKind, BuildPhase, BuildResult, SketchBuilder
from .core.diagnostics import Diagnostic, Severity
from .core.errors import CleanError, PublishError, SketchBuildError


def _get_version() -> str:
    """Get version from pyproject.toml (editable) or importlib.metadata (installed)."""
    pyproject = _Path(__file__).parent.parent.parent / "pyproject.toml"
    if pyproject.exists():
        content = pyproject.read_text()
        if match := re.search(r'^version\s*=\s*["\']([^"\']+)["\']', content, re.MULTILINE):
            return match.group(1)

    try:
        return _metadata_version("sketchbuild")
    except Exception:
        return "0.0.0"


__version__ = _get_version()

__all__ = [
    "__version__",
    "BuildKind",
    "BuildPhase",
    "BuildResult",
    "CleanError",
    "Diagnostic",
    "PublishError",
    "Severity",
    "SketchBuildError",
    "SketchBuilder",
]
