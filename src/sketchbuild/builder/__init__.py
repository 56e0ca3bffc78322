"""
Sketch builder.

Runs the full build of a sketch as a sequence of stages:
clean, merge, transpile, library resolution, classpath publishing.
"""

from .models import BuildKind, BuildPhase, BuildResult, BuildState, CancellationToken
from .orchestrator import SketchBuilder, clean_build_folder

__all__ = [
    "BuildKind",
    "BuildPhase",
    "BuildResult",
    "BuildState",
    "CancellationToken",
    "SketchBuilder",
    "clean_build_folder",
]
