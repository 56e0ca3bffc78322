"""Core sketchbuild functionality: fragments, merging, transpiling, diagnostics, collaborators."""

from .changes import ResourceDelta, SketchChangeDetector, diff_snapshots, snapshot_sketch
from .diagnostics import Diagnostic, Severity, friendly_message, map_failure, unit_diagnostic
from .errors import (
    CleanError,
    ErrorContext,
    FragmentReadError,
    InaccessibleSketchError,
    ManifestError,
    PublishError,
    RuntimeFailure,
    SketchBuildError,
    SnapshotError,
    SyntaxFailure,
    TokenFailure,
    TranspilerFailure,
    TranspilerLoadError,
)
from .fragments import Fragment, FragmentIndex, FragmentRange, discover_fragments
from .host import FileClasspathPublisher, MarkerStore, MemoryClasspathPublisher
from .libraries import SketchbookLibraries, StaticLibraryResolver
from .manifest import SketchManifest, load_manifest
from .merge import MergedUnit, merge_fragments
from .transpile import (
    FailureKind,
    SketchMetadata,
    Transpiler,
    TranspileFailure,
    TranspilerOutput,
    TranspileSuccess,
    load_transpiler,
    run_transpile,
)

__all__ = [
    "SketchBuildError",
    "CleanError",
    "InaccessibleSketchError",
    "ManifestError",
    "PublishError",
    "SnapshotError",
    "TranspilerLoadError",
    "TranspilerFailure",
    "SyntaxFailure",
    "TokenFailure",
    "RuntimeFailure",
    "ErrorContext",
    "FragmentReadError",
    "Fragment",
    "FragmentIndex",
    "FragmentRange",
    "discover_fragments",
    "MergedUnit",
    "merge_fragments",
    "FailureKind",
    "SketchMetadata",
    "Transpiler",
    "TranspilerOutput",
    "TranspileSuccess",
    "TranspileFailure",
    "load_transpiler",
    "run_transpile",
    "Diagnostic",
    "Severity",
    "friendly_message",
    "map_failure",
    "unit_diagnostic",
    "MarkerStore",
    "MemoryClasspathPublisher",
    "FileClasspathPublisher",
    "SketchbookLibraries",
    "StaticLibraryResolver",
    "ResourceDelta",
    "SketchChangeDetector",
    "diff_snapshots",
    "snapshot_sketch",
    "SketchManifest",
    "load_manifest",
]
