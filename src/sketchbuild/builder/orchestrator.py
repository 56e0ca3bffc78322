"""
Sketch build orchestrator.

Drives one build of a sketch through clean, merge, transpile, library
resolution and classpath publishing, checking for cancellation between
stages.
"""

from __future__ import annotations

import json
import logging
import shutil
import time
from pathlib import Path

from ..core.changes import ChangeDetector, ResourceDelta, SketchChangeDetector
from ..core.diagnostics import Diagnostic, map_failure, unit_diagnostic
from ..core.errors import (
    FragmentReadError,
    InaccessibleSketchError,
    PublishError,
    make_clean_error,
)
from ..core.fragments import FragmentIndex, discover_fragments
from ..core.host import ClasspathPublisher, DiagnosticSink, FileClasspathPublisher, MarkerStore
from ..core.libraries import (
    LibraryResolver,
    SketchbookLibraries,
    archives_in_folder,
    import_package,
    package_list,
)
from ..core.manifest import MANIFEST_FILENAME, SketchManifest, load_manifest
from ..core.merge import merge_fragments
from ..core.transpile import Transpiler, TranspileFailure, TranspileSuccess, run_transpile
from .models import BuildKind, BuildPhase, BuildResult, BuildState, CancellationToken

logger = logging.getLogger(__name__)


def clean_build_folder(build: Path) -> None:
    """
    Delete everything inside a build folder, keeping the folder itself.

    Raises:
        CleanError: If an entry cannot be removed
    """
    if not build.is_dir():
        return
    for child in build.iterdir():
        try:
            if child.is_dir() and not child.is_symlink():
                shutil.rmtree(child)
            else:
                child.unlink()
        except OSError as e:
            raise make_clean_error(f"Failed to remove previous build output: {e}", child) from e


class SketchBuilder:
    """
    Builds one sketch.

    Every real build is a full build: the transpiler works on the whole
    merged sketch, so there is nothing to gain from looking at what changed
    beyond deciding whether to build at all.

    A builder must not be asked to build the same sketch from two threads at
    once. Each build takes its own cancellation token, which may be set from
    any thread.
    """

    def __init__(
        self,
        sketch_dir: Path,
        transpiler: Transpiler,
        *,
        manifest: SketchManifest | None = None,
        libraries: LibraryResolver | None = None,
        sink: DiagnosticSink | None = None,
        publisher: ClasspathPublisher | None = None,
        change_detector: ChangeDetector | None = None,
    ):
        """
        Initialize the builder.

        Args:
            sketch_dir: Sketch folder
            transpiler: Transpiler used for every build
            manifest: Sketch manifest (defaults to sketch_dir/sketch.toml)
            libraries: Library resolver (defaults to the sketchbook libraries)
            sink: Where diagnostics are reported (defaults to an in-memory store)
            publisher: Classpath publisher (defaults to a JSON file in the state folder)
            change_detector: Decides whether an automatic build should run
        """
        self.sketch_dir = sketch_dir
        self.transpiler = transpiler
        self.manifest = manifest or load_manifest(sketch_dir / MANIFEST_FILENAME)
        self.name = self.manifest.name or sketch_dir.name

        layout = self.manifest.build
        self.libraries = libraries or SketchbookLibraries(self.manifest.sketchbook.libraries_dir)
        self.sink = sink or MarkerStore()
        self.publisher = publisher or FileClasspathPublisher(
            sketch_dir / layout.state_folder / "classpath.json"
        )
        self.change_detector = change_detector or SketchChangeDetector(layout)

    @property
    def build_folder(self) -> Path:
        return self.sketch_dir / self.manifest.build.build_folder

    @property
    def code_folder(self) -> Path:
        return self.sketch_dir / self.manifest.build.code_folder

    @property
    def data_folder(self) -> Path:
        return self.sketch_dir / self.manifest.build.data_folder

    @property
    def main_file(self) -> Path:
        return self.sketch_dir / f"{self.name}{self.manifest.build.extension}"

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def build(
        self,
        kind: BuildKind = BuildKind.FULL,
        delta: ResourceDelta | None = None,
        token: CancellationToken | None = None,
    ) -> BuildResult:
        """
        Handle a build request.

        Args:
            kind: Requested build kind
            delta: Changes since the last build, for automatic builds
            token: Cancellation token for this build only; a fresh one is
                used if omitted
        """
        if kind == BuildKind.AUTO:
            return self.auto_build(delta, token)
        if kind == BuildKind.INCREMENTAL:
            return self.incremental_build()
        return self.full_build(token=token)

    def auto_build(
        self, delta: ResourceDelta | None, token: CancellationToken | None = None
    ) -> BuildResult:
        """Run a full build only if the delta touches something the build reads."""
        if not self.change_detector.has_relevant_change(delta):
            logger.debug("No relevant changes in %s, skipping build", self.name)
            return BuildResult(sketch=self.name, kind=BuildKind.AUTO)
        if delta is not None:
            logger.debug("Changes in %s:\n%s", self.name, delta.summary())
        return self.full_build(kind=BuildKind.AUTO, token=token)

    def incremental_build(self) -> BuildResult:
        # Launching a sketch asks for one of these; a full or automatic
        # build has already happened by then.
        return BuildResult(sketch=self.name, kind=BuildKind.INCREMENTAL)

    def clean(self) -> BuildState:
        """
        Remove previous build output and diagnostics.

        Returns:
            A fresh BuildState

        Raises:
            CleanError: If the build folder cannot be emptied
        """
        self.sink.clear_all(self.name)
        clean_build_folder(self.build_folder)
        return BuildState()

    def full_build(
        self, kind: BuildKind = BuildKind.FULL, token: CancellationToken | None = None
    ) -> BuildResult:
        """
        Build the sketch from scratch.

        Raises:
            CleanError: If the previous build output cannot be removed
        """
        result = BuildResult(sketch=self.name, kind=kind)
        start_time = time.time()
        try:
            self._run(result, token or CancellationToken())
        finally:
            result.duration_ms = int((time.time() - start_time) * 1000)

        logger.info("Build of %s finished: %s", self.name, result.phase.value)
        return result

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _run(self, result: BuildResult, token: CancellationToken) -> None:
        result.phase = BuildPhase.CLEANING
        result.state = state = self.clean()

        try:
            self._check_accessible()
        except InaccessibleSketchError as e:
            logger.error("%s Aborting build process.", e.message)
            self._fail(result, e.message)
            return

        if not self.main_file.is_file():
            self._report(
                result,
                unit_diagnostic(
                    f"Could not find {self.main_file.name}, "
                    "please rename your primary sketch file."
                ),
            )
            self._fail(result)
            return

        packages = self._scan_code_folder(state)

        if self._check_cancel(result, token):
            return
        result.phase = BuildPhase.MERGING

        index = FragmentIndex()
        try:
            fragments = discover_fragments(self.sketch_dir, self.manifest.build.extension)
        except FragmentReadError as e:
            logger.error("%s", e)
            fragment = e.context.file.name if e.context else None
            self._report(result, Diagnostic(fragment=fragment, message=e.message))
            self._fail(result, e.message)
            return
        except OSError as e:
            logger.error("Could not read sketch files of %s", self.name, exc_info=True)
            self._fail(result, f"Could not read sketch files: {e}")
            return
        unit = merge_fragments(fragments, index)
        logger.debug("Merged %d fragments into %d lines", len(fragments), unit.total_lines)

        if self._check_cancel(result, token):
            return
        result.phase = BuildPhase.TRANSPILING

        outcome = run_transpile(
            self.transpiler,
            unit.text,
            self.name,
            indent_size=self.manifest.preprocessor.tab_size,
            packages=packages,
        )
        if isinstance(outcome, TranspileFailure):
            logger.debug("Transpiler failure (%s) at line %d", outcome.kind.value, outcome.raw_line)
            self._report(result, map_failure(outcome, index))
            self._fail(result)
            return

        state.metadata = outcome.metadata
        try:
            result.output_file = self._write_output(outcome)
        except OSError as e:
            logger.error("Could not write generated source for %s", self.name, exc_info=True)
            self._fail(result, f"Could not write generated source: {e}")
            return
        state.add_source_path(self.build_folder)

        if self._check_cancel(result, token):
            return
        result.phase = BuildPhase.LIBRARY_RESOLVING

        if not self._resolve_libraries(result, outcome.extra_imports):
            # Every missing import has been reported by now
            self._fail(result)
            return

        if self._check_cancel(result, token):
            return
        result.phase = BuildPhase.CLASSPATH_PUBLISHING

        if self.data_folder.is_dir() and any(self.data_folder.iterdir()):
            state.add_source_path(self.data_folder)

        try:
            self.publisher.publish(state.source_paths, state.library_paths)
        except PublishError as e:
            logger.error("There was a problem setting the compiler class path.", exc_info=True)
            self._fail(result, e.message)
            return

        state.succeeded = True
        result.phase = BuildPhase.SUCCEEDED

    def _check_accessible(self) -> None:
        if not self.sketch_dir.is_dir():
            raise InaccessibleSketchError(f"Sketch {self.sketch_dir} is inaccessible.")
        if self.build_folder.exists() and not self.build_folder.is_dir():
            raise InaccessibleSketchError(
                f"Build folder {self.build_folder} could not be accessed."
            )

    def _scan_code_folder(self, state: BuildState) -> list[str]:
        """Put code-folder jars on the classpath and return the packages they hold."""
        archives = archives_in_folder(self.code_folder)
        for archive in archives:
            state.add_library_path(archive)
        return package_list(archives)

    def _write_output(self, outcome: TranspileSuccess) -> Path:
        self.build_folder.mkdir(parents=True, exist_ok=True)
        output = self.build_folder / f"{self.name}.java"
        output.write_text(outcome.output_text, encoding="utf-8")

        metadata_file = self.build_folder / "sketch.json"
        with open(metadata_file, "w", encoding="utf-8") as f:
            json.dump(outcome.metadata.model_dump(), f, indent=2)
        return output

    def _resolve_libraries(self, result: BuildResult, imports: frozenset[str]) -> bool:
        """
        Resolve every imported package against the library resolver.

        Missing libraries are all reported before returning, so the user sees
        every one of them after a single build.

        Returns:
            True if every import resolved
        """
        ok = True
        for package in sorted({import_package(name) for name in imports}):
            jar = self.libraries.resolve(package)
            if jar is None:
                self._report(
                    result,
                    unit_diagnostic(
                        f'Library import "{package}" could not be found. '
                        "Check the library folder in your sketchbook."
                    ),
                )
                ok = False
                continue
            result.state.add_library_path(jar)
        return ok

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _check_cancel(self, result: BuildResult, token: CancellationToken) -> bool:
        if not token.is_cancelled:
            return False
        logger.info("Build of %s cancelled during %s", self.name, result.phase.value)
        result.phase = BuildPhase.CANCELLED
        return True

    def _report(self, result: BuildResult, diagnostic: Diagnostic) -> None:
        self.sink.report(self.name, diagnostic)
        result.diagnostics.append(diagnostic)

    def _fail(self, result: BuildResult, message: str | None = None) -> None:
        result.phase = BuildPhase.FAILED
        result.error_message = message
