"""Tests for the diagnostic sink and classpath publishers."""

import json
from pathlib import Path

import pytest

from sketchbuild.core.diagnostics import Diagnostic, unit_diagnostic
from sketchbuild.core.errors import PublishError
from sketchbuild.core.host import (
    ClasspathPublisher,
    DiagnosticSink,
    FileClasspathPublisher,
    MarkerStore,
    MemoryClasspathPublisher,
    load_classpath,
)


class TestMarkerStore:
    def test_report_and_clear(self):
        store = MarkerStore()
        first = Diagnostic(fragment="A.pde", relative_line=1, message="one")
        second = unit_diagnostic("two")

        store.report("A", first)
        store.report("A", second)
        store.report("B", second)

        assert store.diagnostics("A") == [first, second]

        store.clear_all("A")

        assert store.diagnostics("A") == []
        assert store.diagnostics("B") == [second]

    def test_clear_unknown_unit(self):
        MarkerStore().clear_all("never-built")

    def test_satisfies_protocol(self):
        assert isinstance(MarkerStore(), DiagnosticSink)


class TestMemoryClasspathPublisher:
    def test_publish_replaces_previous(self):
        publisher = MemoryClasspathPublisher()

        publisher.publish([Path("bin")], [Path("a.jar")])
        publisher.publish([Path("bin"), Path("data")], [])

        assert publisher.source_paths == [Path("bin"), Path("data")]
        assert publisher.library_paths == []
        assert publisher.publish_count == 2
        assert isinstance(publisher, ClasspathPublisher)


class TestFileClasspathPublisher:
    """Tests for the JSON classpath file."""

    def test_publish_and_load(self, tmp_path: Path):
        path = tmp_path / "state" / "classpath.json"
        publisher = FileClasspathPublisher(path)

        publisher.publish([tmp_path / "bin"], [tmp_path / "code" / "x.jar"])

        assert load_classpath(path) == ([tmp_path / "bin"], [tmp_path / "code" / "x.jar"])
        data = json.loads(path.read_text())
        assert "updated_at" in data
        assert not path.with_suffix(".json.tmp").exists()

    def test_publish_overwrites(self, tmp_path: Path):
        path = tmp_path / "classpath.json"
        publisher = FileClasspathPublisher(path)

        publisher.publish([Path("old")], [Path("old.jar")])
        publisher.publish([Path("new")], [])

        assert load_classpath(path) == ([Path("new")], [])

    def test_unwritable_location(self, tmp_path: Path):
        blocker = tmp_path / "blocker"
        blocker.write_text("a file, not a folder")

        with pytest.raises(PublishError, match="Failed to write classpath"):
            FileClasspathPublisher(blocker / "classpath.json").publish([], [])

    def test_load_missing_classpath(self, tmp_path: Path):
        with pytest.raises(PublishError, match="Failed to read classpath"):
            load_classpath(tmp_path / "missing.json")
