"""Shared pytest fixtures for sketchbuild tests."""

from __future__ import annotations

import zipfile
from collections.abc import Callable
from pathlib import Path

import pytest

from sketchbuild.builder import SketchBuilder
from sketchbuild.core.errors import SyntaxFailure
from sketchbuild.core.host import MarkerStore, MemoryClasspathPublisher
from sketchbuild.core.libraries import StaticLibraryResolver
from sketchbuild.core.transpile import TranspilerOutput


class ScriptedTranspiler:
    """Transpiler double that returns a canned result or raises a canned failure."""

    def __init__(
        self,
        output: str = "public class Sketch {}\n",
        imports: list[str] | None = None,
        error: Exception | None = None,
        on_call: Callable[[], None] | None = None,
    ):
        self.output = output
        self.imports = imports or []
        self.error = error
        self.on_call = on_call
        self.calls: list[dict] = []

    def transpile(self, text, unit_name, indent_size, packages):
        self.calls.append(
            {"text": text, "unit_name": unit_name, "indent_size": indent_size, "packages": packages}
        )
        if self.on_call is not None:
            self.on_call()
        if self.error is not None:
            raise self.error
        return TranspilerOutput(self.output, list(self.imports))


class BraceCheckingTranspiler:
    """
    Tiny stand-in for a real sketch preprocessor.

    Collects ``import`` lines, rejects unbalanced braces the way the real
    parser reports them, and wraps the rest in a class.
    """

    def transpile(self, text, unit_name, indent_size, packages):
        imports: list[str] = []
        body: list[str] = []
        open_lines: list[int] = []
        for number, line in enumerate(text.split("\n")):
            stripped = line.strip()
            if stripped.startswith("import ") and stripped.endswith(";"):
                imports.append(stripped[len("import ") : -1].strip())
                continue
            for ch in line:
                if ch == "{":
                    open_lines.append(number)
                elif ch == "}":
                    if not open_lines:
                        raise SyntaxFailure(number, "unexpected token: }")
                    open_lines.pop()
            body.append(" " * indent_size + line)
        if open_lines:
            raise SyntaxFailure(open_lines[-1], "expecting RCURLY, found 'null'")
        output = f"public class {unit_name} extends PApplet {{\n" + "\n".join(body) + "\n}\n"
        return TranspilerOutput(output, imports)


def write_jar(path: Path, classes: list[str]) -> Path:
    """Write a jar holding empty .class entries, e.g. ``["com/foo/Bar.class"]``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w") as zf:
        zf.writestr("META-INF/MANIFEST.MF", "Manifest-Version: 1.0\n")
        for name in classes:
            zf.writestr(name, b"\xca\xfe\xba\xbe")
    return path


@pytest.fixture
def make_sketch(tmp_path: Path) -> Callable[..., Path]:
    """Create a sketch folder from a mapping of file name to contents."""

    def _make(files: dict[str, str], name: str = "Sketch") -> Path:
        sketch_dir = tmp_path / name
        sketch_dir.mkdir(parents=True, exist_ok=True)
        for rel, content in files.items():
            target = sketch_dir / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        return sketch_dir

    return _make


@pytest.fixture
def sink() -> MarkerStore:
    return MarkerStore()


@pytest.fixture
def publisher() -> MemoryClasspathPublisher:
    return MemoryClasspathPublisher()


@pytest.fixture
def make_builder(
    sink: MarkerStore, publisher: MemoryClasspathPublisher
) -> Callable[..., SketchBuilder]:
    """Build a SketchBuilder wired to in-memory collaborators."""

    def _make(
        sketch_dir: Path,
        transpiler=None,
        libraries: dict[str, Path] | None = None,
        **kwargs,
    ) -> SketchBuilder:
        return SketchBuilder(
            sketch_dir,
            transpiler or ScriptedTranspiler(),
            libraries=StaticLibraryResolver(libraries or {}),
            sink=kwargs.pop("sink", sink),
            publisher=kwargs.pop("publisher", publisher),
            **kwargs,
        )

    return _make


@pytest.fixture
def scripted() -> type[ScriptedTranspiler]:
    """The ScriptedTranspiler class, for tests that need several configurations."""
    return ScriptedTranspiler


@pytest.fixture
def brace_transpiler() -> BraceCheckingTranspiler:
    return BraceCheckingTranspiler()


@pytest.fixture
def jar_writer() -> Callable[[Path, list[str]], Path]:
    return write_jar
