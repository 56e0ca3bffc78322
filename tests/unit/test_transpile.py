"""Tests for the transpile stage."""

import sys
from pathlib import Path

import pytest

from sketchbuild.core.errors import (
    RuntimeFailure,
    SyntaxFailure,
    TokenFailure,
    TranspilerLoadError,
)
from sketchbuild.core.manifest import PreprocessorConfig
from sketchbuild.core.transpile import (
    FailureKind,
    SketchMetadata,
    TranspileFailure,
    TranspileSuccess,
    load_transpiler,
    parse_sketch_metadata,
    run_transpile,
    scrub_comments,
)


class TestRunTranspile:
    """Tests for classifying transpiler results."""

    def test_success_carries_output_imports_and_metadata(self, scripted):
        transpiler = scripted(
            output="void setup() {\n  size(640, 480, P2D);\n}\n",
            imports=["processing.video.*", "processing.video.*", "controlP5.*"],
        )

        outcome = run_transpile(transpiler, "merged", "Sketch", 2, ["com.acme"])

        assert isinstance(outcome, TranspileSuccess)
        assert outcome.ok is True
        assert outcome.extra_imports == frozenset({"processing.video.*", "controlP5.*"})
        assert outcome.metadata == SketchMetadata(width=640, height=480, renderer="P2D")
        assert transpiler.calls == [
            {"text": "merged", "unit_name": "Sketch", "indent_size": 2, "packages": ["com.acme"]}
        ]

    def test_syntax_failure_keeps_absolute_line(self, scripted):
        transpiler = scripted(error=SyntaxFailure(7, "expecting SEMI, found 'x'"))

        outcome = run_transpile(transpiler, "", "Sketch")

        assert outcome == TranspileFailure(
            kind=FailureKind.SYNTAX, raw_line=7, raw_message="expecting SEMI, found 'x'"
        )

    def test_token_failure_line_from_message(self, scripted):
        transpiler = scripted(error=TokenFailure("line 12:4: unexpected char: '#'"))

        outcome = run_transpile(transpiler, "", "Sketch")

        assert isinstance(outcome, TranspileFailure)
        assert outcome.kind == FailureKind.TOKEN
        assert outcome.raw_line == 11
        assert outcome.raw_message == "line 12:4: unexpected char: '#'"

    def test_token_failure_without_location(self, scripted):
        transpiler = scripted(error=TokenFailure("unexpected end of file"))

        outcome = run_transpile(transpiler, "", "Sketch")

        assert outcome.kind == FailureKind.TOKEN
        assert outcome.raw_line == -1

    def test_runtime_failure_is_moved_one_line_down(self, scripted):
        transpiler = scripted(error=RuntimeFailure(5, "unexpected token: \""))

        outcome = run_transpile(transpiler, "", "Sketch")

        assert outcome.kind == FailureKind.RUNTIME
        assert outcome.raw_line == 6

    def test_any_other_exception_is_unknown(self, scripted):
        transpiler = scripted(error=ValueError("boom"))

        outcome = run_transpile(transpiler, "", "Sketch")

        assert outcome.kind == FailureKind.UNKNOWN
        assert outcome.raw_line == -1
        assert outcome.raw_message == "boom"

    def test_unknown_failure_without_message_uses_type_name(self, scripted):
        outcome = run_transpile(scripted(error=KeyError()), "", "Sketch")

        assert outcome.raw_message == "KeyError"


class TestScrubComments:
    """Tests for comment removal."""

    def test_line_and_block_comments(self):
        text = "a // size(1, 2)\n/* size(3,\n4) */ b"

        scrubbed = scrub_comments(text)

        assert "size" not in scrubbed
        assert scrubbed.count("\n") == text.count("\n")
        assert scrubbed.startswith("a ")
        assert scrubbed.endswith(" b")
        assert len(scrubbed) == len(text)

    def test_unterminated_block_comment(self):
        assert scrub_comments("x /* open").strip() == "x"


class TestParseSketchMetadata:
    """Tests for reading size() out of generated source."""

    def test_width_height_renderer(self):
        meta = parse_sketch_metadata("  size(200, 100, OPENGL);")

        assert (meta.width, meta.height, meta.renderer) == (200, 100, "OPENGL")

    def test_without_renderer(self):
        meta = parse_sketch_metadata("void setup() { size(320, 240); }")

        assert (meta.width, meta.height, meta.renderer) == (320, 240, "")

    def test_no_size_call_keeps_defaults(self):
        assert parse_sketch_metadata("void draw() {}") == SketchMetadata()

    def test_commented_out_size_is_ignored(self):
        meta = parse_sketch_metadata("// size(640, 480);\n/* size(1, 1); */\n")

        assert meta == SketchMetadata()

    def test_non_numeric_width_keeps_defaults(self, caplog):
        with caplog.at_level("INFO", logger="sketchbuild.core.transpile"):
            meta = parse_sketch_metadata("size(screenWidth, 480);")

        assert meta == SketchMetadata()
        assert "didn't seem to contain numbers" in caplog.text

    def test_non_positive_values_are_rejected_field_by_field(self, caplog):
        with caplog.at_level("INFO", logger="sketchbuild.core.transpile"):
            meta = parse_sketch_metadata("size(-5, 0);")

        assert meta.width == -1
        assert meta.height == -1
        assert "Width cannot be negative" in caplog.text
        assert "Height cannot be negative" in caplog.text

    def test_only_bad_width_is_dropped(self):
        meta = parse_sketch_metadata("size(0, 300);")

        assert meta.width == -1
        assert meta.height == 300

    def test_only_bad_height_is_dropped(self, caplog):
        with caplog.at_level("INFO", logger="sketchbuild.core.transpile"):
            meta = parse_sketch_metadata("size(200, -5, P2D);")

        assert (meta.width, meta.height, meta.renderer) == (200, -1, "P2D")
        assert "Height cannot be negative" in caplog.text

    def test_non_numeric_height_keeps_defaults(self, caplog):
        with caplog.at_level("INFO", logger="sketchbuild.core.transpile"):
            meta = parse_sketch_metadata("size(200, screenHeight);")

        assert meta == SketchMetadata()
        assert "didn't seem to contain numbers" in caplog.text

    def test_no_space_after_comma(self):
        meta = parse_sketch_metadata("size(200,100,JAVA2D);")

        assert (meta.width, meta.height, meta.renderer) == (200, 100, "JAVA2D")


FACTORY_MODULE = '''
from sketchbuild.core.transpile import TranspilerOutput


class Echo:
    def __init__(self, config):
        self.config = config

    def transpile(self, text, unit_name, indent_size, packages):
        return TranspilerOutput(text, [])


def create(config):
    return Echo(config)


def broken(config):
    return object()
'''


class TestLoadTranspiler:
    """Tests for loading a transpiler factory from a module:attribute reference."""

    @pytest.fixture
    def factory_module(self, tmp_path: Path, monkeypatch) -> str:
        (tmp_path / "sketch_echo_transpiler.py").write_text(FACTORY_MODULE)
        monkeypatch.syspath_prepend(str(tmp_path))
        yield "sketch_echo_transpiler"
        sys.modules.pop("sketch_echo_transpiler", None)

    def test_loads_and_passes_config(self, factory_module):
        config = PreprocessorConfig(tab_size=2)

        transpiler = load_transpiler(f"{factory_module}:create", config)

        assert transpiler.config is config
        assert transpiler.transpile("x", "S", 2, []).output_text == "x"

    def test_malformed_reference(self):
        with pytest.raises(TranspilerLoadError, match="module:factory"):
            load_transpiler("no_colon_here", PreprocessorConfig())

    def test_missing_module(self):
        with pytest.raises(TranspilerLoadError, match="Cannot load transpiler"):
            load_transpiler("sketchbuild_does_not_exist:create", PreprocessorConfig())

    def test_missing_attribute(self, factory_module):
        with pytest.raises(TranspilerLoadError):
            load_transpiler(f"{factory_module}:nope", PreprocessorConfig())

    def test_factory_must_return_a_transpiler(self, factory_module):
        with pytest.raises(TranspilerLoadError, match="transpile"):
            load_transpiler(f"{factory_module}:broken", PreprocessorConfig())
