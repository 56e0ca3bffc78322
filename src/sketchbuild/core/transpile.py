"""
Transpile stage.

Runs the external transpiler over a merged unit and turns whatever it raises
into a tagged ``TranspileFailure``. On success, the generated source is
scanned for the sketch's ``size()`` declaration.
"""

from __future__ import annotations

import importlib
import logging
import re
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Literal, NamedTuple, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict

from .errors import RuntimeFailure, SyntaxFailure, TokenFailure, TranspilerLoadError

if TYPE_CHECKING:
    from .manifest import PreprocessorConfig

logger = logging.getLogger(__name__)

# Location prefix of a lexer failure, e.g. "line 3:14: unexpected char: '#'"
TOKEN_LOCATION_REGEX = re.compile(r"^line (\d+):(\d+):\s")

# size(width, height[, renderer]) as it appears in generated source
SIZE_REGEX = re.compile(
    r"(?:^|\s|;)size\s*\(\s*([^\s,\)]+)\s*,\s*([^\s,\)]+),?\s*([^\)]*)\s*\)"
)


class TranspilerOutput(NamedTuple):
    output_text: str
    imports: list[str]


@runtime_checkable
class Transpiler(Protocol):
    """Contract of the external sketch-to-Java transpiler."""

    def transpile(
        self,
        text: str,
        unit_name: str,
        indent_size: int,
        packages: list[str],
    ) -> TranspilerOutput: ...


class FailureKind(StrEnum):
    SYNTAX = "syntax"
    TOKEN = "token"
    RUNTIME = "runtime"
    UNKNOWN = "unknown"


class SketchMetadata(BaseModel):
    """Canvas settings declared by the sketch; -1 and "" mean unset."""

    width: int = -1
    height: int = -1
    renderer: str = ""

    model_config = ConfigDict(frozen=True)


class TranspileSuccess(BaseModel):
    ok: Literal[True] = True
    output_text: str
    metadata: SketchMetadata = SketchMetadata()
    extra_imports: frozenset[str] = frozenset()

    model_config = ConfigDict(frozen=True)


class TranspileFailure(BaseModel):
    """
    A transpiler failure reduced to what the diagnostic mapper needs.

    Attributes:
        kind: Which failure shape the transpiler raised
        raw_line: Absolute, 0-indexed merged-unit line, -1 if unknown
        raw_message: Message as produced by the transpiler
    """

    ok: Literal[False] = False
    kind: FailureKind
    raw_line: int = -1
    raw_message: str

    model_config = ConfigDict(frozen=True)


TranspileOutcome = TranspileSuccess | TranspileFailure


def run_transpile(
    transpiler: Transpiler,
    merged_text: str,
    unit_name: str,
    indent_size: int = 4,
    packages: list[str] | None = None,
) -> TranspileOutcome:
    """
    Invoke the transpiler once and classify the result.

    The call is synchronous and cannot be interrupted.

    Args:
        transpiler: Transpiler implementation
        merged_text: Merged sketch source
        unit_name: Sketch name, used as the generated class name
        indent_size: Indentation width for generated code
        packages: Java packages already available from the code folder

    Returns:
        TranspileSuccess or TranspileFailure
    """
    try:
        output = transpiler.transpile(merged_text, unit_name, indent_size, list(packages or []))
    except SyntaxFailure as e:
        return TranspileFailure(kind=FailureKind.SYNTAX, raw_line=e.line, raw_message=e.message)
    except TokenFailure as e:
        return TranspileFailure(
            kind=FailureKind.TOKEN,
            raw_line=_token_failure_line(str(e)),
            raw_message=e.message,
        )
    except RuntimeFailure as e:
        # The transpiler reports the line before the one that failed.
        # TODO: confirm against the transpiler whether this is still one line early.
        return TranspileFailure(
            kind=FailureKind.RUNTIME, raw_line=e.code_line + 1, raw_message=e.message
        )
    except Exception as e:
        logger.error("Transpiler failed on %s", unit_name, exc_info=True)
        return TranspileFailure(kind=FailureKind.UNKNOWN, raw_message=str(e) or type(e).__name__)

    return TranspileSuccess(
        output_text=output.output_text,
        metadata=parse_sketch_metadata(output.output_text),
        extra_imports=frozenset(output.imports),
    )


def _token_failure_line(text: str) -> int:
    match = TOKEN_LOCATION_REGEX.match(text)
    if not match:
        return -1
    # Lexer locations are 1-indexed
    return int(match.group(1)) - 1


def scrub_comments(text: str) -> str:
    """
    Replace comment bodies with spaces, keeping every newline in place.

    Handles ``//`` line comments and ``/* */`` block comments. An unterminated
    block comment runs to the end of the text.
    """
    out = list(text)
    i = 0
    n = len(text)
    while i < n:
        if text.startswith("//", i):
            end = text.find("\n", i)
            end = n if end == -1 else end
            for j in range(i, end):
                out[j] = " "
            i = end
        elif text.startswith("/*", i):
            end = text.find("*/", i + 2)
            end = n if end == -1 else end + 2
            for j in range(i, end):
                if out[j] != "\n":
                    out[j] = " "
            i = end
        else:
            i += 1
    return "".join(out)


def parse_sketch_metadata(output_text: str) -> SketchMetadata:
    """
    Extract width, height and renderer from a ``size()`` call.

    Invalid values are ignored field by field and logged; they never fail
    the build.
    """
    match = SIZE_REGEX.search(scrub_comments(output_text))
    if not match:
        return SketchMetadata()

    try:
        wide = int(match.group(1))
        high = int(match.group(2))
    except ValueError:
        logger.info(
            "Found a reference to size, but it didn't seem to contain numbers. "
            "Will use default sizes instead."
        )
        return SketchMetadata()

    values: dict[str, Any] = {"renderer": match.group(3).strip()}
    if wide > 0:
        values["width"] = wide
    else:
        logger.info("Width cannot be negative. Using default width instead.")
    if high > 0:
        values["height"] = high
    else:
        logger.info("Height cannot be negative. Using default height instead.")
    return SketchMetadata(**values)


def load_transpiler(reference: str, config: PreprocessorConfig) -> Transpiler:
    """
    Build a transpiler from a ``"package.module:factory"`` reference.

    The factory is called with the preprocessor configuration and must
    return an object with a ``transpile`` method.

    Raises:
        TranspilerLoadError: If the reference cannot be imported or the
            factory returns something that is not a transpiler
    """
    module_name, _, attr = reference.partition(":")
    if not module_name or not attr:
        raise TranspilerLoadError(
            f"Transpiler reference must look like 'module:factory', got {reference!r}"
        )

    try:
        module = importlib.import_module(module_name)
        factory = getattr(module, attr)
    except (ImportError, AttributeError) as e:
        raise TranspilerLoadError(f"Cannot load transpiler {reference!r}: {e}") from e

    transpiler = factory(config)
    if not isinstance(transpiler, Transpiler):
        raise TranspilerLoadError(
            f"{reference!r} did not return an object with a transpile() method"
        )
    return transpiler


__all__ = [
    "FailureKind",
    "SIZE_REGEX",
    "SketchMetadata",
    "Transpiler",
    "TranspilerOutput",
    "TranspileFailure",
    "TranspileOutcome",
    "TranspileSuccess",
    "load_transpiler",
    "parse_sketch_metadata",
    "run_transpile",
    "scrub_comments",
]
