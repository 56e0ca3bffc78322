"""
Error types for sketch building, transpiling, and classpath publishing.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional


class SketchBuildError(Exception):
    """Base exception for all sketchbuild errors."""

    def __init__(self, message: str, context: Optional["ErrorContext"] = None):
        self.message = message
        self.context = context
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with context if available."""
        if self.context:
            return f"{self.context.format()}\n{self.message}"
        return self.message


class ManifestError(SketchBuildError):
    """Raised when sketch.toml exists but cannot be read or is malformed."""

    pass


class CleanError(SketchBuildError):
    """
    Raised when the previous build output cannot be removed.

    Cleaning failures are fatal: the build aborts before merging.
    """

    pass


class FragmentReadError(SketchBuildError):
    """Raised when a sketch file cannot be read or is not valid UTF-8."""

    pass


class InaccessibleSketchError(SketchBuildError):
    """
    Raised when the sketch folder itself is missing or unreadable.

    Nothing can be reported against the sketch, so no diagnostics are produced.
    """

    pass


class PublishError(SketchBuildError):
    """Raised when the classpath publisher rejects the computed paths."""

    pass


class SnapshotError(SketchBuildError):
    """Raised when a change-detection snapshot cannot be read or written."""

    pass


class TranspilerLoadError(SketchBuildError):
    """Raised when the configured transpiler factory cannot be imported."""

    pass


# =============================================================================
# Transpiler contract failures
# =============================================================================


class TranspilerFailure(SketchBuildError):
    """
    Base for failures a transpiler raises on bad sketch source.

    Transpilers are expected to raise one of the subclasses below. Anything
    else escaping a transpiler is treated as an unknown failure.
    """

    pass


class SyntaxFailure(TranspilerFailure):
    """
    Parser rejected the merged source.

    Attributes:
        line: Absolute, 0-indexed line in the merged source (-1 if unknown)
    """

    def __init__(self, line: int, message: str):
        self.line = line
        super().__init__(message)


class TokenFailure(TranspilerFailure):
    """
    Lexer rejected the merged source.

    The location only exists in the textual form, e.g.
    ``line 12:4: unexpected char: '#'``.
    """

    pass


class RuntimeFailure(TranspilerFailure):
    """
    Transpiler gave up while emitting code, e.g. on an unclosed string.

    Attributes:
        code_line: Line reported by the transpiler, one line before the
            actual problem
    """

    def __init__(self, code_line: int, message: str):
        self.code_line = code_line
        super().__init__(message)


@dataclass
class ErrorContext:
    """
    Context information for an error, including source location.

    Attributes:
        file: Path to the file the error is about
        line: Line number (1-indexed), if the error has one
        column: Column number (1-indexed), if the error has one
        fragment: Optional fragment name
    """

    file: Path
    line: int | None = None
    column: int | None = None
    fragment: str | None = None

    def format(self) -> str:
        """
        Format error context as a human-readable string.

        Returns:
            Formatted string like: "sketch/Tab.pde:10:5 in fragment Tab",
            or just the path when there is no line
        """
        location = str(self.file)
        if self.line is not None:
            location += f":{self.line}"
            if self.column is not None:
                location += f":{self.column}"
        if self.fragment:
            location += f" in fragment {self.fragment}"
        return location


def make_clean_error(message: str, path: Path | None = None) -> CleanError:
    """
    Helper to create a CleanError with optional context.

    Args:
        message: Error description
        path: Optional path that could not be removed

    Returns:
        CleanError naming the path if one was provided
    """
    if path:
        return CleanError(message, ErrorContext(file=path))
    return CleanError(message)


def make_fragment_read_error(path: Path, cause: Exception) -> FragmentReadError:
    """Helper to create a FragmentReadError for a sketch file that could not be read."""
    if isinstance(cause, UnicodeDecodeError):
        message = f"{path.name} is not valid UTF-8 (byte {cause.start}). Save it as UTF-8."
    else:
        message = f"Could not read {path.name}: {cause}"
    return FragmentReadError(message, ErrorContext(file=path))
