"""
Diagnostic mapping.

Turns a transpiler failure into a user-facing problem report, attributed to
the sketch tab and line it came from whenever the fragment index allows.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict

from .fragments import FragmentIndex
from .transpile import TranspileFailure


class Severity(StrEnum):
    ERROR = "error"
    WARNING = "warning"


class Diagnostic(BaseModel):
    """
    A problem report.

    Attributes:
        fragment: Fragment name, or None when attributed to the whole sketch
        relative_line: 0-indexed line inside the fragment, -1 if unknown
        message: Friendly message shown to the user
        severity: Error or warning
    """

    fragment: str | None = None
    relative_line: int = -1
    message: str
    severity: Severity = Severity.ERROR

    model_config = ConfigDict(frozen=True)

    @property
    def has_location(self) -> bool:
        return self.fragment is not None and self.relative_line >= 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "fragment": self.fragment,
            "line": self.relative_line,
            "message": self.message,
            "severity": self.severity.value,
        }


# (match text, exact?, friendly message); first match wins
MESSAGE_REWRITES: tuple[tuple[str, bool, str], ...] = (
    (
        "expecting RCURLY, found 'null'",
        True,
        "Found one too many { characters without a } to match it.",
    ),
    ("expecting RBRACK", False, "Syntax error, maybe a missing right ] character?"),
    ("expecting SEMI", False, "Syntax error, maybe a missing semicolon?"),
    ("expecting RPAREN", False, "Syntax error, maybe a missing right parenthesis?"),
    ("preproc.web_colors", False, "A web color (such as #ffcc00) must be six digits."),
)


def friendly_message(raw: str) -> str:
    """Translate a raw transpiler message into something a sketcher can act on."""
    for needle, exact, friendly in MESSAGE_REWRITES:
        if (raw == needle) if exact else (needle in raw):
            return friendly
    return raw


def unit_diagnostic(message: str, severity: Severity = Severity.ERROR) -> Diagnostic:
    """Diagnostic attributed to the whole sketch, with no line."""
    return Diagnostic(message=message, severity=severity)


def map_failure(failure: TranspileFailure, index: FragmentIndex) -> Diagnostic:
    """
    Attribute a transpiler failure to a fragment and relative line.

    The message is rewritten before the lookup; a line that no fragment
    claims falls back to the whole sketch.
    """
    message = friendly_message(failure.raw_message)

    if failure.raw_line < 0:
        return unit_diagnostic(message)

    found = index.locate(failure.raw_line)
    if found is None:
        return unit_diagnostic(message)

    return Diagnostic(
        fragment=found.fragment,
        relative_line=failure.raw_line - found.start_line,
        message=message,
        severity=Severity.ERROR,
    )


__all__ = [
    "Diagnostic",
    "MESSAGE_REWRITES",
    "Severity",
    "friendly_message",
    "map_failure",
    "unit_diagnostic",
]
