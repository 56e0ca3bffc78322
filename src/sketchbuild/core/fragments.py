"""
Sketch fragments and the line-range index over a merged unit.

A sketch is made of several ``.pde`` files (tabs). They are concatenated
into a single unit before transpiling, and the index recorded here maps a
line of that unit back to the tab it came from.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict

from .errors import make_fragment_read_error

SKETCH_EXTENSION = ".pde"


class Fragment(BaseModel):
    """One source file contributing text to the merged unit.

    Attributes:
        name: File name, used as the fragment identity (e.g. "Ball.pde")
        path: Location on disk, if the fragment came from a file
        text: Raw file contents
    """

    name: str
    text: str
    path: Path | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def line_count(self) -> int:
        """Lines this fragment occupies once merged (text plus one newline)."""
        return self.text.count("\n") + 1


class FragmentRange(BaseModel):
    """Half-open range ``[start_line, end_line)`` of a fragment in the merged unit."""

    fragment: str
    start_line: int
    end_line: int

    model_config = ConfigDict(frozen=True)

    def __contains__(self, line: object) -> bool:
        return isinstance(line, int) and self.start_line <= line < self.end_line


class FragmentIndex:
    """Ordered record of where each fragment landed in the merged unit."""

    def __init__(self) -> None:
        self._ranges: list[FragmentRange] = []

    def record(self, fragment: Fragment, start_line: int) -> FragmentRange:
        entry = FragmentRange(
            fragment=fragment.name,
            start_line=start_line,
            end_line=start_line + fragment.line_count,
        )
        self._ranges.append(entry)
        return entry

    def locate(self, absolute_line: int) -> FragmentRange | None:
        """
        Find the fragment range containing an absolute merged-unit line.

        Returns:
            The matching range, or None if the line cannot be attributed
        """
        if absolute_line < 0:
            return None
        for entry in self._ranges:
            if absolute_line in entry:
                return entry
        return None

    @property
    def ranges(self) -> tuple[FragmentRange, ...]:
        return tuple(self._ranges)

    @property
    def total_lines(self) -> int:
        if not self._ranges:
            return 0
        return self._ranges[-1].end_line


def read_fragment(path: Path) -> Fragment:
    """
    Read one sketch file.

    Raises:
        FragmentReadError: If the file cannot be read or is not valid UTF-8
    """
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise make_fragment_read_error(path, e) from e
    return Fragment(name=path.name, path=path, text=text)


def discover_fragments(sketch_dir: Path, extension: str = SKETCH_EXTENSION) -> list[Fragment]:
    """
    Read every sketch file in a sketch folder.

    Only the top level of the folder is scanned, matching the extension
    case-insensitively. Fragments are returned sorted by file name so that
    line attribution is the same on every build of an unchanged sketch.

    Args:
        sketch_dir: Sketch folder
        extension: Fragment file extension, including the dot

    Returns:
        Fragments in merge order
    """
    paths = [
        p
        for p in sketch_dir.iterdir()
        if p.is_file() and p.suffix.lower() == extension.lower()
    ]
    return [read_fragment(p) for p in sorted(paths, key=lambda p: p.name)]


__all__ = [
    "SKETCH_EXTENSION",
    "Fragment",
    "FragmentRange",
    "FragmentIndex",
    "discover_fragments",
    "read_fragment",
]
