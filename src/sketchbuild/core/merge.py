"""
Merge stage: concatenate sketch fragments into one translation unit.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, PrivateAttr

from .fragments import Fragment, FragmentIndex, FragmentRange


class MergedUnit(BaseModel):
    """
    The single text handed to the transpiler.

    Attributes:
        text: Concatenated fragment text, each fragment followed by one newline
        ranges: Where each fragment sits, in merge order
        total_lines: Number of lines in ``text``
    """

    text: str
    ranges: tuple[FragmentRange, ...]
    total_lines: int

    model_config = ConfigDict(frozen=True)

    _index: FragmentIndex = PrivateAttr(default_factory=FragmentIndex)

    @property
    def index(self) -> FragmentIndex:
        return self._index


def merge_fragments(
    fragments: list[Fragment],
    index: FragmentIndex | None = None,
) -> MergedUnit:
    """
    Concatenate fragments in the given order.

    Every fragment is followed by exactly one newline, whether or not its own
    text already ends with one, so the next fragment always starts on a fresh
    line and the recorded ranges stay exact.

    Args:
        fragments: Fragments in merge order (already filtered by the caller)
        index: Index to populate; a fresh one is created if omitted

    Returns:
        The merged unit, carrying the populated index
    """
    index = index if index is not None else FragmentIndex()
    parts: list[str] = []
    line = 0

    for fragment in fragments:
        index.record(fragment, line)
        parts.append(fragment.text)
        parts.append("\n")
        line += fragment.line_count

    unit = MergedUnit(text="".join(parts), ranges=index.ranges, total_lines=line)
    unit._index = index
    return unit


__all__ = ["MergedUnit", "merge_fragments"]
