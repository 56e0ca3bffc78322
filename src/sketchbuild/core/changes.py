"""
Change detection for automatic builds.

An automatic build only runs when something that feeds the build changed
since the last snapshot:
- Sketch files (tabs)
- Anything in the code or data folder
- The sketch manifest
"""

import hashlib
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol, runtime_checkable

from .errors import SnapshotError
from .manifest import MANIFEST_FILENAME, BuildConfig


@dataclass
class ResourceDelta:
    """Sketch-relative paths that changed between two snapshots."""

    added: set[str] = field(default_factory=set)
    removed: set[str] = field(default_factory=set)
    modified: set[str] = field(default_factory=set)

    def is_empty(self) -> bool:
        """Check if there are no changes."""
        return not self.added and not self.removed and not self.modified

    def paths(self) -> set[str]:
        return self.added | self.removed | self.modified

    def summary(self) -> str:
        """Generate human-readable summary of changes."""
        lines = []
        if self.added:
            lines.append(f"  Files: +{len(self.added)} ({', '.join(sorted(self.added))})")
        if self.removed:
            lines.append(f"  Files: -{len(self.removed)} ({', '.join(sorted(self.removed))})")
        if self.modified:
            lines.append(f"  Files: ~{len(self.modified)} ({', '.join(sorted(self.modified))})")
        return "\n".join(lines) if lines else "  No changes detected"


@runtime_checkable
class ChangeDetector(Protocol):
    def has_relevant_change(self, delta: ResourceDelta | None) -> bool: ...


class SketchChangeDetector:
    """Decides whether a delta touches anything the build reads."""

    def __init__(self, layout: BuildConfig | None = None):
        self.layout = layout or BuildConfig()

    def has_relevant_change(self, delta: ResourceDelta | None) -> bool:
        # No delta means nothing is known about the previous build
        if delta is None:
            return True
        return any(self._is_relevant(p) for p in delta.paths())

    def _is_relevant(self, rel_path: str) -> bool:
        parts = Path(rel_path).parts
        if not parts:
            return False
        if len(parts) == 1:
            name = parts[0]
            return (
                name == MANIFEST_FILENAME
                or Path(name).suffix.lower() == self.layout.extension.lower()
            )
        return parts[0] in (self.layout.code_folder, self.layout.data_folder)


def compute_file_hash(file_path: Path) -> str:
    """
    Compute SHA256 hash of a file.

    Raises:
        SnapshotError: If file cannot be read
    """
    try:
        sha256 = hashlib.sha256()
        with open(file_path, "rb") as f:
            for chunk in iter(lambda: f.read(8192), b""):
                sha256.update(chunk)
        return sha256.hexdigest()
    except OSError as e:
        raise SnapshotError(f"Failed to hash file {file_path}: {e}") from e


def snapshot_sketch(sketch_dir: Path, layout: BuildConfig | None = None) -> dict[str, str]:
    """
    Hash every file in a sketch folder that can affect a build.

    The build and state folders are skipped, since the build writes to them.

    Returns:
        Dict mapping sketch-relative POSIX path to SHA256 hash
    """
    layout = layout or BuildConfig()
    skipped = {layout.build_folder, layout.state_folder}
    hashes: dict[str, str] = {}
    for path in sorted(sketch_dir.rglob("*")):
        rel = path.relative_to(sketch_dir)
        if not path.is_file() or rel.parts[0] in skipped:
            continue
        hashes[rel.as_posix()] = compute_file_hash(path)
    return hashes


def diff_snapshots(previous: dict[str, str], current: dict[str, str]) -> ResourceDelta:
    prev_files = set(previous)
    curr_files = set(current)
    return ResourceDelta(
        added=curr_files - prev_files,
        removed=prev_files - curr_files,
        modified={p for p in prev_files & curr_files if previous[p] != current[p]},
    )


def get_snapshot_path(sketch_dir: Path, layout: BuildConfig | None = None) -> Path:
    layout = layout or BuildConfig()
    return sketch_dir / layout.state_folder / "snapshot.json"


def load_snapshot(path: Path) -> dict[str, str] | None:
    """
    Load a saved snapshot.

    Returns:
        The snapshot, or None if none was saved yet

    Raises:
        SnapshotError: If the snapshot file is corrupted
    """
    if not path.exists():
        return None
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise SnapshotError(f"Failed to load snapshot: {e}") from e
    if not isinstance(data, dict):
        raise SnapshotError(f"Snapshot {path} is not a JSON object")
    return {str(k): str(v) for k, v in data.items()}


def save_snapshot(path: Path, hashes: dict[str, str]) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(hashes, f, indent=2, sort_keys=True)
    except OSError as e:
        raise SnapshotError(f"Failed to save snapshot: {e}") from e


__all__ = [
    "ChangeDetector",
    "ResourceDelta",
    "SketchChangeDetector",
    "compute_file_hash",
    "diff_snapshots",
    "get_snapshot_path",
    "load_snapshot",
    "save_snapshot",
    "snapshot_sketch",
]
