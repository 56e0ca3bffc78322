"""
Library lookup and code-folder classpath helpers.

Sketch imports are resolved against the contributed libraries in the
sketchbook. Each library is a folder shaped like::

    libraries/
      video/
        library/
          video.jar
          gstreamer-java.jar

A library is found either by its folder name or by any Java package one of
its jars contains.
"""

from __future__ import annotations

import logging
import zipfile
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)

ARCHIVE_SUFFIXES = (".jar", ".zip")


@runtime_checkable
class LibraryResolver(Protocol):
    def resolve(self, name: str) -> Path | None:
        """Return the jar for a package or library name, or None if unknown."""
        ...


class StaticLibraryResolver:
    """Resolver over a fixed name → jar mapping."""

    def __init__(self, entries: Mapping[str, Path | str] | None = None):
        self._entries = {name: Path(path) for name, path in (entries or {}).items()}

    def resolve(self, name: str) -> Path | None:
        return self._entries.get(name)


class SketchbookLibraries:
    """
    Resolver over a sketchbook ``libraries`` folder.

    The folder is scanned lazily on first lookup; call ``refresh()`` after
    installing a library.
    """

    def __init__(self, libraries_dir: Path | None):
        self.libraries_dir = libraries_dir
        self._by_name: dict[str, Path] | None = None

    def refresh(self) -> None:
        self._by_name = None

    def resolve(self, name: str) -> Path | None:
        if self._by_name is None:
            self._by_name = self._scan()
        return self._by_name.get(name)

    def _scan(self) -> dict[str, Path]:
        found: dict[str, Path] = {}
        if self.libraries_dir is None or not self.libraries_dir.is_dir():
            logger.debug("No sketchbook libraries folder at %s", self.libraries_dir)
            return found

        for library in sorted(self.libraries_dir.iterdir()):
            jars = _library_jars(library)
            if not jars:
                continue
            # The jar named after the library is its main jar
            main = next((j for j in jars if j.stem == library.name), jars[0])
            found.setdefault(library.name, main)
            for jar in jars:
                for package in packages_in_archive(jar):
                    found.setdefault(package, jar)

        logger.debug("Indexed %d library entries under %s", len(found), self.libraries_dir)
        return found


def _library_jars(library: Path) -> list[Path]:
    folder = library / "library"
    if not folder.is_dir():
        return []
    return sorted(p for p in folder.iterdir() if p.suffix.lower() == ".jar")


def archives_in_folder(folder: Path) -> list[Path]:
    """All jar and zip files under a folder, recursively, sorted."""
    if not folder.is_dir():
        return []
    return sorted(
        p.resolve()
        for p in folder.rglob("*")
        if p.is_file() and p.suffix.lower() in ARCHIVE_SUFFIXES
    )


def packages_in_archive(archive: Path) -> list[str]:
    """
    List the Java packages that contain classes in a jar or zip.

    Unreadable archives yield no packages and are logged.
    """
    packages: set[str] = set()
    try:
        with zipfile.ZipFile(archive) as zf:
            for entry in zf.namelist():
                if not entry.endswith(".class") or entry.startswith("META-INF/"):
                    continue
                folder, _, _ = entry.rpartition("/")
                if folder:
                    packages.add(folder.replace("/", "."))
    except (OSError, zipfile.BadZipFile):
        logger.warning("Could not read archive %s", archive, exc_info=True)
    return sorted(packages)


def package_list(archives: Iterable[Path]) -> list[str]:
    packages: set[str] = set()
    for archive in archives:
        packages.update(packages_in_archive(archive))
    return sorted(packages)


def import_package(import_name: str) -> str:
    """
    Reduce an import to the package it pulls from.

    ``processing.video.*`` and ``processing.video.Movie`` both give
    ``processing.video``; a bare name is returned unchanged.
    """
    head, dot, _ = import_name.rpartition(".")
    return head if dot else import_name


__all__ = [
    "LibraryResolver",
    "SketchbookLibraries",
    "StaticLibraryResolver",
    "archives_in_folder",
    "import_package",
    "package_list",
    "packages_in_archive",
]
