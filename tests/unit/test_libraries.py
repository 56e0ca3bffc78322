"""Tests for library lookup and code-folder archives."""

from pathlib import Path

import pytest

from sketchbuild.core.libraries import (
    SketchbookLibraries,
    StaticLibraryResolver,
    archives_in_folder,
    import_package,
    package_list,
    packages_in_archive,
)


class TestImportPackage:
    @pytest.mark.parametrize(
        "name, package",
        [
            ("processing.video.*", "processing.video"),
            ("processing.video.Movie", "processing.video"),
            ("controlP5.*", "controlP5"),
            ("standalone", "standalone"),
        ],
    )
    def test_import_package(self, name, package):
        assert import_package(name) == package


class TestArchives:
    """Tests for reading packages out of jars."""

    def test_packages_in_archive(self, tmp_path: Path, jar_writer):
        jar = jar_writer(
            tmp_path / "util.jar",
            [
                "com/acme/util/Strings.class",
                "com/acme/util/Lists.class",
                "com/acme/io/Files.class",
                "com/acme/util/readme.txt",
                "Toplevel.class",
            ],
        )

        assert packages_in_archive(jar) == ["com.acme.io", "com.acme.util"]

    def test_bad_archive_yields_nothing(self, tmp_path: Path, caplog):
        bogus = tmp_path / "broken.jar"
        bogus.write_text("not a zip")

        with caplog.at_level("WARNING", logger="sketchbuild.core.libraries"):
            assert packages_in_archive(bogus) == []

        assert "Could not read archive" in caplog.text

    def test_archives_in_folder_recurses(self, tmp_path: Path, jar_writer):
        code = tmp_path / "code"
        first = jar_writer(code / "a.jar", ["a/A.class"])
        second = jar_writer(code / "nested" / "b.zip", ["b/B.class"])
        (code / "notes.txt").write_text("ignored")

        archives = archives_in_folder(code)

        assert archives == sorted([first.resolve(), second.resolve()])
        assert package_list(archives) == ["a", "b"]

    def test_missing_folder(self, tmp_path: Path):
        assert archives_in_folder(tmp_path / "code") == []


class TestSketchbookLibraries:
    """Tests for resolving imports against a sketchbook libraries folder."""

    @pytest.fixture
    def libraries_dir(self, tmp_path: Path, jar_writer) -> Path:
        root = tmp_path / "libraries"
        jar_writer(root / "video" / "library" / "video.jar", ["processing/video/Movie.class"])
        jar_writer(root / "video" / "library" / "gst.jar", ["org/gstreamer/Gst.class"])
        jar_writer(root / "net" / "library" / "net.jar", ["processing/net/Client.class"])
        (root / "examples-only").mkdir()
        return root

    def test_resolve_by_package(self, libraries_dir):
        libraries = SketchbookLibraries(libraries_dir)

        assert libraries.resolve("processing.video") == libraries_dir / "video/library/video.jar"
        assert libraries.resolve("org.gstreamer") == libraries_dir / "video/library/gst.jar"
        assert libraries.resolve("processing.net") == libraries_dir / "net/library/net.jar"

    def test_resolve_by_library_name_prefers_main_jar(self, libraries_dir):
        libraries = SketchbookLibraries(libraries_dir)

        assert libraries.resolve("video") == libraries_dir / "video/library/video.jar"

    def test_unknown_and_folder_without_jars(self, libraries_dir):
        libraries = SketchbookLibraries(libraries_dir)

        assert libraries.resolve("examples-only") is None
        assert libraries.resolve("com.nowhere") is None

    def test_refresh_picks_up_new_library(self, libraries_dir, jar_writer):
        libraries = SketchbookLibraries(libraries_dir)
        assert libraries.resolve("peasy") is None

        jar_writer(libraries_dir / "peasy" / "library" / "peasy.jar", ["peasy/Cam.class"])
        assert libraries.resolve("peasy") is None

        libraries.refresh()
        assert libraries.resolve("peasy") == libraries_dir / "peasy/library/peasy.jar"

    def test_no_sketchbook(self, tmp_path: Path):
        assert SketchbookLibraries(None).resolve("processing.video") is None
        assert SketchbookLibraries(tmp_path / "missing").resolve("video") is None


def test_static_resolver():
    resolver = StaticLibraryResolver({"processing.video": "/jars/video.jar"})

    assert resolver.resolve("processing.video") == Path("/jars/video.jar")
    assert resolver.resolve("processing.net") is None
