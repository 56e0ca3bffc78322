import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from .errors import ManifestError

MANIFEST_FILENAME = "sketch.toml"

DEFAULT_IMPORTS = [
    "java.applet.*",
    "java.awt.Dimension",
    "java.awt.Frame",
    "java.awt.event.MouseEvent",
    "java.awt.event.KeyEvent",
    "java.awt.event.FocusEvent",
    "java.awt.Image",
    "java.io.*",
    "java.net.*",
    "java.text.*",
    "java.util.*",
    "java.util.zip.*",
    "java.util.regex.*",
]


# =============================================================================
# Preprocessor Configuration
# =============================================================================


@dataclass
class PreprocessorConfig:
    """Settings handed to the transpiler factory.

    Examples in sketch.toml:

        [preprocessor]
        transpiler = "my_preproc.factory:create"
        tab_size = 2
        web_colors = false
    """

    transpiler: str | None = None  # "module:factory"
    tab_size: int = 4
    substitute_floats: bool = True
    web_colors: bool = True
    color_datatype: bool = True
    enhanced_casting: bool = True
    substitute_unicode: bool = True
    imports: list[str] = field(default_factory=lambda: list(DEFAULT_IMPORTS))

    def preferences(self) -> dict[str, str]:
        """Flags in the key/value form the preprocessor preferences use."""

        def flag(value: bool) -> str:
            return "true" if value else "false"

        return {
            "editor.tabs.size": str(self.tab_size),
            "preproc.substitute_floats": flag(self.substitute_floats),
            "preproc.web_colors": flag(self.web_colors),
            "preproc.color_datatype": flag(self.color_datatype),
            "preproc.enhanced_casting": flag(self.enhanced_casting),
            "preproc.substitute.unicode": flag(self.substitute_unicode),
            "preproc.output_parse.tree": "false",
            "preproc.imports.list": ",".join(self.imports),
        }


# =============================================================================
# Build Layout
# =============================================================================


@dataclass
class BuildConfig:
    """Folder layout of a sketch, relative to the sketch folder."""

    build_folder: str = "bin"
    code_folder: str = "code"
    data_folder: str = "data"
    state_folder: str = ".sketchbuild"
    extension: str = ".pde"


@dataclass
class SketchbookConfig:
    """Where contributed libraries live.

    ``SKETCHBOOK_PATH`` in the environment wins over the manifest value.
    """

    path: str | None = None
    libraries_folder: str = "libraries"

    @property
    def libraries_dir(self) -> Path | None:
        root = os.environ.get("SKETCHBOOK_PATH") or self.path
        if not root:
            return None
        return Path(root).expanduser() / self.libraries_folder


@dataclass
class SketchManifest:
    """
    Sketch manifest loaded from sketch.toml.

    Every section is optional; a sketch without a manifest builds with the
    defaults.
    """

    name: str | None = None  # defaults to the sketch folder name
    preprocessor: PreprocessorConfig = field(default_factory=PreprocessorConfig)
    build: BuildConfig = field(default_factory=BuildConfig)
    sketchbook: SketchbookConfig = field(default_factory=SketchbookConfig)


def load_manifest(path: Path) -> SketchManifest:
    if not path.exists():
        return SketchManifest()

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ManifestError(f"Failed to read {path}: {e}") from e

    sketch = data.get("sketch", {})
    preproc_data = data.get("preprocessor", {})
    build_data = data.get("build", {})
    sketchbook_data = data.get("sketchbook", {})

    preprocessor = PreprocessorConfig(
        transpiler=preproc_data.get("transpiler"),
        tab_size=preproc_data.get("tab_size", 4),
        substitute_floats=preproc_data.get("substitute_floats", True),
        web_colors=preproc_data.get("web_colors", True),
        color_datatype=preproc_data.get("color_datatype", True),
        enhanced_casting=preproc_data.get("enhanced_casting", True),
        substitute_unicode=preproc_data.get("substitute_unicode", True),
        imports=preproc_data.get("imports", list(DEFAULT_IMPORTS)),
    )
    if not isinstance(preprocessor.tab_size, int) or preprocessor.tab_size <= 0:
        raise ManifestError(f"preprocessor.tab_size must be a positive integer in {path}")

    build = BuildConfig(
        build_folder=build_data.get("folder", "bin"),
        code_folder=build_data.get("code_folder", "code"),
        data_folder=build_data.get("data_folder", "data"),
        state_folder=build_data.get("state_folder", ".sketchbuild"),
        extension=build_data.get("extension", ".pde"),
    )

    sketchbook = SketchbookConfig(
        path=sketchbook_data.get("path"),
        libraries_folder=sketchbook_data.get("libraries_folder", "libraries"),
    )

    return SketchManifest(
        name=sketch.get("name"),
        preprocessor=preprocessor,
        build=build,
        sketchbook=sketchbook,
    )
