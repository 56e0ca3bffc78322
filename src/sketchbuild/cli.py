"""
sketchbuild command line interface.

Commands:
- build: Build a sketch folder (optionally only if it changed)
- clean: Remove build output of a sketch folder
"""

from __future__ import annotations

import json
import logging
import signal
import sys
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from . import __version__
from .builder import BuildKind, BuildResult, CancellationToken, SketchBuilder, clean_build_folder
from .core.changes import (
    diff_snapshots,
    get_snapshot_path,
    load_snapshot,
    save_snapshot,
    snapshot_sketch,
)
from .core.diagnostics import Diagnostic, Severity
from .core.errors import SketchBuildError
from .core.manifest import MANIFEST_FILENAME, SketchManifest, load_manifest
from .core.transpile import Transpiler, load_transpiler

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    help="sketchbuild - build multi-tab sketches and map errors back to their tabs",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    if value:
        typer.echo(f"sketchbuild {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool | None = typer.Option(
        None,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show version",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """sketchbuild main callback for global options."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _load(sketch: Path) -> SketchManifest:
    if not sketch.is_dir():
        typer.echo(f"Sketch folder not found: {sketch}", err=True)
        raise typer.Exit(code=1)
    try:
        return load_manifest(sketch / MANIFEST_FILENAME)
    except SketchBuildError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)


def _transpiler(manifest: SketchManifest, reference: str | None) -> Transpiler:
    reference = reference or manifest.preprocessor.transpiler
    if not reference:
        typer.echo(
            f"No transpiler configured. Set [preprocessor] transpiler in {MANIFEST_FILENAME} "
            "or pass --transpiler module:factory.",
            err=True,
        )
        raise typer.Exit(code=1)
    try:
        return load_transpiler(reference, manifest.preprocessor)
    except SketchBuildError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)


def _location(diagnostic: Diagnostic) -> tuple[str, str]:
    if diagnostic.fragment is None:
        return "(sketch)", ""
    line = str(diagnostic.relative_line + 1) if diagnostic.relative_line >= 0 else ""
    return diagnostic.fragment, line


def _print_human(result: BuildResult) -> None:
    if not result.phase.is_terminal:
        # Skipped automatic build or no-op incremental build
        console.print(f"[dim]Nothing to build for {result.sketch}[/dim]")
        return

    if result.diagnostics:
        table = Table(title=f"Problems in {result.sketch}")
        table.add_column("Tab")
        table.add_column("Line", justify="right")
        table.add_column("Severity")
        table.add_column("Message")
        for diagnostic in result.diagnostics:
            fragment, line = _location(diagnostic)
            severity = (
                "[red]error[/red]"
                if diagnostic.severity == Severity.ERROR
                else "[yellow]warning[/yellow]"
            )
            table.add_row(fragment, line, severity, diagnostic.message)
        console.print(table)

    if result.succeeded:
        console.print(f"[green]✓[/green] Built {result.sketch} in {result.duration_ms} ms")
        meta = result.state.metadata
        if meta.width > 0 and meta.height > 0:
            renderer = f" ({meta.renderer})" if meta.renderer else ""
            console.print(f"  size: {meta.width}x{meta.height}{renderer}")
        if result.output_file:
            console.print(f"  output: {result.output_file}")
    elif result.cancelled:
        console.print(f"[yellow]Build of {result.sketch} cancelled[/yellow]")
    elif result.failed:
        message = f": {result.error_message}" if result.error_message else ""
        console.print(f"[red]✗[/red] Build of {result.sketch} failed{message}")


@app.command("build")
def build_command(
    sketch: Annotated[Path, typer.Argument(help="Sketch folder")] = Path("."),
    auto: Annotated[
        bool, typer.Option("--auto", "-a", help="Only build if the sketch changed since last time")
    ] = False,
    transpiler: Annotated[
        str | None,
        typer.Option("--transpiler", "-t", help="Transpiler factory as module:factory"),
    ] = None,
    format: Annotated[
        str, typer.Option("--format", "-f", help="Output format: 'human' or 'json'")
    ] = "human",
) -> None:
    """Build a sketch: merge its tabs, transpile, resolve libraries, publish the classpath."""
    sketch = sketch.resolve()
    manifest = _load(sketch)
    token = CancellationToken()
    builder = SketchBuilder(sketch, _transpiler(manifest, transpiler), manifest=manifest)

    snapshot_path = get_snapshot_path(sketch, manifest.build)
    previous: dict[str, str] | None = None
    current: dict[str, str] | None = None
    try:
        if auto:
            previous = load_snapshot(snapshot_path)
            current = snapshot_sketch(sketch, manifest.build)
    except SketchBuildError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    delta = None
    if previous is not None and current is not None:
        delta = diff_snapshots(previous, current)

    # Ctrl-C asks the build to stop at the next stage boundary
    original_handler = signal.signal(signal.SIGINT, lambda signum, frame: token.cancel())
    try:
        result = builder.build(BuildKind.AUTO if auto else BuildKind.FULL, delta, token)
    except SketchBuildError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)
    finally:
        signal.signal(signal.SIGINT, original_handler)

    if auto and current is not None and not result.cancelled:
        try:
            save_snapshot(snapshot_path, current)
        except SketchBuildError as e:
            err_console.print(f"[yellow]Warning:[/yellow] {e}")

    if format == "json":
        typer.echo(json.dumps(result.to_dict(), indent=2))
    else:
        _print_human(result)

    if result.failed or result.cancelled:
        raise typer.Exit(code=1)


@app.command("clean")
def clean_command(
    sketch: Annotated[Path, typer.Argument(help="Sketch folder")] = Path("."),
) -> None:
    """Remove build output of a sketch."""
    sketch = sketch.resolve()
    manifest = _load(sketch)
    build_folder = sketch / manifest.build.build_folder
    try:
        clean_build_folder(build_folder)
    except SketchBuildError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"✓ Cleaned {build_folder}")


def main(argv: list[str] | None = None) -> None:
    app(args=argv if argv is not None else sys.argv[1:], standalone_mode=True)


if __name__ == "__main__":
    main()
