"""Thin CLI wrapper for kmodbuild.

The tool is invoked without arguments; all configuration comes from the
environment (see kmodbuild.config). Business logic lives in
kmodbuild.pipeline.
"""

import logging
from typing import Annotated

import typer
from rich.console import Console

from kmodbuild import __version__
from kmodbuild.config import get_settings, print_settings_json
from kmodbuild.errors import BuildError, PipelineError
from kmodbuild.pipeline import run_pipeline
from kmodbuild.runner import SubprocessRunner

app = typer.Typer(
    name="kmodbuild",
    help="Build an out-of-tree network driver in a container and load it",
    add_completion=False,
)
console = Console()
err_console = Console(stderr=True)

logger = logging.getLogger(__name__)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"kmodbuild version {__version__}")
        raise typer.Exit()


def configure_logging(level: str) -> None:
    """Send progress messages to stderr as plain lines."""
    logging.basicConfig(level=level, format="%(message)s", force=True)


def report_error(error: PipelineError) -> None:
    """Print a terminal failure with its hint and captured output."""
    err_console.print(f"[red]Error: {error.message}[/red]", highlight=False)
    if error.hint:
        err_console.print(error.hint, highlight=False)
    if isinstance(error, BuildError):
        if error.output:
            err_console.print(error.output, markup=False, highlight=False)
        if error.log_path:
            err_console.print(f"Full log: {error.log_path}", highlight=False)


@app.command()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """Build the driver against the running kernel, load it and verify it.

    Configure via environment variables: BUILD_DIR, IMAGE_NAME, REPO_URL,
    DRIVER_REF, REBUILD_IMAGE, CLEANUP, CLEANUP_IMAGE. Must run as root.
    """
    try:
        settings = get_settings()
    except PipelineError as e:
        report_error(e)
        raise typer.Exit(code=1) from None

    configure_logging(settings.log_level)
    logger.debug("Effective settings: %s", print_settings_json(settings))

    try:
        report = run_pipeline(settings, SubprocessRunner())
    except PipelineError as e:
        report_error(e)
        raise typer.Exit(code=1) from None
    except KeyboardInterrupt:
        err_console.print("[yellow]Interrupted[/yellow]")
        raise typer.Exit(code=130) from None

    console.print(
        f"[green]✓ Module {report.module_name} loaded[/green]",
        highlight=False,
    )
    if report.bound_interfaces:
        console.print(f"  Bound interfaces: {', '.join(report.bound_interfaces)}")


__all__ = ["app", "main"]
