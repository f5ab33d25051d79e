"""oci-builder CLI.

Commands:
- oci <artifact>   build (and optionally load/push) one OCI image from ocib.yaml
- detect [path]    report the project ecosystem
- init [path]      write a starter ocib.yaml
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

import typer
from rich import print as rprint
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from oci_builder.core import DockerfilePatched, OciRequest, run_oci_pipeline
from oci_builder.detect.base import detect_project
from oci_builder.errors import OciBuilderError, UsageError
from oci_builder.logging import configure_logging
from oci_builder.scaffold import write_starter
from oci_builder.settings import get_settings

app = typer.Typer(add_completion=False, help="Build OCI images from ocib.yaml with Nix")
console = Console()


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


def _hint(text: str) -> None:
    rprint(f"[yellow]hint:[/yellow] {escape(text)}")


def _fail(err: OciBuilderError) -> typer.Exit:
    if isinstance(err, UsageError):
        _hint(err.hint or err.message)
    else:
        rprint(f"[bold red]error:[/bold red] {escape(err.message)}")
        if err.hint:
            rprint(f"[bold red]error:[/bold red] {escape(err.hint)}")
    return typer.Exit(code=1)


def _progress(message: str) -> None:
    style = "green" if message.startswith(("Image", "Build completed")) else "cyan"
    rprint(f"[{style}]{escape(message)}[/{style}]")


@app.callback()
def main(
    log_level: LogLevel | None = typer.Option(
        None,
        "--log-level",
        case_sensitive=False,
        help="Log verbosity on stderr (default from OCIB_LOG_LEVEL)",
    ),
) -> None:
    configure_logging(log_level.value if log_level else get_settings().log_level)


@app.command()
def oci(
    artifact: str | None = typer.Argument(None, help="Label of the oci block to build"),
    platform: str = typer.Option("", "--platform", "-p", help="The platform to build the image for"),
    output: str = typer.Option("", "--output", "-o", help="Location of the build artifacts"),
    tag: str = typer.Option("", "--tag", "-t", help="Tag to apply to the image (or Dockerfile)"),
    path: str = typer.Option("", "--path", help="Directory holding the Dockerfile for --df-swap"),
    dev: bool = typer.Option(False, "--dev", help="Build the image with development dependencies"),
    df_swap: bool = typer.Option(False, "--df-swap", help="Swap base image tags in the Dockerfile"),
    load_docker: bool = typer.Option(False, "--load-docker", help="Load the image into docker"),
    load_podman: bool = typer.Option(False, "--load-podman", help="Load the image into podman"),
    push: bool = typer.Option(False, "--push", help="Push the image to its registry"),
) -> None:
    """Build an OCI image for ARTIFACT."""
    if not artifact:
        _hint("run `oci-builder oci <artifact>` to build an OCI image")
        raise typer.Exit(code=1)

    settings = get_settings()
    request = OciRequest(
        artifact=artifact,
        platform=platform,
        output=output,
        tag=tag,
        dockerfile_dir=path,
        dev_deps=dev,
        df_swap=df_swap,
        load_docker=load_docker,
        load_podman=load_podman,
        push=push,
        root=Path.cwd(),
    )
    try:
        outcome = run_oci_pipeline(request, settings, notify=_progress)
    except OciBuilderError as e:
        raise _fail(e) from e

    if isinstance(outcome, DockerfilePatched):
        rprint(f"[green]dockerfile successfully updated with tag: {escape(outcome.tag)}[/green]")
        raise typer.Exit(code=1)


@app.command()
def detect(path: str = typer.Argument(".", help="Path to a project root")) -> None:
    report = detect_project(Path(path))
    rprint(report.model_dump_json(indent=2))


@app.command()
def init(
    path: str = typer.Argument(".", help="Path to project root"),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing ocib.yaml"),
) -> None:
    root = Path(path)
    root.mkdir(parents=True, exist_ok=True)
    report = detect_project(root)
    try:
        written = write_starter(root, get_settings().config_file, report, force=force)
    except OciBuilderError as e:
        raise _fail(e) from e

    table = Table(title="Scaffolded")
    table.add_column("File", style="cyan")
    table.add_column("Project type")
    table.add_row(str(written), report.project_type.value)
    console.print(table)


if __name__ == "__main__":
    app()
