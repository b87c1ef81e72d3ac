"""CLI entrypoint.

Pipeline verbs:
- locobuild build
- locobuild install [--no-build]
- locobuild clean
- locobuild all [--preflight]   (also the default when no command is given)
- locobuild preflight

Utilities:
- locobuild doctor
- locobuild init
- locobuild status

CONTRACT
- Inputs: Command line arguments (parsed by Typer)
- Outputs (required):
  - Exit code 0 on success, the failing error's exit code otherwise
    (1 for pipeline failures, 2 for a failed doctor report)
  - Console progress for each task, diagnostics on failure
- Invariants:
  - Configuration errors are reported before any task runs
  - Task ordering and halting are delegated to the pipeline
- Failure:
  - Pipeline failures print the message, the diagnostic tail and the log dir
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import typer
from loguru import logger
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .artifacts.schemas import validate_run_status
from .artifacts.store import STATUS_FILE, ArtifactStore
from .config import BuildConfig, load_config
from .doctor import doctor_report
from .errors import EXIT_DOCTOR_FAILED, EXIT_FAILURE, ConfigError
from .pipeline import PipelineResult, run_target

app = typer.Typer(
    add_completion=False,
    help="Build the loco binary in release mode and install it system-wide.",
)

console = Console()

_PROJECT_OPTION = typer.Option(
    Path("."),
    "--project",
    help="Project root containing Cargo.toml (default: current dir).",
)
_CONFIG_OPTION = typer.Option(
    None,
    "--config",
    help="Path to locobuild.yaml (default: <project>/locobuild.yaml if present).",
)
_INSTALL_DIR_OPTION = typer.Option(
    None,
    "--install-dir",
    help="Install destination directory (default: /usr/local/bin).",
)
_PREFLIGHT_OPTION = typer.Option(
    None,
    "--preflight/--no-preflight",
    help="Install the toolchain with the package manager if it is missing.",
)


def _configure_logging(verbose: bool) -> None:
    logger.remove()
    logger.add(
        lambda msg: sys.stderr.write(msg),
        level="DEBUG" if verbose else "WARNING",
        format="<level>{level: <8}</level> | {name}:{line} - {message}",
    )


def _version_callback(value: bool):
    if value:
        console.print(f"locobuild version: {__version__}")
        raise typer.Exit()


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging."),
):
    _configure_logging(verbose)
    if ctx.invoked_subcommand is None:
        _run(_load(Path("."), None), "all")


def _load(project: Path, config_file: Path | None, **overrides) -> BuildConfig:
    try:
        return load_config(project, config_file, **overrides)
    except ConfigError as e:
        console.print(f"[red]❌ {escape(e.message)}[/red]")
        if e.details:
            console.print(escape(e.details), style="dim")
        raise typer.Exit(code=e.exit_code)


def _reporter(cfg: BuildConfig):
    started = {
        "preflight": f"🔍 Checking if {cfg.toolchain} is installed...",
        "build": f"🚀 Compiling {cfg.binary_name}...",
        "install": f"🔧 Installing {cfg.binary_name} to the system...",
        "clean": "🧹 Cleaning up build artifacts...",
    }

    def report(task: str, phase: str, detail: str) -> None:
        if phase == "start":
            console.print(started.get(task, f"▶ {task}..."))
        elif phase == "ok":
            if task == "install":
                console.print(
                    f"[green]✅ {cfg.binary_name} is now available globally! "
                    f"You can run it from anywhere.[/green]"
                )
            elif task == "clean":
                console.print("[green]🎉 Cleaned up successfully![/green]")
            else:
                console.print(f"[green]✅ {escape(detail)}[/green]")
        else:
            console.print(f"[red]❌ {escape(detail)}[/red]")

    return report


def _run(cfg: BuildConfig, target: str, *, build_first: bool = True) -> PipelineResult:
    result = run_target(cfg, target, build_first=build_first, reporter=_reporter(cfg))
    if not result.ok:
        if result.error is not None and result.error.details:
            console.print(escape(result.error.details), style="dim")
        console.print(f"Logs: {result.run_dir / 'logs'}")
        raise typer.Exit(code=result.exit_code or EXIT_FAILURE)
    return result


@app.command()
def build(
    project: Path = _PROJECT_OPTION,
    config: Path | None = _CONFIG_OPTION,
) -> None:
    """Compile the release binary."""
    _run(_load(project, config), "build")


@app.command()
def install(
    project: Path = _PROJECT_OPTION,
    config: Path | None = _CONFIG_OPTION,
    install_dir: Path | None = _INSTALL_DIR_OPTION,
    no_build: bool = typer.Option(
        False, "--no-build", help="Skip the build and install the existing artifact."
    ),
) -> None:
    """Build, then copy the binary into the install directory."""
    _run(_load(project, config, install_dir=install_dir), "install", build_first=not no_build)


@app.command()
def clean(
    project: Path = _PROJECT_OPTION,
    config: Path | None = _CONFIG_OPTION,
) -> None:
    """Remove intermediate build artifacts."""
    _run(_load(project, config), "clean")


@app.command("all")
def all_(
    project: Path = _PROJECT_OPTION,
    config: Path | None = _CONFIG_OPTION,
    install_dir: Path | None = _INSTALL_DIR_OPTION,
    preflight: bool | None = _PREFLIGHT_OPTION,
) -> None:
    """Preflight (if enabled), build, then install."""
    _run(_load(project, config, install_dir=install_dir, preflight=preflight), "all")


@app.command()
def preflight(
    project: Path = _PROJECT_OPTION,
    config: Path | None = _CONFIG_OPTION,
) -> None:
    """Make sure the toolchain is installed, installing it if missing."""
    _run(_load(project, config), "preflight")


@app.command()
def doctor(
    project: Path = _PROJECT_OPTION,
    config: Path | None = _CONFIG_OPTION,
    install_dir: Path | None = _INSTALL_DIR_OPTION,
) -> None:
    """Read-only environment checks."""
    report = doctor_report(_load(project, config, install_dir=install_dir))
    table = Table(title="locobuild doctor")
    table.add_column("Check")
    table.add_column("Status")
    table.add_column("Details")
    for item in report.items:
        table.add_row(item.name, item.status, escape(item.details))
    console.print(table)
    if report.ok:
        console.print("[green]OK[/green]")
    else:
        raise typer.Exit(code=EXIT_DOCTOR_FAILED)


@app.command()
def init(
    project: Path = _PROJECT_OPTION,
    force: bool = typer.Option(False, "--force", help="Overwrite an existing locobuild.yaml."),
) -> None:
    """Write a locobuild.yaml template into the project."""
    from .init import write_templates

    if write_templates(project, force=force):
        console.print(f"[green]Wrote[/green] {project / 'locobuild.yaml'}")
    else:
        console.print("[yellow]locobuild.yaml already exists (use --force to overwrite)[/yellow]")


@app.command()
def status(
    project: Path = _PROJECT_OPTION,
    config: Path | None = _CONFIG_OPTION,
) -> None:
    """Show the record of the last pipeline run."""
    store = ArtifactStore(_load(project, config).run_dir())
    status_path = store.path(STATUS_FILE)
    if not status_path.exists():
        console.print(f"[yellow]No run recorded yet ({status_path})[/yellow]")
        raise typer.Exit(code=EXIT_FAILURE)

    try:
        data = store.read_json(STATUS_FILE)
    except json.JSONDecodeError as e:
        valid, run_status, err = False, None, str(e)
    else:
        valid, run_status, err = validate_run_status(data)
    if not valid:
        console.print(f"[red]Corrupt {STATUS_FILE}: {escape(err)}[/red]")
        raise typer.Exit(code=EXIT_FAILURE)

    table = Table(title=f"locobuild {run_status.target}: {run_status.status}")
    table.add_column("Task")
    table.add_column("Status")
    table.add_column("Elapsed")
    for t in run_status.tasks:
        table.add_row(t.name, t.status, f"{t.elapsed_s:.1f}s")
    console.print(table)
    failed = run_status.failed_task()
    if failed is not None and failed.details:
        console.print(escape(failed.details), style="dim")
    elif run_status.message:
        console.print(escape(run_status.message))


if __name__ == "__main__":
    app()
