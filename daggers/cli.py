"""Thin CLI wrapper for daggers.

This module provides the command-line interface using Typer.
All business logic is delegated to core modules.
"""

import logging
from pathlib import Path
from typing import Annotated, NoReturn

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler

from daggers import __version__
from daggers.config import Settings, get_settings, print_settings_json
from daggers.engine.client import DockerClient
from daggers.errors import DaggersError
from daggers.runtime import Runtime
from daggers.types import SvuCommand, TagMode

app = typer.Typer(
    name="daggers",
    help="Daggers - containerized CI pipeline steps with content-addressed caches",
    no_args_is_help=True,
)
console = Console()
err_console = Console(stderr=True)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"daggers version {__version__}")
        raise typer.Exit()


def configure_logging(level: str) -> None:
    """Send log records to stderr through rich."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _load_settings() -> Settings:
    try:
        return get_settings()
    except ValidationError as e:
        err_console.print("[red]Invalid configuration:[/red]")
        err_console.print(str(e), markup=False, highlight=False)
        raise typer.Exit(code=1) from None


@app.callback()
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
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
) -> None:
    """Daggers - containerized CI pipeline steps with content-addressed caches."""
    settings = _load_settings()
    configure_logging("DEBUG" if verbose else settings.log_level)


def _make_runtime(settings: Settings, workdir: Path, dry_run: bool) -> Runtime:
    client = DockerClient(binary=settings.docker_binary, dry_run=dry_run)
    return Runtime.create(
        client,
        workdir=workdir,
        mount_path=settings.mount_path,
        secret_env_vars=settings.secret_env_vars,
    )


def _fail(e: DaggersError) -> NoReturn:
    err_console.print(f"[red]Error ({e.code}): {e}[/red]")
    raise typer.Exit(code=1) from e


@app.command()
def config(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Show effective configuration."""
    settings = _load_settings()
    if json_output:
        console.print(print_settings_json(settings))
    else:
        console.print("[bold]Effective Configuration:[/bold]")
        console.print()
        console.print("[bold]Engine:[/bold]")
        console.print(f"  Docker binary:       {settings.docker_binary}")
        console.print(f"  Exec timeout:        {settings.exec_timeout}")
        console.print(f"  Workdir mount path:  {settings.mount_path}")
        console.print()
        console.print("[bold]Operational:[/bold]")
        console.print(f"  Log level:           {settings.log_level}")
        secrets_display = ", ".join(settings.secret_env_vars) or "(none)"
        console.print(f"  Secret env vars:     {secrets_display}")


@app.command("cache-key")
def cache_key(
    prefix: Annotated[str, typer.Argument(help="Cache key prefix, e.g. go-build-")],
    files: Annotated[
        list[str], typer.Argument(help="Tracked files relative to the workdir")
    ],
    workdir: Annotated[
        Path,
        typer.Option("--workdir", "-w", help="Working directory"),
    ] = Path("."),
    strict: Annotated[
        bool,
        typer.Option("--strict", help="Require every tracked file to exist"),
    ] = False,
) -> None:
    """Print the cache key derived from the contents of FILES."""
    from daggers.cache.volumes import compute_cache_key

    try:
        key = compute_cache_key(prefix, workdir.resolve(), *files, strict=strict)
    except ValueError as e:
        err_console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1) from None
    except DaggersError as e:
        _fail(e)
    console.print(key, soft_wrap=True)


@app.command()
def precommit(
    workdir: Annotated[
        Path,
        typer.Option("--workdir", "-w", help="Repository to check"),
    ] = Path("."),
    image: Annotated[
        str | None,
        typer.Option("--base-image", help="Image pre-commit runs in"),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", "-n", help="Show the container command only"),
    ] = False,
) -> None:
    """Run pre-commit checks in a container."""
    from daggers.catalog import precommit as precommit_step

    settings = _load_settings()
    opts = []
    if image:
        opts.append(precommit_step.base_image(image))

    runtime = _make_runtime(settings, workdir, dry_run)
    try:
        output = precommit_step.run(runtime, *opts, timeout=settings.exec_timeout)
    except KeyboardInterrupt:
        runtime.cancel()
        err_console.print("[yellow]Cancelled[/yellow]")
        raise typer.Exit(code=130) from None
    except DaggersError as e:
        _fail(e)
    console.print(output, end="", markup=False, highlight=False, soft_wrap=True)


@app.command()
def svu(
    workdir: Annotated[
        Path,
        typer.Option("--workdir", "-w", help="Git repository to read tags from"),
    ] = Path("."),
    command: Annotated[
        SvuCommand | None,
        typer.Option("--command", "-c", help="svu sub-command"),
    ] = None,
    version: Annotated[
        str | None,
        typer.Option("--svu-version", help="svu image tag"),
    ] = None,
    metadata: Annotated[
        bool | None,
        typer.Option("--metadata/--no-metadata", help="Include metadata"),
    ] = None,
    prerelease: Annotated[
        bool | None,
        typer.Option("--pre-release/--no-pre-release", help="Include pre-release"),
    ] = None,
    build: Annotated[
        bool | None,
        typer.Option("--build/--no-build", help="Include build metadata"),
    ] = None,
    pattern: Annotated[
        str | None, typer.Option("--pattern", help="Tag pattern")
    ] = None,
    prefix: Annotated[str | None, typer.Option("--prefix", help="Tag prefix")] = None,
    suffix: Annotated[
        str | None, typer.Option("--suffix", help="Version suffix")
    ] = None,
    tag_mode: Annotated[
        TagMode | None,
        typer.Option("--tag-mode", help="Tag discovery mode"),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", "-n", help="Show the container command only"),
    ] = False,
) -> None:
    """Compute a semantic version from git tags with svu."""
    from daggers.catalog import svu as svu_step

    settings = _load_settings()
    opts = []
    if command is not None:
        opts.append(svu_step.with_command(command))
    if version is not None:
        opts.append(svu_step.svu_version(version))
    if metadata is not None:
        opts.append(svu_step.with_metadata(metadata))
    if prerelease is not None:
        opts.append(svu_step.with_prerelease(prerelease))
    if build is not None:
        opts.append(svu_step.with_build(build))
    if pattern is not None:
        opts.append(svu_step.with_pattern(pattern))
    if prefix is not None:
        opts.append(svu_step.with_prefix(prefix))
    if suffix is not None:
        opts.append(svu_step.with_suffix(suffix))
    if tag_mode is not None:
        opts.append(svu_step.with_tag_mode(tag_mode))

    runtime = _make_runtime(settings, workdir, dry_run)
    try:
        output = svu_step.run(runtime, *opts, timeout=settings.exec_timeout)
    except KeyboardInterrupt:
        runtime.cancel()
        err_console.print("[yellow]Cancelled[/yellow]")
        raise typer.Exit(code=130) from None
    except DaggersError as e:
        _fail(e)
    console.print(output, markup=False, highlight=False, soft_wrap=True)


__all__ = ["app"]
