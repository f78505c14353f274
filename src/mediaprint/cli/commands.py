"""CLI commands for mediaprint.

Commands:
- classify: print the classifier verdict for paths.
- scan: identify the media files under a directory.
- serve: run the fingerprint HTTP service.
- stats: print fingerprint store statistics.
- config: read and write persistent settings.
- version: print the installed version.

Design:
- Option values fall back to resolve_setting (env vars, config.toml) so the
  same defaults apply to the CLI and to scripted use.
- All user-facing output goes through a Rich Console; JSON output is written
  to stdout verbatim.
"""

import asyncio
import json
import shlex
import sys
from enum import Enum
from pathlib import Path
from typing import Annotated, List, Optional

import typer
import uvicorn
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.traceback import install as install_traceback

from mediaprint.cli.renderer import render_results, render_stats
from mediaprint.core.classifier import classify_file
from mediaprint.core.orchestrator import ScanOrchestrator
from mediaprint.core.title_resolver import TitleResolver
from mediaprint.errors import MediaprintError
from mediaprint.fingerprint.base import FingerprintBackend
from mediaprint.fingerprint.client import FingerprintClient
from mediaprint.fingerprint.local import LocalFingerprintBackend
from mediaprint.fingerprint.server import create_app
from mediaprint.fingerprint.store import FingerprintStore
from mediaprint.fs.enumerator import (
    CommandDirectoryEnumerator,
    DirectoryEnumerator,
    LocalDirectoryEnumerator,
)
from mediaprint.fs.hashing import Hasher, candidate_content_hash, identity_hash
from mediaprint.metadata.clients.tmdb import TMDBClient
from mediaprint.metadata.settings import MissingAPIKeyError
from mediaprint.models.scan import ScanOptions, ScanPhase, ScanProgress, ScanReport
from mediaprint.utils.config import default_db_path, read_settings, resolve_setting, write_setting
from mediaprint.utils.debug import setup_logger

install_traceback(show_locals=True)

app = typer.Typer(
    name="mediaprint",
    help="Identify media files through shared fingerprints and online lookups.",
)
config_app = typer.Typer(help="Read and write persistent settings.")
app.add_typer(config_app, name="config")
console = Console()
err_console = Console(stderr=True)


class ExitCode(int, Enum):
    """Exit codes for CLI commands."""

    SUCCESS = 0
    ERROR = 1


DB_PATH = Annotated[
    Optional[Path],
    typer.Option("--db", help="Local fingerprint database file"),
]

JSON_OUTPUT = Annotated[
    bool,
    typer.Option("--json", help="Output results in JSON format"),
]


def _db_path(db: Optional[Path]) -> str:
    return resolve_setting(
        "fingerprint.db_path",
        default=default_db_path(),
        cli_value=str(db) if db is not None else None,
    )


@app.callback()
def callback(
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable debug logging (same as MEDIAPRINT_DEBUG=1).",
    ),
) -> None:
    """Configure logging for every command."""
    setup_logger(verbose=verbose)


@app.command()
def classify(
    paths: Annotated[List[str], typer.Argument(help="File paths to classify")],
    json_output: JSON_OUTPUT = False,
) -> None:
    """Print the media kind guessed for each path."""
    verdicts = [(path, classify_file(path)) for path in paths]
    if json_output:
        payload = [{"path": path, "kind": kind.value} for path, kind in verdicts]
        sys.stdout.write(json.dumps(payload, indent=2) + "\n")
        return
    for path, kind in verdicts:
        typer.echo(f"{kind.value}\t{path}")


def _build_backend(
    db: Optional[Path], fingerprint_url: Optional[str], submitter_tag: Optional[str]
) -> FingerprintBackend:
    url = resolve_setting("fingerprint.url", default="", cli_value=fingerprint_url)
    if url:
        return FingerprintClient(url, submitter_tag)
    store = FingerprintStore(_db_path(db))
    return LocalFingerprintBackend(store, submitter_tag, owns_store=True)


def _build_resolver() -> Optional[TitleResolver]:
    try:
        return TitleResolver(TMDBClient())
    except MissingAPIKeyError as exc:
        err_console.print(
            f"[yellow]Online title resolution disabled: {exc.key} is not set.[/yellow]"
        )
        return None


async def _run_scan(
    orchestrator: ScanOrchestrator, backend: FingerprintBackend, root: str
) -> ScanReport:
    try:
        return await orchestrator.scan(root)
    finally:
        await backend.aclose()


@app.command()
def scan(  # noqa: PLR0913
    root: Annotated[str, typer.Argument(help="Root directory to scan")],
    db: DB_PATH = None,
    fingerprint_url: Annotated[
        Optional[str],
        typer.Option("--fingerprint-url", help="Remote fingerprint service URL"),
    ] = None,
    workers: Annotated[
        Optional[int],
        typer.Option("--workers", "-w", min=1, help="Concurrent lookups and resolutions"),
    ] = None,
    list_command: Annotated[
        Optional[str],
        typer.Option(
            "--list-command",
            help="External listing tool printing JSON directory entries "
            "(e.g. an SMB helper); the directory path is appended",
        ),
    ] = None,
    no_submit: Annotated[
        bool,
        typer.Option("--no-submit", help="Do not share resolutions with the fingerprint store"),
    ] = False,
    include_hidden: Annotated[
        bool, typer.Option("--include-hidden", help="Scan hidden files and folders")
    ] = False,
    json_output: JSON_OUTPUT = False,
) -> None:
    """Scan a directory and identify its media files."""
    enumerator: DirectoryEnumerator
    hasher: Hasher
    if list_command:
        enumerator = CommandDirectoryEnumerator(shlex.split(list_command))
        hasher = identity_hash
    else:
        if not Path(root).is_dir():
            err_console.print(f"[red]Error: Directory does not exist: {root}[/red]")
            raise typer.Exit(ExitCode.ERROR)
        enumerator = LocalDirectoryEnumerator()
        hasher = candidate_content_hash

    options = ScanOptions(
        max_workers=resolve_setting("scan.workers", default=3, cli_value=workers),
        min_submit_confidence=resolve_setting("scan.min_submit_confidence", default=0.7),
        submit_results=not no_submit,
        include_hidden=include_hidden,
    )
    submitter_tag = resolve_setting("client.submitter_tag", default="") or None

    try:
        backend = _build_backend(db, fingerprint_url, submitter_tag)
    except MediaprintError as exc:
        err_console.print(f"[red]Error: {exc}[/red]")
        raise typer.Exit(ExitCode.ERROR)
    resolver = _build_resolver()

    if json_output:
        orchestrator = ScanOrchestrator(
            enumerator, backend, resolver, hasher=hasher, options=options
        )
        report = asyncio.run(_run_scan(orchestrator, backend, root))
        sys.stdout.write(json.dumps(report.model_dump(mode="json"), indent=2) + "\n")
    else:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TimeElapsedColumn(),
            console=console,
        ) as progress:
            task = progress.add_task("Connecting...", total=1.0)

            def on_progress(snapshot: ScanProgress, overall: float) -> None:
                progress.update(
                    task,
                    completed=overall,
                    description=snapshot.phase.value.capitalize(),
                )

            orchestrator = ScanOrchestrator(
                enumerator,
                backend,
                resolver,
                hasher=hasher,
                options=options,
                on_progress=on_progress,
            )
            report = asyncio.run(_run_scan(orchestrator, backend, root))
        render_results(report, console=console)

    if report.progress.phase == ScanPhase.ERROR:
        raise typer.Exit(ExitCode.ERROR)


@app.command()
def serve(
    db: DB_PATH = None,
    host: Annotated[Optional[str], typer.Option("--host", help="Bind address")] = None,
    port: Annotated[Optional[int], typer.Option("--port", help="Bind port")] = None,
) -> None:
    """Run the fingerprint HTTP service."""
    bind_host = resolve_setting("server.host", default="127.0.0.1", cli_value=host)
    bind_port = resolve_setting("server.port", default=8787, cli_value=port)
    try:
        store = FingerprintStore(_db_path(db))
    except MediaprintError as exc:
        err_console.print(f"[red]Error: {exc}[/red]")
        raise typer.Exit(ExitCode.ERROR)

    console.print(f"Fingerprint service listening on http://{bind_host}:{bind_port}")
    server = uvicorn.Server(
        uvicorn.Config(create_app(store), host=bind_host, port=bind_port, log_level="info")
    )
    try:
        server.run()
    finally:
        store.close()


@app.command()
def stats(db: DB_PATH = None, json_output: JSON_OUTPUT = False) -> None:
    """Print fingerprint store statistics."""
    try:
        with FingerprintStore(_db_path(db)) as store:
            store_stats = store.stats()
    except MediaprintError as exc:
        err_console.print(f"[red]Error: {exc}[/red]")
        raise typer.Exit(ExitCode.ERROR)
    if json_output:
        sys.stdout.write(json.dumps(store_stats.model_dump(mode="json"), indent=2) + "\n")
    else:
        render_stats(store_stats, console=console)


@config_app.command("set")
def config_set(
    key: Annotated[str, typer.Argument(help="Dotted key, e.g. scan.workers")],
    value: Annotated[str, typer.Argument(help="Value to store")],
) -> None:
    """Store a setting in config.toml."""
    parsed: object = value
    if value.isdigit():
        parsed = int(value)
    elif value.lower() in {"true", "false"}:
        parsed = value.lower() == "true"
    path = write_setting(key, parsed)
    console.print(f"Saved {key} = {parsed!r} to {path}", markup=False)


@config_app.command("show")
def config_show() -> None:
    """Print the settings stored in config.toml."""
    sys.stdout.write(json.dumps(read_settings(), indent=2, default=str) + "\n")


@app.command()
def version() -> None:
    """Show the version of mediaprint."""
    from mediaprint.__about__ import __version__

    console.print(f"mediaprint version: [bold]{__version__}[/bold]")


def main() -> None:
    """Main entry point for the CLI."""
    app()
