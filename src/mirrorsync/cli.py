from __future__ import annotations

import logging
import threading
from pathlib import Path

import typer
from rich.console import Console

from .config import SyncSettings, default_case_sensitive
from .log_setup import configure_logging
from .models import CycleResult, ItemAction
from .reconcile import Reconciler
from .scheduler import CycleScheduler
from .validation import ValidationError, ensure_log_file, validate_inputs

app = typer.Typer(
    help="One-way mirroring of a source directory onto a destination directory",
    add_completion=False,
)
console = Console()
logger = logging.getLogger("mirrorsync.cli")


def _print_summary(result: CycleResult) -> None:
    counts = result.counts()
    console.print()
    console.print(f"Created directories: {counts[ItemAction.CREATED_DIR]}")
    console.print(f"Copied files: {counts[ItemAction.COPIED_FILE]}")
    console.print(f"Deleted files: {counts[ItemAction.DELETED_FILE]}")
    console.print(f"Deleted directories: {counts[ItemAction.DELETED_DIR]}")
    console.print(f"Unchanged: {counts[ItemAction.SKIPPED]}")
    if result.failures:
        console.print(f"[red]Failed: {len(result.failures)}[/red]")
        for outcome in result.failures:
            console.print(f"  {outcome.phase.value} {outcome.relpath}: {outcome.error}")
    console.print(f"Time: {result.duration_seconds:.2f}s")


def _wait_for_stop() -> None:
    try:
        console.input()
    except EOFError:
        # no interactive stdin: run until interrupted
        threading.Event().wait()


@app.command(context_settings={"ignore_unknown_options": True})
def main(
    source: Path = typer.Argument(..., help='Source directory, e.g. "/data/source"'),
    destination: Path = typer.Argument(
        ..., help='Destination directory, e.g. "/backup/replica"'
    ),
    interval: int = typer.Argument(
        ...,
        help="Synchronization interval in seconds (0 becomes 1, negative values use their absolute value)",
    ),
    log_file: Path = typer.Argument(..., help='Log file path, e.g. "/var/log/mirrorsync.log"'),
    case_sensitive: bool | None = typer.Option(
        None,
        "--case-sensitive/--case-insensitive",
        help="Path matching mode (default: insensitive on Windows and macOS)",
    ),
    mtime_tolerance_ms: int = typer.Option(
        0,
        min=0,
        help="Modification times closer than this are treated as equal",
    ),
    once: bool = typer.Option(False, "--once", help="Run a single cycle and exit"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Mirror SOURCE onto DESTINATION every INTERVAL seconds until Enter is pressed."""
    try:
        resolved_log = ensure_log_file(log_file)
    except ValidationError as exc:
        console.print(f"[red]Invalid log file:[/red] {exc}")
        raise typer.Exit(2)

    configure_logging(resolved_log, console=console, verbose=verbose)

    try:
        user_input = validate_inputs(source, destination, interval, resolved_log)
    except ValidationError as exc:
        logger.error("Invalid arguments: %s", exc)
        raise typer.Exit(2)

    settings = SyncSettings(
        case_sensitive=(
            default_case_sensitive() if case_sensitive is None else case_sensitive
        ),
        mtime_tolerance_ns=mtime_tolerance_ms * 1_000_000,
    )
    reconciler = Reconciler(user_input.source, user_input.destination, settings=settings)

    if once:
        try:
            result = reconciler.run_once()
        except Exception as exc:  # noqa: BLE001
            logger.error("Sync failed: %s", exc)
            raise typer.Exit(1)
        _print_summary(result)
        if result.failures:
            raise typer.Exit(1)
        return

    scheduler = CycleScheduler(reconciler.run_once, user_input.interval_seconds)
    scheduler.start()
    console.print('Press "Enter" to end the program.')
    try:
        _wait_for_stop()
    except KeyboardInterrupt:
        console.print()
    finally:
        scheduler.stop(wait=True)


if __name__ == "__main__":
    app()
