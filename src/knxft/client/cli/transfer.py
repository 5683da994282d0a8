"""Transfer commands for the knxft CLI.

Commands:
- upload: Upload a local file
- download: Download a remote file
- cancel: Abort the device-side transfer state
- version: Show and check the device version

Transfers run in a worker thread so that Ctrl+C can cancel them at the
next chunk boundary.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any

import click

from knxft.client.cli.context import CliContext, handle_errors
from knxft.client.engine import FileTransferEngine
from knxft.client.progress import format_progress
from knxft.core.types import TransferProgress, TransferResult

logger = logging.getLogger(__name__)

pass_context = click.make_pass_decorator(CliContext)


class StatusLine:
    """Single rewritten terminal line showing transfer progress."""

    def __init__(self, enabled: bool = True) -> None:
        self._enabled = enabled
        self._open = False
        self._lock = threading.Lock()

    def update(self, progress: TransferProgress) -> None:
        if not self._enabled:
            return
        with self._lock:
            click.echo(f"\r{format_progress(progress)}", nl=False)
            self._open = True

    def close(self) -> None:
        with self._lock:
            if self._open:
                click.echo()
                self._open = False


def run_cancellable(
    engine: FileTransferEngine, func: Callable[[], TransferResult]
) -> TransferResult:
    """Run a transfer in a worker thread, cancelling it on Ctrl+C."""
    outcome: dict[str, Any] = {}

    def worker() -> None:
        try:
            outcome["result"] = func()
        except BaseException as e:  # re-raised in the calling thread
            outcome["error"] = e

    thread = threading.Thread(target=worker, name="knxft-transfer", daemon=True)
    thread.start()
    try:
        while thread.is_alive():
            thread.join(0.2)
    except KeyboardInterrupt:
        click.echo("\nCancelling...", err=True)
        engine.cancel()
        thread.join()

    if "error" in outcome:
        raise outcome["error"]
    result: TransferResult = outcome["result"]
    return result


def echo_summary(result: TransferResult) -> None:
    minutes, seconds = divmod(int(result.duration), 60)
    click.echo(
        f"Completed in {minutes}:{seconds:02d} "
        f"({result.size} bytes, {result.average_rate:.0f} bytes/s, "
        f"{result.chunks} chunks, {result.retries} retries)"
    )


def _report_retry(error: Exception) -> None:
    logger.debug(f"Exchange failed: {error}")


@click.command()
@click.argument("local", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("remote")
@click.option("--start-sequence", type=int, default=0, show_default=True,
              help="Sequence number preceding the first data chunk.")
@click.option("--no-progress", is_flag=True, help="Disable the progress line.")
@pass_context
def upload(
    ctx: CliContext, local: Path, remote: str, start_sequence: int, no_progress: bool
) -> None:
    """Upload the local file LOCAL to REMOTE."""
    status = StatusLine(enabled=not no_progress)
    with handle_errors():
        engine = ctx.engine()
        try:
            result = run_cancellable(
                engine,
                lambda: engine.upload(
                    remote,
                    local,
                    start_sequence=start_sequence,
                    progress_callback=status.update,
                    error_callback=_report_retry,
                ),
            )
        finally:
            status.close()
    echo_summary(result)


@click.command()
@click.argument("remote")
@click.argument("local", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--no-progress", is_flag=True, help="Disable the progress line.")
@pass_context
def download(ctx: CliContext, remote: str, local: Path, no_progress: bool) -> None:
    """Download REMOTE into the local file LOCAL."""
    status = StatusLine(enabled=not no_progress)
    with handle_errors():
        engine = ctx.engine()
        try:
            result = run_cancellable(
                engine,
                lambda: engine.download(
                    remote,
                    local,
                    progress_callback=status.update,
                    error_callback=_report_retry,
                ),
            )
        finally:
            status.close()
    echo_summary(result)


@click.command()
@pass_context
def cancel(ctx: CliContext) -> None:
    """Abort any transfer or listing the device still has open."""
    with handle_errors():
        ctx.engine().cancel()
    click.echo("Cancelled.")


@click.command()
@click.option("--no-check", is_flag=True, help="Only show the version, skip the compatibility check.")
@pass_context
def version(ctx: CliContext, no_check: bool) -> None:
    """Show the device version and check its compatibility."""
    with handle_errors():
        engine = ctx.engine()
        remote = engine.get_version() if no_check else engine.check_version()
    click.echo(f"Remote version: {remote}")
    if not no_check:
        click.echo("Compatible: yes")
