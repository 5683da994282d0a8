"""Command-line interface for knxft.

This module provides the main CLI entry point and assembles all commands.

Commands:
- format, exists, rename, rm, info, mkdir, rmdir, ls: Remote file system
- upload, download: Chunked transfers with progress
- cancel: Abort device-side transfer state
- version: Show and check the device version
- config: Show or change stored settings
"""

from __future__ import annotations

import logging
from pathlib import Path

import click

from knxft.client.cli.config import (
    get_config_dir,
    get_config_file,
    get_int_setting,
    load_config,
    save_config,
)
from knxft.client.cli.context import CliContext
from knxft.client.cli.files import (
    exists,
    format_cmd,
    info,
    ls,
    mkdir,
    rename,
    rm,
    rmdir,
)
from knxft.client.cli.settings import config
from knxft.client.cli.transfer import cancel, download, upload, version
from knxft.core.version import __version__


@click.group()
@click.version_option(__version__, prog_name="knxft")
@click.option(
    "--device",
    "device_root",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Use the simulated device backed by this directory.",
)
@click.option(
    "--transport",
    "transport_spec",
    default=None,
    help="Transport factory as 'module:attribute'.",
)
@click.option("--chunk-length", type=int, default=None, help="Chunk length in bytes (7-255).")
@click.option("--max-attempts", type=int, default=None, help="Attempts per chunk before giving up.")
@click.option("--verbose", "-v", count=True, help="Increase log output (-v info, -vv debug).")
@click.pass_context
def cli(
    ctx: click.Context,
    device_root: Path | None,
    transport_spec: str | None,
    chunk_length: int | None,
    max_attempts: int | None,
    verbose: int,
) -> None:
    """knxft - File transfer for devices behind a narrow control channel."""
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    stored = load_config()
    if device_root is None and transport_spec is None:
        if stored.get("device_root"):
            device_root = Path(stored["device_root"]).expanduser()
        transport_spec = stored.get("transport") or None

    try:
        if chunk_length is None:
            chunk_length = get_int_setting(stored, "chunk_length")
        if max_attempts is None:
            max_attempts = get_int_setting(stored, "max_attempts")
    except ValueError as e:
        raise click.UsageError(f"Invalid value in {get_config_file()}: {e}") from e

    ctx.obj = CliContext(
        device_root=device_root,
        transport_spec=transport_spec,
        chunk_length=chunk_length,
        max_attempts=max_attempts,
    )


# File system commands
cli.add_command(format_cmd)
cli.add_command(exists)
cli.add_command(rename)
cli.add_command(rm)
cli.add_command(info)
cli.add_command(mkdir)
cli.add_command(rmdir)
cli.add_command(ls)

# Transfer commands
cli.add_command(upload)
cli.add_command(download)
cli.add_command(cancel)
cli.add_command(version)

# Settings
cli.add_command(config)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    "cli",
    "main",
    "get_config_dir",
    "get_config_file",
    "load_config",
    "save_config",
]
