"""Remote file system commands for the knxft CLI.

Commands:
- format: Format the device file system
- exists: Check whether a path exists
- rename: Rename a remote file
- rm: Delete a remote file
- info: Show size and checksum of a remote file
- mkdir: Create a remote directory
- rmdir: Delete a remote directory
- ls: List a remote directory
"""

from __future__ import annotations

import sys

import click

from knxft.client.cli.context import CliContext, handle_errors

pass_context = click.make_pass_decorator(CliContext)


@click.command("format")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation.")
@pass_context
def format_cmd(ctx: CliContext, yes: bool) -> None:
    """Format the device file system (deletes everything)."""
    if not yes and not click.confirm("This erases all files on the device. Continue?"):
        sys.exit(0)
    with handle_errors():
        ctx.engine().format()
    click.echo("File system formatted.")


@click.command()
@click.argument("path")
@pass_context
def exists(ctx: CliContext, path: str) -> None:
    """Check whether PATH exists on the device (exit status 1 if not)."""
    with handle_errors():
        found = ctx.engine().exists(path)
    click.echo(f"{path}: {'exists' if found else 'not found'}")
    if not found:
        sys.exit(1)


@click.command()
@click.argument("path")
@click.argument("new_path")
@pass_context
def rename(ctx: CliContext, path: str, new_path: str) -> None:
    """Rename PATH to NEW_PATH."""
    with handle_errors():
        ctx.engine().rename(path, new_path)
    click.echo(f"Renamed {path} -> {new_path}")


@click.command()
@click.argument("path")
@pass_context
def rm(ctx: CliContext, path: str) -> None:
    """Delete the remote file PATH."""
    with handle_errors():
        ctx.engine().delete(path)
    click.echo(f"Deleted {path}")


@click.command()
@click.argument("path")
@pass_context
def info(ctx: CliContext, path: str) -> None:
    """Show size and checksum of the remote file PATH."""
    with handle_errors():
        file_info = ctx.engine().info(path)
    click.echo(f"File: {path}")
    click.echo(f"Size: {file_info.size} bytes")
    click.echo(f"CRC:  {file_info.crc_hex}")


@click.command()
@click.argument("path")
@pass_context
def mkdir(ctx: CliContext, path: str) -> None:
    """Create the remote directory PATH."""
    with handle_errors():
        ctx.engine().mkdir(path)
    click.echo(f"Created {path}")


@click.command()
@click.argument("path")
@pass_context
def rmdir(ctx: CliContext, path: str) -> None:
    """Delete the empty remote directory PATH."""
    with handle_errors():
        ctx.engine().rmdir(path)
    click.echo(f"Deleted {path}")


@click.command()
@click.argument("path", default="/")
@pass_context
def ls(ctx: CliContext, path: str) -> None:
    """List the remote directory PATH (default: /)."""
    with handle_errors():
        entries = ctx.engine().list_dir(path)
    for entry in entries:
        click.echo(f"{'f' if entry.is_file else 'd'}  {entry.name}")
