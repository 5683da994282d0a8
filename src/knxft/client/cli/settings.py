"""Configuration commands for the knxft CLI.

Commands:
- config show: Print stored settings
- config set: Store a setting
- config unset: Remove a setting
"""

from __future__ import annotations

import sys

import click

from knxft.client.cli.config import CONFIG_KEYS, get_config_file, load_config, save_config


@click.group()
def config() -> None:
    """Show or change stored settings."""


@config.command("show")
def show() -> None:
    """Print stored settings."""
    stored = load_config()
    click.echo(f"Config file: {get_config_file()}")
    if not stored:
        click.echo("No settings stored.")
        return
    for key in sorted(stored):
        click.echo(f"{key} = {stored[key]}")


@config.command("set")
@click.argument("key", type=click.Choice(CONFIG_KEYS))
@click.argument("value")
def set_value(key: str, value: str) -> None:
    """Store VALUE for KEY."""
    if key in ("chunk_length", "max_attempts") and not value.isdigit():
        click.echo(f"Error: {key} must be a positive integer.", err=True)
        sys.exit(1)
    stored = load_config()
    stored[key] = value
    save_config(stored)
    click.echo(f"{key} = {value}")


@config.command("unset")
@click.argument("key", type=click.Choice(CONFIG_KEYS))
def unset(key: str) -> None:
    """Remove the stored value of KEY."""
    stored = load_config()
    if stored.pop(key, None) is None:
        click.echo(f"{key} is not set.")
        return
    save_config(stored)
    click.echo(f"Removed {key}")
