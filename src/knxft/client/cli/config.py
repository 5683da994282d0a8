"""Stored settings of the knxft CLI.

Settings live in a flat JSON object in config.json, below ~/.knxft or the
directory named by KNXFT_CONFIG_DIR. Only CONFIG_KEYS are kept; values are
stored as strings and converted where they are used.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path

import click

CONFIG_DIR_ENV = "KNXFT_CONFIG_DIR"
CONFIG_FILE_NAME = "config.json"

# Keys accepted by `knxft config set`
CONFIG_KEYS = ("transport", "device_root", "chunk_length", "max_attempts")


def get_config_dir() -> Path:
    """Directory holding config.json, KNXFT_CONFIG_DIR overrides ~/.knxft."""
    override = os.environ.get(CONFIG_DIR_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".knxft"


def get_config_file() -> Path:
    return get_config_dir() / CONFIG_FILE_NAME


def load_config() -> dict[str, str]:
    """Read the stored settings.

    Unknown keys are ignored. A missing file means no settings.

    Raises:
        click.UsageError: If the file is not a JSON object.
    """
    config_file = get_config_file()
    try:
        raw = config_file.read_text()
    except FileNotFoundError:
        return {}

    try:
        stored = json.loads(raw)
    except json.JSONDecodeError as e:
        raise click.UsageError(f"Malformed settings in {config_file}: {e}") from e
    if not isinstance(stored, dict):
        raise click.UsageError(f"Settings in {config_file} must be a JSON object")

    return {key: str(stored[key]) for key in CONFIG_KEYS if stored.get(key) is not None}


def save_config(config: dict[str, str]) -> None:
    """Replace the stored settings with the known keys of config.

    The file is written next to its final location and moved into place,
    so readers never see a partial file.
    """
    config_file = get_config_file()
    config_file.parent.mkdir(parents=True, exist_ok=True)
    settings = {key: config[key] for key in sorted(config) if key in CONFIG_KEYS}

    fd, temp_name = tempfile.mkstemp(dir=config_file.parent, prefix=".config-", suffix=".json")
    try:
        with os.fdopen(fd, "w") as f:
            json.dump(settings, f, indent=2)
            f.write("\n")
        os.replace(temp_name, config_file)
    except BaseException:
        Path(temp_name).unlink(missing_ok=True)
        raise


def get_int_setting(config: dict[str, str], key: str) -> int | None:
    """Read an integer setting, None if it is not configured.

    Raises:
        ValueError: If the stored value is not an integer.
    """
    value = config.get(key)
    if value in (None, ""):
        return None
    return int(value)
