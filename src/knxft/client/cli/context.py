"""Shared state of a CLI invocation: transport selection and error reporting.

This module provides:
- CliContext: Lazily builds the transport and engine from options and config
- load_transport_factory: Imports a user-supplied "module:attribute" factory
- handle_errors: Reports knxft errors as "Error: ..." and exits with status 1
"""

from __future__ import annotations

import contextlib
import importlib
import logging
import sys
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from pathlib import Path

import click

from knxft.client.engine import FileTransferEngine
from knxft.client.simulator import SimulatedDevice
from knxft.client.transport import Transport
from knxft.core.config import EngineConfig
from knxft.core.errors import FileTransferError

logger = logging.getLogger(__name__)


def load_transport_factory(spec: str) -> Callable[[], Transport]:
    """Import a transport factory given as "package.module:attribute".

    Raises:
        click.UsageError: If the spec is malformed or cannot be imported.
    """
    module_name, _, attribute = spec.partition(":")
    if not module_name or not attribute:
        raise click.UsageError(f"Transport must look like 'module:factory', got {spec!r}")
    try:
        module = importlib.import_module(module_name)
        factory: Callable[[], Transport] = getattr(module, attribute)
    except (ImportError, AttributeError) as e:
        raise click.UsageError(f"Cannot load transport {spec!r}: {e}") from e
    return factory


@dataclass
class CliContext:
    """Options collected by the top-level group."""

    device_root: Path | None = None
    transport_spec: str | None = None
    chunk_length: int | None = None
    max_attempts: int | None = None
    _engine: FileTransferEngine | None = field(default=None, repr=False)

    def create_transport(self) -> Transport:
        if self.device_root is not None:
            logger.debug(f"Using simulated device at {self.device_root}")
            return SimulatedDevice(self.device_root)
        if self.transport_spec:
            return load_transport_factory(self.transport_spec)()
        raise click.UsageError(
            "No device configured. Use --device DIR or --transport module:factory, "
            "or store one with 'knxft config set'."
        )

    def engine(self) -> FileTransferEngine:
        """Return the engine for this invocation, creating it on first use."""
        if self._engine is None:
            kwargs: dict[str, int] = {}
            if self.max_attempts is not None:
                kwargs["max_attempts"] = self.max_attempts
            try:
                config = EngineConfig(chunk_length=self.chunk_length, **kwargs)
            except ValueError as e:
                raise click.UsageError(str(e)) from e
            self._engine = FileTransferEngine(self.create_transport(), config)
        return self._engine


@contextlib.contextmanager
def handle_errors() -> Iterator[None]:
    """Turn knxft errors into a CLI error message and exit status 1."""
    try:
        yield
    except (FileTransferError, OSError, UnicodeError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

