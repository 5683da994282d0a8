"""Engine configuration for knxft.

This module defines the tunables of the protocol engine. Values have no
effect on the wire format except chunk_length.
"""

from __future__ import annotations

from dataclasses import dataclass

from knxft.core.commands import MAX_CHUNK_LENGTH, MIN_CHUNK_LENGTH, OBJECT_INDEX
from knxft.core.version import ENGINE_VERSION

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_PROGRESS_WINDOW = 20


@dataclass
class EngineConfig:
    """Configuration for a FileTransferEngine.

    Attributes:
        object_index: Function property channel of the file transfer object.
        max_attempts: Exchange attempts per chunk before giving up (>= 1).
        chunk_length: Chunk length negotiated in the transfer header. None
            derives it from the transport's max frame length.
        progress_window: Capacity of the throughput ring buffer.
        local_version: Version of this engine, checked against the device.
    """

    object_index: int = OBJECT_INDEX
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    chunk_length: int | None = None
    progress_window: int = DEFAULT_PROGRESS_WINDOW
    local_version: tuple[int, int, int] = ENGINE_VERSION

    def __post_init__(self) -> None:
        """Validate values."""
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.progress_window < 1:
            raise ValueError(f"progress_window must be >= 1, got {self.progress_window}")
        if self.chunk_length is not None and not (
            MIN_CHUNK_LENGTH <= self.chunk_length <= MAX_CHUNK_LENGTH
        ):
            raise ValueError(
                f"chunk_length must be in {MIN_CHUNK_LENGTH}..{MAX_CHUNK_LENGTH}, "
                f"got {self.chunk_length}"
            )

    @property
    def local_major(self) -> int:
        return self.local_version[0]
