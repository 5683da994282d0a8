"""Shared types for knxft.

This module defines the values produced by the protocol engine and the
per-transfer state threaded through a TransferSession.
"""

from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass, field
from enum import IntEnum, auto


@dataclass(frozen=True)
class FileInfo:
    """Result of a file info query."""

    size: int
    crc: bytes

    @property
    def crc_hex(self) -> str:
        """Checksum bytes as upper-case hex (e.g. "1A2B0000")."""
        return self.crc.hex().upper()


@dataclass(frozen=True)
class DirectoryEntry:
    """One entry of a directory listing, in the order the device returned it."""

    name: str
    is_file: bool

    @property
    def is_dir(self) -> bool:
        return not self.is_file


@dataclass(frozen=True, order=True)
class RemoteVersion:
    """Version triple reported by the device."""

    major: int
    minor: int
    build: int

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.build}"


class TransferType(IntEnum):
    """Direction of a chunked transfer."""

    UPLOAD = auto()
    DOWNLOAD = auto()


class TransferPhase(IntEnum):
    """Phase of a transfer session.

    States:
        IDLE -> HEADER_SENT -> STREAMING -> FINALIZING -> COMPLETED
                            -> FAILED / CANCELLED from any non-terminal phase
    """

    IDLE = auto()
    HEADER_SENT = auto()
    STREAMING = auto()
    FINALIZING = auto()
    COMPLETED = auto()
    FAILED = auto()
    CANCELLED = auto()


# Valid phase transitions
VALID_TRANSITIONS: dict[TransferPhase, set[TransferPhase]] = {
    TransferPhase.IDLE: {TransferPhase.HEADER_SENT, TransferPhase.FAILED},
    TransferPhase.HEADER_SENT: {
        TransferPhase.STREAMING,
        TransferPhase.FAILED,
        TransferPhase.CANCELLED,
    },
    TransferPhase.STREAMING: {
        TransferPhase.FINALIZING,
        TransferPhase.FAILED,
        TransferPhase.CANCELLED,
    },
    TransferPhase.FINALIZING: {TransferPhase.COMPLETED, TransferPhase.FAILED},
    TransferPhase.COMPLETED: set(),  # Terminal
    TransferPhase.FAILED: set(),  # Terminal
    TransferPhase.CANCELLED: set(),  # Terminal
}


class InvalidTransitionError(Exception):
    """Raised when attempting an invalid phase transition."""


@dataclass
class TransferState:
    """Mutable state of one upload or download.

    Created fresh for every transfer and discarded when it ends. Only the
    session driving the transfer mutates it.

    Attributes:
        path: Remote path being transferred
        transfer_type: Upload or download
        sequence: Sequence number of the next chunk (wraps at 2^16)
        bytes_total: Known size for uploads, learned from the header for downloads
        bytes_done: Bytes committed so far
        chunks: Number of committed chunks
        retries: Failed exchange attempts that were retried
        started_at: Monotonic timestamp of the transfer start
        last_commit_at: Monotonic timestamp of the previous committed chunk
        recent_rates: Ring buffer of per-chunk throughput samples (bytes/s)
    """

    path: str
    transfer_type: TransferType
    window: int = 20
    sequence: int = 0
    bytes_total: int = 0
    bytes_done: int = 0
    chunks: int = 0
    retries: int = 0
    phase: TransferPhase = TransferPhase.IDLE
    started_at: float = field(default_factory=time.monotonic)
    last_commit_at: float = 0.0
    recent_rates: deque[float] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.recent_rates = deque(maxlen=self.window)
        self.last_commit_at = self.started_at

    def transition_to(self, new_phase: TransferPhase) -> None:
        """Transition to a new phase with validation."""
        if new_phase not in VALID_TRANSITIONS[self.phase]:
            raise InvalidTransitionError(
                f"Cannot transition from {self.phase.name} to {new_phase.name}"
            )
        self.phase = new_phase

    @property
    def is_terminal(self) -> bool:
        return not VALID_TRANSITIONS[self.phase]


@dataclass(frozen=True)
class TransferProgress:
    """Progress event emitted after each committed chunk.

    percent and eta are None while no estimate is possible.
    """

    path: str
    transfer_type: TransferType
    bytes_done: int
    bytes_total: int
    percent: int | None
    rate: float | None  # bytes/s, averaged over the ring buffer
    eta: int | None  # seconds
    sequence: int


@dataclass(frozen=True)
class TransferResult:
    """Summary of a completed transfer."""

    path: str
    transfer_type: TransferType
    size: int
    chunks: int
    retries: int
    duration: float

    @property
    def average_rate(self) -> float:
        """Average throughput in bytes/s over the whole transfer."""
        if self.duration <= 0:
            return float(self.size)
        return self.size / self.duration
