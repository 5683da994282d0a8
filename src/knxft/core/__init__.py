"""Core module - Wire format, error taxonomy and shared types."""

from knxft.core.codec import crc16
from knxft.core.commands import OBJECT_INDEX, Command
from knxft.core.config import EngineConfig
from knxft.core.errors import (
    ChecksumMismatchError,
    ConnectionLostError,
    FileTransferError,
    IncompatibleVersionError,
    InvalidChunkLengthError,
    LocalValidationError,
    MalformedResponseError,
    PathTooLongError,
    ProtocolError,
    RemoteStatusError,
    TooManyErrorsError,
    TransferCancelledError,
    TransportError,
    UnknownStatusCodeError,
    map_status,
)
from knxft.core.types import (
    DirectoryEntry,
    FileInfo,
    RemoteVersion,
    TransferPhase,
    TransferProgress,
    TransferResult,
    TransferState,
    TransferType,
)
from knxft.core.version import ENGINE_VERSION, __version__

__all__ = [
    # Wire
    "OBJECT_INDEX",
    "Command",
    "crc16",
    # Config
    "EngineConfig",
    # Errors
    "ChecksumMismatchError",
    "ConnectionLostError",
    "FileTransferError",
    "IncompatibleVersionError",
    "InvalidChunkLengthError",
    "LocalValidationError",
    "MalformedResponseError",
    "PathTooLongError",
    "ProtocolError",
    "RemoteStatusError",
    "TooManyErrorsError",
    "TransferCancelledError",
    "TransportError",
    "UnknownStatusCodeError",
    "map_status",
    # Types
    "DirectoryEntry",
    "FileInfo",
    "RemoteVersion",
    "TransferPhase",
    "TransferProgress",
    "TransferResult",
    "TransferState",
    "TransferType",
    # Version
    "ENGINE_VERSION",
    "__version__",
]
