"""Error taxonomy for the file transfer protocol.

This module provides:
- FileTransferError: Base exception for everything raised by knxft
- Local validation errors (raised before any exchange)
- RemoteStatusError and its families (explicit rejections by the device)
- Transport, integrity and protocol errors
- map_status / check_status: the status code table lookup
"""

from __future__ import annotations

from knxft.core.commands import STATUS_OK


class FileTransferError(Exception):
    """Base exception for file transfer errors."""


# =============================================================================
# Local validation
# =============================================================================


class LocalValidationError(FileTransferError):
    """Request rejected locally, no exchange was made."""


class PathTooLongError(LocalValidationError):
    """Encoded path does not fit into a single frame."""

    def __init__(self, length: int, max_frame_length: int) -> None:
        self.length = length
        self.max_frame_length = max_frame_length
        super().__init__(
            f"The path is too long ({length}) for the max frame length of {max_frame_length}"
        )


class InvalidChunkLengthError(LocalValidationError):
    """Requested chunk length cannot be used with this transport."""


class IncompatibleVersionError(LocalValidationError):
    """Remote major version differs from the local one."""

    def __init__(self, remote: object, local_major: int) -> None:
        self.remote = remote
        self.local_major = local_major
        super().__init__(
            f"Incompatible remote major version: {remote} (local major is {local_major})"
        )


# =============================================================================
# Remote status codes
# =============================================================================


class RemoteStatusError(FileTransferError):
    """The device answered with a non-zero status code."""

    def __init__(self, code: int, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code=0x{self.code:02X}, message={self.message!r})"


class FileSystemError(RemoteStatusError):
    """File system level failure (format)."""


class ChunkLengthRejectedError(RemoteStatusError):
    """Device refused the requested chunk length."""


class RemoteFileError(RemoteStatusError):
    """File operation failed on the device."""


class RemoteDirectoryError(RemoteStatusError):
    """Directory operation failed on the device."""


STATUS_MESSAGES: dict[int, tuple[type[RemoteStatusError], str]] = {
    0x02: (FileSystemError, "Formatting of the file system has failed"),
    0x04: (
        ChunkLengthRejectedError,
        "Requested chunk length is greater than the allowed length of the device",
    ),
    0x41: (RemoteFileError, "File already open"),
    0x42: (RemoteFileError, "File can't be opened"),
    0x43: (RemoteFileError, "File not opened"),
    0x44: (RemoteFileError, "Deleting of the file failed"),
    0x45: (RemoteFileError, "Renaming of the file failed"),
    0x46: (RemoteFileError, "The file can't seek to position"),
    0x47: (RemoteFileError, "File could not be written completely"),
    0x81: (RemoteDirectoryError, "Dir already open"),
    0x82: (RemoteDirectoryError, "Dir can't be opened"),
    0x83: (RemoteDirectoryError, "Dir not opened"),
    0x84: (RemoteDirectoryError, "Deleting of the folder failed"),
    0x85: (RemoteDirectoryError, "Creation of the folder failed"),
}


# =============================================================================
# Protocol, transport and integrity
# =============================================================================


class ProtocolError(FileTransferError):
    """The device violated the wire protocol."""


class UnknownStatusCodeError(ProtocolError):
    """Status code is not in the status table."""

    def __init__(self, code: int) -> None:
        self.code = code
        super().__init__(f"Unknown status code 0x{code:02X}")


class MalformedResponseError(ProtocolError):
    """Response is shorter than its layout requires or otherwise inconsistent."""


class TransportError(FileTransferError):
    """A single exchange failed on the link (raised by transports)."""


class ConnectionLostError(TransportError):
    """The link to the device dropped; a reconnect is required."""


class ChecksumMismatchError(FileTransferError):
    """CRC of an exchanged chunk does not match."""

    def __init__(self, expected: int, received: int) -> None:
        self.expected = expected
        self.received = received
        super().__init__(f"Wrong CRC (Req: {expected:04X} / Res: {received:04X})")


class TooManyErrorsError(FileTransferError):
    """Retry bound exhausted for a single chunk."""

    def __init__(self, attempts: int, last_error: Exception | None = None) -> None:
        self.attempts = attempts
        self.last_error = last_error
        message = f"Too many errors ({attempts} failed attempts)"
        if last_error is not None:
            message += f": {last_error}"
        super().__init__(message)


class TransferCancelledError(FileTransferError):
    """Transfer stopped by an explicit cancel."""


def map_status(code: int) -> RemoteStatusError:
    """Map a non-zero status code to its typed error.

    Args:
        code: Status byte from a response.

    Returns:
        RemoteStatusError subclass instance for the code.

    Raises:
        UnknownStatusCodeError: If the code is not in the table (including 0x00,
            which is not an error).
    """
    try:
        error_cls, message = STATUS_MESSAGES[code]
    except KeyError:
        raise UnknownStatusCodeError(code) from None
    return error_cls(code, message)


def check_status(response: bytes) -> None:
    """Raise the mapped error if the response does not carry status 0x00."""
    if not response:
        raise MalformedResponseError("Empty response, status byte missing")
    if response[0] != STATUS_OK:
        raise map_status(response[0])
