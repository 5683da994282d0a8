"""Tests for the status code table and error taxonomy."""

import pytest

from knxft.core.errors import (
    STATUS_MESSAGES,
    ChunkLengthRejectedError,
    ConnectionLostError,
    FileSystemError,
    FileTransferError,
    MalformedResponseError,
    RemoteDirectoryError,
    RemoteFileError,
    RemoteStatusError,
    TooManyErrorsError,
    TransportError,
    UnknownStatusCodeError,
    check_status,
    map_status,
)


class TestMapStatus:
    """Tests for map_status."""

    @pytest.mark.parametrize(
        "code,error_cls",
        [
            (0x02, FileSystemError),
            (0x04, ChunkLengthRejectedError),
            (0x41, RemoteFileError),
            (0x47, RemoteFileError),
            (0x81, RemoteDirectoryError),
            (0x85, RemoteDirectoryError),
        ],
    )
    def test_known_codes(self, code: int, error_cls: type) -> None:
        """Known codes map to their error family."""
        error = map_status(code)
        assert isinstance(error, error_cls)
        assert isinstance(error, RemoteStatusError)
        assert error.code == code

    def test_messages(self) -> None:
        """Errors carry the fixed human-readable message."""
        assert str(map_status(0x41)) == "File already open"
        assert str(map_status(0x85)) == "Creation of the folder failed"

    def test_table_is_complete(self) -> None:
        """The table holds all fourteen codes."""
        assert sorted(STATUS_MESSAGES) == [
            0x02, 0x04, 0x41, 0x42, 0x43, 0x44, 0x45, 0x46, 0x47,
            0x81, 0x82, 0x83, 0x84, 0x85,
        ]

    @pytest.mark.parametrize("code", [0x00, 0x01, 0x40, 0x48, 0x86, 0xFF])
    def test_unknown_codes(self, code: int) -> None:
        """Unmapped codes are never treated as success."""
        with pytest.raises(UnknownStatusCodeError) as exc_info:
            map_status(code)
        assert exc_info.value.code == code


class TestCheckStatus:
    """Tests for check_status."""

    def test_success(self) -> None:
        """Status 0x00 passes."""
        check_status(b"\x00\x01")

    def test_mapped_error(self) -> None:
        """Non-zero status raises the mapped error."""
        with pytest.raises(RemoteFileError):
            check_status(b"\x42")

    def test_unknown_code(self) -> None:
        """Unknown status raises UnknownStatusCodeError."""
        with pytest.raises(UnknownStatusCodeError):
            check_status(b"\x99")

    def test_empty_response(self) -> None:
        """Missing status byte is malformed."""
        with pytest.raises(MalformedResponseError):
            check_status(b"")


class TestHierarchy:
    """Tests for the exception hierarchy."""

    def test_everything_is_file_transfer_error(self) -> None:
        """All errors share the FileTransferError base."""
        assert issubclass(ConnectionLostError, TransportError)
        assert issubclass(TransportError, FileTransferError)
        assert issubclass(UnknownStatusCodeError, FileTransferError)

    def test_too_many_errors_keeps_last_error(self) -> None:
        """TooManyErrorsError references the last failure."""
        last = TransportError("link down")
        error = TooManyErrorsError(3, last)
        assert error.attempts == 3
        assert error.last_error is last
        assert "link down" in str(error)
