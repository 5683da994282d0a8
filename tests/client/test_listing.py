"""Tests for DirectoryLister."""

from pathlib import Path
from unittest.mock import MagicMock, call

import pytest

from knxft.client.listing import DirectoryLister
from knxft.client.simulator import SimulatedDevice
from knxft.core.commands import Command
from knxft.core.errors import (
    MalformedResponseError,
    PathTooLongError,
    RemoteDirectoryError,
)
from knxft.core.types import DirectoryEntry


class TestDirectoryLister:
    """Tests for listings against a scripted transport."""

    def test_collects_entries_in_order(self, mock_transport: MagicMock) -> None:
        """Entries are returned in device order until the end marker."""
        mock_transport.invoke.side_effect = [b"\x00\x01a", b"\x00\x02b", b"\x00\x00"]

        entries = DirectoryLister(mock_transport).list("/dir")

        assert entries == [
            DirectoryEntry(name="a", is_file=True),
            DirectoryEntry(name="b", is_file=False),
        ]

    def test_only_first_request_carries_path(self, mock_transport: MagicMock) -> None:
        """Follow-up requests have no payload."""
        mock_transport.invoke.side_effect = [b"\x00\x01a", b"\x00\x00"]

        DirectoryLister(mock_transport).list("/dir")

        assert mock_transport.invoke.call_args_list == [
            call(159, int(Command.DIR_LIST), b"/dir\x00", True),
            call(159, int(Command.DIR_LIST), None, True),
        ]

    def test_empty_directory(self, mock_transport: MagicMock) -> None:
        """An immediate end marker yields an empty list."""
        mock_transport.invoke.side_effect = [b"\x00\x00"]
        assert DirectoryLister(mock_transport).list("/") == []

    def test_trailing_nuls_stripped(self, mock_transport: MagicMock) -> None:
        """Names padded with NULs are trimmed."""
        mock_transport.invoke.side_effect = [b"\x00\x01name\x00\x00", b"\x00\x00"]
        assert DirectoryLister(mock_transport).list("/")[0].name == "name"

    def test_error_discards_partial_listing(self, mock_transport: MagicMock) -> None:
        """A status error mid-listing raises instead of returning a partial result."""
        mock_transport.invoke.side_effect = [b"\x00\x01a", b"\x83"]
        with pytest.raises(RemoteDirectoryError) as exc_info:
            DirectoryLister(mock_transport).list("/")
        assert exc_info.value.code == 0x83

    def test_unknown_entry_kind(self, mock_transport: MagicMock) -> None:
        """Entry kinds other than file and directory are rejected."""
        mock_transport.invoke.side_effect = [b"\x00\x07x"]
        with pytest.raises(MalformedResponseError):
            DirectoryLister(mock_transport).list("/")

    def test_non_ascii_path(self, mock_transport: MagicMock) -> None:
        """Listing paths must be ASCII."""
        with pytest.raises(UnicodeEncodeError):
            DirectoryLister(mock_transport).list("/été")
        mock_transport.invoke.assert_not_called()

    def test_path_too_long(self, mock_transport: MagicMock) -> None:
        """Oversized paths are rejected before any exchange."""
        with pytest.raises(PathTooLongError):
            DirectoryLister(mock_transport).list("/" + "d" * 80)
        mock_transport.invoke.assert_not_called()


class TestListingSimulated:
    """Tests for listings against the simulated device."""

    def test_lists_device_directory(self, device: SimulatedDevice, device_root: Path) -> None:
        """Files and directories are listed by name."""
        (device_root / "b.txt").write_bytes(b"")
        (device_root / "a").mkdir()

        entries = DirectoryLister(device).list("/")

        assert [(e.name, e.is_dir) for e in entries] == [("a", True), ("b.txt", False)]

    def test_missing_directory(self, device: SimulatedDevice) -> None:
        """The device reports missing directories."""
        with pytest.raises(RemoteDirectoryError) as exc_info:
            DirectoryLister(device).list("/nope")
        assert exc_info.value.code == 0x82

    def test_listing_restarts(self, device: SimulatedDevice, device_root: Path) -> None:
        """Every call restarts from the first entry."""
        (device_root / "x").write_bytes(b"")
        lister = DirectoryLister(device)
        assert lister.list("/") == lister.list("/")
