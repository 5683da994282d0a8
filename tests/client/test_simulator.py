"""Tests for the simulated device."""

import struct
from pathlib import Path

import pytest

from knxft.client.simulator import Exchange, Fault, SimulatedDevice
from knxft.core.commands import Command
from knxft.core.errors import ConnectionLostError, TransportError


def invoke(device: SimulatedDevice, command: Command, payload: bytes | None = None) -> bytes:
    return device.invoke(159, int(command), payload)


class TestSimulatedDevice:
    """Tests for SimulatedDevice."""

    def test_records_exchanges(self, device: SimulatedDevice) -> None:
        """Every accepted request is recorded."""
        invoke(device, Command.EXISTS, b"/x\x00")
        assert device.exchanges == [Exchange(int(Command.EXISTS), b"/x\x00")]
        assert device.commands() == [Command.EXISTS]

    def test_wrong_object_index(self, device: SimulatedDevice) -> None:
        """Requests to another object fail at the transport level."""
        with pytest.raises(TransportError):
            device.invoke(1, int(Command.FORMAT), None)

    def test_oversized_frame(self, device_root: Path) -> None:
        """Frames beyond the advertised maximum are refused."""
        device = SimulatedDevice(device_root, max_frame_length=16)
        with pytest.raises(TransportError):
            invoke(device, Command.EXISTS, b"x" * 15)
        assert device.exchanges == []

    def test_unknown_command(self, device: SimulatedDevice) -> None:
        """Unsupported opcodes answer with an unknown status."""
        assert device.invoke(159, 77, None) == b"\xff"

    def test_version_has_no_status_byte(self, device_root: Path) -> None:
        """GetVersion answers with the bare version triple."""
        device = SimulatedDevice(device_root, version=(1, 2, 3))
        assert invoke(device, Command.GET_VERSION) == struct.pack(">HHH", 1, 2, 3)

    def test_rejects_parent_references(self, device: SimulatedDevice) -> None:
        """Paths cannot escape the device root."""
        assert invoke(device, Command.EXISTS, b"../x\x00") == b"\x42"

    def test_upload_without_header(self, device: SimulatedDevice) -> None:
        """A short first upload request is refused."""
        assert invoke(device, Command.FILE_UPLOAD, b"\x01\x00") == b"\x43"

    def test_download_without_header(self, device: SimulatedDevice) -> None:
        """Chunk requests need an open download."""
        assert invoke(device, Command.FILE_DOWNLOAD, b"\x01\x00") == b"\x43"

    def test_listing_without_path(self, device: SimulatedDevice) -> None:
        """Continuation requests need an open listing."""
        assert invoke(device, Command.DIR_LIST) == b"\x83"

    def test_cancel_closes_upload(self, device: SimulatedDevice, device_root: Path) -> None:
        """Cancel discards a pending upload."""
        assert invoke(device, Command.FILE_UPLOAD, b"\x00\x00\x20/f\x00") == b"\x00"
        assert invoke(device, Command.CANCEL) == b"\x00"
        assert invoke(device, Command.FILE_UPLOAD, b"\x01\x00") == b"\x43"
        assert not (device_root / "f").exists()

    def test_repeated_terminator_acknowledged(
        self, device: SimulatedDevice, device_root: Path
    ) -> None:
        """A terminator repeated after the upload closed is acknowledged again."""
        assert invoke(device, Command.FILE_UPLOAD, b"\x00\x00\x20/f\x00") == b"\x00"
        invoke(device, Command.FILE_UPLOAD, b"\x01\x00\x02ab")
        assert invoke(device, Command.FILE_UPLOAD, b"\xff\xff") == b"\x00"
        assert invoke(device, Command.FILE_UPLOAD, b"\xff\xff") == b"\x00"
        assert (device_root / "f").read_bytes() == b"ab"

    def test_terminator_without_upload(self, device: SimulatedDevice) -> None:
        """A terminator with no upload ever opened is malformed."""
        assert invoke(device, Command.FILE_UPLOAD, b"\xff\xff") == b"\x43"


class TestFaults:
    """Tests for fault injection."""

    def test_faults_apply_in_order(self, device: SimulatedDevice) -> None:
        """One queued fault per exchange, None leaves an exchange untouched."""
        device.inject(None, Fault.TRANSPORT_ERROR)
        assert invoke(device, Command.EXISTS, b"/\x00") == b"\x00\x01"
        with pytest.raises(TransportError):
            invoke(device, Command.EXISTS, b"/\x00")
        assert invoke(device, Command.EXISTS, b"/\x00") == b"\x00\x01"

    def test_connection_lost_until_reconnect(self, device: SimulatedDevice) -> None:
        """After a lost connection every exchange fails until reconnect."""
        device.inject(Fault.CONNECTION_LOST)
        with pytest.raises(ConnectionLostError):
            invoke(device, Command.FORMAT)
        with pytest.raises(ConnectionLostError):
            invoke(device, Command.FORMAT)
        device.reconnect()
        assert invoke(device, Command.FORMAT) == b"\x00"
        assert device.reconnects == 1

    def test_failing_reconnects(self, device: SimulatedDevice) -> None:
        """Reconnect attempts can be made to fail."""
        device.failing_reconnects = 1
        with pytest.raises(TransportError):
            device.reconnect()
        device.reconnect()
        assert device.reconnects == 2

    def test_corrupt_crc_flips_last_byte(self, device: SimulatedDevice) -> None:
        """The last byte of the response is damaged."""
        device.inject(Fault.CORRUPT_CRC)
        assert invoke(device, Command.EXISTS, b"/\x00") == b"\x00\xfe"
