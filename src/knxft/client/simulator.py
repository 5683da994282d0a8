"""Simulated device for development and testing.

This module provides:
- Fault: Impairments that can be injected into the next exchanges
- SimulatedDevice: A Transport playing the device side of the file transfer
  protocol against a local directory

Remote paths are resolved below the root directory ("/" is the root).
Directory listings are returned in name order.
"""

from __future__ import annotations

import logging
import shutil
import struct
from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import Path, PurePosixPath

from knxft.client.transport import Transport
from knxft.core.codec import ENTRY_DIR, ENTRY_END, ENTRY_FILE, crc16
from knxft.core.commands import (
    DOWNLOAD_CHUNK_OVERHEAD,
    END_OF_UPLOAD,
    OBJECT_INDEX,
    PATH_OVERHEAD,
    STATUS_OK,
    UPLOAD_CHUNK_HEADER,
    Command,
)
from knxft.core.errors import ConnectionLostError, TransportError
from knxft.core.version import ENGINE_VERSION

logger = logging.getLogger(__name__)

DEFAULT_MAX_FRAME_LENGTH = 254

# Status returned for opcodes the device does not implement
STATUS_UNSUPPORTED = 0xFF


class Fault(Enum):
    """Impairment applied to one exchange."""

    TRANSPORT_ERROR = auto()  # request lost, device unchanged
    CONNECTION_LOST = auto()  # link dropped, reconnect required
    DROP_RESPONSE = auto()  # device processed the request, response lost
    CORRUPT_CRC = auto()  # device processed the request, checksum damaged


class DeviceStatusError(Exception):
    """Internal: aborts a command with a status code."""

    def __init__(self, code: int) -> None:
        super().__init__(f"status 0x{code:02X}")
        self.code = code


@dataclass
class _Upload:
    target: Path
    chunk_length: int
    data: bytearray = field(default_factory=bytearray)
    last_sequence: int | None = None


@dataclass
class _Download:
    data: bytes
    payload_size: int
    offset: int = 0
    last_sequence: int | None = None
    last_response: bytes = b""


@dataclass(frozen=True)
class Exchange:
    """A request received by the simulated device."""

    command: int
    payload: bytes | None


class SimulatedDevice(Transport):
    """Device emulator backed by a local directory."""

    def __init__(
        self,
        root: Path | str,
        max_frame_length: int = DEFAULT_MAX_FRAME_LENGTH,
        version: tuple[int, int, int] = ENGINE_VERSION,
    ) -> None:
        """Initialize the simulated device.

        Args:
            root: Directory holding the device file system.
            max_frame_length: Frame ceiling advertised to the client.
            version: Firmware version reported by GetVersion.
        """
        self._root = Path(root).resolve()
        self._root.mkdir(parents=True, exist_ok=True)
        self._max_frame_length = max_frame_length
        self.version = version

        self.connected = True
        self.exchanges: list[Exchange] = []
        self.reconnects = 0
        self.failing_reconnects = 0
        self._faults: deque[Fault | None] = deque()

        self._upload: _Upload | None = None
        self._upload_closed = False
        self._download: _Download | None = None
        self._listing: deque[tuple[int, str]] | None = None

    @property
    def root(self) -> Path:
        return self._root

    @property
    def max_frame_length(self) -> int:
        return self._max_frame_length

    # =========================================================================
    # Fault injection
    # =========================================================================

    def inject(self, *faults: Fault | None) -> None:
        """Apply faults to the next exchanges, one per exchange (None leaves one untouched)."""
        self._faults.extend(faults)

    def inject_repeated(self, fault: Fault, count: int) -> None:
        """Apply the same fault to the next count exchanges."""
        self._faults.extend([fault] * count)

    def commands(self) -> list[int]:
        """Opcodes of all received exchanges, in order."""
        return [exchange.command for exchange in self.exchanges]

    # =========================================================================
    # Transport
    # =========================================================================

    def reconnect(self) -> None:
        self.reconnects += 1
        if self.failing_reconnects > 0:
            self.failing_reconnects -= 1
            raise TransportError("Device not reachable")
        self.connected = True

    def invoke(
        self,
        object_index: int,
        command: int,
        payload: bytes | None,
        wait_for_response: bool = True,
    ) -> bytes:
        if not self.connected:
            raise ConnectionLostError("Device not connected")
        if object_index != OBJECT_INDEX:
            raise TransportError(f"No function property at object index {object_index}")
        if payload is not None and len(payload) + PATH_OVERHEAD > self._max_frame_length:
            raise TransportError(
                f"Frame of {len(payload) + PATH_OVERHEAD} bytes exceeds {self._max_frame_length}"
            )

        self.exchanges.append(Exchange(command, payload))
        fault = self._faults.popleft() if self._faults else None

        if fault is Fault.TRANSPORT_ERROR:
            raise TransportError("Simulated transport error")
        if fault is Fault.CONNECTION_LOST:
            self.connected = False
            raise ConnectionLostError("Simulated connection loss")

        response = self._handle(command, payload)

        if fault is Fault.DROP_RESPONSE:
            raise TransportError("Simulated lost response")
        if fault is Fault.CORRUPT_CRC and len(response) >= 2:
            response = response[:-1] + bytes([response[-1] ^ 0xFF])

        return response if wait_for_response else b""

    # =========================================================================
    # Command handlers
    # =========================================================================

    def _handle(self, command: int, payload: bytes | None) -> bytes:
        handlers = {
            Command.FORMAT: self._format,
            Command.EXISTS: self._exists,
            Command.RENAME: self._rename,
            Command.FILE_UPLOAD: self._file_upload,
            Command.FILE_DOWNLOAD: self._file_download,
            Command.FILE_DELETE: self._file_delete,
            Command.FILE_INFO: self._file_info,
            Command.DIR_LIST: self._dir_list,
            Command.DIR_CREATE: self._dir_create,
            Command.DIR_DELETE: self._dir_delete,
            Command.CANCEL: self._cancel,
        }
        if command == Command.GET_VERSION:
            return struct.pack(">HHH", *self.version)

        handler = handlers.get(command)
        if handler is None:
            return bytes([STATUS_UNSUPPORTED])
        try:
            return bytes([STATUS_OK]) + handler(payload or b"")
        except DeviceStatusError as e:
            logger.debug(f"Simulated device rejected command {command}: {e}")
            return bytes([e.code])

    def _resolve(self, raw: bytes, error_code: int) -> Path:
        name = raw.decode("utf-8", errors="replace")
        parts = [p for p in PurePosixPath(name).parts if p not in ("/", "")]
        if ".." in parts:
            raise DeviceStatusError(error_code)
        return self._root.joinpath(*parts)

    def _path_arg(self, payload: bytes, error_code: int) -> Path:
        return self._resolve(payload.split(b"\x00", 1)[0], error_code)

    def _format(self, payload: bytes) -> bytes:
        self._reset_handles()
        try:
            for child in self._root.iterdir():
                if child.is_dir():
                    shutil.rmtree(child)
                else:
                    child.unlink()
        except OSError as e:
            raise DeviceStatusError(0x02) from e
        return b""

    def _exists(self, payload: bytes) -> bytes:
        path = self._path_arg(payload, 0x42)
        return b"\x01" if path.exists() else b"\x00"

    def _rename(self, payload: bytes) -> bytes:
        old_raw, _, rest = payload.partition(b"\x00")
        new_raw = rest.split(b"\x00", 1)[0]
        source = self._resolve(old_raw, 0x45)
        target = self._resolve(new_raw, 0x45)
        if not source.exists() or target.exists():
            raise DeviceStatusError(0x45)
        try:
            source.rename(target)
        except OSError as e:
            raise DeviceStatusError(0x45) from e
        return b""

    def _file_upload(self, payload: bytes) -> bytes:
        if self._upload is None:
            if self._upload_closed and payload == struct.pack("<H", END_OF_UPLOAD):
                # Terminator repeated after a lost acknowledgement
                return b""
            return self._open_upload(payload)
        if len(payload) < 2:
            raise DeviceStatusError(0x43)

        sequence = struct.unpack_from("<H", payload, 0)[0]
        if sequence == 0 and self._upload.last_sequence != END_OF_UPLOAD:
            # A new header replaces an abandoned upload
            return self._open_upload(payload)
        if sequence == END_OF_UPLOAD and len(payload) == 2:
            upload, self._upload = self._upload, None
            try:
                upload.target.write_bytes(bytes(upload.data))
            except OSError as e:
                raise DeviceStatusError(0x47) from e
            self._upload_closed = True
            return b""

        if len(payload) < UPLOAD_CHUNK_HEADER:
            raise DeviceStatusError(0x43)
        count = payload[2]
        if count > upload_payload_size(self._upload.chunk_length):
            raise DeviceStatusError(0x04)
        if sequence != self._upload.last_sequence:
            self._upload.data.extend(payload[UPLOAD_CHUNK_HEADER : UPLOAD_CHUNK_HEADER + count])
            self._upload.last_sequence = sequence
        return struct.pack("<H", sequence) + struct.pack(">H", crc16(payload))

    def _open_upload(self, payload: bytes) -> bytes:
        if len(payload) < 4:
            raise DeviceStatusError(0x43)
        chunk_length = payload[2]
        if chunk_length + PATH_OVERHEAD > self._max_frame_length:
            raise DeviceStatusError(0x04)
        target = self._path_arg(payload[3:], 0x42)
        if not target.parent.is_dir() or target.is_dir():
            raise DeviceStatusError(0x42)
        self._upload = _Upload(target=target, chunk_length=chunk_length)
        self._upload_closed = False
        return b""

    def _file_download(self, payload: bytes) -> bytes:
        if len(payload) > 2:
            return self._open_download(payload)
        if self._download is None:
            raise DeviceStatusError(0x43)

        download = self._download
        sequence = struct.unpack_from("<H", payload, 0)[0]
        if sequence == download.last_sequence:
            return download.last_response

        data = download.data[download.offset : download.offset + download.payload_size]
        download.offset += len(data)
        body = struct.pack("<HB", sequence, len(data)) + data
        response = body + struct.pack(">H", crc16(body))
        download.last_sequence = sequence
        download.last_response = response
        return response

    def _open_download(self, payload: bytes) -> bytes:
        chunk_length = payload[2]
        if chunk_length + PATH_OVERHEAD > self._max_frame_length:
            raise DeviceStatusError(0x04)
        source = self._path_arg(payload[3:], 0x42)
        if not source.is_file():
            raise DeviceStatusError(0x42)
        data = source.read_bytes()
        self._download = _Download(
            data=data, payload_size=chunk_length - DOWNLOAD_CHUNK_OVERHEAD
        )
        return struct.pack("<I", len(data))

    def _file_delete(self, payload: bytes) -> bytes:
        path = self._path_arg(payload, 0x44)
        if not path.is_file():
            raise DeviceStatusError(0x44)
        try:
            path.unlink()
        except OSError as e:
            raise DeviceStatusError(0x44) from e
        return b""

    def _file_info(self, payload: bytes) -> bytes:
        path = self._path_arg(payload, 0x42)
        if not path.is_file():
            raise DeviceStatusError(0x42)
        data = path.read_bytes()
        return struct.pack(">IHH", len(data), crc16(data), 0)

    def _dir_list(self, payload: bytes) -> bytes:
        if payload:
            directory = self._path_arg(payload, 0x82)
            if not directory.is_dir():
                raise DeviceStatusError(0x82)
            self._listing = deque(_list_entries(directory.iterdir()))
        if self._listing is None:
            raise DeviceStatusError(0x83)

        if not self._listing:
            self._listing = None
            return bytes([ENTRY_END])
        kind, name = self._listing.popleft()
        return bytes([kind]) + name.encode("ascii", errors="replace")

    def _dir_create(self, payload: bytes) -> bytes:
        path = self._path_arg(payload, 0x85)
        try:
            path.mkdir()
        except OSError as e:
            raise DeviceStatusError(0x85) from e
        return b""

    def _dir_delete(self, payload: bytes) -> bytes:
        path = self._path_arg(payload, 0x84)
        if path == self._root:
            raise DeviceStatusError(0x84)
        try:
            path.rmdir()
        except OSError as e:
            raise DeviceStatusError(0x84) from e
        return b""

    def _cancel(self, payload: bytes) -> bytes:
        self._reset_handles()
        return b""

    def _reset_handles(self) -> None:
        self._upload = None
        self._upload_closed = False
        self._download = None
        self._listing = None


def upload_payload_size(chunk_length: int) -> int:
    """Payload bytes carried by one upload chunk."""
    return chunk_length - UPLOAD_CHUNK_HEADER


def _list_entries(children: Iterable[Path]) -> list[tuple[int, str]]:
    return [
        (ENTRY_DIR if child.is_dir() else ENTRY_FILE, child.name)
        for child in sorted(children, key=lambda p: p.name)
    ]
