"""File transfer engine: the public API of knxft.

This module provides:
- FileTransferEngine: Remote file system operations and chunked transfers
  over a single Transport

Every path-bearing request is checked against the transport's max frame
length before it is sent. Operations on one engine are strictly
sequential; cancel() is the only method that may be called from another
thread while a transfer is running.
"""

from __future__ import annotations

import contextlib
import io
import logging
import os
import threading
from collections.abc import Iterator
from pathlib import Path
from typing import BinaryIO, Union, cast

from knxft.client.listing import DirectoryLister
from knxft.client.progress import ProgressCallback, ProgressTracker
from knxft.client.retry import ErrorCallback
from knxft.client.session import TransferSession
from knxft.client.transport import Transport
from knxft.core import codec
from knxft.core.commands import MAX_CHUNK_LENGTH, MIN_CHUNK_LENGTH, PATH_OVERHEAD, Command
from knxft.core.config import EngineConfig
from knxft.core.errors import (
    IncompatibleVersionError,
    InvalidChunkLengthError,
    check_status,
)
from knxft.core.types import DirectoryEntry, FileInfo, RemoteVersion, TransferResult

logger = logging.getLogger(__name__)

CANCEL_POLL_INTERVAL = 0.05

UploadSource = Union[bytes, bytearray, memoryview, str, os.PathLike, BinaryIO]
DownloadSink = Union[str, os.PathLike, BinaryIO]


class FileTransferEngine:
    """Client side of the device file transfer protocol."""

    def __init__(self, transport: Transport, config: EngineConfig | None = None) -> None:
        """Initialize the engine.

        Args:
            transport: Channel to the device.
            config: Engine configuration (defaults to EngineConfig()).
        """
        self._transport = transport
        self._config = config or EngineConfig()
        self._lock = threading.Lock()
        self._cancel_event = threading.Event()
        self._transfer_active = threading.Event()

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def max_frame_length(self) -> int:
        return self._transport.max_frame_length

    # =========================================================================
    # File system operations
    # =========================================================================

    def format(self) -> None:
        """Format the device file system."""
        logger.info("Formatting device file system")
        with self._lock:
            self._exchange(Command.FORMAT)

    def exists(self, path: str) -> bool:
        """Check whether a file or directory exists on the device."""
        payload = codec.encode_path(path, self.max_frame_length)
        with self._lock:
            response = self._exchange(Command.EXISTS, payload)
        return codec.decode_exists(response)

    def rename(self, path: str, new_path: str) -> None:
        """Rename a remote file."""
        payload = codec.encode_rename(path, new_path, self.max_frame_length)
        logger.info(f"Renaming {path} to {new_path}")
        with self._lock:
            self._exchange(Command.RENAME, payload)

    def delete(self, path: str) -> None:
        """Delete a remote file."""
        payload = codec.encode_path(path, self.max_frame_length)
        logger.info(f"Deleting {path}")
        with self._lock:
            self._exchange(Command.FILE_DELETE, payload)

    def info(self, path: str) -> FileInfo:
        """Get size and checksum of a remote file."""
        payload = codec.encode_path(path, self.max_frame_length)
        with self._lock:
            response = self._exchange(Command.FILE_INFO, payload)
        info = codec.decode_file_info(response)
        logger.info(f"File: {path} - Size: {info.size} bytes - CRC: {info.crc_hex}")
        return info

    def mkdir(self, path: str) -> None:
        """Create a remote directory."""
        payload = codec.encode_path(path, self.max_frame_length)
        logger.info(f"Creating directory {path}")
        with self._lock:
            self._exchange(Command.DIR_CREATE, payload)

    def rmdir(self, path: str) -> None:
        """Delete a remote directory."""
        payload = codec.encode_path(path, self.max_frame_length)
        logger.info(f"Deleting directory {path}")
        with self._lock:
            self._exchange(Command.DIR_DELETE, payload)

    def list_dir(self, path: str) -> list[DirectoryEntry]:
        """List a remote directory.

        Returns:
            Entries in device order (not sorted).
        """
        lister = DirectoryLister(self._transport, self._config.object_index)
        with self._lock:
            return lister.list(path)

    # =========================================================================
    # Transfers
    # =========================================================================

    def upload(
        self,
        path: str,
        source: UploadSource,
        chunk_length: int | None = None,
        start_sequence: int = 0,
        progress_callback: ProgressCallback | None = None,
        error_callback: ErrorCallback | None = None,
    ) -> TransferResult:
        """Upload data to a remote file.

        Args:
            path: Remote destination path.
            source: Bytes, a local file path, or a readable binary stream.
            chunk_length: Overrides the configured chunk length.
            start_sequence: The first data chunk carries start_sequence + 1.
            progress_callback: Informed after each committed chunk.
            error_callback: Informed about every retried exchange.

        Returns:
            TransferResult summary.
        """
        session = self._new_session(chunk_length, progress_callback, error_callback)
        with self._lock, _open_source(source) as (stream, size), self._running_transfer():
            return session.upload(path, stream, size, start_sequence=start_sequence)

    def download(
        self,
        path: str,
        sink: DownloadSink,
        chunk_length: int | None = None,
        progress_callback: ProgressCallback | None = None,
        error_callback: ErrorCallback | None = None,
    ) -> TransferResult:
        """Download a remote file.

        A local file given by path is only created or truncated once the
        first chunk arrives, so a rejected request leaves it untouched. After
        that it keeps its partial content if the transfer fails.

        Args:
            path: Remote source path.
            sink: Local file path or writable binary stream.
            chunk_length: Overrides the configured chunk length.
            progress_callback: Informed after each committed chunk.
            error_callback: Informed about every retried exchange.

        Returns:
            TransferResult summary.
        """
        session = self._new_session(chunk_length, progress_callback, error_callback)
        with self._lock, _open_sink(sink) as stream, self._running_transfer():
            return session.download(path, stream)

    def download_bytes(
        self,
        path: str,
        chunk_length: int | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> bytes:
        """Download a remote file into memory."""
        buffer = io.BytesIO()
        self.download(path, buffer, chunk_length=chunk_length, progress_callback=progress_callback)
        return buffer.getvalue()

    def cancel(self) -> None:
        """Cancel the running transfer, or the device-side operation.

        While a transfer runs, the request is recorded and the transfer
        stops at its next chunk boundary. Otherwise the cancel command is
        sent as soon as the engine is free, after any other operation in
        progress has finished.
        """
        while True:
            if self._transfer_active.is_set():
                logger.info("Cancel requested, stopping at the next chunk boundary")
                self._cancel_event.set()
                return
            if self._lock.acquire(timeout=CANCEL_POLL_INTERVAL):
                break
        try:
            self._exchange(Command.CANCEL)
        finally:
            self._lock.release()

    # =========================================================================
    # Version
    # =========================================================================

    def get_version(self) -> RemoteVersion:
        """Query the firmware version of the file transfer object."""
        with self._lock:
            response = self._invoke(Command.GET_VERSION)
        return codec.decode_version(response)

    def check_version(self) -> RemoteVersion:
        """Query the remote version and enforce major version compatibility.

        Raises:
            IncompatibleVersionError: If the remote major version differs from
                the local one.
        """
        version = self.get_version()
        if version.major != self._config.local_major:
            raise IncompatibleVersionError(version, self._config.local_major)
        logger.info(f"Remote version {version} is compatible")
        return version

    # =========================================================================
    # Helpers
    # =========================================================================

    def resolve_chunk_length(self, chunk_length: int | None = None) -> int:
        """Pick and validate the chunk length for a transfer.

        Raises:
            InvalidChunkLengthError: If the length is out of range or exceeds
                the transport's frame length.
        """
        length = chunk_length if chunk_length is not None else self._config.chunk_length
        if length is None:
            length = min(MAX_CHUNK_LENGTH, self.max_frame_length - PATH_OVERHEAD)
        if not MIN_CHUNK_LENGTH <= length <= MAX_CHUNK_LENGTH:
            raise InvalidChunkLengthError(
                f"Chunk length {length} outside {MIN_CHUNK_LENGTH}..{MAX_CHUNK_LENGTH}"
            )
        if length + PATH_OVERHEAD > self.max_frame_length:
            raise InvalidChunkLengthError(
                f"Chunk length {length} too large for the max frame length of "
                f"{self.max_frame_length}"
            )
        return length

    def _new_session(
        self,
        chunk_length: int | None,
        progress_callback: ProgressCallback | None,
        error_callback: ErrorCallback | None,
    ) -> TransferSession:
        observers = [progress_callback] if progress_callback else []
        return TransferSession(
            self._transport,
            self._config,
            self.resolve_chunk_length(chunk_length),
            progress=ProgressTracker(observers),
            error_callback=error_callback,
            cancel_event=self._cancel_event,
        )

    @contextlib.contextmanager
    def _running_transfer(self) -> Iterator[None]:
        # Caller holds the lock
        self._cancel_event.clear()
        self._transfer_active.set()
        try:
            yield
        finally:
            self._transfer_active.clear()

    def _invoke(self, command: Command, payload: bytes | None = None) -> bytes:
        return self._transport.invoke(self._config.object_index, int(command), payload, True)

    def _exchange(self, command: Command, payload: bytes | None = None) -> bytes:
        response = self._invoke(command, payload)
        check_status(response)
        return response


@contextlib.contextmanager
def _open_source(source: UploadSource) -> Iterator[tuple[BinaryIO, int]]:
    """Yield a readable stream and its size for any supported upload source."""
    if isinstance(source, (bytes, bytearray, memoryview)):
        data = bytes(source)
        yield io.BytesIO(data), len(data)
    elif isinstance(source, (str, os.PathLike)):
        with open(source, "rb") as f:
            yield f, os.fstat(f.fileno()).st_size
    else:
        yield source, _remaining_size(source)


@contextlib.contextmanager
def _open_sink(sink: DownloadSink) -> Iterator[BinaryIO]:
    """Yield a writable stream for any supported download sink."""
    if isinstance(sink, (str, os.PathLike)):
        deferred = _DeferredFile(Path(sink))
        try:
            yield cast(BinaryIO, deferred)
        finally:
            deferred.close()
    else:
        yield sink


class _DeferredFile:
    """Local download target opened on the first write.

    Creating or truncating the file waits until the device delivered data.
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._file: BinaryIO | None = None

    def write(self, data: bytes) -> int:
        if self._file is None:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._file = open(self._path, "wb")
        return self._file.write(data)

    def flush(self) -> None:
        if self._file is not None:
            self._file.flush()

    def close(self) -> None:
        if self._file is not None:
            self._file.close()


def _remaining_size(stream: BinaryIO) -> int:
    """Bytes left in a seekable stream, 0 if the size cannot be known."""
    try:
        if not stream.seekable():
            return 0
        position = stream.tell()
        end = stream.seek(0, io.SEEK_END)
        stream.seek(position)
    except (AttributeError, OSError):
        return 0
    return end - position
