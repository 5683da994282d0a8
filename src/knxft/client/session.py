"""Chunked upload and download over a bounded control channel.

This module provides:
- TransferSession: Drives one upload or download from the header exchange
  to completion, owning the sequence number, retries and progress

Phases (see TransferPhase):
    IDLE -> HEADER_SENT -> STREAMING -> FINALIZING -> COMPLETED
                        -> FAILED / CANCELLED

Chunk n+1 is only read from the source once chunk n was acknowledged;
a retried chunk is re-sent byte for byte.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import BinaryIO, TypeVar

from knxft.client.progress import ProgressTracker
from knxft.client.retry import ErrorCallback, run_with_retry
from knxft.client.transport import Transport
from knxft.core import codec
from knxft.core.commands import (
    SEQUENCE_MODULUS,
    UPLOAD_CHUNK_HEADER,
    Command,
)
from knxft.core.config import EngineConfig
from knxft.core.errors import TransferCancelledError, check_status
from knxft.core.types import (
    TransferPhase,
    TransferResult,
    TransferState,
    TransferType,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class DownloadChunk:
    """Verified payload of a download chunk and the raw response length."""

    payload: bytes
    response_length: int


def next_sequence(sequence: int) -> int:
    """Advance a sequence number, wrapping at 2^16."""
    return (sequence + 1) % SEQUENCE_MODULUS


class TransferSession:
    """Runs a single chunked transfer against one transport.

    A session is used for exactly one transfer; its TransferState is
    created on start and discarded when the transfer ends.
    """

    def __init__(
        self,
        transport: Transport,
        config: EngineConfig,
        chunk_length: int,
        progress: ProgressTracker | None = None,
        error_callback: ErrorCallback | None = None,
        cancel_event: threading.Event | None = None,
    ) -> None:
        """Initialize the session.

        Args:
            transport: Channel to the device.
            config: Engine configuration (object index, retry bound).
            chunk_length: Chunk length announced in the header exchange.
            progress: Tracker informed after each committed chunk.
            error_callback: Observer for every failed exchange attempt.
            cancel_event: Set by another thread to stop at the next chunk boundary.
        """
        self._transport = transport
        self._config = config
        self._chunk_length = chunk_length
        self._progress = progress or ProgressTracker()
        self._error_callback = error_callback
        self._cancel_event = cancel_event or threading.Event()
        self.state: TransferState | None = None

    @property
    def chunk_length(self) -> int:
        return self._chunk_length

    # =========================================================================
    # Upload
    # =========================================================================

    def upload(
        self,
        path: str,
        source: BinaryIO,
        size: int,
        start_sequence: int = 0,
    ) -> TransferResult:
        """Upload the content of source to path on the device.

        Args:
            path: Remote destination path.
            source: Binary stream positioned at the first byte to send.
            size: Number of bytes expected from source (for progress).
            start_sequence: The first data chunk carries start_sequence + 1.

        Returns:
            TransferResult summary.

        Raises:
            PathTooLongError: If the header does not fit into one frame.
            RemoteStatusError: If the device rejected the transfer.
            TooManyErrorsError: If a chunk failed too often.
            TransferCancelledError: If the transfer was cancelled.
        """
        header = codec.encode_transfer_header(
            path, self._chunk_length, self._transport.max_frame_length
        )
        state = self._begin(path, TransferType.UPLOAD, size)
        logger.info(f"Uploading {path} ({size} bytes, chunk length {self._chunk_length})")

        try:
            self._send_header(state, Command.FILE_UPLOAD, header)
            state.sequence = next_sequence(start_sequence)
            state.transition_to(TransferPhase.STREAMING)

            payload_size = self._chunk_length - UPLOAD_CHUNK_HEADER
            while True:
                self._check_cancelled(state)

                data = source.read(payload_size)
                if not data:
                    break

                request = codec.encode_upload_chunk(state.sequence, data)
                self._exchange_with_retry(
                    state,
                    lambda: self._send_upload_chunk(request),
                    f"chunk {state.sequence} of {path}",
                )
                logger.debug(f"Uploaded chunk {state.sequence}: {len(data)} bytes")
                state.sequence = next_sequence(state.sequence)
                self._progress.commit(state, len(data))

            state.transition_to(TransferPhase.FINALIZING)
            terminator = codec.encode_upload_end()
            self._exchange_with_retry(
                state,
                lambda: self._send_checked(Command.FILE_UPLOAD, terminator),
                f"end of upload of {path}",
            )
            state.transition_to(TransferPhase.COMPLETED)
        except TransferCancelledError:
            raise
        except Exception:
            self._fail(state)
            raise

        return self._finish(state)

    def _send_upload_chunk(self, request: bytes) -> None:
        response = self._send_checked(Command.FILE_UPLOAD, request)
        codec.verify_upload_ack(request, response)

    # =========================================================================
    # Download
    # =========================================================================

    def download(self, path: str, sink: BinaryIO) -> TransferResult:
        """Download path from the device into sink.

        A response shorter than the chunk length marks the last chunk. On
        failure the sink keeps everything written so far.

        Args:
            path: Remote source path.
            sink: Binary stream receiving the file content.

        Returns:
            TransferResult summary.

        Raises:
            PathTooLongError: If the header does not fit into one frame.
            RemoteStatusError: If the device rejected the transfer.
            TooManyErrorsError: If a chunk failed too often.
            TransferCancelledError: If the transfer was cancelled.
        """
        header = codec.encode_transfer_header(
            path, self._chunk_length, self._transport.max_frame_length
        )
        state = self._begin(path, TransferType.DOWNLOAD, 0)
        logger.info(f"Downloading {path} (chunk length {self._chunk_length})")

        try:
            response = self._send_header(state, Command.FILE_DOWNLOAD, header)
            state.bytes_total = codec.decode_download_header(response)
            state.sequence = next_sequence(0)
            state.transition_to(TransferPhase.STREAMING)

            while True:
                self._check_cancelled(state)

                request = codec.encode_download_request(state.sequence)
                chunk = self._exchange_with_retry(
                    state,
                    lambda: self._fetch_download_chunk(request),
                    f"chunk {state.sequence} of {path}",
                )

                sink.write(chunk.payload)
                logger.debug(f"Downloaded chunk {state.sequence}: {len(chunk.payload)} bytes")
                state.sequence = next_sequence(state.sequence)
                self._progress.commit(state, len(chunk.payload))

                if chunk.response_length < self._chunk_length:
                    break

            state.transition_to(TransferPhase.FINALIZING)
            sink.flush()
            state.transition_to(TransferPhase.COMPLETED)
        except TransferCancelledError:
            raise
        except Exception:
            self._fail(state)
            raise

        return self._finish(state)

    def _fetch_download_chunk(self, request: bytes) -> DownloadChunk:
        response = self._send_checked(Command.FILE_DOWNLOAD, request)
        payload = codec.decode_download_chunk(response)
        return DownloadChunk(payload=payload, response_length=len(response))

    # =========================================================================
    # Shared steps
    # =========================================================================

    def _invoke(self, command: Command, payload: bytes | None) -> bytes:
        return self._transport.invoke(self._config.object_index, int(command), payload, True)

    def _begin(self, path: str, transfer_type: TransferType, size: int) -> TransferState:
        if self.state is not None:
            raise RuntimeError("A TransferSession runs a single transfer")
        state = TransferState(
            path=path,
            transfer_type=transfer_type,
            window=self._config.progress_window,
            bytes_total=size,
        )
        self._progress.start(state)
        self.state = state
        return state

    def _send_checked(self, command: Command, payload: bytes | None) -> bytes:
        response = self._invoke(command, payload)
        check_status(response)
        return response

    def _exchange_with_retry(
        self, state: TransferState, exchange: Callable[[], T], description: str
    ) -> T:
        result = run_with_retry(
            exchange,
            self._transport,
            self._config.max_attempts,
            on_error=self._error_callback,
            description=description,
        )
        state.retries += result.failures
        return result.value

    def _send_header(self, state: TransferState, command: Command, header: bytes) -> bytes:
        response = self._exchange_with_retry(
            state,
            lambda: self._send_checked(command, header),
            f"header of {state.path}",
        )
        state.transition_to(TransferPhase.HEADER_SENT)
        return response

    def _check_cancelled(self, state: TransferState) -> None:
        if not self._cancel_event.is_set():
            return
        state.transition_to(TransferPhase.CANCELLED)
        logger.info(f"Cancelling transfer of {state.path} at chunk {state.sequence}")
        self._send_checked(Command.CANCEL, None)
        raise TransferCancelledError(
            f"Transfer of {state.path} cancelled after {state.bytes_done} bytes"
        )

    def _fail(self, state: TransferState) -> None:
        if not state.is_terminal:
            state.transition_to(TransferPhase.FAILED)

    def _finish(self, state: TransferState) -> TransferResult:
        duration = self._progress.elapsed(state)
        result = TransferResult(
            path=state.path,
            transfer_type=state.transfer_type,
            size=state.bytes_done,
            chunks=state.chunks,
            retries=state.retries,
            duration=duration,
        )
        minutes, seconds = divmod(int(duration), 60)
        logger.info(
            f"{state.transfer_type.name.capitalize()} of {state.path} completed in "
            f"{minutes}:{seconds:02d} ({result.average_rate:.0f} bytes/s, "
            f"{state.chunks} chunks, {state.retries} retries)"
        )
        return result
