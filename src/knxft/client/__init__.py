"""Client module - Protocol engine for device file transfer.

Architecture:
    FileTransferEngine → TransferSession / DirectoryLister → Transport

Components:
- **FileTransferEngine**: Public API, validates requests and serializes exchanges
- **TransferSession**: Chunked upload/download with sequence numbers and retries
- **DirectoryLister**: Paginated directory listing
- **ProgressTracker**: Percentage, smoothed throughput and ETA
- **Transport**: Abstract request/response channel (implemented outside the engine)
- **SimulatedDevice**: Directory-backed device emulator
"""

from knxft.client.engine import DownloadSink, FileTransferEngine, UploadSource
from knxft.client.listing import DirectoryLister
from knxft.client.progress import ProgressCallback, ProgressTracker, format_progress
from knxft.client.retry import (
    Committed,
    ErrorCallback,
    Fatal,
    Retryable,
    attempt_exchange,
    run_with_retry,
)
from knxft.client.session import TransferSession
from knxft.client.simulator import Fault, SimulatedDevice
from knxft.client.transport import Transport

__all__ = [
    # Engine
    "DownloadSink",
    "FileTransferEngine",
    "UploadSource",
    # Components
    "DirectoryLister",
    "TransferSession",
    # Progress
    "ProgressCallback",
    "ProgressTracker",
    "format_progress",
    # Retry
    "Committed",
    "ErrorCallback",
    "Fatal",
    "Retryable",
    "attempt_exchange",
    "run_with_retry",
    # Transport
    "Fault",
    "SimulatedDevice",
    "Transport",
]
