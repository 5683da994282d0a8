"""Transfer progress: percentage, smoothed throughput and ETA.

This module provides:
- ProgressTracker: Updates a TransferState after each committed chunk and
  informs zero or more observers
- format_progress: One-line rendering used by the CLI
"""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable, Iterable

from knxft.core.types import TransferProgress, TransferState

logger = logging.getLogger(__name__)

# Type alias for progress callback
ProgressCallback = Callable[[TransferProgress], None]


class ProgressTracker:
    """Derives progress events from byte counters and wall-clock deltas.

    Progress is advisory: an observer raising an exception is logged and
    never aborts the transfer.
    """

    def __init__(
        self,
        observers: Iterable[ProgressCallback] = (),
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the tracker.

        Args:
            observers: Callbacks informed after each committed chunk.
            clock: Monotonic time source in seconds (injectable for tests).
        """
        self._observers: list[ProgressCallback] = list(observers)
        self._clock = clock

    def subscribe(self, observer: ProgressCallback) -> None:
        """Add an observer."""
        self._observers.append(observer)

    def start(self, state: TransferState) -> None:
        """Reset the timing of a freshly created transfer."""
        now = self._clock()
        state.started_at = now
        state.last_commit_at = now
        state.recent_rates.clear()

    def elapsed(self, state: TransferState) -> float:
        """Seconds since the transfer started."""
        return self._clock() - state.started_at

    def commit(self, state: TransferState, chunk_bytes: int) -> TransferProgress:
        """Record a committed chunk and notify observers.

        Args:
            state: State of the running transfer.
            chunk_bytes: Payload bytes in the committed chunk.

        Returns:
            The emitted progress event.
        """
        now = self._clock()
        elapsed = now - state.last_commit_at
        state.last_commit_at = now
        state.bytes_done += chunk_bytes
        state.chunks += 1

        if elapsed > 0:
            state.recent_rates.append(chunk_bytes / elapsed)

        progress = snapshot(state)
        for observer in self._observers:
            try:
                observer(progress)
            except Exception as e:
                logger.warning(f"Progress observer failed: {e}")
        return progress


def smoothed_rate(state: TransferState) -> float | None:
    """Average of the throughput ring buffer, None while it is empty."""
    if not state.recent_rates:
        return None
    return sum(state.recent_rates) / len(state.recent_rates)


def snapshot(state: TransferState) -> TransferProgress:
    """Compute the progress figures of a transfer.

    percent is None while the total is unknown or zero, eta is None while
    no throughput sample is available.
    """
    percent: int | None = None
    if state.bytes_total > 0:
        percent = min(100, state.bytes_done * 100 // state.bytes_total)

    rate = smoothed_rate(state)
    eta: int | None = None
    if rate and state.bytes_total > 0:
        remaining = max(0, state.bytes_total - state.bytes_done)
        eta = math.floor(remaining / rate)

    return TransferProgress(
        path=state.path,
        transfer_type=state.transfer_type,
        bytes_done=state.bytes_done,
        bytes_total=state.bytes_total,
        percent=percent,
        rate=rate,
        eta=eta,
        sequence=state.sequence,
    )


def format_progress(progress: TransferProgress) -> str:
    """Render a progress event as a single status line."""
    percent = "--" if progress.percent is None else f"{progress.percent:3d}"
    rate = "--" if progress.rate is None else f"{progress.rate:.0f}"
    eta = "--" if progress.eta is None else f"{progress.eta // 60}:{progress.eta % 60:02d}"
    return (
        f"{percent}% {progress.bytes_done}/{progress.bytes_total} bytes "
        f"{rate} B/s ETA {eta}"
    )
