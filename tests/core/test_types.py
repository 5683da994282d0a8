"""Tests for shared types and the transfer phase machine."""

import pytest

from knxft.core.types import (
    InvalidTransitionError,
    RemoteVersion,
    TransferPhase,
    TransferResult,
    TransferState,
    TransferType,
)


class TestTransferState:
    """Tests for TransferState."""

    def test_fresh_state(self) -> None:
        """New state starts idle at sequence 0."""
        state = TransferState(path="/f", transfer_type=TransferType.UPLOAD)
        assert state.phase == TransferPhase.IDLE
        assert state.sequence == 0
        assert state.bytes_done == 0
        assert len(state.recent_rates) == 0

    def test_ring_buffer_capacity(self) -> None:
        """Ring buffer keeps only the most recent samples."""
        state = TransferState(path="/f", transfer_type=TransferType.UPLOAD, window=5)
        state.recent_rates.extend(range(8))
        assert list(state.recent_rates) == [3, 4, 5, 6, 7]

    def test_happy_path(self) -> None:
        """Should walk through all phases to COMPLETED."""
        state = TransferState(path="/f", transfer_type=TransferType.DOWNLOAD)
        for phase in (
            TransferPhase.HEADER_SENT,
            TransferPhase.STREAMING,
            TransferPhase.FINALIZING,
            TransferPhase.COMPLETED,
        ):
            state.transition_to(phase)
        assert state.is_terminal

    def test_cannot_skip_header(self) -> None:
        """Streaming requires a sent header."""
        state = TransferState(path="/f", transfer_type=TransferType.UPLOAD)
        with pytest.raises(InvalidTransitionError):
            state.transition_to(TransferPhase.STREAMING)

    def test_terminal_phases_are_final(self) -> None:
        """No transition leaves CANCELLED."""
        state = TransferState(path="/f", transfer_type=TransferType.UPLOAD)
        state.transition_to(TransferPhase.HEADER_SENT)
        state.transition_to(TransferPhase.CANCELLED)
        with pytest.raises(InvalidTransitionError):
            state.transition_to(TransferPhase.STREAMING)


class TestValues:
    """Tests for value types."""

    def test_version_str(self) -> None:
        """Version renders as major.minor.build."""
        assert str(RemoteVersion(1, 2, 3)) == "1.2.3"

    def test_average_rate(self) -> None:
        """Average rate is size over duration."""
        result = TransferResult("/f", TransferType.UPLOAD, size=1000, chunks=4, retries=0, duration=2.0)
        assert result.average_rate == 500.0

    def test_average_rate_zero_duration(self) -> None:
        """Instant transfers do not divide by zero."""
        result = TransferResult("/f", TransferType.UPLOAD, size=10, chunks=1, retries=0, duration=0.0)
        assert result.average_rate == 10.0
