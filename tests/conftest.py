"""Shared fixtures for knxft tests."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from knxft.client.engine import FileTransferEngine
from knxft.client.simulator import SimulatedDevice
from knxft.client.transport import Transport
from knxft.core.config import EngineConfig


@pytest.fixture
def device_root(tmp_path: Path) -> Path:
    """Directory backing the simulated device."""
    root = tmp_path / "device"
    root.mkdir()
    return root


@pytest.fixture
def device(device_root: Path) -> SimulatedDevice:
    """Create a SimulatedDevice."""
    return SimulatedDevice(device_root)


@pytest.fixture
def engine(device: SimulatedDevice) -> FileTransferEngine:
    """Create an engine talking to the simulated device (chunk length 32)."""
    return FileTransferEngine(device, EngineConfig(chunk_length=32))


@pytest.fixture
def mock_transport() -> MagicMock:
    """Create a scripted Transport mock with a 64 byte frame limit."""
    transport = MagicMock(spec=Transport)
    transport.max_frame_length = 64
    return transport
