"""Transport abstraction for the file transfer engine.

This module provides:
- Transport: Abstract request/response channel to one device

Concrete transports (a bus connection, a gateway, the SimulatedDevice)
live outside the protocol engine. They raise TransportError on link
failures and ConnectionLostError when the session dropped.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class Transport(ABC):
    """Abstract request/response channel to a device."""

    @property
    @abstractmethod
    def max_frame_length(self) -> int:
        """Return the negotiated ceiling on payload size for invoke()."""

    @abstractmethod
    def invoke(
        self,
        object_index: int,
        command: int,
        payload: bytes | None,
        wait_for_response: bool = True,
    ) -> bytes:
        """Perform one exchange with the device.

        Args:
            object_index: Function property channel.
            command: Opcode of the operation.
            payload: Request bytes, or None for commands without payload.
            wait_for_response: Whether to wait for the device's answer.

        Returns:
            Response bytes (empty if no response was awaited).

        Raises:
            TransportError: If the exchange failed on the link.
            ConnectionLostError: If the session to the device dropped.
        """

    @abstractmethod
    def reconnect(self) -> None:
        """Re-establish the session after a dropped connection.

        Raises:
            TransportError: If the device could not be reached.
        """
