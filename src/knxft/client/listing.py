"""Directory listing paginated over single-entry exchanges.

This module provides:
- DirectoryLister: Collects the entries of a remote directory
"""

from __future__ import annotations

import logging

from knxft.client.transport import Transport
from knxft.core import codec
from knxft.core.commands import OBJECT_INDEX, Command
from knxft.core.errors import check_status
from knxft.core.types import DirectoryEntry

logger = logging.getLogger(__name__)


class DirectoryLister:
    """Reads a directory listing one entry per exchange.

    The first exchange carries the ASCII path, every following one has no
    payload. The listing ends with an entry of kind 0x00. The result is
    all-or-nothing and every call restarts from the first entry.
    """

    def __init__(self, transport: Transport, object_index: int = OBJECT_INDEX) -> None:
        self._transport = transport
        self._object_index = object_index

    def list(self, path: str) -> list[DirectoryEntry]:
        """List the entries of a remote directory.

        Args:
            path: Remote directory path (ASCII).

        Returns:
            Entries in the order the device returned them.

        Raises:
            PathTooLongError: If the path does not fit into one frame.
            UnicodeEncodeError: If the path is not ASCII.
            RemoteStatusError: If the device aborted the listing.
            MalformedResponseError: On an unknown entry kind.
        """
        payload = codec.encode_path(path, self._transport.max_frame_length, encoding="ascii")
        logger.debug(f"Listing {path}")

        entries: list[DirectoryEntry] = []
        request: bytes | None = payload
        while True:
            response = self._transport.invoke(
                self._object_index, int(Command.DIR_LIST), request, True
            )
            check_status(response)
            entry = codec.decode_dir_entry(response)
            if entry is None:
                break
            entries.append(entry)
            request = None

        logger.debug(f"Listed {path}: {len(entries)} entries")
        return entries
