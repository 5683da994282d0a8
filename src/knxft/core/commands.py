"""Opcodes and framing constants of the file transfer protocol.

Every exchange goes through a single function property of the remote
device (``OBJECT_INDEX``); the opcode selects the operation.
"""

from __future__ import annotations

from enum import IntEnum

# Function property channel used for every file transfer exchange
OBJECT_INDEX = 159


class Command(IntEnum):
    """File transfer opcodes.

    Values are part of the wire contract and must never change.
    """

    FORMAT = 0
    EXISTS = 1
    RENAME = 2
    FILE_UPLOAD = 40
    FILE_DOWNLOAD = 41
    FILE_DELETE = 42
    FILE_INFO = 43
    DIR_LIST = 80
    DIR_CREATE = 81
    DIR_DELETE = 82
    CANCEL = 90
    GET_VERSION = 100


# Bytes the transport adds around every payload (opcode framing)
PATH_OVERHEAD = 2

# Upload chunk request: sequence (2) + byte count (1)
UPLOAD_CHUNK_HEADER = 3

# Download chunk response: status (1) + sequence (2) + length (1) + crc (2)
DOWNLOAD_CHUNK_OVERHEAD = 6

# Sequence number sent after the last upload chunk
END_OF_UPLOAD = 0xFFFF

# The chunk length travels as a single byte in the header exchange
MAX_CHUNK_LENGTH = 255
MIN_CHUNK_LENGTH = DOWNLOAD_CHUNK_OVERHEAD + 1

SEQUENCE_MODULUS = 1 << 16

STATUS_OK = 0x00
