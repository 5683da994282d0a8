"""Frame encoding and decoding for every file transfer command.

All functions are pure: they build request payloads and pick apart
response bytes, nothing else. Layouts:

    path            UTF-8 path + NUL
    transfer header sequence 0 (LE u16) + chunk length (u8) + path + NUL
    upload chunk    sequence (LE u16) + byte count (u8) + payload
    upload ack      status (u8) + sequence (2) + crc16 of request (BE u16)
    download chunk  request: sequence (LE u16)
                    response: status + sequence (2) + length (u8) + payload + crc16 (BE u16)
    file info       status + size (BE u32) + crc (4 bytes)
    exists          status + flag (u8)
    dir entry       status + kind (u8) + ASCII name
    version         major, minor, build (BE u16 each)
"""

from __future__ import annotations

import struct

import crcmod.predefined

from knxft.core.commands import (
    DOWNLOAD_CHUNK_OVERHEAD,
    END_OF_UPLOAD,
    MAX_CHUNK_LENGTH,
    PATH_OVERHEAD,
    SEQUENCE_MODULUS,
    UPLOAD_CHUNK_HEADER,
)
from knxft.core.errors import (
    ChecksumMismatchError,
    MalformedResponseError,
    PathTooLongError,
)
from knxft.core.types import DirectoryEntry, FileInfo, RemoteVersion

# CRC-16/CCITT-FALSE (poly 0x1021, init 0xFFFF), same table as the device firmware
_crc16_func = crcmod.predefined.mkCrcFun("crc-ccitt-false")

# Directory listing entry kinds
ENTRY_END = 0x00
ENTRY_FILE = 0x01
ENTRY_DIR = 0x02

NUL = b"\x00"


def crc16(data: bytes) -> int:
    """Compute the CRC16 of an exchanged byte sequence."""
    return int(_crc16_func(bytes(data)))


def check_frame_length(payload: bytes, max_frame_length: int) -> bytes:
    """Ensure a path-bearing payload fits into one frame.

    Raises:
        PathTooLongError: If payload plus framing overhead exceeds the limit.
    """
    length = len(payload) + PATH_OVERHEAD
    if length > max_frame_length:
        raise PathTooLongError(length, max_frame_length)
    return payload


def encode_path(path: str, max_frame_length: int, encoding: str = "utf-8") -> bytes:
    """Encode a path as NUL-terminated bytes.

    Args:
        path: Remote path (case-sensitive).
        max_frame_length: Current frame ceiling of the transport.
        encoding: "utf-8" for file operations, "ascii" for directory listing.

    Raises:
        PathTooLongError: If the encoded path does not fit into one frame.
    """
    return check_frame_length(path.encode(encoding) + NUL, max_frame_length)


def encode_rename(path: str, new_path: str, max_frame_length: int) -> bytes:
    """Encode both paths of a rename back to back."""
    payload = path.encode("utf-8") + NUL + new_path.encode("utf-8") + NUL
    return check_frame_length(payload, max_frame_length)


def encode_transfer_header(path: str, chunk_length: int, max_frame_length: int) -> bytes:
    """Encode the first exchange of an upload or download.

    The header always carries sequence 0, followed by the chunk length the
    client wants to use for the rest of the transfer.
    """
    if not 0 < chunk_length <= MAX_CHUNK_LENGTH:
        raise ValueError(f"chunk_length must be in 1..{MAX_CHUNK_LENGTH}, got {chunk_length}")
    payload = struct.pack("<HB", 0, chunk_length) + path.encode("utf-8") + NUL
    return check_frame_length(payload, max_frame_length)


def encode_sequence(sequence: int) -> bytes:
    """Encode a sequence number (little-endian u16)."""
    return struct.pack("<H", sequence % SEQUENCE_MODULUS)


def encode_upload_chunk(sequence: int, payload: bytes) -> bytes:
    """Encode one upload chunk: sequence, byte count and the payload."""
    if len(payload) > MAX_CHUNK_LENGTH - UPLOAD_CHUNK_HEADER:
        raise ValueError(f"Chunk payload too large: {len(payload)} bytes")
    return encode_sequence(sequence) + bytes([len(payload)]) + payload


def encode_upload_end() -> bytes:
    """Encode the terminator sent once the upload source is exhausted."""
    return encode_sequence(END_OF_UPLOAD)


def encode_download_request(sequence: int) -> bytes:
    """Encode a request for the next download chunk."""
    return encode_sequence(sequence)


def decode_status(response: bytes) -> int:
    """Return the status byte of a response."""
    if not response:
        raise MalformedResponseError("Empty response, status byte missing")
    return response[0]


def _require(response: bytes, length: int, what: str) -> None:
    if len(response) < length:
        raise MalformedResponseError(
            f"{what} response too short: {len(response)} bytes, expected {length}"
        )


def decode_upload_ack(response: bytes) -> int:
    """Return the CRC16 the device computed over the received chunk request."""
    _require(response, 5, "Upload")
    return int((response[3] << 8) | response[4])


def verify_upload_ack(request: bytes, response: bytes) -> None:
    """Compare the CRC16 of the sent request with the one echoed by the device.

    Raises:
        ChecksumMismatchError: If the device saw different bytes.
    """
    expected = crc16(request)
    received = decode_upload_ack(response)
    if expected != received:
        raise ChecksumMismatchError(expected, received)


def decode_download_header(response: bytes) -> int:
    """Return the total file size announced by the download header (LE u32)."""
    _require(response, 5, "Download header")
    size: int = struct.unpack_from("<I", response, 1)[0]
    return size


def decode_download_chunk(response: bytes) -> bytes:
    """Verify a download chunk response and return its payload.

    The CRC16 covers sequence, length byte and payload (the declared-length
    slice after the status byte); it trails the response big-endian.

    Raises:
        MalformedResponseError: If the declared length does not match the response.
        ChecksumMismatchError: If the payload was corrupted.
    """
    _require(response, DOWNLOAD_CHUNK_OVERHEAD, "Download chunk")
    declared = response[3]
    if len(response) != declared + DOWNLOAD_CHUNK_OVERHEAD:
        raise MalformedResponseError(
            f"Download chunk declares {declared} bytes but response has "
            f"{len(response) - DOWNLOAD_CHUNK_OVERHEAD}"
        )
    expected = crc16(response[1 : 4 + declared])
    received = (response[-2] << 8) | response[-1]
    if expected != received:
        raise ChecksumMismatchError(expected, received)
    return bytes(response[4 : 4 + declared])


def decode_file_info(response: bytes) -> FileInfo:
    """Decode the size (BE u32) and checksum bytes of a file info response."""
    _require(response, 9, "File info")
    size: int = struct.unpack_from(">I", response, 1)[0]
    return FileInfo(size=size, crc=bytes(response[5:9]))


def decode_exists(response: bytes) -> bool:
    """Decode the existence flag."""
    _require(response, 2, "Exists")
    return response[1] == 0x01


def decode_dir_entry(response: bytes) -> DirectoryEntry | None:
    """Decode one directory listing entry.

    Returns:
        The entry, or None when the device signals the end of the listing.

    Raises:
        MalformedResponseError: On an unknown entry kind or a non-ASCII name.
    """
    _require(response, 2, "Directory entry")
    kind = response[1]
    if kind == ENTRY_END:
        return None
    if kind not in (ENTRY_FILE, ENTRY_DIR):
        raise MalformedResponseError(f"Unknown directory entry kind 0x{kind:02X}")
    try:
        name = bytes(response[2:]).rstrip(NUL).decode("ascii")
    except UnicodeDecodeError as e:
        raise MalformedResponseError(f"Directory entry name is not ASCII: {e}") from e
    return DirectoryEntry(name=name, is_file=kind == ENTRY_FILE)


def decode_version(response: bytes) -> RemoteVersion:
    """Decode the major/minor/build triple of a version response."""
    _require(response, 6, "Version")
    major, minor, build = struct.unpack_from(">HHH", response, 0)
    return RemoteVersion(major=major, minor=minor, build=build)
