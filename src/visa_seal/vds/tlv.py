"""
Tag-length-value framing for digital seal message and signature zones.

Tags are a single byte. Lengths use the BER/DER definite form: one byte below
128, otherwise 0x80 | n followed by n big-endian length octets (n <= 4).
"""

from __future__ import annotations

import logging

from visa_seal.exceptions import DuplicateFeatureError, FormatError, RangeError, TruncatedDataError
from visa_seal.vds.types import SIGNATURE_MARKER

logger = logging.getLogger(__name__)

MAX_LENGTH_OCTETS = 4


def encode_length(length: int) -> bytes:
    """
    Encode a definite length.

    Args:
        length: Number of value bytes

    Returns:
        1 to 5 length bytes

    Raises:
        RangeError: If the length is negative or needs more than 4 octets
    """
    if length < 0:
        msg = f"Length must not be negative, got {length}"
        raise RangeError(msg)
    if length < 0x80:
        return bytes([length])

    octets = length.to_bytes((length.bit_length() + 7) // 8, "big")
    if len(octets) > MAX_LENGTH_OCTETS:
        msg = f"Length {length} needs more than {MAX_LENGTH_OCTETS} length octets"
        raise RangeError(msg)
    return bytes([0x80 | len(octets)]) + octets


def decode_length(data: bytes, offset: int) -> tuple[int, int]:
    """
    Decode a definite length starting at ``offset``.

    Returns:
        Tuple of (length, offset of the first value byte)

    Raises:
        TruncatedDataError: If the length octets run past the end of data
        FormatError: If the length form is indefinite or too long
    """
    if offset >= len(data):
        msg = f"Missing length byte at offset {offset}"
        raise TruncatedDataError(msg)

    first = data[offset]
    offset += 1
    if first < 0x80:
        return first, offset

    count = first & 0x7F
    if count == 0:
        msg = f"Indefinite length form at offset {offset - 1} is not supported"
        raise FormatError(msg)
    if count > MAX_LENGTH_OCTETS:
        msg = f"Length with {count} octets at offset {offset - 1} exceeds {MAX_LENGTH_OCTETS}"
        raise FormatError(msg)
    if offset + count > len(data):
        msg = f"Length octets at offset {offset} run past the end of the data"
        raise TruncatedDataError(msg)

    return int.from_bytes(data[offset:offset + count], "big"), offset + count


def encode_tlv(tag: int, value: bytes) -> bytes:
    """Encode one tag-length-value triple."""
    if not 0 <= tag <= 0xFF:
        msg = f"Tag must be a single byte, got {tag}"
        raise RangeError(msg)
    return bytes([tag]) + encode_length(len(value)) + bytes(value)


def decode_tlv(data: bytes, offset: int) -> tuple[int, bytes, int]:
    """
    Decode one TLV starting at ``offset``.

    Returns:
        Tuple of (tag, value, offset after the value)

    Raises:
        TruncatedDataError: If the value runs past the end of data
    """
    tag = data[offset]
    length, start = decode_length(data, offset + 1)
    end = start + length
    if end > len(data):
        msg = (
            f"Value of tag 0x{tag:02X} needs {length} bytes at offset {start}, "
            f"only {len(data) - start} available"
        )
        raise TruncatedDataError(msg)
    return tag, bytes(data[start:end]), end


def decode_tlvs(
    data: bytes, offset: int = 0, stop_at_signature: bool = False
) -> tuple[list[tuple[int, bytes]], int]:
    """
    Decode consecutive TLVs with unique tags.

    Args:
        data: Buffer to read
        offset: Where the first tag starts
        stop_at_signature: Stop before a 0xFF signature marker instead of
            rejecting it

    Returns:
        Tuple of (list of (tag, value) in stream order, offset where decoding stopped)

    Raises:
        DuplicateFeatureError: If a tag repeats
        TruncatedDataError: If a TLV runs past the end of data
        FormatError: If a signature marker appears where none is allowed
    """
    items: list[tuple[int, bytes]] = []
    seen: set[int] = set()

    while offset < len(data):
        if data[offset] == SIGNATURE_MARKER:
            if stop_at_signature:
                break
            msg = f"Unexpected signature marker at offset {offset} in message zone"
            raise FormatError(msg)

        tag, value, offset = decode_tlv(data, offset)
        if tag in seen:
            raise DuplicateFeatureError(tag)
        seen.add(tag)
        items.append((tag, value))

    logger.debug("Decoded %d TLVs ending at offset %d", len(items), offset)
    return items, offset
