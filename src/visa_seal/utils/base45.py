"""
Base45 transport encoding.

Base45 maps every 2 bytes to 3 characters of a 45-symbol alphabet that fits
the QR code alphanumeric mode. A trailing odd byte maps to 2 characters.
"""

from __future__ import annotations

from visa_seal.exceptions import FormatError

BASE45_CHARSET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ $%*+-./:"
BASE45_SIZE = len(BASE45_CHARSET)
BASE45_SIZE_SQUARED = BASE45_SIZE * BASE45_SIZE

_DECODING = {char: index for index, char in enumerate(BASE45_CHARSET)}


def b45encode(data: bytes) -> str:
    """
    Encode bytes as base45 text.

    Args:
        data: Bytes to encode

    Returns:
        Base45 string
    """
    output = []
    for i in range(0, len(data) - 1, 2):
        value = (data[i] << 8) | data[i + 1]
        value, c = divmod(value, BASE45_SIZE)
        e, d = divmod(value, BASE45_SIZE)
        output.extend((BASE45_CHARSET[c], BASE45_CHARSET[d], BASE45_CHARSET[e]))

    if len(data) % 2:
        d, c = divmod(data[-1], BASE45_SIZE)
        output.extend((BASE45_CHARSET[c], BASE45_CHARSET[d]))

    return "".join(output)


def b45decode(text: str) -> bytes:
    """
    Decode base45 text into bytes.

    Args:
        text: Base45 string

    Returns:
        Decoded bytes

    Raises:
        FormatError: If the length, a character, or a group value is invalid
    """
    if len(text) % 3 == 1:
        msg = f"A string of length {len(text)} is not valid base45"
        raise FormatError(msg)

    values = []
    for position, char in enumerate(text):
        if char not in _DECODING:
            msg = f"Invalid base45 character '{char}' at position {position}"
            raise FormatError(msg)
        values.append(_DECODING[char])

    output = bytearray()
    for i in range(0, len(values) - 2, 3):
        value = values[i] + values[i + 1] * BASE45_SIZE + values[i + 2] * BASE45_SIZE_SQUARED
        if value > 0xFFFF:
            msg = f"Base45 group '{text[i:i + 3]}' at position {i} exceeds 65535"
            raise FormatError(msg)
        output.extend(divmod(value, 256))

    if len(values) % 3 == 2:
        value = values[-2] + values[-1] * BASE45_SIZE
        if value > 0xFF:
            msg = f"Base45 tail group '{text[-2:]}' exceeds 255"
            raise FormatError(msg)
        output.append(value)

    return bytes(output)
