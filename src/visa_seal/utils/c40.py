"""
C40 text packing as used by ICAO 9303 Part 13 digital seals.

Three characters are packed into two bytes. A final pair of characters is
padded with SHIFT1; a final single character is written as an unlatch byte
(0xFE) followed by its DataMatrix ASCII value. ICAO adds the filler ``<``,
which is packed as a space.
"""

from __future__ import annotations

from visa_seal.exceptions import FormatError

C40_SHIFT1 = 0
C40_UNLATCH = 0xFE

# C40 basic set values: space = 3, 0-9 = 4-13, A-Z = 14-39
C40_CHARSET = " 0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"
_CHAR_TO_C40 = {char: index + 3 for index, char in enumerate(C40_CHARSET)}
_C40_TO_CHAR = {value: char for char, value in _CHAR_TO_C40.items()}


def normalize_c40_text(text: str) -> str:
    """
    Upper-case text and map the MRZ filler to the C40 space.

    Raises:
        FormatError: If a character does not upper-case to exactly one
            supported character
    """
    normalized = "".join(char.upper() for char in text).replace("<", " ")
    if len(normalized) != len(text):
        invalid = [char for char in text if len(char.upper()) != 1]
        msg = f"Characters {invalid} cannot be C40 encoded"
        raise FormatError(msg)
    return normalized


def _char_to_c40(char: str) -> int:
    try:
        return _CHAR_TO_C40[char]
    except KeyError:
        msg = (
            f"Character '{char}' cannot be C40 encoded; only 0-9, A-Z, "
            "<SPACE>, and '<' are supported"
        )
        raise FormatError(msg) from None


def _char_to_ascii(char: str) -> int:
    # DataMatrix ASCII is the character code plus one
    _char_to_c40(char)
    return ord(char) + 1


def c40_encode(text: str) -> bytes:
    """
    Encode text with C40.

    Args:
        text: Characters from A-Z, 0-9, space, or '<'

    Returns:
        Packed bytes

    Raises:
        FormatError: If a character is outside the supported set
    """
    normalized = normalize_c40_text(text)
    output = bytearray()

    for i in range(0, len(normalized), 3):
        chunk = normalized[i:i + 3]
        if len(chunk) == 1:
            output.append(C40_UNLATCH)
            output.append(_char_to_ascii(chunk))
            continue

        u1 = _char_to_c40(chunk[0])
        u2 = _char_to_c40(chunk[1])
        u3 = _char_to_c40(chunk[2]) if len(chunk) == 3 else C40_SHIFT1
        output.extend(divmod(1600 * u1 + 40 * u2 + u3 + 1, 256))

    return bytes(output)


def _c40_to_char(value: int) -> str:
    try:
        return _C40_TO_CHAR[value]
    except KeyError:
        msg = f"C40 value {value} is not in the supported range (0 or 3-39)"
        raise FormatError(msg) from None


def c40_decode(data: bytes) -> str:
    """
    Decode C40 bytes into text.

    Args:
        data: Packed bytes

    Returns:
        Decoded text, with '<' filler rendered as space

    Raises:
        FormatError: If the byte count or a packed value is invalid
    """
    if len(data) % 2:
        msg = f"C40 data must have an even number of bytes, got {len(data)}"
        raise FormatError(msg)

    output = []
    for i in range(0, len(data), 2):
        i1, i2 = data[i], data[i + 1]
        if i1 == C40_UNLATCH:
            char = chr(i2 - 1) if i2 else ""
            if char not in _CHAR_TO_C40:
                msg = f"DataMatrix ASCII value {i2} is not a supported character"
                raise FormatError(msg)
            output.append(char)
            continue

        value = i1 * 256 + i2 - 1
        u1, rest = divmod(value, 1600)
        u2, u3 = divmod(rest, 40)
        output.append(_c40_to_char(u1))
        output.append(_c40_to_char(u2))
        if u3 != C40_SHIFT1:
            output.append(_c40_to_char(u3))

    return "".join(output)
