"""
Message zone features of the visa digital seal.

A FeatureSet holds the tag-unique features of one seal. Known tags have value
codecs here; unknown tags are kept as opaque bytes and re-emitted unchanged.
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Mapping

from visa_seal.exceptions import FormatError, RangeError
from visa_seal.utils.c40 import c40_decode, c40_encode
from visa_seal.vds.tlv import decode_tlvs, encode_tlv
from visa_seal.vds.types import FeatureTag

MAX_FEATURE_BYTE = 254
VISA_TYPE_HEX_DIGITS = 8

_HEX_PATTERN = re.compile(r"^[0-9A-Fa-f]{1,8}$")


def _check_byte_value(value: int, label: str) -> int:
    if not isinstance(value, int) or not 0 <= value <= MAX_FEATURE_BYTE:
        msg = f"{label} must be an integer from 0 to {MAX_FEATURE_BYTE}, got {value!r}"
        raise RangeError(msg)
    return value


def encode_mrz_mirror(text: str) -> bytes:
    """C40-pack the mirrored MRZ text (filler is packed as space)."""
    return c40_encode(text)


def decode_mrz_mirror(value: bytes) -> str:
    """Unpack the mirrored MRZ text and restore the '<' filler."""
    return c40_decode(value).replace(" ", "<")


def encode_number_of_entries(entries: int) -> bytes:
    """Encode the number of entries; 0 denotes unlimited."""
    return bytes([_check_byte_value(entries, "Number of entries")])


def decode_number_of_entries(value: bytes) -> int:
    if len(value) != 1:
        msg = f"Number of entries must be 1 byte, got {len(value)}"
        raise FormatError(msg)
    return value[0]


def validate_duration_of_stay(duration) -> tuple[int, int, int]:
    """
    Validate a duration of stay.

    Args:
        duration: Days, months and years

    Returns:
        The duration as a tuple

    Raises:
        RangeError: If there are not exactly 3 values, each 0-254
    """
    values = tuple(duration)
    if len(values) != 3:
        msg = f"Duration of stay needs 3 values (days, months, years), got {len(values)}"
        raise RangeError(msg)
    for label, value in zip(("Days", "Months", "Years"), values):
        _check_byte_value(value, f"{label} of stay")
    return values


def encode_duration_of_stay(duration) -> bytes:
    return bytes(validate_duration_of_stay(duration))


def decode_duration_of_stay(value: bytes) -> tuple[int, int, int]:
    if len(value) != 3:
        msg = f"Duration of stay must be 3 bytes, got {len(value)}"
        raise FormatError(msg)
    return validate_duration_of_stay(value)


def encode_passport_number(number: str) -> bytes:
    return c40_encode(number)


def decode_passport_number(value: bytes) -> str:
    return c40_decode(value).rstrip(" ")


def validate_visa_type_code(code: str) -> str:
    """Validate a visa type code of 1 to 8 hex digits and upper-case it."""
    if not isinstance(code, str) or not _HEX_PATTERN.match(code):
        msg = f"Visa type code must be 1 to {VISA_TYPE_HEX_DIGITS} hex digits, got {code!r}"
        raise RangeError(msg)
    return code.upper()


def encode_visa_type_code(code: str) -> bytes:
    """
    Encode a visa type code.

    The code is left-padded to 8 hex digits; leading all-zero bytes are
    dropped, keeping at least one byte.

    Args:
        code: 1 to 8 hex digits

    Returns:
        1 to 4 bytes
    """
    value = bytes.fromhex(validate_visa_type_code(code).rjust(VISA_TYPE_HEX_DIGITS, "0"))
    return value.lstrip(b"\x00") or b"\x00"


def decode_visa_type_code(value: bytes, width: int = 1) -> str:
    """
    Decode a visa type code.

    Args:
        value: 1 to 4 bytes
        width: Minimum number of hex digits; shorter results are zero-padded

    Returns:
        Upper-case hex without redundant leading zeros
    """
    if not 1 <= len(value) <= VISA_TYPE_HEX_DIGITS // 2:
        msg = f"Visa type code must be 1 to 4 bytes, got {len(value)}"
        raise FormatError(msg)
    digits = value.hex().upper().lstrip("0") or "0"
    return digits.rjust(width, "0")


_DECODERS = {
    FeatureTag.MRZ: decode_mrz_mirror,
    FeatureTag.NUMBER_OF_ENTRIES: decode_number_of_entries,
    FeatureTag.DURATION_OF_STAY: decode_duration_of_stay,
    FeatureTag.PASSPORT_NUMBER: decode_passport_number,
    FeatureTag.VISA_TYPE: decode_visa_type_code,
}


class FeatureSet:
    """Ordered, tag-unique collection of message zone features."""

    def __init__(self, features: Mapping[int, bytes] | None = None) -> None:
        self._features: dict[int, bytes] = {}
        for tag, value in (features or {}).items():
            self.set(tag, value)

    @classmethod
    def from_bytes(cls, data: bytes) -> FeatureSet:
        """
        Parse a message zone.

        Raises:
            DuplicateFeatureError: If a tag repeats
            TruncatedDataError: If a feature runs past the end of data
            FormatError: If a tag is outside 0x01-0xFE
        """
        items, _ = decode_tlvs(data)
        return cls.from_items(items)

    @classmethod
    def from_items(cls, items: list[tuple[int, bytes]]) -> FeatureSet:
        """Build a set from decoded TLVs; a tag outside 0x01-0xFE is a FormatError."""
        try:
            return cls(dict(items))
        except RangeError as e:
            raise FormatError(e.message) from e

    def to_bytes(self) -> bytes:
        """Encode the message zone with features in ascending tag order."""
        return b"".join(encode_tlv(tag, value) for tag, value in self.items())

    def get(self, tag: int) -> bytes | None:
        return self._features.get(int(tag))

    def set(self, tag: int, value: bytes) -> None:
        tag = int(tag)
        if not 1 <= tag <= 0xFE:
            msg = f"Feature tag must be 0x01-0xFE, got 0x{tag:02X}"
            raise RangeError(msg)
        self._features[tag] = bytes(value)

    def remove(self, tag: int) -> None:
        self._features.pop(int(tag), None)

    def items(self) -> list[tuple[int, bytes]]:
        return sorted(self._features.items())

    def tags(self) -> list[int]:
        return sorted(self._features)

    def copy(self) -> FeatureSet:
        return FeatureSet(self._features)

    def __contains__(self, tag: object) -> bool:
        return tag in self._features

    def __iter__(self) -> Iterator[int]:
        return iter(self.tags())

    def __len__(self) -> int:
        return len(self._features)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FeatureSet):
            return NotImplemented
        return self._features == other._features

    def validate(self) -> None:
        """
        Decode every known feature.

        Raises:
            FormatError: If a known feature holds a malformed value
            RangeError: If a decoded value is out of bounds
        """
        for tag, value in self.items():
            decoder = _DECODERS.get(tag)
            if decoder is not None:
                decoder(value)

    def __repr__(self) -> str:
        inner = ", ".join(f"0x{tag:02X}: {value.hex()}" for tag, value in self.items())
        return f"FeatureSet({{{inner}}})"

    # Typed accessors for the known features

    @property
    def mrz_mirror(self) -> str | None:
        value = self.get(FeatureTag.MRZ)
        return None if value is None else decode_mrz_mirror(value)

    @property
    def number_of_entries(self) -> int | None:
        value = self.get(FeatureTag.NUMBER_OF_ENTRIES)
        return None if value is None else decode_number_of_entries(value)

    @property
    def duration_of_stay(self) -> tuple[int, int, int] | None:
        value = self.get(FeatureTag.DURATION_OF_STAY)
        return None if value is None else decode_duration_of_stay(value)

    @property
    def passport_number(self) -> str | None:
        value = self.get(FeatureTag.PASSPORT_NUMBER)
        return None if value is None else decode_passport_number(value)

    def visa_type_code(self, width: int = 1) -> str | None:
        value = self.get(FeatureTag.VISA_TYPE)
        return None if value is None else decode_visa_type_code(value, width)

    @property
    def additional_feature(self) -> bytes | None:
        return self.get(FeatureTag.ADDITIONAL_FEATURE)
