"""
Custom exceptions for visa seal encoding and decoding.

Every error raised by the library derives from ``VisaSealError``. All of them
describe invalid input; none of them is transient or retryable.
"""

from __future__ import annotations


class VisaSealError(Exception):
    """Base exception class for visa seal errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class RangeError(VisaSealError, ValueError):
    """Raised when a field value is outside its documented bounds."""


class FormatError(VisaSealError, ValueError):
    """Raised for malformed encoded data (base45, C40, MRZ text, seal bytes)."""


class TruncatedDataError(FormatError):
    """Raised when a TLV or length runs past the end of the buffer."""


class DuplicateFeatureError(FormatError):
    """Raised when a message zone repeats a feature tag."""

    def __init__(self, tag: int) -> None:
        super().__init__(f"Feature tag 0x{tag:02X} appears more than once in the message zone")
        self.tag = tag


class ChecksumError(VisaSealError):
    """Raised when an MRZ check digit does not match its data."""

    def __init__(self, field: str, expected: str, actual: str, data: str) -> None:
        super().__init__(
            f"Invalid {field} check digit: expected '{expected}' but found '{actual}' for '{data}'"
        )
        self.field = field
        self.expected = expected
        self.actual = actual
        self.data = data
