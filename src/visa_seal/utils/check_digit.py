"""
ICAO 9303 check digit computation.

Implements the weighted modulus-10 check digit of ICAO Doc 9303 Part 3,
section 4.9.
"""

from __future__ import annotations

from visa_seal.exceptions import ChecksumError, FormatError

CHECK_DIGIT_WEIGHTS = (7, 3, 1)


def character_value(char: str) -> int:
    """
    Get the numeric value of an MRZ character.

    Args:
        char: A single character

    Returns:
        0-9 for digits, 10-35 for letters, 0 for the filler and space

    Raises:
        FormatError: If the character is not valid in the MRZ
    """
    if char in ("<", " "):
        return 0
    if "0" <= char <= "9":
        return ord(char) - ord("0")
    if "A" <= char <= "Z":
        # A = 10, B = 11, ..., Z = 35
        return ord(char) - ord("A") + 10
    msg = f"Character '{char}' is not a valid character in the MRZ"
    raise FormatError(msg)


def compute_check_digit(data: str) -> str:
    """
    Compute the check digit for an MRZ field.

    Args:
        data: Input data string

    Returns:
        Single character check digit
    """
    total = 0
    for i, char in enumerate(data.upper()):
        total += character_value(char) * CHECK_DIGIT_WEIGHTS[i % 3]
    return str(total % 10)


def validate_check_digit(data: str, check_digit: str, field: str = "field") -> None:
    """
    Validate a check digit against its data.

    Args:
        data: The substring the digit was computed over
        check_digit: The digit found in the MRZ
        field: Human-readable name of the field, used in the error

    Raises:
        ChecksumError: If the digit does not match
    """
    expected = compute_check_digit(data)
    if expected != check_digit:
        raise ChecksumError(field, expected, check_digit, data)
