"""
Digital Seal Core Types and Enumerations for ICAO Doc 9303 Part 13.

This module defines the constants and enumerations used by the visible
digital seal (VDS) codec for machine readable visas.
"""

from __future__ import annotations

from enum import Enum, IntEnum

VDS_MAGIC = 0xDC
SIGNATURE_MARKER = 0xFF


class SealVersion(IntEnum):
    """Digital seal header versions, as written in the version byte."""
    V3 = 0x02
    V4 = 0x03


class FeatureTag(IntEnum):
    """Message zone feature tags of the visa seal profile."""
    MRZ = 0x02                  # C40 mirror of the MRV-B MRZ
    NUMBER_OF_ENTRIES = 0x03    # 0 denotes unlimited
    DURATION_OF_STAY = 0x04     # days, months, years
    PASSPORT_NUMBER = 0x05      # C40
    VISA_TYPE = 0x06            # hex, leading zero bytes trimmed
    ADDITIONAL_FEATURE = 0x07   # opaque


class BarcodeMode(str, Enum):
    """What the printed barcode carries."""
    DIGITAL_SEAL = "DIGITAL_SEAL"   # base45 text of the signed seal
    URL = "URL"                     # a plain URL
