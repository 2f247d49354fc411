"""
Machine readable visas with ICAO 9303 visible digital seals.

Key Features:
- MRV-A and MRV-B MRZ generation and parsing with check digits
- C40 and base45 codecs
- Digital seal header, message and signature zone codec
- An MRV-B visa that keeps its MRZ and seal consistent in both directions
"""

from .exceptions import (
    ChecksumError,
    DuplicateFeatureError,
    FormatError,
    RangeError,
    TruncatedDataError,
    VisaSealError,
)
from .services.mrvb_visa import MRVBVisa, derive_forward, derive_reverse
from .vds.types import BarcodeMode

__version__ = "0.1.0"

__all__ = [
    "BarcodeMode",
    "ChecksumError",
    "DuplicateFeatureError",
    "FormatError",
    "MRVBVisa",
    "RangeError",
    "TruncatedDataError",
    "VisaSealError",
    "derive_forward",
    "derive_reverse",
]
