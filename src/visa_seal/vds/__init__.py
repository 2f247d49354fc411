"""
Visible Digital Seal (VDS) Implementation.

This package implements the ICAO Doc 9303 Part 13 seal used on machine
readable visas: the header, message and signature zones, the visa feature
codecs, and the base45 barcode payload.
"""

from .barcode import barcode_payload, decode_seal_payload, encode_seal_payload
from .features import FeatureSet
from .seal import DigitalSeal, DigitalSealCodec, SealHeader
from .signing import random_signature, sign_seal_using_rng
from .types import SIGNATURE_MARKER, VDS_MAGIC, BarcodeMode, FeatureTag, SealVersion

__all__ = [
    "SIGNATURE_MARKER",
    "VDS_MAGIC",
    "BarcodeMode",
    "DigitalSeal",
    "DigitalSealCodec",
    "FeatureSet",
    "FeatureTag",
    "SealHeader",
    "SealVersion",
    "barcode_payload",
    "decode_seal_payload",
    "encode_seal_payload",
    "random_signature",
    "sign_seal_using_rng",
]
