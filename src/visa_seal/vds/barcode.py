"""
Barcode payloads for visa digital seals.

The printed barcode either carries the base45 text of the signed seal or a
plain URL. Rendering the symbol itself is left to the caller.
"""

from __future__ import annotations

import logging

from visa_seal.exceptions import FormatError
from visa_seal.utils.base45 import b45decode, b45encode
from visa_seal.vds.seal import DigitalSeal, DigitalSealCodec
from visa_seal.vds.types import BarcodeMode

logger = logging.getLogger(__name__)


def encode_seal_payload(seal: DigitalSeal) -> str:
    """Render the signed seal as base45 barcode text."""
    return b45encode(seal.signed_seal)


def decode_seal_payload(text: str) -> DigitalSeal:
    """
    Parse base45 barcode text into a signed seal.

    Args:
        text: Scanned payload

    Returns:
        Decoded seal

    Raises:
        FormatError: If the text is not base45 or the bytes are not a seal
    """
    data = b45decode(text.strip())
    seal = DigitalSealCodec.decode_signed(data)
    logger.debug("Decoded %d byte seal from barcode payload", len(data))
    return seal


def barcode_payload(seal: DigitalSeal, mode: BarcodeMode, url: str) -> str:
    """
    Get the text to print in the barcode.

    Args:
        seal: Seal to render in DIGITAL_SEAL mode
        mode: Caller-selected payload kind
        url: URL to render in URL mode

    Returns:
        Barcode text
    """
    if mode == BarcodeMode.DIGITAL_SEAL:
        return encode_seal_payload(seal)
    if mode == BarcodeMode.URL:
        return url
    msg = f"Unsupported barcode mode: {mode}"
    raise FormatError(msg)
