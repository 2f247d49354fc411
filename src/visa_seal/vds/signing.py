"""
Demo signer for visa digital seals.

Real seals are signed by an external signer over the unsigned seal bytes.
This module only fills the signature zone with random bytes so that a seal
can be printed and scanned end to end.
"""

from __future__ import annotations

import logging
import secrets
from typing import TYPE_CHECKING

from visa_seal.config import settings
from visa_seal.exceptions import RangeError

if TYPE_CHECKING:
    from visa_seal.services.mrvb_visa import MRVBVisa

logger = logging.getLogger(__name__)


def random_signature(length: int | None = None) -> bytes:
    """
    Generate random signature bytes.

    Args:
        length: Number of bytes, defaults to the configured signature length

    Returns:
        Random bytes
    """
    if length is None:
        length = settings.signature_length
    if length < 1:
        msg = f"Signature length must be positive, got {length}"
        raise RangeError(msg)
    return secrets.token_bytes(length)


def sign_seal_using_rng(visa: MRVBVisa, length: int | None = None) -> bytes:
    """
    Store a random signature in a visa's seal.

    The result is not a cryptographic signature.

    Args:
        visa: Visa whose signature data is replaced
        length: Number of signature bytes

    Returns:
        The stored signature bytes
    """
    signature = random_signature(length)
    visa.set_signature_data(signature)
    logger.warning("Seal for visa %s signed with random bytes", visa.number)
    return signature
