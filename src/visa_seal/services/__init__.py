"""
Visa services built on the MRZ and seal codecs.
"""

from .mrvb_visa import MRVBVisa, derive_forward, derive_reverse
from .seal_verification import SealVerificationEngine, VerificationStep

__all__ = [
    "MRVBVisa",
    "SealVerificationEngine",
    "VerificationStep",
    "derive_forward",
    "derive_reverse",
]
