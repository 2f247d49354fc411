"""
Digital Seal zone codec for ICAO Doc 9303 Part 13.

A seal is ``header ++ message`` when unsigned and
``header ++ message ++ signature`` when signed:

- header: magic 0xDC, version, C40 authority, C40 signer identifier and
  certificate reference, issue and signature dates, feature definition and
  document type category
- message: TLV features in ascending tag order
- signature: marker 0xFF, definite length, raw signature bytes
"""

from __future__ import annotations

import logging
import math
import re
from datetime import date

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from visa_seal.config import settings
from visa_seal.exceptions import FormatError, TruncatedDataError
from visa_seal.utils.c40 import c40_decode, c40_encode
from visa_seal.vds.features import FeatureSet
from visa_seal.vds.tlv import decode_length, decode_tlvs, encode_length
from visa_seal.vds.types import SIGNATURE_MARKER, VDS_MAGIC, SealVersion

logger = logging.getLogger(__name__)

V3_CERT_REFERENCE_LENGTH = 5
IDENTIFIER_LENGTH = 4
DATE_LENGTH = 3


def _c40_byte_count(chars: int) -> int:
    return 2 * math.ceil(chars / 3)


class SealHeader(BaseModel):
    """Header zone of a visa digital seal."""

    version: SealVersion = Field(default_factory=lambda: SealVersion(settings.seal_version))
    authority_code: str = Field(default="UTO", description="Issuing authority, 1-3 chars")
    identifier_code: str = Field(
        default_factory=lambda: settings.default_identifier_code,
        description="Signer identifier: 2 letters + 2 alphanumerics",
    )
    cert_reference: str = Field(
        default_factory=lambda: settings.default_cert_reference,
        description="Hex certificate reference",
    )
    issue_date: date = Field(default=date(2007, 4, 15))
    signature_date: date = Field(default=date(2007, 4, 15))
    feature_definition: int = Field(
        default_factory=lambda: settings.feature_definition, ge=1, le=254
    )
    type_category: int = Field(default_factory=lambda: settings.type_category, ge=1, le=254)

    model_config = {
        "validate_assignment": True,
        "extra": "forbid",
    }

    @field_validator("authority_code")
    @classmethod
    def validate_authority_code(cls, v):
        """Validate the authority code."""
        v = v.upper()
        if not re.fullmatch(r"[A-Z<]{1,3}", v):
            msg = "Authority code must be 1-3 characters from A-Z or '<'"
            raise ValueError(msg)
        return v.rstrip("<") or v

    @field_validator("identifier_code")
    @classmethod
    def validate_identifier_code(cls, v):
        """Validate the signer identifier."""
        v = v.upper()
        if not re.fullmatch(r"[A-Z]{2}[A-Z0-9]{2}", v):
            msg = "Identifier code must be 2 letters followed by 2 letters or digits"
            raise ValueError(msg)
        return v

    @field_validator("cert_reference")
    @classmethod
    def validate_cert_reference(cls, v):
        """Validate the certificate reference."""
        v = v.upper()
        if not re.fullmatch(r"[0-9A-F]{0,255}", v):
            msg = "Certificate reference must be up to 255 hex digits"
            raise ValueError(msg)
        return v

    @model_validator(mode="after")
    def validate_v3_cert_reference(self):
        """VDS v3 headers have a fixed-length certificate reference."""
        if self.version == SealVersion.V3 and len(self.cert_reference) != V3_CERT_REFERENCE_LENGTH:
            msg = f"Version 3 seals need a {V3_CERT_REFERENCE_LENGTH}-digit certificate reference"
            raise ValueError(msg)
        return self


class DigitalSeal(BaseModel):
    """A decoded visa digital seal."""

    header: SealHeader = Field(default_factory=SealHeader)
    features: FeatureSet = Field(default_factory=FeatureSet)
    signature: bytes | None = None

    model_config = {
        "arbitrary_types_allowed": True,
    }

    @property
    def header_zone(self) -> bytes:
        return DigitalSealCodec.encode_header(self.header)

    @property
    def message_zone(self) -> bytes:
        return DigitalSealCodec.encode_message(self.features)

    @property
    def signature_zone(self) -> bytes:
        return DigitalSealCodec.encode_signature(self.signature or b"")

    @property
    def unsigned_seal(self) -> bytes:
        return self.header_zone + self.message_zone

    @property
    def signed_seal(self) -> bytes:
        return self.unsigned_seal + self.signature_zone


def _encode_seal_date(value: date) -> bytes:
    return int(value.strftime("%m%d%Y")).to_bytes(DATE_LENGTH, "big")


def _decode_seal_date(data: bytes, label: str) -> date:
    text = f"{int.from_bytes(data, 'big'):08d}"
    try:
        return date(int(text[4:8]), int(text[0:2]), int(text[2:4]))
    except ValueError as e:
        msg = f"Invalid {label} '{text}' (MMDDYYYY): {e}"
        raise FormatError(msg) from e


def _take(data: bytes, offset: int, count: int, label: str) -> bytes:
    if offset + count > len(data):
        msg = f"Seal header truncated: {label} needs {count} bytes at offset {offset}"
        raise TruncatedDataError(msg)
    return bytes(data[offset:offset + count])


class DigitalSealCodec:
    """Encoder and decoder for the three seal zones."""

    @classmethod
    def encode_header(cls, header: SealHeader) -> bytes:
        """
        Encode the header zone.

        Args:
            header: Seal header

        Returns:
            Header bytes
        """
        signer = header.identifier_code
        if header.version == SealVersion.V4:
            signer += f"{len(header.cert_reference):02X}"
        signer += header.cert_reference

        return (
            bytes([VDS_MAGIC, header.version])
            + c40_encode(header.authority_code.ljust(3, "<"))
            + c40_encode(signer)
            + _encode_seal_date(header.issue_date)
            + _encode_seal_date(header.signature_date)
            + bytes([header.feature_definition, header.type_category])
        )

    @classmethod
    def decode_header(cls, data: bytes, offset: int = 0) -> tuple[SealHeader, int]:
        """
        Decode the header zone starting at ``offset``.

        Args:
            data: Seal bytes
            offset: Where the header starts

        Returns:
            Tuple of (header, offset of the message zone)

        Raises:
            FormatError: If the magic, version or a field is invalid
            TruncatedDataError: If the data ends inside the header
        """
        magic, version_byte = _take(data, offset, 2, "magic and version")
        if magic != VDS_MAGIC:
            msg = f"Invalid seal magic 0x{magic:02X}, expected 0x{VDS_MAGIC:02X}"
            raise FormatError(msg)
        try:
            version = SealVersion(version_byte)
        except ValueError:
            msg = f"Unsupported seal version 0x{version_byte:02X}"
            raise FormatError(msg) from None
        offset += 2

        authority = c40_decode(_take(data, offset, 2, "authority")).rstrip(" ")
        offset += 2

        if version == SealVersion.V4:
            prefix = c40_decode(_take(data, offset, 4, "signer identifier"))
            try:
                cert_length = int(prefix[IDENTIFIER_LENGTH:], 16)
            except ValueError:
                msg = f"Invalid certificate reference length '{prefix[IDENTIFIER_LENGTH:]}'"
                raise FormatError(msg) from None
            signer_chars = IDENTIFIER_LENGTH + 2 + cert_length
        else:
            signer_chars = IDENTIFIER_LENGTH + V3_CERT_REFERENCE_LENGTH

        signer_bytes = _c40_byte_count(signer_chars)
        signer = c40_decode(_take(data, offset, signer_bytes, "signer identifier"))
        offset += signer_bytes
        identifier = signer[:IDENTIFIER_LENGTH]
        cert_start = IDENTIFIER_LENGTH + (2 if version == SealVersion.V4 else 0)
        cert_reference = signer[cert_start:signer_chars]

        issue_date = _decode_seal_date(_take(data, offset, DATE_LENGTH, "issue date"), "issue date")
        offset += DATE_LENGTH
        signature_date = _decode_seal_date(
            _take(data, offset, DATE_LENGTH, "signature date"), "signature date"
        )
        offset += DATE_LENGTH
        feature_definition, type_category = _take(data, offset, 2, "feature definition and type")
        offset += 2

        try:
            header = SealHeader(
                version=version,
                authority_code=authority or "<",
                identifier_code=identifier,
                cert_reference=cert_reference,
                issue_date=issue_date,
                signature_date=signature_date,
                feature_definition=feature_definition,
                type_category=type_category,
            )
        except ValidationError as e:
            msg = f"Invalid seal header: {e}"
            raise FormatError(msg) from e

        logger.debug("Decoded v%d seal header from %s", version, header.authority_code)
        return header, offset

    @classmethod
    def encode_message(cls, features: FeatureSet) -> bytes:
        """Encode the message zone in ascending tag order."""
        return features.to_bytes()

    @classmethod
    def decode_message(cls, data: bytes) -> FeatureSet:
        """
        Decode a message zone.

        Raises:
            DuplicateFeatureError: If a tag repeats
            TruncatedDataError: If a feature runs past the end of data
        """
        return FeatureSet.from_bytes(data)

    @classmethod
    def encode_signature(cls, signature: bytes) -> bytes:
        """Encode the signature zone: marker, length and raw bytes."""
        return bytes([SIGNATURE_MARKER]) + encode_length(len(signature)) + bytes(signature)

    @classmethod
    def decode_signature(cls, data: bytes) -> bytes:
        """
        Decode a signature zone that spans all of ``data``.

        Raises:
            FormatError: If the marker is wrong or bytes follow the signature
            TruncatedDataError: If the signature runs past the end of data
        """
        if not data:
            msg = "Missing signature zone"
            raise TruncatedDataError(msg)
        if data[0] != SIGNATURE_MARKER:
            msg = f"Invalid signature marker 0x{data[0]:02X}, expected 0x{SIGNATURE_MARKER:02X}"
            raise FormatError(msg)

        length, start = decode_length(data, 1)
        end = start + length
        if end > len(data):
            msg = f"Signature needs {length} bytes, only {len(data) - start} available"
            raise TruncatedDataError(msg)
        if end < len(data):
            msg = f"{len(data) - end} unexpected bytes after the signature"
            raise FormatError(msg)
        return bytes(data[start:end])

    @classmethod
    def encode_unsigned(cls, seal: DigitalSeal) -> bytes:
        return seal.unsigned_seal

    @classmethod
    def encode_signed(cls, seal: DigitalSeal) -> bytes:
        return seal.signed_seal

    @classmethod
    def decode_unsigned(cls, data: bytes) -> DigitalSeal:
        """Decode ``header ++ message``."""
        header, offset = cls.decode_header(data)
        items, _ = decode_tlvs(data, offset)
        return DigitalSeal(header=header, features=FeatureSet.from_items(items))

    @classmethod
    def decode_signed(cls, data: bytes) -> DigitalSeal:
        """Decode ``header ++ message ++ signature``."""
        header, offset = cls.decode_header(data)
        items, offset = decode_tlvs(data, offset, stop_at_signature=True)
        signature = cls.decode_signature(data[offset:])
        return DigitalSeal(header=header, features=FeatureSet.from_items(items), signature=signature)
