"""
Visa data models for Machine Readable Visas (MRV) with a visible digital seal.

This module implements the visa models used by the MRZ codec and the seal
facade:
- MRV Type A (2 lines of 44 characters) and Type B (2 lines of 36 characters)
- The canonical visa document record and its MRZ-visible projection
- ICAO Part 7 field constraints (codes, numbers, names, gender markers)
"""

from __future__ import annotations

import re
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

MRZ_CHARACTERS = set("ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789<")

_CODE_PATTERN = re.compile(r"^[A-Z<]{1,3}$")
_TYPE_CODE_PATTERN = re.compile(r"^[A-Z]{1,2}$")
_NUMBER_PATTERN = re.compile(r"^[A-Z0-9]{0,9}$")
_OPTIONAL_DATA_PATTERN = re.compile(r"^[A-Z0-9 <]{0,16}$")


class VisaType(str, Enum):
    """Visa document types."""

    MRV_TYPE_A = "MRV_A"  # 2-line MRZ, 44 characters per line
    MRV_TYPE_B = "MRV_B"  # 2-line MRZ, 36 characters per line


class Gender(str, Enum):
    """Gender codes per ICAO standards."""

    MALE = "M"
    FEMALE = "F"
    UNSPECIFIED = "X"


def _validate_code(v: str, label: str) -> str:
    v = v.upper()
    if not _CODE_PATTERN.match(v):
        msg = f"{label} must be 1-3 characters from A-Z or '<'"
        raise ValueError(msg)
    # Stored without trailing filler, the way the MRZ reads back
    return v.rstrip("<") or v


class MRZFields(BaseModel):
    """The visa fields that are printed in the Machine Readable Zone."""

    type_code: str = Field(..., description="Document type code, V for visa")
    authority_code: str = Field(..., description="3-letter issuing authority code")
    number: str = Field(..., description="Number printed in the MRZ")
    full_name: str = Field(..., description="Name in MRZ-normal form, e.g. 'ERIKSSON, ANNA MARIA'")
    nationality_code: str = Field(..., description="3-letter nationality code")
    birth_date: date
    gender_marker: Gender
    valid_thru: date
    optional_data: str = ""

    model_config = {
        "frozen": True,
    }


class MRZData(BaseModel):
    """Machine Readable Zone lines and their check digits."""

    visa_type: VisaType = VisaType.MRV_TYPE_B
    line1: str
    line2: str

    check_digit_document: str = Field(..., max_length=1, description="Document number check digit")
    check_digit_dob: str = Field(..., max_length=1, description="Date of birth check digit")
    check_digit_expiry: str = Field(..., max_length=1, description="Valid thru check digit")

    @field_validator("line1", "line2")
    @classmethod
    def validate_mrz_lines(cls, v):
        """Validate MRZ lines contain only allowed characters."""
        if not all(c in MRZ_CHARACTERS for c in v):
            msg = "MRZ lines must contain only letters, numbers, and angle brackets"
            raise ValueError(msg)
        return v

    @property
    def machine_readable_zone(self) -> str:
        """Both lines separated by a newline, as printed."""
        return f"{self.line1}\n{self.line2}"


class VisaDocumentData(BaseModel):
    """Canonical visa record owned by the seal facade."""

    type_code: str = Field(default="V", description="1-2 letter document type code")
    authority_code: str = Field(default="UTO", description="3-letter issuing authority code")
    number: str = Field(default="T32069231", description="Visa document number")
    full_name: str = Field(
        default="Eriksson, Anna-Maria",
        min_length=1,
        description="Primary and secondary identifiers separated by ', '",
    )
    nationality_code: str = Field(default="UTO", description="3-letter nationality code")
    birth_date: date = Field(default=date(1974, 8, 12))
    gender_marker: Gender = Field(default=Gender.FEMALE)
    valid_thru: date = Field(default=date(2012, 4, 15))
    optional_data: str = Field(default="", description="Up to 16 characters of 0-9, A-Z, space")
    passport_number: str = Field(default="D23145890", description="Passport the visa is issued for")
    use_passport_in_mrz: bool = Field(default=False, description="Print the passport number in the MRZ")
    number_of_entries: int = Field(default=0, ge=0, le=254, description="0 denotes unlimited entries")

    # Visual inspection zone only; neither MRZ nor seal carry these
    place_of_issue: str = "Utopia"
    valid_from: date = Field(default=date(2007, 4, 15))
    visa_type: str = "Tourist"
    additional_info: str = ""
    url: str = "https://example.org/"

    model_config = {
        "validate_assignment": True,
        "extra": "forbid",
    }

    @field_validator("type_code")
    @classmethod
    def validate_type_code(cls, v):
        """Validate the type code is 1-2 letters."""
        v = v.upper()
        if not _TYPE_CODE_PATTERN.match(v):
            msg = "Type code must be 1-2 letters from A-Z"
            raise ValueError(msg)
        return v

    @field_validator("authority_code")
    @classmethod
    def validate_authority_code(cls, v):
        """Validate the issuing authority code."""
        return _validate_code(v, "Authority code")

    @field_validator("nationality_code")
    @classmethod
    def validate_nationality_code(cls, v):
        """Validate the nationality code."""
        return _validate_code(v, "Nationality code")

    @field_validator("number", "passport_number")
    @classmethod
    def validate_document_number(cls, v):
        """Validate document number format."""
        v = v.upper()
        if not _NUMBER_PATTERN.match(v):
            msg = "Document numbers must be no more than 9 characters from 0-9 and A-Z"
            raise ValueError(msg)
        return v

    @field_validator("optional_data")
    @classmethod
    def validate_optional_data(cls, v):
        """Validate optional data characters and length."""
        v = v.upper()
        if not _OPTIONAL_DATA_PATTERN.match(v):
            msg = "Optional data must be up to 16 characters from 0-9, A-Z, and space"
            raise ValueError(msg)
        return v

    def to_mrz_fields(self) -> MRZFields:
        """Project the record onto the fields printed in the MRZ."""
        return MRZFields(
            type_code=self.type_code,
            authority_code=self.authority_code,
            number=self.passport_number if self.use_passport_in_mrz else self.number,
            full_name=self.full_name,
            nationality_code=self.nationality_code,
            birth_date=self.birth_date,
            gender_marker=self.gender_marker,
            valid_thru=self.valid_thru,
            optional_data=self.optional_data,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        return self.model_dump(mode="json")


class VerificationResult(BaseModel):
    """Results of a visa seal verification."""

    is_valid: bool = Field(..., description="Overall validity")
    verification_timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), description="Verification time"
    )

    # MRZ verification
    mrz_valid: bool = Field(default=False, description="MRZ validation result")
    check_digits_valid: bool = Field(default=False, description="Check digits validation")
    mrz_errors: list[str] = Field(default_factory=list, description="MRZ validation errors")
    mrz_fields: MRZFields | None = Field(None, description="Fields read from the MRZ")

    # Digital seal verification
    seal_present: bool = Field(default=False, description="Digital seal decoded")
    seal_valid: bool = Field(default=False, description="Seal structure validation result")
    signature_present: bool = Field(default=False, description="Seal carries signature bytes")
    field_consistency_valid: bool | None = Field(None, description="Reference comparison result")
    seal_errors: list[str] = Field(default_factory=list, description="Seal validation errors")

    # Policy verification
    validity_period_ok: bool = Field(default=False, description="Validity period check")
    policy_errors: list[str] = Field(default_factory=list, description="Policy validation errors")

    # Additional details
    warnings: list[str] = Field(default_factory=list, description="Verification warnings")
    verification_details: dict[str, Any] = Field(
        default_factory=dict, description="Additional verification details"
    )
