"""
MRZ (Machine Readable Zone) generation and parsing for visa documents.

This module implements the MRZ of ICAO Doc 9303 Part 7 visas:
- Type A visas (MRV-A): 2-line MRZ, 44 characters each
- Type B visas (MRV-B): 2-line MRZ, 36 characters each

Line 1 holds the document type, issuing authority and name. Line 2 holds the
document number, nationality, date of birth, gender, valid-thru date, the
three check digits and optional data. Visa MRZs carry no composite check
digit.
"""

from __future__ import annotations

import logging
import re
import unicodedata
from datetime import date
from typing import NamedTuple

from visa_seal.config import settings
from visa_seal.exceptions import FormatError, RangeError
from visa_seal.models.visa import MRZ_CHARACTERS, Gender, MRZData, MRZFields, VisaType
from visa_seal.utils.check_digit import compute_check_digit, validate_check_digit

logger = logging.getLogger(__name__)

FILLER = "<"


class MRZLayout(NamedTuple):
    """Field widths of one visa MRZ format."""

    line_length: int
    name_length: int
    optional_data_length: int


LAYOUTS = {
    VisaType.MRV_TYPE_A: MRZLayout(line_length=44, name_length=39, optional_data_length=16),
    VisaType.MRV_TYPE_B: MRZLayout(line_length=36, name_length=31, optional_data_length=8),
}

# Number of line 2 characters mirrored in the digital seal, up to the
# valid-thru check digit
SEAL_MIRROR_LINE2_LENGTH = 28


def normalize_mrz_string(text: str) -> str:
    """
    Transliterate free text into MRZ characters.

    Diacritics are stripped, apostrophes and commas dropped, and hyphens and
    spaces become the '<' filler.

    Args:
        text: Input text

    Returns:
        Upper-case text
    """
    decomposed = unicodedata.normalize("NFD", text)
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    stripped = re.sub(r"[',]", "", stripped)
    return re.sub(r"[- ]", FILLER, stripped).upper()


def full_name_mrz(full_name: str) -> str:
    """
    Render a full name the way it is printed in the MRZ.

    Only the Latin part after the last '/' is used. The first ", " separates
    the primary from the secondary identifier.

    Args:
        full_name: Name such as "Eriksson, Anna-Maria"

    Returns:
        Name field without padding, e.g. "ERIKSSON<<ANNA<MARIA"
    """
    latin = full_name.split("/")[-1].strip()
    return normalize_mrz_string(latin.replace(", ", FILLER * 2, 1))


def full_name_from_mrz(name_field: str) -> str:
    """Read a name field back into "PRIMARY, SECONDARY" form."""
    name_field = name_field.rstrip(FILLER)
    primary, separator, secondary = name_field.partition(FILLER * 2)
    primary = primary.replace(FILLER, " ")
    if not separator:
        return primary
    return f"{primary}, {secondary.replace(FILLER, ' ')}"


def date_to_mrz(date_obj: date) -> str:
    """Format a date as YYMMDD."""
    return date_obj.strftime("%y%m%d")


def full_year_from_string(year: str, century_cutoff: int | None = None) -> int:
    """
    Expand a two-digit year.

    Args:
        year: Two digits
        century_cutoff: Years above this are 19xx, otherwise 20xx

    Returns:
        Four-digit year
    """
    if century_cutoff is None:
        century_cutoff = settings.mrz_century_cutoff
    value = int(year)
    return 1900 + value if value > century_cutoff else 2000 + value


def check_mrz_date(value: date, field: str, century_cutoff: int | None = None) -> date:
    """
    Check that a date reads back unchanged from its YYMMDD form.

    With the default cutoff of 60 only 1961-2060 can be represented.

    Raises:
        RangeError: If the two-digit year expands into another century
    """
    if century_cutoff is None:
        century_cutoff = settings.mrz_century_cutoff
    if full_year_from_string(value.strftime("%y"), century_cutoff) != value.year:
        msg = (
            f"{field} {value.isoformat()} cannot be read back from the MRZ "
            f"with century cutoff {century_cutoff}"
        )
        raise RangeError(msg)
    return value


def date_from_mrz(text: str, field: str, century_cutoff: int | None = None) -> date:
    """
    Parse a YYMMDD date.

    Raises:
        FormatError: If the text is not a valid calendar date
    """
    if not re.fullmatch(r"\d{6}", text):
        msg = f"Invalid {field} '{text}': expected YYMMDD"
        raise FormatError(msg)
    try:
        return date(full_year_from_string(text[0:2], century_cutoff), int(text[2:4]), int(text[4:6]))
    except ValueError as e:
        msg = f"Invalid {field} '{text}': {e}"
        raise FormatError(msg) from e


def _fit(value: str, length: int, field: str) -> str:
    if len(value) > length:
        msg = f"{field} '{value}' does not fit in {length} MRZ characters"
        raise RangeError(msg)
    return value.ljust(length, FILLER)


class MRZGenerator:
    """Generator for visa MRZ lines with check digit computation."""

    @classmethod
    def gender_marker_for_mrz(cls, gender: Gender) -> str:
        """Unspecified gender is printed as the filler."""
        return FILLER if gender == Gender.UNSPECIFIED else gender.value

    @classmethod
    def build(cls, fields: MRZFields, visa_type: VisaType = VisaType.MRV_TYPE_B) -> MRZData:
        """
        Generate the two MRZ lines for a visa.

        MRV-B format:
        Line 1: V<UTOERIKSSON<<ANNA<MARIA<<<<<<<<<<<
        Line 2: T320692315UTO7408122F1204159<<<<<<<<

        Args:
            fields: MRZ-visible visa fields
            visa_type: MRV-A or MRV-B

        Returns:
            MRZData with both lines and check digits

        Raises:
            RangeError: If a field does not fit its MRZ area or contains
                characters that cannot be printed
        """
        layout = LAYOUTS[visa_type]

        # Line 1: document type, issuing authority, name
        type_code = _fit(fields.type_code.upper(), 2, "Type code")
        authority = _fit(fields.authority_code.upper(), 3, "Authority code")
        name = _fit(full_name_mrz(fields.full_name), layout.name_length, "Name")
        line1 = type_code + authority + name

        # Line 2: number, nationality, birth date, gender, valid thru, optional data
        number = _fit(fields.number.upper(), 9, "Number")
        doc_check = compute_check_digit(number)
        nationality = _fit(fields.nationality_code.upper(), 3, "Nationality code")
        dob = date_to_mrz(fields.birth_date)
        dob_check = compute_check_digit(dob)
        expiry = date_to_mrz(fields.valid_thru)
        expiry_check = compute_check_digit(expiry)
        optional_data = _fit(
            fields.optional_data.upper().replace(" ", FILLER),
            layout.optional_data_length,
            "Optional data",
        )
        line2 = (
            number + doc_check
            + nationality
            + dob + dob_check
            + cls.gender_marker_for_mrz(fields.gender_marker)
            + expiry + expiry_check
            + optional_data
        )

        for line in (line1, line2):
            invalid = sorted({c for c in line if c not in MRZ_CHARACTERS})
            if invalid:
                msg = f"Characters {invalid} cannot be printed in the MRZ"
                raise RangeError(msg)

        logger.debug("Built %s MRZ for number %s", visa_type.value, fields.number)
        return MRZData(
            visa_type=visa_type,
            line1=line1,
            line2=line2,
            check_digit_document=doc_check,
            check_digit_dob=dob_check,
            check_digit_expiry=expiry_check,
        )

    @classmethod
    def seal_mirror(cls, mrz_data: MRZData) -> str:
        """
        Text mirrored into the digital seal: line 1 and line 2 up to the
        valid-thru check digit.
        """
        return mrz_data.line1 + mrz_data.line2[:SEAL_MIRROR_LINE2_LENGTH]


class MRZParser:
    """Parser for visa MRZ data with validation."""

    @classmethod
    def split_lines(cls, mrz: str) -> tuple[VisaType, str, str]:
        """
        Split MRZ text into its two lines and detect the format.

        Args:
            mrz: Two lines separated by a newline, or both lines concatenated

        Returns:
            Tuple of (visa_type, line1, line2)

        Raises:
            FormatError: If the text is not a visa MRZ
        """
        text = mrz.strip()
        lines = text.splitlines()
        if len(lines) == 2:
            line1, line2 = (line.strip() for line in lines)
        elif len(lines) == 1 and len(text) % 2 == 0:
            half = len(text) // 2
            line1, line2 = text[:half], text[half:]
        else:
            msg = "A visa MRZ must have exactly two lines"
            raise FormatError(msg)

        for visa_type, layout in LAYOUTS.items():
            if len(line1) == layout.line_length and len(line2) == layout.line_length:
                break
        else:
            msg = (
                f"Visa MRZ lines must be 36 (MRV-B) or 44 (MRV-A) characters, "
                f"got {len(line1)} and {len(line2)}"
            )
            raise FormatError(msg)

        for line in (line1, line2):
            invalid = sorted({c for c in line if c not in MRZ_CHARACTERS})
            if invalid:
                msg = f"MRZ contains invalid characters {invalid}"
                raise FormatError(msg)

        return visa_type, line1, line2

    @classmethod
    def parse(cls, mrz: str, century_cutoff: int | None = None) -> MRZFields:
        """
        Parse and validate a visa MRZ.

        Args:
            mrz: MRZ text
            century_cutoff: Two-digit years above this are 19xx

        Returns:
            MRZFields with the name in "PRIMARY, SECONDARY" form

        Raises:
            FormatError: If the text, a date or the gender marker is malformed
            ChecksumError: If a check digit does not match
        """
        visa_type, line1, line2 = cls.split_lines(mrz)

        number = line2[0:9]
        dob = line2[13:19]
        expiry = line2[21:27]
        validate_check_digit(number, line2[9], "document number")
        validate_check_digit(dob, line2[19], "date of birth")
        validate_check_digit(expiry, line2[27], "valid thru")

        gender_char = line2[20]
        if gender_char in (FILLER, Gender.UNSPECIFIED.value):
            gender = Gender.UNSPECIFIED
        elif gender_char in (Gender.MALE.value, Gender.FEMALE.value):
            gender = Gender(gender_char)
        else:
            msg = f"Invalid gender marker '{gender_char}'"
            raise FormatError(msg)

        fields = MRZFields(
            type_code=line1[0:2].rstrip(FILLER),
            authority_code=line1[2:5].rstrip(FILLER),
            number=number.rstrip(FILLER),
            full_name=full_name_from_mrz(line1[5:]),
            nationality_code=line2[10:13].rstrip(FILLER),
            birth_date=date_from_mrz(dob, "date of birth", century_cutoff),
            gender_marker=gender,
            valid_thru=date_from_mrz(expiry, "valid thru", century_cutoff),
            optional_data=line2[28:].rstrip(FILLER).replace(FILLER, " "),
        )
        logger.debug("Parsed %s MRZ for number %s", visa_type.value, fields.number)
        return fields

    @classmethod
    def parse_name(cls, full_name: str) -> str:
        """Normalize a full name to the form it reads back from the MRZ."""
        return full_name_from_mrz(full_name_mrz(full_name))

    @classmethod
    def parse_seal_mirror(cls, mirror: str, century_cutoff: int | None = None) -> MRZFields:
        """
        Parse the MRV-B MRZ text mirrored in a digital seal.

        The mirror stops after the valid-thru check digit, so the returned
        optional data is always empty.

        Args:
            mirror: 64 characters, with '<' or space as filler
            century_cutoff: Two-digit years above this are 19xx

        Returns:
            MRZFields

        Raises:
            FormatError: If the mirror has the wrong length or content
            ChecksumError: If a check digit does not match
        """
        line_length = LAYOUTS[VisaType.MRV_TYPE_B].line_length
        expected = line_length + SEAL_MIRROR_LINE2_LENGTH
        text = mirror.replace(" ", FILLER)
        if len(text) != expected:
            msg = f"Seal MRZ mirror must be {expected} characters, got {len(text)}"
            raise FormatError(msg)
        line1 = text[:line_length]
        line2 = text[line_length:].ljust(line_length, FILLER)
        return cls.parse(f"{line1}\n{line2}", century_cutoff)
