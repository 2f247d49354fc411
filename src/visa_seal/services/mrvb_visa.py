"""
MRV-B visa with a visible digital seal.

``MRVBVisa`` owns one visa record and one digital seal and keeps them
consistent in both directions:

- forward: changing a field printed in the MRZ rebuilds the MRZ lines and
  the MRZ mirror feature (0x02) of the seal
- reverse: replacing the seal (or one of its zones) reads every MRZ field
  back from the mirror after validating its three check digits

Every setter validates and derives into new values first and only then
commits, so a failed call leaves the visa unchanged.
"""

from __future__ import annotations

from datetime import date
from typing import Any

from pydantic import ValidationError

from visa_seal.config import Settings, settings
from visa_seal.exceptions import FormatError, RangeError, VisaSealError
from visa_seal.logging_config import get_logger
from visa_seal.models.visa import Gender, MRZData, VisaDocumentData, VisaType
from visa_seal.utils.visa_mrz import MRZGenerator, MRZParser, check_mrz_date
from visa_seal.vds.barcode import barcode_payload, decode_seal_payload
from visa_seal.vds.features import (
    FeatureSet,
    encode_duration_of_stay,
    encode_mrz_mirror,
    encode_number_of_entries,
    encode_passport_number,
    encode_visa_type_code,
    validate_visa_type_code,
)
from visa_seal.vds.seal import DigitalSeal, DigitalSealCodec, SealHeader
from visa_seal.vds.types import BarcodeMode, FeatureTag

logger = get_logger(__name__)

DEFAULT_DURATION_OF_STAY = (0, 3, 0)
DEFAULT_VISA_TYPE_CODE = "0"


def _validated_document(document: VisaDocumentData, changes: dict[str, Any]) -> VisaDocumentData:
    try:
        return VisaDocumentData.model_validate({**document.model_dump(), **changes})
    except ValidationError as e:
        msg = f"Invalid visa field value: {e}"
        raise RangeError(msg) from e


def _validated_header(header: SealHeader, changes: dict[str, Any]) -> SealHeader:
    try:
        return SealHeader.model_validate({**header.model_dump(), **changes})
    except ValidationError as e:
        msg = f"Invalid seal header value: {e}"
        raise RangeError(msg) from e


def derive_forward(
    document: VisaDocumentData, century_cutoff: int | None = None
) -> tuple[MRZData, bytes]:
    """
    Derive the MRZ and the seal's MRZ mirror from a visa record.

    Args:
        document: Visa record
        century_cutoff: Two-digit years above this are 19xx

    Returns:
        Tuple of (MRZ lines, C40-packed mirror for feature 0x02)

    Raises:
        RangeError: If a field does not fit the MRV-B MRZ, or a date would
            read back in another century
    """
    check_mrz_date(document.birth_date, "Birth date", century_cutoff)
    check_mrz_date(document.valid_thru, "Valid thru", century_cutoff)
    mrz_data = MRZGenerator.build(document.to_mrz_fields(), VisaType.MRV_TYPE_B)
    return mrz_data, encode_mrz_mirror(MRZGenerator.seal_mirror(mrz_data))


def derive_reverse(
    document: VisaDocumentData,
    features: FeatureSet,
    century_cutoff: int | None = None,
) -> VisaDocumentData:
    """
    Read the visa fields back from a seal's features.

    Args:
        document: Current record; fields absent from the seal are kept
        features: Message zone features
        century_cutoff: Two-digit years above this are 19xx

    Returns:
        A new record with every MRZ-derived field overwritten

    Raises:
        FormatError: If the mirror is missing or malformed
        ChecksumError: If one of the mirror's check digits does not match
    """
    mirror = features.mrz_mirror
    if mirror is None:
        msg = "Seal has no MRZ feature (0x02)"
        raise FormatError(msg)

    fields = MRZParser.parse_seal_mirror(mirror, century_cutoff)
    changes: dict[str, Any] = {
        "type_code": fields.type_code,
        "authority_code": fields.authority_code,
        "full_name": fields.full_name,
        "nationality_code": fields.nationality_code,
        "birth_date": fields.birth_date,
        "gender_marker": fields.gender_marker,
        "valid_thru": fields.valid_thru,
    }
    if document.use_passport_in_mrz:
        changes["passport_number"] = fields.number
    else:
        changes["number"] = fields.number

    passport_number = features.passport_number
    if passport_number is not None:
        if document.use_passport_in_mrz and passport_number != fields.number:
            msg = (
                f"Passport number '{passport_number}' (0x05) differs from the MRZ "
                f"number '{fields.number}'"
            )
            raise FormatError(msg)
        changes["passport_number"] = passport_number
    number_of_entries = features.number_of_entries
    if number_of_entries is not None:
        changes["number_of_entries"] = number_of_entries

    try:
        return VisaDocumentData.model_validate({**document.model_dump(), **changes})
    except ValidationError as e:
        msg = f"Seal holds invalid visa data: {e}"
        raise FormatError(msg) from e


class MRVBVisa:
    """MRV-B visa record kept consistent with its visible digital seal."""

    def __init__(
        self,
        document: VisaDocumentData | None = None,
        header: SealHeader | None = None,
        duration_of_stay=DEFAULT_DURATION_OF_STAY,
        visa_type_code: str = DEFAULT_VISA_TYPE_CODE,
        additional_feature: bytes | None = None,
        signature: bytes | None = None,
        config: Settings | None = None,
    ) -> None:
        """
        Create a visa; every argument defaults to the sample Utopia visa.

        Raises:
            RangeError: If a value is out of bounds
        """
        self._config = config or settings
        self._document = document or VisaDocumentData()
        self._header = header or SealHeader(authority_code=self._document.authority_code)
        self._signature = (
            bytes(signature) if signature is not None
            else bytes(self._config.signature_length)
        )

        self._mrz_data, mirror = derive_forward(self._document, self._config.mrz_century_cutoff)
        features = FeatureSet()
        features.set(FeatureTag.MRZ, mirror)
        features.set(FeatureTag.NUMBER_OF_ENTRIES, encode_number_of_entries(self._document.number_of_entries))
        features.set(FeatureTag.DURATION_OF_STAY, encode_duration_of_stay(duration_of_stay))
        features.set(FeatureTag.PASSPORT_NUMBER, encode_passport_number(self._document.passport_number))
        features.set(FeatureTag.VISA_TYPE, encode_visa_type_code(visa_type_code))
        if additional_feature is not None:
            features.set(FeatureTag.ADDITIONAL_FEATURE, additional_feature)
        self._features = features
        self._visa_type_code_width = len(visa_type_code)

    # Document fields

    @property
    def document(self) -> VisaDocumentData:
        return self._document.model_copy()

    @property
    def type_code(self) -> str:
        return self._document.type_code

    @property
    def authority_code(self) -> str:
        return self._document.authority_code

    @property
    def number(self) -> str:
        return self._document.number

    @property
    def full_name(self) -> str:
        return self._document.full_name

    @property
    def nationality_code(self) -> str:
        return self._document.nationality_code

    @property
    def birth_date(self) -> date:
        return self._document.birth_date

    @property
    def gender_marker(self) -> Gender:
        return self._document.gender_marker

    @property
    def valid_thru(self) -> date:
        return self._document.valid_thru

    @property
    def optional_data(self) -> str:
        return self._document.optional_data

    @property
    def passport_number(self) -> str:
        return self._document.passport_number

    @property
    def use_passport_in_mrz(self) -> bool:
        return self._document.use_passport_in_mrz

    @property
    def number_of_entries(self) -> int:
        """Number of entries; 0 denotes unlimited."""
        return self._document.number_of_entries

    @property
    def place_of_issue(self) -> str:
        return self._document.place_of_issue

    @property
    def valid_from(self) -> date:
        return self._document.valid_from

    @property
    def visa_type(self) -> str:
        return self._document.visa_type

    @property
    def additional_info(self) -> str:
        return self._document.additional_info

    @property
    def url(self) -> str:
        return self._document.url

    # MRZ

    @property
    def mrz(self) -> MRZData:
        return self._mrz_data

    @property
    def mrz_line1(self) -> str:
        return self._mrz_data.line1

    @property
    def mrz_line2(self) -> str:
        return self._mrz_data.line2

    @property
    def machine_readable_zone(self) -> str:
        return self._mrz_data.machine_readable_zone

    # Seal header and features

    @property
    def header(self) -> SealHeader:
        return self._header.model_copy()

    @property
    def features(self) -> FeatureSet:
        return self._features.copy()

    @property
    def identifier_code(self) -> str:
        return self._header.identifier_code

    @property
    def cert_reference(self) -> str:
        return self._header.cert_reference

    @property
    def issue_date(self) -> date:
        return self._header.issue_date

    @property
    def signature_date(self) -> date:
        return self._header.signature_date

    @property
    def signature_data(self) -> bytes:
        return self._signature

    @property
    def duration_of_stay(self) -> tuple[int, int, int] | None:
        """Days, months and years the holder may stay per entry."""
        return self._features.duration_of_stay

    @property
    def visa_type_code(self) -> str | None:
        """Hex visa type code, padded to the width it was last set with."""
        return self._features.visa_type_code(self._visa_type_code_width)

    @property
    def additional_feature(self) -> bytes | None:
        return self._features.additional_feature

    # Seal zones

    @property
    def seal(self) -> DigitalSeal:
        return DigitalSeal(
            header=self._header.model_copy(), features=self._features.copy(), signature=self._signature
        )

    @property
    def header_zone(self) -> bytes:
        return DigitalSealCodec.encode_header(self._header)

    @property
    def message_zone(self) -> bytes:
        return DigitalSealCodec.encode_message(self._features)

    @property
    def signature_zone(self) -> bytes:
        return DigitalSealCodec.encode_signature(self._signature)

    @property
    def unsigned_seal(self) -> bytes:
        return self.header_zone + self.message_zone

    @property
    def signed_seal(self) -> bytes:
        return self.unsigned_seal + self.signature_zone

    # Forward updates

    def _apply_document(
        self,
        changes: dict[str, Any],
        feature_updates: dict[int, bytes] | None = None,
        header_changes: dict[str, Any] | None = None,
    ) -> None:
        candidate = _validated_document(self._document, changes)
        header = _validated_header(self._header, header_changes) if header_changes else self._header
        mrz_data, mirror = derive_forward(candidate, self._config.mrz_century_cutoff)

        features = self._features.copy()
        features.set(FeatureTag.MRZ, mirror)
        for tag, value in (feature_updates or {}).items():
            features.set(tag, value)

        self._document = candidate
        self._header = header
        self._mrz_data = mrz_data
        self._features = features

    def set_type_code(self, value: str) -> None:
        self._apply_document({"type_code": value})

    def set_authority_code(self, value: str) -> None:
        """Set the issuing authority in the visa and in the seal header."""
        self._apply_document({"authority_code": value}, header_changes={"authority_code": value})

    def set_number(self, value: str) -> None:
        self._apply_document({"number": value})

    def set_full_name(self, value: str) -> None:
        self._apply_document({"full_name": value})

    def set_nationality_code(self, value: str) -> None:
        self._apply_document({"nationality_code": value})

    def set_birth_date(self, value: date) -> None:
        self._apply_document({"birth_date": value})

    def set_gender_marker(self, value: Gender | str) -> None:
        self._apply_document({"gender_marker": value})

    def set_valid_thru(self, value: date) -> None:
        self._apply_document({"valid_thru": value})

    def set_optional_data(self, value: str) -> None:
        self._apply_document({"optional_data": value})

    def set_passport_number(self, value: str) -> None:
        """Set the passport number, mirrored in feature 0x05."""
        candidate = _validated_document(self._document, {"passport_number": value})
        self._apply_document(
            {"passport_number": candidate.passport_number},
            {FeatureTag.PASSPORT_NUMBER: encode_passport_number(candidate.passport_number)},
        )

    def set_use_passport_in_mrz(self, value: bool) -> None:
        self._apply_document({"use_passport_in_mrz": value})

    def set_number_of_entries(self, value: int) -> None:
        """Set the number of entries, 0 for unlimited (feature 0x03)."""
        self._apply_document(
            {"number_of_entries": value},
            {FeatureTag.NUMBER_OF_ENTRIES: encode_number_of_entries(value)},
        )

    def set_place_of_issue(self, value: str) -> None:
        self._apply_document({"place_of_issue": value})

    def set_valid_from(self, value: date) -> None:
        self._apply_document({"valid_from": value})

    def set_visa_type(self, value: str) -> None:
        self._apply_document({"visa_type": value})

    def set_additional_info(self, value: str) -> None:
        self._apply_document({"additional_info": value})

    def set_url(self, value: str) -> None:
        self._apply_document({"url": value})

    def set_machine_readable_zone(self, mrz: str) -> None:
        """
        Import printed MRV-B MRZ text.

        Args:
            mrz: Two lines of 36 characters

        Raises:
            FormatError: If the text is not an MRV-B MRZ
            ChecksumError: If a check digit does not match
        """
        visa_type, _, _ = MRZParser.split_lines(mrz)
        if visa_type != VisaType.MRV_TYPE_B:
            msg = "Expected an MRV-B MRZ of two 36-character lines"
            raise FormatError(msg)
        try:
            fields = MRZParser.parse(mrz, self._config.mrz_century_cutoff)
        except VisaSealError:
            logger.warning("Rejected MRZ import for visa %s", self.number)
            raise

        changes = fields.model_dump(exclude={"number"})
        number_field = "passport_number" if self.use_passport_in_mrz else "number"
        changes[number_field] = fields.number
        feature_updates = {}
        if self.use_passport_in_mrz:
            feature_updates[FeatureTag.PASSPORT_NUMBER] = encode_passport_number(fields.number)
        self._apply_document(changes, feature_updates)
        logger.info("Imported MRZ for visa %s", self.number)

    # Seal-only features

    def set_duration_of_stay(self, duration) -> None:
        """
        Set the duration of stay (feature 0x04).

        Args:
            duration: Days, months and years, each 0-254

        Raises:
            RangeError: If there are not 3 values in range
        """
        value = encode_duration_of_stay(duration)
        self._features.set(FeatureTag.DURATION_OF_STAY, value)

    def set_visa_type_code(self, code: str) -> None:
        """
        Set the visa type code (feature 0x06).

        Args:
            code: 1 to 8 hex digits

        Raises:
            RangeError: If the code is not hex or is too long
        """
        code = validate_visa_type_code(code)
        value = encode_visa_type_code(code)
        self._features.set(FeatureTag.VISA_TYPE, value)
        self._visa_type_code_width = len(code)

    def set_additional_feature(self, value: bytes | None) -> None:
        """Set the reserved feature 0x07; None removes it."""
        if value is None:
            self._features.remove(FeatureTag.ADDITIONAL_FEATURE)
        else:
            self._features.set(FeatureTag.ADDITIONAL_FEATURE, bytes(value))

    # Seal header

    def _apply_header(self, **changes: Any) -> None:
        self._header = _validated_header(self._header, changes)

    def set_identifier_code(self, value: str) -> None:
        self._apply_header(identifier_code=value)

    def set_cert_reference(self, value: str) -> None:
        self._apply_header(cert_reference=value)

    def set_issue_date(self, value: date) -> None:
        self._apply_header(issue_date=value)

    def set_signature_date(self, value: date) -> None:
        self._apply_header(signature_date=value)

    def set_feature_definition(self, value: int) -> None:
        self._apply_header(feature_definition=value)

    def set_type_category(self, value: int) -> None:
        self._apply_header(type_category=value)

    def set_seal_version(self, value: int) -> None:
        self._apply_header(version=value)

    def set_signature_data(self, value: bytes) -> None:
        self._signature = bytes(value)

    # Reverse updates

    def _import_seal(
        self,
        header: SealHeader,
        features: FeatureSet,
        signature: bytes | None = None,
    ) -> None:
        try:
            features.validate()
            document = derive_reverse(self._document, features, self._config.mrz_century_cutoff)
            mrz_data, _ = derive_forward(document, self._config.mrz_century_cutoff)
            if features.mrz_mirror != MRZGenerator.seal_mirror(mrz_data):
                msg = "Seal MRZ feature (0x02) does not match the visa fields read from the seal"
                raise FormatError(msg)
        except VisaSealError:
            logger.warning("Rejected seal import for visa %s", self.number)
            raise

        features = features.copy()
        visa_type_code = features.visa_type_code()

        self._document = document
        self._header = header
        self._mrz_data = mrz_data
        self._features = features
        self._visa_type_code_width = len(visa_type_code) if visa_type_code else 1
        if signature is not None:
            self._signature = signature
        logger.info("Imported seal for visa %s", self.number)

    def set_header_zone(self, data: bytes) -> None:
        """
        Replace the header zone; the visa takes the header's authority.

        Raises:
            FormatError: If the bytes are not exactly one header
        """
        header, end = DigitalSealCodec.decode_header(data)
        if end != len(data):
            msg = f"{len(data) - end} unexpected bytes after the seal header"
            raise FormatError(msg)
        self._apply_document({"authority_code": header.authority_code}, header_changes=header.model_dump())

    def set_message_zone(self, data: bytes) -> None:
        """Replace the message zone and read every visa field back from it."""
        self._import_seal(self._header, DigitalSealCodec.decode_message(data))

    def set_signature_zone(self, data: bytes) -> None:
        self._signature = DigitalSealCodec.decode_signature(data)

    def set_unsigned_seal(self, data: bytes) -> None:
        """Replace header and message zones, keeping the signature."""
        seal = DigitalSealCodec.decode_unsigned(data)
        self._import_seal(seal.header, seal.features)

    def set_signed_seal(self, data: bytes) -> None:
        """Replace all three seal zones."""
        seal = DigitalSealCodec.decode_signed(data)
        self._import_seal(seal.header, seal.features, seal.signature)

    # Barcode

    def barcode_payload(self, mode: BarcodeMode = BarcodeMode.DIGITAL_SEAL) -> str:
        """
        Get the text for the visa's barcode.

        Args:
            mode: Signed seal as base45 text, or the URL

        Returns:
            Barcode text
        """
        return barcode_payload(self.seal, mode, self.url)

    @classmethod
    def from_barcode(cls, text: str, config: Settings | None = None) -> MRVBVisa:
        """
        Build a visa from a scanned base45 seal payload.

        Raises:
            FormatError: If the payload is not a valid seal
            ChecksumError: If the mirrored MRZ fails validation
        """
        seal = decode_seal_payload(text)
        visa = cls(config=config)
        visa._import_seal(seal.header, seal.features, seal.signature)
        return visa

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        data = self._document.to_dict()
        data.update(
            {
                "mrz_line1": self.mrz_line1,
                "mrz_line2": self.mrz_line2,
                "identifier_code": self.identifier_code,
                "cert_reference": self.cert_reference,
                "issue_date": self.issue_date.isoformat(),
                "signature_date": self.signature_date.isoformat(),
                "duration_of_stay": list(self.duration_of_stay or ()),
                "visa_type_code": self.visa_type_code,
            }
        )
        return data
