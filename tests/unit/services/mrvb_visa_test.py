from datetime import date

import pytest

from visa_seal.config import Settings
from visa_seal.exceptions import ChecksumError, FormatError, RangeError, TruncatedDataError
from visa_seal.models.visa import Gender, MRZFields, VisaDocumentData, VisaType
from visa_seal.services.mrvb_visa import MRVBVisa, derive_forward, derive_reverse
from visa_seal.utils.visa_mrz import MRZGenerator
from visa_seal.vds.features import FeatureSet, encode_mrz_mirror, encode_passport_number
from visa_seal.vds.seal import DigitalSealCodec, SealHeader
from visa_seal.vds.types import BarcodeMode, FeatureTag

SCALAR_FIELDS = (
    "type_code",
    "authority_code",
    "number",
    "nationality_code",
    "birth_date",
    "gender_marker",
    "valid_thru",
    "passport_number",
    "number_of_entries",
    "duration_of_stay",
    "visa_type_code",
    "additional_feature",
    "identifier_code",
    "cert_reference",
    "issue_date",
    "signature_date",
    "signature_data",
    "mrz_line1",
    "mrz_line2",
)


def _corrupt_mirror(visa: MRVBVisa, position: int) -> bytes:
    mirror = visa.mrz_line1 + visa.mrz_line2[:28]
    wrong = "0" if mirror[position] != "0" else "1"
    features = visa.features
    features.set(FeatureTag.MRZ, encode_mrz_mirror(mirror[:position] + wrong + mirror[position + 1:]))
    return visa.header_zone + features.to_bytes()


def test_sample_visa_mrz(sample_visa, sample_mrvb_lines):
    assert (sample_visa.mrz_line1, sample_visa.mrz_line2) == sample_mrvb_lines
    assert sample_visa.features.mrz_mirror == sample_mrvb_lines[0] + sample_mrvb_lines[1][:28]


def test_sample_visa_defaults(sample_visa):
    assert sample_visa.duration_of_stay == (0, 3, 0)
    assert sample_visa.visa_type_code == "0"
    assert sample_visa.number_of_entries == 0
    assert sample_visa.passport_number == "D23145890"
    assert sample_visa.signature_data == bytes(64)
    assert sample_visa.additional_feature is None
    assert sample_visa.features.tags() == [0x02, 0x03, 0x04, 0x05, 0x06]


def test_sample_seal_size(sample_visa):
    # 20 byte header, 65 byte message zone, 66 byte signature zone
    assert len(sample_visa.header_zone) == 20
    assert len(sample_visa.message_zone) == 65
    assert len(sample_visa.signed_seal) == 151


def test_end_to_end_seal_round_trip(sample_visa):
    sample_visa.set_visa_type_code("1")
    sample_visa.set_duration_of_stay([4, 0, 0])
    signed = sample_visa.signed_seal

    imported = MRVBVisa(document=VisaDocumentData(number="X1", full_name="Doe, John"))
    imported.set_signed_seal(signed)

    for name in SCALAR_FIELDS:
        assert getattr(imported, name) == getattr(sample_visa, name), name
    assert imported.full_name == "ERIKSSON, ANNA MARIA"
    assert imported.signed_seal == signed


def test_full_name_is_printed_normalized(sample_visa):
    sample_visa.set_full_name("Müller, Jürgen")
    assert sample_visa.full_name == "Müller, Jürgen"
    assert sample_visa.mrz_line1 == "V<UTOMULLER<<JURGEN".ljust(36, "<")


def test_forward_updates_mirror(sample_visa):
    sample_visa.set_number("AB1234567")

    assert sample_visa.mrz_line2.startswith("AB1234567")
    assert sample_visa.features.mrz_mirror.startswith(sample_visa.mrz_line1 + "AB1234567")


def test_gender_unspecified(sample_visa):
    sample_visa.set_gender_marker("X")
    assert sample_visa.mrz_line2[20] == "<"

    imported = MRVBVisa()
    imported.set_unsigned_seal(sample_visa.unsigned_seal)
    assert imported.gender_marker == Gender.UNSPECIFIED


def test_duration_of_stay_bounds(sample_visa):
    with pytest.raises(RangeError):
        sample_visa.set_duration_of_stay([255, 0, 0])
    assert sample_visa.duration_of_stay == (0, 3, 0)

    sample_visa.set_duration_of_stay([4, 0, 0])
    assert DigitalSealCodec.decode_message(sample_visa.message_zone).duration_of_stay == (4, 0, 0)


def test_visa_type_code_reads_back_as_set(sample_visa):
    sample_visa.set_visa_type_code("1")
    assert sample_visa.visa_type_code == "1"

    imported = MRVBVisa()
    imported.set_signed_seal(sample_visa.signed_seal)
    assert imported.visa_type_code == "1"

    sample_visa.set_visa_type_code("00a1")
    assert sample_visa.visa_type_code == "00A1"


@pytest.mark.parametrize("code", ["123456789", "XYZ", ""])
def test_invalid_visa_type_code(sample_visa, code):
    with pytest.raises(RangeError):
        sample_visa.set_visa_type_code(code)
    assert sample_visa.visa_type_code == "0"


@pytest.mark.parametrize("position", [45, 55, 63])
def test_corrupted_mirror_leaves_state_untouched(sample_visa, position):
    other = MRVBVisa(document=VisaDocumentData(number="X1", full_name="Doe, John"))
    before = other.to_dict()
    before_seal = other.signed_seal

    with pytest.raises(ChecksumError):
        other.set_unsigned_seal(_corrupt_mirror(sample_visa, position))

    assert other.to_dict() == before
    assert other.signed_seal == before_seal


def test_corrupted_message_zone_is_rejected(sample_visa):
    before = sample_visa.to_dict()
    with pytest.raises(ChecksumError):
        sample_visa.set_message_zone(_corrupt_mirror(sample_visa, 45)[len(sample_visa.header_zone):])
    assert sample_visa.to_dict() == before


@pytest.mark.parametrize(
    ("setter", "value"),
    [
        ("set_full_name", "A" * 29 + ", BC"),
        ("set_number", "1234567890"),
        ("set_authority_code", "U1O"),
        ("set_type_code", "VIS"),
        ("set_optional_data", "123456789"),
        ("set_nationality_code", ""),
        ("set_number_of_entries", 255),
        ("set_gender_marker", "Q"),
        ("set_passport_number", "D2314589-"),
        ("set_cert_reference", "XYZ"),
        ("set_identifier_code", "U"),
    ],
)
def test_rejected_setter_leaves_state_untouched(sample_visa, setter, value):
    before = sample_visa.to_dict()
    before_seal = sample_visa.signed_seal

    with pytest.raises(RangeError):
        getattr(sample_visa, setter)(value)

    assert sample_visa.to_dict() == before
    assert sample_visa.signed_seal == before_seal


def test_optional_data_is_not_mirrored(sample_visa):
    sample_visa.set_optional_data("AB12")
    assert sample_visa.mrz_line2[28:] == "AB12<<<<"

    imported = MRVBVisa()
    imported.set_signed_seal(sample_visa.signed_seal)
    assert imported.optional_data == ""


def test_use_passport_in_mrz(sample_visa):
    sample_visa.set_use_passport_in_mrz(True)
    assert sample_visa.mrz_line2[:10] == "D231458907"

    imported = MRVBVisa(document=VisaDocumentData(use_passport_in_mrz=True, passport_number="X1"))
    imported.set_signed_seal(sample_visa.signed_seal)
    assert imported.passport_number == "D23145890"
    assert imported.mrz_line2 == sample_visa.mrz_line2


def test_passport_number_updates_feature(sample_visa):
    sample_visa.set_passport_number("L898902C3")
    assert sample_visa.features.passport_number == "L898902C3"
    # Not printed unless requested
    assert sample_visa.mrz_line2.startswith("T32069231")


def test_number_of_entries(sample_visa):
    sample_visa.set_number_of_entries(2)
    assert sample_visa.features.number_of_entries == 2

    imported = MRVBVisa()
    imported.set_signed_seal(sample_visa.signed_seal)
    assert imported.number_of_entries == 2


def test_authority_code_updates_header(sample_visa):
    sample_visa.set_authority_code("D")

    assert sample_visa.authority_code == "D"
    assert sample_visa.header.authority_code == "D"
    assert sample_visa.mrz_line1.startswith("V<D<<ERIKSSON")


def test_set_header_zone(sample_visa):
    header = SealHeader(authority_code="XYZ", identifier_code="XYAB", cert_reference="0A")
    sample_visa.set_header_zone(DigitalSealCodec.encode_header(header))

    assert sample_visa.header == header
    assert sample_visa.authority_code == "XYZ"
    assert sample_visa.mrz_line1.startswith("V<XYZ")
    assert sample_visa.header_zone == DigitalSealCodec.encode_header(header)


def test_set_header_zone_rejects_trailing_bytes(sample_visa):
    with pytest.raises(FormatError):
        sample_visa.set_header_zone(sample_visa.header_zone + b"\x00")


def test_signature_zone(sample_visa):
    sample_visa.set_signature_zone(b"\xff\x03\x01\x02\x03")
    assert sample_visa.signature_data == b"\x01\x02\x03"

    with pytest.raises(TruncatedDataError):
        sample_visa.set_signature_zone(b"\xff\x05\x01")
    assert sample_visa.signature_data == b"\x01\x02\x03"


def test_additional_feature(sample_visa):
    sample_visa.set_additional_feature(b"\x01\x02")
    assert sample_visa.message_zone.endswith(b"\x07\x02\x01\x02")

    sample_visa.set_additional_feature(None)
    assert sample_visa.additional_feature is None


def test_unknown_features_survive_import(sample_visa):
    features = sample_visa.features
    features.set(0x42, b"\xca\xfe")

    imported = MRVBVisa()
    imported.set_message_zone(features.to_bytes())

    assert imported.features.get(0x42) == b"\xca\xfe"


def test_message_zone_without_mirror_is_rejected(sample_visa):
    with pytest.raises(FormatError, match="0x02"):
        sample_visa.set_message_zone(b"\x03\x01\x00")


def test_set_machine_readable_zone(sample_visa):
    fields = MRZFields(
        type_code="VC",
        authority_code="D",
        number="C01X00T47",
        full_name="MUSTERMANN, ERIKA",
        nationality_code="D",
        birth_date=date(1964, 8, 12),
        gender_marker=Gender.FEMALE,
        valid_thru=date(2027, 10, 31),
        optional_data="X1",
    )
    mrz = MRZGenerator.build(fields).machine_readable_zone

    sample_visa.set_machine_readable_zone(mrz)

    assert sample_visa.machine_readable_zone == mrz
    assert sample_visa.number == "C01X00T47"
    assert sample_visa.full_name == "MUSTERMANN, ERIKA"
    assert sample_visa.birth_date == date(1964, 8, 12)
    assert sample_visa.optional_data == "X1"
    assert sample_visa.features.mrz_mirror == mrz.replace("\n", "")[:64]


def test_set_machine_readable_zone_rejects_mrva(sample_visa, sample_mrz_fields):
    mrz = MRZGenerator.build(sample_mrz_fields, VisaType.MRV_TYPE_A).machine_readable_zone
    with pytest.raises(FormatError, match="MRV-B"):
        sample_visa.set_machine_readable_zone(mrz)


def test_derive_forward_is_pure(sample_document, sample_mrvb_lines):
    mrz_data, mirror = derive_forward(sample_document)

    assert (mrz_data.line1, mrz_data.line2) == sample_mrvb_lines
    assert derive_forward(sample_document) == (mrz_data, mirror)
    assert len(mirror) == 44


def test_derive_reverse_returns_new_document(sample_document):
    _, mirror = derive_forward(sample_document)
    features = FeatureSet({FeatureTag.MRZ: mirror})
    current = VisaDocumentData(number="X1", full_name="Doe, John", optional_data="KEEP")

    document = derive_reverse(current, features)

    assert document.number == "T32069231"
    assert document.full_name == "ERIKSSON, ANNA MARIA"
    assert document.optional_data == "KEEP"
    assert current.number == "X1"


def test_barcode_payload(sample_visa):
    assert sample_visa.barcode_payload(BarcodeMode.URL) == "https://example.org/"

    imported = MRVBVisa.from_barcode(sample_visa.barcode_payload())
    assert imported.signed_seal == sample_visa.signed_seal


def test_to_dict(sample_visa):
    data = sample_visa.to_dict()

    assert data["number"] == "T32069231"
    assert data["birth_date"] == "1974-08-12"
    assert data["gender_marker"] == "F"
    assert data["duration_of_stay"] == [0, 3, 0]
    assert data["mrz_line1"] == sample_visa.mrz_line1


def test_seal_does_not_share_header(sample_visa):
    header_zone = sample_visa.header_zone

    seal = sample_visa.seal
    seal.header.authority_code = "XYZ"

    assert sample_visa.header_zone == header_zone
    assert sample_visa.header.authority_code == sample_visa.authority_code == "UTO"


def test_passport_number_must_match_mrz_number(sample_visa):
    sample_visa.set_use_passport_in_mrz(True)
    features = sample_visa.features
    features.set(FeatureTag.PASSPORT_NUMBER, encode_passport_number("ZZ9999999"))

    imported = MRVBVisa(document=VisaDocumentData(use_passport_in_mrz=True))
    before = imported.signed_seal
    with pytest.raises(FormatError, match="0x05"):
        imported.set_message_zone(features.to_bytes())

    assert imported.signed_seal == before
    assert imported.passport_number == "D23145890"


def test_mirror_that_does_not_rebuild_is_rejected(sample_visa):
    mirror = sample_visa.mrz_line1 + sample_visa.mrz_line2[:28]
    features = sample_visa.features
    features.set(FeatureTag.MRZ, encode_mrz_mirror("V<UTO<ANNA".ljust(36, "<") + mirror[36:]))

    imported = MRVBVisa()
    before = imported.signed_seal
    with pytest.raises(FormatError, match="0x02"):
        imported.set_message_zone(features.to_bytes())

    assert imported.signed_seal == before


def test_imported_mirror_bytes_are_kept(sample_visa):
    imported = MRVBVisa(document=VisaDocumentData(number="X1"))
    imported.set_message_zone(sample_visa.message_zone)

    assert imported.features.get(FeatureTag.MRZ) == sample_visa.features.get(FeatureTag.MRZ)


def test_valid_thru_outside_century_window_is_rejected(sample_visa):
    signed = sample_visa.signed_seal

    with pytest.raises(RangeError, match="century cutoff"):
        sample_visa.set_valid_thru(date(2070, 1, 1))

    assert sample_visa.valid_thru == date(2012, 4, 15)
    assert sample_visa.signed_seal == signed


def test_century_window_follows_config():
    visa = MRVBVisa(config=Settings(mrz_century_cutoff=70))
    visa.set_valid_thru(date(2070, 1, 1))

    imported = MRVBVisa(config=Settings(mrz_century_cutoff=70))
    imported.set_signed_seal(visa.signed_seal)

    assert imported.valid_thru == date(2070, 1, 1)
