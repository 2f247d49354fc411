"""
Visa seal verification engine.

This module checks a scanned visa barcode or printed MRZ:
1. base45 decode -> seal zone parse -> known feature decode
2. MRZ mirror parse -> check digits verification
3. Field consistency against an optional reference visa
4. Policy checks: validity period

Errors are collected into a VerificationResult instead of raised. Signatures
are framed but not cryptographically verified here.
"""

from __future__ import annotations

from datetime import date
from enum import Enum

from visa_seal.exceptions import ChecksumError, VisaSealError
from visa_seal.logging_config import get_logger
from visa_seal.models.visa import MRZFields, VerificationResult, VisaDocumentData
from visa_seal.utils.visa_mrz import MRZParser
from visa_seal.vds.barcode import decode_seal_payload
from visa_seal.vds.seal import DigitalSeal

logger = get_logger(__name__)

_CONSISTENCY_FIELDS = (
    "type_code",
    "authority_code",
    "number",
    "nationality_code",
    "birth_date",
    "gender_marker",
    "valid_thru",
)


class VerificationStep(str, Enum):
    """Verification step identifiers."""

    SEAL_DECODE = "seal_decode"
    MRZ_PARSE = "mrz_parse"
    FIELD_CONSISTENCY = "field_consistency"
    POLICY_CHECK = "policy_check"


class SealVerificationEngine:
    """Engine for visa seal and MRZ verification."""

    def __init__(self, century_cutoff: int | None = None) -> None:
        """
        Initialize verification engine.

        Args:
            century_cutoff: Two-digit years above this are 19xx
        """
        self.century_cutoff = century_cutoff

    def verify_barcode(
        self,
        text: str,
        reference: VisaDocumentData | None = None,
        check_date: date | None = None,
    ) -> VerificationResult:
        """
        Verify a scanned base45 seal payload.

        Args:
            text: Barcode text
            reference: Optional visa record the seal should match
            check_date: Date the validity period is checked against, today by default

        Returns:
            VerificationResult with detailed results
        """
        result = VerificationResult(is_valid=False)

        try:
            seal = decode_seal_payload(text)
            seal.features.validate()
        except VisaSealError as e:
            result.seal_errors.append(f"Failed to decode seal: {e.message}")
            result.verification_details[VerificationStep.SEAL_DECODE.value] = {"error": e.message}
            logger.warning("Seal verification failed at decode: %s", e.message)
            return result

        result.seal_present = True
        result.seal_valid = True
        result.signature_present = bool(seal.signature)
        if result.signature_present:
            result.warnings.append("Seal signature was not cryptographically verified")
        else:
            result.seal_errors.append("Seal carries no signature bytes")
        self._record_header(seal, result)

        mirror = seal.features.mrz_mirror
        if mirror is None:
            result.seal_errors.append("Seal has no MRZ feature (0x02)")
            result.seal_valid = False
            return result

        fields = self._parse(lambda: MRZParser.parse_seal_mirror(mirror, self.century_cutoff), result)
        if fields is not None:
            if fields.authority_code != seal.header.authority_code:
                result.warnings.append(
                    f"Header authority '{seal.header.authority_code}' differs from MRZ "
                    f"authority '{fields.authority_code}'"
                )
            self._verify_fields(fields, reference, check_date, result)

        result.is_valid = self._calculate_overall_validity(result)
        return result

    def verify_mrz(
        self,
        mrz: str,
        reference: VisaDocumentData | None = None,
        check_date: date | None = None,
    ) -> VerificationResult:
        """
        Verify printed visa MRZ text.

        Args:
            mrz: Two MRZ lines
            reference: Optional visa record the MRZ should match
            check_date: Date the validity period is checked against, today by default

        Returns:
            VerificationResult with detailed results
        """
        result = VerificationResult(is_valid=False)
        fields = self._parse(lambda: MRZParser.parse(mrz, self.century_cutoff), result)
        if fields is not None:
            self._verify_fields(fields, reference, check_date, result)
            result.is_valid = self._calculate_overall_validity(result, seal_required=False)
        return result

    def _parse(self, parse, result: VerificationResult) -> MRZFields | None:
        try:
            fields = parse()
        except ChecksumError as e:
            result.mrz_errors.append(e.message)
            result.verification_details[VerificationStep.MRZ_PARSE.value] = {
                "field": e.field,
                "expected": e.expected,
                "actual": e.actual,
            }
            return None
        except VisaSealError as e:
            result.mrz_errors.append(f"Failed to parse MRZ: {e.message}")
            return None

        result.mrz_valid = True
        result.check_digits_valid = True
        result.mrz_fields = fields
        return fields

    def _record_header(self, seal: DigitalSeal, result: VerificationResult) -> None:
        header = seal.header
        result.verification_details[VerificationStep.SEAL_DECODE.value] = {
            "version": int(header.version),
            "authority_code": header.authority_code,
            "identifier_code": header.identifier_code,
            "cert_reference": header.cert_reference,
            "issue_date": header.issue_date.isoformat(),
            "signature_date": header.signature_date.isoformat(),
            "features": [f"0x{tag:02X}" for tag in seal.features.tags()],
        }
        if header.signature_date < header.issue_date:
            result.warnings.append("Seal signature date precedes its issue date")

    def _verify_fields(
        self,
        fields: MRZFields,
        reference: VisaDocumentData | None,
        check_date: date | None,
        result: VerificationResult,
    ) -> None:
        if reference is not None:
            self._verify_field_consistency(fields, reference, result)

        check_date = check_date or date.today()
        result.validity_period_ok = fields.valid_thru >= check_date
        if not result.validity_period_ok:
            result.policy_errors.append(f"Visa expired on {fields.valid_thru.isoformat()}")
        result.verification_details[VerificationStep.POLICY_CHECK.value] = {
            "check_date": check_date.isoformat(),
            "valid_thru": fields.valid_thru.isoformat(),
        }

    def _verify_field_consistency(
        self, fields: MRZFields, reference: VisaDocumentData, result: VerificationResult
    ) -> None:
        """
        Verify field consistency between MRZ data and a reference visa.

        Names are compared in their MRZ form, as the MRZ cannot carry
        diacritics or punctuation.
        """
        expected = reference.to_mrz_fields()
        mismatches = [
            name for name in _CONSISTENCY_FIELDS
            if getattr(fields, name) != getattr(expected, name)
        ]
        expected_name = MRZParser.parse_name(expected.full_name)
        if fields.full_name != expected_name:
            mismatches.append("full_name")

        result.field_consistency_valid = not mismatches
        for name in mismatches:
            result.seal_errors.append(f"Field mismatch: {name}")
        result.verification_details[VerificationStep.FIELD_CONSISTENCY.value] = {
            "mismatches": mismatches,
        }

    def _calculate_overall_validity(
        self, result: VerificationResult, seal_required: bool = True
    ) -> bool:
        checks = [result.mrz_valid, result.check_digits_valid, result.validity_period_ok]
        if seal_required:
            checks.extend([result.seal_valid, result.signature_present])
        if result.field_consistency_valid is not None:
            checks.append(result.field_consistency_valid)
        return all(checks)
