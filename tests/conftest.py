"""
Test configuration for the visa seal test suite.
"""

from __future__ import annotations

from datetime import date

import pytest

from visa_seal.models.visa import Gender, MRZFields, VisaDocumentData
from visa_seal.services.mrvb_visa import MRVBVisa

SAMPLE_MRVB_LINE1 = "V<UTOERIKSSON<<ANNA<MARIA".ljust(36, "<")
SAMPLE_MRVB_LINE2 = "T320692315UTO7408122F1204159".ljust(36, "<")


# Test markers
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "mrz: mark test as MRZ related")
    config.addinivalue_line("markers", "seal: mark test as digital seal related")


# Collection settings
def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)

        # Add specific markers based on file names
        if "mrz" in str(item.fspath) or "mrz" in item.name.lower():
            item.add_marker(pytest.mark.mrz)
        if "vds" in str(item.fspath) or "seal" in item.name.lower():
            item.add_marker(pytest.mark.seal)


@pytest.fixture
def sample_document() -> VisaDocumentData:
    """The Utopia sample visa record."""
    return VisaDocumentData()


@pytest.fixture
def sample_mrz_fields() -> MRZFields:
    """MRZ fields of the sample visa, name in MRZ-normal form."""
    return MRZFields(
        type_code="V",
        authority_code="UTO",
        number="T32069231",
        full_name="ERIKSSON, ANNA MARIA",
        nationality_code="UTO",
        birth_date=date(1974, 8, 12),
        gender_marker=Gender.FEMALE,
        valid_thru=date(2012, 4, 15),
    )


@pytest.fixture
def sample_visa() -> MRVBVisa:
    """A fresh sample MRV-B visa with its seal."""
    return MRVBVisa()


@pytest.fixture
def sample_mrvb_lines() -> tuple[str, str]:
    """Printed MRV-B MRZ of the sample visa."""
    return SAMPLE_MRVB_LINE1, SAMPLE_MRVB_LINE2
