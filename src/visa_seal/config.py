"""
Configuration for the visa seal library.

Values can be overridden with ``VISA_SEAL_*`` environment variables or a
``.env`` file.
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings for MRZ and digital seal generation."""

    model_config = SettingsConfigDict(env_prefix="VISA_SEAL_", env_file=".env", extra="ignore")

    # Two-digit years above this value are read as 19xx, otherwise 20xx
    mrz_century_cutoff: int = Field(default=60, ge=0, le=99)

    # Digital seal header defaults
    seal_version: int = Field(default=0x03, description="0x02 = VDS v3, 0x03 = VDS v4")
    feature_definition: int = Field(default=0x01, ge=1, le=254)
    type_category: int = Field(default=0x0A, ge=1, le=254)
    default_identifier_code: str = "UTSS"
    default_cert_reference: str = "00000"
    signature_length: int = Field(default=64, ge=1)

    # Logging
    log_level: str = "INFO"
    log_format: str = "text"


settings = Settings()
