"""Runtime configuration for Sheet Tracker.

Settings are read once from the environment and then injected explicitly into
the signer and the artifact builder, so rotating the secret only requires a
new ``Settings`` instance.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from .errors import ConfigurationError

DEFAULT_SIGNATURE_LENGTH = 24
# Base64 of a SHA-256 HMAC is 44 characters.
MAX_SIGNATURE_LENGTH = 44
MIN_SIGNATURE_LENGTH = 8


@dataclass(frozen=True)
class Settings:
    secret_key: str
    sheet_password: str
    signature_length: int = DEFAULT_SIGNATURE_LENGTH
    storage_path: str = "./output/"
    record_db_path: str = "./data/signatures.db"

    def __post_init__(self) -> None:
        if not self.secret_key:
            raise ConfigurationError("Signing secret is not configured.")
        if not self.sheet_password:
            raise ConfigurationError("Sheet protection password is not configured.")
        validate_signature_length(self.signature_length)

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from ``SHEET_TRACKER_*`` environment variables."""
        raw_length = os.getenv("SHEET_TRACKER_SIGNATURE_LENGTH", str(DEFAULT_SIGNATURE_LENGTH))
        try:
            length = int(raw_length)
        except ValueError:
            raise ConfigurationError(
                f"SHEET_TRACKER_SIGNATURE_LENGTH must be an integer, got {raw_length!r}"
            ) from None
        return cls(
            secret_key=os.getenv("SHEET_TRACKER_SECRET", ""),
            sheet_password=os.getenv("SHEET_TRACKER_SHEET_PASSWORD", ""),
            signature_length=length,
            storage_path=os.getenv("SHEET_TRACKER_STORAGE_PATH", "./output/"),
            record_db_path=os.getenv("SHEET_TRACKER_RECORD_DB", "./data/signatures.db"),
        )


def validate_signature_length(length: int) -> int:
    if not MIN_SIGNATURE_LENGTH <= length <= MAX_SIGNATURE_LENGTH:
        raise ConfigurationError(
            f"Signature length must be between {MIN_SIGNATURE_LENGTH} and "
            f"{MAX_SIGNATURE_LENGTH}, got {length}"
        )
    return length
