"""Exception taxonomy for Sheet Tracker.

Structural and integrity failures are terminal: they abort re-ingestion before
any row is classified and surface to the caller as a rejection carrying a
stable ``code``. Validation errors are per cell and never abort; the row
classifier collects them into row diagnostics. Configuration errors concern
the service itself rather than a single request.
"""

from __future__ import annotations


class SheetTrackerError(Exception):
    """Base class for all errors raised by the engine."""

    code = "ERROR"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        if code is not None:
            self.code = code


class StructuralError(SheetTrackerError):
    """The uploaded file is not a recognized artifact of this system."""

    code = "NOT_AN_ARTIFACT"


class IntegrityError(SheetTrackerError):
    """The embedded provenance does not verify against the current secret."""

    code = "TAMPERED"


class ConfigurationError(SheetTrackerError):
    code = "CONFIGURATION"


class SigningError(SheetTrackerError):
    """Generation failed while computing or embedding the signature."""

    code = "SIGNING_FAILED"


class ValidationError(SheetTrackerError):
    """A single cell holds a value outside its column's allow-list."""

    code = "INVALID_VALUE"

    def __init__(self, header: str, value: str) -> None:
        super().__init__(f"[{header}: Invalid Value '{value}']")
        self.header = header
        self.value = value


__all__ = [
    "SheetTrackerError",
    "StructuralError",
    "IntegrityError",
    "ConfigurationError",
    "SigningError",
    "ValidationError",
]
