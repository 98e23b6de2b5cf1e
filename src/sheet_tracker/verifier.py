"""Integrity verification of uploaded artifacts.

Nothing downstream of this module runs on a workbook that failed here: no
partial classification and no derived files from an unverified document.
"""

from __future__ import annotations

import logging
import zipfile
from io import BytesIO

from openpyxl import Workbook, load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from .errors import StructuralError
from .legit_guard import Signer
from .models import BASELINE_SHEET, ProvenanceRecord

logger = logging.getLogger(__name__)


def load_artifact(data: bytes) -> Workbook:
    """Materialize uploaded bytes as an in-memory workbook."""
    try:
        return load_workbook(BytesIO(data))
    except (zipfile.BadZipFile, InvalidFileException, KeyError, OSError, ValueError) as exc:
        logger.warning("Unreadable upload: %s", type(exc).__name__)
        raise StructuralError("File is not a readable workbook.", code="UNREADABLE") from exc


class IntegrityVerifier:
    def __init__(self, signer: Signer) -> None:
        self.signer = signer

    def verify(self, workbook: Workbook) -> ProvenanceRecord:
        """Check the embedded signature, then the presence of the baseline sheet."""
        record = self.signer.verify(workbook)
        if BASELINE_SHEET not in workbook.sheetnames:
            raise StructuralError(f"Missing {BASELINE_SHEET}", code="MISSING_BASELINE")
        return record

    def verify_bytes(self, data: bytes) -> tuple[Workbook, ProvenanceRecord]:
        workbook = load_artifact(data)
        return workbook, self.verify(workbook)


__all__ = ["load_artifact", "IntegrityVerifier"]
