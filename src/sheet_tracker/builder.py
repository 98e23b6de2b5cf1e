"""Artifact generation.

A generated workbook carries four sheets: the visible review sheet, a very
hidden baseline copy of the data as generated (the diff reference), a very
hidden lookup sheet holding the allow-lists, and the very hidden metadata
sheet written by the signer. The workbook is opened in write-only mode and
rows are consumed from an iterator, each appended to the visible and baseline
sheets at the same index, so neither sheet is held in memory however long the
input is. Everything that openpyxl emits ahead of the cell data (column
styles, frozen panes) is set before the header row is appended.
"""

from __future__ import annotations

import logging
from io import BytesIO
from typing import Any, Iterable, List, Mapping, Optional, Sequence

from openpyxl import Workbook
from openpyxl.cell import WriteOnlyCell
from openpyxl.workbook.protection import WorkbookProtection

from .cell_codec import to_cell_value
from .errors import ConfigurationError
from .filename_parser import utc_timestamp
from .legit_guard import ContentDigest, Signer
from .models import (
    BASELINE_SHEET,
    LOOKUP_SHEET,
    MAX_DATA_ROWS,
    METADATA_SHEET,
    ColumnSpec,
    GenerationResult,
)
from .utils import sanitize_sheet_name
from .validation_layer import EDITABLE_FILL, UNLOCKED, configure_sheet_logic, write_header

logger = logging.getLogger(__name__)

_RESERVED_TITLES = {BASELINE_SHEET.lower(), LOOKUP_SHEET.lower(), METADATA_SHEET.lower()}


def visible_title(entity_name: Optional[str]) -> str:
    title = sanitize_sheet_name(entity_name)
    if title.lower() in _RESERVED_TITLES:
        return "Data"
    return title


class ArtifactBuilder:
    """Builds signed review workbooks.

    Parameters
    ----------
    signer : Signer
        Signs the read-only content and writes the metadata sheet.
    sheet_password : str
        Shared deterrent password for sheet and workbook protection. It is not
        a secret; the signature is the trust anchor.
    max_rows : int, optional
        Data-row ceiling, defaults to the format limit.
    """

    def __init__(self, signer: Signer, sheet_password: str, max_rows: int = MAX_DATA_ROWS) -> None:
        if not sheet_password:
            raise ConfigurationError("Sheet protection password is not configured.")
        self.signer = signer
        self.sheet_password = sheet_password
        self.max_rows = min(max_rows, MAX_DATA_ROWS)

    def build(
        self,
        entity_name: str,
        user_id: str,
        columns: Sequence[ColumnSpec],
        rows: Iterable[Mapping[str, Any]],
        timestamp: Optional[str] = None,
    ) -> GenerationResult:
        """Create, sign and serialize one artifact.

        Generation stops silently once ``max_rows`` data rows are written; the
        caller learns about it from ``row_count`` and ``truncated``.
        """
        timestamp = timestamp or utc_timestamp()
        columns = list(columns)

        wb = Workbook(write_only=True)
        visible = wb.create_sheet(visible_title(entity_name))
        baseline = wb.create_sheet(BASELINE_SHEET)
        lookup = wb.create_sheet(LOOKUP_SHEET)

        configure_sheet_logic(wb, visible, lookup, columns)
        visible.freeze_panes = "A2"
        visible.protection.sheet = True
        visible.protection.set_password(self.sheet_password)
        baseline.sheet_state = "veryHidden"
        lookup.sheet_state = "veryHidden"

        write_header(visible, columns)
        write_header(baseline, columns, styled=False)

        digest = ContentDigest(columns)
        row_count = 0
        truncated = False
        for record in rows:
            if row_count >= self.max_rows:
                truncated = True
                break
            record = record or {}
            visible.append(self._row_cells(visible, columns, record, styled=True))
            baseline.append(self._row_cells(baseline, columns, record, styled=False))
            digest.update(record)
            row_count += 1

        provenance = self.signer.sign(wb, entity_name, user_id, timestamp, digest.hexdigest())

        wb[METADATA_SHEET].protection.set_password(self.sheet_password)
        wb.security = WorkbookProtection(workbookPassword=self.sheet_password, lockStructure=True)

        buffer = BytesIO()
        wb.save(buffer)

        if truncated:
            logger.warning(
                "Row ceiling reached for entity=%s user=%s; wrote %d rows", entity_name, user_id, row_count
            )
        logger.info("Generated artifact entity=%s user=%s rows=%d", entity_name, user_id, row_count)
        return GenerationResult(
            content=buffer.getvalue(),
            provenance=provenance,
            row_count=row_count,
            truncated=truncated,
        )

    @staticmethod
    def _row_cells(ws, columns: Sequence[ColumnSpec], record: Mapping[str, Any], styled: bool) -> List[Any]:
        """Cells of one data row for ``ws``; plain values where no style is needed."""
        cells: List[Any] = []
        for col in columns:
            value = to_cell_value(record.get(col.key))
            is_text_formula = isinstance(value, str) and value.startswith("=")
            unlocked = styled and col.editable
            if not (is_text_formula or col.data_format or unlocked):
                cells.append(value)
                continue
            cell = WriteOnlyCell(ws, value=value)
            if is_text_formula:
                # Request data is never a formula.
                cell.data_type = "s"
            if col.data_format:
                cell.number_format = col.data_format
            if unlocked:
                cell.protection = UNLOCKED
                cell.fill = EDITABLE_FILL
            cells.append(cell)
        return cells


__all__ = ["ArtifactBuilder", "visible_title"]
