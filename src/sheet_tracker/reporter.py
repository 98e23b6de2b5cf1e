"""
Reporting utilities for Sheet Tracker.

This module renders classified rows into a plain workbook: either the
diagnostic file (invalid rows plus an ``ERROR_DETAILS`` column) or the delta
file (modified rows only). It relies on pandas to lay out the tabular data and
on the openpyxl engine to write it. The output carries no styling, protection
or validation; it is a disposable, read-oriented file that is never
re-verified.
"""

from __future__ import annotations

from io import BytesIO
from typing import Dict, List, Sequence

import pandas as pd

from .models import RowVerdict
from .utils import sha256_bytes

ERROR_COLUMN = "ERROR_DETAILS"
SUBSET_SHEET = "Data"


def subset_frame(headers: Sequence[str], verdicts: Sequence[RowVerdict],
                 include_diagnostic_column: bool) -> pd.DataFrame:
    """Lay out ``verdicts`` as a DataFrame with one column per header.

    Captured values are placed by column index; values beyond the header
    width are dropped.
    """
    width = len(headers)
    records: List[List[object]] = []
    for verdict in verdicts:
        row = [verdict.cell_values.get(j) for j in range(width)]
        if include_diagnostic_column:
            row.append(verdict.message or "")
        records.append(row)
    columns = list(headers) + ([ERROR_COLUMN] if include_diagnostic_column else [])
    return pd.DataFrame.from_records(records, columns=columns) if records else pd.DataFrame(columns=columns)


def extract_subset(headers: Sequence[str], verdicts: Sequence[RowVerdict],
                   include_diagnostic_column: bool) -> bytes:
    """Render ``verdicts`` into xlsx bytes.

    Parameters
    ----------
    headers : sequence of str
        Header labels of the reviewed sheet, in column order.
    verdicts : sequence of RowVerdict
        Rows to include, written in the given order.
    include_diagnostic_column : bool
        Append ``ERROR_DETAILS`` with each verdict's diagnostic.

    Returns
    -------
    bytes
        The serialized workbook.
    """
    frame = subset_frame(headers, verdicts, include_diagnostic_column)
    buffer = BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        frame.to_excel(writer, sheet_name=SUBSET_SHEET, index=False)
    return buffer.getvalue()


def summarize(content: bytes) -> Dict[str, object]:
    """Size and checksum of a derived file, for the caller's summary."""
    return {"bytes": len(content), "sha256": sha256_bytes(content)}


__all__ = ["ERROR_COLUMN", "SUBSET_SHEET", "subset_frame", "extract_subset", "summarize"]
