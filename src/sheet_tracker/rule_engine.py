"""
Row classification for Sheet Tracker.

This module diffs the visible sheet of a verified artifact against its hidden
baseline and re-validates every cell that has an allow-list. Allow-lists are
read back from the artifact itself: each list validation on the visible sheet
names a defined range, and that range is resolved on the lookup sheet. No
external source is consulted, so a classification can always be reproduced
from the file alone.

Each row ends up in exactly one of three classes:

- ``INVALID``: at least one cell holds a value outside its allow-list. All
  columns are checked, so the diagnostic lists every offending cell.
- ``MODIFIED``: no invalid cell, but at least one cell differs from the
  baseline.
- ``UNCHANGED``: dropped from the result.

A row present on only one side (appended by the reviewer, or cleared) is
compared against an empty row and therefore counts as modified.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Set

from openpyxl import Workbook
from openpyxl.utils import get_column_letter
from openpyxl.utils.cell import range_boundaries
from openpyxl.worksheet.worksheet import Worksheet

from .cell_codec import allow_list_token, to_canonical_string, values_equal
from .errors import ValidationError
from .models import (
    BASELINE_SHEET,
    FIRST_DATA_ROW,
    HEADER_ROW,
    LOOKUP_SHEET,
    AnalysisResult,
    Classification,
    ProvenanceRecord,
    RowVerdict,
)

logger = logging.getLogger(__name__)

AllowLists = Dict[int, Set[str]]


def read_headers(ws: Worksheet) -> List[str]:
    """Return the header labels of ``ws`` without trailing empty cells."""
    rows = ws.iter_rows(min_row=HEADER_ROW, max_row=HEADER_ROW, values_only=True)
    labels = [to_canonical_string(v) for v in next(rows, ())]
    while labels and not labels[-1]:
        labels.pop()
    return labels


def _named_range_values(workbook: Workbook, name: str) -> Optional[Set[str]]:
    defined = workbook.defined_names.get(name)
    if defined is None:
        logger.warning("Could not resolve named range: %s", name)
        return None
    values: Set[str] = set()
    for sheet_title, coord in defined.destinations:
        if sheet_title != LOOKUP_SHEET or sheet_title not in workbook.sheetnames:
            logger.warning("Named range %s points outside %s; ignored", name, LOOKUP_SHEET)
            continue
        min_col, min_row, max_col, max_row = range_boundaries(coord)
        ws = workbook[sheet_title]
        for row in ws.iter_rows(min_row=min_row, max_row=max_row,
                                min_col=min_col, max_col=max_col, values_only=True):
            for value in row:
                token = allow_list_token(value)
                if token:
                    values.add(token)
    return values


def resolve_allow_lists(workbook: Workbook, visible: Optional[Worksheet] = None) -> AllowLists:
    """Map 0-based column index -> allowed values, as allow-list tokens.

    Parameters
    ----------
    workbook : Workbook
        The uploaded artifact.
    visible : Worksheet, optional
        Sheet whose list validations are resolved; defaults to the first
        worksheet.

    Returns
    -------
    Dict[int, Set[str]]
        Only columns whose validation refers to a defined name on the lookup
        sheet are present.
    """
    visible = visible if visible is not None else workbook.worksheets[0]
    rules: AllowLists = {}
    for validation in visible.data_validations.dataValidation:
        if validation.type != "list":
            continue
        formula = (validation.formula1 or "").strip().lstrip("=")
        if not formula:
            continue
        values = _named_range_values(workbook, formula)
        if values is None:
            continue
        for cell_range in validation.sqref:
            for col in range(cell_range.min_col, cell_range.max_col + 1):
                rules[col - 1] = values
    return rules


def _at(row: Sequence[Any], idx: int) -> Any:
    return row[idx] if idx < len(row) else None


def _is_blank_row(row: Sequence[Any]) -> bool:
    return all(to_canonical_string(v) == "" for v in row)


def check_allowed(header: str, value: Any, allowed: Optional[Set[str]]) -> None:
    """Raise :class:`ValidationError` when a non-empty ``value`` is not allowed."""
    if allowed is None:
        return
    token = allow_list_token(value)
    if token and token not in allowed:
        raise ValidationError(header, to_canonical_string(value).strip())


def classify_row(
    row_index: int,
    current_row: Sequence[Any],
    baseline_row: Sequence[Any],
    headers: Sequence[str],
    allow_lists: AllowLists,
) -> RowVerdict:
    cell_values: Dict[int, Any] = {}
    errors: List[str] = []
    modified = False
    width = max(len(current_row), len(baseline_row))
    for j in range(width):
        current = _at(current_row, j)
        baseline = _at(baseline_row, j)
        cell_values[j] = current
        header = headers[j] if j < len(headers) else get_column_letter(j + 1)
        try:
            check_allowed(header, current, allow_lists.get(j))
        except ValidationError as err:
            errors.append(str(err))
            continue
        if not errors and not values_equal(current, baseline):
            modified = True

    if errors:
        return RowVerdict(row_index, cell_values, Classification.INVALID, " ".join(errors))
    if modified:
        return RowVerdict(row_index, cell_values, Classification.MODIFIED)
    return RowVerdict(row_index, cell_values, Classification.UNCHANGED)


def classify(workbook: Workbook, allow_lists: Optional[AllowLists] = None) -> List[RowVerdict]:
    """Classify every data row of a verified artifact.

    Only ``INVALID`` and ``MODIFIED`` verdicts are returned, in row order.
    Exceptions other than per-cell validation errors propagate; the caller
    gets either a complete classification or none.
    """
    visible = workbook.worksheets[0]
    baseline = workbook[BASELINE_SHEET]
    headers = read_headers(visible)
    if allow_lists is None:
        allow_lists = resolve_allow_lists(workbook, visible)

    current_rows = list(visible.iter_rows(min_row=FIRST_DATA_ROW, values_only=True))
    baseline_rows = list(baseline.iter_rows(min_row=FIRST_DATA_ROW, values_only=True))

    verdicts: List[RowVerdict] = []
    for i in range(max(len(current_rows), len(baseline_rows))):
        current_row = current_rows[i] if i < len(current_rows) else ()
        baseline_row = baseline_rows[i] if i < len(baseline_rows) else ()
        if _is_blank_row(current_row) and _is_blank_row(baseline_row):
            continue
        verdict = classify_row(i, current_row, baseline_row, headers, allow_lists)
        if verdict.classification is not Classification.UNCHANGED:
            verdicts.append(verdict)
    return verdicts


def analyze(workbook: Workbook, provenance: ProvenanceRecord) -> AnalysisResult:
    """Classify a verified workbook and bundle the result with its headers."""
    verdicts = classify(workbook)
    result = AnalysisResult(headers=read_headers(workbook.worksheets[0]),
                            provenance=provenance, verdicts=verdicts)
    logger.info(
        "Analyzed entity=%s user=%s invalid=%d modified=%d",
        provenance.entity_name,
        provenance.user_id,
        len(result.invalid_rows),
        len(result.modified_rows),
    )
    return result


__all__ = [
    "AllowLists",
    "read_headers",
    "resolve_allow_lists",
    "check_allowed",
    "classify_row",
    "classify",
    "analyze",
]
