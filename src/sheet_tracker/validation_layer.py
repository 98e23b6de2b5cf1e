"""Per-column protection, allow-list validation and live highlighting.

Everything here is applied to the visible sheet only. Protection and the
validation/conditional-formatting rules are scoped to the whole column, not
just the populated rows, so rows a reviewer appends inherit the same lock
state, dropdown and highlighting.

Allow-lists are written once to the hidden lookup sheet and addressed through
a defined name; the dropdown constraint and the ``COUNTIF`` highlighting rule
both refer to that name, so the file carries a single source for each list.
"""

from __future__ import annotations

from typing import Dict, List, Sequence

from openpyxl import Workbook
from openpyxl.cell import WriteOnlyCell
from openpyxl.formatting.rule import FormulaRule
from openpyxl.styles import Font, PatternFill, Protection
from openpyxl.utils import get_column_letter
from openpyxl.workbook.defined_name import DefinedName
from openpyxl.worksheet.datavalidation import DataValidation
from openpyxl.worksheet.worksheet import Worksheet

from .models import BASELINE_SHEET, FIRST_DATA_ROW, LOOKUP_SHEET, MAX_SHEET_ROW, ColumnSpec
from .utils import sanitize_name_token

DEFAULT_COLUMN_WIDTH = 15

HEADER_FONT = Font(bold=True)
HEADER_FILL = PatternFill(fill_type="solid", start_color="FFD9D9D9", end_color="FFD9D9D9")
EDITABLE_FILL = PatternFill(fill_type="solid", start_color="FFFFFACD", end_color="FFFFFACD")
UNLOCKED = Protection(locked=False)
LOCKED = Protection(locked=True)

_INVALID_FILL = PatternFill(fill_type="solid", start_color="FFFF0000", end_color="FFFF0000")
_INVALID_FONT = Font(color="FFFFFFFF")
_MODIFIED_FILL = PatternFill(fill_type="solid", start_color="FFFFC000", end_color="FFFFC000")


def column_extent(col_idx: int) -> str:
    """Return the full data extent of 1-based column ``col_idx`` (``B2:B1048576``)."""
    letter = get_column_letter(col_idx)
    return f"{letter}{FIRST_DATA_ROW}:{letter}{MAX_SHEET_ROW}"


def write_header(ws: Worksheet, columns: Sequence[ColumnSpec], styled: bool = True) -> None:
    """Append the header row; works on regular and write-only sheets."""
    row = []
    for col in columns:
        cell = WriteOnlyCell(ws, value=col.header)
        if styled:
            cell.font = HEADER_FONT
            cell.fill = HEADER_FILL
        row.append(cell)
    ws.append(row)


def apply_column_protection(ws: Worksheet, columns: Sequence[ColumnSpec]) -> None:
    """Set whole-column default styles: editable columns unlocked, others locked."""
    for idx, col in enumerate(columns, start=1):
        dim = ws.column_dimensions[get_column_letter(idx)]
        dim.width = col.width or DEFAULT_COLUMN_WIDTH
        if col.editable:
            dim.protection = UNLOCKED
            dim.fill = EDITABLE_FILL
        else:
            dim.protection = LOCKED


def write_lookup_columns(lookup_ws: Worksheet, lists: Sequence[Sequence[str]]) -> None:
    """Write each allow-list into its own lookup column, starting at row 1.

    Rows are appended top to bottom, so the sheet may be write-only.
    """
    depth = max((len(values) for values in lists), default=0)
    for row in range(depth):
        lookup_ws.append([values[row] if row < len(values) else None for values in lists])


def register_named_range(wb: Workbook, key: str, lookup_idx: int, size: int) -> str:
    """Bind ``List_<key>`` to exactly ``size`` cells of a lookup column.

    Returns the name actually registered; a numeric suffix is appended when two
    keys sanitize to the same token.
    """
    base = "List_" + sanitize_name_token(key)
    name = base
    n = 2
    while name in wb.defined_names:
        name = f"{base}_{n}"
        n += 1
    letter = get_column_letter(lookup_idx + 1)
    ref = f"{LOOKUP_SHEET}!${letter}$1:${letter}${size}"
    wb.defined_names[name] = DefinedName(name, attr_text=ref)
    return name


def attach_list_validation(ws: Worksheet, col_idx: int, range_name: str) -> DataValidation:
    validation = DataValidation(type="list", formula1=range_name, allow_blank=True)
    validation.showErrorMessage = True
    validation.errorTitle = "Invalid value"
    validation.error = "Choose a value from the list."
    ws.data_validations.append(validation)
    validation.add(column_extent(col_idx))
    return validation


def attach_invalid_value_rule(ws: Worksheet, col_idx: int, range_name: str) -> None:
    """Highlight non-empty cells whose value is missing from the named range."""
    letter = get_column_letter(col_idx)
    first = f"{letter}{FIRST_DATA_ROW}"
    formula = f'AND({first}<>"",COUNTIF({range_name},{first})=0)'
    rule = FormulaRule(formula=[formula], fill=_INVALID_FILL, font=_INVALID_FONT)
    ws.conditional_formatting.add(column_extent(col_idx), rule)


def attach_modified_rule(ws: Worksheet, col_idx: int) -> None:
    """Highlight cells that differ from the same address on the baseline sheet."""
    letter = get_column_letter(col_idx)
    first = f"{letter}{FIRST_DATA_ROW}"
    formula = f"{first}<>{BASELINE_SHEET}!{first}"
    rule = FormulaRule(formula=[formula], fill=_MODIFIED_FILL)
    ws.conditional_formatting.add(column_extent(col_idx), rule)


def configure_sheet_logic(
    wb: Workbook,
    ws: Worksheet,
    lookup_ws: Worksheet,
    columns: Sequence[ColumnSpec],
) -> Dict[int, str]:
    """Apply protection, validation and highlighting to the visible sheet.

    Parameters
    ----------
    wb : Workbook
        Workbook receiving the defined names.
    ws : Worksheet
        The visible sheet.
    lookup_ws : Worksheet
        The hidden lookup sheet receiving one column per allow-list. It must
        still be empty.
    columns : sequence of ColumnSpec
        Column layout; position ``i`` is sheet column ``i + 1``.

    Returns
    -------
    Dict[int, str]
        0-based column index -> defined name of its allow-list.
    """
    apply_column_protection(ws, columns)
    named: Dict[int, str] = {}
    lists: List[List[str]] = []
    for i, col in enumerate(columns):
        col_idx = i + 1
        if col.has_allow_list:
            values = list(col.dropdown or ())
            range_name = register_named_range(wb, col.key, len(lists), len(values))
            lists.append(values)
            attach_list_validation(ws, col_idx, range_name)
            attach_invalid_value_rule(ws, col_idx, range_name)
            named[i] = range_name
        if col.editable:
            attach_modified_rule(ws, col_idx)
    write_lookup_columns(lookup_ws, lists)
    return named


__all__ = [
    "DEFAULT_COLUMN_WIDTH",
    "column_extent",
    "write_header",
    "apply_column_protection",
    "write_lookup_columns",
    "register_named_range",
    "attach_list_validation",
    "attach_invalid_value_rule",
    "attach_modified_rule",
    "configure_sheet_logic",
]
