"""Helpers for building and editing artifacts the way a reviewer would."""

from __future__ import annotations

from io import BytesIO
from typing import Any, Dict

from openpyxl import Workbook, load_workbook

SECRET = "test-secret-key"
PASSWORD = "review-deterrent"
TIMESTAMP = "20240101120000"


def open_workbook(content: bytes) -> Workbook:
    return load_workbook(BytesIO(content))


def save_workbook(wb: Workbook) -> bytes:
    buffer = BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def edit_visible(content: bytes, edits: Dict[str, Any]) -> bytes:
    """Apply ``{"B2": value}`` edits to the visible sheet and re-serialize."""
    wb = open_workbook(content)
    ws = wb.worksheets[0]
    for address, value in edits.items():
        ws[address] = value
    return save_workbook(wb)
