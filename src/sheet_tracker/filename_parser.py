"""Filename handling for generated and derived artifacts.

Generated workbooks are named ``<entity>_<user>_<timestamp>.xlsx`` where the
timestamp is a 14-digit UTC ``YYYYMMDDHHMMSS`` token. When a reviewer uploads
a workbook, the original filename is only used to derive the names of the
diagnostic and delta files: a trailing ``_<14 digits>`` token is stripped from
the stem and a fresh one appended, so restamping is idempotent.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from pathlib import PurePath
from typing import Optional

from .utils import sanitize_name_token

TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"

_TRAILING_TS = re.compile(r"_(\d{14})$")
_TIMESTAMP = re.compile(r"^\d{14}$")


def utc_timestamp(now: Optional[datetime] = None) -> str:
    """Return ``now`` (default: current time) as a UTC ``YYYYMMDDHHMMSS`` token."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    return now.strftime(TIMESTAMP_FORMAT)


def strip_timestamp(stem: str) -> str:
    """Remove one trailing ``_<14 digits>`` token from ``stem`` if present."""
    return _TRAILING_TS.sub("", stem)


def restamp_filename(name: str, timestamp: str) -> str:
    """Replace (or add) the trailing timestamp token of ``name``.

    Parameters
    ----------
    name : str
        Original filename, e.g. ``Report_20240101120000.xlsx``. Any directory
        component is discarded.
    timestamp : str
        A 14-digit ``YYYYMMDDHHMMSS`` token.

    Returns
    -------
    str
        ``Report_<timestamp>.xlsx``. Applying the function to its own output
        with the same timestamp returns the same name.
    """
    if not _TIMESTAMP.match(timestamp):
        raise ValueError(f"timestamp must be 14 digits, got {timestamp!r}")
    base = PurePath(name.replace("\\", "/")).name or "upload.xlsx"
    path = PurePath(base)
    suffix = path.suffix or ".xlsx"
    stem = strip_timestamp(path.stem if path.suffix else base)
    return f"{stem}_{timestamp}{suffix}"


def generation_filename(entity_name: str, user_id: str, timestamp: str) -> str:
    """Name under which a freshly generated artifact is stored.

    Entity and user are reduced to letters, digits and ``_`` so the name never
    carries a path separator.
    """
    return f"{sanitize_name_token(entity_name)}_{sanitize_name_token(user_id)}_{timestamp}.xlsx"


__all__ = [
    "TIMESTAMP_FORMAT",
    "utc_timestamp",
    "strip_timestamp",
    "restamp_filename",
    "generation_filename",
]
