"""
Utility functions for Sheet Tracker.

This module contains helper functions used across the project:
 - compute SHA256 checksums of byte payloads
 - atomic write to avoid partial writes
 - sheet and defined-name sanitizing

These helpers are designed to be small and stateless, making the core
logic in other modules easier to test.
"""

from __future__ import annotations

import hashlib
import re
import shutil
import tempfile
from pathlib import Path


def sha256_bytes(data: bytes) -> str:
    """Compute the SHA256 checksum of a byte payload and return it as hex."""
    return hashlib.sha256(data).hexdigest()


def write_atomic(path: Path, data: bytes) -> None:
    """Atomically write ``data`` to ``path``.

    The data is first written to a temporary file in the same directory
    and then moved to the target path. This ensures that other processes
    never see a partially written file.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(delete=False, dir=str(path.parent)) as tmp:
        tmp.write(data)
        tmp_path = Path(tmp.name)
    shutil.move(str(tmp_path), path)


def sanitize_sheet_name(name: str | None) -> str:
    """Return a worksheet title safe for the xlsx format.

    Anything other than letters, digits and spaces becomes ``_``; titles are
    capped at 31 characters.
    """
    if not name:
        return "Data"
    cleaned = re.sub(r"[^a-zA-Z0-9 ]", "_", name)[:31].strip()
    return cleaned or "Data"


def sanitize_name_token(token: str) -> str:
    """Return ``token`` reduced to characters valid inside a defined name."""
    return re.sub(r"[^a-zA-Z0-9_]", "_", token)
