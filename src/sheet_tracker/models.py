"""Data model shared by the generation and re-ingestion pipelines.

The column layout is immutable for the lifetime of a document: its
order fixes the column index used on the visible, baseline and lookup sheets.
Row records are plain mappings from field key to scalar; absent keys render as
empty cells.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

RowRecord = Mapping[str, Any]

# Sheet layout of a generated artifact. The visible sheet is always the first
# worksheet; the other three are very hidden.
BASELINE_SHEET = "shadow_data"
LOOKUP_SHEET = "lookup_data"
METADATA_SHEET = "metadata_protected"

HEADER_ROW = 1
FIRST_DATA_ROW = 2
# Last row index of the xlsx format.
MAX_SHEET_ROW = 1048576
MAX_DATA_ROWS = MAX_SHEET_ROW - HEADER_ROW


@dataclass(frozen=True)
class ColumnSpec:
    header: str
    key: str
    editable: bool = False
    dropdown: Optional[Tuple[str, ...]] = None
    width: Optional[float] = None
    data_format: Optional[str] = None

    def __post_init__(self) -> None:
        if self.dropdown is not None:
            cleaned = tuple(str(v) for v in self.dropdown if v is not None and str(v).strip())
            object.__setattr__(self, "dropdown", cleaned or None)

    @property
    def has_allow_list(self) -> bool:
        return bool(self.dropdown)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ColumnSpec":
        """Build a column from the request JSON shape.

        Accepts ``header``, ``key``, ``editable``, ``dropdown``, ``width`` and
        ``dataFormat`` (``data_format`` is accepted as well).
        """
        dropdown = data.get("dropdown")
        return cls(
            header=str(data.get("header") or data["key"]),
            key=str(data["key"]),
            editable=bool(data.get("editable", False)),
            dropdown=tuple(dropdown) if dropdown else None,
            width=data.get("width"),
            data_format=data.get("dataFormat", data.get("data_format")),
        )


@dataclass
class GenerationRequest:
    entity_name: str
    user_id: str
    columns: List[ColumnSpec]
    rows: Iterable[RowRecord] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "GenerationRequest":
        return cls(
            entity_name=str(data["entityName"]),
            user_id=str(data["userId"]),
            columns=[ColumnSpec.from_dict(c) for c in data.get("columns") or []],
            rows=list(data.get("data") or []),
        )


@dataclass(frozen=True)
class ProvenanceRecord:
    entity_name: str
    user_id: str
    timestamp: str
    content_digest: str
    signature: str


class Classification(str, Enum):
    INVALID = "INVALID"
    MODIFIED = "MODIFIED"
    UNCHANGED = "UNCHANGED"


@dataclass
class RowVerdict:
    """Outcome of diffing one data row against its baseline.

    ``row_index`` is the 0-based data-row index; the header occupies sheet row
    1, so the row lives on sheet row ``row_index + 2``. ``cell_values`` maps
    column index to the value captured from the visible sheet.
    """

    row_index: int
    cell_values: Dict[int, Any]
    classification: Classification
    message: Optional[str] = None

    @property
    def sheet_row(self) -> int:
        return self.row_index + 2


@dataclass
class AnalysisResult:
    headers: List[str]
    provenance: ProvenanceRecord
    verdicts: List[RowVerdict] = field(default_factory=list)

    @property
    def invalid_rows(self) -> List[RowVerdict]:
        return [v for v in self.verdicts if v.classification is Classification.INVALID]

    @property
    def modified_rows(self) -> List[RowVerdict]:
        return [v for v in self.verdicts if v.classification is Classification.MODIFIED]


@dataclass
class GenerationResult:
    content: bytes
    provenance: ProvenanceRecord
    row_count: int
    truncated: bool = False

    @property
    def signature(self) -> str:
        return self.provenance.signature


__all__ = [
    "BASELINE_SHEET",
    "LOOKUP_SHEET",
    "METADATA_SHEET",
    "HEADER_ROW",
    "FIRST_DATA_ROW",
    "MAX_SHEET_ROW",
    "MAX_DATA_ROWS",
    "RowRecord",
    "ColumnSpec",
    "GenerationRequest",
    "ProvenanceRecord",
    "Classification",
    "RowVerdict",
    "AnalysisResult",
    "GenerationResult",
]
