from io import BytesIO

import pandas as pd

from sheet_tracker.models import Classification, RowVerdict
from sheet_tracker.reporter import ERROR_COLUMN, SUBSET_SHEET, extract_subset, subset_frame, summarize
from sheet_tracker.utils import sha256_bytes

HEADERS = ["City", "Qty"]


def _verdicts():
    return [
        RowVerdict(0, {0: "NY", 1: "99"}, Classification.INVALID, "[Qty: Invalid Value '99']"),
        RowVerdict(3, {0: "LA", 1: "30", 2: "overflow"}, Classification.INVALID, "[Qty: Invalid Value '30']"),
    ]


def test_diagnostic_file_layout():
    content = extract_subset(HEADERS, _verdicts(), include_diagnostic_column=True)
    frame = pd.read_excel(BytesIO(content), sheet_name=SUBSET_SHEET, dtype=str)

    assert list(frame.columns) == ["City", "Qty", ERROR_COLUMN]
    assert frame["City"].tolist() == ["NY", "LA"]
    assert frame[ERROR_COLUMN].tolist() == ["[Qty: Invalid Value '99']", "[Qty: Invalid Value '30']"]


def test_delta_file_has_no_diagnostic_column():
    verdicts = [RowVerdict(1, {0: "NY", 1: "20"}, Classification.MODIFIED)]
    frame = pd.read_excel(BytesIO(extract_subset(HEADERS, verdicts, False)), dtype=str)

    assert list(frame.columns) == HEADERS
    assert frame.values.tolist() == [["NY", "20"]]


def test_values_beyond_header_width_are_dropped():
    frame = subset_frame(HEADERS, _verdicts(), include_diagnostic_column=False)
    assert frame.shape == (2, 2)


def test_empty_subset_keeps_headers():
    frame = pd.read_excel(BytesIO(extract_subset(HEADERS, [], True)))
    assert list(frame.columns) == ["City", "Qty", ERROR_COLUMN]
    assert frame.empty


def test_summarize():
    content = extract_subset(HEADERS, _verdicts(), True)
    assert summarize(content) == {"bytes": len(content), "sha256": sha256_bytes(content)}
