"""Streamlit user interface for Sheet Tracker.

The UI covers the two halves of the review workflow:

* **Generate**: a CSV data file plus a JSON column configuration become a
  signed, protected review workbook. The signature is registered for the
  (user, entity) pair, revoking any workbook issued earlier for that pair.
* **Review upload**: a reviewer's workbook is verified and classified; the
  resulting diagnostic or delta file is stored and offered for download.

The code here focuses on orchestration and presentation; signing, building,
classification and report writing are delegated to the service layer in
:mod:`sheet_tracker.service`.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List

import pandas as pd
import streamlit as st

from .config import Settings
from .errors import ConfigurationError, SheetTrackerError
from .models import ColumnSpec, GenerationRequest
from .service import STATUS_FAILED, STATUS_REJECTED, STATUS_SUCCESS, ReviewService, describe_error
from .stores import LocalBlobStore, SqliteRecordStore

logger = logging.getLogger(__name__)

_EXAMPLE_COLUMNS = json.dumps(
    [
        {"header": "City", "key": "city", "editable": False},
        {"header": "Qty", "key": "qty", "editable": True, "dropdown": ["10", "20"]},
    ],
    indent=2,
)


def _load_rows(data_file) -> List[Dict[str, Any]]:
    """Read the uploaded CSV as text columns; blank cells become empty."""
    df = pd.read_csv(data_file, dtype=str, keep_default_na=False)
    return df.to_dict(orient="records")


def _build_service(settings: Settings) -> ReviewService:
    return ReviewService(
        settings,
        SqliteRecordStore(settings.record_db_path),
        LocalBlobStore(settings.storage_path),
    )


def _generate_tab(service: ReviewService) -> None:
    entity = st.text_input("Entity name", "")
    user = st.text_input("User ID", "")
    columns_text = st.text_area("Column configuration (JSON)", _EXAMPLE_COLUMNS, height=200)
    data_file = st.file_uploader("Data file (CSV)", type=["csv"])

    if not st.button("Generate"):
        return
    if not entity or not user:
        st.error("Entity name and user ID are required.")
        return
    try:
        columns = [ColumnSpec.from_dict(c) for c in json.loads(columns_text)]
    except (ValueError, KeyError, TypeError) as e:
        st.error(f"Invalid column configuration: {e}")
        return
    rows = _load_rows(data_file) if data_file is not None else []

    try:
        outcome = service.generate(GenerationRequest(entity, user, columns, rows))
    except SheetTrackerError as e:
        st.error(describe_error(e)["message"])
        return

    st.success(f"Workbook generated with {outcome.row_count} rows.")
    if outcome.truncated:
        st.warning("The data exceeded the sheet row limit; extra rows were not written.")
    st.write(f"Signature: `{outcome.signature}`")
    st.download_button(
        "Download workbook",
        data=Path(outcome.path).read_bytes(),
        file_name=Path(outcome.path).name,
        mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    )


def _review_tab(service: ReviewService) -> None:
    upload = st.file_uploader("Reviewed workbook", type=["xlsx"])
    if upload is None or not st.button("Analyze"):
        return

    result = service.ingest(upload.getvalue(), upload.name)
    if result.status == STATUS_REJECTED:
        st.error(f"{result.message} ({result.reason})")
        return
    if result.status == STATUS_FAILED:
        st.error(f"{result.count} invalid rows. {result.message}")
    elif result.status == STATUS_SUCCESS:
        st.success(f"{result.count} modified rows. {result.message}")
    else:
        st.info(result.message)
        return

    path = Path(result.path)
    st.dataframe(pd.read_excel(path, engine="openpyxl").head(100))
    st.download_button(
        "Download result",
        data=path.read_bytes(),
        file_name=path.name,
        mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    )


def main() -> None:  # pragma: no cover - Streamlit entry point
    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    st.set_page_config(page_title="Sheet Tracker UI", layout="centered")
    st.title("Sheet Tracker UI")

    try:
        settings = Settings.from_env()
    except ConfigurationError as e:
        st.error(f"Service is not configured: {e}")
        return
    service = _build_service(settings)

    generate_tab, review_tab = st.tabs(["Generate", "Review upload"])
    with generate_tab:
        _generate_tab(service)
    with review_tab:
        _review_tab(service)


if __name__ == "__main__":  # pragma: no cover
    main()
