import pytest

from sheet_tracker.errors import IntegrityError, StructuralError
from sheet_tracker.legit_guard import Signer
from sheet_tracker.models import BASELINE_SHEET
from sheet_tracker.verifier import IntegrityVerifier, load_artifact

from .helpers import open_workbook, save_workbook


def test_verify_bytes(signer, city_artifact):
    wb, record = IntegrityVerifier(signer).verify_bytes(city_artifact)
    assert record.entity_name == "Orders"
    assert BASELINE_SHEET in wb.sheetnames


def test_unreadable_bytes():
    with pytest.raises(StructuralError) as exc:
        load_artifact(b"definitely not a zip file")
    assert exc.value.code == "UNREADABLE"


def test_missing_baseline_is_structural(signer, city_artifact):
    wb = open_workbook(city_artifact)
    wb.remove(wb[BASELINE_SHEET])
    stripped = save_workbook(wb)

    with pytest.raises(StructuralError) as exc:
        IntegrityVerifier(signer).verify(open_workbook(stripped))
    assert exc.value.code == "MISSING_BASELINE"


def test_signature_is_checked_before_baseline(city_artifact):
    wb = open_workbook(city_artifact)
    wb.remove(wb[BASELINE_SHEET])
    with pytest.raises(IntegrityError):
        IntegrityVerifier(Signer("other-secret")).verify(wb)


def test_plain_workbook_is_not_an_artifact(signer):
    from openpyxl import Workbook

    data = save_workbook(Workbook())
    with pytest.raises(StructuralError) as exc:
        IntegrityVerifier(signer).verify_bytes(data)
    assert exc.value.code == "MISSING_METADATA"
