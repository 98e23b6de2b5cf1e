import base64

import pytest

from sheet_tracker.errors import (
    ConfigurationError,
    IntegrityError,
    SheetTrackerError,
    SigningError,
    StructuralError,
)
from sheet_tracker.legit_guard import Signer, content_digest, decode_record, encode_record
from sheet_tracker.models import METADATA_SHEET, ColumnSpec, ProvenanceRecord

from .helpers import SECRET, TIMESTAMP, edit_visible, open_workbook, save_workbook


def _stored(content: bytes) -> str:
    return open_workbook(content)[METADATA_SHEET]["A1"].value


class TestSignature:
    def test_length_and_determinism(self, signer):
        first = signer.compute_signature("Orders", "u1", TIMESTAMP, "abc")
        assert len(first) == 24
        assert first == signer.compute_signature("Orders", "u1", TIMESTAMP, "abc")

    def test_every_field_is_covered(self, signer):
        base = signer.compute_signature("Orders", "u1", TIMESTAMP, "abc")
        assert base != signer.compute_signature("Orders2", "u1", TIMESTAMP, "abc")
        assert base != signer.compute_signature("Orders", "u2", TIMESTAMP, "abc")
        assert base != signer.compute_signature("Orders", "u1", "20240101120001", "abc")
        assert base != signer.compute_signature("Orders", "u1", TIMESTAMP, "abd")

    def test_secret_matters(self, signer):
        other = Signer("another-secret")
        assert signer.compute_signature("E", "U", TIMESTAMP, "d") != other.compute_signature(
            "E", "U", TIMESTAMP, "d"
        )

    def test_length_is_tunable(self):
        assert len(Signer(SECRET, signature_length=32).compute_signature("E", "U", "T", "D")) == 32

    @pytest.mark.parametrize("length", [0, 7, 45])
    def test_length_out_of_bounds(self, length):
        with pytest.raises(ConfigurationError):
            Signer(SECRET, signature_length=length)

    def test_empty_secret(self):
        with pytest.raises(ConfigurationError):
            Signer("")

    def test_repr_hides_secret(self, signer):
        assert SECRET not in repr(signer)


class TestContentDigest:
    def test_only_read_only_columns_contribute(self):
        columns = [ColumnSpec("City", "city"), ColumnSpec("Qty", "qty", editable=True)]
        a = content_digest(columns, [{"city": "NY", "qty": "10"}])
        b = content_digest(columns, [{"city": "NY", "qty": "99"}])
        c = content_digest(columns, [{"city": "LA", "qty": "10"}])
        assert a == b
        assert a != c

    def test_values_are_trimmed_canonical(self):
        columns = [ColumnSpec("N", "n")]
        assert content_digest(columns, [{"n": " 10 "}]) == content_digest(columns, [{"n": 10.0}])


class TestRecordEncoding:
    def test_round_trip(self):
        record = ProvenanceRecord("Orders", "u1", TIMESTAMP, "digest", "sig")
        assert decode_record(encode_record(record)) == record

    def test_wrong_field_count(self):
        stored = base64.b64encode(b"a::b::c::d").decode("ascii")
        with pytest.raises(StructuralError) as exc:
            decode_record(stored)
        assert exc.value.code == "MALFORMED_METADATA"

    def test_not_base64(self):
        with pytest.raises(StructuralError):
            decode_record("not base64 at all!")


class TestVerify:
    def test_untouched_artifact_verifies(self, signer, city_artifact):
        record = signer.verify(open_workbook(city_artifact))
        assert record.entity_name == "Orders"
        assert record.user_id == "u1"
        assert record.timestamp == TIMESTAMP

    def test_visible_edits_do_not_affect_verification(self, signer, city_artifact):
        edited = edit_visible(city_artifact, {"A2": "NX", "B2": "20"})
        assert signer.verify(open_workbook(edited)).user_id == "u1"

    def test_missing_metadata(self, signer, city_artifact):
        wb = open_workbook(city_artifact)
        wb.remove(wb[METADATA_SHEET])
        with pytest.raises(StructuralError) as exc:
            signer.verify(wb)
        assert exc.value.code == "MISSING_METADATA"

    def test_empty_metadata_cell(self, signer, city_artifact):
        wb = open_workbook(city_artifact)
        wb[METADATA_SHEET]["A1"] = None
        with pytest.raises(StructuralError):
            signer.verify(wb)

    def test_rotated_secret_rejects(self, city_artifact):
        with pytest.raises(IntegrityError) as exc:
            Signer("rotated-secret").verify(open_workbook(city_artifact))
        assert exc.value.code == "SIGNATURE_MISMATCH"

    def test_forged_fields_reject(self, signer, city_artifact):
        original = decode_record(_stored(city_artifact))
        forged = ProvenanceRecord("Orders", "someone-else", original.timestamp,
                                  original.content_digest, original.signature)
        wb = open_workbook(city_artifact)
        wb[METADATA_SHEET]["A1"] = encode_record(forged)
        with pytest.raises(IntegrityError):
            signer.verify(wb)

    def test_any_single_character_change_fails(self, signer, city_artifact):
        stored = _stored(city_artifact)
        wb = open_workbook(city_artifact)
        for i, ch in enumerate(stored):
            wb[METADATA_SHEET]["A1"] = stored[:i] + ("B" if ch == "A" else "A") + stored[i + 1:]
            with pytest.raises(SheetTrackerError) as exc:
                signer.verify(wb)
            assert SECRET not in str(exc.value)
        wb[METADATA_SHEET]["A1"] = stored
        assert signer.verify(wb).signature == decode_record(stored).signature

    def test_metadata_survives_resave(self, signer, city_artifact):
        resaved = save_workbook(open_workbook(city_artifact))
        assert signer.verify(open_workbook(resaved)).entity_name == "Orders"


class TestSign:
    def test_separator_in_fields_is_rejected(self, signer, builder, city_columns):
        with pytest.raises(SigningError):
            builder.build("Or::ders", "u1", city_columns, [], TIMESTAMP)

    def test_metadata_sheet_is_hidden_and_protected(self, city_artifact):
        meta = open_workbook(city_artifact)[METADATA_SHEET]
        assert meta.sheet_state == "veryHidden"
        assert meta.protection.sheet


class TestDigestFraming:
    def test_value_boundaries_are_part_of_the_digest(self):
        columns = [ColumnSpec("A", "a"), ColumnSpec("B", "b")]
        assert content_digest(columns, [{"a": "ab", "b": ""}]) != content_digest(columns, [{"a": "a", "b": "b"}])

    def test_row_boundaries_are_part_of_the_digest(self):
        columns = [ColumnSpec("A", "a")]
        assert content_digest(columns, [{"a": "ab"}, {"a": ""}]) != content_digest(columns, [{"a": "a"}, {"a": "b"}])

    @pytest.mark.parametrize("entity, user", [("Or|ders", "u1"), ("Orders", "u|1")])
    def test_payload_separator_in_fields_is_rejected(self, builder, city_columns, entity, user):
        with pytest.raises(SigningError):
            builder.build(entity, user, city_columns, [], TIMESTAMP)
