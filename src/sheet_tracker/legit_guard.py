"""
Authenticity and integrity for generated artifacts.

The signer computes a content digest over the read-only cells of a document
and a truncated HMAC-SHA256 signature over the provenance fields. The record
``signature::digest::entity::user::timestamp`` is base64 encoded and stored in
cell A1 of a very hidden, protected metadata sheet. Base64 only keeps the
record out of casual view; the HMAC is what makes it trustworthy. Hiding and
locking the sheet is a deterrent, not a security boundary.

Because the digest covers read-only values only, edits to editable columns
never invalidate the signature.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import logging
from typing import Any, Iterable, Mapping, Sequence

from openpyxl import Workbook

from .cell_codec import content_fragment
from .config import DEFAULT_SIGNATURE_LENGTH, validate_signature_length
from .errors import ConfigurationError, IntegrityError, SigningError, StructuralError
from .models import METADATA_SHEET, ColumnSpec, ProvenanceRecord

logger = logging.getLogger(__name__)

FIELD_SEPARATOR = "::"
PAYLOAD_SEPARATOR = "|"


class ContentDigest:
    """Incremental SHA-256 over read-only cell values.

    Values are fed in row-then-column order; only columns whose spec is not
    editable contribute, each as its trimmed canonical string prefixed with
    its UTF-8 byte length, so adjacent values cannot run into each other.
    """

    def __init__(self, columns: Sequence[ColumnSpec]) -> None:
        self._keys = [c.key for c in columns if not c.editable]
        self._hash = hashlib.sha256()

    def update(self, row: Mapping[str, Any]) -> None:
        for key in self._keys:
            data = content_fragment(row.get(key)).encode("utf-8")
            self._hash.update(len(data).to_bytes(8, "big"))
            self._hash.update(data)

    def hexdigest(self) -> str:
        return self._hash.hexdigest()


def content_digest(columns: Sequence[ColumnSpec], rows: Iterable[Mapping[str, Any]]) -> str:
    """Digest of all read-only values of ``rows``."""
    digest = ContentDigest(columns)
    for row in rows:
        digest.update(row)
    return digest.hexdigest()


def encode_record(record: ProvenanceRecord) -> str:
    fields = [
        record.signature,
        record.content_digest,
        record.entity_name,
        record.user_id,
        record.timestamp,
    ]
    raw = FIELD_SEPARATOR.join(fields)
    return base64.b64encode(raw.encode("utf-8")).decode("ascii")


def decode_record(stored: str) -> ProvenanceRecord:
    """Decode the metadata cell; anything that is not five fields is malformed."""
    try:
        decoded = base64.b64decode(stored.encode("ascii"), validate=True)
        raw = decoded.decode("utf-8")
    except (binascii.Error, UnicodeError, ValueError):
        raise StructuralError("Metadata format invalid.", code="MALFORMED_METADATA") from None
    # Non-canonical padding bits decode to the same bytes; treat as altered.
    if base64.b64encode(decoded).decode("ascii") != stored:
        raise StructuralError("Metadata format invalid.", code="MALFORMED_METADATA")
    parts = raw.split(FIELD_SEPARATOR)
    if len(parts) != 5:
        raise StructuralError("Metadata format invalid.", code="MALFORMED_METADATA")
    signature, digest, entity, user, timestamp = parts
    return ProvenanceRecord(
        entity_name=entity,
        user_id=user,
        timestamp=timestamp,
        content_digest=digest,
        signature=signature,
    )


class Signer:
    """Computes, embeds and re-verifies provenance signatures.

    The secret and the truncation length are injected at construction so a
    rotated key only requires a new instance.
    """

    def __init__(self, secret: str, signature_length: int = DEFAULT_SIGNATURE_LENGTH) -> None:
        if not secret:
            raise ConfigurationError("Signing secret is not configured.")
        self._secret = secret.encode("utf-8")
        self.signature_length = validate_signature_length(signature_length)

    def __repr__(self) -> str:
        return f"Signer(signature_length={self.signature_length})"

    def compute_signature(self, entity_name: str, user_id: str, timestamp: str, digest: str) -> str:
        payload = PAYLOAD_SEPARATOR.join([entity_name, user_id, timestamp, digest])
        mac = hmac.new(self._secret, payload.encode("utf-8"), hashlib.sha256).digest()
        return base64.b64encode(mac).decode("ascii")[: self.signature_length]

    def sign(
        self,
        workbook: Workbook,
        entity_name: str,
        user_id: str,
        timestamp: str,
        digest: str,
    ) -> ProvenanceRecord:
        """Sign the provenance fields and embed the record in ``workbook``.

        Any failure is raised as :class:`SigningError`; the caller must not
        hand out the workbook in that case.
        """
        for label, value in (("entity", entity_name), ("user", user_id), ("timestamp", timestamp)):
            for separator in (FIELD_SEPARATOR, PAYLOAD_SEPARATOR):
                if separator in value:
                    raise SigningError(f"{label} must not contain {separator!r}")
        try:
            signature = self.compute_signature(entity_name, user_id, timestamp, digest)
            record = ProvenanceRecord(
                entity_name=entity_name,
                user_id=user_id,
                timestamp=timestamp,
                content_digest=digest,
                signature=signature,
            )
            meta = workbook.create_sheet(METADATA_SHEET)
            meta.append([encode_record(record)])
            meta.protection.sheet = True
            meta.sheet_state = "veryHidden"
        except Exception as exc:
            raise SigningError("Signing failed") from exc
        return record

    def verify(self, workbook: Workbook) -> ProvenanceRecord:
        """Re-derive the signature from the embedded record and compare.

        Raises
        ------
        StructuralError
            The metadata sheet is missing or its record is malformed.
        IntegrityError
            The stored signature does not match the one recomputed with the
            current secret.
        """
        if METADATA_SHEET not in workbook.sheetnames:
            raise StructuralError(
                "Metadata sheet missing. File is not from this system.", code="MISSING_METADATA"
            )
        stored = workbook[METADATA_SHEET]["A1"].value
        if not isinstance(stored, str) or not stored:
            raise StructuralError(
                "Metadata sheet missing. File is not from this system.", code="MISSING_METADATA"
            )
        record = decode_record(stored)
        expected = self.compute_signature(
            record.entity_name, record.user_id, record.timestamp, record.content_digest
        )
        if not hmac.compare_digest(expected.encode("ascii"), record.signature.encode("utf-8")):
            logger.warning("Signature mismatch for entity=%s user=%s", record.entity_name, record.user_id)
            raise IntegrityError(
                "Signature Mismatch. File metadata has been tampered with.", code="SIGNATURE_MISMATCH"
            )
        return record


__all__ = [
    "ContentDigest",
    "content_digest",
    "encode_record",
    "decode_record",
    "Signer",
]
