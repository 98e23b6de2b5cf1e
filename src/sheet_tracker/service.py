"""Generation and re-ingestion pipelines.

Both pipelines are synchronous and keep no state between requests; the record
store and blob store are the only shared collaborators.

Re-ingestion outcomes:

* ``REJECTED``: the upload failed structural or integrity checks. Nothing is
  written and the caller only sees a stable reason code.
* ``FAILED``: at least one row is invalid. Only the invalid rows are written,
  with their diagnostics, under ``errors/``.
* ``SUCCESS``: no invalid rows and some modified rows. Only the modified rows
  are written, under ``pending/``, for downstream processing.
* ``IGNORED``: nothing changed.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional

from .builder import ArtifactBuilder
from .config import Settings
from .errors import IntegrityError, SheetTrackerError, StructuralError
from .filename_parser import generation_filename, restamp_filename, utc_timestamp
from .legit_guard import Signer
from .models import GenerationRequest
from .reporter import extract_subset, summarize
from .rule_engine import analyze
from .stores import BlobStore, RecordStore
from .verifier import IntegrityVerifier, load_artifact

logger = logging.getLogger(__name__)

ERRORS_NAMESPACE = "errors"
PENDING_NAMESPACE = "pending"

STATUS_REJECTED = "REJECTED"
STATUS_FAILED = "FAILED"
STATUS_SUCCESS = "SUCCESS"
STATUS_IGNORED = "IGNORED"


@dataclass
class GenerationOutcome:
    path: str
    signature: str
    row_count: int
    truncated: bool
    timestamp: str


@dataclass
class IngestionResult:
    status: str
    message: str
    count: int = 0
    path: Optional[str] = None
    reason: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v not in (None, {})}


class ReviewService:
    """Wires the engine to its external collaborators."""

    def __init__(self, settings: Settings, record_store: RecordStore, blob_store: BlobStore) -> None:
        self.settings = settings
        self.signer = Signer(settings.secret_key, settings.signature_length)
        self.builder = ArtifactBuilder(self.signer, settings.sheet_password)
        self.verifier = IntegrityVerifier(self.signer)
        self.record_store = record_store
        self.blob_store = blob_store

    def generate(self, request: GenerationRequest, timestamp: Optional[str] = None) -> GenerationOutcome:
        """Build, persist and register one artifact.

        The artifact is saved before the signature is upserted, so a failed
        save never revokes the previously issued artifact.
        """
        timestamp = timestamp or utc_timestamp()
        result = self.builder.build(
            request.entity_name, request.user_id, request.columns, request.rows, timestamp
        )
        name = generation_filename(request.entity_name, request.user_id, timestamp)
        path = self.blob_store.save(result.content, name)
        self.record_store.upsert(request.user_id, request.entity_name, result.signature)
        return GenerationOutcome(
            path=path,
            signature=result.signature,
            row_count=result.row_count,
            truncated=result.truncated,
            timestamp=timestamp,
        )

    def ingest(self, data: bytes, filename: str, timestamp: Optional[str] = None) -> IngestionResult:
        """Verify, classify and route one uploaded artifact."""
        timestamp = timestamp or utc_timestamp()
        try:
            workbook = load_artifact(data)
            provenance = self.verifier.verify(workbook)
            if not self.record_store.exists(provenance.user_id, provenance.signature):
                raise IntegrityError(
                    "Artifact has been superseded by a newer generation.", code="SIGNATURE_REVOKED"
                )
        except (StructuralError, IntegrityError) as exc:
            logger.warning("Upload rejected: %s", exc.code)
            return IngestionResult(
                status=STATUS_REJECTED,
                message="File failed integrity verification or is not a recognized artifact.",
                reason=exc.code,
            )

        analysis = analyze(workbook, provenance)
        output_name = restamp_filename(filename, timestamp)

        if analysis.invalid_rows:
            content = extract_subset(analysis.headers, analysis.invalid_rows, True)
            path = self.blob_store.save(content, f"{ERRORS_NAMESPACE}/ERROR_{output_name}")
            logger.warning("Upload rejected: found %d invalid rows", len(analysis.invalid_rows))
            return IngestionResult(
                status=STATUS_FAILED,
                message="Validation errors found. Processing aborted.",
                count=len(analysis.invalid_rows),
                path=path,
                details=summarize(content),
            )

        if analysis.modified_rows:
            content = extract_subset(analysis.headers, analysis.modified_rows, False)
            path = self.blob_store.save(content, f"{PENDING_NAMESPACE}/DELTA_{output_name}")
            logger.info("Upload accepted: found %d modified rows", len(analysis.modified_rows))
            return IngestionResult(
                status=STATUS_SUCCESS,
                message="Delta file generated for processing.",
                count=len(analysis.modified_rows),
                path=path,
                details=summarize(content),
            )

        return IngestionResult(status=STATUS_IGNORED, message="No changes detected.")


def describe_error(exc: SheetTrackerError) -> Dict[str, str]:
    """Caller-facing view of an engine error: code and generic message only."""
    return {"code": exc.code, "message": str(exc)}


__all__ = [
    "ERRORS_NAMESPACE",
    "PENDING_NAMESPACE",
    "GenerationOutcome",
    "IngestionResult",
    "ReviewService",
    "describe_error",
]
