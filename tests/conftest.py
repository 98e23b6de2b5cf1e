"""Shared fixtures: settings, signer, builder and a small signed artifact."""

from __future__ import annotations

import pytest

from sheet_tracker.builder import ArtifactBuilder
from sheet_tracker.config import Settings
from sheet_tracker.legit_guard import Signer
from sheet_tracker.models import ColumnSpec
from sheet_tracker.service import ReviewService
from sheet_tracker.stores import InMemoryRecordStore, LocalBlobStore

from .helpers import PASSWORD, SECRET, TIMESTAMP


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        secret_key=SECRET,
        sheet_password=PASSWORD,
        storage_path=str(tmp_path / "output"),
        record_db_path=str(tmp_path / "data" / "signatures.db"),
    )


@pytest.fixture
def signer() -> Signer:
    return Signer(SECRET)


@pytest.fixture
def builder(signer) -> ArtifactBuilder:
    return ArtifactBuilder(signer, PASSWORD)


@pytest.fixture
def city_columns():
    return [
        ColumnSpec(header="City", key="city", editable=False),
        ColumnSpec(header="Qty", key="qty", editable=True, dropdown=("10", "20")),
    ]


@pytest.fixture
def city_artifact(builder, city_columns) -> bytes:
    result = builder.build("Orders", "u1", city_columns, [{"city": "NY", "qty": "10"}], TIMESTAMP)
    return result.content


@pytest.fixture
def record_store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def blob_store(tmp_path) -> LocalBlobStore:
    return LocalBlobStore(tmp_path / "output")


@pytest.fixture
def service(settings, record_store, blob_store) -> ReviewService:
    return ReviewService(settings, record_store, blob_store)
