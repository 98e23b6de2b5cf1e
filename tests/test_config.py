import pytest

from sheet_tracker.config import DEFAULT_SIGNATURE_LENGTH, Settings, validate_signature_length
from sheet_tracker.errors import ConfigurationError


def test_from_env(monkeypatch):
    monkeypatch.setenv("SHEET_TRACKER_SECRET", "s3cret")
    monkeypatch.setenv("SHEET_TRACKER_SHEET_PASSWORD", "pw")
    monkeypatch.setenv("SHEET_TRACKER_SIGNATURE_LENGTH", "32")
    monkeypatch.setenv("SHEET_TRACKER_STORAGE_PATH", "/tmp/out")
    monkeypatch.delenv("SHEET_TRACKER_RECORD_DB", raising=False)

    settings = Settings.from_env()

    assert settings.secret_key == "s3cret"
    assert settings.sheet_password == "pw"
    assert settings.signature_length == 32
    assert settings.storage_path == "/tmp/out"
    assert settings.record_db_path == "./data/signatures.db"


def test_missing_secret(monkeypatch):
    monkeypatch.delenv("SHEET_TRACKER_SECRET", raising=False)
    monkeypatch.setenv("SHEET_TRACKER_SHEET_PASSWORD", "pw")
    with pytest.raises(ConfigurationError):
        Settings.from_env()


def test_missing_password():
    with pytest.raises(ConfigurationError):
        Settings(secret_key="s", sheet_password="")


def test_non_integer_length(monkeypatch):
    monkeypatch.setenv("SHEET_TRACKER_SECRET", "s")
    monkeypatch.setenv("SHEET_TRACKER_SHEET_PASSWORD", "pw")
    monkeypatch.setenv("SHEET_TRACKER_SIGNATURE_LENGTH", "long")
    with pytest.raises(ConfigurationError):
        Settings.from_env()


def test_signature_length_bounds():
    assert validate_signature_length(DEFAULT_SIGNATURE_LENGTH) == 24
    assert validate_signature_length(8) == 8
    assert validate_signature_length(44) == 44
    for bad in (7, 45):
        with pytest.raises(ConfigurationError):
            validate_signature_length(bad)
