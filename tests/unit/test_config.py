from pathlib import Path

import pydantic
import pytest

from mediavault.config import VaultSettings


def test_defaults(tmp_path):
    s = VaultSettings(storage_root=tmp_path)
    assert s.db_path == tmp_path / "mediavault.db"
    assert s.token_ttl_seconds == 1800
    assert s.sweep_interval_seconds == 300
    assert s.min_passphrase_length == 8
    assert s.thumbnail_size == 300
    assert s.max_upload_bytes == 500 * 1024 * 1024
    assert s.start_sweeper is True


def test_explicit_db_path(tmp_path):
    s = VaultSettings(storage_root=tmp_path, db_path=tmp_path / "other.db")
    assert s.db_path == tmp_path / "other.db"


def test_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("MEDIAVAULT_STORAGE_ROOT", str(tmp_path / "root"))
    monkeypatch.setenv("MEDIAVAULT_TOKEN_TTL", "600")
    monkeypatch.setenv("MEDIAVAULT_MAX_UPLOAD", "1024")
    s = VaultSettings.from_env()
    assert s.storage_root == Path(tmp_path / "root")
    assert s.db_path == tmp_path / "root" / "mediavault.db"
    assert s.token_ttl_seconds == 600
    assert s.max_upload_bytes == 1024


def test_overrides_beat_env(monkeypatch, tmp_path):
    monkeypatch.setenv("MEDIAVAULT_TOKEN_TTL", "600")
    s = VaultSettings.from_env(storage_root=tmp_path, token_ttl_seconds=120, db_path=None)
    assert s.token_ttl_seconds == 120
    assert s.db_path == tmp_path / "mediavault.db"


@pytest.mark.parametrize(
    "field, value",
    [
        ("token_ttl_seconds", 10),
        ("sweep_interval_seconds", 0),
        ("min_passphrase_length", 4),
        ("max_upload_bytes", 0),
    ],
)
def test_invalid_values(tmp_path, field, value):
    with pytest.raises(pydantic.ValidationError):
        VaultSettings(storage_root=tmp_path, **{field: value})
