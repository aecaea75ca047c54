"""
Tests for blob storage: staging, atomic commit, reads and deletes.
"""

from pathlib import Path

import pytest

from mediavault.core.storage import CONTENT, THUMBNAIL, BlobStorage


@pytest.fixture
def storage(tmp_path: Path) -> BlobStorage:
    return BlobStorage(str(tmp_path / "blobs"))


def test_init_creates_directories(storage: BlobStorage):
    assert storage.root.is_dir()
    assert storage.tmp_root.is_dir()


def test_blob_path_layout(storage: BlobStorage):
    path = storage.blob_path("owner", "m1", THUMBNAIL)
    assert path == storage.root / "owner" / "media" / "m1.thumb"


def test_write_and_read(storage: BlobStorage):
    storage.write("owner", "m1", b"content")
    storage.write("owner", "m1", b"thumb", THUMBNAIL)
    assert storage.read("owner", "m1") == b"content"
    assert storage.read("owner", "m1", THUMBNAIL) == b"thumb"
    assert storage.has("owner", "m1", CONTENT)


def test_write_leaves_no_staged_files(storage: BlobStorage):
    storage.write("owner", "m1", b"content")
    assert list(storage.tmp_root.iterdir()) == []


def test_stage_commit_discard(storage: BlobStorage):
    staged = storage.stage(b"abc")
    assert staged.read_bytes() == b"abc"
    final = storage.commit(staged, "owner", "m2")
    assert not staged.exists()
    assert final.read_bytes() == b"abc"

    other = storage.stage(b"xyz")
    storage.discard(other)
    assert not other.exists()
    # discarding something that no longer exists is fine
    storage.discard(other)
    storage.discard(None)


def test_read_missing(storage: BlobStorage):
    assert storage.read("owner", "nope") is None
    assert not storage.has("owner", "nope")


def test_overwrite(storage: BlobStorage):
    storage.write("owner", "m1", b"first")
    storage.write("owner", "m1", b"second")
    assert storage.read("owner", "m1") == b"second"


def test_delete_removes_all_variants(storage: BlobStorage):
    storage.write("owner", "m1", b"content")
    storage.write("owner", "m1", b"thumb", THUMBNAIL)
    storage.delete("owner", "m1")
    assert not storage.has("owner", "m1", CONTENT)
    assert not storage.has("owner", "m1", THUMBNAIL)
    storage.delete("owner", "m1")
