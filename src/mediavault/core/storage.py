"""
Blob storage for media content and thumbnails

Structure Map for reference:
==============================
 - <storage_root>/
      - tmp/
          - {random}.stage        (in-flight uploads)
      - {owner_id}/
          - media/
              - {media_id}.bin    (content, ciphertext when encrypted)
              - {media_id}.thumb  (thumbnail, same CEK as content)
==============================
Blobs are keyed by media_id rather than by content hash: two racing uploads of
the same content under different CEKs produce different ciphertexts, and each
upload only ever touches its own paths.

Writes are two-phase: ``stage`` writes bytes to a temp file and ``commit`` moves
it into place with an atomic rename, so a reader never sees a partial blob.
Blobs are committed before their database row is inserted; an upload that
loses the insert deletes its own blobs. ``discard`` is safe to call on any
path, staged or not.
"""

from pathlib import Path
import os
import tempfile
from typing import Optional

from .exceptions import StorageError

CONTENT = "bin"
THUMBNAIL = "thumb"


class BlobStorage:
    """Filesystem store for content and thumbnail bytes."""

    def __init__(self, root_path: Optional[str] = None):
        self.root = (
            Path(root_path).expanduser() if root_path else Path.home() / ".mediavault"
        )
        self.root.mkdir(parents=True, exist_ok=True)
        self.tmp_root.mkdir(parents=True, exist_ok=True)

    @property
    def tmp_root(self) -> Path:
        return self.root / "tmp"

    def owner_root(self, owner_id: str) -> Path:
        return self.root / owner_id / "media"

    def blob_path(self, owner_id: str, media_id: str, variant: str = CONTENT) -> Path:
        return self.owner_root(owner_id) / f"{media_id}.{variant}"

    def stage(self, data: bytes) -> Path:
        """Write ``data`` to a temp file and return its path."""
        fd, name = tempfile.mkstemp(suffix=".stage", dir=self.tmp_root)
        path = Path(name)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
        except OSError as e:
            self.discard(path)
            raise StorageError(f"Failed to stage blob: {e}")
        return path

    def commit(self, staged: Path, owner_id: str, media_id: str, variant: str = CONTENT) -> Path:
        destination = self.blob_path(owner_id, media_id, variant)
        destination.parent.mkdir(parents=True, exist_ok=True)
        try:
            os.replace(staged, destination)
        except OSError as e:
            raise StorageError(f"Failed to commit blob {media_id}.{variant}: {e}")
        return destination

    def discard(self, staged: Optional[Path]) -> None:
        if staged is None:
            return
        try:
            Path(staged).unlink()
        except FileNotFoundError:
            pass

    def read(self, owner_id: str, media_id: str, variant: str = CONTENT) -> Optional[bytes]:
        """Return blob bytes, or None if the file is missing."""
        path = self.blob_path(owner_id, media_id, variant)
        try:
            with open(path, "rb") as f:
                return f.read()
        except FileNotFoundError:
            return None

    def write(self, owner_id: str, media_id: str, data: bytes, variant: str = CONTENT) -> Path:
        staged = self.stage(data)
        try:
            return self.commit(staged, owner_id, media_id, variant)
        finally:
            self.discard(staged)

    def has(self, owner_id: str, media_id: str, variant: str = CONTENT) -> bool:
        return self.blob_path(owner_id, media_id, variant).exists()

    def delete(self, owner_id: str, media_id: str) -> None:
        for variant in (CONTENT, THUMBNAIL):
            self.discard(self.blob_path(owner_id, media_id, variant))
