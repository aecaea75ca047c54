"""
Read path for stored media: ownership first, then the crypto gate.

For an encrypted object the caller must opt in to decryption and present a
vault token. The token yields the raw passphrase, which unwraps the object's
CEK, which opens the content. A failure anywhere in that chain surfaces as an
authentication, authorization or decryption error, never as "not found" and
never as partially decrypted bytes.
"""

import logging
from typing import Optional

from ..database.models import MediaModel
from ..security.keywrap import reveal, unwrap_cek
from .exceptions import (
    AccessDeniedError,
    ContentRequiresDecryptionError,
    DecryptionError,
    IntegrityError,
    MediaNotFoundError,
    TokenNotFoundError,
)
from .hashing import calculate_sha256_bytes
from .models import MediaContent, MediaFile
from .storage import CONTENT, THUMBNAIL, BlobStorage
from .thumbnails import DEFAULT_SIZE, placeholder
from .vault import VaultService

logger = logging.getLogger("mediavault.access")
audit = logging.getLogger("mediavault.audit")


class MediaAccessGate:
    """Vault-aware reads of content and thumbnails."""

    def __init__(self, media_model: MediaModel, storage: BlobStorage, vault: VaultService, thumbnail_size: int = DEFAULT_SIZE):
        self.media_model = media_model
        self.storage = storage
        self.vault = vault
        self.thumbnail_size = thumbnail_size

    def load_owned(self, media_id: str, caller_user_id: str) -> MediaFile:
        """Fetch a live record and check that ``caller_user_id`` owns it."""
        media = self.media_model.get(media_id)
        if media is None or media.is_deleted:
            raise MediaNotFoundError(f"Media '{media_id}' not found")
        if media.owner_id != caller_user_id:
            audit.warning("user %s attempted to read media %s owned by another user", caller_user_id, media_id)
            raise AccessDeniedError(f"User '{caller_user_id}' does not own media '{media_id}'")
        return media

    def _content_key(self, media: MediaFile, caller_user_id: str, token: Optional[str]) -> bytes:
        if not token:
            raise TokenNotFoundError("Vault authorization token required for encrypted content")
        passphrase = self.vault.resolve(token, caller_user_id)
        if not media.wrapped_key:
            raise DecryptionError(f"encrypted media {media.media_id} has no wrapped key")
        return unwrap_cek(media.wrapped_key, passphrase)

    def _read_blob(self, media: MediaFile, variant: str) -> bytes:
        data = self.storage.read(media.owner_id, media.media_id, variant)
        if data is None:
            audit.error("blob %s.%s is missing for an existing record", media.media_id, variant)
            raise IntegrityError(f"stored blob for media '{media.media_id}' is missing")
        return data

    def read_object(self, media_id: str, caller_user_id: str, want_decrypt: bool = False, token: Optional[str] = None) -> MediaContent:
        """Return the object's bytes, decrypted when it is encrypted and the caller opts in."""
        media = self.load_owned(media_id, caller_user_id)

        if not media.is_encrypted:
            data = self._read_blob(media, CONTENT)
        elif not want_decrypt:
            raise ContentRequiresDecryptionError(f"media '{media_id}' is encrypted")
        else:
            cek = self._content_key(media, caller_user_id, token)
            data = reveal(self._read_blob(media, CONTENT), cek)

        logger.debug("served media %s to user %s", media_id, caller_user_id)
        return MediaContent(data, media.mime_type, media.original_name or media.filename)

    def read_thumbnail(self, media_id: str, caller_user_id: str, want_decrypt: bool = False, token: Optional[str] = None) -> bytes:
        """Return thumbnail bytes.

        Locked (encrypted, not opted in) objects get a generic placeholder so a
        gallery view learns nothing about their content.
        """
        media = self.load_owned(media_id, caller_user_id)

        if media.is_encrypted and not want_decrypt:
            return placeholder(self.thumbnail_size)
        # token is required before anything about an encrypted object is reported
        cek = self._content_key(media, caller_user_id, token) if media.is_encrypted else None
        if not media.has_thumbnail:
            raise MediaNotFoundError(f"Media '{media_id}' has no thumbnail", public_message="Thumbnail not found")

        data = self._read_blob(media, THUMBNAIL)
        return reveal(data, cek) if cek is not None else data

    def verify_integrity(self, media_id: str, caller_user_id: str, token: Optional[str] = None) -> bool:
        """Recompute the content hash and compare it with the stored one.

        Encrypted objects are decrypted first, so they need a token. A mismatch
        is reported to the audit log and raised; nothing is repaired.
        """
        media = self.load_owned(media_id, caller_user_id)
        content = self.read_object(media_id, caller_user_id, want_decrypt=media.is_encrypted, token=token)
        actual = calculate_sha256_bytes(content.data)
        if actual != media.sha256_hash:
            audit.error(
                "integrity check failed for media %s: stored %s, computed %s",
                media_id, media.sha256_hash, actual,
            )
            raise IntegrityError(f"content hash mismatch for media '{media_id}'")
        return True
