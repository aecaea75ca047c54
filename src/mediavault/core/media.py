"""
MediaService: uploads with de-duplication and optional vault encryption.
"""

import logging
import mimetypes
import os
import secrets
import sqlite3
import time
import uuid
from typing import Iterable, Optional, Tuple

from ..database.models import SORT_COLUMNS, MediaModel, UserModel
from ..security.keywrap import generate_cek, protect, wrap_cek
from .access import MediaAccessGate
from .exceptions import (
    ContentRequiresDecryptionError,
    MediaVaultError,
    StorageError,
    TokenNotFoundError,
    UploadTooLargeError,
    UserExistsError,
    UserNotFoundError,
    ValidationError,
    VaultNotConfiguredError,
)
from .hashing import calculate_sha256_bytes
from .models import MediaFile, UploadResult
from .storage import CONTENT, THUMBNAIL, BlobStorage
from .thumbnails import DEFAULT_SIZE, inspect_image, make_thumbnail
from .vault import VaultService

logger = logging.getLogger("mediavault.media")

DEFAULT_MAX_UPLOAD_BYTES = 500 * 1024 * 1024


def _unique_filename(original_name: Optional[str], mime_type: str) -> str:
    # Stored name never reuses caller-supplied text beyond the extension.
    ext = os.path.splitext(original_name or "")[1].lower()
    if not ext:
        ext = mimetypes.guess_extension(mime_type) or ".bin"
    return f"{int(time.time() * 1000)}_{secrets.token_hex(8)}{ext}"


class MediaService:
    """High-level media operations over blob storage and the database."""

    def __init__(
        self,
        users: UserModel,
        media_model: MediaModel,
        storage: BlobStorage,
        vault: VaultService,
        gate: MediaAccessGate,
        thumbnail_size: int = DEFAULT_SIZE,
        max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
    ):
        self.users = users
        self.media_model = media_model
        self.storage = storage
        self.vault = vault
        self.gate = gate
        self.thumbnail_size = thumbnail_size
        self.max_upload_bytes = max_upload_bytes

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def create_user(self, username: str) -> dict:
        """Create a user record; vault setup is a separate step."""
        if not username:
            raise ValidationError("Username is required")
        if self.users.get_by_username(username):
            raise UserExistsError(f"Username '{username}' is already taken.")
        return self.users.create(user_id=str(uuid.uuid4()), username=username)

    def get_user(self, user_id: str) -> dict:
        user = self.users.get(user_id)
        if not user:
            raise UserNotFoundError(f"User with ID '{user_id}' not found.")
        return user

    # ------------------------------------------------------------------
    # Uploads
    # ------------------------------------------------------------------

    def upload(
        self,
        buffer: bytes,
        mime_type: str,
        owner_id: str,
        original_name: Optional[str] = None,
        category_id: Optional[str] = None,
        want_encrypt: bool = False,
        token: Optional[str] = None,
        generate_thumbnail: bool = True,
    ) -> UploadResult:
        """Store one object, encrypting it under a fresh CEK when asked.

        The same bytes uploaded twice by one owner yield one record; the second
        call (or the loser of a concurrent race) gets ``is_duplicate=True``.
        """
        user = self.get_user(owner_id)
        if not buffer:
            raise ValidationError("Upload is empty")
        if len(buffer) > self.max_upload_bytes:
            raise UploadTooLargeError(f"Upload exceeds the {self.max_upload_bytes} byte limit")
        if not mime_type:
            raise ValidationError("MIME type is required")

        # vault and token are verified before the duplicate lookup
        passphrase = None
        if want_encrypt:
            if not user.get("passphrase_hash"):
                raise VaultNotConfiguredError("User vault must be set up before encrypting content")
            if not token:
                raise TokenNotFoundError("Vault authorization token required for encrypted uploads")
            passphrase = self.vault.resolve(token, owner_id)

        sha256_hash = calculate_sha256_bytes(buffer)
        existing = self.media_model.get_by_hash(sha256_hash, owner_id)
        if existing:
            return UploadResult(existing.media_id, sha256_hash, True, False, existing.is_encrypted)

        width = height = None
        thumbnail = None
        if mime_type.startswith("image/"):
            info = inspect_image(buffer)
            width, height = info.get("width"), info.get("height")
            if generate_thumbnail:
                thumbnail = make_thumbnail(buffer, mime_type, self.thumbnail_size)

        content = buffer
        wrapped_key = None
        if want_encrypt:
            cek = generate_cek()
            content = protect(buffer, cek)
            if thumbnail is not None:
                thumbnail = protect(thumbnail, cek)
            wrapped_key = wrap_cek(cek, passphrase)
            del cek

        media = MediaFile(
            owner_id=owner_id,
            filename=_unique_filename(original_name, mime_type),
            original_name=os.path.basename(original_name) if original_name else None,
            mime_type=mime_type,
            file_size=len(buffer),
            sha256_hash=sha256_hash,
            width=width,
            height=height,
            category_id=category_id,
            is_encrypted=want_encrypt,
            wrapped_key=wrapped_key,
            has_thumbnail=thumbnail is not None,
        )
        return self._persist(media, content, thumbnail)

    def _persist(self, media: MediaFile, content: bytes, thumbnail: Optional[bytes]) -> UploadResult:
        self._purge_deleted(media.sha256_hash, media.owner_id)
        try:
            self.storage.write(media.owner_id, media.media_id, content, CONTENT)
            if thumbnail is not None:
                self.storage.write(media.owner_id, media.media_id, thumbnail, THUMBNAIL)
            self.media_model.create(media)
        except sqlite3.IntegrityError:
            self.storage.delete(media.owner_id, media.media_id)
            winner = self.media_model.get_by_hash(media.sha256_hash, media.owner_id)
            if winner is None:
                raise StorageError(f"media insert for {media.sha256_hash} conflicted but no record was found")
            logger.info("concurrent upload of %s resolved to existing media %s", media.sha256_hash, winner.media_id)
            return UploadResult(winner.media_id, media.sha256_hash, True, False, winner.is_encrypted)
        except BaseException:
            self.storage.delete(media.owner_id, media.media_id)
            raise

        logger.info(
            "stored media %s for user %s (encrypted=%s, thumbnail=%s)",
            media.media_id, media.owner_id, media.is_encrypted, media.has_thumbnail,
        )
        return UploadResult(media.media_id, media.sha256_hash, False, media.has_thumbnail, media.is_encrypted)

    def _purge_deleted(self, sha256_hash: str, owner_id: str) -> None:
        # a soft-deleted record still holds the unique (hash, owner) slot
        purged = self.media_model.purge_deleted(sha256_hash, owner_id)
        if purged is not None:
            self.storage.delete(owner_id, purged)
            logger.debug("purged soft-deleted media %s before re-upload", purged)

    def upload_many(
        self,
        items: Iterable[Tuple[bytes, str, Optional[str]]],
        owner_id: str,
        category_id: Optional[str] = None,
        want_encrypt: bool = False,
        token: Optional[str] = None,
    ) -> dict:
        """
        Upload ``(buffer, mime_type, original_name)`` items independently.
        Returns a dict: {'success': [UploadResult], 'failed': [{'name', 'error', 'kind'}]}
        """
        results = {"success": [], "failed": []}
        for buffer, mime_type, original_name in items:
            try:
                results["success"].append(
                    self.upload(
                        buffer,
                        mime_type,
                        owner_id,
                        original_name=original_name,
                        category_id=category_id,
                        want_encrypt=want_encrypt,
                        token=token,
                    )
                )
            except MediaVaultError as e:
                results["failed"].append({"name": original_name, "error": e.public_message, "kind": e.kind.value})
            except Exception:
                logger.exception("upload of %r failed", original_name)
                results["failed"].append({"name": original_name, "error": "Upload failed", "kind": "storage"})
        return results

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    def get_media(self, media_id: str, caller_user_id: str) -> MediaFile:
        return self.gate.load_owned(media_id, caller_user_id)

    def list_media(
        self,
        owner_id: str,
        include_deleted: bool = False,
        encrypted_only: bool = False,
        category_id: Optional[str] = None,
        search: Optional[str] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> dict:
        """
        One page of an owner's records, newest first by default.
        Returns a dict: {'files': [MediaFile], 'total': int}, where ``total``
        ignores ``limit``/``offset``.
        """
        self.get_user(owner_id)
        if sort_by not in SORT_COLUMNS:
            raise ValidationError(f"Cannot sort by '{sort_by}'; use one of {', '.join(SORT_COLUMNS)}")
        if sort_order not in ("asc", "desc"):
            raise ValidationError("Sort order must be 'asc' or 'desc'")
        if (limit is not None and limit < 0) or offset < 0:
            raise ValidationError("Limit and offset must not be negative")
        files, total = self.media_model.list_by_owner(
            owner_id,
            include_deleted=include_deleted,
            encrypted_only=encrypted_only,
            category_id=category_id,
            search=search,
            sort_by=sort_by,
            sort_order=sort_order,
            limit=limit,
            offset=offset,
        )
        return {"files": files, "total": total}

    def media_stats(self, owner_id: str) -> dict:
        """Live-record totals: items, images, videos, vault items and bytes stored."""
        self.get_user(owner_id)
        return self.media_model.stats_by_owner(owner_id)

    def delete_media(self, media_id: str, caller_user_id: str, soft: bool = True) -> None:
        media = self.gate.load_owned(media_id, caller_user_id)
        if soft:
            self.media_model.soft_delete(media.media_id)
        else:
            self.media_model.delete(media.media_id)
            self.storage.delete(media.owner_id, media.media_id)
        logger.info("deleted media %s (soft=%s)", media_id, soft)

    def regenerate_thumbnail(self, media_id: str, caller_user_id: str) -> bool:
        """Re-render the thumbnail of a plain image. Returns False for non-images."""
        media = self.gate.load_owned(media_id, caller_user_id)
        if not media.mime_type.startswith("image/"):
            return False
        if media.is_encrypted:
            raise ContentRequiresDecryptionError(
                "Cannot regenerate thumbnail for encrypted content without decryption key"
            )
        content = self.gate.read_object(media_id, caller_user_id)
        thumbnail = make_thumbnail(content.data, media.mime_type, self.thumbnail_size)
        if thumbnail is None:
            return False
        self.storage.write(media.owner_id, media.media_id, thumbnail, THUMBNAIL)
        self.media_model.set_thumbnail(media.media_id, True)
        return True
