"""ORM-style helpers for database operations."""

from ..core.models import MediaFile

# public sort key -> column; only these names ever reach ORDER BY
SORT_COLUMNS = {
    "created_at": "created_at",
    "filename": "COALESCE(original_name, filename)",
    "file_size": "file_size",
}


def _escape_like(text):
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class BaseModel:
    """Base class for DB models."""

    __slots__ = ("db",)

    def __init__(self, db):
        """Initialize with a DatabaseConnection."""
        self.db = db


class UserModel(BaseModel):
    """DB model for users and their vault credential."""

    def create(self, user_id, username):
        """Create a user and return it."""
        query = "INSERT INTO users (user_id, username) VALUES (?, ?)"
        self.db.execute(query, (user_id, username))
        return self.get(user_id)

    def get(self, user_id):
        """Get user by ID."""
        query = "SELECT * FROM users WHERE user_id = ?"
        return self.db.fetch_one(query, (user_id,))

    def get_by_username(self, username):
        """Get user by username."""
        query = "SELECT * FROM users WHERE username = ?"
        return self.db.fetch_one(query, (username,))

    def get_passphrase_hash(self, user_id):
        """Return the stored ``salt:hash`` value, or None when no vault exists."""
        row = self.db.fetch_one("SELECT passphrase_hash FROM users WHERE user_id = ?", (user_id,))
        return row["passphrase_hash"] if row else None

    def set_passphrase_hash(self, user_id, passphrase_hash):
        """Store the vault credential only if none exists yet.

        Returns False when another caller configured the vault first.
        """
        query = """
            UPDATE users SET passphrase_hash = ?
            WHERE user_id = ? AND passphrase_hash IS NULL
        """
        return self.db.execute(query, (passphrase_hash, user_id)) == 1

    def delete(self, user_id):
        """Delete user by ID (cascades to media rows)."""
        self.db.execute("DELETE FROM users WHERE user_id = ?", (user_id,))
        return True


class MediaModel(BaseModel):
    """DB model for media records."""

    def create(self, media):
        """Insert a media record.

        Raises ``sqlite3.IntegrityError`` if the owner already has a record
        with the same content hash.
        """
        query = """
            INSERT INTO media_files (
                media_id, owner_id, filename, original_name, mime_type,
                file_size, sha256_hash, width, height, category_id,
                is_encrypted, wrapped_key, has_thumbnail, is_deleted,
                created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """
        params = (
            media.media_id,
            media.owner_id,
            media.filename,
            media.original_name,
            media.mime_type,
            media.file_size,
            media.sha256_hash,
            media.width,
            media.height,
            media.category_id,
            media.is_encrypted,
            media.wrapped_key,
            media.has_thumbnail,
            media.is_deleted,
            media.created_at.isoformat(),
            media.updated_at.isoformat(),
        )
        self.db.execute(query, params)
        return media

    def get(self, media_id):
        """Get a record by ID, deleted or not."""
        row = self.db.fetch_one("SELECT * FROM media_files WHERE media_id = ?", (media_id,))
        return MediaFile.from_row(row) if row else None

    def get_by_hash(self, sha256_hash, owner_id, include_deleted=False):
        """Find an owner's record for a content hash (scoped to the owner)."""
        query = "SELECT * FROM media_files WHERE sha256_hash = ? AND owner_id = ?"
        if not include_deleted:
            query += " AND is_deleted = 0"
        row = self.db.fetch_one(query, (sha256_hash, owner_id))
        return MediaFile.from_row(row) if row else None

    def list_by_owner(
        self,
        owner_id,
        include_deleted=False,
        encrypted_only=False,
        category_id=None,
        search=None,
        sort_by="created_at",
        sort_order="desc",
        limit=None,
        offset=0,
    ):
        """Return ``(records, total)`` for one owner.

        ``total`` counts every matching record, not just the returned page.
        ``sort_by`` must be one of :data:`SORT_COLUMNS`.
        """
        clauses = ["owner_id = ?"]
        params = [owner_id]
        if not include_deleted:
            clauses.append("is_deleted = 0")
        if encrypted_only:
            clauses.append("is_encrypted = 1")
        if category_id is not None:
            clauses.append("category_id = ?")
            params.append(category_id)
        if search:
            clauses.append("(original_name LIKE ? ESCAPE '\\' OR filename LIKE ? ESCAPE '\\')")
            pattern = f"%{_escape_like(search)}%"
            params.extend([pattern, pattern])
        where = " AND ".join(clauses)
        direction = "ASC" if sort_order == "asc" else "DESC"
        page_query = (
            f"SELECT * FROM media_files WHERE {where} "
            f"ORDER BY {SORT_COLUMNS[sort_by]} {direction}, media_id {direction} LIMIT ? OFFSET ?"
        )

        # count and page read one snapshot
        with self.db.get_transaction_context(immediate=False) as cursor:
            total = cursor.execute(f"SELECT COUNT(*) FROM media_files WHERE {where}", params).fetchone()[0]
            rows = cursor.execute(page_query, params + [-1 if limit is None else limit, offset]).fetchall()
        return [MediaFile.from_row(dict(r)) for r in rows], total

    def stats_by_owner(self, owner_id):
        """Counts and stored bytes over an owner's live records."""
        query = """
            SELECT COUNT(*) AS total_items,
                   COALESCE(SUM(mime_type LIKE 'image/%'), 0) AS images,
                   COALESCE(SUM(mime_type LIKE 'video/%'), 0) AS videos,
                   COALESCE(SUM(is_encrypted), 0) AS vault_items,
                   COALESCE(SUM(file_size), 0) AS storage_used
            FROM media_files
            WHERE owner_id = ? AND is_deleted = 0
        """
        return self.db.fetch_one(query, (owner_id,))

    def purge_deleted(self, sha256_hash, owner_id):
        """Drop a soft-deleted record holding the owner's slot for a hash.

        Returns the purged media ID so the caller can remove its blobs, or
        None when there was nothing to purge (or another writer got there first).
        """
        with self.db.get_transaction_context() as cursor:
            row = cursor.execute(
                "SELECT media_id FROM media_files WHERE sha256_hash = ? AND owner_id = ? AND is_deleted = 1",
                (sha256_hash, owner_id),
            ).fetchone()
            if row is None:
                return None
            cursor.execute("DELETE FROM media_files WHERE media_id = ?", (row["media_id"],))
        return row["media_id"]

    def set_thumbnail(self, media_id, has_thumbnail=True):
        query = "UPDATE media_files SET has_thumbnail = ? WHERE media_id = ?"
        return self.db.execute(query, (has_thumbnail, media_id)) == 1

    def soft_delete(self, media_id):
        query = "UPDATE media_files SET is_deleted = 1 WHERE media_id = ?"
        return self.db.execute(query, (media_id,)) == 1

    def delete(self, media_id):
        return self.db.execute("DELETE FROM media_files WHERE media_id = ?", (media_id,)) == 1
