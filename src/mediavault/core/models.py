"""
Data models for stored media and the results handed back to callers
"""

from datetime import datetime
import uuid


def _parse_ts(value):
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


class MediaFile:
    """
        A stored media record. ``wrapped_key`` is present whenever
        ``is_encrypted`` is set; content and thumbnail bytes live in blob storage.
    """

    __slots__ = (
        'media_id',
        'owner_id',
        'filename',
        'original_name',
        'mime_type',
        'file_size',
        'sha256_hash',
        'width',
        'height',
        'category_id',
        'is_encrypted',
        'wrapped_key',
        'has_thumbnail',
        'is_deleted',
        'created_at',
        'updated_at',
    )

    def __init__(
        self,
        owner_id,
        filename,
        mime_type,
        file_size,
        sha256_hash,
        media_id=None,
        original_name=None,
        width=None,
        height=None,
        category_id=None,
        is_encrypted=False,
        wrapped_key=None,
        has_thumbnail=False,
        is_deleted=False,
        created_at=None,
        updated_at=None,
    ):
        if is_encrypted and not wrapped_key:
            raise ValueError("encrypted media must carry a wrapped key")
        self.media_id = media_id if media_id is not None else str(uuid.uuid4())
        self.owner_id = owner_id
        self.filename = filename
        self.original_name = original_name
        self.mime_type = mime_type
        self.file_size = file_size
        self.sha256_hash = sha256_hash
        self.width = width
        self.height = height
        self.category_id = category_id
        self.is_encrypted = bool(is_encrypted)
        self.wrapped_key = wrapped_key
        self.has_thumbnail = bool(has_thumbnail)
        self.is_deleted = bool(is_deleted)
        self.created_at = _parse_ts(created_at) or datetime.utcnow()
        self.updated_at = _parse_ts(updated_at) or self.created_at

    @classmethod
    def from_row(cls, row):
        """Build a record from a ``media_files`` row dict."""
        return cls(**{k: row[k] for k in cls.__slots__ if k in row})

    def to_dict(self):
        """Public view of the record. The wrapped key is opaque but still not exposed."""
        return {
            'media_id': self.media_id,
            'owner_id': self.owner_id,
            'filename': self.filename,
            'original_name': self.original_name,
            'mime_type': self.mime_type,
            'file_size': self.file_size,
            'sha256_hash': self.sha256_hash,
            'width': self.width,
            'height': self.height,
            'category_id': self.category_id,
            'is_encrypted': self.is_encrypted,
            'has_thumbnail': self.has_thumbnail,
            'is_deleted': self.is_deleted,
            'created_at': self.created_at.isoformat(),
            'updated_at': self.updated_at.isoformat(),
        }

    def __repr__(self):
        return f"MediaFile(media_id={self.media_id!r}, filename={self.filename!r}, encrypted={self.is_encrypted})"

    def __eq__(self, other):
        if not isinstance(other, MediaFile):
            return NotImplemented
        return self.media_id == other.media_id

    def __hash__(self):
        return hash(self.media_id)


class UploadResult:
    """
        Outcome of a single upload
    """

    __slots__ = ('media_id', 'sha256_hash', 'is_duplicate', 'thumbnail_generated', 'is_encrypted')

    def __init__(self, media_id, sha256_hash, is_duplicate, thumbnail_generated=False, is_encrypted=False):
        self.media_id = media_id
        self.sha256_hash = sha256_hash
        self.is_duplicate = is_duplicate
        self.thumbnail_generated = thumbnail_generated
        self.is_encrypted = is_encrypted

    def to_dict(self):
        return {
            'id': self.media_id,
            'sha256_hash': self.sha256_hash,
            'is_duplicate': self.is_duplicate,
            'thumbnail_generated': self.thumbnail_generated,
            'is_encrypted': self.is_encrypted,
        }

    def __repr__(self):
        return f"UploadResult(media_id={self.media_id!r}, is_duplicate={self.is_duplicate})"


class MediaContent:
    """
        Bytes returned by the access gate along with what a response needs
    """

    __slots__ = ('data', 'mime_type', 'filename')

    def __init__(self, data, mime_type, filename):
        self.data = data
        self.mime_type = mime_type
        self.filename = filename

    def headers(self):
        return {
            'Content-Type': self.mime_type,
            'Content-Disposition': f'inline; filename="{self.filename}"',
            'Content-Length': str(len(self.data)),
        }

    def __repr__(self):
        return f"MediaContent(filename={self.filename!r}, size={len(self.data)})"
