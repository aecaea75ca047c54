"""SQLite schema definitions for MediaVault."""

SCHEMA_VERSION = 1

CREATE_TABLES = [
    # Users table - passphrase_hash is NULL until the vault is set up
    """
    CREATE TABLE IF NOT EXISTS users (
        user_id TEXT PRIMARY KEY,
        username TEXT UNIQUE NOT NULL,
        passphrase_hash TEXT,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    # Media files table - bytes live in blob storage, keyed by media_id.
    # The unique (hash, owner) pair is the authoritative de-duplication point.
    """
    CREATE TABLE IF NOT EXISTS media_files (
        media_id TEXT PRIMARY KEY,
        owner_id TEXT NOT NULL,
        filename TEXT NOT NULL,
        original_name TEXT,
        mime_type TEXT NOT NULL,
        file_size INTEGER NOT NULL,
        sha256_hash TEXT NOT NULL,
        width INTEGER,
        height INTEGER,
        category_id TEXT,
        is_encrypted BOOLEAN NOT NULL DEFAULT FALSE,
        wrapped_key TEXT,
        has_thumbnail BOOLEAN NOT NULL DEFAULT FALSE,
        is_deleted BOOLEAN NOT NULL DEFAULT FALSE,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (owner_id) REFERENCES users(user_id) ON DELETE CASCADE,
        UNIQUE(sha256_hash, owner_id),
        CHECK (is_encrypted = 0 OR wrapped_key IS NOT NULL)
    )
    """,
    # Schema version table
    """
    CREATE TABLE IF NOT EXISTS schema_version (
        version INTEGER PRIMARY KEY,
        applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
]

# Index definitions for optimization
CREATE_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_media_owner_id ON media_files(owner_id)",
    "CREATE INDEX IF NOT EXISTS idx_media_sha256 ON media_files(sha256_hash)",
    "CREATE INDEX IF NOT EXISTS idx_media_category ON media_files(category_id)",
]

# Triggers for automatic timestamp updates
CREATE_TRIGGERS = [
    """
    CREATE TRIGGER IF NOT EXISTS update_users_timestamp
    AFTER UPDATE ON users
    FOR EACH ROW
    BEGIN
        UPDATE users SET updated_at = CURRENT_TIMESTAMP
        WHERE user_id = NEW.user_id;
    END
    """,
    """
    CREATE TRIGGER IF NOT EXISTS update_media_timestamp
    AFTER UPDATE OF filename, category_id, has_thumbnail, is_deleted ON media_files
    FOR EACH ROW
    BEGIN
        UPDATE media_files SET updated_at = CURRENT_TIMESTAMP
        WHERE media_id = NEW.media_id;
    END
    """,
]


def get_init_schema():
    """Statements that bring an empty file up to ``SCHEMA_VERSION``; safe to re-run."""
    return [
        *CREATE_TABLES,
        *CREATE_INDEXES,
        *CREATE_TRIGGERS,
        f"INSERT OR IGNORE INTO schema_version (version) VALUES ({SCHEMA_VERSION})",
    ]
