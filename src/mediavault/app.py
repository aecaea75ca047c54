"""
Application wiring: one object that owns the database, blob storage, token
store and the services built on them.
"""

import logging
from typing import Optional

from .config import VaultSettings
from .core.access import MediaAccessGate
from .core.media import MediaService
from .core.storage import BlobStorage
from .core.vault import VaultService
from .database.connection import DatabaseConnection
from .database.models import MediaModel, UserModel
from .security.session import VaultSessionStore

logger = logging.getLogger("mediavault")


class MediaVault:
    """Composition root. Tests build one per case so no state is shared."""

    def __init__(self, settings: Optional[VaultSettings] = None, sessions: Optional[VaultSessionStore] = None):
        self.settings = settings or VaultSettings.from_env()

        self.db = DatabaseConnection(str(self.settings.db_path))
        self.db.initialize()
        self.storage = BlobStorage(str(self.settings.storage_root))

        self.sessions = sessions or VaultSessionStore(ttl_seconds=self.settings.token_ttl_seconds)
        self.users = UserModel(self.db)
        self.media_model = MediaModel(self.db)

        self.vault = VaultService(
            self.users,
            self.sessions,
            min_passphrase_length=self.settings.min_passphrase_length,
        )
        self.gate = MediaAccessGate(
            self.media_model,
            self.storage,
            self.vault,
            thumbnail_size=self.settings.thumbnail_size,
        )
        self.media = MediaService(
            self.users,
            self.media_model,
            self.storage,
            self.vault,
            self.gate,
            thumbnail_size=self.settings.thumbnail_size,
            max_upload_bytes=self.settings.max_upload_bytes,
        )

        if self.settings.start_sweeper:
            self.sessions.start_sweeper(self.settings.sweep_interval_seconds)
        logger.debug("media vault ready at %s", self.settings.storage_root)

    def close(self) -> None:
        """Stop the sweeper, forget every token and close database connections."""
        self.sessions.stop_sweeper()
        self.sessions.clear()
        self.db.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
