"""
Runtime settings for MediaVault.

Values come from constructor arguments or ``MEDIAVAULT_*`` environment
variables. KDF iteration counts are deliberately not settings: they are part of
the stored ciphertext format and live as constants in
:mod:`mediavault.security.aead` and :mod:`mediavault.security.passphrase`.
"""
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, model_validator

logger = logging.getLogger("mediavault.config")

_ENV_FIELDS = {
    "storage_root": "MEDIAVAULT_STORAGE_ROOT",
    "db_path": "MEDIAVAULT_DB_PATH",
    "token_ttl_seconds": "MEDIAVAULT_TOKEN_TTL",
    "sweep_interval_seconds": "MEDIAVAULT_SWEEP_INTERVAL",
    "min_passphrase_length": "MEDIAVAULT_MIN_PASSPHRASE",
    "thumbnail_size": "MEDIAVAULT_THUMBNAIL_SIZE",
    "max_upload_bytes": "MEDIAVAULT_MAX_UPLOAD",
}


class VaultSettings(BaseModel):
    """Validated MediaVault configuration."""

    storage_root: Path = Field(default_factory=lambda: Path.home() / ".mediavault")
    db_path: Optional[Path] = None
    token_ttl_seconds: int = Field(default=30 * 60, ge=60)
    sweep_interval_seconds: float = Field(default=5 * 60, gt=0)
    min_passphrase_length: int = Field(default=8, ge=8)
    thumbnail_size: int = Field(default=300, ge=16, le=4096)
    max_upload_bytes: int = Field(default=500 * 1024 * 1024, ge=1)
    start_sweeper: bool = True

    @model_validator(mode="after")
    def default_db_path(self) -> "VaultSettings":
        """Place the database inside the storage root unless told otherwise."""
        self.storage_root = self.storage_root.expanduser()
        if self.db_path is None:
            self.db_path = self.storage_root / "mediavault.db"
        else:
            self.db_path = self.db_path.expanduser()
        return self

    @classmethod
    def from_env(cls, **overrides) -> "VaultSettings":
        """Create settings from environment variables, then explicit overrides."""
        values = {}
        for field, env_name in _ENV_FIELDS.items():
            raw = os.environ.get(env_name)
            if raw is not None:
                values[field] = raw
        values.update({k: v for k, v in overrides.items() if v is not None})
        settings = cls(**values)
        logger.debug("loaded settings: storage_root=%s db_path=%s", settings.storage_root, settings.db_path)
        return settings
