"""MediaVault: encrypted-at-rest media storage unlocked by short-lived vault tokens."""

from .app import MediaVault
from .config import VaultSettings

__all__ = ["MediaVault", "VaultSettings"]
__version__ = "0.1.0"
