"""
Vault lifecycle per user: setup, unlock, lock.

    NoVault --setup--> Configured --authenticate--> Unlocked(token)
    Unlocked --expiry/lock--> Configured --authenticate--> Unlocked(token) ...

Only the passphrase hash is persisted. A successful unlock hands the raw
passphrase to the session store, which is the single place it lives after the
request that carried it.
"""

import logging
from enum import Enum
from typing import Optional

from ..database.models import UserModel
from ..security.passphrase import (
    MIN_PASSPHRASE_LENGTH,
    hash_passphrase,
    validate_passphrase,
    verify_passphrase,
)
from ..security.session import VaultSessionStore, VaultToken
from .exceptions import (
    InvalidCredentialsError,
    UserNotFoundError,
    ValidationError,
    VaultExistsError,
    VaultNotConfiguredError,
)

logger = logging.getLogger("mediavault.vault")


class VaultState(Enum):
    NO_VAULT = "no_vault"
    CONFIGURED = "configured"
    UNLOCKED = "unlocked"


class VaultService:
    """Setup and unlock of a user's vault on top of a :class:`VaultSessionStore`."""

    def __init__(self, users: UserModel, sessions: VaultSessionStore, min_passphrase_length: int = MIN_PASSPHRASE_LENGTH):
        self.users = users
        self.sessions = sessions
        self.min_passphrase_length = min_passphrase_length

    def _require_user(self, user_id: str) -> dict:
        user = self.users.get(user_id)
        if not user:
            raise UserNotFoundError(f"User with ID '{user_id}' not found.")
        return user

    def status(self, user_id: str) -> VaultState:
        user = self._require_user(user_id)
        if not user.get("passphrase_hash"):
            return VaultState.NO_VAULT
        if self.sessions.has_active_token(user_id):
            return VaultState.UNLOCKED
        return VaultState.CONFIGURED

    def has_vault(self, user_id: str) -> bool:
        return bool(self.users.get_passphrase_hash(user_id))

    def setup(self, user_id: str, passphrase: str) -> None:
        """Create the vault credential. Valid only while no vault exists."""
        self._require_user(user_id)
        validate_passphrase(passphrase, self.min_passphrase_length)
        if self.has_vault(user_id):
            raise VaultExistsError(f"Vault already configured for user '{user_id}'")

        if not self.users.set_passphrase_hash(user_id, hash_passphrase(passphrase)):
            # lost a race with a concurrent setup
            raise VaultExistsError(f"Vault already configured for user '{user_id}'")
        logger.info("vault configured for user %s", user_id)

    def authenticate(self, user_id: str, passphrase: str, ttl_seconds: Optional[int] = None) -> VaultToken:
        """Verify ``passphrase`` and issue a token bound to ``user_id``."""
        if not passphrase:
            raise ValidationError("Passphrase is required")
        user = self._require_user(user_id)
        stored = user.get("passphrase_hash")
        if not stored:
            raise VaultNotConfiguredError(f"No vault configured for user '{user_id}'")

        if not verify_passphrase(passphrase, stored):
            logger.info("vault unlock failed for user %s", user_id)
            raise InvalidCredentialsError("invalid vault passphrase")

        token = self.sessions.issue(user_id, passphrase, ttl_seconds=ttl_seconds)
        logger.info("vault unlocked for user %s", user_id)
        return token

    def resolve(self, token: str, user_id: str) -> str:
        return self.sessions.resolve(token, user_id)

    def lock(self, user_id: str, token: Optional[str] = None) -> int:
        """Revoke one token, or every token the user holds when none is given."""
        if token is not None:
            # only the owner may revoke; resolve raises on mismatch or expiry
            self.sessions.resolve(token, user_id)
            return int(self.sessions.revoke(token))
        return self.sessions.revoke_user(user_id)
