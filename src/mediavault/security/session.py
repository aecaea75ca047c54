"""In-memory vault token store with expiry and a background sweep.

Unlocking a vault issues an opaque token bound to one user. The store keeps
the verified raw passphrase for that token until it expires or is revoked;
nothing here is ever written to disk. All table access goes through a single
lock, so a lookup can never observe an entry half-evicted by the sweeper.

The table is process-local. A deployment with several server processes needs
a shared external store instead; a restart invalidates every token.
"""
from __future__ import annotations

import logging
import secrets
import threading
import time
from datetime import datetime, timezone
from typing import Dict, Optional

from ..core.exceptions import TokenExpiredError, TokenNotFoundError, TokenOwnershipError

logger = logging.getLogger("mediavault.session")
audit = logging.getLogger("mediavault.audit")

DEFAULT_TTL_SECONDS = 30 * 60
DEFAULT_SWEEP_INTERVAL = 5 * 60


def _token_ref(token: str) -> str:
    # safe to log: identifies the token without granting anything
    return token[:8] + "..."


class VaultToken:
    """A token handed back to the caller after a successful unlock."""

    __slots__ = ("token", "user_id", "expires_at")

    def __init__(self, token: str, user_id: str, expires_at: float):
        self.token = token
        self.user_id = user_id
        self.expires_at = expires_at

    @property
    def expires_at_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.expires_at, tz=timezone.utc)

    def to_dict(self):
        return {
            "access_token": self.token,
            "expires_at": self.expires_at_datetime.isoformat(),
        }

    def __repr__(self):
        return f"VaultToken(token={_token_ref(self.token)!r}, user_id={self.user_id!r})"


class _Entry:
    __slots__ = ("user_id", "passphrase", "expires_at")

    def __init__(self, user_id: str, passphrase: str, expires_at: float):
        self.user_id = user_id
        self.passphrase = passphrase
        self.expires_at = expires_at

    def __repr__(self):
        return f"_Entry(user_id={self.user_id!r}, expires_at={self.expires_at!r})"


class VaultSessionStore:
    def __init__(self, ttl_seconds: int = DEFAULT_TTL_SECONDS):
        self.ttl_seconds = ttl_seconds
        self._tokens: Dict[str, _Entry] = {}
        self._lock = threading.Lock()
        self._sweeper: Optional[threading.Thread] = None
        self._stop = threading.Event()

    def __len__(self):
        with self._lock:
            return len(self._tokens)

    def issue(self, user_id: str, raw_passphrase: str, ttl_seconds: Optional[int] = None) -> VaultToken:
        """Mint a token for ``user_id`` holding ``raw_passphrase`` until expiry."""
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        token = secrets.token_urlsafe(32)
        expires_at = time.time() + float(ttl)
        with self._lock:
            self._tokens[token] = _Entry(user_id, raw_passphrase, expires_at)
        logger.info("issued vault token %s for user %s", _token_ref(token), user_id)
        return VaultToken(token, user_id, expires_at)

    def resolve(self, token: str, caller_user_id: str) -> str:
        """Return the raw passphrase held for ``token``.

        Expiry is checked here on every call, whether or not the sweeper has
        run. A live token presented by another user is an authorization
        failure, not a miss.
        """
        if not token:
            raise TokenNotFoundError("no vault token supplied")
        with self._lock:
            entry = self._tokens.get(token)
            if entry is None:
                raise TokenNotFoundError("vault token not found")
            if time.time() > entry.expires_at:
                del self._tokens[token]
                raise TokenExpiredError("vault token expired")
            if entry.user_id != caller_user_id:
                owner = entry.user_id
            else:
                return entry.passphrase
        audit.warning(
            "vault token %s issued to user %s was presented by user %s",
            _token_ref(token), owner, caller_user_id,
        )
        raise TokenOwnershipError("vault token does not belong to the requesting user")

    def revoke(self, token: str) -> bool:
        with self._lock:
            return self._tokens.pop(token, None) is not None

    def revoke_user(self, user_id: str) -> int:
        """Drop every token held by ``user_id``; returns how many were removed."""
        with self._lock:
            doomed = [t for t, e in self._tokens.items() if e.user_id == user_id]
            for t in doomed:
                del self._tokens[t]
        return len(doomed)

    def has_active_token(self, user_id: str) -> bool:
        now = time.time()
        with self._lock:
            return any(e.user_id == user_id and e.expires_at >= now for e in self._tokens.values())

    def sweep(self) -> int:
        """Evict all expired entries and return the number removed."""
        now = time.time()
        with self._lock:
            expired = [t for t, e in self._tokens.items() if e.expires_at < now]
            for t in expired:
                del self._tokens[t]
        if expired:
            logger.debug("swept %d expired vault token(s)", len(expired))
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._tokens.clear()

    # ------------------------------------------------------------------
    # Background sweep
    # ------------------------------------------------------------------

    def start_sweeper(self, interval_seconds: float = DEFAULT_SWEEP_INTERVAL) -> None:
        if self._sweeper is not None and self._sweeper.is_alive():
            return
        self._stop.clear()
        self._sweeper = threading.Thread(
            target=self._run_sweeper,
            args=(float(interval_seconds),),
            name="vault-token-sweeper",
            daemon=True,
        )
        self._sweeper.start()

    def _run_sweeper(self, interval: float) -> None:
        while not self._stop.wait(interval):
            self.sweep()

    def stop_sweeper(self, timeout: Optional[float] = 5.0) -> None:
        self._stop.set()
        if self._sweeper is not None:
            self._sweeper.join(timeout)
            self._sweeper = None

    @property
    def sweeper_running(self) -> bool:
        return self._sweeper is not None and self._sweeper.is_alive()
