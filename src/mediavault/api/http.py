"""
Boundary helpers for an HTTP host.

The vault token travels only in the ``Authorization`` header as
``vault:<token>`` (optionally after ``Bearer``). URLs end up in logs and
caches, so a token or key in the query string is rejected outright.

Status codes are chosen from the error's kind, never from its message.
"""
import logging
import re
from typing import Mapping, Optional, Tuple

from ..core.exceptions import ErrorKind, MediaVaultError, ValidationError

logger = logging.getLogger("mediavault.api")

_VAULT_AUTH = re.compile(r"^(?:Bearer\s+)?vault:(\S+)$")

FORBIDDEN_QUERY_PARAMS = frozenset({"token", "vault_token", "access_token", "key", "passphrase"})

STATUS_BY_KIND = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.AUTHENTICATION: 401,
    ErrorKind.AUTHORIZATION: 403,
    ErrorKind.DECRYPTION: 403,
    ErrorKind.DECRYPTION_REQUIRED: 403,
    ErrorKind.INTEGRITY: 500,
    ErrorKind.STORAGE: 500,
}


def extract_vault_token(authorization: Optional[str]) -> Optional[str]:
    """Pull the token out of an ``Authorization`` header value, or None."""
    if not authorization:
        return None
    match = _VAULT_AUTH.match(authorization.strip())
    return match.group(1) if match else None


def reject_token_in_query(query_params: Optional[Mapping[str, str]]) -> None:
    """Raise if credentials were put in the URL instead of the header."""
    if not query_params:
        return
    if FORBIDDEN_QUERY_PARAMS.intersection(k.lower() for k in query_params):
        raise ValidationError(
            "Vault credentials must be sent in the Authorization header, not the URL"
        )


def token_from_request(headers: Mapping[str, str], query_params: Optional[Mapping[str, str]] = None) -> Optional[str]:
    """Validate where credentials were sent and return the header token, if any."""
    reject_token_in_query(query_params)
    for name, value in headers.items():
        if name.lower() == "authorization":
            return extract_vault_token(value)
    return None


def status_for(error: BaseException) -> int:
    if isinstance(error, MediaVaultError):
        return STATUS_BY_KIND.get(error.kind, 500)
    return 500


def error_response(error: BaseException) -> Tuple[int, dict]:
    """Map an exception to ``(status, body)`` with a client-safe message."""
    status = status_for(error)
    if not isinstance(error, MediaVaultError):
        logger.error("unexpected error at boundary: %r", error)
        return status, {"message": "Internal server error"}
    if error.kind is ErrorKind.AUTHORIZATION:
        logger.warning("authorization failure: %s", error)
    elif status >= 500:
        logger.error("%s error: %s", error.kind.value, error)
    return status, {"message": error.public_message, "kind": error.kind.value}
