"""One-way hashing of the vault passphrase.

The stored form is ``salt_hex:verifier_hex``. It only gates unlock; it is never
key material. The verifier input is prefixed with a purpose label so that the
verifier and a wrapping key cannot coincide even under the same salt.
"""
import hmac
import logging

from ..core.exceptions import PassphraseTooShortError
from .aead import derive_key, generate_salt

logger = logging.getLogger("mediavault.security")

SALT_SIZE = 16
VERIFIER_LENGTH = 64
VERIFIER_ITERATIONS = 100_000
MIN_PASSPHRASE_LENGTH = 8

_VERIFIER_LABEL = b"mediavault-verifier\x00"


def _verifier(passphrase: str, salt: bytes) -> bytes:
    return derive_key(
        _VERIFIER_LABEL + passphrase.encode("utf-8"),
        salt,
        iterations=VERIFIER_ITERATIONS,
        length=VERIFIER_LENGTH,
    )


def validate_passphrase(passphrase, min_length: int = MIN_PASSPHRASE_LENGTH) -> None:
    if not isinstance(passphrase, str) or len(passphrase) < min_length:
        raise PassphraseTooShortError(f"Passphrase must be at least {min_length} characters long")


def hash_passphrase(passphrase: str) -> str:
    salt = generate_salt(SALT_SIZE)
    return f"{salt.hex()}:{_verifier(passphrase, salt).hex()}"


def verify_passphrase(passphrase: str, stored: str) -> bool:
    """Check ``passphrase`` against a stored ``salt_hex:verifier_hex`` value."""
    try:
        salt_hex, verifier_hex = stored.split(":")
        salt = bytes.fromhex(salt_hex)
        expected = bytes.fromhex(verifier_hex)
    except (AttributeError, ValueError):
        logger.warning("stored passphrase hash is malformed")
        return False
    if not salt or len(expected) != VERIFIER_LENGTH:
        logger.warning("stored passphrase hash is malformed")
        return False
    return hmac.compare_digest(_verifier(passphrase, salt), expected)
