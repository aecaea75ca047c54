"""Per-object content keys (CEKs) and their wrapping under the vault passphrase.

Each stored object gets its own random CEK. Content and thumbnail are sealed
with that CEK; the CEK is then wrapped with the *raw* vault passphrase taken
from an unlocked session. The stored passphrase hash must never be used here.
"""
import base64
import binascii
import os

from ..core.exceptions import DecryptionError
from .aead import decrypt, encrypt, open_with_key, seal_with_key

CEK_SIZE = 32


def generate_cek() -> bytes:
    return os.urandom(CEK_SIZE)


def wrap_cek(cek: bytes, raw_passphrase: str) -> str:
    """Encrypt the hex form of ``cek`` under ``raw_passphrase``; returns base64."""
    if len(cek) != CEK_SIZE:
        raise ValueError(f"CEK must be {CEK_SIZE} bytes")
    framed = encrypt(cek.hex().encode("ascii"), raw_passphrase)
    return base64.b64encode(framed).decode("ascii")


def unwrap_cek(wrapped_key: str, raw_passphrase: str) -> bytes:
    """Recover a CEK; any failure is reported as :class:`DecryptionError`."""
    try:
        framed = base64.b64decode(wrapped_key, validate=True)
    except (binascii.Error, ValueError, TypeError):
        raise DecryptionError("decryption failed") from None
    inner = decrypt(framed, raw_passphrase)
    try:
        cek = bytes.fromhex(inner.decode("ascii"))
    except (UnicodeDecodeError, ValueError):
        raise DecryptionError("decryption failed") from None
    if len(cek) != CEK_SIZE:
        raise DecryptionError("decryption failed")
    return cek


def protect(buffer: bytes, cek: bytes) -> bytes:
    return seal_with_key(buffer, cek)


def reveal(ciphertext: bytes, cek: bytes) -> bytes:
    return open_with_key(ciphertext, cek)
