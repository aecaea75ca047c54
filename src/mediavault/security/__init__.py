"""Security helpers: AEAD frames, passphrase verifiers, CEK wrapping and vault tokens.

- PBKDF2-HMAC-SHA256 key derivation and AES-256-GCM frames
- salted passphrase verifiers with constant-time comparison
- per-object CEK generation and wrapping under the raw vault passphrase
- an in-memory, user-bound token store with expiry and a background sweep
"""

from .aead import encrypt, decrypt, encrypt_string, decrypt_string
from .passphrase import hash_passphrase, verify_passphrase, validate_passphrase
from .keywrap import generate_cek, wrap_cek, unwrap_cek, protect, reveal
from .session import VaultSessionStore, VaultToken

__all__ = [
    "encrypt",
    "decrypt",
    "encrypt_string",
    "decrypt_string",
    "hash_passphrase",
    "verify_passphrase",
    "validate_passphrase",
    "generate_cek",
    "wrap_cek",
    "unwrap_cek",
    "protect",
    "reveal",
    "VaultSessionStore",
    "VaultToken",
]
