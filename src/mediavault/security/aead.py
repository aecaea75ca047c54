"""Passphrase-keyed AES-256-GCM with a self-describing frame.

Frame layout (fixed width, no length prefixes):

- 32 bytes: KDF salt
- 12 bytes: GCM nonce
- 16 bytes: GCM tag
- N bytes:  ciphertext

The AES key is derived from the passphrase with PBKDF2-HMAC-SHA256 at
``PBKDF2_ITERATIONS``. That count is part of the frame format: frames written
under a different count will not open, so changing it breaks every stored
frame.

``seal_with_key`` / ``open_with_key`` use the same frame for high-entropy key
material (a random CEK). There the salt feeds HKDF instead of PBKDF2.
"""
import base64
import binascii
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from ..core.exceptions import DecryptionError

SALT_SIZE = 32
NONCE_SIZE = 12
TAG_SIZE = 16
KEY_LENGTH = 32  # AES-256
HEADER_SIZE = SALT_SIZE + NONCE_SIZE + TAG_SIZE

PBKDF2_ITERATIONS = 100_000

_CONTENT_INFO = b"mediavault-content-v1"


def generate_salt(length: int = SALT_SIZE) -> bytes:
    """Return a cryptographically secure random salt."""
    return os.urandom(length)


def derive_key(passphrase, salt: bytes, iterations: int = PBKDF2_ITERATIONS, length: int = KEY_LENGTH) -> bytes:
    """Derive a key from a passphrase with PBKDF2-HMAC-SHA256."""
    if isinstance(passphrase, str):
        passphrase = passphrase.encode("utf-8")
    kdf = PBKDF2HMAC(algorithm=hashes.SHA256(), length=length, salt=salt, iterations=iterations)
    return kdf.derive(passphrase)


def _derive_content_key(key_material: bytes, salt: bytes) -> bytes:
    hkdf = HKDF(algorithm=hashes.SHA256(), length=KEY_LENGTH, salt=salt, info=_CONTENT_INFO)
    return hkdf.derive(key_material)


def _seal(plaintext: bytes, salt: bytes, key: bytes) -> bytes:
    nonce = os.urandom(NONCE_SIZE)
    # AESGCM appends the tag; the frame carries it ahead of the ciphertext
    sealed = AESGCM(key).encrypt(nonce, plaintext, None)
    ct, tag = sealed[:-TAG_SIZE], sealed[-TAG_SIZE:]
    return salt + nonce + tag + ct


def _split(framed: bytes):
    if len(framed) < HEADER_SIZE:
        raise DecryptionError(f"frame too short: {len(framed)} bytes (minimum {HEADER_SIZE})")
    salt = framed[:SALT_SIZE]
    nonce = framed[SALT_SIZE:SALT_SIZE + NONCE_SIZE]
    tag = framed[SALT_SIZE + NONCE_SIZE:HEADER_SIZE]
    ct = framed[HEADER_SIZE:]
    return salt, nonce, tag, ct


def _open(nonce: bytes, tag: bytes, ct: bytes, key: bytes) -> bytes:
    try:
        return AESGCM(key).decrypt(nonce, ct + tag, None)
    except InvalidTag:
        raise DecryptionError("decryption failed") from None


def encrypt(plaintext: bytes, passphrase: str) -> bytes:
    """Encrypt ``plaintext`` under a key derived from ``passphrase``."""
    salt = generate_salt()
    key = derive_key(passphrase, salt)
    return _seal(bytes(plaintext), salt, key)


def decrypt(framed: bytes, passphrase: str) -> bytes:
    """Open a frame produced by :func:`encrypt`.

    Raises :class:`DecryptionError` for short frames and for any tag failure,
    without saying whether the passphrase or the data was at fault.
    """
    salt, nonce, tag, ct = _split(bytes(framed))
    key = derive_key(passphrase, salt)
    return _open(nonce, tag, ct, key)


def seal_with_key(plaintext: bytes, key_material: bytes) -> bytes:
    salt = generate_salt()
    return _seal(bytes(plaintext), salt, _derive_content_key(key_material, salt))


def open_with_key(framed: bytes, key_material: bytes) -> bytes:
    salt, nonce, tag, ct = _split(bytes(framed))
    return _open(nonce, tag, ct, _derive_content_key(key_material, salt))


def encrypt_string(text: str, passphrase: str) -> str:
    """Encrypt UTF-8 text and return the frame as base64."""
    return base64.b64encode(encrypt(text.encode("utf-8"), passphrase)).decode("ascii")


def decrypt_string(encoded: str, passphrase: str) -> str:
    try:
        framed = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError):
        raise DecryptionError("decryption failed") from None
    plaintext = decrypt(framed, passphrase)
    try:
        return plaintext.decode("utf-8")
    except UnicodeDecodeError:
        raise DecryptionError("decryption failed") from None
