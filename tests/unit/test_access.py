"""
Tests for the media access gate: ownership, opt-in decryption, placeholders
and integrity checks.
"""

import io

import pytest
from PIL import Image

from mediavault.core.exceptions import (
    AccessDeniedError,
    ContentRequiresDecryptionError,
    DecryptionError,
    ErrorKind,
    IntegrityError,
    MediaNotFoundError,
    TokenExpiredError,
    TokenNotFoundError,
    TokenOwnershipError,
)
from mediavault.core.storage import CONTENT, THUMBNAIL
from mediavault.core.thumbnails import placeholder


@pytest.fixture
def secret(app, alice, alice_token):
    """An encrypted 10-byte object owned by alice."""
    return app.media.upload(b"0123456789", "application/octet-stream", alice, want_encrypt=True, token=alice_token).media_id


@pytest.fixture
def plain(app, alice):
    return app.media.upload(b"plain text", "text/plain", alice, original_name="plain.txt").media_id


# ==============================================================================
# Ownership
# ==============================================================================

def test_unknown_media(app, alice):
    with pytest.raises(MediaNotFoundError):
        app.gate.read_object("missing", alice)


def test_deleted_media_is_not_found(app, alice, plain):
    app.media.delete_media(plain, alice)
    with pytest.raises(MediaNotFoundError):
        app.gate.read_object(plain, alice)


def test_other_user_is_denied(app, bob, plain, caplog):
    with caplog.at_level("WARNING", logger="mediavault.audit"):
        with pytest.raises(AccessDeniedError):
            app.gate.read_object(plain, bob)
    assert any(plain in r.getMessage() for r in caplog.records)


def test_ownership_checked_before_crypto(app, bob, bob_token, secret):
    """Bob's own valid token doesn't get him past the owner check."""
    with pytest.raises(AccessDeniedError):
        app.gate.read_object(secret, bob, want_decrypt=True, token=bob_token)


# ==============================================================================
# Content reads
# ==============================================================================

def test_read_plain_ignores_token(app, alice, plain):
    content = app.gate.read_object(plain, alice, token="not-a-real-token")
    assert content.data == b"plain text"
    assert content.mime_type == "text/plain"
    assert content.headers()["Content-Length"] == "10"
    assert 'filename="plain.txt"' in content.headers()["Content-Disposition"]


def test_read_encrypted_with_token(app, alice, alice_token, secret):
    content = app.gate.read_object(secret, alice, want_decrypt=True, token=alice_token)
    assert content.data == b"0123456789"


def test_read_encrypted_without_opt_in(app, alice, alice_token, secret):
    with pytest.raises(ContentRequiresDecryptionError) as exc:
        app.gate.read_object(secret, alice, token=alice_token)
    assert exc.value.kind is ErrorKind.DECRYPTION_REQUIRED


def test_read_encrypted_without_token(app, alice, secret):
    with pytest.raises(TokenNotFoundError):
        app.gate.read_object(secret, alice, want_decrypt=True)


def test_read_encrypted_with_foreign_token(app, alice, bob_token, secret):
    with pytest.raises(TokenOwnershipError):
        app.gate.read_object(secret, alice, want_decrypt=True, token=bob_token)


def test_read_encrypted_with_expired_token(app, alice, passphrase, secret):
    token = app.vault.authenticate(alice, passphrase, ttl_seconds=-1).token
    with pytest.raises(TokenExpiredError):
        app.gate.read_object(secret, alice, want_decrypt=True, token=token)


def test_corrupted_ciphertext(app, alice, alice_token, secret):
    path = app.storage.blob_path(alice, secret, CONTENT)
    data = bytearray(path.read_bytes())
    data[-1] ^= 0x01
    path.write_bytes(bytes(data))
    with pytest.raises(DecryptionError):
        app.gate.read_object(secret, alice, want_decrypt=True, token=alice_token)


def test_corrupted_wrapped_key(app, alice, alice_token, secret):
    app.db.execute("UPDATE media_files SET wrapped_key = ? WHERE media_id = ?", ("Z2FyYmFnZQ==", secret))
    with pytest.raises(DecryptionError):
        app.gate.read_object(secret, alice, want_decrypt=True, token=alice_token)


def test_missing_blob_is_integrity_error(app, alice, plain):
    app.storage.blob_path(alice, plain, CONTENT).unlink()
    with pytest.raises(IntegrityError):
        app.gate.read_object(plain, alice)


# ==============================================================================
# Thumbnails
# ==============================================================================

def test_plain_thumbnail(app, alice, make_png):
    media_id = app.media.upload(make_png(), "image/png", alice).media_id
    thumb = app.gate.read_thumbnail(media_id, alice)
    assert Image.open(io.BytesIO(thumb)).size == (300, 300)


def test_locked_thumbnail_is_placeholder(app, alice, alice_token, make_png):
    media_id = app.media.upload(make_png(), "image/png", alice, want_encrypt=True, token=alice_token).media_id
    assert app.gate.read_thumbnail(media_id, alice) == placeholder(300)
    # even a valid token doesn't unlock without the opt-in
    assert app.gate.read_thumbnail(media_id, alice, token=alice_token) == placeholder(300)


def test_unlocked_thumbnail(app, alice, alice_token, make_png):
    media_id = app.media.upload(make_png(), "image/png", alice, want_encrypt=True, token=alice_token).media_id
    thumb = app.gate.read_thumbnail(media_id, alice, want_decrypt=True, token=alice_token)
    img = Image.open(io.BytesIO(thumb))
    assert img.format == "JPEG"
    assert img.size == (300, 300)
    assert thumb != placeholder(300)


def test_thumbnail_missing(app, alice, plain):
    with pytest.raises(MediaNotFoundError) as exc:
        app.gate.read_thumbnail(plain, alice)
    assert exc.value.public_message == "Thumbnail not found"


def test_locked_non_image_gets_placeholder(app, alice, secret):
    assert app.gate.read_thumbnail(secret, alice) == placeholder(300)


def test_unlocking_thumbnail_needs_token_before_lookup(app, alice, secret):
    # a non-image has no thumbnail, but that is only reported to a token holder
    with pytest.raises(TokenNotFoundError):
        app.gate.read_thumbnail(secret, alice, want_decrypt=True)
    with pytest.raises(TokenNotFoundError):
        app.gate.read_thumbnail(secret, alice, want_decrypt=True, token="nope")


def test_unlocking_thumbnail_with_foreign_token(app, alice, bob_token, secret):
    with pytest.raises(TokenOwnershipError):
        app.gate.read_thumbnail(secret, alice, want_decrypt=True, token=bob_token)


def test_unlocked_non_image_has_no_thumbnail(app, alice, alice_token, secret):
    with pytest.raises(MediaNotFoundError):
        app.gate.read_thumbnail(secret, alice, want_decrypt=True, token=alice_token)


def test_thumbnail_other_user(app, bob, secret):
    with pytest.raises(AccessDeniedError):
        app.gate.read_thumbnail(secret, bob)


def test_thumbnail_blob_missing(app, alice, make_png):
    media_id = app.media.upload(make_png(), "image/png", alice).media_id
    app.storage.blob_path(alice, media_id, THUMBNAIL).unlink()
    with pytest.raises(IntegrityError):
        app.gate.read_thumbnail(media_id, alice)


# ==============================================================================
# Integrity
# ==============================================================================

def test_verify_integrity_plain(app, alice, plain):
    assert app.gate.verify_integrity(plain, alice) is True


def test_verify_integrity_encrypted(app, alice, alice_token, secret):
    assert app.gate.verify_integrity(secret, alice, token=alice_token) is True
    with pytest.raises(TokenNotFoundError):
        app.gate.verify_integrity(secret, alice)


def test_verify_integrity_detects_tampering(app, alice, plain, caplog):
    app.storage.write(alice, plain, b"PLAIN TEXT")
    with caplog.at_level("ERROR", logger="mediavault.audit"):
        with pytest.raises(IntegrityError):
            app.gate.verify_integrity(plain, alice)
    assert any("integrity check failed" in r.getMessage() for r in caplog.records)
