"""Shared fixtures for MediaVault tests."""

import io

import pytest
from PIL import Image

from mediavault.app import MediaVault
from mediavault.config import VaultSettings

PASSPHRASE = "Tr0ub4dor&3"


@pytest.fixture
def settings(tmp_path):
    """Settings rooted in a temp directory, with no background sweeper."""
    return VaultSettings(
        storage_root=tmp_path / "storage",
        db_path=tmp_path / "mediavault.db",
        start_sweeper=False,
    )


@pytest.fixture
def app(settings):
    vault = MediaVault(settings)
    yield vault
    vault.close()


@pytest.fixture
def alice(app):
    return app.media.create_user("alice")["user_id"]


@pytest.fixture
def bob(app):
    return app.media.create_user("bob")["user_id"]


@pytest.fixture
def alice_token(app, alice):
    """Alice with a configured vault and a live token."""
    app.vault.setup(alice, PASSPHRASE)
    return app.vault.authenticate(alice, PASSPHRASE).token


@pytest.fixture
def bob_token(app, bob):
    app.vault.setup(bob, "b0b-passphrase")
    return app.vault.authenticate(bob, "b0b-passphrase").token


@pytest.fixture
def make_png():
    def _make(width=640, height=480, color=(200, 30, 30)):
        out = io.BytesIO()
        Image.new("RGB", (width, height), color).save(out, format="PNG")
        return out.getvalue()

    return _make


@pytest.fixture
def passphrase():
    return PASSPHRASE
