"""
Command line front end for MediaVault.

Tokens live only in process memory, so every command that touches encrypted
content prompts for the passphrase and unlocks for the duration of the call.

Usage:
    mediavault --storage-root ~/.mediavault create-user alice
    mediavault setup-vault alice
    mediavault put alice ./photo.jpg --encrypt
    mediavault get alice <media_id> ./out.jpg --decrypt
    mediavault ls alice --search holiday --sort file_size
    mediavault stats alice
    mediavault verify alice <media_id>
"""

from __future__ import annotations

import argparse
import getpass
import logging
import mimetypes
import sys
from pathlib import Path
from typing import List, Optional

from .api.http import error_response
from .app import MediaVault
from .config import VaultSettings
from .core.exceptions import MediaVaultError, UserNotFoundError
from .logging_config import configure_logging

logger = logging.getLogger("mediavault.cli")


def _user_id(vault: MediaVault, username: str) -> str:
    user = vault.users.get_by_username(username)
    if user is None:
        raise UserNotFoundError(f"User '{username}' not found.")
    return user["user_id"]


def _unlock(vault: MediaVault, user_id: str) -> str:
    passphrase = getpass.getpass("Vault passphrase: ")
    return vault.vault.authenticate(user_id, passphrase).token


def cmd_create_user(vault: MediaVault, args) -> int:
    user = vault.media.create_user(args.username)
    print(user["user_id"])
    return 0


def cmd_setup_vault(vault: MediaVault, args) -> int:
    user_id = _user_id(vault, args.username)
    passphrase = getpass.getpass("New vault passphrase: ")
    if getpass.getpass("Repeat passphrase: ") != passphrase:
        print("Passphrases do not match", file=sys.stderr)
        return 2
    vault.vault.setup(user_id, passphrase)
    print("Vault configured")
    return 0


def cmd_put(vault: MediaVault, args) -> int:
    user_id = _user_id(vault, args.username)
    src = Path(args.path).expanduser()
    mime_type = args.mime_type or mimetypes.guess_type(src.name)[0] or "application/octet-stream"
    buffer = src.read_bytes()
    token = _unlock(vault, user_id) if args.encrypt else None
    try:
        result = vault.media.upload(
            buffer,
            mime_type,
            user_id,
            original_name=src.name,
            category_id=args.category,
            want_encrypt=args.encrypt,
            token=token,
        )
    finally:
        if token:
            vault.sessions.revoke(token)
    print(result.media_id + (" (duplicate)" if result.is_duplicate else ""))
    return 0


def cmd_ls(vault: MediaVault, args) -> int:
    user_id = _user_id(vault, args.username)
    page = vault.media.list_media(
        user_id,
        encrypted_only=args.encrypted,
        search=args.search,
        sort_by=args.sort,
        sort_order=args.order,
        limit=args.limit,
        offset=args.offset,
    )
    for media in page["files"]:
        flag = "E" if media.is_encrypted else "-"
        name = media.original_name or media.filename
        print(f"{media.media_id}  {flag}  {media.file_size:>10}  {media.mime_type:<24} {name}")
    print(f"{len(page['files'])} of {page['total']}")
    return 0


def cmd_stats(vault: MediaVault, args) -> int:
    stats = vault.media.media_stats(_user_id(vault, args.username))
    for key, value in stats.items():
        print(f"{key}: {value}")
    return 0


def cmd_get(vault: MediaVault, args) -> int:
    user_id = _user_id(vault, args.username)
    token = _unlock(vault, user_id) if args.decrypt else None
    try:
        if args.thumbnail:
            data = vault.gate.read_thumbnail(args.media_id, user_id, want_decrypt=args.decrypt, token=token)
        else:
            data = vault.gate.read_object(args.media_id, user_id, want_decrypt=args.decrypt, token=token).data
    finally:
        if token:
            vault.sessions.revoke(token)
    dest = Path(args.destination).expanduser()
    dest.parent.mkdir(parents=True, exist_ok=True)
    dest.write_bytes(data)
    print(str(dest))
    return 0


def cmd_verify(vault: MediaVault, args) -> int:
    user_id = _user_id(vault, args.username)
    media = vault.media.get_media(args.media_id, user_id)
    token = _unlock(vault, user_id) if media.is_encrypted else None
    try:
        vault.gate.verify_integrity(args.media_id, user_id, token=token)
    finally:
        if token:
            vault.sessions.revoke(token)
    print("OK")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mediavault", description="Encrypted media vault")
    parser.add_argument("--storage-root", default=None, help="Blob storage directory")
    parser.add_argument("--db", dest="db_path", default=None, help="SQLite database path")
    parser.add_argument("-v", "--verbose", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("create-user", help="Create a user")
    p.add_argument("username")
    p.set_defaults(func=cmd_create_user)

    p = sub.add_parser("setup-vault", help="Set the vault passphrase for a user")
    p.add_argument("username")
    p.set_defaults(func=cmd_setup_vault)

    p = sub.add_parser("put", help="Upload a file")
    p.add_argument("username")
    p.add_argument("path")
    p.add_argument("--encrypt", action="store_true")
    p.add_argument("--mime-type", default=None)
    p.add_argument("--category", default=None)
    p.set_defaults(func=cmd_put)

    p = sub.add_parser("ls", help="List stored files")
    p.add_argument("username")
    p.add_argument("--encrypted", action="store_true", help="Only vault items")
    p.add_argument("--search", default=None)
    p.add_argument("--sort", default="created_at", choices=["created_at", "filename", "file_size"])
    p.add_argument("--order", default="desc", choices=["asc", "desc"])
    p.add_argument("--limit", type=int, default=20)
    p.add_argument("--offset", type=int, default=0)
    p.set_defaults(func=cmd_ls)

    p = sub.add_parser("stats", help="Show storage totals for a user")
    p.add_argument("username")
    p.set_defaults(func=cmd_stats)

    p = sub.add_parser("get", help="Download a file or its thumbnail")
    p.add_argument("username")
    p.add_argument("media_id")
    p.add_argument("destination")
    p.add_argument("--decrypt", action="store_true")
    p.add_argument("--thumbnail", action="store_true")
    p.set_defaults(func=cmd_get)

    p = sub.add_parser("verify", help="Check a stored file against its content hash")
    p.add_argument("username")
    p.add_argument("media_id")
    p.set_defaults(func=cmd_verify)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(logging.DEBUG if args.verbose else logging.WARNING)
    logger.debug("running %s", args.command)
    settings = VaultSettings.from_env(
        storage_root=args.storage_root,
        db_path=args.db_path,
        start_sweeper=False,
    )
    with MediaVault(settings) as vault:
        try:
            return args.func(vault, args)
        except MediaVaultError as e:
            status, body = error_response(e)
            print(f"error ({status}): {body['message']}", file=sys.stderr)
            return 1
        except OSError as e:
            print(f"error: {e.strerror or e}: {e.filename}", file=sys.stderr)
            return 1


if __name__ == "__main__":
    sys.exit(main())
