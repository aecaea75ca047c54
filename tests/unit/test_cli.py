"""
Tests for the command line front end. Passphrase prompts are patched.
"""

from unittest.mock import patch

import pytest

from mediavault.cli import build_parser, main

PASSPHRASE = "Tr0ub4dor&3"


@pytest.fixture
def base_args(tmp_path):
    return ["--storage-root", str(tmp_path / "store"), "--db", str(tmp_path / "cli.db")]


def _run(base_args, *args):
    return main(base_args + list(args))


def test_parser_requires_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_encrypted_roundtrip(base_args, tmp_path, capsys):
    assert _run(base_args, "create-user", "alice") == 0
    capsys.readouterr()

    with patch("getpass.getpass", side_effect=[PASSPHRASE, PASSPHRASE]):
        assert _run(base_args, "setup-vault", "alice") == 0
    assert "Vault configured" in capsys.readouterr().out

    src = tmp_path / "secret.txt"
    src.write_bytes(b"0123456789")
    with patch("getpass.getpass", return_value=PASSPHRASE):
        assert _run(base_args, "put", "alice", str(src), "--encrypt") == 0
    media_id = capsys.readouterr().out.strip()

    out = tmp_path / "out" / "secret.txt"
    with patch("getpass.getpass", return_value=PASSPHRASE):
        assert _run(base_args, "get", "alice", media_id, str(out), "--decrypt") == 0
    assert out.read_bytes() == b"0123456789"

    with patch("getpass.getpass", return_value=PASSPHRASE):
        assert _run(base_args, "verify", "alice", media_id) == 0
    assert capsys.readouterr().out.strip().endswith("OK")


def test_get_encrypted_without_decrypt(base_args, tmp_path, capsys):
    _run(base_args, "create-user", "alice")
    with patch("getpass.getpass", return_value=PASSPHRASE):
        _run(base_args, "setup-vault", "alice")
        src = tmp_path / "s.bin"
        src.write_bytes(b"abc")
        _run(base_args, "put", "alice", str(src), "--encrypt")
    media_id = capsys.readouterr().out.strip().splitlines()[-1]

    assert _run(base_args, "get", "alice", media_id, str(tmp_path / "o.bin")) == 1
    assert "error (403)" in capsys.readouterr().err


def test_wrong_passphrase(base_args, tmp_path, capsys):
    _run(base_args, "create-user", "alice")
    with patch("getpass.getpass", return_value=PASSPHRASE):
        _run(base_args, "setup-vault", "alice")
    src = tmp_path / "s.bin"
    src.write_bytes(b"abc")
    capsys.readouterr()

    with patch("getpass.getpass", return_value="wrong passphrase"):
        assert _run(base_args, "put", "alice", str(src), "--encrypt") == 1
    err = capsys.readouterr().err
    assert "error (401): Access denied" in err
    assert "wrong passphrase" not in err


def test_setup_mismatch(base_args, capsys):
    _run(base_args, "create-user", "alice")
    with patch("getpass.getpass", side_effect=[PASSPHRASE, "something else"]):
        assert _run(base_args, "setup-vault", "alice") == 2


def test_unknown_user(base_args, capsys):
    assert _run(base_args, "verify", "nobody", "some-id") == 1
    assert "error (404)" in capsys.readouterr().err


def test_duplicate_put(base_args, tmp_path, capsys):
    _run(base_args, "create-user", "alice")
    src = tmp_path / "a.txt"
    src.write_text("hello")
    _run(base_args, "put", "alice", str(src))
    _run(base_args, "put", "alice", str(src))
    lines = capsys.readouterr().out.strip().splitlines()
    assert lines[-1] == lines[-2] + " (duplicate)"


def test_put_missing_file(base_args, tmp_path, capsys):
    _run(base_args, "create-user", "alice")
    capsys.readouterr()
    missing = tmp_path / "does-not-exist.bin"
    with patch("getpass.getpass") as prompt:
        assert _run(base_args, "put", "alice", str(missing), "--encrypt") == 1
    # the file is read before any passphrase prompt
    prompt.assert_not_called()
    err = capsys.readouterr().err
    assert "error: " in err
    assert str(missing) in err
    assert "Traceback" not in err


def test_ls_and_stats(base_args, tmp_path, capsys):
    _run(base_args, "create-user", "alice")
    for name, body in [("holiday.txt", b"sunny"), ("notes.txt", b"meeting notes")]:
        src = tmp_path / name
        src.write_bytes(body)
        _run(base_args, "put", "alice", str(src))
    capsys.readouterr()

    assert _run(base_args, "ls", "alice", "--search", "holiday") == 0
    lines = capsys.readouterr().out.strip().splitlines()
    assert len(lines) == 2
    assert lines[0].endswith("holiday.txt")
    assert lines[-1] == "1 of 1"

    assert _run(base_args, "ls", "alice", "--sort", "file_size", "--limit", "1") == 0
    lines = capsys.readouterr().out.strip().splitlines()
    assert lines[0].endswith("notes.txt")
    assert lines[-1] == "1 of 2"

    assert _run(base_args, "stats", "alice") == 0
    out = capsys.readouterr().out
    assert "total_items: 2" in out
    assert f"storage_used: {len(b'sunny') + len(b'meeting notes')}" in out
