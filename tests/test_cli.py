"""
tests/test_cli.py -- Tests for the administrative command line in main.py.

Covers:
  - create-user: creates a principal with the chosen role, refuses
    mismatched or short passwords, reports duplicates
  - purge-tokens: removes expired allow-list rows
  - no command: prints help and exits 2
"""

from __future__ import annotations

import uuid
from datetime import timedelta
from types import SimpleNamespace

import pytest

import main
from auth import db
from auth.allowlist import TokenAllowList
from auth.models import Role
from auth.store import UserStore
from auth.tokens import verify_password


@pytest.fixture
def db_url(monkeypatch):
    """Point the CLI at a private shared-memory database and keep it alive."""
    url = f"sqlite:///file:cli_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"
    keeper = db.connect(url)
    monkeypatch.setattr(
        main,
        "get_settings",
        lambda: SimpleNamespace(database_url=url, token_retention_seconds=3600),
    )
    yield url
    keeper.dispose()


def _passwords(monkeypatch, *answers: str) -> None:
    replies = iter(answers)
    monkeypatch.setattr(main.getpass, "getpass", lambda prompt="": next(replies))


def test_create_admin(db_url, monkeypatch, capsys) -> None:
    _passwords(monkeypatch, "AdminPass123!", "AdminPass123!")

    assert main.main(["create-user", "--email", "Root@Example.com", "--role", "ADMIN"]) == 0

    engine = db.connect(db_url)
    try:
        principal = UserStore(engine).get_by_email("root@example.com")
    finally:
        engine.dispose()
    assert principal.role is Role.ADMIN
    assert verify_password("AdminPass123!", principal.hashed_password)
    assert "Created ADMIN root@example.com" in capsys.readouterr().out


def test_create_phone_user_defaults_to_user_role(db_url, monkeypatch) -> None:
    _passwords(monkeypatch, "PhonePass123!", "PhonePass123!")

    assert main.main(["create-user", "--phone", "+380501234567"]) == 0

    engine = db.connect(db_url)
    try:
        assert UserStore(engine).get_by_phone_number("+380501234567").role is Role.USER
    finally:
        engine.dispose()


def test_identifier_required(db_url, capsys) -> None:
    assert main.main(["create-user"]) == 2
    assert "--email" in capsys.readouterr().out


def test_mismatched_passwords(db_url, monkeypatch) -> None:
    _passwords(monkeypatch, "AdminPass123!", "AdminPass124!")
    assert main.main(["create-user", "--email", "root@example.com"]) == 1


def test_short_password(db_url, monkeypatch) -> None:
    _passwords(monkeypatch, "short", "short")
    assert main.main(["create-user", "--email", "root@example.com"]) == 1


def test_duplicate_user(db_url, monkeypatch, capsys) -> None:
    _passwords(monkeypatch, *["AdminPass123!"] * 4)
    assert main.main(["create-user", "--email", "root@example.com"]) == 0
    assert main.main(["create-user", "--email", "ROOT@example.com"]) == 1
    assert "already exists" in capsys.readouterr().out


def test_purge_tokens(db_url, capsys) -> None:
    engine = db.connect(db_url)
    try:
        allowlist = TokenAllowList(engine)
        allowlist.upsert("p-dead", "tok-dead", allowlist.now() - timedelta(days=2))
        allowlist.upsert("p-live", "tok-live", allowlist.now() + timedelta(hours=1))

        assert main.main(["purge-tokens"]) == 0
        assert allowlist.lookup_active("tok-live") is not None
    finally:
        engine.dispose()
    assert "Removed 1 expired token(s)." in capsys.readouterr().out


def test_no_command_prints_help(capsys) -> None:
    assert main.main([]) == 2
    assert "create-user" in capsys.readouterr().out


def test_first_principal_not_admin_warns(db_url, monkeypatch, capsys) -> None:
    _passwords(monkeypatch, *["PhonePass123!"] * 4)

    assert main.main(["create-user", "--email", "first@example.com"]) == 0
    assert "not an ADMIN" in capsys.readouterr().out

    assert main.main(["create-user", "--email", "second@example.com"]) == 0
    assert "not an ADMIN" not in capsys.readouterr().out


def test_first_admin_does_not_warn(db_url, monkeypatch, capsys) -> None:
    _passwords(monkeypatch, "AdminPass123!", "AdminPass123!")
    assert main.main(["create-user", "--email", "root@example.com", "--role", "ADMIN"]) == 0
    assert "[!]" not in capsys.readouterr().out
