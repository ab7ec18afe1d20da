"""Tests for the main.py seed CLI (create-user, set-password).

UserStore is redirected to a temporary SQLite file so the CLI never touches
the real database.
"""

import pytest

import auth.store
import main
from auth.models import User
from auth.sessions import issue_session, resolve_session
from auth.tokens import hash_password, verify_credentials
from core.errors import AuthorizationDenied


@pytest.fixture()
def db_url(tmp_path, monkeypatch):
    url = f"sqlite:///{tmp_path / 'cli.db'}"
    real_store = auth.store.UserStore
    monkeypatch.setattr(auth.store, "UserStore", lambda db_url=None: real_store(url))
    return url


class TestCreateUser:
    def test_creates_user_with_normalized_email(self, db_url, capsys):
        assert main.main(["create-user", "Baker@Example.com", "--password", "knead-the-dough"]) == 0
        store = auth.store.UserStore()
        assert verify_credentials(store, "baker@example.com", "knead-the-dough").email == "baker@example.com"
        store.close()
        assert "Created user baker@example.com" in capsys.readouterr().out

    def test_duplicate_email_fails(self, db_url, capsys):
        main.main(["create-user", "baker@example.com", "--password", "knead-the-dough"])
        assert main.main(["create-user", "BAKER@example.com", "--password", "another-one"]) == 1
        assert "already exists" in capsys.readouterr().out

    def test_short_password_rejected(self, db_url):
        assert main.main(["create-user", "baker@example.com", "--password", "short"]) == 2
        store = auth.store.UserStore()
        assert store.has_users() is False
        store.close()

    def test_prompted_passwords_must_match(self, db_url, monkeypatch):
        answers = iter(["first-password", "second-password"])
        monkeypatch.setattr(main.getpass, "getpass", lambda prompt="": next(answers))
        assert main.main(["create-user", "baker@example.com"]) == 2

    def test_invalid_email(self, db_url):
        assert main.main(["create-user", "not-an-email", "--password", "knead-the-dough"]) == 2


class TestSetPassword:
    def test_rotates_password_and_revokes_sessions(self, db_url):
        store = auth.store.UserStore()
        uid = store.create_user(User(email="baker@example.com", hashed_password=hash_password("old-password")))
        issued = issue_session(store, store.get_by_id(uid))

        assert main.main(["set-password", "baker@example.com", "--password", "new-password"]) == 0

        assert verify_credentials(store, "baker@example.com", "new-password").id == uid
        with pytest.raises(AuthorizationDenied):
            resolve_session(store, issued.token)
        store.close()

    def test_unknown_user(self, db_url, capsys):
        assert main.main(["set-password", "ghost@example.com", "--password", "whatever-123"]) == 1
        assert "No user" in capsys.readouterr().out


def test_no_command_prints_help(capsys):
    assert main.main([]) == 0
    assert "create-user" in capsys.readouterr().out
