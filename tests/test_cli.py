"""
tests/test_cli.py -- The administrative CLI in main.py.

Each command opens and closes its own AccountStore, so the fixture keeps a
second store open on the same in-memory database for the whole test;
otherwise the shared-memory database would vanish between commands.
"""

import pytest

from auth.models import Role
from auth.passwords import PasswordHasher
from auth.store import AccountStore
from core.config import get_settings
from main import build_parser, main


@pytest.fixture
def store(settings, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", settings.database_url)
    get_settings.cache_clear()
    keeper = AccountStore(settings.database_url, PasswordHasher(rounds=4))
    yield keeper
    keeper.close()
    get_settings.cache_clear()


class TestCreateUser:
    def test_creates_user(self, store: AccountStore, capsys) -> None:
        code = main(["create-user", "--email", "Ada@Example.com", "--name", "Ada", "--password", "hunter22"])
        assert code == 0
        assert "ada@example.com" in capsys.readouterr().out
        assert store.find_by_email("ada@example.com").role == Role.USER

    def test_creates_admin(self, store: AccountStore) -> None:
        code = main(["create-user", "--email", "root@example.com", "--name", "Root", "--password", "hunter22", "--admin"])
        assert code == 0
        assert store.find_by_email("root@example.com").role == Role.ADMIN

    def test_duplicate_fails(self, store: AccountStore, capsys) -> None:
        store.register("ada@example.com", "Ada", "hunter22")
        code = main(["create-user", "--email", "ada@example.com", "--name", "Ada", "--password", "hunter22"])
        assert code == 1
        assert "already exists" in capsys.readouterr().out

    def test_invalid_input_reports_fields(self, store: AccountStore, capsys) -> None:
        code = main(["create-user", "--email", "nope", "--name", "A", "--password", "123"])
        assert code == 1
        out = capsys.readouterr().out
        assert "email:" in out
        assert "password:" in out
        assert store.has_accounts() is False

    def test_prompts_for_password(self, store: AccountStore, monkeypatch) -> None:
        monkeypatch.setattr("getpass.getpass", lambda prompt="": "hunter22")
        assert main(["create-user", "--email", "ada@example.com", "--name", "Ada"]) == 0
        assert store.authenticate("ada@example.com", "hunter22").email == "ada@example.com"

    def test_prompt_mismatch_exits(self, store: AccountStore, monkeypatch) -> None:
        answers = iter(["hunter22", "hunter23"])
        monkeypatch.setattr("getpass.getpass", lambda prompt="": next(answers))
        with pytest.raises(SystemExit):
            main(["create-user", "--email", "ada@example.com", "--name", "Ada"])
        assert store.has_accounts() is False


class TestSetRole:
    def test_promotes(self, store: AccountStore) -> None:
        account_id = store.register("ada@example.com", "Ada", "hunter22")
        assert main(["set-role", "--email", "ADA@example.com", "--role", "ADMIN"]) == 0
        assert store.get_by_id(account_id).role == Role.ADMIN

    def test_unknown_email(self, store: AccountStore, capsys) -> None:
        assert main(["set-role", "--email", "ghost@example.com", "--role", "ADMIN"]) == 1
        assert "No account" in capsys.readouterr().out

    def test_role_choices_enforced(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["set-role", "--email", "ada@example.com", "--role", "ROOT"])


class TestListUsers:
    def test_empty(self, store: AccountStore, capsys) -> None:
        assert main(["list-users"]) == 0
        assert "No accounts." in capsys.readouterr().out

    def test_lists_accounts(self, store: AccountStore, capsys) -> None:
        store.register("ada@example.com", "Ada", "hunter22")
        store.register("root@example.com", "Root", "hunter22", role=Role.ADMIN)
        assert main(["list-users"]) == 0
        out = capsys.readouterr().out
        assert "ada@example.com" in out
        assert "ADMIN" in out
        assert "$2" not in out
