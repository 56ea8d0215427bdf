"""Tests for the interactive command line in passwordvault.main."""

import os
from io import StringIO

import pytest

from passwordvault import config
from passwordvault.crypto import CipherEnvelope
from passwordvault.errors import DecryptError
from passwordvault.main import VaultApp, build_app, load_or_create_salt, main
from passwordvault.storage import MemoryCredentialStorage
from passwordvault.vault import CredentialStore


class ScriptedIO:
    """Feeds canned answers to prompts and records everything printed."""

    def __init__(self, answers):
        self.answers = list(answers)
        self.lines = []

    def ask(self, prompt):
        if not self.answers:
            raise EOFError
        return self.answers.pop(0)

    def say(self, text):
        self.lines.append(text)

    @property
    def output(self):
        return "\n".join(self.lines)


def make_app(authenticator, cipher, answers, storage=None):
    scripted = ScriptedIO(answers)
    if storage is None:
        storage = MemoryCredentialStorage()
    store = CredentialStore(storage, cipher)
    app = VaultApp(
        authenticator,
        store,
        input_func=scripted.ask,
        password_func=scripted.ask,
        output=scripted.say,
    )
    return app, scripted


class TestSession:
    def test_register_login_store_retrieve_delete(self, authenticator, cipher):
        app, io = make_app(authenticator, cipher, [
            "yes", "john", "Secr3t!123",
            "john", "wrong",
            "john", "Secr3t!123",
            "1", "Gmail", "john@x.com", "hunter2pass",
            "2", "Gmail", "john@x.com",
            "3", "Gmail", "john@x.com",
            "2", "Gmail", "john@x.com",
            "4",
        ])
        assert app.run() == 0
        assert "User 'john' created successfully!" in io.output
        assert "Incorrect username or password. Try again." in io.output
        assert "Successfully logged in as john" in io.output
        assert "Password saved for Gmail and john@x.com" in io.output
        assert "Password for Gmail: hunter2pass" in io.output
        assert "Deleted password for Gmail" in io.output
        assert "No password found." in io.output
        assert "Logging out..." in io.output

    def test_register_existing_user(self, authenticator, cipher):
        authenticator.register("john", "Secr3t!123")
        app, io = make_app(authenticator, cipher, [
            "yes", "john", "other",
            "john", "Secr3t!123",
            "4",
        ])
        assert app.run() == 0
        assert "User already exists." in io.output

    def test_generated_password_is_shown_once(self, authenticator, cipher):
        authenticator.register("john", "Secr3t!123")
        storage = MemoryCredentialStorage()
        app, io = make_app(authenticator, cipher, [
            "no", "john", "Secr3t!123",
            "1", "Gmail", "john@x.com", "",
            "4",
        ], storage=storage)
        assert app.run() == 0
        generated = [line for line in io.lines if line.startswith("Generated Password: ")]
        assert len(generated) == 1
        password = generated[0][len("Generated Password: "):]
        assert len(password) == 12
        assert CredentialStore(storage, cipher).get("john", "Gmail", "john@x.com") == password.encode()

    def test_update_existing(self, authenticator, cipher):
        authenticator.register("john", "Secr3t!123")
        app, io = make_app(authenticator, cipher, [
            "no", "john", "Secr3t!123",
            "1", "Gmail", "john@x.com", "first",
            "1", "Gmail", "john@x.com", "second",
            "2", "Gmail", "john@x.com",
            "4",
        ])
        assert app.run() == 0
        assert "Updated password for Gmail and john@x.com" in io.output
        assert "Password for Gmail: second" in io.output

    def test_unreadable_password(self, authenticator, cipher):
        authenticator.register("john", "Secr3t!123")
        storage = MemoryCredentialStorage()
        CredentialStore(storage, CipherEnvelope(os.urandom(32))).put("john", "Gmail", "john@x.com", b"x")
        app, io = make_app(authenticator, cipher, [
            "no", "john", "Secr3t!123",
            "2", "Gmail", "john@x.com",
            "4",
        ], storage=storage)
        assert app.run() == 0
        assert "Stored password is unreadable." in io.output

    def test_store_over_unreadable_record(self, authenticator, cipher):
        authenticator.register("john", "Secr3t!123")
        storage = MemoryCredentialStorage()
        CredentialStore(storage, CipherEnvelope(os.urandom(32))).put("john", "Gmail", "john@x.com", b"x")
        app, io = make_app(authenticator, cipher, [
            "no", "john", "Secr3t!123",
            "1", "Gmail", "john@x.com", "fresh-pass",
            "2", "Gmail", "john@x.com",
            "4",
        ], storage=storage)
        assert app.run() == 0
        assert "Updated password for Gmail and john@x.com" in io.output
        assert "Password for Gmail: fresh-pass" in io.output

    def test_store_reports_unreadable_lookup(self, authenticator, cipher):
        class UnreadableStore(CredentialStore):
            def put(self, owner, service, account, secret=None):
                raise DecryptError()

        authenticator.register("john", "Secr3t!123")
        scripted = ScriptedIO([
            "no", "john", "Secr3t!123",
            "1", "Gmail", "john@x.com", "fresh-pass",
            "4",
        ])
        app = VaultApp(authenticator, UnreadableStore(MemoryCredentialStorage(), cipher),
                       input_func=scripted.ask, password_func=scripted.ask, output=scripted.say)
        assert app.run() == 0
        assert "Stored password is unreadable." in scripted.output
        assert "Logging out..." in scripted.output

    def test_invalid_choice(self, authenticator, cipher):
        authenticator.register("john", "Secr3t!123")
        app, io = make_app(authenticator, cipher, ["no", "john", "Secr3t!123", "9", "4"])
        assert app.run() == 0
        assert "Invalid choice. Try again." in io.output

    def test_delete_missing(self, authenticator, cipher):
        authenticator.register("john", "Secr3t!123")
        app, io = make_app(authenticator, cipher, [
            "no", "john", "Secr3t!123",
            "3", "Gmail", "john@x.com",
            "4",
        ])
        assert app.run() == 0
        assert "No password found." in io.output

    def test_too_many_failed_logins(self, authenticator, cipher):
        authenticator.register("john", "Secr3t!123")
        answers = ["no"] + ["john", "wrong"] * config.MAX_LOGIN_ATTEMPTS
        app, io = make_app(authenticator, cipher, answers)
        assert app.run() == 1
        assert "Too many failed login attempts." in io.output
        assert app.logged_in_user is None

    def test_end_of_input_exits_cleanly(self, authenticator, cipher):
        authenticator.register("john", "Secr3t!123")
        app, _ = make_app(authenticator, cipher, ["no", "john", "Secr3t!123"])
        assert app.run() == 0
        assert app.logged_in_user is None

    def test_blank_answers_are_reprompted(self, authenticator, cipher):
        authenticator.register("john", "Secr3t!123")
        app, io = make_app(authenticator, cipher, [
            "no", "", "  ", "john", "Secr3t!123",
            "4",
        ])
        assert app.run() == 0
        assert "Successfully logged in as john" in io.output


class TestBootstrap:
    def test_salt_created_once(self, tmp_path):
        path = str(tmp_path / "key.salt")
        first = load_or_create_salt(path)
        assert len(first) == 16
        assert load_or_create_salt(path) == first

    def test_corrupt_salt_rejected(self, tmp_path):
        path = tmp_path / "key.salt"
        path.write_bytes(b"short")
        with pytest.raises(ValueError):
            load_or_create_salt(str(path))

    def test_salt_written_by_another_process_wins(self, tmp_path, monkeypatch):
        path = tmp_path / "key.salt"
        winner = b"\x11" * 16

        def generate_after_other_process(*args):
            path.write_bytes(winner)
            return b"\x22" * 16

        monkeypatch.setattr("passwordvault.main.generate_salt", generate_after_other_process)
        assert load_or_create_salt(str(path)) == winner
        assert path.read_bytes() == winner

    def test_build_app_persists_across_runs(self, tmp_path, fast_kdf):
        data_dir = str(tmp_path / "vault")
        first_io = ScriptedIO([
            "yes", "john", "Secr3t!123",
            "john", "Secr3t!123",
            "1", "Gmail", "john@x.com", "hunter2pass",
            "4",
        ])
        app = build_app(data_dir, "passphrase", input_func=first_io.ask,
                        password_func=first_io.ask, output=first_io.say)
        assert app.run() == 0
        assert sorted(os.listdir(data_dir))[:3] == ["key.salt", "users.json", "vault.db"]

        second_io = ScriptedIO([
            "no", "john", "Secr3t!123",
            "2", "Gmail", "john@x.com",
            "4",
        ])
        app = build_app(data_dir, "passphrase", input_func=second_io.ask,
                        password_func=second_io.ask, output=second_io.say)
        assert app.run() == 0
        assert "Password for Gmail: hunter2pass" in second_io.output

    def test_wrong_passphrase_cannot_read(self, tmp_path, fast_kdf):
        data_dir = str(tmp_path / "vault")
        first_io = ScriptedIO([
            "yes", "john", "Secr3t!123",
            "john", "Secr3t!123",
            "1", "Gmail", "john@x.com", "hunter2pass",
            "4",
        ])
        build_app(data_dir, "passphrase", input_func=first_io.ask,
                  password_func=first_io.ask, output=first_io.say).run()

        second_io = ScriptedIO([
            "no", "john", "Secr3t!123",
            "2", "Gmail", "john@x.com",
            "4",
        ])
        build_app(data_dir, "not-the-passphrase", input_func=second_io.ask,
                  password_func=second_io.ask, output=second_io.say).run()
        assert "Stored password is unreadable." in second_io.output
        assert "hunter2pass" not in second_io.output


class TestMain:
    def test_empty_passphrase_exits_with_error(self, tmp_path, monkeypatch, capsys):
        monkeypatch.setenv(config.ENV_HOME, str(tmp_path / "vault"))
        monkeypatch.delenv(config.ENV_PASSPHRASE, raising=False)
        monkeypatch.setattr("passwordvault.main.getpass.getpass", lambda prompt="": "")
        assert main() == 1
        assert "A vault passphrase is required." in capsys.readouterr().out
        assert not (tmp_path / "vault").exists()

    def test_passphrase_from_environment(self, tmp_path, monkeypatch, fast_kdf):
        def no_prompt(prompt=""):
            raise AssertionError("passphrase should come from the environment")

        data_dir = tmp_path / "vault"
        monkeypatch.setenv(config.ENV_HOME, str(data_dir))
        monkeypatch.setenv(config.ENV_PASSPHRASE, "passphrase")
        monkeypatch.setattr("passwordvault.main.getpass.getpass", no_prompt)
        monkeypatch.setattr("sys.stdin", StringIO("no\n"))
        assert main() == 0
        assert (data_dir / "key.salt").exists()
        assert (data_dir / "vault.db").exists()
