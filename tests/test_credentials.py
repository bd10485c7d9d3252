"""Tests for the keyring-backed credential store."""

import json

import keyring.errors
import pytest
import requests

from extsync.core.credentials import SERVICE_NAME, TOKEN_KEY, USER_KEY, CredentialStore
from extsync.models.identity import GitHubUser


class TestCredentialStore:
    """Tests for CredentialStore."""

    def test_get_when_empty(self, credentials: CredentialStore) -> None:
        assert credentials.get() is None
        assert credentials.get_user() is None

    def test_save_then_get(self, credentials: CredentialStore, fake_keyring) -> None:
        credentials.save("gho_token", GitHubUser(login="alice", id=42))

        credential = credentials.get()

        assert credential is not None
        assert credential.access_token == "gho_token"
        assert credential.owner_login == "alice"
        assert credential.owner_id == 42
        stored_user = json.loads(fake_keyring.entries[(SERVICE_NAME, USER_KEY)])
        assert stored_user["login"] == "alice"

    def test_get_does_no_network_io(self, credentials: CredentialStore, fake_github) -> None:
        credentials.save("gho_token", GitHubUser(login="alice", id=42))

        credentials.get()

        assert fake_github.calls == []

    def test_clear_is_idempotent(self, credentials: CredentialStore, fake_keyring) -> None:
        credentials.save("gho_token", GitHubUser(login="alice", id=42))

        credentials.clear()
        credentials.clear()

        assert fake_keyring.entries == {}
        assert credentials.get() is None

    def test_failed_identity_write_removes_token(self, credentials: CredentialStore, fake_keyring) -> None:
        fake_keyring.refused.add(USER_KEY)

        with pytest.raises(keyring.errors.PasswordSetError):
            credentials.save("gho_token", GitHubUser(login="alice", id=42))

        assert fake_keyring.entries == {}
        assert credentials.get() is None

    def test_unreadable_user_entry_ignored(self, credentials: CredentialStore, fake_keyring) -> None:
        fake_keyring.entries[(SERVICE_NAME, TOKEN_KEY)] = "gho_token"
        fake_keyring.entries[(SERVICE_NAME, USER_KEY)] = "{broken"

        credential = credentials.get()

        assert credential is not None
        assert credential.owner_login == ""

    def test_keyring_failure_reads_as_absent(self) -> None:
        class BrokenKeyring:
            def get_password(self, service: str, username: str) -> str:
                raise keyring.errors.KeyringError("locked")

        store = CredentialStore(backend=BrokenKeyring())

        assert store.get() is None
        assert store.is_valid() is False


class TestIsValid:
    """Tests for remote validation of the stored token."""

    def test_false_without_credential(self, credentials: CredentialStore, fake_github) -> None:
        assert credentials.is_valid() is False
        assert fake_github.calls == []

    def test_true_for_accepted_token(self, logged_in: CredentialStore, fake_github) -> None:
        assert logged_in.is_valid() is True
        assert fake_github.calls == [("GET", "/user", None)]

    def test_false_for_revoked_token(self, logged_in: CredentialStore, fake_github) -> None:
        fake_github.users.clear()

        assert logged_in.is_valid() is False

    def test_false_on_network_error(self, logged_in: CredentialStore, fake_github) -> None:
        fake_github.raise_on("GET", "/user", requests.ConnectionError("Connection refused"))

        assert logged_in.is_valid() is False

    def test_false_on_server_error(self, logged_in: CredentialStore, fake_github) -> None:
        fake_github.fail("GET", "/user", 502, "Bad Gateway")

        assert logged_in.is_valid() is False
