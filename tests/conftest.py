"""Shared fakes: an in-memory GitHub, keyring, prompter and editor."""

import base64
import hashlib
import json
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any
from urllib.parse import unquote, urlsplit

import keyring.errors
import pytest
import requests

from extsync.core.client import GitHubClient
from extsync.core.credentials import CredentialStore
from extsync.errors import ExtensionInstallError
from extsync.models.identity import GitHubUser
from extsync.models.snapshot import ExtensionInfo

API_URL = "https://api.github.com"


class FakeResponse:
    """Just enough of requests.Response for the client."""

    def __init__(self, status_code: int, payload: Any = None) -> None:
        self.status_code = status_code
        self._payload = payload
        self.content = b"" if payload is None else json.dumps(payload).encode("utf-8")
        self.text = self.content.decode("utf-8")

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("No JSON body")
        return self._payload


class FakeGitHub:
    """In-memory GitHub: /user, repository contents and the OAuth token endpoint."""

    def __init__(self) -> None:
        self.files: dict[str, tuple[bytes, str]] = {}
        self.users: dict[str, dict[str, Any]] = {}
        self.codes: dict[str, str] = {}
        self.calls: list[tuple[str, str, Any]] = []
        self.failures: dict[tuple[str, str], tuple[int, str]] = {}
        self.exceptions: dict[tuple[str, str], Exception] = {}
        self.after_read: Callable[[str], None] | None = None
        self._revision = 0

    # -- setup helpers -------------------------------------------------------

    def add_user(self, token: str, login: str = "alice", user_id: int = 1) -> None:
        self.users[token] = {
            "login": login,
            "id": user_id,
            "avatar_url": f"https://avatars.example/{login}",
            "name": login.title(),
            "email": None,
        }

    def add_code(self, code: str, token: str) -> None:
        self.codes[code] = token

    def put_file(self, repo: str, path: str, content: bytes) -> str:
        self._revision += 1
        sha = hashlib.sha1(content + str(self._revision).encode()).hexdigest()
        self.files[f"{repo}/{path}"] = (content, sha)
        return sha

    def read_file(self, repo: str, path: str) -> bytes:
        return self.files[f"{repo}/{path}"][0]

    def has_file(self, repo: str, path: str) -> bool:
        return f"{repo}/{path}" in self.files

    def fail(self, method: str, path: str, status: int, message: str = "Server Error") -> None:
        self.failures[(method, path)] = (status, message)

    def raise_on(self, method: str, path: str, exc: Exception) -> None:
        self.exceptions[(method, path)] = exc

    def puts(self) -> list[dict[str, Any]]:
        return [body for method, _, body in self.calls if method == "PUT"]

    # -- requests.Session surface -------------------------------------------

    def request(
        self,
        method: str,
        url: str,
        headers: dict[str, str] | None = None,
        json: Any = None,
        data: Any = None,
        timeout: Any = None,
    ) -> FakeResponse:
        parts = urlsplit(url)
        path = unquote(parts.path)
        self.calls.append((method, path, json if json is not None else data))

        if (method, path) in self.exceptions:
            raise self.exceptions[(method, path)]
        if (method, path) in self.failures:
            status, message = self.failures[(method, path)]
            return FakeResponse(status, {"message": message})

        if parts.netloc == "github.com":
            return self._token_endpoint(method, path, data or {})

        token = (headers or {}).get("Authorization", "").removeprefix("token ")
        if token not in self.users:
            return FakeResponse(401, {"message": "Bad credentials"})

        if path == "/user" and method == "GET":
            return FakeResponse(200, self.users[token])

        segments = path.split("/")
        if len(segments) > 5 and segments[1] == "repos" and segments[4] == "contents":
            repo = f"{segments[2]}/{segments[3]}"
            file_path = "/".join(segments[5:])
            if method == "GET":
                return self._get_contents(repo, file_path)
            if method == "PUT":
                return self._put_contents(repo, file_path, json or {})

        return FakeResponse(404, {"message": "Not Found"})

    def _token_endpoint(self, method: str, path: str, data: dict[str, Any]) -> FakeResponse:
        if method != "POST" or path != "/login/oauth/access_token":
            return FakeResponse(404, {"message": "Not Found"})
        token = self.codes.get(data.get("code", ""))
        if token is None:
            return FakeResponse(200, {
                "error": "bad_verification_code",
                "error_description": "The code passed is incorrect or expired.",
            })
        return FakeResponse(200, {"access_token": token, "token_type": "bearer", "scope": "repo,user"})

    def _get_contents(self, repo: str, file_path: str) -> FakeResponse:
        key = f"{repo}/{file_path}"
        if key not in self.files:
            listing = [
                {"name": name[len(key) + 1:], "type": "file"}
                for name in self.files
                if name.startswith(f"{key}/")
            ]
            if listing:
                return FakeResponse(200, listing)
            return FakeResponse(404, {"message": "Not Found"})

        content, sha = self.files[key]
        encoded = base64.b64encode(content).decode("ascii")
        wrapped = "\n".join(encoded[i:i + 60] for i in range(0, len(encoded), 60)) + "\n"
        response = FakeResponse(200, {
            "path": file_path,
            "sha": sha,
            "encoding": "base64",
            "content": wrapped,
        })
        if self.after_read is not None:
            self.after_read(file_path)
        return response

    def _put_contents(self, repo: str, file_path: str, body: dict[str, Any]) -> FakeResponse:
        key = f"{repo}/{file_path}"
        existing = self.files.get(key)

        if existing is None and "sha" in body:
            return FakeResponse(422, {"message": "sha supplied for a file that does not exist"})
        if existing is not None and "sha" not in body:
            return FakeResponse(422, {"message": "Invalid request. \"sha\" wasn't supplied."})
        if existing is not None and body["sha"] != existing[1]:
            return FakeResponse(409, {"message": f"{file_path} does not match {body['sha']}"})

        sha = self.put_file(repo, file_path, base64.b64decode(body["content"]))
        status = 201 if existing is None else 200
        return FakeResponse(status, {
            "content": {"path": file_path, "sha": sha},
            "commit": {"message": body["message"]},
        })


class FakeKeyring:
    """Dictionary with the keyring module's function names."""

    def __init__(self) -> None:
        self.entries: dict[tuple[str, str], str] = {}
        self.refused: set[str] = set()

    def get_password(self, service: str, username: str) -> str | None:
        return self.entries.get((service, username))

    def set_password(self, service: str, username: str, password: str) -> None:
        if username in self.refused:
            raise keyring.errors.PasswordSetError(f"Cannot store {username}")
        self.entries[(service, username)] = password

    def delete_password(self, service: str, username: str) -> None:
        if (service, username) not in self.entries:
            raise keyring.errors.PasswordDeleteError("Password not found")
        del self.entries[(service, username)]


class ScriptedPrompter:
    """Replays canned answers and records everything shown to the user."""

    def __init__(self) -> None:
        self.answers: list[str | None] = []
        self.picks: list[str] | None = None  # None selects everything offered
        self.asked: list[str] = []
        self.defaults: list[str | None] = []
        self.opened: list[str] = []
        self.offered: list[list[ExtensionInfo]] = []
        self.infos: list[str] = []
        self.warnings: list[str] = []
        self.errors: list[str] = []
        self.progress_messages: list[str] = []

    def ask(
        self,
        prompt: str,
        placeholder: str = "",
        password: bool = False,
        default: str | None = None,
    ) -> str | None:
        self.asked.append(prompt)
        self.defaults.append(default)
        return self.answers.pop(0) if self.answers else None

    def pick_many(self, extensions: list[ExtensionInfo], title: str) -> list[ExtensionInfo]:
        self.offered.append(list(extensions))
        if self.picks is None:
            return list(extensions)
        return [ext for ext in extensions if ext.id in self.picks]

    def open_url(self, url: str) -> None:
        self.opened.append(url)

    def info(self, message: str) -> None:
        self.infos.append(message)

    def warn(self, message: str) -> None:
        self.warnings.append(message)

    def error(self, message: str) -> None:
        self.errors.append(message)

    @contextmanager
    def progress(self, title: str, total: int) -> Iterator[Callable[[str], None]]:
        yield self.progress_messages.append


class FakeEditor:
    """Editor with a fixed extension list and settings files under tmp_path."""

    def __init__(self, root: Path) -> None:
        self.extensions: list[ExtensionInfo] = []
        self.host_version = "1.90.0"
        self.installed: list[str] = []
        self.fail_ids: set[str] = set()
        self.settings_file = root / "User" / "settings.json"
        self.remote_file: Path | None = None

    def installed_extensions(self) -> list[ExtensionInfo]:
        return list(self.extensions)

    def version(self) -> str:
        return self.host_version

    def install_extension(self, extension_id: str) -> None:
        if extension_id in self.fail_ids:
            raise ExtensionInstallError("Marketplace unavailable")
        self.installed.append(extension_id)

    def settings_path(self) -> Path:
        return self.settings_file

    def remote_settings_path(self) -> Path | None:
        return self.remote_file


@pytest.fixture
def fake_github() -> FakeGitHub:
    return FakeGitHub()


@pytest.fixture
def fake_keyring() -> FakeKeyring:
    return FakeKeyring()


@pytest.fixture
def prompter() -> ScriptedPrompter:
    return ScriptedPrompter()


@pytest.fixture
def editor(tmp_path: Path) -> FakeEditor:
    return FakeEditor(tmp_path)


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    return tmp_path / "config" / "config.yaml"


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep developer .env files and variables out of the tests."""
    monkeypatch.delenv("SYNC_MY_EXTS_CLIENT_ID", raising=False)
    monkeypatch.delenv("SYNC_MY_EXTS_CLIENT_SECRET", raising=False)
    monkeypatch.delenv("SYNC_MY_EXTS_CONFIG", raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def credentials(fake_keyring: FakeKeyring, fake_github: FakeGitHub) -> CredentialStore:
    return CredentialStore(
        backend=fake_keyring,
        client_factory=lambda token: GitHubClient(token, API_URL, fake_github),  # type: ignore[arg-type]
    )


@pytest.fixture
def logged_in(credentials: CredentialStore, fake_github: FakeGitHub) -> CredentialStore:
    fake_github.add_user("gho_alice", login="alice", user_id=1)
    credentials.save("gho_alice", GitHubUser(login="alice", id=1))
    return credentials


@pytest.fixture
def connection_error() -> requests.ConnectionError:
    return requests.ConnectionError("Connection refused")
