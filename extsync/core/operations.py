"""Sync and import operations for extensions and settings."""

import logging
from dataclasses import dataclass, field
from pathlib import Path

import requests

from ..errors import (
    AuthenticationRequiredError,
    ConfigurationMissingError,
    ExtensionInstallError,
    LocalIOError,
    RemoteNotFoundError,
    SnapshotParseError,
    SyncError,
)
from ..models.config import RepositoryCoordinate, SyncConfig, SyncResult
from ..models.snapshot import ExtensionSnapshot
from .client import GitHubClient
from .credentials import CredentialStore
from .editor import VSCodeEditor
from .prompts import ConsolePrompter
from .remote import RemoteFileSync

logger = logging.getLogger(__name__)


@dataclass
class InstallReport:
    """Outcome of an extension import."""

    offered: list[str] = field(default_factory=list)
    installed: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)


class SyncOperations:
    """Pushes and pulls extension lists and settings files.

    Every operation resolves the credential and repository once, then runs
    its remote calls strictly in sequence.
    """

    SETTINGS_FILE = "settings.json"
    REMOTE_SETTINGS_FILE = "remote-settings.json"

    def __init__(
        self,
        config: SyncConfig,
        config_path: Path,
        credentials: CredentialStore,
        prompter: ConsolePrompter,
        editor: VSCodeEditor,
        session: requests.Session | None = None,
    ) -> None:
        """Initialize sync operations.

        Args:
            config: Configuration snapshot for this command
            config_path: Where a newly entered repository name is persisted
            credentials: Source of the GitHub token
            prompter: User interaction
            editor: Local extensions and settings files
            session: HTTP session shared by all GitHub calls
        """
        self.config = config
        self.config_path = Path(config_path)
        self.credentials = credentials
        self.prompter = prompter
        self.editor = editor
        self.session = session or requests.Session()

    # -------------------------------------------------------------------------
    # Resolution of credential and repository
    # -------------------------------------------------------------------------

    def _client(self) -> GitHubClient:
        credential = self.credentials.get()
        if credential is None:
            raise AuthenticationRequiredError()
        return GitHubClient(credential.access_token, self.config.api_url, self.session)

    def _save_repository(self, value: str) -> RepositoryCoordinate:
        repo = RepositoryCoordinate.parse(value)
        self.config = self.config.with_updates(repository=str(repo))
        self.config.save(self.config_path)
        return repo

    def _repository(self) -> RepositoryCoordinate:
        """Configured repository, asking for one the first time."""
        if self.config.repository:
            return RepositoryCoordinate.parse(self.config.repository)

        value = self.prompter.ask(
            "GitHub repository to sync with", placeholder="username/repo-name"
        )
        if not value:
            raise ConfigurationMissingError("No repository name was entered")
        return self._save_repository(value)

    def _remote(self) -> RemoteFileSync:
        client = self._client()
        return RemoteFileSync(client, self._repository())

    def change_repository(self) -> RepositoryCoordinate | None:
        """Replace the configured repository. Returns None if cancelled."""
        value = self.prompter.ask(
            "New GitHub repository",
            placeholder="username/repo-name",
            default=self.config.repository or None,
        )
        if not value:
            return None
        repo = self._save_repository(value)
        self.prompter.info(f"Repository changed to {repo}")
        return repo

    # -------------------------------------------------------------------------
    # Local files
    # -------------------------------------------------------------------------

    @staticmethod
    def _read_local(path: Path) -> bytes:
        if not path.exists():
            raise LocalIOError(f"Settings file not found: {path}")
        try:
            return path.read_bytes()
        except OSError as e:
            raise LocalIOError(f"Could not read {path}: {e}") from e

    @staticmethod
    def _write_local(path: Path, content: bytes) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)
        except OSError as e:
            raise LocalIOError(f"Could not write {path}: {e}") from e

    # -------------------------------------------------------------------------
    # Extensions
    # -------------------------------------------------------------------------

    def sync_extensions(self) -> SyncResult:
        """Upload a fresh snapshot of the installed extensions."""
        remote = self._remote()
        snapshot = ExtensionSnapshot.capture(
            self.editor.installed_extensions(), self.editor.version()
        )
        remote.upsert(snapshot.to_json().encode("utf-8"), self.config.file_name)
        return SyncResult(
            success=True,
            filepath=self.config.file_name,
            operation="sync",
            message=f"Synced {len(snapshot.extensions)} extensions to {remote.repo}",
        )

    def import_extensions(self) -> InstallReport:
        """Offer the remote extension list and install the chosen entries.

        A failed installation is reported as a warning and the remaining
        ones still run.
        """
        remote = self._remote()
        content = remote.fetch(self.config.file_name)
        try:
            text = content.decode("utf-8")
        except UnicodeDecodeError as e:
            raise SnapshotParseError(f"{self.config.file_name} is not UTF-8 text: {e}") from e
        snapshot = ExtensionSnapshot.from_json(text)

        report = InstallReport(offered=[ext.id for ext in snapshot.extensions])
        selected = self.prompter.pick_many(
            snapshot.extensions, "Select extensions to install"
        )
        if not selected:
            return report

        with self.prompter.progress("Installing extensions...", len(selected)) as progress:
            for i, ext in enumerate(selected, start=1):
                progress(f"Installing {ext.name} ({i}/{len(selected)})")
                try:
                    self.editor.install_extension(ext.id)
                except ExtensionInstallError as e:
                    report.failed[ext.id] = str(e)
                    self.prompter.warn(f"Failed to install {ext.name}: {e}")
                else:
                    report.installed.append(ext.id)

        return report

    # -------------------------------------------------------------------------
    # Settings
    # -------------------------------------------------------------------------

    def sync_settings(self) -> list[SyncResult]:
        """Upload settings.json, plus the remote-server settings if present.

        The second upload is independent: its failure is reported in the
        results and does not undo the first.
        """
        settings_path = self.editor.settings_path()
        content = self._read_local(settings_path)

        remote = self._remote()
        remote.upsert(content, self.SETTINGS_FILE)
        results = [SyncResult(True, self.SETTINGS_FILE, "sync", f"Synced {settings_path}")]

        remote_path = self.editor.remote_settings_path()
        if remote_path is None or not remote_path.exists():
            return results

        try:
            remote.upsert(self._read_local(remote_path), self.REMOTE_SETTINGS_FILE)
        except SyncError as e:
            results.append(SyncResult(False, self.REMOTE_SETTINGS_FILE, "sync", str(e)))
        else:
            results.append(SyncResult(True, self.REMOTE_SETTINGS_FILE, "sync", f"Synced {remote_path}"))
        return results

    def import_settings(self) -> list[SyncResult]:
        """Overwrite local settings from the repository.

        A missing remote-settings.json is skipped silently.
        """
        remote = self._remote()
        settings_path = self.editor.settings_path()
        self._write_local(settings_path, remote.fetch(self.SETTINGS_FILE))
        results = [SyncResult(True, self.SETTINGS_FILE, "import", f"Wrote {settings_path}")]

        try:
            remote_content = remote.fetch(self.REMOTE_SETTINGS_FILE)
        except RemoteNotFoundError:
            results.append(SyncResult(True, self.REMOTE_SETTINGS_FILE, "import", "Not in repository", skipped=True))
            return results
        except SyncError as e:
            results.append(SyncResult(False, self.REMOTE_SETTINGS_FILE, "import", str(e)))
            return results

        remote_path = self.editor.remote_settings_path()
        if remote_path is None:
            results.append(SyncResult(True, self.REMOTE_SETTINGS_FILE, "import", "No remote settings location", skipped=True))
            return results

        try:
            self._write_local(remote_path, remote_content)
        except LocalIOError as e:
            results.append(SyncResult(False, self.REMOTE_SETTINGS_FILE, "import", str(e)))
        else:
            results.append(SyncResult(True, self.REMOTE_SETTINGS_FILE, "import", f"Wrote {remote_path}"))
        return results
