"""Configuration and data models for the sync system."""

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

import yaml
from dotenv import find_dotenv, load_dotenv

from ..errors import ConfigFileError, LocalIOError, RepositoryFormatError

DEFAULT_FILE_NAME = "extensions.json"
DEFAULT_API_URL = "https://api.github.com"
DEFAULT_OAUTH_URL = "https://github.com"

CONFIG_ENV_VAR = "SYNC_MY_EXTS_CONFIG"


def default_config_path() -> Path:
    """Location of the persisted configuration file."""
    override = os.getenv(CONFIG_ENV_VAR)
    if override:
        return Path(override).expanduser()
    base = os.getenv("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(base) / "sync-my-exts" / "config.yaml"


@dataclass(frozen=True)
class RepositoryCoordinate:
    """A GitHub repository named as ``owner/repo``."""

    owner: str
    repo_name: str

    @classmethod
    def parse(cls, value: str) -> "RepositoryCoordinate":
        """Parse an ``owner/repo`` string.

        Raises:
            RepositoryFormatError: Unless the value holds exactly one "/"
                with non-empty text on both sides
        """
        owner, sep, repo_name = (value or "").strip().partition("/")
        if not sep or not owner or not repo_name or "/" in repo_name:
            raise RepositoryFormatError(
                f"Invalid repository name {value!r}. Expected format: username/repo-name"
            )
        return cls(owner=owner, repo_name=repo_name)

    def __str__(self) -> str:
        return f"{self.owner}/{self.repo_name}"


@dataclass(frozen=True)
class SyncConfig:
    """Snapshot of the user-editable settings, taken once per command."""

    repository: str = ""
    file_name: str = DEFAULT_FILE_NAME
    client_id: str = ""
    client_secret: str = ""
    api_url: str = DEFAULT_API_URL
    oauth_url: str = DEFAULT_OAUTH_URL
    verbose: bool = False

    @property
    def has_oauth_app(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def with_updates(self, **changes: Any) -> "SyncConfig":
        """Create updated copy with changes."""
        return replace(self, **changes)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SyncConfig":
        """Create from the persisted (camelCase) dictionary."""
        return cls(
            repository=data.get("repository") or "",
            file_name=data.get("fileName") or DEFAULT_FILE_NAME,
            client_id=data.get("clientId") or "",
            client_secret=data.get("clientSecret") or "",
            api_url=(data.get("apiUrl") or DEFAULT_API_URL).rstrip("/"),
            oauth_url=(data.get("oauthUrl") or DEFAULT_OAUTH_URL).rstrip("/"),
            verbose=bool(data.get("verbose", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to the persisted dictionary."""
        return {
            "repository": self.repository,
            "fileName": self.file_name,
            "clientId": self.client_id,
            "clientSecret": self.client_secret,
            "apiUrl": self.api_url,
            "oauthUrl": self.oauth_url,
            "verbose": self.verbose,
        }

    @classmethod
    def load(cls, config_path: Path) -> "SyncConfig":
        """Load configuration from YAML file.

        A missing file yields the defaults. OAuth app credentials left empty
        in the file are taken from ``SYNC_MY_EXTS_CLIENT_ID`` and
        ``SYNC_MY_EXTS_CLIENT_SECRET`` (a ``.env`` file in or above the
        working directory is honoured).

        Raises:
            ConfigFileError: When the file is not valid YAML or not a mapping
            LocalIOError: When the file exists but cannot be read
        """
        load_dotenv(find_dotenv(usecwd=True))

        data: Any = {}
        if Path(config_path).exists():
            try:
                with open(config_path) as f:
                    data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigFileError(f"Invalid YAML in {config_path}: {e}") from e
            except OSError as e:
                raise LocalIOError(f"Could not read {config_path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigFileError(f"{config_path} must contain a mapping of settings")

        config = cls.from_dict(data)
        if not config.client_id:
            config = config.with_updates(client_id=os.getenv("SYNC_MY_EXTS_CLIENT_ID", ""))
        if not config.client_secret:
            config = config.with_updates(client_secret=os.getenv("SYNC_MY_EXTS_CLIENT_SECRET", ""))
        return config

    def save(self, config_path: Path) -> None:
        """Save configuration to YAML file.

        Raises:
            LocalIOError: When the file or its directory cannot be written
        """
        config_path = Path(config_path)
        try:
            config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(config_path, "w") as f:
                yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)
        except OSError as e:
            raise LocalIOError(f"Could not write {config_path}: {e}") from e


@dataclass
class SyncResult:
    """Result of a sync operation on one remote file."""

    success: bool
    filepath: str
    operation: str  # "sync" or "import"
    message: str
    skipped: bool = False
