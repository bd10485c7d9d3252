"""Local editor state: installed extensions and settings files."""

import json
import logging
import os
import subprocess
import sys
from pathlib import Path
from typing import Any

from ..errors import ExtensionInstallError
from ..models.snapshot import ExtensionInfo

logger = logging.getLogger(__name__)


def user_settings_path() -> Path:
    """Path of the user-level settings.json for the current platform."""
    if sys.platform == "win32":
        appdata = os.getenv("APPDATA") or str(Path.home() / "AppData" / "Roaming")
        base = Path(appdata)
    elif sys.platform == "darwin":
        base = Path.home() / "Library" / "Application Support"
    else:
        base = Path(os.getenv("XDG_CONFIG_HOME") or Path.home() / ".config")
    return base / "Code" / "User" / "settings.json"


def remote_settings_path() -> Path | None:
    """Path of the remote server's machine settings, if running remotely."""
    remote_env = os.getenv("VSCODE_REMOTE_ENV")
    if remote_env:
        return Path(remote_env) / "data" / "Machine" / "settings.json"

    ssh_path = Path.home() / ".vscode-server" / "data" / "Machine" / "settings.json"
    if ssh_path.exists():
        return ssh_path
    return None


class VSCodeEditor:
    """Reads installed extensions and installs new ones through the ``code`` CLI."""

    OBSOLETE_MARKER = ".obsolete"

    def __init__(
        self,
        extensions_dir: Path | None = None,
        code_command: str = "code",
        settings_path: Path | None = None,
        remote_path: Path | None = None,
    ) -> None:
        """Initialize editor access.

        Args:
            extensions_dir: User extensions folder (default ~/.vscode/extensions)
            code_command: Editor CLI executable
            settings_path: Override for the user settings file
            remote_path: Override for the remote settings file
        """
        self.extensions_dir = Path(extensions_dir or Path.home() / ".vscode" / "extensions")
        self.code_command = code_command
        self._settings_path = settings_path
        self._remote_path = remote_path

    # -------------------------------------------------------------------------
    # Extensions
    # -------------------------------------------------------------------------

    def _obsolete_folders(self) -> set[str]:
        marker = self.extensions_dir / self.OBSOLETE_MARKER
        if not marker.exists():
            return set()
        try:
            data = json.loads(marker.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return set()
        if not isinstance(data, dict):
            return set()
        return {name for name, flagged in data.items() if flagged}

    @staticmethod
    def _localized(value: str, folder: Path) -> str:
        """Resolve a ``%key%`` placeholder from package.nls.json."""
        if not (value.startswith("%") and value.endswith("%") and len(value) > 2):
            return value
        nls_path = folder / "package.nls.json"
        try:
            strings = json.loads(nls_path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return value
        if not isinstance(strings, dict):
            return value
        resolved = strings.get(value[1:-1], value)
        if isinstance(resolved, dict):
            resolved = resolved.get("message", value)
        return str(resolved)

    def _read_manifest(self, folder: Path) -> dict[str, Any] | None:
        try:
            data = json.loads((folder / "package.json").read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.debug("Skipping %s: unreadable package.json", folder.name)
            return None
        return data if isinstance(data, dict) else None

    def installed_extensions(self) -> list[ExtensionInfo]:
        """Installed, non-built-in extensions in folder order."""
        if not self.extensions_dir.is_dir():
            return []

        obsolete = self._obsolete_folders()
        extensions: list[ExtensionInfo] = []

        for folder in sorted(self.extensions_dir.iterdir()):
            if not folder.is_dir() or folder.name.startswith(".") or folder.name in obsolete:
                continue
            manifest = self._read_manifest(folder)
            if manifest is None or manifest.get("isBuiltin"):
                continue

            publisher = manifest.get("publisher", "")
            name = manifest.get("name", "")
            if not publisher or not name:
                continue

            description = manifest.get("description")
            extensions.append(ExtensionInfo(
                id=f"{publisher}.{name}",
                name=self._localized(str(manifest.get("displayName") or name), folder),
                version=str(manifest.get("version", "")),
                description=self._localized(str(description), folder) if description else None,
            ))

        return extensions

    def version(self) -> str:
        """Editor version, or "unknown" when the CLI is unavailable."""
        try:
            result = subprocess.run(
                [self.code_command, "--version"],
                capture_output=True,
                text=True,
                check=True,
            )
        except (OSError, subprocess.CalledProcessError) as e:
            logger.debug("Could not query editor version: %s", e)
            return "unknown"
        lines = result.stdout.strip().splitlines()
        return lines[0] if lines else "unknown"

    def install_extension(self, extension_id: str) -> None:
        """Install one extension.

        Raises:
            ExtensionInstallError: If the CLI is missing or reports failure
        """
        try:
            subprocess.run(
                [self.code_command, "--install-extension", extension_id],
                capture_output=True,
                text=True,
                check=True,
            )
        except OSError as e:
            raise ExtensionInstallError(f"Could not run {self.code_command}: {e}") from e
        except subprocess.CalledProcessError as e:
            detail = (e.stderr or e.stdout or "").strip() or f"exit code {e.returncode}"
            raise ExtensionInstallError(detail) from e

    # -------------------------------------------------------------------------
    # Settings files
    # -------------------------------------------------------------------------

    def settings_path(self) -> Path:
        return self._settings_path or user_settings_path()

    def remote_settings_path(self) -> Path | None:
        return self._remote_path or remote_settings_path()
