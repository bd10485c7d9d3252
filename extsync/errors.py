"""Error taxonomy shared by every sync component.

Every failure that reaches the command boundary is a ``SyncError`` carrying
an ``ErrorKind``, so callers match on the kind instead of inspecting
transport status codes.
"""

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Kinds of sync failures."""

    CONFIGURATION_MISSING = "configuration_missing"
    AUTHENTICATION_REQUIRED = "authentication_required"
    REMOTE_NOT_FOUND = "remote_not_found"
    REMOTE_PROTOCOL = "remote_protocol"
    LOCAL_IO = "local_io"
    INVALID_INPUT = "invalid_input"
    PARSE = "parse"


class SyncError(Exception):
    """Base class for all sync-related errors."""

    kind: ErrorKind = ErrorKind.REMOTE_PROTOCOL


class ConfigurationMissingError(SyncError):
    """A required setting was not provided (and the user declined to enter it)."""

    kind = ErrorKind.CONFIGURATION_MISSING


class AuthenticationRequiredError(SyncError):
    """No stored GitHub credential."""

    kind = ErrorKind.AUTHENTICATION_REQUIRED

    def __init__(self, message: str = "Not logged in to GitHub. Run 'sync-my-exts login' first.") -> None:
        super().__init__(message)


class GitHubAPIError(SyncError):
    """Non-success response (or transport failure) from GitHub."""

    kind = ErrorKind.REMOTE_PROTOCOL

    def __init__(self, message: str, status_code: int | None = None, response: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.response = response


RemoteProtocolError = GitHubAPIError


class GitHubNotFoundError(GitHubAPIError):
    """GitHub answered 404 for the requested resource."""

    kind = ErrorKind.REMOTE_NOT_FOUND


class RemoteNotFoundError(SyncError):
    """A file that was asked for does not exist in the sync repository."""

    kind = ErrorKind.REMOTE_NOT_FOUND

    def __init__(self, path: str) -> None:
        super().__init__(f"{path} was not found in the repository. Run a sync first.")
        self.path = path


class LocalIOError(SyncError):
    """A local settings file is missing or cannot be written."""

    kind = ErrorKind.LOCAL_IO


class RepositoryFormatError(SyncError, ValueError):
    """Repository name is not in ``owner/repo`` form."""

    kind = ErrorKind.INVALID_INPUT


class ConfigFileError(SyncError, ValueError):
    """The configuration file is not a YAML mapping."""

    kind = ErrorKind.PARSE


class SnapshotParseError(SyncError, ValueError):
    """Remote extension snapshot is not valid JSON of the expected shape."""

    kind = ErrorKind.PARSE


class ExtensionInstallError(SyncError):
    """The editor refused to install an extension."""

    kind = ErrorKind.LOCAL_IO
