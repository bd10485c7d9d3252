"""Core sync functionality."""

from .auth import LoginState, OAuthFlow, next_state
from .client import GitHubClient
from .credentials import CredentialStore
from .editor import VSCodeEditor
from .operations import InstallReport, SyncOperations
from .prompts import ConsolePrompter
from .remote import RemoteFileSync

__all__ = [
    "ConsolePrompter",
    "CredentialStore",
    "GitHubClient",
    "InstallReport",
    "LoginState",
    "OAuthFlow",
    "RemoteFileSync",
    "SyncOperations",
    "VSCodeEditor",
    "next_state",
]
