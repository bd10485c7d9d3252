"""Data models for sync system."""

from .config import (
    DEFAULT_FILE_NAME,
    RepositoryCoordinate,
    SyncConfig,
    SyncResult,
    default_config_path,
)
from .identity import Credential, GitHubUser
from .snapshot import ExtensionInfo, ExtensionSnapshot

__all__ = [
    "DEFAULT_FILE_NAME",
    "Credential",
    "ExtensionInfo",
    "ExtensionSnapshot",
    "GitHubUser",
    "RepositoryCoordinate",
    "SyncConfig",
    "SyncResult",
    "default_config_path",
]
