"""Create-or-update and fetch of single files in the sync repository."""

import base64
import binascii
import logging
from datetime import datetime, timezone

from ..errors import GitHubAPIError, GitHubNotFoundError, RemoteNotFoundError
from ..models.config import RepositoryCoordinate
from .client import GitHubClient

logger = logging.getLogger(__name__)


class RemoteFileSync:
    """Reconciles local content with one file per path in a GitHub repository.

    Updates are guarded only by reading the file's current sha right before
    writing. If someone else changes the file between the read and the
    write, GitHub rejects the stale sha and the error is raised as-is; there
    is no automatic retry.
    """

    def __init__(self, client: GitHubClient, repo: RepositoryCoordinate) -> None:
        self.client = client
        self.repo = repo

    @staticmethod
    def _timestamp() -> str:
        return datetime.now(timezone.utc).isoformat()

    def upsert(self, content: bytes, path: str) -> str:
        """Write ``content`` to ``path``, creating the file if needed.

        Returns:
            The sha GitHub assigned to the new version ("" if not reported)

        Raises:
            GitHubAPIError: For anything but "file not found" on the read, and
                for any failed write (including a stale sha)
        """
        encoded = base64.b64encode(content).decode("ascii")

        try:
            existing = self.client.get_contents(self.repo, path)
        except GitHubNotFoundError:
            existing = None

        if existing is None:
            logger.debug("Creating %s in %s", path, self.repo)
            response = self.client.put_contents(
                self.repo,
                path,
                message=f"Create {path} - {self._timestamp()}",
                content_b64=encoded,
            )
        else:
            sha = existing.get("sha")
            if not sha:
                raise GitHubAPIError(f"{path} exists but GitHub returned no sha for it")
            logger.debug("Updating %s in %s (sha %s)", path, self.repo, sha)
            response = self.client.put_contents(
                self.repo,
                path,
                message=f"Update {path} - {self._timestamp()}",
                content_b64=encoded,
                sha=sha,
            )

        return (response.get("content") or {}).get("sha", "")

    def fetch(self, path: str) -> bytes:
        """Read the file at ``path``.

        Raises:
            RemoteNotFoundError: When the file does not exist
            GitHubAPIError: On any other failure
        """
        try:
            data = self.client.get_contents(self.repo, path)
        except GitHubNotFoundError as e:
            raise RemoteNotFoundError(path) from e

        content = data.get("content")
        if content is None:
            raise GitHubAPIError(f"{path} is not a file")

        try:
            # GitHub wraps the base64 payload at 60 columns
            return base64.b64decode(content)
        except (binascii.Error, ValueError) as e:
            raise GitHubAPIError(f"Could not decode {path}: {e}") from e
