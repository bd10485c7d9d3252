"""HTTP client wrapper for the GitHub REST API."""

import logging
from typing import Any
from urllib.parse import quote

import requests

from ..errors import GitHubAPIError, GitHubNotFoundError
from ..models.config import DEFAULT_API_URL, RepositoryCoordinate
from ..models.identity import GitHubUser

logger = logging.getLogger(__name__)


class GitHubClient:
    """HTTP client for GitHub REST API v3 with token authentication."""

    ACCEPT = "application/vnd.github.v3+json"
    TIMEOUT = 30

    def __init__(
        self,
        token: str,
        base_url: str = DEFAULT_API_URL,
        session: requests.Session | None = None,
    ) -> None:
        """Initialize client.

        Args:
            token: OAuth access token
            base_url: API root (GitHub Enterprise installs differ)
            session: Shared requests session (created if not provided)
        """
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"token {self.token}",
            "Accept": self.ACCEPT,
            "Content-Type": "application/json",
        }

    def _request(
        self,
        method: str,
        path: str,
        json_data: dict[str, Any] | None = None,
    ) -> Any:
        """Make an authenticated request to the GitHub API.

        Args:
            method: HTTP method
            path: API path (without base URL)
            json_data: Optional JSON body data

        Returns:
            Parsed JSON response (an object, or a list for directory listings)

        Raises:
            GitHubNotFoundError: On 404
            GitHubAPIError: On any other error status or transport failure
        """
        url = f"{self.base_url}{path}"
        logger.debug("%s %s", method, url)

        try:
            response = self.session.request(
                method=method,
                url=url,
                headers=self._headers(),
                json=json_data if method in ("POST", "PUT", "PATCH") else None,
                timeout=self.TIMEOUT,
            )
        except requests.RequestException as e:
            raise GitHubAPIError(f"Request failed: {e}") from e

        if response.status_code == 404:
            raise GitHubNotFoundError(f"API error 404: {path} not found", 404, response)
        if response.status_code >= 400:
            error_msg = f"API error {response.status_code}: {response.text[:500]}"
            raise GitHubAPIError(error_msg, response.status_code, response)

        if not response.content:
            return {}

        try:
            return response.json()
        except ValueError as e:
            raise GitHubAPIError(f"Invalid JSON from {path}: {e}", response.status_code, response) from e

    def get(self, path: str) -> Any:
        """Make a GET request."""
        return self._request("GET", path)

    def put(self, path: str, json_data: dict[str, Any]) -> Any:
        """Make a PUT request."""
        return self._request("PUT", path, json_data)

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------

    def get_authenticated_user(self) -> GitHubUser:
        """Fetch the identity the token belongs to."""
        data = self.get("/user")
        try:
            return GitHubUser.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            raise GitHubAPIError(f"Unexpected /user response: {e}") from e

    # -------------------------------------------------------------------------
    # Repository contents
    # -------------------------------------------------------------------------

    @staticmethod
    def contents_path(repo: RepositoryCoordinate, path: str) -> str:
        return (
            f"/repos/{quote(repo.owner, safe='')}/{quote(repo.repo_name, safe='')}"
            f"/contents/{quote(path.lstrip('/'), safe='/')}"
        )

    def get_contents(self, repo: RepositoryCoordinate, path: str) -> dict[str, Any]:
        """Get a file's metadata and base64 content.

        Returns:
            Dictionary with at least 'content' and 'sha'

        Raises:
            GitHubAPIError: When ``path`` is a directory rather than a file
        """
        data = self.get(self.contents_path(repo, path))
        if not isinstance(data, dict):
            raise GitHubAPIError(f"{path} is not a file")
        return data

    def put_contents(
        self,
        repo: RepositoryCoordinate,
        path: str,
        message: str,
        content_b64: str,
        sha: str | None = None,
    ) -> dict[str, Any]:
        """Create (no sha) or update (sha of the version being replaced) a file.

        Returns:
            Response with the new 'content' metadata and 'commit'
        """
        body: dict[str, Any] = {"message": message, "content": content_b64}
        if sha is not None:
            body["sha"] = sha
        data = self.put(self.contents_path(repo, path), body)
        if not isinstance(data, dict):
            raise GitHubAPIError(f"Unexpected response writing {path}")
        return data
