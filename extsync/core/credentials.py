"""Keyring-backed storage for the GitHub access token and identity."""

import json
import logging
from typing import Any, Callable

import keyring
import keyring.errors
import requests

from ..errors import GitHubAPIError
from ..models.config import DEFAULT_API_URL
from ..models.identity import Credential, GitHubUser
from .client import GitHubClient

logger = logging.getLogger(__name__)

SERVICE_NAME = "sync-my-exts"
TOKEN_KEY = "github-token"
USER_KEY = "github-user"


class CredentialStore:
    """Holds the current access token and cached identity.

    The backend is anything with the ``keyring`` module's
    ``get_password``/``set_password``/``delete_password`` functions; the
    module itself is used by default.
    """

    def __init__(
        self,
        backend: Any = None,
        service: str = SERVICE_NAME,
        client_factory: Callable[[str], GitHubClient] | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            backend: Secret storage (defaults to the OS keyring)
            service: Keyring service name the entries live under
            client_factory: Builds a GitHubClient for a token (used by is_valid)
        """
        self.backend = backend if backend is not None else keyring
        self.service = service
        self.client_factory = client_factory or (lambda token: GitHubClient(token, DEFAULT_API_URL))

    def get_token(self) -> str | None:
        """Stored access token, if any."""
        try:
            return self.backend.get_password(self.service, TOKEN_KEY) or None
        except keyring.errors.KeyringError as e:
            logger.debug("Keyring read failed: %s", e)
            return None

    def get_user(self) -> GitHubUser | None:
        """Cached identity, if any."""
        try:
            raw = self.backend.get_password(self.service, USER_KEY)
        except keyring.errors.KeyringError as e:
            logger.debug("Keyring read failed: %s", e)
            return None
        if not raw:
            return None
        try:
            return GitHubUser.from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError):
            logger.debug("Ignoring unreadable cached identity")
            return None

    def get(self) -> Credential | None:
        """Return the stored credential without touching the network."""
        token = self.get_token()
        if token is None:
            return None
        user = self.get_user()
        return Credential(
            access_token=token,
            owner_login=user.login if user else "",
            owner_id=user.id if user else 0,
        )

    def save(self, token: str, user: GitHubUser) -> None:
        """Persist the token and the identity it belongs to.

        Either both entries are written or neither is: if the identity
        cannot be stored, the token written just before is removed again.

        Raises:
            keyring.errors.KeyringError: When the backend refuses a write
        """
        self.backend.set_password(self.service, TOKEN_KEY, token)
        try:
            self.backend.set_password(self.service, USER_KEY, json.dumps(user.to_dict()))
        except keyring.errors.KeyringError:
            try:
                self.backend.delete_password(self.service, TOKEN_KEY)
            except keyring.errors.PasswordDeleteError:
                logger.debug("No %s entry to roll back", TOKEN_KEY)
            raise
        logger.debug("Stored credential for %s", user.login)

    def clear(self) -> None:
        """Delete both entries. Absent entries are not an error."""
        for key in (TOKEN_KEY, USER_KEY):
            try:
                self.backend.delete_password(self.service, key)
            except keyring.errors.PasswordDeleteError:
                logger.debug("No %s entry to delete", key)

    def is_valid(self) -> bool:
        """Check the stored token against GitHub with one identity lookup.

        Never raises: a missing token, a rejected token and a network
        failure all yield False.
        """
        token = self.get_token()
        if token is None:
            return False
        try:
            self.client_factory(token).get_authenticated_user()
        except (GitHubAPIError, requests.RequestException) as e:
            logger.debug("Stored token failed validation: %s", e)
            return False
        return True
