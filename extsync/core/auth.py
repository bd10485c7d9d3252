"""GitHub OAuth authorization-code login.

The login is a linear state machine. ``next_state`` is the pure transition
function; ``OAuthFlow`` runs one handler per state, each performing that
step's side effect and reporting whether it succeeded. Any failed step moves
the flow to ``ABORTED``; there are no retries within one login.

Note: the ``state`` parameter sent to the authorize endpoint is a fresh
nonce, but it is never compared with the value GitHub echoes back because
the user pastes only the code. It gives no CSRF protection today.
"""

import logging
import secrets
import string
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from urllib.parse import urlencode

import keyring.errors
import requests

from ..errors import GitHubAPIError
from ..models.config import SyncConfig
from ..models.identity import GitHubUser
from .client import GitHubClient
from .credentials import CredentialStore
from .prompts import ConsolePrompter

logger = logging.getLogger(__name__)

REDIRECT_URI = "http://localhost:3000/callback"
SCOPES = ("repo", "user")


class LoginState(str, Enum):
    """Steps of the login flow."""

    START = "start"
    APP_CONFIGURED = "app_configured"
    AUTHORIZE_URL_BUILT = "authorize_url_built"
    BROWSER_OPENED = "browser_opened"
    CODE_ENTERED = "code_entered"
    TOKEN_EXCHANGED = "token_exchanged"
    IDENTITY_FETCHED = "identity_fetched"
    SUCCEEDED = "succeeded"
    ABORTED = "aborted"


_FORWARD = {
    LoginState.START: LoginState.APP_CONFIGURED,
    LoginState.APP_CONFIGURED: LoginState.AUTHORIZE_URL_BUILT,
    LoginState.AUTHORIZE_URL_BUILT: LoginState.BROWSER_OPENED,
    LoginState.BROWSER_OPENED: LoginState.CODE_ENTERED,
    LoginState.CODE_ENTERED: LoginState.TOKEN_EXCHANGED,
    LoginState.TOKEN_EXCHANGED: LoginState.IDENTITY_FETCHED,
    LoginState.IDENTITY_FETCHED: LoginState.SUCCEEDED,
}

TERMINAL_STATES = frozenset({LoginState.SUCCEEDED, LoginState.ABORTED})


def next_state(state: LoginState, ok: bool) -> LoginState:
    """Transition after the step leaving ``state`` succeeded or failed."""
    if state in TERMINAL_STATES:
        raise ValueError(f"Login already finished in state {state.value}")
    return _FORWARD[state] if ok else LoginState.ABORTED


def generate_state_token(length: int = 25) -> str:
    """Generate a random anti-CSRF nonce."""
    chars = string.ascii_lowercase + string.digits
    return "".join(secrets.choice(chars) for _ in range(length))


def build_authorize_url(oauth_url: str, client_id: str, state_token: str) -> str:
    """Authorization page URL for the given OAuth app."""
    query = urlencode({
        "response_type": "code",
        "client_id": client_id,
        "redirect_uri": REDIRECT_URI,
        "scope": " ".join(SCOPES),
        "state": state_token,
    })
    return f"{oauth_url.rstrip('/')}/login/oauth/authorize?{query}"


@dataclass
class LoginSession:
    """Data accumulated while the flow runs."""

    config: SyncConfig
    state_token: str = ""
    authorize_url: str = ""
    code: str = ""
    access_token: str = ""
    user: GitHubUser | None = None
    error: str | None = None
    history: list[LoginState] = field(default_factory=list)


class OAuthFlow:
    """Drives the authorization-code exchange and stores the result."""

    def __init__(
        self,
        config: SyncConfig,
        config_path: Path,
        credentials: CredentialStore,
        prompter: ConsolePrompter,
        session: requests.Session | None = None,
    ) -> None:
        """Initialize the flow.

        Args:
            config: Configuration snapshot for this command
            config_path: Where entered client id/secret are persisted
            credentials: Store receiving the token on success
            prompter: User interaction (input boxes, browser, notifications)
            session: HTTP session for token exchange and identity lookup
        """
        self.config = config
        self.config_path = Path(config_path)
        self.credentials = credentials
        self.prompter = prompter
        self.session = session or requests.Session()

        self._handlers: dict[LoginState, Callable[[LoginSession], bool]] = {
            LoginState.START: self._configure_app,
            LoginState.APP_CONFIGURED: self._build_url,
            LoginState.AUTHORIZE_URL_BUILT: self._open_browser,
            LoginState.BROWSER_OPENED: self._read_code,
            LoginState.CODE_ENTERED: self._exchange_code,
            LoginState.TOKEN_EXCHANGED: self._fetch_identity,
            LoginState.IDENTITY_FETCHED: self._persist,
        }

    def run(self) -> LoginSession:
        """Run the flow to a terminal state."""
        login = LoginSession(config=self.config)
        state = LoginState.START
        login.history.append(state)

        while state not in TERMINAL_STATES:
            ok = self._handlers[state](login)
            state = next_state(state, ok)
            login.history.append(state)
            logger.debug("Login state -> %s", state.value)

        return login

    def login(self) -> bool:
        """Log in to GitHub, notifying the user of the outcome."""
        login = self.run()

        if login.history[-1] is LoginState.SUCCEEDED and login.user is not None:
            self.prompter.info(f"Logged in to GitHub as {login.user.login}")
            return True

        if login.error:
            self.prompter.error(f"GitHub login failed: {login.error}")
        return False

    def logout(self) -> None:
        """Forget the stored credential. Succeeds even when not logged in."""
        self.credentials.clear()
        self.prompter.info("Logged out of GitHub")

    # -------------------------------------------------------------------------
    # Step handlers
    # -------------------------------------------------------------------------

    def _configure_app(self, login: LoginSession) -> bool:
        """Make sure an OAuth app client id and secret are configured."""
        if login.config.has_oauth_app:
            return True

        client_id = self.prompter.ask("GitHub OAuth App Client ID", placeholder="Client ID")
        if not client_id:
            return False

        client_secret = self.prompter.ask(
            "GitHub OAuth App Client Secret", placeholder="Client Secret", password=True
        )
        if not client_secret:
            return False

        login.config = login.config.with_updates(client_id=client_id, client_secret=client_secret)
        login.config.save(self.config_path)
        self.config = login.config
        return True

    def _build_url(self, login: LoginSession) -> bool:
        login.state_token = generate_state_token()
        login.authorize_url = build_authorize_url(
            login.config.oauth_url, login.config.client_id, login.state_token
        )
        return True

    def _open_browser(self, login: LoginSession) -> bool:
        self.prompter.open_url(login.authorize_url)
        return True

    def _read_code(self, login: LoginSession) -> bool:
        code = self.prompter.ask(
            "After authorizing, paste the code from the redirected page",
            placeholder="Authorization code",
        )
        if not code:
            login.error = "No authorization code was entered"
            return False
        login.code = code
        return True

    def _exchange_code(self, login: LoginSession) -> bool:
        """Trade the authorization code for an access token."""
        url = f"{login.config.oauth_url.rstrip('/')}/login/oauth/access_token"
        data = {
            "grant_type": "authorization_code",
            "code": login.code,
            "redirect_uri": REDIRECT_URI,
            "client_id": login.config.client_id,
            "client_secret": login.config.client_secret,
        }

        try:
            response = self.session.request(
                method="POST",
                url=url,
                headers={"Accept": "application/json"},
                data=data,
                timeout=GitHubClient.TIMEOUT,
            )
        except requests.RequestException as e:
            login.error = f"Token request failed: {e}"
            return False

        if response.status_code >= 400:
            login.error = f"Token endpoint error {response.status_code}: {response.text[:500]}"
            return False

        try:
            payload = response.json()
        except ValueError:
            login.error = "Token endpoint returned an unreadable response"
            return False

        # GitHub reports a bad code with 200 and an error field
        if payload.get("error"):
            login.error = payload.get("error_description") or payload["error"]
            return False

        token = payload.get("access_token")
        if not token:
            login.error = "Token endpoint returned no access token"
            return False

        login.access_token = token
        return True

    def _fetch_identity(self, login: LoginSession) -> bool:
        client = GitHubClient(login.access_token, login.config.api_url, self.session)
        try:
            login.user = client.get_authenticated_user()
        except GitHubAPIError as e:
            login.error = f"Could not fetch GitHub user: {e}"
            return False
        return True

    def _persist(self, login: LoginSession) -> bool:
        if login.user is None:
            return False
        try:
            self.credentials.save(login.access_token, login.user)
        except keyring.errors.KeyringError as e:
            login.error = f"Could not store the token: {e}"
            return False
        return True
