"""HTTP client for the Overcast web site.

Overcast has no public API. Logging in through the web form yields a session
cookie (`o`) which is enough to download the extended OPML export containing
every subscribed feed and the user's episode history.
"""

import logging
from typing import Optional

import requests

from .. import __version__
from ..errors import AuthenticationError, NetworkError

logger = logging.getLogger(__name__)


class OvercastClient:
    """Talks to overcast.fm on behalf of one user.

    Example:
        client = OvercastClient()
        token = client.authenticate("me@example.com", "secret")
        opml = client.fetch_export()

    A client built with `session_token=` skips the login entirely.
    """

    DEFAULT_BASE_URL = "https://overcast.fm"
    DEFAULT_TIMEOUT = 60
    DEFAULT_USER_AGENT = f"overcast-archive/{__version__}"

    SESSION_COOKIE = "o"

    # Text Overcast renders back on the login page when credentials are wrong
    LOGIN_FAILURE_MARKERS = (
        "Sorry, there was a problem looking up your Overcast account",
        "Incorrect password",
    )

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        user_agent: Optional[str] = None,
        session_token: Optional[str] = None,
    ):
        """Initialize the client.

        Args:
            base_url: Overcast site root, without trailing slash
            timeout: Request timeout in seconds
            user_agent: Custom user agent string
            session_token: Previously obtained value of the `o` cookie
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.user_agent = user_agent or self.DEFAULT_USER_AGENT
        self._session_token: Optional[str] = None

        self._session = self._create_session()

        if session_token:
            self.set_session_token(session_token)

    @classmethod
    def from_config(cls, config, session_token: Optional[str] = None) -> "OvercastClient":
        """Build a client from a `Config` instance."""
        return cls(
            base_url=config.OVERCAST_BASE_URL,
            timeout=config.OVERCAST_REQUEST_TIMEOUT,
            user_agent=config.OVERCAST_USER_AGENT,
            session_token=session_token,
        )

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        session.headers.update({"User-Agent": self.user_agent})
        return session

    @property
    def login_url(self) -> str:
        return f"{self.base_url}/login"

    @property
    def export_url(self) -> str:
        return f"{self.base_url}/account/export_opml/extended"

    @property
    def session_token(self) -> Optional[str]:
        return self._session_token

    def set_session_token(self, session_token: str) -> None:
        """Attach an existing session token to subsequent requests."""
        self._session.cookies.update({self.SESSION_COOKIE: session_token})
        self._session_token = session_token

    def authenticate(self, username: str, password: str) -> str:
        """Log in with username and password.

        The session cookie is kept on the client so `fetch_export` can be
        called right after.

        Args:
            username: Overcast account e-mail
            password: Overcast account password

        Returns:
            The session token issued by Overcast

        Raises:
            AuthenticationError: If Overcast rejects the credentials
            NetworkError: If Overcast cannot be reached
        """
        logger.debug(f"Logging in to {self.login_url} as {username}")
        try:
            response = self._session.post(
                self.login_url,
                data={"email": username, "password": password},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise NetworkError(f"Unable to reach Overcast login page: {e}") from e

        if any(marker in response.text for marker in self.LOGIN_FAILURE_MARKERS):
            raise AuthenticationError(
                "Unable to authenticate with Overcast: the username or password is incorrect"
            )

        if response.status_code in (401, 403):
            raise AuthenticationError(
                f"Unable to authenticate with Overcast (HTTP {response.status_code})"
            )
        if response.status_code >= 400:
            raise NetworkError(f"Overcast login failed with HTTP {response.status_code}")

        token = self._session.cookies.get(self.SESSION_COOKIE)
        if not token:
            raise AuthenticationError(
                "Unable to authenticate with Overcast: no session cookie was issued"
            )

        self._session_token = token
        logger.info("Authenticated with Overcast")
        return token

    def fetch_export(self) -> str:
        """Download the extended OPML export for the logged-in user.

        Redirects are not followed: Overcast answers an expired or invalid
        session with a redirect to the login page, which is reported as an
        authentication failure instead of being parsed as OPML.

        Returns:
            Raw OPML document

        Raises:
            AuthenticationError: If the client has no session or Overcast rejects it
            NetworkError: On timeouts, connection failures and other non-2xx responses
        """
        if not self._session_token:
            raise AuthenticationError("Not authenticated with Overcast")

        try:
            response = self._session.get(
                self.export_url,
                timeout=self.timeout,
                allow_redirects=False,
            )
        except requests.Timeout as e:
            raise NetworkError(f"Timed out fetching Overcast export after {self.timeout}s") from e
        except requests.RequestException as e:
            raise NetworkError(f"Unable to fetch Overcast export: {e}") from e

        status = response.status_code
        if 300 <= status < 400 and "login" in response.headers.get("Location", ""):
            raise AuthenticationError(
                "Overcast rejected the saved session. Run the `auth` subcommand again."
            )
        if status in (401, 403):
            raise AuthenticationError(
                f"Overcast rejected the saved session (HTTP {status}). "
                "Run the `auth` subcommand again."
            )
        if not 200 <= status < 300:
            raise NetworkError(f"Fetching Overcast export failed with HTTP {status}")

        logger.debug(f"Fetched {len(response.text)} bytes from {self.export_url}")
        return response.text

    def close(self) -> None:
        self._session.close()
