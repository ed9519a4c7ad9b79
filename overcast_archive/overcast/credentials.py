"""Overcast credentials and the JSON auth file that caches them."""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from ..errors import CredentialsError

logger = logging.getLogger(__name__)

USERNAME_KEY = "overcast_username"
PASSWORD_KEY = "overcast_password"  # written by older versions; read only
SESSION_TOKEN_KEY = "overcast_session_token"


@dataclass
class Credentials:
    """What is needed to talk to Overcast as a given user.

    Either a cached `session_token` (the value of Overcast's `o` cookie) or a
    `username`/`password` pair that can be exchanged for one.
    """

    username: Optional[str] = None
    password: Optional[str] = None
    session_token: Optional[str] = None

    @property
    def has_session_token(self) -> bool:
        return bool(self.session_token)

    @property
    def has_login(self) -> bool:
        return bool(self.username and self.password)

    def __repr__(self) -> str:
        return (
            f"Credentials(username={self.username!r}, "
            f"password={'***' if self.password else None}, "
            f"session_token={'***' if self.session_token else None})"
        )


def load_credentials(auth_file: Union[str, Path]) -> Optional[Credentials]:
    """
    Read cached credentials from the auth file.

    Parameters:
        auth_file (str | Path): Path of the JSON auth file.

    Returns:
        Credentials | None: The stored credentials, or `None` if the file does not exist.

    Raises:
        CredentialsError: If the file exists but is unreadable or not a JSON object.
    """
    path = Path(auth_file)
    if not path.exists():
        logger.debug(f"No auth file at {path}")
        return None

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise CredentialsError(f"Unable to read auth file {path}: {e}") from e

    if not isinstance(data, dict):
        raise CredentialsError(f"Auth file {path} does not contain a JSON object")

    return Credentials(
        username=data.get(USERNAME_KEY),
        password=data.get(PASSWORD_KEY),
        session_token=data.get(SESSION_TOKEN_KEY),
    )


def save_credentials(auth_file: Union[str, Path], credentials: Credentials) -> None:
    """
    Write the username and session token to the auth file.

    Other keys already present in the file are kept; a stale password from an
    older version of the file is dropped since the token replaces it.

    Raises:
        CredentialsError: If the file cannot be written.
    """
    path = Path(auth_file)
    data = {}
    if path.exists():
        try:
            existing = json.loads(path.read_text(encoding="utf-8"))
            if isinstance(existing, dict):
                data = existing
        except json.JSONDecodeError:
            logger.warning(f"Replacing unreadable auth file {path}")
        except OSError as e:
            raise CredentialsError(f"Unable to read auth file {path}: {e}") from e

    data.pop(PASSWORD_KEY, None)
    data[USERNAME_KEY] = credentials.username
    data[SESSION_TOKEN_KEY] = credentials.session_token

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data, indent=4) + "\n", encoding="utf-8")
    except OSError as e:
        raise CredentialsError(f"Unable to write auth file {path}: {e}") from e

    logger.info(f"Saved Overcast session to {path}")
