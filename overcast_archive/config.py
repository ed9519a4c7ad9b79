import logging
import os

from dotenv import load_dotenv

from . import __version__


class Config:
    def __init__(self, env_file=None):
        """
        Initialize configuration by loading environment variables and setting default attributes.

        Loads environment variables from the provided .env file path when `env_file` is given; otherwise loads from the default environment. After loading, sets the Overcast endpoint, auth file location, HTTP settings, database echo flag and log level using environment values with sensible defaults.

        Parameters:
            env_file (str | None): Optional path to a .env file to load environment variables from. If omitted, the default environment or default .env discovery is used.

        Raises:
            ValueError: If a configured value is out of range or malformed.
        """
        if env_file:
            load_dotenv(env_file)
        else:
            load_dotenv()

        # Overcast endpoints
        base_url = os.getenv("OVERCAST_BASE_URL", "https://overcast.fm")
        if not base_url.lower().startswith(("http://", "https://")):
            raise ValueError(
                f"OVERCAST_BASE_URL must start with http:// or https://, got: {base_url}"
            )
        self.OVERCAST_BASE_URL = base_url.rstrip("/")

        # Where the `auth` command stores the session token
        self.OVERCAST_AUTH_FILE = os.getenv("OVERCAST_AUTH_FILE", "auth.json")

        # HTTP settings
        self.OVERCAST_REQUEST_TIMEOUT = float(os.getenv("OVERCAST_REQUEST_TIMEOUT", "60"))
        if self.OVERCAST_REQUEST_TIMEOUT <= 0:
            raise ValueError(
                f"OVERCAST_REQUEST_TIMEOUT must be positive, got {self.OVERCAST_REQUEST_TIMEOUT}"
            )
        self.OVERCAST_USER_AGENT = os.getenv(
            "OVERCAST_USER_AGENT", f"overcast-archive/{__version__}"
        )

        # Database configuration
        self.DB_ECHO = os.getenv("DB_ECHO", "false").lower() == "true"

        # Logging
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
        if not isinstance(logging.getLevelName(self.LOG_LEVEL), int):
            raise ValueError(f"LOG_LEVEL is not a valid logging level: {self.LOG_LEVEL}")

    def export_url(self):
        '''URL of the extended OPML export (feeds, episodes and progress).'''
        return f"{self.OVERCAST_BASE_URL}/account/export_opml/extended"

    def login_url(self):
        '''URL of the Overcast login form.'''
        return f"{self.OVERCAST_BASE_URL}/login"
