"""Exceptions raised by overcast-archive.

Every failure that should stop a run is one of these; the CLI turns them
into an error message and a non-zero exit code.
"""


class OvercastArchiveError(Exception):
    """Base exception for all overcast-archive errors."""

    pass


class AuthenticationError(OvercastArchiveError):
    """Overcast rejected the credentials or the cached session token."""

    pass


class CredentialsError(OvercastArchiveError):
    """No usable credentials, or the auth file could not be read or written."""

    pass


class NetworkError(OvercastArchiveError):
    """Connection failure, timeout or non-2xx response."""

    pass


class OvercastParseError(OvercastArchiveError):
    """The OPML export could not be parsed."""

    pass


class StorageError(OvercastArchiveError):
    """Database errors: schema mismatch, disk or permission problems."""

    pass
