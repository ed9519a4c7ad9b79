"""Overcast access.

Provides:
- Credentials and the auth file
- HTTP client for login and the OPML export
- Parser for the extended OPML export
"""

from .client import OvercastClient
from .credentials import Credentials, load_credentials, save_credentials
from .opml_parser import OvercastExport, OvercastOPMLParser, ParsedEpisode, ParsedFeed

__all__ = [
    "OvercastClient",
    "Credentials",
    "load_credentials",
    "save_credentials",
    "OvercastOPMLParser",
    "OvercastExport",
    "ParsedFeed",
    "ParsedEpisode",
]
