"""
Pytest configuration and fixtures for overcast-archive tests.

Environment variables read by Config are cleared so tests behave the same
regardless of the developer's shell or .env file.
"""

import os
from pathlib import Path

import pytest

from overcast_archive.db.factory import create_repository

FIXTURES_DIR = Path(__file__).parent / "fixtures"

for _name in (
    "OVERCAST_BASE_URL",
    "OVERCAST_AUTH_FILE",
    "OVERCAST_REQUEST_TIMEOUT",
    "OVERCAST_USER_AGENT",
    "OVERCAST_ARCHIVE_DB",
    "DB_ECHO",
    "LOG_LEVEL",
):
    os.environ.pop(_name, None)


@pytest.fixture
def sample_opml():
    """
    Return the extended OPML export fixture: one subscribed feed (overcastId 1001) with two episodes (2001 and 2002).
    """
    return (FIXTURES_DIR / "overcast_export.opml").read_text(encoding="utf-8")


@pytest.fixture
def repository(tmp_path):
    """
    Create a temporary SQLite-backed repository for tests.

    Yields a repository using a SQLite file under the temporary path and closes it on teardown.
    """
    repo = create_repository(tmp_path / "archive.db")
    yield repo
    repo.close()
