"""Database factory for creating repository instances.

The CLI takes a plain file path for the archive; this module turns it into a
SQLAlchemy URL and builds the repository.
"""

import logging
from pathlib import Path
from typing import Union

from .repository import ArchiveRepositoryInterface, SQLAlchemyArchiveRepository

logger = logging.getLogger(__name__)


def sqlite_url_for_path(db_path: Union[str, Path]) -> str:
    """
    Build a SQLAlchemy SQLite URL for a database file path.

    Values that already look like a database URL (contain "://") are returned unchanged, so callers can pass either a path or a URL.

    Parameters:
        db_path (str | Path): Path of the SQLite file, relative or absolute.

    Returns:
        str: A `sqlite:///` URL pointing at the resolved absolute path.
    """
    db_path = str(db_path)
    if "://" in db_path:
        return db_path
    return f"sqlite:///{Path(db_path).expanduser().resolve()}"


def create_repository(
    database: Union[str, Path],
    echo: bool = False,
    create_tables: bool = True,
) -> ArchiveRepositoryInterface:
    """
    Create an ArchiveRepositoryInterface for a SQLite file path or database URL.

    Parameters:
        database (str | Path): SQLite file path or SQLAlchemy database URL.
        echo (bool): If true, enable SQL statement logging.
        create_tables (bool): If true, create missing tables on first use.

    Returns:
        ArchiveRepositoryInterface: A repository instance backed by the resolved database.

    Raises:
        StorageError: If the database cannot be opened or initialized.
    """
    database_url = sqlite_url_for_path(database)
    logger.info(f"Creating {database_url.split('://')[0]} repository: {database_url}")

    return SQLAlchemyArchiveRepository(
        database_url=database_url,
        echo=echo,
        create_tables=create_tables,
    )
