"""Database module for archive persistence.

Provides:
- SQLAlchemy ORM models (Feed, Episode)
- Repository interface and implementation
- Factory function for creating repositories
"""

from .factory import create_repository, sqlite_url_for_path
from .models import Base, Episode, Feed
from .repository import ArchiveRepositoryInterface, SQLAlchemyArchiveRepository

__all__ = [
    "Base",
    "Feed",
    "Episode",
    "ArchiveRepositoryInterface",
    "SQLAlchemyArchiveRepository",
    "create_repository",
    "sqlite_url_for_path",
]
