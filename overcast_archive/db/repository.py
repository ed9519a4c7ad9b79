"""Repository pattern implementation for the Overcast archive.

Provides an abstract interface and a SQLAlchemy implementation. All writes
of an archive run go through a single `transaction()` so that a failed run
never leaves a partially applied export behind.
"""

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from sqlalchemy import create_engine, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..errors import StorageError
from .models import Base, Episode, Feed

logger = logging.getLogger(__name__)


class ArchiveRepositoryInterface(ABC):
    """Abstract interface for archive persistence.

    Write methods take the `Session` of an open `transaction()`; read methods
    accept one optionally and open a short-lived session otherwise.
    """

    # --- Transactions ---

    @abstractmethod
    def transaction(self):
        """
        Context manager yielding a session whose work is committed as one unit.

        Everything done with the yielded session is committed when the block
        exits normally and rolled back when it raises.
        """
        pass

    # --- Feed Operations ---

    @abstractmethod
    def get_feed(self, feed_id: int, session: Optional[Session] = None) -> Optional[Feed]:
        """
        Retrieve a feed by its Overcast identifier.

        Returns:
            Feed if a feed with the given ID exists, `None` otherwise.
        """
        pass

    @abstractmethod
    def add_feed(self, session: Session, feed_id: int, **fields) -> Feed:
        """
        Insert a new feed row inside the given transaction.

        Parameters:
            session (Session): Session of the active transaction.
            feed_id (int): Overcast identifier of the feed.
            **fields: Column values (title, subscribed, feed_url, html_url).

        Returns:
            Feed: The pending Feed instance, flushed to the database.
        """
        pass

    @abstractmethod
    def update_feed(self, session: Session, feed: Feed, **changes) -> Feed:
        """
        Apply `changes` to an existing feed inside the given transaction.

        Returns:
            Feed: The updated instance.
        """
        pass

    @abstractmethod
    def list_feeds(self, subscribed_only: bool = False) -> List[Feed]:
        """
        Return archived feeds ordered by title.

        Parameters:
            subscribed_only (bool): If True, include only feeds still subscribed.
        """
        pass

    # --- Episode Operations ---

    @abstractmethod
    def get_episode(
        self, episode_id: int, session: Optional[Session] = None
    ) -> Optional[Episode]:
        """
        Retrieve an episode by its Overcast identifier.

        Returns:
            The Episode instance if found, `None` otherwise.
        """
        pass

    @abstractmethod
    def add_episode(self, session: Session, episode_id: int, feed_id: int, **fields) -> Episode:
        """
        Insert a new episode row for `feed_id` inside the given transaction.

        Returns:
            Episode: The pending Episode instance, flushed to the database.
        """
        pass

    @abstractmethod
    def update_episode(self, session: Session, episode: Episode, **changes) -> Episode:
        """
        Apply `changes` to an existing episode inside the given transaction.

        Returns:
            Episode: The updated instance.
        """
        pass

    @abstractmethod
    def list_episodes(
        self, feed_id: Optional[int] = None, limit: Optional[int] = None
    ) -> List[Episode]:
        """
        List episodes, most recently published first.

        Parameters:
            feed_id (Optional[int]): If provided, only episodes of this feed are returned.
            limit (Optional[int]): Maximum number of episodes to return.
        """
        pass

    # --- Statistics ---

    @abstractmethod
    def get_stats(self) -> Dict[str, Any]:
        """
        Return row counts for the archive.

        Returns:
            dict: `feeds`, `subscribed_feeds`, `episodes` and `played_episodes` counts.
        """
        pass

    # --- Connection Management ---

    @abstractmethod
    def close(self) -> None:
        """
        Release database connections held by the repository.
        """
        pass


class SQLAlchemyArchiveRepository(ArchiveRepositoryInterface):
    """SQLAlchemy-based implementation of the archive repository."""

    def __init__(self, database_url: str, echo: bool = False, create_tables: bool = True):
        """
        Initialize the repository and configure its SQLAlchemy engine and session factory.

        Creates an engine for the provided database URL, prepares a session factory and, unless disabled, creates the `feeds` and `episodes` tables when they do not exist yet.

        Parameters:
            database_url (str): SQLAlchemy-compatible database URL.
            echo (bool): If true, enable SQLAlchemy SQL statement logging.
            create_tables (bool): If true, create missing tables on startup.

        Raises:
            StorageError: If the database cannot be opened or the schema cannot be created.
        """
        self.database_url = database_url

        # An unknown URL scheme or a missing DBAPI driver fails in create_engine
        try:
            if database_url.startswith("sqlite"):
                self.engine = create_engine(
                    database_url,
                    echo=echo,
                    connect_args={"check_same_thread": False},
                )
            else:
                self.engine = create_engine(database_url, echo=echo)
        except (SQLAlchemyError, ImportError) as e:
            raise StorageError(f"Unable to initialize database {database_url}: {e}") from e

        self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False)

        if create_tables:
            try:
                Base.metadata.create_all(self.engine)
            except SQLAlchemyError as e:
                self.engine.dispose()
                raise StorageError(f"Unable to initialize database {database_url}: {e}") from e

        logger.info(f"Database initialized: {database_url}")

    def _get_session(self) -> Session:
        """
        Obtain a new SQLAlchemy database session from the repository's session factory.
        """
        return self.SessionLocal()

    @contextmanager
    def _read_session(self, session: Optional[Session]) -> Iterator[Session]:
        if session is not None:
            yield session
            return
        with self._get_session() as own_session:
            yield own_session

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """
        Open a session and a transaction that commits on success and rolls back on any error.

        Rollback also happens on KeyboardInterrupt, so an interrupted run leaves
        the database in its last committed state.
        """
        with self._get_session() as session:
            with session.begin():
                yield session
        logger.debug("Transaction committed")

    # --- Feed Operations ---

    def get_feed(self, feed_id: int, session: Optional[Session] = None) -> Optional[Feed]:
        with self._read_session(session) as s:
            return s.get(Feed, feed_id)

    def add_feed(self, session: Session, feed_id: int, **fields) -> Feed:
        feed = Feed(id=feed_id, **fields)
        session.add(feed)
        session.flush()
        logger.debug(f"Added feed: {feed.title} ({feed_id})")
        return feed

    def update_feed(self, session: Session, feed: Feed, **changes) -> Feed:
        for key, value in changes.items():
            if hasattr(feed, key):
                setattr(feed, key, value)
        session.flush()
        logger.debug(f"Updated feed {feed.id}: {list(changes.keys())}")
        return feed

    def list_feeds(self, subscribed_only: bool = False) -> List[Feed]:
        with self._get_session() as session:
            stmt = select(Feed)
            if subscribed_only:
                stmt = stmt.where(Feed.subscribed.is_(True))
            stmt = stmt.order_by(Feed.title)
            return list(session.scalars(stmt).all())

    # --- Episode Operations ---

    def get_episode(
        self, episode_id: int, session: Optional[Session] = None
    ) -> Optional[Episode]:
        with self._read_session(session) as s:
            return s.get(Episode, episode_id)

    def add_episode(self, session: Session, episode_id: int, feed_id: int, **fields) -> Episode:
        episode = Episode(id=episode_id, feed_id=feed_id, **fields)
        session.add(episode)
        session.flush()
        logger.debug(f"Added episode: {episode.title} ({episode_id})")
        return episode

    def update_episode(self, session: Session, episode: Episode, **changes) -> Episode:
        for key, value in changes.items():
            if hasattr(episode, key):
                setattr(episode, key, value)
        session.flush()
        logger.debug(f"Updated episode {episode.id}: {list(changes.keys())}")
        return episode

    def list_episodes(
        self, feed_id: Optional[int] = None, limit: Optional[int] = None
    ) -> List[Episode]:
        with self._get_session() as session:
            stmt = select(Episode)
            if feed_id is not None:
                stmt = stmt.where(Episode.feed_id == feed_id)
            stmt = stmt.order_by(Episode.published_at.desc(), Episode.id)
            if limit:
                stmt = stmt.limit(limit)
            return list(session.scalars(stmt).all())

    # --- Statistics ---

    def get_stats(self) -> Dict[str, Any]:
        try:
            with self._get_session() as session:
                feeds = session.scalar(select(func.count()).select_from(Feed)) or 0
                subscribed = (
                    session.scalar(
                        select(func.count()).select_from(Feed).where(Feed.subscribed.is_(True))
                    )
                    or 0
                )
                episodes = session.scalar(select(func.count()).select_from(Episode)) or 0
                played = (
                    session.scalar(
                        select(func.count()).select_from(Episode).where(Episode.played.is_(True))
                    )
                    or 0
                )
        except SQLAlchemyError as e:
            raise StorageError(f"Unable to read archive statistics: {e}") from e

        return {
            "feeds": feeds,
            "subscribed_feeds": subscribed,
            "episodes": episodes,
            "played_episodes": played,
        }

    # --- Connection Management ---

    def close(self) -> None:
        """
        Dispose the SQLAlchemy engine and release database connections and resources.
        """
        self.engine.dispose()
        logger.info("Database connection closed")
