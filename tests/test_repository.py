"""
Tests for the archive repository and the database factory.
"""

from datetime import datetime
from unittest.mock import patch

import pytest
from sqlalchemy import inspect, text
from sqlalchemy.exc import IntegrityError

from overcast_archive.db.factory import create_repository, sqlite_url_for_path
from overcast_archive.db.models import Episode, Feed
from overcast_archive.errors import StorageError


def _add_sample_rows(repository):
    with repository.transaction() as session:
        repository.add_feed(
            session, 1, title="Alpha", subscribed=True, feed_url="https://a.example/feed"
        )
        repository.add_feed(session, 2, title="Beta", subscribed=False)
        repository.add_episode(
            session, 10, 1, title="A1", played=True, published_at=datetime(2021, 1, 1)
        )
        repository.add_episode(
            session, 11, 1, title="A2", played=False, published_at=datetime(2021, 2, 1)
        )
        repository.add_episode(session, 20, 2, title="B1", played=True)


class TestSQLiteURL:
    """Tests for turning CLI paths into database URLs."""

    def test_relative_path_is_resolved(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert sqlite_url_for_path("podcasts.db") == f"sqlite:///{tmp_path.resolve()}/podcasts.db"

    def test_url_passes_through(self):
        assert sqlite_url_for_path("sqlite:///:memory:") == "sqlite:///:memory:"


class TestRepositorySetup:
    """Tests for database creation."""

    def test_creates_file_and_tables(self, tmp_path):
        db_path = tmp_path / "new.db"
        repo = create_repository(db_path)
        try:
            assert db_path.exists()
            inspector = inspect(repo.engine)
            assert set(inspector.get_table_names()) == {"feeds", "episodes"}

            columns = {c["name"] for c in inspector.get_columns("episodes")}
            assert columns == {
                "id", "title", "played", "feedId", "publishedAt", "updatedAt",
                "htmlUrl", "overcastUrl", "mp3Url", "progress", "userDeleted",
            }
            assert {c["name"] for c in inspector.get_columns("feeds")} == {
                "id", "title", "subscribed", "feedUrl", "htmlUrl",
            }
        finally:
            repo.close()

    def test_reopen_keeps_data(self, tmp_path):
        db_path = tmp_path / "archive.db"
        repo = create_repository(db_path)
        _add_sample_rows(repo)
        repo.close()

        reopened = create_repository(db_path)
        try:
            assert reopened.get_stats()["episodes"] == 3
        finally:
            reopened.close()

    def test_unopenable_path(self, tmp_path):
        with pytest.raises(StorageError, match="Unable to initialize database"):
            create_repository(tmp_path / "missing-dir" / "archive.db")

    @pytest.mark.parametrize("url", ["foo://bar", "postgresql+nosuchdriver://localhost/db"])
    def test_unusable_url(self, url):
        """Test that unknown schemes and uninstalled drivers raise StorageError."""
        with pytest.raises(StorageError, match="Unable to initialize database"):
            create_repository(url)

    def test_missing_driver(self):
        with patch(
            "overcast_archive.db.repository.create_engine",
            side_effect=ModuleNotFoundError("No module named 'psycopg2'"),
        ):
            with pytest.raises(StorageError, match="psycopg2"):
                create_repository("postgresql://localhost/archive")

    def test_stats_on_broken_database(self, tmp_path):
        repo = create_repository(tmp_path / "archive.db")
        try:
            with repo.engine.begin() as connection:
                connection.execute(text("DROP TABLE episodes"))

            with pytest.raises(StorageError, match="Unable to read archive statistics"):
                repo.get_stats()
        finally:
            repo.close()


class TestFeedOperations:
    """Tests for feed CRUD."""

    def test_add_and_get(self, repository):
        _add_sample_rows(repository)

        feed = repository.get_feed(1)
        assert isinstance(feed, Feed)
        assert feed.title == "Alpha"
        assert feed.subscribed is True
        assert feed.feed_url == "https://a.example/feed"
        assert feed.html_url is None

    def test_get_missing(self, repository):
        assert repository.get_feed(999) is None

    def test_update(self, repository):
        _add_sample_rows(repository)

        with repository.transaction() as session:
            feed = repository.get_feed(2, session=session)
            repository.update_feed(session, feed, title="Beta (renamed)", subscribed=True)

        feed = repository.get_feed(2)
        assert feed.title == "Beta (renamed)"
        assert feed.subscribed is True

    def test_list_feeds(self, repository):
        _add_sample_rows(repository)

        assert [f.id for f in repository.list_feeds()] == [1, 2]
        assert [f.id for f in repository.list_feeds(subscribed_only=True)] == [1]


class TestEpisodeOperations:
    """Tests for episode CRUD."""

    def test_add_and_get(self, repository):
        _add_sample_rows(repository)

        episode = repository.get_episode(10)
        assert isinstance(episode, Episode)
        assert episode.feed_id == 1
        assert episode.played is True
        assert episode.published_at == datetime(2021, 1, 1)

    def test_update(self, repository):
        _add_sample_rows(repository)

        with repository.transaction() as session:
            episode = repository.get_episode(11, session=session)
            repository.update_episode(session, episode, played=True, progress=300)

        episode = repository.get_episode(11)
        assert episode.played is True
        assert episode.progress == 300

    def test_list_episodes(self, repository):
        _add_sample_rows(repository)

        assert {e.id for e in repository.list_episodes()} == {10, 11, 20}
        assert [e.id for e in repository.list_episodes(feed_id=1)] == [11, 10]
        assert len(repository.list_episodes(limit=2)) == 2

    def test_episode_requires_feed_id(self, repository):
        with pytest.raises(IntegrityError):
            with repository.transaction() as session:
                repository.add_episode(session, 1, None, title="Orphan")


class TestTransactions:
    """Tests for commit and rollback behaviour."""

    def test_rollback_on_error(self, repository):
        with pytest.raises(RuntimeError):
            with repository.transaction() as session:
                repository.add_feed(session, 1, title="Alpha")
                raise RuntimeError("boom")

        assert repository.get_feed(1) is None
        assert repository.get_stats()["feeds"] == 0

    def test_rollback_on_keyboard_interrupt(self, repository):
        with pytest.raises(KeyboardInterrupt):
            with repository.transaction() as session:
                repository.add_feed(session, 1, title="Alpha")
                raise KeyboardInterrupt

        assert repository.get_feed(1) is None

    def test_pending_rows_visible_inside_transaction(self, repository):
        with repository.transaction() as session:
            repository.add_feed(session, 1, title="Alpha")
            assert repository.get_feed(1, session=session) is not None


class TestStats:
    """Tests for archive statistics."""

    def test_empty(self, repository):
        assert repository.get_stats() == {
            "feeds": 0,
            "subscribed_feeds": 0,
            "episodes": 0,
            "played_episodes": 0,
        }

    def test_counts(self, repository):
        _add_sample_rows(repository)

        assert repository.get_stats() == {
            "feeds": 2,
            "subscribed_feeds": 1,
            "episodes": 3,
            "played_episodes": 2,
        }
