"""Tests for the Alembic migrations."""

from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config as AlembicConfig
from sqlalchemy import create_engine, inspect

from overcast_archive.archive.sync import ArchiveSyncService
from overcast_archive.db.factory import create_repository, sqlite_url_for_path
from overcast_archive.overcast.opml_parser import OvercastOPMLParser

ALEMBIC_DIR = Path(__file__).resolve().parent.parent / "alembic"


@pytest.fixture
def alembic_config(tmp_path, monkeypatch):
    monkeypatch.delenv("OVERCAST_ARCHIVE_DB", raising=False)
    db_path = tmp_path / "migrated.db"

    cfg = AlembicConfig()
    cfg.set_main_option("script_location", str(ALEMBIC_DIR))
    cfg.set_main_option("sqlalchemy.url", sqlite_url_for_path(db_path))
    return cfg, db_path


def _inspect(db_path):
    engine = create_engine(sqlite_url_for_path(db_path))
    try:
        inspector = inspect(engine)
        tables = set(inspector.get_table_names())
        columns = {
            table: {c["name"] for c in inspector.get_columns(table)}
            for table in tables
            if table != "alembic_version"
        }
        indexes = {ix["name"] for ix in inspector.get_indexes("episodes")} if "episodes" in tables else set()
    finally:
        engine.dispose()
    return tables, columns, indexes


class TestMigrations:
    """Tests for upgrading and downgrading the schema."""

    def test_upgrade_matches_models(self, alembic_config):
        cfg, db_path = alembic_config

        command.upgrade(cfg, "head")

        tables, columns, indexes = _inspect(db_path)
        assert {"feeds", "episodes", "alembic_version"} <= tables
        assert columns["feeds"] == {"id", "title", "subscribed", "feedUrl", "htmlUrl"}
        assert columns["episodes"] == {
            "id", "title", "played", "feedId", "publishedAt", "updatedAt",
            "htmlUrl", "overcastUrl", "mp3Url", "progress", "userDeleted",
        }
        assert "ix_episodes_feedId" in indexes

    def test_migrated_database_is_usable(self, alembic_config, sample_opml):
        cfg, db_path = alembic_config
        command.upgrade(cfg, "head")

        repo = create_repository(db_path, create_tables=False)
        try:
            feeds = OvercastOPMLParser().parse_string(sample_opml).feeds
            result = ArchiveSyncService(repo).sync(feeds)
            assert result.episodes_added == 2
        finally:
            repo.close()

    def test_downgrade(self, alembic_config):
        cfg, db_path = alembic_config
        command.upgrade(cfg, "head")

        command.downgrade(cfg, "base")

        tables, _, _ = _inspect(db_path)
        assert "feeds" not in tables
        assert "episodes" not in tables

    def test_env_var_overrides_url(self, alembic_config, tmp_path, monkeypatch):
        cfg, default_path = alembic_config
        override = tmp_path / "override.db"
        monkeypatch.setenv("OVERCAST_ARCHIVE_DB", str(override))

        command.upgrade(cfg, "head")

        assert "feeds" in _inspect(override)[0]
        assert not default_path.exists()
