"""Alembic environment for the Overcast archive database.

The target database is the SQLite file named by OVERCAST_ARCHIVE_DB (the
same path `overcast-archive archive` takes) or, failing that, the
`sqlalchemy.url` of alembic.ini.
"""

import os
import sys
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from overcast_archive.db.factory import sqlite_url_for_path
from overcast_archive.db.models import Base

ARCHIVE_DB_ENV = "OVERCAST_ARCHIVE_DB"

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def archive_database_url() -> str:
    """Return the URL of the archive database to migrate."""
    archive_db = os.getenv(ARCHIVE_DB_ENV)
    if archive_db:
        return sqlite_url_for_path(archive_db)
    return config.get_main_option("sqlalchemy.url")


def _run(**configure_kwargs) -> None:
    # SQLite cannot ALTER most constraints in place; batch mode rebuilds the table
    context.configure(
        target_metadata=target_metadata,
        render_as_batch=True,
        **configure_kwargs,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_offline() -> None:
    """Emit the migration SQL for the archive database without connecting to it."""
    _run(
        url=archive_database_url(),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )


def run_migrations_online() -> None:
    """Apply migrations to the archive database over a live connection."""
    settings = config.get_section(config.config_ini_section) or {}
    settings["sqlalchemy.url"] = archive_database_url()

    engine = engine_from_config(settings, prefix="sqlalchemy.", poolclass=pool.NullPool)
    try:
        with engine.connect() as connection:
            _run(connection=connection)
    finally:
        engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
