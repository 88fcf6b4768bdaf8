"""Alembic environment script.

SQLite is the default backend. Many ALTER operations on SQLite require Alembic
"batch mode" ("move and copy"), enabled here via render_as_batch=True.
See: https://alembic.sqlalchemy.org/en/latest/batch.html
"""

from __future__ import annotations

import os

from alembic import context
from sqlalchemy import create_engine
from sqlalchemy.pool import NullPool

from server.database import Base

# Alembic Config object provides access to values within the config file.
config = context.config

# NOTE: Alembic configuration lives in `pyproject.toml` ([tool.alembic]);
# there is no `alembic.ini`, so logging is not configured from a file here.

target_metadata = Base.metadata


def _get_database_url() -> str:
    """Get the database URL.

    Priority:
    1. Alembic command-line override (via set_main_option)
    2. DATABASE_URL environment variable
    3. The application's default SQLite file
    """
    alembic_url = config.get_main_option("sqlalchemy.url")
    if alembic_url:
        return alembic_url
    return os.getenv("DATABASE_URL", "sqlite:///./bugtracker.db")


def run_migrations_online() -> None:
    """Run migrations in 'online' mode."""
    url = _get_database_url()

    connect_args = {}
    if "sqlite" in url:
        connect_args = {"check_same_thread": False, "timeout": 30}

    engine = create_engine(url, connect_args=connect_args, poolclass=NullPool)

    with engine.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=True,  # Required for SQLite, safe for PostgreSQL
            compare_type=True,
        )

        with context.begin_transaction():
            context.run_migrations()


run_migrations_online()
