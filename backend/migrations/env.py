"""
backend/migrations/env.py — Alembic environment.

Uses DATABASE_URL, or TEST_DATABASE_URL when TEST_RUN=1, read from the
environment or the .env files that backend/config.py loads.

Run from the project root:
    alembic -c backend/alembic.ini upgrade head
"""

from __future__ import annotations

import os
import sys
from logging.config import fileConfig
from pathlib import Path

from alembic import context
from sqlalchemy import engine_from_config, pool

# Project root on sys.path so `backend.*` imports resolve when alembic is
# launched from any directory.
sys.path.insert(0, str(Path(__file__).resolve().parents[2]))

from backend import config as app_config  # noqa: E402  (loads .env files)
from backend.app import create_app  # noqa: E402
from backend.app.extensions import db  # noqa: E402

# create_app() imports every model module, which fills db.metadata.
create_app("testing" if os.getenv("TEST_RUN") else "development")
target_metadata = db.metadata


def _database_url() -> str:
    if os.getenv("TEST_RUN"):
        return os.getenv("TEST_DATABASE_URL") or app_config.TestingConfig.SQLALCHEMY_DATABASE_URI
    return os.getenv("DATABASE_URL") or app_config.DevelopmentConfig.SQLALCHEMY_DATABASE_URI


db_url = _database_url()

config = context.config
config.set_main_option("sqlalchemy.url", db_url)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)


def run_migrations_offline() -> None:
    context.configure(
        url=db_url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            render_as_batch=connection.dialect.name == "sqlite",
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
