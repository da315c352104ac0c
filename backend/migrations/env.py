"""
backend/migrations/env.py — Alembic environment for the TripSync schema.

The database URL comes from backend.config, so migrations and the running
app agree on where the data lives:

  FLASK_ENV=production  -> ProductionConfig (DATABASE_URL, normalised)
  TEST_RUN=1            -> TestingConfig    (TEST_DATABASE_URL)
  otherwise             -> DevelopmentConfig

SQLite URLs run in batch mode so ALTER TABLE steps work there too.
"""

from __future__ import annotations

import os
import sys
from logging.config import fileConfig
from pathlib import Path

from alembic import context
from sqlalchemy import engine_from_config, pool

# The project root holds the `backend` package.
sys.path.insert(0, str(Path(__file__).resolve().parents[2]))

from backend.app.extensions import db  # noqa: E402
from backend.app.models import (  # noqa: E402,F401
    expense,
    itinerary,
    message,
    refresh_token,
    trip,
    user,
)
from backend.config import config_by_name  # noqa: E402  (loads .env)

target_metadata = db.metadata


def _database_url() -> str:
    if os.getenv("TEST_RUN"):
        env_name = "testing"
    else:
        env_name = os.getenv("FLASK_ENV", "development")
    config_class = config_by_name.get(env_name, config_by_name["development"])
    url = config_class.SQLALCHEMY_DATABASE_URI
    if not url:
        raise RuntimeError(f"No database URL configured for the {env_name!r} environment.")
    return url


db_url = _database_url()
render_as_batch = db_url.startswith("sqlite")

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
        render_as_batch=render_as_batch,
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
            render_as_batch=render_as_batch,
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
