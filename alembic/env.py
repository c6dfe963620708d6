"""
alembic.env

Alembic migration environment configuration.

Responsibilities:
- Provide metadata discovery for autogeneration.
- Configure offline/online migration execution.

Notes:
- This module is executed by Alembic, not imported by the FastAPI runtime.
- Migrations run with a sync driver; async URLs are rewritten accordingly.
"""

from __future__ import annotations

import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from maui_care.db import models  # noqa: F401  # ensure models are registered on Base.metadata
from maui_care.db.base import Base
from maui_care.settings import Settings

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

_SYNC_DRIVERS = {
    "sqlite+aiosqlite": "sqlite",
    "postgresql+asyncpg": "postgresql+psycopg",
}


def _get_database_url() -> str:
    url = os.environ.get("MAUI_DATABASE_URL") or Settings().database_url
    scheme, sep, rest = url.partition("://")
    return f"{_SYNC_DRIVERS.get(scheme, scheme)}{sep}{rest}"


def run_migrations_offline() -> None:
    url = _get_database_url()
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    configuration = config.get_section(config.config_ini_section) or {}
    configuration["sqlalchemy.url"] = _get_database_url()
    connectable = engine_from_config(configuration, prefix="sqlalchemy.", poolclass=pool.NullPool)

    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
