"""
alembic/env.py

Migration environment for the reporting read model.

Only the tables registered on ``db.base.Base`` are managed here; anything
else in the same database (the operational application's own tables) is
ignored by autogenerate. Revisions are tracked in a dedicated version table
so this history never collides with another Alembic history in the same
schema.
"""

from __future__ import annotations

import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

import db.models  # noqa: F401  (registers every report table on Base.metadata)
from db.base import Base
from db.config import is_postgres_url, load_env_files, normalize_postgres_url, resolve_database_url

VERSION_TABLE = "report_alembic_version"

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata
_report_tables = frozenset(target_metadata.tables)


def _include_object(obj, name, type_, reflected, compare_to) -> bool:
    """Skip reflected tables that do not belong to the report read model."""
    if type_ == "table" and reflected and compare_to is None:
        return name in _report_tables
    return True


def _migration_url() -> str:
    """
    Pick the migration target.

    ``-x db_url=...`` wins, then ``ALEMBIC_DATABASE_URL``, then the regular
    application lookup (``DATABASE_URL`` / ``CLOUD_DATABASE_URL`` /
    ``LOCAL_DATABASE_URL``).
    """

    load_env_files()
    override = context.get_x_argument(as_dictionary=True).get("db_url") or os.getenv("ALEMBIC_DATABASE_URL")
    url = normalize_postgres_url(override) if override else resolve_database_url()
    if not is_postgres_url(url):
        raise RuntimeError("Report migrations target PostgreSQL only.")
    return url


def _configure(**kwargs) -> None:
    context.configure(
        target_metadata=target_metadata,
        version_table=VERSION_TABLE,
        include_object=_include_object,
        compare_type=True,
        **kwargs,
    )


def run_migrations_offline() -> None:
    _configure(
        url=_migration_url(),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    section = config.get_section(config.config_ini_section, {})
    section["sqlalchemy.url"] = _migration_url()
    connectable = engine_from_config(section, prefix="sqlalchemy.", poolclass=pool.NullPool)

    with connectable.connect() as connection:
        _configure(connection=connection)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
