"""
Alembic environment for the housekeeping schema.

The URL comes from housekeeping.config (DATABASE_URL or DATABASE_MODE)
unless overridden on the command line, which is how a single property's
database is migrated from a shared checkout:

    alembic -x url=postgresql://ops@db-harbour/housekeeping upgrade head

Only the housekeeping tables are compared during autogenerate; other
tables living in the same database are left alone.
"""

from logging.config import fileConfig

from sqlalchemy import pool
from sqlalchemy import create_engine

from alembic import context

import sys
from pathlib import Path

# Add backend directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from housekeeping.config import config as app_config
from housekeeping.db.postgres import Base
from housekeeping import models  # noqa: F401 - registers models with Base

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata
HOUSEKEEPING_TABLES = frozenset(target_metadata.tables)


def get_url() -> str:
    url = context.get_x_argument(as_dictionary=True).get("url") or app_config.get_database_url()
    if url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


def include_object(obj, name, type_, reflected, compare_to):
    if type_ == "table":
        return name in HOUSEKEEPING_TABLES
    table = getattr(obj, "table", None)
    if table is not None:
        return table.name in HOUSEKEEPING_TABLES
    return True


def _configure(**kwargs) -> None:
    url = kwargs.get("url")
    connection = kwargs.get("connection")
    dialect = connection.dialect.name if connection is not None else url.split(":", 1)[0]
    context.configure(
        target_metadata=target_metadata,
        include_object=include_object,
        compare_type=True,
        # SQLite cannot ALTER constraints in place
        render_as_batch=dialect.startswith("sqlite"),
        **kwargs,
    )


def run_migrations_offline() -> None:
    """Emit SQL without a live connection."""
    _configure(url=get_url(), literal_binds=True, dialect_opts={"paramstyle": "named"})

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = create_engine(get_url(), poolclass=pool.NullPool)

    with connectable.connect() as connection:
        _configure(connection=connection)

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
