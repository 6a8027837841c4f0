# alembic/env.py
import sys
import os

from logging.config import fileConfig
from sqlalchemy import engine_from_config, pool
from alembic import context


# Project root holds settings.py and the `database` package
sys.path.append(os.path.dirname(os.path.dirname(__file__)))

from database.db_session import Base, SQLALCHEMY_DATABASE_URL  # noqa: E402
import database.models  # noqa: F401,E402  users, projects, invoices


config = context.config

# DATABASE_URL (settings.py) wins unless the caller passed -x url=...
database_url = context.get_x_argument(as_dictionary=True).get("url", SQLALCHEMY_DATABASE_URL)
config.set_main_option("sqlalchemy.url", database_url)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

# SQLite cannot ALTER most column properties in place
render_as_batch = database_url.startswith("sqlite")


def _configure(**kwargs):
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        render_as_batch=render_as_batch,
        **kwargs,
    )


def run_migrations_offline():
    """Emit SQL for the invoice schema without a live connection."""
    _configure(url=database_url, literal_binds=True, dialect_opts={"paramstyle": "named"})

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    """Apply the invoice schema migrations against DATABASE_URL."""
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        _configure(connection=connection)

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
