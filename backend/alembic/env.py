"""Alembic environment configuration."""

from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool

from app.config import get_settings
from app.db.base import Base
from app.db import models  # noqa: F401 - Import models to register them

# Alembic Config object
config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Autogenerate compares against the ORM models
target_metadata = Base.metadata

settings = get_settings()


def get_url() -> str:
    """Sync driver URL (psycopg2, or plain sqlite for local runs)."""
    return settings.database_url_sync


def _configure_kwargs(url: str) -> dict:
    # SQLite cannot ALTER most constraints in place; batch mode recreates tables
    return {"compare_type": True, "render_as_batch": url.startswith("sqlite")}


def run_migrations_offline() -> None:
    """Emit SQL to the script output without connecting."""
    url = get_url()
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_configure_kwargs(url),
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations against a live database with a sync engine."""
    url = get_url()
    connectable = create_engine(url, poolclass=pool.NullPool)

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            **_configure_kwargs(url),
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
