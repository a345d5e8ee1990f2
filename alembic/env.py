"""Alembic migration environment for the documents schema.

Migrations run over a synchronous psycopg connection built from the
same Settings the async application uses.
"""

from logging.config import fileConfig

from sqlalchemy import create_engine, pool

from alembic import context
from src.core.config import get_settings
from src.db.models import Base

config = context.config

# postgresql+asyncpg:// -> postgresql+psycopg://
migration_url = get_settings().get_database_url.replace(
    "postgresql+asyncpg://", "postgresql+psycopg://"
)
config.set_main_option("sqlalchemy.url", migration_url)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# documents / document_chunks, for autogenerate
target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Emit migration SQL to stdout without connecting."""
    context.configure(
        url=migration_url,
        target_metadata=target_metadata,
        literal_binds=True,
        compare_type=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Apply migrations over a live connection."""
    engine = create_engine(migration_url, poolclass=pool.NullPool)

    with engine.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
