"""
Alembic Migration Environment
Migrates the stored_entries schema on the database named by DATABASE_URL
"""

from logging.config import fileConfig
from alembic import context

from ephemeral_store.config import settings
from ephemeral_store.database import Base, create_db_engine, normalize_database_url

# Registers stored_entries on Base.metadata
from ephemeral_store.models import StoredEntry  # noqa: F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

# DATABASE_URL wins over the sqlite default in alembic.ini
if settings.database_url:
    config.set_main_option("sqlalchemy.url", normalize_database_url(settings.database_url))


def run_migrations_offline() -> None:
    """Emit SQL for the configured URL without connecting."""
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=url.startswith("sqlite"),
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """
    Migrate through the same engine setup the service uses, so SQLite files
    get their data directory, WAL journaling and busy timeout here too.
    """
    connectable = create_db_engine(config.get_main_option("sqlalchemy.url"))

    try:
        with connectable.connect() as connection:
            # SQLite cannot ALTER most columns in place
            context.configure(
                connection=connection,
                target_metadata=target_metadata,
                render_as_batch=connection.dialect.name == "sqlite",
            )

            with context.begin_transaction():
                context.run_migrations()
    finally:
        connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
