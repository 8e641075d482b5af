"""Alembic environment for the servers schema."""

from logging.config import fileConfig

from sqlalchemy import engine_from_config, pool

from alembic import context

from mcserver_engine.infrastructure.postgres.config import settings
from mcserver_engine.infrastructure.postgres.database import Base
from mcserver_engine.infrastructure.postgres.models import ServerORM  # noqa: F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# DATABASE_URL wins over alembic.ini
config.set_main_option("sqlalchemy.url", settings.database_url)

target_metadata = Base.metadata

MANAGED_TABLES = set(target_metadata.tables)


def include_object(obj, name, type_, reflected, compare_to):
    """Leave tables owned by other services alone during autogenerate."""
    if type_ == "table":
        return name in MANAGED_TABLES
    return True


CONFIGURE_OPTIONS = dict(
    target_metadata=target_metadata,
    include_object=include_object,
    compare_type=True,
    compare_server_default=True,
)


def run_migrations_offline() -> None:
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **CONFIGURE_OPTIONS,
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
        context.configure(connection=connection, **CONFIGURE_OPTIONS)

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
