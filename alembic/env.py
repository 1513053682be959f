"""
Alembic environment for both condohub stores.

Each store keeps its own revision history. Pick the store with --name:

    alembic --name community upgrade head
    alembic --name registry upgrade head

URLs come from COMMUNITY_DATABASE_URL / REGISTRY_DATABASE_URL through the
application settings.
"""

from logging.config import fileConfig

from sqlalchemy import create_engine, pool

from alembic import context

from condohub.config import get_settings
from condohub.database import CommunityBase, RegistryBase
from condohub import models  # noqa: F401  registers every table on its base

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

STORE = config.config_ini_section

METADATA = {
    "community": CommunityBase.metadata,
    "registry": RegistryBase.metadata,
}

if STORE not in METADATA:
    raise RuntimeError(f'Unknown store "{STORE}", run alembic with --name community or --name registry')

target_metadata = METADATA[STORE]


def get_database_url() -> str:
    settings = get_settings()
    if STORE == "community":
        return settings.community_database_url
    return settings.registry_database_url


def run_migrations_offline() -> None:
    """Emit SQL to stdout instead of running it."""
    context.configure(
        url=get_database_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    url = get_database_url()

    connect_args = {}
    if url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}

    connectable = create_engine(url, poolclass=pool.NullPool, connect_args=connect_args)

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            render_as_batch=url.startswith("sqlite"),  # SQLite cannot ALTER most constraints
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
