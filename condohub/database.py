"""
Store handles for the two independently-owned databases.

- community store: amenities, bookings and community-side persons
  (24-hex string identifiers)
- registry store: associations, units, memberships and registry-side persons
  (integer identifiers)

Both engines are built once at startup and held for the process lifetime on
``app.state.stores``. Requests get their own sessions through the
``get_community_db`` / ``get_registry_db`` dependencies.
"""

import logging
from typing import Iterator

from fastapi import Request
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import Settings

logger = logging.getLogger(__name__)

CommunityBase = declarative_base()
RegistryBase = declarative_base()


def build_engine(database_url: str, settings: Settings) -> Engine:
    """Create an engine whose round-trips honour the store deadline."""
    timeout = settings.store_timeout_seconds
    engine_kwargs = {"pool_pre_ping": True}

    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False, "timeout": timeout}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection, otherwise every session sees an empty database
            engine_kwargs["poolclass"] = StaticPool
    else:
        connect_args = {}
        if database_url.startswith("postgresql"):
            timeout_ms = timeout * 1000
            connect_args = {
                "connect_timeout": timeout,
                "options": f"-c statement_timeout={timeout_ms} -c lock_timeout={timeout_ms}",
            }
        engine_kwargs.update(
            pool_size=settings.store_pool_size,
            pool_timeout=timeout,
        )

    return create_engine(
        database_url,
        connect_args=connect_args,
        echo=False,
        **engine_kwargs,
    )


class StoreRegistry:
    """Engines and session factories for both stores."""

    def __init__(self, community_engine: Engine, registry_engine: Engine):
        self.community_engine = community_engine
        self.registry_engine = registry_engine
        self.community_session = sessionmaker(autoflush=False, bind=community_engine)
        self.registry_session = sessionmaker(autoflush=False, bind=registry_engine)

    @classmethod
    def from_settings(cls, settings: Settings) -> "StoreRegistry":
        logger.info(
            "Connecting stores: community=%s registry=%s",
            settings.community_database_url.split("@")[-1][:40],
            settings.registry_database_url.split("@")[-1][:40],
        )
        return cls(
            build_engine(settings.community_database_url, settings),
            build_engine(settings.registry_database_url, settings),
        )

    def create_tables(self) -> None:
        """Create all tables in both stores"""
        from . import models  # noqa: F401  registers every table on its base

        CommunityBase.metadata.create_all(bind=self.community_engine)
        RegistryBase.metadata.create_all(bind=self.registry_engine)

    def ping(self, engine: Engine) -> None:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))

    def dispose(self) -> None:
        self.community_engine.dispose()
        self.registry_engine.dispose()


def get_stores(request: Request) -> StoreRegistry:
    return request.app.state.stores


def get_community_db(request: Request) -> Iterator[Session]:
    """Dependency to get a community store session"""
    db = get_stores(request).community_session()
    try:
        yield db
    finally:
        db.close()


def get_registry_db(request: Request) -> Iterator[Session]:
    """Dependency to get a registry store session"""
    db = get_stores(request).registry_session()
    try:
        yield db
    finally:
        db.close()
