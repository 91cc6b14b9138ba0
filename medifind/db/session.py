from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from sqlalchemy.engine import URL, make_url
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from medifind.core.config import get_settings
from medifind.db.base import Base

_settings = get_settings()


def _adapt_url(raw_url: str) -> tuple[URL, dict[str, Any], dict[str, Any]]:
    """
    Return (async_url, connect_args, engine_kwargs) with an async driver set.
    PostgreSQL goes through asyncpg; SQLite keeps aiosqlite and skips pool tuning.
    """
    url = make_url(raw_url)
    backend = url.get_backend_name()

    if backend in {"postgresql", "postgres"}:
        query = dict(url.query)
        sslmode = query.pop("sslmode", None)
        connect_args: dict[str, Any] = {}
        # Managed Postgres usually requires SSL. asyncpg needs ssl=True.
        if sslmode and sslmode.lower() in {"require", "verify-ca", "verify-full"}:
            connect_args["ssl"] = True
        engine_kwargs = {
            "pool_pre_ping": True,
            "pool_size": 10,
            "max_overflow": 10,
            "pool_timeout": 30,
            "pool_recycle": 1800,  # Recycle connections after 30 min
        }
        return url.set(drivername="postgresql+asyncpg", query=query), connect_args, engine_kwargs

    if backend == "sqlite":
        return url.set(drivername="sqlite+aiosqlite"), {"check_same_thread": False}, {}

    return url, {}, {}


_async_url, _connect_args, _engine_kwargs = _adapt_url(_settings.database_url)

ECHO = _settings.environment == "development"

_async_engine = create_async_engine(
    _async_url,
    echo=ECHO,
    connect_args=_connect_args,
    **_engine_kwargs,
)

_async_session_factory = async_sessionmaker(
    bind=_async_engine,
    expire_on_commit=False,
    autoflush=False,
)


# --- Plain "hand-me-a-session" dependency (caller manages commit/rollback) ---

@asynccontextmanager
async def get_async_session() -> AsyncIterator[AsyncSession]:
    async with _async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


# --- Transactional helper (auto-commit / rollback) ---

@asynccontextmanager
async def async_transaction() -> AsyncIterator[AsyncSession]:
    async with _async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_models() -> None:
    """Create tables that do not exist yet."""
    from medifind.db import models  # noqa: F401  registers tables on Base.metadata

    async with _async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engines() -> None:
    """Call on application shutdown to cleanly close pools."""
    await _async_engine.dispose()


__all__ = [
    "get_async_session",
    "async_transaction",
    "init_models",
    "dispose_engines",
]
