"""
Database engine and sessions.

``create_app`` builds one engine per application from the settings it was
given and keeps it, with its session factory, on ``app.state``. ``get_db``
hands each request a session from that factory.
"""
from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from .config import Settings


def build_engine(config: Settings) -> AsyncEngine:
    return create_async_engine(
        config.database_url,
        echo=config.database_echo,
        future=True
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    # Services read attributes after commit, so instances must not expire
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    session_factory = request.app.state.session_factory
    async with session_factory() as session:
        yield session
