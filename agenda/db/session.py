"""
Database engine and session factory.
"""
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from agenda.config import settings
from agenda.db.base import Base

_MEMORY_URLS = ("sqlite://", "sqlite:///:memory:")


def is_memory_url(url: str) -> bool:
    return url in _MEMORY_URLS


def make_engine(url: str = settings.database.url, echo: bool = settings.database.echo) -> Engine:
    if is_memory_url(url):
        # One shared connection, otherwise each session sees an empty database.
        # A rollback on it undoes every session's pending work, so stores over
        # this engine must serialize their writes.
        return create_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    if url.startswith("sqlite"):
        return create_engine(url, echo=echo, connect_args={"check_same_thread": False})
    return create_engine(
        url,
        echo=echo,
        pool_size=8,
        max_overflow=10,
        pool_pre_ping=True,
        pool_recycle=300,
        pool_timeout=30,
    )


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """Create every table and index that does not exist yet."""
    from agenda.db import models  # noqa: F401  (registers tables on Base)

    Base.metadata.create_all(bind=engine)
