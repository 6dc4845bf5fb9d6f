from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from themepark_booking.config import Settings
from themepark_booking.infrastructure.db.base import Base


def build_engine(settings: Settings) -> Engine:
    if not settings.database_url:
        raise RuntimeError("DATABASE_URL is required for SQL mode")
    if settings.database_url.startswith("sqlite"):
        return create_engine(settings.database_url)
    return create_engine(
        settings.database_url,
        pool_pre_ping=True,
        pool_recycle=3600,
    )


def build_sessionmaker(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(engine, class_=Session, expire_on_commit=False)


def create_schema(engine: Engine) -> None:
    # Registers the mapped tables on Base.metadata.
    from themepark_booking.infrastructure.db import models  # noqa: F401

    Base.metadata.create_all(engine)


@contextmanager
def session_scope(session_maker: sessionmaker[Session]) -> Iterator[Session]:
    with session_maker() as session:
        with session.begin():
            yield session
