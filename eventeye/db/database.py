"""
Database connection and session management
"""
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
from eventeye.config import settings

Base = declarative_base()


def build_engine(database_url: str) -> Engine:
    """Create an engine suited to the database URL"""
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        # In-memory SQLite lives in a single connection
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)

    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20
    )


engine = build_engine(settings.DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind: Engine = engine) -> None:
    """Create tables that do not exist yet"""
    # Registers the models on Base.metadata
    from eventeye.db import models  # noqa: F401

    Base.metadata.create_all(bind=bind)


def close_db(bind: Engine = engine) -> None:
    """Dispose pooled connections"""
    bind.dispose()
