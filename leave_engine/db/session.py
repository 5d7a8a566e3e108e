"""
Database session management
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from leave_engine.core.config import settings
from leave_engine.db.base import Base

connect_args = {}
if settings.DATABASE_URL.startswith("sqlite"):
    # Request handlers run in a threadpool; each uses its own session
    connect_args = {"check_same_thread": False}

engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    connect_args=connect_args,
    echo=False
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_models() -> None:
    """Create all tables for SQLite; other databases are managed by Alembic"""
    import leave_engine.models  # noqa: F401

    if "sqlite" in settings.DATABASE_URL:
        Base.metadata.create_all(bind=engine)
