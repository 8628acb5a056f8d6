"""
Database engine and session management.

The service runs on PostgreSQL in production and on a local SQLite file
otherwise; tests build their own in-memory engine with engine_for().
"""
from pathlib import Path
from typing import Optional

from sqlalchemy.engine import Engine, make_url
from sqlmodel import Session, SQLModel, create_engine

from teamplanner.config import DATABASE_URL


def engine_for(url: str, **kwargs) -> Engine:
    """Build an engine for url, preparing SQLite file databases."""
    parsed = make_url(url)
    if parsed.get_backend_name() == "sqlite":
        # Requests are served from a threadpool
        kwargs.setdefault("connect_args", {})["check_same_thread"] = False
        if parsed.database and parsed.database != ":memory:":
            Path(parsed.database).parent.mkdir(parents=True, exist_ok=True)
    return create_engine(url, echo=False, **kwargs)


engine = engine_for(DATABASE_URL)


def create_db_and_tables(bind: Optional[Engine] = None):
    """Create the teams, members, matches, availability and date_predictions tables."""
    # Registers the table classes on SQLModel.metadata
    import teamplanner.models  # noqa: F401

    SQLModel.metadata.create_all(bind or engine)


def get_session():
    """Yield a database session."""
    with Session(engine) as session:
        yield session
