"""SQLAlchemy engine utilities."""

import os
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""

    pass


def database_path() -> Path:
    """``MIGRAINE_DB_PATH`` if set, otherwise ``migraine.db`` in the current directory."""

    env_path = os.environ.get("MIGRAINE_DB_PATH")
    if env_path:
        return Path(env_path).expanduser().resolve()
    return (Path.cwd() / "migraine.db").resolve()


def get_engine(path: Path | str | None = None) -> Engine:
    """Return an engine bound to a SQLite file at ``path`` (see :func:`database_path`)."""

    db_path = Path(path) if path is not None else database_path()
    return create_engine(
        f"sqlite:///{db_path}",
        connect_args={"check_same_thread": False},
        echo=False,
    )


def init_db(engine: Engine) -> Engine:
    """Create any missing tables on ``engine``."""

    from store import models  # noqa: F401 – ensure model import for metadata

    Base.metadata.create_all(engine)
    return engine
