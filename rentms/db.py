import os
import sqlite3
from pathlib import Path

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

# Base dir = repository root (one level above the package)
BASE_DIR = Path(__file__).resolve().parent.parent

# Default data dir next to repository root; ensure it exists
DATA_DIR = BASE_DIR / "data"
DATA_DIR.mkdir(parents=True, exist_ok=True)

# Allow overriding via environment variable (tests and deployments). Normalize
# any relative sqlite path to an absolute path under the repository so the
# database does not move with the working directory.
env_database_url = os.getenv("DATABASE_URL")
if env_database_url:
    DATABASE_URL = env_database_url
else:
    DATABASE_URL = f"sqlite:///{(DATA_DIR / 'app.db').as_posix()}"

if DATABASE_URL.startswith("sqlite:///") and ":memory:" not in DATABASE_URL:
    file_path = DATABASE_URL.replace("sqlite:///", "", 1)
    p = Path(file_path)
    if not p.is_absolute():
        p = (BASE_DIR / p).resolve()
    p.parent.mkdir(parents=True, exist_ok=True)
    DATABASE_URL = f"sqlite:///{p.as_posix()}"

_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, echo=False, connect_args=_connect_args)


@event.listens_for(Engine, "connect")
def _set_sqlite_pragma(dbapi_connection, connection_record):
    # bills and complaints reference user rows; enforce that on sqlite too
    if not isinstance(dbapi_connection, sqlite3.Connection):
        return
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL;")
    cursor.execute("PRAGMA foreign_keys=ON;")
    cursor.close()


def init_db():
    # import for side effect: registers every table on SQLModel.metadata
    from . import models  # noqa: F401

    SQLModel.metadata.create_all(engine)


def get_session():
    """FastAPI dependency yielding one session per request."""
    with Session(engine) as session:
        yield session
