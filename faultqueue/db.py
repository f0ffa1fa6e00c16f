"""SQLAlchemy engine and session handling for the fault queue tables."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from sqlalchemy import Engine, create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from faultqueue.config import load_config
from faultqueue.logging import get_logger

logger = get_logger(__name__)


class Base(DeclarativeBase):
    pass


metadata = Base.metadata


@dataclass(slots=True)
class _EngineState:
    url: str
    engine: Engine
    sessions: sessionmaker[Session]


_state: _EngineState | None = None


def _prepare_sqlite_file(database_url: str) -> None:
    url = make_url(database_url)
    if not url.drivername.startswith("sqlite") or url.database in (None, "", ":memory:"):
        return
    Path(url.database).expanduser().resolve().parent.mkdir(parents=True, exist_ok=True)


def _open(database_url: str) -> _EngineState:
    is_sqlite = make_url(database_url).drivername.startswith("sqlite")
    if is_sqlite:
        _prepare_sqlite_file(database_url)
    engine = create_engine(
        database_url,
        connect_args={"check_same_thread": False} if is_sqlite else {},
    )
    sessions = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    logger.debug("event=database.open url=%s", engine.url.render_as_string(hide_password=True))
    return _EngineState(url=database_url, engine=engine, sessions=sessions)


def _current() -> _EngineState:
    """Return the engine for the configured ``DATABASE_URL``, reopening it if the URL changed."""

    global _state
    database_url = load_config().database.url
    if _state is not None and _state.url == database_url:
        return _state
    _close()
    _state = _open(database_url)
    return _state


def _close() -> None:
    global _state
    if _state is not None:
        _state.engine.dispose()
    _state = None


def get_session() -> Session:
    return _current().sessions()


@contextmanager
def session_scope() -> Iterator[Session]:
    """Yield a session that commits on success and rolls back on error."""

    session = get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db() -> None:
    """Create the fault queue tables if they do not exist yet."""

    from faultqueue import models  # noqa: F401

    Base.metadata.create_all(bind=_current().engine, checkfirst=True)
    logger.debug("event=database.bootstrap tables=%d", len(Base.metadata.tables))


def reset_engine_for_tests() -> None:
    """Dispose the cached engine so the next call picks up a fresh ``DATABASE_URL``."""

    _close()


__all__ = [
    "Base",
    "get_session",
    "init_db",
    "metadata",
    "reset_engine_for_tests",
    "session_scope",
]
