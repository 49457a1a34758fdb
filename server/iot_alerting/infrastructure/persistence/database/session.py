from __future__ import annotations
"""server/iot_alerting/infrastructure/persistence/database/session.py
~~~~~~~~~~~~~~~~~~~~~~~~
Moteur et sessions SQLAlchemy.

- PostgreSQL (psycopg) en production : index uniques partiels, connect_timeout.
- SQLite pour le développement : clés étrangères activées à chaque connexion
  (un relevé ou un seuil ne peut pas viser une sonde inexistante), base
  in-memory partagée entre connexions.

Les services commit eux-mêmes ; une session rendue ici n'est jamais commitée
à la fermeture.
"""

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, URL
from sqlalchemy.engine.url import make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from iot_alerting.core.config import settings

_engine: Engine | None = None
_SessionLocal: sessionmaker | None = None


def engine_options(url: URL) -> dict:
    """Arguments de create_engine selon le dialecte."""
    backend = url.get_backend_name()
    opts: dict = {"future": True, "pool_pre_ping": True, "connect_args": {}}
    if backend in ("postgresql", "postgres"):
        opts["connect_args"]["connect_timeout"] = int(settings.DB_CONNECT_TIMEOUT)
    elif backend == "sqlite":
        opts["connect_args"]["check_same_thread"] = False
        if (url.database or "").strip() in ("", ":memory:"):
            opts["poolclass"] = StaticPool
    return opts


def _enable_sqlite_fk(dbapi_connection, connection_record) -> None:  # noqa: ARG001
    dbapi_connection.execute("PRAGMA foreign_keys=ON")


def init_engine() -> Engine:
    global _engine
    if _engine is None:
        url = make_url(settings.DATABASE_URL)
        _engine = create_engine(url, **engine_options(url))
        if url.get_backend_name() == "sqlite":
            event.listen(_engine, "connect", _enable_sqlite_fk)
    return _engine


def init_sessionmaker() -> sessionmaker:
    global _SessionLocal
    if _SessionLocal is None:
        # expire_on_commit=False : les services renvoient des objets lus après leur commit
        _SessionLocal = sessionmaker(bind=init_engine(), future=True, autoflush=True, expire_on_commit=False)
    return _SessionLocal


def init_db() -> None:
    """Crée les tables devices / thresholds / readings / alerts et leurs index (idempotent)."""
    from iot_alerting.infrastructure.persistence.database.base import Base

    Base.metadata.create_all(bind=init_engine())


def get_session() -> Session:
    return init_sessionmaker()()


@contextmanager
def get_sync_session() -> Iterator[Session]:
    """`with get_sync_session() as s:` (workers, scripts)."""
    with get_session() as s:
        yield s


def get_db() -> Iterator[Session]:
    """Dépendance FastAPI : `db: Session = Depends(get_db)`."""
    with get_sync_session() as db:
        yield db
