# server/tests/conftest.py
"""
Conftest *global* pour toute la suite de tests.

Points clés (tests marqués @unit) :
- ENV sûres + DATABASE_URL SQLite in-memory (jamais de Postgres / Redis).
- Celery en mode "eager" (exécution in-process).
- DB SQLite in-memory partagée + Base.create_all, purgée entre deux tests.
- Patch FORT de la pile DB : get_sync_session, SessionLocal, engine
  (module session + modules consommateurs).
- Registre de verrous de sonde neuf (backend mémoire) pour chaque test.
- Fabriques : sonde, seuil ; client FastAPI branché sur la DB SQLite.
"""

import os
import importlib
import pkgutil
from contextlib import contextmanager
from decimal import Decimal

import pytest

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool


# ============================================================================
# Helpers
# ============================================================================
def _is_unit(request: pytest.FixtureRequest) -> bool:
    """True si le test courant est marqué @pytest.mark.unit."""
    return request.node.get_closest_marker("unit") is not None


def pytest_configure(config) -> None:
    """
    S'exécute avant la collecte → pose les ENV lues par Settings() avant
    tout import iot_alerting.*.
    """
    config.addinivalue_line("markers", "unit: tests unitaires (SQLite in-memory, pas de réseau)")
    os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
    os.environ.setdefault("SENSOR_LOCK_BACKEND", "memory")
    os.environ.setdefault("SENSOR_LOCK_WAIT_SEC", "2")
    os.environ.setdefault("LOG_LEVEL", "DEBUG")


# ============================================================================
# UNIT-ONLY: Celery en mode "eager" (tâches exécutées in-process)
# ============================================================================
@pytest.fixture(autouse=True)
def celery_eager(request):
    """
    Active le mode 'eager' de Celery en unit.
    ⚠️ Fixture générateur : il DOIT toujours 'yield', même hors unit.
    """
    if not _is_unit(request):
        yield
        return

    from iot_alerting.workers.celery_app import celery

    prev_always = celery.conf.task_always_eager
    prev_propag = celery.conf.task_eager_propagates
    celery.conf.task_always_eager = True
    celery.conf.task_eager_propagates = True
    try:
        yield
    finally:
        celery.conf.task_always_eager = prev_always
        celery.conf.task_eager_propagates = prev_propag


# ============================================================================
# UNIT-ONLY: DB SQLite in-memory partagée + Base.metadata.create_all
# ============================================================================
@pytest.fixture(scope="session")
def _sqlite_engine_unit():
    """
    Engine in-memory **partagé** entre connexions (StaticPool + check_same_thread=False)
    + activation des contraintes FK sur chaque connexion.
    """
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):  # noqa: ARG001
        dbapi_connection.execute("PRAGMA foreign_keys=ON")

    # Charger tous les modèles avant create_all
    from iot_alerting.infrastructure.persistence.database import base as db_base
    from iot_alerting.infrastructure.persistence.database import models as models_pkg

    for _finder, name, _ispkg in pkgutil.walk_packages(
        models_pkg.__path__, models_pkg.__name__ + "."
    ):
        importlib.import_module(name)

    db_base.Base.metadata.create_all(engine)
    return engine


@pytest.fixture(scope="session")
def _Session_unit(_sqlite_engine_unit):
    """Retourne un sessionmaker lié au moteur SQLite in-memory."""
    return sessionmaker(
        bind=_sqlite_engine_unit,
        future=True,
        autoflush=True,
        expire_on_commit=False,
    )


@pytest.fixture
def Session(request, _Session_unit):
    """
    Fournit un sessionmaker à utiliser comme `with Session() as s:`.
    Skippé s'il est injecté dans un test non marqué @unit.
    """
    if not _is_unit(request):
        pytest.skip("Session fixture is only available for unit tests")
    return _Session_unit


@pytest.fixture
def session(Session):
    """Session ouverte pour la durée du test."""
    with Session() as s:
        yield s


# Purge DB entre tests unitaires (évite les fuites d'état)
@pytest.fixture(autouse=True)
def _clear_db_between_unit_tests(request, _Session_unit):
    """⚠️ Générateur : doit 'yield' aussi hors unit."""
    if not _is_unit(request):
        yield
        return

    yield
    from iot_alerting.infrastructure.persistence.database import base as db_base
    with _Session_unit() as s:
        for table in reversed(db_base.Base.metadata.sorted_tables):
            s.execute(table.delete())
        s.commit()


# ============================================================================
# UNIT-ONLY: Patch DB fort (get_sync_session + SessionLocal + engine)
# ============================================================================
@pytest.fixture(autouse=True)
def patch_db_stack_for_unit(request, monkeypatch, _Session_unit, _sqlite_engine_unit):
    """
    Rend *impossible* l'usage de Postgres pendant les tests unitaires.

    ⚠️ Certains modules figent `get_sync_session` à l'import
    (`from ...session import get_sync_session`) : on patche donc aussi ces
    modules *consommateurs*.
    """
    if not _is_unit(request):
        return

    @contextmanager
    def _fake_get_sync_session():
        with _Session_unit() as s:
            yield s

    sess_mod = importlib.import_module("iot_alerting.infrastructure.persistence.database.session")
    monkeypatch.setattr(sess_mod, "get_sync_session", _fake_get_sync_session)
    monkeypatch.setattr(sess_mod, "get_session", _Session_unit)
    monkeypatch.setattr(sess_mod, "_SessionLocal", _Session_unit)
    monkeypatch.setattr(sess_mod, "_engine", _sqlite_engine_unit)

    to_patch = [
        "iot_alerting.workers.tasks.ingest_tasks",
    ]
    for modname in to_patch:
        m = importlib.import_module(modname)
        monkeypatch.setattr(m, "get_sync_session", _fake_get_sync_session, raising=False)


# ============================================================================
# UNIT-ONLY: verrous de sonde (registre neuf par test)
# ============================================================================
@pytest.fixture(autouse=True)
def sensor_locks(request, monkeypatch):
    """Remplace le singleton de verrous par un registre mémoire vierge."""
    if not _is_unit(request):
        return None

    from iot_alerting.infrastructure.locking import sensor_lock

    locks = sensor_lock.MemorySensorLocks(wait_seconds=2)
    monkeypatch.setattr(sensor_lock, "_locks", locks)
    return locks


# ============================================================================
# Fabriques
# ============================================================================
@pytest.fixture
def make_sensor(session):
    """Crée (et commit) une sonde ; retourne l'objet Device."""
    from iot_alerting.infrastructure.persistence.repositories.device_repository import DeviceRepository

    def _factory(name: str = "temp-serre-1", sensor_type: str = "temperature", unit: str = "°C", **kw):
        d = DeviceRepository(session).add_sensor(name=name, sensor_type=sensor_type, unit=unit, **kw)
        session.commit()
        return d
    return _factory


@pytest.fixture
def make_threshold(session):
    """Crée un seuil via ThresholdService (donc validé)."""
    from iot_alerting.application.services.threshold_service import ThresholdService

    def _factory(sensor_id, bound_kind, value, severity="warning", active=True):
        return ThresholdService(session).create_threshold(
            sensor_id, bound_kind, severity, Decimal(str(value)), active=active
        )
    return _factory


# ============================================================================
# Client FastAPI (DB SQLite)
# ============================================================================
@pytest.fixture
def client(request, _Session_unit):
    if not _is_unit(request):
        pytest.skip("client fixture is only available for unit tests")

    from fastapi.testclient import TestClient

    from iot_alerting.main import app
    from iot_alerting.infrastructure.persistence.database.session import get_db

    def _get_db_override():
        db = _Session_unit()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_db_override
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.pop(get_db, None)
