# server/tests/unit/test_session.py
import pytest
from sqlalchemy import text
from sqlalchemy.engine.url import make_url
from sqlalchemy.pool import StaticPool

from iot_alerting.core.config import settings
from iot_alerting.infrastructure.persistence.database.session import engine_options, get_db

pytestmark = pytest.mark.unit


def test_postgres_gets_connect_timeout():
    opts = engine_options(make_url("postgresql+psycopg://u:p@db:5432/iot"))
    assert opts["connect_args"] == {"connect_timeout": int(settings.DB_CONNECT_TIMEOUT)}
    assert "poolclass" not in opts


def test_sqlite_in_memory_is_shared_between_connections():
    opts = engine_options(make_url("sqlite+pysqlite:///:memory:"))
    assert opts["connect_args"] == {"check_same_thread": False}
    assert opts["poolclass"] is StaticPool


def test_sqlite_file_uses_default_pool():
    opts = engine_options(make_url("sqlite:///./iot.db"))
    assert "poolclass" not in opts


def test_get_db_yields_a_working_session():
    gen = get_db()
    db = next(gen)
    assert db.execute(text("SELECT 1")).scalar() == 1
    gen.close()
