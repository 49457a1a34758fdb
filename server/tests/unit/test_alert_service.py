# server/tests/unit/test_alert_service.py
import datetime as dt
import uuid

import pytest

from iot_alerting.application.services.alert_service import AlertService
from iot_alerting.application.services.reading_service import ReadingService
from iot_alerting.domain.errors import NotFoundError
from iot_alerting.infrastructure.persistence.repositories.alert_repository import AlertRepository

pytestmark = pytest.mark.unit


@pytest.fixture
def open_alert(session, make_sensor, make_threshold):
    sensor = make_sensor()
    make_threshold(sensor.id, "maximum", 35)
    return ReadingService(session).ingest_reading(sensor.id, 40).opened[0]


def test_acknowledge_then_resolve(session, open_alert):
    svc = AlertService(session)

    a = svc.acknowledge_alert(open_alert.id, comment="technicien prévenu")
    assert a.status == "acknowledged"
    assert a.acknowledged_at is not None
    assert a.message.endswith(" - technicien prévenu")

    a = svc.resolve_alert(open_alert.id)
    assert a.status == "resolved"
    assert a.acknowledged_at is not None
    assert a.resolved_at is not None


def test_resolve_is_idempotent(session, open_alert):
    svc = AlertService(session)
    first = svc.resolve_alert(open_alert.id, comment="fixé")
    resolved_at = first.resolved_at
    message = first.message

    again = svc.resolve_alert(open_alert.id, comment="encore")
    assert again.resolved_at == resolved_at
    assert again.message == message


def test_acknowledge_resolved_alert_is_noop(session, open_alert):
    svc = AlertService(session)
    svc.resolve_alert(open_alert.id)
    a = svc.acknowledge_alert(open_alert.id)
    assert a.status == "resolved"
    assert a.acknowledged_at is None


def test_unknown_alert(session):
    svc = AlertService(session)
    with pytest.raises(NotFoundError):
        svc.acknowledge_alert(uuid.uuid4())
    with pytest.raises(NotFoundError):
        svc.resolve_alert("not-a-uuid")
    with pytest.raises(NotFoundError):
        svc.get_details(uuid.uuid4())


def test_details_include_sensor_and_threshold(session, open_alert):
    ctx = AlertService(session).get_details(open_alert.id)
    assert ctx.alert.id == open_alert.id
    assert ctx.sensor.name == "temp-serre-1"
    assert ctx.threshold.id == open_alert.threshold_id


def test_list_for_sensor_filters(session, make_sensor, make_threshold):
    sensor = make_sensor()
    make_threshold(sensor.id, "maximum", 35)
    make_threshold(sensor.id, "minimum", 15)
    readings = ReadingService(session)
    t0 = dt.datetime(2024, 3, 1, 9, 0, tzinfo=dt.timezone.utc)
    readings.ingest_reading(sensor.id, 40, timestamp=t0)
    readings.ingest_reading(sensor.id, 10, timestamp=t0 + dt.timedelta(minutes=1))

    svc = AlertService(session)
    assert len(svc.list_for_sensor(sensor.id)) == 2
    assert [a.bound_kind for a in svc.list_for_sensor(sensor.id, status="active")] == ["minimum"]
    assert [a.status for a in svc.list_for_sensor(sensor.id, bound_kind="max")] == ["resolved"]

    with pytest.raises(NotFoundError):
        svc.list_for_sensor(uuid.uuid4())


def test_summary_counts(session, make_sensor, make_threshold):
    sensor = make_sensor()
    make_threshold(sensor.id, "maximum", 35, severity="warning")
    make_threshold(sensor.id, "maximum", 40, severity="alert")
    opened = ReadingService(session).ingest_reading(sensor.id, 45).opened
    svc = AlertService(session)
    warning = next(a for a in opened if a.severity == "warning")
    alert = next(a for a in opened if a.severity == "alert")
    svc.acknowledge_alert(warning.id)
    assert svc.summary() == {"active": 1, "acknowledged": 1, "resolved_today": 0}

    svc.resolve_alert(alert.id)
    assert svc.summary() == {"active": 0, "acknowledged": 1, "resolved_today": 1}
    assert len(svc.list_recent()) == 2


def test_resolving_one_coexisting_alert_leaves_the_other_active(session, make_sensor, make_threshold):
    sensor = make_sensor()
    make_threshold(sensor.id, "minimum", 15, severity="alert")
    make_threshold(sensor.id, "minimum", 16, severity="warning")
    opened = ReadingService(session).ingest_reading(sensor.id, 14).opened
    alert = next(a for a in opened if a.severity == "alert")
    warning = next(a for a in opened if a.severity == "warning")

    svc = AlertService(session)
    assert svc.resolve_alert(alert.id).status == "resolved"

    other = svc.get_details(warning.id).alert
    assert other.status == "active"
    assert other.resolved_at is None
    assert [a.severity for a in svc.list_for_sensor(sensor.id, status="active")] == ["warning"]


def test_acknowledged_alert_still_counts_as_open_for_the_repository(session, open_alert):
    AlertService(session).acknowledge_alert(open_alert.id)
    repo = AlertRepository(session)

    assert [a.id for a in repo.get_active_by_sensor(open_alert.sensor_id)] == [open_alert.id]
    same = repo.get_active_by_sensor_threshold_severity(
        open_alert.sensor_id, open_alert.threshold_id, open_alert.severity
    )
    assert same.id == open_alert.id
    assert same.status == "acknowledged"
