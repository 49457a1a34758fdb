# server/tests/unit/test_api_readings_alerts.py
import uuid

import pytest

pytestmark = pytest.mark.unit

BASE = "/api/v1"


@pytest.fixture
def breached(client, make_sensor):
    """Sonde avec un maximum à 35 et une alerte ouverte (relevé à 40)."""
    sensor = make_sensor()
    client.post(
        f"{BASE}/thresholds",
        json={"sensor_id": str(sensor.id), "bound_kind": "maximum", "value": 35},
    )
    r = client.post(
        f"{BASE}/readings",
        json={"sensor_id": str(sensor.id), "value": 40, "timestamp": "2024-03-01T09:00:00Z"},
    )
    assert r.status_code == 201, r.text
    return sensor, r.json()


def test_ingest_opens_alert(breached):
    _sensor, body = breached
    assert body["evaluated"] is True
    assert body["reading"]["value"] == 40.0
    assert len(body["opened"]) == 1
    assert body["opened"][0]["status"] == "active"
    assert body["resolved"] == []


def test_ingest_recovery_resolves(client, breached):
    sensor, body = breached
    r = client.post(
        f"{BASE}/readings",
        json={"sensor_id": str(sensor.id), "value": 30, "timestamp": "2024-03-01T09:05:00Z"},
    )
    assert r.status_code == 201
    assert [a["id"] for a in r.json()["resolved"]] == [body["opened"][0]["id"]]


def test_ingest_unknown_sensor(client):
    r = client.post(f"{BASE}/readings", json={"sensor_id": str(uuid.uuid4()), "value": 20})
    assert r.status_code == 404


def test_ingest_value_outside_stored_range_returns_422(client, make_sensor):
    sensor = make_sensor()
    r = client.post(f"{BASE}/readings", json={"sensor_id": str(sensor.id), "value": 1e9})
    assert r.status_code == 422
    assert r.json()["detail"]["code"] == "invalid_reading"


def test_recent_readings(client, breached):
    sensor, _ = breached
    r = client.get(f"{BASE}/sensors/{sensor.id}/readings", params={"limit": 10})
    assert r.status_code == 200
    assert [x["value"] for x in r.json()] == [40.0]


def test_acknowledge_then_resolve_via_api(client, breached):
    _sensor, body = breached
    alert_id = body["opened"][0]["id"]

    r = client.post(f"{BASE}/alerts/{alert_id}/acknowledge", params={"comment": "vu"})
    assert r.status_code == 200
    assert r.json()["status"] == "acknowledged"
    assert r.json()["message"].endswith(" - vu")

    r = client.post(f"{BASE}/alerts/{alert_id}/resolve")
    assert r.status_code == 200
    resolved = r.json()
    assert resolved["status"] == "resolved"
    assert resolved["acknowledged_at"] is not None
    assert resolved["resolved_at"] is not None

    # rejouer ne change rien
    again = client.post(f"{BASE}/alerts/{alert_id}/resolve").json()
    assert again["resolved_at"] == resolved["resolved_at"]


def test_alert_details_and_lists(client, breached):
    sensor, body = breached
    alert_id = body["opened"][0]["id"]

    details = client.get(f"{BASE}/alerts/{alert_id}").json()
    assert details["sensor"]["name"] == "temp-serre-1"
    assert details["threshold"]["bound_kind"] == "maximum"

    assert [a["id"] for a in client.get(f"{BASE}/alerts").json()] == [alert_id]
    assert len(client.get(f"{BASE}/sensors/{sensor.id}/alerts", params={"status": "active"}).json()) == 1
    assert client.get(f"{BASE}/sensors/{sensor.id}/alerts", params={"status": "bogus"}).status_code == 422
    assert client.get(f"{BASE}/alerts/summary").json() == {"active": 1, "acknowledged": 0, "resolved_today": 0}


def test_unknown_alert_returns_404(client):
    assert client.post(f"{BASE}/alerts/{uuid.uuid4()}/acknowledge").status_code == 404
    assert client.get(f"{BASE}/alerts/{uuid.uuid4()}").status_code == 404
