# server/tests/unit/test_provision_sensors.py
import configparser
import importlib.util
from decimal import Decimal
from pathlib import Path

import pytest

from iot_alerting.infrastructure.persistence.repositories.device_repository import DeviceRepository
from iot_alerting.infrastructure.persistence.repositories.threshold_repository import ThresholdRepository

pytestmark = pytest.mark.unit

SCRIPT = Path(__file__).resolve().parents[2] / "scripts" / "provision_sensors.py"

INI = """
[sensor:temp-serre-1]
type = temperature
unit = °C
range_min = -20
range_max = 60
threshold.minimum.warning = 5
threshold.maximum.warning = 35
threshold.maximum.alert = 40
"""


@pytest.fixture(scope="module")
def prov():
    spec = importlib.util.spec_from_file_location("provision_sensors", SCRIPT)
    mod = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(mod)
    return mod


def _cfg(text: str) -> configparser.ConfigParser:
    cfg = configparser.ConfigParser(interpolation=None)
    cfg.read_string(text)
    return cfg


def test_parse_sensors(prov):
    [sensor] = prov.parse_sensors(_cfg(INI))
    assert sensor["name"] == "temp-serre-1"
    assert sensor["range_max"] == Decimal("60")
    assert len(sensor["thresholds"]) == 3


def test_invalid_threshold_key_is_refused(prov):
    with pytest.raises(SystemExit):
        prov.parse_sensors(_cfg("[sensor:x]\nthreshold.sideways = 3\n"))


def test_provision_is_idempotent(prov, session):
    first = prov.provision(_cfg(INI), session)
    assert first == {"sensors_created": 1, "thresholds_created": 3, "thresholds_unchanged": 0}

    again = prov.provision(_cfg(INI), session)
    assert again == {"sensors_created": 0, "thresholds_created": 0, "thresholds_unchanged": 3}

    sensor = DeviceRepository(session).get_sensor_by_name("temp-serre-1")
    assert len(ThresholdRepository(session).list_active_by_sensor(sensor.id)) == 3


def test_new_value_replaces_active_threshold(prov, session):
    prov.provision(_cfg(INI), session)
    stats = prov.provision(_cfg(INI.replace("maximum.warning = 35", "maximum.warning = 30")), session)
    assert stats["thresholds_created"] == 1

    sensor = DeviceRepository(session).get_sensor_by_name("temp-serre-1")
    th = ThresholdRepository(session).get_active_by_sensor_and_kind(sensor.id, "maximum", "warning")
    assert th.value == Decimal("30")


@pytest.mark.parametrize(
    "low,warn,high",
    [("45", "60", "70"), ("1", "3", "4")],
    ids=["plage-montante", "plage-descendante"],
)
def test_range_can_move_past_current_bounds_in_one_run(prov, session, low, warn, high):
    prov.provision(_cfg(INI), session)
    moved = (
        INI.replace("minimum.warning = 5", f"minimum.warning = {low}")
        .replace("maximum.warning = 35", f"maximum.warning = {warn}")
        .replace("maximum.alert = 40", f"maximum.alert = {high}")
    )

    stats = prov.provision(_cfg(moved), session)

    assert stats["thresholds_created"] == 3
    sensor = DeviceRepository(session).get_sensor_by_name("temp-serre-1")
    active = {
        (t.bound_kind, t.severity): t.value
        for t in ThresholdRepository(session).list_active_by_sensor(sensor.id)
    }
    assert active == {
        ("minimum", "warning"): Decimal(low),
        ("maximum", "warning"): Decimal(warn),
        ("maximum", "alert"): Decimal(high),
    }


def test_guard_refuses_without_env(prov, monkeypatch, tmp_path):
    monkeypatch.delenv("PROVISION_SENSORS", raising=False)
    ini = tmp_path / "s.ini"
    ini.write_text(INI, encoding="utf-8")
    with pytest.raises(SystemExit):
        prov.provision_from_ini(ini)
