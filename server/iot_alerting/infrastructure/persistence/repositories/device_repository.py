from __future__ import annotations
"""server/iot_alerting/infrastructure/persistence/repositories/device_repository.py
~~~~~~~~~~~~~~~~~~~~~~~~
Repo devices. Côté alerte, seul l'accès "sonde" est utilisé (SensorLookup).
"""
import datetime as dt
import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from iot_alerting.core.utils.ids import as_uuid
from iot_alerting.domain.enums import DeviceKind
from iot_alerting.infrastructure.persistence.database.models.device import Device


class DeviceRepository:
    def __init__(self, session: Session):
        self.s = session

    def get(self, device_id) -> Optional[Device]:
        did = as_uuid(device_id)
        return self.s.get(Device, did) if did else None

    def get_sensor(self, sensor_id) -> Optional[Device]:
        d = self.get(sensor_id)
        if d is None or d.kind != DeviceKind.SENSOR.value:
            return None
        return d

    def sensor_exists(self, sensor_id) -> bool:
        sid = as_uuid(sensor_id)
        if sid is None:
            return False
        q = select(Device.id).where(Device.id == sid, Device.kind == DeviceKind.SENSOR.value).limit(1)
        return self.s.scalar(q) is not None

    def get_sensor_by_name(self, name: str) -> Optional[Device]:
        q = select(Device).where(Device.name == name, Device.kind == DeviceKind.SENSOR.value).limit(1)
        return self.s.scalar(q)

    def add_sensor(
        self,
        *,
        name: str,
        sensor_type: str | None = None,
        unit: str | None = None,
        location_id=None,
        range_min: Decimal | None = None,
        range_max: Decimal | None = None,
        is_active: bool = True,
    ) -> Device:
        d = Device(
            id=uuid.uuid4(),
            kind=DeviceKind.SENSOR.value,
            name=name,
            sensor_type=sensor_type,
            unit=unit,
            location_id=location_id,
            range_min=range_min,
            range_max=range_max,
            is_active=is_active,
        )
        self.s.add(d)
        self.s.flush()
        return d

    def add_actuator(self, *, name: str, location_id=None, is_active: bool = True) -> Device:
        d = Device(
            id=uuid.uuid4(),
            kind=DeviceKind.ACTUATOR.value,
            name=name,
            location_id=location_id,
            is_active=is_active,
        )
        self.s.add(d)
        self.s.flush()
        return d

    def mark_evaluated(self, device: Device, at: dt.datetime) -> None:
        device.last_evaluated_at = at
        self.s.add(device)
