from __future__ import annotations
"""server/iot_alerting/infrastructure/persistence/repositories/reading_repository.py
~~~~~~~~~~~~~~~~~~~~~~~~
Repo readings (écriture seule + lecture des derniers relevés).
"""
import datetime as dt
import uuid
from decimal import Decimal

from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from iot_alerting.domain.enums import ReadingKind
from iot_alerting.infrastructure.persistence.database.models.reading import Reading
from iot_alerting.core.utils.ids import as_uuid


class ReadingRepository:
    def __init__(self, session: Session):
        self.s = session

    def add(self, *, sensor_id, value: Decimal, timestamp: dt.datetime, kind=ReadingKind.AUTOMATIC) -> Reading:
        r = Reading(
            id=uuid.uuid4(),
            sensor_id=as_uuid(sensor_id),
            value=value,
            timestamp=timestamp,
            kind=ReadingKind.parse(kind).value,
        )
        self.s.add(r)
        self.s.flush()
        return r

    def list_recent_by_sensor(self, sensor_id, limit: int = 50) -> list[Reading]:
        q = (
            select(Reading)
            .where(Reading.sensor_id == as_uuid(sensor_id))
            .order_by(desc(Reading.timestamp))
            .limit(limit)
        )
        return list(self.s.scalars(q).all())
