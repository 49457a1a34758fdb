from __future__ import annotations
"""server/iot_alerting/application/services/reading_service.py
~~~~~~~~~~~~~~~~~~~~~~~~
Ingestion d'un relevé :
1) rejette une valeur non finie ou hors plage, un type de relevé ou une sonde
   inconnus (avant toute écriture)
2) sous le verrou de la sonde : écrit le relevé, l'évalue, commit
3) un relevé plus ancien que le dernier relevé évalué est conservé mais
   n'est pas évalué (l'ordre d'évaluation par sonde suit les horodatages)
"""

import datetime as dt
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from sqlalchemy.orm import Session

from iot_alerting.core.utils.datetime import as_utc, utcnow
from iot_alerting.domain.enums import ReadingKind
from iot_alerting.domain.errors import InvalidReadingError, NotFoundError
from iot_alerting.domain.policies import to_decimal
from iot_alerting.application.services.evaluation_service import AlertEvaluationEngine
from iot_alerting.infrastructure.locking.sensor_lock import get_sensor_locks
from iot_alerting.infrastructure.persistence.repositories.alert_repository import AlertRepository
from iot_alerting.infrastructure.persistence.repositories.device_repository import DeviceRepository
from iot_alerting.infrastructure.persistence.repositories.reading_repository import ReadingRepository
from iot_alerting.infrastructure.persistence.repositories.threshold_repository import ThresholdRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IngestResult:
    reading: Any
    opened: list = field(default_factory=list)
    resolved: list = field(default_factory=list)
    evaluated: bool = True


class ReadingService:
    def __init__(self, session: Session, *, locks=None):
        self.s = session
        self.locks = locks or get_sensor_locks()
        self.sensors = DeviceRepository(session)
        self.readings = ReadingRepository(session)
        self.engine = AlertEvaluationEngine(
            thresholds=ThresholdRepository(session),
            alerts=AlertRepository(session),
        )

    def ingest_reading(
        self,
        sensor_id,
        value,
        timestamp: Optional[dt.datetime] = None,
        kind=ReadingKind.AUTOMATIC,
    ) -> IngestResult:
        decimal_value = to_decimal(value)
        ts = as_utc(timestamp) or utcnow()
        try:
            kind = ReadingKind.parse(kind)
        except ValueError:
            raise InvalidReadingError(f"Reading kind {kind!r} is not supported") from None

        sensor = self.sensors.get_sensor(sensor_id)
        if sensor is None:
            raise NotFoundError("sensor", sensor_id)

        with self.locks.hold(sensor.id):
            try:
                self.s.refresh(sensor)
                reading = self.readings.add(sensor_id=sensor.id, value=decimal_value, timestamp=ts, kind=kind)

                last = as_utc(sensor.last_evaluated_at)
                if last is not None and ts < last:
                    logger.info(
                        "Relevé antérieur au dernier relevé évalué, non évalué",
                        extra={"sensor_id": str(sensor.id), "reading_ts": ts.isoformat()},
                    )
                    self.s.commit()
                    return IngestResult(reading=reading, evaluated=False)

                result = self.engine.evaluate(sensor.id, reading)
                self.sensors.mark_evaluated(sensor, ts)
                self.s.commit()
            except Exception:
                self.s.rollback()
                raise

        return IngestResult(reading=reading, opened=result.opened, resolved=result.resolved)

    def recent_for_sensor(self, sensor_id, limit: int = 50):
        if not self.sensors.sensor_exists(sensor_id):
            raise NotFoundError("sensor", sensor_id)
        return self.readings.list_recent_by_sensor(sensor_id, limit=limit)
