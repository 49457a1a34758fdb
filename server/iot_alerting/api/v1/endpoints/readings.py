from __future__ import annotations
"""
server/iot_alerting/api/v1/endpoints/readings.py
~~~~~~~~~~~~~~~~~~~~~~~~
POST /readings : ingestion synchrone d'un relevé + évaluation.
GET  /sensors/{id}/readings : derniers relevés (plus récent d'abord).

La réponse indique les alertes ouvertes et résolues par ce relevé
(`evaluated=false` si le relevé est antérieur au dernier relevé évalué).
"""

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from iot_alerting.api.schemas.reading import ReadingIn
from iot_alerting.api.v1.serializers.reading import serialize_ingest_result, serialize_reading
from iot_alerting.application.services.reading_service import ReadingService
from iot_alerting.infrastructure.persistence.database.session import get_db

router = APIRouter()


@router.post("/readings", status_code=status.HTTP_201_CREATED)
def ingest_reading(payload: ReadingIn, db: Session = Depends(get_db)) -> dict:
    res = ReadingService(db).ingest_reading(
        sensor_id=payload.sensor_id,
        value=payload.value,
        timestamp=payload.timestamp,
        kind=payload.kind,
    )
    return serialize_ingest_result(res)


@router.get("/sensors/{sensor_id}/readings")
def list_sensor_readings(
    sensor_id: uuid.UUID,
    limit: int = Query(50, ge=1, le=1000),
    db: Session = Depends(get_db),
) -> list[dict]:
    return [serialize_reading(r) for r in ReadingService(db).recent_for_sensor(sensor_id, limit=limit)]
