from __future__ import annotations
"""
server/iot_alerting/api/v1/endpoints/thresholds.py
~~~~~~~~~~~~~~~~~~~~~~~~
CRUD des seuils d'une sonde.

- POST /thresholds                 : crée (et active par défaut) un seuil
- PUT  /thresholds/{id}            : change valeur + état actif
- PUT  /thresholds/{id}/toggle     : bascule actif/inactif
- DELETE /thresholds/{id}          : 409 si une alerte ouverte le référence
- GET  /sensors/{id}/thresholds    : tous les seuils (actifs et inactifs)

Les erreurs métier (422/404/409/503) sont traduites par core.middleware.
Handlers synchrones : l'attente du verrou de sonde est bloquante.
"""

import uuid

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from iot_alerting.api.schemas.threshold import ThresholdCreateIn, ThresholdUpdateIn
from iot_alerting.api.v1.serializers.threshold import serialize_threshold
from iot_alerting.application.services.threshold_service import ThresholdService
from iot_alerting.infrastructure.persistence.database.session import get_db

router = APIRouter()


@router.get("/sensors/{sensor_id}/thresholds")
def list_sensor_thresholds(sensor_id: uuid.UUID, db: Session = Depends(get_db)) -> list[dict]:
    return [serialize_threshold(t) for t in ThresholdService(db).list_for_sensor(sensor_id)]


@router.get("/thresholds/{threshold_id}")
def get_threshold(threshold_id: uuid.UUID, db: Session = Depends(get_db)) -> dict:
    return serialize_threshold(ThresholdService(db).get_threshold(threshold_id))


@router.post("/thresholds", status_code=status.HTTP_201_CREATED)
def create_threshold(payload: ThresholdCreateIn, db: Session = Depends(get_db)) -> dict:
    th = ThresholdService(db).create_threshold(
        sensor_id=payload.sensor_id,
        bound_kind=payload.bound_kind,
        severity=payload.severity,
        value=payload.value,
        active=payload.active,
    )
    return serialize_threshold(th)


@router.put("/thresholds/{threshold_id}")
def update_threshold(
    threshold_id: uuid.UUID,
    payload: ThresholdUpdateIn,
    db: Session = Depends(get_db),
) -> dict:
    th = ThresholdService(db).update_threshold(threshold_id, value=payload.value, active=payload.active)
    return serialize_threshold(th)


@router.put("/thresholds/{threshold_id}/toggle")
def toggle_threshold(threshold_id: uuid.UUID, db: Session = Depends(get_db)) -> dict:
    return serialize_threshold(ThresholdService(db).toggle_threshold(threshold_id))


@router.delete("/thresholds/{threshold_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_threshold(threshold_id: uuid.UUID, db: Session = Depends(get_db)) -> Response:
    ThresholdService(db).delete_threshold(threshold_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
