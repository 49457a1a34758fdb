from __future__ import annotations
"""
server/iot_alerting/api/v1/endpoints/alerts.py
~~~~~~~~~~~~~~~~~~~~~~~~
Consultation et commandes opérateur sur les alertes.

Notes :
- acknowledge / resolve sur une alerte déjà résolue : 200, alerte inchangée.
- acknowledge d'une alerte acquittée : 200, inchangée.
- `comment` (query) est ajouté au message de l'alerte.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from iot_alerting.api.v1.serializers.alert import serialize_alert, serialize_alert_details
from iot_alerting.application.services.alert_service import AlertService
from iot_alerting.domain.enums import AlertStatus, BoundKind
from iot_alerting.infrastructure.persistence.database.session import get_db

router = APIRouter()


@router.get("/alerts")
def list_alerts(
    limit: Optional[int] = Query(None, ge=1, le=1000),
    db: Session = Depends(get_db),
) -> list[dict]:
    return [serialize_alert(a) for a in AlertService(db).list_recent(limit)]


@router.get("/alerts/summary")
def alerts_summary(db: Session = Depends(get_db)) -> dict[str, int]:
    return AlertService(db).summary()


@router.get("/sensors/{sensor_id}/alerts")
def list_sensor_alerts(
    sensor_id: uuid.UUID,
    status: Optional[str] = Query(None),
    bound_kind: Optional[str] = Query(None),
    db: Session = Depends(get_db),
) -> list[dict]:
    try:
        st = AlertStatus.parse(status) if status else None
        bk = BoundKind.parse(bound_kind) if bound_kind else None
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    alerts = AlertService(db).list_for_sensor(sensor_id, status=st, bound_kind=bk)
    return [serialize_alert(a) for a in alerts]


@router.get("/alerts/{alert_id}")
def get_alert(alert_id: uuid.UUID, db: Session = Depends(get_db)) -> dict:
    return serialize_alert_details(AlertService(db).get_details(alert_id))


@router.post("/alerts/{alert_id}/acknowledge")
def acknowledge_alert(
    alert_id: uuid.UUID,
    comment: Optional[str] = Query(None, max_length=500),
    db: Session = Depends(get_db),
) -> dict:
    return serialize_alert(AlertService(db).acknowledge_alert(alert_id, comment))


@router.post("/alerts/{alert_id}/resolve")
def resolve_alert(
    alert_id: uuid.UUID,
    comment: Optional[str] = Query(None, max_length=500),
    db: Session = Depends(get_db),
) -> dict:
    return serialize_alert(AlertService(db).resolve_alert(alert_id, comment))
