from __future__ import annotations
"""server/iot_alerting/infrastructure/persistence/repositories/alert_repository.py
~~~~~~~~~~~~~~~~~~~~~~~~
Repo alerts.

Une alerte est "ouverte" tant qu'elle n'est pas résolue (active ou acquittée).

La dé-duplication (get_active_by_sensor_threshold_severity) et la résolution
automatique (get_active_by_sensor) portent sur les alertes *ouvertes*, pas
seulement sur le statut `active` : une alerte acquittée bloque l'ouverture
d'un doublon et se résout d'elle-même au retour à la normale. L'index
unique partiel ne couvre que `active` ; l'unicité des alertes acquittées
repose sur le verrou de sonde.

Le repo ne commit pas : c'est le rôle du service appelant.
"""
import datetime as dt
from typing import Optional

from sqlalchemy import desc, func, select
from sqlalchemy.orm import Session

from iot_alerting.domain.enums import OPEN_STATUSES, AlertStatus, BoundKind, Severity
from iot_alerting.infrastructure.persistence.database.models.alert import Alert
from iot_alerting.core.utils.ids import as_uuid


class AlertRepository:
    """Repository pour la gestion des alertes."""

    def __init__(self, session: Session):
        """Initialise le repository avec une session SQLAlchemy."""
        self.s = session

    def get(self, alert_id) -> Optional[Alert]:
        aid = as_uuid(alert_id)
        return self.s.get(Alert, aid) if aid else None

    def get_active_by_sensor_threshold_severity(self, sensor_id, threshold_id, severity) -> Optional[Alert]:
        """Alerte ouverte pour le triplet (sonde, seuil, sévérité), s'il y en a une."""
        q = (
            select(Alert)
            .where(
                Alert.sensor_id == as_uuid(sensor_id),
                Alert.threshold_id == as_uuid(threshold_id),
                Alert.severity == Severity.parse(severity).value,
                Alert.status.in_(OPEN_STATUSES),
            )
            .order_by(Alert.created_at)
            .limit(1)
        )
        return self.s.scalar(q)

    def get_active_by_sensor(self, sensor_id) -> list[Alert]:
        """Toutes les alertes ouvertes d'une sonde, tous seuils confondus."""
        q = (
            select(Alert)
            .where(Alert.sensor_id == as_uuid(sensor_id), Alert.status.in_(OPEN_STATUSES))
            .order_by(Alert.created_at)
        )
        return list(self.s.scalars(q).all())

    def list_by_sensor(self, sensor_id, *, status=None, bound_kind=None) -> list[Alert]:
        q = select(Alert).where(Alert.sensor_id == as_uuid(sensor_id))
        if status is not None:
            q = q.where(Alert.status == AlertStatus.parse(status).value)
        if bound_kind is not None:
            q = q.where(Alert.bound_kind == BoundKind.parse(bound_kind).value)
        return list(self.s.scalars(q.order_by(desc(Alert.created_at))).all())

    def list_recent(self, limit: int = 100) -> list[Alert]:
        q = select(Alert).order_by(desc(Alert.created_at)).limit(limit)
        return list(self.s.scalars(q).all())

    def count_open_for_threshold(self, threshold_id) -> int:
        q = select(func.count()).select_from(Alert).where(
            Alert.threshold_id == as_uuid(threshold_id),
            Alert.status.in_(OPEN_STATUSES),
        )
        return int(self.s.scalar(q) or 0)

    def count_by_status(self, status) -> int:
        q = select(func.count()).select_from(Alert).where(Alert.status == AlertStatus.parse(status).value)
        return int(self.s.scalar(q) or 0)

    def count_resolved_since(self, since: dt.datetime) -> int:
        q = select(func.count()).select_from(Alert).where(
            Alert.status == AlertStatus.RESOLVED.value,
            Alert.resolved_at >= since,
        )
        return int(self.s.scalar(q) or 0)

    def save(self, alert: Alert) -> Alert:
        self.s.add(alert)
        # ✅ id utilisable tout de suite (logs, réponse API) ; l'index partiel est vérifié ici
        self.s.flush()
        return alert
