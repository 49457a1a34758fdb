from __future__ import annotations
"""server/iot_alerting/application/services/alert_service.py
~~~~~~~~~~~~~~~~~~~~~~~~
Commandes opérateur sur les alertes (acquittement, résolution) + lectures
pour le tableau de bord.

Acquitter ou résoudre une alerte déjà résolue ne fait rien (pas d'erreur) :
les retries opérateur sont sans effet.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy.orm import Session

from iot_alerting.core.config import settings
from iot_alerting.core.utils.datetime import start_of_day
from iot_alerting.domain import lifecycle
from iot_alerting.domain.enums import AlertStatus
from iot_alerting.domain.errors import NotFoundError
from iot_alerting.infrastructure.locking.sensor_lock import get_sensor_locks
from iot_alerting.infrastructure.persistence.database.models.alert import Alert
from iot_alerting.infrastructure.persistence.repositories.alert_repository import AlertRepository
from iot_alerting.infrastructure.persistence.repositories.device_repository import DeviceRepository
from iot_alerting.infrastructure.persistence.repositories.threshold_repository import ThresholdRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AlertWithContext:
    """Alerte + sonde + seuil d'origine (None si le seuil a été supprimé)."""
    alert: Alert
    sensor: Optional[Any]
    threshold: Optional[Any]


class AlertService:
    def __init__(self, session: Session, *, locks=None):
        self.s = session
        self.locks = locks or get_sensor_locks()
        self.alerts = AlertRepository(session)
        self.thresholds = ThresholdRepository(session)
        self.sensors = DeviceRepository(session)

    def _get_or_404(self, alert_id) -> Alert:
        alert = self.alerts.get(alert_id)
        if alert is None:
            raise NotFoundError("alert", alert_id)
        return alert

    def _command(self, alert_id, apply) -> Alert:
        alert = self._get_or_404(alert_id)
        with self.locks.hold(alert.sensor_id):
            try:
                # l'évaluation a pu résoudre l'alerte pendant l'attente du verrou
                self.s.refresh(alert)
                if apply(alert):
                    self.alerts.save(alert)
                self.s.commit()
            except Exception:
                self.s.rollback()
                raise
        return alert

    def acknowledge_alert(self, alert_id, comment: Optional[str] = None) -> Alert:
        alert = self._command(alert_id, lambda a: lifecycle.acknowledge(a, comment))
        logger.info("Acquittement alerte", extra={"alert_id": str(alert.id), "status": alert.status})
        return alert

    def resolve_alert(self, alert_id, comment: Optional[str] = None) -> Alert:
        alert = self._command(alert_id, lambda a: lifecycle.resolve(a, comment))
        logger.info("Résolution alerte", extra={"alert_id": str(alert.id), "status": alert.status})
        return alert

    # ------------------------------------------------------------------
    # Lectures (sans verrou)
    # ------------------------------------------------------------------
    def get_details(self, alert_id) -> AlertWithContext:
        alert = self._get_or_404(alert_id)
        return AlertWithContext(
            alert=alert,
            sensor=self.sensors.get(alert.sensor_id),
            threshold=self.thresholds.get(alert.threshold_id),
        )

    def list_for_sensor(self, sensor_id, status=None, bound_kind=None) -> list[Alert]:
        if not self.sensors.sensor_exists(sensor_id):
            raise NotFoundError("sensor", sensor_id)
        return self.alerts.list_by_sensor(sensor_id, status=status, bound_kind=bound_kind)

    def list_recent(self, limit: int | None = None) -> list[Alert]:
        return self.alerts.list_recent(limit or settings.ALERTS_PAGE_LIMIT)

    def summary(self) -> dict[str, int]:
        return {
            "active": self.alerts.count_by_status(AlertStatus.ACTIVE),
            "acknowledged": self.alerts.count_by_status(AlertStatus.ACKNOWLEDGED),
            "resolved_today": self.alerts.count_resolved_since(start_of_day()),
        }
