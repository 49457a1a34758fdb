from __future__ import annotations
"""server/iot_alerting/application/services/evaluation_service.py
~~~~~~~~~~~~~~~~~~~~~~~~
Évaluation d'un relevé contre les seuils de sa sonde :
- lit les seuils actifs de la sonde
- ouvre une alerte par seuil violé (anti-doublon par (sonde, seuil, sévérité))
- résout les alertes ouvertes dont le seuil d'origine n'est plus violé,
  chacune contre la valeur *actuelle* de son propre seuil

Le moteur ne commit pas et ne verrouille pas : l'appelant (ReadingService,
tâche Celery) tient le verrou de la sonde et commit.
"""

import logging
import uuid
from dataclasses import dataclass, field

from sqlalchemy.exc import SQLAlchemyError

from iot_alerting.core.utils.datetime import format_reading_ts, utcnow
from iot_alerting.domain import lifecycle
from iot_alerting.domain.enums import AlertStatus, BoundKind, Severity
from iot_alerting.domain.errors import NotFoundError, StaleReferenceWarning
from iot_alerting.domain.policies import describe_breach, is_breached, is_recovered, to_decimal
from iot_alerting.infrastructure.persistence.database.models.alert import Alert
from iot_alerting.infrastructure.persistence.repositories.alert_repository import AlertRepository
from iot_alerting.infrastructure.persistence.repositories.device_repository import DeviceRepository
from iot_alerting.infrastructure.persistence.repositories.threshold_repository import ThresholdRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EvaluationResult:
    opened: list = field(default_factory=list)
    resolved: list = field(default_factory=list)


def build_alert_message(reading_value, reading_ts, bound_kind, severity, threshold_value) -> str:
    return (
        f"Value {reading_value} measured on {format_reading_ts(reading_ts)} "
        f"{describe_breach(bound_kind)} the {Severity.parse(severity).value} "
        f"threshold ({threshold_value})"
    )


class AlertEvaluationEngine:
    """
    Moteur d'évaluation (une instance par unité de travail).

    Les repositories sont injectés explicitement ; `sensors` est optionnel et
    ne sert qu'à rejeter un relevé d'une sonde inconnue avant toute écriture.
    """

    def __init__(
        self,
        thresholds: ThresholdRepository,
        alerts: AlertRepository,
        sensors: DeviceRepository | None = None,
    ) -> None:
        self.thresholds = thresholds
        self.alerts = alerts
        self.sensors = sensors

    def evaluate(self, sensor_id, reading) -> EvaluationResult:
        value = to_decimal(reading.value)
        if self.sensors is not None and not self.sensors.sensor_exists(sensor_id):
            raise NotFoundError("sensor", sensor_id)

        opened = self._open_breaches(sensor_id, value, reading.timestamp)
        opened_ids = {a.id for a in opened}
        resolved = self._resolve_recoveries(sensor_id, value, reading.timestamp, skip=opened_ids)

        if opened or resolved:
            logger.info(
                "Évaluation relevé",
                extra={"sensor_id": str(sensor_id), "opened": len(opened), "resolved": len(resolved)},
            )
        return EvaluationResult(opened=opened, resolved=resolved)

    # ------------------------------------------------------------------
    # Étape 2 : violations -> ouverture (idempotente)
    # ------------------------------------------------------------------
    def _open_breaches(self, sensor_id, value, reading_ts) -> list[Alert]:
        opened: list[Alert] = []
        for th in self.thresholds.list_active_by_sensor(sensor_id):
            if not is_breached(th.bound_kind, value, th.value):
                continue

            existing = self.alerts.get_active_by_sensor_threshold_severity(sensor_id, th.id, th.severity)
            if existing is not None:
                continue

            alert = Alert(
                id=uuid.uuid4(),
                sensor_id=th.sensor_id,
                threshold_id=th.id,
                bound_kind=BoundKind.parse(th.bound_kind).value,
                severity=Severity.parse(th.severity).value,
                status=AlertStatus.ACTIVE.value,
                created_at=utcnow(),
                message=build_alert_message(value, reading_ts, th.bound_kind, th.severity, th.value),
            )
            self.alerts.save(alert)
            opened.append(alert)
            logger.info(
                "Alerte ouverte",
                extra={"alert_id": str(alert.id), "threshold_id": str(th.id), "severity": alert.severity},
            )
        return opened

    # ------------------------------------------------------------------
    # Étape 3 : retours à la normale -> résolution automatique
    # ------------------------------------------------------------------
    def _threshold_of(self, alert: Alert):
        try:
            th = self.thresholds.get(alert.threshold_id)
        except SQLAlchemyError as exc:
            raise StaleReferenceWarning(alert.id, alert.threshold_id) from exc
        if th is None:
            raise StaleReferenceWarning(alert.id, alert.threshold_id)
        return th

    def _resolve_recoveries(self, sensor_id, value, reading_ts, *, skip: set) -> list[Alert]:
        resolved: list[Alert] = []
        for alert in self.alerts.get_active_by_sensor(sensor_id):
            if alert.id in skip:
                continue
            try:
                th = self._threshold_of(alert)
            except StaleReferenceWarning as w:
                # une référence cassée ne bloque pas les autres alertes
                logger.warning("Seuil d'origine introuvable, alerte laissée ouverte: %s", w)
                continue

            # bound_kind figé sur l'alerte, valeur courante du seuil
            if not is_recovered(alert.bound_kind, value, th.value):
                continue

            if lifecycle.auto_resolve(alert, reading_ts):
                self.alerts.save(alert)
                resolved.append(alert)
                logger.info("Alerte résolue automatiquement", extra={"alert_id": str(alert.id)})
        return resolved
