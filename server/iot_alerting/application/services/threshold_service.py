from __future__ import annotations
"""server/iot_alerting/application/services/threshold_service.py
~~~~~~~~~~~~~~~~~~~~~~~~
Gestion des seuils d'une sonde.

Création, mise à jour et bascule passent toutes par
ThresholdConsistencyValidator.validate_activation, sous le verrou de la sonde :
la validation et l'évaluation des relevés lisent le même ensemble de seuils
actifs et ne doivent pas se croiser.

Le service est l'unité de travail : il commit en cas de succès et fait un
rollback avant de relever toute erreur.
"""

import logging
import uuid
from contextlib import contextmanager
from decimal import Decimal
from typing import Iterator

from sqlalchemy.orm import Session

from iot_alerting.core.utils.datetime import utcnow
from iot_alerting.domain.enums import BoundKind, Severity
from iot_alerting.domain.errors import InvalidThresholdValueError, NotFoundError, ThresholdInUseError
from iot_alerting.domain.policies import ThresholdCandidate, ThresholdConsistencyValidator, to_decimal
from iot_alerting.infrastructure.locking.sensor_lock import get_sensor_locks
from iot_alerting.infrastructure.persistence.database.models.threshold import Threshold
from iot_alerting.infrastructure.persistence.repositories.alert_repository import AlertRepository
from iot_alerting.infrastructure.persistence.repositories.device_repository import DeviceRepository
from iot_alerting.infrastructure.persistence.repositories.threshold_repository import ThresholdRepository

logger = logging.getLogger(__name__)


class ThresholdService:
    def __init__(self, session: Session, *, locks=None, validator: ThresholdConsistencyValidator | None = None):
        self.s = session
        self.locks = locks or get_sensor_locks()
        self.validator = validator or ThresholdConsistencyValidator()
        self.thresholds = ThresholdRepository(session)
        self.alerts = AlertRepository(session)
        self.sensors = DeviceRepository(session)

    @contextmanager
    def _unit_of_work(self, sensor_id) -> Iterator[None]:
        with self.locks.hold(sensor_id):
            try:
                yield
                self.s.commit()
            except Exception:
                self.s.rollback()
                raise

    def _get_or_404(self, threshold_id) -> Threshold:
        th = self.thresholds.get(threshold_id)
        if th is None:
            raise NotFoundError("threshold", threshold_id)
        return th

    def _apply(self, candidate: ThresholdCandidate) -> None:
        """Valide le candidat et désactive les anciens détenteurs du couple (kind, severity)."""
        current = self.thresholds.list_active_by_sensor(candidate.sensor_id)
        plan = self.validator.validate_activation(candidate.sensor_id, candidate, current)
        for old in plan.to_deactivate:
            old.is_active = False
            # flush avant l'activation du candidat : index partiel d'unicité
            self.thresholds.save(old)
            logger.info(
                "Seuil désactivé (remplacé)",
                extra={"threshold_id": str(old.id), "sensor_id": str(old.sensor_id)},
            )

    # ------------------------------------------------------------------
    # Lecture
    # ------------------------------------------------------------------
    def get_threshold(self, threshold_id) -> Threshold:
        return self._get_or_404(threshold_id)

    def list_for_sensor(self, sensor_id) -> list[Threshold]:
        if not self.sensors.sensor_exists(sensor_id):
            raise NotFoundError("sensor", sensor_id)
        return self.thresholds.get_all_by_sensor(sensor_id)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def create_threshold(self, sensor_id, bound_kind, severity, value, active: bool = True) -> Threshold:
        sensor = self.sensors.get_sensor(sensor_id)
        if sensor is None:
            raise NotFoundError("sensor", sensor_id)

        candidate = ThresholdCandidate(
            sensor_id=sensor.id,
            bound_kind=BoundKind.parse(bound_kind),
            severity=Severity.parse(severity),
            value=to_decimal(value, label="Threshold value", error_cls=InvalidThresholdValueError),
            is_active=bool(active),
        )

        with self._unit_of_work(sensor.id):
            self._apply(candidate)
            now = utcnow()
            th = Threshold(
                id=uuid.uuid4(),
                sensor_id=sensor.id,
                bound_kind=candidate.bound_kind.value,
                severity=candidate.severity.value,
                value=candidate.value,
                is_active=candidate.is_active,
                created_at=now,
                updated_at=now,
            )
            self.thresholds.save(th)
        logger.info("Seuil créé", extra={"threshold_id": str(th.id), "sensor_id": str(sensor.id)})
        return th

    def update_threshold(self, threshold_id, value, active: bool) -> Threshold:
        th = self._get_or_404(threshold_id)
        new_value: Decimal = to_decimal(value, label="Threshold value", error_cls=InvalidThresholdValueError)

        with self._unit_of_work(th.sensor_id):
            self.s.refresh(th)
            candidate = ThresholdCandidate.from_threshold(th, value=new_value, is_active=bool(active))
            self._apply(candidate)
            th.value = new_value
            th.is_active = bool(active)
            self.thresholds.save(th)
        return th

    def toggle_threshold(self, threshold_id) -> Threshold:
        th = self._get_or_404(threshold_id)

        with self._unit_of_work(th.sensor_id):
            self.s.refresh(th)
            candidate = ThresholdCandidate.from_threshold(th, is_active=not th.is_active)
            self._apply(candidate)
            th.is_active = candidate.is_active
            self.thresholds.save(th)
        logger.info(
            "Seuil basculé",
            extra={"threshold_id": str(th.id), "is_active": th.is_active},
        )
        return th

    def delete_threshold(self, threshold_id) -> None:
        th = self._get_or_404(threshold_id)

        with self._unit_of_work(th.sensor_id):
            if self.alerts.count_open_for_threshold(th.id) > 0:
                raise ThresholdInUseError(
                    f"threshold {th.id} is referenced by an open alert and cannot be deleted"
                )
            self.thresholds.delete(th)
