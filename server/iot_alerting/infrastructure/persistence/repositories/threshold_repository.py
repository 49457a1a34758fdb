from __future__ import annotations
"""server/iot_alerting/infrastructure/persistence/repositories/threshold_repository.py
~~~~~~~~~~~~~~~~~~~~~~~~
Repo thresholds.

Le repo reçoit une Session gérée par l'appelant et ne commit jamais.
"""
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from iot_alerting.core.utils.datetime import utcnow
from iot_alerting.domain.enums import BoundKind, Severity
from iot_alerting.infrastructure.persistence.database.models.threshold import Threshold
from iot_alerting.core.utils.ids import as_uuid


class ThresholdRepository:
    def __init__(self, session: Session):
        self.s = session

    def get(self, threshold_id) -> Optional[Threshold]:
        tid = as_uuid(threshold_id)
        return self.s.get(Threshold, tid) if tid else None

    def get_active_by_sensor_and_kind(self, sensor_id, bound_kind, severity=None) -> Optional[Threshold]:
        q = select(Threshold).where(
            Threshold.sensor_id == as_uuid(sensor_id),
            Threshold.bound_kind == BoundKind.parse(bound_kind).value,
            Threshold.is_active == True,  # noqa: E712
        )
        if severity is not None:
            q = q.where(Threshold.severity == Severity.parse(severity).value)
        return self.s.scalar(q.order_by(Threshold.created_at).limit(1))

    def list_active_by_sensor(self, sensor_id) -> list[Threshold]:
        q = (
            select(Threshold)
            .where(Threshold.sensor_id == as_uuid(sensor_id), Threshold.is_active == True)  # noqa: E712
            .order_by(Threshold.bound_kind, Threshold.severity)
        )
        return list(self.s.scalars(q).all())

    def get_all_by_sensor(self, sensor_id) -> list[Threshold]:
        q = (
            select(Threshold)
            .where(Threshold.sensor_id == as_uuid(sensor_id))
            .order_by(Threshold.created_at)
        )
        return list(self.s.scalars(q).all())

    def save(self, th: Threshold) -> Threshold:
        th.updated_at = utcnow()
        self.s.add(th)
        # l'id et l'index partiel sont vérifiés tout de suite, pas au commit
        self.s.flush()
        return th

    def delete(self, th: Threshold) -> None:
        self.s.delete(th)
        self.s.flush()
