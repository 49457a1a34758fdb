from __future__ import annotations
"""server/iot_alerting/infrastructure/persistence/database/models/alert.py
~~~~~~~~~~~~~~~~~~~~~~~~
Table alerts.

bound_kind / severity sont copiés depuis le seuil à la création : une
modification ultérieure du seuil ne réécrit pas l'historique.
Pas de FK vers thresholds : une alerte survit à son seuil.
"""
import uuid
import datetime as dt

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from iot_alerting.infrastructure.persistence.database.base import Base


class Alert(Base):
    __tablename__ = "alerts"
    __table_args__ = (
        # au plus une alerte ACTIVE par (sonde, seuil, sévérité)
        Index(
            "ux_alerts_active_unique",
            "sensor_id", "threshold_id", "severity",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
        Index("ix_alerts_sensor_status", "sensor_id", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    sensor_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("devices.id", ondelete="CASCADE"), nullable=False)
    threshold_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    bound_kind: Mapped[str] = mapped_column(String(16))
    severity: Mapped[str] = mapped_column(String(16), default="warning")
    status: Mapped[str] = mapped_column(String(16), default="active")
    message: Mapped[str] = mapped_column(Text, default="")
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=lambda: dt.datetime.now(dt.timezone.utc))
    acknowledged_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    resolved_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
