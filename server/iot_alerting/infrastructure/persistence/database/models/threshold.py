from __future__ import annotations
"""server/iot_alerting/infrastructure/persistence/database/models/threshold.py
~~~~~~~~~~~~~~~~~~~~~~~~
Table thresholds (seuils).
"""
import uuid
import datetime as dt
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Numeric, String, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from iot_alerting.infrastructure.persistence.database.base import Base


class Threshold(Base):
    __tablename__ = "thresholds"
    __table_args__ = (
        # un seul seuil actif par (sonde, bound_kind, severity)
        Index(
            "ux_thresholds_active_unique",
            "sensor_id", "bound_kind", "severity",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    sensor_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("devices.id", ondelete="CASCADE"), index=True)
    bound_kind: Mapped[str] = mapped_column(String(16))  # minimum, maximum
    severity: Mapped[str] = mapped_column(String(16), default="warning")  # warning, alert
    value: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=lambda: dt.datetime.now(dt.timezone.utc))
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=lambda: dt.datetime.now(dt.timezone.utc))
