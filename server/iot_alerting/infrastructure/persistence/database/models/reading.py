from __future__ import annotations
"""server/iot_alerting/infrastructure/persistence/database/models/reading.py
~~~~~~~~~~~~~~~~~~~~~~~~
Table readings (relevés). Immuables une fois écrits.
"""
import uuid
import datetime as dt
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Index, Numeric, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from iot_alerting.infrastructure.persistence.database.base import Base


class Reading(Base):
    __tablename__ = "readings"
    __table_args__ = (
        Index("ix_readings_sensor_ts", "sensor_id", "timestamp"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    sensor_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("devices.id", ondelete="CASCADE"))
    value: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    timestamp: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True))
    kind: Mapped[str] = mapped_column(String(16), default="automatic")  # manual, automatic
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=lambda: dt.datetime.now(dt.timezone.utc))
