from __future__ import annotations
"""server/iot_alerting/infrastructure/persistence/database/models/device.py
~~~~~~~~~~~~~~~~~~~~~~~~
Table devices (sondes et actionneurs).

Une seule table taguée par `kind` ("sensor" / "actuator") : colonnes communes
(nom, localisation, actif) + colonnes propres aux sondes, nulles pour un actionneur.
"""
import uuid
import datetime as dt
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, Numeric, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from iot_alerting.infrastructure.persistence.database.base import Base


class Device(Base):
    __tablename__ = "devices"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    kind: Mapped[str] = mapped_column(String(16), index=True)  # sensor, actuator
    name: Mapped[str] = mapped_column(String(200))
    location_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=lambda: dt.datetime.now(dt.timezone.utc))

    # sonde uniquement
    sensor_type: Mapped[str | None] = mapped_column(String(32), nullable=True)
    unit: Mapped[str | None] = mapped_column(String(16), nullable=True)
    range_min: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    range_max: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)

    # horodatage du dernier relevé évalué (ordre d'évaluation par sonde)
    last_evaluated_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
