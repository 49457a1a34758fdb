from __future__ import annotations
"""
server/iot_alerting/api/schemas/reading.py
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Payload d'ingestion d'un relevé.

La finitude de `value` est contrôlée par le service (422 invalid_reading),
pour que l'API et la tâche Celery partagent la même règle.
"""

import datetime as dt
import uuid
from typing import Optional

from pydantic import BaseModel, field_validator

from iot_alerting.domain.enums import ReadingKind


class ReadingIn(BaseModel):
    sensor_id: uuid.UUID
    value: float
    timestamp: Optional[dt.datetime] = None
    kind: ReadingKind = ReadingKind.AUTOMATIC

    @field_validator("kind", mode="before")
    @classmethod
    def _norm_kind(cls, v):
        return ReadingKind.parse(v)
