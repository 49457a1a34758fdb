from __future__ import annotations
"""
server/iot_alerting/api/schemas/threshold.py
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Schémas Pydantic (v2) pour les endpoints liés aux seuils.

- `bound_kind` accepte "minimum"/"maximum" et les abréviations "min"/"max"
  (casse indifférente), alias entrant `kind`.
- `severity` accepte "warning"/"alert" (casse indifférente).
- La cohérence min < max n'est PAS vérifiée ici : elle dépend des autres
  seuils actifs de la sonde, donc du service.
"""

import uuid
from decimal import Decimal

from pydantic import AliasChoices, BaseModel, Field, field_validator

from iot_alerting.domain.enums import BoundKind, Severity


class ThresholdCreateIn(BaseModel):
    sensor_id: uuid.UUID
    bound_kind: BoundKind = Field(validation_alias=AliasChoices("bound_kind", "kind"))
    severity: Severity = Severity.WARNING
    value: Decimal
    active: bool = Field(default=True, validation_alias=AliasChoices("active", "is_active"))

    @field_validator("bound_kind", mode="before")
    @classmethod
    def _norm_bound_kind(cls, v):
        return BoundKind.parse(v)

    @field_validator("severity", mode="before")
    @classmethod
    def _norm_severity(cls, v):
        return Severity.parse(v)


class ThresholdUpdateIn(BaseModel):
    value: Decimal
    active: bool = Field(validation_alias=AliasChoices("active", "is_active"))
