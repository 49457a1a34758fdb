from __future__ import annotations
"""server/iot_alerting/domain/enums.py
~~~~~~~~~~~~~~~~~~~~~~~~
Énumérations métier (valeurs stockées telles quelles en base, colonnes String).
"""

from enum import Enum


class BoundKind(str, Enum):
    """Côté de la plage acceptable gardé par un seuil."""
    MINIMUM = "minimum"
    MAXIMUM = "maximum"

    @property
    def opposite(self) -> "BoundKind":
        return BoundKind.MAXIMUM if self is BoundKind.MINIMUM else BoundKind.MINIMUM

    @classmethod
    def parse(cls, raw) -> "BoundKind":
        """Accepte l'enum, "minimum"/"maximum" ou les abréviations "min"/"max"."""
        if isinstance(raw, cls):
            return raw
        v = str(raw or "").strip().lower()
        v = {"min": "minimum", "max": "maximum"}.get(v, v)
        return cls(v)


class Severity(str, Enum):
    """Criticité, axe indépendant du BoundKind."""
    WARNING = "warning"
    ALERT = "alert"

    @classmethod
    def parse(cls, raw) -> "Severity":
        if isinstance(raw, cls):
            return raw
        return cls(str(raw or "").strip().lower())


class AlertStatus(str, Enum):
    """Statuts possibles des alertes."""
    ACTIVE = "active"
    ACKNOWLEDGED = "acknowledged"
    RESOLVED = "resolved"

    @classmethod
    def parse(cls, raw) -> "AlertStatus":
        if isinstance(raw, cls):
            return raw
        return cls(str(raw or "").strip().lower())


# Une alerte "ouverte" n'est pas encore résolue.
OPEN_STATUSES = (AlertStatus.ACTIVE.value, AlertStatus.ACKNOWLEDGED.value)


class ReadingKind(str, Enum):
    MANUAL = "manual"
    AUTOMATIC = "automatic"

    @classmethod
    def parse(cls, raw) -> "ReadingKind":
        if isinstance(raw, cls):
            return raw
        return cls(str(raw or "").strip().lower())


class DeviceKind(str, Enum):
    """Tag du device (remplace l'héritage Device/Sonde/Actionneur)."""
    SENSOR = "sensor"
    ACTUATOR = "actuator"
