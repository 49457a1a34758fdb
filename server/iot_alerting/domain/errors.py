from __future__ import annotations
"""server/iot_alerting/domain/errors.py
~~~~~~~~~~~~~~~~~~~~~~~~
Taxonomie des erreurs du moteur d'alerte.

- DomainValidationError : demande incohérente, jamais rejouée automatiquement.
- NotFoundError         : sonde / seuil / alerte inconnus (erreur client).
- ThresholdInUseError   : suppression d'un seuil encore référencé par une alerte ouverte.
- IllegalTransitionError: transition hors de la machine à états.
- SensorBusyError       : verrou de sonde non obtenu dans le délai imparti.
- StaleReferenceWarning : interne, seuil d'origine introuvable pendant la résolution
                          (journalisé, jamais remonté à l'appelant).

Chaque erreur expose un `code` stable, repris tel quel dans les réponses HTTP.
"""

from decimal import Decimal


class AlertingError(Exception):
    """Base de toutes les erreurs métier."""
    code = "alerting_error"

    def to_detail(self) -> dict:
        return {"code": self.code, "message": str(self)}


class DomainValidationError(AlertingError):
    code = "validation_error"


class IncoherentThresholdsError(DomainValidationError):
    """Activer ce seuil violerait min < max."""
    code = "incoherent_thresholds"

    def __init__(self, min_value: Decimal, max_value: Decimal) -> None:
        self.min_value = min_value
        self.max_value = max_value
        super().__init__(
            f"Incoherent thresholds: minimum ({min_value}) must be strictly "
            f"lower than maximum ({max_value})."
        )

    def to_detail(self) -> dict:
        detail = super().to_detail()
        detail["min_value"] = str(self.min_value)
        detail["max_value"] = str(self.max_value)
        return detail


class InvalidReadingError(DomainValidationError):
    code = "invalid_reading"


class InvalidThresholdValueError(DomainValidationError):
    code = "invalid_threshold_value"


class NotFoundError(AlertingError):
    code = "not_found"

    def __init__(self, entity: str, entity_id) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class ThresholdInUseError(AlertingError):
    code = "threshold_in_use"


class IllegalTransitionError(AlertingError):
    code = "illegal_transition"

    def __init__(self, current: str, target: str) -> None:
        self.current = current
        self.target = target
        super().__init__(f"Illegal alert transition {current} -> {target}")


class SensorBusyError(AlertingError):
    code = "sensor_busy"


class StaleReferenceWarning(Exception):
    """Alerte dont le seuil d'origine n'existe plus."""

    def __init__(self, alert_id, threshold_id) -> None:
        self.alert_id = alert_id
        self.threshold_id = threshold_id
        super().__init__(f"alert {alert_id} references missing threshold {threshold_id}")
