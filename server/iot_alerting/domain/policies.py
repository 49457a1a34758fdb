# server/iot_alerting/domain/policies.py

from __future__ import annotations
"""
Règles métier utilisées pour évaluer les seuils.

Fonctions principales :
    is_breached(bound_kind, reading_value, threshold_value)
    is_recovered(bound_kind, reading_value, threshold_value)
    ThresholdConsistencyValidator.validate_activation(sensor_id, candidate, current_active)

Toutes les comparaisons se font en Decimal (valeurs stockées en Numeric(10, 2)).
"""

import operator as op
from dataclasses import dataclass, field, replace
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable, Optional

from iot_alerting.domain.enums import BoundKind, Severity
from iot_alerting.domain.errors import IncoherentThresholdsError, InvalidReadingError

# Violation : strictement en dessous d'un minimum / au-dessus d'un maximum.
BREACH_OPS = {
    BoundKind.MINIMUM: op.lt,
    BoundKind.MAXIMUM: op.gt,
}

# Retour à la normale : la valeur égale au seuil est acceptable.
RECOVERY_OPS = {
    BoundKind.MINIMUM: op.ge,
    BoundKind.MAXIMUM: op.le,
}

# Colonnes Numeric(10, 2) : 2 décimales, |valeur| < 10^8.
VALUE_QUANTUM = Decimal("0.01")
VALUE_LIMIT = Decimal("1e8")


def to_decimal(raw: Any, *, label: str = "Reading value", error_cls=InvalidReadingError) -> Decimal:
    """
    Convertit une valeur en Decimal fini arrondi au centième (précision stockée),
    sinon `error_cls` (InvalidReadingError par défaut).
    """
    if isinstance(raw, bool) or raw is None:
        raise error_cls(f"{label} {raw!r} is not a number")
    try:
        # str() évite les artefacts binaires des floats (14.1 -> 14.1, pas 14.0999...)
        value = raw if isinstance(raw, Decimal) else Decimal(str(raw).strip())
    except (InvalidOperation, ValueError):
        raise error_cls(f"{label} {raw!r} is not a number") from None
    if not value.is_finite():
        raise error_cls(f"{label} {raw!r} is not finite")
    # avant quantize : au-delà de la précision du contexte, quantize lève InvalidOperation
    if abs(value) >= VALUE_LIMIT:
        raise error_cls(f"{label} {raw!r} is out of range")
    value = value.quantize(VALUE_QUANTUM, rounding=ROUND_HALF_UP)
    if abs(value) >= VALUE_LIMIT:
        raise error_cls(f"{label} {raw!r} is out of range")
    return value


def _dec(v: Any) -> Decimal:
    return v if isinstance(v, Decimal) else Decimal(str(v))


def is_breached(bound_kind, reading_value, threshold_value) -> bool:
    """True si la mesure viole le seuil (minimum : <, maximum : >)."""
    fn = BREACH_OPS[BoundKind.parse(bound_kind)]
    return bool(fn(_dec(reading_value), _dec(threshold_value)))


def is_recovered(bound_kind, reading_value, threshold_value) -> bool:
    """True si la mesure est revenue du bon côté du seuil (minimum : >=, maximum : <=)."""
    fn = RECOVERY_OPS[BoundKind.parse(bound_kind)]
    return bool(fn(_dec(reading_value), _dec(threshold_value)))


def describe_breach(bound_kind) -> str:
    return "below" if BoundKind.parse(bound_kind) is BoundKind.MINIMUM else "above"


# ---------------------------------------------------------------------------
# Cohérence des seuils
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ThresholdCandidate:
    """État *souhaité* d'un seuil, évalué avant toute écriture."""
    sensor_id: Any
    bound_kind: BoundKind
    severity: Severity
    value: Decimal
    is_active: bool
    id: Optional[Any] = None

    @classmethod
    def from_threshold(cls, th, **overrides) -> "ThresholdCandidate":
        base = cls(
            sensor_id=th.sensor_id,
            bound_kind=BoundKind.parse(th.bound_kind),
            severity=Severity.parse(th.severity),
            value=_dec(th.value),
            is_active=bool(th.is_active),
            id=th.id,
        )
        return replace(base, **overrides) if overrides else base


@dataclass(frozen=True)
class ActivationPlan:
    """Effets de bord que l'appelant doit appliquer avec l'écriture du candidat."""
    to_deactivate: list = field(default_factory=list)


class ThresholdConsistencyValidator:
    """
    Point d'entrée unique de validation pour création / mise à jour / bascule.

    Règles (seulement si le candidat est, ou devient, actif) :
    1. Un autre seuil actif de même (bound_kind, severity) doit être désactivé :
       il est renvoyé dans ActivationPlan.to_deactivate.
    2. Chaque minimum actif doit être strictement inférieur à chaque maximum actif.
    3. L'égalité min == max est toujours une violation.
    """

    def validate_activation(
        self,
        sensor_id,
        candidate: ThresholdCandidate,
        current_active: Iterable,
    ) -> ActivationPlan:
        if not candidate.is_active:
            return ActivationPlan()

        kind = BoundKind.parse(candidate.bound_kind)
        severity = Severity.parse(candidate.severity)
        value = _dec(candidate.value)

        others = [
            t for t in current_active
            if (candidate.id is None or t.id != candidate.id)
            and str(t.sensor_id) == str(sensor_id)
        ]

        to_deactivate = [
            t for t in others
            if BoundKind.parse(t.bound_kind) is kind and Severity.parse(t.severity) is severity
        ]

        for t in others:
            if BoundKind.parse(t.bound_kind) is not kind.opposite:
                continue
            other_value = _dec(t.value)
            if kind is BoundKind.MINIMUM:
                if not value < other_value:
                    raise IncoherentThresholdsError(value, other_value)
            elif not other_value < value:
                raise IncoherentThresholdsError(other_value, value)

        return ActivationPlan(to_deactivate=to_deactivate)
