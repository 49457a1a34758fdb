from __future__ import annotations
"""server/iot_alerting/domain/lifecycle.py
~~~~~~~~~~~~~~~~~~~~~~~~
Machine à états d'une alerte.

    active ──acknowledge──> acknowledged
      │                          │
      └────────resolve───────────┴──> resolved (terminal)

- `acknowledge` / `resolve` sont idempotents : appliqués hors de leur état
  source, ils ne font rien et renvoient False (retries opérateur).
- `transition` est la variante stricte : toute transition non listée dans
  ALLOWED_TRANSITIONS lève IllegalTransitionError (ex. resolved -> active).
- Invariant : resolved_at est renseigné ssi status == resolved.
"""

import datetime as dt
from typing import Optional

from iot_alerting.core.utils.datetime import format_reading_ts, utcnow
from iot_alerting.domain.enums import AlertStatus
from iot_alerting.domain.errors import IllegalTransitionError

ALLOWED_TRANSITIONS: dict[AlertStatus, frozenset[AlertStatus]] = {
    AlertStatus.ACTIVE: frozenset({AlertStatus.ACKNOWLEDGED, AlertStatus.RESOLVED}),
    AlertStatus.ACKNOWLEDGED: frozenset({AlertStatus.RESOLVED}),
    AlertStatus.RESOLVED: frozenset(),
}


def can_transition(current, target) -> bool:
    return AlertStatus.parse(target) in ALLOWED_TRANSITIONS[AlertStatus.parse(current)]


def _append(alert, note: Optional[str]) -> None:
    if note is None or not note.strip():
        return
    alert.message = f"{alert.message or ''} - {note.strip()}"


def transition(alert, target, *, now: Optional[dt.datetime] = None, note: Optional[str] = None) -> None:
    """Applique une transition autorisée ou lève IllegalTransitionError."""
    current = AlertStatus.parse(alert.status)
    target = AlertStatus.parse(target)
    if not can_transition(current, target):
        raise IllegalTransitionError(current.value, target.value)

    now = now or utcnow()
    alert.status = target.value
    if target is AlertStatus.ACKNOWLEDGED:
        alert.acknowledged_at = now
    elif target is AlertStatus.RESOLVED:
        # acknowledged_at est conservé s'il existe déjà
        alert.resolved_at = now
    _append(alert, note)


def acknowledge(alert, comment: Optional[str] = None, *, now: Optional[dt.datetime] = None) -> bool:
    if AlertStatus.parse(alert.status) is not AlertStatus.ACTIVE:
        return False
    transition(alert, AlertStatus.ACKNOWLEDGED, now=now, note=comment)
    return True


def resolve(alert, comment: Optional[str] = None, *, now: Optional[dt.datetime] = None) -> bool:
    if AlertStatus.parse(alert.status) is AlertStatus.RESOLVED:
        return False
    transition(alert, AlertStatus.RESOLVED, now=now, note=comment)
    return True


def auto_resolve(alert, reading_timestamp: dt.datetime, *, now: Optional[dt.datetime] = None) -> bool:
    """Résolution automatique par un relevé revenu dans les limites."""
    note = f"Automatically resolved by reading of {format_reading_ts(reading_timestamp)}"
    return resolve(alert, note, now=now)
