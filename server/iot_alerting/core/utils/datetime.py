# coding: utf-8
# server/iot_alerting/core/utils/datetime.py
"""server/iot_alerting/core/utils/datetime.py
~~~~~~~~~~~~~~~~~~~~~~~~
Utilitaires pour la gestion des dates et heures.
"""

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Instant courant, timezone-aware (UTC)."""
    return datetime.now(timezone.utc)


def as_utc(d: Optional[datetime]) -> Optional[datetime]:
    """Retourne un datetime timezone-aware en UTC (tolère None).

    SQLite rend des datetimes naïfs : on les considère comme déjà en UTC.
    """
    if d is None:
        return None
    if d.tzinfo is None:
        return d.replace(tzinfo=timezone.utc)
    return d.astimezone(timezone.utc)


def format_reading_ts(d: datetime) -> str:
    """Format court utilisé dans les messages d'alerte (jj/mm/aaaa HH:MM)."""
    return as_utc(d).strftime("%d/%m/%Y %H:%M")


def start_of_day(d: Optional[datetime] = None) -> datetime:
    """Minuit UTC du jour de `d` (ou d'aujourd'hui)."""
    d = as_utc(d) if d is not None else utcnow()
    return d.replace(hour=0, minute=0, second=0, microsecond=0)
