from __future__ import annotations
"""server/iot_alerting/workers/tasks/ingest_tasks.py
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Ingestion asynchrone d'un relevé + évaluation des seuils de la sonde.

- SensorBusyError (verrou non obtenu) → retry automatique.
- Relevé invalide (valeur, horodatage, type) / sonde inconnue → journalisé,
  abandonné (pas de retry : ces erreurs ne sont pas transitoires).
"""

import datetime as dt
from typing import Any, Optional

from celery.utils.log import get_task_logger

from iot_alerting.application.services.reading_service import ReadingService
from iot_alerting.domain.enums import ReadingKind
from iot_alerting.domain.errors import DomainValidationError, InvalidReadingError, NotFoundError, SensorBusyError
from iot_alerting.infrastructure.persistence.database.session import get_sync_session
from iot_alerting.workers.celery_app import celery

logger = get_task_logger(__name__)


def _parse_timestamp(raw: str | None) -> Optional[dt.datetime]:
    if not raw:
        return None
    try:
        return dt.datetime.fromisoformat(raw)
    except (TypeError, ValueError):
        raise InvalidReadingError(f"Reading timestamp {raw!r} is not ISO 8601") from None


def enqueue_reading(*, sensor_id, value, timestamp: Optional[dt.datetime] = None, kind=ReadingKind.AUTOMATIC) -> None:
    """Place un relevé en file `ingest`."""
    celery.send_task(
        "tasks.ingest_reading",
        args=[
            str(sensor_id),
            value,
            timestamp.isoformat() if timestamp else None,
            ReadingKind.parse(kind).value,
        ],
    )


@celery.task(
    name="tasks.ingest_reading",
    bind=True,
    autoretry_for=(SensorBusyError,),
    retry_backoff=2,  # 2s, 4s, 8s...
    retry_kwargs={"max_retries": 5},
    queue="ingest",
)
def process_reading(
    self,
    sensor_id: str,
    value: Any,
    timestamp: str | None = None,
    kind: str = ReadingKind.AUTOMATIC.value,
) -> Optional[dict]:
    """Écrit et évalue le relevé ; retourne un résumé, ou None si abandonné."""
    with get_sync_session() as session:
        try:
            ts = _parse_timestamp(timestamp)
            res = ReadingService(session).ingest_reading(sensor_id, value, timestamp=ts, kind=kind)
        except (DomainValidationError, NotFoundError) as exc:
            logger.warning("Relevé abandonné pour la sonde %s: %s", sensor_id, exc)
            return None

        summary = {
            "reading_id": str(res.reading.id),
            "evaluated": res.evaluated,
            "opened": [str(a.id) for a in res.opened],
            "resolved": [str(a.id) for a in res.resolved],
        }

    logger.info(
        "Relevé traité (sonde %s): %d ouverte(s), %d résolue(s)",
        sensor_id, len(summary["opened"]), len(summary["resolved"]),
    )
    return summary
