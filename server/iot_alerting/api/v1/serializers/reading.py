# server/iot_alerting/api/v1/serializers/reading.py

from typing import Any, Dict, TYPE_CHECKING

from iot_alerting.api.v1.serializers.alert import serialize_alert

if TYPE_CHECKING:
    from iot_alerting.application.services.reading_service import IngestResult
    from iot_alerting.infrastructure.persistence.database.models.reading import Reading


def serialize_reading(r: "Reading") -> Dict[str, Any]:
    return {
        "id": str(r.id),
        "sensor_id": str(r.sensor_id),
        "value": float(r.value),
        "timestamp": r.timestamp.isoformat() if r.timestamp else None,
        "kind": r.kind,
    }


def serialize_ingest_result(res: "IngestResult") -> Dict[str, Any]:
    return {
        "reading": serialize_reading(res.reading),
        "evaluated": res.evaluated,
        "opened": [serialize_alert(a) for a in res.opened],
        "resolved": [serialize_alert(a) for a in res.resolved],
    }
