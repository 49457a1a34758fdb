# server/iot_alerting/api/v1/serializers/threshold.py

from typing import Any, Dict, TYPE_CHECKING

if TYPE_CHECKING:
    from iot_alerting.infrastructure.persistence.database.models.threshold import Threshold


def serialize_threshold(t: "Threshold") -> Dict[str, Any]:
    return {
        "id": str(t.id),
        "sensor_id": str(t.sensor_id),
        "bound_kind": t.bound_kind,
        "severity": t.severity,
        "value": float(t.value),
        "is_active": t.is_active,
        "created_at": t.created_at.isoformat() if t.created_at else None,
        "updated_at": t.updated_at.isoformat() if t.updated_at else None,
    }
