# server/iot_alerting/api/v1/serializers/alert.py

from typing import Any, Dict, TYPE_CHECKING

from iot_alerting.api.v1.serializers.threshold import serialize_threshold

if TYPE_CHECKING:
    from iot_alerting.application.services.alert_service import AlertWithContext
    from iot_alerting.infrastructure.persistence.database.models.alert import Alert


def serialize_alert(a: "Alert") -> Dict[str, Any]:
    return {
        "id": str(a.id),
        "sensor_id": str(a.sensor_id),
        "threshold_id": str(a.threshold_id),
        "bound_kind": a.bound_kind,
        "severity": a.severity,
        "status": a.status,
        "message": a.message,
        "created_at": a.created_at.isoformat() if a.created_at else None,
        "acknowledged_at": a.acknowledged_at.isoformat() if a.acknowledged_at else None,
        "resolved_at": a.resolved_at.isoformat() if a.resolved_at else None,
    }


def serialize_alert_details(ctx: "AlertWithContext") -> Dict[str, Any]:
    out = serialize_alert(ctx.alert)
    sensor = ctx.sensor
    out["sensor"] = (
        {"id": str(sensor.id), "name": sensor.name, "unit": sensor.unit} if sensor else None
    )
    # seuil supprimé depuis : l'alerte garde bound_kind/severity figés
    out["threshold"] = serialize_threshold(ctx.threshold) if ctx.threshold else None
    return out
