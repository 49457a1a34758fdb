from __future__ import annotations
"""server/iot_alerting/api/v1/router.py
~~~~~~~~~~~~~~~~~~~~~~~~
Router principal API v1.
"""
from fastapi import APIRouter
from iot_alerting.api.v1.endpoints import health, thresholds, readings, alerts


api_router = APIRouter()
api_router.include_router(health.router, tags=["health"])
api_router.include_router(thresholds.router, tags=["thresholds"])
api_router.include_router(readings.router, tags=["readings"])
api_router.include_router(alerts.router, tags=["alerts"])
