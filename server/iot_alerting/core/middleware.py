from __future__ import annotations
"""server/iot_alerting/core/middleware.py
~~~~~~~~~~~~~~~~~~~~~~~~
Traduction des erreurs métier en réponses HTTP.

- DomainValidationError          -> 422
- NotFoundError                  -> 404
- ThresholdInUseError /
  IllegalTransitionError         -> 409
- SensorBusyError                -> 503 (+ Retry-After)

Corps : {"detail": {"code": ..., "message": ..., ...}}
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from iot_alerting.domain.errors import (
    AlertingError,
    DomainValidationError,
    IllegalTransitionError,
    NotFoundError,
    SensorBusyError,
    ThresholdInUseError,
)

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: list[tuple[type[AlertingError], int]] = [
    (DomainValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ThresholdInUseError, status.HTTP_409_CONFLICT),
    (IllegalTransitionError, status.HTTP_409_CONFLICT),
    (SensorBusyError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def status_for(exc: AlertingError) -> int:
    for cls, code in _STATUS_BY_ERROR:
        if isinstance(exc, cls):
            return code
    return status.HTTP_400_BAD_REQUEST


async def _alerting_error_handler(request: Request, exc: AlertingError) -> JSONResponse:
    code = status_for(exc)
    if code >= 500:
        logger.warning("Erreur métier %s sur %s: %s", exc.code, request.url.path, exc)
    headers = {"Retry-After": "1"} if isinstance(exc, SensorBusyError) else None
    return JSONResponse(status_code=code, content={"detail": exc.to_detail()}, headers=headers)


def install_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AlertingError, _alerting_error_handler)
