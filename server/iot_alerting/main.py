from __future__ import annotations
"""server/iot_alerting/main.py
~~~~~~~~~~~~~~~~~~~~~~~~
Point d'entrée FastAPI.
"""
from typing import List

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from iot_alerting.api.v1.router import api_router
from iot_alerting.core.config import settings
from iot_alerting.core.logging import setup_logging
from iot_alerting.core.middleware import install_exception_handlers
from iot_alerting.infrastructure.persistence.database.session import init_db

app = FastAPI(title="IoT Alerting", version="0.1.0")

allow_origins: List[str] = []
if origins := getattr(settings, "CORS_ALLOW_ORIGINS", None):
    allow_origins = [o.strip() for o in origins.split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

install_exception_handlers(app)


@app.on_event("startup")
async def startup() -> None:
    setup_logging()
    init_db()

app.include_router(api_router, prefix="/api/v1")
