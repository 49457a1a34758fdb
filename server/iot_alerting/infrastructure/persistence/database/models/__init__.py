from __future__ import annotations
"""server/iot_alerting/infrastructure/persistence/database/models/__init__.py
~~~~~~~~~~~~~~~~~~~~~~~~
Modèles ORM (enregistrés sur Base.metadata).
"""

from .device import Device
from .threshold import Threshold
from .reading import Reading
from .alert import Alert

__all__ = ["Device", "Threshold", "Reading", "Alert"]
