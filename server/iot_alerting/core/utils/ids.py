"""server/iot_alerting/core/utils/ids.py
~~~~~~~~~~~~~~~~~~~~~~~~
Normalisation des identifiants (str / UUID).
"""

import uuid
from typing import Optional


def as_uuid(value) -> Optional[uuid.UUID]:
    """UUID depuis un UUID ou une chaîne ; None si la valeur n'est pas un UUID valide."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None
