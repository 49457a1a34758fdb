#!/usr/bin/env python3
from __future__ import annotations

"""
provision_sensors.py

Provisionnement des sondes et de leurs seuils à partir d'un fichier INI.
Idempotent : relançable sans créer de doublons.

Format
------
    [sensor:temp-serre-1]
    type = temperature
    unit = °C
    range_min = -20
    range_max = 60
    threshold.maximum.warning = 35
    threshold.maximum.alert = 40
    threshold.minimum.warning = 5

- Une sonde est identifiée par son nom (section `sensor:<nom>`).
- Un seuil actif de même (bound_kind, severity) et de même valeur est
  laissé tel quel ; une autre valeur le remplace (validation complète).
- Les seuils sont appliqués un par un, dans un ordre qui garde chaque étape
  cohérente (cf. _apply_order) : une plage peut monter ou descendre d'un coup.

Garde-fous
----------
- PROVISION_SENSORS=true requis

Connexion DB
------------
- DATABASE_URL (cf. iot_alerting.core.config)
"""

import configparser
import os
import sys
from decimal import Decimal
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from iot_alerting.application.services.threshold_service import ThresholdService
from iot_alerting.core.logging import setup_logging
from iot_alerting.domain.enums import BoundKind, Severity
from iot_alerting.domain.errors import InvalidThresholdValueError
from iot_alerting.domain.policies import to_decimal
from iot_alerting.infrastructure.persistence.database.session import get_sync_session, init_db
from iot_alerting.infrastructure.persistence.repositories.device_repository import DeviceRepository
from iot_alerting.infrastructure.persistence.repositories.threshold_repository import ThresholdRepository

SECTION_PREFIX = "sensor:"
THRESHOLD_PREFIX = "threshold."


# ------------------------------- Guards / env --------------------------------

def _truthy(v: str) -> bool:
    return v.strip().lower() in {"1", "true", "yes", "y", "on"}


def _require_guards() -> None:
    if not _truthy(os.getenv("PROVISION_SENSORS", "")):
        raise SystemExit(
            "Refus: PROVISION_SENSORS n'est pas activé. Mets PROVISION_SENSORS=true pour exécuter."
        )


# ------------------------------ INI parsing ----------------------------------

def _read_ini(path: Path) -> configparser.ConfigParser:
    if not path.exists():
        raise SystemExit(f"INI introuvable: {path}")
    cfg = configparser.ConfigParser(interpolation=None)
    cfg.read(path, encoding="utf-8")
    return cfg


def _decimal_or_none(section: str, key: str, raw: str) -> Optional[Decimal]:
    raw = (raw or "").strip()
    if not raw:
        return None
    try:
        return to_decimal(raw, label=f"[{section}] {key}", error_cls=InvalidThresholdValueError)
    except InvalidThresholdValueError as exc:
        raise SystemExit(f"Valeur invalide: {exc}")


def parse_sensors(cfg: configparser.ConfigParser) -> List[Dict[str, object]]:
    """Une entrée par section `sensor:<nom>`, seuils sous forme (kind, severity, value)."""
    out: List[Dict[str, object]] = []
    for section in cfg.sections():
        if not section.startswith(SECTION_PREFIX):
            continue
        name = section[len(SECTION_PREFIX):].strip()
        if not name:
            raise SystemExit(f"Section sans nom de sonde: [{section}]")

        thresholds: List[Tuple[BoundKind, Severity, Decimal]] = []
        for key, raw in cfg.items(section):
            if not key.startswith(THRESHOLD_PREFIX):
                continue
            parts = key[len(THRESHOLD_PREFIX):].split(".")
            try:
                kind = BoundKind.parse(parts[0])
                severity = Severity.parse(parts[1] if len(parts) > 1 else Severity.WARNING)
            except ValueError:
                raise SystemExit(f"Clé de seuil invalide dans [{section}]: {key!r}")
            thresholds.append((kind, severity, _decimal_or_none(section, key, raw)))

        out.append(
            {
                "name": name,
                "sensor_type": cfg.get(section, "type", fallback="").strip() or None,
                "unit": cfg.get(section, "unit", fallback="").strip() or None,
                "range_min": _decimal_or_none(section, "range_min", cfg.get(section, "range_min", fallback="")),
                "range_max": _decimal_or_none(section, "range_max", cfg.get(section, "range_max", fallback="")),
                "thresholds": thresholds,
            }
        )
    return out


# ------------------------------ Provisioning ---------------------------------

def _apply_order(
    wanted: List[Tuple[BoundKind, Severity, Decimal]], active: List[object]
) -> List[Tuple[BoundKind, Severity, Decimal]]:
    """
    Ordre d'application garantissant que chaque étape reste cohérente (min < max).

    Par défaut les minimums passent d'abord (la plage descend ou se resserre).
    Si un nouveau minimum atteint un maximum actif, la plage monte : les
    maximums passent d'abord, du plus haut au plus bas.
    """
    active_max = [Decimal(t.value) for t in active if BoundKind.parse(t.bound_kind) is BoundKind.MAXIMUM]
    lowest_max = min(active_max, default=None)
    raising = lowest_max is not None and any(
        kind is BoundKind.MINIMUM and value >= lowest_max for kind, _sev, value in wanted
    )
    if not raising:
        return sorted(wanted, key=lambda t: (t[0] is BoundKind.MAXIMUM, t[2]))
    return sorted(wanted, key=lambda t: (t[0] is BoundKind.MINIMUM, -t[2]))


def provision(cfg: configparser.ConfigParser, session: Session) -> Dict[str, int]:
    """Crée les sondes manquantes puis applique leurs seuils ; retourne des compteurs."""
    devices = DeviceRepository(session)
    thresholds = ThresholdRepository(session)
    svc = ThresholdService(session)
    stats = {"sensors_created": 0, "thresholds_created": 0, "thresholds_unchanged": 0}

    for entry in parse_sensors(cfg):
        sensor = devices.get_sensor_by_name(entry["name"])
        if sensor is None:
            sensor = devices.add_sensor(
                name=entry["name"],
                sensor_type=entry["sensor_type"],
                unit=entry["unit"],
                range_min=entry["range_min"],
                range_max=entry["range_max"],
            )
            session.commit()
            stats["sensors_created"] += 1
            print(f"[sensor] créée: {sensor.name} ({sensor.id})")

        wanted = [t for t in entry["thresholds"] if t[2] is not None]
        for kind, severity, value in _apply_order(wanted, thresholds.list_active_by_sensor(sensor.id)):
            current = thresholds.get_active_by_sensor_and_kind(sensor.id, kind, severity)
            if current is not None and Decimal(current.value) == value:
                stats["thresholds_unchanged"] += 1
                continue
            th = svc.create_threshold(sensor.id, kind, severity, value)
            stats["thresholds_created"] += 1
            print(f"[threshold] {sensor.name}: {th.bound_kind}/{th.severity} = {value}")

    return stats


def provision_from_ini(ini_path: Path) -> Dict[str, int]:
    _require_guards()
    cfg = _read_ini(ini_path)
    init_db()
    with get_sync_session() as session:
        stats = provision(cfg, session)
    print(f"[done] {stats}")
    return stats


def main(argv: List[str]) -> None:
    if len(argv) != 2:
        raise SystemExit(
            "Usage: python server/scripts/provision_sensors.py <path/to/sensors.ini>\n"
            "Ex:    PROVISION_SENSORS=true DATABASE_URL=... "
            "python server/scripts/provision_sensors.py server/scripts/sensors.ini"
        )
    setup_logging()
    provision_from_ini(Path(argv[1]).resolve())


if __name__ == "__main__":
    main(sys.argv)
