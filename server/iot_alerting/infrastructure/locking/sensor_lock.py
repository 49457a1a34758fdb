from __future__ import annotations
"""server/iot_alerting/infrastructure/locking/sensor_lock.py
~~~~~~~~~~~~~~~~~~~~~~~~
Sérialisation des mutations par sonde.

Contrat : une seule mutation en vol par sonde (évaluation d'un relevé,
création / mise à jour / bascule d'un seuil, acquittement / résolution).
Les lectures ne prennent pas de verrou.

Backends (settings.SENSOR_LOCK_BACKEND) :
- "memory" : un threading.Lock par sonde, suffisant pour un seul process.
- "redis"  : verrou distribué redis-py (clé `sensor-lock:{sensor_id}`),
             nécessaire dès que API et workers Celery tournent en parallèle.

Le verrou doit englober le commit : l'appelant commit *dans* le `with`.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Iterator

import redis
from redis.exceptions import LockError

from iot_alerting.core.config import settings
from iot_alerting.domain.errors import SensorBusyError

logger = logging.getLogger(__name__)


class MemorySensorLocks:
    """Registre process-local de verrous, un par sonde."""

    def __init__(self, wait_seconds: float | None = None) -> None:
        self.wait_seconds = settings.SENSOR_LOCK_WAIT_SEC if wait_seconds is None else wait_seconds
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def _lock_for(self, sensor_id) -> threading.Lock:
        key = str(sensor_id)
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, sensor_id) -> Iterator[None]:
        lock = self._lock_for(sensor_id)
        if not lock.acquire(timeout=self.wait_seconds):
            logger.warning("Verrou sonde non obtenu", extra={"sensor_id": str(sensor_id)})
            raise SensorBusyError(f"sensor {sensor_id} is busy, retry later")
        try:
            yield
        finally:
            lock.release()


class RedisSensorLocks:
    """Verrous distribués (un par sonde) via redis-py."""

    def __init__(
        self,
        client: redis.Redis | None = None,
        *,
        timeout_seconds: int | None = None,
        wait_seconds: float | None = None,
    ) -> None:
        self.client = client or redis.Redis.from_url(settings.REDIS_URL)
        self.timeout_seconds = settings.SENSOR_LOCK_TIMEOUT_SEC if timeout_seconds is None else timeout_seconds
        self.wait_seconds = settings.SENSOR_LOCK_WAIT_SEC if wait_seconds is None else wait_seconds

    @staticmethod
    def key(sensor_id) -> str:
        return f"sensor-lock:{sensor_id}"

    @contextmanager
    def hold(self, sensor_id) -> Iterator[None]:
        # `timeout` borne la durée de vie si le process meurt en tenant le verrou
        lock = self.client.lock(
            self.key(sensor_id),
            timeout=self.timeout_seconds,
            blocking_timeout=self.wait_seconds,
        )
        if not lock.acquire():
            logger.warning("Verrou sonde non obtenu (redis)", extra={"sensor_id": str(sensor_id)})
            raise SensorBusyError(f"sensor {sensor_id} is busy, retry later")
        try:
            yield
        finally:
            try:
                lock.release()
            except LockError:
                # expiré entre-temps : un autre détenteur a pu le reprendre
                logger.error("Verrou sonde expiré avant libération", extra={"sensor_id": str(sensor_id)})


_locks: MemorySensorLocks | RedisSensorLocks | None = None


def get_sensor_locks() -> MemorySensorLocks | RedisSensorLocks:
    """Singleton du registre de verrous selon settings.SENSOR_LOCK_BACKEND."""
    global _locks
    if _locks is None:
        backend = (settings.SENSOR_LOCK_BACKEND or "memory").strip().lower()
        if backend == "redis":
            _locks = RedisSensorLocks()
        elif backend == "memory":
            _locks = MemorySensorLocks()
        else:
            raise ValueError(f"Unknown SENSOR_LOCK_BACKEND: {settings.SENSOR_LOCK_BACKEND!r}")
    return _locks
