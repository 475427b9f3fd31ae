# utils/locks.py
"""
Locks por clave dentro del proceso.

Serializan validación + escritura sobre un mismo concepto de presupuesto o un
mismo recurso/fecha. Las claves se adquieren siempre en orden para evitar
deadlocks entre operaciones que comparten más de una clave.
"""
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Iterable, Iterator

logger = logging.getLogger(__name__)


class LockTimeout(Exception):
    def __init__(self, key: str, timeout: float):
        self.key = key
        self.timeout = timeout
        super().__init__(f"No se obtuvo el lock '{key}' en {timeout}s")


class KeyedLocks:
    """
    Registro de locks reentrantes por clave. Las entradas se liberan cuando
    ningún hilo las está usando.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[str, threading.RLock] = {}
        self._users: dict[str, int] = {}

    def _checkout(self, key: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.RLock()
            self._users[key] = self._users.get(key, 0) + 1
            return lock

    def _checkin(self, key: str) -> None:
        with self._guard:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    @contextmanager
    def hold(self, keys: Iterable[str], timeout: float) -> Iterator[None]:
        ordered = sorted(set(keys))
        acquired: list[tuple[str, threading.RLock]] = []
        try:
            for key in ordered:
                lock = self._checkout(key)
                if not lock.acquire(timeout=timeout):
                    self._checkin(key)
                    raise LockTimeout(key, timeout)
                acquired.append((key, lock))
            yield
        finally:
            for key, lock in reversed(acquired):
                lock.release()
                self._checkin(key)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


scheduling_locks = KeyedLocks()


def concept_key(presupuesto_id: int, concepto_codigo: str) -> str:
    return f"concepto:{presupuesto_id}:{concepto_codigo}"


def resource_key(tipo: str, recurso_id: int, fecha) -> str:
    return f"{tipo}:{recurso_id}:{fecha.isoformat()}"
