# utils/transactions.py
from __future__ import annotations

import logging
from typing import Callable, Iterable, TypeVar, Union

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from config.settings import settings
from utils.errors import Conflict
from utils.locks import LockTimeout, scheduling_locks

logger = logging.getLogger(__name__)

T = TypeVar("T")

Keys = Union[Iterable[str], Callable[[], Iterable[str]]]


def serialized(
        db: Session,
        keys: Keys,
        operation: Callable[[], T],
        max_retries: int | None = None,
        lock_timeout: float | None = None,
) -> T:
    """
    Ejecuta `operation` (validar + escribir) con los locks de `keys` tomados y
    hace commit antes de soltarlos.

    - `keys` puede ser una lista fija o un callable; el callable se vuelve a
      evaluar en cada intento (las claves dependen de filas que pueden cambiar).
    - Antes de tomar los locks se cierra la transacción abierta por lecturas
      previas: todo lo que `operation` lee es posterior al lock.
    - Errores de dominio (HTTPException) y cualquier otro error: rollback y se propagan.
    - Errores transitorios de BD (lock wait, deadlock, StaleDataError) y timeouts
      de lock: rollback y reintento, hasta `max_retries` intentos; después, Conflict.
    """
    if max_retries is None:
        max_retries = settings.SCHEDULING_MAX_RETRIES
    if max_retries < 1:
        raise ValueError("max_retries debe ser al menos 1")
    if lock_timeout is None:
        lock_timeout = settings.SCHEDULING_LOCK_TIMEOUT_SECONDS

    fijas = None if callable(keys) else list(keys)

    for attempt in range(1, max_retries + 1):
        claves = list(keys()) if fijas is None else fijas
        db.rollback()
        try:
            with scheduling_locks.hold(claves, timeout=lock_timeout):
                try:
                    result = operation()
                    db.commit()
                except Exception:
                    db.rollback()
                    raise
            return result
        except (OperationalError, StaleDataError, LockTimeout) as exc:
            logger.warning(
                "Conflicto transitorio (intento %d/%d, claves=%s): %s",
                attempt, max_retries, claves, exc,
            )
    raise Conflict(intentos=max_retries)
