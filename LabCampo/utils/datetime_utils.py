"""
Utilidades centralizadas para manejo de fechas y timestamps.
Todas las operaciones usan la zona horaria configurada en settings.TIMEZONE.

Convención del sistema:
- Los timestamps se persisten **naive** en hora local del laboratorio.
- La semana del tablero va de domingo a sábado.
"""
from datetime import datetime, date, timedelta
from zoneinfo import ZoneInfo

from config.settings import settings

LOCAL_TZ = ZoneInfo(settings.TIMEZONE)


def now_local() -> datetime:
    """
    Retorna el datetime actual en la zona del laboratorio (naive, sin microsegundos).
    """
    return datetime.now(LOCAL_TZ).replace(tzinfo=None, microsecond=0)


def today_local() -> date:
    """
    Retorna la fecha actual (date) en la zona del laboratorio.
    """
    return datetime.now(LOCAL_TZ).date()


def week_bounds(d: date) -> tuple[date, date]:
    """
    Semana de domingo a sábado que contiene a `d` (mismo criterio que el tablero semanal).
    """
    # weekday(): lunes=0 ... domingo=6
    start = d - timedelta(days=(d.weekday() + 1) % 7)
    return start, start + timedelta(days=6)
