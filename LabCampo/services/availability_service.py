# services/availability_service.py
"""
Availability Checker.

Un recurso NO está disponible en (fecha, hora) si:
- está inactivo, o
- existe una programación en estado programada / en_proceso que lo usa en
  exactamente la misma fecha y hora.

Es detección por slot exacto, no por intervalo: dos actividades del mismo día a
distintas horas no chocan. Canceladas y completadas nunca bloquean.
Para brigadistas cuenta tanto el rol principal como el de apoyo.
"""
from __future__ import annotations

from datetime import date

from sqlalchemy import or_
from sqlalchemy.orm import Session

from enums.enums import ESTADOS_ACTIVOS, TipoRecursoEnum
from models.programacion import Programacion
from services.resource_service import get_resource, list_active


def _resource_filter(tipo: TipoRecursoEnum, recurso_id: int):
    if tipo is TipoRecursoEnum.brigadista:
        return or_(
            Programacion.brigadista_id == recurso_id,
            Programacion.brigadista_apoyo_id == recurso_id,
        )
    return Programacion.vehiculo_id == recurso_id


def find_conflict(
        db: Session,
        tipo: TipoRecursoEnum | str,
        recurso_id: int,
        fecha: date,
        hora: str,
        exclude_id: int | None = None,
) -> Programacion | None:
    """Programación activa que ocupa al recurso en el slot (o None)."""
    tipo = TipoRecursoEnum(tipo)
    query = db.query(Programacion).filter(
        _resource_filter(tipo, recurso_id),
        Programacion.fecha_programada == fecha,
        Programacion.hora_programada == hora,
        Programacion.estado.in_(ESTADOS_ACTIVOS),
    )
    if exclude_id is not None:
        query = query.filter(Programacion.programacion_id != exclude_id)
    return query.order_by(Programacion.programacion_id.asc()).first()


def is_resource_available(
        db: Session,
        tipo: TipoRecursoEnum | str,
        recurso_id: int,
        fecha: date,
        hora: str,
        exclude_id: int | None = None,
) -> bool:
    recurso = get_resource(db, tipo, recurso_id)
    if not recurso.activo:
        return False
    return find_conflict(db, tipo, recurso_id, fecha, hora, exclude_id=exclude_id) is None


def busy_resource_ids(db: Session, tipo: TipoRecursoEnum | str, fecha: date, hora: str) -> set[int]:
    """Ids ocupados en el slot (una sola consulta)."""
    tipo = TipoRecursoEnum(tipo)
    rows = (
        db.query(Programacion.brigadista_id, Programacion.brigadista_apoyo_id, Programacion.vehiculo_id)
        .filter(
            Programacion.fecha_programada == fecha,
            Programacion.hora_programada == hora,
            Programacion.estado.in_(ESTADOS_ACTIVOS),
        )
        .all()
    )
    ocupados: set[int] = set()
    for brigadista_id, apoyo_id, vehiculo_id in rows:
        if tipo is TipoRecursoEnum.brigadista:
            ocupados.add(brigadista_id)
            if apoyo_id is not None:
                ocupados.add(apoyo_id)
        else:
            ocupados.add(vehiculo_id)
    return ocupados


def list_available(db: Session, tipo: TipoRecursoEnum | str, fecha: date, hora: str) -> list:
    """
    Recursos activos libres en el slot. Es un pre-filtro para el formulario;
    crear/reprogramar vuelven a validar del lado del servidor.
    """
    tipo = TipoRecursoEnum(tipo)
    ocupados = busy_resource_ids(db, tipo, fecha, hora)
    pk = "brigadista_id" if tipo is TipoRecursoEnum.brigadista else "vehiculo_id"
    return [r for r in list_active(db, tipo) if getattr(r, pk) not in ocupados]
