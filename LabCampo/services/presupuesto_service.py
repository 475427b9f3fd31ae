# services/presupuesto_service.py
"""
Lectura de presupuestos y sus líneas contratadas.

El CRUD de presupuestos vive fuera de este servicio; aquí solo se consulta la
cantidad contratada por concepto, que es el tope de la capacidad programable.
"""
from __future__ import annotations

from sqlalchemy.orm import Session, joinedload

from enums.enums import PresupuestoEstadoEnum
from models.presupuesto import Presupuesto, PresupuestoDetalle
from utils.errors import NotFound


def get_budget(db: Session, presupuesto_id: int) -> Presupuesto:
    presupuesto = db.get(Presupuesto, presupuesto_id)
    if not presupuesto:
        raise NotFound("Presupuesto", presupuesto_id)
    return presupuesto


def get_budget_line(
        db: Session,
        presupuesto_id: int,
        concepto_codigo: str,
        for_update: bool = False,
) -> PresupuestoDetalle:
    """
    Línea (presupuesto, concepto). Con `for_update=True` toma lock de fila
    (SELECT ... FOR UPDATE) para serializar compromisos de capacidad entre procesos.
    """
    query = db.query(PresupuestoDetalle).filter(
        PresupuestoDetalle.presupuesto_id == presupuesto_id,
        PresupuestoDetalle.concepto_codigo == concepto_codigo,
    )
    if for_update:
        query = query.with_for_update()
    linea = query.first()
    if not linea:
        raise NotFound("Concepto", f"{concepto_codigo} (presupuesto {presupuesto_id})")
    return linea


def list_approved_budgets(db: Session) -> list[Presupuesto]:
    """Presupuestos aprobados (los únicos que se pueden programar), más recientes primero"""
    return (
        db.query(Presupuesto)
        .options(
            joinedload(Presupuesto.obra),
            joinedload(Presupuesto.detalles).joinedload(PresupuestoDetalle.concepto),
        )
        .filter(Presupuesto.estado == PresupuestoEstadoEnum.aprobado)
        .order_by(Presupuesto.fecha_solicitud.desc())
        .all()
    )
