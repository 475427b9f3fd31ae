# services/capacity_service.py
"""
Capacity Ledger: cuántas muestras de una línea de presupuesto ya están
comprometidas por programaciones y cuántas quedan.

    comprometido = Σ cantidad_muestras (estado != cancelada)
    disponible   = contratado - comprometido

Las canceladas no cuentan, así que cancelar libera capacidad de inmediato.
Las completadas siguen contando con su cantidad planeada.
"""
from __future__ import annotations

import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from enums.enums import EstadoProgramacionEnum
from models.presupuesto import Presupuesto
from models.programacion import Programacion
from schemas.presupuesto import CapacidadConceptoOut
from services.presupuesto_service import get_budget, get_budget_line
from utils.errors import CapacityExceeded

logger = logging.getLogger(__name__)


def committed_quantity(
        db: Session,
        presupuesto_id: int,
        concepto_codigo: str,
        exclude_id: int | None = None,
) -> int:
    query = db.query(func.coalesce(func.sum(Programacion.cantidad_muestras), 0)).filter(
        Programacion.presupuesto_id == presupuesto_id,
        Programacion.concepto_codigo == concepto_codigo,
        Programacion.estado != EstadoProgramacionEnum.cancelada,
    )
    if exclude_id is not None:
        query = query.filter(Programacion.programacion_id != exclude_id)
    return int(query.scalar() or 0)


def remaining_capacity(
        db: Session,
        presupuesto_id: int,
        concepto_codigo: str,
        exclude_id: int | None = None,
        for_update: bool = False,
) -> int:
    """
    Muestras aún programables del concepto.

    `exclude_id` descuenta una programación propia (reprogramar una activa no
    debe contarse dos veces).
    """
    linea = get_budget_line(db, presupuesto_id, concepto_codigo, for_update=for_update)
    comprometido = committed_quantity(db, presupuesto_id, concepto_codigo, exclude_id=exclude_id)
    return int(linea.cantidad) - comprometido


def ensure_capacity(
        db: Session,
        presupuesto_id: int,
        concepto_codigo: str,
        cantidad: int,
        exclude_id: int | None = None,
) -> int:
    """Valida que `cantidad` quepa; retorna lo que queda disponible después de comprometerla."""
    disponible = remaining_capacity(
        db, presupuesto_id, concepto_codigo, exclude_id=exclude_id, for_update=True
    )
    if cantidad > disponible:
        logger.info(
            "Capacidad excedida presupuesto=%s concepto=%s solicitado=%s disponible=%s",
            presupuesto_id, concepto_codigo, cantidad, disponible,
        )
        raise CapacityExceeded(presupuesto_id, concepto_codigo, cantidad, max(disponible, 0))
    return disponible - cantidad


def concept_capacity(db: Session, presupuesto_id: int, concepto_codigo: str) -> CapacidadConceptoOut:
    linea = get_budget_line(db, presupuesto_id, concepto_codigo)
    comprometido = committed_quantity(db, presupuesto_id, concepto_codigo)
    return CapacidadConceptoOut(
        presupuesto_id=presupuesto_id,
        concepto_codigo=concepto_codigo,
        descripcion=linea.concepto.descripcion if linea.concepto else None,
        unidad=linea.concepto.unidad if linea.concepto else None,
        contratado=int(linea.cantidad),
        comprometido=comprometido,
        disponible=int(linea.cantidad) - comprometido,
    )


def budget_capacity_summary(db: Session, presupuesto: Presupuesto | int) -> list[CapacidadConceptoOut]:
    """Contratado / comprometido / disponible para cada línea de un presupuesto (una sola consulta agregada)."""
    if isinstance(presupuesto, int):
        presupuesto = get_budget(db, presupuesto)

    rows = (
        db.query(Programacion.concepto_codigo, func.sum(Programacion.cantidad_muestras))
        .filter(
            Programacion.presupuesto_id == presupuesto.presupuesto_id,
            Programacion.estado != EstadoProgramacionEnum.cancelada,
        )
        .group_by(Programacion.concepto_codigo)
        .all()
    )
    comprometido = {codigo: int(total or 0) for codigo, total in rows}

    resumen = []
    for linea in presupuesto.detalles:
        usado = comprometido.get(linea.concepto_codigo, 0)
        resumen.append(CapacidadConceptoOut(
            presupuesto_id=presupuesto.presupuesto_id,
            concepto_codigo=linea.concepto_codigo,
            descripcion=linea.concepto.descripcion if linea.concepto else None,
            unidad=linea.concepto.unidad if linea.concepto else None,
            contratado=int(linea.cantidad),
            comprometido=usado,
            disponible=int(linea.cantidad) - usado,
        ))
    return resumen
