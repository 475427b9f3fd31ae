# api/presupuestos.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Path
from sqlalchemy.orm import Session

from schemas.presupuesto import CapacidadConceptoOut, ObraBasicOut, PresupuestoAprobadoOut
from services.capacity_service import budget_capacity_summary, concept_capacity
from services.presupuesto_service import list_approved_budgets
from utils.db import get_db

router = APIRouter(tags=["Presupuestos"])


@router.get(
    "/presupuestos-aprobados",
    response_model=list[PresupuestoAprobadoOut],
    summary="Presupuestos aprobados para programación",
    description=(
            "Presupuestos en estado `aprobado` con, por cada concepto, la cantidad "
            "contratada, la comprometida por programaciones no canceladas y la disponible."
    )
)
def list_approved_budgets_endpoint(db: Session = Depends(get_db)):
    return [
        PresupuestoAprobadoOut(
            presupuesto_id=p.presupuesto_id,
            clave_obra=p.clave_obra,
            cliente_nombre=p.cliente_nombre,
            obra=ObraBasicOut.model_validate(p.obra),
            fecha_solicitud=p.fecha_solicitud,
            conceptos=budget_capacity_summary(db, p),
        )
        for p in list_approved_budgets(db)
    ]


@router.get(
    "/presupuestos/{presupuesto_id}/conceptos/{concepto_codigo}/capacidad",
    response_model=CapacidadConceptoOut,
    summary="Capacidad restante de un concepto",
)
def concept_capacity_endpoint(
        presupuesto_id: int = Path(..., gt=0),
        concepto_codigo: str = Path(..., min_length=1),
        db: Session = Depends(get_db),
):
    return concept_capacity(db, presupuesto_id, concepto_codigo)
