# schemas/presupuesto.py
from __future__ import annotations

from datetime import datetime
from pydantic import BaseModel


class CapacidadConceptoOut(BaseModel):
    """Compromiso de una línea de presupuesto"""
    presupuesto_id: int
    concepto_codigo: str
    descripcion: str | None = None
    unidad: str | None = None
    contratado: int
    comprometido: int
    disponible: int


class ObraBasicOut(BaseModel):
    clave: str
    nombre: str
    direccion: str | None
    contratista: str | None

    model_config = {"from_attributes": True}


class PresupuestoAprobadoOut(BaseModel):
    """Presupuesto aprobado listo para programar, con capacidad por concepto"""
    presupuesto_id: int
    clave_obra: str
    cliente_nombre: str | None
    obra: ObraBasicOut
    fecha_solicitud: datetime
    conceptos: list[CapacidadConceptoOut]
