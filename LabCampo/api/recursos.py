# api/recursos.py
from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.orm import Session

from enums.enums import TipoRecursoEnum
from schemas.programacion import normalize_hora
from schemas.recurso import (
    BrigadistaCreate, BrigadistaUpdate, BrigadistaOut,
    VehiculoCreate, VehiculoUpdate, VehiculoOut, DisponibilidadOut,
)
from services.availability_service import find_conflict, list_available
from services.resource_service import (
    create_brigadista, update_brigadista, create_vehiculo, update_vehiculo,
    get_resource, list_active,
)
from utils.db import get_db
from utils.errors import ValidationError

router = APIRouter(tags=["Recursos"])


def _hora_param(hora: str = Query(..., description="Hora del slot (HH:MM)")) -> str:
    try:
        return normalize_hora(hora)
    except ValueError as exc:
        raise ValidationError.campo("hora", str(exc))


# ============================================================================
# Brigadistas
# ============================================================================

@router.get(
    "/brigadistas",
    response_model=list[BrigadistaOut],
    summary="Listar brigadistas activos",
)
def list_brigadistas_endpoint(db: Session = Depends(get_db)):
    return list_active(db, TipoRecursoEnum.brigadista)


@router.post(
    "/brigadistas",
    response_model=BrigadistaOut,
    status_code=status.HTTP_201_CREATED,
    summary="Crear brigadista",
)
def create_brigadista_endpoint(payload: BrigadistaCreate, db: Session = Depends(get_db)):
    return create_brigadista(db, payload)


@router.put(
    "/brigadistas/{brigadista_id}",
    response_model=BrigadistaOut,
    summary="Actualizar brigadista",
    description=(
            "Actualiza datos del brigadista.\n\n"
            "`activo=false` lo saca de la programación: ya no aparece como disponible "
            "y no se le pueden asignar actividades nuevas."
    )
)
def update_brigadista_endpoint(
        brigadista_id: int = Path(..., gt=0),
        payload: BrigadistaUpdate = ...,
        db: Session = Depends(get_db),
):
    return update_brigadista(db, brigadista_id, payload)


# ============================================================================
# Vehículos
# ============================================================================

@router.get(
    "/vehiculos",
    response_model=list[VehiculoOut],
    summary="Listar vehículos activos",
)
def list_vehiculos_endpoint(db: Session = Depends(get_db)):
    return list_active(db, TipoRecursoEnum.vehiculo)


@router.post(
    "/vehiculos",
    response_model=VehiculoOut,
    status_code=status.HTTP_201_CREATED,
    summary="Crear vehículo",
)
def create_vehiculo_endpoint(payload: VehiculoCreate, db: Session = Depends(get_db)):
    return create_vehiculo(db, payload)


@router.put(
    "/vehiculos/{vehiculo_id}",
    response_model=VehiculoOut,
    summary="Actualizar vehículo",
)
def update_vehiculo_endpoint(
        vehiculo_id: int = Path(..., gt=0),
        payload: VehiculoUpdate = ...,
        db: Session = Depends(get_db),
):
    return update_vehiculo(db, vehiculo_id, payload)


# ============================================================================
# Disponibilidad
# ============================================================================

@router.get(
    "/recursos/{tipo}/disponibles",
    summary="Recursos disponibles en un slot",
    description=(
            "Recursos activos sin programación activa (programada / en proceso) en la "
            "fecha y hora indicadas.\n\n"
            "Es un pre-filtro para el formulario; al crear o reprogramar se vuelve a validar."
    )
)
def list_available_endpoint(
        tipo: TipoRecursoEnum = Path(..., description="brigadista | vehiculo"),
        fecha: date = Query(...),
        hora: str = Depends(_hora_param),
        db: Session = Depends(get_db),
):
    recursos = list_available(db, tipo, fecha, hora)
    if tipo is TipoRecursoEnum.brigadista:
        return [BrigadistaOut.model_validate(r) for r in recursos]
    return [VehiculoOut.model_validate(r) for r in recursos]


@router.get(
    "/recursos/{tipo}/{recurso_id}/disponibilidad",
    response_model=DisponibilidadOut,
    summary="¿Está libre el recurso en el slot?",
)
def availability_endpoint(
        tipo: TipoRecursoEnum = Path(...),
        recurso_id: int = Path(..., gt=0),
        fecha: date = Query(...),
        hora: str = Depends(_hora_param),
        db: Session = Depends(get_db),
):
    recurso = get_resource(db, tipo, recurso_id)
    conflicto = find_conflict(db, tipo, recurso_id, fecha, hora)
    return DisponibilidadOut(
        tipo=tipo.value,
        recurso_id=recurso_id,
        fecha=fecha.isoformat(),
        hora=hora,
        disponible=bool(recurso.activo) and conflicto is None,
        programacion_id=conflicto.programacion_id if conflicto else None,
    )
