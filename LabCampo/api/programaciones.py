# api/programaciones.py
from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.orm import Session

from enums.enums import EstadoProgramacionEnum
from schemas.programacion import (
    ProgramacionCreate, ProgramacionUpdate, ProgramacionOut, ProgramacionListOut,
    ProgramacionCompletar, ProgramacionCancelar, ProgramacionReprogramar, SemanaOut,
)
from services.programacion_service import (
    create_schedule, get_schedule, list_schedules, weekly_stats,
    update_schedule_details, start_schedule, complete_schedule,
    cancel_schedule, reschedule_schedule, delete_schedule,
)
from utils.datetime_utils import today_local
from utils.db import get_db
from utils.dependencies import get_usuario_id

router = APIRouter(prefix="/programaciones", tags=["Programaciones"])


# ============================================================================
# Consultas
# ============================================================================

@router.get(
    "",
    response_model=list[ProgramacionListOut],
    summary="Listar programaciones",
    description=(
            "Lista programaciones ordenadas por fecha y hora.\n\n"
            "**Filtros:**\n"
            "- `fecha_inicio` / `fecha_fin`: rango inclusivo sobre la fecha programada\n"
            "- `brigadista_id`: como principal o como apoyo\n"
            "- `estado`, `clave_obra`, `presupuesto_id`"
    )
)
def list_programaciones(
        fecha_inicio: date | None = Query(None),
        fecha_fin: date | None = Query(None),
        brigadista_id: int | None = Query(None, gt=0),
        estado: EstadoProgramacionEnum | None = Query(None),
        clave_obra: str | None = Query(None),
        presupuesto_id: int | None = Query(None, gt=0),
        skip: int = Query(0, ge=0),
        limit: int = Query(200, ge=1, le=1000),
        db: Session = Depends(get_db),
):
    programaciones = list_schedules(
        db,
        fecha_inicio=fecha_inicio,
        fecha_fin=fecha_fin,
        brigadista_id=brigadista_id,
        estado=estado,
        clave_obra=clave_obra,
        presupuesto_id=presupuesto_id,
        skip=skip,
        limit=limit,
    )
    return [ProgramacionListOut.from_programacion(p) for p in programaciones]


@router.get(
    "/stats/semanal",
    response_model=SemanaOut,
    summary="Tablero semanal",
    description=(
            "Estadísticas y programaciones por día de la semana (domingo a sábado) "
            "que contiene `fecha`. Sin `fecha` se usa la semana actual."
    )
)
def weekly_stats_endpoint(
        fecha: date | None = Query(None),
        db: Session = Depends(get_db),
):
    return weekly_stats(db, fecha or today_local())


@router.get(
    "/{programacion_id}",
    response_model=ProgramacionOut,
    summary="Detalle de programación",
)
def get_programacion(
        programacion_id: int = Path(..., gt=0),
        db: Session = Depends(get_db),
):
    return get_schedule(db, programacion_id)


# ============================================================================
# Alta, edición y baja
# ============================================================================

@router.post(
    "",
    response_model=ProgramacionOut,
    status_code=status.HTTP_201_CREATED,
    summary="Crear programación",
    description=(
            "Crea una programación en estado `programada`.\n\n"
            "**Validaciones (todas antes de escribir):**\n"
            "- `cantidad_muestras > 0` y apoyo distinto del principal\n"
            "- El presupuesto existe y está aprobado\n"
            "- Brigadista(s) y vehículo activos y libres en fecha/hora\n"
            "- `cantidad_muestras` no excede la capacidad disponible del concepto\n\n"
            "**Errores:** 404 not_found, 409 capacity_exceeded / resource_unavailable / "
            "conflict, 422 validation_error."
    )
)
def post_programacion(
        payload: ProgramacionCreate,
        db: Session = Depends(get_db),
        usuario_id: int | None = Depends(get_usuario_id),
):
    return create_schedule(db, payload, creado_por=usuario_id)


@router.patch(
    "/{programacion_id}",
    response_model=ProgramacionOut,
    summary="Actualizar datos de contacto y notas",
    description=(
            "Solo modifica residente, teléfono, observaciones, instrucciones, "
            "condiciones especiales y equipo. Fecha, hora y recursos se cambian con "
            "`/reprogramar`; el estado solo con las transiciones."
    )
)
def patch_programacion(
        programacion_id: int = Path(..., gt=0),
        payload: ProgramacionUpdate = ...,
        db: Session = Depends(get_db),
        usuario_id: int | None = Depends(get_usuario_id),
):
    return update_schedule_details(db, programacion_id, payload, actualizado_por=usuario_id)


@router.delete(
    "/{programacion_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Eliminar programación",
    description="Solo en estado `programada` o `cancelada`; otras se conservan (409 invalid_transition).",
)
def delete_programacion(
        programacion_id: int = Path(..., gt=0),
        db: Session = Depends(get_db),
):
    delete_schedule(db, programacion_id)
    return None


# ============================================================================
# Transiciones
# ============================================================================

@router.post(
    "/{programacion_id}/iniciar",
    response_model=ProgramacionOut,
    summary="Iniciar actividad",
    description="programada → en_proceso. Registra `fecha_inicio`.",
)
def iniciar_programacion(
        programacion_id: int = Path(..., gt=0),
        db: Session = Depends(get_db),
        usuario_id: int | None = Depends(get_usuario_id),
):
    return start_schedule(db, programacion_id, actualizado_por=usuario_id)


@router.post(
    "/{programacion_id}/completar",
    response_model=ProgramacionOut,
    summary="Completar actividad",
    description=(
            "en_proceso → completada. `muestras_obtenidas` debe estar entre 0 y "
            "`cantidad_muestras`. La capacidad comprometida no cambia."
    )
)
def completar_programacion(
        programacion_id: int = Path(..., gt=0),
        payload: ProgramacionCompletar = ...,
        db: Session = Depends(get_db),
        usuario_id: int | None = Depends(get_usuario_id),
):
    return complete_schedule(
        db,
        programacion_id,
        payload.muestras_obtenidas,
        observaciones=payload.observaciones,
        actualizado_por=usuario_id,
    )


@router.post(
    "/{programacion_id}/cancelar",
    response_model=ProgramacionOut,
    summary="Cancelar actividad",
    description=(
            "programada | en_proceso → cancelada. El motivo es obligatorio. "
            "Libera la capacidad del concepto y el slot de los recursos."
    )
)
def cancelar_programacion(
        programacion_id: int = Path(..., gt=0),
        payload: ProgramacionCancelar = ...,
        db: Session = Depends(get_db),
        usuario_id: int | None = Depends(get_usuario_id),
):
    return cancel_schedule(db, programacion_id, payload.motivo_cancelacion, actualizado_por=usuario_id)


@router.post(
    "/{programacion_id}/reprogramar",
    response_model=ProgramacionOut,
    summary="Reprogramar actividad",
    description=(
            "Mueve la programación a otra fecha/hora y opcionalmente cambia recursos.\n\n"
            "- Desde `programada`: vuelve a `programada` con el nuevo slot\n"
            "- Desde `cancelada`: vuelve a `programada` y compromete de nuevo su capacidad\n"
            "- Recursos omitidos conservan el actual; `brigadista_apoyo_id=0` quita el apoyo\n\n"
            "Cada cambio queda en `cambios_fecha`."
    )
)
def reprogramar_programacion(
        programacion_id: int = Path(..., gt=0),
        payload: ProgramacionReprogramar = ...,
        db: Session = Depends(get_db),
        usuario_id: int | None = Depends(get_usuario_id),
):
    return reschedule_schedule(
        db,
        programacion_id,
        payload.fecha_programada,
        payload.hora_programada,
        brigadista_id=payload.brigadista_id,
        vehiculo_id=payload.vehiculo_id,
        brigadista_apoyo_id=payload.brigadista_apoyo_id,
        motivo=payload.motivo,
        actualizado_por=usuario_id,
    )
