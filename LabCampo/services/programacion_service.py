# services/programacion_service.py
"""
Orquestador de programaciones.

Cada operación de escritura valida todo antes de mutar y corre dentro de
`serialized()`: locks por concepto y por recurso/fecha, validación, escritura y
commit como una sola unidad. Si algo falla, la sesión hace rollback y la BD
queda como estaba.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, timedelta

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload
from sqlalchemy.orm.exc import StaleDataError

from enums.enums import (
    EstadoProgramacionEnum, EventoProgramacionEnum, PresupuestoEstadoEnum, TipoRecursoEnum
)
from models.programacion import Programacion, ProgramacionFechaLog
from schemas.programacion import (
    EstadisticasSemanales, ProgramacionCreate, ProgramacionesDiaOut, ProgramacionListOut,
    ProgramacionUpdate, SemanaOut, normalize_hora,
)
from services import programacion_fsm as fsm
from services.availability_service import find_conflict
from services.capacity_service import ensure_capacity
from services.presupuesto_service import get_budget, get_budget_line
from services.resource_service import get_resource
from utils.datetime_utils import now_local, week_bounds
from utils.errors import NotFound, ResourceUnavailable, ValidationError
from utils.locks import concept_key, resource_key
from utils.transactions import serialized

logger = logging.getLogger(__name__)


# ============================================================================
# Helpers Privados
# ============================================================================

def _schedule_key(programacion_id: int) -> str:
    return f"programacion:{programacion_id}"


def _slot_keys(
        fecha: date,
        brigadista_id: int,
        brigadista_apoyo_id: int | None,
        vehiculo_id: int,
) -> list[str]:
    keys = [
        resource_key(TipoRecursoEnum.brigadista.value, brigadista_id, fecha),
        resource_key(TipoRecursoEnum.vehiculo.value, vehiculo_id, fecha),
    ]
    if brigadista_apoyo_id is not None:
        keys.append(resource_key(TipoRecursoEnum.brigadista.value, brigadista_apoyo_id, fecha))
    return keys


def _validate_create(data: ProgramacionCreate) -> None:
    """Reglas de entrada; junta todos los errores de campo en un solo ValidationError."""
    errores = []
    if data.cantidad_muestras is None or data.cantidad_muestras <= 0:
        errores.append({"campo": "cantidad_muestras", "mensaje": "Debe ser mayor a 0"})
    if data.brigadista_apoyo_id is not None and data.brigadista_apoyo_id == data.brigadista_id:
        errores.append({
            "campo": "brigadista_apoyo_id",
            "mensaje": "El brigadista de apoyo debe ser distinto del principal",
        })
    if errores:
        raise ValidationError(errores)


def _check_resources(
        db: Session,
        fecha: date,
        hora: str,
        brigadista_id: int,
        brigadista_apoyo_id: int | None,
        vehiculo_id: int,
        exclude_id: int | None = None,
) -> None:
    """
    Existencia, `activo` y slot libre para cada recurso. Bloquea las filas de
    los recursos (FOR UPDATE) mientras dura la transacción.
    """
    recursos = [(TipoRecursoEnum.brigadista, brigadista_id)]
    if brigadista_apoyo_id is not None:
        recursos.append((TipoRecursoEnum.brigadista, brigadista_apoyo_id))
    recursos.append((TipoRecursoEnum.vehiculo, vehiculo_id))

    for tipo, recurso_id in recursos:
        recurso = get_resource(db, tipo, recurso_id, for_update=True)
        if not recurso.activo:
            raise ResourceUnavailable(tipo.value, recurso_id, fecha, hora, motivo="inactivo")
        conflicto = find_conflict(db, tipo, recurso_id, fecha, hora, exclude_id=exclude_id)
        if conflicto is not None:
            logger.info(
                "%s %s ocupado el %s %s por programación %s",
                tipo.value, recurso_id, fecha, hora, conflicto.programacion_id,
            )
            raise ResourceUnavailable(
                tipo.value, recurso_id, fecha, hora, programacion_id=conflicto.programacion_id
            )


def _get_for_update(db: Session, programacion_id: int) -> Programacion:
    prog = (
        db.query(Programacion)
        .filter(Programacion.programacion_id == programacion_id)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if not prog:
        raise NotFound("Programacion", programacion_id)
    return prog


def _get_with_relations(db: Session, programacion_id: int) -> Programacion | None:
    """Programación con recursos y bitácora cargados (evita N+1)"""
    return (
        db.query(Programacion)
        .options(
            joinedload(Programacion.brigadista),
            joinedload(Programacion.brigadista_apoyo),
            joinedload(Programacion.vehiculo),
            joinedload(Programacion.cambios_fecha),
        )
        .filter(Programacion.programacion_id == programacion_id)
        .first()
    )


# ============================================================================
# Consultas
# ============================================================================

def get_schedule(db: Session, programacion_id: int) -> Programacion:
    prog = _get_with_relations(db, programacion_id)
    if not prog:
        raise NotFound("Programacion", programacion_id)
    return prog


def list_schedules(
        db: Session,
        fecha_inicio: date | None = None,
        fecha_fin: date | None = None,
        brigadista_id: int | None = None,
        estado: EstadoProgramacionEnum | None = None,
        clave_obra: str | None = None,
        presupuesto_id: int | None = None,
        skip: int = 0,
        limit: int | None = 200,
) -> list[Programacion]:
    """
    Listar programaciones con filtros opcionales.

    Filtros:
    - fecha_inicio / fecha_fin: rango inclusivo sobre fecha_programada
    - brigadista_id: como principal O como apoyo
    - estado, clave_obra, presupuesto_id
    - limit=None: sin tope (lo usa el tablero semanal)
    """
    query = db.query(Programacion).options(
        joinedload(Programacion.brigadista),
        joinedload(Programacion.vehiculo),
    )

    if fecha_inicio:
        query = query.filter(Programacion.fecha_programada >= fecha_inicio)
    if fecha_fin:
        query = query.filter(Programacion.fecha_programada <= fecha_fin)
    if brigadista_id:
        query = query.filter(
            or_(
                Programacion.brigadista_id == brigadista_id,
                Programacion.brigadista_apoyo_id == brigadista_id,
            )
        )
    if estado:
        query = query.filter(Programacion.estado == estado)
    if clave_obra:
        query = query.filter(Programacion.clave_obra == clave_obra)
    if presupuesto_id:
        query = query.filter(Programacion.presupuesto_id == presupuesto_id)

    return (
        query.order_by(
            Programacion.fecha_programada.asc(),
            Programacion.hora_programada.asc(),
            Programacion.programacion_id.asc(),
        )
        .offset(skip)
        .limit(limit)
        .all()
    )


def weekly_stats(db: Session, fecha: date) -> SemanaOut:
    """
    Tablero semanal (domingo a sábado) de la semana que contiene `fecha`.
    """
    inicio, fin = week_bounds(fecha)
    programaciones = list_schedules(db, fecha_inicio=inicio, fecha_fin=fin, limit=None)

    por_estado: dict[EstadoProgramacionEnum, int] = defaultdict(int)
    brigadistas: set[int] = set()
    vehiculos: set[int] = set()
    por_dia: dict[date, list[ProgramacionListOut]] = defaultdict(list)

    for prog in programaciones:
        por_estado[EstadoProgramacionEnum(prog.estado)] += 1
        brigadistas.add(prog.brigadista_id)
        if prog.brigadista_apoyo_id is not None:
            brigadistas.add(prog.brigadista_apoyo_id)
        vehiculos.add(prog.vehiculo_id)
        por_dia[prog.fecha_programada].append(ProgramacionListOut.from_programacion(prog))

    total = len(programaciones)
    completadas = por_estado[EstadoProgramacionEnum.completada]
    stats = EstadisticasSemanales(
        programaciones_totales=total,
        programaciones_completadas=completadas,
        programaciones_pendientes=por_estado[EstadoProgramacionEnum.programada],
        programaciones_en_proceso=por_estado[EstadoProgramacionEnum.en_proceso],
        programaciones_canceladas=por_estado[EstadoProgramacionEnum.cancelada],
        rendimiento_semanal=round(completadas * 100 / total) if total else 0,
        brigadistas_activos=len(brigadistas),
        vehiculos_en_uso=len(vehiculos),
    )
    dias = [
        ProgramacionesDiaOut(fecha=inicio + timedelta(days=i), programaciones=por_dia[inicio + timedelta(days=i)])
        for i in range(7)
    ]
    return SemanaOut(fecha_inicio=inicio, fecha_fin=fin, stats=stats, programaciones_diarias=dias)


# ============================================================================
# Operaciones del motor
# ============================================================================

def create_schedule(db: Session, data: ProgramacionCreate, creado_por: int | None = None) -> Programacion:
    """
    Crear programación en estado programada.

    Pasos (todo antes de escribir):
    1. Reglas de entrada (cantidad > 0, apoyo distinto del principal)
    2. Presupuesto existe, está aprobado, tiene el concepto y corresponde a la obra
    3. Recursos existen, están activos y libres en fecha/hora
    4. cantidad_muestras <= disponible del concepto
    """
    _validate_create(data)

    keys = [concept_key(data.presupuesto_id, data.concepto_codigo)]
    keys += _slot_keys(data.fecha_programada, data.brigadista_id, data.brigadista_apoyo_id, data.vehiculo_id)

    def _op() -> int:
        presupuesto = get_budget(db, data.presupuesto_id)
        if presupuesto.estado != PresupuestoEstadoEnum.aprobado:
            raise ValidationError.campo(
                "presupuesto_id",
                f"El presupuesto {presupuesto.presupuesto_id} no está aprobado "
                f"(estado: {PresupuestoEstadoEnum(presupuesto.estado).value})",
            )
        if data.clave_obra and data.clave_obra != presupuesto.clave_obra:
            raise ValidationError.campo(
                "clave_obra",
                f"La obra {data.clave_obra} no corresponde al presupuesto {presupuesto.presupuesto_id}",
            )
        get_budget_line(db, data.presupuesto_id, data.concepto_codigo, for_update=True)

        _check_resources(
            db, data.fecha_programada, data.hora_programada,
            data.brigadista_id, data.brigadista_apoyo_id, data.vehiculo_id,
        )
        ensure_capacity(db, data.presupuesto_id, data.concepto_codigo, data.cantidad_muestras)

        prog = Programacion(
            **data.model_dump(exclude={"clave_obra"}),
            clave_obra=presupuesto.clave_obra,
            estado=EstadoProgramacionEnum.programada,
            creado_por=creado_por,
            actualizado_por=creado_por,
        )
        db.add(prog)
        db.flush()
        return prog.programacion_id

    programacion_id = serialized(db, keys, _op)
    logger.info(
        "Programación %s creada: presupuesto=%s concepto=%s muestras=%s %s %s",
        programacion_id, data.presupuesto_id, data.concepto_codigo, data.cantidad_muestras,
        data.fecha_programada, data.hora_programada,
    )
    return get_schedule(db, programacion_id)


def update_schedule_details(
        db: Session,
        programacion_id: int,
        data: ProgramacionUpdate,
        actualizado_por: int | None = None,
) -> Programacion:
    """Solo contacto y notas; no toca planeación ni ciclo de vida."""
    def _op() -> None:
        prog = _get_for_update(db, programacion_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(prog, field, value)
        prog.actualizado_por = actualizado_por

    serialized(db, [_schedule_key(programacion_id)], _op)
    return get_schedule(db, programacion_id)


def start_schedule(db: Session, programacion_id: int, actualizado_por: int | None = None) -> Programacion:
    def _op() -> None:
        prog = _get_for_update(db, programacion_id)
        fsm.start(prog, now_local())
        prog.actualizado_por = actualizado_por

    serialized(db, [_schedule_key(programacion_id)], _op)
    logger.info("Programación %s iniciada", programacion_id)
    return get_schedule(db, programacion_id)


def complete_schedule(
        db: Session,
        programacion_id: int,
        muestras_obtenidas: int,
        observaciones: str | None = None,
        actualizado_por: int | None = None,
) -> Programacion:
    """
    Completar. Las muestras obtenidas se topan en la cantidad programada; la
    capacidad comprometida sigue siendo `cantidad_muestras`.
    """
    def _op() -> None:
        prog = _get_for_update(db, programacion_id)
        fsm.complete(prog, muestras_obtenidas, now_local(), observaciones=observaciones)
        prog.actualizado_por = actualizado_por

    serialized(db, [_schedule_key(programacion_id)], _op)
    logger.info("Programación %s completada con %s muestras", programacion_id, muestras_obtenidas)
    return get_schedule(db, programacion_id)


def cancel_schedule(
        db: Session,
        programacion_id: int,
        motivo: str | None,
        actualizado_por: int | None = None,
) -> Programacion:
    """Cancelar: libera de inmediato la capacidad y el slot de los recursos."""
    prog = get_schedule(db, programacion_id)
    keys = [
        _schedule_key(programacion_id),
        concept_key(prog.presupuesto_id, prog.concepto_codigo),
    ]

    def _op() -> None:
        prog = _get_for_update(db, programacion_id)
        fsm.cancel(prog, motivo)
        prog.actualizado_por = actualizado_por

    serialized(db, keys, _op)
    logger.info("Programación %s cancelada", programacion_id)
    return get_schedule(db, programacion_id)


def reschedule_schedule(
        db: Session,
        programacion_id: int,
        fecha: date,
        hora: str,
        brigadista_id: int | None = None,
        vehiculo_id: int | None = None,
        brigadista_apoyo_id: int | None = None,
        motivo: str | None = None,
        actualizado_por: int | None = None,
) -> Programacion:
    """
    Reprogramar a un nuevo slot (y opcionalmente nuevos recursos).

    - `hora` se normaliza a "HH:MM" igual que en la creación.
    - Recursos en None conservan el actual; `brigadista_apoyo_id=0` quita el apoyo.
    - Re-valida disponibilidad y capacidad como si fuera una creación.
    - Desde cancelada vuelve a comprometer su cantidad de muestras.
    - Registra el cambio en programacion_fecha_log.
    """
    try:
        hora = normalize_hora(hora)
    except ValueError as exc:
        raise ValidationError.campo("hora_programada", str(exc))

    def _resolve(prog: Programacion) -> tuple[int, int | None, int]:
        brigadista = brigadista_id if brigadista_id is not None else prog.brigadista_id
        vehiculo = vehiculo_id if vehiculo_id is not None else prog.vehiculo_id
        if brigadista_apoyo_id is None:
            apoyo = prog.brigadista_apoyo_id
        else:
            apoyo = brigadista_apoyo_id or None
        return brigadista, apoyo, vehiculo

    recursos: tuple[int, int | None, int] | None = None

    def _keys() -> list[str]:
        # Se recalcula en cada intento: los recursos actuales definen los locks
        nonlocal recursos
        actual = get_schedule(db, programacion_id)
        recursos = _resolve(actual)
        keys = [
            _schedule_key(programacion_id),
            concept_key(actual.presupuesto_id, actual.concepto_codigo),
        ]
        return keys + _slot_keys(fecha, *recursos)

    def _op() -> None:
        prog = _get_for_update(db, programacion_id)
        fsm.ensure_transition(prog, EventoProgramacionEnum.reprogramar)

        resueltos = _resolve(prog)
        if resueltos != recursos:
            # Otro proceso cambió los recursos entre la lectura y el lock
            raise StaleDataError("recursos de la programación modificados concurrentemente")
        nuevo_brigadista, nuevo_apoyo, nuevo_vehiculo = resueltos

        if nuevo_apoyo is not None and nuevo_apoyo == nuevo_brigadista:
            raise ValidationError.campo(
                "brigadista_apoyo_id", "El brigadista de apoyo debe ser distinto del principal"
            )

        _check_resources(
            db, fecha, hora, nuevo_brigadista, nuevo_apoyo, nuevo_vehiculo,
            exclude_id=prog.programacion_id,
        )
        ensure_capacity(
            db, prog.presupuesto_id, prog.concepto_codigo, prog.cantidad_muestras,
            exclude_id=prog.programacion_id,
        )

        log = ProgramacionFechaLog(
            programacion_id=prog.programacion_id,
            estado_anterior=prog.estado,
            fecha_anterior=prog.fecha_programada,
            fecha_nueva=fecha,
            hora_anterior=prog.hora_programada,
            hora_nueva=hora,
            brigadista_anterior_id=prog.brigadista_id,
            brigadista_nuevo_id=nuevo_brigadista,
            vehiculo_anterior_id=prog.vehiculo_id,
            vehiculo_nuevo_id=nuevo_vehiculo,
            motivo=motivo,
            changed_by=actualizado_por,
        )
        fsm.reprogram(prog, fecha, hora, nuevo_brigadista, nuevo_apoyo, nuevo_vehiculo)
        prog.actualizado_por = actualizado_por
        db.add(log)

    serialized(db, _keys, _op)
    logger.info("Programación %s reprogramada a %s %s", programacion_id, fecha, hora)
    return get_schedule(db, programacion_id)


def delete_schedule(db: Session, programacion_id: int) -> None:
    """
    Eliminar físicamente. Solo en programada o cancelada; las que llegaron a
    en_proceso/completada se conservan.
    """
    def _op() -> None:
        prog = _get_for_update(db, programacion_id)
        fsm.ensure_deletable(prog)
        db.delete(prog)

    serialized(db, [_schedule_key(programacion_id)], _op)
    logger.info("Programación %s eliminada", programacion_id)
