# services/programacion_fsm.py
"""
Máquina de estados de Programacion.

    programada  --iniciar-->     en_proceso    (fecha_inicio = ahora)
    programada  --cancelar-->    cancelada     (motivo obligatorio, libera capacidad)
    programada  --reprogramar--> reprogramada -> programada  (nuevo slot re-validado)
    en_proceso  --completar-->   completada    (0 <= muestras_obtenidas <= cantidad_muestras)
    en_proceso  --cancelar-->    cancelada     (motivo obligatorio, libera capacidad)
    cancelada   --reprogramar--> programada    (como programación nueva)

Cualquier otra combinación es InvalidTransition. No se saltan estados:
completar desde programada se rechaza.

Estas funciones solo mutan el objeto en memoria; persistir y validar recursos
y capacidad es responsabilidad de services/programacion_service.py.
"""
from __future__ import annotations

from datetime import date, datetime

from enums.enums import EstadoProgramacionEnum as Estado, EventoProgramacionEnum as Evento
from models.programacion import Programacion
from utils.errors import InvalidTransition, ValidationError

TRANSICIONES: dict[tuple[Estado, Evento], Estado] = {
    (Estado.programada, Evento.iniciar): Estado.en_proceso,
    (Estado.programada, Evento.cancelar): Estado.cancelada,
    (Estado.programada, Evento.reprogramar): Estado.reprogramada,
    (Estado.reprogramada, Evento.reprogramar): Estado.programada,
    (Estado.en_proceso, Evento.completar): Estado.completada,
    (Estado.en_proceso, Evento.cancelar): Estado.cancelada,
    (Estado.cancelada, Evento.reprogramar): Estado.programada,
}

# Las que alguna vez estuvieron en proceso / completadas se conservan para auditoría
ESTADOS_ELIMINABLES = frozenset({Estado.programada, Estado.cancelada})


def next_state(estado: Estado | str, evento: Evento | str) -> Estado:
    estado, evento = Estado(estado), Evento(evento)
    destino = TRANSICIONES.get((estado, evento))
    if destino is None:
        raise InvalidTransition(estado.value, evento.value)
    return destino


def ensure_transition(prog: Programacion, evento: Evento) -> Estado:
    """Valida sin mutar; retorna el estado destino."""
    return next_state(prog.estado, evento)


def ensure_deletable(prog: Programacion) -> None:
    if Estado(prog.estado) not in ESTADOS_ELIMINABLES:
        raise InvalidTransition(Estado(prog.estado).value, Evento.eliminar.value)


def start(prog: Programacion, ahora: datetime) -> None:
    prog.estado = next_state(prog.estado, Evento.iniciar)
    prog.fecha_inicio = ahora


def complete(
        prog: Programacion,
        muestras_obtenidas: int,
        ahora: datetime,
        observaciones: str | None = None,
) -> None:
    destino = next_state(prog.estado, Evento.completar)
    if muestras_obtenidas is None or muestras_obtenidas < 0:
        raise ValidationError.campo("muestras_obtenidas", "Debe ser mayor o igual a 0")
    if muestras_obtenidas > prog.cantidad_muestras:
        raise ValidationError.campo(
            "muestras_obtenidas",
            f"No puede exceder las {prog.cantidad_muestras} muestras programadas",
        )
    prog.estado = destino
    prog.muestras_obtenidas = muestras_obtenidas
    prog.fecha_completado = ahora
    if observaciones is not None and observaciones.strip():
        prog.observaciones_completado = observaciones.strip()


def cancel(prog: Programacion, motivo: str | None) -> None:
    destino = next_state(prog.estado, Evento.cancelar)
    motivo = (motivo or "").strip()
    if not motivo:
        raise ValidationError.campo("motivo_cancelacion", "El motivo de cancelación es obligatorio")
    prog.estado = destino
    prog.motivo_cancelacion = motivo


def reprogram(
        prog: Programacion,
        fecha: date,
        hora: str,
        brigadista_id: int,
        brigadista_apoyo_id: int | None,
        vehiculo_id: int,
) -> Estado:
    """
    Aplica el nuevo slot/recursos. Desde programada pasa por la marca
    `reprogramada` y termina de nuevo en programada; desde cancelada vuelve
    directo a programada y se limpia el motivo. Retorna el estado anterior.
    """
    anterior = Estado(prog.estado)
    estado = next_state(anterior, Evento.reprogramar)
    if estado is Estado.reprogramada:
        prog.estado = estado
        estado = next_state(estado, Evento.reprogramar)

    prog.fecha_programada = fecha
    prog.hora_programada = hora
    prog.brigadista_id = brigadista_id
    prog.brigadista_apoyo_id = brigadista_apoyo_id
    prog.vehiculo_id = vehiculo_id
    prog.estado = estado
    if anterior is Estado.cancelada:
        prog.motivo_cancelacion = None
    return anterior
