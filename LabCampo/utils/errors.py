"""
Errores de dominio del motor de programación.

Todos son HTTPException: los servicios los lanzan igual que cualquier otro
HTTPException y FastAPI los serializa como `{"detail": {...}}`. El `detail`
siempre incluye un código `error` estable y un `mensaje` legible.
"""
from __future__ import annotations

import logging
from datetime import date

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import IntegrityError

logger = logging.getLogger(__name__)


class SchedulingError(HTTPException):
    """Base de los errores del dominio de programación."""
    error_code = "scheduling_error"

    def __init__(self, status_code: int, mensaje: str, **extra):
        self.mensaje = mensaje
        detail = {"error": self.error_code, "mensaje": mensaje}
        detail.update(extra)
        super().__init__(status_code=status_code, detail=detail)


class NotFound(SchedulingError):
    error_code = "not_found"

    def __init__(self, entidad: str, id_: object):
        self.entidad = entidad
        self.id = id_
        super().__init__(
            status.HTTP_404_NOT_FOUND,
            f"{entidad} {id_} no encontrado",
            entidad=entidad,
            id=id_,
        )


class CapacityExceeded(SchedulingError):
    error_code = "capacity_exceeded"

    def __init__(self, presupuesto_id: int, concepto_codigo: str, solicitado: int, disponible: int):
        self.presupuesto_id = presupuesto_id
        self.concepto_codigo = concepto_codigo
        self.solicitado = solicitado
        self.disponible = disponible
        super().__init__(
            status.HTTP_409_CONFLICT,
            f"Solo hay {disponible} muestras disponibles del concepto {concepto_codigo} "
            f"(solicitadas: {solicitado})",
            presupuesto_id=presupuesto_id,
            concepto_codigo=concepto_codigo,
            solicitado=solicitado,
            disponible=disponible,
        )


class ResourceUnavailable(SchedulingError):
    error_code = "resource_unavailable"

    def __init__(
            self,
            tipo: str,
            recurso_id: int,
            fecha: date,
            hora: str,
            programacion_id: int | None = None,
            motivo: str = "ocupado",
    ):
        self.tipo = tipo
        self.recurso_id = recurso_id
        self.fecha = fecha
        self.hora = hora
        self.programacion_id = programacion_id
        self.motivo = motivo
        if motivo == "inactivo":
            mensaje = f"El {tipo} {recurso_id} está inactivo"
        else:
            mensaje = f"El {tipo} {recurso_id} ya está programado el {fecha.isoformat()} a las {hora}"
        super().__init__(
            status.HTTP_409_CONFLICT,
            mensaje,
            tipo=tipo,
            recurso_id=recurso_id,
            fecha=fecha.isoformat(),
            hora=hora,
            programacion_id=programacion_id,
            motivo=motivo,
        )


class InvalidTransition(SchedulingError):
    error_code = "invalid_transition"

    def __init__(self, estado_actual: str, evento: str):
        self.estado_actual = estado_actual
        self.evento = evento
        super().__init__(
            status.HTTP_409_CONFLICT,
            f"No se puede '{evento}' una programación en estado '{estado_actual}'",
            estado_actual=estado_actual,
            evento=evento,
        )


class ValidationError(SchedulingError):
    error_code = "validation_error"

    def __init__(self, errores: list[dict]):
        self.errores = errores
        mensaje = "; ".join(f"{e['campo']}: {e['mensaje']}" for e in errores)
        super().__init__(status.HTTP_422_UNPROCESSABLE_ENTITY, mensaje, errores=errores)

    @classmethod
    def campo(cls, campo: str, mensaje: str) -> "ValidationError":
        return cls([{"campo": campo, "mensaje": mensaje}])


class Conflict(SchedulingError):
    error_code = "conflict"

    def __init__(self, intentos: int):
        self.intentos = intentos
        super().__init__(
            status.HTTP_409_CONFLICT,
            f"Conflicto de concurrencia tras {intentos} intentos; vuelve a intentarlo",
            intentos=intentos,
        )


def _normalize_errors(errs):
    norm = []
    for e in errs:
        e = dict(e)
        val = e.get("input")
        if isinstance(val, (bytes, bytearray)):
            e["input"] = val.decode("utf-8", errors="ignore")
        # ctx puede traer la excepción original (no serializable)
        if "ctx" in e:
            e["ctx"] = {k: str(v) for k, v in e["ctx"].items()}
        norm.append(e)
    return norm


def install_error_handlers(app: FastAPI):
    @app.exception_handler(RequestValidationError)
    async def validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=422,
            content={"error": "validation_error", "detail": _normalize_errors(exc.errors())},
        )

    @app.exception_handler(IntegrityError)
    async def integrity_handler(request: Request, exc: IntegrityError):
        logger.warning("IntegrityError en %s %s: %s", request.method, request.url.path, exc.orig)
        return JSONResponse(status_code=409, content={"error": "conflict", "detail": str(exc.orig)})
