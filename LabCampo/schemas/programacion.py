# schemas/programacion.py
from __future__ import annotations

import re
from datetime import date, datetime
from pydantic import BaseModel, Field, computed_field, field_validator

from enums.enums import EstadoProgramacionEnum, TipoProgramacionEnum, TipoRecoleccionEnum
from schemas.recurso import BrigadistaOut, VehiculoOut

_HORA_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::\d{2})?$")


def normalize_hora(value: str) -> str:
    """
    Normaliza una hora del día a "HH:MM" ("8:00" -> "08:00", "08:00:00" -> "08:00").
    Dos programaciones chocan solo si su hora normalizada es idéntica.
    """
    match = _HORA_RE.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise ValueError("La hora debe tener formato HH:MM")
    hh, mm = int(match.group(1)), int(match.group(2))
    if hh > 23 or mm > 59:
        raise ValueError("Hora fuera de rango")
    return f"{hh:02d}:{mm:02d}"


def _blank_to_none(v: str | None) -> str | None:
    if v is None:
        return None
    v = v.strip()
    return v or None


# ============================================================================
# DTOs de Entrada
# ============================================================================

class ProgramacionCreate(BaseModel):
    """
    Crear programación.

    NOTA: las reglas de negocio (apoyo distinto del principal, cantidad > 0,
    capacidad, disponibilidad) las valida el servicio, no el schema, para que
    cualquier llamador obtenga el mismo ValidationError.
    """
    presupuesto_id: int
    clave_obra: str | None = Field(None, max_length=40)  # Si no viene, se toma del presupuesto
    concepto_codigo: str = Field(..., min_length=1, max_length=40)

    fecha_programada: date
    hora_programada: str
    tipo_programacion: TipoProgramacionEnum = TipoProgramacionEnum.obra_por_visita
    cantidad_muestras: int
    tipo_recoleccion: TipoRecoleccionEnum

    brigadista_id: int
    brigadista_apoyo_id: int | None = None
    vehiculo_id: int
    clave_equipo: str | None = Field(None, max_length=80)
    herramientas_especiales: str | None = Field(None, max_length=500)

    nombre_residente: str | None = Field(None, max_length=160)
    telefono_residente: str | None = Field(None, max_length=30)
    observaciones: str | None = None
    instrucciones: str | None = None
    condiciones_especiales: str | None = None

    @field_validator("hora_programada")
    @classmethod
    def validate_hora(cls, v: str) -> str:
        return normalize_hora(v)

    @field_validator("brigadista_apoyo_id")
    @classmethod
    def convert_zero_to_none(cls, v: int | None) -> int | None:
        """Convertir 0 a None (select vacío en el formulario)"""
        if v == 0:
            return None
        return v

    @field_validator("concepto_codigo")
    @classmethod
    def strip_codigo(cls, v: str) -> str:
        return v.strip()

    @field_validator(
        "clave_obra", "nombre_residente", "telefono_residente", "observaciones",
        "instrucciones", "condiciones_especiales", "clave_equipo", "herramientas_especiales",
    )
    @classmethod
    def strip_optional(cls, v: str | None) -> str | None:
        return _blank_to_none(v)


class ProgramacionUpdate(BaseModel):
    """Actualizar datos de contacto y notas. Fecha, hora y recursos solo cambian vía reprogramar."""
    nombre_residente: str | None = Field(None, max_length=160)
    telefono_residente: str | None = Field(None, max_length=30)
    observaciones: str | None = None
    instrucciones: str | None = None
    condiciones_especiales: str | None = None
    clave_equipo: str | None = Field(None, max_length=80)
    herramientas_especiales: str | None = Field(None, max_length=500)

    @field_validator("*")
    @classmethod
    def strip_all(cls, v: str | None) -> str | None:
        return _blank_to_none(v)


class ProgramacionCompletar(BaseModel):
    muestras_obtenidas: int
    observaciones: str | None = None


class ProgramacionCancelar(BaseModel):
    motivo_cancelacion: str = ""


class ProgramacionReprogramar(BaseModel):
    fecha_programada: date
    hora_programada: str
    brigadista_id: int | None = None  # None = conservar el actual
    brigadista_apoyo_id: int | None = None  # None = conservar; 0 = quitar apoyo
    vehiculo_id: int | None = None
    motivo: str | None = Field(None, max_length=255)

    @field_validator("hora_programada")
    @classmethod
    def validate_hora(cls, v: str) -> str:
        return normalize_hora(v)


# ============================================================================
# DTOs de Salida
# ============================================================================

class ProgramacionFechaLogOut(BaseModel):
    programacion_fecha_log_id: int
    estado_anterior: EstadoProgramacionEnum
    fecha_anterior: date
    fecha_nueva: date
    hora_anterior: str
    hora_nueva: str
    brigadista_anterior_id: int
    brigadista_nuevo_id: int
    vehiculo_anterior_id: int
    vehiculo_nuevo_id: int
    motivo: str | None
    changed_by: int | None
    changed_at: datetime

    model_config = {"from_attributes": True}


class ProgramacionOut(BaseModel):
    programacion_id: int
    presupuesto_id: int
    clave_obra: str
    concepto_codigo: str

    fecha_programada: date
    hora_programada: str
    tipo_programacion: TipoProgramacionEnum
    cantidad_muestras: int
    tipo_recoleccion: TipoRecoleccionEnum

    brigadista_id: int
    brigadista_apoyo_id: int | None
    vehiculo_id: int
    brigadista: BrigadistaOut
    brigadista_apoyo: BrigadistaOut | None
    vehiculo: VehiculoOut
    clave_equipo: str | None
    herramientas_especiales: str | None

    nombre_residente: str | None
    telefono_residente: str | None
    observaciones: str | None
    instrucciones: str | None
    condiciones_especiales: str | None

    estado: EstadoProgramacionEnum
    fecha_inicio: datetime | None
    fecha_completado: datetime | None
    muestras_obtenidas: int | None
    observaciones_completado: str | None
    motivo_cancelacion: str | None

    creado_por: int | None
    actualizado_por: int | None
    fecha_creacion: datetime
    fecha_actualizacion: datetime

    cambios_fecha: list[ProgramacionFechaLogOut] = []

    model_config = {"from_attributes": True}

    @computed_field
    @property
    def muestras_pendientes(self) -> int | None:
        """Muestras planeadas que no se obtuvieron (solo en completadas)"""
        if self.muestras_obtenidas is None:
            return None
        return self.cantidad_muestras - self.muestras_obtenidas


class ProgramacionListOut(BaseModel):
    """Versión simplificada para listas y calendario"""
    programacion_id: int
    presupuesto_id: int
    clave_obra: str
    concepto_codigo: str
    fecha_programada: date
    hora_programada: str
    cantidad_muestras: int
    estado: EstadoProgramacionEnum
    brigadista_id: int
    brigadista_apoyo_id: int | None
    vehiculo_id: int
    brigadista_nombre: str
    vehiculo_clave: str

    @classmethod
    def from_programacion(cls, prog) -> "ProgramacionListOut":
        return cls(
            programacion_id=prog.programacion_id,
            presupuesto_id=prog.presupuesto_id,
            clave_obra=prog.clave_obra,
            concepto_codigo=prog.concepto_codigo,
            fecha_programada=prog.fecha_programada,
            hora_programada=prog.hora_programada,
            cantidad_muestras=prog.cantidad_muestras,
            estado=prog.estado,
            brigadista_id=prog.brigadista_id,
            brigadista_apoyo_id=prog.brigadista_apoyo_id,
            vehiculo_id=prog.vehiculo_id,
            brigadista_nombre=prog.brigadista.nombre_completo,
            vehiculo_clave=prog.vehiculo.clave,
        )


class EstadisticasSemanales(BaseModel):
    programaciones_totales: int
    programaciones_completadas: int
    programaciones_pendientes: int
    programaciones_en_proceso: int
    programaciones_canceladas: int
    rendimiento_semanal: int  # % completadas sobre el total
    brigadistas_activos: int
    vehiculos_en_uso: int


class ProgramacionesDiaOut(BaseModel):
    fecha: date
    programaciones: list[ProgramacionListOut]


class SemanaOut(BaseModel):
    fecha_inicio: date
    fecha_fin: date
    stats: EstadisticasSemanales
    programaciones_diarias: list[ProgramacionesDiaOut]
