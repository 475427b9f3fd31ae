# models/programacion.py
from __future__ import annotations

from datetime import datetime, date
from sqlalchemy import (
    BigInteger, CheckConstraint, Date, DateTime, Enum, ForeignKey, Integer, String, Text
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from enums.enums import (
    EstadoProgramacionEnum, TipoProgramacionEnum, TipoRecoleccionEnum
)
from utils.db import Base
from utils.datetime_utils import now_local


def _enum_column(enum_cls, length: int = 30) -> Enum:
    # Se persiste el value ("en_proceso"), nunca un string arbitrario
    return Enum(
        enum_cls,
        native_enum=False,
        length=length,
        validate_strings=True,
        values_callable=lambda e: [m.value for m in e],
    )


class Programacion(Base):
    """
    Actividad de campo programada: toma de `cantidad_muestras` de un concepto
    presupuestado en una obra, asignada a un brigadista (más apoyo opcional) y
    un vehículo en una fecha/hora.

    Características:
    - `estado` solo lo modifica el orquestador (services/programacion_service.py)
    - Los campos de planeación solo cambian al crear o al reprogramar
    - Solo se elimina físicamente en estado programada o cancelada
    """
    __tablename__ = "programacion"
    __table_args__ = (
        CheckConstraint("cantidad_muestras > 0", name="cantidad_muestras_positiva"),
        CheckConstraint(
            "brigadista_apoyo_id IS NULL OR brigadista_apoyo_id <> brigadista_id",
            name="apoyo_distinto_de_principal",
        ),
    )

    programacion_id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)

    # Referencias al presupuesto
    presupuesto_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("presupuesto.presupuesto_id"), nullable=False, index=True
    )
    clave_obra: Mapped[str] = mapped_column(String(40), ForeignKey("obra.clave"), nullable=False, index=True)
    concepto_codigo: Mapped[str] = mapped_column(String(40), ForeignKey("concepto.codigo"), nullable=False, index=True)

    # Recursos
    brigadista_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("brigadista.brigadista_id"), nullable=False, index=True
    )
    brigadista_apoyo_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("brigadista.brigadista_id"), nullable=True, index=True
    )
    vehiculo_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("vehiculo.vehiculo_id"), nullable=False, index=True
    )
    clave_equipo: Mapped[str | None] = mapped_column(String(80))
    herramientas_especiales: Mapped[str | None] = mapped_column(String(500))

    # Planeación
    fecha_programada: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    hora_programada: Mapped[str] = mapped_column(String(5), nullable=False)  # "HH:MM"
    tipo_programacion: Mapped[TipoProgramacionEnum] = mapped_column(_enum_column(TipoProgramacionEnum), nullable=False)
    cantidad_muestras: Mapped[int] = mapped_column(Integer, nullable=False)
    tipo_recoleccion: Mapped[TipoRecoleccionEnum] = mapped_column(_enum_column(TipoRecoleccionEnum), nullable=False)

    # Contacto / contexto (opacos para el motor)
    nombre_residente: Mapped[str | None] = mapped_column(String(160))
    telefono_residente: Mapped[str | None] = mapped_column(String(30))
    observaciones: Mapped[str | None] = mapped_column(Text)
    instrucciones: Mapped[str | None] = mapped_column(Text)
    condiciones_especiales: Mapped[str | None] = mapped_column(Text)

    # Ciclo de vida
    estado: Mapped[EstadoProgramacionEnum] = mapped_column(
        _enum_column(EstadoProgramacionEnum, length=20),
        default=EstadoProgramacionEnum.programada,
        nullable=False,
        index=True,
    )
    fecha_inicio: Mapped[datetime | None] = mapped_column(DateTime(timezone=False))
    fecha_completado: Mapped[datetime | None] = mapped_column(DateTime(timezone=False))
    muestras_obtenidas: Mapped[int | None] = mapped_column(Integer)
    observaciones_completado: Mapped[str | None] = mapped_column(Text)
    motivo_cancelacion: Mapped[str | None] = mapped_column(String(500))

    # Auditoría
    creado_por: Mapped[int | None] = mapped_column(BigInteger)
    actualizado_por: Mapped[int | None] = mapped_column(BigInteger)
    fecha_creacion: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        default=now_local,
        nullable=False,
    )
    fecha_actualizacion: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        default=now_local,
        onupdate=now_local,
        nullable=False,
    )

    # Relationships
    brigadista: Mapped["Brigadista"] = relationship("Brigadista", foreign_keys=[brigadista_id])
    brigadista_apoyo: Mapped["Brigadista | None"] = relationship("Brigadista", foreign_keys=[brigadista_apoyo_id])
    vehiculo: Mapped["Vehiculo"] = relationship("Vehiculo", foreign_keys=[vehiculo_id])
    concepto: Mapped["Concepto"] = relationship("Concepto", foreign_keys=[concepto_codigo])
    obra: Mapped["Obra"] = relationship("Obra", foreign_keys=[clave_obra])

    cambios_fecha: Mapped[list["ProgramacionFechaLog"]] = relationship(
        "ProgramacionFechaLog",
        back_populates="programacion",
        cascade="all, delete-orphan",
        order_by="ProgramacionFechaLog.programacion_fecha_log_id",
    )


class ProgramacionFechaLog(Base):
    """Bitácora de reprogramaciones (fecha, hora y recursos antes/después)."""
    __tablename__ = "programacion_fecha_log"

    programacion_fecha_log_id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    programacion_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("programacion.programacion_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    estado_anterior: Mapped[EstadoProgramacionEnum] = mapped_column(
        _enum_column(EstadoProgramacionEnum, length=20), nullable=False
    )
    fecha_anterior: Mapped[date] = mapped_column(Date, nullable=False)
    fecha_nueva: Mapped[date] = mapped_column(Date, nullable=False)
    hora_anterior: Mapped[str] = mapped_column(String(5), nullable=False)
    hora_nueva: Mapped[str] = mapped_column(String(5), nullable=False)
    brigadista_anterior_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    brigadista_nuevo_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    vehiculo_anterior_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    vehiculo_nuevo_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    motivo: Mapped[str | None] = mapped_column(String(255))

    changed_by: Mapped[int | None] = mapped_column(BigInteger)
    changed_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), default=now_local, nullable=False)

    programacion: Mapped["Programacion"] = relationship("Programacion", back_populates="cambios_fecha")
