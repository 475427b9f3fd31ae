# models/presupuesto.py
"""
Tablas del módulo de presupuestos que el motor de programación solo lee:
la obra, el catálogo de conceptos y las líneas contratadas de cada presupuesto.
"""
from __future__ import annotations

from datetime import datetime
from sqlalchemy import (
    BigInteger, DateTime, Enum, ForeignKey, Integer, Numeric, String, UniqueConstraint
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from enums.enums import PresupuestoEstadoEnum
from utils.db import Base
from utils.datetime_utils import now_local


class Obra(Base):
    __tablename__ = "obra"

    clave: Mapped[str] = mapped_column(String(40), primary_key=True)
    nombre: Mapped[str] = mapped_column(String(200), nullable=False)
    direccion: Mapped[str | None] = mapped_column(String(255))
    contratista: Mapped[str | None] = mapped_column(String(200))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), default=now_local, nullable=False)


class Concepto(Base):
    __tablename__ = "concepto"

    codigo: Mapped[str] = mapped_column(String(40), primary_key=True)
    descripcion: Mapped[str] = mapped_column(String(500), nullable=False)
    unidad: Mapped[str] = mapped_column(String(40), nullable=False)
    precio_unitario: Mapped[float | None] = mapped_column(Numeric(12, 2))


class Presupuesto(Base):
    __tablename__ = "presupuesto"

    presupuesto_id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    clave_obra: Mapped[str] = mapped_column(String(40), ForeignKey("obra.clave"), nullable=False, index=True)
    cliente_nombre: Mapped[str | None] = mapped_column(String(200))
    estado: Mapped[PresupuestoEstadoEnum] = mapped_column(
        Enum(PresupuestoEstadoEnum, native_enum=False, length=20, values_callable=lambda e: [m.value for m in e]),
        default=PresupuestoEstadoEnum.borrador,
        nullable=False,
    )
    fecha_solicitud: Mapped[datetime] = mapped_column(DateTime(timezone=False), default=now_local, nullable=False)

    obra: Mapped["Obra"] = relationship("Obra")
    detalles: Mapped[list["PresupuestoDetalle"]] = relationship(
        "PresupuestoDetalle",
        back_populates="presupuesto",
        cascade="all, delete-orphan",
        order_by="PresupuestoDetalle.concepto_codigo",
    )


class PresupuestoDetalle(Base):
    """
    Línea contratada de un presupuesto. `cantidad` es el tope de muestras que
    pueden comprometer las programaciones no canceladas de ese concepto.
    """
    __tablename__ = "presupuesto_detalle"
    __table_args__ = (
        UniqueConstraint("presupuesto_id", "concepto_codigo", name="uq_presupuesto_detalle_concepto"),
    )

    presupuesto_detalle_id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    presupuesto_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("presupuesto.presupuesto_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    concepto_codigo: Mapped[str] = mapped_column(String(40), ForeignKey("concepto.codigo"), nullable=False)
    cantidad: Mapped[int] = mapped_column(Integer, nullable=False)
    precio_unitario: Mapped[float] = mapped_column(Numeric(12, 2), default=0, nullable=False)

    presupuesto: Mapped["Presupuesto"] = relationship("Presupuesto", back_populates="detalles")
    concepto: Mapped["Concepto"] = relationship("Concepto")
