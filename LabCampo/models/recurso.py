# models/recurso.py
from __future__ import annotations

from datetime import datetime
from sqlalchemy import BigInteger, Boolean, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from utils.db import Base
from utils.datetime_utils import now_local


class Brigadista(Base):
    """Técnico de campo que realiza la toma de muestras."""
    __tablename__ = "brigadista"

    brigadista_id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    nombre: Mapped[str] = mapped_column(String(120), nullable=False)
    apellidos: Mapped[str] = mapped_column(String(160), nullable=False)
    telefono: Mapped[str | None] = mapped_column(String(30))
    email: Mapped[str | None] = mapped_column(String(160))

    # Interruptor maestro: inactivo => nunca disponible
    activo: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), default=now_local, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=now_local, onupdate=now_local, nullable=False
    )

    @property
    def nombre_completo(self) -> str:
        return f"{self.nombre} {self.apellidos}"


class Vehiculo(Base):
    __tablename__ = "vehiculo"

    vehiculo_id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    clave: Mapped[str] = mapped_column(String(40), nullable=False, unique=True)
    marca: Mapped[str | None] = mapped_column(String(80))
    modelo: Mapped[str | None] = mapped_column(String(80))
    anio: Mapped[int | None] = mapped_column(Integer)
    placas: Mapped[str | None] = mapped_column(String(20))

    activo: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), default=now_local, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=now_local, onupdate=now_local, nullable=False
    )
