# schemas/recurso.py
from __future__ import annotations

from datetime import datetime
from pydantic import BaseModel, Field, computed_field, field_validator


class BrigadistaCreate(BaseModel):
    nombre: str = Field(..., min_length=1, max_length=120)
    apellidos: str = Field(..., min_length=1, max_length=160)
    telefono: str | None = Field(None, max_length=30)
    email: str | None = Field(None, max_length=160)

    @field_validator("nombre", "apellidos")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("No puede estar vacío")
        return v.strip()


class BrigadistaUpdate(BaseModel):
    nombre: str | None = Field(None, min_length=1, max_length=120)
    apellidos: str | None = Field(None, min_length=1, max_length=160)
    telefono: str | None = Field(None, max_length=30)
    email: str | None = Field(None, max_length=160)
    activo: bool | None = None


class BrigadistaOut(BaseModel):
    brigadista_id: int
    nombre: str
    apellidos: str
    telefono: str | None
    email: str | None
    activo: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @computed_field
    @property
    def nombre_completo(self) -> str:
        return f"{self.nombre} {self.apellidos}"


class VehiculoCreate(BaseModel):
    clave: str = Field(..., min_length=1, max_length=40)
    marca: str | None = Field(None, max_length=80)
    modelo: str | None = Field(None, max_length=80)
    anio: int | None = Field(None, ge=1950, le=2100)
    placas: str | None = Field(None, max_length=20)

    @field_validator("clave")
    @classmethod
    def validate_clave(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("La clave no puede estar vacía")
        return v.strip().upper()


class VehiculoUpdate(BaseModel):
    clave: str | None = Field(None, min_length=1, max_length=40)
    marca: str | None = Field(None, max_length=80)
    modelo: str | None = Field(None, max_length=80)
    anio: int | None = Field(None, ge=1950, le=2100)
    placas: str | None = Field(None, max_length=20)
    activo: bool | None = None

    @field_validator("clave")
    @classmethod
    def validate_clave(cls, v: str | None) -> str | None:
        return v.strip().upper() if v is not None else None


class VehiculoOut(BaseModel):
    vehiculo_id: int
    clave: str
    marca: str | None
    modelo: str | None
    anio: int | None
    placas: str | None
    activo: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class DisponibilidadOut(BaseModel):
    """Resultado de consultar un recurso en un slot fecha/hora"""
    tipo: str
    recurso_id: int
    fecha: str
    hora: str
    disponible: bool
    programacion_id: int | None = None  # Programación que lo ocupa, si la hay
