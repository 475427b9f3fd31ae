"""Fixtures compartidas para las pruebas del motor de programación.

Cada prueba corre contra su propia base SQLite (archivo en tmp_path) con un
catálogo mínimo: una obra, un presupuesto aprobado con dos conceptos, un
presupuesto en borrador, tres brigadistas activos, uno inactivo, dos vehículos
activos y uno inactivo.

Fecha de referencia: domingo 2025-06-01 (inicio de semana del tablero).
"""

from __future__ import annotations

import os

# La app lee DATABASE_URL al importar utils.db; las pruebas usan su propio engine
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import date
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from enums.enums import PresupuestoEstadoEnum, TipoRecoleccionEnum
from models import (
    Base, Brigadista, Concepto, Obra, Presupuesto, PresupuestoDetalle, Vehiculo,
)
from schemas.programacion import ProgramacionCreate

# ---------------------------------------------------------------------------
# Constantes de referencia
# ---------------------------------------------------------------------------
FECHA = date(2025, 6, 1)
CONTRATADO_CC01 = 10
CONTRATADO_CC02 = 50


# ---------------------------------------------------------------------------
# Helpers (importables desde los módulos de prueba)
# ---------------------------------------------------------------------------
def make_engine(url: str = "sqlite://"):
    """Engine SQLite con las tablas creadas. Sin url => memoria (una sola conexión)."""
    if url == "sqlite://":
        engine = create_engine(
            url, connect_args={"check_same_thread": False}, poolclass=StaticPool
        )
    else:
        engine = create_engine(url, connect_args={"check_same_thread": False, "timeout": 30})
    Base.metadata.create_all(bind=engine)
    return engine


def seed_catalog(db: Session, contratado_cc01: int = CONTRATADO_CC01) -> SimpleNamespace:
    obra = Obra(clave="OB-001", nombre="Puente Av. Central", direccion="Av. Central km 3.5")
    db.add(obra)
    db.add_all([
        Concepto(codigo="CC-01", descripcion="Cilindros de concreto", unidad="pieza"),
        Concepto(codigo="CC-02", descripcion="Sondeo de compactación", unidad="sondeo"),
    ])
    db.flush()

    aprobado = Presupuesto(
        clave_obra=obra.clave, cliente_nombre="Constructora Demo", estado=PresupuestoEstadoEnum.aprobado
    )
    aprobado.detalles = [
        PresupuestoDetalle(concepto_codigo="CC-01", cantidad=contratado_cc01),
        PresupuestoDetalle(concepto_codigo="CC-02", cantidad=CONTRATADO_CC02),
    ]
    borrador = Presupuesto(
        clave_obra=obra.clave, cliente_nombre="Constructora Demo", estado=PresupuestoEstadoEnum.borrador
    )
    borrador.detalles = [PresupuestoDetalle(concepto_codigo="CC-01", cantidad=100)]

    brigadistas = [
        Brigadista(nombre="Juan", apellidos="Pérez"),
        Brigadista(nombre="María", apellidos="García"),
        Brigadista(nombre="Luis", apellidos="Hernández"),
    ]
    brigadista_inactivo = Brigadista(nombre="Pedro", apellidos="Baja", activo=False)
    vehiculos = [
        Vehiculo(clave="CAM-01", marca="Nissan"),
        Vehiculo(clave="CAM-02", marca="Toyota"),
    ]
    vehiculo_inactivo = Vehiculo(clave="CAM-99", marca="Ford", activo=False)

    db.add_all([aprobado, borrador, *brigadistas, brigadista_inactivo, *vehiculos, vehiculo_inactivo])
    db.commit()

    return SimpleNamespace(
        obra=obra.clave,
        presupuesto=aprobado.presupuesto_id,
        presupuesto_borrador=borrador.presupuesto_id,
        b1=brigadistas[0].brigadista_id,
        b2=brigadistas[1].brigadista_id,
        b3=brigadistas[2].brigadista_id,
        b_inactivo=brigadista_inactivo.brigadista_id,
        v1=vehiculos[0].vehiculo_id,
        v2=vehiculos[1].vehiculo_id,
        v_inactivo=vehiculo_inactivo.vehiculo_id,
    )


def make_create(cat: SimpleNamespace, **overrides) -> ProgramacionCreate:
    """ProgramacionCreate válido para el catálogo; `overrides` reemplaza campos."""
    data = {
        "presupuesto_id": cat.presupuesto,
        "concepto_codigo": "CC-01",
        "fecha_programada": FECHA,
        "hora_programada": "08:00",
        "cantidad_muestras": 2,
        "tipo_recoleccion": TipoRecoleccionEnum.piezas,
        "brigadista_id": cat.b1,
        "vehiculo_id": cat.v1,
    }
    data.update(overrides)
    return ProgramacionCreate(**data)


def create_payload(cat: SimpleNamespace, **overrides) -> dict:
    """Mismo payload que make_create, en JSON para el TestClient."""
    return make_create(cat, **overrides).model_dump(mode="json", exclude_none=True)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture
def engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'labcampo.db'}")
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def catalog(db) -> SimpleNamespace:
    return seed_catalog(db)


@pytest.fixture
def client(session_factory, catalog):
    from main import app
    from utils.db import get_db

    def _get_test_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_test_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
