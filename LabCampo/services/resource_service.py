# services/resource_service.py
"""
Resource Registry: brigadistas y vehículos con su bandera `activo`.

El alta/edición replica el CRUD administrativo; el motor de programación solo
usa identidad y `activo`.
"""
from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from enums.enums import TipoRecursoEnum
from models.recurso import Brigadista, Vehiculo
from schemas.recurso import BrigadistaCreate, BrigadistaUpdate, VehiculoCreate, VehiculoUpdate
from utils.errors import NotFound

logger = logging.getLogger(__name__)

_MODELS = {
    TipoRecursoEnum.brigadista: Brigadista,
    TipoRecursoEnum.vehiculo: Vehiculo,
}

_ENTIDAD = {
    TipoRecursoEnum.brigadista: "Brigadista",
    TipoRecursoEnum.vehiculo: "Vehiculo",
}


def resource_model(tipo: TipoRecursoEnum | str):
    return _MODELS[TipoRecursoEnum(tipo)]


def _pk_column(tipo: TipoRecursoEnum):
    model = resource_model(tipo)
    return model.brigadista_id if model is Brigadista else model.vehiculo_id


# ============================================================================
# Consultas del motor
# ============================================================================

def get_resource(db: Session, tipo: TipoRecursoEnum | str, recurso_id: int, for_update: bool = False):
    """Recurso por id; NotFound si no existe. Con `for_update` bloquea la fila."""
    tipo = TipoRecursoEnum(tipo)
    if for_update:
        recurso = (
            db.query(resource_model(tipo))
            .filter(_pk_column(tipo) == recurso_id)
            .with_for_update()
            .first()
        )
    else:
        recurso = db.get(resource_model(tipo), recurso_id)
    if not recurso:
        raise NotFound(_ENTIDAD[tipo], recurso_id)
    return recurso


def exists(db: Session, tipo: TipoRecursoEnum | str, recurso_id: int) -> bool:
    return db.get(resource_model(tipo), recurso_id) is not None


def list_active(db: Session, tipo: TipoRecursoEnum | str) -> list:
    tipo = TipoRecursoEnum(tipo)
    if tipo is TipoRecursoEnum.brigadista:
        order = (Brigadista.nombre.asc(), Brigadista.apellidos.asc())
    else:
        order = (Vehiculo.clave.asc(),)
    model = resource_model(tipo)
    return db.query(model).filter(model.activo.is_(True)).order_by(*order).all()


# ============================================================================
# CRUD administrativo
# ============================================================================

def create_brigadista(db: Session, data: BrigadistaCreate) -> Brigadista:
    brigadista = Brigadista(**data.model_dump(), activo=True)
    db.add(brigadista)
    db.commit()
    db.refresh(brigadista)
    logger.info("Brigadista %s creado", brigadista.brigadista_id)
    return brigadista


def update_brigadista(db: Session, brigadista_id: int, data: BrigadistaUpdate) -> Brigadista:
    brigadista = get_resource(db, TipoRecursoEnum.brigadista, brigadista_id)
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(brigadista, field, value)
    db.add(brigadista)
    db.commit()
    db.refresh(brigadista)
    return brigadista


def create_vehiculo(db: Session, data: VehiculoCreate) -> Vehiculo:
    vehiculo = Vehiculo(**data.model_dump(), activo=True)
    db.add(vehiculo)
    db.commit()  # clave duplicada => IntegrityError => 409 (handler global)
    db.refresh(vehiculo)
    logger.info("Vehículo %s (%s) creado", vehiculo.vehiculo_id, vehiculo.clave)
    return vehiculo


def update_vehiculo(db: Session, vehiculo_id: int, data: VehiculoUpdate) -> Vehiculo:
    vehiculo = get_resource(db, TipoRecursoEnum.vehiculo, vehiculo_id)
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(vehiculo, field, value)
    db.add(vehiculo)
    db.commit()
    db.refresh(vehiculo)
    return vehiculo
