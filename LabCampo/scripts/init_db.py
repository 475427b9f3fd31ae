# scripts/init_db.py
"""
Crea las tablas y carga un catálogo de demostración: una obra, sus conceptos,
un presupuesto aprobado, brigadistas y vehículos.

    python scripts/init_db.py            # tablas + datos demo
    python scripts/init_db.py --sin-demo # solo tablas
"""
import sys, pathlib
ROOT = pathlib.Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT))

from sqlalchemy.orm import Session

from enums.enums import PresupuestoEstadoEnum
from models import (
    Base, Brigadista, Concepto, Obra, Presupuesto, PresupuestoDetalle, Vehiculo,
)
from utils.db import SessionLocal, engine

CONCEPTOS_DEMO = [
    ("CC-01", "Muestreo de concreto fresco (cilindros)", "pieza", 180),
    ("CC-02", "Compactación de terracerías (sondeo)", "sondeo", 40),
    ("AC-01", "Tensión en varilla corrugada", "pieza", 24),
]

BRIGADISTAS_DEMO = [
    ("Juan", "Pérez López", "5551000001"),
    ("María", "García Ruiz", "5551000002"),
    ("Luis", "Hernández Soto", "5551000003"),
]

VEHICULOS_DEMO = [
    ("CAM-01", "Nissan", "NP300", 2021, "ABC-123-A"),
    ("CAM-02", "Toyota", "Hilux", 2022, "ABC-456-B"),
]


def seed_demo(db: Session) -> None:
    if db.get(Obra, "OB-2024-001"):
        print("⚠️ Datos demo ya cargados.")
        return

    obra = Obra(
        clave="OB-2024-001",
        nombre="Puente vehicular Av. Central",
        direccion="Av. Central km 3.5",
        contratista="Constructora Demo S.A. de C.V.",
    )
    db.add(obra)

    for codigo, descripcion, unidad, _ in CONCEPTOS_DEMO:
        db.add(Concepto(codigo=codigo, descripcion=descripcion, unidad=unidad))
    db.flush()

    presupuesto = Presupuesto(
        clave_obra=obra.clave,
        cliente_nombre="Constructora Demo",
        estado=PresupuestoEstadoEnum.aprobado,
    )
    presupuesto.detalles = [
        PresupuestoDetalle(concepto_codigo=codigo, cantidad=cantidad)
        for codigo, _, _, cantidad in CONCEPTOS_DEMO
    ]
    db.add(presupuesto)

    for nombre, apellidos, telefono in BRIGADISTAS_DEMO:
        db.add(Brigadista(nombre=nombre, apellidos=apellidos, telefono=telefono))
    for clave, marca, modelo, anio, placas in VEHICULOS_DEMO:
        db.add(Vehiculo(clave=clave, marca=marca, modelo=modelo, anio=anio, placas=placas))

    db.commit()
    print("✅ Datos demo cargados. Presupuesto aprobado ID:", presupuesto.presupuesto_id)


def init_db(demo: bool = True) -> None:
    Base.metadata.create_all(bind=engine)
    print("✅ Tablas creadas.")
    if not demo:
        return
    db = SessionLocal()
    try:
        seed_demo(db)
    finally:
        db.close()


if __name__ == "__main__":
    init_db(demo="--sin-demo" not in sys.argv[1:])
