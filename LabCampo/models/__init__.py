# models/__init__.py
from utils.db import Base  # re-export
from .presupuesto import Obra, Concepto, Presupuesto, PresupuestoDetalle
from .recurso import Brigadista, Vehiculo
from .programacion import Programacion, ProgramacionFechaLog
