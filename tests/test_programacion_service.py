"""Orquestador de programaciones: escenarios de punta a punta sobre la BD."""

from __future__ import annotations

from datetime import date, timedelta

import pytest

from conftest import CONTRATADO_CC01, FECHA, make_create
from enums.enums import EstadoProgramacionEnum as Estado
from models.programacion import Programacion, ProgramacionFechaLog
from schemas.programacion import ProgramacionUpdate
from services.capacity_service import committed_quantity, remaining_capacity
from services.programacion_service import (
    cancel_schedule, complete_schedule, create_schedule, delete_schedule, get_schedule,
    list_schedules, reschedule_schedule, start_schedule, update_schedule_details,
    weekly_stats,
)
from utils.errors import (
    CapacityExceeded, InvalidTransition, NotFound, ResourceUnavailable, ValidationError,
)


# ---------------------------------------------------------------------------
# Escenarios base
# ---------------------------------------------------------------------------
class TestScenarios:

    def test_capacity_exhausted_exactly(self, db, catalog):
        """Comprometer todo lo contratado deja 0; una muestra más se rechaza."""
        create_schedule(db, make_create(catalog, cantidad_muestras=CONTRATADO_CC01))
        assert remaining_capacity(db, catalog.presupuesto, "CC-01") == 0

        with pytest.raises(CapacityExceeded) as exc:
            create_schedule(db, make_create(catalog, cantidad_muestras=1, hora_programada="09:00"))
        assert exc.value.disponible == 0
        assert exc.value.solicitado == 1
        assert exc.value.status_code == 409
        assert db.query(Programacion).count() == 1

    def test_same_slot_blocks_technician(self, db, catalog):
        primera = create_schedule(db, make_create(catalog))

        with pytest.raises(ResourceUnavailable) as exc:
            create_schedule(db, make_create(catalog, vehiculo_id=catalog.v2))
        assert exc.value.tipo == "brigadista"
        assert exc.value.recurso_id == catalog.b1
        assert exc.value.programacion_id == primera.programacion_id

        otra_hora = create_schedule(db, make_create(catalog, hora_programada="09:00"))
        assert otra_hora.estado == Estado.programada

    def test_start_twice(self, db, catalog):
        prog = create_schedule(db, make_create(catalog))

        iniciada = start_schedule(db, prog.programacion_id)
        assert iniciada.estado == Estado.en_proceso
        assert iniciada.fecha_inicio is not None

        with pytest.raises(InvalidTransition) as exc:
            start_schedule(db, prog.programacion_id)
        assert exc.value.estado_actual == "en_proceso"
        assert exc.value.evento == "iniciar"

    def test_completed_keeps_capacity(self, db, catalog):
        prog = create_schedule(db, make_create(catalog, cantidad_muestras=10))
        start_schedule(db, prog.programacion_id)

        completada = complete_schedule(db, prog.programacion_id, 8)
        assert completada.estado == Estado.completada
        assert completada.fecha_completado is not None
        assert completada.muestras_obtenidas == 8
        assert committed_quantity(db, catalog.presupuesto, "CC-01") == 10

    def test_cancel_requires_reason_and_frees_capacity(self, db, catalog):
        prog = create_schedule(db, make_create(catalog, cantidad_muestras=4))
        antes = remaining_capacity(db, catalog.presupuesto, "CC-01")

        with pytest.raises(ValidationError) as exc:
            cancel_schedule(db, prog.programacion_id, "")
        assert exc.value.errores[0]["campo"] == "motivo_cancelacion"
        assert get_schedule(db, prog.programacion_id).estado == Estado.programada

        cancelada = cancel_schedule(db, prog.programacion_id, "cliente reprogramó")
        assert cancelada.estado == Estado.cancelada
        assert cancelada.motivo_cancelacion == "cliente reprogramó"
        assert remaining_capacity(db, catalog.presupuesto, "CC-01") == antes + 4

        with pytest.raises(InvalidTransition):
            cancel_schedule(db, prog.programacion_id, "otra vez")


# ---------------------------------------------------------------------------
# Creación
# ---------------------------------------------------------------------------
class TestCreate:

    def test_defaults_and_derived_obra(self, db, catalog):
        prog = create_schedule(db, make_create(catalog), creado_por=7)

        assert prog.estado == Estado.programada
        assert prog.clave_obra == catalog.obra
        assert prog.creado_por == 7
        assert prog.fecha_inicio is None
        assert prog.brigadista.nombre == "Juan"
        assert prog.vehiculo.clave == "CAM-01"

    def test_collects_field_errors(self, db, catalog):
        with pytest.raises(ValidationError) as exc:
            create_schedule(db, make_create(catalog, cantidad_muestras=0, brigadista_apoyo_id=catalog.b1))
        campos = {e["campo"] for e in exc.value.errores}
        assert campos == {"cantidad_muestras", "brigadista_apoyo_id"}
        assert exc.value.status_code == 422

    def test_budget_must_be_approved(self, db, catalog):
        with pytest.raises(ValidationError) as exc:
            create_schedule(db, make_create(catalog, presupuesto_id=catalog.presupuesto_borrador))
        assert exc.value.errores[0]["campo"] == "presupuesto_id"

    def test_obra_mismatch(self, db, catalog):
        with pytest.raises(ValidationError) as exc:
            create_schedule(db, make_create(catalog, clave_obra="OB-OTRA"))
        assert exc.value.errores[0]["campo"] == "clave_obra"

    @pytest.mark.parametrize("overrides, entidad", [
        ({"presupuesto_id": 999}, "Presupuesto"),
        ({"concepto_codigo": "XX-99"}, "Concepto"),
        ({"brigadista_id": 999}, "Brigadista"),
        ({"vehiculo_id": 999}, "Vehiculo"),
    ])
    def test_unknown_references(self, db, catalog, overrides, entidad):
        with pytest.raises(NotFound) as exc:
            create_schedule(db, make_create(catalog, **overrides))
        assert exc.value.entidad == entidad
        assert db.query(Programacion).count() == 0

    def test_inactive_resource(self, db, catalog):
        with pytest.raises(ResourceUnavailable) as exc:
            create_schedule(db, make_create(catalog, vehiculo_id=catalog.v_inactivo))
        assert exc.value.motivo == "inactivo"

    def test_support_technician_is_busy(self, db, catalog):
        create_schedule(db, make_create(catalog, brigadista_apoyo_id=catalog.b2))

        with pytest.raises(ResourceUnavailable) as exc:
            create_schedule(db, make_create(catalog, brigadista_id=catalog.b2, vehiculo_id=catalog.v2))
        assert exc.value.recurso_id == catalog.b2

    def test_resource_checked_before_capacity(self, db, catalog):
        create_schedule(db, make_create(catalog, cantidad_muestras=CONTRATADO_CC01))

        with pytest.raises(ResourceUnavailable):
            create_schedule(db, make_create(catalog, cantidad_muestras=1))


# ---------------------------------------------------------------------------
# Ciclo de vida
# ---------------------------------------------------------------------------
class TestLifecycle:

    def test_complete_from_programada_is_rejected(self, db, catalog):
        prog = create_schedule(db, make_create(catalog))
        with pytest.raises(InvalidTransition):
            complete_schedule(db, prog.programacion_id, 1)
        assert get_schedule(db, prog.programacion_id).estado == Estado.programada

    @pytest.mark.parametrize("muestras", [-1, 3])
    def test_complete_samples_out_of_range(self, db, catalog, muestras):
        prog = create_schedule(db, make_create(catalog, cantidad_muestras=2))
        start_schedule(db, prog.programacion_id)

        with pytest.raises(ValidationError) as exc:
            complete_schedule(db, prog.programacion_id, muestras)
        assert exc.value.errores[0]["campo"] == "muestras_obtenidas"
        assert get_schedule(db, prog.programacion_id).estado == Estado.en_proceso

    def test_complete_zero_samples(self, db, catalog):
        prog = create_schedule(db, make_create(catalog))
        start_schedule(db, prog.programacion_id)
        completada = complete_schedule(db, prog.programacion_id, 0, observaciones="  sin acceso a la obra ")
        assert completada.muestras_obtenidas == 0
        assert completada.observaciones_completado == "sin acceso a la obra"

    def test_cancel_in_process_frees_slot(self, db, catalog):
        prog = create_schedule(db, make_create(catalog))
        start_schedule(db, prog.programacion_id)
        cancel_schedule(db, prog.programacion_id, "lluvia")

        nueva = create_schedule(db, make_create(catalog))
        assert nueva.estado == Estado.programada

    def test_completed_frees_slot(self, db, catalog):
        prog = create_schedule(db, make_create(catalog))
        start_schedule(db, prog.programacion_id)
        complete_schedule(db, prog.programacion_id, 2)

        assert create_schedule(db, make_create(catalog)).estado == Estado.programada

    def test_update_details_only_touches_notes(self, db, catalog):
        prog = create_schedule(db, make_create(catalog))
        actualizada = update_schedule_details(
            db,
            prog.programacion_id,
            ProgramacionUpdate(nombre_residente="Ing. Ruiz", observaciones="   "),
            actualizado_por=3,
        )
        assert actualizada.nombre_residente == "Ing. Ruiz"
        assert actualizada.observaciones is None
        assert actualizada.actualizado_por == 3
        assert actualizada.fecha_programada == FECHA
        assert actualizada.estado == Estado.programada

    def test_not_found(self, db, catalog):
        with pytest.raises(NotFound):
            start_schedule(db, 12345)


# ---------------------------------------------------------------------------
# Reprogramación
# ---------------------------------------------------------------------------
class TestReschedule:

    def test_moves_slot_and_logs_change(self, db, catalog):
        prog = create_schedule(db, make_create(catalog))
        nueva_fecha = FECHA + timedelta(days=2)

        movida = reschedule_schedule(
            db, prog.programacion_id, nueva_fecha, "10:00",
            vehiculo_id=catalog.v2, motivo="obra sin acceso", actualizado_por=5,
        )
        assert movida.estado == Estado.programada
        assert movida.fecha_programada == nueva_fecha
        assert movida.hora_programada == "10:00"
        assert movida.vehiculo_id == catalog.v2
        assert movida.brigadista_id == catalog.b1

        assert len(movida.cambios_fecha) == 1
        log = movida.cambios_fecha[0]
        assert log.estado_anterior == Estado.programada
        assert log.fecha_anterior == FECHA
        assert log.fecha_nueva == nueva_fecha
        assert log.hora_anterior == "08:00"
        assert log.vehiculo_anterior_id == catalog.v1
        assert log.vehiculo_nuevo_id == catalog.v2
        assert log.changed_by == 5

    def test_old_slot_is_released(self, db, catalog):
        prog = create_schedule(db, make_create(catalog))
        reschedule_schedule(db, prog.programacion_id, FECHA, "11:00")

        assert create_schedule(db, make_create(catalog)).hora_programada == "08:00"

    def test_same_slot_does_not_conflict_with_itself(self, db, catalog):
        prog = create_schedule(db, make_create(catalog, cantidad_muestras=CONTRATADO_CC01))
        movida = reschedule_schedule(db, prog.programacion_id, FECHA, "08:00", motivo="confirmación")
        assert movida.estado == Estado.programada

    def test_target_slot_taken(self, db, catalog):
        create_schedule(db, make_create(catalog, hora_programada="10:00"))
        prog = create_schedule(db, make_create(catalog))

        with pytest.raises(ResourceUnavailable):
            reschedule_schedule(db, prog.programacion_id, FECHA, "10:00")
        sin_cambio = get_schedule(db, prog.programacion_id)
        assert sin_cambio.hora_programada == "08:00"
        assert sin_cambio.cambios_fecha == []

    def test_hour_is_normalized(self, db, catalog):
        prog = create_schedule(db, make_create(catalog, hora_programada="07:00"))
        movida = reschedule_schedule(db, prog.programacion_id, FECHA, "8:00")
        assert movida.hora_programada == "08:00"
        assert movida.cambios_fecha[0].hora_nueva == "08:00"

        with pytest.raises(ResourceUnavailable):
            create_schedule(db, make_create(catalog, hora_programada="08:00"))

    def test_invalid_hour(self, db, catalog):
        prog = create_schedule(db, make_create(catalog))
        with pytest.raises(ValidationError) as exc:
            reschedule_schedule(db, prog.programacion_id, FECHA, "25:00")
        assert exc.value.errores[0]["campo"] == "hora_programada"
        assert get_schedule(db, prog.programacion_id).hora_programada == "08:00"

    def test_remove_support_with_zero(self, db, catalog):
        prog = create_schedule(db, make_create(catalog, brigadista_apoyo_id=catalog.b2))
        movida = reschedule_schedule(db, prog.programacion_id, FECHA, "09:00", brigadista_apoyo_id=0)
        assert movida.brigadista_apoyo_id is None

    def test_support_equal_to_principal(self, db, catalog):
        prog = create_schedule(db, make_create(catalog, brigadista_apoyo_id=catalog.b2))
        with pytest.raises(ValidationError):
            reschedule_schedule(db, prog.programacion_id, FECHA, "09:00", brigadista_id=catalog.b2)

    def test_from_cancelled_recommits_capacity(self, db, catalog):
        prog = create_schedule(db, make_create(catalog, cantidad_muestras=6))
        cancel_schedule(db, prog.programacion_id, "cliente pospuso")
        assert remaining_capacity(db, catalog.presupuesto, "CC-01") == CONTRATADO_CC01

        revivida = reschedule_schedule(db, prog.programacion_id, FECHA + timedelta(days=7), "08:00")
        assert revivida.estado == Estado.programada
        assert revivida.motivo_cancelacion is None
        assert revivida.cambios_fecha[0].estado_anterior == Estado.cancelada
        assert remaining_capacity(db, catalog.presupuesto, "CC-01") == CONTRATADO_CC01 - 6

    def test_from_cancelled_without_capacity(self, db, catalog):
        prog = create_schedule(db, make_create(catalog, cantidad_muestras=6))
        cancel_schedule(db, prog.programacion_id, "cliente pospuso")
        create_schedule(db, make_create(catalog, cantidad_muestras=5, hora_programada="12:00"))

        with pytest.raises(CapacityExceeded) as exc:
            reschedule_schedule(db, prog.programacion_id, FECHA, "08:00")
        assert exc.value.disponible == CONTRATADO_CC01 - 5
        assert get_schedule(db, prog.programacion_id).estado == Estado.cancelada

    @pytest.mark.parametrize("avanzar", ["en_proceso", "completada"])
    def test_rejected_after_start(self, db, catalog, avanzar):
        prog = create_schedule(db, make_create(catalog))
        start_schedule(db, prog.programacion_id)
        if avanzar == "completada":
            complete_schedule(db, prog.programacion_id, 1)

        with pytest.raises(InvalidTransition) as exc:
            reschedule_schedule(db, prog.programacion_id, FECHA, "09:00")
        assert exc.value.evento == "reprogramar"


# ---------------------------------------------------------------------------
# Eliminación
# ---------------------------------------------------------------------------
class TestDelete:

    def test_delete_programada_removes_log(self, db, catalog):
        prog = create_schedule(db, make_create(catalog))
        reschedule_schedule(db, prog.programacion_id, FECHA, "09:00")

        delete_schedule(db, prog.programacion_id)
        assert db.query(Programacion).count() == 0
        assert db.query(ProgramacionFechaLog).count() == 0

    def test_delete_cancelada(self, db, catalog):
        prog = create_schedule(db, make_create(catalog))
        cancel_schedule(db, prog.programacion_id, "duplicada")
        delete_schedule(db, prog.programacion_id)
        with pytest.raises(NotFound):
            get_schedule(db, prog.programacion_id)

    def test_delete_in_process_rejected(self, db, catalog):
        prog = create_schedule(db, make_create(catalog))
        start_schedule(db, prog.programacion_id)

        with pytest.raises(InvalidTransition) as exc:
            delete_schedule(db, prog.programacion_id)
        assert exc.value.evento == "eliminar"
        assert db.query(Programacion).count() == 1


# ---------------------------------------------------------------------------
# Consultas
# ---------------------------------------------------------------------------
class TestQueries:

    def test_list_filters(self, db, catalog):
        a = create_schedule(db, make_create(catalog))
        b = create_schedule(db, make_create(
            catalog, brigadista_id=catalog.b2, brigadista_apoyo_id=catalog.b1,
            vehiculo_id=catalog.v2, hora_programada="10:00",
        ))
        c = create_schedule(db, make_create(catalog, fecha_programada=FECHA + timedelta(days=10)))
        cancel_schedule(db, c.programacion_id, "no aplica")

        def ids(progs):
            return [p.programacion_id for p in progs]

        assert ids(list_schedules(db)) == [a.programacion_id, b.programacion_id, c.programacion_id]
        assert ids(list_schedules(db, fecha_fin=FECHA)) == [a.programacion_id, b.programacion_id]
        assert ids(list_schedules(db, brigadista_id=catalog.b2)) == [b.programacion_id]
        assert ids(list_schedules(db, brigadista_id=catalog.b1)) == [
            a.programacion_id, b.programacion_id, c.programacion_id
        ]
        assert ids(list_schedules(db, estado=Estado.cancelada)) == [c.programacion_id]
        assert list_schedules(db, clave_obra="OB-OTRA") == []

    def test_weekly_stats(self, db, catalog):
        # 2025-06-04 es miércoles: la semana va del domingo 1 al sábado 7
        a = create_schedule(db, make_create(catalog))
        b = create_schedule(db, make_create(
            catalog, brigadista_id=catalog.b2, brigadista_apoyo_id=catalog.b3,
            vehiculo_id=catalog.v2, fecha_programada=date(2025, 6, 4),
        ))
        create_schedule(db, make_create(catalog, fecha_programada=date(2025, 6, 8)))
        start_schedule(db, a.programacion_id)
        complete_schedule(db, a.programacion_id, 2)

        semana = weekly_stats(db, date(2025, 6, 4))
        assert semana.fecha_inicio == date(2025, 6, 1)
        assert semana.fecha_fin == date(2025, 6, 7)
        assert semana.stats.programaciones_totales == 2
        assert semana.stats.programaciones_completadas == 1
        assert semana.stats.programaciones_pendientes == 1
        assert semana.stats.rendimiento_semanal == 50
        assert semana.stats.brigadistas_activos == 3
        assert semana.stats.vehiculos_en_uso == 2
        assert len(semana.programaciones_diarias) == 7
        miercoles = semana.programaciones_diarias[3]
        assert miercoles.fecha == date(2025, 6, 4)
        assert [p.programacion_id for p in miercoles.programaciones] == [b.programacion_id]

    def test_weekly_stats_empty_week(self, db, catalog):
        semana = weekly_stats(db, date(2030, 1, 1))
        assert semana.stats.programaciones_totales == 0
        assert semana.stats.rendimiento_semanal == 0

    def test_weekly_stats_has_no_row_cap(self, db, catalog):
        # Más filas que la página por defecto de list_schedules
        slots = [
            (FECHA + timedelta(days=d), f"{h:02d}:{m:02d}")
            for d in range(7) for h in range(6, 22) for m in (0, 30)
        ]
        assert len(slots) > 200
        for fecha, hora in slots:
            data = make_create(catalog, fecha_programada=fecha, hora_programada=hora, cantidad_muestras=1)
            db.add(Programacion(**data.model_dump(exclude={"clave_obra"}), clave_obra=catalog.obra))
        db.commit()

        assert len(list_schedules(db, fecha_inicio=FECHA)) == 200
        semana = weekly_stats(db, FECHA)
        assert semana.stats.programaciones_totales == len(slots)
        assert sum(len(d.programaciones) for d in semana.programaciones_diarias) == len(slots)
