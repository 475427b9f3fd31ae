"""Availability Checker: slot exacto (fecha + hora) por recurso."""

from __future__ import annotations

from datetime import timedelta

import pytest

from conftest import FECHA, make_create
from enums.enums import TipoRecursoEnum
from services.availability_service import (
    busy_resource_ids, find_conflict, is_resource_available, list_available,
)
from services.programacion_service import (
    cancel_schedule, complete_schedule, create_schedule, start_schedule,
)
from services.resource_service import exists
from utils.errors import NotFound

BRIGADISTA = TipoRecursoEnum.brigadista
VEHICULO = TipoRecursoEnum.vehiculo


class TestIsResourceAvailable:

    def test_free_when_nothing_scheduled(self, db, catalog):
        assert is_resource_available(db, BRIGADISTA, catalog.b1, FECHA, "08:00")
        assert is_resource_available(db, VEHICULO, catalog.v1, FECHA, "08:00")

    def test_busy_only_in_exact_slot(self, db, catalog):
        create_schedule(db, make_create(catalog))

        assert not is_resource_available(db, BRIGADISTA, catalog.b1, FECHA, "08:00")
        assert not is_resource_available(db, VEHICULO, catalog.v1, FECHA, "08:00")
        assert is_resource_available(db, BRIGADISTA, catalog.b1, FECHA, "09:00")
        assert is_resource_available(db, BRIGADISTA, catalog.b1, FECHA + timedelta(days=1), "08:00")
        assert is_resource_available(db, BRIGADISTA, catalog.b2, FECHA, "08:00")

    def test_support_role_counts(self, db, catalog):
        create_schedule(db, make_create(catalog, brigadista_apoyo_id=catalog.b3))
        assert not is_resource_available(db, BRIGADISTA, catalog.b3, FECHA, "08:00")

    def test_in_process_still_blocks(self, db, catalog):
        prog = create_schedule(db, make_create(catalog))
        start_schedule(db, prog.programacion_id)
        assert not is_resource_available(db, BRIGADISTA, catalog.b1, FECHA, "08:00")

    @pytest.mark.parametrize("cierre", ["cancelar", "completar"])
    def test_closed_schedules_never_block(self, db, catalog, cierre):
        prog = create_schedule(db, make_create(catalog))
        if cierre == "cancelar":
            cancel_schedule(db, prog.programacion_id, "obra suspendida")
        else:
            start_schedule(db, prog.programacion_id)
            complete_schedule(db, prog.programacion_id, 2)

        assert is_resource_available(db, BRIGADISTA, catalog.b1, FECHA, "08:00")
        assert find_conflict(db, VEHICULO, catalog.v1, FECHA, "08:00") is None

    def test_inactive_is_never_available(self, db, catalog):
        assert not is_resource_available(db, BRIGADISTA, catalog.b_inactivo, FECHA, "08:00")
        assert not is_resource_available(db, VEHICULO, catalog.v_inactivo, FECHA, "23:59")

    def test_exclude_self(self, db, catalog):
        prog = create_schedule(db, make_create(catalog))
        assert is_resource_available(
            db, BRIGADISTA, catalog.b1, FECHA, "08:00", exclude_id=prog.programacion_id
        )

    def test_unknown_resource(self, db, catalog):
        assert not exists(db, VEHICULO, 404)
        assert exists(db, VEHICULO, catalog.v_inactivo)
        with pytest.raises(NotFound):
            is_resource_available(db, "vehiculo", 404, FECHA, "08:00")


class TestListAvailable:

    def test_filters_busy_and_inactive(self, db, catalog):
        create_schedule(db, make_create(catalog, brigadista_apoyo_id=catalog.b2))

        libres = list_available(db, BRIGADISTA, FECHA, "08:00")
        assert [b.brigadista_id for b in libres] == [catalog.b3]
        assert busy_resource_ids(db, BRIGADISTA, FECHA, "08:00") == {catalog.b1, catalog.b2}

        vehiculos = list_available(db, VEHICULO, FECHA, "08:00")
        assert [v.vehiculo_id for v in vehiculos] == [catalog.v2]

    def test_other_hour_everything_free(self, db, catalog):
        create_schedule(db, make_create(catalog))
        libres = list_available(db, "brigadista", FECHA, "15:00")
        assert {b.brigadista_id for b in libres} == {catalog.b1, catalog.b2, catalog.b3}
