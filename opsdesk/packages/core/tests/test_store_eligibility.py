"""Store 资格查询单元测试

每个查询的谓词决定任务是否存在，这里用真实 SQLite 验证边界。
"""

from datetime import timedelta

from opsdesk.core.config import (
    AWAITING_CHECK_IN_STATUS,
    NEGATIVE_FEEDBACK_MAX_RATING,
    PENDING_LOCATION,
)
from opsdesk.core.models import (
    ACCESS_APPOINTMENT_TYPES,
    PICKUP_APPOINTMENT_TYPES,
    StorageUnitStatus,
)


class TestMissingDriverQuery:
    """list_missing_driver"""

    async def test_window_and_predicates(self, store_group, seeder, fixed_now):
        store = store_group.appointment_store
        user = await seeder.user()
        partner = await seeder.moving_partner()
        driver = await seeder.driver()

        eligible = await seeder.appointment(user, moving_partner_id=partner)
        await seeder.driver_task(eligible, driver_id=None, short_id="DT-1")

        assigned = await seeder.appointment(user, moving_partner_id=partner)
        await seeder.driver_task(assigned, driver_id=driver)

        await seeder.appointment(user, moving_partner_id=partner, called_moving_partner=True)
        await seeder.appointment(user, moving_partner_id=partner, status="Cancelled")
        await seeder.appointment(user, moving_partner_id=None)
        await seeder.appointment(
            user, moving_partner_id=partner, date=fixed_now + timedelta(days=5)
        )

        start = fixed_now.replace(hour=0, minute=0, second=0)
        rows = await store.list_missing_driver(start, start + timedelta(days=2))
        assert [r.id for r in rows] == [eligible]
        assert rows[0].customer_name == "Ada Lovelace"
        assert rows[0].customer_email == "ada@example.com"

    async def test_filter_by_appointment_id(self, store_group, seeder, fixed_now):
        user = await seeder.user()
        partner = await seeder.moving_partner()
        first = await seeder.appointment(user, moving_partner_id=partner)
        await seeder.appointment(user, moving_partner_id=partner)

        start = fixed_now - timedelta(days=1)
        rows = await store_group.appointment_store.list_missing_driver(
            start, start + timedelta(days=3), appointment_id=first
        )
        assert [r.id for r in rows] == [first]


class TestUnitAssignmentQueries:
    async def test_awaiting_unit_assignment_excludes_started(self, store_group, seeder, fixed_now):
        user = await seeder.user()
        waiting = await seeder.appointment(user, number_of_units=2)
        started = await seeder.appointment(user)
        unit = await seeder.storage_unit("BX-001", status=StorageUnitStatus.OCCUPIED)
        await seeder.usage(unit, user, start_appointment_id=started)
        await seeder.appointment(user, appointment_type="Storage Unit Access")

        rows = await store_group.appointment_store.list_awaiting_unit_assignment(
            PICKUP_APPOINTMENT_TYPES, fixed_now, fixed_now + timedelta(days=2)
        )
        assert [r.id for r in rows] == [waiting]
        assert rows[0].number_of_units == 2

    async def test_awaiting_unit_prep_requires_unready_unit(self, store_group, seeder, fixed_now):
        user = await seeder.user()
        unit_a = await seeder.storage_unit("BX-001", status=StorageUnitStatus.OCCUPIED)
        unit_b = await seeder.storage_unit("BX-002", status=StorageUnitStatus.OCCUPIED)

        pending = await seeder.appointment(user, appointment_type="Storage Unit Access")
        await seeder.requested_unit(pending, unit_a)
        ready = await seeder.appointment(user, appointment_type="End Storage Term")
        await seeder.requested_unit(ready, unit_b, units_ready=True)

        rows = await store_group.appointment_store.list_awaiting_unit_prep(
            ACCESS_APPOINTMENT_TYPES, fixed_now, fixed_now + timedelta(days=2)
        )
        assert [r.id for r in rows] == [pending]

    async def test_requested_units_grouped_in_row_order(self, store_group, seeder):
        user = await seeder.user()
        appt = await seeder.appointment(user, appointment_type="Storage Unit Access")
        first = await seeder.requested_unit(appt, await seeder.storage_unit("BX-010"))
        second = await seeder.requested_unit(appt, await seeder.storage_unit("BX-002"))

        grouped = await store_group.storage_unit_store.list_requested_units([appt])
        assert [r.id for r in grouped[appt]] == [first, second]
        assert [r.storage_unit_number for r in grouped[appt]] == ["BX-010", "BX-002"]

    async def test_unassigned_requested_units(self, store_group, seeder):
        user = await seeder.user()
        appt = await seeder.appointment(user, appointment_type="Storage Unit Access")
        open_row = await seeder.requested_unit(appt, await seeder.storage_unit("BX-001"))
        await seeder.requested_unit(appt, await seeder.storage_unit("BX-002"), assigned=True)

        rows = await store_group.storage_unit_store.list_unassigned_requested_units()
        assert [r.id for r in rows] == [open_row]


class TestFeedbackQueries:
    """差评查询"""

    async def test_appointment_feedback_predicates(self, store_group, seeder):
        user = await seeder.user()
        appt = await seeder.appointment(user, status="Completed")
        cancelled = await seeder.appointment(user, status="Canceled")

        negative = await seeder.feedback(appt, rating=NEGATIVE_FEEDBACK_MAX_RATING)
        await seeder.feedback(appt, rating=5)
        await seeder.feedback(appt, rating=1, responded=True)
        await seeder.feedback(cancelled, rating=1)

        rows = await store_group.feedback_store.list_unresponded_appointment_feedback(
            NEGATIVE_FEEDBACK_MAX_RATING
        )
        assert [r.id for r in rows] == [negative]
        assert rows[0].reference.startswith("JOB-")

    async def test_packing_supply_reference_falls_back_to_order_id(self, store_group, seeder):
        with_short = await seeder.packing_supply_order(short_id="PS-AB12")
        without_short = await seeder.packing_supply_order()
        await seeder.packing_supply_feedback(with_short)
        await seeder.packing_supply_feedback(without_short)

        rows = await store_group.feedback_store.list_unresponded_packing_supply_feedback(
            NEGATIVE_FEEDBACK_MAX_RATING
        )
        references = sorted(r.reference for r in rows)
        assert references == sorted(["PS-AB12", f"PS-{without_short}"])


class TestUnitAndOrderQueries:
    async def test_units_by_status(self, store_group, seeder):
        dirty = await seeder.storage_unit("BX-001", status=StorageUnitStatus.PENDING_CLEANING)
        await seeder.storage_unit("BX-002", status=StorageUnitStatus.EMPTY)

        rows = await store_group.storage_unit_store.list_units_by_status(
            StorageUnitStatus.PENDING_CLEANING
        )
        assert [r.id for r in rows] == [dirty]
        assert rows[0].last_cleaned_at is None

    async def test_usages_pending_location(self, store_group, seeder):
        user = await seeder.user()
        unit = await seeder.storage_unit("BX-001", status=StorageUnitStatus.OCCUPIED)
        pending = await seeder.usage(unit, user, warehouse_location=PENDING_LOCATION)
        await seeder.usage(unit, user, warehouse_location=PENDING_LOCATION, ended=True)
        await seeder.usage(unit, user, warehouse_location="B12-04")

        rows = await store_group.storage_unit_store.list_active_usages_with_location(
            PENDING_LOCATION
        )
        assert [r.id for r in rows] == [pending]
        assert rows[0].storage_unit_number == "BX-001"

    async def test_awaiting_check_in(self, store_group, seeder):
        user = await seeder.user()
        waiting = await seeder.appointment(user, status=AWAITING_CHECK_IN_STATUS)
        await seeder.appointment(user, status="Scheduled")

        rows = await store_group.appointment_store.list_by_status(
            AWAITING_CHECK_IN_STATUS, PICKUP_APPOINTMENT_TYPES
        )
        assert [r.id for r in rows] == [waiting]

    async def test_unprepped_orders(self, store_group, seeder):
        driver = await seeder.driver("Otto", "Wheel")
        open_order = await seeder.packing_supply_order(assigned_driver_id=driver)
        await seeder.packing_supply_order(status="Canceled")
        await seeder.packing_supply_order(is_prepped=True)
        product = await seeder.product("Large Box")
        line = await seeder.order_line(open_order, product, quantity=4)

        store = store_group.packing_supply_store
        orders = await store.list_unprepped_orders()
        assert [o.id for o in orders] == [open_order]
        assert orders[0].driver_name == "Otto Wheel"

        lines = await store.list_order_lines([open_order])
        assert [(ln.id, ln.product_title, ln.quantity) for ln in lines[open_order]] == [
            (line, "Large Box", 4)
        ]
