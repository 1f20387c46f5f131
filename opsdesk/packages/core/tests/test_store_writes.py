"""Store 条件更新与写事务单元测试

测试内容：
1. 条件更新只生效一次（第二次返回 False / 0）
2. 写事务异常时整体回滚
3. 审计日志 append-only
"""

import json

import pytest
from opsdesk.core.config import PENDING_LOCATION
from opsdesk.core.models import FeedbackSource, StorageUnitStatus


class TestConditionalUpdates:
    """条件更新至多生效一次"""

    async def test_mark_responded_once(self, store_group, seeder):
        appt = await seeder.appointment(await seeder.user())
        feedback_id = await seeder.feedback(appt)
        store = store_group.feedback_store

        async with store_group.transaction():
            first = await store.mark_responded(FeedbackSource.APPOINTMENT, feedback_id, "Sorry")
        async with store_group.transaction():
            second = await store.mark_responded(FeedbackSource.APPOINTMENT, feedback_id, "Again")

        assert first is True
        assert second is False
        row = await seeder.fetch_one("SELECT responded, response FROM feedback WHERE id = ?", (feedback_id,))
        assert row["responded"] == 1
        assert row["response"] == "Sorry"

    async def test_unit_transition_requires_expected_status(self, store_group, seeder, fixed_now):
        unit = await seeder.storage_unit("BX-001", status=StorageUnitStatus.OCCUPIED)
        store = store_group.storage_unit_store

        async with store_group.transaction():
            moved = await store.transition_unit_status(
                unit, StorageUnitStatus.EMPTY, StorageUnitStatus.ASSIGNED, fixed_now
            )
        assert moved is False
        row = await seeder.fetch_one("SELECT status FROM storage_units WHERE id = ?", (unit,))
        assert row["status"] == "Occupied"

    async def test_mark_unit_cleaned_stores_photos(self, store_group, seeder, fixed_now):
        unit = await seeder.storage_unit("BX-001", status=StorageUnitStatus.PENDING_CLEANING)
        store = store_group.storage_unit_store

        async with store_group.transaction():
            cleaned = await store.mark_unit_cleaned(
                unit,
                StorageUnitStatus.PENDING_CLEANING,
                StorageUnitStatus.EMPTY,
                ["https://img/c1.jpg"],
                fixed_now,
            )
        assert cleaned is True
        assert await seeder.json_column("storage_units", "cleaning_photos", unit) == [
            "https://img/c1.jpg"
        ]
        units = await store.list_units_by_status(StorageUnitStatus.EMPTY)
        assert units[0].last_cleaned_at == fixed_now

    async def test_record_partner_contact_once(self, store_group, seeder):
        appt = await seeder.appointment(await seeder.user(), moving_partner_id=await seeder.moving_partner())
        store = store_group.appointment_store

        async with store_group.transaction():
            assert await store.record_partner_contact(appt, True, False) is True
        async with store_group.transaction():
            assert await store.record_partner_contact(appt, True, True) is False

        row = await store.get_appointment(appt)
        assert row.called_moving_partner is True
        assert row.got_hold_of_moving_partner is False

    async def test_record_partner_contact_blocked_by_driver(self, store_group, seeder):
        appt = await seeder.appointment(await seeder.user(), moving_partner_id=await seeder.moving_partner())
        await seeder.driver_task(appt, driver_id=await seeder.driver())

        async with store_group.transaction():
            updated = await store_group.appointment_store.record_partner_contact(appt, True, True)
        assert updated is False

    async def test_set_usage_location_expected_value(self, store_group, seeder, fixed_now):
        user = await seeder.user()
        unit = await seeder.storage_unit("BX-001", status=StorageUnitStatus.OCCUPIED)
        usage = await seeder.usage(unit, user, warehouse_location=PENDING_LOCATION)
        store = store_group.storage_unit_store

        async with store_group.transaction():
            first = await store.set_usage_location(
                usage, PENDING_LOCATION, "B12-04", "South San Francisco", fixed_now
            )
        async with store_group.transaction():
            second = await store.set_usage_location(
                usage, PENDING_LOCATION, "C01-01", "South San Francisco", fixed_now
            )
        assert (first, second) == (True, False)

    async def test_mark_requested_units_ready_counts_changes(self, store_group, seeder):
        appt = await seeder.appointment(await seeder.user(), appointment_type="Storage Unit Access")
        unit_a = await seeder.storage_unit("BX-001")
        unit_b = await seeder.storage_unit("BX-002")
        await seeder.requested_unit(appt, unit_a)
        await seeder.requested_unit(appt, unit_b, units_ready=True)
        store = store_group.storage_unit_store

        async with store_group.transaction():
            assert await store.mark_requested_units_ready(appt, [unit_a, unit_b]) == 1
        async with store_group.transaction():
            assert await store.mark_requested_units_ready(appt, [unit_a]) == 0

    async def test_mark_prepped_skips_canceled(self, store_group, seeder, fixed_now):
        canceled = await seeder.packing_supply_order(status="Canceled")
        open_order = await seeder.packing_supply_order()
        store = store_group.packing_supply_store

        async with store_group.transaction():
            assert await store.mark_prepped(canceled, 7, fixed_now) is False
            assert await store.mark_prepped(open_order, 7, fixed_now) is True

        row = await seeder.fetch_one(
            "SELECT is_prepped, prepped_by FROM packing_supply_orders WHERE id = ?", (open_order,)
        )
        assert (row["is_prepped"], row["prepped_by"]) == (1, 7)

    async def test_bind_driver_tasks_keeps_existing_unit(self, store_group, seeder):
        appt = await seeder.appointment(await seeder.user())
        unit_a = await seeder.storage_unit("BX-001")
        unit_b = await seeder.storage_unit("BX-002")
        task = await seeder.driver_task(appt, unit_number=1)
        store = store_group.appointment_store

        async with store_group.transaction():
            assert await store.bind_driver_tasks(appt, 1, unit_a, True) == 1
        async with store_group.transaction():
            await store.bind_driver_tasks(appt, 1, unit_b, False)

        row = await seeder.fetch_one(
            "SELECT storage_unit_id, driver_verified FROM driver_tasks WHERE id = ?", (task,)
        )
        assert row["storage_unit_id"] == unit_a
        assert row["driver_verified"] == 0


class TestWriteTransaction:
    """写事务"""

    async def test_rollback_on_exception(self, store_group, seeder, fixed_now):
        unit = await seeder.storage_unit("BX-001", status=StorageUnitStatus.PENDING_CLEANING)

        with pytest.raises(RuntimeError):
            async with store_group.transaction():
                await store_group.storage_unit_store.transition_unit_status(
                    unit, StorageUnitStatus.PENDING_CLEANING, StorageUnitStatus.EMPTY, fixed_now
                )
                await store_group.admin_log_store.append(1, "MARK_UNIT_CLEAN", "STORAGE_UNIT", unit, fixed_now)
                raise RuntimeError("boom")

        row = await seeder.fetch_one("SELECT status FROM storage_units WHERE id = ?", (unit,))
        assert row["status"] == "Pending Cleaning"
        assert await seeder.count("admin_logs") == 0

    async def test_commit_persists_all_writes(self, store_group, seeder, fixed_now):
        user = await seeder.user()
        appt = await seeder.appointment(user)
        unit = await seeder.storage_unit("BX-001")
        store = store_group.storage_unit_store

        async with store_group.transaction():
            usage_id = await store.create_usage(unit, user, appt, ["https://img/t.jpg"], fixed_now)
            await store_group.admin_log_store.append(3, "ASSIGN_STORAGE_UNIT", "APPOINTMENT", appt, fixed_now)

        assert await store.has_started_usage(appt) is True
        assert await seeder.json_column("storage_unit_usages", "unit_pickup_photos", usage_id) == [
            "https://img/t.jpg"
        ]
        logs = await store_group.admin_log_store.list_recent()
        assert [(log.admin_id, log.action, log.target_id) for log in logs] == [
            (3, "ASSIGN_STORAGE_UNIT", str(appt))
        ]

    async def test_damage_report_defaults_pending(self, store_group, seeder, fixed_now):
        appt = await seeder.appointment(await seeder.user())
        unit = await seeder.storage_unit("BX-001")

        async with store_group.transaction():
            report_id = await store_group.storage_unit_store.add_damage_report(
                unit, appt, 2, "Dent on door", ["https://img/d.jpg"], fixed_now
            )

        row = await seeder.fetch_one(
            "SELECT status, damage_description, damage_photos FROM storage_unit_damage_reports WHERE id = ?",
            (report_id,),
        )
        assert row["status"] == "Pending"
        assert row["damage_description"] == "Dent on door"
        assert json.loads(row["damage_photos"]) == ["https://img/d.jpg"]
