"""UnassignedDriver adapter 测试"""

from datetime import timedelta

import pytest
from opsdesk.core.exceptions import TaskConflictError, TaskValidationError
from opsdesk.core.models import PriorityHint, TaskId, TaskType
from opsdesk.gateway.services.adapters import ResolutionContext


async def _appointment_without_driver(seeder, partner_email: str | None = "dispatch@swift.example"):
    user = await seeder.user()
    partner = await seeder.moving_partner(email=partner_email)
    appt = await seeder.appointment(user, moving_partner_id=partner, job_code="JOB-0100")
    await seeder.driver_task(appt, short_id="T-1")
    await seeder.driver_task(appt, short_id="T-2", step_number=2)
    return appt


def _task_id(appointment_id: int) -> TaskId:
    return TaskId(type=TaskType.UNASSIGNED_DRIVER, entity_id=appointment_id)


class TestUnassignedDriverListing:
    async def test_listing(self, engine, seeder):
        appt = await _appointment_without_driver(seeder)

        [task] = await engine.adapters[TaskType.UNASSIGNED_DRIVER].list_pending()
        assert str(task.id) == f"unassigned-driver/{appt}"
        assert task.priority_hint == PriorityHint.CRITICAL
        assert task.action == "Remind Mover"
        assert "JOB-0100" in task.description
        assert "Tue, Oct 20" in task.description
        assert task.payload.moving_partner.name == "Swift Movers"
        assert task.payload.moving_partner.phone == "+15550002222"
        assert task.payload.driver_task_refs == ["T-1", "T-2"]

    async def test_earlier_today_is_listed(self, engine, seeder):
        user = await seeder.user()
        partner = await seeder.moving_partner()
        await seeder.appointment(
            user, moving_partner_id=partner, date=seeder.now - timedelta(hours=3)
        )

        assert len(await engine.adapters[TaskType.UNASSIGNED_DRIVER].list_pending()) == 1

    async def test_excluded_appointments(self, engine, seeder):
        user = await seeder.user()
        partner = await seeder.moving_partner()
        driver = await seeder.driver()
        # 已有司机接单
        with_driver = await seeder.appointment(user, moving_partner_id=partner)
        await seeder.driver_task(with_driver, driver_id=driver)
        # 已联系过合作方
        await seeder.appointment(user, moving_partner_id=partner, called_moving_partner=True)
        # 未指定合作方
        await seeder.appointment(user)
        # 窗口之外
        await seeder.appointment(
            user, moving_partner_id=partner, date=seeder.now + timedelta(days=3)
        )
        await seeder.appointment(user, moving_partner_id=partner, status="Cancelled")

        assert await engine.adapters[TaskType.UNASSIGNED_DRIVER].list_pending() == []


class TestUnassignedDriverResolve:
    async def test_reached_partner_resolves(self, engine, seeder, notifier):
        appt = await _appointment_without_driver(seeder)

        result = await engine.dispatcher.resolve(
            _task_id(appt),
            {"calledMovingPartner": True, "gotHoldOfMovingPartner": True},
            ResolutionContext(admin_id=2),
        )

        assert result.resolved is True
        assert result.updated_entity["got_hold_of_moving_partner"] is True
        row = await seeder.fetch_one(
            "SELECT called_moving_partner, got_hold_of_moving_partner FROM appointments WHERE id = ?",
            (appt,),
        )
        assert tuple(row) == (1, 1)
        notifier.send_email.assert_not_awaited()
        log = await seeder.fetch_one("SELECT action, target_type FROM admin_logs")
        assert tuple(log) == ("Called moving partner", "APPOINTMENT")
        assert await engine.adapters[TaskType.UNASSIGNED_DRIVER].list_pending() == []

    async def test_unreached_partner_gets_reminder(self, engine, seeder, notifier):
        appt = await _appointment_without_driver(seeder)

        result = await engine.dispatcher.resolve(
            _task_id(appt), {"calledPartner": True, "gotHoldOfPartner": False}
        )

        assert result.resolved is True
        assert result.partial is False
        message = notifier.send_email.await_args.args[0]
        assert message.to == "dispatch@swift.example"
        assert "JOB-0100" in message.subject
        assert "No driver has been assigned" in message.body

    async def test_unreached_partner_without_email_skips_reminder(self, engine, seeder, notifier):
        appt = await _appointment_without_driver(seeder, partner_email=None)

        result = await engine.dispatcher.resolve(
            _task_id(appt), {"calledPartner": True, "gotHoldOfPartner": False}
        )

        assert result.partial is False
        notifier.send_email.assert_not_awaited()

    async def test_not_called_keeps_task_listed(self, engine, seeder):
        appt = await _appointment_without_driver(seeder)

        result = await engine.dispatcher.resolve(_task_id(appt), {"calledPartner": False})

        assert result.resolved is False
        assert result.updated_entity["got_hold_of_moving_partner"] is None
        log = await seeder.fetch_one("SELECT action FROM admin_logs")
        assert log["action"] == "Marked as not called moving partner"
        assert len(await engine.adapters[TaskType.UNASSIGNED_DRIVER].list_pending()) == 1

    async def test_reached_without_call_rejected(self, engine, seeder):
        appt = await _appointment_without_driver(seeder)

        with pytest.raises(TaskValidationError) as exc_info:
            await engine.dispatcher.resolve(
                _task_id(appt), {"calledPartner": False, "gotHoldOfPartner": True}
            )
        assert exc_info.value.details[0]["reason"] == "inconsistent"
        assert await seeder.count("admin_logs") == 0

    async def test_called_without_outcome_rejected(self, engine, seeder):
        appt = await _appointment_without_driver(seeder)

        with pytest.raises(TaskValidationError):
            await engine.dispatcher.resolve(_task_id(appt), {"calledPartner": True})

    async def test_driver_assigned_meanwhile_conflicts(self, engine, seeder, notifier):
        appt = await _appointment_without_driver(seeder)
        driver = await seeder.driver()
        await seeder.driver_task(appt, driver_id=driver, step_number=3)

        with pytest.raises(TaskConflictError):
            await engine.dispatcher.resolve(
                _task_id(appt), {"calledPartner": True, "gotHoldOfPartner": False}
            )
        notifier.send_email.assert_not_awaited()
