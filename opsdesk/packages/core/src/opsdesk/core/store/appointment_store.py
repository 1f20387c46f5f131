"""AppointmentStore SQLite 实现

预约、配送任务（driver_tasks）、搬家合作方相关的查询与条件更新。
资格判定谓词写在 SQL 中，列表与详情共用同一查询（可选主键过滤）。
"""

from collections.abc import Sequence
from datetime import datetime

import aiosqlite

from ..config import EXCLUDED_APPOINTMENT_STATUSES
from ..models.records import AppointmentRow, DriverTaskRow, MovingPartnerRow
from .transaction import placeholders, to_db_time

_APPOINTMENT_COLUMNS = """
    a.id, a.job_code, a.user_id, a.moving_partner_id, a.appointment_type,
    a.address, a.date, a.time, a.number_of_units, a.status,
    a.called_moving_partner, a.got_hold_of_moving_partner, a.created_at,
    TRIM(u.first_name || ' ' || u.last_name) AS customer_name,
    u.email AS customer_email, u.phone_number AS customer_phone
"""

_EXCLUDED = placeholders(len(EXCLUDED_APPOINTMENT_STATUSES))


class SqliteAppointmentStore:
    """AppointmentStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def get_appointment(self, appointment_id: int) -> AppointmentRow | None:
        """根据主键查询预约"""
        cursor = await self._conn.execute(
            f"""
            SELECT {_APPOINTMENT_COLUMNS}
            FROM appointments a JOIN users u ON u.id = a.user_id
            WHERE a.id = ?
            """,
            (appointment_id,),
        )
        row = await cursor.fetchone()
        return self._row_to_appointment(row) if row else None

    async def list_missing_driver(
        self,
        window_start: datetime,
        window_end: datetime,
        appointment_id: int | None = None,
    ) -> list[AppointmentRow]:
        """时间窗口内、已指定搬家合作方、尚无司机接单、且未联系合作方的预约"""
        sql = f"""
            SELECT {_APPOINTMENT_COLUMNS}
            FROM appointments a JOIN users u ON u.id = a.user_id
            WHERE a.date >= ? AND a.date < ?
              AND a.moving_partner_id IS NOT NULL
              AND a.status NOT IN ({_EXCLUDED})
              AND a.called_moving_partner = 0
              AND NOT EXISTS (
                  SELECT 1 FROM driver_tasks t
                  WHERE t.appointment_id = a.id AND t.driver_id IS NOT NULL
              )
        """
        params: list = [
            to_db_time(window_start),
            to_db_time(window_end),
            *EXCLUDED_APPOINTMENT_STATUSES,
        ]
        return await self._fetch_appointments(sql, params, appointment_id)

    async def list_awaiting_unit_assignment(
        self,
        appointment_types: Sequence[str],
        window_start: datetime,
        window_end: datetime,
        appointment_id: int | None = None,
    ) -> list[AppointmentRow]:
        """时间窗口内、尚未开始任何单元使用记录的入库类预约"""
        sql = f"""
            SELECT {_APPOINTMENT_COLUMNS}
            FROM appointments a JOIN users u ON u.id = a.user_id
            WHERE a.appointment_type IN ({placeholders(len(appointment_types))})
              AND a.date >= ? AND a.date < ?
              AND a.status NOT IN ({_EXCLUDED})
              AND NOT EXISTS (
                  SELECT 1 FROM storage_unit_usages s
                  WHERE s.start_appointment_id = a.id
              )
        """
        params: list = [
            *appointment_types,
            to_db_time(window_start),
            to_db_time(window_end),
            *EXCLUDED_APPOINTMENT_STATUSES,
        ]
        return await self._fetch_appointments(sql, params, appointment_id)

    async def list_by_status(
        self,
        status: str,
        appointment_types: Sequence[str],
        appointment_id: int | None = None,
    ) -> list[AppointmentRow]:
        """指定状态与类型的预约（如等待入库核查）"""
        sql = f"""
            SELECT {_APPOINTMENT_COLUMNS}
            FROM appointments a JOIN users u ON u.id = a.user_id
            WHERE a.status = ?
              AND a.appointment_type IN ({placeholders(len(appointment_types))})
        """
        params: list = [status, *appointment_types]
        return await self._fetch_appointments(sql, params, appointment_id)

    async def list_awaiting_unit_prep(
        self,
        appointment_types: Sequence[str],
        window_start: datetime,
        window_end: datetime,
        appointment_id: int | None = None,
    ) -> list[AppointmentRow]:
        """时间窗口内、仍有请求单元未备货的取件类预约"""
        sql = f"""
            SELECT {_APPOINTMENT_COLUMNS}
            FROM appointments a JOIN users u ON u.id = a.user_id
            WHERE a.appointment_type IN ({placeholders(len(appointment_types))})
              AND a.date >= ? AND a.date < ?
              AND a.status NOT IN ({_EXCLUDED})
              AND EXISTS (
                  SELECT 1 FROM requested_access_storage_units r
                  WHERE r.appointment_id = a.id AND r.units_ready = 0
              )
        """
        params: list = [
            *appointment_types,
            to_db_time(window_start),
            to_db_time(window_end),
            *EXCLUDED_APPOINTMENT_STATUSES,
        ]
        return await self._fetch_appointments(sql, params, appointment_id)

    async def list_active_by_types(
        self,
        appointment_types: Sequence[str],
        appointment_ids: Sequence[int] | None = None,
    ) -> list[AppointmentRow]:
        """状态未结束的指定类型预约，可限定主键集合"""
        sql = f"""
            SELECT {_APPOINTMENT_COLUMNS}
            FROM appointments a JOIN users u ON u.id = a.user_id
            WHERE a.appointment_type IN ({placeholders(len(appointment_types))})
              AND a.status NOT IN ({_EXCLUDED})
        """
        params: list = [*appointment_types, *EXCLUDED_APPOINTMENT_STATUSES]
        if appointment_ids is not None:
            if not appointment_ids:
                return []
            sql += f" AND a.id IN ({placeholders(len(appointment_ids))})"
            params.extend(appointment_ids)
        cursor = await self._conn.execute(sql + " ORDER BY a.id", params)
        rows = await cursor.fetchall()
        return [self._row_to_appointment(row) for row in rows]

    async def get_moving_partner(self, partner_id: int) -> MovingPartnerRow | None:
        cursor = await self._conn.execute(
            "SELECT id, name, email, phone_number FROM moving_partners WHERE id = ?",
            (partner_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return MovingPartnerRow(
            id=row["id"],
            name=row["name"],
            email=row["email"],
            phone_number=row["phone_number"],
        )

    async def list_driver_tasks(
        self, appointment_ids: Sequence[int]
    ) -> dict[int, list[DriverTaskRow]]:
        """按预约分组返回配送任务（含司机信息）"""
        if not appointment_ids:
            return {}
        cursor = await self._conn.execute(
            f"""
            SELECT t.id, t.appointment_id, t.short_id, t.unit_number, t.driver_id,
                   TRIM(d.first_name || ' ' || d.last_name) AS driver_name,
                   d.phone_number AS driver_phone,
                   t.storage_unit_id, t.driver_verified
            FROM driver_tasks t LEFT JOIN drivers d ON d.id = t.driver_id
            WHERE t.appointment_id IN ({placeholders(len(appointment_ids))})
            ORDER BY t.appointment_id, t.unit_number, t.step_number, t.id
            """,
            list(appointment_ids),
        )
        grouped: dict[int, list[DriverTaskRow]] = {}
        for row in await cursor.fetchall():
            task = DriverTaskRow(
                id=row["id"],
                appointment_id=row["appointment_id"],
                short_id=row["short_id"],
                unit_number=row["unit_number"],
                driver_id=row["driver_id"],
                driver_name=row["driver_name"] if row["driver_id"] is not None else None,
                driver_phone=row["driver_phone"],
                storage_unit_id=row["storage_unit_id"],
                driver_verified=(
                    None if row["driver_verified"] is None else bool(row["driver_verified"])
                ),
            )
            grouped.setdefault(task.appointment_id, []).append(task)
        return grouped

    async def record_partner_contact(
        self,
        appointment_id: int,
        called: bool,
        got_hold: bool | None,
    ) -> bool:
        """条件更新：仍未联系合作方且仍无司机接单时记录联系结果

        Returns:
            True 如果条件成立且已更新
        """
        cursor = await self._conn.execute(
            """
            UPDATE appointments
            SET called_moving_partner = ?, got_hold_of_moving_partner = ?
            WHERE id = ?
              AND called_moving_partner = 0
              AND NOT EXISTS (
                  SELECT 1 FROM driver_tasks t
                  WHERE t.appointment_id = appointments.id AND t.driver_id IS NOT NULL
              )
            """,
            (int(called), None if got_hold is None else int(got_hold), appointment_id),
        )
        return cursor.rowcount == 1

    async def transition_status(
        self, appointment_id: int, expected: str, new_status: str
    ) -> bool:
        """条件状态流转：仅当当前状态为 expected 时更新"""
        cursor = await self._conn.execute(
            "UPDATE appointments SET status = ? WHERE id = ? AND status = ?",
            (new_status, appointment_id, expected),
        )
        return cursor.rowcount == 1

    async def bind_driver_tasks(
        self,
        appointment_id: int,
        unit_number: int,
        storage_unit_id: int,
        driver_verified: bool,
    ) -> int:
        """为指定单元序号的配送任务绑定储物单元（仅填充空值）并记录司机核验结果

        Returns:
            受影响的配送任务数
        """
        cursor = await self._conn.execute(
            """
            UPDATE driver_tasks
            SET storage_unit_id = COALESCE(storage_unit_id, ?), driver_verified = ?
            WHERE appointment_id = ? AND unit_number = ?
            """,
            (storage_unit_id, int(driver_verified), appointment_id, unit_number),
        )
        return cursor.rowcount

    async def _fetch_appointments(
        self,
        sql: str,
        params: list,
        appointment_id: int | None,
    ) -> list[AppointmentRow]:
        if appointment_id is not None:
            sql += " AND a.id = ?"
            params.append(appointment_id)
        cursor = await self._conn.execute(sql + " ORDER BY a.date, a.id", params)
        rows = await cursor.fetchall()
        return [self._row_to_appointment(row) for row in rows]

    @staticmethod
    def _row_to_appointment(row: aiosqlite.Row) -> AppointmentRow:
        """将数据库行转换为 AppointmentRow"""
        got_hold = row["got_hold_of_moving_partner"]
        return AppointmentRow(
            id=row["id"],
            job_code=row["job_code"],
            user_id=row["user_id"],
            moving_partner_id=row["moving_partner_id"],
            appointment_type=row["appointment_type"],
            address=row["address"],
            date=datetime.fromisoformat(row["date"]),
            time=row["time"],
            number_of_units=row["number_of_units"],
            status=row["status"],
            called_moving_partner=bool(row["called_moving_partner"]),
            got_hold_of_moving_partner=None if got_hold is None else bool(got_hold),
            created_at=datetime.fromisoformat(row["created_at"]),
            customer_name=row["customer_name"] or "",
            customer_email=row["customer_email"],
            customer_phone=row["customer_phone"],
        )
