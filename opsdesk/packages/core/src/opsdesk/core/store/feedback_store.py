"""FeedbackStore SQLite 实现 -- 预约评价与耗材订单评价"""

from datetime import datetime

import aiosqlite

from ..config import CANCELLED_APPOINTMENT_STATUSES
from ..models.enums import FeedbackSource
from ..models.records import FeedbackRow
from .transaction import placeholders

_TABLES: dict[FeedbackSource, str] = {
    FeedbackSource.APPOINTMENT: "feedback",
    FeedbackSource.PACKING_SUPPLY: "packing_supply_feedback",
}


class SqliteFeedbackStore:
    """FeedbackStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def list_unresponded_appointment_feedback(
        self, max_rating: int, feedback_id: int | None = None
    ) -> list[FeedbackRow]:
        """未回复的预约差评（预约未取消）"""
        sql = f"""
            SELECT f.id, f.rating, f.comment, f.created_at,
                   a.job_code AS reference,
                   TRIM(u.first_name || ' ' || u.last_name) AS customer_name,
                   u.email AS customer_email
            FROM feedback f
            JOIN appointments a ON a.id = f.appointment_id
            JOIN users u ON u.id = a.user_id
            WHERE f.rating <= ? AND f.responded = 0
              AND a.status NOT IN ({placeholders(len(CANCELLED_APPOINTMENT_STATUSES))})
        """
        params: list = [max_rating, *CANCELLED_APPOINTMENT_STATUSES]
        if feedback_id is not None:
            sql += " AND f.id = ?"
            params.append(feedback_id)
        cursor = await self._conn.execute(sql + " ORDER BY f.created_at DESC, f.id", params)
        return [self._row_to_feedback(row) for row in await cursor.fetchall()]

    async def list_unresponded_packing_supply_feedback(
        self, max_rating: int, feedback_id: int | None = None
    ) -> list[FeedbackRow]:
        """未回复的耗材订单差评"""
        sql = """
            SELECT f.id, f.rating, f.comment, f.created_at,
                   COALESCE(o.short_id, 'PS-' || o.id) AS reference,
                   o.contact_name AS customer_name,
                   o.contact_email AS customer_email
            FROM packing_supply_feedback f
            JOIN packing_supply_orders o ON o.id = f.order_id
            WHERE f.rating <= ? AND f.responded = 0
        """
        params: list = [max_rating]
        if feedback_id is not None:
            sql += " AND f.id = ?"
            params.append(feedback_id)
        cursor = await self._conn.execute(sql + " ORDER BY f.created_at DESC, f.id", params)
        return [self._row_to_feedback(row) for row in await cursor.fetchall()]

    async def mark_responded(
        self, source: FeedbackSource, feedback_id: int, response: str
    ) -> bool:
        """条件更新：仅当尚未回复时记录回复内容"""
        table = _TABLES[source]
        cursor = await self._conn.execute(
            f"UPDATE {table} SET responded = 1, response = ? WHERE id = ? AND responded = 0",
            (response, feedback_id),
        )
        return cursor.rowcount == 1

    @staticmethod
    def _row_to_feedback(row: aiosqlite.Row) -> FeedbackRow:
        return FeedbackRow(
            id=row["id"],
            rating=row["rating"],
            comment=row["comment"] or "",
            created_at=datetime.fromisoformat(row["created_at"]),
            reference=row["reference"],
            customer_name=row["customer_name"] or "",
            customer_email=row["customer_email"],
        )
