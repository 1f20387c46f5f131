"""PackingSupplyStore SQLite 实现 -- 耗材订单与订单行"""

from collections.abc import Sequence
from datetime import datetime

import aiosqlite

from ..models.records import OrderLineRow, OrderRow
from .transaction import placeholders, to_db_time

_CANCELED = "Canceled"


class SqlitePackingSupplyStore:
    """PackingSupplyStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def list_unprepped_orders(self, order_id: int | None = None) -> list[OrderRow]:
        """尚未备货且未取消的订单"""
        sql = """
            SELECT o.id, o.short_id, o.contact_name, o.contact_email, o.contact_phone,
                   o.delivery_address, o.delivery_date, o.order_date, o.status,
                   TRIM(d.first_name || ' ' || d.last_name) AS driver_name
            FROM packing_supply_orders o
            LEFT JOIN drivers d ON d.id = o.assigned_driver_id
            WHERE o.is_prepped = 0 AND o.status != ?
        """
        params: list = [_CANCELED]
        if order_id is not None:
            sql += " AND o.id = ?"
            params.append(order_id)
        cursor = await self._conn.execute(sql + " ORDER BY o.order_date DESC, o.id", params)
        return [self._row_to_order(row) for row in await cursor.fetchall()]

    async def list_order_lines(
        self, order_ids: Sequence[int]
    ) -> dict[int, list[OrderLineRow]]:
        """按订单分组返回订单行"""
        if not order_ids:
            return {}
        cursor = await self._conn.execute(
            f"""
            SELECT od.id, od.order_id, p.title AS product_title, od.quantity
            FROM packing_supply_order_details od
            JOIN products p ON p.id = od.product_id
            WHERE od.order_id IN ({placeholders(len(order_ids))})
            ORDER BY od.order_id, od.id
            """,
            list(order_ids),
        )
        grouped: dict[int, list[OrderLineRow]] = {}
        for row in await cursor.fetchall():
            line = OrderLineRow(
                id=row["id"],
                order_id=row["order_id"],
                product_title=row["product_title"],
                quantity=row["quantity"],
            )
            grouped.setdefault(line.order_id, []).append(line)
        return grouped

    async def mark_prepped(self, order_id: int, admin_id: int, now: datetime) -> bool:
        """条件更新：仅当订单未备货且未取消时标记为已备货"""
        cursor = await self._conn.execute(
            """
            UPDATE packing_supply_orders
            SET is_prepped = 1, prepped_at = ?, prepped_by = ?
            WHERE id = ? AND is_prepped = 0 AND status != ?
            """,
            (to_db_time(now), admin_id, order_id, _CANCELED),
        )
        return cursor.rowcount == 1

    @staticmethod
    def _row_to_order(row: aiosqlite.Row) -> OrderRow:
        return OrderRow(
            id=row["id"],
            short_id=row["short_id"],
            contact_name=row["contact_name"],
            contact_email=row["contact_email"],
            contact_phone=row["contact_phone"],
            delivery_address=row["delivery_address"],
            delivery_date=datetime.fromisoformat(row["delivery_date"]),
            order_date=datetime.fromisoformat(row["order_date"]),
            status=row["status"],
            driver_name=row["driver_name"] or None,
        )
