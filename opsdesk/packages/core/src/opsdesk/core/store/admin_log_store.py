"""AdminLogStore SQLite 实现 -- 管理员操作审计日志（append-only）"""

from datetime import datetime

import aiosqlite

from ..models.records import AdminLogRow
from .transaction import to_db_time


class SqliteAdminLogStore:
    """AdminLogStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def append(
        self,
        admin_id: int,
        action: str,
        target_type: str,
        target_id: str | int,
        now: datetime,
    ) -> None:
        """追加一条审计日志（需在调用方事务内）"""
        await self._conn.execute(
            """
            INSERT INTO admin_logs (admin_id, action, target_type, target_id, created_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (admin_id, action, target_type, str(target_id), to_db_time(now)),
        )

    async def list_recent(self, limit: int = 50) -> list[AdminLogRow]:
        """最近的审计日志，按时间倒序"""
        cursor = await self._conn.execute(
            """
            SELECT id, admin_id, action, target_type, target_id, created_at
            FROM admin_logs ORDER BY created_at DESC, id DESC LIMIT ?
            """,
            (limit,),
        )
        return [
            AdminLogRow(
                id=row["id"],
                admin_id=row["admin_id"],
                action=row["action"],
                target_type=row["target_type"],
                target_id=row["target_id"],
                created_at=datetime.fromisoformat(row["created_at"]),
            )
            for row in await cursor.fetchall()
        ]
