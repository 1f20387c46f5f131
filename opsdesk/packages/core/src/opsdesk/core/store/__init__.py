"""Opsdesk Core Store -- SQLite 持久化实现

提供工厂函数创建共享数据库连接的 Store 实例组。
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

import aiosqlite

from .admin_log_store import SqliteAdminLogStore
from .appointment_store import SqliteAppointmentStore
from .feedback_store import SqliteFeedbackStore
from .packing_supply_store import SqlitePackingSupplyStore
from .sqlite_init import init_db
from .storage_unit_store import SqliteStorageUnitStore
from .transaction import to_db_time, write_transaction


class StoreGroup:
    """Store 实例组 -- 共享同一个数据库连接与写锁"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self.conn = conn
        self.write_lock = asyncio.Lock()
        self.appointment_store = SqliteAppointmentStore(conn)
        self.storage_unit_store = SqliteStorageUnitStore(conn)
        self.feedback_store = SqliteFeedbackStore(conn)
        self.packing_supply_store = SqlitePackingSupplyStore(conn)
        self.admin_log_store = SqliteAdminLogStore(conn)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """写事务：提交或回滚后释放写锁"""
        async with write_transaction(self.conn, self.write_lock) as conn:
            yield conn


async def create_store_group(db_path: str) -> StoreGroup:
    """创建 Store 实例组

    Args:
        db_path: SQLite 数据库文件路径

    Returns:
        StoreGroup 实例
    """
    # 确保数据库目录存在
    db_dir = Path(db_path).parent
    db_dir.mkdir(parents=True, exist_ok=True)

    conn = await aiosqlite.connect(db_path)
    conn.row_factory = aiosqlite.Row
    await init_db(conn)

    return StoreGroup(conn=conn)


__all__ = [
    "StoreGroup",
    "create_store_group",
    "SqliteAppointmentStore",
    "SqliteStorageUnitStore",
    "SqliteFeedbackStore",
    "SqlitePackingSupplyStore",
    "SqliteAdminLogStore",
    "init_db",
    "to_db_time",
    "write_transaction",
]
