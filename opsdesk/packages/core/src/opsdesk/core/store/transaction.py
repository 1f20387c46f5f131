"""写事务封装

同一进程内的写操作通过 asyncio.Lock 串行化（共享同一个连接），
跨进程通过 BEGIN IMMEDIATE 取得 SQLite 写锁。
条件更新在事务内重新检查业务前置条件，保证至多一次生效。
"""

import asyncio
import json
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from datetime import UTC, datetime

import aiosqlite


def to_db_time(value: datetime) -> str:
    """datetime -> ISO-8601 UTC 字符串（秒精度，便于字符串比较）"""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="seconds")


def to_db_json(values: Sequence[str]) -> str:
    return json.dumps(list(values), ensure_ascii=False)


def placeholders(count: int) -> str:
    """生成 IN (...) 子句的占位符"""
    return ", ".join("?" for _ in range(count))


@asynccontextmanager
async def write_transaction(
    conn: aiosqlite.Connection,
    lock: asyncio.Lock,
) -> AsyncIterator[aiosqlite.Connection]:
    """在同一事务内执行一组写操作，异常时回滚并重新抛出

    Args:
        conn: 数据库连接
        lock: 进程内写锁

    Raises:
        Exception: 事务体内的任何异常，回滚后原样抛出
    """
    async with lock:
        await conn.execute("BEGIN IMMEDIATE")
        try:
            yield conn
            await conn.commit()
        except BaseException:
            await conn.rollback()
            raise
