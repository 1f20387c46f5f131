"""CLI 入口模块 -- python -m opsdesk.gateway <command>

支持的命令：
  init-db         创建数据库 schema
  pending-counts  执行一次任务聚合并打印统计
  serve           启动 HTTP 服务（uvicorn）
"""

import asyncio
import os
import sys

from opsdesk.core.config import get_db_path, get_photos_dir

_USAGE = """用法: python -m opsdesk.gateway <command>
命令:
  init-db         创建数据库 schema
  pending-counts  执行一次任务聚合并打印统计
  serve           启动 HTTP 服务"""


def main() -> None:
    """CLI 主入口"""
    if len(sys.argv) < 2:
        print(_USAGE)
        sys.exit(1)

    command = sys.argv[1]

    if command == "init-db":
        asyncio.run(init_database())
    elif command == "pending-counts":
        sys.exit(asyncio.run(pending_counts()))
    elif command == "serve":
        serve()
    else:
        print(f"未知命令: {command}")
        print("可用命令: init-db, pending-counts, serve")
        sys.exit(1)


async def init_database() -> None:
    """创建 schema（已存在的表保持不变）"""
    from opsdesk.core.store import create_store_group

    db_path = get_db_path()
    print(f"数据库路径: {db_path}")
    store_group = await create_store_group(db_path)
    await store_group.conn.close()
    print("Schema 已就绪")


async def pending_counts() -> int:
    """打印各类型待处理任务数；有来源失败时返回 2"""
    from opsdesk.core.store import create_store_group
    from opsdesk.ports import build_notifier, build_object_storage, load_ports_config

    from .services.engine import build_engine

    store_group = await create_store_group(get_db_path())
    try:
        ports_config = load_ports_config()
        engine = build_engine(
            store_group,
            build_object_storage(ports_config, get_photos_dir()),
            build_notifier(ports_config),
            cache_ttl_s=0,
        )
        stats = await engine.aggregator.get_statistics()
    finally:
        await store_group.conn.close()

    width = max(len(t.value) for t in stats.by_type)
    for task_type, count in stats.by_type.items():
        print(f"{task_type.value:<{width}}  {count}")
    print(f"{'total':<{width}}  {stats.total}")
    print(f"{'critical':<{width}}  {stats.critical}")
    print(f"{'urgent':<{width}}  {stats.urgent}")
    for error in stats.errors:
        print(f"! {error.type.value}: {error.kind} ({error.message})")
    return 2 if stats.errors else 0


def serve() -> None:
    """启动 uvicorn（OPSDESK_HOST / OPSDESK_PORT）"""
    import uvicorn

    uvicorn.run(
        "opsdesk.gateway.main:app",
        host=os.environ.get("OPSDESK_HOST", "127.0.0.1"),
        port=int(os.environ.get("OPSDESK_PORT", "8000")),
    )


if __name__ == "__main__":
    main()
