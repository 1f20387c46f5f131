"""FastAPI 应用主文件

app 创建 + lifespan 管理：DB 初始化/关闭、照片存储与邮件通知端口、任务引擎组装。
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

import structlog
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles
from opsdesk.core.config import get_db_path, get_photos_dir
from opsdesk.core.store import create_store_group
from opsdesk.ports import (
    PortsConfig,
    build_notifier,
    build_object_storage,
    load_ports_config,
)

from .middleware.logging_config import setup_logfire, setup_logging
from .middleware.logging_mw import LoggingMiddleware
from .middleware.trace_mw import TraceMiddleware
from .routes import health, tasks
from .services.engine import build_engine

log = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """启动时初始化 Store、端口与引擎，关闭时清理连接"""
    store_group = await create_store_group(get_db_path())
    app.state.store_group = store_group

    ports_config = app.state.ports_config
    object_storage = build_object_storage(ports_config, app.state.photos_dir)
    notifier = build_notifier(ports_config)
    app.state.object_storage = object_storage
    app.state.notifier = notifier

    engine = build_engine(
        store_group,
        object_storage,
        notifier,
        sender_email=ports_config.notify_from,
    )
    app.state.aggregator = engine.aggregator
    app.state.dispatcher = engine.dispatcher

    log.info(
        "task_engine_initialized",
        adapters=[t.value for t in engine.adapters],
        storage_mode=ports_config.storage_mode,
        notify_mode=ports_config.notify_mode,
    )

    yield

    if getattr(app.state, "store_group", None):
        await app.state.store_group.conn.close()


def serves_local_photos(config: PortsConfig) -> bool:
    """本地存储（含 http 缺少上传地址时的降级）且 URL 为站内路径时由本服务提供照片"""
    uses_http = config.storage_mode == "http" and bool(config.upload_url)
    return not uses_http and config.photo_base_url.startswith("/")


def create_app(photos_dir: Path | None = None) -> FastAPI:
    """创建 FastAPI 应用实例

    Args:
        photos_dir: 本地照片目录，缺省取 OPSDESK_PHOTOS_DIR
    """
    app = FastAPI(
        title="Opsdesk Gateway",
        version="0.1.0",
        description="Admin operational task engine API",
        lifespan=lifespan,
    )

    # 注册中间件（先 Trace 后 Logging，Logging 在最外层）
    app.add_middleware(TraceMiddleware)
    app.add_middleware(LoggingMiddleware)

    setup_logging()
    setup_logfire(app)

    app.include_router(tasks.router, tags=["tasks"])
    app.include_router(health.router, tags=["health"])

    ports_config = load_ports_config()
    app.state.ports_config = ports_config
    app.state.photos_dir = photos_dir or get_photos_dir()
    # 目录在 lifespan 构建存储时创建
    if serves_local_photos(ports_config):
        app.mount(
            ports_config.photo_base_url,
            StaticFiles(directory=str(app.state.photos_dir), check_dir=False),
            name="photos",
        )

    return app


# 默认 app 实例（uvicorn 入口）
app = create_app()
