"""健康检查路由

GET /health: Liveness 检查，永远返回 200。
GET /ready: Readiness 检查，包含 SQLite 连通性、照片目录与邮件通知模式。
"""

from pathlib import Path

import structlog
from fastapi import APIRouter, Request
from starlette.responses import JSONResponse

log = structlog.get_logger()

router = APIRouter()


@router.get("/health")
async def health():
    """Liveness 检查 -- 永远返回 200"""
    return {"status": "ok"}


@router.get("/ready")
async def ready(request: Request):
    """Readiness 检查

    检查项：
    1. sqlite: 数据库连通性
    2. photos_dir: 本地照片目录可访问（仅本地存储模式）
    3. notifier: 当前邮件通知实现
    """
    checks: dict[str, str] = {}
    all_ok = True

    try:
        cursor = await request.app.state.store_group.conn.execute("SELECT 1")
        await cursor.fetchone()
        checks["sqlite"] = "ok"
    except Exception as e:
        log.warning("readiness_sqlite_failed", error=str(e))
        checks["sqlite"] = f"error: {e}"
        all_ok = False

    storage = getattr(request.app.state, "object_storage", None)
    photos_dir = getattr(storage, "photos_dir", None)
    if isinstance(photos_dir, Path):
        if photos_dir.is_dir():
            checks["photos_dir"] = "ok"
        else:
            checks["photos_dir"] = "error: directory does not exist"
            all_ok = False
    else:
        checks["photos_dir"] = "skipped"

    notifier = getattr(request.app.state, "notifier", None)
    checks["notifier"] = getattr(notifier, "provider", "unknown")

    return JSONResponse(
        status_code=200 if all_ok else 503,
        content={"status": "ready" if all_ok else "not_ready", "checks": checks},
    )
