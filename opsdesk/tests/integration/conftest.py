"""集成测试共享 fixture -- 真实 SQLite + 本地照片存储 + Echo 邮件通知"""

import os
from collections.abc import AsyncGenerator
from datetime import datetime
from pathlib import Path

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from opsdesk.ports import EchoNotifier, LocalPhotoStorage


@pytest_asyncio.fixture
async def integration_app(store_group, tmp_path: Path, fixed_now: datetime):
    """集成测试用 FastAPI app（固定时钟）"""
    os.environ["LOGFIRE_SEND_TO_LOGFIRE"] = "false"

    from opsdesk.gateway.main import create_app
    from opsdesk.gateway.services.engine import build_engine

    photos_dir = tmp_path / "photos"
    photos_dir.mkdir()
    storage = LocalPhotoStorage(photos_dir, "/photos")
    notifier = EchoNotifier()
    engine = build_engine(
        store_group,
        storage,
        notifier,
        clock=lambda: fixed_now,
        timeout_s=5.0,
        cache_ttl_s=30.0,
        sender_email="ops@opsdesk.test",
    )

    app = create_app(photos_dir=photos_dir)
    app.state.store_group = store_group
    app.state.object_storage = storage
    app.state.notifier = notifier
    app.state.aggregator = engine.aggregator
    app.state.dispatcher = engine.dispatcher

    yield app

    os.environ.pop("LOGFIRE_SEND_TO_LOGFIRE", None)


@pytest_asyncio.fixture
async def client(integration_app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=integration_app),
        base_url="http://test",
    ) as ac:
        yield ac
