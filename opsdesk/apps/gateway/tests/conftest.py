"""apps/gateway 测试配置 -- 任务引擎 + FastAPI AsyncClient fixture

照片存储与邮件通知使用 AsyncMock，时钟固定为 FIXED_NOW。
"""

import itertools
import os
from collections.abc import AsyncGenerator
from datetime import datetime
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from opsdesk.ports import DeliveryReceipt, PhotoMetadata

SENDER = "ops@opsdesk.test"


@pytest.fixture
def photo_storage() -> AsyncMock:
    """上传返回 https://photos.test/{category}/{entity}-{n}.jpg"""
    storage = AsyncMock()
    counter = itertools.count(1)

    async def upload(content: bytes, metadata: PhotoMetadata) -> str:
        return f"https://photos.test/{metadata.category}/{metadata.entity_id}-{next(counter)}.jpg"

    storage.upload.side_effect = upload
    return storage


@pytest.fixture
def notifier() -> AsyncMock:
    mock = AsyncMock()
    mock.provider = "mock"
    mock.send_email.return_value = DeliveryReceipt(sent=True, provider="mock", message_id="m-1")
    return mock


@pytest.fixture
def engine(store_group, photo_storage, notifier, fixed_now: datetime):
    """固定时钟、无缓存的任务引擎"""
    from opsdesk.gateway.services.engine import build_engine

    return build_engine(
        store_group,
        photo_storage,
        notifier,
        clock=lambda: fixed_now,
        timeout_s=2.0,
        cache_ttl_s=0.0,
        sender_email=SENDER,
    )


@pytest_asyncio.fixture
async def app(store_group, engine, photo_storage, notifier):
    """创建测试用 FastAPI app（手动初始化 app.state，绕过 lifespan）"""
    os.environ["LOGFIRE_SEND_TO_LOGFIRE"] = "false"

    from opsdesk.gateway.main import create_app

    application = create_app()
    application.state.store_group = store_group
    application.state.aggregator = engine.aggregator
    application.state.dispatcher = engine.dispatcher
    application.state.object_storage = photo_storage
    application.state.notifier = notifier
    yield application

    os.environ.pop("LOGFIRE_SEND_TO_LOGFIRE", None)


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """提供 httpx AsyncClient 用于测试"""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
