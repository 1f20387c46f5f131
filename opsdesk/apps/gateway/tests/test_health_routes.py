"""健康检查路由测试"""

from unittest.mock import AsyncMock, MagicMock

from opsdesk.ports import LocalPhotoStorage


class TestHealth:
    async def test_health_always_ok(self, client):
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    async def test_ready(self, client):
        resp = await client.get("/ready")

        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ready"
        assert data["checks"]["sqlite"] == "ok"
        assert data["checks"]["photos_dir"] == "skipped"
        assert data["checks"]["notifier"] == "mock"

    async def test_ready_checks_local_photos_dir(self, client, app, tmp_path):
        photos_dir = tmp_path / "photos"
        photos_dir.mkdir()
        app.state.object_storage = LocalPhotoStorage(photos_dir, "/photos")

        resp = await client.get("/ready")
        assert resp.json()["checks"]["photos_dir"] == "ok"

        photos_dir.rmdir()
        resp = await client.get("/ready")
        assert resp.status_code == 503
        assert resp.json()["status"] == "not_ready"

    async def test_ready_reports_database_failure(self, client, app):
        broken = MagicMock()
        broken.conn.execute = AsyncMock(side_effect=RuntimeError("database is closed"))
        app.state.store_group = broken

        resp = await client.get("/ready")

        assert resp.status_code == 503
        assert resp.json()["checks"]["sqlite"].startswith("error")
