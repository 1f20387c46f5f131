"""差评回复与列表缓存集成测试"""

from opsdesk.core.models import StorageUnitStatus


def _ids(resp) -> set[str]:
    return {t["id"] for t in resp.json()["tasks"]}


class TestFeedbackFlow:
    async def test_respond_to_both_feedback_sources(self, client, integration_app, seeder):
        user = await seeder.user()
        appt = await seeder.appointment(user, status="Completed", job_code="JOB-0700")
        feedback = await seeder.feedback(appt, rating=1)
        order = await seeder.packing_supply_order(
            short_id="PS-700", status="Delivered", is_prepped=True
        )
        ps_feedback = await seeder.packing_supply_feedback(order)

        resp = await client.get("/api/tasks", params={"stats": "true"})
        assert resp.json()["urgent"] == 2

        resp = await client.get("/api/tasks")
        assert _ids(resp) == {
            f"negative-feedback/{feedback}",
            f"negative-feedback/ps-{ps_feedback}",
        }

        for key in (str(feedback), f"ps-{ps_feedback}"):
            resp = await client.post(
                f"/api/tasks/negative-feedback/{key}/resolve",
                json={"emailSubject": "We are sorry", "emailBody": "Here is a credit."},
            )
            assert resp.status_code == 200
            assert resp.json()["partial"] is False

        sent = integration_app.state.notifier.sent
        assert [m.to for m in sent] == ["ada@example.com", "grace@example.com"]
        assert {m.sender for m in sent} == {"ops@opsdesk.test"}

        row = await seeder.fetch_one("SELECT responded, response FROM feedback WHERE id = ?", (feedback,))
        assert tuple(row) == (1, "Here is a credit.")

        resp = await client.get("/api/tasks")
        assert _ids(resp) == set()

        resp = await client.post(
            f"/api/tasks/negative-feedback/{feedback}/resolve",
            json={"emailSubject": "Again", "emailBody": "Again"},
        )
        assert resp.status_code == 404
        assert len(sent) == 2


class TestListingCache:
    async def test_resolve_invalidates_cached_listing(self, client, seeder):
        first = await seeder.storage_unit("BX-801", status=StorageUnitStatus.PENDING_CLEANING)

        resp = await client.get("/api/tasks")
        assert _ids(resp) == {f"pending-cleaning/{first}"}

        # 直接写库不会使缓存失效
        second = await seeder.storage_unit("BX-802", status=StorageUnitStatus.PENDING_CLEANING)
        resp = await client.get("/api/tasks")
        assert _ids(resp) == {f"pending-cleaning/{first}"}

        # 带筛选的列表不走缓存
        resp = await client.get("/api/tasks", params={"type": "pending-cleaning"})
        assert _ids(resp) == {f"pending-cleaning/{first}", f"pending-cleaning/{second}"}

        resp = await client.post(
            f"/api/tasks/pending-cleaning/{first}/resolve",
            json={"confirmedClean": True, "photos": ["https://cdn.example/clean.jpg"]},
        )
        assert resp.status_code == 200

        resp = await client.get("/api/tasks")
        assert _ids(resp) == {f"pending-cleaning/{second}"}

    async def test_conflict_also_invalidates(self, client, seeder, db_conn):
        unit = await seeder.storage_unit("BX-803", status=StorageUnitStatus.PENDING_CLEANING)
        resp = await client.get("/api/tasks")
        assert _ids(resp) == {f"pending-cleaning/{unit}"}

        await db_conn.execute("UPDATE storage_units SET status = 'Empty' WHERE id = ?", (unit,))
        await db_conn.commit()

        resp = await client.post(
            f"/api/tasks/pending-cleaning/{unit}/resolve",
            json={"confirmedClean": True, "photos": ["https://cdn.example/clean.jpg"]},
        )
        assert resp.status_code == 404

        resp = await client.get("/api/tasks")
        assert _ids(resp) == set()
