"""End-to-end tests for the quality and render endpoints."""
from __future__ import annotations

from httpx import AsyncClient


async def analyze(client: AsyncClient, headers: dict, scene_id: str, score: float, **extra):
    return await client.put(
        f"/api/projects/proj-1/scenes/{scene_id}/analysis",
        json={"overall_score": score, **extra},
        headers=headers,
    )


class TestQualityReport:
    async def test_unanalyzed_project_blocked(self, client, auth_headers):
        resp = await client.get("/api/projects/proj-1/can-render", headers=auth_headers())
        assert resp.status_code == 200
        data = resp.json()
        assert data["can_render"] is False
        assert data["blocking_reasons"] == ["Quality analysis required before rendering."]

    async def test_unknown_project_404(self, client, auth_headers):
        resp = await client.get("/api/projects/nope/quality-report", headers=auth_headers())
        assert resp.status_code == 404
        assert resp.json()["error"] == "ProjectNotFoundError"

    async def test_analysis_is_classified(self, client, auth_headers):
        resp = await analyze(client, auth_headers(), "s1", 78)
        assert resp.json()["status"] == "needs_review"

        resp = await analyze(
            client, auth_headers(), "s2", 90,
            issues=[
                {"severity": "critical", "description": "face warped"},
                {"severity": "cosmetic", "description": "slight grain"},
            ],
        )
        assert resp.json()["status"] == "approved"
        assert resp.json()["critical_issues"] == 1

        report = (await client.get("/api/projects/proj-1/quality-report", headers=auth_headers())).json()
        assert report["scene_count"] == 2
        assert report["minor_issue_count"] == 1
        assert report["overall_score"] == 84
        assert report["blocking_reasons"] == [
            "1 scene(s) need review — approve or regenerate.",
            "1 critical issue(s) must be resolved.",
        ]

    async def test_out_of_range_score_422(self, client, auth_headers):
        resp = await analyze(client, auth_headers(), "s1", 120)
        assert resp.status_code == 422

    async def test_approve_all_then_renderable(self, client, auth_headers):
        await analyze(client, auth_headers(), "s1", 78)
        await analyze(client, auth_headers(), "s2", 80)
        resp = await client.post("/api/projects/proj-1/approve-all", headers=auth_headers())
        assert resp.json()["approved_count"] == 2

        data = (await client.get("/api/projects/proj-1/can-render", headers=auth_headers())).json()
        assert data["can_render"] is True


class TestSceneActions:
    async def test_reject_then_regenerate(self, client, auth_headers, services):
        await analyze(client, auth_headers(), "s1", 78)
        resp = await client.post(
            "/api/projects/proj-1/scenes/s1/reject",
            json={"reason": "wrong product shown"},
            headers=auth_headers(),
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "rejected"
        entries = await services.guard.audit.entries_for("proj-1")
        assert entries[-1].action == "scene.rejected"
        assert entries[-1].details["reason"] == "wrong product shown"

        resp = await client.post("/api/projects/proj-1/scenes/s1/regenerate", headers=auth_headers())
        assert resp.json()["status"] == "pending"
        assert resp.json()["regeneration_count"] == 1

        # re-analysis keeps the regeneration count
        resp = await analyze(client, auth_headers(), "s1", 88)
        assert resp.json()["regeneration_count"] == 1

    async def test_invalid_transition_409(self, client, auth_headers):
        await analyze(client, auth_headers(), "s1", 40)
        resp = await client.post("/api/projects/proj-1/scenes/s1/approve", headers=auth_headers())
        assert resp.status_code == 409

    async def test_unknown_scene_404(self, client, auth_headers):
        await analyze(client, auth_headers(), "s1", 80)
        resp = await client.post("/api/projects/proj-1/scenes/zz/approve", headers=auth_headers())
        assert resp.status_code == 404


class TestRenderEndpoint:
    async def test_render_lifecycle(self, client, auth_headers):
        await analyze(client, auth_headers(), "s1", 92)

        first = await client.post("/api/projects/proj-1/render", headers=auth_headers())
        assert first.status_code == 202
        render_id = first.json()["render_id"]

        second = await client.post("/api/projects/proj-1/render", headers=auth_headers())
        assert second.status_code == 200
        assert second.json()["already_rendering"] is True
        assert second.json()["render_id"] == render_id

        done = await client.post(
            f"/api/renders/{render_id}/complete", json={"succeeded": True}, headers=auth_headers()
        )
        assert done.json()["state"] == "done"

        # scenes used by a completed render are read-only
        resp = await analyze(client, auth_headers(), "s1", 50)
        assert resp.status_code == 409

    async def test_gate_denial_400(self, client, auth_headers):
        await analyze(client, auth_headers(), "s1", 40)
        resp = await client.post("/api/projects/proj-1/render", headers=auth_headers())
        assert resp.status_code == 400
        data = resp.json()
        assert data["accepted"] is False
        assert data["denial"] == "quality_gate"
        assert data["reasons"][0] == "1 scene(s) rejected — must regenerate."

    async def test_employee_force_403(self, client, auth_headers):
        await analyze(client, auth_headers(), "s1", 40)
        resp = await client.post(
            "/api/projects/proj-1/render", json={"force_render": True}, headers=auth_headers()
        )
        assert resp.status_code == 403
        assert resp.json()["denial"] == "authorization"

    async def test_admin_force_202(self, client, auth_headers, services):
        await analyze(client, auth_headers(), "s1", 40)
        resp = await client.post(
            "/api/projects/proj-1/render",
            json={"force_render": True},
            headers=auth_headers(role="admin", user_id="admin-1"),
        )
        assert resp.status_code == 202
        assert resp.json()["forced"] is True
        jobs = await services.store.render_jobs("proj-1")
        assert jobs[0].forced is True
        assert jobs[0].requested_by == "admin-1"

        entries = await services.guard.audit.entries_for("proj-1")
        assert [e.action for e in entries] == ["render.force_bypass"]

        # the forced render in flight does not let a plain request through the gate
        resp = await client.post("/api/projects/proj-1/render", headers=auth_headers())
        assert resp.status_code == 400
        assert resp.json()["denial"] == "quality_gate"
        assert len(await services.store.render_jobs("proj-1")) == 1

    async def test_complete_unknown_render_404(self, client, auth_headers):
        resp = await client.post("/api/renders/missing/complete", json={}, headers=auth_headers())
        assert resp.status_code == 404
