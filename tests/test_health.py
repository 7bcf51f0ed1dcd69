"""Smoke test for the assembled application."""

from httpx import ASGITransport, AsyncClient

from lablink.app.main import app


async def test_health_check():
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as client:
        resp = await client.get("/health")

    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "service": "lablink"}


def test_routes_mounted():
    paths = set(app.openapi()["paths"])
    assert {"/api/labs/auto-assign", "/api/labs/ranked", "/api/orders", "/health"} <= paths
