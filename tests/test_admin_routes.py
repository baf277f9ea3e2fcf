"""Tests for cache administration, analytics and health endpoints."""

from fastapi.testclient import TestClient

from portfolio_api.core.errors import CacheBackendError


def warm_cache(client: TestClient) -> None:
    client.get("/api/v1/content")
    client.get("/api/v1/content/skills")
    client.get("/api/v1/github/profile/alice")
    client.get("/api/v1/github/repos/alice")


def test_admin_routes_require_api_key(client: TestClient) -> None:
    assert client.post("/api/v1/admin/cache/clear").status_code == 403
    assert client.post("/api/v1/admin/cache/sweep").status_code == 403
    assert client.delete("/api/v1/admin/cache", params={"pattern": "*"}).status_code == 403
    assert client.get("/api/v1/admin/cache/keys/content:skills").status_code == 403


def test_inspect_key_reports_ttl(client: TestClient, valid_api_key_headers) -> None:
    warm_cache(client)

    resp = client.get("/api/v1/admin/cache/keys/github:alice:profile", headers=valid_api_key_headers)
    data = resp.json()["data"]
    assert data["exists"] is True
    assert data["ttl_seconds"] == 21_600

    resp = client.get("/api/v1/admin/cache/keys/github:nobody:profile", headers=valid_api_key_headers)
    assert resp.json()["data"] == {"key": "github:nobody:profile", "exists": False, "ttl_seconds": None}


def test_invalidate_by_pattern(client: TestClient, valid_api_key_headers) -> None:
    warm_cache(client)

    resp = client.delete(
        "/api/v1/admin/cache", params={"pattern": "github:alice:*"}, headers=valid_api_key_headers
    )

    assert resp.status_code == 200
    assert resp.json()["data"] == {"pattern": "github:alice:*", "removed": 2}


def test_sweep_removes_expired_entries(client: TestClient, valid_api_key_headers, clock) -> None:
    warm_cache(client)
    # Past the GitHub TTL, before the content TTL.
    clock.advance(21_600)

    resp = client.post("/api/v1/admin/cache/sweep", headers=valid_api_key_headers)

    assert resp.json()["data"] == {"removed": 2}


def test_clear_empties_the_cache(client: TestClient, valid_api_key_headers) -> None:
    warm_cache(client)

    resp = client.post("/api/v1/admin/cache/clear", headers=valid_api_key_headers)

    assert resp.json()["data"] == {"removed": 4}
    stats = client.get("/api/v1/analytics/cache-stats").json()["data"]["cache"]
    assert stats["total_entries"] == 0


def test_cache_stats_include_hit_rate_and_limiters(client: TestClient) -> None:
    client.get("/api/v1/content/skills")
    client.get("/api/v1/content/skills")

    data = client.get("/api/v1/analytics/cache-stats").json()["data"]

    assert data["cache"]["hits"] == 1
    assert data["cache"]["misses"] == 1
    assert data["cache"]["hit_rate"] == 0.5
    names = {limiter["name"] for limiter in data["rate_limiters"]}
    assert names == {"default", "github"}


def test_summary_is_built_on_configured_user_stats(client: TestClient, valid_api_key_headers) -> None:
    resp = client.get("/api/v1/analytics/summary")

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["username"] == "octocat"
    assert data["summary"]["total_repositories"] == 1
    assert data["summary"]["total_stars"] == 3
    assert data["summary"]["total_forks"] == 1
    assert data["summary"]["content_types"] > 0
    assert data["github"]["top_languages"] == [
        {"name": "Python", "repositories": 1, "percentage": 100.0}
    ]
    assert data["github"]["top_repositories"][0]["full_name"] == "alice/portfolio"

    cached = client.get("/api/v1/admin/cache/keys/github:octocat:stats", headers=valid_api_key_headers)
    assert cached.json()["data"]["exists"] is True


def test_health_reports_cache_status(client: TestClient) -> None:
    resp = client.get("/health")

    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "healthy"
    assert body["services"]["cache"]["status"] == "healthy"
    assert client.get("/readiness").json() == {"status": "ready"}
    assert client.get("/liveness").json() == {"status": "alive"}


def test_health_degrades_when_cache_backend_fails(make_app) -> None:
    app = make_app()

    async def broken_count() -> dict:
        raise CacheBackendError(code="cache_backend_error", message="down")

    app.state.cache.store.count = broken_count
    client = TestClient(app)

    resp = client.get("/health")
    assert resp.status_code == 503
    assert resp.json()["services"]["cache"] == {"status": "unhealthy", "error": "cache_backend_error"}
    assert client.get("/readiness").status_code == 503


def test_cache_backend_failure_on_admin_route_is_503(make_app, valid_api_key_headers) -> None:
    app = make_app()

    async def broken_clear() -> int:
        raise CacheBackendError(code="cache_backend_error", message="down")

    app.state.cache.store.clear = broken_clear
    client = TestClient(app)

    resp = client.post("/api/v1/admin/cache/clear", headers=valid_api_key_headers)
    assert resp.status_code == 503
    assert resp.json()["error"]["code"] == "cache_backend_error"
    assert "details" not in resp.json()["error"]


def test_lifespan_starts_and_stops_sweeps(make_app) -> None:
    app = make_app()

    with TestClient(app) as client:
        assert all(task.running for task in app.state.background_tasks)
        assert client.get("/liveness").status_code == 200

    assert not any(task.running for task in app.state.background_tasks)
    assert app.state.http_client.is_closed
