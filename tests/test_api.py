"""
Tests for the HTTP routes, served in-process through httpx.
"""

import pytest

API = "/api/v1"


class TestAnalyticsRoutes:
    """GET /api/v1/analytics/*"""

    async def test_engagement(self, api_client):
        response = await api_client.get(f"{API}/analytics/engagement/alpha")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Engagement analysis for alpha"
        assert body["data"]["engagement_rate"] == 22.0

    async def test_unknown_account_is_404(self, api_client):
        response = await api_client.get(f"{API}/analytics/summary/ghost")

        assert response.status_code == 404
        assert response.json() == {
            "success": False,
            "message": "Account summary generation failed",
            "error": "Account not found: ghost"
        }

    async def test_store_failure_is_500(self, api_client, seeded_store):
        seeded_store.broken.add("alpha")
        response = await api_client.get(f"{API}/analytics/hashtags/alpha")

        assert response.status_code == 500
        assert response.json()["success"] is False
        assert "store unavailable" in response.json()["error"]

    @pytest.mark.parametrize("path", [
        "performance/alpha",
        "hashtags/alpha",
        "timing/alpha",
        "strategy/alpha",
        "dashboard/alpha",
        "growth/alpha?days=30",
    ])
    async def test_single_account_views(self, api_client, path):
        response = await api_client.get(f"{API}/analytics/{path}")

        assert response.status_code == 200
        assert response.json()["data"]["username"] == "alpha"

    async def test_growth_days_validated(self, api_client):
        response = await api_client.get(f"{API}/analytics/growth/alpha?days=0")

        assert response.status_code == 422
        assert response.json()["success"] is False

    async def test_compare(self, api_client):
        response = await api_client.get(f"{API}/analytics/compare?accounts=alpha,ghost")

        assert response.status_code == 200
        body = response.json()
        assert body["accounts_compared"] == ["alpha", "ghost"]
        assert body["data"]["comparison_summary"]["failed_analyses"] == 1

    async def test_batch(self, api_client):
        response = await api_client.get(f"{API}/analytics/batch?accounts=alpha,gamma&metrics=hashtags")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["summary"]["successful"] == 2
        assert "hashtag_performance" in data["results"]["gamma"]["analytics"]

    async def test_batch_unknown_metric_is_422(self, api_client):
        response = await api_client.get(f"{API}/analytics/batch?accounts=alpha&metrics=reach")

        assert response.status_code == 422
        assert response.json()["message"] == "Batch analytics processing failed"

    async def test_health(self, api_client):
        response = await api_client.get(f"{API}/analytics/health")

        body = response.json()
        assert body["service_status"] == "Ready"
        assert body["data_availability"]["total_accounts"] == 3
        assert body["data_availability"]["total_posts"] == 7
        assert body["data_availability"]["sample_account"] == "gamma"

    async def test_accounts(self, api_client):
        response = await api_client.get(f"{API}/analytics/accounts")

        body = response.json()
        assert body["count"] == 3
        assert [a["username"] for a in body["accounts"]] == ["gamma", "alpha", "beta"]


class TestDataCollectionRoutes:
    """/api/v1/data/*"""

    async def test_scrape_then_read_posts(self, api_client):
        response = await api_client.post(f"{API}/data/scrape/newbie")

        assert response.status_code == 200
        assert response.json()["data"]["type"] == "REALISTIC_MOCK"
        assert response.json()["data"]["count"] == 8

        response = await api_client.get(f"{API}/data/accounts/newbie/posts?limit=3")
        body = response.json()
        assert body["count"] == 3
        assert all(post["post_id"].startswith("newbie_") for post in body["data"])

    async def test_posts_for_unknown_account(self, api_client):
        response = await api_client.get(f"{API}/data/accounts/ghost/posts")

        assert response.status_code == 404
        assert response.json()["error"] == "Account not found: ghost"

    async def test_collect_all(self, api_client, monkeypatch):
        from tracker.core.config import settings
        monkeypatch.setattr(settings, "COLLECTION_DELAY_SECONDS", 0)

        response = await api_client.post(f"{API}/data/collect")

        assert response.status_code == 200
        results = response.json()["results"]
        assert [r["account"] for r in results] == settings.tracked_accounts
        assert all(r["success"] for r in results)

    async def test_stats(self, api_client):
        response = await api_client.get(f"{API}/data/stats")

        data = response.json()["data"]
        assert data["total_accounts"] == 3
        assert data["total_posts"] == 7
