"""
Tests for strategy, comparison, batch and dashboard views.
"""

import pytest

from tracker.core.exceptions import AccountNotFoundError, AnalyticsFailure
from tracker.services.analytics_orchestrator import (
    AnalyticsMetric,
    parse_metrics,
    parse_usernames,
    get_engagement_benchmark,
)


class TestParsing:
    """Metric and username parsing."""

    def test_default_metrics(self):
        assert parse_metrics(None) == [AnalyticsMetric.ENGAGEMENT, AnalyticsMetric.SUMMARY]
        assert parse_metrics(" , ") == [AnalyticsMetric.ENGAGEMENT, AnalyticsMetric.SUMMARY]

    def test_metrics_are_deduplicated_in_order(self):
        assert parse_metrics("timing, Engagement,timing") == [AnalyticsMetric.TIMING, AnalyticsMetric.ENGAGEMENT]

    def test_unknown_metric(self):
        with pytest.raises(ValueError, match="Unknown metric 'followers'"):
            parse_metrics("engagement,followers")

    def test_usernames_normalized(self):
        assert parse_usernames(["Alpha", " alpha ", "", "beta"]) == ["alpha", "beta"]

    @pytest.mark.parametrize("rate,label", [
        (3.5, "Excellent (3%+)"),
        (3.0, "Good (2-3%)"),
        (1.5, "Average (1-2%)"),
        (0.2, "Below Average (<1%)"),
    ])
    def test_benchmark(self, rate, label):
        assert get_engagement_benchmark(rate) == label


class TestContentStrategy:
    """Strategy view."""

    async def test_alpha_strategy(self, orchestrator):
        result = await orchestrator.generate_content_strategy("alpha")

        assert result["current_performance"]["benchmark"] == "Excellent (3%+)"
        assert result["current_performance"]["avg_engagement_per_post"] == 220
        assert result["content_recommendations"] == {
            "best_media_type": "photo",
            "posting_frequency": "1-2 posts per day",
            "optimal_posting_time": "12:00"
        }
        assert len(result["growth_opportunities"]) == 2
        assert [step["priority"] for step in result["action_plan"]] == ["High", "Medium"]

    async def test_low_engagement_gets_extra_opportunity(self, seeded_store, orchestrator):
        seeded_store.add_account("quiet", follower_count=100000)
        seeded_store.add_post("quiet", "q1", 10, 1)

        result = await orchestrator.generate_content_strategy("quiet")
        assert result["current_performance"]["benchmark"] == "Below Average (<1%)"
        assert result["growth_opportunities"][0] == "Focus on increasing engagement rate through better content"
        assert len(result["growth_opportunities"]) == 3

    async def test_unknown_account(self, orchestrator):
        with pytest.raises(AccountNotFoundError):
            await orchestrator.generate_content_strategy("ghost")


class TestCompareAccounts:
    """Comparison view."""

    async def test_known_and_nonexistent(self, orchestrator):
        """One failed entry for the missing account, one success, no exception."""
        result = await orchestrator.compare_accounts(["alpha", "nonexistent_account"])

        statuses = {entry["username"]: entry["status"] for entry in result["detailed_comparison"]}
        assert statuses == {"alpha": "success", "nonexistent_account": "failed"}
        assert result["comparison_summary"] == {
            "accounts_compared": 2,
            "successful_analyses": 1,
            "failed_analyses": 1
        }
        failed = next(e for e in result["detailed_comparison"] if e["status"] == "failed")
        assert failed["error"] == "Account not found: nonexistent_account"

    async def test_rankings(self, orchestrator):
        result = await orchestrator.compare_accounts(["beta", "alpha", "gamma"])
        rankings = result["rankings"]

        assert [e["username"] for e in rankings["by_engagement_rate"]] == ["alpha", "gamma", "beta"]
        assert [e["username"] for e in rankings["by_followers"]] == ["gamma", "alpha", "beta"]
        assert [e["username"] for e in rankings["by_total_posts"]] == ["gamma", "alpha", "beta"]

        alpha = rankings["by_engagement_rate"][0]
        assert alpha["engagement_rate"] == 22.0
        assert alpha["best_post_engagement"] == 330

    async def test_failure_is_isolated(self, seeded_store, orchestrator):
        """A store fault for one account does not cancel the others."""
        seeded_store.broken.add("gamma")
        result = await orchestrator.compare_accounts(["alpha", "gamma"])

        assert result["comparison_summary"]["successful_analyses"] == 1
        gamma = next(e for e in result["detailed_comparison"] if e["username"] == "gamma")
        assert gamma["status"] == "failed"
        assert "store unavailable" in gamma["error"]
        assert [e["username"] for e in result["rankings"]["by_followers"]] == ["alpha"]

    async def test_duplicates_compared_once(self, orchestrator):
        result = await orchestrator.compare_accounts(["alpha", "ALPHA"])
        assert result["comparison_summary"]["accounts_compared"] == 1


class TestBatchAnalytics:
    """Batch view."""

    async def test_selected_metrics(self, orchestrator):
        result = await orchestrator.batch_analytics(["alpha", "ghost"], "engagement,timing")

        assert result["summary"] == {
            "total_accounts": 2,
            "successful": 1,
            "failed": 1,
            "metrics_requested": ["engagement", "timing"]
        }
        alpha = result["results"]["alpha"]
        assert alpha["status"] == "success"
        assert set(alpha["analytics"].keys()) == {"engagement", "posting_times"}
        assert alpha["analytics"]["engagement"]["engagement_rate"] == 22.0
        assert result["results"]["ghost"] == {
            "username": "ghost",
            "status": "failed",
            "error": "Account not found: ghost"
        }

    async def test_default_metrics(self, orchestrator):
        result = await orchestrator.batch_analytics(["gamma"])
        assert set(result["results"]["gamma"]["analytics"].keys()) == {"engagement", "summary"}

    async def test_all_metrics(self, orchestrator):
        result = await orchestrator.batch_analytics(["alpha"], "engagement,summary,content,hashtags,timing")
        assert set(result["results"]["alpha"]["analytics"].keys()) == {
            "engagement", "summary", "content_performance", "hashtag_performance", "posting_times"
        }

    async def test_unknown_metric_rejected(self, orchestrator):
        with pytest.raises(ValueError):
            await orchestrator.batch_analytics(["alpha"], "engagement,reach")


class TestDashboard:
    """Dashboard view."""

    async def test_alpha_dashboard(self, orchestrator):
        result = await orchestrator.dashboard_summary("alpha")

        assert result["account_overview"]["engagement_rate"] == "22%"
        assert result["account_overview"]["total_posts"] == 3
        assert result["quick_stats"]["recent_activity"] == 2
        assert result["insights"] == {
            "best_media_type": "photo",
            "optimal_posting_hour": "12:00",
            "optimal_posting_day": "Tuesday",
            "top_hashtag": "sunset"
        }
        assert result["performance_indicators"] == {
            "engagement_trend": "excellent",
            "content_consistency": "medium",
            "hashtag_effectiveness": "medium"
        }
        assert len(result["recommendations"]) == 3

    async def test_account_without_posts(self, orchestrator):
        result = await orchestrator.dashboard_summary("beta")

        assert result["insights"]["top_hashtag"] == "N/A"
        assert result["insights"]["optimal_posting_hour"] == "N/A"
        assert result["performance_indicators"]["engagement_trend"] == "needs_improvement"
        assert result["performance_indicators"]["content_consistency"] == "low"

    async def test_any_failure_fails_dashboard(self, seeded_store, orchestrator):
        seeded_store.broken.add("alpha")
        with pytest.raises(AnalyticsFailure):
            await orchestrator.dashboard_summary("alpha")

    async def test_unknown_account(self, orchestrator):
        with pytest.raises(AccountNotFoundError):
            await orchestrator.dashboard_summary("ghost")
