"""
Analytics Orchestrator - views built from several composer calls

Strategy and dashboard treat their sub-views as one unit: any failure fails the
whole call. Comparison and batch isolate failures per account so one bad account
never cancels its siblings.
"""
import asyncio
import logging
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Union

from tracker.core.exceptions import AnalyticsError, AnalyticsFailure
from tracker.database.record_store import normalize_username
from tracker.services.analytics_service import AnalyticsService
from tracker.services.metric_primitives import percent_label, top_n

logger = logging.getLogger(__name__)


class AnalyticsMetric(str, Enum):
    """Composer selection for batch analytics"""
    ENGAGEMENT = "engagement"
    SUMMARY = "summary"
    CONTENT = "content"
    HASHTAGS = "hashtags"
    TIMING = "timing"


# Key each metric's view is stored under in a batch result
METRIC_RESULT_KEYS = {
    AnalyticsMetric.ENGAGEMENT: "engagement",
    AnalyticsMetric.SUMMARY: "summary",
    AnalyticsMetric.CONTENT: "content_performance",
    AnalyticsMetric.HASHTAGS: "hashtag_performance",
    AnalyticsMetric.TIMING: "posting_times",
}

DEFAULT_BATCH_METRICS = [AnalyticsMetric.ENGAGEMENT, AnalyticsMetric.SUMMARY]


def parse_metrics(metrics: Optional[Union[str, Iterable[str]]]) -> List[AnalyticsMetric]:
    """
    Turn "engagement,summary" (or a list of tags) into metrics, keeping order

    Raises ValueError on an unknown tag.
    """
    if not metrics:
        return list(DEFAULT_BATCH_METRICS)
    if isinstance(metrics, str):
        metrics = metrics.split(",")

    parsed: List[AnalyticsMetric] = []
    for tag in metrics:
        tag = tag.strip().lower()
        if not tag:
            continue
        try:
            metric = AnalyticsMetric(tag)
        except ValueError:
            allowed = ", ".join(m.value for m in AnalyticsMetric)
            raise ValueError(f"Unknown metric '{tag}'. Allowed metrics: {allowed}")
        if metric not in parsed:
            parsed.append(metric)
    return parsed or list(DEFAULT_BATCH_METRICS)


def parse_usernames(usernames: Iterable[str]) -> List[str]:
    """Normalize and de-duplicate usernames, keeping first-seen order"""
    seen: List[str] = []
    for username in usernames:
        name = normalize_username(username)
        if name and name not in seen:
            seen.append(name)
    return seen


def get_engagement_benchmark(rate: float) -> str:
    if rate > 3:
        return "Excellent (3%+)"
    if rate > 2:
        return "Good (2-3%)"
    if rate > 1:
        return "Average (1-2%)"
    return "Below Average (<1%)"


def identify_growth_opportunities(engagement: Dict[str, Any]) -> List[str]:
    opportunities = []
    if engagement.get("engagement_rate", 0) < 1:
        opportunities.append("Focus on increasing engagement rate through better content")
    opportunities.append("Use trending hashtags relevant to your content")
    opportunities.append("Engage more with your audience through comments")
    return opportunities


class AnalyticsOrchestrator:
    """Strategy, comparison, batch and dashboard views"""

    def __init__(self, analytics: AnalyticsService):
        self.analytics = analytics
        self.composers = {
            AnalyticsMetric.ENGAGEMENT: analytics.calculate_engagement_rate,
            AnalyticsMetric.SUMMARY: analytics.get_account_summary,
            AnalyticsMetric.CONTENT: analytics.analyze_content_performance,
            AnalyticsMetric.HASHTAGS: analytics.analyze_hashtag_performance,
            AnalyticsMetric.TIMING: analytics.find_optimal_posting_times,
        }

    # ------------------------------------------------------------------
    # Strategy
    # ------------------------------------------------------------------

    async def generate_content_strategy(self, username: str) -> Dict[str, Any]:
        """Engagement benchmark plus content recommendations and a static action plan"""
        username = normalize_username(username)
        try:
            logger.info(f"Generating content strategy for: {username}")
            engagement = await self.analytics.calculate_engagement_rate(username)
            content = await self.analytics.analyze_content_performance(username)

            best_media_type = content.get("analysis_summary", {}).get("best_media_type", "photo")
            best_hour = (content.get("posting_insights") or {}).get("best_posting_hour") or {}

            return {
                "username": username,
                "current_performance": {
                    "engagement_rate": engagement["engagement_rate"],
                    "benchmark": get_engagement_benchmark(engagement["engagement_rate"]),
                    "follower_count": engagement["follower_count"],
                    "avg_engagement_per_post": engagement["avg_engagement_per_post"]
                },
                "content_recommendations": {
                    "best_media_type": best_media_type,
                    "posting_frequency": "1-2 posts per day",
                    "optimal_posting_time": best_hour.get("time_display", "12:00")
                },
                "growth_opportunities": identify_growth_opportunities(engagement),
                "action_plan": [
                    {
                        "priority": "High",
                        "action": "Post consistently at optimal times",
                        "details": "Maintain regular posting schedule"
                    },
                    {
                        "priority": "Medium",
                        "action": "Optimize content mix",
                        "details": f"Focus on {best_media_type} content"
                    }
                ],
                "generated_at": self.analytics.clock()
            }

        except AnalyticsError:
            raise
        except Exception as e:
            logger.error(f"Content strategy generation failed for {username}: {e}")
            raise AnalyticsFailure("Content strategy generation", e) from e

    # ------------------------------------------------------------------
    # Comparison
    # ------------------------------------------------------------------

    async def _compare_one(self, username: str) -> Dict[str, Any]:
        try:
            engagement = await self.analytics.calculate_engagement_rate(username)
            summary = await self.analytics.get_account_summary(username)
            best_post = summary["performance"]["best_performing_post"]

            return {
                "username": username,
                "status": "success",
                "followers": summary["account_info"]["follower_count"],
                "total_posts": summary["content_stats"]["total_posts"],
                "engagement_rate": engagement["engagement_rate"],
                "avg_likes": engagement["avg_likes_per_post"],
                "avg_comments": engagement["avg_comments_per_post"],
                "verification_status": summary["account_info"]["verification_status"],
                "best_post_engagement": best_post["total_engagement"] if best_post else 0
            }
        except Exception as e:
            logger.warning(f"Comparison failed for {username}: {e}")
            return {
                "username": username,
                "status": "failed",
                "error": str(e)
            }

    async def compare_accounts(self, usernames: Iterable[str]) -> Dict[str, Any]:
        """Engagement and summary for each account, ranked three ways"""
        accounts = parse_usernames(usernames)
        logger.info(f"Comparing accounts: {', '.join(accounts)}")

        comparisons = await asyncio.gather(*(self._compare_one(username) for username in accounts))
        successful = [entry for entry in comparisons if entry["status"] == "success"]

        def ranked_by(field: str) -> List[Dict[str, Any]]:
            return top_n(((entry, entry[field]) for entry in successful), tie_breaker=lambda entry: entry["username"])

        return {
            "comparison_summary": {
                "accounts_compared": len(accounts),
                "successful_analyses": len(successful),
                "failed_analyses": len(comparisons) - len(successful)
            },
            "rankings": {
                "by_engagement_rate": ranked_by("engagement_rate"),
                "by_followers": ranked_by("followers"),
                "by_total_posts": ranked_by("total_posts")
            },
            "detailed_comparison": list(comparisons),
            "generated_at": self.analytics.clock()
        }

    # ------------------------------------------------------------------
    # Batch
    # ------------------------------------------------------------------

    async def _batch_one(self, username: str, metrics: List[AnalyticsMetric]) -> Dict[str, Any]:
        try:
            analytics = {}
            for metric in metrics:
                analytics[METRIC_RESULT_KEYS[metric]] = await self.composers[metric](username)
            return {"username": username, "status": "success", "analytics": analytics}
        except Exception as e:
            logger.warning(f"Batch analytics failed for {username}: {e}")
            return {"username": username, "status": "failed", "error": str(e)}

    async def batch_analytics(
        self,
        usernames: Iterable[str],
        metrics: Optional[Union[str, Iterable[str]]] = None
    ) -> Dict[str, Any]:
        """Selected composers for each account; failures recorded per account"""
        accounts = parse_usernames(usernames)
        requested = parse_metrics(metrics)
        logger.info(f"Batch analytics for: {', '.join(accounts)} (metrics: {', '.join(m.value for m in requested)})")

        outcomes = await asyncio.gather(*(self._batch_one(username, requested) for username in accounts))
        results = {outcome["username"]: outcome for outcome in outcomes}
        success_count = sum(1 for outcome in outcomes if outcome["status"] == "success")

        return {
            "summary": {
                "total_accounts": len(accounts),
                "successful": success_count,
                "failed": len(accounts) - success_count,
                "metrics_requested": [metric.value for metric in requested]
            },
            "results": results,
            "processed_at": self.analytics.clock()
        }

    # ------------------------------------------------------------------
    # Dashboard
    # ------------------------------------------------------------------

    async def dashboard_summary(self, username: str) -> Dict[str, Any]:
        """
        Five composers run concurrently and are flattened into one view

        The first failing composer fails the whole dashboard.
        """
        username = normalize_username(username)
        logger.info(f"Generating dashboard summary for: {username}")

        try:
            engagement, summary, content, hashtags, timing = await asyncio.gather(
                self.analytics.calculate_engagement_rate(username),
                self.analytics.get_account_summary(username),
                self.analytics.analyze_content_performance(username),
                self.analytics.analyze_hashtag_performance(username),
                self.analytics.find_optimal_posting_times(username)
            )

            rate = engagement["engagement_rate"]
            recent_activity = summary["content_stats"]["recent_posts_7days"]
            top_hashtags = hashtags.get("top_performing_hashtags") or []
            optimal_times = timing.get("optimal_times") or {}

            return {
                "username": username,
                "account_overview": {
                    "follower_count": summary["account_info"]["follower_count"],
                    "engagement_rate": percent_label(rate),
                    "total_posts": summary["content_stats"]["total_posts"],
                    "verification_status": summary["account_info"]["verification_status"]
                },
                "quick_stats": {
                    "avg_likes_per_post": engagement["avg_likes_per_post"],
                    "avg_comments_per_post": engagement["avg_comments_per_post"],
                    "best_performing_post": summary["performance"]["best_performing_post"],
                    "recent_activity": recent_activity
                },
                "insights": {
                    "best_media_type": content.get("analysis_summary", {}).get("best_media_type", "photo"),
                    "optimal_posting_hour": optimal_times.get("best_hour", {}).get("time_display", "N/A"),
                    "optimal_posting_day": optimal_times.get("best_day", {}).get("day_name", "N/A"),
                    "top_hashtag": top_hashtags[0]["hashtag"] if top_hashtags else "N/A"
                },
                "performance_indicators": {
                    "engagement_trend": "excellent" if rate > 2 else "good" if rate > 1 else "needs_improvement",
                    "content_consistency": "high" if recent_activity > 3 else "medium" if recent_activity > 1 else "low",
                    "hashtag_effectiveness": "high" if len(top_hashtags) > 5 else "medium"
                },
                "recommendations": content.get("recommendations", []),
                "last_updated": self.analytics.clock()
            }

        except AnalyticsError:
            raise
        except Exception as e:
            logger.error(f"Dashboard summary failed for {username}: {e}")
            raise AnalyticsFailure("Dashboard summary", e) from e
