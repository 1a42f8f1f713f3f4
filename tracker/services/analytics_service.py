"""
Analytics Service - Aggregation engine over stored accounts and posts

Each composer reads one snapshot of an account's posts from the record store and
returns a plain dict view. Nothing is written back.

Error policy:
- unknown account -> AccountNotFoundError
- account without posts -> descriptive empty result (EmptyDataError when
  ANALYTICS_REQUIRE_DATA is enabled)
- anything unexpected -> AnalyticsFailure chained to the original error

Ties in every ranking are broken by a stable secondary key: post_id for posts,
the hashtag text for hashtags, the hour / day number for time buckets and the
media type name for media types.
"""
import logging
from collections import defaultdict
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Any, Callable, Dict, List, Optional
from zoneinfo import ZoneInfo

from tracker.core.config import settings
from tracker.core.exceptions import AnalyticsError, AccountNotFoundError, EmptyDataError, AnalyticsFailure
from tracker.database.models import Account, Post
from tracker.database.record_store import normalize_username
from tracker.services.metric_primitives import (
    as_aware,
    average,
    engagement_rate,
    frequency_map,
    post_engagement,
    percent_label,
    preview,
    round_half_up,
    to_zone,
    top_n,
)

logger = logging.getLogger(__name__)

DAY_NAMES = ['Sunday', 'Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday']

# Assumed span of the stored history when estimating posting frequency
POSTING_FREQUENCY_DAYS = 30
HASHTAG_GUIDELINE = "Use 8-12 hashtags per post for optimal reach"
TREND_THRESHOLD_PERCENT = 10


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def resolve_zone(name: str) -> tzinfo:
    if not name or name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


def day_of_week(moment: datetime) -> int:
    """0 = Sunday .. 6 = Saturday"""
    return (moment.weekday() + 1) % 7


class AnalyticsService:
    """Composes metric primitives into named analytics views"""

    def __init__(
        self,
        store,
        clock: Optional[Callable[[], datetime]] = None,
        zone: Optional[tzinfo] = None,
        sample_size: Optional[int] = None,
        require_data: Optional[bool] = None
    ):
        self.store = store
        self.clock = clock or utc_now
        self.zone = zone or resolve_zone(settings.ANALYTICS_TIMEZONE)
        self.sample_size = sample_size or settings.ENGAGEMENT_SAMPLE_SIZE
        self.require_data = settings.ANALYTICS_REQUIRE_DATA if require_data is None else require_data

    # ------------------------------------------------------------------
    # Shared helpers
    # ------------------------------------------------------------------

    async def _get_account(self, username: str) -> Account:
        account = await self.store.find_account_by_username(username)
        if not account:
            raise AccountNotFoundError(username)
        return account

    def _empty_result(self, username: str, message: str, **extra) -> Dict[str, Any]:
        if self.require_data:
            raise EmptyDataError(username, message)
        logger.info(f"{username}: {message}")
        return {"username": username, "message": message, **extra, "generated_at": self.clock()}

    def _local(self, post: Post) -> datetime:
        return to_zone(post.post_timestamp, self.zone)

    # ------------------------------------------------------------------
    # Engagement rate
    # ------------------------------------------------------------------

    async def calculate_engagement_rate(self, username: str, sample_size: Optional[int] = None) -> Dict[str, Any]:
        """
        Engagement rate over the most recent posts

        Args:
            username: account username (case-insensitive)
            sample_size: number of most recent posts to use (default ENGAGEMENT_SAMPLE_SIZE)

        Returns:
            follower count, per-post averages and the engagement rate percentage
        """
        username = normalize_username(username)
        try:
            logger.info(f"Calculating engagement rate for: {username}")
            account = await self._get_account(username)
            posts = await self.store.find_posts_by_username(
                username, sort="post_timestamp", descending=True, limit=sample_size or self.sample_size
            )

            if not posts:
                return self._empty_result(
                    username, "No posts found",
                    follower_count=account.follower_count or 0,
                    posts_analyzed=0,
                    total_likes=0,
                    total_comments=0,
                    avg_likes_per_post=0,
                    avg_comments_per_post=0,
                    avg_engagement_per_post=0,
                    engagement_rate=0.0,
                    engagement_rate_percentage=percent_label(0)
                )

            likes = [post.like_count or 0 for post in posts]
            comments = [post.comment_count or 0 for post in posts]
            rate = engagement_rate(
                average(likes, rounding=None),
                average(comments, rounding=None),
                account.follower_count or 0
            )

            return {
                "username": username,
                "follower_count": account.follower_count or 0,
                "posts_analyzed": len(posts),
                "total_likes": sum(likes),
                "total_comments": sum(comments),
                "avg_likes_per_post": average(likes),
                "avg_comments_per_post": average(comments),
                "avg_engagement_per_post": average([post_engagement(post) for post in posts]),
                "engagement_rate": rate,
                "engagement_rate_percentage": percent_label(rate),
                "generated_at": self.clock()
            }

        except AnalyticsError:
            raise
        except Exception as e:
            logger.error(f"Engagement rate calculation failed for {username}: {e}")
            raise AnalyticsFailure("Engagement rate calculation", e) from e

    # ------------------------------------------------------------------
    # Account summary
    # ------------------------------------------------------------------

    async def get_account_summary(self, username: str) -> Dict[str, Any]:
        """Account info, content stats, best post and hashtag usage over the full history"""
        username = normalize_username(username)
        try:
            logger.info(f"Generating account summary for: {username}")
            account = await self._get_account(username)
            posts = await self.store.find_posts_by_username(username, sort="post_timestamp", descending=True)
            best_post = await self.store.find_post_by_username(username, sort_by_likes_desc=True)

            now = self.clock()
            recent_cutoff = now - timedelta(days=settings.RECENT_ACTIVITY_DAYS)
            recent_posts = [post for post in posts if to_zone(post.post_timestamp, timezone.utc) >= recent_cutoff]

            all_hashtags = [tag for post in posts for tag in (post.hashtags or [])]
            hashtag_freq = frequency_map(all_hashtags)
            top_hashtags = top_n(hashtag_freq.items(), 10, tie_breaker=lambda tag: tag)

            # Approximation: assumes the stored history spans about one month
            posting_frequency = (
                f"{len(posts) / POSTING_FREQUENCY_DAYS:.1f} posts per month" if posts else "No posts"
            )

            return {
                "account_info": {
                    "username": account.username,
                    "display_name": account.display_name,
                    "follower_count": account.follower_count or 0,
                    "following_count": account.following_count or 0,
                    "verification_status": bool(account.verification_status)
                },
                "content_stats": {
                    "total_posts": len(posts),
                    "recent_posts_7days": len(recent_posts),
                    "media_type_breakdown": frequency_map(post.media_type for post in posts),
                    "posting_frequency": posting_frequency
                },
                "performance": {
                    "best_performing_post": {
                        "post_id": best_post.post_id,
                        "caption": preview(best_post.caption, 100),
                        "like_count": best_post.like_count or 0,
                        "comment_count": best_post.comment_count or 0,
                        "total_engagement": post_engagement(best_post)
                    } if best_post else None,
                    "average_likes": average([post.like_count or 0 for post in posts]),
                    "average_comments": average([post.comment_count or 0 for post in posts])
                },
                "hashtag_analysis": {
                    "unique_hashtags_used": len(hashtag_freq),
                    "top_hashtags": [
                        {"hashtag": tag, "usage_count": hashtag_freq[tag]} for tag in top_hashtags
                    ],
                    "avg_hashtags_per_post": round_half_up(len(all_hashtags) / len(posts), 1) if posts else 0
                },
                "last_updated": now
            }

        except AnalyticsError:
            raise
        except Exception as e:
            logger.error(f"Account summary failed for {username}: {e}")
            raise AnalyticsFailure("Account summary", e) from e

    # ------------------------------------------------------------------
    # Content performance
    # ------------------------------------------------------------------

    async def analyze_content_performance(self, username: str) -> Dict[str, Any]:
        """Per media type performance, best posting hour and the top 5 posts"""
        username = normalize_username(username)
        try:
            logger.info(f"Analyzing content performance for: {username}")
            await self._get_account(username)
            posts = await self.store.find_posts_by_username(username, sort="post_timestamp", descending=True)

            if not posts:
                return self._empty_result(username, "No posts found for analysis")

            # Media type performance
            media_performance: Dict[str, Dict[str, Any]] = {}
            for post in posts:
                data = media_performance.setdefault(post.media_type, {
                    "count": 0,
                    "total_likes": 0,
                    "total_comments": 0,
                    "total_engagement": 0
                })
                data["count"] += 1
                data["total_likes"] += post.like_count or 0
                data["total_comments"] += post.comment_count or 0
                data["total_engagement"] += post_engagement(post)

            for data in media_performance.values():
                data["avg_likes"] = round_half_up(data["total_likes"] / data["count"])
                data["avg_comments"] = round_half_up(data["total_comments"] / data["count"])
                data["avg_engagement"] = round_half_up(data["total_engagement"] / data["count"])
                data["performance_score"] = data["avg_engagement"]  # simple, unweighted

            ranked_media = top_n(
                ((media_type, data["performance_score"]) for media_type, data in media_performance.items()),
                tie_breaker=lambda media_type: media_type
            )
            best_media_type = ranked_media[0] if ranked_media else "N/A"

            top_posts = top_n(
                ((post, post_engagement(post)) for post in posts), 5, tie_breaker=lambda post: post.post_id
            )

            hourly_performance = self._hourly_buckets(posts)
            ranked_hours = top_n(
                ((hour, data["avg_engagement"]) for hour, data in hourly_performance.items()),
                tie_breaker=lambda hour: hour
            )
            best_hour = ranked_hours[0] if ranked_hours else None

            return {
                "username": username,
                "analysis_summary": {
                    "total_posts_analyzed": len(posts),
                    "analysis_period": "All time",
                    "best_media_type": best_media_type
                },
                "media_type_performance": media_performance,
                "top_performing_posts": [
                    {
                        "post_id": post.post_id,
                        "caption_preview": preview(post.caption, 80),
                        "like_count": post.like_count or 0,
                        "comment_count": post.comment_count or 0,
                        "total_engagement": post_engagement(post),
                        "media_type": post.media_type,
                        "hashtags_count": len(post.hashtags or []),
                        "post_date": post.post_timestamp
                    }
                    for post in top_posts
                ],
                "posting_insights": {
                    "best_posting_hour": {
                        "hour": best_hour,
                        "time_display": f"{best_hour}:00",
                        "avg_engagement": hourly_performance[best_hour]["avg_engagement"],
                        "posts_count": hourly_performance[best_hour]["count"]
                    } if best_hour is not None else None,
                    "hourly_breakdown": hourly_performance
                },
                "recommendations": self.generate_recommendations(media_performance, best_media_type, best_hour, hourly_performance),
                "generated_at": self.clock()
            }

        except AnalyticsError:
            raise
        except Exception as e:
            logger.error(f"Content performance analysis failed for {username}: {e}")
            raise AnalyticsFailure("Content performance analysis", e) from e

    def _hourly_buckets(self, posts: List[Post]) -> Dict[int, Dict[str, int]]:
        buckets: Dict[int, Dict[str, int]] = {}
        for post in posts:
            data = buckets.setdefault(self._local(post).hour, {"count": 0, "total_engagement": 0})
            data["count"] += 1
            data["total_engagement"] += post_engagement(post)
        for data in buckets.values():
            data["avg_engagement"] = round_half_up(data["total_engagement"] / data["count"])
        return dict(sorted(buckets.items()))

    @staticmethod
    def generate_recommendations(
        media_performance: Dict[str, Dict[str, Any]],
        best_media_type: str,
        best_hour: Optional[int],
        hourly_performance: Dict[int, Dict[str, int]]
    ) -> List[Dict[str, str]]:
        recommendations = []

        if len(media_performance) > 1:
            recommendations.append({
                "type": "content_type",
                "recommendation": f"Focus more on {best_media_type} content",
                "reason": f"{best_media_type} content gets {media_performance[best_media_type]['avg_engagement']} avg engagement"
            })

        if best_hour is not None:
            recommendations.append({
                "type": "posting_time",
                "recommendation": f"Post around {best_hour}:00",
                "reason": f"Posts at {best_hour}:00 get {hourly_performance[best_hour]['avg_engagement']} avg engagement"
            })

        # Fixed guideline, not derived from data
        recommendations.append({
            "type": "hashtag_strategy",
            "recommendation": "Use 8-12 relevant hashtags per post",
            "reason": "Optimal hashtag count for maximum reach"
        })

        return recommendations

    # ------------------------------------------------------------------
    # Hashtag performance
    # ------------------------------------------------------------------

    async def analyze_hashtag_performance(self, username: str) -> Dict[str, Any]:
        """Average engagement per hashtag with top 10 and bottom 5 performers"""
        username = normalize_username(username)
        try:
            logger.info(f"Analyzing hashtag performance for: {username}")
            await self._get_account(username)
            posts = await self.store.find_posts_by_username(username, sort="post_timestamp", descending=True)

            if not posts:
                return self._empty_result(username, "No posts found for hashtag analysis")

            hashtag_performance: Dict[str, Dict[str, Any]] = {}
            for post in posts:
                engagement = post_engagement(post)
                for hashtag in post.hashtags or []:
                    data = hashtag_performance.setdefault(hashtag, {
                        "usage_count": 0,
                        "total_engagement": 0,
                        "total_likes": 0,
                        "total_comments": 0,
                        "posts_used": []
                    })
                    data["usage_count"] += 1
                    data["total_engagement"] += engagement
                    data["total_likes"] += post.like_count or 0
                    data["total_comments"] += post.comment_count or 0
                    data["posts_used"].append({"post_id": post.post_id, "engagement": engagement})

            hashtag_stats = {
                hashtag: {
                    "hashtag": hashtag,
                    "usage_count": data["usage_count"],
                    "avg_engagement": round_half_up(data["total_engagement"] / data["usage_count"]),
                    "avg_likes": round_half_up(data["total_likes"] / data["usage_count"]),
                    "avg_comments": round_half_up(data["total_comments"] / data["usage_count"]),
                    "performance_score": round_half_up(data["total_engagement"] / data["usage_count"]),
                    "usage_frequency": f"{round_half_up(data['usage_count'] / len(posts) * 100, 1)}%"
                }
                for hashtag, data in hashtag_performance.items()
            }

            ranked = top_n(
                ((hashtag, stats["performance_score"]) for hashtag, stats in hashtag_stats.items()),
                tie_breaker=lambda hashtag: hashtag
            )
            top_performers = [hashtag_stats[tag] for tag in ranked[:10]]
            # Bottom list never repeats a hashtag already listed as a top performer
            bottom_start = max(len(top_performers), len(ranked) - 5)
            bottom_performers = [hashtag_stats[tag] for tag in ranked[bottom_start:]]

            total_instances = sum(data["usage_count"] for data in hashtag_performance.values())

            return {
                "username": username,
                "analysis_summary": {
                    "total_unique_hashtags": len(hashtag_stats),
                    "total_hashtag_instances": total_instances,
                    "avg_hashtags_per_post": round_half_up(total_instances / len(posts), 1)
                },
                "top_performing_hashtags": top_performers,
                "underperforming_hashtags": bottom_performers,
                "recommendations": {
                    "keep_using": [stats["hashtag"] for stats in top_performers[:5]],
                    "consider_dropping": [stats["hashtag"] for stats in bottom_performers[:3]],
                    "suggested_frequency": HASHTAG_GUIDELINE
                },
                "generated_at": self.clock()
            }

        except AnalyticsError:
            raise
        except Exception as e:
            logger.error(f"Hashtag performance analysis failed for {username}: {e}")
            raise AnalyticsFailure("Hashtag performance analysis", e) from e

    # ------------------------------------------------------------------
    # Optimal posting times
    # ------------------------------------------------------------------

    async def find_optimal_posting_times(self, username: str) -> Dict[str, Any]:
        """Best hour of day and best day of week, each bucketed independently"""
        username = normalize_username(username)
        try:
            logger.info(f"Finding optimal posting times for: {username}")
            await self._get_account(username)
            posts = await self.store.find_posts_by_username(username, sort="post_timestamp", descending=True)

            if not posts:
                return self._empty_result(username, "No posts found for timing analysis")

            hourly = defaultdict(lambda: {"posts": 0, "total_engagement": 0})
            daily = defaultdict(lambda: {"posts": 0, "total_engagement": 0})

            for post in posts:
                local = self._local(post)
                engagement = post_engagement(post)

                hourly[local.hour]["posts"] += 1
                hourly[local.hour]["total_engagement"] += engagement

                day = day_of_week(local)
                daily[day]["posts"] += 1
                daily[day]["total_engagement"] += engagement

            hourly_stats = [
                {
                    "hour": hour,
                    "time_display": f"{hour}:00",
                    "posts_count": data["posts"],
                    "avg_engagement": round_half_up(data["total_engagement"] / data["posts"]),
                    "total_engagement": data["total_engagement"]
                }
                for hour, data in hourly.items()
            ]
            hourly_stats = top_n(
                ((stats, stats["avg_engagement"]) for stats in hourly_stats),
                tie_breaker=lambda stats: stats["hour"]
            )

            daily_stats = [
                {
                    "day": day,
                    "day_name": DAY_NAMES[day],
                    "posts_count": data["posts"],
                    "avg_engagement": round_half_up(data["total_engagement"] / data["posts"]),
                    "total_engagement": data["total_engagement"]
                }
                for day, data in daily.items()
            ]
            daily_stats = top_n(
                ((stats, stats["avg_engagement"]) for stats in daily_stats),
                tie_breaker=lambda stats: stats["day"]
            )

            timestamps = [as_aware(post.post_timestamp) for post in posts]

            return {
                "username": username,
                "analysis_summary": {
                    "total_posts_analyzed": len(posts),
                    "date_range": {
                        "earliest": min(timestamps),
                        "latest": max(timestamps)
                    }
                },
                "optimal_times": {
                    "best_hour": hourly_stats[0],
                    "best_day": daily_stats[0]
                },
                "detailed_breakdown": {
                    "hourly": hourly_stats,
                    "daily": daily_stats
                },
                "recommendations": [
                    f"Post around {hourly_stats[0]['time_display']} for maximum engagement",
                    f"{daily_stats[0]['day_name']} is your best posting day",
                    f"Avoid posting during {hourly_stats[-1]['time_display']} (lowest engagement)"
                ],
                "generated_at": self.clock()
            }

        except AnalyticsError:
            raise
        except Exception as e:
            logger.error(f"Optimal posting time analysis failed for {username}: {e}")
            raise AnalyticsFailure("Optimal posting time analysis", e) from e

    # ------------------------------------------------------------------
    # Growth trend
    # ------------------------------------------------------------------

    async def analyze_growth_trend(self, username: str, days: Optional[int] = None) -> Dict[str, Any]:
        """
        Weekly engagement trend over the last `days` days

        Only posts published inside the window are loaded. Weeks start on the
        preceding Sunday; the trend compares the first and last week.
        """
        username = normalize_username(username)
        days = days or settings.GROWTH_DEFAULT_DAYS
        try:
            logger.info(f"Analyzing growth trend for: {username} ({days} days)")
            await self._get_account(username)
            cutoff = self.clock() - timedelta(days=days)
            posts = await self.store.find_posts_by_username(
                username, sort="post_timestamp", descending=False, since=cutoff
            )

            if not posts:
                return self._empty_result(
                    username, f"No posts found in last {days} days",
                    analysis_period=f"{days} days",
                    total_posts_in_period=0,
                    trend_direction="no_data",
                    weekly_breakdown=[]
                )

            weekly_data: Dict[str, Dict[str, int]] = {}
            for post in posts:
                local_date = self._local(post).date()
                week_start = local_date - timedelta(days=day_of_week(local_date))
                data = weekly_data.setdefault(week_start.isoformat(), {
                    "posts_count": 0,
                    "total_likes": 0,
                    "total_comments": 0,
                    "total_engagement": 0
                })
                data["posts_count"] += 1
                data["total_likes"] += post.like_count or 0
                data["total_comments"] += post.comment_count or 0
                data["total_engagement"] += post_engagement(post)

            weekly_trend = [
                {
                    "week": week,
                    "posts_count": data["posts_count"],
                    "avg_likes": round_half_up(data["total_likes"] / data["posts_count"]),
                    "avg_comments": round_half_up(data["total_comments"] / data["posts_count"]),
                    "avg_engagement": round_half_up(data["total_engagement"] / data["posts_count"])
                }
                for week, data in sorted(weekly_data.items())
            ]

            return {
                "username": username,
                "analysis_period": f"{days} days",
                "total_posts_in_period": len(posts),
                "trend_direction": self.classify_trend(weekly_trend),
                "weekly_breakdown": weekly_trend,
                "summary": {
                    # max/min keep the earliest week on ties
                    "best_week": max(weekly_trend, key=lambda week: week["avg_engagement"]),
                    "worst_week": min(weekly_trend, key=lambda week: week["avg_engagement"]),
                    "average_posts_per_week": round_half_up(len(posts) / max(1, len(weekly_trend)), 1)
                },
                "generated_at": self.clock()
            }

        except AnalyticsError:
            raise
        except Exception as e:
            logger.error(f"Growth trend analysis failed for {username}: {e}")
            raise AnalyticsFailure("Growth trend analysis", e) from e

    @staticmethod
    def classify_trend(weekly_trend: List[Dict[str, Any]]) -> str:
        """growing / declining beyond +-10% between first and last week, else stable"""
        if len(weekly_trend) < 2:
            return "no_data"

        first_week = weekly_trend[0]["avg_engagement"]
        last_week = weekly_trend[-1]["avg_engagement"]
        if first_week == 0:
            return "growing" if last_week > 0 else "stable"

        change = (last_week - first_week) / first_week * 100
        if change > TREND_THRESHOLD_PERCENT:
            return "growing"
        if change < -TREND_THRESHOLD_PERCENT:
            return "declining"
        return "stable"
