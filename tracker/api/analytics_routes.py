"""
Analytics API Routes - read-only views over the collected accounts
"""
from datetime import datetime, timedelta, timezone
from typing import Optional
import logging

from fastapi import APIRouter, Depends, Path, Query

from tracker.api.dependencies import get_record_store, get_analytics_service, get_orchestrator, raise_http_error
from tracker.core.config import settings
from tracker.database.record_store import RecordStore
from tracker.services.analytics_orchestrator import AnalyticsOrchestrator, parse_usernames
from tracker.services.analytics_service import AnalyticsService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/analytics", tags=["Analytics"])

AVAILABLE_ANALYTICS = [
    "Engagement Rate Calculation",
    "Account Performance Summary",
    "Content Performance Analysis",
    "Growth Trend Analysis",
    "Hashtag Performance Analysis",
    "Optimal Posting Times",
    "Content Strategy Generation",
    "Account Comparison",
    "Batch Analytics",
    "Dashboard Summary"
]


def _accounts_param(accounts: Optional[str]):
    if not accounts:
        return settings.tracked_accounts
    return parse_usernames(accounts.split(","))


@router.get("/health")
async def analytics_health(store: RecordStore = Depends(get_record_store)):
    """Data availability and readiness of the analytics service"""
    try:
        account_count = await store.count_accounts()
        post_count = await store.count_posts()
        recent_posts = await store.count_posts_collected_since(datetime.now(timezone.utc) - timedelta(hours=24))
        sample_account = await store.top_account()

        return {
            "success": True,
            "status": "Analytics service is operational",
            "data_availability": {
                "total_accounts": account_count,
                "total_posts": post_count,
                "recent_posts_24h": recent_posts,
                "sample_account": sample_account.username if sample_account else "No accounts available"
            },
            "available_analytics": AVAILABLE_ANALYTICS,
            "service_status": "Ready" if account_count > 0 and post_count > 0 else "Waiting for data",
            "timestamp": datetime.now(timezone.utc)
        }
    except Exception as e:
        raise_http_error("Analytics service health check failed", e)


@router.get("/accounts")
async def available_accounts(
    limit: int = Query(20, ge=1, le=100, description="Maximum accounts to return"),
    store: RecordStore = Depends(get_record_store)
):
    """Accounts available for analytics, largest audience first"""
    try:
        accounts = await store.list_accounts(limit=limit)
        return {
            "success": True,
            "message": "Available accounts for analytics",
            "count": len(accounts),
            "accounts": [
                {
                    "username": account.username,
                    "display_name": account.display_name,
                    "follower_count": account.follower_count,
                    "verification_status": account.verification_status,
                    "has_data": True,
                    "last_updated": account.collection_date
                }
                for account in accounts
            ]
        }
    except Exception as e:
        raise_http_error("Failed to get available accounts", e)


@router.get("/engagement/{username}")
async def get_engagement_rate(
    username: str = Path(..., description="Instagram username"),
    analytics: AnalyticsService = Depends(get_analytics_service)
):
    try:
        result = await analytics.calculate_engagement_rate(username)
        return {"success": True, "message": f"Engagement analysis for {username}", "data": result}
    except Exception as e:
        raise_http_error("Engagement rate calculation failed", e)


@router.get("/summary/{username}")
async def get_account_summary(
    username: str = Path(..., description="Instagram username"),
    analytics: AnalyticsService = Depends(get_analytics_service)
):
    try:
        result = await analytics.get_account_summary(username)
        return {"success": True, "message": f"Complete account summary for {username}", "data": result}
    except Exception as e:
        raise_http_error("Account summary generation failed", e)


@router.get("/performance/{username}")
async def get_content_performance(
    username: str = Path(..., description="Instagram username"),
    analytics: AnalyticsService = Depends(get_analytics_service)
):
    try:
        result = await analytics.analyze_content_performance(username)
        return {"success": True, "message": f"Content performance analysis for {username}", "data": result}
    except Exception as e:
        raise_http_error("Content performance analysis failed", e)


@router.get("/growth/{username}")
async def get_growth_trend(
    username: str = Path(..., description="Instagram username"),
    days: Optional[int] = Query(None, ge=1, le=365, description="Window size in days"),
    analytics: AnalyticsService = Depends(get_analytics_service)
):
    try:
        result = await analytics.analyze_growth_trend(username, days)
        return {"success": True, "message": f"Growth trend analysis for {username}", "data": result}
    except Exception as e:
        raise_http_error("Growth trend analysis failed", e)


@router.get("/hashtags/{username}")
async def get_hashtag_performance(
    username: str = Path(..., description="Instagram username"),
    analytics: AnalyticsService = Depends(get_analytics_service)
):
    try:
        result = await analytics.analyze_hashtag_performance(username)
        return {"success": True, "message": f"Hashtag performance analysis for {username}", "data": result}
    except Exception as e:
        raise_http_error("Hashtag performance analysis failed", e)


@router.get("/timing/{username}")
async def get_optimal_posting_times(
    username: str = Path(..., description="Instagram username"),
    analytics: AnalyticsService = Depends(get_analytics_service)
):
    try:
        result = await analytics.find_optimal_posting_times(username)
        return {"success": True, "message": f"Optimal posting times analysis for {username}", "data": result}
    except Exception as e:
        raise_http_error("Optimal posting times analysis failed", e)


@router.get("/strategy/{username}")
async def get_content_strategy(
    username: str = Path(..., description="Instagram username"),
    orchestrator: AnalyticsOrchestrator = Depends(get_orchestrator)
):
    try:
        result = await orchestrator.generate_content_strategy(username)
        return {"success": True, "message": f"Complete content strategy for {username}", "data": result}
    except Exception as e:
        raise_http_error("Content strategy generation failed", e)


@router.get("/compare")
async def compare_accounts(
    accounts: Optional[str] = Query(None, description="Comma separated usernames"),
    orchestrator: AnalyticsOrchestrator = Depends(get_orchestrator)
):
    """Compare accounts; defaults to the tracked accounts"""
    try:
        usernames = _accounts_param(accounts)
        logger.info(f"Comparing accounts: {', '.join(usernames)}")
        result = await orchestrator.compare_accounts(usernames)
        return {
            "success": True,
            "message": "Account comparison analysis",
            "accounts_compared": usernames,
            "data": result
        }
    except Exception as e:
        raise_http_error("Account comparison failed", e)


@router.get("/batch")
async def batch_analytics(
    accounts: Optional[str] = Query(None, description="Comma separated usernames"),
    metrics: Optional[str] = Query(None, description="Comma separated metrics: engagement,summary,content,hashtags,timing"),
    orchestrator: AnalyticsOrchestrator = Depends(get_orchestrator)
):
    try:
        result = await orchestrator.batch_analytics(_accounts_param(accounts), metrics)
        return {"success": True, "message": "Batch analytics completed", "data": result}
    except Exception as e:
        raise_http_error("Batch analytics processing failed", e)


@router.get("/dashboard/{username}")
async def get_dashboard_summary(
    username: str = Path(..., description="Instagram username"),
    orchestrator: AnalyticsOrchestrator = Depends(get_orchestrator)
):
    try:
        result = await orchestrator.dashboard_summary(username)
        return {"success": True, "message": f"Complete dashboard summary for {username}", "data": result}
    except Exception as e:
        raise_http_error("Dashboard summary generation failed", e)
