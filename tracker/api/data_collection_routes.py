"""
Data Collection API Routes - trigger scrapes and inspect what has been stored
"""
from datetime import datetime, timezone
import logging

from fastapi import APIRouter, Depends, Path, Query

from tracker.api.dependencies import get_record_store, get_collection_service, raise_http_error
from tracker.core.exceptions import NotFoundException, CollectionException
from tracker.database.record_store import RecordStore, normalize_username
from tracker.services.data_collection_service import DataCollectionService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/data", tags=["Data Collection"])


@router.post("/collect")
async def trigger_collection(collector: DataCollectionService = Depends(get_collection_service)):
    """Collect every tracked account"""
    try:
        logger.info("Manual data collection triggered")
        results = await collector.collect_all()
        return {
            "success": True,
            "message": "Data collection completed",
            "results": [result.model_dump() for result in results],
            "timestamp": datetime.now(timezone.utc)
        }
    except Exception as e:
        logger.error(f"Data collection failed: {e}")
        raise CollectionException({"success": False, "message": "Data collection failed", "error": str(e)})


@router.post("/scrape/{username}")
async def scrape_account(
    username: str = Path(..., description="Instagram username"),
    collector: DataCollectionService = Depends(get_collection_service)
):
    try:
        logger.info(f"Scraping account: {username}")
        result = await collector.scrape_account(username)
        return {
            "success": True,
            "message": f"Successfully scraped {username}",
            "data": result.model_dump()
        }
    except ValueError as e:
        raise_http_error("Scraping failed", e)
    except Exception as e:
        logger.error(f"Scrape error for {username}: {e}")
        raise CollectionException({"success": False, "message": "Scraping failed", "error": str(e)})


@router.get("/stats")
async def collection_stats(collector: DataCollectionService = Depends(get_collection_service)):
    try:
        stats = await collector.get_collection_stats()
        return {"success": True, "message": "Collection statistics", "data": stats}
    except Exception as e:
        raise_http_error("Failed to get collection statistics", e)


@router.get("/accounts/{username}/posts")
async def account_posts(
    username: str = Path(..., description="Instagram username"),
    limit: int = Query(20, ge=1, le=100, description="Maximum posts to return"),
    store: RecordStore = Depends(get_record_store)
):
    """Most recent stored posts for an account"""
    try:
        username = normalize_username(username)
        account = await store.find_account_by_username(username)
        if not account:
            raise NotFoundException({
                "success": False,
                "message": "Failed to get posts",
                "error": f"Account not found: {username}"
            })

        posts = await store.find_posts_by_username(username, limit=limit)
        return {
            "success": True,
            "message": f"Recent posts for {username}",
            "count": len(posts),
            "data": [
                {
                    "post_id": post.post_id,
                    "caption": post.caption,
                    "hashtags": post.hashtags or [],
                    "like_count": post.like_count,
                    "comment_count": post.comment_count,
                    "engagement_rate": post.engagement_rate,
                    "media_type": post.media_type,
                    "post_url": post.post_url,
                    "post_timestamp": post.post_timestamp
                }
                for post in posts
            ]
        }
    except Exception as e:
        raise_http_error("Failed to get posts", e)
