"""
Apify Instagram Client - post collection through the apify/instagram-scraper actor

The apify_client SDK is synchronous; each actor run is pushed to the default
executor so the event loop stays free while the run finishes.
"""
import asyncio
import logging
from typing import Dict, Any, List, Optional

from apify_client import ApifyClient
from pydantic import ValidationError
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
    after_log
)

from tracker.core.config import settings
from tracker.models.instagram import RawPost
from tracker.utils.data_validation import validate_post_data

logger = logging.getLogger(__name__)


class ApifyAPIError(Exception):
    """Base exception for Apify actor failures"""
    def __init__(self, message: str, status_code: Optional[int] = None, response_data: Optional[Dict] = None):
        super().__init__(message)
        self.status_code = status_code
        self.response_data = response_data


class ApifyInstabilityError(ApifyAPIError):
    """Temporary actor failure that should be retried"""
    pass


class ApifyBlockedError(ApifyAPIError):
    """Instagram refused the scrape (actor answered 'no_items'); not retried"""
    pass


class ApifyInstagramClient:
    """Runs the Instagram scraper actor for one username at a time"""

    def __init__(
        self,
        api_token: str,
        actor_id: Optional[str] = None,
        timeout_secs: Optional[int] = None
    ):
        self.api_token = api_token
        self.actor_id = actor_id or settings.APIFY_ACTOR_ID
        self.timeout_secs = timeout_secs or settings.APIFY_TIMEOUT_SECS
        self.client: Optional[ApifyClient] = None

    async def __aenter__(self):
        self.client = ApifyClient(self.api_token)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.client = None

    def _call_actor(self, run_input: Dict[str, Any]) -> List[Dict[str, Any]]:
        run = self.client.actor(self.actor_id).call(
            run_input=run_input,
            timeout_secs=self.timeout_secs
        )
        if run is None:
            raise ApifyInstabilityError("Actor run returned no run information")

        if run.get("status") != "SUCCEEDED":
            raise ApifyInstabilityError(
                f"Actor run failed with status: {run.get('status')}",
                response_data={"run_id": run.get("id")}
            )

        dataset_id = run.get("defaultDatasetId")
        if not dataset_id:
            return []
        return list(self.client.dataset(dataset_id).iterate_items())

    @retry(
        stop=stop_after_attempt(settings.APIFY_MAX_RETRIES),
        wait=wait_exponential(multiplier=1.5, min=2, max=15),
        retry=retry_if_exception_type((ApifyInstabilityError, ConnectionError, TimeoutError)),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        after=after_log(logger, logging.WARNING),
        reraise=True
    )
    async def _run_scraper_with_retry(self, run_input: Dict[str, Any]) -> List[Dict[str, Any]]:
        if not self.client:
            raise ApifyAPIError("Client not initialized - use async context manager")

        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._call_actor, run_input)

    async def fetch_posts(self, username: str) -> List[RawPost]:
        """
        Scrape recent posts for a username

        Raises:
            ApifyBlockedError: the actor reported 'no_items'
            ApifyInstabilityError: every retry failed
        """
        logger.info(f"[APIFY] Starting Instagram scrape for {username}")
        items = await self._run_scraper_with_retry({"usernames": [username]})

        if items and items[0].get("error") == "no_items":
            raise ApifyBlockedError(
                f"Instagram blocked scraping for {username}",
                response_data=items[0]
            )

        posts: List[RawPost] = []
        for item in items:
            is_valid, errors = validate_post_data(item)
            if not is_valid:
                logger.warning(f"[APIFY] Skipping invalid item for {username}: {', '.join(errors)}")
                continue
            try:
                posts.append(RawPost.model_validate(item))
            except ValidationError as e:
                logger.warning(f"[APIFY] Skipping unparsable item {item.get('id')} for {username}: {e}")

        logger.info(f"[APIFY] {len(posts)} valid posts for {username} ({len(items)} items returned)")
        return posts
