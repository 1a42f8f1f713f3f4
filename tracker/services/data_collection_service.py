"""
Data Collection Service - fills the record store from Apify

When Instagram refuses the scrape, returns nothing, or the actor fails, the
account is populated with realistic synthetic data instead so the analytics
views always have something to work on. Results report which path was taken.
"""
import asyncio
import logging
import random
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional

from tracker.core.config import settings
from tracker.database.record_store import RecordStore, normalize_username
from tracker.models.instagram import RawPost, CollectionResult
from tracker.scrapers.apify_instagram_client import ApifyInstagramClient, ApifyBlockedError
from tracker.services.metric_primitives import as_aware, engagement_rate
from tracker.utils.data_validation import clean_text, extract_hashtags, validate_account_data

logger = logging.getLogger(__name__)

REAL = "REAL"
REALISTIC_MOCK = "REALISTIC_MOCK"

# Public figures tracked by default; synthetic data for them uses their real scale
CELEBRITY_STATS = {
    "cristiano": {
        "followers": 620000000,
        "following": 560,
        "display_name": "Cristiano Ronaldo",
        "bio": "Footballer, Father, Entrepreneur 🇵🇹",
        "verified": True
    },
    "therock": {
        "followers": 395000000,
        "following": 750,
        "display_name": "The Rock",
        "bio": "Actor, Producer, Entrepreneur 💪",
        "verified": True
    },
    "selenagomez": {
        "followers": 425000000,
        "following": 300,
        "display_name": "Selena Gomez",
        "bio": "Artist, Actress, Mental Health Advocate 💕",
        "verified": True
    }
}

CAPTION_TEMPLATES = [
    "Great day training! 💪 #{username} #motivation #fitness",
    "Behind the scenes 📸 #work #blessed #grateful",
    "Amazing sunset today 🌅 #nature #beautiful #peaceful",
    "Time with family ❤️ #love #family #blessed",
    "New project coming soon! 🔥 #excited #comingsoon #staytuned",
    "Thank you for all the support 🙏 #grateful #fans #love",
    "Workout complete ✅ #fitness #health #dedication",
    "Beautiful morning 🌞 #goodmorning #positive #energy"
]


def determine_media_type(post: RawPost) -> str:
    if post.video_url or post.type == "Video":
        return "video"
    if post.type == "Sidecar" or len(post.child_posts) > 1:
        return "carousel"
    if post.type == "GraphVideo":
        return "reel"
    return "photo"


def build_post_url(post: RawPost) -> str:
    return post.url or f"https://instagram.com/p/{post.short_code or post.id}"


def account_fields_from_post(username: str, post: RawPost, collected_at: datetime) -> Dict[str, Any]:
    """Account columns taken from the owner data attached to a scraped post"""
    return {
        "username": username,
        "display_name": post.owner_full_name or username,
        "biography": clean_text(post.owner_biography or ""),
        "profile_pic_url": post.owner_profile_pic_url,
        "follower_count": post.owner_followers_count,
        "following_count": post.owner_following_count,
        "posts_count": post.owner_media_count,
        "verification_status": post.owner_is_verified,
        "collection_date": collected_at
    }


def post_fields_from_raw(post: RawPost, follower_count: int, collected_at: datetime) -> Dict[str, Any]:
    return {
        "account_username": normalize_username(post.owner_username),
        "caption": post.caption,
        "hashtags": extract_hashtags(post.caption),
        "like_count": post.likes_count,
        "comment_count": post.comments_count,
        "engagement_rate": engagement_rate(post.likes_count, post.comments_count, follower_count),
        "media_type": determine_media_type(post),
        "media_url": post.display_url or post.url,
        "post_url": build_post_url(post),
        "post_timestamp": as_aware(post.timestamp).astimezone(timezone.utc),
        "collection_date": collected_at
    }


class DataCollectionService:
    """Scrapes tracked accounts and upserts them into the record store"""

    def __init__(
        self,
        store: RecordStore,
        client_factory: Optional[Callable[[], Any]] = None,
        rng: Optional[random.Random] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.store = store
        self.client_factory = client_factory or self._default_client_factory
        self.rng = rng or random.Random()
        self.sleep = sleep or asyncio.sleep
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    @staticmethod
    def _default_client_factory() -> Optional[ApifyInstagramClient]:
        if not settings.APIFY_API_TOKEN:
            return None
        return ApifyInstagramClient(settings.APIFY_API_TOKEN)

    async def scrape_account(self, username: str) -> CollectionResult:
        """Collect one account, falling back to synthetic data when Apify cannot deliver"""
        username = normalize_username(username)
        if not username:
            raise ValueError("Username is required")

        client = self.client_factory()
        if client is None:
            logger.warning(f"APIFY_API_TOKEN not configured, using realistic mock data for {username}")
            return await self.create_realistic_mock_data(username)

        try:
            logger.info(f"Attempting real scrape: {username}")
            async with client:
                raw_posts = await client.fetch_posts(username)
        except ApifyBlockedError:
            logger.warning(f"Instagram blocked scraping for {username}, using realistic mock data")
            return await self.create_realistic_mock_data(username)
        except Exception as e:
            logger.error(f"Apify error for {username}, using realistic mock data: {e}")
            return await self.create_realistic_mock_data(username)

        if not raw_posts:
            logger.info(f"No data from Instagram, creating realistic mock for {username}")
            return await self.create_realistic_mock_data(username)

        count = await self.save_posts(username, raw_posts)
        logger.info(f"REAL DATA: {count} posts saved for {username}")
        return CollectionResult(account=username, success=True, count=count, type=REAL)

    async def save_posts(self, username: str, raw_posts: List[RawPost]) -> int:
        """Upsert the owning account, then every post; returns the number of posts stored"""
        collected_at = self.clock()
        account_fields = account_fields_from_post(username, raw_posts[0], collected_at)

        is_valid, errors = validate_account_data(account_fields)
        if not is_valid:
            raise ValueError(f"Invalid account data for {username}: {', '.join(errors)}")

        account = await self.store.upsert_account(username, account_fields)
        for raw_post in raw_posts:
            await self.store.upsert_post(
                raw_post.id,
                post_fields_from_raw(raw_post, account.follower_count, collected_at)
            )
        logger.info(f"Saved account: {username} ({account.follower_count} followers, {len(raw_posts)} posts)")
        return len(raw_posts)

    # ------------------------------------------------------------------
    # Synthetic fallback
    # ------------------------------------------------------------------

    def get_realistic_stats(self, username: str) -> Dict[str, Any]:
        known = CELEBRITY_STATS.get(username.lower())
        if known:
            return dict(known)
        return {
            "followers": self.rng.randint(1000, 50999),
            "following": self.rng.randint(100, 599),
            "display_name": username,
            "bio": f"{username}'s Instagram profile",
            "verified": False
        }

    @staticmethod
    def generate_realistic_caption(username: str, index: int) -> str:
        return CAPTION_TEMPLATES[index % len(CAPTION_TEMPLATES)].format(username=username)

    def generate_mock_posts(self, username: str, count: Optional[int] = None) -> List[RawPost]:
        count = count or settings.FALLBACK_POSTS_COUNT
        stats = self.get_realistic_stats(username)
        now = self.clock()
        stamp = int(now.timestamp() * 1000)
        followers = stats["followers"]

        posts = []
        for i in range(count):
            posts.append(RawPost(
                id=f"{username}_{stamp}_{i}",
                owner_username=username,
                caption=self.generate_realistic_caption(username, i),
                likes_count=int(followers * (self.rng.random() * 0.05 + 0.01)),
                comments_count=int(followers * (self.rng.random() * 0.005 + 0.001)),
                display_url=f"https://picsum.photos/600/600?random={username}{i}",
                url=f"https://instagram.com/p/{username}_mock_{i}",
                timestamp=now - timedelta(days=7 * i * self.rng.random() / count),
                type="Video" if i % 4 == 0 else "GraphImage",
                owner_full_name=stats["display_name"],
                owner_biography=stats["bio"],
                owner_followers_count=followers,
                owner_following_count=stats["following"],
                owner_is_verified=stats["verified"]
            ))
        return posts

    async def create_realistic_mock_data(self, username: str) -> CollectionResult:
        logger.info(f"Creating realistic data for: {username}")
        count = await self.save_posts(username, self.generate_mock_posts(username))
        return CollectionResult(
            account=username,
            success=True,
            count=count,
            type=REALISTIC_MOCK,
            message="Instagram data access restricted, using realistic simulation"
        )

    # ------------------------------------------------------------------
    # Bulk collection
    # ------------------------------------------------------------------

    async def collect_all(self, usernames: Optional[List[str]] = None) -> List[CollectionResult]:
        """Scrape accounts one after another with a pause between them"""
        accounts = usernames or settings.tracked_accounts
        results: List[CollectionResult] = []
        logger.info(f"Data collection for {len(accounts)} accounts")

        for index, account in enumerate(accounts):
            if index > 0 and settings.COLLECTION_DELAY_SECONDS > 0:
                await self.sleep(settings.COLLECTION_DELAY_SECONDS)
            try:
                logger.info(f"Processing account: {account}")
                results.append(await self.scrape_account(account))
            except Exception as e:
                logger.error(f"Failed to scrape {account}: {e}")
                results.append(CollectionResult(account=normalize_username(account), success=False, error=str(e)))

        return results

    async def get_collection_stats(self) -> Dict[str, Any]:
        now = self.clock()
        top_accounts = await self.store.list_accounts(limit=5)
        return {
            "total_accounts": await self.store.count_accounts(),
            "total_posts": await self.store.count_posts(),
            "posts_last_24h": await self.store.count_posts_collected_since(now - timedelta(hours=24)),
            "top_accounts": [
                {
                    "username": account.username,
                    "display_name": account.display_name,
                    "follower_count": account.follower_count,
                    "verification_status": account.verification_status
                }
                for account in top_accounts
            ],
            "last_updated": now
        }
