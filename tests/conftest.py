"""
Pytest fixtures for the account tracker.

Provides:
- In-memory record store double holding transient ORM objects
- Fixed clock (Wednesday 2024-06-12 12:00 UTC)
- Analytics service / orchestrator wired to the double
- aiosqlite-backed RecordStore for store tests
- httpx AsyncClient over the ASGI app with dependency overrides
"""

import random
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import httpx
import pytest
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession

from tracker.database.models import Base, Account, Post
from tracker.database.record_store import RecordStore, normalize_username, ACCOUNT_FIELDS, POST_FIELDS, POST_SORT_FIELDS
from tracker.services.analytics_orchestrator import AnalyticsOrchestrator
from tracker.services.analytics_service import AnalyticsService
from tracker.services.data_collection_service import DataCollectionService
from tracker.services.metric_primitives import as_aware

FIXED_NOW = datetime(2024, 6, 12, 12, 0, tzinfo=timezone.utc)


# =============================================================================
# RECORD STORE DOUBLE
# =============================================================================

class InMemoryRecordStore:
    """Dict-backed stand-in for RecordStore with the same ordering rules"""

    def __init__(self):
        self.accounts: Dict[str, Account] = {}
        self.posts: Dict[str, Post] = {}
        self.broken: set = set()  # usernames whose reads and writes raise

    def _check(self, username: str):
        if normalize_username(username) in self.broken:
            raise RuntimeError("store unavailable")

    # Seeding helpers --------------------------------------------------------

    def add_account(self, username: str, follower_count: int = 1000, **fields) -> Account:
        values = {
            "display_name": username.title(),
            "biography": "",
            "following_count": 100,
            "posts_count": 0,
            "verification_status": False,
            "account_type": "personal",
            "collection_date": FIXED_NOW,
            "last_updated": FIXED_NOW,
        }
        values.update(fields)
        account = Account(username=normalize_username(username), follower_count=follower_count, **values)
        self.accounts[account.username] = account
        return account

    def add_post(
        self,
        username: str,
        post_id: str,
        like_count: int = 0,
        comment_count: int = 0,
        post_timestamp: Optional[datetime] = None,
        media_type: str = "photo",
        hashtags: Optional[List[str]] = None,
        caption: str = ""
    ) -> Post:
        post = Post(
            post_id=post_id,
            account_username=normalize_username(username),
            caption=caption,
            hashtags=list(hashtags or []),
            like_count=like_count,
            comment_count=comment_count,
            media_type=media_type,
            post_timestamp=post_timestamp or FIXED_NOW - timedelta(days=1),
            collection_date=FIXED_NOW,
        )
        self.posts[post_id] = post
        return post

    # RecordStore contract ---------------------------------------------------

    async def find_account_by_username(self, username: str) -> Optional[Account]:
        self._check(username)
        return self.accounts.get(normalize_username(username))

    async def list_accounts(self, limit: int = 20) -> List[Account]:
        accounts = sorted(self.accounts.values(), key=lambda a: a.username)
        accounts.sort(key=lambda a: a.follower_count or 0, reverse=True)
        return accounts[:limit]

    async def top_account(self) -> Optional[Account]:
        accounts = await self.list_accounts(limit=1)
        return accounts[0] if accounts else None

    async def upsert_account(self, username: str, fields: Dict[str, Any]) -> Account:
        self._check(username)
        key = normalize_username(username)
        values = {k: v for k, v in fields.items() if k in ACCOUNT_FIELDS}
        account = self.accounts.get(key)
        if account:
            for name, value in values.items():
                setattr(account, name, value)
        else:
            account = Account(username=key, **values)
            self.accounts[key] = account
        return account

    async def find_posts_by_username(
        self,
        username: str,
        sort: str = "post_timestamp",
        descending: bool = True,
        limit: Optional[int] = None,
        since: Optional[datetime] = None
    ) -> List[Post]:
        if sort not in POST_SORT_FIELDS:
            raise ValueError(f"Unsupported post sort field: {sort}")
        self._check(username)
        key = normalize_username(username)
        posts = [p for p in self.posts.values() if p.account_username == key]
        if since is not None:
            posts = [p for p in posts if as_aware(p.post_timestamp) >= since]
        posts.sort(key=lambda p: p.post_id)
        posts.sort(key=lambda p: getattr(p, sort), reverse=descending)
        return posts if limit is None else posts[:limit]

    async def find_post_by_username(self, username: str, sort_by_likes_desc: bool = True) -> Optional[Post]:
        posts = await self.find_posts_by_username(
            username, sort="like_count" if sort_by_likes_desc else "post_timestamp", limit=1
        )
        return posts[0] if posts else None

    async def upsert_post(self, post_id: str, fields: Dict[str, Any]) -> Post:
        values = {k: v for k, v in fields.items() if k in POST_FIELDS}
        post = self.posts.get(post_id)
        if post:
            for name, value in values.items():
                setattr(post, name, value)
        else:
            post = Post(post_id=post_id, **values)
            self.posts[post_id] = post
        return post

    async def count_accounts(self) -> int:
        return len(self.accounts)

    async def count_posts(self, username: Optional[str] = None) -> int:
        if username is None:
            return len(self.posts)
        key = normalize_username(username)
        return sum(1 for p in self.posts.values() if p.account_username == key)

    async def count_posts_collected_since(self, since: datetime) -> int:
        return sum(
            1 for p in self.posts.values()
            if p.collection_date is not None and as_aware(p.collection_date) >= since
        )


# =============================================================================
# ENGINE FIXTURES
# =============================================================================

@pytest.fixture
def fixed_clock():
    """Clock pinned to FIXED_NOW."""
    return lambda: FIXED_NOW


@pytest.fixture
def store():
    """Empty in-memory record store."""
    return InMemoryRecordStore()


@pytest.fixture
def seeded_store(store):
    """
    alpha: 3 posts, likes 100/200/300, comments 10/20/30, 1000 followers
    beta: account without posts
    gamma: photo-only account
    """
    store.add_account("alpha", follower_count=1000, verification_status=True)
    store.add_post("alpha", "a1", 100, 10, FIXED_NOW - timedelta(days=10, hours=3), "video",
                   ["travel", "food"], "Lisbon trip #travel #food")
    store.add_post("alpha", "a2", 200, 20, FIXED_NOW - timedelta(days=2, hours=2), "photo",
                   ["food"], "Dinner #food")
    store.add_post("alpha", "a3", 300, 30, FIXED_NOW - timedelta(days=1), "photo",
                   ["sunset", "travel"], "Evening #sunset #travel")

    store.add_account("beta", follower_count=500)

    store.add_account("gamma", follower_count=2000)
    for i in range(4):
        store.add_post("gamma", f"g{i}", 50 * (i + 1), 5, FIXED_NOW - timedelta(days=i + 1), "photo")

    return store


@pytest.fixture
def analytics(seeded_store, fixed_clock):
    """Analytics service over the seeded store, bucketing in UTC."""
    return AnalyticsService(seeded_store, clock=fixed_clock, zone=timezone.utc, sample_size=20, require_data=False)


@pytest.fixture
def orchestrator(analytics):
    return AnalyticsOrchestrator(analytics)


async def _no_sleep(seconds):
    return None


@pytest.fixture
def sleep_calls():
    """Recording replacement for asyncio.sleep."""
    calls = []

    async def fake_sleep(seconds):
        calls.append(seconds)

    fake_sleep.calls = calls
    return fake_sleep


@pytest.fixture
def collector(seeded_store, fixed_clock):
    """Collection service with no Apify token: always takes the synthetic path."""
    return DataCollectionService(
        seeded_store,
        client_factory=lambda: None,
        rng=random.Random(7),
        sleep=_no_sleep,
        clock=fixed_clock
    )


# =============================================================================
# DATABASE FIXTURES
# =============================================================================

@pytest.fixture
async def sqlite_store(tmp_path):
    """RecordStore over a fresh sqlite database file."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'tracker.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    yield RecordStore(session_factory)

    await engine.dispose()


# =============================================================================
# API FIXTURES
# =============================================================================

@pytest.fixture
async def api_client(seeded_store, analytics, collector):
    """httpx client over the ASGI app; the lifespan (database init) is not run."""
    from main import app
    from tracker.api.dependencies import get_record_store, get_analytics_service, get_collection_service

    app.dependency_overrides[get_record_store] = lambda: seeded_store
    app.dependency_overrides[get_analytics_service] = lambda: analytics
    app.dependency_overrides[get_collection_service] = lambda: collector

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
