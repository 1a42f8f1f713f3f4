"""
Record Store - queryable, upsertable collections of Accounts and Posts

Every call opens its own short-lived session from the session factory, so
independent analytics calls may run concurrently without sharing a session.
The analytics engine only uses the read methods; upserts belong to data collection.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import select, func, asc, desc
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Account, Post

logger = logging.getLogger(__name__)

POST_SORT_FIELDS = {
    "post_timestamp": Post.post_timestamp,
    "like_count": Post.like_count,
    "comment_count": Post.comment_count,
}

ACCOUNT_FIELDS = {
    "display_name", "biography", "profile_pic_url", "follower_count", "following_count",
    "posts_count", "verification_status", "account_type", "collection_date", "last_updated",
}

POST_FIELDS = {
    "account_username", "caption", "hashtags", "like_count", "comment_count", "engagement_rate",
    "media_type", "post_url", "media_url", "post_timestamp", "collection_date",
}


def normalize_username(username: str) -> str:
    return (username or "").strip().lower()


def to_utc(value: Any) -> Any:
    """Datetimes are stored as UTC; sqlite keeps the wall clock and drops the offset"""
    if not isinstance(value, datetime):
        return value
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class RecordStore:
    """SQLAlchemy-backed implementation of the account/post store contract"""

    def __init__(self, session_factory: Callable[[], AsyncSession]):
        self.session_factory = session_factory

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    async def find_account_by_username(self, username: str) -> Optional[Account]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(Account).where(Account.username == normalize_username(username))
            )
            return result.scalar_one_or_none()

    async def list_accounts(self, limit: int = 20) -> List[Account]:
        """Accounts ordered by follower count, largest first"""
        async with self.session_factory() as session:
            result = await session.execute(
                select(Account)
                .order_by(desc(Account.follower_count), asc(Account.username))
                .limit(limit)
            )
            return list(result.scalars().all())

    async def top_account(self) -> Optional[Account]:
        accounts = await self.list_accounts(limit=1)
        return accounts[0] if accounts else None

    async def upsert_account(self, username: str, fields: Dict[str, Any]) -> Account:
        """Insert or update an account keyed on its normalized username"""
        key = normalize_username(username)
        values = {k: to_utc(v) for k, v in fields.items() if k in ACCOUNT_FIELDS}
        values.setdefault("last_updated", datetime.now(timezone.utc))

        async with self.session_factory() as session:
            try:
                result = await session.execute(select(Account).where(Account.username == key))
                account = result.scalar_one_or_none()

                if account:
                    for name, value in values.items():
                        setattr(account, name, value)
                    logger.debug(f"Updating account {key}")
                else:
                    account = Account(username=key, **values)
                    session.add(account)
                    logger.debug(f"Creating account {key}")

                await session.commit()
                await session.refresh(account)
                return account
            except Exception as e:
                await session.rollback()
                logger.error(f"Failed to upsert account {key}: {e}")
                raise

    # ------------------------------------------------------------------
    # Posts
    # ------------------------------------------------------------------

    async def find_posts_by_username(
        self,
        username: str,
        sort: str = "post_timestamp",
        descending: bool = True,
        limit: Optional[int] = None,
        since: Optional[datetime] = None
    ) -> List[Post]:
        """
        Posts for one account.

        Args:
            username: account username (case-insensitive)
            sort: one of post_timestamp, like_count, comment_count
            descending: sort direction; post_id ascending breaks ties
            limit: maximum number of posts, None for the full history
            since: only posts published at or after this instant
        """
        if sort not in POST_SORT_FIELDS:
            raise ValueError(f"Unsupported post sort field: {sort}")

        column = POST_SORT_FIELDS[sort]
        query = select(Post).where(Post.account_username == normalize_username(username))
        if since is not None:
            query = query.where(Post.post_timestamp >= to_utc(since))
        query = query.order_by(desc(column) if descending else asc(column), asc(Post.post_id))
        if limit is not None:
            query = query.limit(limit)

        async with self.session_factory() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def find_post_by_username(self, username: str, sort_by_likes_desc: bool = True) -> Optional[Post]:
        """Single post for an account, by default the one with the most likes"""
        posts = await self.find_posts_by_username(
            username,
            sort="like_count" if sort_by_likes_desc else "post_timestamp",
            descending=True,
            limit=1
        )
        return posts[0] if posts else None

    async def upsert_post(self, post_id: str, fields: Dict[str, Any]) -> Post:
        """Insert or update a post keyed on its platform post id"""
        values = {k: to_utc(v) for k, v in fields.items() if k in POST_FIELDS}
        if "account_username" in values:
            values["account_username"] = normalize_username(values["account_username"])

        async with self.session_factory() as session:
            try:
                result = await session.execute(select(Post).where(Post.post_id == post_id))
                post = result.scalar_one_or_none()

                if post:
                    for name, value in values.items():
                        setattr(post, name, value)
                else:
                    post = Post(post_id=post_id, **values)
                    session.add(post)

                await session.commit()
                await session.refresh(post)
                return post
            except Exception as e:
                await session.rollback()
                logger.error(f"Failed to upsert post {post_id}: {e}")
                raise

    # ------------------------------------------------------------------
    # Stats
    # ------------------------------------------------------------------

    async def count_accounts(self) -> int:
        async with self.session_factory() as session:
            result = await session.execute(select(func.count(Account.id)))
            return result.scalar() or 0

    async def count_posts(self, username: Optional[str] = None) -> int:
        query = select(func.count(Post.id))
        if username is not None:
            query = query.where(Post.account_username == normalize_username(username))
        async with self.session_factory() as session:
            result = await session.execute(query)
            return result.scalar() or 0

    async def count_posts_collected_since(self, since: datetime) -> int:
        async with self.session_factory() as session:
            result = await session.execute(
                select(func.count(Post.id)).where(Post.collection_date >= to_utc(since))
            )
            return result.scalar() or 0
