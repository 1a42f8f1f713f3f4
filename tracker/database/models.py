"""
Tracker database models - Accounts and Posts
Accounts are keyed by username, posts by the platform post id.
Both are written only by the collection adapter (upsert) and read by the analytics engine.
"""
from sqlalchemy import Column, String, Integer, BigInteger, Boolean, DateTime, Text, Float, JSON, Index, CheckConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()

ACCOUNT_TYPES = ("business", "personal", "creator")
MEDIA_TYPES = ("photo", "video", "carousel", "reel")

# JSONB on PostgreSQL, plain JSON elsewhere (sqlite in tests)
HashtagList = JSON().with_variant(JSONB(), "postgresql")


class Account(Base):
    """Tracked Instagram account"""
    __tablename__ = "instagram_accounts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(255), unique=True, nullable=False, index=True)  # lowercase, trimmed

    # Descriptive
    display_name = Column(String(500), nullable=True)
    biography = Column(Text, nullable=True, default="")
    profile_pic_url = Column(Text, nullable=True)

    # Counters
    follower_count = Column(BigInteger, nullable=False, default=0)
    following_count = Column(BigInteger, nullable=False, default=0)
    posts_count = Column(BigInteger, nullable=False, default=0)

    verification_status = Column(Boolean, nullable=False, default=False)
    account_type = Column(String(20), nullable=False, default="personal")

    # Timestamps
    collection_date = Column(DateTime(timezone=True), nullable=True, server_default=func.now())
    last_updated = Column(DateTime(timezone=True), nullable=True, server_default=func.now())
    created_at = Column(DateTime(timezone=True), nullable=True, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=True, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("follower_count >= 0", name="ck_accounts_follower_count"),
        CheckConstraint("following_count >= 0", name="ck_accounts_following_count"),
        CheckConstraint("posts_count >= 0", name="ck_accounts_posts_count"),
        CheckConstraint(
            "account_type IN ('business', 'personal', 'creator')",
            name="ck_accounts_account_type"
        ),
        Index("idx_accounts_followers_desc", "follower_count"),
    )

    def __repr__(self):
        return f"<Account {self.username} followers={self.follower_count}>"


class Post(Base):
    """Single published post belonging to an account"""
    __tablename__ = "instagram_posts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    post_id = Column(String(255), unique=True, nullable=False, index=True)

    # Owner (no FK: orphaned posts are tolerated and simply never match an account query)
    account_username = Column(String(255), nullable=False, index=True)

    # Content
    caption = Column(Text, nullable=False, default="")
    hashtags = Column(HashtagList, nullable=False, default=list)  # caption order preserved

    # Engagement
    like_count = Column(BigInteger, nullable=False, default=0)
    comment_count = Column(BigInteger, nullable=False, default=0)
    engagement_rate = Column(Float, nullable=True)  # (likes + comments) / followers * 100 at collection time

    media_type = Column(String(20), nullable=False, default="photo")
    post_url = Column(Text, nullable=True)
    media_url = Column(Text, nullable=True)

    # Timestamps
    post_timestamp = Column(DateTime(timezone=True), nullable=False, index=True)  # publication time
    collection_date = Column(DateTime(timezone=True), nullable=True, server_default=func.now())  # ingestion time
    created_at = Column(DateTime(timezone=True), nullable=True, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=True, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("like_count >= 0", name="ck_posts_like_count"),
        CheckConstraint("comment_count >= 0", name="ck_posts_comment_count"),
        CheckConstraint(
            "media_type IN ('photo', 'video', 'carousel', 'reel')",
            name="ck_posts_media_type"
        ),
        Index("idx_posts_account_timestamp", "account_username", "post_timestamp"),
        Index("idx_posts_account_likes", "account_username", "like_count"),
    )

    @property
    def total_engagement(self) -> int:
        return (self.like_count or 0) + (self.comment_count or 0)

    def __repr__(self):
        return f"<Post {self.post_id} @{self.account_username} likes={self.like_count}>"
