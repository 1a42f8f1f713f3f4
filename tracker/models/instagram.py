from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List, Dict, Any
from datetime import datetime


class RawPost(BaseModel):
    """One post item as returned by the Apify Instagram scraper"""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(..., description="Platform post identifier")
    short_code: Optional[str] = Field(None, alias="shortCode", description="Instagram shortcode")
    owner_username: str = Field(..., alias="ownerUsername", description="Owner username")
    caption: str = Field("", description="Post caption")
    likes_count: int = Field(0, alias="likesCount", description="Number of likes")
    comments_count: int = Field(0, alias="commentsCount", description="Number of comments")
    type: Optional[str] = Field(None, description="Apify media discriminator (Image, Video, Sidecar, GraphVideo...)")
    timestamp: datetime = Field(..., description="Publication timestamp")
    url: Optional[str] = Field(None, description="Post URL")
    display_url: Optional[str] = Field(None, alias="displayUrl", description="Media URL")
    video_url: Optional[str] = Field(None, alias="videoUrl", description="Video URL for video posts")
    child_posts: List[Dict[str, Any]] = Field(default_factory=list, alias="childPosts", description="Carousel children")

    # Owner profile fields (present when addParentData is enabled)
    owner_full_name: Optional[str] = Field(None, alias="ownerFullName")
    owner_biography: Optional[str] = Field(None, alias="ownerBiography")
    owner_profile_pic_url: Optional[str] = Field(None, alias="ownerProfilePicUrl")
    owner_followers_count: int = Field(0, alias="ownerFollowersCount")
    owner_following_count: int = Field(0, alias="ownerFollowingCount")
    owner_media_count: int = Field(0, alias="ownerMediaCount")
    owner_is_verified: bool = Field(False, alias="ownerIsVerified")

    @field_validator("caption", mode="before")
    @classmethod
    def _caption_default(cls, value):
        return value or ""

    @field_validator(
        "likes_count", "comments_count", "owner_followers_count", "owner_following_count", "owner_media_count",
        mode="before"
    )
    @classmethod
    def _non_negative(cls, value):
        # Apify reports hidden counters as -1 or null
        if value is None:
            return 0
        return max(int(value), 0)


class CollectionResult(BaseModel):
    """Outcome of collecting one account"""
    account: str
    success: bool
    count: int = 0
    type: Optional[str] = Field(None, description="REAL or REALISTIC_MOCK")
    message: Optional[str] = None
    error: Optional[str] = None
