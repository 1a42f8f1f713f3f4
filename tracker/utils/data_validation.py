"""
Raw record validation and cleaning used before anything is stored
"""
import re
from typing import Any, Dict, List, Tuple

HASHTAG_PATTERN = re.compile(r"#\w+")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_post_data(post_data: Dict[str, Any]) -> Tuple[bool, List[str]]:
    """Check a raw scraped post item; returns (is_valid, errors)"""
    errors = []

    if not post_data.get("id"):
        errors.append("Post ID is required")
    if not post_data.get("ownerUsername"):
        errors.append("Owner username is required")
    if not _is_number(post_data.get("likesCount")):
        errors.append("Likes count must be a number")
    if not _is_number(post_data.get("commentsCount")):
        errors.append("Comments count must be a number")
    if not post_data.get("timestamp"):
        errors.append("Post timestamp is required")

    return len(errors) == 0, errors


def validate_account_data(account_data: Dict[str, Any]) -> Tuple[bool, List[str]]:
    """Check account fields before an upsert; returns (is_valid, errors)"""
    errors = []

    if not account_data.get("username"):
        errors.append("Username is required")
    if not _is_number(account_data.get("follower_count")):
        errors.append("Follower count must be a number")
    if not _is_number(account_data.get("following_count")):
        errors.append("Following count must be a number")

    return len(errors) == 0, errors


def clean_text(text: str) -> str:
    """Trim and collapse whitespace"""
    if not text:
        return ""
    return re.sub(r"\s+", " ", text.strip())


def clean_hashtags(hashtags: Any) -> List[str]:
    """Lowercase, strip '#', drop empties and non-strings"""
    if not isinstance(hashtags, list):
        return []
    cleaned = []
    for tag in hashtags:
        if not tag or not isinstance(tag, str):
            continue
        tag = tag.lower().replace("#", "").strip()
        if tag:
            cleaned.append(tag)
    return cleaned


def extract_hashtags(caption: str) -> List[str]:
    """Hashtags in caption order, lowercased without the leading '#'"""
    if not caption:
        return []
    return clean_hashtags(HASHTAG_PATTERN.findall(caption))
