"""
Metric Primitives - stateless numeric helpers shared by every analytics view
No I/O, no side effects.
"""
from collections import Counter
from datetime import datetime, timezone, tzinfo
from decimal import Decimal, ROUND_HALF_UP, ROUND_FLOOR
from typing import Any, Callable, Dict, Hashable, Iterable, List, Optional, Sequence, Tuple, Union

Number = Union[int, float]


def round_half_up(value: Number, places: int = 0) -> Number:
    """Round like a calculator (0.5 goes up), returning int when places == 0"""
    quantum = Decimal(1).scaleb(-places)
    rounded = Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP)
    return int(rounded) if places == 0 else float(rounded)


def engagement_rate(avg_likes: Number, avg_comments: Number, follower_count: int, places: int = 3) -> float:
    """
    Engagement rate as a percentage of followers
    Formula: ((avg_likes + avg_comments) / followers) * 100

    Zero followers yields 0.0 rather than an error.
    """
    if not follower_count or follower_count <= 0:
        return 0.0
    rate = (avg_likes + avg_comments) / follower_count * 100
    return round_half_up(rate, places) if places else float(rate)


def average(values: Sequence[Number], rounding: Optional[str] = "nearest", places: int = 0) -> Number:
    """
    Arithmetic mean, 0 for an empty input

    rounding: "nearest" (half up), "floor", or None for the raw float
    """
    if not values:
        return 0
    mean = sum(values) / len(values)
    if rounding is None:
        return mean
    if rounding == "floor":
        quantum = Decimal(1).scaleb(-places)
        floored = Decimal(str(mean)).quantize(quantum, rounding=ROUND_FLOOR)
        return int(floored) if places == 0 else float(floored)
    if rounding == "nearest":
        return round_half_up(mean, places)
    raise ValueError(f"Unknown rounding mode: {rounding}")


def frequency_map(items: Iterable[Hashable]) -> Dict[Hashable, int]:
    """item -> occurrence count (consumers sort by count themselves)"""
    return dict(Counter(items))


def top_n(
    scored_items: Iterable[Tuple[Any, Number]],
    n: Optional[int] = None,
    tie_breaker: Optional[Callable[[Any], Any]] = None
) -> List[Any]:
    """
    Items ordered by score, highest first

    Ties are broken by tie_breaker(item) ascending when given, otherwise by
    first-seen order (the sort is stable). n=None returns everything.
    """
    pairs = list(scored_items)
    if tie_breaker is not None:
        pairs.sort(key=lambda pair: tie_breaker(pair[0]))
    pairs.sort(key=lambda pair: pair[1], reverse=True)
    ranked = [item for item, _ in pairs]
    return ranked if n is None else ranked[:n]


def post_engagement(post) -> int:
    """Likes plus comments for one post record"""
    return (post.like_count or 0) + (post.comment_count or 0)


def as_aware(moment: datetime) -> datetime:
    """Stored timestamps without tzinfo are UTC"""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def to_zone(moment: datetime, zone: tzinfo) -> datetime:
    return as_aware(moment).astimezone(zone)


def preview(text: Optional[str], length: int) -> str:
    return (text or "")[:length] + "..."


def percent_label(value: Number) -> str:
    """Percentage string without a trailing .0"""
    if float(value).is_integer():
        return f"{int(value)}%"
    return f"{value}%"
