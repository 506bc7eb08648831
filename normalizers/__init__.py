"""
Normalizers — platform-specific payloads into one unified content record.

Each platform normalizer implements BaseNormalizer. A subclass only maps its
platform's field names into a ParsedPost; every derived signal (engagement
score, velocity, viral score, growth phase, ...) is computed here once so the
platforms cannot drift apart.
"""

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from normalizers import signals


class MalformedInputError(ValueError):
    """Raised when a raw item lacks a field its platform normalizer requires."""

    def __init__(self, platform: str, field_name: str, item_id: Any = None):
        self.platform = platform
        self.field_name = field_name
        self.item_id = item_id
        super().__init__(
            f"{platform} item {item_id!r} is missing required field '{field_name}'"
        )


@dataclass(frozen=True)
class ContentMetrics:
    impressions: int
    likes: int
    comments: int
    shares: int
    saves: int
    engagement_score: float             # 0-1000
    engagement_velocity: float          # engagement per hour of age

    @property
    def total_engagement(self) -> int:
        return self.likes + self.comments + self.shares + self.saves


@dataclass(frozen=True)
class ContentInfo:
    type: str                           # image, video, carousel, reel, story, unknown
    caption: str
    hashtags: List[str]                 # lowercased, "#" kept
    mentions: List[str]
    sound_id: Optional[str] = None
    duration: float = 0


@dataclass(frozen=True)
class CreatorInfo:
    username: str
    follower_count: int
    verified_status: bool
    creator_category: str               # micro, mid-tier, macro, mega


@dataclass(frozen=True)
class TrendIndicators:
    viral_score: int                    # 0-100
    trend_category: List[str]
    growth_phase: str
    cross_platform_reach: bool = False


@dataclass(frozen=True)
class GeographicInfo:
    primary_region: str = "unknown"
    top_countries: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class AudienceEstimate:
    primary_demographic: str
    estimated_age: Dict[str, float]


@dataclass(frozen=True)
class BrandOpportunities:
    brand_mentions: List[str]
    sponsored_content: bool
    marketing_potential: str            # low, medium, high, viral


@dataclass(frozen=True)
class ContentRecord:
    """Unified content record returned by every normalizer."""
    content_id: str                     # "<platform>_<raw id>"
    platform: str
    timestamp: datetime                 # creation time, UTC
    metrics: ContentMetrics
    content: ContentInfo
    creator: CreatorInfo
    trend_indicators: TrendIndicators
    geographic: GeographicInfo
    audience: AudienceEstimate
    brand_opportunities: BrandOpportunities

    def to_dict(self) -> dict:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data


@dataclass(frozen=True)
class ParsedPost:
    """Platform-neutral view of one raw item, before any scoring."""
    raw_id: str
    created_at: datetime
    impressions: int
    likes: int
    comments: int
    shares: int
    saves: int
    content_type: str
    caption: str
    username: str
    follower_count: int = 0
    verified: bool = False
    sound_id: Optional[str] = None
    duration: float = 0
    region: str = "unknown"


class BaseNormalizer(ABC):
    """Abstract base for all platform normalizers."""

    platform: str = ""

    @abstractmethod
    def parse(self, raw: dict) -> ParsedPost:
        """Map this platform's payload fields into a ParsedPost.

        Raises MalformedInputError when a required field is absent.
        """
        ...

    @abstractmethod
    def get_content_type(self, raw: dict) -> str:
        """Map the platform's media-type codes to a unified content type."""
        ...

    def normalize(self, raw: dict, taxonomy, now: datetime) -> ContentRecord:
        """Build the unified record for one raw item."""
        post = self.parse(raw)

        hashtags = signals.extract_hashtags(post.caption)
        mentions = signals.extract_mentions(post.caption)

        engagement_score = signals.calculate_engagement_score(
            post.likes, post.comments, post.shares, post.saves, post.impressions
        )
        velocity = signals.calculate_velocity(
            post.likes, post.comments, post.shares, post.created_at, now
        )
        age_hours = signals.age_in_hours(post.created_at, now)
        viral_score = signals.calculate_viral_score(
            engagement_score, velocity, post.follower_count
        )

        return ContentRecord(
            content_id=f"{self.platform}_{post.raw_id}",
            platform=self.platform,
            timestamp=post.created_at,
            metrics=ContentMetrics(
                impressions=post.impressions,
                likes=post.likes,
                comments=post.comments,
                shares=post.shares,
                saves=post.saves,
                engagement_score=engagement_score,
                engagement_velocity=velocity,
            ),
            content=ContentInfo(
                type=post.content_type,
                caption=post.caption,
                hashtags=hashtags,
                mentions=mentions,
                sound_id=post.sound_id,
                duration=post.duration,
            ),
            creator=CreatorInfo(
                username=post.username,
                follower_count=post.follower_count,
                verified_status=post.verified,
                creator_category=signals.categorize_creator(post.follower_count),
            ),
            trend_indicators=TrendIndicators(
                viral_score=viral_score,
                trend_category=taxonomy.match_trends(post.caption, hashtags),
                growth_phase=signals.determine_growth_phase(age_hours, velocity),
                cross_platform_reach=False,
            ),
            geographic=GeographicInfo(primary_region=post.region or "unknown"),
            audience=AudienceEstimate(**signals.estimate_audience(hashtags)),
            brand_opportunities=BrandOpportunities(
                brand_mentions=taxonomy.find_brands(post.caption),
                sponsored_content=signals.is_sponsored(post.caption),
                marketing_potential=signals.assess_marketing_potential(viral_score),
            ),
        )


# ── Field helpers shared by the platform normalizers ──

def safe_get(data: Any, *keys: str, default: Any = None) -> Any:
    """Traverse nested dict keys, returning default if any key is missing."""
    result = data
    for key in keys:
        if not isinstance(result, dict):
            return default
        result = result.get(key)
        if result is None:
            return default
    return result


def require(raw: dict, platform: str, *keys: str) -> Any:
    """Like safe_get, but a missing or empty value is a MalformedInputError."""
    value = safe_get(raw, *keys)
    if value is None or value == "":
        item_id = raw.get("id") if isinstance(raw, dict) else None
        raise MalformedInputError(platform, ".".join(keys), item_id)
    return value


def to_count(value: Any) -> int:
    """Coerce a raw counter to a non-negative int; missing means 0.

    Non-finite values (JSON 1e400 decodes to inf) raise ValueError.
    """
    if value is None or value == "":
        return 0
    try:
        count = int(value)
    except OverflowError as e:
        raise ValueError(f"count {value!r} is not a finite number") from e
    return max(count, 0)


def from_epoch(value: Any, platform: str, field_name: str,
               item_id: Any = None) -> datetime:
    """Convert platform epoch seconds into an aware UTC datetime."""
    try:
        return datetime.fromtimestamp(int(value), tz=timezone.utc)
    except (ValueError, TypeError, OverflowError, OSError) as e:
        raise MalformedInputError(platform, field_name, item_id) from e
