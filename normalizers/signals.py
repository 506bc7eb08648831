"""
Per-record engagement signals shared by every platform normalizer.

Pure functions over plain numbers and strings so each formula can be
tested on its own. All scores are clamped into their documented ranges.
"""

import math
import re
from datetime import datetime
from typing import Dict, List

# ── Engagement Weights ──
# Comments, shares and saves cost the viewer more effort than a like.
ENGAGEMENT_WEIGHTS = {
    "likes": 1,
    "comments": 2,
    "shares": 3,
    "saves": 2.5,
}

MAX_ENGAGEMENT_SCORE = 1000
MAX_VIRAL_SCORE = 100

# Creator tiers: (exclusive upper follower bound, label)
CREATOR_TIERS = [
    (10_000, "micro"),
    (100_000, "mid-tier"),
    (1_000_000, "macro"),
]

CREATOR_BOOST_FOLLOWERS = 100_000
CREATOR_BOOST = 1.2

# Growth phase rules, first match wins: (max age hours, min velocity, phase)
GROWTH_PHASE_RULES = [
    (6, 1000, "emerging"),
    (24, 500, "rising"),
    (72, 100, "peak"),
]

AGE_DISTRIBUTION = {
    "13-17": 0.15,
    "18-24": 0.45,
    "25-34": 0.25,
    "35-44": 0.10,
    "45+": 0.05,
}

HASHTAG_RE = re.compile(r"#\w+")
MENTION_RE = re.compile(r"@\w+")


def calculate_engagement_score(likes: int, comments: int, shares: int,
                               saves: int, impressions: int) -> float:
    """Weighted engagement per thousand impressions, capped at 1000."""
    w = ENGAGEMENT_WEIGHTS
    weighted = (
        likes * w["likes"] +
        comments * w["comments"] +
        shares * w["shares"] +
        saves * w["saves"]
    )
    score = weighted / max(impressions, 1) * 1000
    return max(min(score, MAX_ENGAGEMENT_SCORE), 0)


def age_in_hours(created_at: datetime, now: datetime) -> float:
    return (now - created_at).total_seconds() / 3600


def calculate_velocity(likes: int, comments: int, shares: int,
                       created_at: datetime, now: datetime) -> float:
    """
    Engagement accrued per hour of content age.

    Returns 0 when the content is not older than `now` (clock skew or
    same-instant processing).
    """
    age = age_in_hours(created_at, now)
    if age <= 0:
        return 0.0
    return (likes + comments + shares) / age


def categorize_creator(follower_count: int) -> str:
    for upper, label in CREATOR_TIERS:
        if follower_count < upper:
            return label
    return "mega"


def extract_hashtags(text: str) -> List[str]:
    """All #tokens in order, lowercased, marker kept. Duplicates preserved."""
    if not text:
        return []
    return [tag.lower() for tag in HASHTAG_RE.findall(text)]


def extract_mentions(text: str) -> List[str]:
    """All @tokens in order with the marker stripped, original case kept."""
    if not text:
        return []
    return [mention[1:] for mention in MENTION_RE.findall(text)]


def calculate_viral_score(engagement_score: float, velocity: float,
                          follower_count: int) -> int:
    """Record-level viral potential in [0, 100], halves rounded up."""
    boost = CREATOR_BOOST if follower_count > CREATOR_BOOST_FOLLOWERS else 1
    score = min((engagement_score / 10 + velocity / 100) * boost, MAX_VIRAL_SCORE)
    return int(math.floor(max(score, 0) + 0.5))


def determine_growth_phase(age_hours: float, velocity: float) -> str:
    for max_age, min_velocity, phase in GROWTH_PHASE_RULES:
        if age_hours < max_age and velocity > min_velocity:
            return phase
    return "declining"


def estimate_audience(hashtags: List[str]) -> Dict:
    """Rough demographic guess from hashtags; advisory only."""
    primary = "gen-z"
    if any("millennial" in tag or "90s" in tag for tag in hashtags):
        primary = "millennial"
    return {
        "primary_demographic": primary,
        "estimated_age": dict(AGE_DISTRIBUTION),
    }


def is_sponsored(caption: str) -> bool:
    text = caption.lower()
    return "#ad" in text or "#sponsored" in text


def assess_marketing_potential(viral_score: int) -> str:
    if viral_score > 80:
        return "viral"
    if viral_score > 60:
        return "high"
    if viral_score > 30:
        return "medium"
    return "low"
