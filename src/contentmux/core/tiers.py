"""
Tier Registry

Static table of subscription tiers and their limits. The table is built once
at import time and exposed read-only; changing a price, quota or platform
list means a new deployment.

Lookups are total: an identifier that is not one of the five known tiers
resolves to the trial record. Callers that must distinguish "unknown" from
"trial" (e.g. when a user picks a plan) use is_known_tier() first.
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from .platforms import Platform, parse_platform

# Job quota value meaning "no limit"
UNLIMITED = -1


class TierId(Enum):
    """Subscription tiers, cheapest first."""
    TRIAL = "trial"
    BASIC = "basic"
    PRO = "pro"
    BUSINESS = "business"
    ENTERPRISE = "enterprise"


DEFAULT_TIER = TierId.TRIAL


@dataclass(frozen=True)
class TierRecord:
    """Immutable limits and capabilities of one tier."""
    tier_id: TierId
    name: str
    price: int  # USD per month
    job_limit: int
    platform_access: Tuple[Platform, ...]
    features: Tuple[str, ...]

    def __post_init__(self):
        if self.job_limit != UNLIMITED and self.job_limit <= 0:
            raise ValueError(
                f"Tier {self.tier_id.value}: job_limit must be positive or UNLIMITED, "
                f"got {self.job_limit}"
            )

    @property
    def is_unlimited(self) -> bool:
        return self.job_limit == UNLIMITED

    def allows_platform(self, platform: Platform) -> bool:
        return platform in self.platform_access

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.tier_id.value,
            "name": self.name,
            "price": self.price,
            "jobLimit": self.job_limit,
            "platformAccess": [p.value for p in self.platform_access],
            "features": list(self.features),
        }


_TIERS = (
    TierRecord(
        tier_id=TierId.TRIAL,
        name="Free Trial",
        price=0,
        job_limit=3,
        platform_access=(Platform.LINKEDIN, Platform.TWITTER),
        features=(
            "3 content transformations",
            "2 platforms (LinkedIn, Twitter)",
            "Basic AI processing",
            "7-day trial period",
        ),
    ),
    TierRecord(
        tier_id=TierId.BASIC,
        name="Basic Plan",
        price=29,
        job_limit=20,
        platform_access=(
            Platform.LINKEDIN, Platform.TWITTER, Platform.FACEBOOK, Platform.INSTAGRAM,
        ),
        features=(
            "20 content transformations/month",
            "4 platforms access",
            "Enhanced AI processing",
            "Content library",
            "Email support",
        ),
    ),
    TierRecord(
        tier_id=TierId.PRO,
        name="Pro Plan",
        price=79,
        job_limit=100,
        platform_access=(
            Platform.LINKEDIN, Platform.TWITTER, Platform.FACEBOOK,
            Platform.INSTAGRAM, Platform.YOUTUBE,
        ),
        features=(
            "100 content transformations/month",
            "5 platforms access",
            "Advanced AI processing",
            "File upload processing",
            "Priority support",
            "Analytics dashboard",
        ),
    ),
    TierRecord(
        tier_id=TierId.BUSINESS,
        name="Business Plan",
        price=199,
        job_limit=500,
        platform_access=(
            Platform.LINKEDIN, Platform.TWITTER, Platform.FACEBOOK,
            Platform.INSTAGRAM, Platform.YOUTUBE, Platform.TIKTOK,
        ),
        features=(
            "500 content transformations/month",
            "All 6 platforms",
            "Team collaboration",
            "Advanced analytics",
            "API access",
            "Dedicated support",
        ),
    ),
    TierRecord(
        tier_id=TierId.ENTERPRISE,
        name="Enterprise Plan",
        price=499,
        job_limit=UNLIMITED,
        platform_access=(
            Platform.LINKEDIN, Platform.TWITTER, Platform.FACEBOOK,
            Platform.INSTAGRAM, Platform.YOUTUBE, Platform.TIKTOK,
        ),
        features=(
            "Unlimited transformations",
            "All platforms",
            "White-label options",
            "Custom integrations",
            "Dedicated account manager",
            "SLA guarantee",
        ),
    ),
)

TIER_REGISTRY: Mapping[TierId, TierRecord] = MappingProxyType(
    {record.tier_id: record for record in _TIERS}
)

_TIER_ORDER: Tuple[TierId, ...] = tuple(TierId)


def parse_tier_id(tier_id: Any) -> Optional[TierId]:
    """
    Map a tier identifier to a TierId, or None if it is not a known tier.

    Matching is exact: "PRO" and " pro " are not tier identifiers.
    """
    if isinstance(tier_id, TierId):
        return tier_id
    if not isinstance(tier_id, str):
        return None
    try:
        return TierId(tier_id)
    except ValueError:
        return None


def is_known_tier(tier_id: Any) -> bool:
    return parse_tier_id(tier_id) is not None


def lookup(tier_id: Any) -> TierRecord:
    """
    Get the limits record for a tier.

    Accepts anything. Unknown identifiers, None and empty strings resolve to
    the trial record; this never raises.
    """
    parsed = parse_tier_id(tier_id)
    if parsed is None:
        return TIER_REGISTRY[DEFAULT_TIER]
    return TIER_REGISTRY[parsed]


def list_tiers() -> List[TierRecord]:
    """All tiers, cheapest first."""
    return [TIER_REGISTRY[t] for t in _TIER_ORDER]


def tier_rank(tier_id: Any) -> int:
    """Position of a tier in the upgrade ladder (trial = 0)."""
    return _TIER_ORDER.index(lookup(tier_id).tier_id)


def next_tier(tier_id: Any) -> Optional[TierRecord]:
    """The next tier up, or None for the top tier."""
    rank = tier_rank(tier_id)
    if rank + 1 >= len(_TIER_ORDER):
        return None
    return TIER_REGISTRY[_TIER_ORDER[rank + 1]]


def can_access_platform(tier_id: Any, platform: Any) -> bool:
    parsed = parse_platform(platform)
    if parsed is None:
        return False
    return lookup(tier_id).allows_platform(parsed)


def accessible_platforms(
    tier_id: Any,
    requested: Iterable[Platform],
) -> Tuple[List[Platform], List[Platform]]:
    """Split requested platforms into (allowed, denied) for a tier."""
    record = lookup(tier_id)
    allowed: List[Platform] = []
    denied: List[Platform] = []
    for platform in requested:
        (allowed if record.allows_platform(platform) else denied).append(platform)
    return allowed, denied


def cheapest_tier_for_platform(platforms: Iterable[Platform]) -> Optional[TierRecord]:
    """Lowest tier that can access every given platform."""
    wanted = set(platforms)
    for record in list_tiers():
        if wanted.issubset(record.platform_access):
            return record
    return None


__all__ = [
    "DEFAULT_TIER",
    "TIER_REGISTRY",
    "TierId",
    "TierRecord",
    "UNLIMITED",
    "accessible_platforms",
    "can_access_platform",
    "cheapest_tier_for_platform",
    "is_known_tier",
    "list_tiers",
    "lookup",
    "next_tier",
    "parse_tier_id",
    "tier_rank",
]
