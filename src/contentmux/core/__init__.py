"""
CONTENTMUX - Core Module

Tier Registry and Usage Gate:
- Static tier table with job quotas and platform access
- Capacity / remaining-jobs decisions for a billing period
"""

from .platforms import Platform, ALL_PLATFORMS, filter_valid_platforms
from .tiers import (
    TierId,
    TierRecord,
    UNLIMITED,
    lookup,
    is_known_tier,
    list_tiers,
    can_access_platform,
)
from .usage import UsageSnapshot, has_capacity, remaining, usage_snapshot, billing_period_start

__all__ = [
    "Platform",
    "ALL_PLATFORMS",
    "filter_valid_platforms",
    "TierId",
    "TierRecord",
    "UNLIMITED",
    "lookup",
    "is_known_tier",
    "list_tiers",
    "can_access_platform",
    "UsageSnapshot",
    "has_capacity",
    "remaining",
    "usage_snapshot",
    "billing_period_start",
]
