"""
Usage Gate

Pure decisions over (tier, jobs used this billing period). Nothing here reads
or writes storage: the caller supplies a freshly counted, non-negative
used_count and acts on the answer.

Check and record are separate steps, so two concurrent requests for the same
user can both see capacity and both record a job. Enforcement is therefore
best-effort; see enforcement.gate.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .tiers import UNLIMITED, TierId, lookup


def has_capacity(tier_id: Any, used_count: int) -> bool:
    """True if one more job may be created."""
    record = lookup(tier_id)
    if record.is_unlimited:
        return True
    return used_count < record.job_limit


def remaining(tier_id: Any, used_count: int) -> int:
    """Jobs left this period; UNLIMITED for unlimited tiers."""
    record = lookup(tier_id)
    if record.is_unlimited:
        return UNLIMITED
    return max(0, record.job_limit - used_count)


@dataclass(frozen=True)
class UsageSnapshot:
    """Usage figures for one user at one point in time."""
    tier_id: TierId
    jobs_used: int
    jobs_remaining: int
    jobs_limit: int
    can_create_more: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "jobsUsed": self.jobs_used,
            "jobsRemaining": self.jobs_remaining,
            "jobsLimit": self.jobs_limit,
            "canCreateMore": self.can_create_more,
        }


def usage_snapshot(tier_id: Any, used_count: int) -> UsageSnapshot:
    record = lookup(tier_id)
    return UsageSnapshot(
        tier_id=record.tier_id,
        jobs_used=used_count,
        jobs_remaining=remaining(record.tier_id, used_count),
        jobs_limit=record.job_limit,
        can_create_more=has_capacity(record.tier_id, used_count),
    )


def billing_period_start(now: Optional[datetime] = None) -> datetime:
    """Start of the monthly billing window (first of the month, 00:00 UTC)."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    now = now.astimezone(timezone.utc)
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
