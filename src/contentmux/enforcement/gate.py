"""
Job Gate

Applies the Usage Gate to a real user: resolves their active tier, counts the
jobs they have used this billing period, and decides whether another job may
be created. Every job-creating request goes through here.

Known limitation: check() and the insert in record_job() are separate
statements. Two concurrent requests for the same user can both pass the
check and both insert, overshooting the quota by one per racing request.
Strict enforcement needs an atomic conditional insert in storage; this gate
does not attempt it.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional
import structlog

from ..core.platforms import Platform
from ..core.tiers import (
    TierRecord,
    accessible_platforms,
    cheapest_tier_for_platform,
    is_known_tier,
    lookup,
    next_tier,
)
from ..core.usage import UsageSnapshot, billing_period_start, usage_snapshot
from ..persistence.models import UsageRecord
from ..persistence.repository import SubscriptionRepository, UsageRepository

logger = structlog.get_logger()


class GateDecision(Enum):
    """Gate decision outcomes."""
    ALLOW = "ALLOW"
    DENY = "DENY"


@dataclass
class GateResult:
    """Outcome of a capacity check for one user."""
    decision: GateDecision
    user_id: str
    tier: TierRecord
    usage: UsageSnapshot

    @property
    def allowed(self) -> bool:
        return self.decision == GateDecision.ALLOW

    @property
    def suggested_tier(self) -> Optional[TierRecord]:
        return next_tier(self.tier.tier_id)

    def to_dict(self) -> Dict[str, Any]:
        suggested = self.suggested_tier
        return {
            "decision": self.decision.value,
            "tier": self.tier.tier_id.value,
            "usage": self.usage.to_dict(),
            "suggestedTier": suggested.tier_id.value if suggested else None,
        }


class UsageLimitExceeded(Exception):
    """Raised when a user has no jobs left this billing period."""

    def __init__(self, result: GateResult):
        self.result = result
        super().__init__(
            f"You've reached your limit of {result.tier.job_limit} jobs per month. "
            "Please upgrade your plan."
        )


class PlatformNotAllowed(Exception):
    """Raised when a request targets platforms outside the user's tier."""

    def __init__(self, tier: TierRecord, denied: List[Platform]):
        self.tier = tier
        self.denied = denied
        self.suggested_tier = cheapest_tier_for_platform(denied)
        names = ", ".join(p.value for p in denied)
        super().__init__(f"The {tier.name} does not include: {names}")


class JobGate:
    """
    Usage enforcement for job-creating requests.

    Flow:
    1. Resolve the user's active tier (no active subscription = trial)
    2. Count jobs since the start of the billing period
    3. Ask the Usage Gate for a decision
    4. On ALLOW, record the job
    """

    def __init__(
        self,
        subscriptions: SubscriptionRepository,
        usage: UsageRepository,
    ):
        self.subscriptions = subscriptions
        self.usage = usage

    def resolve_tier(self, user_id: str) -> TierRecord:
        """Tier of the user's active subscription, falling back to trial."""
        subscription = self.subscriptions.get_active(user_id)
        if subscription is None:
            return lookup(None)

        if not is_known_tier(subscription.tier):
            logger.warning(
                "unknown_tier_fallback",
                user_id=user_id,
                stored_tier=subscription.tier,
                fallback=lookup(None).tier_id.value,
            )
        return lookup(subscription.tier)

    def jobs_used(self, user_id: str, now: Optional[datetime] = None) -> int:
        return self.usage.count_since(user_id, billing_period_start(now))

    def check(self, user_id: str, now: Optional[datetime] = None) -> GateResult:
        """Decide whether the user may create one more job."""
        tier = self.resolve_tier(user_id)
        snapshot = usage_snapshot(tier.tier_id, self.jobs_used(user_id, now))
        decision = GateDecision.ALLOW if snapshot.can_create_more else GateDecision.DENY

        if decision == GateDecision.DENY:
            logger.info(
                "job_denied",
                user_id=user_id,
                tier=tier.tier_id.value,
                jobs_used=snapshot.jobs_used,
                jobs_limit=snapshot.jobs_limit,
            )

        return GateResult(decision=decision, user_id=user_id, tier=tier, usage=snapshot)

    def record_job(
        self,
        user_id: str,
        job_type: str = "content_creation",
        credits: int = 1,
        now: Optional[datetime] = None,
    ) -> GateResult:
        """
        Check capacity, then count one job.

        Raises UsageLimitExceeded when the user is out of jobs. Returns the
        result re-evaluated after the job was recorded.
        """
        result = self.check(user_id, now)
        if not result.allowed:
            raise UsageLimitExceeded(result)

        record = UsageRecord(user_id=user_id, action_type=job_type, credits_used=credits)
        if now is not None:
            record.created_at = now.isoformat()
        self.usage.create(record)

        used = self.jobs_used(user_id, now)
        logger.info(
            "usage_recorded",
            user_id=user_id,
            job_type=job_type,
            credits=credits,
            jobs_used=used,
        )

        snapshot = usage_snapshot(result.tier.tier_id, used)
        return GateResult(
            decision=GateDecision.ALLOW,
            user_id=user_id,
            tier=result.tier,
            usage=snapshot,
        )

    def check_platforms(self, user_id: str, platforms: Iterable[Platform]) -> TierRecord:
        """Raise PlatformNotAllowed unless the user's tier covers every platform."""
        tier = self.resolve_tier(user_id)
        _, denied = accessible_platforms(tier.tier_id, platforms)
        if denied:
            logger.info(
                "platforms_denied",
                user_id=user_id,
                tier=tier.tier_id.value,
                denied=[p.value for p in denied],
            )
            raise PlatformNotAllowed(tier, denied)
        return tier

    def reset_usage(self, user_id: str) -> int:
        return self.usage.delete_for_user(user_id)
