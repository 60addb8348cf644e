"""
Tests for the Job Gate

Quota enforcement against stored subscriptions and usage.
"""

from datetime import datetime, timedelta, timezone

import pytest
from contentmux.core.platforms import Platform
from contentmux.core.tiers import TierId, UNLIMITED
from contentmux.enforcement.gate import (
    GateDecision,
    PlatformNotAllowed,
    UsageLimitExceeded,
)
from contentmux.persistence.models import UsageRecord

NOW = datetime(2026, 7, 15, 12, 0, tzinfo=timezone.utc)


class TestTierResolution:
    """Test which tier a user is on."""

    def test_no_subscription_is_trial(self, gate):
        assert gate.resolve_tier("user-1").tier_id == TierId.TRIAL

    def test_active_subscription(self, gate, subscriptions):
        subscriptions.set_tier("user-1", "pro")

        assert gate.resolve_tier("user-1").tier_id == TierId.PRO

    def test_canceled_subscription_is_trial(self, gate, subscriptions):
        subscriptions.set_tier("user-1", "pro")
        subscriptions.cancel("user-1")

        assert gate.resolve_tier("user-1").tier_id == TierId.TRIAL

    def test_unknown_stored_tier_is_trial(self, gate, subscriptions):
        subscriptions.set_tier("user-1", "platinum")

        assert gate.resolve_tier("user-1").tier_id == TierId.TRIAL


class TestCheck:
    """Test capacity checks."""

    def test_fresh_user_allowed(self, gate):
        result = gate.check("user-1", NOW)

        assert result.decision == GateDecision.ALLOW
        assert result.usage.jobs_remaining == 3

    def test_trial_exhausted(self, gate):
        for _ in range(3):
            gate.record_job("user-1", now=NOW)

        result = gate.check("user-1", NOW)
        assert result.decision == GateDecision.DENY
        assert result.usage.jobs_used == 3
        assert result.suggested_tier.tier_id == TierId.BASIC

    def test_previous_month_not_counted(self, gate, usage):
        last_month = NOW - timedelta(days=31)
        for _ in range(3):
            usage.create(UsageRecord(user_id="user-1", created_at=last_month.isoformat()))

        result = gate.check("user-1", NOW)
        assert result.allowed
        assert result.usage.jobs_used == 0

    def test_enterprise_never_denied(self, gate, subscriptions, usage):
        subscriptions.set_tier("user-1", "enterprise")
        for _ in range(600):
            usage.create(UsageRecord(user_id="user-1", created_at=NOW.isoformat()))

        result = gate.check("user-1", NOW)
        assert result.allowed
        assert result.usage.jobs_remaining == UNLIMITED
        assert result.suggested_tier is None

    def test_to_dict(self, gate):
        data = gate.check("user-1", NOW).to_dict()

        assert data["decision"] == "ALLOW"
        assert data["tier"] == "trial"
        assert data["suggestedTier"] == "basic"
        assert data["usage"]["jobsLimit"] == 3


class TestRecordJob:
    """Test recording jobs."""

    def test_record_increments(self, gate):
        result = gate.record_job("user-1", now=NOW)

        assert result.usage.jobs_used == 1
        assert result.usage.jobs_remaining == 2

    def test_record_over_limit_raises(self, gate):
        for _ in range(3):
            gate.record_job("user-1", now=NOW)

        with pytest.raises(UsageLimitExceeded) as exc_info:
            gate.record_job("user-1", now=NOW)

        assert "limit of 3 jobs" in str(exc_info.value)
        assert exc_info.value.result.usage.jobs_used == 3
        assert gate.jobs_used("user-1", NOW) == 3

    def test_credits_do_not_change_job_count(self, gate, usage):
        gate.record_job("user-1", credits=4, now=NOW)

        assert gate.jobs_used("user-1", NOW) == 1
        assert usage.total_credits("user-1") == 4

    def test_reset_usage(self, gate):
        for _ in range(3):
            gate.record_job("user-1", now=NOW)

        assert gate.reset_usage("user-1") == 3
        assert gate.check("user-1", NOW).allowed


class TestPlatformCheck:
    """Test platform access enforcement."""

    def test_trial_allowed_platforms(self, gate):
        tier = gate.check_platforms("user-1", [Platform.TWITTER, Platform.LINKEDIN])

        assert tier.tier_id == TierId.TRIAL

    def test_trial_denied_platform(self, gate):
        with pytest.raises(PlatformNotAllowed) as exc_info:
            gate.check_platforms("user-1", [Platform.TWITTER, Platform.TIKTOK])

        assert exc_info.value.denied == [Platform.TIKTOK]
        assert exc_info.value.suggested_tier.tier_id == TierId.BUSINESS

    def test_business_allows_all(self, gate, subscriptions):
        subscriptions.set_tier("user-1", "business")

        tier = gate.check_platforms("user-1", list(Platform))
        assert tier.tier_id == TierId.BUSINESS
