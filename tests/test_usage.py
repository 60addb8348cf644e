"""
Tests for the Usage Gate

Pure capacity and remaining-jobs decisions over (tier, jobs used).
"""

from datetime import datetime, timedelta, timezone

import pytest
from contentmux.core.tiers import UNLIMITED, TierId, list_tiers
from contentmux.core.usage import (
    billing_period_start,
    has_capacity,
    remaining,
    usage_snapshot,
)

FINITE_TIERS = [t for t in list_tiers() if not t.is_unlimited]


class TestHasCapacity:
    """Test the capacity decision."""

    @pytest.mark.parametrize("record", FINITE_TIERS, ids=lambda r: r.tier_id.value)
    def test_below_quota_has_capacity(self, record):
        for used in range(record.job_limit):
            assert has_capacity(record.tier_id, used) is True

    @pytest.mark.parametrize("record", FINITE_TIERS, ids=lambda r: r.tier_id.value)
    def test_at_or_over_quota_has_no_capacity(self, record):
        for used in (record.job_limit, record.job_limit + 1, record.job_limit * 10):
            assert has_capacity(record.tier_id, used) is False

    @pytest.mark.parametrize("used", [0, 1, 500, 10 ** 9])
    def test_enterprise_always_has_capacity(self, used):
        assert has_capacity("enterprise", used) is True

    def test_basic_at_limit(self):
        assert has_capacity("basic", 20) is False
        assert remaining("basic", 20) == 0

    def test_pro_one_left(self):
        assert has_capacity("pro", 99) is True
        assert remaining("pro", 99) == 1

    def test_fresh_trial(self):
        assert has_capacity("trial", 0) is True
        assert remaining("trial", 0) == 3


class TestRemaining:
    """Test the remaining-jobs figure."""

    @pytest.mark.parametrize("record", FINITE_TIERS, ids=lambda r: r.tier_id.value)
    def test_remaining_is_clamped_difference(self, record):
        for used in (0, 1, record.job_limit - 1, record.job_limit, record.job_limit + 7):
            assert remaining(record.tier_id, used) == max(0, record.job_limit - used)

    @pytest.mark.parametrize("used", [0, 499, 10 ** 9])
    def test_enterprise_remaining_is_unlimited(self, used):
        assert remaining("enterprise", used) == UNLIMITED


class TestUnknownTier:
    """Unknown tiers behave exactly like trial."""

    @pytest.mark.parametrize("used", [0, 2, 3, 50])
    def test_unknown_matches_trial(self, used):
        assert has_capacity("gold", used) == has_capacity("trial", used)
        assert remaining("gold", used) == remaining("trial", used)

    def test_none_matches_trial(self):
        assert remaining(None, 1) == 2


class TestUsageSnapshot:
    """Test the combined usage view."""

    def test_snapshot_fields(self):
        snapshot = usage_snapshot("basic", 5)

        assert snapshot.tier_id == TierId.BASIC
        assert snapshot.jobs_used == 5
        assert snapshot.jobs_remaining == 15
        assert snapshot.jobs_limit == 20
        assert snapshot.can_create_more is True

    def test_snapshot_to_dict(self):
        data = usage_snapshot("trial", 3).to_dict()

        assert data == {
            "jobsUsed": 3,
            "jobsRemaining": 0,
            "jobsLimit": 3,
            "canCreateMore": False,
        }

    def test_unlimited_snapshot(self):
        snapshot = usage_snapshot("enterprise", 1000)

        assert snapshot.jobs_limit == UNLIMITED
        assert snapshot.jobs_remaining == UNLIMITED
        assert snapshot.can_create_more is True


class TestBillingPeriod:
    """Test the monthly billing window."""

    def test_first_of_month_utc(self):
        now = datetime(2026, 3, 17, 15, 42, 9, 123, tzinfo=timezone.utc)

        assert billing_period_start(now) == datetime(2026, 3, 1, tzinfo=timezone.utc)

    def test_naive_treated_as_utc(self):
        start = billing_period_start(datetime(2026, 12, 31, 23, 59))

        assert start == datetime(2026, 12, 1, tzinfo=timezone.utc)

    def test_other_timezone_converted(self):
        # 00:30 on April 1st at UTC+2 is still March in UTC
        plus_two = timezone(timedelta(hours=2))
        now = datetime(2026, 4, 1, 0, 30, tzinfo=plus_two)

        assert billing_period_start(now) == datetime(2026, 3, 1, tzinfo=timezone.utc)

    def test_defaults_to_now(self):
        start = billing_period_start()

        assert start.day == 1
        assert start <= datetime.now(timezone.utc)
