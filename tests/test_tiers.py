"""
Tests for the Tier Registry

Every tier resolves to exactly one immutable record, and unknown identifiers
fall back to the trial tier.
"""

import dataclasses
import pytest
from contentmux.core.platforms import (
    ALL_PLATFORMS,
    Platform,
    filter_valid_platforms,
    parse_platform,
)
from contentmux.core.tiers import (
    TIER_REGISTRY,
    UNLIMITED,
    TierId,
    TierRecord,
    accessible_platforms,
    can_access_platform,
    cheapest_tier_for_platform,
    is_known_tier,
    list_tiers,
    lookup,
    next_tier,
    tier_rank,
)
from contentmux.core.usage import remaining


class TestTierTable:
    """Test the static tier table."""

    @pytest.mark.parametrize("tier_id,name,price,job_limit,platform_count", [
        ("trial", "Free Trial", 0, 3, 2),
        ("basic", "Basic Plan", 29, 20, 4),
        ("pro", "Pro Plan", 79, 100, 5),
        ("business", "Business Plan", 199, 500, 6),
        ("enterprise", "Enterprise Plan", 499, UNLIMITED, 6),
    ])
    def test_tier_values(self, tier_id, name, price, job_limit, platform_count):
        record = lookup(tier_id)

        assert record.tier_id.value == tier_id
        assert record.name == name
        assert record.price == price
        assert record.job_limit == job_limit
        assert len(record.platform_access) == platform_count

    def test_trial_platforms(self):
        """Trial covers LinkedIn and Twitter only."""
        assert set(lookup("trial").platform_access) == {Platform.LINKEDIN, Platform.TWITTER}

    def test_pro_has_youtube_not_tiktok(self):
        record = lookup("pro")

        assert record.allows_platform(Platform.YOUTUBE)
        assert not record.allows_platform(Platform.TIKTOK)

    def test_top_tiers_have_all_platforms(self):
        for tier_id in ("business", "enterprise"):
            assert set(lookup(tier_id).platform_access) == set(ALL_PLATFORMS)

    def test_every_tier_has_features(self):
        for record in list_tiers():
            assert len(record.features) > 0

    def test_registry_covers_all_tiers(self):
        assert set(TIER_REGISTRY.keys()) == set(TierId)

    def test_list_tiers_cheapest_first(self):
        prices = [t.price for t in list_tiers()]

        assert prices == sorted(prices)
        assert [t.tier_id for t in list_tiers()] == list(TierId)

    def test_limits_are_positive_or_unlimited(self):
        for record in list_tiers():
            assert record.job_limit == UNLIMITED or record.job_limit > 0


class TestImmutability:
    """Records and the registry cannot be modified at runtime."""

    def test_record_is_frozen(self):
        record = lookup("basic")

        with pytest.raises(dataclasses.FrozenInstanceError):
            record.job_limit = 1000

    def test_registry_is_read_only(self):
        with pytest.raises(TypeError):
            TIER_REGISTRY[TierId.TRIAL] = lookup("enterprise")

    def test_lookup_returns_same_record(self):
        assert lookup("pro") is lookup("pro")

    def test_invalid_limit_rejected(self):
        with pytest.raises(ValueError):
            TierRecord(
                tier_id=TierId.TRIAL,
                name="Broken",
                price=0,
                job_limit=0,
                platform_access=(),
                features=(),
            )


class TestLookup:
    """Test tier resolution."""

    @pytest.mark.parametrize("value", [None, "", "gold", "TRIALS", 42, "premium"])
    def test_unknown_falls_back_to_trial(self, value):
        """Unknown identifiers never raise and resolve to trial."""
        assert lookup(value).tier_id == TierId.TRIAL

    def test_lookup_accepts_enum(self):
        assert lookup(TierId.BUSINESS).name == "Business Plan"

    @pytest.mark.parametrize("value", ["PRO", " pro ", "Enterprise", "basic\n"])
    def test_lookup_is_exact_match(self, value):
        """Case or whitespace variants are not tier identifiers."""
        assert lookup(value).tier_id == TierId.TRIAL
        assert not is_known_tier(value)
        assert remaining(value, 50) == remaining("trial", 50)

    def test_is_known_tier(self):
        assert is_known_tier("enterprise")
        assert not is_known_tier("gold")
        assert not is_known_tier(None)

    def test_to_dict(self):
        data = lookup("basic").to_dict()

        assert data["id"] == "basic"
        assert data["jobLimit"] == 20
        assert data["platformAccess"] == ["linkedin", "twitter", "facebook", "instagram"]


class TestUpgradePath:
    """Test tier ordering and upgrade suggestions."""

    def test_rank(self):
        assert tier_rank("trial") == 0
        assert tier_rank("enterprise") == 4

    def test_next_tier(self):
        assert next_tier("trial").tier_id == TierId.BASIC
        assert next_tier("business").tier_id == TierId.ENTERPRISE

    def test_no_tier_above_enterprise(self):
        assert next_tier("enterprise") is None

    def test_cheapest_tier_for_platform(self):
        assert cheapest_tier_for_platform([Platform.YOUTUBE]).tier_id == TierId.PRO
        assert cheapest_tier_for_platform([Platform.TIKTOK]).tier_id == TierId.BUSINESS
        assert cheapest_tier_for_platform([Platform.TWITTER]).tier_id == TierId.TRIAL


class TestPlatformAccess:
    """Test platform parsing and access checks."""

    def test_parse_platform(self):
        assert parse_platform("linkedin") == Platform.LINKEDIN
        assert parse_platform("LinkedIn") is None
        assert parse_platform(" twitter") is None
        assert parse_platform("myspace") is None
        assert parse_platform(None) is None

    def test_filter_drops_unknown_and_duplicates(self):
        result = filter_valid_platforms(["twitter", "myspace", "Twitter", "youtube", "twitter"])

        assert result == [Platform.TWITTER, Platform.YOUTUBE]

    def test_filter_none_means_all(self):
        assert filter_valid_platforms(None) == list(ALL_PLATFORMS)

    def test_filter_empty_stays_empty(self):
        assert filter_valid_platforms([]) == []

    def test_can_access_platform(self):
        assert can_access_platform("trial", "twitter")
        assert not can_access_platform("trial", "instagram")
        assert can_access_platform("basic", "instagram")
        assert not can_access_platform("basic", "not-a-platform")

    def test_accessible_platforms_split(self):
        allowed, denied = accessible_platforms(
            "basic", [Platform.TWITTER, Platform.YOUTUBE, Platform.FACEBOOK]
        )

        assert allowed == [Platform.TWITTER, Platform.FACEBOOK]
        assert denied == [Platform.YOUTUBE]


class TestModuleExports:

    def test_exports_are_tier_registry_names(self):
        import contentmux.core.tiers as tiers

        assert "ALL_PLATFORMS" not in tiers.__all__
        for name in tiers.__all__:
            assert hasattr(tiers, name)
