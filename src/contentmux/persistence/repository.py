"""
Repository Layer for ContentMux

Provides CRUD operations for all persisted entities.
"""

from typing import Any, Dict, List, Optional
from datetime import datetime, timedelta, timezone
import structlog

from .database import Database, get_database
from .models import (
    ContentRecord,
    PlatformContentRecord,
    PreferencesRecord,
    ProfileRecord,
    SubscriptionRecord,
    UsageRecord,
    json_value,
    utc_now_iso,
)

logger = structlog.get_logger()

# Length of a billing period started from the API (no payment provider involved)
SUBSCRIPTION_PERIOD_DAYS = 30


class ProfileRepository:
    """Repository for user profiles."""

    def __init__(self, db: Optional[Database] = None):
        self.db = db or get_database()

    def upsert(self, profile: ProfileRecord) -> ProfileRecord:
        """Create a profile, or update name/email/avatar if it exists."""
        self.db.execute(
            """INSERT INTO profiles
               (id, email, full_name, avatar_url, stripe_customer_id, created_at, updated_at)
               VALUES (?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT (id) DO UPDATE SET
                 email = excluded.email,
                 full_name = excluded.full_name,
                 avatar_url = excluded.avatar_url,
                 updated_at = excluded.updated_at""",
            profile.to_db_tuple()
        )
        logger.info("profile_upserted", user_id=profile.id)
        return self.get(profile.id) or profile

    def get(self, user_id: str) -> Optional[ProfileRecord]:
        results = self.db.execute(
            "SELECT * FROM profiles WHERE id = ?",
            (user_id,)
        )
        return ProfileRecord.from_row(results[0]) if results else None

    def set_stripe_customer(self, user_id: str, customer_id: Optional[str]) -> None:
        self.db.execute(
            "UPDATE profiles SET stripe_customer_id = ?, updated_at = ? WHERE id = ?",
            (customer_id, utc_now_iso(), user_id)
        )
        logger.info("profile_stripe_customer_set", user_id=user_id, customer_id=customer_id)


class SubscriptionRepository:
    """Repository for subscriptions."""

    def __init__(self, db: Optional[Database] = None):
        self.db = db or get_database()

    def get(self, user_id: str) -> Optional[SubscriptionRecord]:
        """Get a user's subscription regardless of status."""
        results = self.db.execute(
            "SELECT * FROM subscriptions WHERE user_id = ?",
            (user_id,)
        )
        return SubscriptionRecord.from_row(results[0]) if results else None

    def get_active(self, user_id: str) -> Optional[SubscriptionRecord]:
        results = self.db.execute(
            "SELECT * FROM subscriptions WHERE user_id = ? AND status = 'active'",
            (user_id,)
        )
        return SubscriptionRecord.from_row(results[0]) if results else None

    def set_tier(
        self,
        user_id: str,
        tier: str,
        now: Optional[datetime] = None,
    ) -> SubscriptionRecord:
        """Create or replace the user's subscription with an active one on `tier`."""
        now = now or datetime.now(timezone.utc)
        record = SubscriptionRecord(
            user_id=user_id,
            tier=tier,
            status="active",
            current_period_start=now.isoformat(),
            current_period_end=(now + timedelta(days=SUBSCRIPTION_PERIOD_DAYS)).isoformat(),
            created_at=now.isoformat(),
            updated_at=now.isoformat(),
        )
        self.db.execute(
            """INSERT INTO subscriptions
               (user_id, tier, status, stripe_subscription_id, stripe_customer_id,
                current_period_start, current_period_end, cancel_at_period_end,
                created_at, updated_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT (user_id) DO UPDATE SET
                 tier = excluded.tier,
                 status = excluded.status,
                 current_period_start = excluded.current_period_start,
                 current_period_end = excluded.current_period_end,
                 cancel_at_period_end = 0,
                 updated_at = excluded.updated_at""",
            record.to_db_tuple()
        )
        logger.info("subscription_tier_set", user_id=user_id, tier=tier)
        return self.get(user_id) or record

    def cancel(self, user_id: str) -> Optional[SubscriptionRecord]:
        """Mark the subscription canceled. Returns None if the user has none."""
        if self.get(user_id) is None:
            return None
        self.db.execute(
            "UPDATE subscriptions SET status = 'canceled', updated_at = ? WHERE user_id = ?",
            (utc_now_iso(), user_id)
        )
        logger.info("subscription_canceled", user_id=user_id)
        return self.get(user_id)

    def mark_cancel_at_period_end(self, user_id: str) -> None:
        self.db.execute(
            "UPDATE subscriptions SET cancel_at_period_end = 1, updated_at = ? WHERE user_id = ?",
            (utc_now_iso(), user_id)
        )
        logger.info("subscription_cancel_scheduled", user_id=user_id)


class UsageRepository:
    """Repository for usage records."""

    def __init__(self, db: Optional[Database] = None):
        self.db = db or get_database()

    def create(self, record: UsageRecord) -> UsageRecord:
        self.db.execute(
            """INSERT INTO usage_tracking (id, user_id, action_type, credits_used, created_at)
               VALUES (?, ?, ?, ?, ?)""",
            record.to_db_tuple()
        )
        logger.debug("usage_record_created", user_id=record.user_id, action_type=record.action_type)
        return record

    def count_since(self, user_id: str, since: datetime) -> int:
        """Number of jobs recorded for a user at or after `since`."""
        results = self.db.execute(
            "SELECT COUNT(*) as cnt FROM usage_tracking WHERE user_id = ? AND created_at >= ?",
            (user_id, since.isoformat())
        )
        return results[0]["cnt"] if results else 0

    def credits_since(self, user_id: str, since: datetime) -> int:
        results = self.db.execute(
            "SELECT SUM(credits_used) as credits FROM usage_tracking WHERE user_id = ? AND created_at >= ?",
            (user_id, since.isoformat())
        )
        return (results[0].get("credits") or 0) if results else 0

    def total_credits(self, user_id: str) -> int:
        results = self.db.execute(
            "SELECT SUM(credits_used) as credits FROM usage_tracking WHERE user_id = ?",
            (user_id,)
        )
        return (results[0].get("credits") or 0) if results else 0

    def delete_for_user(self, user_id: str) -> int:
        """Delete all usage for a user. Returns how many rows were removed."""
        count_result = self.db.execute(
            "SELECT COUNT(*) as cnt FROM usage_tracking WHERE user_id = ?",
            (user_id,)
        )
        count = count_result[0]["cnt"] if count_result else 0
        self.db.execute("DELETE FROM usage_tracking WHERE user_id = ?", (user_id,))
        logger.info("usage_reset", user_id=user_id, count=count)
        return count


class ContentRepository:
    """Repository for saved content and its per-platform output."""

    def __init__(self, db: Optional[Database] = None):
        self.db = db or get_database()

    def create(self, content: ContentRecord) -> ContentRecord:
        """Insert the content row and all platform rows in one transaction."""
        with self.db.connection() as conn:
            if self.db.is_postgres:
                cursor = conn.cursor()
                cursor.execute(
                    """INSERT INTO content
                       (id, user_id, title, original_content, content_type,
                        platforms_generated, created_at, updated_at)
                       VALUES (%s, %s, %s, %s, %s, %s, %s, %s)""",
                    content.to_db_tuple()
                )
                cursor.executemany(
                    """INSERT INTO platform_content
                       (id, content_id, platform, generated_text, metadata, created_at)
                       VALUES (%s, %s, %s, %s, %s, %s)""",
                    [p.to_db_tuple() for p in content.platform_content]
                )
            else:
                conn.execute(
                    """INSERT INTO content
                       (id, user_id, title, original_content, content_type,
                        platforms_generated, created_at, updated_at)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                    content.to_db_tuple()
                )
                conn.executemany(
                    """INSERT INTO platform_content
                       (id, content_id, platform, generated_text, metadata, created_at)
                       VALUES (?, ?, ?, ?, ?, ?)""",
                    [p.to_db_tuple() for p in content.platform_content]
                )

        logger.info(
            "content_saved",
            content_id=content.id,
            user_id=content.user_id,
            platforms=len(content.platform_content),
        )
        return content

    def get(self, content_id: str) -> Optional[ContentRecord]:
        results = self.db.execute("SELECT * FROM content WHERE id = ?", (content_id,))
        if not results:
            return None
        content = ContentRecord.from_row(results[0])
        content.platform_content = self._platform_rows(content.id)
        return content

    def list_for_user(self, user_id: str, limit: int = 50, offset: int = 0) -> List[ContentRecord]:
        """A user's content, newest first, with platform rows attached."""
        results = self.db.execute(
            "SELECT * FROM content WHERE user_id = ? ORDER BY created_at DESC LIMIT ? OFFSET ?",
            (user_id, limit, offset)
        )
        items = [ContentRecord.from_row(r) for r in results]
        for item in items:
            item.platform_content = self._platform_rows(item.id)
        return items

    def count_for_user(self, user_id: str) -> int:
        results = self.db.execute(
            "SELECT COUNT(*) as cnt FROM content WHERE user_id = ?",
            (user_id,)
        )
        return results[0]["cnt"] if results else 0

    def get_user_stats(self, user_id: str) -> Dict[str, Any]:
        """Job and platform totals across all of a user's content."""
        results = self.db.execute(
            "SELECT platforms_generated FROM content WHERE user_id = ?",
            (user_id,)
        )
        platforms = [json_value(r["platforms_generated"]) or [] for r in results]
        return {
            "total_content_jobs": len(results),
            "platforms_optimized": sum(len(p) for p in platforms),
        }

    def _platform_rows(self, content_id: str) -> List[PlatformContentRecord]:
        results = self.db.execute(
            "SELECT * FROM platform_content WHERE content_id = ? ORDER BY created_at ASC",
            (content_id,)
        )
        return [PlatformContentRecord.from_row(r) for r in results]


class PreferencesRepository:
    """Repository for user preferences."""

    def __init__(self, db: Optional[Database] = None):
        self.db = db or get_database()

    def get(self, user_id: str) -> PreferencesRecord:
        """Stored preferences, or the defaults if none were saved."""
        results = self.db.execute(
            "SELECT * FROM user_preferences WHERE user_id = ?",
            (user_id,)
        )
        return PreferencesRecord.from_row(results[0]) if results else PreferencesRecord(user_id=user_id)

    def upsert(self, preferences: PreferencesRecord) -> PreferencesRecord:
        self.db.execute(
            """INSERT INTO user_preferences
               (user_id, email_notifications, marketing_emails,
                default_content_type, default_processing_speed, updated_at)
               VALUES (?, ?, ?, ?, ?, ?)
               ON CONFLICT (user_id) DO UPDATE SET
                 email_notifications = excluded.email_notifications,
                 marketing_emails = excluded.marketing_emails,
                 default_content_type = excluded.default_content_type,
                 default_processing_speed = excluded.default_processing_speed,
                 updated_at = excluded.updated_at""",
            preferences.to_db_tuple()
        )
        logger.info("preferences_saved", user_id=preferences.user_id)
        return self.get(preferences.user_id)
