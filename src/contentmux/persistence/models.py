"""
Data Models for Persistence Layer

Row-shaped records for each table. Timestamps are ISO-8601 UTC strings.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import json
import uuid


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_id() -> str:
    return str(uuid.uuid4())


def _ts(value: Any) -> Optional[str]:
    """PostgreSQL returns datetimes, SQLite returns strings."""
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def json_value(value: Any) -> Any:
    if isinstance(value, str) and value:
        return json.loads(value)
    return value


@dataclass
class ProfileRecord:
    """Persisted user profile."""
    id: str
    email: str
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    stripe_customer_id: Optional[str] = None
    created_at: str = field(default_factory=utc_now_iso)
    updated_at: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "full_name": self.full_name,
            "avatar_url": self.avatar_url,
            "stripe_customer_id": self.stripe_customer_id,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def to_db_tuple(self) -> tuple:
        return (
            self.id,
            self.email,
            self.full_name,
            self.avatar_url,
            self.stripe_customer_id,
            self.created_at,
            self.updated_at,
        )

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "ProfileRecord":
        return cls(
            id=row["id"],
            email=row["email"],
            full_name=row.get("full_name"),
            avatar_url=row.get("avatar_url"),
            stripe_customer_id=row.get("stripe_customer_id"),
            created_at=_ts(row["created_at"]),
            updated_at=_ts(row["updated_at"]),
        )


@dataclass
class SubscriptionRecord:
    """Persisted subscription (one per user)."""
    user_id: str
    tier: str
    status: str = "active"
    stripe_subscription_id: Optional[str] = None
    stripe_customer_id: Optional[str] = None
    current_period_start: Optional[str] = None
    current_period_end: Optional[str] = None
    cancel_at_period_end: bool = False
    created_at: str = field(default_factory=utc_now_iso)
    updated_at: str = field(default_factory=utc_now_iso)

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "tier": self.tier,
            "status": self.status,
            "stripe_subscription_id": self.stripe_subscription_id,
            "stripe_customer_id": self.stripe_customer_id,
            "current_period_start": self.current_period_start,
            "current_period_end": self.current_period_end,
            "cancel_at_period_end": self.cancel_at_period_end,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def to_db_tuple(self) -> tuple:
        return (
            self.user_id,
            self.tier,
            self.status,
            self.stripe_subscription_id,
            self.stripe_customer_id,
            self.current_period_start,
            self.current_period_end,
            1 if self.cancel_at_period_end else 0,
            self.created_at,
            self.updated_at,
        )

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "SubscriptionRecord":
        return cls(
            user_id=row["user_id"],
            tier=row["tier"],
            status=row.get("status", "active"),
            stripe_subscription_id=row.get("stripe_subscription_id"),
            stripe_customer_id=row.get("stripe_customer_id"),
            current_period_start=_ts(row.get("current_period_start")),
            current_period_end=_ts(row.get("current_period_end")),
            cancel_at_period_end=bool(row.get("cancel_at_period_end", 0)),
            created_at=_ts(row["created_at"]),
            updated_at=_ts(row["updated_at"]),
        )


@dataclass
class UsageRecord:
    """One content job counted against a user's quota."""
    user_id: str
    action_type: str = "content_creation"
    credits_used: int = 1
    id: str = field(default_factory=new_id)
    created_at: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "action_type": self.action_type,
            "credits_used": self.credits_used,
            "created_at": self.created_at,
        }

    def to_db_tuple(self) -> tuple:
        return (self.id, self.user_id, self.action_type, self.credits_used, self.created_at)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "UsageRecord":
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            action_type=row["action_type"],
            credits_used=row.get("credits_used", 1),
            created_at=_ts(row["created_at"]),
        )


@dataclass
class PlatformContentRecord:
    """Generated text for one platform."""
    content_id: str
    platform: str
    generated_text: str
    metadata: Optional[Dict[str, Any]] = None
    id: str = field(default_factory=new_id)
    created_at: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "content_id": self.content_id,
            "platform": self.platform,
            "generated_text": self.generated_text,
            "metadata": self.metadata,
            "created_at": self.created_at,
        }

    def to_db_tuple(self) -> tuple:
        return (
            self.id,
            self.content_id,
            self.platform,
            self.generated_text,
            json.dumps(self.metadata) if self.metadata else None,
            self.created_at,
        )

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "PlatformContentRecord":
        return cls(
            id=row["id"],
            content_id=row["content_id"],
            platform=row["platform"],
            generated_text=row["generated_text"],
            metadata=json_value(row.get("metadata")),
            created_at=_ts(row["created_at"]),
        )


@dataclass
class ContentRecord:
    """A saved piece of source content and what was generated from it."""
    user_id: str
    title: str
    original_content: str
    content_type: str
    platforms_generated: List[str]
    id: str = field(default_factory=new_id)
    created_at: str = field(default_factory=utc_now_iso)
    updated_at: str = field(default_factory=utc_now_iso)
    platform_content: List[PlatformContentRecord] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "original_content": self.original_content,
            "content_type": self.content_type,
            "platforms_generated": self.platforms_generated,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "platform_content": [p.to_dict() for p in self.platform_content],
        }

    def to_db_tuple(self) -> tuple:
        return (
            self.id,
            self.user_id,
            self.title,
            self.original_content,
            self.content_type,
            json.dumps(self.platforms_generated),
            self.created_at,
            self.updated_at,
        )

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "ContentRecord":
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            title=row["title"],
            original_content=row["original_content"],
            content_type=row["content_type"],
            platforms_generated=json_value(row["platforms_generated"]) or [],
            created_at=_ts(row["created_at"]),
            updated_at=_ts(row["updated_at"]),
        )


@dataclass
class PreferencesRecord:
    """Per-user settings; defaults apply until the user saves any."""
    user_id: str
    email_notifications: bool = True
    marketing_emails: bool = False
    default_content_type: str = "blog"
    default_processing_speed: str = "balanced"
    updated_at: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "email_notifications": self.email_notifications,
            "marketing_emails": self.marketing_emails,
            "default_content_type": self.default_content_type,
            "default_processing_speed": self.default_processing_speed,
        }

    def to_db_tuple(self) -> tuple:
        return (
            self.user_id,
            1 if self.email_notifications else 0,
            1 if self.marketing_emails else 0,
            self.default_content_type,
            self.default_processing_speed,
            self.updated_at,
        )

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "PreferencesRecord":
        return cls(
            user_id=row["user_id"],
            email_notifications=bool(row.get("email_notifications", 1)),
            marketing_emails=bool(row.get("marketing_emails", 0)),
            default_content_type=row.get("default_content_type", "blog"),
            default_processing_speed=row.get("default_processing_speed", "balanced"),
            updated_at=_ts(row["updated_at"]),
        )
