"""
Persistence Layer for ContentMux

Supports SQLite (dev) and PostgreSQL (production).
"""

from .database import Database, get_database
from .models import (
    ProfileRecord,
    SubscriptionRecord,
    UsageRecord,
    ContentRecord,
    PlatformContentRecord,
    PreferencesRecord,
)
from .repository import (
    ProfileRepository,
    SubscriptionRepository,
    UsageRepository,
    ContentRepository,
    PreferencesRepository,
)

__all__ = [
    "Database",
    "get_database",
    "ProfileRecord",
    "SubscriptionRecord",
    "UsageRecord",
    "ContentRecord",
    "PlatformContentRecord",
    "PreferencesRecord",
    "ProfileRepository",
    "SubscriptionRepository",
    "UsageRepository",
    "ContentRepository",
    "PreferencesRepository",
]
