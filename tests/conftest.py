"""
Pytest Configuration and Fixtures
"""

import os
import sys
import pytest

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(__file__)), 'src'))

# Set test environment
os.environ["API_KEY"] = "test-key-12345"
os.environ.pop("STRIPE_API_KEY", None)

from contentmux.persistence.database import Database
from contentmux.persistence.repository import (
    ContentRepository,
    PreferencesRepository,
    ProfileRepository,
    SubscriptionRepository,
    UsageRepository,
)
from contentmux.enforcement.gate import JobGate


@pytest.fixture
def db(tmp_path):
    """Fresh SQLite database file per test."""
    database = Database(f"sqlite:///{tmp_path / 'test.db'}")
    database.initialize()
    yield database
    database.close()


@pytest.fixture
def profiles(db):
    return ProfileRepository(db)


@pytest.fixture
def subscriptions(db):
    return SubscriptionRepository(db)


@pytest.fixture
def usage(db):
    return UsageRepository(db)


@pytest.fixture
def content(db):
    return ContentRepository(db)


@pytest.fixture
def preferences(db):
    return PreferencesRepository(db)


@pytest.fixture
def gate(subscriptions, usage):
    return JobGate(subscriptions, usage)
