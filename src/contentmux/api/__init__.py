"""
CONTENTMUX - API Module

Production FastAPI server implementing:
- Pricing tiers
- Usage enforcement
- Subscriptions and Stripe billing
- Profiles, preferences and content history
"""

from .server import app, create_app

__all__ = ["app", "create_app"]
