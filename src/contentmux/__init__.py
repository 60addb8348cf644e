"""
CONTENTMUX

Subscription tiers, usage limits and content history for the ContentMux
content repurposing service.
"""

__version__ = "1.0.0"
