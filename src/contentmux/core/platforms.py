"""
Target Platforms

The fixed set of social/media destinations content can be repurposed for.
"""

from enum import Enum
from typing import Any, Iterable, List, Optional


class Platform(Enum):
    """Repurposing targets."""
    TWITTER = "twitter"
    LINKEDIN = "linkedin"
    INSTAGRAM = "instagram"
    FACEBOOK = "facebook"
    YOUTUBE = "youtube"
    TIKTOK = "tiktok"


ALL_PLATFORMS = tuple(Platform)

# Used when a request names no platforms at all
DEFAULT_PLATFORMS = (Platform.LINKEDIN, Platform.TWITTER)


def parse_platform(value: Any) -> Optional[Platform]:
    """Map an exact platform name to a Platform, or None."""
    if isinstance(value, Platform):
        return value
    if not isinstance(value, str):
        return None
    try:
        return Platform(value)
    except ValueError:
        return None


def filter_valid_platforms(values: Optional[Iterable[Any]]) -> List[Platform]:
    """
    Keep only recognised platforms, preserving request order.

    A missing list means "every platform". Duplicates are dropped.
    """
    if values is None:
        return list(ALL_PLATFORMS)

    result: List[Platform] = []
    for value in values:
        platform = parse_platform(value)
        if platform is not None and platform not in result:
            result.append(platform)
    return result
