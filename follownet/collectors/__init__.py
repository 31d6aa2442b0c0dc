"""
API Collectors Package

Contains the collectors run against the X API. All collectors inherit
from BaseCollector and share one XClient, which implements request
pacing, retry logic and rate-limit window tracking.
"""

from follownet.collectors.base import BaseCollector
from follownet.collectors.users import UserCollector, collect_users
from follownet.collectors.links import FollowerLinkCollector, collect_follower_links

__all__ = [
    "BaseCollector",
    "UserCollector",
    "collect_users",
    "FollowerLinkCollector",
    "collect_follower_links",
]
