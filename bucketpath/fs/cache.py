# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""
Freshness policy for cached attribute snapshots.

Snapshots are never evicted; staleness is checked lazily when an attribute
read wants to reuse one.
"""

import time
from dataclasses import dataclass

from ..client.properties import DEFAULT_CACHE_TTL


@dataclass(frozen=True)
class CacheConfig:
    """Per-filesystem cache settings. ``ttl`` is in seconds."""
    ttl: float = DEFAULT_CACHE_TTL


class AttributeCache:
    """
    Decides whether an attributes snapshot may still be used.

    One instance is held by the filesystem context and can be replaced there,
    for example by a cache with a fixed clock in tests.

    Attributes:
        clock (callable): Returns the current time in seconds
    """

    def __init__(self, clock=time.time):
        self.clock = clock

    def is_in_time(self, config: CacheConfig, snapshot) -> bool:
        """
        Check a snapshot against the configured TTL.

        Args:
            config (CacheConfig): The filesystem's cache settings
            snapshot: A snapshot with a ``fetch_time`` attribute, or None

        Returns:
            bool: True iff the snapshot exists and ``now - fetch_time <= ttl``
        """
        if snapshot is None:
            return False
        return self.clock() - snapshot.fetch_time <= config.ttl
