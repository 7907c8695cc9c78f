"""Write-once cache of fetched version lists."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Tuple

from constants import CacheFamily
from common.logging_utils import extra_context, is_debug_enabled

logger = logging.getLogger(__name__)


class VersionCache:
    """Process-lifetime cache of newest-first version lists.

    Entries are keyed by (family, key) where the key is dialect specific:
    ``owner/repo`` for feed sources, the package name elsewhere. The first
    stored list for a key wins; there is no expiry and no invalidation.
    """

    def __init__(self) -> None:
        self._entries: Dict[Tuple[CacheFamily, str], List[str]] = {}

    def get(self, family: CacheFamily, key: str) -> Optional[List[str]]:
        """Return the cached list or None when the key was never fetched."""
        versions = self._entries.get((family, key))
        if versions is not None and is_debug_enabled(logger):
            logger.debug(
                "Version cache hit",
                extra=extra_context(
                    event="cache_hit",
                    component="version_cache",
                    family=family.value,
                    key=key,
                ),
            )
        return versions

    def set(self, family: CacheFamily, key: str, versions: List[str]) -> List[str]:
        """Store a list unless the key is already present.

        Returns:
            The list now held for the key, which is the earlier one if the key
            was already populated.
        """
        existing = self._entries.get((family, key))
        if existing is not None:
            return existing
        self._entries[(family, key)] = versions
        return versions

    def clear(self) -> None:
        """Drop every entry."""
        self._entries.clear()

    def stats(self) -> Dict[str, int]:
        """Entry counts per family."""
        counts: Dict[str, int] = {}
        for family, _ in self._entries:
            counts[family.value] = counts.get(family.value, 0) + 1
        return counts

    def __len__(self) -> int:
        return len(self._entries)


DEFAULT_CACHE = VersionCache()


def resolve_cache(cache: Optional[VersionCache]) -> VersionCache:
    """Return ``cache`` or the process-wide default."""
    return cache if cache is not None else DEFAULT_CACHE
