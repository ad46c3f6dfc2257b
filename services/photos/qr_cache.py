"""Bounded LRU memo for asset QR lookups."""

from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Awaitable, Callable, Optional, Tuple

LOGGER = logging.getLogger(__name__)

QRLookup = Callable[[str, str], Awaitable[Optional[str]]]
CacheKey = Tuple[str, str]

_MISSING = object()


class QRCodeCache:
    """Memoize `(company_id, asset_id) -> qr_code_url` lookups with least-recently-used eviction.

    Negative results (asset without a QR code, or not owned by the company)
    are cached too, so a batch of photos for one asset costs a single lookup
    either way.

    Args:
        lookup: Async function resolving a company and asset id to the QR URL (or None).
        max_entries: Maximum number of entries kept.
    """

    def __init__(self, lookup: QRLookup, max_entries: int = 256) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._lookup = lookup
        self.max_entries = max_entries
        self._entries: "OrderedDict[CacheKey, Optional[str]]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    async def get(self, company_id: str, asset_id: str) -> Optional[str]:
        """Return the cached QR URL for the company's asset, fetching it on a miss."""
        key = (company_id, asset_id)
        cached = self._entries.get(key, _MISSING)
        if cached is not _MISSING:
            self._entries.move_to_end(key)
            return cached  # type: ignore[return-value]

        qr_url = await self._lookup(company_id, asset_id)
        self._entries[key] = qr_url
        if len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            LOGGER.debug("QR cache evicted %s/%s", *evicted)
        return qr_url

    def invalidate(self, asset_id: str) -> None:
        """Forget an asset for every company, e.g. after its QR code changed."""
        for key in [key for key in self._entries if key[1] == asset_id]:
            del self._entries[key]

    def clear(self) -> None:
        self._entries.clear()
