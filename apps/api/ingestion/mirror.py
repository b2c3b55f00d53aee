"""
RSS-Bridge mirror client for fetching public profile posts.
"""

import asyncio
import logging
from typing import List, Optional

import httpx

from ingestion.types import (
    BRIDGE_NAMES,
    FetchFailureError,
    MirrorConfig,
    RawPost,
    UnsupportedPlatformError,
)

logger = logging.getLogger(__name__)


def bridge_name_for(platform: str) -> str:
    """Return the mirror bridge name for a platform or raise UnsupportedPlatformError."""
    bridge = BRIDGE_NAMES.get(str(platform or "").strip().lower())
    if not bridge:
        raise UnsupportedPlatformError(platform)
    return bridge


class MirrorFetcher:
    """Fetches a profile's posts from a ranked list of mirror instances."""

    def __init__(
        self,
        config: MirrorConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the fetcher.

        Args:
            config: Ranked endpoints and per-request timeout
            transport: Optional httpx transport (tests pass a MockTransport)
        """
        self.config = config
        self._transport = transport
        self._outbound = asyncio.Semaphore(max(int(config.max_concurrent_requests), 1))

    async def fetch(self, platform: str, username: str) -> List[RawPost]:
        """
        Return the raw items for one (platform, username) pair.

        Endpoints are tried once each, in order. The first response carrying
        an ``items`` list wins, even when that list is empty.
        """
        bridge = bridge_name_for(platform)

        async with httpx.AsyncClient(
            timeout=self.config.timeout_seconds,
            transport=self._transport,
        ) as client:
            for endpoint in self.config.endpoints:
                url = f"{endpoint}/feeds/{bridge}.json"
                try:
                    async with self._outbound:
                        response = await client.get(url, params={"u": username})
                    response.raise_for_status()
                    payload = response.json()
                except (httpx.HTTPError, ValueError) as exc:
                    logger.warning("Mirror instance %s failed for %s/%s: %s", endpoint, platform, username, exc)
                    continue

                items = payload.get("items") if isinstance(payload, dict) else None
                if not isinstance(items, list):
                    logger.warning("Mirror instance %s returned no items array for %s/%s", endpoint, platform, username)
                    continue

                return [item for item in items if isinstance(item, dict)]

        raise FetchFailureError(platform, username)
