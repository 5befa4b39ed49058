"""Yahoo crumb cache.

Some Yahoo endpoints want a crumb that is only handed out to a client that
already carries the consent cookies, so obtaining one is a two-step
handshake. The crumb is kept for the life of the process.
"""

import asyncio
import logging
from typing import Optional

import httpx

from waybar_finance.constants import YAHOO_WARMUP_URL, YAHOO_CRUMB_URL
from waybar_finance.errors import CredentialError

logger = logging.getLogger(__name__)


class CrumbCache:
    """Lazily fetched, memoized crumb shared by every fetch task.

    The lock covers check-and-fill, so concurrent callers trigger at most one
    handshake and the rest read its result. A failed handshake leaves the
    cache empty and the next caller tries again.
    """

    def __init__(self):
        self._lock = asyncio.Lock()
        self._crumb: Optional[str] = None
        self.verified = False
        self.handshakes = 0

    @property
    def crumb(self) -> Optional[str]:
        return self._crumb

    async def get(self, client: httpx.AsyncClient) -> str:
        async with self._lock:
            if self._crumb is None:
                self._crumb = await self._handshake(client)
                self.verified = True
            return self._crumb

    async def _handshake(self, client: httpx.AsyncClient) -> str:
        self.handshakes += 1
        logger.debug("crumb handshake #%d", self.handshakes)
        try:
            # Warm-up only sets cookies; fc.yahoo.com usually answers 404
            await client.get(YAHOO_WARMUP_URL)
            resp = await client.get(YAHOO_CRUMB_URL)
        except httpx.HTTPError as e:
            raise CredentialError(f"Crumb handshake failed: {e}") from e

        if not resp.is_success:
            raise CredentialError(f"Crumb handshake failed: HTTP {resp.status_code}")
        crumb = resp.text.strip()
        if not crumb or "<" in crumb:
            raise CredentialError("Crumb handshake returned no crumb")
        return crumb
