"""Liveness check for cited source URLs."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional
from urllib.parse import urlparse

import httpx


logger = logging.getLogger(__name__)


DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; TriviaPipeline-Bot/1.0)"


class SourceUrlChecker:
    """
    Verify a source URL answers with 2xx/3xx without downloading its body.

    Uses GET rather than HEAD (some servers mishandle HEAD) and streams the
    response, closing it as soon as the status line and headers arrive.
    Any network error or timeout counts as unreachable. ``timeout`` bounds
    the whole check, redirects included, not only each connect or read.
    """

    def __init__(
        self,
        timeout: float = 5.0,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.timeout = timeout
        self.user_agent = user_agent
        self._transport = transport

    @staticmethod
    def is_http_url(url: str) -> bool:
        try:
            parsed = urlparse(str(url or "").strip())
        except ValueError:
            return False
        return parsed.scheme in {"http", "https"} and bool(parsed.netloc)

    async def status_of(self, url: str) -> Optional[int]:
        """HTTP status after redirects, or None when the request failed."""
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                headers={"User-Agent": self.user_agent},
                transport=self._transport,
            ) as client:
                async with client.stream("GET", url) as response:
                    return response.status_code
        except httpx.HTTPError as exc:
            logger.warning(f"Source URL check failed for {url}: {exc}")
            return None

    async def is_reachable(self, url: str) -> bool:
        if not self.is_http_url(url):
            return False
        try:
            status = await asyncio.wait_for(self.status_of(url), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Source URL check timed out after {self.timeout}s: {url}")
            return False
        return status is not None and 200 <= status < 400
