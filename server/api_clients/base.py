"""
Rate-Limited API Client Base

Shared plumbing for third-party REST adapters: one aiohttp session, one
RateLimitedQueue, a fixed per-call timeout and a descriptive User-Agent.
Subclasses only build URLs, parameters and payloads.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

import aiohttp

from eddn_stream.core.types import RequestError
from rate_queue import RateLimitedQueue

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "EliteMiningDataServer/1.0.0"


class RateLimitedApiClient:
    """
    Base class for adapters that must respect a per-service request rate.

    Every request goes through this client's queue, so calls made
    concurrently by different callers still reach the service one at a time
    and at least min_delay_ms apart.

    Args:
        base_url:        Service root, e.g. "https://www.edsm.net/api-v1/".
        min_delay_ms:    Minimum gap between request starts.
        timeout_seconds: Total timeout for a single request.
        user_agent:      Value of the User-Agent header.
        session:         Externally managed aiohttp session (not closed here).
    """

    service = "api"

    def __init__(
        self,
        base_url: str,
        *,
        min_delay_ms: float,
        timeout_seconds: float = 30.0,
        user_agent: str = DEFAULT_USER_AGENT,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        if not base_url:
            raise ValueError("base_url must be non-empty")
        self.base_url = base_url
        self.timeout_seconds = timeout_seconds
        self.user_agent = user_agent
        self._queue = RateLimitedQueue(min_delay_ms, name=self.service)
        self._session = session
        self._owns_session = session is None

    @property
    def queue(self) -> RateLimitedQueue:
        return self._queue

    async def __aenter__(self) -> RateLimitedApiClient:
        self._get_session()
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.close()

    async def close(self) -> None:
        """Cancel queued calls and close the session if this client opened it."""
        await self._queue.close()
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(headers={"User-Agent": self.user_agent})
        return self._session

    def url_for(self, path: str = "") -> str:
        if not path:
            return self.base_url
        return f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"

    # ── Queued requests ───────────────────────────────────────────────────────

    async def get(self, path: str, params: Optional[dict[str, Any]] = None) -> Any:
        """Queue a GET and return the decoded JSON body."""
        url = self.url_for(path)
        return await self._queue.enqueue(lambda: self._execute("GET", url, params=params))

    async def post_json(self, path: str, payload: dict[str, Any]) -> Any:
        """Queue a JSON POST and return the decoded JSON body."""
        url = self.url_for(path)
        return await self._queue.enqueue(lambda: self._execute("POST", url, payload=payload))

    async def _execute(
        self,
        method: str,
        url: str,
        *,
        params: Optional[dict[str, Any]] = None,
        payload: Optional[dict[str, Any]] = None,
    ) -> Any:
        session = self._get_session()
        try:
            async with session.request(
                method,
                url,
                params=params,
                json=payload,
                headers={"User-Agent": self.user_agent},
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
            ) as resp:
                resp.raise_for_status()
                return await resp.json(content_type=None)

        except aiohttp.ClientResponseError as e:
            logger.error(f"{self.service} API request failed: {e.status} {e.message}")
            raise RequestError(
                f"{self.service} returned HTTP {e.status}",
                service=self.service,
                url=url,
                status=e.status,
            ) from e

        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.error(f"{self.service} API request failed: {e!r}")
            raise RequestError(
                f"{self.service} request failed: {e!r}",
                service=self.service,
                url=url,
            ) from e
