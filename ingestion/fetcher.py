"""
Rate-limit aware HTTP GET with bounded retry and exponential backoff.

This is the single backoff policy of the pipeline. The catalog, document
metadata and document download calls all go through BackoffFetcher.fetch:

- HTTP 429 is retried, waiting until the ``x-amzn-RateLimit-Reset`` instant
  or the current backoff delay, whichever is later; the delay doubles after
  every rate-limited attempt
- Every other failure (non-2xx status, transport error) fails immediately
"""

import asyncio
import json
import math
import time
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from core.config import settings
from core.exceptions import FetchError, RetryExhaustedError

logger = logging.getLogger(__name__)

RATE_LIMIT_RESET_HEADER = "x-amzn-RateLimit-Reset"


class BackoffFetcher:
    """
    GET with retry on HTTP 429.

    Attributes:
        max_retries: Retries allowed after the first attempt (default: 5)
        initial_delay_ms: Backoff delay before the first retry (default: 1000)
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        max_retries: Optional[int] = None,
        initial_delay_ms: Optional[int] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.time
    ):
        self.client = client
        self.max_retries = settings.FETCH_MAX_RETRIES if max_retries is None else max_retries
        self.initial_delay_ms = (
            settings.FETCH_INITIAL_DELAY_MS if initial_delay_ms is None else initial_delay_ms
        )
        self._sleep = sleep
        self._clock = clock

    def _wait_ms(self, response: httpx.Response, delay_ms: int) -> int:
        raw_reset = response.headers.get(RATE_LIMIT_RESET_HEADER)
        try:
            reset = float(raw_reset) if raw_reset is not None else 1.0
        except ValueError:
            reset = 1.0
        if not math.isfinite(reset):
            reset = 1.0
        now_ms = self._clock() * 1000
        return int(max(reset * 1000 - now_ms, delay_ms))

    async def fetch(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None
    ) -> bytes:
        """
        GET ``url`` and return the response body.

        Raises:
            RetryExhaustedError: The upstream answered 429 on every attempt
            FetchError: Any other non-2xx status or transport failure
        """
        retries_left = self.max_retries
        delay_ms = self.initial_delay_ms

        while True:
            try:
                response = await self.client.get(url, headers=headers, params=params)
            except httpx.HTTPError as e:
                raise FetchError(
                    f"Error fetching URL {url}",
                    context={"url": url},
                    original_exception=e
                )

            if response.status_code == 429:
                if retries_left <= 0:
                    raise RetryExhaustedError(
                        f"Max retries reached for URL: {url}",
                        context={
                            "url": url,
                            "status_code": 429,
                            "retry_count": self.max_retries
                        }
                    )

                wait_ms = self._wait_ms(response, delay_ms)
                logger.warning(
                    f"Rate limited on {url}. Retrying in {wait_ms} ms "
                    f"({retries_left} retries left)"
                )
                await self._sleep(wait_ms / 1000)
                delay_ms *= 2
                retries_left -= 1
                continue

            if not response.is_success:
                raise FetchError(
                    f"Error fetching URL {url}: HTTP {response.status_code}",
                    context={
                        "url": url,
                        "status_code": response.status_code,
                        "response_body": response.text[:500]
                    }
                )

            return response.content

    async def fetch_json(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None
    ) -> Any:
        """Fetch and decode a JSON body."""
        body = await self.fetch(url, headers=headers, params=params)
        try:
            return json.loads(body)
        except ValueError as e:
            raise FetchError(
                "Failed to parse JSON response",
                context={"url": url, "response_body": body[:500]},
                original_exception=e
            )
