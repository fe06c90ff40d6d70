"""
Gateway HTTP transport.

Sends one signed field set to one endpoint and returns the raw body.
Transport errors and 5xx replies are retried in a bounded loop with a
constant delay; everything below 500 is handed back verbatim for the caller
to decode and verify.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Mapping, Optional

import httpx

from onopay.integrations.exceptions import NetworkFailureError

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[Any]]


class GatewayTransport:
    def __init__(
        self,
        timeout: float = 30.0,
        max_retries: int = 3,
        retry_delay: float = 2.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Optional[SleepFn] = None,
    ) -> None:
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._transport = transport
        self._sleep = sleep or asyncio.sleep

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport, follow_redirects=True)

    async def _send(self, client: httpx.AsyncClient, url: str, fields: Mapping[str, str], method: str) -> httpx.Response:
        if method == "POST":
            return await client.post(url, data=dict(fields))
        return await client.request(method, url, params=dict(fields))

    async def dispatch(self, url: str, fields: Mapping[str, str], method: str = "POST") -> str:
        method = method.upper()
        last_error: Optional[BaseException] = None
        attempts = 0

        for attempt in range(self.max_retries + 1):
            if attempt:
                logger.warning(
                    "Retrying %s %s (retry %d/%d) in %.1fs after: %s",
                    method, url, attempt, self.max_retries, self.retry_delay, last_error,
                )
                await self._sleep(self.retry_delay)

            attempts += 1
            try:
                async with self._client() as client:
                    response = await self._send(client, url, fields, method)
            except httpx.RequestError as e:
                last_error = e
                continue

            if response.status_code >= 500:
                last_error = httpx.HTTPStatusError(
                    f"Server error {response.status_code} from {url}",
                    request=response.request,
                    response=response,
                )
                continue

            logger.info(f"Gateway {method} {url} -> {response.status_code} after {attempts} attempt(s)")
            return response.text

        logger.error(f"Gateway {method} {url} failed after {attempts} attempts: {last_error}")
        raise NetworkFailureError(
            f"Network error after retries: {last_error}",
            last_error=last_error,
            attempts=attempts,
        )
