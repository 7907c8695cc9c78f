"""Shared HTTP helpers used by the version fetchers.

Encapsulates request error handling so fetchers never deal with transport
exceptions directly: every failure surfaces as a NetworkError. The async
client wraps a single aiohttp session; the blocking helper uses requests for
one-off lookups outside the event loop.
"""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, Optional

import aiohttp
import requests

from constants import Constants
from common.errors import NetworkError
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer

logger = logging.getLogger(__name__)


class HttpClient:
    """Async GET client shared by all fetches of one upgrade batch."""

    def __init__(
        self,
        timeout: Optional[float] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        """Initialize the client.

        Args:
            timeout: Total request timeout in seconds; None waits indefinitely.
            headers: Extra headers sent with every request.
        """
        if timeout is None:
            timeout = Constants.REQUEST_TIMEOUT
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._headers = {"User-Agent": Constants.USER_AGENT}
        if headers:
            self._headers.update(headers)
        self._session: Optional[aiohttp.ClientSession] = None

    async def start(self) -> None:
        """Start the HTTP session."""
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=self._timeout,
                headers=self._headers,
            )

    async def stop(self) -> None:
        """Stop the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None

    async def get_text(self, url: str, *, context: str) -> str:
        """GET a URL and return the body as text.

        Args:
            url: Target URL.
            context: Human-readable source tag for logs (e.g., "jsr", "github").

        Raises:
            NetworkError: On transport failure or a non-2xx status.
        """
        if self._session is None:
            await self.start()
        assert self._session is not None
        safe_target = safe_url(url)

        with Timer() as t:
            if is_debug_enabled(logger):
                logger.debug(
                    "HTTP request",
                    extra=extra_context(
                        event="http_request",
                        component="http_client",
                        action="GET",
                        target=safe_target,
                        context=context,
                    ),
                )
            try:
                async with self._session.get(url) as response:
                    status = response.status
                    body = await response.text()
            except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
                logger.error("%s connection error: %s", context, exc)
                raise NetworkError(
                    f"{context} request to {safe_target} failed: {exc}", url=url
                ) from exc
            except UnicodeDecodeError as exc:
                raise NetworkError(
                    f"{context} response from {safe_target} is not valid text", url=url
                ) from exc

        if is_debug_enabled(logger):
            logger.debug(
                "HTTP response",
                extra=extra_context(
                    event="http_response",
                    component="http_client",
                    action="GET",
                    outcome="success" if 200 <= status < 300 else "http_error",
                    status_code=status,
                    duration_ms=t.duration_ms(),
                    target=safe_target,
                    context=context,
                ),
            )
        if not 200 <= status < 300:
            raise NetworkError(
                f"{context} request to {safe_target} returned HTTP {status}",
                url=url,
                status=status,
            )
        return body

    async def get_json(self, url: str, *, context: str) -> Any:
        """GET a URL and decode the body as JSON.

        Raises:
            NetworkError: On transport failure, non-2xx status or malformed JSON.
        """
        text = await self.get_text(url, context=context)
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            if is_debug_enabled(logger):
                logger.debug(
                    "JSON decode error",
                    extra=extra_context(
                        event="parse",
                        component="http_client",
                        action="get_json",
                        outcome="json_decode_error",
                        target=safe_url(url),
                    ),
                )
            raise NetworkError(
                f"{context} response from {safe_url(url)} is not valid JSON",
                url=url,
            ) from exc

    async def __aenter__(self) -> "HttpClient":
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.stop()


async def fetch_text(url: str, *, context: str, client: Optional[HttpClient] = None) -> str:
    """GET text through ``client``, or through a short-lived client when None."""
    if client is not None:
        return await client.get_text(url, context=context)
    async with HttpClient() as temporary:
        return await temporary.get_text(url, context=context)


async def fetch_json(url: str, *, context: str, client: Optional[HttpClient] = None) -> Any:
    """GET JSON through ``client``, or through a short-lived client when None."""
    if client is not None:
        return await client.get_json(url, context=context)
    async with HttpClient() as temporary:
        return await temporary.get_json(url, context=context)


def safe_get_json(url: str, *, context: str, timeout: Optional[float] = None) -> Any:
    """Blocking GET that decodes a JSON body.

    Args:
        url: Target URL.
        context: Human-readable source tag for logs.
        timeout: Request timeout in seconds; defaults to Constants.REQUEST_TIMEOUT.

    Raises:
        NetworkError: On transport failure, non-200 status or malformed JSON.
    """
    safe_target = safe_url(url)
    try:
        res = requests.get(
            url,
            timeout=timeout if timeout is not None else Constants.REQUEST_TIMEOUT,
            headers={"User-Agent": Constants.USER_AGENT},
        )
    except requests.RequestException as exc:  # includes ConnectionError and Timeout
        logger.error("%s connection error: %s", context, exc)
        raise NetworkError(f"{context} request to {safe_target} failed: {exc}", url=url) from exc
    if res.status_code != 200:
        raise NetworkError(
            f"{context} request to {safe_target} returned HTTP {res.status_code}",
            url=url,
            status=res.status_code,
        )
    try:
        return res.json()
    except ValueError as exc:
        raise NetworkError(f"{context} response from {safe_target} is not valid JSON", url=url) from exc
