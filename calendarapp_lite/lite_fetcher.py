"""HTTP client for downloading subscription ICS feeds - CalendarApp Lite version."""

import asyncio
import logging
import random
from typing import Any, NoReturn, Optional
from urllib.parse import urlparse

import httpx

from .config_loader import DEFAULT_USER_AGENT
from .exceptions import (
    LiteICSFetchError,
    LiteICSHTTPError,
    LiteICSNetworkError,
    LiteICSTimeoutError,
)

logger = logging.getLogger(__name__)

ACCEPT_HEADER = "text/calendar, application/ics, */*"

# Backoff calculation constants
MAX_BACKOFF_SECONDS = 30.0
JITTER_MIN_FACTOR = 0.1
JITTER_MAX_FACTOR = 0.3


def _raise_client_not_initialized() -> NoReturn:
    raise LiteICSFetchError("HTTP client not initialized")


def normalize_subscription_url(url: str) -> str:
    """Map ``webcal://`` / ``webcals://`` feed URLs to HTTPS."""
    stripped = url.strip()
    lowered = stripped.lower()
    if lowered.startswith("webcals://"):
        return "https://" + stripped[len("webcals://"):]
    if lowered.startswith("webcal://"):
        return "https://" + stripped[len("webcal://"):]
    return stripped


class LiteICSFetcher:
    """Async HTTP client that downloads one feed as decoded text.

    Any non-2xx response is a hard failure; the parser only ever sees text.
    """

    def __init__(self, settings: Any = None, client: Optional[httpx.AsyncClient] = None) -> None:
        """Initialize ICS fetcher.

        Args:
            settings: Application settings (``request_timeout``,
                ``max_retries``, ``retry_backoff_factor``, ``user_agent``)
            client: Optional externally owned client (not closed here)
        """
        self.settings = settings
        self.client: Optional[httpx.AsyncClient] = client
        self._owns_client = client is None
        self.request_timeout = float(getattr(settings, "request_timeout", 30))
        self.max_retries = int(getattr(settings, "max_retries", 2))
        self.backoff_factor = float(getattr(settings, "retry_backoff_factor", 1.5))
        self.user_agent = getattr(settings, "user_agent", None) or DEFAULT_USER_AGENT

        logger.debug("Lite ICS fetcher initialized (external client: %s)", not self._owns_client)

    async def __aenter__(self) -> "LiteICSFetcher":
        await self._ensure_client()
        return self

    async def __aexit__(self, _exc_type: Any, _exc_val: Any, _exc_tb: Any) -> None:
        await self.aclose()

    async def _ensure_client(self) -> None:
        if self.client is None or self.client.is_closed:
            timeout = httpx.Timeout(connect=10.0, read=self.request_timeout, write=10.0, pool=30.0)
            self.client = httpx.AsyncClient(timeout=timeout, follow_redirects=True)
            self._owns_client = True

    async def aclose(self) -> None:
        """Close the HTTP client if this fetcher created it."""
        if self.client is not None and self._owns_client and not self.client.is_closed:
            await self.client.aclose()
            logger.debug("Closed HTTP client")
        if self._owns_client:
            self.client = None

    def _validate_url(self, url: str) -> bool:
        """Only absolute HTTP(S) URLs with a hostname are fetched."""
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https"):
            logger.debug("Blocked non-HTTP(S) URL: %s", url)
            return False
        if not parsed.hostname:
            logger.debug("Blocked URL with missing hostname: %s", url)
            return False
        return True

    def _calculate_backoff(self, attempt: int) -> float:
        """Exponential backoff with jitter, capped at MAX_BACKOFF_SECONDS."""
        base_backoff = min(self.backoff_factor**attempt, MAX_BACKOFF_SECONDS)
        jitter = random.uniform(JITTER_MIN_FACTOR, JITTER_MAX_FACTOR) * base_backoff  # nosec B311 - jitter not cryptographic
        return base_backoff + jitter

    def request_headers(self) -> dict[str, str]:
        return {"Accept": ACCEPT_HEADER, "User-Agent": self.user_agent}

    async def fetch_text(self, url: str) -> str:
        """Download a feed and return its text.

        Args:
            url: Subscription URL (``webcal://`` is accepted)

        Returns:
            Decoded response body

        Raises:
            LiteICSFetchError: URL is not fetchable
            LiteICSHTTPError: Server answered with a non-2xx status
            LiteICSTimeoutError: Request timed out on every attempt
            LiteICSNetworkError: Connection failed on every attempt
        """
        target = normalize_subscription_url(url)
        if not self._validate_url(target):
            raise LiteICSFetchError(f"Unsupported subscription URL: {url}")

        await self._ensure_client()
        response = await self._get_with_retry(target)

        if not response.is_success:
            logger.warning(
                "Feed %s answered HTTP %d %s", target, response.status_code, response.reason_phrase
            )
            raise LiteICSHTTPError(
                f"Failed to fetch calendar: {response.status_code} {response.reason_phrase}",
                response.status_code,
            )

        content = response.text
        if "BEGIN:VCALENDAR" not in content:
            logger.warning("Content from %s does not appear to be valid ICS format", target)

        logger.debug("Fetched %d bytes from %s", len(response.content), target)
        return content

    async def _get_with_retry(self, url: str) -> httpx.Response:
        attempt = 0
        while True:
            if self.client is None:
                _raise_client_not_initialized()
            try:
                return await self.client.get(url, headers=self.request_headers(), follow_redirects=True)
            except httpx.TimeoutException as e:
                if attempt >= self.max_retries:
                    logger.warning("Timeout fetching %s after %d attempts", url, attempt + 1)
                    raise LiteICSTimeoutError(f"Request timeout after {self.request_timeout}s") from e
                failure: Exception = e
            except httpx.TransportError as e:
                if attempt >= self.max_retries:
                    logger.warning("Network error fetching %s after %d attempts: %s", url, attempt + 1, e)
                    raise LiteICSNetworkError(f"Network error: {e}") from e
                failure = e

            backoff_time = self._calculate_backoff(attempt)
            logger.warning(
                "Request failed (attempt %d/%d), retrying in %.1fs: %s",
                attempt + 1,
                self.max_retries + 1,
                backoff_time,
                failure,
            )
            await asyncio.sleep(backoff_time)
            attempt += 1
