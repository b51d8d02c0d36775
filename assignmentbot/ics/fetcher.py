"""HTTP client for downloading the assignment calendar feed."""

import asyncio
import ipaddress
import logging
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import httpx

from .exceptions import (
    ICSAuthError,
    ICSContentError,
    ICSFetchError,
    ICSNetworkError,
    ICSTimeoutError,
)
from .models import ICSResponse, ICSSource

logger = logging.getLogger(__name__)

CALENDAR_ENVELOPE_MARKER = "BEGIN:VCALENDAR"
EVENT_MARKER = "BEGIN:VEVENT"


def validate_ics_content(content: Optional[str]) -> str:
    """Check that fetched text looks like a calendar with at least one event.

    Args:
        content: Response body

    Returns:
        The content unchanged

    Raises:
        ICSContentError: If the body is empty or lacks the calendar/event markers
    """
    if not content or not content.strip():
        raise ICSContentError("Empty content received")

    upper = content.upper()
    if CALENDAR_ENVELOPE_MARKER not in upper:
        raise ICSContentError("Content does not appear to be valid ICS format")
    if EVENT_MARKER not in upper:
        raise ICSContentError("Calendar contains no events")

    return content


class ICSFetcher:
    """Async HTTP client for downloading ICS calendar files."""

    def __init__(self, settings: Any):
        """Initialize ICS fetcher.

        Args:
            settings: Application settings (request_timeout, max_retries,
                retry_backoff_factor, app_name)
        """
        self.settings = settings
        self.client: Optional[httpx.AsyncClient] = None

        logger.debug("ICS fetcher initialized")

    async def __aenter__(self) -> "ICSFetcher":
        """Async context manager entry."""
        await self._ensure_client()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self._close_client()

    async def _ensure_client(self) -> None:
        """Ensure HTTP client exists."""
        if self.client is None or self.client.is_closed:
            timeout = httpx.Timeout(
                connect=10.0, read=self.settings.request_timeout, write=10.0, pool=30.0
            )

            self.client = httpx.AsyncClient(
                timeout=timeout,
                follow_redirects=True,
                verify=True,
                headers={
                    "User-Agent": f"{self.settings.app_name}/1.0.0 ICS-Client",
                    "Accept": "text/calendar",
                    "Accept-Charset": "utf-8",
                    "Cache-Control": "no-cache",
                },
            )

    async def _close_client(self) -> None:
        """Close HTTP client."""
        if self.client and not self.client.is_closed:
            await self.client.aclose()

    def _validate_url(self, url: str) -> bool:
        """Reject URLs that are not HTTPS or that point at local/private addresses.

        Args:
            url: Feed URL supplied by the user

        Returns:
            True if the URL may be requested
        """
        try:
            parsed = urlparse(url)
        except ValueError as e:
            logger.warning(f"Malformed feed URL {url!r}: {e}")
            return False

        if parsed.scheme != "https":
            logger.warning(f"Blocked non-HTTPS scheme: {parsed.scheme!r}")
            return False

        hostname = parsed.hostname
        if not hostname:
            logger.warning(f"Blocked URL with empty hostname: {url}")
            return False

        if hostname.lower() == "localhost":
            logger.warning(f"Blocked localhost URL: {url}")
            return False

        try:
            ip = ipaddress.ip_address(hostname)
        except ValueError:
            return True

        if ip.is_private or ip.is_loopback or ip.is_link_local:
            logger.warning(f"Blocked private/localhost IP: {hostname}")
            return False
        return True

    async def fetch_ics(self, source: ICSSource) -> ICSResponse:
        """Download ICS content from the source.

        Args:
            source: Feed configuration

        Returns:
            ICSResponse; ``success`` is False for blocked URLs and non-auth
            HTTP errors

        Raises:
            ICSAuthError: HTTP 401/403
            ICSTimeoutError: The request timed out after all retries
            ICSNetworkError: Connection failures after all retries
            ICSFetchError: Anything unexpected
        """
        await self._ensure_client()

        if not self._validate_url(source.url):
            error_msg = "URL blocked for security reasons"
            logger.error(f"{error_msg} - {source.url}")
            return ICSResponse(success=False, error_message=error_msg, status_code=403)

        try:
            logger.debug(f"Fetching ICS from {source.url}")

            headers: Dict[str, str] = {}
            headers.update(source.custom_headers)

            response = await self._make_request_with_retry(source.url, headers, source.timeout)
            return self._create_response(response)

        except httpx.TimeoutException as e:
            logger.error(f"Timeout fetching ICS from {source.url}: {e}")
            raise ICSTimeoutError(f"Request timeout after {source.timeout}s")

        except httpx.HTTPStatusError as e:
            logger.error(f"HTTP error fetching ICS from {source.url}: {e.response.status_code}")

            if e.response.status_code == 401:
                raise ICSAuthError(
                    "Authentication failed - check the feed URL", e.response.status_code
                )
            if e.response.status_code == 403:
                raise ICSAuthError(
                    "Access forbidden - insufficient permissions", e.response.status_code
                )
            return ICSResponse(
                success=False,
                status_code=e.response.status_code,
                error_message=f"HTTP {e.response.status_code}: {e.response.reason_phrase}",
                headers=dict(e.response.headers),
            )

        except httpx.NetworkError as e:
            logger.error(f"Network error fetching ICS from {source.url}: {e}")
            raise ICSNetworkError(f"Network error: {e}")

        except Exception as e:
            logger.error(f"Unexpected error fetching ICS from {source.url}: {e}")
            raise ICSFetchError(f"Unexpected error: {e}")

    async def fetch_calendar_text(self, source: ICSSource) -> str:
        """Fetch the feed and return its validated text.

        Raises:
            ICSTimeoutError: The request timed out
            ICSFetchError: The request failed
            ICSContentError: The body is not a calendar with events
        """
        response = await self.fetch_ics(source)
        if not response.success:
            raise ICSFetchError(
                response.error_message or "Failed to fetch calendar", response.status_code
            )
        return validate_ics_content(response.content)

    async def _make_request_with_retry(
        self, url: str, headers: Dict[str, str], timeout: int
    ) -> httpx.Response:
        """Make HTTP request with retry logic.

        Args:
            url: URL to fetch
            headers: Request headers
            timeout: Request timeout

        Returns:
            HTTP response
        """
        last_exception: Optional[Exception] = None

        for attempt in range(self.settings.max_retries + 1):
            try:
                if self.client is None:
                    raise ICSFetchError("HTTP client not initialized")

                response = await self.client.get(url, headers=headers, timeout=timeout)
                response.raise_for_status()

                logger.debug(f"Successfully fetched ICS from {url} (attempt {attempt + 1})")
                return response

            except (httpx.TimeoutException, httpx.NetworkError) as e:
                last_exception = e

                if attempt < self.settings.max_retries:
                    backoff_time = self.settings.retry_backoff_factor**attempt
                    logger.warning(
                        f"Request failed (attempt {attempt + 1}/{self.settings.max_retries + 1}), "
                        f"retrying in {backoff_time:.1f}s: {e}"
                    )
                    await asyncio.sleep(backoff_time)
                else:
                    logger.error(f"All retry attempts failed for {url}")
                    raise

        if last_exception:
            raise last_exception
        raise ICSFetchError("Maximum retries exceeded")

    def _create_response(self, http_response: httpx.Response) -> ICSResponse:
        """Create ICS response from HTTP response."""
        headers = dict(http_response.headers)
        content = http_response.text
        content_type = headers.get("content-type", "").lower()

        if content_type and not any(ct in content_type for ct in ("text/calendar", "text/plain")):
            logger.warning(f"Unexpected content type: {content_type}")

        if not content or not content.strip():
            logger.error("Empty ICS content received")
            return ICSResponse(
                success=False,
                status_code=http_response.status_code,
                error_message="Empty content received",
                headers=headers,
            )

        logger.debug(f"Successfully fetched ICS content ({len(content)} bytes)")

        return ICSResponse(
            success=True,
            content=content,
            status_code=http_response.status_code,
            headers=headers,
        )
