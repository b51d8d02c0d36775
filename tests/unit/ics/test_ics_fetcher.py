"""Unit tests for the ICS feed HTTP client."""

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from assignmentbot.ics.exceptions import (
    ICSAuthError,
    ICSContentError,
    ICSFetchError,
    ICSNetworkError,
    ICSTimeoutError,
)
from assignmentbot.ics.fetcher import ICSFetcher, validate_ics_content
from assignmentbot.ics.models import ICSSource
from tests.fixtures.mock_ics_data import EMPTY_CALENDAR, ICSDataFactory

FEED_URL = "https://lms.example.edu/calendar/export.ics?token=secret"


def make_response(status_code=200, text="", content_type="text/calendar"):
    return httpx.Response(
        status_code,
        text=text,
        headers={"content-type": content_type},
        request=httpx.Request("GET", FEED_URL),
    )


@pytest.fixture
def mock_client():
    client = AsyncMock()
    client.is_closed = False
    return client


@pytest.fixture
def fetcher(test_settings, mock_client):
    fetcher = ICSFetcher(test_settings)
    fetcher.client = mock_client
    return fetcher


@pytest.fixture
def no_sleep():
    with patch("assignmentbot.ics.fetcher.asyncio.sleep", new_callable=AsyncMock) as sleep:
        yield sleep


class TestValidateICSContent:
    """Test checks applied to fetched calendar text."""

    @pytest.mark.unit
    def test_validate_ics_content_when_calendar_with_events_then_returned(self):
        content = ICSDataFactory.create_course_calendar()

        assert validate_ics_content(content) == content

    @pytest.mark.unit
    @pytest.mark.parametrize("content", [None, "", "   \r\n"])
    def test_validate_ics_content_when_empty_then_raises(self, content):
        with pytest.raises(ICSContentError, match="Empty content"):
            validate_ics_content(content)

    @pytest.mark.unit
    def test_validate_ics_content_when_not_calendar_then_raises(self):
        with pytest.raises(ICSContentError, match="valid ICS format"):
            validate_ics_content("<html><body>Login required</body></html>")

    @pytest.mark.unit
    def test_validate_ics_content_when_calendar_without_events_then_raises(self):
        with pytest.raises(ICSContentError, match="no events"):
            validate_ics_content(EMPTY_CALENDAR)


class TestICSFetcherClient:
    """Test HTTP client lifecycle."""

    @pytest.mark.asyncio
    async def test_ensure_client_creates_http_client(self, test_settings):
        with patch("httpx.AsyncClient") as client_class:
            fetcher = ICSFetcher(test_settings)
            await fetcher._ensure_client()

            client_class.assert_called_once()
            kwargs = client_class.call_args.kwargs
            assert kwargs["follow_redirects"] is True
            assert kwargs["verify"] is True
            assert kwargs["headers"]["User-Agent"].startswith(test_settings.app_name)
            assert "text/calendar" in kwargs["headers"]["Accept"]

    @pytest.mark.asyncio
    async def test_context_manager_closes_client(self, fetcher, mock_client):
        async with fetcher as active:
            assert active is fetcher

        mock_client.aclose.assert_awaited_once()


class TestValidateURL:
    """Test which feed URLs may be requested."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "url",
        [FEED_URL, "HTTPS://calendar.example.com/feed.ics", "https://93.184.216.34/feed.ics"],
    )
    def test_validate_url_when_public_https_then_allowed(self, fetcher, url):
        assert fetcher._validate_url(url) is True

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "url",
        [
            "http://calendar.example.com/feed.ics",
            "ftp://example.com/feed.ics",
            "file:///etc/passwd",
            "https:///feed.ics",
            "https://localhost:8080/feed.ics",
            "https://127.0.0.1/feed.ics",
            "https://192.168.1.20/feed.ics",
            "https://169.254.169.254/latest/meta-data",
        ],
    )
    def test_validate_url_when_local_or_unsupported_then_blocked(self, fetcher, url):
        assert fetcher._validate_url(url) is False


class TestFetchICS:
    """Test fetch_ics error mapping and retries."""

    @pytest.mark.asyncio
    @pytest.mark.critical_path
    async def test_fetch_ics_when_ok_then_success_response(self, fetcher, mock_client):
        body = ICSDataFactory.create_course_calendar()
        mock_client.get.return_value = make_response(text=body)

        response = await fetcher.fetch_ics(ICSSource(url=FEED_URL))

        assert response.success is True
        assert response.status_code == 200
        assert response.content == body
        assert response.content_length == len(body.encode("utf-8"))

    @pytest.mark.asyncio
    async def test_fetch_ics_when_url_blocked_then_403_without_request(self, fetcher, mock_client):
        response = await fetcher.fetch_ics(ICSSource(url="http://127.0.0.1/feed.ics"))

        assert response.success is False
        assert response.status_code == 403
        mock_client.get.assert_not_called()

    @pytest.mark.asyncio
    async def test_fetch_ics_when_custom_headers_then_sent(self, fetcher, mock_client):
        mock_client.get.return_value = make_response(text=EMPTY_CALENDAR)

        await fetcher.fetch_ics(ICSSource(url=FEED_URL, timeout=7, custom_headers={"X-Key": "1"}))

        mock_client.get.assert_awaited_once_with(FEED_URL, headers={"X-Key": "1"}, timeout=7)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [401, 403])
    async def test_fetch_ics_when_auth_rejected_then_raises_auth_error(
        self, fetcher, mock_client, status_code
    ):
        mock_client.get.return_value = make_response(status_code=status_code)

        with pytest.raises(ICSAuthError) as exc_info:
            await fetcher.fetch_ics(ICSSource(url=FEED_URL))

        assert exc_info.value.status_code == status_code

    @pytest.mark.asyncio
    async def test_fetch_ics_when_not_found_then_failed_response(self, fetcher, mock_client):
        mock_client.get.return_value = make_response(status_code=404)

        response = await fetcher.fetch_ics(ICSSource(url=FEED_URL))

        assert response.success is False
        assert response.status_code == 404
        assert "404" in response.error_message

    @pytest.mark.asyncio
    async def test_fetch_ics_when_body_empty_then_failed_response(self, fetcher, mock_client):
        mock_client.get.return_value = make_response(text="")

        response = await fetcher.fetch_ics(ICSSource(url=FEED_URL))

        assert response.success is False
        assert response.error_message == "Empty content received"

    @pytest.mark.asyncio
    async def test_fetch_ics_when_timeouts_persist_then_retries_and_raises(
        self, fetcher, mock_client, no_sleep, test_settings
    ):
        mock_client.get.side_effect = httpx.TimeoutException("timed out")

        with pytest.raises(ICSTimeoutError):
            await fetcher.fetch_ics(ICSSource(url=FEED_URL))

        assert mock_client.get.await_count == test_settings.max_retries + 1
        assert no_sleep.await_count == test_settings.max_retries

    @pytest.mark.asyncio
    async def test_fetch_ics_when_connection_fails_then_raises_network_error(
        self, fetcher, mock_client, no_sleep
    ):
        mock_client.get.side_effect = httpx.ConnectError("connection refused")

        with pytest.raises(ICSNetworkError):
            await fetcher.fetch_ics(ICSSource(url=FEED_URL))

    @pytest.mark.asyncio
    async def test_fetch_ics_when_transient_failure_then_retry_succeeds(
        self, fetcher, mock_client, no_sleep
    ):
        body = ICSDataFactory.create_course_calendar()
        mock_client.get.side_effect = [httpx.ConnectError("reset"), make_response(text=body)]

        response = await fetcher.fetch_ics(ICSSource(url=FEED_URL))

        assert response.success is True
        assert mock_client.get.await_count == 2
        no_sleep.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_fetch_ics_when_unexpected_error_then_raises_fetch_error(
        self, fetcher, mock_client
    ):
        mock_client.get.side_effect = RuntimeError("boom")

        with pytest.raises(ICSFetchError, match="boom"):
            await fetcher.fetch_ics(ICSSource(url=FEED_URL))


class TestFetchCalendarText:
    """Test the validated-text helper used by the assignment service."""

    @pytest.mark.asyncio
    @pytest.mark.critical_path
    async def test_fetch_calendar_text_when_ok_then_returns_body(self, fetcher, mock_client):
        body = ICSDataFactory.create_course_calendar()
        mock_client.get.return_value = make_response(text=body)

        assert await fetcher.fetch_calendar_text(ICSSource(url=FEED_URL)) == body

    @pytest.mark.asyncio
    async def test_fetch_calendar_text_when_http_error_then_raises(self, fetcher, mock_client):
        mock_client.get.return_value = make_response(status_code=500)

        with pytest.raises(ICSFetchError) as exc_info:
            await fetcher.fetch_calendar_text(ICSSource(url=FEED_URL))

        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_fetch_calendar_text_when_html_then_raises_content_error(
        self, fetcher, mock_client
    ):
        mock_client.get.return_value = make_response(
            text="<html>Sign in</html>", content_type="text/html"
        )

        with pytest.raises(ICSContentError):
            await fetcher.fetch_calendar_text(ICSSource(url=FEED_URL))
