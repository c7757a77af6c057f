"""
Tests for the single-stream HTTP transport.

Test coverage:
- Successful streamed download
- HTTP errors mapped to typed exceptions
- Timeouts and connection errors
- Incomplete bodies
- Whole-request retries from configuration
"""

import asyncio
from unittest.mock import patch

import aiohttp
import pytest

from build_cache.config import load_config_from_dict, set_config
from build_cache.download.http_client import (
    _download_once,
    create_session,
    download_cache_http_client,
    get_http_retry_config,
)
from build_cache.errors import (
    ConnectionError as CacheConnectionError,
    DownloadError,
    NotFoundError,
    ServiceUnavailableError,
    TimeoutError as CacheTimeoutError,
)

LOCATION = "http://www.actionscache.test/download?token=secret"


@pytest.fixture(autouse=True)
def no_retry_delay():
    """Keep the configured retry count but skip the wait between attempts."""
    set_config(load_config_from_dict({"http_retry": {"max_attempts": 2, "delay_seconds": 0}}))


class TestDownloadOnce:
    @pytest.mark.asyncio
    async def test_streams_body_to_file(
        self, tmp_path, make_session, make_context, make_response
    ):
        body = b"archive-bytes" * 1000
        session = make_session(lambda url: make_context(make_response(body)))
        destination = tmp_path / "cache.tzst"

        written = await _download_once(session, LOCATION, destination)

        assert written == len(body)
        assert destination.read_bytes() == body

    @pytest.mark.asyncio
    async def test_missing_content_length_accepted(
        self, tmp_path, make_session, make_context, make_response
    ):
        session = make_session(
            lambda url: make_context(make_response(b"abc", content_length=None))
        )

        assert await _download_once(session, LOCATION, tmp_path / "a") == 3

    @pytest.mark.asyncio
    async def test_not_found(self, tmp_path, make_session, make_context, make_response):
        session = make_session(lambda url: make_context(make_response(status=404)))

        with pytest.raises(NotFoundError) as exc_info:
            await _download_once(session, LOCATION, tmp_path / "a")

        assert exc_info.value.context["http_status"] == 404
        assert "secret" not in exc_info.value.context["archive_location"]

    @pytest.mark.asyncio
    async def test_incomplete_body(
        self, tmp_path, make_session, make_context, make_response
    ):
        session = make_session(
            lambda url: make_context(make_response(b"short", content_length=100))
        )

        with pytest.raises(DownloadError, match="Incomplete download. Expected file size: 100"):
            await _download_once(session, LOCATION, tmp_path / "a")

    @pytest.mark.asyncio
    async def test_timeout(self, tmp_path, make_session, make_context):
        session = make_session(lambda url: make_context(error=asyncio.TimeoutError()))

        with pytest.raises(CacheTimeoutError):
            await _download_once(session, LOCATION, tmp_path / "a")

    @pytest.mark.asyncio
    async def test_connection_error(self, tmp_path, make_session, make_context):
        session = make_session(
            lambda url: make_context(error=aiohttp.ClientConnectionError("refused"))
        )

        with pytest.raises(CacheConnectionError) as exc_info:
            await _download_once(session, LOCATION, tmp_path / "a")

        assert isinstance(exc_info.value.cause, aiohttp.ClientConnectionError)


class TestDownloadCacheHttpClient:
    @pytest.mark.asyncio
    async def test_download_creates_parent_dirs(
        self, tmp_path, make_session, make_context, make_response
    ):
        body = b"x" * 2048
        session = make_session(lambda url: make_context(make_response(body)))
        destination = tmp_path / "nested" / "dir" / "cache.tgz"

        with patch(
            "build_cache.download.http_client.create_session", return_value=session
        ):
            await download_cache_http_client(LOCATION, str(destination))

        assert destination.read_bytes() == body
        session.get.assert_called_once_with(LOCATION)

    @pytest.mark.asyncio
    async def test_retries_transient_failure(
        self, tmp_path, make_session, make_context, make_response
    ):
        """A 503 followed by success downloads on the second attempt."""
        responses = iter([make_response(status=503), make_response(b"data")])
        session = make_session(lambda url: make_context(next(responses)))
        destination = tmp_path / "cache.tgz"

        with patch(
            "build_cache.download.http_client.create_session", return_value=session
        ):
            await download_cache_http_client(LOCATION, destination)

        assert session.get.call_count == 2
        assert destination.read_bytes() == b"data"

    @pytest.mark.asyncio
    async def test_gives_up_after_configured_attempts(
        self, tmp_path, make_session, make_context, make_response
    ):
        session = make_session(lambda url: make_context(make_response(status=503)))

        with patch(
            "build_cache.download.http_client.create_session", return_value=session
        ):
            with pytest.raises(ServiceUnavailableError):
                await download_cache_http_client(LOCATION, tmp_path / "cache.tgz")

        assert session.get.call_count == 2

    @pytest.mark.asyncio
    async def test_permanent_failure_not_retried(
        self, tmp_path, make_session, make_context, make_response
    ):
        session = make_session(lambda url: make_context(make_response(status=404)))

        with patch(
            "build_cache.download.http_client.create_session", return_value=session
        ):
            with pytest.raises(NotFoundError):
                await download_cache_http_client(LOCATION, tmp_path / "cache.tgz")

        assert session.get.call_count == 1


class TestHelpers:
    def test_retry_policy_from_config(self):
        set_config(load_config_from_dict({"http_retry": {"max_attempts": 4, "delay_seconds": 3}}))

        policy = get_http_retry_config()

        assert policy.max_attempts == 4
        assert policy.get_delay(0) == policy.get_delay(3) == 3.0

    @pytest.mark.asyncio
    async def test_create_session_defaults(self):
        session = create_session()
        try:
            assert session.timeout.sock_read == 5.0
            assert session.timeout.total is None
            assert session.auto_decompress is False
        finally:
            await session.close()

    @pytest.mark.asyncio
    async def test_create_session_custom_timeout(self):
        timeout = aiohttp.ClientTimeout(total=12)
        session = create_session(timeout=timeout, max_connections=4)
        try:
            assert session.timeout is timeout
            assert session.connector.limit == 4
        finally:
            await session.close()
