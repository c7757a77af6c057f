"""Fake aiohttp sessions and responses for transport tests."""

import re
from unittest.mock import AsyncMock, MagicMock

import pytest

RANGE_HEADER_PATTERN = re.compile(r"bytes=(\d+)-(\d+)")


def async_context(value=None, error=None):
    """Object usable with `async with`, yielding value or raising error."""
    cm = MagicMock()
    cm.__aenter__ = AsyncMock(return_value=value, side_effect=error)
    cm.__aexit__ = AsyncMock(return_value=False)
    return cm


def fake_response(body=b"", status=200, headers=None, content_length="auto"):
    response = MagicMock()
    response.status = status
    response.headers = headers or {}
    response.content_length = len(body) if content_length == "auto" else content_length
    response.read = AsyncMock(return_value=body)

    async def iter_chunked(size):
        for offset in range(0, len(body), size):
            yield body[offset : offset + size]

    response.content.iter_chunked = iter_chunked
    return response


def fake_session(get_side_effect):
    """Session whose get() returns whatever get_side_effect builds per call."""
    session = MagicMock()
    session.get = MagicMock(side_effect=get_side_effect)
    session.__aenter__ = AsyncMock(return_value=session)
    session.__aexit__ = AsyncMock(return_value=False)
    return session


@pytest.fixture
def make_response():
    return fake_response


@pytest.fixture
def make_session():
    return fake_session


@pytest.fixture
def make_context():
    return async_context


@pytest.fixture
def ranged_server():
    """
    Build a session serving `blob` for Range requests.

    Returns (session, requested_ranges).
    """

    def build(blob, fail_first=None):
        requested = []
        failures = dict(fail_first or {})

        def get(url, headers=None):
            match = RANGE_HEADER_PATTERN.match(headers["Range"])
            start, end = int(match.group(1)), int(match.group(2))
            requested.append((start, end))
            if failures.get(start):
                failures[start] -= 1
                return async_context(fake_response(b"", status=503))
            body = blob[start : end + 1]
            response = fake_response(
                body,
                status=206,
                headers={"Content-Range": f"bytes {start}-{end}/{len(blob)}"},
            )
            return async_context(response)

        return fake_session(get), requested

    return build
