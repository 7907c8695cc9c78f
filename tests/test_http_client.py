"""Tests for the shared HTTP helpers."""

import asyncio
from unittest.mock import MagicMock, patch

import aiohttp
import pytest
import requests

from common.errors import NetworkError
from common.http_client import HttpClient, fetch_json, safe_get_json


class _DummyResponse:
    def __init__(self, status, body):
        self.status = status
        self._body = body

    async def text(self):
        return self._body

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class _FailingRequest:
    async def __aenter__(self):
        raise aiohttp.ClientConnectionError("connection refused")

    async def __aexit__(self, exc_type, exc, tb):
        return False


class _DummySession:
    def __init__(self, response=None):
        self.response = response
        self.urls = []
        self.closed = False

    def get(self, url):
        self.urls.append(url)
        if self.response is None:
            return _FailingRequest()
        return self.response

    async def close(self):
        self.closed = True


def _client(session):
    client = HttpClient()
    client._session = session
    return client


class TestHttpClient:
    """Error mapping of the async client."""

    def test_get_text(self):
        session = _DummySession(_DummyResponse(200, "<feed/>"))
        body = asyncio.run(_client(session).get_text("https://github.com/a/b/releases.atom", context="github"))
        assert body == "<feed/>"
        assert session.urls == ["https://github.com/a/b/releases.atom"]

    def test_get_json(self):
        session = _DummySession(_DummyResponse(200, '{"versions": ["1.0.0"]}'))
        data = asyncio.run(_client(session).get_json("https://cdn.deno.land/x/meta/versions.json", context="deno.land"))
        assert data == {"versions": ["1.0.0"]}

    def test_non_2xx_status(self):
        session = _DummySession(_DummyResponse(404, "not found"))
        with pytest.raises(NetworkError) as excinfo:
            asyncio.run(_client(session).get_text("https://jsr.io/@a/b/meta.json", context="jsr"))
        assert excinfo.value.status == 404
        assert excinfo.value.url == "https://jsr.io/@a/b/meta.json"
        assert "HTTP 404" in str(excinfo.value)

    def test_malformed_json(self):
        session = _DummySession(_DummyResponse(200, "<html>"))
        with pytest.raises(NetworkError, match="not valid JSON"):
            asyncio.run(_client(session).get_json("https://registry.npmjs.org/x", context="npm"))

    def test_transport_error(self):
        with pytest.raises(NetworkError, match="failed") as excinfo:
            asyncio.run(_client(_DummySession()).get_text("https://unpkg.com/browse/x/", context="unpkg"))
        assert excinfo.value.status is None
        assert isinstance(excinfo.value.__cause__, aiohttp.ClientError)

    def test_undecodable_body(self):
        """A body that does not match its declared charset is a NetworkError."""

        class _BadCharsetResponse(_DummyResponse):
            async def text(self):
                return b"\xff\xfe<feed>".decode("utf-8")

        session = _DummySession(_BadCharsetResponse(200, ""))
        with pytest.raises(NetworkError, match="not valid text") as excinfo:
            asyncio.run(_client(session).get_text("https://github.com/a/b/releases.atom", context="github"))
        assert isinstance(excinfo.value.__cause__, UnicodeDecodeError)

    def test_stop_closes_session(self):
        session = _DummySession()
        client = _client(session)
        asyncio.run(client.stop())
        assert session.closed is True
        assert client._session is None

    def test_fetch_json_uses_given_client(self):
        session = _DummySession(_DummyResponse(200, "{}"))
        assert asyncio.run(fetch_json("https://jsr.io/@a/b/meta.json", context="jsr", client=_client(session))) == {}
        assert session.urls == ["https://jsr.io/@a/b/meta.json"]


class TestSafeGetJson:
    """Blocking helper built on requests."""

    @patch("common.http_client.requests.get")
    def test_success(self, mock_get):
        mock_get.return_value = MagicMock(status_code=200, json=MagicMock(return_value={"latest": "1.0.0"}))
        assert safe_get_json("https://jsr.io/@a/b/meta.json", context="jsr") == {"latest": "1.0.0"}
        assert mock_get.call_args.kwargs["headers"]["User-Agent"].startswith("depupdate/")

    @patch("common.http_client.requests.get")
    def test_status_error(self, mock_get):
        mock_get.return_value = MagicMock(status_code=500)
        with pytest.raises(NetworkError) as excinfo:
            safe_get_json("https://jsr.io/@a/b/meta.json", context="jsr")
        assert excinfo.value.status == 500

    @patch("common.http_client.requests.get")
    def test_connection_error(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("offline")
        with pytest.raises(NetworkError, match="failed"):
            safe_get_json("https://jsr.io/@a/b/meta.json", context="jsr")

    @patch("common.http_client.requests.get")
    def test_bad_json(self, mock_get):
        mock_get.return_value = MagicMock(status_code=200, json=MagicMock(side_effect=ValueError("bad")))
        with pytest.raises(NetworkError, match="not valid JSON"):
            safe_get_json("https://jsr.io/@a/b/meta.json", context="jsr")
