"""Tests for the remote index and its sources."""
from unittest.mock import AsyncMock

import httpx
import pytest

from catalog_uploader.errors import ConfigurationError
from catalog_uploader.services.remote_index import (
    HTTPIndexSource,
    RemoteIndex,
    StaticIndexSource,
    load_remote_index,
    parse_index_payload,
)


class TestRemoteIndex:
    def test_from_records_groups_by_size(self):
        index = RemoteIndex.from_records([(10, "a"), (10, "b"), (20, "c"), (10, "a")])

        assert len(index) == 2
        assert index.contains(10, "a") and index.contains(10, "b")
        assert index.contains(20, "c")
        assert index.fingerprint_count == 3

    def test_lookup(self):
        index = RemoteIndex({10: ["a"]})
        assert index.has_size(10) is True
        assert index.has_size(11) is False
        assert index.contains(10, "a") is True
        assert index.contains(10, "b") is False
        assert index.contains(11, "a") is False

    def test_empty(self):
        index = RemoteIndex()
        assert len(index) == 0
        assert index.fingerprint_count == 0


class TestParseIndexPayload:
    def test_list_payload(self):
        rows = [{"size": 10, "md5sum": "a"}, {"size": "20", "md5sum": "b"}]
        assert parse_index_payload(rows) == [(10, "a"), (20, "b")]

    def test_results_payload(self):
        assert parse_index_payload({"results": [{"size": 1, "md5sum": "x"}]}) == [(1, "x")]

    def test_rows_without_fingerprint_are_ignored(self):
        rows = [{"size": 10, "md5sum": None}, {"size": 11}, {"size": 12, "md5sum": "c"}]
        assert parse_index_payload(rows) == [(12, "c")]

    @pytest.mark.parametrize(
        "payload",
        [
            {"unexpected": []},
            "nope",
            [["not", "a", "dict"]],
            [{"md5sum": "a"}],
            [{"size": "big", "md5sum": "a"}],
            [{"size": -1, "md5sum": "a"}],
        ],
    )
    def test_malformed(self, payload):
        with pytest.raises(ConfigurationError):
            parse_index_payload(payload)


class TestHTTPIndexSource:
    @pytest.mark.asyncio
    async def test_fetch(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/media/fingerprints"
            return httpx.Response(200, json=[{"size": 5, "md5sum": "abc"}])

        source = HTTPIndexSource("http://datastore.test", transport=httpx.MockTransport(handler))
        assert await source.fetch() == [(5, "abc")]

    @pytest.mark.asyncio
    async def test_retries_server_errors(self, monkeypatch):
        monkeypatch.setattr("catalog_uploader.services.remote_index.asyncio.sleep", AsyncMock())
        responses = [httpx.Response(503), httpx.Response(200, json=[])]

        def handler(request):
            return responses.pop(0)

        source = HTTPIndexSource("http://datastore.test", transport=httpx.MockTransport(handler))
        assert await source.fetch() == []
        assert responses == []

    @pytest.mark.asyncio
    async def test_client_error_is_fatal(self):
        source = HTTPIndexSource(
            "http://datastore.test",
            transport=httpx.MockTransport(lambda request: httpx.Response(403)),
        )
        with pytest.raises(ConfigurationError, match="403"):
            await source.fetch()

    @pytest.mark.asyncio
    async def test_invalid_json_is_fatal(self):
        source = HTTPIndexSource(
            "http://datastore.test",
            transport=httpx.MockTransport(lambda request: httpx.Response(200, text="<html>")),
        )
        with pytest.raises(ConfigurationError, match="invalid JSON"):
            await source.fetch()

    @pytest.mark.asyncio
    async def test_unreachable_is_fatal(self, monkeypatch):
        monkeypatch.setattr("catalog_uploader.services.remote_index.asyncio.sleep", AsyncMock())
        calls = []

        def handler(request):
            calls.append(request)
            raise httpx.ConnectError("connection refused", request=request)

        source = HTTPIndexSource("http://datastore.test", transport=httpx.MockTransport(handler))
        with pytest.raises(ConfigurationError, match="unreachable"):
            await source.fetch()
        assert len(calls) == 3


@pytest.mark.asyncio
async def test_load_remote_index_from_static_source():
    index = await load_remote_index(StaticIndexSource([(1, "a"), (1, "b")]))
    assert index.contains(1, "a") and index.contains(1, "b")
    assert index.fingerprint_count == 2
