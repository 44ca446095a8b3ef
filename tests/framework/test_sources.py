"""Tests for file, text and HTTP sources."""

from __future__ import annotations

import httpx
import pytest

from metals_spine.core.errors import FetchError
from metals_spine.framework.sources import (
    FileSource,
    HttpSource,
    Source,
    SourceType,
    TextSource,
    source_for,
)
from metals_spine.framework.sources.protocol import content_hash

CSV = "As Of Date,Metal\n2024-01-02,Gold\n"


def _client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


class TestFileSource:
    def test_reads_text_and_metadata(self, tmp_path):
        path = tmp_path / "curve.csv"
        path.write_text(CSV, encoding="utf-8")

        fetched = FileSource(path).fetch()

        assert fetched.text == CSV
        assert fetched.metadata.source_name == "curve.csv"
        assert fetched.metadata.source_type == SourceType.FILE
        assert fetched.metadata.path == str(path)
        assert fetched.metadata.content_hash == content_hash(CSV)

    def test_strips_utf8_bom(self, tmp_path):
        path = tmp_path / "bom.csv"
        path.write_bytes(b"\xef\xbb\xbf" + CSV.encode("utf-8"))
        assert FileSource(path).fetch().text == CSV

    def test_missing_file(self, tmp_path):
        with pytest.raises(FetchError) as exc_info:
            FileSource(tmp_path / "absent.csv").fetch()
        assert exc_info.value.reason_code == "fetch_failed"
        assert exc_info.value.context.source_type == "file"

    def test_undecodable_file(self, tmp_path):
        path = tmp_path / "latin.csv"
        path.write_bytes(b"\xff\xfe\x00bad")
        with pytest.raises(FetchError):
            FileSource(path).fetch()

    def test_satisfies_protocol(self, tmp_path):
        assert isinstance(FileSource(tmp_path / "x.csv"), Source)


class TestTextSource:
    def test_fetch(self):
        fetched = TextSource(CSV, name="fixture").fetch()
        assert fetched.text == CSV
        assert fetched.metadata.source_name == "fixture"
        assert fetched.metadata.bytes_fetched == len(CSV)


class TestHttpSource:
    def test_fetch_ok(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url == "https://example.com/curve.csv"
            return httpx.Response(200, text=CSV)

        fetched = HttpSource("https://example.com/curve.csv", client=_client(handler)).fetch()

        assert fetched.text == CSV
        assert fetched.metadata.http_status == 200
        assert fetched.metadata.url == "https://example.com/curve.csv"
        assert fetched.metadata.source_type == SourceType.HTTP

    def test_http_error_status(self):
        source = HttpSource("https://example.com/curve.csv", client=_client(lambda r: httpx.Response(503)))
        with pytest.raises(FetchError, match="HTTP 503") as exc_info:
            source.fetch()
        assert exc_info.value.context.http_status == 503
        assert exc_info.value.context.url == "https://example.com/curve.csv"

    def test_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(FetchError, match="refused"):
            HttpSource("https://example.com/curve.csv", client=_client(handler)).fetch()


class TestSourceFor:
    def test_http(self):
        source = source_for("https://example.com/curve.csv", timeout=5)
        assert isinstance(source, HttpSource)
        assert source.url == "https://example.com/curve.csv"

    def test_file_url(self, tmp_path):
        source = source_for(f"file://{tmp_path}/curve.csv")
        assert isinstance(source, FileSource)
        assert source.path == tmp_path / "curve.csv"

    def test_bare_path(self):
        assert isinstance(source_for("exports/curve.csv"), FileSource)
