"""
Tests for the archive download client, using httpx.MockTransport.
"""

import httpx
import pytest

from faa_registry.ingestion.components.client import DatasetClient
from faa_registry.utils.exceptions import (
    DatasetDownloadError,
    DownloadConnectionError,
    DownloadTimeoutError,
)

URL = "https://registry.example.test/ReleasableAircraft.zip"
PAYLOAD = b"PK\x03\x04" + b"\x00" * 4096


def _client(handler) -> DatasetClient:
    return DatasetClient(timeout=5, user_agent="test-agent", transport=httpx.MockTransport(handler))


def test_download_writes_body_and_reports_last_modified(tmp_path):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["user_agent"] = request.headers["user-agent"]
        return httpx.Response(
            200,
            content=PAYLOAD,
            headers={"Last-Modified": "Mon, 06 Jan 2025 08:00:00 GMT", "ETag": '"abc"'},
        )

    target = tmp_path / "nested" / "registry.zip"
    result = _client(handler).download(URL, target)

    assert target.read_bytes() == PAYLOAD
    assert result.path == target
    assert result.bytes_written == len(PAYLOAD)
    assert result.data_version == "Mon, 06 Jan 2025 08:00:00 GMT"
    assert seen["user_agent"] == "test-agent"


def test_download_falls_back_to_etag(tmp_path):
    def handler(request):
        return httpx.Response(200, content=PAYLOAD, headers={"ETag": '"v42"'})

    result = _client(handler).download(URL, tmp_path / "registry.zip")

    assert result.data_version == '"v42"'


def test_download_without_version_headers(tmp_path):
    result = _client(lambda request: httpx.Response(200, content=b"data")).download(
        URL, tmp_path / "registry.zip"
    )

    assert result.data_version is None


def test_download_follows_redirects(tmp_path):
    def handler(request):
        if request.url.path == "/old.zip":
            return httpx.Response(302, headers={"Location": URL})
        return httpx.Response(200, content=PAYLOAD)

    result = _client(handler).download("https://registry.example.test/old.zip", tmp_path / "r.zip")

    assert result.bytes_written == len(PAYLOAD)


def test_download_error_status(tmp_path):
    with pytest.raises(DatasetDownloadError) as exc_info:
        _client(lambda request: httpx.Response(404)).download(URL, tmp_path / "registry.zip")

    assert exc_info.value.status_code == 404
    assert exc_info.value.url == URL


def test_download_connection_error(tmp_path):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(DownloadConnectionError):
        _client(handler).download(URL, tmp_path / "registry.zip")


def test_download_timeout(tmp_path):
    def handler(request):
        raise httpx.ReadTimeout("read timed out", request=request)

    with pytest.raises(DownloadTimeoutError) as exc_info:
        _client(handler).download(URL, tmp_path / "registry.zip")

    assert exc_info.value.timeout == 5
