"""
HTTP client for fetching the FAA Releasable Aircraft archive.

Streams the archive to a local file and reports the upstream snapshot
version taken from the response headers.
"""

from dataclasses import dataclass
from pathlib import Path

import httpx

from faa_registry.utils import logger
from faa_registry.utils.exceptions import (
    DatasetDownloadError,
    DownloadConnectionError,
    DownloadTimeoutError,
)
from faa_registry.ingestion.config import settings

CHUNK_SIZE = 1024 * 1024


@dataclass(frozen=True)
class DownloadResult:
    """Outcome of a dataset download."""
    path: Path
    bytes_written: int
    # Last-Modified (or ETag) of the upstream snapshot, when the server sends one
    data_version: str | None = None


class DatasetClient:
    """
    Client for downloading the registry archive.

    Redirects are followed; the body is written in chunks so the full
    archive is never held in memory.
    """

    def __init__(
        self,
        timeout: float | None = None,
        user_agent: str | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        """
        Initialize the dataset client.

        Args:
            timeout: Request timeout in seconds (defaults to settings)
            user_agent: User-Agent header sent to the FAA server
            transport: Optional httpx transport (used by tests)
        """
        self.timeout = timeout or settings.dataset.timeout_seconds
        self.user_agent = user_agent or settings.dataset.user_agent
        self._transport = transport

    def download(self, url: str, destination: str | Path) -> DownloadResult:
        """
        Download ``url`` into ``destination``.

        Raises:
            DatasetDownloadError: On non-success HTTP status
            DownloadConnectionError: On connection failures
            DownloadTimeoutError: On request timeout
        """
        target = Path(destination)
        target.parent.mkdir(parents=True, exist_ok=True)

        logger.info(f"Downloading dataset from {url}")

        try:
            with httpx.Client(
                timeout=self.timeout,
                follow_redirects=True,
                headers={"User-Agent": self.user_agent},
                transport=self._transport,
            ) as client:
                with client.stream("GET", url) as response:
                    if response.status_code != 200:
                        raise DatasetDownloadError(
                            message=f"Failed to download dataset from {url}: {response.status_code}",
                            status_code=response.status_code,
                            url=url,
                        )

                    bytes_written = 0
                    with open(target, "wb") as f:
                        for chunk in response.iter_bytes(chunk_size=CHUNK_SIZE):
                            f.write(chunk)
                            bytes_written += len(chunk)

                    data_version = (
                        response.headers.get("last-modified")
                        or response.headers.get("etag")
                        or None
                    )

        except httpx.ConnectError as e:
            raise DownloadConnectionError(f"Failed to connect to dataset host: {e}") from e
        except httpx.TimeoutException as e:
            raise DownloadTimeoutError(f"Dataset download timed out: {e}", timeout=self.timeout) from e
        except httpx.HTTPError as e:
            raise DatasetDownloadError(f"HTTP error while downloading dataset: {e}", url=url) from e

        size_mb = bytes_written / 1024 / 1024
        logger.info(f"Downloaded {size_mb:.1f}MB to {target} (dataVersion={data_version})")

        return DownloadResult(path=target, bytes_written=bytes_written, data_version=data_version)


def create_client() -> DatasetClient:
    """Create a new dataset client with default settings."""
    return DatasetClient()


__all__ = ["DatasetClient", "DownloadResult", "create_client"]
