"""
File resolution and temporary download handling.

Signed URLs are fetched fresh for every operation and never cached.
"""

import os
import time
import uuid
from contextlib import contextmanager
from typing import Iterator
from urllib.parse import urlparse

import httpx
import requests

from docintake.config import settings
from docintake.core.constants import DOCUMENT_EXTENSIONS, IMAGE_EXTENSIONS
from docintake.core.errors import DownloadError, UpstreamError
from docintake.core.logging import get_logger
from docintake.core.models import ContentCategory, SignedDownloadLink
from docintake.services.hubspot import HubSpotClient

log = get_logger(__name__)

CHUNK_SIZE = 64 * 1024


def url_extension(url: str) -> str:
    """Lower-cased extension of the URL path, or "" when there is none."""
    try:
        path = urlparse(url).path
    except (TypeError, ValueError, AttributeError):
        return ""
    return os.path.splitext(path)[1].lower()


def classify(url: str) -> ContentCategory:
    """Derive the content category from a URL's path extension. Never raises."""
    ext = url_extension(url)
    if ext in IMAGE_EXTENSIONS:
        return ContentCategory.IMAGE
    if ext in DOCUMENT_EXTENSIONS:
        return ContentCategory.DOCUMENT
    return ContentCategory.UNSUPPORTED


def extension_for(url: str, default: str = ".pdf") -> str:
    return url_extension(url) or default


def remove_quietly(path: str) -> bool:
    """
    Delete a file, logging instead of raising on failure.

    Returns:
        True if the file is gone afterwards.
    """
    try:
        os.remove(path)
        log.debug("temp_file_removed", path=path)
        return True
    except FileNotFoundError:
        return True
    except OSError as e:
        log.warning("temp_file_cleanup_failed", path=path, error=str(e))
        return False


class FileResolver:
    """Resolves HubSpot file ids to signed URLs and downloads their content."""

    def __init__(
        self,
        hubspot: HubSpotClient | None = None,
        http: httpx.Client | None = None,
        timeout: float | None = None,
        max_bytes: int | None = None,
        temp_dir: str | None = None,
    ):
        self.hubspot = hubspot or HubSpotClient()
        self.timeout = timeout or settings.download_timeout_seconds
        self.max_bytes = max_bytes or settings.max_download_bytes
        self.temp_dir = temp_dir or settings.temp_dir
        self._http = http or httpx.Client(timeout=self.timeout, follow_redirects=True)

    def resolve(self, file_id: str) -> SignedDownloadLink:
        """
        Obtain a fresh signed download URL for a file.

        Raises:
            UpstreamError: file service returned non-2xx or no URL
        """
        try:
            data = self.hubspot.get_signed_url(file_id)
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise UpstreamError(f"Failed to get signed URL for file {file_id}: {status}") from e
        except requests.RequestException as e:
            raise UpstreamError(f"Failed to reach file service for file {file_id}: {e}") from e

        url = data.get("url") if isinstance(data, dict) else None
        if not url:
            raise UpstreamError(f"No URL found in signed-url response for file {file_id}")

        log.info("signed_url_resolved", file_id=file_id)
        return SignedDownloadLink(url=url, file_id=file_id)

    classify = staticmethod(classify)

    def fetch_bytes(self, url: str) -> bytes:
        """Download a file into memory, enforcing the same limits as materialize."""
        chunks: list[bytes] = []
        for chunk in self._stream(url):
            chunks.append(chunk)
        return b"".join(chunks)

    def materialize(self, url: str, dest_path: str) -> int:
        """
        Stream a remote file to local disk.

        Creates parent directories as needed. A partially written file is
        removed before the error propagates.

        Returns:
            Number of bytes written.

        Raises:
            DownloadError: transport failure, timeout, size overflow or a
                local write failure
        """
        written = 0
        try:
            parent = os.path.dirname(dest_path)
            if parent:
                os.makedirs(parent, exist_ok=True)
            with open(dest_path, "wb") as fh:
                for chunk in self._stream(url):
                    fh.write(chunk)
                    written += len(chunk)
        except OSError as e:
            remove_quietly(dest_path)
            raise DownloadError(f"Could not write {dest_path}: {e}") from e
        except Exception:
            remove_quietly(dest_path)
            raise

        log.info("file_downloaded", path=dest_path, size=written)
        return written

    def _stream(self, url: str) -> Iterator[bytes]:
        received = 0
        deadline = time.monotonic() + self.timeout
        try:
            with self._http.stream("GET", url, timeout=self.timeout) as response:
                response.raise_for_status()
                declared = response.headers.get("content-length")
                if declared and declared.isdigit() and int(declared) > self.max_bytes:
                    raise DownloadError(
                        f"File too large: {declared} bytes exceeds limit of {self.max_bytes}"
                    )
                for chunk in response.iter_bytes(CHUNK_SIZE):
                    if time.monotonic() > deadline:
                        raise DownloadError(f"Download timed out after {self.timeout}s")
                    received += len(chunk)
                    if received > self.max_bytes:
                        raise DownloadError(
                            f"File too large: exceeds limit of {self.max_bytes} bytes"
                        )
                    yield chunk
        except httpx.TimeoutException as e:
            raise DownloadError(f"Download timed out after {self.timeout}s") from e
        except httpx.HTTPStatusError as e:
            raise DownloadError(f"Download failed: {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise DownloadError(f"Download failed: {e}") from e

    def temp_path(self, suffix: str = ".tmp") -> str:
        """Unique path under the temp directory."""
        return os.path.join(self.temp_dir, f"file_{uuid.uuid4().hex}{suffix}")

    @contextmanager
    def temporary_download(self, url: str, suffix: str | None = None) -> Iterator[str]:
        """Materialize url to a temp file that is deleted when the block exits."""
        path = self.temp_path(suffix or extension_for(url))
        try:
            self.materialize(url, path)
            yield path
        finally:
            remove_quietly(path)

    def close(self):
        """Close the HTTP client."""
        self._http.close()
