"""HTTP fetcher with a fixed identity, returning parsed HTML, JSON or raw bytes."""

import asyncio
import logging
from typing import Any, Optional

import requests
from bs4 import BeautifulSoup

from .config import DownloaderConfig
from .errors import DataFormatError, NetworkError


logger = logging.getLogger(__name__)


def parse_fragment(html: str) -> BeautifulSoup:
    """Parse an HTML document or fragment into a selectable tree."""
    return BeautifulSoup(html, "html.parser")


class Fetcher:
    """Issues GET requests with the configured headers and timeout.

    ``requests`` is blocking, so each call runs in a worker thread and the
    coroutine suspends until it returns.
    """

    def __init__(self, config: Optional[DownloaderConfig] = None, session: Optional[requests.Session] = None):
        self.config = config or DownloaderConfig()
        self.session = session or requests.Session()
        self.session.headers.update(self.config.headers)

    def _get(self, url: str) -> requests.Response:
        logger.debug(f"GET {url}")
        try:
            response = self.session.get(url, timeout=self.config.timeout)
            response.raise_for_status()
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise NetworkError(url, f"HTTP {status}", status=status) from e
        except requests.RequestException as e:
            raise NetworkError(url, f"Request failed: {e}") from e
        return response

    async def fetch_document(self, url: str) -> BeautifulSoup:
        """Fetch a page and parse it as HTML."""
        response = await asyncio.to_thread(self._get, url)
        return parse_fragment(response.text)

    async def fetch_json(self, url: str) -> Any:
        """Fetch a page and decode its body as JSON.

        Raises:
            NetworkError: On transport failure or non-2xx status.
            DataFormatError: If the body is not valid JSON.
        """
        response = await asyncio.to_thread(self._get, url)
        try:
            return response.json()
        except ValueError as e:
            raise DataFormatError(f"Invalid JSON from {url}: {e}") from e

    async def fetch_bytes(self, url: str) -> bytes:
        """Fetch raw response bytes (images)."""
        response = await asyncio.to_thread(self._get, url)
        return response.content

    def close(self) -> None:
        """Close the underlying session."""
        self.session.close()

    def __enter__(self) -> "Fetcher":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
