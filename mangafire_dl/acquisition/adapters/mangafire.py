"""MangaFire source adapter.

Site: https://mangafire.to
Listing: per-language AJAX endpoints wrapping HTML fragments
Pages: JSON image lists, some images tile-scrambled (see ``descramble``)
"""

import logging
import re
from typing import Any
from urllib.parse import quote, urlparse

from ..adapter import UNIT_TYPES, ChapterDescriptor, SeriesInfo, UnitType
from ..errors import DataFormatError, NetworkError
from ..fetcher import Fetcher, parse_fragment


logger = logging.getLogger(__name__)

SERIES_ID_PATTERN = re.compile(r"manga/[^.]+\.(\w+)")


def series_id_from_ref(series_ref: str) -> str:
    """Extract the site id from a series path.

    Expected: /manga/one-piece.dkw -> "dkw"

    Raises:
        ValueError: If the reference carries no id token.
    """
    match = SERIES_ID_PATTERN.search(series_ref)
    if not match:
        raise ValueError(f"Not a series reference: {series_ref}")
    return match.group(1)


def _result_field(data: Any, key: str, url: str) -> Any:
    """Return ``data["result"][key]`` or raise DataFormatError."""
    result = data.get("result") if isinstance(data, dict) else None
    if not isinstance(result, dict) or result.get(key) is None:
        raise DataFormatError(f"Response from {url} has no result.{key}")
    return result[key]


class MangaFireAdapter:
    """Adapter for mangafire.to."""

    def __init__(self, fetcher: Fetcher, base_url: str = "https://mangafire.to"):
        self.fetcher = fetcher
        self.base_url = base_url.rstrip("/")

    def _url(self, path: str) -> str:
        if not path.startswith("/"):
            path = "/" + path
        return f"{self.base_url}{path}"

    async def search(self, query: str) -> list[SeriesInfo]:
        """Search for series by title.

        Args:
            query: Search term (series title)

        Returns:
            List of matching series, in page order
        """
        doc = await self.fetcher.fetch_document(self._url(f"/filter?keyword={quote(query)}"))

        results = []
        for link in doc.select("div.info > a"):
            href = link.get("href", "")
            if not href:
                continue
            results.append(SeriesInfo(
                series_id=href,
                title=link.get_text(strip=True),
                url=self._url(href),
            ))

        return results

    async def get_series(self, series_ref: str) -> SeriesInfo:
        """Fetch the series page and read its display title."""
        url = self._url(series_ref)
        doc = await self.fetcher.fetch_document(url)

        title_elem = doc.select_one('div.info h1[itemprop="name"]')
        title = title_elem.get_text(strip=True) if title_elem else ""
        if not title:
            logger.warning(f"No title found on {url}, using series id")
            title = series_id_from_ref(series_ref)

        return SeriesInfo(series_id=series_ref, title=title, url=url)

    async def list_languages(self, series_ref: str) -> list[str]:
        """Return the language codes offered by the series page, in menu order."""
        doc = await self.fetcher.fetch_document(self._url(series_ref))

        languages = []
        for elem in doc.select("section.m-list div.dropdown-menu a[data-code]"):
            code = elem.get("data-code", "").strip().lower()
            if code and code not in languages:
                languages.append(code)

        return languages

    async def list_units(self, series_id: str, unit_type: UnitType, language: str) -> list[ChapterDescriptor]:
        """List the chapters or volumes of one language.

        Raises:
            NetworkError: If the listing request fails.
            DataFormatError: If the envelope carries no HTML fragment.
        """
        url = self._url(f"/ajax/read/{series_id}/{unit_type}/{language}")
        data = await self.fetcher.fetch_json(url)
        fragment = parse_fragment(_result_field(data, "html", url))

        marker = f"/{unit_type}-"
        units = []
        for anchor in fragment.select("a"):
            path = urlparse(anchor.get("href", "")).path
            if marker not in path:
                continue
            units.append(ChapterDescriptor(
                id=anchor.get("data-id", ""),
                unit_type=unit_type,
                title=anchor.get_text(strip=True),
                language=language,
                source_url=self._url(path),
            ))

        return units

    async def discover_chapters(self, series_ref: str) -> list[ChapterDescriptor]:
        """List every chapter and volume across all languages.

        Order is languages in menu order, then chapter before volume, then
        fragment order. Not sorted by chapter number. A language/unit pair
        whose listing fails contributes nothing.
        """
        series_id = series_id_from_ref(series_ref)
        languages = await self.list_languages(series_ref)
        logger.info(f"Series {series_id}: languages {', '.join(languages) or '(none)'}")

        chapters = []
        for language in languages:
            for unit_type in UNIT_TYPES:
                try:
                    units = await self.list_units(series_id, unit_type, language)
                except (NetworkError, DataFormatError) as e:
                    logger.info(f"No {unit_type}s found for language {language}: {e}")
                    continue
                logger.debug(f"Found {len(units)} {unit_type}s for language {language}")
                chapters.extend(units)

        return chapters

    async def resolve_pages(self, chapter_id: str, unit_type: UnitType) -> list:
        """Return the raw image entries for a chapter.

        Entries are ``[url, extra, scramble_level]`` and are not validated here.

        Raises:
            NetworkError: If the request fails.
            DataFormatError: If the response has no image list.
        """
        url = self._url(f"/ajax/read/{unit_type}/{chapter_id}")
        data = await self.fetcher.fetch_json(url)
        images = _result_field(data, "images", url)
        if not isinstance(images, list):
            raise DataFormatError(f"Response from {url} has a non-list result.images")
        return images
