"""MangaDex catalog listing (popular titles, covers, chapter counts).

Metadata only: titles listed here are not downloadable through this client.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional
from urllib.parse import urlencode

from ..concurrency import gather_limited
from ..errors import DataFormatError
from ..fetcher import Fetcher


logger = logging.getLogger(__name__)

API_BASE = "https://api.mangadex.org"
COVER_BASE = "https://uploads.mangadex.org/covers"


@dataclass
class CatalogEntry:
    """A popular title as listed by the catalog."""
    id: str
    title: str
    cover_url: Optional[str]
    chapter_count: Optional[int] = None
    languages: list[str] = field(default_factory=list)


def _data_list(payload: Any, url: str) -> list:
    if not isinstance(payload, dict) or not isinstance(payload.get("data"), list):
        raise DataFormatError(f"Invalid MangaDex response format from {url}")
    return payload["data"]


def _title(manga: dict) -> str:
    titles = manga.get("attributes", {}).get("title") or {}
    return titles.get("en") or next(iter(titles.values()), None) or "Untitled"


def _cover_url(manga: dict, size: int) -> Optional[str]:
    for relationship in manga.get("relationships", []):
        if relationship.get("type") != "cover_art":
            continue
        file_name = (relationship.get("attributes") or {}).get("fileName")
        if file_name:
            return f"{COVER_BASE}/{manga['id']}/{file_name}.{size}.jpg"
    return None


class MangaDexCatalog:
    """Lists popular MangaDex titles that have an English first chapter."""

    def __init__(self, fetcher: Fetcher, api_base: str = API_BASE, language: str = "en"):
        self.fetcher = fetcher
        self.api_base = api_base.rstrip("/")
        self.language = language

    def _url(self, path: str, params: list[tuple[str, Any]]) -> str:
        return f"{self.api_base}{path}?{urlencode(params)}"

    async def _popular(self, limit: int) -> list[dict]:
        url = self._url("/manga", [
            ("limit", limit),
            ("includes[]", "cover_art"),
            ("order[followedCount]", "desc"),
        ])
        return _data_list(await self.fetcher.fetch_json(url), url)

    async def _has_first_chapter(self, manga_id: str) -> bool:
        url = self._url("/chapter", [
            ("manga", manga_id),
            ("translatedLanguage[]", self.language),
            ("chapter", 1),
            ("limit", 1),
        ])
        return bool(_data_list(await self.fetcher.fetch_json(url), url))

    async def _chapter_count(self, manga_id: str) -> int:
        url = self._url("/chapter", [
            ("manga", manga_id),
            ("translatedLanguage[]", self.language),
            ("limit", 0),
        ])
        payload = await self.fetcher.fetch_json(url)
        if not isinstance(payload, dict):
            raise DataFormatError(f"Invalid MangaDex response format from {url}")
        return int(payload.get("total") or 0)

    async def list_popular(self, limit: int = 100, concurrency: int = 5) -> list[CatalogEntry]:
        """Return popular titles with a first chapter in the catalog language.

        Raises:
            NetworkError: If the listing request fails.
            DataFormatError: If the listing has no data array.
        """
        mangas = await self._popular(limit)

        async def check(manga: dict) -> Optional[CatalogEntry]:
            if not await self._has_first_chapter(manga["id"]):
                return None
            return CatalogEntry(id=manga["id"], title=_title(manga), cover_url=_cover_url(manga, 256))

        outcomes = await gather_limited([lambda m=m: check(m) for m in mangas], concurrency)
        return self._collect(mangas, outcomes)

    async def list_popular_details(self, limit: int = 100, concurrency: int = 5) -> list[CatalogEntry]:
        """Like ``list_popular`` with chapter counts and available languages."""
        mangas = await self._popular(limit)

        async def enrich(manga: dict) -> Optional[CatalogEntry]:
            if not await self._has_first_chapter(manga["id"]):
                return None
            return CatalogEntry(
                id=manga["id"],
                title=_title(manga),
                cover_url=_cover_url(manga, 512),
                chapter_count=await self._chapter_count(manga["id"]),
                languages=list(manga.get("attributes", {}).get("availableTranslatedLanguages") or []),
            )

        outcomes = await gather_limited([lambda m=m: enrich(m) for m in mangas], concurrency)
        return self._collect(mangas, outcomes)

    @staticmethod
    def _collect(mangas: list[dict], outcomes) -> list[CatalogEntry]:
        entries = []
        for manga, outcome in zip(mangas, outcomes):
            if not outcome.ok:
                logger.warning(f"Skipping {manga.get('id')}: {outcome.error}")
            elif outcome.value is not None:
                entries.append(outcome.value)
        return entries
