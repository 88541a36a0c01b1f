"""Tests for the MangaDex catalog listing."""

import asyncio
from urllib.parse import parse_qs, urlparse

import pytest

from mangafire_dl.acquisition.adapters.mangadex import MangaDexCatalog
from mangafire_dl.acquisition.errors import DataFormatError, NetworkError


def manga(manga_id, titles, cover=None, languages=()):
    relationships = [{"type": "author", "id": "a1"}]
    if cover:
        relationships.append({"type": "cover_art", "attributes": {"fileName": cover}})
    return {
        "id": manga_id,
        "attributes": {"title": titles, "availableTranslatedLanguages": list(languages)},
        "relationships": relationships,
    }


class FakeCatalogFetcher:
    """Answers MangaDex-shaped queries from in-memory data."""

    def __init__(self, mangas, first_chapter, totals=None, broken=()):
        self.mangas = mangas
        self.first_chapter = first_chapter
        self.totals = totals or {}
        self.broken = set(broken)
        self.urls = []

    async def fetch_json(self, url):
        self.urls.append(url)
        parsed = urlparse(url)
        query = parse_qs(parsed.query)
        if parsed.path == "/manga":
            return {"result": "ok", "data": self.mangas}

        manga_id = query["manga"][0]
        if manga_id in self.broken:
            raise NetworkError(url, "HTTP 500", status=500)
        if query.get("limit") == ["0"]:
            return {"data": [], "total": self.totals.get(manga_id, 0)}
        return {"data": [{"id": "c"}] if manga_id in self.first_chapter else []}


@pytest.fixture
def mangas():
    return [
        manga("m1", {"en": "First"}, cover="c1.png", languages=["en", "fr"]),
        manga("m2", {"ja": "Niban"}),
        manga("m3", {"en": "Third"}),
        manga("m4", {}),
    ]


def test_list_popular_filters_and_keeps_order(mangas):
    fetcher = FakeCatalogFetcher(mangas, first_chapter={"m1", "m2", "m4"})
    catalog = MangaDexCatalog(fetcher, api_base="https://api.test")

    entries = asyncio.run(catalog.list_popular(limit=4))

    assert [(e.id, e.title) for e in entries] == [("m1", "First"), ("m2", "Niban"), ("m4", "Untitled")]
    assert entries[0].cover_url == "https://uploads.mangadex.org/covers/m1/c1.png.256.jpg"
    assert entries[1].cover_url is None
    assert "limit=4" in fetcher.urls[0]


def test_list_popular_details(mangas):
    fetcher = FakeCatalogFetcher(mangas, first_chapter={"m1", "m3"}, totals={"m1": 120, "m3": 7})
    catalog = MangaDexCatalog(fetcher, api_base="https://api.test")

    entries = asyncio.run(catalog.list_popular_details(limit=4, concurrency=2))

    assert [(e.id, e.chapter_count) for e in entries] == [("m1", 120), ("m3", 7)]
    assert entries[0].languages == ["en", "fr"]
    assert entries[0].cover_url.endswith("c1.png.512.jpg")


def test_failed_entry_is_skipped(mangas):
    fetcher = FakeCatalogFetcher(mangas, first_chapter={"m1", "m2", "m3"}, broken={"m2"})
    catalog = MangaDexCatalog(fetcher, api_base="https://api.test")

    entries = asyncio.run(catalog.list_popular_details(limit=4))

    assert [e.id for e in entries] == ["m1", "m3"]


def test_invalid_listing_raises():
    class BadFetcher:
        async def fetch_json(self, url):
            return {"errors": ["nope"]}

    catalog = MangaDexCatalog(BadFetcher())

    with pytest.raises(DataFormatError):
        asyncio.run(catalog.list_popular())
