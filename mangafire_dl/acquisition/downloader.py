"""Sequential chapter and series downloader with fixed pacing between requests."""

import asyncio
import logging
import re
from pathlib import Path
from typing import Optional, Sequence

from PIL import Image

from .adapter import (
    ChapterDescriptor,
    ChapterResult,
    PageDescriptor,
    PageResult,
    SeriesResult,
    SourceAdapter,
    UnitType,
)
from .descramble import descramble_bytes
from .errors import AcquisitionError, DataFormatError
from .fetcher import Fetcher
from .storage import extension_from_url, get_chapter_path, get_page_filename


logger = logging.getLogger(__name__)

DEFAULT_PAGE_DELAY = 0.5
DEFAULT_CHAPTER_DELAY = 1.0

CHAPTER_NUMBER_PATTERN = re.compile(r"(?:chapter|chap|ch\.?|volume|vol\.?)\s*(\d+(?:\.\d+)?)", re.IGNORECASE)
ANY_NUMBER_PATTERN = re.compile(r"(\d+(?:\.\d+)?)")


def parse_chapter_number(title: str) -> Optional[float]:
    """Extract a chapter/volume number from a display title.

    Tries patterns like "Chapter 12", "Ch. 12.5", "Vol 3", then any number.
    """
    match = CHAPTER_NUMBER_PATTERN.search(title) or ANY_NUMBER_PATTERN.search(title)
    return float(match.group(1)) if match else None


def _numeric_key(chapter: ChapterDescriptor) -> tuple:
    number = parse_chapter_number(chapter.title)
    if number is None:
        return (1, 0.0, chapter.title.lower())
    return (0, number, "")


def select_chapters(
    chapters: Sequence[ChapterDescriptor],
    language: str,
    start_chapter: int = 1,
    end_chapter: Optional[int] = None,
    sort_numeric: bool = False,
) -> list[ChapterDescriptor]:
    """Filter to one language and take the positional slice ``[start-1, end)``.

    ``start_chapter`` is 1-based; ``end_chapter`` is exclusive and clamped,
    ``None`` meaning to the end. Positions index the discovery order unless
    ``sort_numeric`` orders by parsed chapter number first (titles without a
    number go last, alphabetically).
    """
    if start_chapter < 1:
        raise ValueError(f"start_chapter must be at least 1, got {start_chapter}")
    if end_chapter is not None and end_chapter < 0:
        raise ValueError(f"end_chapter must not be negative, got {end_chapter}")
    # 0 means to the end, like an omitted end
    end_chapter = end_chapter or None

    language = language.lower()
    selected = [c for c in chapters if c.language == language]
    if sort_numeric:
        selected.sort(key=_numeric_key)

    return selected[start_chapter - 1:end_chapter]


async def _fetch_page(fetcher: Fetcher, page: PageDescriptor) -> tuple[bytes, str]:
    """Download one page and return ``(bytes_to_write, extension)``.

    Raises:
        NetworkError: If the image request fails.
        DataFormatError: If a scrambled image cannot be decoded.
    """
    data = await fetcher.fetch_bytes(page.image_url)
    if not page.is_scrambled:
        return data, extension_from_url(page.image_url)

    try:
        restored = await asyncio.to_thread(descramble_bytes, data, page.scramble_level)
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        raise DataFormatError(f"Cannot decode image {page.image_url}: {e}") from e
    return restored, ".png"


async def download_page(fetcher: Fetcher, entry, page_number: int, output_dir: Path) -> PageResult:
    """Download, descramble if needed and write a single page.

    Fetch and decode failures are returned as a failed PageResult. Write
    failures propagate.
    """
    try:
        page = PageDescriptor.from_raw(entry)
        data, extension = await _fetch_page(fetcher, page)
    except AcquisitionError as e:
        logger.error(f"Error downloading page {page_number}: {e}")
        return PageResult(index=page_number, success=False, local_path=None, error=str(e))

    output_path = output_dir / get_page_filename(page_number, extension)
    output_path.write_bytes(data)

    return PageResult(
        index=page_number,
        success=True,
        local_path=output_path,
        error=None,
        descrambled=page.is_scrambled,
    )


async def download_chapter(
    adapter: SourceAdapter,
    fetcher: Fetcher,
    chapter_id: str,
    unit_type: UnitType,
    output_dir: Path,
    page_delay: float = DEFAULT_PAGE_DELAY,
) -> ChapterResult:
    """Download all pages of a chapter in order.

    Writes ``page_001.<ext>``... into ``output_dir``. Scrambled pages are
    restored and saved as PNG; others are written byte-for-byte with their
    own extension. A failed page is logged and skipped. ``page_delay``
    seconds pass after every page, successful or not.

    Raises:
        NetworkError: If the page list cannot be fetched.
        DataFormatError: If the page list response is malformed.
        OSError: If the output directory or a page file cannot be written.
    """
    logger.info(f"Downloading {unit_type} {chapter_id}...")
    output_dir = Path(output_dir)

    entries = await adapter.resolve_pages(chapter_id, unit_type)
    output_dir.mkdir(parents=True, exist_ok=True)

    result = ChapterResult(chapter_id=chapter_id, output_dir=output_dir)
    total = len(entries)

    for page_number, entry in enumerate(entries, 1):
        logger.info(f"  Downloading page {page_number}/{total}...")
        try:
            result.pages.append(await download_page(fetcher, entry, page_number, output_dir))
        finally:
            await asyncio.sleep(page_delay)

    logger.info(
        f"Chapter downloaded to: {output_dir} "
        f"({result.pages_downloaded} pages, {result.pages_failed} failed)"
    )
    return result


async def download_series(
    adapter: SourceAdapter,
    fetcher: Fetcher,
    series_ref: str,
    output_dir: Path,
    language: str = "en",
    start_chapter: int = 1,
    end_chapter: Optional[int] = None,
    page_delay: float = DEFAULT_PAGE_DELAY,
    chapter_delay: float = DEFAULT_CHAPTER_DELAY,
    sort_numeric: bool = False,
) -> SeriesResult:
    """Download a range of a series' chapters one after another.

    Chapters land in ``output_dir/<series title>/<chapter title>/``. A chapter
    that fails is logged and recorded, and the run moves on to the next one.
    ``chapter_delay`` seconds pass after every chapter.

    Raises:
        NetworkError: If the series page or chapter discovery fails.
    """
    output_dir = Path(output_dir)
    series = await adapter.get_series(series_ref)
    logger.info(f"Downloading: {series.title}")

    chapters = await adapter.discover_chapters(series_ref)
    selected = select_chapters(chapters, language, start_chapter, end_chapter, sort_numeric)
    logger.info(f"Found {len(selected)} chapters")

    result = SeriesResult(series=series, output_dir=output_dir)

    for chapter in selected:
        chapter_dir = get_chapter_path(output_dir, series.title, chapter.title)
        try:
            chapter_result = await download_chapter(
                adapter, fetcher, chapter.id, chapter.unit_type, chapter_dir, page_delay=page_delay
            )
            result.chapters.append(chapter_result)
        except (AcquisitionError, OSError) as e:
            logger.error(f"Failed to download {chapter.unit_type} {chapter.title}: {e}")
            result.failed_chapters.append((chapter, str(e)))
        await asyncio.sleep(chapter_delay)

    return result
