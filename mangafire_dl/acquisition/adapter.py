"""Source adapter protocol and data structures for chapter acquisition."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal, Optional, Protocol

from .errors import DataFormatError


UnitType = Literal["chapter", "volume"]

UNIT_TYPES: tuple[UnitType, ...] = ("chapter", "volume")


@dataclass(frozen=True)
class SeriesInfo:
    """Information about a series from a source."""
    series_id: str
    title: str
    url: str


@dataclass(frozen=True)
class ChapterDescriptor:
    """A chapter or volume listed for one language.

    The same content may appear under both unit types, so discovery results
    are an ordered multiset.
    """
    id: str
    unit_type: UnitType
    title: str
    language: str
    source_url: str


@dataclass(frozen=True)
class PageDescriptor:
    """One page image reference as returned by the reader endpoint."""
    image_url: str
    extra: Any
    scramble_level: int

    @property
    def is_scrambled(self) -> bool:
        return self.scramble_level >= 1

    @classmethod
    def from_raw(cls, entry: Any) -> "PageDescriptor":
        """Build a descriptor from a raw ``[url, extra, level]`` entry.

        Raises:
            DataFormatError: If the entry does not carry a URL and an integer level.
        """
        if not isinstance(entry, (list, tuple)) or len(entry) < 3:
            raise DataFormatError(f"Malformed page entry: {entry!r}")

        image_url, extra, level = entry[0], entry[1], entry[2]
        if not isinstance(image_url, str) or not image_url:
            raise DataFormatError(f"Page entry has no image URL: {entry!r}")
        # bool is an int subclass but never a valid level
        if isinstance(level, bool) or not isinstance(level, int) or level < 0:
            raise DataFormatError(f"Page entry has invalid scramble level: {entry!r}")

        return cls(image_url=image_url, extra=extra, scramble_level=level)


@dataclass
class PageResult:
    """Result of downloading a single page."""
    index: int
    success: bool
    local_path: Optional[Path]
    error: Optional[str]
    descrambled: bool = False


@dataclass
class ChapterResult:
    """Result of downloading a chapter."""
    chapter_id: str
    output_dir: Path
    pages: list[PageResult] = field(default_factory=list)

    @property
    def pages_downloaded(self) -> int:
        return sum(1 for p in self.pages if p.success)

    @property
    def pages_failed(self) -> int:
        return sum(1 for p in self.pages if not p.success)

    @property
    def success(self) -> bool:
        return self.pages_failed == 0

    @property
    def errors(self) -> list[str]:
        return [f"Page {p.index}: {p.error}" for p in self.pages if not p.success]


@dataclass
class SeriesResult:
    """Result of downloading a selection of chapters from a series."""
    series: SeriesInfo
    output_dir: Path
    chapters: list[ChapterResult] = field(default_factory=list)
    failed_chapters: list[tuple[ChapterDescriptor, str]] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.failed_chapters and all(c.success for c in self.chapters)


class SourceAdapter(Protocol):
    """Protocol for implementing chapter source adapters."""

    async def search(self, query: str) -> list[SeriesInfo]:
        """Search for series by query string."""
        ...

    async def get_series(self, series_ref: str) -> SeriesInfo:
        """Fetch display metadata for a series."""
        ...

    async def discover_chapters(self, series_ref: str) -> list[ChapterDescriptor]:
        """List all chapters and volumes across languages, in discovery order."""
        ...

    async def resolve_pages(self, chapter_id: str, unit_type: UnitType) -> list:
        """Return the raw page entries for a chapter."""
        ...
