"""Storage utilities for deterministic file organization."""

import re
from pathlib import Path
from urllib.parse import urlparse


INVALID_FILENAME_CHARS = re.compile(r'[\\/*?:"<>|\x00-\x1f]')

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp", ".gif", ".avif", ".bmp"}


def safe_name(text: str) -> str:
    """Strip characters that are invalid in file names on Windows/Linux."""
    if not text:
        return "untitled"
    safe = INVALID_FILENAME_CHARS.sub("", text).strip().rstrip(".")
    return safe if safe else "untitled"


def get_series_path(root: Path, series_title: str) -> Path:
    """Return deterministic path for a series."""
    return Path(root) / safe_name(series_title)


def get_chapter_path(root: Path, series_title: str, chapter_title: str) -> Path:
    """Return deterministic path for a chapter."""
    return get_series_path(root, series_title) / safe_name(chapter_title)


def get_page_filename(page_number: int, extension: str = ".png") -> str:
    """Return deterministic filename for a page (1-based, 3-digit padded)."""
    if not extension.startswith("."):
        extension = "." + extension
    return f"page_{page_number:03d}{extension}"


def extension_from_url(url: str, default: str = ".jpg") -> str:
    """Return the image extension of a URL path, lower-cased, or ``default``."""
    suffix = Path(urlparse(url).path).suffix.lower()
    return suffix if suffix in IMAGE_EXTENSIONS else default
