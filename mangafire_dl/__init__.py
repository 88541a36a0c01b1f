"""MangaFire chapter downloader - discovery, page resolution and tile descrambling."""

__version__ = "0.1.0"
