"""Acquisition CLI commands."""

import asyncio
import dataclasses
from pathlib import Path

from mangafire_dl.acquisition.adapters.mangadex import MangaDexCatalog
from mangafire_dl.acquisition.adapters.mangafire import MangaFireAdapter
from mangafire_dl.acquisition.config import load_config, resolve_config_path, save_config
from mangafire_dl.acquisition.downloader import download_chapter, download_series
from mangafire_dl.acquisition.errors import AcquisitionError
from mangafire_dl.acquisition.fetcher import Fetcher


def _open(args):
    """Return ``(config, fetcher, adapter)`` for the configured site."""
    config = load_config(args.config)
    fetcher = Fetcher(config)
    return config, fetcher, MangaFireAdapter(fetcher, config.base_url)


def cmd_search(args):
    """Search for series by title."""
    config, fetcher, adapter = _open(args)

    try:
        with fetcher:
            results = asyncio.run(adapter.search(args.query))
    except AcquisitionError as e:
        print(f"Search failed: {e}")
        return 1

    if not results:
        print(f"No results found for: {args.query}")
        return 0

    print(f"Found {len(results)} results for '{args.query}':\n")

    for idx, series in enumerate(results, 1):
        print(f"{idx}. {series.title}")
        print(f"   ID: {series.series_id}")
        print(f"   URL: {series.url}")
        print()

    return 0


def cmd_chapters(args):
    """List discovered chapters of a series."""
    config, fetcher, adapter = _open(args)

    try:
        with fetcher:
            chapters = asyncio.run(adapter.discover_chapters(args.series_ref))
    except (AcquisitionError, ValueError) as e:
        print(f"Chapter discovery failed: {e}")
        return 1

    if args.language:
        chapters = [c for c in chapters if c.language == args.language.lower()]

    if not chapters:
        print(f"No chapters found for series: {args.series_ref}")
        return 1

    print(f"Found {len(chapters)} entries for {args.series_ref}")
    for idx, chapter in enumerate(chapters, 1):
        print(f"{idx:4d}. [{chapter.language}/{chapter.unit_type}] {chapter.title} (id {chapter.id})")

    return 0


def cmd_download(args):
    """Download a range of chapters from a series."""
    config, fetcher, adapter = _open(args)
    output_dir = Path(args.output_dir or config.output_dir)

    try:
        with fetcher:
            result = asyncio.run(download_series(
                adapter,
                fetcher,
                args.series_ref,
                output_dir,
                language=args.language,
                start_chapter=args.start,
                end_chapter=args.end,
                page_delay=config.page_delay,
                chapter_delay=config.chapter_delay,
                sort_numeric=args.sort_numeric,
            ))
    except (AcquisitionError, ValueError) as e:
        print(f"Download failed: {e}")
        return 1

    print(f"Downloaded {len(result.chapters)} chapters of {result.series.title}")
    for chapter in result.chapters:
        if chapter.success:
            print(f"  ✓ {chapter.output_dir.name}: {chapter.pages_downloaded} pages")
        else:
            print(f"  ✗ {chapter.output_dir.name}: {chapter.pages_failed} pages failed")
            for error in chapter.errors[:3]:  # Show first 3 errors
                print(f"    - {error}")
    for chapter, error in result.failed_chapters:
        print(f"  ✗ {chapter.title}: {error}")

    return 0 if result.success else 1


def cmd_chapter(args):
    """Download a single chapter or volume by id."""
    config, fetcher, adapter = _open(args)
    output_dir = Path(args.output_dir or Path(config.output_dir) / args.chapter_id)

    try:
        with fetcher:
            result = asyncio.run(download_chapter(
                adapter, fetcher, args.chapter_id, args.type, output_dir, page_delay=config.page_delay
            ))
    except (AcquisitionError, OSError) as e:
        print(f"Download failed: {e}")
        return 1

    if result.success:
        print(f"✓ Downloaded {result.pages_downloaded} pages to {result.output_dir}")
        return 0

    print(f"✗ Failed: {result.pages_failed} pages failed")
    for error in result.errors[:3]:
        print(f"  - {error}")
    return 1


def cmd_popular(args):
    """List popular titles from the MangaDex catalog."""
    config = load_config(args.config)
    # the catalog API is a different site than the one we download from
    catalog_config = dataclasses.replace(config, referer="https://mangadex.org/")

    try:
        with Fetcher(catalog_config) as fetcher:
            catalog = MangaDexCatalog(fetcher)
            if args.details:
                entries = asyncio.run(catalog.list_popular_details(args.limit, config.concurrency))
            else:
                entries = asyncio.run(catalog.list_popular(args.limit, config.concurrency))
    except AcquisitionError as e:
        print(f"Catalog listing failed: {e}")
        return 1

    for idx, entry in enumerate(entries, 1):
        line = f"{idx}. {entry.title} ({entry.id})"
        if entry.chapter_count is not None:
            line += f" - {entry.chapter_count} chapters, languages: {', '.join(entry.languages)}"
        print(line)

    return 0


def cmd_config(args):
    """Show or update the downloader config."""
    config = load_config(args.config)

    if args.set:
        for assignment in args.set:
            key, sep, value = assignment.partition("=")
            if not sep:
                print(f"Error: expected key=value, got: {assignment}")
                return 1
            try:
                config.update(key.strip(), value.strip())
            except (KeyError, ValueError) as e:
                print(f"Error: {e}")
                return 1
        path = save_config(config, args.config)
        print(f"Saved config to {path}")
    else:
        print(f"Config ({resolve_config_path(args.config)}):")

    for key, value in dataclasses.asdict(config).items():
        print(f"  {key} = {value}")

    return 0


def setup_acquire_commands(subparsers):
    """Setup acquisition subcommands."""
    # search command
    search_parser = subparsers.add_parser("search", help="Search for series by title")
    search_parser.add_argument("query", help="Search query (series title)")
    search_parser.set_defaults(func=cmd_search)

    # chapters command
    chapters_parser = subparsers.add_parser("chapters", help="List chapters and volumes of a series")
    chapters_parser.add_argument("series_ref", help="Series path, e.g. /manga/one-piece.dkw")
    chapters_parser.add_argument("--language", help="Only show this language code")
    chapters_parser.set_defaults(func=cmd_chapters)

    # download command
    download_parser = subparsers.add_parser("download", help="Download a range of chapters from a series")
    download_parser.add_argument("series_ref", help="Series path, e.g. /manga/one-piece.dkw")
    download_parser.add_argument("--language", default="en", help="Language code")
    download_parser.add_argument("--start", type=int, default=1, help="First chapter position (1-based)")
    download_parser.add_argument("--end", type=int, default=None, help="Stop before this position (default: to the end)")
    download_parser.add_argument("--output-dir", help="Output directory (default from config)")
    download_parser.add_argument("--sort-numeric", action="store_true", help="Order by chapter number before slicing")
    download_parser.set_defaults(func=cmd_download)

    # chapter command
    chapter_parser = subparsers.add_parser("chapter", help="Download a single chapter by id")
    chapter_parser.add_argument("chapter_id", help="Chapter id")
    chapter_parser.add_argument("--type", default="chapter", choices=["chapter", "volume"], help="Unit type")
    chapter_parser.add_argument("--output-dir", help="Output directory")
    chapter_parser.set_defaults(func=cmd_chapter)

    # popular command
    popular_parser = subparsers.add_parser("popular", help="List popular titles from MangaDex")
    popular_parser.add_argument("--limit", type=int, default=20, help="Number of titles to request")
    popular_parser.add_argument("--details", action="store_true", help="Include chapter counts and languages")
    popular_parser.set_defaults(func=cmd_popular)

    # config command
    config_parser = subparsers.add_parser("config", help="Show or update settings")
    config_parser.add_argument("--set", action="append", metavar="KEY=VALUE", help="Set a config value")
    config_parser.set_defaults(func=cmd_config)
