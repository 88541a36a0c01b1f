"""Tests for the command line interface."""

import json
from pathlib import Path
from unittest.mock import AsyncMock, patch

from mangafire_dl.acquisition.adapter import (
    ChapterDescriptor,
    ChapterResult,
    PageResult,
    SeriesInfo,
    SeriesResult,
)
from mangafire_dl.acquisition.errors import NetworkError
from mangafire_dl.cli.main import main


def test_no_command_prints_help(capsys):
    assert main([]) == 1
    assert "usage" in capsys.readouterr().out


def test_config_set_and_show(tmp_path, capsys):
    config_path = tmp_path / "config.json"

    assert main(["--config", str(config_path), "config", "--set", "timeout=5", "--set", "output_dir=out"]) == 0

    saved = json.loads(config_path.read_text())
    assert saved["timeout"] == 5.0
    assert saved["output_dir"] == "out"

    assert main(["--config", str(config_path), "config"]) == 0
    assert "timeout = 5.0" in capsys.readouterr().out


def test_config_set_rejects_unknown_key(tmp_path, capsys):
    assert main(["--config", str(tmp_path / "c.json"), "config", "--set", "colour=blue"]) == 1
    assert not (tmp_path / "c.json").exists()


def test_download_passes_range_and_config(tmp_path, capsys):
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({"page_delay": 0.1, "chapter_delay": 0.2}))
    series = SeriesInfo(series_id="/manga/x.y1", title="X", url="https://mangafire.to/manga/x.y1")
    chapter_dir = tmp_path / "X" / "Chapter 3"
    result = SeriesResult(
        series=series,
        output_dir=tmp_path,
        chapters=[ChapterResult(
            chapter_id="3",
            output_dir=chapter_dir,
            pages=[PageResult(index=1, success=True, local_path=chapter_dir / "page_001.png", error=None)],
        )],
    )

    with patch("mangafire_dl.cli.commands.acquire.download_series", new_callable=AsyncMock) as mock_download:
        mock_download.return_value = result
        code = main([
            "--config", str(config_path), "download", "/manga/x.y1",
            "--language", "fr", "--start", "3", "--end", "5", "--output-dir", str(tmp_path),
        ])

    assert code == 0
    kwargs = mock_download.await_args.kwargs
    assert mock_download.await_args.args[2:] == ("/manga/x.y1", Path(tmp_path))
    assert kwargs["language"] == "fr"
    assert kwargs["start_chapter"] == 3
    assert kwargs["end_chapter"] == 5
    assert kwargs["page_delay"] == 0.1
    assert kwargs["chapter_delay"] == 0.2
    assert "Chapter 3: 1 pages" in capsys.readouterr().out


def test_download_reports_failed_chapters(tmp_path, capsys):
    series = SeriesInfo(series_id="/manga/x.y1", title="X", url="u")
    failed = ChapterDescriptor(id="2", unit_type="chapter", title="Chapter 2", language="en", source_url="u2")
    result = SeriesResult(series=series, output_dir=tmp_path, failed_chapters=[(failed, "HTTP 500")])

    with patch("mangafire_dl.cli.commands.acquire.download_series", new_callable=AsyncMock) as mock_download:
        mock_download.return_value = result
        code = main(["--config", str(tmp_path / "c.json"), "download", "/manga/x.y1"])

    assert code == 1
    assert "Chapter 2: HTTP 500" in capsys.readouterr().out


def test_search_failure_returns_error(tmp_path, capsys):
    with patch(
        "mangafire_dl.cli.commands.acquire.MangaFireAdapter.search",
        new_callable=AsyncMock,
        side_effect=NetworkError("https://mangafire.to/filter", "HTTP 403", status=403),
    ):
        code = main(["--config", str(tmp_path / "c.json"), "search", "one piece"])

    assert code == 1
    assert "Search failed" in capsys.readouterr().out


def test_chapters_lists_filtered_language(tmp_path, capsys):
    chapters = [
        ChapterDescriptor(id="1", unit_type="chapter", title="Chapter 1", language="en", source_url="a"),
        ChapterDescriptor(id="2", unit_type="chapter", title="Chapitre 1", language="fr", source_url="b"),
    ]

    with patch(
        "mangafire_dl.cli.commands.acquire.MangaFireAdapter.discover_chapters",
        new_callable=AsyncMock,
        return_value=chapters,
    ):
        code = main(["--config", str(tmp_path / "c.json"), "chapters", "/manga/x.y1", "--language", "FR"])

    out = capsys.readouterr().out
    assert code == 0
    assert "Chapitre 1" in out
    assert "Chapter 1 " not in out
