"""Tests for the HTTP fetcher."""

import asyncio
import json
from unittest.mock import MagicMock, patch

import pytest
import requests

from mangafire_dl.acquisition.config import DownloaderConfig
from mangafire_dl.acquisition.errors import DataFormatError, NetworkError
from mangafire_dl.acquisition.fetcher import Fetcher, parse_fragment


def make_response(status=200, text="", json_data=None, content=b""):
    response = requests.Response()
    response.status_code = status
    response.url = "https://example.test/"
    if json_data is not None:
        response._content = json.dumps(json_data).encode("utf-8")
    else:
        response._content = content or text.encode("utf-8")
    response.encoding = "utf-8"
    return response


@pytest.fixture
def config():
    return DownloaderConfig(user_agent="TestAgent/1.0", referer="https://example.test/", timeout=7.5)


def test_session_carries_identity_headers(config):
    fetcher = Fetcher(config)

    assert fetcher.session.headers["User-Agent"] == "TestAgent/1.0"
    assert fetcher.session.headers["Referer"] == "https://example.test/"
    fetcher.close()


def test_fetch_document_parses_html(config):
    fetcher = Fetcher(config)
    html = '<div class="info"><a href="/manga/x.y1">X</a></div>'

    with patch.object(fetcher.session, "get", return_value=make_response(text=html)) as mock_get:
        doc = asyncio.run(fetcher.fetch_document("https://example.test/page"))

    assert doc.select_one("div.info > a").get("href") == "/manga/x.y1"
    mock_get.assert_called_once_with("https://example.test/page", timeout=7.5)


def test_fetch_json(config):
    fetcher = Fetcher(config)

    with patch.object(fetcher.session, "get", return_value=make_response(json_data={"result": {"images": []}})):
        data = asyncio.run(fetcher.fetch_json("https://example.test/ajax"))

    assert data == {"result": {"images": []}}


def test_fetch_json_invalid_body(config):
    fetcher = Fetcher(config)

    with patch.object(fetcher.session, "get", return_value=make_response(text="<html>oops</html>")):
        with pytest.raises(DataFormatError):
            asyncio.run(fetcher.fetch_json("https://example.test/ajax"))


def test_fetch_bytes(config):
    fetcher = Fetcher(config)

    with patch.object(fetcher.session, "get", return_value=make_response(content=b"\x89PNG...")):
        assert asyncio.run(fetcher.fetch_bytes("https://example.test/1.png")) == b"\x89PNG..."


def test_non_success_status_raises_network_error(config):
    fetcher = Fetcher(config)

    with patch.object(fetcher.session, "get", return_value=make_response(status=503)):
        with pytest.raises(NetworkError) as exc_info:
            asyncio.run(fetcher.fetch_json("https://example.test/ajax"))

    assert exc_info.value.status == 503
    assert exc_info.value.url == "https://example.test/ajax"


def test_transport_failure_raises_network_error(config):
    fetcher = Fetcher(config)

    with patch.object(fetcher.session, "get", side_effect=requests.Timeout("timed out")):
        with pytest.raises(NetworkError) as exc_info:
            asyncio.run(fetcher.fetch_bytes("https://example.test/slow.png"))

    assert exc_info.value.status is None
    assert isinstance(exc_info.value.__cause__, requests.Timeout)


def test_context_manager_closes_session(config):
    session = MagicMock()
    session.headers = {}

    with Fetcher(config, session=session) as fetcher:
        assert fetcher.session is session

    session.close.assert_called_once()
    assert session.headers["User-Agent"] == "TestAgent/1.0"


def test_parse_fragment():
    fragment = parse_fragment('<li><a data-id="5" href="/read/x/en/chapter-1">Ch 1</a></li>')

    assert fragment.select_one("a").get("data-id") == "5"
