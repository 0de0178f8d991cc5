"""Tests for the ``linkscope`` CLI commands."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock

import pytest
from typer.testing import CliRunner

from cli.main import app
from linkscope.errors import PrivateAddressError
from linkscope.proxy.image_proxy import ProxiedImage
from linkscope.scraper.models import ReaderContentResult, ScrapeResult

runner = CliRunner()

_PREVIEW = ScrapeResult(
    title="Example",
    description="An example page",
    image="https://example.com/a.png",
    favicon="https://example.com/favicon.ico",
    scrape_status="success",
)

_ARTICLE = ReaderContentResult(
    title="Article",
    byline="Jane Doe",
    content='<p id="p-1" data-paragraph="true">Body text here</p>',
    text_content="Body text here",
    site_name="Example Blog",
    status="success",
)


class FakeEngine:
    calls: list[tuple[str, str]] = []
    preview = _PREVIEW
    article = _ARTICLE

    def __init__(self, *args, **kwargs) -> None:
        pass

    async def __aenter__(self) -> FakeEngine:
        return self

    async def __aexit__(self, *exc_info) -> None:
        return None

    async def smart_scrape(self, url: str) -> ScrapeResult:
        FakeEngine.calls.append(("smart", url))
        return self.preview

    async def advanced_scrape(self, url: str) -> ScrapeResult:
        FakeEngine.calls.append(("advanced", url))
        return self.preview

    async def reader_scrape(self, url: str) -> ReaderContentResult:
        FakeEngine.calls.append(("reader", url))
        return self.article


@pytest.fixture(autouse=True)
def fake_engine(monkeypatch):
    FakeEngine.calls = []
    FakeEngine.preview = _PREVIEW
    FakeEngine.article = _ARTICLE
    monkeypatch.setattr("cli.main.ScrapeEngine", FakeEngine)
    monkeypatch.setattr("cli.main.setup_logging", lambda *args, **kwargs: None)
    return FakeEngine


def test_scrape_prints_json(fake_engine) -> None:
    result = runner.invoke(app, ["scrape", "https://example.com/"])

    assert result.exit_code == 0
    payload = json.loads(result.output)
    assert payload["title"] == "Example"
    assert payload["scrapeStatus"] == "success"
    assert fake_engine.calls == [("smart", "https://example.com/")]


def test_scrape_advanced_flag(fake_engine) -> None:
    result = runner.invoke(app, ["scrape", "https://example.com/", "--advanced"])

    assert result.exit_code == 0
    assert fake_engine.calls == [("advanced", "https://example.com/")]


def test_scrape_failure_exits_non_zero(fake_engine) -> None:
    fake_engine.preview = ScrapeResult.failed()
    result = runner.invoke(app, ["scrape", "https://example.com/"])

    assert result.exit_code == 1
    assert '"scrapeStatus": "failed"' in result.output


def test_reader_prints_text(fake_engine) -> None:
    result = runner.invoke(app, ["reader", "https://example.com/post"])

    assert result.exit_code == 0
    assert "Article" in result.output
    assert "Jane Doe" in result.output
    assert "Body text here" in result.output
    assert "data-paragraph" not in result.output


def test_reader_html_flag(fake_engine) -> None:
    result = runner.invoke(app, ["reader", "https://example.com/post", "--html"])

    assert result.exit_code == 0
    assert 'data-paragraph="true"' in result.output


def test_reader_blocked_exits_non_zero(fake_engine) -> None:
    fake_engine.article = ReaderContentResult.blocked()
    result = runner.invoke(app, ["reader", "https://example.com/post"])

    assert result.exit_code == 1
    assert "Access blocked (403)" in result.output


def test_proxy_writes_file(tmp_path, monkeypatch) -> None:
    async def stream():
        yield b"\x89PNG"
        yield b"data"

    image = ProxiedImage(stream=stream(), content_type="image/png", _close=AsyncMock())
    monkeypatch.setattr("cli.main.proxy_image", AsyncMock(return_value=image))
    out = tmp_path / "img.png"

    result = runner.invoke(app, ["proxy", "https://cdn.example.com/a.png", "--out", str(out)])

    assert result.exit_code == 0
    assert out.read_bytes() == b"\x89PNGdata"
    assert "image/png" in result.output


def test_proxy_error_exits_non_zero(tmp_path, monkeypatch) -> None:
    monkeypatch.setattr("cli.main.proxy_image", AsyncMock(side_effect=PrivateAddressError()))
    out = tmp_path / "img.png"

    result = runner.invoke(app, ["proxy", "http://169.254.169.254/", "--out", str(out)])

    assert result.exit_code == 1
    assert "Access to private IP denied" in result.output
    assert not out.exists()
