"""LinkScope CLI: entry-point for manual extraction runs.

Usage:
    python cli/main.py --help

Commands:
    scrape    link-preview metadata (fast path, browser fallback)
    reader    full readable article content
    proxy     fetch an image through the SSRF guard
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the project root is on sys.path so that `from linkscope.xxx import ...`
# works when the CLI is invoked as `python cli/main.py` from any directory.
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import asyncio
import json
from typing import Optional

import typer

from linkscope.errors import ImageProxyError
from linkscope.logging_config import setup_logging
from linkscope.proxy import proxy_image
from linkscope.scraper import ScrapeEngine

app = typer.Typer(
    name="linkscope",
    help="LinkScope extraction engine CLI.",
    no_args_is_help=True,
)


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING, ..."),
) -> None:
    """Configure logging (to stderr, so stdout stays machine-readable)."""
    setup_logging(log_level, stream=sys.stderr)


# ---------------------------------------------------------------------------
# Preview metadata
# ---------------------------------------------------------------------------
@app.command("scrape")
def scrape(
    url: str = typer.Argument(..., help="URL to scrape."),
    advanced: bool = typer.Option(False, "--advanced", help="Skip the fast path, render in the browser."),
) -> None:
    """Print link-preview metadata for URL as JSON."""

    async def _run():
        async with ScrapeEngine() as engine:
            if advanced:
                return await engine.advanced_scrape(url)
            return await engine.smart_scrape(url)

    result = asyncio.run(_run())
    typer.echo(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    if result.scrape_status != "success":
        raise typer.Exit(1)


# ---------------------------------------------------------------------------
# Reader mode
# ---------------------------------------------------------------------------
@app.command("reader")
def reader(
    url: str = typer.Argument(..., help="Article URL."),
    html: bool = typer.Option(False, "--html", help="Print the processed HTML instead of text."),
) -> None:
    """Extract the readable article at URL."""

    async def _run():
        async with ScrapeEngine() as engine:
            return await engine.reader_scrape(url)

    result = asyncio.run(_run())
    if result.status != "success":
        typer.echo(f"[reader] {result.status}: {result.error}", err=True)
        raise typer.Exit(1)

    typer.echo(f"[reader] Title  : {result.title}")
    typer.echo(f"[reader] Byline : {result.byline or '(none)'}")
    typer.echo(f"[reader] Site   : {result.site_name or '(none)'}")
    typer.echo(f"[reader] Words  : {len(result.text_content.split())}")
    typer.echo("")
    typer.echo(result.content if html else result.text_content)


# ---------------------------------------------------------------------------
# Image proxy
# ---------------------------------------------------------------------------
@app.command("proxy")
def proxy(
    url: str = typer.Argument(..., help="Image URL."),
    out: Path = typer.Option(..., "--out", help="File to write the image to."),
) -> None:
    """Fetch an image through the SSRF-safe proxy and save it."""

    async def _run():
        image = await proxy_image(url)
        try:
            data = await image.read()
        finally:
            await image.aclose()
        return image.content_type, data

    try:
        content_type, data = asyncio.run(_run())
    except ImageProxyError as exc:
        typer.echo(f"[proxy] {exc.status_code} {exc.detail}", err=True)
        raise typer.Exit(1)

    out.write_bytes(data)
    typer.echo(f"[proxy] Saved {len(data)} bytes ({content_type}) to {out}")


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()
