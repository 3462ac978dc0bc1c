# wishmatch/cli/runner.py

"""Headless command runners: catalog building, matching, resolving."""

import json
import logging
import sys
from pathlib import Path
from typing import Any

from bs4 import BeautifulSoup
from rich.console import Console
from rich.table import Table
from rich.text import Text

from wishmatch.config.settings import Settings
from wishmatch.extract.product_extractor import ProductExtractor
from wishmatch.fetch.link_resolver import LinkResolver
from wishmatch.fetch.page_fetcher import FetchError, PageFetcher
from wishmatch.matching.noon_matcher import NoonMatcher
from wishmatch.models.product import MatchCandidate, ProductRecord
from wishmatch.services.catalog_builder import (
    CatalogBuilder,
    CatalogResult,
    ErrorPolicy,
    NoProductsError,
)
from wishmatch.storage.file_manager import FileManager
from wishmatch.storage.parser_log import ParserLog

logger = logging.getLogger("wishmatch.cli")

# Stderr console for status messages so stdout stays clean for JSON
_err = Console(stderr=True)


def _dump_json(data: Any) -> None:
    json.dump(data, sys.stdout, ensure_ascii=False, indent=2)
    sys.stdout.write("\n")


def _print_catalog_table(items: list[ProductRecord]) -> None:
    """Render a Rich table of catalog items to stdout."""
    table = Table(
        title="Catalog",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("#", style="dim", width=4)
    table.add_column("ID", style="magenta")
    table.add_column("Title", max_width=60)
    table.add_column("Price", justify="right", style="green")
    table.add_column("Alternates", justify="center")
    table.add_column("URL", overflow="fold", style="dim")

    for idx, item in enumerate(items, 1):
        alternates = ", ".join(
            f"{a.store} ({a.match_score}%)"
            if a.match_score is not None
            else a.store
            for a in item.alternate_listings
        )
        table.add_row(
            str(idx),
            item.identifier or "[red]error[/red]",
            Text(item.title[:60]),
            item.price_display,
            alternates or "—",
            item.source_url,
        )

    Console().print(table)


def _candidate_dict(candidate: MatchCandidate) -> dict[str, Any]:
    data: dict[str, Any] = {
        "title": candidate.title,
        "price": candidate.price,
        "image": candidate.image,
        "url": candidate.url,
        "store_identifier": candidate.store_identifier,
    }
    if candidate.score is not None:
        data["match_score"] = candidate.score
    if candidate.breakdown is not None:
        data["breakdown"] = {
            "keywords": round(candidate.breakdown.keyword_points, 1),
            "brand": round(candidate.breakdown.brand_points, 1),
            "price": round(candidate.breakdown.price_points, 1),
        }
    return data


def _summary(result: CatalogResult) -> str:
    parts: list[str] = []
    if result.duplicates_skipped:
        parts.append(f"{result.duplicates_skipped} duplicates")
    if result.invalid_count:
        parts.append(f"{result.invalid_count} invalid")
    if result.failed_count:
        parts.append(f"{result.failed_count} failed")
    if result.truncated_inputs:
        parts.append(f"{result.truncated_inputs} URLs over the limit")
    if result.timed_out:
        parts.append("deadline reached")
    return f" ({', '.join(parts)})" if parts else ""


async def cli_parse(
    urls: list[str],
    placeholders: bool,
    match_alternates: bool,
    output_format: str,
    output_dir: str | None,
) -> int:
    """Build a catalog from *urls* and return an exit code (0=ok, 1=fail)."""
    if output_dir is not None:
        Settings.RESULTS_DIR = Path(output_dir)

    builder = CatalogBuilder(
        error_policy=(
            ErrorPolicy.PLACEHOLDER if placeholders else ErrorPolicy.SKIP
        ),
        match_alternates=match_alternates,
    )
    _err.print(f"[bold]Parsing {len(urls)} URL(s)...[/bold]")

    try:
        result = await builder.build_catalog(urls)
    except ValueError as exc:
        _err.print(f"[red]{exc}[/red]")
        return 1
    except NoProductsError as exc:
        for error_msg in exc.result.errors:
            _err.print(f"[red]Error: {error_msg}[/red]")
        _err.print(f"[yellow]{exc}[/yellow]")
        return 1

    for error_msg in result.errors:
        _err.print(f"[red]Error: {error_msg}[/red]")
    _err.print(
        f"[green]✓ {len(result.records)} products{_summary(result)}[/green]"
    )

    try:
        path = FileManager().save_json(result.to_dict(), "catalog")
        _err.print(f"[dim]Saved → {path}[/dim]")
    except OSError as exc:
        logger.error("Save failed: %s", exc, exc_info=True)
        _err.print(f"[red]Save failed: {exc}[/red]")

    if output_format == "table":
        _print_catalog_table(result.items)
    else:
        _dump_json(result.to_dict())
    return 0


def cli_match(
    title: str,
    price: str | None,
    min_score: int | None,
) -> int:
    """Look *title* up on noon.com and print the accepted match."""
    _err.print(f"[bold]Searching noon.com:[/bold] {title}")
    candidate = NoonMatcher().find_match(title, price, min_score)
    if candidate is None:
        _err.print(
            "[yellow]No match on noon.com (or score too low).[/yellow]"
        )
        return 1
    _err.print(f"[green]✓ Match score {candidate.score}%[/green]")
    _dump_json(_candidate_dict(candidate))
    return 0


def cli_noon_product(url: str) -> int:
    """Parse a single noon.com product page."""
    candidate = NoonMatcher().parse_product(url)
    if candidate is None:
        _err.print("[yellow]Could not parse the noon.com page.[/yellow]")
        return 1
    _dump_json(_candidate_dict(candidate))
    return 0


def cli_images(url: str) -> int:
    """Print the gallery image URLs of a product page."""
    resolved = LinkResolver().resolve(url)
    page = PageFetcher().fetch(resolved)
    if isinstance(page, FetchError):
        _err.print(f"[red]Fetch failed: {page.reason}[/red]")
        return 1
    images = ProductExtractor().extract_images(BeautifulSoup(page.html, "lxml"))
    if not images:
        _err.print("[yellow]No images found.[/yellow]")
        return 1
    _err.print(f"[green]✓ {len(images)} images[/green]")
    _dump_json({"url": resolved, "count": len(images), "images": images})
    return 0


def cli_resolve(url: str) -> int:
    """Print the canonical URL for a (short) link."""
    sys.stdout.write(f"{LinkResolver().resolve(url)}\n")
    return 0


def print_parser_log(count: int, as_json: bool = False) -> None:
    """Render the newest *count* parser log entries to stderr."""
    entries = ParserLog.instance().last(count)
    if as_json:
        _err.print_json(
            data={
                "count": len(entries),
                "logs": [entry.to_dict() for entry in entries],
            }
        )
        return
    if not entries:
        _err.print("[dim]Parser log is empty.[/dim]")
        return
    styles = {
        "info": "white",
        "success": "green",
        "warning": "yellow",
        "error": "red",
    }
    table = Table(title="Parser log", title_style="bold cyan")
    table.add_column("Time", style="dim")
    table.add_column("Level")
    table.add_column("Message", overflow="fold")
    for entry in entries:
        style = styles.get(entry.level, "white")
        table.add_row(
            entry.timestamp,
            Text(entry.level, style=style),
            Text(entry.message),
        )
    _err.print(table)


def clear_parser_log() -> int:
    """Empty the parser log and return how many entries were dropped."""
    removed = ParserLog.instance().clear()
    _err.print(f"[dim]Cleared {removed} parser log entries.[/dim]")
    return removed
