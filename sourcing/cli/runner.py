# sourcing/cli/runner.py

"""Headless CLI commands: search, import, auth and health."""

import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path

from rich.console import Console
from rich.table import Table

from sourcing.clients.platform_api import PlatformApiClient
from sourcing.config.settings import Settings
from sourcing.errors import ConfigurationError, SourcingError
from sourcing.models.draft import ProductDraft
from sourcing.models.listing import SourceListing
from sourcing.models.search import SearchRequest
from sourcing.services.credential_manager import CredentialManager
from sourcing.services.fallback_chain import FallbackChain, build_default_chain
from sourcing.services.normalizer import ProductNormalizer
from sourcing.services.product_importer import ProductImporter
from sourcing.services.search_orchestrator import SearchOrchestrator
from sourcing.storage.credential_store import SQLiteCredentialStore
from sourcing.storage.file_manager import FileManager

logger = logging.getLogger("product_sourcing.cli")

# Stderr console for status messages so stdout stays clean for JSON
_err = Console(stderr=True)


def resolve_feeds(feed_csv: str | None) -> tuple[str, ...]:
    """Map a comma-separated list of feed names to a feed tuple.

    Returns every known feed when *feed_csv* is ``None``.
    Raises ``SystemExit`` on unknown names.
    """
    if feed_csv is None:
        return tuple(Settings.AVAILABLE_FEEDS)

    requested = [f.strip() for f in feed_csv.split(",") if f.strip()]
    unknown = [f for f in requested if f not in Settings.AVAILABLE_FEEDS]
    if unknown:
        _err.print(f"[red]Unknown feed(s): {', '.join(unknown)}[/red]")
        _err.print(
            f"[dim]Available: {', '.join(Settings.AVAILABLE_FEEDS)}[/dim]"
        )
        raise SystemExit(1)
    return tuple(requested)


def build_credential_manager() -> CredentialManager:
    """Credential manager over the on-disk SQLite store.

    The caller owns the result and must :meth:`~CredentialManager.close`
    it once the command finishes.
    """
    store = SQLiteCredentialStore(Settings.CREDENTIAL_DB_PATH)
    try:
        return CredentialManager(store)
    except ConfigurationError:
        store.close()
        raise


def _format_price(minor_units: int) -> str:
    return f"{minor_units:,} {Settings.TARGET_CURRENCY}"


def _print_listings(listings: list[SourceListing]) -> None:
    """Render a Rich table of ranked listings to stdout."""
    table = Table(
        title="Sourcing Results",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("#", style="dim", width=4)
    table.add_column("ID", style="magenta")
    table.add_column("Title", max_width=60)
    table.add_column("Price", justify="right", style="green")
    table.add_column("Rating", justify="center")
    table.add_column("Sales", justify="right")
    table.add_column("URL", overflow="fold", style="dim")

    for idx, listing in enumerate(listings, 1):
        price = ProductNormalizer.convert_to_target(
            listing.sale_price_minor_units
        )
        table.add_row(
            str(idx),
            listing.external_id,
            listing.title[:60],
            _format_price(price) if price > 0 else "N/A",
            f"{listing.rating:.1f}" if listing.rating is not None else "-",
            str(listing.recent_sales_volume or 0),
            listing.detail_url,
        )

    Console().print(table)


def _print_draft(draft: ProductDraft) -> None:
    """Render one imported draft as a two-column Rich table."""
    table = Table(
        title=f"Imported {draft.sku}",
        show_header=False,
        title_style="bold cyan",
    )
    table.add_column("Field", style="bold")
    table.add_column("Value", overflow="fold")
    table.add_row("Name", draft.name)
    table.add_row("Price", _format_price(draft.price_minor_units))
    if draft.original_price_minor_units:
        table.add_row(
            "Original price", _format_price(draft.original_price_minor_units)
        )
    table.add_row("Images", "\n".join(draft.image_urls) or "-")
    table.add_row("Short description", draft.short_description)
    table.add_row("Stock", str(draft.stock_quantity))
    table.add_row("Source", f"{draft.source_platform}: {draft.source_url}")
    for key, value in draft.specifications.items():
        table.add_row(key, value)
    Console().print(table)


def _use_output_dir(output_dir: str | None) -> None:
    if output_dir is not None:
        Settings.RESULTS_DIR = Path(output_dir)


# ── Search ───────────────────────────────────────────────


async def cli_search(
    keywords: str | None,
    category: str | None,
    min_price: int | None,
    max_price: int | None,
    min_rating: float | None,
    min_sales: int | None,
    limit: int,
    page: int,
    feed_csv: str | None,
    output_format: str,
    output_dir: str | None,
    export_csv: bool = False,
) -> int:
    """Run a feed-backed search and return an exit code (0=ok, 1=empty, 2=config)."""
    feeds = resolve_feeds(feed_csv)
    filters = {
        "free_text_keywords": keywords,
        "min_price": min_price,
        "max_price": max_price,
        "min_rating": min_rating,
        "min_sales": min_sales,
        "page_size": limit,
        "page": page,
        "feed_set": feeds,
    }
    if category:
        request = SearchRequest.for_category(category, **filters)
        if not request.category_keywords:
            _err.print(
                f"[yellow]Unknown category '{category}', "
                "no category keywords applied[/yellow]"
            )
    else:
        request = SearchRequest(**filters)  # type: ignore[arg-type]

    try:
        credentials = build_credential_manager()
    except ConfigurationError as exc:
        _err.print(f"[red]{exc}[/red]")
        return 2

    try:
        client = PlatformApiClient(credentials)
        return await _search_and_report(
            client, request, feeds, output_format, output_dir, export_csv,
        )
    except ConfigurationError as exc:
        _err.print(f"[red]{exc}[/red]")
        return 2
    finally:
        credentials.close()


async def _search_and_report(
    client: PlatformApiClient,
    request: SearchRequest,
    feeds: tuple[str, ...],
    output_format: str,
    output_dir: str | None,
    export_csv: bool,
) -> int:
    _use_output_dir(output_dir)
    file_manager = FileManager()
    orchestrator = SearchOrchestrator(client)

    label = " ".join(request.keywords()) or "all"
    _err.print(
        f"[bold]Searching:[/bold] {label}  "
        f"[dim]feeds={', '.join(feeds)}[/dim]"
    )

    result = await orchestrator.search(request)

    for error_msg in result.errors:
        _err.print(f"[red]Error: {error_msg}[/red]")

    if not result.listings:
        _err.print("[yellow]No listings found.[/yellow]")
        return 1

    parts: list[str] = []
    if result.duplicates_removed:
        parts.append(f"{result.duplicates_removed} deduped")
    if result.cache_hits:
        parts.append("cached")
    detail = f" ({', '.join(parts)})" if parts else ""
    _err.print(
        f"[green]✓ {len(result.listings)} listings"
        f" of {result.total_after_filtering} matching,"
        f" {result.total_retrieved} retrieved{detail}[/green]"
    )

    try:
        path = file_manager.save_listings(label, result.listings)
        _err.print(f"[dim]Saved → {path}[/dim]")
        if export_csv:
            csv_path = file_manager.export_csv(label, result.listings)
            _err.print(f"[dim]Exported → {csv_path}[/dim]")
    except Exception as exc:
        logger.error("Save failed: %s", exc, exc_info=True)
        _err.print(f"[red]Save failed: {exc}[/red]")

    if output_format == "table":
        _print_listings(result.listings)
    else:
        json.dump(
            [asdict(listing) for listing in result.listings],
            sys.stdout,
            ensure_ascii=False,
            indent=2,
        )
        sys.stdout.write("\n")
    return 0


# ── Import ───────────────────────────────────────────────


async def cli_import(
    source: str,
    prefer_api: bool,
    output_format: str,
    output_dir: str | None,
) -> int:
    """Import one product by URL or id and return an exit code."""
    credentials: CredentialManager | None = None
    api_client: PlatformApiClient | None = None
    try:
        credentials = build_credential_manager()
        api_client = PlatformApiClient(credentials)
    except ConfigurationError as exc:
        _err.print(f"[dim]Structured API disabled: {exc}[/dim]")

    try:
        try:
            chain = build_default_chain()
        except ConfigurationError as exc:
            _err.print(f"[dim]Fallback chain disabled: {exc}[/dim]")
            chain = None

        if api_client is None and chain is None:
            _err.print("[red]No retrieval method is configured.[/red]")
            return 2

        importer = ProductImporter(api_client, chain, prefer_api=prefer_api)
        return await _import_and_report(
            importer, chain, source, output_format, output_dir,
        )
    finally:
        if credentials is not None:
            credentials.close()


async def _import_and_report(
    importer: ProductImporter,
    chain: FallbackChain | None,
    source: str,
    output_format: str,
    output_dir: str | None,
) -> int:
    _err.print(f"[bold]Importing:[/bold] {source}")

    try:
        draft = await importer.import_product(source)
    except SourcingError as exc:
        _err.print(f"[red]{exc}[/red]")
        return 1

    if draft is None:
        _err.print("[red]Could not retrieve product.[/red]")
        if chain is not None:
            for failure in chain.failures:
                _err.print(f"[dim]  {failure}[/dim]")
        return 1

    _use_output_dir(output_dir)
    try:
        path = FileManager().save_draft(draft)
        _err.print(f"[dim]Saved → {path}[/dim]")
    except Exception as exc:
        logger.error("Save failed: %s", exc, exc_info=True)
        _err.print(f"[red]Save failed: {exc}[/red]")

    if output_format == "table":
        _print_draft(draft)
    else:
        json.dump(asdict(draft), sys.stdout, ensure_ascii=False, indent=2)
        sys.stdout.write("\n")
    return 0


# ── Auth ─────────────────────────────────────────────────


def run_auth_url() -> int:
    """Print the consent URL the resource owner must open."""
    try:
        manager = build_credential_manager()
    except ConfigurationError as exc:
        _err.print(f"[red]{exc}[/red]")
        return 2
    try:
        print(manager.authorize())
    finally:
        manager.close()
    return 0


def run_auth_exchange(code: str) -> int:
    """Exchange an authorisation code and store the credential."""
    try:
        manager = build_credential_manager()
    except ConfigurationError as exc:
        _err.print(f"[red]{exc}[/red]")
        return 2
    try:
        credential = manager.exchange(code)
    except SourcingError as exc:
        _err.print(f"[red]Authorisation failed: {exc}[/red]")
        return 1
    finally:
        manager.close()
    _err.print(
        f"[green]✓ Authorised"
        f"{' for ' + credential.owner_id if credential.owner_id else ''}"
        f", token valid until {credential.expires_at:%Y-%m-%d %H:%M} UTC"
        "[/green]"
    )
    return 0


def run_auth_status() -> int:
    """Report whether a usable token is available (refreshing if needed)."""
    try:
        manager = build_credential_manager()
    except ConfigurationError as exc:
        _err.print(f"[red]{exc}[/red]")
        return 2
    try:
        valid = manager.has_valid_token()
        stored = manager.repository.load_latest() if valid else None
    finally:
        manager.close()
    if valid:
        expiry = (
            f" until {stored.expires_at:%Y-%m-%d %H:%M} UTC" if stored else ""
        )
        _err.print(f"[green]✓ Token valid{expiry}[/green]")
        return 0
    _err.print("[yellow]No valid token; run 'auth url' to authorise.[/yellow]")
    return 1


def run_auth_revoke() -> int:
    """Delete every stored credential."""
    try:
        manager = build_credential_manager()
    except ConfigurationError as exc:
        _err.print(f"[red]{exc}[/red]")
        return 2
    try:
        removed = manager.revoke_all()
    finally:
        manager.close()
    _err.print(f"[green]✓ Removed {removed} stored credential(s)[/green]")
    return 0


# ── Health ───────────────────────────────────────────────


async def run_health_check() -> int:
    """Run the connectivity health check on every endpoint."""
    from sourcing.services.health_checker import HealthChecker

    _err.print("[bold]Running connectivity health check...[/bold]")
    checker = HealthChecker()
    results = await checker.check_all()

    table = Table(
        title="Endpoint Health Check",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("Target", style="bold")
    table.add_column("Status", justify="center")
    table.add_column("Latency", justify="right")
    table.add_column("Notes", style="dim")

    any_down = False
    for r in results:
        if r.status == "ok":
            status = "[green]✅ OK[/green]"
        elif r.status == "slow":
            status = "[yellow]⚠️  SLOW[/yellow]"
        else:
            status = "[red]❌ DOWN[/red]"
            any_down = True

        latency = f"{r.latency_ms:.0f}ms" if r.latency_ms > 0 else "-"
        table.add_row(r.target_id, status, latency, r.message)

    Console().print(table)
    return 1 if any_down else 0
