"""Command line interface for dealbook."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from dealbook.config import AppConfig
from dealbook.deals import DealFilters, DealService, DealsRequest
from dealbook.engine.importer import Importer
from dealbook.engine.storage import ChunkStore
from dealbook.errors import DataDirectoryError, NotFoundError
from dealbook.utils.files import iter_spreadsheet_paths
from dealbook.web.app import app as web_app

console = Console()
app = typer.Typer(help="dealbook - browse an M&A deal export from chunked JSON files")

GRID_COLUMNS = (
    ("id", "ID"),
    ("targetName", "Target"),
    ("acquirerName", "Acquirer"),
    ("announcementDate", "Announced"),
    ("transactionType", "Type"),
    ("transactionStatus", "Status"),
    ("transactionValue", "Value ($MM)"),
    ("targetRegion", "Region"),
)


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _resolve_data_dir(data: Path | None) -> Path:
    config = AppConfig(data_dir=data if data is not None else AppConfig().data_dir)
    return config.resolve_data_dir(Path.cwd())


def _open_service(data: Path | None, table: str) -> DealService:
    resolved = _resolve_data_dir(data)
    try:
        return DealService.open(resolved, table=table)
    except DataDirectoryError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc


def _format_cell(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, float):
        return f"{value:,.2f}"
    return str(value)


@app.command("import")
def import_(
    inputs: List[Path] = typer.Argument(
        ..., help="Spreadsheet file, or folder holding one.", resolve_path=True
    ),
    data: Path = typer.Option(None, "--data", help="Chunk directory"),
    table: str = typer.Option(AppConfig().table, help="Table name to write"),
    chunk_size: int = typer.Option(AppConfig().chunk_size, help="Records per chunk"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Convert a deal spreadsheet into chunk files."""
    _setup_logging(verbose)
    resolved = _resolve_data_dir(data)
    resolved.mkdir(parents=True, exist_ok=True)

    sheets = list(iter_spreadsheet_paths(inputs))
    if not sheets:
        console.print("[yellow]No spreadsheets found.[/yellow]")
        return
    if len(sheets) > 1:
        console.print(f"[yellow]Found {len(sheets)} spreadsheets, importing {sheets[0]}.[/yellow]")

    console.print(f"Importing into [bold]{resolved}[/bold]...")
    importer = Importer(ChunkStore(resolved, chunk_size=chunk_size), table=table)
    stats = importer.import_file(sheets[0])
    console.print(
        f"Rows: {stats.rows}, chunks: {stats.chunks}, blank rows skipped: {stats.skipped}"
    )


@app.command()
def tables(
    data: Path = typer.Option(None, "--data", help="Chunk directory"),
) -> None:
    """List tables found in the chunk directory."""
    resolved = _resolve_data_dir(data)
    try:
        store = ChunkStore(resolved)
    except DataDirectoryError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc

    names = sorted(store.list_tables())
    if not names:
        console.print("[yellow]No tables found.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Table")
    table.add_column("Rows")
    table.add_column("Chunks")
    table.add_column("Updated")
    for name in names:
        meta = store.get_table_metadata(name)
        rows = "" if meta.total_rows is None else str(meta.total_rows)
        table.add_row(name, rows, str(meta.chunks_count), meta.updated_at or "")
    console.print(table)


@app.command()
def deals(
    search: str = typer.Option("", "--search", "-s", help="Free-text search"),
    transaction_type: List[str] = typer.Option([], "--type", help="Transaction type (repeatable)"),
    region: List[str] = typer.Option([], "--region", help="Target region (repeatable)"),
    industry: List[str] = typer.Option([], "--industry", help="Target industry (repeatable)"),
    start_date: Optional[str] = typer.Option(None, help="Announced on or after (YYYY-MM-DD)"),
    end_date: Optional[str] = typer.Option(None, help="Announced on or before (YYYY-MM-DD)"),
    min_size: Optional[float] = typer.Option(None, help="Minimum transaction value ($MM)"),
    max_size: Optional[float] = typer.Option(None, help="Maximum transaction value ($MM)"),
    page: int = typer.Option(0, min=0, help="Zero-based page number"),
    page_size: int = typer.Option(AppConfig().page_size, min=1, help="Rows per page"),
    sort_field: str = typer.Option("announcementDate", help="Sort field"),
    sort_direction: str = typer.Option("desc", help="asc or desc"),
    data: Path = typer.Option(None, "--data", help="Chunk directory"),
    table: str = typer.Option(AppConfig().table, help="Table name"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Show one page of deals."""
    _setup_logging(verbose)
    service = _open_service(data, table)
    request = DealsRequest(
        search_query=search,
        filters=DealFilters(
            transaction_types=transaction_type,
            start_date=start_date,
            end_date=end_date,
            min_size=min_size,
            max_size=max_size,
            regions=region,
            industries=industry,
        ),
        page=page,
        page_size=page_size,
        sort_field=sort_field,
        sort_direction=sort_direction,
    )
    try:
        result = service.get_deals(request)
    except NotFoundError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc

    if not result.deals:
        console.print("[yellow]No matches found.[/yellow]")
        return

    grid = Table(show_header=True, header_style="bold magenta")
    for _, label in GRID_COLUMNS:
        grid.add_column(label)
    for deal in result.deals:
        grid.add_row(*(_format_cell(deal.get(key)) for key, _ in GRID_COLUMNS))
    console.print(grid)
    console.print(f"Page {page} - {len(result.deals)} of {result.total_count} deals")
    if result.degraded_chunks:
        console.print(f"[yellow]Unreadable chunks skipped: {result.degraded_chunks}[/yellow]")


@app.command()
def deal(
    deal_id: str = typer.Argument(..., help="Deal id"),
    data: Path = typer.Option(None, "--data", help="Chunk directory"),
    table: str = typer.Option(AppConfig().table, help="Table name"),
) -> None:
    """Show every field of one deal."""
    service = _open_service(data, table)
    try:
        record = service.get_deal_by_id(deal_id)
    except NotFoundError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc

    details = Table(show_header=False)
    details.add_column("Field", style="bold")
    details.add_column("Value")
    for key, value in record.items():
        details.add_row(key, _format_cell(value))
    console.print(details)


@app.command()
def stats(
    data: Path = typer.Option(None, "--data", help="Chunk directory"),
    table: str = typer.Option(AppConfig().table, help="Table name"),
    as_json: bool = typer.Option(False, "--json", help="Print JSON"),
) -> None:
    """Summary statistics for the deals table."""
    service = _open_service(data, table)
    try:
        summary = service.get_statistics()
    except NotFoundError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc

    if as_json:
        console.print_json(json.dumps(summary.to_dict()))
        return
    console.print(f"Total deals: {summary.total_deals}")
    console.print(f"Total value: ${summary.total_value:,.0f}M")
    console.print(f"Average deal size: ${summary.avg_deal_size:,.0f}M")
    console.print(f"Largest deal: ${summary.largest_deal:,.0f}M")
    console.print(
        f"Completed: {summary.completed_deals}, announced: {summary.announced_deals}, "
        f"pending: {summary.pending_deals}"
    )


@app.command()
def filters(
    data: Path = typer.Option(None, "--data", help="Chunk directory"),
    table: str = typer.Option(AppConfig().table, help="Table name"),
) -> None:
    """List the values offered by the filter panel."""
    service = _open_service(data, table)
    try:
        options = service.get_filter_options()
    except NotFoundError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc

    for label, values in (
        ("Transaction types", options.transaction_types),
        ("Regions", options.regions),
        ("Industries", options.industries),
    ):
        console.print(f"[bold]{label}[/bold] ({len(values)}): {', '.join(values)}")


@app.command()
def export(
    output: Path = typer.Argument(..., help="Destination .xlsx file"),
    search: str = typer.Option("", "--search", "-s", help="Free-text search"),
    transaction_type: List[str] = typer.Option([], "--type", help="Transaction type (repeatable)"),
    region: List[str] = typer.Option([], "--region", help="Target region (repeatable)"),
    data: Path = typer.Option(None, "--data", help="Chunk directory"),
    table: str = typer.Option(AppConfig().table, help="Table name"),
) -> None:
    """Export matching deals to a spreadsheet."""
    service = _open_service(data, table)
    request = DealsRequest(
        search_query=search,
        filters=DealFilters(transaction_types=transaction_type, regions=region),
    )
    try:
        written = service.export_deals(request, output)
    except NotFoundError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc
    console.print(f"Exported {written} deals to {output}")


@app.command()
def web(
    host: str = typer.Option("127.0.0.1", help="Host interface"),
    port: int = typer.Option(8000, help="Server port"),
    data: Path = typer.Option(None, "--data", help="Chunk directory"),
) -> None:
    """Start the HTTP API used by the desktop UI."""
    try:
        import uvicorn
    except ImportError as exc:  # pragma: no cover - optional extra
        raise typer.BadParameter(
            "uvicorn is not installed. Install the web extras with \"python -m pip install '.[web]'\""
        ) from exc

    resolved = _resolve_data_dir(data)
    if not resolved.exists():
        console.print("[yellow]Warning: data directory not found, queries will fail.[/yellow]")

    web_app.state.data_dir = resolved
    console.print(f"Starting API on http://{host}:{port} (data: {resolved})")
    uvicorn.run(
        web_app,
        host=host,
        port=port,
        reload=False,
        log_level="info",
    )
