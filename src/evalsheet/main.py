from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import typer
import uvicorn

from evalsheet.config import settings
from evalsheet.data.storage import Database
from evalsheet.data.store import ResponseStore
from evalsheet.exceptions import EvalSheetError
from evalsheet.logs import configure_logging
from evalsheet.services.exporter import ExportService
from evalsheet.services.ingestion import IngestionService
from evalsheet.services.templates import TemplateService

cli = typer.Typer(help="evalsheet CLI: ingest evaluation workbooks and export pivoted sheets")


def _store(db_path: Optional[Path]) -> ResponseStore:
    return ResponseStore(Database(db_path or settings.paths.db_path))


@cli.callback()
def main(log_level: Optional[str] = typer.Option(None, help="Override settings.logging.level")) -> None:
    configure_logging(log_level)


@cli.command()
def version() -> None:
    """Print runtime version."""
    typer.echo(f"evalsheet {settings.app.version}")


@cli.command()
def ingest(
    files: List[Path] = typer.Argument(..., exists=True, dir_okay=False, help="Workbooks (.xlsx) to ingest"),
    db_path: Optional[Path] = typer.Option(None, help="SQLite file (defaults to settings.paths.db_path)"),
) -> None:
    """Extract every sheet of the given workbooks into the store."""
    svc = IngestionService(store=_store(db_path))
    failed = 0
    for path in files:
        try:
            report = svc.ingest_workbook(path)
        except EvalSheetError as exc:
            typer.secho(f"{path.name}: {exc}", fg=typer.colors.RED, err=True)
            failed += 1
            continue
        typer.echo(
            f"{report.file_name}: {report.category} "
            f"({len(report.sheets)} sheets, {report.item_count} items, "
            f"skipped {len(report.skipped_sheets)})"
        )
        for sheet in report.sheets:
            for warning in sheet.warnings:
                typer.secho(f"  {sheet.sheet_name}: {warning}", fg=typer.colors.YELLOW)
    if failed:
        raise typer.Exit(code=1)


@cli.command()
def export(
    category: str = typer.Argument(..., help="Template category, e.g. 'Template Type 1'"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Target .xlsx path"),
    db_path: Optional[Path] = typer.Option(None, help="SQLite file (defaults to settings.paths.db_path)"),
) -> None:
    """Write the pivoted workbook of one template category."""
    svc = ExportService(store=_store(db_path))
    try:
        path = svc.export_to_file(category, output)
    except EvalSheetError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    typer.echo(str(path))


@cli.command()
def templates(
    db_path: Optional[Path] = typer.Option(None, help="SQLite file (defaults to settings.paths.db_path)"),
) -> None:
    """List stored templates."""
    rows = TemplateService(store=_store(db_path)).list_templates()
    if not rows:
        typer.echo("No templates.")
        return
    for row in rows:
        typer.echo(f"{row['id']:>4}  {row['category']:<24} {row['response_count']:>4} responses  {row['internal_category']}")


@cli.command()
def serve(
    host: str = typer.Option("127.0.0.1", help="Host to bind"),
    port: int = typer.Option(8000, help="Port to bind"),
    reload: bool = typer.Option(False, help="Enable autoreload for local development"),
) -> None:
    """Run the evalsheet API server."""
    uvicorn.run(
        "evalsheet.api.main:app",
        host=host,
        port=port,
        reload=reload,
        app_dir="src",
    )


if __name__ == "__main__":
    cli()
