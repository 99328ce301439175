"""
TurfOps — CLI entry point.

All commands follow this pattern:
  1. Load ``AppConfig`` via ``load_config()``.
  2. Configure logging.
  3. Validate inputs.
  4. Execute action (DB init, import, engine pass, etc.).
  5. Report result to stdout; classified errors exit with code 1.

Install and run::

    pip install -e .
    turfops --help
    turfops init-db
    turfops import-readings data/sensors/march.csv
    turfops log-application pre_emergent --date 2025-03-12
    turfops recommend --at 2025-03-10T12:00:00Z --export-json out/recs.json
"""

from __future__ import annotations

import json
from contextlib import contextmanager
from datetime import date, timedelta
from pathlib import Path
from typing import Optional

import typer

app = typer.Typer(
    name="turfops",
    help="TurfOps — lawn-care rules engine and record keeper.",
    add_completion=False,
)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _load_config_or_exit(config_path: Optional[str] = None):
    """Load AppConfig, printing a friendly error and exiting on failure."""
    from pydantic import ValidationError

    from turfops.config import load_config

    try:
        cfg_path = Path(config_path) if config_path else None
        return load_config(cfg_path)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except (ValidationError, ValueError) as exc:
        typer.echo(f"[ERROR] Config validation failed: {exc}", err=True)
        raise typer.Exit(code=1)


def _configure_logging(config):
    """Set up logging from config."""
    from turfops.utils.logging import configure_logging
    configure_logging(config.logging, debug=config.debug)


@contextmanager
def _open_db(config):
    """Open the configured database with the schema applied."""
    from turfops.db.connection import get_connection
    from turfops.db.schema import apply_schema

    with get_connection(
        config.database.db_path,
        wal_mode=config.database.wal_mode,
        busy_timeout_ms=config.database.busy_timeout_ms,
    ) as conn:
        apply_schema(conn)
        yield conn


def _load_catalog_or_exit(config):
    from turfops.config import resolve_path
    from turfops.engine.catalog import load_catalog
    from turfops.engine.errors import CatalogLoadError

    try:
        return load_catalog(resolve_path(config.engine.catalog_path))
    except CatalogLoadError as exc:
        typer.echo(f"[ERROR] Rule catalog failed to load: {exc}", err=True)
        raise typer.Exit(code=1)


def _config_option():
    return typer.Option(None, "--config", help="Path to TOML config file.")


# ── Commands ──────────────────────────────────────────────────────────────────

@app.command("init-db")
def init_db(
    db_path: Optional[str] = typer.Option(
        None,
        "--db-path",
        help="Override DB path from config (e.g. data/db/test.db).",
    ),
    config_path: Optional[str] = _config_option(),
) -> None:
    """Initialize the SQLite database and apply the schema.

    Safe to run multiple times — all DDL uses IF NOT EXISTS.
    """
    from turfops.db.connection import get_connection
    from turfops.db.schema import ALL_TABLE_NAMES, apply_schema

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    target_path = db_path or config.database.db_path
    typer.echo(f"Initializing database at: {target_path}")

    with get_connection(
        target_path,
        wal_mode=config.database.wal_mode,
        busy_timeout_ms=config.database.busy_timeout_ms,
    ) as conn:
        apply_schema(conn)

    typer.echo(f"  Tables: {len(ALL_TABLE_NAMES)} created/verified.")
    typer.echo("[OK] Database ready.")


@app.command("validate-config")
def validate_config(
    config_path: Optional[str] = _config_option(),
    show_full: bool = typer.Option(
        False,
        "--full",
        help="Print full config including all fields.",
    ),
) -> None:
    """Validate the configuration file and the rule catalog it points at.

    Exits with code 1 if either fails validation.
    """
    config = _load_config_or_exit(config_path)
    catalog = _load_catalog_or_exit(config)

    typer.echo("Configuration validated successfully.")
    typer.echo("")
    typer.echo(f"  Lawn:             {config.lawn.name} ({config.lawn.grass_type})")
    typer.echo(f"  Database path:    {config.database.db_path}")
    typer.echo(f"  Rule catalog:     {config.engine.catalog_path} ({len(catalog)} rules)")
    typer.echo(f"  Skew tolerance:   {config.engine.clock_skew_tolerance_hours}h")
    typer.echo(f"  OpenWeatherMap:   {'enabled' if config.openweathermap.enabled else 'disabled'}")
    typer.echo(f"  Log level:        {config.logging.level}")
    typer.echo(f"  Debug mode:       {config.debug}")

    if show_full:
        typer.echo("")
        typer.echo("Full config (JSON):")
        dumped = config.model_dump()
        if dumped["openweathermap"].get("api_key"):
            dumped["openweathermap"]["api_key"] = "***"
        typer.echo(json.dumps(dumped, indent=2, default=str))


@app.command("list-rules")
def list_rules(config_path: Optional[str] = _config_option()) -> None:
    """List the rules in the configured catalog."""
    from turfops.reporting.formatters import format_rule_list

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    catalog = _load_catalog_or_exit(config)
    typer.echo(format_rule_list(catalog))


@app.command("import-readings")
def import_readings(
    csv_file: Path = typer.Argument(..., help="CSV with metric,timestamp,value[,source]."),
    config_path: Optional[str] = _config_option(),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Validate the file but do not write to the database."
    ),
) -> None:
    """Import sensor readings from a CSV file.

    Rows already stored for the same (metric, timestamp, source) are skipped.
    """
    from turfops.db.repositories.reading_repo import ReadingRepository
    from turfops.ingestion.readings_csv import parse_readings_csv

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    try:
        readings = parse_readings_csv(csv_file)
    except (FileNotFoundError, ValueError) as exc:
        typer.echo(f"[ERROR] CSV parse failed:\n{exc}", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"  Validated {len(readings)} reading(s) from {csv_file}.")
    if dry_run:
        typer.echo("[DRY RUN] No readings written to database.")
        return

    with _open_db(config) as conn:
        inserted = ReadingRepository(conn).insert_many(readings)

    typer.echo(f"  Inserted {inserted} new reading(s); {len(readings) - inserted} already stored.")
    typer.echo("[OK] Readings imported.")


@app.command("import-applications")
def import_applications(
    csv_file: Path = typer.Argument(..., help="CSV with category,applied_at[,amount,amount_note,notes]."),
    config_path: Optional[str] = _config_option(),
) -> None:
    """Import past treatments from a CSV file into the application log."""
    from turfops.db.repositories.application_repo import ApplicationRepository
    from turfops.ingestion.readings_csv import parse_applications_csv

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    try:
        applications = parse_applications_csv(csv_file)
    except (FileNotFoundError, ValueError) as exc:
        typer.echo(f"[ERROR] CSV parse failed:\n{exc}", err=True)
        raise typer.Exit(code=1)

    with _open_db(config) as conn:
        repo = ApplicationRepository(conn)
        for application in applications:
            repo.insert(application)

    typer.echo(f"  Logged {len(applications)} application(s).")
    typer.echo("[OK] Applications imported.")


@app.command("log-application")
def log_application(
    category: str = typer.Argument(..., help="Treatment category, e.g. fertilizer, pre_emergent."),
    applied_on: Optional[str] = typer.Option(
        None, "--date", help="Application date YYYY-MM-DD (default: today, UTC)."
    ),
    amount: Optional[float] = typer.Option(None, "--amount", help="Rate applied, e.g. lb N / 1000 sqft."),
    amount_note: Optional[str] = typer.Option(None, "--amount-note", help="Free-form amount description."),
    notes: Optional[str] = typer.Option(None, "--notes", help="Free-form notes."),
    config_path: Optional[str] = _config_option(),
) -> None:
    """Record one treatment in the application log."""
    from pydantic import ValidationError

    from turfops.db.repositories.application_repo import ApplicationRepository
    from turfops.models.application import Application
    from turfops.taxonomy.lawn_taxonomy import TreatmentCategory
    from turfops.utils.time_utils import utcnow

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    try:
        application = Application(
            category=TreatmentCategory(category.lower()),
            applied_at=date.fromisoformat(applied_on) if applied_on else utcnow().date(),
            amount=amount,
            amount_note=amount_note,
            notes=notes,
        )
    except (ValidationError, ValueError) as exc:
        valid = ", ".join(c.value for c in TreatmentCategory)
        typer.echo(f"[ERROR] Invalid application: {exc}\n  Categories: {valid}", err=True)
        raise typer.Exit(code=1)

    with _open_db(config) as conn:
        application_id = ApplicationRepository(conn).insert(application)

    typer.echo(
        f"[OK] Logged {application.category.value} on {application.applied_at} (id={application_id})."
    )


@app.command("list-applications")
def list_applications(
    limit: int = typer.Option(20, "--limit", "-n", min=1, help="Number of entries to show."),
    config_path: Optional[str] = _config_option(),
) -> None:
    """Show the most recent applications, newest first."""
    from turfops.db.repositories.application_repo import ApplicationRepository
    from turfops.reporting.formatters import format_applications

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    with _open_db(config) as conn:
        applications = ApplicationRepository(conn).list_recent(limit)

    typer.echo(format_applications(applications))


@app.command("fetch-forecast")
def fetch_forecast(config_path: Optional[str] = _config_option()) -> None:
    """Fetch OpenWeatherMap forecast and current conditions into the database."""
    from turfops.db.repositories.reading_repo import ReadingRepository
    from turfops.engine.errors import ProviderError
    from turfops.ingestion.openweathermap import OpenWeatherMapClient

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    if not config.openweathermap.enabled:
        typer.echo("[ERROR] OpenWeatherMap is disabled; set [openweathermap] enabled = true.", err=True)
        raise typer.Exit(code=1)

    try:
        client = OpenWeatherMapClient.from_config(config.openweathermap)
        readings = client.fetch_forecast_readings() + client.fetch_current_readings()
    except (ValueError, ProviderError) as exc:
        typer.echo(f"[ERROR] Forecast fetch failed: {exc}", err=True)
        raise typer.Exit(code=1)

    with _open_db(config) as conn:
        inserted = ReadingRepository(conn).insert_many(readings)

    typer.echo(f"  Fetched {len(readings)} reading(s); {inserted} new.")
    typer.echo("[OK] Forecast stored.")


@app.command("recommend")
def recommend(
    at: Optional[str] = typer.Option(
        None, "--at", help="Evaluation instant, ISO 8601 with offset (default: now)."
    ),
    export_json: Optional[Path] = typer.Option(None, "--export-json", help="Write results as JSON."),
    export_csv: Optional[Path] = typer.Option(None, "--export-csv", help="Write results as CSV."),
    config_path: Optional[str] = _config_option(),
) -> None:
    """Run the rules engine against stored readings and applications."""
    from turfops.db.repositories.application_repo import ApplicationRepository
    from turfops.db.repositories.reading_repo import ReadingRepository
    from turfops.engine.errors import ProviderError
    from turfops.engine.orchestrator import RulesEngine
    from turfops.reporting.export import (
        export_to_csv,
        export_to_json,
        recommendations_to_records,
        result_to_document,
    )
    from turfops.reporting.formatters import format_recommendations
    from turfops.utils.time_utils import parse_instant, utcnow

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    try:
        reference = parse_instant(at) if at else utcnow()
    except ValueError as exc:
        typer.echo(f"[ERROR] Invalid --at value: {exc}", err=True)
        raise typer.Exit(code=1)

    catalog = _load_catalog_or_exit(config)
    engine = RulesEngine(
        catalog,
        clock_skew_tolerance=config.engine.clock_skew_tolerance,
        profile=config.lawn.to_profile(),
    )

    try:
        with _open_db(config) as conn:
            result = engine.run(ReadingRepository(conn), ApplicationRepository(conn), reference)
    except ProviderError as exc:
        typer.echo(f"[ERROR] Evaluation aborted: {exc}", err=True)
        raise typer.Exit(code=1)

    typer.echo(format_recommendations(result, config.lawn.name))

    if export_json is not None:
        path = export_to_json(result_to_document(result, config.lawn.name), export_json)
        typer.echo(f"  JSON written to {path}")
    if export_csv is not None:
        path = export_to_csv(recommendations_to_records(result.recommendations), export_csv)
        typer.echo(f"  CSV written to {path}")


@app.command("prune-readings")
def prune_readings(
    days: int = typer.Option(..., "--days", min=1, help="Delete readings older than this many days."),
    config_path: Optional[str] = _config_option(),
) -> None:
    """Delete stored readings older than ``--days`` days."""
    from turfops.db.repositories.reading_repo import ReadingRepository
    from turfops.utils.time_utils import utcnow

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    cutoff = utcnow() - timedelta(days=days)
    with _open_db(config) as conn:
        deleted = ReadingRepository(conn).prune_older_than(cutoff)

    typer.echo(f"[OK] Deleted {deleted} reading(s) older than {cutoff.date()}.")


# ── Entry point ───────────────────────────────────────────────────────────────

if __name__ == "__main__":
    app()
