"""catalog_etl.import_products_csv

Unified CLI entrypoint for bulk product catalog files.

Modes (--mode):
  import    — import a product CSV into the catalog (default)
  template  — write the import template (header + one example row)
  export    — write the current catalog in import-file format

Usage (import):
    python -m catalog_etl.import_products_csv \\
        --mode import \\
        --db-dsn "$CATALOG_DB_DSN" \\
        --csv-path "incoming/products.csv" \\
        --rejects-path "artifacts/rejects/product_import_rejects.csv"

Usage (template):
    python -m catalog_etl.import_products_csv --mode template \\
        --out-path product_import_template.csv

Usage (export):
    python -m catalog_etl.import_products_csv --mode export \\
        --db-dsn "$CATALOG_DB_DSN" --out-path products_export.csv

Import processing order: rows run strictly in file order, one at a time.
Each insert runs in its own transaction (a savepoint under --dry-run), so
a failing row never undoes earlier rows and never stops the batch.
"""

from __future__ import annotations

import json
import sys
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

import click
import psycopg

from catalog_etl.catalog_store import insert_product
from catalog_etl.categories import (
    CategoryLookup,
    fetch_category_lookup,
    resolve_category_id,
)
from catalog_etl.csv_text import RawRow, TokenizedFile, read_raw_rows
from catalog_etl.normalize import trim
from catalog_etl.product_schema import (
    KNOWN_COLUMNS,
    TEMPLATE_FILE_NAME,
    build_template_csv,
    map_row,
    template_headers,
    validate_row,
)
from catalog_etl.shared import (
    ImportFileError,
    ImportOutcome,
    ProgressState,
    RejectWriter,
    build_import_report,
    summarize_outcome,
    write_run_report,
)

ProgressCallback = Callable[[int], None]


# ---------------------------------------------------------------------------
# File-level read
# ---------------------------------------------------------------------------

def read_import_file(csv_path: str | Path) -> TokenizedFile:
    """Read and tokenize an import file.

    Raises ImportFileError for a non-.csv name, an unreadable or
    undecodable file, or a file without any usable data row.
    """
    path = Path(csv_path)
    if path.suffix.lower() != ".csv":
        raise ImportFileError(f"only .csv files are supported (got {path.name!r})")
    try:
        text = path.read_text(encoding="utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ImportFileError(f"{path.name} is not UTF-8 text: {exc}") from exc
    except OSError as exc:
        raise ImportFileError(f"cannot read {path}: {exc}") from exc

    tokenized = read_raw_rows(text)
    if not tokenized.rows:
        raise ImportFileError(f"no data rows in {path.name}")
    return tokenized


def header_warnings(headers: list[str]) -> list[str]:
    warnings: list[str] = []
    unknown = [h for h in headers if h not in KNOWN_COLUMNS]
    if unknown:
        warnings.append(f"ignored unrecognized columns: {', '.join(unknown)}")
    missing = [c for c in template_headers() if c not in headers]
    if missing:
        warnings.append(f"columns not present (read as blank): {', '.join(missing)}")
    return warnings


def store_error_message(exc: psycopg.Error) -> str:
    """First line of the store's error message."""
    msg = str(exc).strip()
    return msg.splitlines()[0] if msg else type(exc).__name__


# ---------------------------------------------------------------------------
# Per-row processing
# ---------------------------------------------------------------------------

def _reject(
    outcome: ImportOutcome,
    rejects: RejectWriter | None,
    raw: RawRow,
    reason: str,
) -> None:
    outcome.record_failure(raw.line_number, trim(raw.get("name")), reason)
    if rejects is not None:
        rejects.write(raw.values, raw.line_number, reason)


def _process_row(
    conn: psycopg.Connection,
    raw: RawRow,
    lookup: CategoryLookup,
    outcome: ImportOutcome,
    rejects: RejectWriter | None,
) -> None:
    """Map, validate, resolve and insert one row.  Never raises for row-level errors."""
    result = validate_row(map_row(raw.values))
    if isinstance(result, str):
        outcome.validation_failures += 1
        _reject(outcome, rejects, raw, result)
        return

    category_id = resolve_category_id(lookup, result.category_slug)
    if result.category_slug and category_id is None:
        outcome.categories_unresolved += 1
        hint = lookup.suggest(result.category_slug)
        outcome.warnings.append(
            f"row {raw.line_number}: category_slug {result.category_slug!r} not found"
            + (f" (did you mean {hint!r}?)" if hint else "")
            + "; imported uncategorized"
        )

    try:
        with conn.transaction():
            insert_product(conn, result, category_id)
    except psycopg.Error as exc:
        outcome.store_failures += 1
        _reject(outcome, rejects, raw, store_error_message(exc))
        return

    outcome.success_count += 1


def ingest_rows(
    conn: psycopg.Connection,
    rows: list[RawRow],
    lookup: CategoryLookup,
    outcome: ImportOutcome,
    rejects: RejectWriter | None = None,
    on_progress: ProgressCallback | None = None,
) -> ImportOutcome:
    progress = ProgressState(total=len(rows))
    for raw in rows:
        _process_row(conn, raw, lookup, outcome, rejects)
        percent = progress.advance()
        if on_progress is not None:
            on_progress(percent)
    return outcome


# ---------------------------------------------------------------------------
# Run (import)
# ---------------------------------------------------------------------------

def _run_import(
    run_id: str,
    db_dsn: str,
    outcome: ImportOutcome,
    rejects: RejectWriter,
    csv_path: str,
    dry_run: bool,
    on_progress: ProgressCallback | None = None,
) -> ImportOutcome:
    # Pre-scan: file-level failures surface before any DB work
    tokenized = read_import_file(csv_path)
    outcome.rows_read = tokenized.lines_read
    outcome.rows_dropped = tokenized.lines_dropped
    outcome.warnings.extend(header_warnings(tokenized.headers))

    click.echo(
        f"[{run_id}] Pre-scan: {outcome.rows_read} rows read, "
        f"{outcome.rows_dropped} dropped (field count), {len(tokenized.rows)} to process"
    )

    conn = psycopg.connect(db_dsn, autocommit=True)
    try:
        lookup = fetch_category_lookup(conn)
        click.echo(f"[{run_id}] Category lookup: {len(lookup)} categories")
        if len(lookup):
            click.echo(f"[{run_id}] Available category slugs: {', '.join(lookup.slugs())}")

        if dry_run:
            with conn.transaction(force_rollback=True):
                ingest_rows(conn, tokenized.rows, lookup, outcome, rejects, on_progress)
            click.echo(f"[{run_id}] [dry-run] All changes rolled back.")
        else:
            ingest_rows(conn, tokenized.rows, lookup, outcome, rejects, on_progress)
    finally:
        conn.close()
        rejects.close()

    return outcome


def _write_template(out_path: str) -> Path:
    path = Path(out_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(build_template_csv(), encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# Unified CLI
# ---------------------------------------------------------------------------

@click.command()
@click.option(
    "--mode",
    default="import",
    type=click.Choice(["import", "template", "export"]),
    show_default=True,
    help="Operation to run",
)
@click.option("--db-dsn", default=None, envvar="CATALOG_DB_DSN", help="PostgreSQL DSN [import|export]")
@click.option("--csv-path", default=None, type=click.Path(), help="[import] Input CSV")
@click.option("--out-path", default=None, type=click.Path(), help="[template|export] Output CSV")
@click.option(
    "--rejects-path",
    default="./artifacts/rejects/product_import_rejects.csv",
    show_default=True,
    help="[import] CSV of rejected rows with reasons",
)
@click.option("--dry-run", is_flag=True, default=False, help="[import] Roll back every insert at the end")
@click.option("--run-id", default=None, help="Override UUID for log correlation")
def main(
    mode: str,
    db_dsn: str | None,
    csv_path: str | None,
    out_path: str | None,
    rejects_path: str,
    dry_run: bool,
    run_id: str | None,
) -> None:
    """Bulk product catalog CLI."""
    run_id = run_id or str(uuid.uuid4())
    started_at = datetime.now(timezone.utc).isoformat()

    if mode == "template":
        path = _write_template(out_path or TEMPLATE_FILE_NAME)
        click.echo(f"[{run_id}] Template written: {path}")
        return

    if mode == "export":
        _validate_export_flags(db_dsn, run_id)
        from catalog_etl.export_products_csv import ExportError, _run_export
        try:
            path, count = _run_export(run_id, db_dsn, out_path)  # type: ignore[arg-type]
        except ExportError as exc:
            click.echo(f"[{run_id}] FATAL: {exc}", err=True)
            sys.exit(1)
        click.echo(f"[{run_id}] Exported {count} product(s) to {path}")
        return

    _validate_import_flags(db_dsn, csv_path, run_id)
    outcome = ImportOutcome()
    rejects = RejectWriter(Path(rejects_path))
    click.echo(f"[{run_id}] Starting import run (dry_run={dry_run})")

    last_percent = -1

    def _echo_progress(percent: int) -> None:
        nonlocal last_percent
        if percent != last_percent:
            last_percent = percent
            click.echo(f"[{run_id}] Progress: {percent}%")

    try:
        _run_import(
            run_id, db_dsn, outcome, rejects,  # type: ignore[arg-type]
            csv_path=csv_path,  # type: ignore[arg-type]
            dry_run=dry_run,
            on_progress=_echo_progress,
        )
    except ImportFileError as exc:
        click.echo(f"[{run_id}] FATAL: {exc}", err=True)
        sys.exit(1)

    click.echo(build_import_report(outcome, dry_run=dry_run))

    summary = summarize_outcome(outcome)
    if summary.success > 0:
        click.echo(f"[{run_id}] {summary.success} product(s) imported.")
    if summary.failed > 0:
        click.echo(f"[{run_id}] {summary.failed} product(s) failed.", err=True)
        if rejects.opened:
            click.echo(f"[{run_id}] Rejected rows: {rejects.path}")

    report_path = write_run_report(
        run_id, started_at, mode, dry_run,
        {"csv_path": csv_path or "", "rejects_path": rejects_path},
        outcome,
    )
    click.echo(f"[{run_id}] Run report: {report_path}")
    click.echo(json.dumps(summary.to_dict(), indent=2, default=str))
    click.echo(f"[{run_id}] Done.")


def _validate_import_flags(
    db_dsn: str | None,
    csv_path: str | None,
    run_id: str,
) -> None:
    required = {
        "--db-dsn": db_dsn,
        "--csv-path": csv_path,
    }
    missing = [k for k, v in required.items() if v is None]
    if missing:
        click.echo(
            f"[{run_id}] FATAL: import mode requires: {', '.join(missing)}",
            err=True,
        )
        sys.exit(1)


def _validate_export_flags(db_dsn: str | None, run_id: str) -> None:
    if db_dsn is None:
        click.echo(f"[{run_id}] FATAL: export mode requires: --db-dsn", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
