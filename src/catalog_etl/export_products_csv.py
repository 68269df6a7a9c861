"""catalog_etl.export_products_csv

Catalog export (--mode export).

Writes every product, ordered by name, in the import-file column layout
plus two read-only extras:
  specifications — JSON object
  features       — list joined with "; "

Booleans are written as TRUE/FALSE and the category as its slug, so an
export re-imports through --mode import (the extras are ignored there).
The file is UTF-8 with a BOM so spreadsheet tools detect the encoding.

Line breaks inside values are flattened to a space so every product stays
on one line.  Double quotes inside values do not survive a re-import: the
importer treats every quote character as a quote toggle and drops it.
"""

from __future__ import annotations

import csv
import io
import json
import re
from datetime import date
from pathlib import Path
from typing import Any

import click
import psycopg

from catalog_etl.catalog_store import fetch_products_for_export
from catalog_etl.product_schema import PRODUCT_COLUMNS, format_export_value

EXTRA_COLUMNS = ("specifications", "features")

_LINE_BREAKS_RE = re.compile(r"\s*[\r\n]+\s*")


class ExportError(Exception):
    """Raised when there is nothing to export."""


def default_export_name(today: date | None = None) -> str:
    today = today or date.today()
    return f"products_export_{today.isoformat()}.csv"


def export_headers() -> list[str]:
    return [c.name for c in PRODUCT_COLUMNS] + list(EXTRA_COLUMNS)


def _format_extras(product: dict[str, Any]) -> list[str]:
    specs = product.get("specifications")
    features = product.get("features")
    return [
        json.dumps(specs, ensure_ascii=False) if specs else "",
        "; ".join(features) if features else "",
    ]


def flatten_line_breaks(value: str) -> str:
    """Collapse line breaks to single spaces; the importer reads one row per line."""
    return _LINE_BREAKS_RE.sub(" ", value)


def render_export_csv(products: list[dict[str, Any]]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(export_headers())
    for product in products:
        cells = [format_export_value(c, product.get(c.name)) for c in PRODUCT_COLUMNS]
        writer.writerow([flatten_line_breaks(v) for v in cells + _format_extras(product)])
    return buf.getvalue()


def _run_export(run_id: str, db_dsn: str, out_path: str | None) -> tuple[Path, int]:
    with psycopg.connect(db_dsn) as conn:
        products = fetch_products_for_export(conn)
    click.echo(f"[{run_id}] Fetched {len(products)} product(s)")
    if not products:
        raise ExportError("no products to export")

    path = Path(out_path or default_export_name())
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_export_csv(products), encoding="utf-8-sig")
    return path, len(products)
