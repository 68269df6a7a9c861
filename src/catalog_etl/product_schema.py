"""catalog_etl.product_schema

Single column schema for the product import file.

PRODUCT_COLUMNS is the one ordered definition of the import columns.  It
drives the downloadable template, the row mapper (string -> typed value)
and the row validator, so the three cannot drift apart.

Validation walks the columns in VALIDATION_ORDER, which differs from the
file order only in checking compare_price last, and stops at the first
violated constraint; only that one reason is reported for a row.
"""

from __future__ import annotations

import csv
import io
import math
from dataclasses import asdict, dataclass
from typing import Any

from catalog_etl.normalize import (
    format_flag,
    is_absolute_url,
    parse_flag,
    parse_float,
    parse_int,
    trim,
)

TEMPLATE_FILE_NAME = "product_import_template.csv"

# Column kinds
TEXT = "text"
PRICE = "price"
OPTIONAL_PRICE = "optional_price"
COUNT = "count"
FLAG = "flag"


@dataclass(frozen=True)
class ColumnSpec:
    name: str
    kind: str
    sample: str
    required: bool = False
    max_length: int | None = None
    url: bool = False
    flag_default: bool = False

    @property
    def label(self) -> str:
        return self.name.replace("_", " ").capitalize()

    def coerce(self, raw: str | None) -> Any:
        """Map one raw cell to its typed candidate value."""
        if self.kind == TEXT:
            return trim(raw)
        if self.kind == PRICE:
            return parse_float(raw) or 0.0
        if self.kind == OPTIONAL_PRICE:
            if trim(raw) is None:
                return None
            return parse_float(raw) or 0.0
        if self.kind == COUNT:
            return parse_int(raw) or 0
        if self.kind == FLAG:
            return parse_flag(raw, self.flag_default)
        raise ValueError(f"unknown column kind: {self.kind!r}")

    def check(self, value: Any) -> str | None:
        """Return a rejection reason for value, or None when it passes."""
        if self.kind == TEXT:
            if not value:
                if self.required:
                    return f"{self.name}: {self.label} is required"
                return None
            if self.max_length is not None and len(value) > self.max_length:
                return (
                    f"{self.name}: {self.label} must be at most "
                    f"{self.max_length} characters"
                )
            if self.url and not is_absolute_url(value):
                return f"{self.name}: {self.label} must be a valid URL"
            return None
        if self.kind in (PRICE, OPTIONAL_PRICE):
            if value is None and self.kind == OPTIONAL_PRICE:
                return None
            if value is None or not math.isfinite(value) or value <= 0:
                return f"{self.name}: {self.label} must be positive"
            return None
        if self.kind == COUNT:
            if not isinstance(value, int) or value < 0:
                return f"{self.name}: {self.label} must be a whole number of 0 or more"
            return None
        return None


PRODUCT_COLUMNS: tuple[ColumnSpec, ...] = (
    ColumnSpec("name", TEXT, "Digital Analytical Balance", required=True, max_length=255),
    ColumnSpec("slug", TEXT, "digital-analytical-balance", required=True, max_length=255),
    ColumnSpec("price", PRICE, "45000"),
    ColumnSpec("compare_price", OPTIONAL_PRICE, "50000"),
    ColumnSpec(
        "description", TEXT,
        "High precision analytical balance for laboratory use",
        max_length=10000,
    ),
    ColumnSpec(
        "short_description", TEXT,
        "Precision balance with 0.0001g accuracy",
        max_length=500,
    ),
    ColumnSpec("sku", TEXT, "BAL-001", max_length=100),
    ColumnSpec("category_slug", TEXT, "analytical-balance", max_length=255),
    ColumnSpec("image_url", TEXT, "https://example.com/image.jpg", url=True),
    ColumnSpec("stock_quantity", COUNT, "10"),
    ColumnSpec("in_stock", FLAG, "TRUE"),
    ColumnSpec("is_featured", FLAG, "FALSE"),
    ColumnSpec("is_active", FLAG, "TRUE", flag_default=True),
)

KNOWN_COLUMNS = frozenset(c.name for c in PRODUCT_COLUMNS)

VALIDATION_ORDER: tuple[ColumnSpec, ...] = tuple(
    c for c in PRODUCT_COLUMNS if c.name != "compare_price"
) + tuple(c for c in PRODUCT_COLUMNS if c.name == "compare_price")


# ---------------------------------------------------------------------------
# Row records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CandidateRow:
    name: str | None
    slug: str | None
    price: float
    compare_price: float | None
    description: str | None
    short_description: str | None
    sku: str | None
    category_slug: str | None
    image_url: str | None
    stock_quantity: int
    in_stock: bool
    is_featured: bool
    is_active: bool


@dataclass(frozen=True)
class ValidatedRecord(CandidateRow):
    """A CandidateRow that passed every column constraint."""

    def to_insert_params(self, category_id: str | None) -> dict[str, Any]:
        params = asdict(self)
        params.pop("category_slug")
        params["category_id"] = category_id
        return params


# ---------------------------------------------------------------------------
# Mapper / validator
# ---------------------------------------------------------------------------

def map_row(raw: dict[str, str]) -> CandidateRow:
    """Coerce a header-keyed row into a CandidateRow; missing columns read as blank."""
    return CandidateRow(**{c.name: c.coerce(raw.get(c.name)) for c in PRODUCT_COLUMNS})


def validate_row(candidate: CandidateRow) -> ValidatedRecord | str:
    """Return the validated record, or the first rejection reason."""
    for column in VALIDATION_ORDER:
        reason = column.check(getattr(candidate, column.name))
        if reason:
            return reason
    return ValidatedRecord(**asdict(candidate))


# ---------------------------------------------------------------------------
# Template
# ---------------------------------------------------------------------------

def template_headers() -> list[str]:
    return [c.name for c in PRODUCT_COLUMNS]


def build_template_csv() -> str:
    """Header line plus one example row, booleans spelled TRUE/FALSE."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(template_headers())
    writer.writerow([c.sample for c in PRODUCT_COLUMNS])
    return buf.getvalue()


def format_export_value(column: ColumnSpec, value: Any) -> str:
    """Render a stored product value back into its import-file spelling."""
    if column.kind == FLAG:
        return format_flag(value)
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
