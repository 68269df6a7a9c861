"""Unit tests for catalog_etl.export_products_csv."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from catalog_etl.csv_text import read_raw_rows
from catalog_etl.export_products_csv import (
    default_export_name,
    export_headers,
    flatten_line_breaks,
    render_export_csv,
)
from catalog_etl.import_products_csv import header_warnings
from catalog_etl.product_schema import (
    PRODUCT_COLUMNS,
    ValidatedRecord,
    format_export_value,
    map_row,
    validate_row,
)

COLUMNS = {c.name: c for c in PRODUCT_COLUMNS}


def _product(**overrides):
    product = {
        "name": "Analytical Balance, 220 g",
        "slug": "analytical-balance-220",
        "price": Decimal("45000.00"),
        "compare_price": None,
        "description": None,
        "short_description": "0.1 mg readability",
        "sku": "BAL-220",
        "category_slug": "balances",
        "image_url": "https://example.com/bal.jpg",
        "stock_quantity": 4,
        "in_stock": True,
        "is_featured": False,
        "is_active": True,
        "specifications": {"capacity": "220 g"},
        "features": ["Internal calibration", "Draft shield"],
    }
    product.update(overrides)
    return product


class TestFormatExportValue:
    def test_flags(self):
        assert format_export_value(COLUMNS["in_stock"], True) == "TRUE"
        assert format_export_value(COLUMNS["is_active"], False) == "FALSE"

    def test_none_blank(self):
        assert format_export_value(COLUMNS["compare_price"], None) == ""

    def test_integral_float(self):
        assert format_export_value(COLUMNS["price"], 45000.0) == "45000"

    def test_decimal_kept(self):
        assert format_export_value(COLUMNS["price"], Decimal("19.99")) == "19.99"


class TestRenderExportCsv:
    def test_header(self):
        first = render_export_csv([]).splitlines()[0]
        assert first.split(",") == export_headers()
        assert export_headers()[-2:] == ["specifications", "features"]

    def test_row_values(self):
        parsed = read_raw_rows(render_export_csv([_product()]))
        values = parsed.rows[0].values
        assert values["name"] == "Analytical Balance, 220 g"
        assert values["in_stock"] == "TRUE"
        assert values["is_featured"] == "FALSE"
        assert values["compare_price"] == ""
        assert values["features"] == "Internal calibration; Draft shield"
        # quote characters are consumed by the importer's quote toggle
        assert values["specifications"] == "{capacity: 220 g}"

    def test_empty_extras(self):
        parsed = read_raw_rows(render_export_csv([_product(specifications=None, features=None)]))
        values = parsed.rows[0].values
        assert values["specifications"] == ""
        assert values["features"] == ""

    def test_reimports_cleanly(self):
        parsed = read_raw_rows(render_export_csv([_product(), _product(slug="b", in_stock=False)]))
        assert parsed.lines_dropped == 0
        records = [validate_row(map_row(r.values)) for r in parsed.rows]
        assert all(isinstance(r, ValidatedRecord) for r in records)
        assert records[0].price == 45000.0
        assert records[0].in_stock is True
        assert records[1].in_stock is False
        assert records[0].category_slug == "balances"

    def test_extras_flagged_on_reimport(self):
        assert header_warnings(export_headers()) == [
            "ignored unrecognized columns: specifications, features"
        ]


class TestDefaultExportName:
    def test_dated(self):
        assert default_export_name(date(2026, 10, 17)) == "products_export_2026-10-17.csv"


class TestFlattenLineBreaks:
    def test_newlines_become_spaces(self):
        assert flatten_line_breaks("Line one\nline two\r\n  line three") == (
            "Line one line two line three"
        )

    def test_single_line_untouched(self):
        assert flatten_line_breaks("a,b") == "a,b"

    def test_multiline_description_stays_one_row(self):
        product = _product(description='Precise\nand "fast", too')
        text = render_export_csv([product])
        assert len(text.splitlines()) == 2
        parsed = read_raw_rows(text)
        assert parsed.lines_dropped == 0
        assert parsed.rows[0].values["description"] == "Precise and fast, too"
