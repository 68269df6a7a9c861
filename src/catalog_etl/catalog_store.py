"""catalog_etl.catalog_store

DB helpers for the product catalog tables.  Callers manage transactions.
"""

from __future__ import annotations

from typing import Any

import psycopg

from catalog_etl.product_schema import ValidatedRecord


def insert_product(
    conn: psycopg.Connection,
    record: ValidatedRecord,
    category_id: str | None,
) -> str:
    """INSERT one product row and return its id.

    Raises psycopg.Error (e.g. UniqueViolation on slug) for the caller to
    record as a row failure.
    """
    row = conn.execute(
        """
        INSERT INTO product
          (name, slug, price, compare_price, description, short_description,
           sku, category_id, image_url, stock_quantity,
           in_stock, is_featured, is_active)
        VALUES
          (%(name)s, %(slug)s, %(price)s, %(compare_price)s, %(description)s,
           %(short_description)s, %(sku)s, %(category_id)s, %(image_url)s,
           %(stock_quantity)s, %(in_stock)s, %(is_featured)s, %(is_active)s)
        RETURNING id
        """,
        record.to_insert_params(category_id),
    ).fetchone()
    return str(row[0])


def fetch_products_for_export(conn: psycopg.Connection) -> list[dict[str, Any]]:
    """Return every product with its category slug, ordered by name."""
    cur = conn.execute(
        """
        SELECT p.name, p.slug, p.price, p.compare_price, p.description,
               p.short_description, p.sku, c.slug AS category_slug,
               p.image_url, p.stock_quantity, p.in_stock, p.is_featured,
               p.is_active, p.specifications, p.features
        FROM product p
        LEFT JOIN category c ON c.id = p.category_id
        ORDER BY p.name ASC, p.id ASC
        """
    )
    columns = [d.name for d in cur.description]
    return [dict(zip(columns, r)) for r in cur.fetchall()]
