"""catalog_etl.categories

Category lookup for product imports.

The lookup is fetched once before any row is processed and is read-only
for the rest of the run.  Resolution is an exact, case-sensitive slug match;
a miss resolves to None and the product is imported uncategorized.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import psycopg

from catalog_etl.normalize import slug_name


@dataclass(frozen=True)
class Category:
    id: str
    name: str
    slug: str


@dataclass
class CategoryLookup:
    categories: list[Category] = field(default_factory=list)
    _by_slug: dict[str, Category] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self) -> None:
        for category in self.categories:
            # First row wins; the store keeps slugs unique anyway.
            self._by_slug.setdefault(category.slug, category)

    def __len__(self) -> int:
        return len(self.categories)

    def get(self, slug: str | None) -> Category | None:
        if slug is None:
            return None
        return self._by_slug.get(slug)

    def suggest(self, slug: str | None) -> str | None:
        """Return a known slug that matches slug after slug normalization."""
        norm = slug_name(slug)
        if norm is None or norm == slug:
            return None
        return norm if norm in self._by_slug else None

    def slugs(self) -> list[str]:
        return [c.slug for c in self.categories]


def fetch_category_lookup(conn: psycopg.Connection) -> CategoryLookup:
    rows = conn.execute(
        "SELECT id, name, slug FROM category ORDER BY name ASC, id ASC"
    ).fetchall()
    return CategoryLookup([Category(str(r[0]), r[1], r[2]) for r in rows])


def resolve_category_id(lookup: CategoryLookup, slug: str | None) -> str | None:
    category = lookup.get(slug)
    return category.id if category else None
