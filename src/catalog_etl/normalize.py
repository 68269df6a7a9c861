"""Normalization functions for product catalog CSV ingestion.

All functions accept str | None and return the appropriate type or None.
Numeric parsers follow spreadsheet-export habits: they read the longest
leading number and ignore trailing text ("12 pcs" -> 12).
"""

from __future__ import annotations

import re
import unicodedata
import urllib.parse

_LEADING_FLOAT_RE = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_LEADING_INT_RE = re.compile(r"^[+-]?\d+")
_URL_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*$")


# ---------------------------------------------------------------------------
# Rule 1: trim
# ---------------------------------------------------------------------------

def trim(value: str | None) -> str | None:
    """Strip leading/trailing whitespace; treat empty string as None."""
    if value is None:
        return None
    v = value.strip()
    return v if v else None


# ---------------------------------------------------------------------------
# Rule 2: strip_quotes
# ---------------------------------------------------------------------------

def strip_quotes(value: str) -> str:
    """Trim, then remove one layer of surrounding double quotes, then trim again."""
    v = value.strip()
    if v.startswith('"'):
        v = v[1:]
    if v.endswith('"'):
        v = v[:-1]
    return v.strip()


# ---------------------------------------------------------------------------
# Rule 3: parse_float
# ---------------------------------------------------------------------------

def parse_float(value: str | None) -> float | None:
    """Parse the leading decimal number of a string, or None if there is none."""
    v = trim(value)
    if v is None:
        return None
    m = _LEADING_FLOAT_RE.match(v)
    if not m:
        return None
    return float(m.group())


# ---------------------------------------------------------------------------
# Rule 4: parse_int
# ---------------------------------------------------------------------------

def parse_int(value: str | None) -> int | None:
    """Parse the leading integer of a string ("3.7" -> 3), or None."""
    v = trim(value)
    if v is None:
        return None
    m = _LEADING_INT_RE.match(v)
    if not m:
        return None
    return int(m.group())


# ---------------------------------------------------------------------------
# Rule 5: parse_flag
# ---------------------------------------------------------------------------

def parse_flag(value: str | None, default: bool) -> bool:
    """Read a TRUE/FALSE column.

    With default False only a case-insensitive "TRUE" yields True.
    With default True only a case-insensitive "FALSE" yields False.
    """
    v = (trim(value) or "").upper()
    if default:
        return v != "FALSE"
    return v == "TRUE"


def format_flag(value: bool | None) -> str:
    return "TRUE" if value else "FALSE"


# ---------------------------------------------------------------------------
# Rule 6: is_absolute_url
# ---------------------------------------------------------------------------

def is_absolute_url(value: str | None) -> bool:
    """Return True for an absolute URL: a scheme plus a non-empty remainder.

    Hierarchical schemes (http, https, ftp, file) additionally need a host.
    """
    v = trim(value)
    if v is None or any(c.isspace() for c in v):
        return False
    try:
        parsed = urllib.parse.urlsplit(v)
    except ValueError:
        return False
    if not parsed.scheme or not _URL_SCHEME_RE.match(parsed.scheme):
        return False
    if parsed.scheme.lower() in ("http", "https", "ftp", "ftps", "ws", "wss"):
        return bool(parsed.hostname)
    return bool(parsed.netloc or parsed.path)


# ---------------------------------------------------------------------------
# Rule 7: slug_name
# ---------------------------------------------------------------------------

def slug_name(value: str | None) -> str | None:
    """Lowercase alnum with '-' separators.

    Used to suggest a category slug in warnings when a row's slug misses
    the lookup only by case or punctuation.
    """
    v = trim(value)
    if v is None:
        return None
    v = unicodedata.normalize("NFKD", v)
    v = "".join(c for c in v if not unicodedata.combining(c))
    v = v.lower()
    v = re.sub(r"[^a-z0-9]+", "-", v)
    v = v.strip("-")
    return v if v else None
