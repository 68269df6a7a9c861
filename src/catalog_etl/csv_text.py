"""catalog_etl.csv_text

Line-oriented CSV tokenizer for product import files.

The input is split on line breaks first, then each line is scanned one
character at a time.  Every double quote toggles an in-quotes flag and is
itself dropped; a comma is a separator only while the flag is off.  So
'Ruler 12" steel, metric",r-1' is two fields and '"a""b"' reads as 'ab'.
Quote state never spans lines: a quoted field containing a newline is not
supported and usually surfaces as a field-count mismatch, which drops the
row.

The first line is always the header.  Data lines whose field count differs
from the header's are dropped without being reported.  Surviving rows are
numbered by their position among surviving rows, header counted as row 1.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from catalog_etl.normalize import strip_quotes

_LINE_BREAK_RE = re.compile(r"\r?\n")


@dataclass(frozen=True)
class RawRow:
    line_number: int
    values: dict[str, str]

    def get(self, column: str) -> str:
        return self.values.get(column, "")


@dataclass
class TokenizedFile:
    headers: list[str]
    rows: list[RawRow]
    lines_read: int = 0
    lines_dropped: int = 0


def split_lines(text: str) -> list[str]:
    """Strip the document and split it on \\n / \\r\\n line breaks."""
    stripped = text.strip()
    if not stripped:
        return []
    return _LINE_BREAK_RE.split(stripped)


def parse_line(line: str) -> list[str]:
    """Split one line into cleaned fields."""
    fields: list[str] = []
    current: list[str] = []
    in_quotes = False
    for char in line:
        if char == '"':
            in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            fields.append("".join(current))
            current = []
        else:
            current.append(char)
    fields.append("".join(current))
    return [strip_quotes(f) for f in fields]


def read_raw_rows(text: str) -> TokenizedFile:
    lines = split_lines(text)
    if not lines:
        return TokenizedFile(headers=[], rows=[])

    headers = parse_line(lines[0])
    result = TokenizedFile(headers=headers, rows=[])
    if len(lines) < 2:
        return result

    for line in lines[1:]:
        result.lines_read += 1
        values = parse_line(line)
        if len(values) != len(headers):
            result.lines_dropped += 1
            continue
        result.rows.append(
            RawRow(line_number=len(result.rows) + 2, values=dict(zip(headers, values)))
        )
    return result
