"""catalog_etl.shared

Shared utilities for the catalog import/export modes.
Includes ImportFileError, RejectWriter, the ImportOutcome counters,
ProgressState, and report-writing support.
"""

from __future__ import annotations

import csv
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

ERROR_DISPLAY_LIMIT = 10


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class ImportFileError(Exception):
    """Raised when the input file cannot be used at all (before any row runs)."""


# ---------------------------------------------------------------------------
# RejectWriter
# ---------------------------------------------------------------------------

class RejectWriter:
    """Lazy-open CSV writer for rejected rows."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._fh = None
        self._writer = None

    def write(self, row: dict[str, str], row_number: int, reason: str) -> None:
        if self._fh is None:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._fh = open(self._path, "w", newline="", encoding="utf-8")
            fieldnames = ["_row_number"] + list(row.keys()) + ["_reject_reason"]
            self._writer = csv.DictWriter(
                self._fh, fieldnames=fieldnames, extrasaction="ignore"
            )
            self._writer.writeheader()
        out = dict(row)
        out["_row_number"] = row_number
        out["_reject_reason"] = reason
        self._writer.writerow(out)
        self._fh.flush()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def opened(self) -> bool:
        return self._fh is not None

    def close(self) -> None:
        if self._fh:
            self._fh.close()


# ---------------------------------------------------------------------------
# ImportOutcome
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RowFailure:
    row_number: int
    row_label: str
    reason: str

    def __str__(self) -> str:
        return f"Row {self.row_number} ({self.row_label}): {self.reason}"


@dataclass
class ImportOutcome:
    rows_read: int = 0
    rows_dropped: int = 0
    success_count: int = 0
    failure_count: int = 0
    validation_failures: int = 0
    store_failures: int = 0
    categories_unresolved: int = 0
    failures: list[RowFailure] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def rows_processed(self) -> int:
        return self.success_count + self.failure_count

    def record_failure(self, row_number: int, row_label: str | None, reason: str) -> RowFailure:
        failure = RowFailure(row_number, row_label or "Unknown", reason)
        self.failures.append(failure)
        self.failure_count += 1
        return failure

    def to_dict(self) -> dict[str, Any]:
        return {
            "rows_read": self.rows_read,
            "rows_dropped": self.rows_dropped,
            "rows_processed": self.rows_processed,
            "success": self.success_count,
            "failed": self.failure_count,
            "validation_failures": self.validation_failures,
            "store_failures": self.store_failures,
            "categories_unresolved": self.categories_unresolved,
            "errors": [str(f) for f in self.failures[:ERROR_DISPLAY_LIMIT]],
            "warnings": self.warnings[:50],
        }


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------

def progress_percent(processed: int, total: int) -> int:
    """round(processed / total * 100), halves rounded up."""
    if total <= 0:
        return 0
    return (processed * 200 + total) // (2 * total)


@dataclass
class ProgressState:
    total: int
    processed: int = 0
    percent: int = 0

    def advance(self) -> int:
        self.processed += 1
        self.percent = max(self.percent, progress_percent(self.processed, self.total))
        return self.percent


# ---------------------------------------------------------------------------
# Summary / reports
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ImportSummary:
    success: int
    failed: int
    errors: tuple[str, ...]
    more_errors: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "failed": self.failed,
            "errors": list(self.errors),
        }


def summarize_outcome(outcome: ImportOutcome, limit: int = ERROR_DISPLAY_LIMIT) -> ImportSummary:
    shown = tuple(str(f) for f in outcome.failures[:limit])
    return ImportSummary(
        success=outcome.success_count,
        failed=outcome.failure_count,
        errors=shown,
        more_errors=max(0, len(outcome.failures) - limit),
    )


def build_import_report(outcome: ImportOutcome, dry_run: bool = False) -> str:
    summary = summarize_outcome(outcome)
    lines = [
        "=" * 60,
        "Product Import Report",
        f"  dry_run: {dry_run}",
        "=" * 60,
        f"  rows read:                      {outcome.rows_read}",
        f"  rows dropped (field count):     {outcome.rows_dropped}",
        f"  products imported:              {summary.success}",
        f"  products failed:                {summary.failed}",
        f"    validation failures:          {outcome.validation_failures}",
        f"    store failures:               {outcome.store_failures}",
        f"  uncategorized (slug not found): {outcome.categories_unresolved}",
    ]
    if summary.errors:
        lines.append(f"\nErrors ({summary.failed}):")
        for err in summary.errors:
            lines.append(f"  - {err}")
        if summary.more_errors:
            lines.append(f"  ... and {summary.more_errors} more")
    if outcome.warnings:
        lines.append(f"\nWarnings ({len(outcome.warnings)}):")
        for w in outcome.warnings[:20]:
            lines.append(f"  {w}")
        if len(outcome.warnings) > 20:
            lines.append(f"  ... and {len(outcome.warnings) - 20} more")
    lines.append("=" * 60)
    return "\n".join(lines)


def write_run_report(
    run_id: str,
    started_at: str,
    mode: str,
    dry_run: bool,
    source_paths: dict[str, str],
    outcome: ImportOutcome,
    reports_dir: Path = Path("./artifacts/reports"),
) -> Path:
    report = {
        "run_id": run_id,
        "mode": mode,
        "started_at": started_at,
        "finished_at": datetime.now(timezone.utc).isoformat(),
        "dry_run": dry_run,
        **source_paths,
        "counters": outcome.to_dict(),
    }
    report_path = reports_dir / f"{run_id}.json"
    report_path.parent.mkdir(parents=True, exist_ok=True)
    report_path.write_text(json.dumps(report, indent=2, default=str))
    return report_path
