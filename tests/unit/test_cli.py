"""CLI tests for catalog_etl.import_products_csv.main (no database)."""

from __future__ import annotations

import json
from contextlib import nullcontext
from pathlib import Path

from click.testing import CliRunner

import catalog_etl.import_products_csv as cli
from catalog_etl.product_schema import build_template_csv
from catalog_etl.shared import ImportOutcome, RejectWriter


def _invoke(args, **kwargs):
    runner = CliRunner()
    return runner.invoke(cli.main, args, env={"CATALOG_DB_DSN": None}, **kwargs)


class TestTemplateMode:
    def test_writes_template(self, tmp_path):
        out = tmp_path / "t.csv"
        result = _invoke(["--mode", "template", "--out-path", str(out), "--run-id", "r1"])
        assert result.exit_code == 0
        assert out.read_text(encoding="utf-8") == build_template_csv()
        assert "[r1] Template written" in result.output

    def test_default_name(self):
        runner = CliRunner()
        with runner.isolated_filesystem():
            result = runner.invoke(cli.main, ["--mode", "template"])
            assert result.exit_code == 0
            assert Path("product_import_template.csv").exists()


class TestFlagValidation:
    def test_import_requires_csv_path(self):
        result = _invoke(["--db-dsn", "dbname=unused"])
        assert result.exit_code == 1
        assert "import mode requires: --csv-path" in result.output

    def test_import_requires_dsn(self, tmp_path):
        result = _invoke(["--csv-path", str(tmp_path / "p.csv")])
        assert result.exit_code == 1
        assert "--db-dsn" in result.output

    def test_export_requires_dsn(self):
        result = _invoke(["--mode", "export"])
        assert result.exit_code == 1
        assert "export mode requires: --db-dsn" in result.output


class TestFileLevelErrors:
    def test_rejects_non_csv_name(self, tmp_path):
        path = tmp_path / "products.txt"
        path.write_text("name,slug,price\nA,a,1\n")
        result = _invoke(["--db-dsn", "dbname=unused", "--csv-path", str(path)])
        assert result.exit_code == 1
        assert "only .csv files are supported" in result.output

    def test_header_only_file(self, tmp_path):
        path = tmp_path / "products.csv"
        path.write_text("name,slug,price\n")
        result = _invoke(["--db-dsn", "dbname=unused", "--csv-path", str(path)])
        assert result.exit_code == 1
        assert "no data rows" in result.output

    def test_missing_file(self, tmp_path):
        result = _invoke(["--db-dsn", "dbname=unused", "--csv-path", str(tmp_path / "nope.csv")])
        assert result.exit_code == 1
        assert "cannot read" in result.output

    def test_uppercase_extension_accepted(self, tmp_path):
        path = tmp_path / "PRODUCTS.CSV"
        path.write_text("name,slug,price\nA,a,1\n")
        assert len(cli.read_import_file(path).rows) == 1

    def test_non_utf8(self, tmp_path):
        path = tmp_path / "products.csv"
        path.write_bytes(b"name,slug,price\n\xff\xfe,a,1\n")
        result = _invoke(["--db-dsn", "dbname=unused", "--csv-path", str(path)])
        assert result.exit_code == 1
        assert "not UTF-8" in result.output

    def test_bom_stripped(self, tmp_path):
        path = tmp_path / "products.csv"
        path.write_text("name,slug,price\nA,a,1\n", encoding="utf-8-sig")
        assert cli.read_import_file(path).headers == ["name", "slug", "price"]


class TestImportOutput:
    def test_report_summary_and_run_report(self, monkeypatch):
        def fake_run_import(run_id, db_dsn, outcome, rejects, csv_path, dry_run, on_progress=None):
            outcome.rows_read = 3
            outcome.success_count = 2
            outcome.record_failure(3, None, "name: Name is required")
            for pct in (33, 33, 67, 100):
                on_progress(pct)
            return outcome

        monkeypatch.setattr(cli, "_run_import", fake_run_import)
        runner = CliRunner()
        with runner.isolated_filesystem():
            result = runner.invoke(
                cli.main,
                ["--db-dsn", "dbname=unused", "--csv-path", "p.csv", "--run-id", "r9"],
            )
            assert result.exit_code == 0
            report = json.loads(Path("artifacts/reports/r9.json").read_text())

        assert result.output.count("Progress: 33%") == 1
        assert "[r9] Progress: 100%" in result.output
        assert "Product Import Report" in result.output
        assert "[r9] 2 product(s) imported." in result.output
        assert "[r9] 1 product(s) failed." in result.output
        assert "Row 3 (Unknown): name: Name is required" in result.output
        assert report["counters"]["success"] == 2
        assert report["counters"]["failed"] == 1
        assert report["mode"] == "import"


class TestRunImportEcho:
    def test_lists_available_category_slugs(self, tmp_path, monkeypatch, capsys):
        class FakeConn:
            def __init__(self):
                self.closed = False

            def execute(self, sql, params=None):
                class Cursor:
                    def fetchall(self):
                        return [("c-1", "Balances", "balances"), ("c-2", "Glassware", "glassware")]

                    def fetchone(self):
                        return ("p-1",)

                return Cursor()

            def transaction(self, force_rollback=False):
                return nullcontext()

            def close(self):
                self.closed = True

        conn = FakeConn()
        monkeypatch.setattr(cli.psycopg, "connect", lambda dsn, autocommit=False: conn)
        path = tmp_path / "products.csv"
        path.write_text("name,slug,price\nA,a,1\n")

        outcome = cli._run_import(
            "r2", "dbname=unused", ImportOutcome(), RejectWriter(tmp_path / "rej.csv"),
            str(path), dry_run=False,
        )

        out = capsys.readouterr().out
        assert "[r2] Available category slugs: balances, glassware" in out
        assert outcome.success_count == 1
        assert conn.closed
