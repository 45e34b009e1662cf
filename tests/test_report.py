"""
Tests for JSON and CSV run reports.
"""

import csv
import json
import re
from pathlib import Path

from ftl2gotpl.diagnostics import Diagnostic, PARSE_INVALID_LIST
from ftl2gotpl.report import (
    CSV_HEADER,
    DiagnosticItem,
    FileItem,
    FileStatus,
    JsonReport,
    Summary,
    write_csv_report,
    write_json_report,
)


def sample_files():
    return [
        FileItem(
            file="b.ftl",
            status=FileStatus.CONVERTED,
            features_detected=["node:text"],
            helpers_required=["default"],
        ),
        FileItem(
            file="a.ftl",
            status=FileStatus.FAILED_CONVERSION,
            diagnostics=[DiagnosticItem(code=PARSE_INVALID_LIST, message="bad list", file="a.ftl", line=3, column=1)],
        ),
    ]


class TestDiagnosticItem:

    def test_from_diagnostic(self):
        diag = Diagnostic(PARSE_INVALID_LIST, "x.ftl", 2, 5, "bad list", "<#list>")
        item = DiagnosticItem.from_error("x.ftl", diag)

        assert item.code == PARSE_INVALID_LIST
        assert item.message == "bad list"
        assert (item.file, item.line, item.column, item.snippet) == ("x.ftl", 2, 5, "<#list>")

    def test_from_other_error(self):
        item = DiagnosticItem.from_error("x.ftl", OSError("disk full"))

        assert item.code == "ERROR"
        assert item.message == "disk full"
        assert item.file == "x.ftl"
        assert item.line is None


class TestJsonReport:

    def test_generated_at_format(self):
        report = JsonReport.build(Summary(), [])
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z", report.generated_at)

    def test_written_json_omits_empty_fields(self, tmp_path: Path):
        path = tmp_path / "reports" / "run.json"
        summary = Summary(discovered=2, converted=1, conversion_failed=1, helpers_needed=["default"])

        write_json_report(path, JsonReport.build(summary, sample_files()))

        text = path.read_text(encoding="utf-8")
        assert text.endswith("\n")
        data = json.loads(text)
        assert data["summary"] == {
            "discovered": 2,
            "converted": 1,
            "conversion_failed": 1,
            "helpers_needed": ["default"],
        }
        converted, failed = data["files"]
        assert converted == {
            "file": "b.ftl",
            "status": "converted",
            "features_detected": ["node:text"],
            "helpers_required": ["default"],
        }
        assert failed["status"] == "failed_conversion"
        assert failed["diagnostics"] == [
            {"code": PARSE_INVALID_LIST, "message": "bad list", "file": "a.ftl", "line": 3, "column": 1}
        ]


class TestCsvReport:

    def test_rows_sorted_by_file(self, tmp_path: Path):
        path = tmp_path / "out" / "run.csv"

        write_csv_report(path, sample_files())

        with path.open(encoding="utf-8", newline="") as fh:
            rows = list(csv.reader(fh))
        assert rows[0] == CSV_HEADER
        assert rows[1:] == [
            ["a.ftl", "failed_conversion", "1", "0", "0"],
            ["b.ftl", "converted", "0", "1", "1"],
        ]
