"""
Run reports: structured JSON and flattened CSV.
"""

from __future__ import annotations

import csv
import json
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, List, Optional

from pydantic import BaseModel, Field

from .diagnostics import Diagnostic


class FileStatus(str, Enum):
    CONVERTED = "converted"
    FAILED_CONVERSION = "failed_conversion"


class DiagnosticItem(BaseModel):
    """Report-friendly form of one error."""
    code: str
    message: str
    file: Optional[str] = None
    line: Optional[int] = None
    column: Optional[int] = None
    snippet: Optional[str] = None

    @classmethod
    def from_error(cls, file: str, err: BaseException) -> DiagnosticItem:
        """Copy a Diagnostic field-for-field; anything else becomes code 'ERROR'."""
        if isinstance(err, Diagnostic):
            return cls(
                code=err.code,
                message=err.message,
                file=err.file or None,
                line=err.line or None,
                column=err.column or None,
                snippet=err.snippet or None,
            )
        return cls(code="ERROR", message=str(err), file=file)


class FileItem(BaseModel):
    """Conversion outcome for one template."""
    file: str
    status: FileStatus
    diagnostics: List[DiagnosticItem] = Field(default_factory=list)
    features_detected: List[str] = Field(default_factory=list)
    helpers_required: List[str] = Field(default_factory=list)


class Summary(BaseModel):
    """Aggregate counters of a run."""
    discovered: int = 0
    converted: int = 0
    conversion_failed: int = 0
    helpers_needed: List[str] = Field(default_factory=list)


class JsonReport(BaseModel):
    generated_at: str
    summary: Summary
    files: List[FileItem] = Field(default_factory=list)

    @classmethod
    def build(cls, summary: Summary, files: Iterable[FileItem]) -> JsonReport:
        """Stamp a report with the current UTC time (second precision)."""
        now = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
        return cls(generated_at=now, summary=summary, files=list(files))


def _prune(value: Any) -> Any:
    """Drop None values and empty lists from nested dicts."""
    if isinstance(value, dict):
        return {
            k: _prune(v)
            for k, v in value.items()
            if v is not None and not (isinstance(v, list) and not v)
        }
    if isinstance(value, list):
        return [_prune(v) for v in value]
    return value


def write_json_report(path: Path, report: JsonReport) -> None:
    """Write the indented JSON report, creating parent directories."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    data = _prune(report.model_dump(mode="json"))
    path.write_text(json.dumps(data, ensure_ascii=False, indent=2) + "\n", encoding="utf-8")


CSV_HEADER = ["file", "status", "diagnostics_count", "helpers_count", "features_count"]


def write_csv_report(path: Path, files: Iterable[FileItem]) -> None:
    """Write one row per file, sorted by file path."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="") as fh:
        writer = csv.writer(fh)
        writer.writerow(CSV_HEADER)
        for item in sorted(files, key=lambda f: f.file):
            writer.writerow([
                item.file,
                item.status.value,
                len(item.diagnostics),
                len(item.helpers_required),
                len(item.features_detected),
            ])


__all__ = [
    "FileStatus",
    "DiagnosticItem",
    "FileItem",
    "Summary",
    "JsonReport",
    "write_json_report",
    "write_csv_report",
    "CSV_HEADER",
]
