"""
Batch conversion over a directory tree.

Discovers templates, converts each one independently, mirrors the outputs
into the target tree and writes the optional reports.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .config import RunConfig
from .converter import Converter
from .diagnostics import Diagnostic
from .errors import ConfigError, ConverterUserError, ExitError
from .fswalk import discover_templates, ensure_parent_dir, mirror_output_path
from .report import (
    DiagnosticItem,
    FileItem,
    FileStatus,
    JsonReport,
    Summary,
    write_csv_report,
    write_json_report,
)

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_CONVERSION_FAILED = 2


@dataclass
class RunResult:
    """Outcome of a batch run that completed without a fatal error."""
    summary: Summary
    files: List[FileItem] = field(default_factory=list)


def _write_reports(cfg: RunConfig, summary: Summary, files: List[FileItem]) -> None:
    if cfg.report_json:
        write_json_report(cfg.report_json, JsonReport.build(summary, files))
    if cfg.report_csv:
        write_csv_report(cfg.report_csv, files)
    if cfg.report_json or cfg.report_csv:
        logger.info("reports written: json=%s csv=%s", cfg.report_json or "-", cfg.report_csv or "-")


def run_convert(cfg: RunConfig, converter: Optional[Converter] = None) -> RunResult:
    """
    Convert every template under cfg.input_dir.

    Returns:
        RunResult when every file converted

    Raises:
        ConfigError: Invalid configuration or nothing to convert
        ConverterUserError: A template is not valid UTF-8
        ExitError: code 2 when at least one file failed to convert
        OSError: Unreadable input or unwritable output
    """
    cfg.validate()
    converter = converter or Converter()

    templates = discover_templates(cfg.input_dir, cfg.glob)
    if not templates:
        raise ConfigError(f"no template files matched '{cfg.glob}' under '{cfg.input_dir}'")

    files: List[FileItem] = []
    helpers: set[str] = set()
    converted = 0
    failed = 0
    first_failure: Optional[Diagnostic] = None

    for template in templates:
        try:
            source = template.abs_path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise ConverterUserError(f"{template.rel_path}: not valid UTF-8: {e}") from e

        try:
            result = converter.convert(template.rel_path, source)
        except Diagnostic as diag:
            failed += 1
            first_failure = first_failure or diag
            files.append(FileItem(
                file=template.rel_path,
                status=FileStatus.FAILED_CONVERSION,
                diagnostics=[DiagnosticItem.from_error(template.rel_path, diag)],
            ))
            logger.warning("conversion failed: %s", diag)
            if cfg.strict:
                break
            continue

        out_path = mirror_output_path(cfg.output_dir, template.rel_path, cfg.ext)
        ensure_parent_dir(out_path)
        out_path.write_text(result.output, encoding="utf-8")

        helpers.update(result.helpers)
        converted += 1
        files.append(FileItem(
            file=template.rel_path,
            status=FileStatus.CONVERTED,
            features_detected=list(result.features),
            helpers_required=list(result.helpers),
        ))

    summary = Summary(
        discovered=len(templates),
        converted=converted,
        conversion_failed=failed,
        helpers_needed=sorted(helpers),
    )
    logger.info(
        "conversion summary: discovered=%d converted=%d conversion_failed=%d input=%s output=%s",
        summary.discovered, summary.converted, summary.conversion_failed,
        cfg.input_dir, cfg.output_dir,
    )
    if summary.helpers_needed:
        logger.info("helpers needed: %s", ", ".join(summary.helpers_needed))

    _write_reports(cfg, summary, files)

    if cfg.strict and first_failure is not None:
        raise ExitError(
            EXIT_CONVERSION_FAILED,
            f"conversion failed on {first_failure.file}: {first_failure}",
            cause=first_failure,
        )
    if failed:
        raise ExitError(
            EXIT_CONVERSION_FAILED,
            f"conversion finished with {failed} failed file(s)",
            cause=first_failure,
        )

    return RunResult(summary=summary, files=files)


__all__ = [
    "EXIT_SUCCESS",
    "EXIT_FAILURE",
    "EXIT_CONVERSION_FAILED",
    "RunResult",
    "run_convert",
]
