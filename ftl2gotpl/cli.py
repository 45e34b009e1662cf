from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from .config import build_config
from .errors import ConverterUserError, ExitError
from .log import configure_logging
from .runner import EXIT_FAILURE, EXIT_SUCCESS, run_convert
from .version import tool_version


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="ftl2gotpl",
        description="Convert FreeMarker templates into Go text/template files",
        add_help=True,
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {tool_version()}")
    p.add_argument("--in", dest="input_dir", type=Path, help="input directory with .ftl templates")
    p.add_argument("--out", dest="output_dir", type=Path, help="output directory (mirrors the input tree)")
    p.add_argument("--glob", help="file pattern relative to --in (default: **/*.ftl)")
    p.add_argument("--ext", help="output file extension (default: .gotmpl)")
    p.add_argument(
        "--strict",
        action="store_true",
        default=None,
        help="stop at the first conversion failure",
    )
    p.add_argument("--report-json", dest="report_json", type=Path, metavar="PATH", help="write a JSON report")
    p.add_argument("--report-csv", dest="report_csv", type=Path, metavar="PATH", help="write a CSV report")
    p.add_argument("--config", type=Path, metavar="PATH", help="YAML file with default options")
    p.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return p


def _flags(ns: argparse.Namespace) -> Dict[str, Any]:
    # None means "not given on the command line"
    return {
        "input_dir": ns.input_dir,
        "output_dir": ns.output_dir,
        "glob": ns.glob,
        "ext": ns.ext,
        "strict": ns.strict,
        "report_json": ns.report_json,
        "report_csv": ns.report_csv,
    }


def main(argv: Optional[list[str]] = None) -> int:
    ns = _build_parser().parse_args(argv)
    configure_logging(verbose=ns.verbose)

    try:
        cfg = build_config(ns.config, **_flags(ns))
        run_convert(cfg)
        return EXIT_SUCCESS
    except ExitError as e:
        sys.stderr.write(str(e).rstrip() + "\n")
        return e.code
    except ConverterUserError as e:
        sys.stderr.write(str(e).rstrip() + "\n")
        return EXIT_FAILURE
    except OSError as e:
        sys.stderr.write(f"I/O error: {e}\n")
        return EXIT_FAILURE


if __name__ == "__main__":
    raise SystemExit(main())
