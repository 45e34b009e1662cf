"""
Logging setup for the command-line tool.

Library modules only call logging.getLogger(__name__); the handler is
installed here, once, by the CLI. Lines are printed through a rich Console,
which decides whether colors are used (NO_COLOR, TERM=dumb, TTY detection).
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Optional, TextIO

from rich.console import Console
from rich.style import Style
from rich.text import Text

_ROOT_LOGGER = "ftl2gotpl"
_FORMAT = "%(name)s: %(message)s"

LEVEL_STYLES = {
    logging.ERROR: Style(color="red", bold=True),
    logging.WARNING: Style(color="yellow"),
    logging.INFO: Style(color="green"),
    logging.DEBUG: Style(color="cyan"),
}


def make_console(stream: Optional[TextIO] = None) -> Console:
    """Console for log output; CLICOLOR_FORCE=1 forces terminal (colored) mode."""
    force = True if os.environ.get("CLICOLOR_FORCE") == "1" else None
    return Console(
        file=stream or sys.stderr,
        force_terminal=force,
        highlight=False,
        emoji=False,
        soft_wrap=True,
    )


class ConsoleHandler(logging.Handler):
    """Writes '[LEVEL] name: message' lines with a styled level name."""

    def __init__(self, console: Console):
        super().__init__()
        self.console = console

    def emit(self, record: logging.LogRecord) -> None:
        try:
            line = Text.assemble(
                "[",
                (record.levelname, LEVEL_STYLES.get(record.levelno, Style())),
                "] ",
                self.format(record),
            )
            self.console.print(line)
        except Exception:
            self.handleError(record)


def configure_logging(verbose: bool = False, stream: Optional[TextIO] = None) -> logging.Logger:
    """
    Install a single console handler on the package logger.

    Safe to call repeatedly: an existing handler is replaced, not duplicated.
    """
    logger = logging.getLogger(_ROOT_LOGGER)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    for handler in list(logger.handlers):
        if getattr(handler, "_ftl2gotpl", False):
            logger.removeHandler(handler)

    handler = ConsoleHandler(make_console(stream))
    handler.setFormatter(logging.Formatter(_FORMAT))
    handler._ftl2gotpl = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    logger.propagate = False
    return logger


__all__ = ["configure_logging", "make_console", "ConsoleHandler", "LEVEL_STYLES"]
