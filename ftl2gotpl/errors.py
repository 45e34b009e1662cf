"""
User-facing error hierarchy.

The CLI prints any ConverterUserError as a one-line message and maps it to
an exit code. Anything else is a bug and keeps its traceback.
"""

from __future__ import annotations

from typing import Optional


class ConverterUserError(Exception):
    """
    Base class for all user-facing errors in ftl2gotpl.

    These errors indicate problems that the user can fix:
    unsupported template constructs, bad flags, unreadable paths, etc.
    """
    pass


class ConfigError(ConverterUserError, ValueError):
    """Invalid run configuration (flags or config file)."""
    pass


class ExitError(ConverterUserError):
    """
    Terminal outcome of a batch run that must map to a process exit code.

    The wrapped root error (if any) is available through ``__cause__``.
    """

    def __init__(self, code: int, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.code = code
        if cause is not None:
            self.__cause__ = cause


__all__ = ["ConverterUserError", "ConfigError", "ExitError"]
