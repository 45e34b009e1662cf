from __future__ import annotations

from importlib import metadata


def tool_version() -> str:
    """
    Installed package version.
    Imports nothing from the package itself, so any module may use it.
    """
    try:
        return metadata.version("ftl2gotpl")
    except metadata.PackageNotFoundError:
        return "0.0.0"

__all__ = ["tool_version"]
